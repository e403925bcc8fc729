"""Turn boundary: one customer conversation and its transcript.

A :class:`Conversation` ties together a model session handle, the
conversation's :class:`MessageLog`, and the shared turn graph.  It is the only
place faults are caught: every failure while initialising or running a turn
becomes a single bot message, so the chat surface never sees a raw error.
"""

from __future__ import annotations

import logging
import threading
import time
import uuid

from src.agent import (
    OUTCOME_ITERATION_CAP,
    OUTCOME_REPLY,
    OUTCOME_UNKNOWN_TOOL,
    create_turn_graph,
    run_turn,
)
from src.config import MAX_TOOL_ITERATIONS
from src.models import Message
from src.services.appointment_store import AppointmentStore
from src.services.message_log import MessageLog
from src.services.metrics import metrics
from src.services.model_session import AnthropicModelService, ChatSession, ModelService
from src.tools.appointments import build_salon_registry

logger = logging.getLogger(__name__)

INIT_FAILURE_MESSAGE = (
    "Failed to initialize the chat assistant. Please check the API key and refresh."
)
TRANSPORT_FAILURE_MESSAGE = "Sorry, I encountered an error. Please try again."
EMPTY_REPLY_MESSAGE = "I'm sorry, I wasn't able to generate a response. Please try again."
UNKNOWN_TOOL_MESSAGE = "Sorry, I couldn't complete that request. Please try rephrasing it."
ITERATION_CAP_MESSAGE = (
    "Sorry, I'm having trouble completing that request right now. Please try again."
)


class ConversationBusy(RuntimeError):
    """Raised when a message arrives while the previous turn is still running."""


class Conversation:
    """A single chat session, processed strictly one turn at a time."""

    def __init__(
        self,
        service: ModelService,
        graph,
        *,
        conversation_id: str | None = None,
        max_iterations: int = MAX_TOOL_ITERATIONS,
    ) -> None:
        self.id = conversation_id or uuid.uuid4().hex
        self.log = MessageLog()
        self._service = service
        self._graph = graph
        self._max_iterations = max_iterations
        self._session: ChatSession | None = None
        self._turn_lock = threading.Lock()

    @property
    def is_loading(self) -> bool:
        """True while a turn (or initialisation) is in progress."""
        return self._turn_lock.locked()

    @property
    def ready(self) -> bool:
        return self._session is not None

    def messages(self) -> list[Message]:
        return self.log.all()

    def _bot(self, text: str) -> Message:
        return self.log.append(Message(text=text, sender="bot"))

    def start(self) -> Message | None:
        """Open the model session and post its greeting."""
        with self._turn_lock:
            t0 = time.perf_counter()
            try:
                opening = self._service.start_session()
            except Exception as exc:
                metrics.record_model_failure(
                    "start_session", error_type=type(exc).__name__,
                    latency_ms=(time.perf_counter() - t0) * 1000,
                )
                logger.exception("[%s] Chat initialization failed", self.id)
                return self._bot(INIT_FAILURE_MESSAGE)

            metrics.record_model_call(
                "start_session", latency_ms=(time.perf_counter() - t0) * 1000,
            )
            self._session = opening.session
            logger.info("[%s] Conversation started", self.id)
            if opening.initial_text:
                return self._bot(opening.initial_text)
            return None

    def send(self, text: str) -> Message | None:
        """Run one user turn and return the bot message it produced.

        Returns ``None`` without touching the log for blank input or when the
        session never initialised.  Raises :class:`ConversationBusy` if a
        previous turn has not finished.
        """
        if not text.strip() or self._session is None:
            return None
        if not self._turn_lock.acquire(blocking=False):
            raise ConversationBusy(f"Conversation {self.id} is still processing a message")

        try:
            self.log.append(Message(text=text, sender="user"))
            try:
                result = run_turn(
                    self._graph, self._session, text, max_iterations=self._max_iterations,
                )
            except Exception:
                logger.exception("[%s] Error during message send", self.id)
                return self._bot(TRANSPORT_FAILURE_MESSAGE)

            logger.info(
                "[%s] Turn finished: outcome=%s tool_iterations=%d",
                self.id, result.outcome, result.iterations,
            )
            if result.outcome == OUTCOME_UNKNOWN_TOOL:
                return self._bot(UNKNOWN_TOOL_MESSAGE)
            if result.outcome == OUTCOME_ITERATION_CAP:
                return self._bot(ITERATION_CAP_MESSAGE)
            if result.outcome == OUTCOME_REPLY and result.reply:
                return self._bot(result.reply)
            return self._bot(EMPTY_REPLY_MESSAGE)
        finally:
            self._turn_lock.release()


class ConversationPool:
    """Conversations keyed by id.  Each one has its own session and log;
    the appointment store behind the tools is shared."""

    def __init__(self, service: ModelService, graph, *, max_iterations: int = MAX_TOOL_ITERATIONS) -> None:
        self._service = service
        self._graph = graph
        self._max_iterations = max_iterations
        self._conversations: dict[str, Conversation] = {}
        self._lock = threading.Lock()

    def create(self) -> Conversation:
        """Create a conversation, start it, and register it."""
        conversation = Conversation(
            self._service, self._graph, max_iterations=self._max_iterations,
        )
        conversation.start()
        with self._lock:
            self._conversations[conversation.id] = conversation
        return conversation

    def get(self, conversation_id: str) -> Conversation | None:
        with self._lock:
            return self._conversations.get(conversation_id)

    def __len__(self) -> int:
        with self._lock:
            return len(self._conversations)


def create_conversation_pool(
    store: AppointmentStore,
    service: ModelService | None = None,
) -> ConversationPool:
    """Wire the salon tools, the model service and the turn graph together."""
    registry = build_salon_registry(store)
    service = service or AnthropicModelService(registry)
    graph = create_turn_graph(service, registry)
    return ConversationPool(service, graph)
