"""Language-model session boundary.

The orchestration loop only ever talks to a :class:`ModelService` through two
calls:

* ``start_session()`` opens a conversation and returns the greeting together
  with an opaque :class:`ChatSession` handle.
* ``advance(session, input)`` sends one input and returns a
  :class:`~src.models.ModelResponse` carrying text and/or function calls.

``input`` is either raw customer text or a JSON ``functionResponse``
envelope; the service tells them apart by content.

:class:`AnthropicModelService` is the production implementation, a
LangChain ``ChatAnthropic`` model with the salon tools bound.  The session
handle owns the running message history.
"""

from __future__ import annotations

import json
import logging
import uuid
from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from typing import Any

from langchain_anthropic import ChatAnthropic
from langchain_core.messages import AnyMessage, HumanMessage, SystemMessage, ToolMessage

from src.config import MODEL_MAX_TOKENS, MODEL_NAME, MODEL_TEMPERATURE, get_anthropic_api_key
from src.models import FunctionCall, ModelResponse, decode_function_response
from src.prompts import OPENING_PROMPT, get_system_prompt
from src.tools.registry import ToolRegistry

logger = logging.getLogger(__name__)

NOT_EXECUTED_RESULT = json.dumps(
    {"success": False, "message": "This tool call was not executed."}
)


@dataclass
class ChatSession:
    """Opaque conversational context held by the model service."""

    id: str = field(default_factory=lambda: uuid.uuid4().hex)
    history: list[AnyMessage] = field(default_factory=list)
    # Tool calls from the last model reply still waiting for a result.
    pending_tool_calls: list[dict[str, str]] = field(default_factory=list)


@dataclass
class SessionStart:
    initial_text: str
    session: ChatSession


class ModelService(ABC):
    """Abstract request/response capability onto a language model."""

    @abstractmethod
    def start_session(self) -> SessionStart:
        """Open a new conversation and return the model's greeting."""

    @abstractmethod
    def advance(self, session: ChatSession, text: str) -> ModelResponse:
        """Send one input (user text or function response) and return the reply."""


def _content_text(content: str | list[Any]) -> str:
    """Flatten a chat-model content payload to plain text."""
    if isinstance(content, str):
        return content.strip()
    parts = []
    for block in content:
        if isinstance(block, str):
            parts.append(block)
        elif isinstance(block, dict) and block.get("type") == "text":
            parts.append(block.get("text", ""))
    return "".join(parts).strip()


class AnthropicModelService(ModelService):
    """``ModelService`` backed by Claude through ``langchain-anthropic``."""

    def __init__(self, registry: ToolRegistry, llm: Any | None = None) -> None:
        self._registry = registry
        self._llm = llm

    def _build_llm(self):
        """Build the chat model with the registry's tools bound.

        Raises ``OSError`` when the API key is not configured.
        """
        llm = ChatAnthropic(
            model=MODEL_NAME,
            api_key=get_anthropic_api_key(),
            temperature=MODEL_TEMPERATURE,
            max_tokens=MODEL_MAX_TOKENS,
        )
        return llm.bind_tools(self._registry.as_langchain_tools())

    @property
    def llm(self):
        if self._llm is None:
            self._llm = self._build_llm()
            logger.debug("Chat model ready — model: %s", MODEL_NAME)
        return self._llm

    def start_session(self) -> SessionStart:
        session = ChatSession()
        response = self.advance(session, OPENING_PROMPT)
        logger.info("Started model session %s", session.id)
        return SessionStart(initial_text=response.text or "", session=session)

    def advance(self, session: ChatSession, text: str) -> ModelResponse:
        envelope = decode_function_response(text)
        if envelope is not None and session.pending_tool_calls:
            name, response = envelope
            self._answer_pending(session, name, json.dumps(response))
        else:
            self._close_pending(session)
            session.history.append(HumanMessage(content=text))

        messages = [SystemMessage(content=get_system_prompt()), *session.history]
        ai_message = self.llm.invoke(messages)
        session.history.append(ai_message)

        tool_calls = getattr(ai_message, "tool_calls", None) or []
        session.pending_tool_calls = [
            {"id": call["id"], "name": call["name"]} for call in tool_calls
        ]
        text_reply = _content_text(ai_message.content)
        return ModelResponse(
            text=text_reply or None,
            function_calls=[
                FunctionCall(name=call["name"], args=call.get("args") or {})
                for call in tool_calls
            ],
        )

    # ── Tool-result bookkeeping ──────────────────────────────────────

    def _answer_pending(self, session: ChatSession, name: str, content: str) -> None:
        """Attach *content* to the pending call named *name*.

        Any other call from the same model reply is closed as not executed,
        since the loop only runs one call per iteration.
        """
        pending = session.pending_tool_calls
        target = next((call for call in pending if call["name"] == name), pending[0])
        for call in pending:
            result = content if call is target else NOT_EXECUTED_RESULT
            session.history.append(
                ToolMessage(content=result, tool_call_id=call["id"], name=call["name"])
            )
        session.pending_tool_calls = []

    def _close_pending(self, session: ChatSession) -> None:
        """Close tool calls left unanswered by an aborted turn."""
        for call in session.pending_tool_calls:
            logger.debug("Closing unanswered tool call %s (%s)", call["id"], call["name"])
            session.history.append(
                ToolMessage(content=NOT_EXECUTED_RESULT, tool_call_id=call["id"], name=call["name"])
            )
        session.pending_tool_calls = []
