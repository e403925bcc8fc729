"""Tool-calling orchestration loop for one chat turn.

Architecture:
  One user turn runs through a LangGraph ``StateGraph`` with four nodes:

    1. **request_model**  — sends the pending input (customer text or a
                            function-response envelope) to the model session
    2. **run_tool**       — executes the requested tool against the store and
                            serializes its result as the next pending input
    3. **reply**          — terminal: the model answered with text only
    4. **iteration_cap**  — terminal: the model kept asking for tools

  Routing:
    request_model → (tool calls, under cap?) → run_tool → request_model (loop)
                  → (tool calls, cap hit?)   → iteration_cap → END
                  → (no tool calls?)         → reply → END
    run_tool      → (unknown tool?)          → END

  Only the first tool call of a model reply is executed
  (``CALLS_PER_ITERATION``); the rest are dropped.  Tool mutations are applied
  immediately and are not rolled back if a later model call fails.

  The session handle travels in the graph state, so the graph itself holds no
  conversation state and can be shared by every conversation.
"""

from __future__ import annotations

import logging
import time
from dataclasses import dataclass
from typing import Any

from langgraph.graph import END, StateGraph
from typing_extensions import TypedDict

from src.config import MAX_TOOL_ITERATIONS
from src.models import FunctionCall, ModelResponse, encode_function_response
from src.services.metrics import metrics
from src.services.model_session import ModelService
from src.tools.registry import ToolRegistry

logger = logging.getLogger(__name__)

# Single-call-per-iteration policy: extra calls in the same reply are discarded.
CALLS_PER_ITERATION = 1

OUTCOME_REPLY = "reply"
OUTCOME_UNKNOWN_TOOL = "unknown_tool"
OUTCOME_ITERATION_CAP = "iteration_cap"


# ── State schema ─────────────────────────────────────────────────────


class TurnState(TypedDict, total=False):
    """The state that flows through the turn graph.

    ``session`` is the opaque model-session handle; ``pending_input`` is the
    next thing to send to it.  ``outcome`` is set by whichever node ends the
    turn.
    """

    session: Any
    pending_input: str
    response: ModelResponse
    iterations: int
    max_iterations: int
    tool_name: str
    outcome: str
    reply: str


@dataclass
class TurnResult:
    outcome: str
    reply: str | None
    iterations: int


def select_calls(function_calls: list[FunctionCall]) -> list[FunctionCall]:
    """Apply the single-call-per-iteration policy."""
    return function_calls[:CALLS_PER_ITERATION]


# ── Nodes ────────────────────────────────────────────────────────────


def _make_request_node(service: ModelService):
    """Create the node that performs one model round-trip."""

    def request_model(state: TurnState) -> dict:
        t0 = time.perf_counter()
        try:
            response = service.advance(state["session"], state["pending_input"])
        except Exception as exc:
            elapsed = (time.perf_counter() - t0) * 1000
            metrics.record_model_failure(
                "advance", error_type=type(exc).__name__, latency_ms=elapsed,
            )
            raise
        elapsed = (time.perf_counter() - t0) * 1000
        metrics.record_model_call("advance", latency_ms=elapsed)
        logger.debug(
            "Model responded in %.0fms (%d tool call(s))",
            elapsed, len(response.function_calls),
        )
        return {"response": response}

    return request_model


def _make_tool_node(registry: ToolRegistry):
    """Create the node that executes the selected tool call."""

    def run_tool(state: TurnState) -> dict:
        calls = state["response"].function_calls
        selected = select_calls(calls)
        if len(calls) > len(selected):
            logger.debug(
                "Discarding %d extra tool call(s): %s",
                len(calls) - len(selected),
                [call.name for call in calls[len(selected):]],
            )
        call = selected[0]

        if not registry.has(call.name):
            logger.warning("Model requested unknown tool %r; ending turn", call.name)
            return {"outcome": OUTCOME_UNKNOWN_TOOL, "tool_name": call.name}

        result = registry.dispatch(call)
        return {
            "pending_input": encode_function_response(call.name, result),
            "iterations": state.get("iterations", 0) + 1,
            "tool_name": call.name,
        }

    return run_tool


def reply_node(state: TurnState) -> dict:
    return {"outcome": OUTCOME_REPLY, "reply": state["response"].text or ""}


def iteration_cap_node(state: TurnState) -> dict:
    logger.warning(
        "Tool-call limit reached (%d iterations); forcing the turn to end",
        state.get("iterations", 0),
    )
    return {"outcome": OUTCOME_ITERATION_CAP}


# ── Conditional edges ────────────────────────────────────────────────


def should_use_tools(state: TurnState) -> str:
    """Route a model response to a tool run, the final reply, or the cap."""
    response = state["response"]
    if not response.function_calls:
        return "reply"
    if state.get("iterations", 0) >= state.get("max_iterations", MAX_TOOL_ITERATIONS):
        return "iteration_cap"
    return "tools"


def after_tool(state: TurnState) -> str:
    if state.get("outcome") == OUTCOME_UNKNOWN_TOOL:
        return END
    return "request_model"


# ── Graph assembly ───────────────────────────────────────────────────


def create_turn_graph(service: ModelService, registry: ToolRegistry):
    """Build and compile the turn graph.

    Returns a compiled graph that can be invoked with:
        graph.invoke({"session": handle, "pending_input": "...",
                      "iterations": 0, "max_iterations": 8})
    Prefer :func:`run_turn`, which also sets the recursion limit.
    """
    graph = StateGraph(TurnState)

    graph.add_node("request_model", _make_request_node(service))
    graph.add_node("run_tool", _make_tool_node(registry))
    graph.add_node("reply", reply_node)
    graph.add_node("iteration_cap", iteration_cap_node)

    graph.set_entry_point("request_model")
    graph.add_conditional_edges(
        "request_model",
        should_use_tools,
        {"tools": "run_tool", "reply": "reply", "iteration_cap": "iteration_cap"},
    )
    graph.add_conditional_edges(
        "run_tool", after_tool, {"request_model": "request_model", END: END},
    )
    graph.add_edge("reply", END)
    graph.add_edge("iteration_cap", END)

    compiled = graph.compile()
    logger.debug("Turn graph compiled — tools: %s", registry.names())
    return compiled


def run_turn(
    graph,
    session: Any,
    text: str,
    max_iterations: int = MAX_TOOL_ITERATIONS,
) -> TurnResult:
    """Drive one user turn to completion.

    Exceptions raised by the model service propagate to the caller.
    """
    # Each tool iteration is two graph steps (run_tool + request_model).
    recursion_limit = 2 * max_iterations + 4
    final = graph.invoke(
        {
            "session": session,
            "pending_input": text,
            "iterations": 0,
            "max_iterations": max_iterations,
        },
        config={"recursion_limit": recursion_limit},
    )
    return TurnResult(
        outcome=final.get("outcome", OUTCOME_REPLY),
        reply=final.get("reply"),
        iterations=final.get("iterations", 0),
    )
