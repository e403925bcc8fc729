"""Tests for the Anthropic-backed model session and the result envelope."""

from __future__ import annotations

import json
from unittest.mock import MagicMock, patch

import pytest
from langchain_core.messages import AIMessage, HumanMessage, SystemMessage, ToolMessage

from src.models import ToolResult, decode_function_response, encode_function_response
from src.services.model_session import (
    NOT_EXECUTED_RESULT,
    AnthropicModelService,
    ChatSession,
    _content_text,
)

# ── Helpers ──────────────────────────────────────────────────────────


def _ai(content="", tool_calls=None) -> AIMessage:
    return AIMessage(content=content, tool_calls=tool_calls or [])


def _tool_call(name, call_id, **args) -> dict:
    return {"name": name, "args": args, "id": call_id}


def _service(*replies) -> tuple[AnthropicModelService, MagicMock]:
    llm = MagicMock()
    llm.invoke.side_effect = list(replies)
    return AnthropicModelService(registry=MagicMock(), llm=llm), llm


# ── Envelope ─────────────────────────────────────────────────────────


class TestFunctionResponseEnvelope:
    def test_encode_shape(self):
        raw = encode_function_response("cancel_appointment", ToolResult(success=True, message="ok"))
        assert json.loads(raw) == {
            "functionResponse": {
                "name": "cancel_appointment",
                "response": {"success": True, "message": "ok"},
            }
        }

    def test_decode_envelope(self):
        raw = encode_function_response("get_appointments", ToolResult(success=True, message="x"))
        assert decode_function_response(raw) == ("get_appointments", {"success": True, "message": "x"})

    @pytest.mark.parametrize(
        "text",
        [
            "I'd like to cancel my appointment",
            "42",
            '["functionResponse"]',
            '{"functionResponse": "nope"}',
            '{"something": {"name": "x"}}',
        ],
    )
    def test_plain_text_is_not_an_envelope(self, text):
        assert decode_function_response(text) is None


class TestContentText:
    def test_string_content(self):
        assert _content_text("  Hello  ") == "Hello"

    def test_block_content_keeps_text_blocks_only(self):
        blocks = [
            {"type": "text", "text": "Let me check. "},
            {"type": "tool_use", "id": "t1", "name": "get_appointments", "input": {}},
            {"type": "text", "text": "One moment."},
        ]
        assert _content_text(blocks) == "Let me check. One moment."


# ── Session behaviour ────────────────────────────────────────────────


class TestAnthropicModelService:
    def test_start_session_returns_greeting(self):
        service, llm = _service(_ai("Welcome to Grandeur Salon! 💇"))
        opening = service.start_session()

        assert opening.initial_text == "Welcome to Grandeur Salon! 💇"
        sent = llm.invoke.call_args[0][0]
        assert isinstance(sent[0], SystemMessage)
        assert isinstance(sent[1], HumanMessage)

    def test_user_text_becomes_human_message(self):
        service, llm = _service(_ai("Sure!"))
        session = ChatSession()
        response = service.advance(session, "Can I see my bookings?")

        assert response.text == "Sure!"
        assert response.function_calls == []
        assert isinstance(session.history[0], HumanMessage)
        assert session.history[0].content == "Can I see my bookings?"

    def test_tool_calls_are_surfaced_and_tracked(self):
        service, _ = _service(
            _ai(tool_calls=[_tool_call("get_appointments", "call_1", customer_name="Jane Doe")])
        )
        session = ChatSession()
        response = service.advance(session, "Show Jane Doe's appointments")

        assert response.text is None
        assert response.function_calls[0].name == "get_appointments"
        assert response.function_calls[0].args == {"customer_name": "Jane Doe"}
        assert session.pending_tool_calls == [{"id": "call_1", "name": "get_appointments"}]

    def test_envelope_answers_pending_call_with_tool_message(self):
        service, _ = _service(
            _ai(tool_calls=[_tool_call("get_appointments", "call_1", customer_name="Jane Doe")]),
            _ai("You have two appointments."),
        )
        session = ChatSession()
        service.advance(session, "Show my appointments")
        envelope = encode_function_response(
            "get_appointments", ToolResult(success=True, message="Found 2 appointment(s)."),
        )
        response = service.advance(session, envelope)

        tool_message = session.history[2]
        assert isinstance(tool_message, ToolMessage)
        assert tool_message.tool_call_id == "call_1"
        assert json.loads(tool_message.content)["message"] == "Found 2 appointment(s)."
        assert response.text == "You have two appointments."
        assert session.pending_tool_calls == []

    def test_extra_calls_are_closed_as_not_executed(self):
        service, _ = _service(
            _ai(tool_calls=[
                _tool_call("cancel_appointment", "call_1", customer_name="A", appointment_date="d"),
                _tool_call("cancel_appointment", "call_2", customer_name="B", appointment_date="d"),
            ]),
            _ai("Cancelled one."),
        )
        session = ChatSession()
        service.advance(session, "Cancel both")
        service.advance(
            session,
            encode_function_response("cancel_appointment", ToolResult(success=True, message="ok")),
        )

        tool_messages = [m for m in session.history if isinstance(m, ToolMessage)]
        assert [m.tool_call_id for m in tool_messages] == ["call_1", "call_2"]
        assert tool_messages[1].content == NOT_EXECUTED_RESULT

    def test_user_text_closes_abandoned_calls_first(self):
        service, _ = _service(
            _ai(tool_calls=[_tool_call("book_appointment", "call_9")]),
            _ai("How can I help?"),
        )
        session = ChatSession()
        service.advance(session, "Book me in")
        service.advance(session, "Actually, never mind")

        assert isinstance(session.history[2], ToolMessage)
        assert session.history[2].tool_call_id == "call_9"
        assert isinstance(session.history[3], HumanMessage)

    def test_envelope_without_pending_call_is_sent_as_text(self):
        service, _ = _service(_ai("ok"))
        session = ChatSession()
        envelope = encode_function_response("get_appointments", ToolResult(success=True, message="x"))
        service.advance(session, envelope)
        assert isinstance(session.history[0], HumanMessage)

    def test_transport_errors_propagate(self):
        service, llm = _service()
        llm.invoke.side_effect = ConnectionError("network down")
        with pytest.raises(ConnectionError):
            service.advance(ChatSession(), "Hello")

    def test_missing_api_key_raises_os_error_on_first_use(self):
        service = AnthropicModelService(registry=MagicMock())
        with patch.dict("os.environ", {"ANTHROPIC_API_KEY": ""}):
            with pytest.raises(OSError, match="ANTHROPIC_API_KEY"):
                service.start_session()
