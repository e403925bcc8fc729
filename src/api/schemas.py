"""Pydantic schemas for the FastAPI endpoints."""

from __future__ import annotations

from pydantic import BaseModel, Field

from src.models import Appointment, Message


class ChatRequest(BaseModel):
    """Incoming chat message from the frontend."""

    message: str = Field(..., min_length=1, max_length=2000, description="The customer's message")
    session_id: str = Field(
        ...,
        min_length=1,
        max_length=100,
        description="Session identifier returned by POST /api/sessions",
    )


class ChatResponse(BaseModel):
    """The assistant's reply plus the full transcript for re-rendering."""

    session_id: str = Field(..., description="The session ID for this conversation")
    reply: str | None = Field(None, description="The bot message produced by this turn")
    messages: list[Message]


class SessionResponse(BaseModel):
    """A conversation's transcript."""

    session_id: str
    ready: bool = Field(..., description="False when the assistant failed to initialise")
    is_loading: bool
    messages: list[Message]


class AppointmentsResponse(BaseModel):
    """Owner dashboard listing."""

    appointments: list[Appointment]
    count: int


class KeywordsResponse(BaseModel):
    keywords: list[str]


class HealthResponse(BaseModel):
    """Health check response."""

    status: str = "ok"
    service: str = "grandeur-salon-assistant"
