"""FastAPI route definitions for the salon assistant API."""

from __future__ import annotations

import asyncio
import logging

from fastapi import APIRouter, HTTPException, Request

from src.api.schemas import (
    AppointmentsResponse,
    ChatRequest,
    ChatResponse,
    HealthResponse,
    KeywordsResponse,
    SessionResponse,
)
from src.conversation import Conversation, ConversationBusy, ConversationPool
from src.prompts import KEYWORD_BUTTONS
from src.services.appointment_store import AppointmentStore

logger = logging.getLogger(__name__)

router = APIRouter()


def _get_pool(request: Request) -> ConversationPool:
    """Retrieve the conversation pool created during the FastAPI lifespan."""
    pool = getattr(request.app.state, "pool", None)
    if pool is None:
        raise HTTPException(
            status_code=503,
            detail="The assistant is still starting up. Please try again in a moment.",
        )
    return pool


def _get_store(request: Request) -> AppointmentStore:
    store = getattr(request.app.state, "store", None)
    if store is None:
        raise HTTPException(
            status_code=503,
            detail="The assistant is still starting up. Please try again in a moment.",
        )
    return store


def _get_conversation(pool: ConversationPool, session_id: str) -> Conversation:
    conversation = pool.get(session_id)
    if conversation is None:
        raise HTTPException(status_code=404, detail=f"Unknown session: {session_id}")
    return conversation


def _session_response(conversation: Conversation) -> SessionResponse:
    return SessionResponse(
        session_id=conversation.id,
        ready=conversation.ready,
        is_loading=conversation.is_loading,
        messages=conversation.messages(),
    )


# ── Endpoints ────────────────────────────────────────────────────────


@router.get("/health", response_model=HealthResponse)
async def health_check():
    """Health check endpoint."""
    return HealthResponse()


@router.post("/sessions", response_model=SessionResponse, status_code=201)
async def create_session(http_request: Request):
    """Start a new conversation and return the assistant's greeting.

    If the model cannot be reached the session is still created, with a
    single bot message explaining that initialization failed.
    """
    pool = _get_pool(http_request)
    conversation = await asyncio.to_thread(pool.create)
    return _session_response(conversation)


@router.get("/sessions/{session_id}/messages", response_model=SessionResponse)
async def get_messages(session_id: str, http_request: Request):
    """Return the transcript of an existing conversation."""
    pool = _get_pool(http_request)
    return _session_response(_get_conversation(pool, session_id))


@router.post("/chat", response_model=ChatResponse)
async def chat(request: ChatRequest, http_request: Request):
    """Send a message to the assistant and get its reply.

    ``Conversation.send`` blocks on the model round-trips, so it runs in a
    worker thread.  Faults inside the turn are already turned into a bot
    message; only a concurrent message on the same session is rejected.
    """
    pool = _get_pool(http_request)
    conversation = _get_conversation(pool, request.session_id)
    request_id = getattr(http_request.state, "request_id", "?")

    try:
        bot_message = await asyncio.to_thread(conversation.send, request.message)
    except ConversationBusy as e:
        logger.warning("[%s] Rejected concurrent message for %s", request_id, request.session_id)
        raise HTTPException(
            status_code=409,
            detail="The assistant is still answering your previous message.",
        ) from e

    return ChatResponse(
        session_id=conversation.id,
        reply=bot_message.text if bot_message else None,
        messages=conversation.messages(),
    )


@router.get("/appointments", response_model=AppointmentsResponse)
async def list_appointments(http_request: Request):
    """Owner dashboard: every appointment currently in the book."""
    appointments = _get_store(http_request).all()
    return AppointmentsResponse(appointments=appointments, count=len(appointments))


@router.get("/keywords", response_model=KeywordsResponse)
async def list_keywords():
    """Quick-reply buttons for the chat input."""
    return KeywordsResponse(keywords=KEYWORD_BUTTONS)
