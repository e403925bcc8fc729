"""Shared test fixtures for the Grandeur Salon test suite."""

from __future__ import annotations

import os

import pytest

from src.models import FunctionCall, ModelResponse
from src.services.appointment_store import AppointmentStore
from src.services.model_session import ChatSession, ModelService, SessionStart
from src.tools.appointments import build_salon_registry


def pytest_configure(config):
    """Set test environment variables before the tests run.

    The API key is resolved lazily, so setting it here is early enough.
    """
    os.environ.setdefault("ANTHROPIC_API_KEY", "test-anthropic-key-123")
    os.environ.setdefault("METRICS_ENABLED", "false")


class ScriptedModelService(ModelService):
    """Fake model service that replays a fixed list of responses.

    An ``Exception`` instance in the script is raised instead of returned.
    Every input passed to ``advance`` is recorded in ``inputs``.
    """

    def __init__(self, script=(), greeting="Welcome to Grandeur Salon!", start_error=None):
        self.script = list(script)
        self.greeting = greeting
        self.start_error = start_error
        self.inputs: list[str] = []

    def start_session(self) -> SessionStart:
        if self.start_error is not None:
            raise self.start_error
        return SessionStart(initial_text=self.greeting, session=ChatSession())

    def advance(self, session: ChatSession, text: str) -> ModelResponse:
        self.inputs.append(text)
        if not self.script:
            raise AssertionError("Model script exhausted")
        step = self.script.pop(0)
        if isinstance(step, Exception):
            raise step
        return step


def text(reply: str) -> ModelResponse:
    return ModelResponse(text=reply)


def call(name: str, **args) -> ModelResponse:
    return ModelResponse(function_calls=[FunctionCall(name=name, args=args)])


@pytest.fixture
def store():
    """The seeded five-appointment salon book."""
    return AppointmentStore.with_seed_data()


@pytest.fixture
def registry(store):
    return build_salon_registry(store)


@pytest.fixture
def make_service():
    """Factory fixture for scripted model services."""

    def _make(script=(), **kwargs) -> ScriptedModelService:
        return ScriptedModelService(script, **kwargs)

    return _make


@pytest.fixture
def text_response():
    return text


@pytest.fixture
def call_response():
    return call
