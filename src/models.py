"""Domain records shared by the store, the tools and the conversation loop."""

from __future__ import annotations

import json
import uuid
from typing import Any, Literal

from pydantic import BaseModel, ConfigDict, Field

Sender = Literal["user", "bot"]


class Appointment(BaseModel):
    """A single salon booking.  ``id`` never changes once assigned."""

    id: int
    customer_name: str
    service: str
    stylist: str
    date: str
    time: str


class Message(BaseModel):
    """One entry of the user-visible chat transcript."""

    model_config = ConfigDict(frozen=True)

    id: str = Field(default_factory=lambda: uuid.uuid4().hex)
    text: str
    sender: Sender


class FunctionCall(BaseModel):
    """A tool invocation requested by the model.

    ``args`` is untyped at this boundary; each tool validates it against its
    own schema before use.
    """

    name: str
    args: dict[str, Any] = Field(default_factory=dict)


class ModelResponse(BaseModel):
    """What the model service returns for one ``advance`` call."""

    text: str | None = None
    function_calls: list[FunctionCall] = Field(default_factory=list)


class ToolResult(BaseModel):
    """Structured outcome of a tool, serialized back to the model."""

    success: bool
    message: str
    appointments: list[Appointment] | None = None
    error: str | None = None

    def to_payload(self) -> dict[str, Any]:
        return self.model_dump(exclude_none=True)


# ── Function-response envelope ──────────────────────────────────────
# Tool results travel back to the model service as a JSON string of the form
# {"functionResponse": {"name": <tool>, "response": <result>}}.  Raw user text
# and envelopes share the same input channel.


def encode_function_response(name: str, result: ToolResult) -> str:
    return json.dumps({"functionResponse": {"name": name, "response": result.to_payload()}})


def decode_function_response(text: str) -> tuple[str, dict[str, Any]] | None:
    """Return ``(name, response)`` if *text* is an envelope, else ``None``."""
    try:
        data = json.loads(text)
    except ValueError:
        return None
    if not isinstance(data, dict):
        return None
    envelope = data.get("functionResponse")
    if not isinstance(envelope, dict) or not isinstance(envelope.get("name"), str):
        return None
    response = envelope.get("response")
    return envelope["name"], response if isinstance(response, dict) else {"result": response}
