"""Append-only transcript of user and bot messages."""

from __future__ import annotations

import threading

from src.models import Message


class MessageLog:
    """Ordered chat transcript.  Entries are never edited or removed.

    Tool calls and tool results are internal to a turn and never land here.
    """

    def __init__(self) -> None:
        self._messages: list[Message] = []
        self._lock = threading.Lock()

    def append(self, message: Message) -> Message:
        with self._lock:
            self._messages.append(message)
        return message

    def all(self) -> list[Message]:
        with self._lock:
            return list(self._messages)

    def __len__(self) -> int:
        return len(self._messages)
