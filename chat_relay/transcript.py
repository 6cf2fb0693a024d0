"""Append-only ordered transcript of immutable chat messages."""

from __future__ import annotations

from .models import Message


class Transcript:
    """Hold the visible conversation in the order messages were appended."""

    def __init__(self) -> None:
        self._messages: list[Message] = []

    @property
    def messages(self) -> tuple[Message, ...]:
        """Return an immutable snapshot of all stored messages."""
        return tuple(self._messages)

    def append(self, message: Message) -> Message:
        """Append a message and return it."""
        self._messages.append(message)
        return message
