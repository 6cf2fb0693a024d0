"""Scrollable conversation view widget."""

from __future__ import annotations

from textual.containers import VerticalScroll

from ..models import Message
from .message import MessageBubble


class ConversationView(VerticalScroll):
    """A scrollable container that hosts message bubbles."""

    async def add_message(self, message: Message, timestamp: str = "") -> MessageBubble:
        """Create, mount, and scroll to a new message bubble."""
        bubble = MessageBubble(message=message, timestamp=timestamp)
        await self.mount(bubble)
        self.scroll_end(animate=True)
        return bubble
