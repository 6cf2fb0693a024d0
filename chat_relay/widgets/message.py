"""Message bubble widget for conversation rendering."""

from __future__ import annotations

from typing import Any

from rich.text import Text
from textual.app import ComposeResult
from textual.containers import Vertical
from textual.widgets import Static

from ..markup import render_markup, to_rich_text
from ..models import Message


class MessageBubble(Vertical):
    """Render a single chat message with role, optional timestamp, and image marker."""

    DEFAULT_CSS = """
    MessageBubble {
        height: auto;
    }
    MessageBubble > #header-block {
        padding: 0;
    }
    MessageBubble > #image-block {
        color: $text-muted;
        padding: 0 1;
        border-left: solid $panel;
        margin-bottom: 1;
    }
    MessageBubble > #content-block {
        height: auto;
    }
    """

    def __init__(self, message: Message, timestamp: str = "", **kwargs: Any) -> None:
        super().__init__(**kwargs)  # type: ignore[arg-type]
        self.message = message
        self.timestamp = timestamp
        self.add_class(f"role-{message.role.value}")

    @property
    def role_prefix(self) -> str:
        """Return a human-friendly role label."""
        return "You" if self.message.is_user else "Assistant"

    def _compose_header(self) -> Text:
        header = Text(self.role_prefix, style="bold")
        if self.timestamp:
            header.append(f"  {self.timestamp}", style="italic dim")
        return header

    def compose(self) -> ComposeResult:
        """Compose the bubble layout with header, optional image marker, and content."""
        yield Static(self._compose_header(), id="header-block")
        if self.message.image_url:
            yield Static(Text("[image attached]", style="dim italic"), id="image-block")
        yield Static(self.render_content(), id="content-block")

    def render_content(self) -> Text:
        """Return the message body as styled text.

        Assistant replies go through the inline markup renderer; user text is
        shown exactly as typed.
        """
        if self.message.is_user:
            return Text(self.message.text)
        return to_rich_text(render_markup(self.message.text))
