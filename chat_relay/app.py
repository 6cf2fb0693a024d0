"""Terminal chat front-end driving the conversation controller."""

from __future__ import annotations

import asyncio
from datetime import datetime
import logging
from typing import Any

from textual.app import App, ComposeResult
from textual.binding import Binding
from textual.containers import Container
from textual.widgets import Button, Footer, Header, Input

from .attachments import AttachmentManager
from .client import GatewayClient
from .commands import parse_inline_directives
from .config import load_config
from .controller import ConversationController, SubmissionTransport
from .exceptions import AttachmentValidationError
from .logging_utils import configure_logging
from .models import Message
from .screens import TextPromptScreen
from .widgets.conversation import ConversationView
from .widgets.input_box import InputBox

LOGGER = logging.getLogger(__name__)


def format_timestamp(moment: datetime) -> str:
    """Format a message timestamp in local time (e.g., "3:45 PM")."""
    local = moment.astimezone()
    if local.hour < 12:
        period = "AM"
        hour = local.hour if local.hour != 0 else 12
    else:
        period = "PM"
        hour = local.hour if local.hour <= 12 else local.hour - 12
    return f"{hour}:{local.minute:02d} {period}"


class ChatRelayApp(App):
    """Chat UI that sends text and an optional image through the gateway."""

    CSS = """
    Screen {
        layout: vertical;
        background: $background;
    }

    #app-root {
        layout: vertical;
        width: 100%;
        height: 1fr;
    }

    #conversation {
        height: 1fr;
        padding: 1;
    }

    InputBox {
        height: auto;
        padding: 0 1 1 1;
        border-top: solid $panel;
        background: $surface;
    }

    #message_input {
        width: 1fr;
    }

    #attach_button, #send_button, #clear_attachment_button {
        margin-left: 1;
        min-width: 10;
    }

    #input_row, #attachment_row {
        height: auto;
    }

    #attachment_row.hidden {
        display: none;
    }

    #attachment_label {
        padding: 1 1 0 0;
        color: $text-muted;
    }

    MessageBubble {
        width: 85%;
        margin: 1 0;
        padding: 1 2;
        border: round $panel;
    }

    .role-user {
        align-horizontal: right;
        background: $primary;
    }

    .role-assistant {
        align-horizontal: left;
        background: $surface;
    }
    """

    BINDINGS = [
        Binding("ctrl+n", "new_conversation", "New Chat"),
        Binding("ctrl+o", "attach_image", "Image"),
        Binding("ctrl+q", "quit", "Quit"),
    ]

    def __init__(
        self,
        config: dict[str, Any] | None = None,
        client: SubmissionTransport | None = None,
    ) -> None:
        self.config = config or load_config()
        configure_logging(self.config["logging"])
        client_cfg = self.config["client"]
        self._owned_client: GatewayClient | None = None
        if client is None:
            self._owned_client = GatewayClient(
                gateway_url=str(client_cfg["gateway_url"]),
                timeout=float(client_cfg["request_timeout"]),
            )
            client = self._owned_client
        self.controller = ConversationController(
            client=client,
            attachments=AttachmentManager(
                max_bytes=int(client_cfg["max_attachment_bytes"]),
                allowed_types=set(client_cfg["allowed_image_types"]),
            ),
        )
        self._rendered_count = 0
        self._render_lock = asyncio.Lock()
        super().__init__()

    def compose(self) -> ComposeResult:
        """Compose app widgets."""
        yield Header()
        with Container(id="app-root"):
            yield ConversationView(id="conversation")
            yield InputBox()
        yield Footer()

    async def on_mount(self) -> None:
        """Start a session and hook transcript updates into the view."""
        self.title = str(self.config["app"]["title"])
        self.controller.on_change(self._on_controller_change)
        self.controller.initialize_session()
        self.sub_title = "Send a message to start the conversation"
        self.query_one("#message_input", Input).focus()

    async def on_unmount(self) -> None:
        if self._owned_client is not None:
            await self._owned_client.aclose()

    def _on_controller_change(self, controller: ConversationController) -> None:
        self.call_next(self._sync_view)

    async def _sync_view(self) -> None:
        """Mount bubbles for transcript messages not yet shown and refresh controls."""
        async with self._render_lock:
            view = self.query_one(ConversationView)
            pending: tuple[Message, ...] = self.controller.messages[self._rendered_count :]
            for message in pending:
                await view.add_message(message, timestamp=format_timestamp(message.timestamp))
                self._rendered_count += 1

        busy = self.controller.is_busy
        self.query_one("#send_button", Button).disabled = busy
        staged = self.controller.staged_attachment
        box = self.query_one(InputBox)
        box.show_attachment(
            f"Image: {staged.filename} ({staged.size // 1024} KB)" if staged else None
        )
        self.sub_title = "Sending message..." if busy else "Ready"

    async def on_input_submitted(self, event: Input.Submitted) -> None:
        if event.input.id == "message_input":
            await self.action_send_message()

    async def on_button_pressed(self, event: Button.Pressed) -> None:
        if event.button.id == "send_button":
            await self.action_send_message()

    async def on_input_box_attach_requested(self, event: InputBox.AttachRequested) -> None:
        await self.action_attach_image()

    def on_input_box_clear_attachment_requested(
        self, event: InputBox.ClearAttachmentRequested
    ) -> None:
        self.controller.clear_attachment()

    async def action_attach_image(self) -> None:
        """Prompt for an image path and stage it."""
        self.push_screen(
            TextPromptScreen("Attach image", placeholder="/path/to/image.png"),
            callback=self._on_image_path_dismissed,
        )

    async def _on_image_path_dismissed(self, path: str | None) -> None:
        if path:
            await self._stage_image(path)

    async def _stage_image(self, path: str) -> bool:
        try:
            await self.controller.stage_attachment(path)
        except AttachmentValidationError as exc:
            self.notify(str(exc), severity="error")
            return False
        return True

    async def action_send_message(self) -> None:
        """Collect input text and hand it to the controller without blocking the UI."""
        if self.controller.is_busy:
            self.notify("Busy. Wait for the current reply.", severity="warning")
            return
        input_widget = self.query_one("#message_input", Input)
        directives = parse_inline_directives(input_widget.value)
        if directives.image_path and not await self._stage_image(directives.image_path):
            return
        text = directives.cleaned_text
        if not text and self.controller.staged_attachment is None:
            return
        input_widget.value = ""
        self.run_worker(self.controller.send(text), exclusive=False)

    async def action_new_conversation(self) -> None:
        """Start a new backend session and clear the view."""
        self.controller.initialize_session()
        self.controller.clear_attachment()
        view = self.query_one(ConversationView)
        await view.remove_children()
        self.sub_title = "New conversation"
