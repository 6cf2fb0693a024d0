"""Input row containing message field, attach and clear buttons, and send button."""

from __future__ import annotations

from textual.containers import Horizontal, Vertical
from textual.message import Message
from textual.widgets import Button, Input, Label


class InputBox(Vertical):
    """Input region with message field, staged-image label, and action buttons."""

    class AttachRequested(Message):
        """Posted when the user clicks the image attach button."""

    class ClearAttachmentRequested(Message):
        """Posted when the user clicks the remove-image button."""

    def compose(self):  # type: ignore[override]
        with Horizontal(id="input_row"):
            yield Input(
                placeholder="Type your message... (/image <path> to attach)",
                id="message_input",
            )
            yield Button("Image", id="attach_button", variant="default")
            yield Button("Send", id="send_button", variant="success")
        with Horizontal(id="attachment_row", classes="hidden"):
            yield Label("", id="attachment_label")
            yield Button("Remove", id="clear_attachment_button", variant="error")

    def show_attachment(self, description: str | None) -> None:
        """Show or hide the staged image row."""
        row = self.query_one("#attachment_row", Horizontal)
        label = self.query_one("#attachment_label", Label)
        if description:
            label.update(description)
            row.remove_class("hidden")
        else:
            label.update("")
            row.add_class("hidden")

    def on_button_pressed(self, event: Button.Pressed) -> None:
        """Forward attachment button clicks as messages."""
        if event.button.id == "attach_button":
            event.stop()
            self.post_message(self.AttachRequested())
        elif event.button.id == "clear_attachment_button":
            event.stop()
            self.post_message(self.ClearAttachmentRequested())
