"""Value types shared by the controller, the gateway client, and the front-end."""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime, timezone
from enum import Enum
import uuid


class Role(str, Enum):
    """Origin of a transcript message."""

    USER = "user"
    ASSISTANT = "assistant"


def _new_id() -> str:
    return str(uuid.uuid4())


def _utc_now() -> datetime:
    return datetime.now(timezone.utc)


@dataclass(frozen=True)
class Message:
    """One immutable turn in the visible transcript.

    ``image_url`` holds a locally renderable preview (a data URL) of the image
    sent with a user turn; it never travels to the backend.
    """

    role: Role
    text: str = ""
    image_url: str | None = None
    id: str = field(default_factory=_new_id)
    timestamp: datetime = field(default_factory=_utc_now)

    @property
    def is_user(self) -> bool:
        return self.role is Role.USER


@dataclass(frozen=True)
class PendingAttachment:
    """A validated image staged for the next send."""

    filename: str
    content_type: str
    data: bytes = field(repr=False)
    preview_url: str = field(default="", repr=False)

    @property
    def size(self) -> int:
        return len(self.data)


@dataclass(frozen=True)
class Submission:
    """Payload for exactly one exchange with the gateway."""

    text: str
    session_id: str
    attachment: PendingAttachment | None = None

    def form_fields(self) -> list[tuple[str, tuple[str | None, bytes | str, str | None]]]:
        """Return multipart fields in wire order.

        Plain fields use a ``None`` filename so they are encoded as ordinary
        form values; ``upload_image`` is always present and empty when no
        image is attached.
        """
        fields: list[tuple[str, tuple[str | None, bytes | str, str | None]]] = [
            ("chatInput", (None, self.text, None)),
            ("sessionId", (None, self.session_id, None)),
        ]
        if self.attachment is not None:
            fields.append(
                (
                    "upload_image",
                    (
                        self.attachment.filename,
                        self.attachment.data,
                        self.attachment.content_type,
                    ),
                )
            )
        else:
            fields.append(("upload_image", (None, "", None)))
        return fields
