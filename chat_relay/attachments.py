"""Image attachment validation, staging, and preview encoding.

Holds at most one pending image between sends. Validation checks the MIME
type against a small whitelist and the byte size against a ceiling; a
rejected file never disturbs what is already staged.
"""

from __future__ import annotations

import asyncio
import base64
import logging
import mimetypes
from pathlib import Path

from .exceptions import AttachmentValidationError
from .models import PendingAttachment

LOGGER = logging.getLogger(__name__)

# "image/jpg" is an alias of "image/jpeg".
ALLOWED_IMAGE_TYPES: frozenset[str] = frozenset(
    {"image/png", "image/jpeg", "image/jpg"}
)

DEFAULT_MAX_ATTACHMENT_BYTES = 5 * 1024 * 1024  # 5 MB


def to_data_url(data: bytes, content_type: str) -> str:
    """Encode raw bytes as a ``data:`` URL suitable for local previews."""
    encoded = base64.b64encode(data).decode("ascii")
    return f"data:{content_type};base64,{encoded}"


def guess_content_type(filename: str) -> str:
    """Guess a MIME type from a filename, returning an empty string if unknown."""
    guessed, _ = mimetypes.guess_type(filename)
    return (guessed or "").lower()


class AttachmentManager:
    """Manages the single staged image attachment.

    Responsibilities:
    - Validating attachments (type, size)
    - Producing a data-URL preview
    - Holding the staged attachment until it is consumed or cleared
    """

    def __init__(
        self,
        *,
        max_bytes: int = DEFAULT_MAX_ATTACHMENT_BYTES,
        allowed_types: frozenset[str] | set[str] | None = None,
    ) -> None:
        """Initialize attachment manager.

        Args:
            max_bytes: Maximum size for image attachments
            allowed_types: Accepted MIME types (defaults to PNG and JPEG)
        """
        self.max_bytes = max_bytes
        self.allowed_types = frozenset(
            item.lower() for item in (allowed_types or ALLOWED_IMAGE_TYPES)
        )
        self._staged: PendingAttachment | None = None

    @property
    def staged(self) -> PendingAttachment | None:
        return self._staged

    def validate(self, content_type: str, size: int) -> tuple[bool, str]:
        """Validate a candidate's MIME type and size.

        Returns:
            Tuple of (success, error_message)
        """
        normalized = content_type.lower().split(";", 1)[0].strip()
        if normalized not in self.allowed_types:
            return False, "Please select only PNG, JPG, or JPEG images"
        if size > self.max_bytes:
            max_mb = self.max_bytes / (1024 * 1024)
            return False, f"Image size should be less than {max_mb:g}MB"
        return True, ""

    async def stage(
        self,
        source: str | Path | bytes,
        *,
        filename: str | None = None,
        content_type: str | None = None,
    ) -> PendingAttachment:
        """Validate ``source`` and make it the staged attachment.

        ``source`` is either a filesystem path or raw image bytes; for bytes a
        ``filename`` or explicit ``content_type`` is needed to know the type.

        Raises:
            AttachmentValidationError: if the file is missing, of the wrong
                type, or too large. The previously staged attachment is kept.
        """
        if isinstance(source, (bytes, bytearray)):
            name = filename or "upload"
            size = len(source)
            mime = (content_type or guess_content_type(name)).lower()
            self._check(mime, size, name)
            data = bytes(source)
        else:
            path = Path(source).expanduser()
            if not path.is_file():
                LOGGER.warning(
                    "attachment.rejected",
                    extra={
                        "event": "attachment.rejected",
                        "attachment_name": str(path),
                        "reason": "not_found",
                    },
                )
                raise AttachmentValidationError(f"Image not found: {path}")
            name = filename or path.name
            mime = (content_type or guess_content_type(name)).lower()
            # Size from metadata before reading.
            self._check(mime, path.stat().st_size, name)
            data = await asyncio.to_thread(path.read_bytes)
            self._check(mime, len(data), name)

        preview = await asyncio.to_thread(to_data_url, data, mime)
        attachment = PendingAttachment(
            filename=name,
            content_type=mime,
            data=data,
            preview_url=preview,
        )
        self._staged = attachment
        LOGGER.info(
            "attachment.staged",
            extra={
                "event": "attachment.staged",
                "attachment_name": name,
                "content_type": mime,
                "size": attachment.size,
            },
        )
        return attachment

    def clear(self) -> None:
        """Drop the staged attachment, if any."""
        self._staged = None

    def _check(self, content_type: str, size: int, name: str) -> None:
        ok, message = self.validate(content_type, size)
        if ok:
            return
        LOGGER.warning(
            "attachment.rejected",
            extra={
                "event": "attachment.rejected",
                "attachment_name": name,
                "content_type": content_type,
                "size": size,
                "reason": message,
            },
        )
        raise AttachmentValidationError(message)
