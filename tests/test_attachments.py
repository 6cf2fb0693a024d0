"""Tests for image attachment validation and staging."""

from __future__ import annotations

import base64
import tempfile
from pathlib import Path
import unittest

from chat_relay.attachments import (
    ALLOWED_IMAGE_TYPES,
    AttachmentManager,
    guess_content_type,
    to_data_url,
)
from chat_relay.exceptions import AttachmentValidationError

PNG_BYTES = b"\x89PNG\r\n\x1a\n" + b"\x00" * 32


class AttachmentManagerTests(unittest.IsolatedAsyncioTestCase):
    """Validate staging, rejection, and preview behavior."""

    async def test_stage_png_file_produces_preview(self) -> None:
        with tempfile.TemporaryDirectory() as temp_dir:
            path = Path(temp_dir) / "photo.png"
            path.write_bytes(PNG_BYTES)
            manager = AttachmentManager()

            attachment = await manager.stage(path)

        self.assertIs(manager.staged, attachment)
        self.assertEqual(attachment.filename, "photo.png")
        self.assertEqual(attachment.content_type, "image/png")
        self.assertEqual(attachment.data, PNG_BYTES)
        prefix = "data:image/png;base64,"
        self.assertTrue(attachment.preview_url.startswith(prefix))
        self.assertEqual(
            base64.b64decode(attachment.preview_url[len(prefix) :]), PNG_BYTES
        )

    async def test_stage_bytes_with_explicit_type(self) -> None:
        manager = AttachmentManager()
        attachment = await manager.stage(
            b"\xff\xd8\xff", filename="camera", content_type="image/jpeg"
        )
        self.assertEqual(attachment.content_type, "image/jpeg")
        self.assertEqual(attachment.filename, "camera")

    async def test_wrong_type_keeps_previous_attachment(self) -> None:
        manager = AttachmentManager()
        previous = await manager.stage(PNG_BYTES, filename="first.png")

        with self.assertRaises(AttachmentValidationError):
            await manager.stage(b"plain text", filename="notes.txt")
        with self.assertRaises(AttachmentValidationError):
            await manager.stage(b"GIF89a", filename="anim.gif")

        self.assertIs(manager.staged, previous)

    async def test_oversize_keeps_previous_attachment(self) -> None:
        manager = AttachmentManager(max_bytes=16)
        previous = await manager.stage(b"\x89PNG", filename="small.png")

        with self.assertRaises(AttachmentValidationError) as ctx:
            await manager.stage(b"\x00" * 17, filename="big.png")

        self.assertIn("less than", str(ctx.exception))
        self.assertIs(manager.staged, previous)

    async def test_oversize_file_rejected_with_nothing_staged(self) -> None:
        with tempfile.TemporaryDirectory() as temp_dir:
            path = Path(temp_dir) / "huge.jpg"
            path.write_bytes(b"\x00" * 64)
            manager = AttachmentManager(max_bytes=32)
            with self.assertRaises(AttachmentValidationError):
                await manager.stage(path)
        self.assertIsNone(manager.staged)

    async def test_missing_file_is_rejected(self) -> None:
        manager = AttachmentManager()
        with self.assertRaises(AttachmentValidationError):
            await manager.stage("/nonexistent/path/image.png")
        self.assertIsNone(manager.staged)

    async def test_stage_replaces_and_clear_is_idempotent(self) -> None:
        manager = AttachmentManager()
        await manager.stage(PNG_BYTES, filename="one.png")
        second = await manager.stage(PNG_BYTES, filename="two.png")
        self.assertIs(manager.staged, second)

        manager.clear()
        manager.clear()
        self.assertIsNone(manager.staged)


class AttachmentHelperTests(unittest.TestCase):
    """Validate pure helpers."""

    def test_validate_accepts_jpg_alias_and_parameters(self) -> None:
        manager = AttachmentManager()
        self.assertEqual(manager.validate("image/jpg", 10), (True, ""))
        self.assertEqual(manager.validate("IMAGE/PNG; charset=binary", 10), (True, ""))

    def test_default_whitelist(self) -> None:
        self.assertEqual(
            ALLOWED_IMAGE_TYPES, frozenset({"image/png", "image/jpeg", "image/jpg"})
        )

    def test_guess_content_type(self) -> None:
        self.assertEqual(guess_content_type("a.PNG"), "image/png")
        self.assertEqual(guess_content_type("a.jpeg"), "image/jpeg")
        self.assertEqual(guess_content_type("noextension"), "")

    def test_to_data_url(self) -> None:
        self.assertEqual(to_data_url(b"hi", "image/png"), "data:image/png;base64,aGk=")


if __name__ == "__main__":
    unittest.main()
