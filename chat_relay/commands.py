"""Pure command parsing helpers for attachment directives."""

from __future__ import annotations

from dataclasses import dataclass
import os
import re

_IMAGE_PREFIX_RE = re.compile(r"(?:^|\s)/image\s+(\S+)")


@dataclass(frozen=True)
class ParsedDirectives:
    """Result of parsing inline /image directives."""

    cleaned_text: str
    image_path: str | None


def parse_inline_directives(text: str) -> ParsedDirectives:
    """Parse an inline ``/image <path>`` directive from user input.

    Only one image can be staged, so the last directive wins. Returns the
    text with every directive removed.
    """
    matches = _IMAGE_PREFIX_RE.findall(text)
    image_path = os.path.expanduser(matches[-1]) if matches else None
    cleaned = _IMAGE_PREFIX_RE.sub("", text)
    return ParsedDirectives(cleaned_text=cleaned.strip(), image_path=image_path)
