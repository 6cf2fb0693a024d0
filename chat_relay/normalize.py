"""Normalization of raw backend replies into display text."""

from __future__ import annotations

import json
import logging

LOGGER = logging.getLogger(__name__)

OUTPUT_FIELD = "output"


def extract_reply(raw: str) -> str:
    """Return the reply carried by ``raw``.

    A JSON object with a string ``output`` field yields that field; anything
    else (invalid JSON, another JSON type, a missing or non-string field) is
    treated as plain text and returned whole.
    """
    try:
        payload = json.loads(raw)
    except (json.JSONDecodeError, TypeError):
        return raw
    if isinstance(payload, dict):
        output = payload.get(OUTPUT_FIELD)
        if isinstance(output, str):
            return output
    LOGGER.debug(
        "normalize.fallback_plain_text",
        extra={"event": "normalize.fallback_plain_text", "payload_type": type(payload).__name__},
    )
    return raw


def unescape_line_breaks(text: str) -> str:
    """Turn literal two-character ``\\n`` sequences into real newlines."""
    return text.replace("\\n", "\n")


def normalize_response(raw: str) -> str:
    """Extract the reply text, unescape line breaks, and trim whitespace."""
    return unescape_line_breaks(extract_reply(raw)).strip()
