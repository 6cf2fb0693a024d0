"""Inline markup rendering for assistant replies.

Turns raw reply text into an ordered list of blocks, one per input line.
Each line block holds typed spans (bold, italic, inline code, plain); empty
lines become break blocks. Only ``**bold**``, ``*italic*`` and ```code```
are recognized; anything else, including unmatched delimiters, stays plain.
"""

from __future__ import annotations

from dataclasses import dataclass
import re
from typing import Iterable, Literal

from rich.text import Text

SpanKind = Literal["bold", "italic", "code", "plain"]
BlockKind = Literal["line", "break"]

# Alternation order is the priority order: bold must be tried before italic
# so "**x**" is never read as two italic delimiters.
_INLINE_RE = re.compile(
    r"\*\*(?P<bold>.+?)\*\*"
    r"|\*(?P<italic>[^*]+?)\*"
    r"|`(?P<code>[^`]+?)`"
)

_SPAN_STYLES: dict[str, str] = {
    "bold": "bold",
    "italic": "italic",
    "code": "reverse",
    "plain": "",
}


@dataclass(frozen=True)
class Span:
    """A typed run of text within one rendered line."""

    kind: SpanKind
    text: str


@dataclass(frozen=True)
class Block:
    """One rendered line, or an explicit line break."""

    kind: BlockKind
    spans: tuple[Span, ...] = ()

    @property
    def is_break(self) -> bool:
        return self.kind == "break"

    @property
    def text(self) -> str:
        return "".join(span.text for span in self.spans)


BREAK = Block("break")


def parse_line(line: str) -> tuple[Span, ...]:
    """Split a single line into typed spans, scanning left to right."""
    spans: list[Span] = []
    cursor = 0
    for match in _INLINE_RE.finditer(line):
        start, end = match.span()
        if start > cursor:
            spans.append(Span("plain", line[cursor:start]))
        kind = match.lastgroup or "plain"
        spans.append(Span(kind, match.group(kind)))  # type: ignore[arg-type]
        cursor = end
    if cursor < len(line):
        spans.append(Span("plain", line[cursor:]))
    return tuple(spans)


def render_markup(text: str) -> list[Block]:
    """Render raw reply text into line and break blocks.

    Deterministic and side-effect free: the same input always yields an
    equal list of blocks.
    """
    blocks: list[Block] = []
    for line in text.split("\n"):
        if not line.strip():
            blocks.append(BREAK)
            continue
        blocks.append(Block("line", parse_line(line)))
    return blocks


def render_to_plain(blocks: Iterable[Block]) -> str:
    """Flatten blocks back into undecorated text, one line per block."""
    return "\n".join("" if block.is_break else block.text for block in blocks)


def to_rich_text(blocks: Iterable[Block]) -> Text:
    """Convert rendered blocks into a styled ``rich`` Text for the terminal."""
    result = Text()
    for index, block in enumerate(blocks):
        if index:
            result.append("\n")
        for span in block.spans:
            result.append(span.text, style=_SPAN_STYLES[span.kind] or None)
    return result
