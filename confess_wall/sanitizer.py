"""Markup stripping for user-supplied text."""

import html
from html.parser import HTMLParser
from typing import Optional

from .errors import EmptyContent


class _TextExtractor(HTMLParser):
    """Collect character data, dropping every tag and attribute."""

    def __init__(self):
        super().__init__(convert_charrefs=True)
        self.parts: list[str] = []

    def handle_data(self, data: str) -> None:
        self.parts.append(data)


def strip_tags(text: str) -> str:
    """
    Return the text content of `text` with all markup removed.

    The result is re-escaped, so character references that decode to
    `<`, `>` or `&` and unterminated tags flushed as text stay inert.
    """
    parser = _TextExtractor()
    parser.feed(text)
    parser.close()
    return html.escape("".join(parser.parts), quote=False)


def sanitize(raw: Optional[str]) -> str:
    """
    Turn a raw confession message into plain text.

    Args:
        raw: Message as submitted by the client.

    Returns:
        Trimmed text with no tags or attributes left in it. `<`, `>` and
        `&` in the text are escaped as entities.

    Raises:
        EmptyContent: If the message is absent, blank, or consists of markup only.
    """
    if raw is None or not raw.strip():
        raise EmptyContent()

    cleaned = strip_tags(raw.strip()).strip()
    if not cleaned:
        raise EmptyContent()
    return cleaned
