"""Extraction of fenced contract blocks from drafting replies.

Grammar, first match only::

    block   := OPEN WS body CLOSE
    OPEN    := "```contract"
    WS      := one whitespace character (normally a newline)
    body    := any text not containing CLOSE
    CLOSE   := "```"

Text before and after the block is the conversational remainder.
"""

from typing import NamedTuple, Optional

OPEN_MARKER = "```contract"
CLOSE_MARKER = "```"


class ExtractionResult(NamedTuple):
    cleaned_text: str
    content: Optional[str]


def _find_opening(text: str, start: int = 0) -> int:
    """Index of the first OPEN marker followed by whitespace, or -1."""
    index = text.find(OPEN_MARKER, start)
    while index != -1:
        after = index + len(OPEN_MARKER)
        if after < len(text) and text[after].isspace():
            return index
        index = text.find(OPEN_MARKER, after)
    return -1


def extract_contract(text: str) -> ExtractionResult:
    """Split ``text`` into conversational remainder and contract body.

    When a block is found, ``content`` is its body without markers or
    surrounding whitespace and ``cleaned_text`` is the text with the block
    removed and trimmed. Otherwise ``text`` is returned unchanged with
    ``content`` set to None.
    """
    start = _find_opening(text)
    if start == -1:
        return ExtractionResult(text, None)

    body_start = start + len(OPEN_MARKER)
    end = text.find(CLOSE_MARKER, body_start)
    if end == -1:
        return ExtractionResult(text, None)

    content = text[body_start:end].strip()
    cleaned = (text[:start] + text[end + len(CLOSE_MARKER) :]).strip()
    return ExtractionResult(cleaned, content)
