"""Title extraction, link normalization, and tokenization."""

from __future__ import annotations

import re
from itertools import groupby
from typing import Final

TITLE_DIRECTIVE_PATTERN: Final[re.Pattern[str]] = re.compile(
    r"^\s*#\+title:\s*(.*)$", re.IGNORECASE
)
LINK_PATTERN: Final[re.Pattern[str]] = re.compile(r"\[\[[^\[\]]+\]\[([^\[\]]+)\]\]")


def extract_title(text: str) -> str | None:
    """Return the first title directive's value, or None when absent."""
    for line in text.split("\n"):
        match = TITLE_DIRECTIVE_PATTERN.match(line.removesuffix("\r"))
        if match is not None:
            return match.group(1).strip()
    return None


def normalize_links(text: str) -> str:
    """Replace each ``[[destination][label]]`` link with its label."""
    return LINK_PATTERN.sub(r"\1", text)


def tokenize(text: str) -> list[str]:
    """Split into lowercase runs of Unicode letters, in order."""
    return [
        "".join(run) for is_letter, run in groupby(text.lower(), key=str.isalpha) if is_letter
    ]


def title_tokens(text: str) -> tuple[str | None, list[str]]:
    """Extract, normalize, and tokenize a document's title."""
    raw_title = extract_title(text)
    if raw_title is None:
        return None, []
    title = normalize_links(raw_title)
    return title, tokenize(title)
