"""Boolean AND evaluation of keyword queries over title postings."""

from __future__ import annotations

from title_search.index.inverted import InvertedIndex
from title_search.index.text import tokenize


def evaluate_query(index: InvertedIndex, query: str) -> set[str]:
    """Return keys of documents whose titles contain every query token."""
    tokens = tokenize(query)
    if not tokens:
        return set()
    result: set[str] | None = None
    for token in dict.fromkeys(tokens):
        postings = index.lookup(token)
        if not postings:
            return set()
        result = set(postings) if result is None else result & postings
        if not result:
            return set()
    return result or set()
