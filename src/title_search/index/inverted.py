"""In-memory inverted index from title tokens to document keys."""

from __future__ import annotations

from collections.abc import Iterable
from dataclasses import dataclass, field

from title_search.index.models import DocumentRecord

_EMPTY: frozenset[str] = frozenset()


class InvertedIndex:
    """Maps each token to the set of document keys whose title contains it."""

    def __init__(self) -> None:
        self._postings: dict[str, set[str]] = {}
        self._forward: dict[str, set[str]] = {}

    def insert(self, document_key: str, tokens: Iterable[str]) -> None:
        """Add document_key to the posting set of every token."""
        for token in tokens:
            self._postings.setdefault(token, set()).add(document_key)
            self._forward.setdefault(document_key, set()).add(token)

    def remove(self, document_key: str) -> None:
        """Delete document_key from every posting set, pruning emptied tokens."""
        for token in self._forward.pop(document_key, ()):
            postings = self._postings.get(token)
            if postings is None:
                continue
            postings.discard(document_key)
            if not postings:
                del self._postings[token]

    def lookup(self, token: str) -> frozenset[str]:
        """Return the posting set for token, empty when unknown."""
        postings = self._postings.get(token)
        if postings is None:
            return _EMPTY
        return frozenset(postings)

    def tokens(self) -> list[str]:
        """Return indexed tokens in sorted order."""
        return sorted(self._postings)

    def documents(self) -> list[str]:
        """Return keys of documents holding at least one posting."""
        return sorted(self._forward)

    def __len__(self) -> int:
        return len(self._postings)

    def __contains__(self, token: object) -> bool:
        return token in self._postings

    def to_rows(self) -> list[dict[str, object]]:
        """Serialize postings as sorted rows."""
        return [
            {"token": token, "paths": sorted(self._postings[token])}
            for token in sorted(self._postings)
        ]

    @classmethod
    def from_rows(cls, rows: Iterable[dict[str, object]]) -> InvertedIndex:
        """Rebuild an index from rows produced by to_rows; raise ValueError on a bad row."""
        index = cls()
        for number, row in enumerate(rows, start=1):
            token = row.get("token")
            paths = row.get("paths")
            if not isinstance(token, str) or not token:
                raise ValueError(f"row {number}: token must be a non-empty string")
            if not isinstance(paths, list) or not paths:
                raise ValueError(f"row {number}: paths must be a non-empty list")
            if token in index:
                raise ValueError(f"row {number}: duplicate token {token!r}")
            for path in paths:
                if not isinstance(path, str):
                    raise ValueError(f"row {number}: paths must hold strings")
                index.insert(path, (token,))
        return index


@dataclass(slots=True)
class TitleIndex:
    """The postings, the titled documents, and the staleness watermark."""

    postings: InvertedIndex = field(default_factory=InvertedIndex)
    documents: dict[str, DocumentRecord] = field(default_factory=dict)
    last_update_ns: int | None = None

    def retract(self, document_key: str) -> None:
        """Drop every trace of a document."""
        self.postings.remove(document_key)
        self.documents.pop(document_key, None)

    def store(self, record: DocumentRecord, tokens: Iterable[str]) -> None:
        """Record a titled document and insert its postings."""
        self.documents[record.path] = record
        self.postings.insert(record.path, tokens)
