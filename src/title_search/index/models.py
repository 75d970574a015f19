"""Typed models for indexing state."""

from __future__ import annotations

from dataclasses import dataclass
from pathlib import Path


@dataclass(slots=True, frozen=True)
class DocumentRecord:
    """A titled document tracked by the index."""

    path: str
    mtime_ns: int | None
    title: str


@dataclass(slots=True, frozen=True)
class CandidateDocument:
    """A discovered file eligible for indexing."""

    path: str
    full_path: Path
    mtime_ns: int | None


@dataclass(slots=True, frozen=True)
class SearchHit:
    """One matching document with its stored title."""

    path: str
    title: str


@dataclass(slots=True)
class RunSummary:
    """Counters for one build or update pass."""

    scanned: int = 0
    indexed: int = 0
    untitled: int = 0
    unreadable: int = 0
    skipped_fresh: int = 0
    removed: int = 0

    @property
    def changed(self) -> int:
        """Documents whose postings were rewritten or retracted."""
        return self.indexed + self.untitled + self.unreadable + self.removed
