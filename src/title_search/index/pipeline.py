"""Full and incremental indexing passes over candidate documents."""

from __future__ import annotations

from collections.abc import Iterable

from title_search.index.discovery import is_within, read_document_text
from title_search.index.inverted import TitleIndex
from title_search.index.models import CandidateDocument, DocumentRecord, RunSummary
from title_search.index.text import title_tokens


def full_build(
    candidates: Iterable[CandidateDocument],
    excluded_prefix: str | None = None,
) -> tuple[TitleIndex, RunSummary]:
    """Index every candidate into a fresh TitleIndex."""
    index = TitleIndex()
    summary = RunSummary()
    for candidate in candidates:
        if is_within(candidate.path, excluded_prefix):
            continue
        summary.scanned += 1
        index_candidate(index, candidate, summary)
    return index, summary


def incremental_update(
    index: TitleIndex,
    candidates: Iterable[CandidateDocument],
    excluded_prefix: str | None = None,
) -> RunSummary:
    """Re-index stale candidates in place and drop documents no longer discovered.

    The caller owns the watermark: it should advance ``index.last_update_ns``
    and persist only when ``summary.changed`` is non-zero.
    """
    summary = RunSummary()
    seen: set[str] = set()
    for candidate in candidates:
        if is_within(candidate.path, excluded_prefix):
            continue
        summary.scanned += 1
        seen.add(candidate.path)
        if not is_stale(candidate.mtime_ns, index.last_update_ns):
            summary.skipped_fresh += 1
            continue
        index_candidate(index, candidate, summary)

    for path in sorted(set(index.documents) - seen):
        index.retract(path)
        summary.removed += 1
    return summary


def index_candidate(index: TitleIndex, candidate: CandidateDocument, summary: RunSummary) -> None:
    """Retract a document's postings, then insert its current title tokens."""
    index.retract(candidate.path)
    text = read_document_text(candidate.full_path)
    if text is None:
        summary.unreadable += 1
        return
    title, tokens = title_tokens(text)
    if title is None:
        summary.untitled += 1
        return
    index.store(
        DocumentRecord(path=candidate.path, mtime_ns=candidate.mtime_ns, title=title),
        tokens,
    )
    summary.indexed += 1


def is_stale(mtime_ns: int | None, watermark_ns: int | None) -> bool:
    """Unknown modification times and missing watermarks count as stale."""
    if mtime_ns is None or watermark_ns is None:
        return True
    return mtime_ns > watermark_ns
