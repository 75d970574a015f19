from __future__ import annotations

from pathlib import Path

from title_search.index import (
    CandidateDocument,
    TitleIndex,
    evaluate_query,
    full_build,
    incremental_update,
    is_stale,
)

WATERMARK = 1_000


def _candidate(root: Path, name: str, title: str | None, mtime_ns: int | None) -> CandidateDocument:
    path = root / name
    body = f"#+title: {title}\n" if title is not None else "untitled body\n"
    path.write_text(body, encoding="utf-8")
    return CandidateDocument(path=name, full_path=path, mtime_ns=mtime_ns)


def _built(tmp_path: Path) -> TitleIndex:
    index, _ = full_build(
        [
            _candidate(tmp_path, "a.org", "The Bears Den", 10),
            _candidate(tmp_path, "b.org", "Second Bears Camp", 10),
            _candidate(tmp_path, "c.org", None, 10),
        ]
    )
    index.last_update_ns = WATERMARK
    return index


def test_staleness_rules() -> None:
    assert is_stale(2_000, WATERMARK) is True
    assert is_stale(WATERMARK, WATERMARK) is False
    assert is_stale(10, WATERMARK) is False
    assert is_stale(None, WATERMARK) is True
    assert is_stale(10, None) is True


def test_modified_title_retracts_old_tokens(tmp_path: Path) -> None:
    index = _built(tmp_path)
    candidates = [
        _candidate(tmp_path, "a.org", "Second Bears Den", WATERMARK + 1),
        CandidateDocument(path="b.org", full_path=tmp_path / "b.org", mtime_ns=10),
        CandidateDocument(path="c.org", full_path=tmp_path / "c.org", mtime_ns=10),
    ]

    summary = incremental_update(index, candidates)

    assert evaluate_query(index.postings, "second") == {"a.org", "b.org"}
    assert evaluate_query(index.postings, "the") == set()
    assert summary.indexed == 1
    assert summary.skipped_fresh == 2
    assert summary.changed == 1


def test_fresh_documents_are_not_reread(tmp_path: Path) -> None:
    index = _built(tmp_path)
    (tmp_path / "b.org").write_text("#+title: Rewritten Without Touching\n", encoding="utf-8")
    candidates = [
        CandidateDocument(path=name, full_path=tmp_path / name, mtime_ns=10)
        for name in ("a.org", "b.org", "c.org")
    ]

    summary = incremental_update(index, candidates)

    assert summary.changed == 0
    assert evaluate_query(index.postings, "camp") == {"b.org"}


def test_unknown_mtime_is_reindexed(tmp_path: Path) -> None:
    index = _built(tmp_path)
    candidates = [
        _candidate(tmp_path, "a.org", "Mystery Den", None),
        CandidateDocument(path="b.org", full_path=tmp_path / "b.org", mtime_ns=10),
    ]

    summary = incremental_update(index, candidates)

    assert summary.indexed == 1
    assert evaluate_query(index.postings, "mystery") == {"a.org"}


def test_stale_document_losing_its_title_is_retracted(tmp_path: Path) -> None:
    index = _built(tmp_path)
    candidates = [
        _candidate(tmp_path, "a.org", None, WATERMARK + 5),
        CandidateDocument(path="b.org", full_path=tmp_path / "b.org", mtime_ns=10),
    ]

    summary = incremental_update(index, candidates)

    assert summary.untitled == 1
    assert "a.org" not in index.documents
    assert evaluate_query(index.postings, "den") == set()
    assert evaluate_query(index.postings, "bears") == {"b.org"}


def test_stale_unreadable_document_is_retracted(tmp_path: Path) -> None:
    index = _built(tmp_path)
    (tmp_path / "a.org").write_bytes(b"#+title: \xff broken\n")
    candidates = [
        CandidateDocument(path="a.org", full_path=tmp_path / "a.org", mtime_ns=WATERMARK + 5),
        CandidateDocument(path="b.org", full_path=tmp_path / "b.org", mtime_ns=10),
    ]

    summary = incremental_update(index, candidates)

    assert summary.unreadable == 1
    assert evaluate_query(index.postings, "bears") == {"b.org"}


def test_new_document_is_added(tmp_path: Path) -> None:
    index = _built(tmp_path)
    candidates = [
        CandidateDocument(path=name, full_path=tmp_path / name, mtime_ns=10)
        for name in ("a.org", "b.org", "c.org")
    ]
    candidates.append(_candidate(tmp_path, "d.org", "Bears Return", WATERMARK + 1))

    summary = incremental_update(index, candidates)

    assert summary.indexed == 1
    assert evaluate_query(index.postings, "bears") == {"a.org", "b.org", "d.org"}


def test_storage_paths_are_skipped(tmp_path: Path) -> None:
    index = _built(tmp_path)
    (tmp_path / ".title_search").mkdir()
    candidates = [
        CandidateDocument(path=name, full_path=tmp_path / name, mtime_ns=10)
        for name in ("a.org", "b.org")
    ]
    candidates.append(_candidate(tmp_path, ".title_search/x.org", "Bears Trap", None))

    summary = incremental_update(index, candidates, excluded_prefix=".title_search")

    assert summary.changed == 0
    assert summary.scanned == 2
    assert evaluate_query(index.postings, "trap") == set()
