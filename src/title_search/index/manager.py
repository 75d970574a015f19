"""Persistent index storage and build/update orchestration."""

from __future__ import annotations

import json
import time
from collections.abc import Iterator
from dataclasses import asdict, dataclass
from datetime import UTC, datetime
from pathlib import Path

from title_search.config import IndexConfig
from title_search.index.discovery import discover_documents
from title_search.index.inverted import InvertedIndex, TitleIndex
from title_search.index.models import CandidateDocument, DocumentRecord, RunSummary, SearchHit
from title_search.index.pipeline import full_build, incremental_update
from title_search.index.query import evaluate_query

INDEX_SCHEMA_VERSION = 1


@dataclass(slots=True, frozen=True)
class IndexStatus:
    """Current index status snapshot."""

    index_status: str
    last_update_timestamp: str | None
    last_update_ns: int | None
    document_count: int
    token_count: int


class IndexSchemaUnsupportedError(Exception):
    """Raised when stored index schema does not match supported version."""

    def __init__(self, found: int, expected: int) -> None:
        super().__init__(f"Stored index schema {found} is unsupported; expected {expected}.")
        self.found = found
        self.expected = expected


class IndexStorageError(Exception):
    """Raised when index files cannot be created, read, or written."""

    def __init__(self, operation: str, path: Path, detail: str) -> None:
        super().__init__(f"Cannot {operation} {path}: {detail}")
        self.operation = operation
        self.path = path
        self.detail = detail


class IndexManager:
    """Owns the on-disk title index beneath the data directory."""

    def __init__(self, root: Path, data_dir: Path, index_config: IndexConfig) -> None:
        self._root = root.resolve()
        self._index_config = index_config
        self._data_dir = data_dir.resolve()
        self._index_dir = self._data_dir / "index"
        self._manifest_path = self._index_dir / "manifest.json"
        self._documents_path = self._index_dir / "documents.jsonl"
        self._postings_path = self._index_dir / "postings.jsonl"
        self._data_dir_prefix = self._compute_data_dir_prefix()
        self._cache_marker: str | None = None
        self._cache: TitleIndex | None = None

    def status(self) -> IndexStatus:
        """Return status derived from manifest, if present."""
        manifest = self._read_manifest()
        if manifest is None:
            return IndexStatus(
                index_status="not_indexed",
                last_update_timestamp=None,
                last_update_ns=None,
                document_count=0,
                token_count=0,
            )
        schema = manifest.get("schema_version")
        if not isinstance(schema, int) or schema != INDEX_SCHEMA_VERSION:
            return IndexStatus(
                index_status="schema_mismatch",
                last_update_timestamp=None,
                last_update_ns=None,
                document_count=0,
                token_count=0,
            )
        return IndexStatus(
            index_status="ready",
            last_update_timestamp=_as_optional_str(manifest.get("last_update_timestamp")),
            last_update_ns=_as_optional_int(manifest.get("last_update_ns")),
            document_count=_as_optional_int(manifest.get("document_count")) or 0,
            token_count=_as_optional_int(manifest.get("token_count")) or 0,
        )

    def build(self) -> dict[str, object]:
        """Discard any stored index and index every candidate document."""
        start = time.perf_counter()
        started_ns = time.time_ns()
        index, summary = full_build(self._candidates(), excluded_prefix=self._data_dir_prefix)
        index.last_update_ns = started_ns
        self._write_all(index)
        return self._run_result(summary, index, persisted=True, start=start)

    def update(self) -> dict[str, object]:
        """Re-index documents modified since the last update."""
        start = time.perf_counter()
        started_ns = time.time_ns()
        index = self.load()
        summary = incremental_update(
            index, self._candidates(), excluded_prefix=self._data_dir_prefix
        )
        persisted = summary.changed > 0
        if persisted:
            index.last_update_ns = started_ns
            self._write_all(index)
        return self._run_result(summary, index, persisted=persisted, start=start)

    def search(self, query: str, limit: int | None = None) -> tuple[list[SearchHit], int]:
        """Return sorted hits (bounded by limit) and the total match count."""
        index = self._load_cached()
        matches = sorted(evaluate_query(index.postings, query))
        hits: list[SearchHit] = []
        for path in matches:
            if limit is not None and len(hits) >= limit:
                break
            record = index.documents.get(path)
            hits.append(SearchHit(path=path, title=record.title if record else ""))
        return hits, len(matches)

    def load(self) -> TitleIndex:
        """Load the stored index, or an empty one when nothing is stored."""
        manifest = self._read_manifest()
        if manifest is None:
            return TitleIndex()
        schema = manifest.get("schema_version")
        if not isinstance(schema, int):
            raise IndexSchemaUnsupportedError(found=-1, expected=INDEX_SCHEMA_VERSION)
        if schema != INDEX_SCHEMA_VERSION:
            raise IndexSchemaUnsupportedError(found=schema, expected=INDEX_SCHEMA_VERSION)

        documents: dict[str, DocumentRecord] = {}
        for obj in self._read_jsonl(self._documents_path):
            path = obj.get("path")
            mtime_ns = obj.get("mtime_ns")
            title = obj.get("title")
            if not isinstance(path, str) or not isinstance(title, str):
                raise IndexStorageError("parse", self._documents_path, "malformed document row")
            if mtime_ns is not None and not isinstance(mtime_ns, int):
                raise IndexStorageError("parse", self._documents_path, "malformed document row")
            documents[path] = DocumentRecord(path=path, mtime_ns=mtime_ns, title=title)
        try:
            postings = InvertedIndex.from_rows(self._read_jsonl(self._postings_path))
        except ValueError as error:
            raise IndexStorageError("parse", self._postings_path, str(error)) from error
        index = TitleIndex(
            postings=postings,
            documents=documents,
            last_update_ns=_as_optional_int(manifest.get("last_update_ns")),
        )
        self._verify_against_manifest(manifest, index)
        return index

    def _verify_against_manifest(self, manifest: dict[str, object], index: TitleIndex) -> None:
        expected = (manifest.get("document_count"), manifest.get("token_count"))
        found = (len(index.documents), len(index.postings))
        if expected != found:
            raise IndexStorageError(
                "parse",
                self._index_dir,
                f"manifest records {expected[0]} documents and {expected[1]} tokens, "
                f"files hold {found[0]} and {found[1]}",
            )
        orphans = [path for path in index.postings.documents() if path not in index.documents]
        if orphans:
            raise IndexStorageError(
                "parse", self._postings_path, f"postings name unknown document {orphans[0]!r}"
            )

    def _load_cached(self) -> TitleIndex:
        marker = self._manifest_marker()
        if self._cache is not None and self._cache_marker == marker:
            return self._cache
        self._cache = self.load()
        self._cache_marker = marker
        return self._cache

    def _manifest_marker(self) -> str:
        manifest = self._read_manifest()
        if manifest is None:
            return "not_indexed"
        return (
            f"{manifest.get('schema_version')}:{manifest.get('last_update_ns')}:"
            f"{manifest.get('document_count')}:{manifest.get('token_count')}"
        )

    def _candidates(self) -> Iterator[CandidateDocument]:
        return discover_documents(
            self._root,
            self._index_config,
            excluded_prefix=self._data_dir_prefix,
        )

    @staticmethod
    def _run_result(
        summary: RunSummary,
        index: TitleIndex,
        persisted: bool,
        start: float,
    ) -> dict[str, object]:
        result: dict[str, object] = asdict(summary)
        result["persisted"] = persisted
        result["document_count"] = len(index.documents)
        result["token_count"] = len(index.postings)
        result["last_update_ns"] = index.last_update_ns
        result["timestamp"] = (
            _iso_from_ns(index.last_update_ns) if index.last_update_ns is not None else None
        )
        result["duration_ms"] = int((time.perf_counter() - start) * 1000)
        return result

    def _compute_data_dir_prefix(self) -> str | None:
        if not self._data_dir.is_relative_to(self._root):
            return None
        return self._data_dir.relative_to(self._root).as_posix()

    def _write_all(self, index: TitleIndex) -> None:
        last_update_ns = index.last_update_ns
        manifest: dict[str, object] = {
            "schema_version": INDEX_SCHEMA_VERSION,
            "last_update_ns": last_update_ns,
            "last_update_timestamp": (
                _iso_from_ns(last_update_ns) if last_update_ns is not None else None
            ),
            "document_count": len(index.documents),
            "token_count": len(index.postings),
        }
        documents = [asdict(index.documents[path]) for path in sorted(index.documents)]
        try:
            self._index_dir.mkdir(parents=True, exist_ok=True)
            self._atomic_write_jsonl(self._documents_path, documents)
            self._atomic_write_jsonl(self._postings_path, index.postings.to_rows())
            self._atomic_write_json(self._manifest_path, manifest)
        except OSError as error:
            raise IndexStorageError("write", self._index_dir, str(error)) from error

    def _read_manifest(self) -> dict[str, object] | None:
        if not self._manifest_path.exists():
            return None
        try:
            with self._manifest_path.open("r", encoding="utf-8") as handle:
                payload = json.load(handle)
        except OSError as error:
            raise IndexStorageError("read", self._manifest_path, str(error)) from error
        except json.JSONDecodeError as error:
            raise IndexStorageError("parse", self._manifest_path, str(error)) from error
        if not isinstance(payload, dict):
            raise IndexStorageError("parse", self._manifest_path, "manifest must be an object")
        return payload

    @staticmethod
    def _read_jsonl(path: Path) -> list[dict[str, object]]:
        output: list[dict[str, object]] = []
        if not path.exists():
            raise IndexStorageError("read", path, "missing beneath an existing manifest")
        try:
            with path.open("r", encoding="utf-8") as handle:
                for line_number, raw_line in enumerate(handle, start=1):
                    stripped = raw_line.strip()
                    if not stripped:
                        continue
                    try:
                        obj = json.loads(stripped)
                    except json.JSONDecodeError as error:
                        raise IndexStorageError(
                            "parse", path, f"line {line_number}: {error}"
                        ) from error
                    if not isinstance(obj, dict):
                        raise IndexStorageError("parse", path, f"line {line_number}: not an object")
                    output.append(obj)
        except OSError as error:
            raise IndexStorageError("read", path, str(error)) from error
        return output

    @staticmethod
    def _atomic_write_json(path: Path, payload: dict[str, object]) -> None:
        tmp = path.with_suffix(path.suffix + ".tmp")
        try:
            with tmp.open("w", encoding="utf-8") as handle:
                json.dump(payload, handle, sort_keys=True)
                handle.write("\n")
            tmp.replace(path)
        finally:
            tmp.unlink(missing_ok=True)

    @staticmethod
    def _atomic_write_jsonl(path: Path, rows: list[dict[str, object]]) -> None:
        tmp = path.with_suffix(path.suffix + ".tmp")
        try:
            with tmp.open("w", encoding="utf-8") as handle:
                for row in rows:
                    handle.write(json.dumps(row, sort_keys=True, ensure_ascii=False))
                    handle.write("\n")
            tmp.replace(path)
        finally:
            tmp.unlink(missing_ok=True)


def _iso_from_ns(value: int) -> str:
    moment = datetime.fromtimestamp(value / 1_000_000_000, tz=UTC)
    return moment.isoformat(timespec="milliseconds").replace("+00:00", "Z")


def _as_optional_int(value: object) -> int | None:
    if isinstance(value, int) and not isinstance(value, bool):
        return value
    return None


def _as_optional_str(value: object) -> str | None:
    if isinstance(value, str):
        return value
    return None
