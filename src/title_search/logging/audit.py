"""JSONL audit trail of index commands."""

from __future__ import annotations

import json
from dataclasses import asdict, dataclass
from datetime import UTC, datetime
from pathlib import Path

RUN_COMMANDS = frozenset({"index.build", "index.update"})
RUN_OUTCOME_FIELDS = ("indexed", "untitled", "unreadable", "removed", "skipped_fresh", "persisted")


@dataclass(slots=True, frozen=True)
class AuditEvent:
    """One audited command: who asked, what ran, and how it ended."""

    timestamp: str
    request_id: str
    command: str
    ok: bool
    error_code: str | None
    metadata: dict[str, object]


def utc_timestamp() -> str:
    """Return an ISO-8601 UTC timestamp."""
    return datetime.now(tz=UTC).isoformat(timespec="milliseconds").replace("+00:00", "Z")


def sanitize_arguments(arguments: dict[str, object]) -> dict[str, object]:
    """Describe command parameters without recording query text."""
    sanitized: dict[str, object] = {}
    for key in sorted(arguments):
        value = arguments[key]
        if key == "query" and isinstance(value, str):
            sanitized["query_present"] = True
            sanitized["query_length"] = len(value)
        elif key == "since" and isinstance(value, str):
            sanitized["since"] = value
        elif isinstance(value, (int, bool)) or value is None:
            sanitized[key] = value
        else:
            sanitized[f"{key}_type"] = type(value).__name__
    return sanitized


def summarize_outcome(command: str, result: dict[str, object]) -> dict[str, object]:
    """Pick the counters worth keeping from a successful command result."""
    if command in RUN_COMMANDS:
        return {field: result[field] for field in RUN_OUTCOME_FIELDS if field in result}
    if command == "index.search":
        hits = result.get("hits")
        return {
            "hit_count": len(hits) if isinstance(hits, list) else 0,
            "total": result.get("total"),
        }
    return {}


class JsonlAuditLogger:
    """Appends audit events to a JSONL file and reads the most recent ones back."""

    def __init__(self, path: Path) -> None:
        self._path = path

    def append(self, event: AuditEvent) -> None:
        """Write one event per line, creating the data directory on first use."""
        self._path.parent.mkdir(parents=True, exist_ok=True)
        with self._path.open("a", encoding="utf-8") as handle:
            handle.write(json.dumps(asdict(event), sort_keys=True))
            handle.write("\n")

    def read(self, since: str | None = None, limit: int = 50) -> list[dict[str, object]]:
        """Return up to limit newest events at or after since; torn lines are skipped."""
        if limit < 1 or not self._path.exists():
            return []
        entries: list[dict[str, object]] = []
        with self._path.open("r", encoding="utf-8") as handle:
            for line in handle:
                stripped = line.strip()
                if not stripped:
                    continue
                try:
                    record = json.loads(stripped)
                except json.JSONDecodeError:
                    continue
                if not isinstance(record, dict):
                    continue
                if since is not None and str(record.get("timestamp", "")) < since:
                    continue
                entries.append(record)
        return entries[-limit:]
