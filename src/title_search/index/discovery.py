"""Deterministic document discovery."""

from __future__ import annotations

import fnmatch
import os
from collections.abc import Iterator
from pathlib import Path

from title_search.config import IndexConfig
from title_search.index.models import CandidateDocument


def discover_documents(
    root: Path,
    config: IndexConfig,
    excluded_prefix: str | None = None,
) -> Iterator[CandidateDocument]:
    """Yield candidate documents under root in deterministic, name-sorted order.

    Each call starts a fresh walk. Directories that cannot be listed are
    skipped; a file whose modification time cannot be read is still yielded,
    with ``mtime_ns`` set to None.
    """
    resolved = root.resolve()
    suffix = config.document_suffix.lower()
    excluded_dir_names = _excluded_dir_names(config.exclude_globs)
    stack: list[Path] = [resolved]
    while stack:
        current = stack.pop()
        try:
            with os.scandir(current) as entries:
                ordered_entries = sorted(entries, key=lambda item: item.name)
        except OSError:
            continue
        directories: list[Path] = []
        for entry in ordered_entries:
            full_path = Path(entry.path)
            relative = full_path.relative_to(resolved).as_posix()
            if is_within(relative, excluded_prefix):
                continue
            if entry.is_dir(follow_symlinks=False):
                if entry.name in excluded_dir_names and should_exclude(
                    f"{relative}/", config.exclude_globs
                ):
                    continue
                directories.append(full_path)
                continue
            if not entry.is_file(follow_symlinks=False):
                continue
            if not entry.name.lower().endswith(suffix):
                continue
            if should_exclude(relative, config.exclude_globs):
                continue
            yield CandidateDocument(
                path=relative,
                full_path=full_path,
                mtime_ns=_mtime_ns(entry),
            )
        stack.extend(reversed(directories))


def is_within(relative_path: str, prefix: str | None) -> bool:
    """Return True when relative_path is prefix itself or lies beneath it."""
    if not prefix:
        return False
    return relative_path == prefix or relative_path.startswith(f"{prefix}/")


def should_exclude(relative_path: str, exclude_globs: tuple[str, ...]) -> bool:
    """Return True when a path matches configured ignore globs."""
    anchored = f"/{relative_path}"
    return any(
        fnmatch.fnmatch(relative_path, pattern) or fnmatch.fnmatch(anchored, pattern)
        for pattern in exclude_globs
    )


def read_document_text(path: Path) -> str | None:
    """Read a document as strict UTF-8, or None when it cannot be read."""
    try:
        return path.read_text(encoding="utf-8")
    except (OSError, UnicodeDecodeError):
        return None


def _mtime_ns(entry: os.DirEntry[str]) -> int | None:
    try:
        return entry.stat(follow_symlinks=False).st_mtime_ns
    except OSError:
        return None


def _excluded_dir_names(exclude_globs: tuple[str, ...]) -> set[str]:
    """Extract deterministic directory-name prunes from **/name/** glob patterns."""
    output: set[str] = set()
    for pattern in exclude_globs:
        if not pattern.startswith("**/") or not pattern.endswith("/**"):
            continue
        name = pattern[3:-3].strip("/")
        if not name:
            continue
        if any(char in name for char in "*?[]{}"):
            continue
        output.add(name)
    return output
