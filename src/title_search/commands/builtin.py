"""Built-in index and audit commands."""

from __future__ import annotations

from collections.abc import Callable
from dataclasses import asdict

from title_search.commands.registry import CommandDispatchError, CommandHandler, CommandRegistry
from title_search.config import AppConfig
from title_search.index import IndexStatus, SearchHit


def register_builtin_commands(
    registry: CommandRegistry,
    config: AppConfig,
    build_index: Callable[[], dict[str, object]],
    update_index: Callable[[], dict[str, object]],
    search_index: Callable[[str, int | None], tuple[list[SearchHit], int]],
    read_index_status: Callable[[], IndexStatus],
    read_audit_entries: Callable[[str | None, int], list[dict[str, object]]],
) -> None:
    """Register the command set exposed by the CLI and the JSON-line loop."""
    registry.register("index.build", _run_handler(build_index))
    registry.register("index.update", _run_handler(update_index))
    registry.register("index.search", _search_handler(config, search_index))
    registry.register("index.status", _status_handler(config, read_index_status))
    registry.register("audit.read", _audit_read_handler(read_audit_entries))


def _run_handler(run: Callable[[], dict[str, object]]) -> CommandHandler:
    def handler(_: dict[str, object]) -> dict[str, object]:
        return run()

    return handler


def _search_handler(
    config: AppConfig,
    search_index: Callable[[str, int | None], tuple[list[SearchHit], int]],
) -> CommandHandler:
    def handler(arguments: dict[str, object]) -> dict[str, object]:
        query = arguments.get("query")
        if not isinstance(query, str):
            raise CommandDispatchError(
                code="INVALID_PARAMS",
                message="index.search query must be a string.",
            )
        limit = _optional_limit(arguments.get("limit"), "index.search", config.search.max_results)
        hits, total = search_index(query, limit)
        return {
            "hits": [asdict(hit) for hit in hits],
            "total": total,
            "truncated": total > len(hits),
        }

    return handler


def _status_handler(
    config: AppConfig,
    read_index_status: Callable[[], IndexStatus],
) -> CommandHandler:
    def handler(_: dict[str, object]) -> dict[str, object]:
        status = read_index_status()
        return {
            "root": str(config.root),
            "index_status": status.index_status,
            "last_update_timestamp": status.last_update_timestamp,
            "last_update_ns": status.last_update_ns,
            "document_count": status.document_count,
            "token_count": status.token_count,
            "effective_config": config.to_public_dict(),
        }

    return handler


def _audit_read_handler(
    read_audit_entries: Callable[[str | None, int], list[dict[str, object]]],
) -> CommandHandler:
    def handler(arguments: dict[str, object]) -> dict[str, object]:
        since = arguments.get("since")
        if since is not None and not isinstance(since, str):
            raise CommandDispatchError(
                code="INVALID_PARAMS",
                message="audit.read since must be an ISO-8601 timestamp string.",
            )
        limit = _optional_limit(arguments.get("limit"), "audit.read", 50)
        return {"entries": read_audit_entries(since, limit)}

    return handler


def _optional_limit(value: object, command: str, default: int) -> int:
    if value is None:
        return default
    if isinstance(value, bool) or not isinstance(value, int) or value < 1:
        raise CommandDispatchError(
            code="INVALID_PARAMS",
            message=f"{command} limit must be a positive integer.",
        )
    return min(value, default)
