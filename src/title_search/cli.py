"""Command-line and JSON-line entrypoint."""

from __future__ import annotations

import argparse
import json
import sys
from dataclasses import dataclass
from pathlib import Path
from typing import TextIO

from title_search.commands import CommandDispatchError, CommandRegistry
from title_search.commands.builtin import register_builtin_commands
from title_search.config import AppConfig, CliOverrides, load_effective_config
from title_search.index import IndexManager, IndexSchemaUnsupportedError, IndexStorageError
from title_search.logging import (
    AuditEvent,
    JsonlAuditLogger,
    sanitize_arguments,
    summarize_outcome,
    utc_timestamp,
)


@dataclass(slots=True, frozen=True)
class Request:
    """Normalized incoming request."""

    request_id: str
    command: str
    params: dict[str, object]


def build_arg_parser() -> argparse.ArgumentParser:
    """Build argument parser for startup configuration and subcommands."""
    parser = argparse.ArgumentParser(
        prog="title-search",
        description="Index document titles and find documents whose titles contain every word.",
    )
    parser.add_argument("--root", required=False, default=".")
    parser.add_argument("--data-dir", required=False, default=None)
    parser.add_argument("--suffix", required=False, default=None)
    parser.add_argument("--max-results", type=int, required=False, default=None)
    subparsers = parser.add_subparsers(dest="command", required=True)
    subparsers.add_parser("build", help="Rebuild the index from scratch.")
    subparsers.add_parser("update", help="Re-index documents changed since the last update.")
    search = subparsers.add_parser("search", help="Find documents whose titles match all words.")
    search.add_argument("query", nargs="+")
    search.add_argument("--limit", type=int, required=False, default=None)
    subparsers.add_parser("status", help="Show index status and effective configuration.")
    audit = subparsers.add_parser("audit", help="Show recent audit log entries.")
    audit.add_argument("--since", required=False, default=None)
    audit.add_argument("--limit", type=int, required=False, default=None)
    subparsers.add_parser("serve", help="Answer JSON-line requests on stdin.")
    return parser


class TitleSearchApp:
    """Routes named commands to the index manager and audits every call."""

    def __init__(self, config: AppConfig) -> None:
        self._config = config
        self._audit_logger = JsonlAuditLogger(path=config.data_dir / "audit.jsonl")
        self._index_manager = IndexManager(
            root=config.root,
            data_dir=config.data_dir,
            index_config=config.index,
        )
        self._registry = CommandRegistry()
        register_builtin_commands(
            self._registry,
            config=config,
            build_index=self._index_manager.build,
            update_index=self._index_manager.update,
            search_index=self._index_manager.search,
            read_index_status=self._index_manager.status,
            read_audit_entries=self._audit_logger.read,
        )
        self._fallback_request_counter = 0

    @property
    def config(self) -> AppConfig:
        """Return the effective configuration."""
        return self._config

    def serve(self, in_stream: TextIO, out_stream: TextIO) -> None:
        """Process JSON-line requests and write one JSON-line response per request."""
        for raw_line in in_stream:
            line = raw_line.strip()
            if not line:
                continue
            response = self.handle_json_line(line)
            out_stream.write(f"{json.dumps(response, sort_keys=True)}\n")
            out_stream.flush()

    def handle_json_line(self, raw_line: str) -> dict[str, object]:
        """Handle a single JSON-line request."""
        try:
            payload = json.loads(raw_line)
        except json.JSONDecodeError:
            request_id = self.next_request_id()
            response = self.error_response(
                request_id=request_id,
                code="INVALID_JSON",
                message="Request must be valid JSON.",
            )
            self.log_request(
                request_id=request_id,
                command="invalid_json",
                arguments={"raw_line_length": len(raw_line)},
                response=response,
            )
            return response
        return self.handle_payload(payload)

    def handle_payload(self, payload: object) -> dict[str, object]:
        """Validate and dispatch a parsed payload."""
        parsed = self.parse_request(payload)
        if isinstance(parsed, dict):
            request_id_value = parsed.get("request_id")
            request_id = (
                request_id_value if isinstance(request_id_value, str) else self.next_request_id()
            )
            self.log_request(
                request_id=request_id,
                command="invalid_request",
                arguments={},
                response=parsed,
            )
            return parsed

        request = parsed
        try:
            result = self._registry.dispatch(name=request.command, arguments=request.params)
        except CommandDispatchError as error:
            response = self.error_response(
                request_id=request.request_id,
                code=error.code,
                message=error.message,
            )
        except IndexSchemaUnsupportedError as error:
            response = self.error_response(
                request_id=request.request_id,
                code="INDEX_SCHEMA_UNSUPPORTED",
                message=(
                    f"Stored index schema {error.found} is unsupported; expected "
                    f"{error.expected}. Run index.build to rebuild it."
                ),
            )
        except IndexStorageError as error:
            response = self.error_response(
                request_id=request.request_id,
                code="INDEX_STORAGE_ERROR",
                message=str(error),
            )
        except Exception:
            response = self.error_response(
                request_id=request.request_id,
                code="INTERNAL_ERROR",
                message="Unhandled error while executing command.",
            )
        else:
            response = self.success_response(request_id=request.request_id, result=result)

        self.log_request(
            request_id=request.request_id,
            command=request.command,
            arguments=request.params,
            response=response,
        )
        return response

    def parse_request(self, payload: object) -> Request | dict[str, object]:
        """Validate request payload and return normalized Request."""
        if not isinstance(payload, dict):
            return self.error_response(
                request_id=self.next_request_id(),
                code="INVALID_REQUEST",
                message="Request must be an object.",
            )

        request_id = self.extract_request_id(payload.get("id"))
        command = payload.get("method")
        params = payload.get("params", {})

        if not isinstance(command, str) or not command:
            return self.error_response(
                request_id=request_id,
                code="INVALID_REQUEST",
                message="Request method must be a non-empty string.",
            )
        if not isinstance(params, dict):
            return self.error_response(
                request_id=request_id,
                code="INVALID_PARAMS",
                message="Request params must be an object.",
            )

        return Request(request_id=request_id, command=command, params=params)

    def extract_request_id(self, request_id: object) -> str:
        """Extract request ID from payload or synthesize a fallback."""
        if isinstance(request_id, str) and request_id:
            return request_id
        if isinstance(request_id, int) and not isinstance(request_id, bool):
            return str(request_id)
        return self.next_request_id()

    def next_request_id(self) -> str:
        """Generate sequential fallback request IDs for invalid/missing IDs."""
        self._fallback_request_counter += 1
        return f"req-{self._fallback_request_counter:06d}"

    @staticmethod
    def success_response(request_id: str, result: dict[str, object]) -> dict[str, object]:
        """Build success envelope."""
        return {
            "request_id": request_id,
            "ok": True,
            "result": result,
        }

    @staticmethod
    def error_response(request_id: str, code: str, message: str) -> dict[str, object]:
        """Build explicit error envelope."""
        return {
            "request_id": request_id,
            "ok": False,
            "result": {},
            "error": {"code": code, "message": message},
        }

    def log_request(
        self,
        request_id: str,
        command: str,
        arguments: dict[str, object],
        response: dict[str, object],
    ) -> None:
        """Audit one request; an unwritable log becomes a warning on the response."""
        error_payload = response.get("error")
        error_code: str | None = None
        if isinstance(error_payload, dict):
            code_value = error_payload.get("code")
            if isinstance(code_value, str):
                error_code = code_value
        metadata = sanitize_arguments(arguments)
        result = response.get("result")
        if response.get("ok") is True and isinstance(result, dict):
            metadata.update(summarize_outcome(command, result))
        event = AuditEvent(
            timestamp=utc_timestamp(),
            request_id=request_id,
            command=command,
            ok=bool(response.get("ok", False)),
            error_code=error_code,
            metadata=metadata,
        )
        try:
            self._audit_logger.append(event)
        except OSError as error:
            response["warnings"] = [f"Audit log not written: {error}"]


def create_app(
    root: str,
    data_dir: str | None = None,
    cli_overrides: CliOverrides | None = None,
) -> TitleSearchApp:
    """Create a configured application instance."""
    overrides = cli_overrides or CliOverrides()
    if data_dir is not None:
        overrides = CliOverrides(
            data_dir=Path(data_dir).resolve(),
            document_suffix=overrides.document_suffix,
            max_results=overrides.max_results,
        )
    config = load_effective_config(root=Path(root).resolve(), overrides=overrides)
    return TitleSearchApp(config=config)


def main(argv: list[str] | None = None) -> int:
    """Entrypoint for the title-search command."""
    parser = build_arg_parser()
    args = parser.parse_args(argv)
    overrides = CliOverrides(
        data_dir=Path(args.data_dir).resolve() if args.data_dir is not None else None,
        document_suffix=args.suffix,
        max_results=args.max_results,
    )
    try:
        app = create_app(root=args.root, cli_overrides=overrides)
    except ValueError as error:
        parser.error(str(error))

    if args.command == "serve":
        app.serve(in_stream=sys.stdin, out_stream=sys.stdout)
        return 0

    command, params = _command_request(args)
    response = app.handle_payload({"id": "cli", "method": command, "params": params})
    sys.stdout.write(f"{json.dumps(response, sort_keys=True, indent=2, ensure_ascii=False)}\n")
    return 0 if response["ok"] else 1


def _command_request(args: argparse.Namespace) -> tuple[str, dict[str, object]]:
    if args.command == "search":
        params: dict[str, object] = {"query": " ".join(args.query)}
        if args.limit is not None:
            params["limit"] = args.limit
        return "index.search", params
    if args.command == "audit":
        params = {}
        if args.since is not None:
            params["since"] = args.since
        if args.limit is not None:
            params["limit"] = args.limit
        return "audit.read", params
    return f"index.{args.command}", {}


if __name__ == "__main__":
    raise SystemExit(main())
