"""Configuration loading and deterministic merge order."""

from __future__ import annotations

import tomllib
from dataclasses import dataclass
from pathlib import Path

CONFIG_FILE_NAME = "title_search.toml"
DATA_DIR_NAME = ".title_search"
MAX_RESULTS_CAP = 10_000

DEFAULT_DOCUMENT_SUFFIX = ".org"
DEFAULT_EXCLUDE_GLOBS = ("**/.git/**",)
DEFAULT_MAX_RESULTS = 100


@dataclass(slots=True, frozen=True)
class IndexConfig:
    """Deterministic indexing settings."""

    document_suffix: str
    exclude_globs: tuple[str, ...]


@dataclass(slots=True, frozen=True)
class SearchConfig:
    """Result presentation settings."""

    max_results: int


@dataclass(slots=True, frozen=True)
class AppConfig:
    """Fully merged application configuration."""

    root: Path
    data_dir: Path
    index: IndexConfig
    search: SearchConfig

    def to_public_dict(self) -> dict[str, object]:
        """Return serializable config snapshot for command responses."""
        return {
            "root": str(self.root),
            "data_dir": str(self.data_dir),
            "index": {
                "document_suffix": self.index.document_suffix,
                "exclude_globs": list(self.index.exclude_globs),
            },
            "search": {
                "max_results": self.search.max_results,
            },
        }


@dataclass(slots=True, frozen=True)
class CliOverrides:
    """Optional startup overrides applied at highest precedence."""

    data_dir: Path | None = None
    document_suffix: str | None = None
    max_results: int | None = None


def default_config(root: Path) -> AppConfig:
    """Build default config for a given document root."""
    resolved_root = root.resolve()
    return AppConfig(
        root=resolved_root,
        data_dir=resolved_root / DATA_DIR_NAME,
        index=IndexConfig(
            document_suffix=DEFAULT_DOCUMENT_SUFFIX,
            exclude_globs=DEFAULT_EXCLUDE_GLOBS,
        ),
        search=SearchConfig(max_results=DEFAULT_MAX_RESULTS),
    )


def load_config_file(root: Path) -> dict[str, object]:
    """Load optional title_search.toml from the document root."""
    config_path = root / CONFIG_FILE_NAME
    if not config_path.exists():
        return {}
    with config_path.open("rb") as handle:
        payload = tomllib.load(handle)
    if not isinstance(payload, dict):
        raise ValueError(f"{CONFIG_FILE_NAME} must contain a top-level table.")
    return payload


def _get_table(payload: dict[str, object], key: str) -> dict[str, object]:
    value = payload.get(key, {})
    if not isinstance(value, dict):
        raise ValueError(f"Config section '{key}' must be a table.")
    return value


def _tuple_of_strings(value: object, section: str, field: str) -> tuple[str, ...]:
    if not isinstance(value, list):
        raise ValueError(f"Config field '{section}.{field}' must be a list of strings.")
    output: list[str] = []
    for item in value:
        if not isinstance(item, str):
            raise ValueError(f"Config field '{section}.{field}' must contain only strings.")
        output.append(item)
    return tuple(output)


def merge_config(base: AppConfig, payload: dict[str, object], overrides: CliOverrides) -> AppConfig:
    """Merge defaults, root config file, then CLI/startup overrides."""
    index_payload = _get_table(payload, "index")
    search_payload = _get_table(payload, "search")

    document_suffix = _optional_suffix(
        index_payload.get("document_suffix"),
        "index.document_suffix",
        base.index.document_suffix,
    )
    exclude_globs = base.index.exclude_globs
    if "exclude_globs" in index_payload:
        exclude_globs = _tuple_of_strings(index_payload["exclude_globs"], "index", "exclude_globs")
    max_results = _optional_positive_int_with_cap(
        search_payload.get("max_results"),
        "search.max_results",
        base.search.max_results,
        MAX_RESULTS_CAP,
    )

    merged = AppConfig(
        root=base.root,
        data_dir=base.data_dir,
        index=IndexConfig(document_suffix=document_suffix, exclude_globs=exclude_globs),
        search=SearchConfig(max_results=max_results),
    )
    return apply_cli_overrides(merged, overrides)


def apply_cli_overrides(config: AppConfig, overrides: CliOverrides) -> AppConfig:
    """Apply startup overrides at highest precedence."""
    document_suffix = _optional_suffix(
        overrides.document_suffix,
        "overrides.document_suffix",
        config.index.document_suffix,
    )
    max_results = _optional_positive_int_with_cap(
        overrides.max_results,
        "overrides.max_results",
        config.search.max_results,
        MAX_RESULTS_CAP,
    )
    data_dir = overrides.data_dir or config.data_dir
    return AppConfig(
        root=config.root,
        data_dir=data_dir.resolve(),
        index=IndexConfig(
            document_suffix=document_suffix,
            exclude_globs=config.index.exclude_globs,
        ),
        search=SearchConfig(max_results=max_results),
    )


def load_effective_config(root: Path, overrides: CliOverrides | None = None) -> AppConfig:
    """Load effective config using merge order defaults -> config file -> overrides."""
    resolved_root = root.resolve()
    base = default_config(resolved_root)
    payload = load_config_file(resolved_root)
    return merge_config(base, payload, overrides or CliOverrides())


def _optional_suffix(value: object, name: str, default: str) -> str:
    if value is None:
        return default
    if not isinstance(value, str) or len(value) < 2 or not value.startswith("."):
        raise ValueError(f"Config field '{name}' must be a file suffix such as '.org'.")
    return value.lower()


def _optional_positive_int_with_cap(
    value: object,
    name: str,
    default: int,
    cap: int | None,
) -> int:
    if value is None:
        return default
    if isinstance(value, bool) or not isinstance(value, int) or value < 1:
        raise ValueError(f"Config field '{name}' must be a positive integer.")
    if cap is not None and value > cap:
        raise ValueError(f"Config field '{name}' must be <= {cap}.")
    return value
