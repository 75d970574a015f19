from __future__ import annotations

from pathlib import Path

import pytest

from title_search.config import CliOverrides, load_effective_config


def test_config_file_max_results_above_cap_is_rejected(tmp_path: Path) -> None:
    (tmp_path / "title_search.toml").write_text(
        "\n".join(
            [
                "[search]",
                "max_results = 50000",
            ]
        ),
        encoding="utf-8",
    )

    with pytest.raises(ValueError, match="search.max_results"):
        load_effective_config(tmp_path)


def test_override_max_results_must_be_positive(tmp_path: Path) -> None:
    with pytest.raises(ValueError, match="overrides.max_results"):
        load_effective_config(tmp_path, CliOverrides(max_results=0))


def test_boolean_is_not_accepted_as_integer(tmp_path: Path) -> None:
    (tmp_path / "title_search.toml").write_text(
        "[search]\nmax_results = true\n",
        encoding="utf-8",
    )

    with pytest.raises(ValueError, match="search.max_results"):
        load_effective_config(tmp_path)
