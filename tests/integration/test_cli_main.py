from __future__ import annotations

import json
from pathlib import Path

import pytest

from title_search.cli import main


def _run(capsys: pytest.CaptureFixture[str], argv: list[str]) -> tuple[int, dict[str, object]]:
    code = main(argv)
    output = capsys.readouterr().out
    return code, json.loads(output)


def test_build_then_search_from_command_line(
    tmp_path: Path, capsys: pytest.CaptureFixture[str]
) -> None:
    (tmp_path / "a.org").write_text("#+title: The Bears Den\n", encoding="utf-8")
    (tmp_path / "b.org").write_text("#+title: Second Bears Camp\n", encoding="utf-8")

    code, built = _run(capsys, ["--root", str(tmp_path), "build"])
    assert code == 0
    assert built["result"]["indexed"] == 2

    code, found = _run(capsys, ["--root", str(tmp_path), "search", "Bears", "second"])
    assert code == 0
    assert found["result"]["hits"] == [{"path": "b.org", "title": "Second Bears Camp"}]


def test_update_and_status_from_command_line(
    tmp_path: Path, capsys: pytest.CaptureFixture[str]
) -> None:
    (tmp_path / "a.org").write_text("#+title: Alpha\n", encoding="utf-8")

    code, updated = _run(capsys, ["--root", str(tmp_path), "update"])
    assert code == 0
    assert updated["result"]["indexed"] == 1

    code, status = _run(capsys, ["--root", str(tmp_path), "status"])
    assert code == 0
    assert status["result"]["index_status"] == "ready"


def test_suffix_and_max_results_flags(tmp_path: Path, capsys: pytest.CaptureFixture[str]) -> None:
    for name in ("a", "b", "c"):
        (tmp_path / f"{name}.txt").write_text(f"#+title: Shared {name}\n", encoding="utf-8")
    base = ["--root", str(tmp_path), "--suffix", ".txt", "--max-results", "2"]

    _run(capsys, [*base, "build"])
    code, found = _run(capsys, [*base, "search", "shared"])

    assert code == 0
    assert [hit["path"] for hit in found["result"]["hits"]] == ["a.txt", "b.txt"]
    assert found["result"]["total"] == 3
    assert found["result"]["truncated"] is True


def test_error_envelope_sets_exit_status(tmp_path: Path, capsys: pytest.CaptureFixture[str]) -> None:
    index_dir = tmp_path / ".title_search" / "index"
    index_dir.mkdir(parents=True)
    (index_dir / "manifest.json").write_text('{"schema_version": 42}\n', encoding="utf-8")

    code, response = _run(capsys, ["--root", str(tmp_path), "update"])

    assert code == 1
    assert response["error"]["code"] == "INDEX_SCHEMA_UNSUPPORTED"


def test_invalid_configuration_exits_with_usage_error(
    tmp_path: Path, capsys: pytest.CaptureFixture[str]
) -> None:
    with pytest.raises(SystemExit) as excinfo:
        main(["--root", str(tmp_path), "--max-results", "0", "status"])

    assert excinfo.value.code == 2
    assert "max_results" in capsys.readouterr().err
