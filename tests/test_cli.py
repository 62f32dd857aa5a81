from __future__ import annotations

from pathlib import Path

import pytest

from testselect.entrypoints import cli


def test_build_parser_defaults() -> None:
    args = cli.build_parser().parse_args([])

    assert args.testsuites == Path("testsuites.yaml")
    assert args.clonerefs == Path("clonerefs.json")
    assert args.output == Path("tests.txt")
    assert args.json_output is None


def test_main_forwards_paths_to_run_selection(monkeypatch: pytest.MonkeyPatch) -> None:
    captured: dict[str, object] = {}

    def _fake_run_selection(**kwargs: object) -> int:
        captured.update(kwargs)
        return 0

    monkeypatch.setattr(cli.commands, "run_selection", _fake_run_selection)

    result = cli.main(
        [
            "--testsuites",
            "cfg/suites.yaml",
            "--clonerefs",
            "refs.json",
            "--output",
            "artifacts/tests.txt",
            "--json-output",
            "artifacts/report.json",
        ]
    )

    assert result == 0
    assert captured == {
        "testsuites_file": Path("cfg/suites.yaml"),
        "clonerefs_file": Path("refs.json"),
        "output_file": Path("artifacts/tests.txt"),
        "json_output": Path("artifacts/report.json"),
    }


def test_main_returns_run_selection_exit_code(monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.setattr(cli.commands, "run_selection", lambda **kwargs: 1)

    assert cli.main([]) == 1


def test_main_rejects_subcommands() -> None:
    with pytest.raises(SystemExit) as exc_info:
        cli.main(["run"])

    assert exc_info.value.code == 2
