"""
reql-ast — command-line smoke tests

Purpose
- Drive ``reql-ast`` end to end: config loading, document parsing, coercion, and exit codes.
"""

from __future__ import annotations

import io
import json
from collections.abc import Iterator
from pathlib import Path

import pytest

from reql_ast.config import dump_effective_config
from reql_ast.main import ExitCode, cli_entrypoint
from reql_ast.observability import reset_logging


@pytest.fixture(autouse=True)
def _isolated_cli(tmp_path: Path, monkeypatch: pytest.MonkeyPatch) -> Iterator[None]:
    monkeypatch.chdir(tmp_path)
    for name in ("REQL_COERCION_MAX_DEPTH", "REQL_OBSERVABILITY_LOG_LEVEL"):
        monkeypatch.delenv(name, raising=False)
    yield
    reset_logging()


@pytest.mark.smoke
def test_coerce_yaml_document(tmp_path: Path, capsys: pytest.CaptureFixture[str]) -> None:
    document = tmp_path / "doc.yaml"
    document.write_text("when: 2021-06-15T10:30:00+02:00\nitems: [1, 2]\n", encoding="utf-8")

    exit_code = cli_entrypoint(["coerce", str(document)])

    captured = capsys.readouterr()
    assert exit_code == ExitCode.SUCCESS
    assert json.loads(captured.out) == {
        "items": [2, [1, 2]],
        "when": [99, ["2021-06-15T10:30:00.000+02:00"]],
    }

@pytest.mark.smoke
def test_coerce_yaml_date_at_midnight(tmp_path: Path, capsys: pytest.CaptureFixture[str]) -> None:
    document = tmp_path / "doc.yaml"
    document.write_text("d: 2021-06-15\n", encoding="utf-8")

    exit_code = cli_entrypoint(
        ["coerce", str(document), "--set", "coercion.local_timezone=UTC"]
    )

    captured = capsys.readouterr()
    assert exit_code == ExitCode.SUCCESS
    assert json.loads(captured.out) == {"d": [99, ["2021-06-15T00:00:00.000+00:00"]]}



@pytest.mark.smoke
def test_coerce_json_from_stdin(
    monkeypatch: pytest.MonkeyPatch, capsys: pytest.CaptureFixture[str]
) -> None:
    monkeypatch.setattr("sys.stdin", io.StringIO('{"b": [true, null], "a": "x"}'))

    exit_code = cli_entrypoint(["coerce"])

    assert exit_code == ExitCode.SUCCESS
    assert capsys.readouterr().out == '{"a":"x","b":[2,[true,null]]}\n'


@pytest.mark.smoke
def test_coerce_expression_scalar(
    monkeypatch: pytest.MonkeyPatch, capsys: pytest.CaptureFixture[str]
) -> None:
    monkeypatch.setattr("sys.stdin", io.StringIO("5"))

    assert cli_entrypoint(["coerce", "--expr", "-"]) == ExitCode.SUCCESS
    assert capsys.readouterr().out == "5\n"


@pytest.mark.smoke
def test_recursion_budget_override_fails_coercion(
    monkeypatch: pytest.MonkeyPatch, capsys: pytest.CaptureFixture[str]
) -> None:
    monkeypatch.setattr("sys.stdin", io.StringIO("[[1]]"))

    exit_code = cli_entrypoint(["coerce", "--set", "coercion.max_depth=2"])

    captured = capsys.readouterr()
    assert exit_code == ExitCode.COERCION_ERROR
    assert captured.out == ""
    assert "ReqlDriverCompileError: Recursion limit reached" in captured.err


@pytest.mark.smoke
def test_debug_logging_reaches_stderr(
    monkeypatch: pytest.MonkeyPatch, capsys: pytest.CaptureFixture[str]
) -> None:
    monkeypatch.setattr("sys.stdin", io.StringIO("[1]"))

    exit_code = cli_entrypoint(
        [
            "coerce",
            "--set",
            "observability.log_level=DEBUG",
            "--set",
            "observability.log_format=json",
        ]
    )

    captured = capsys.readouterr()
    events = [json.loads(line)["event"] for line in captured.err.splitlines() if line.strip()]
    assert exit_code == ExitCode.SUCCESS
    assert "reql_document_coerced" in events


@pytest.mark.smoke
def test_invalid_document_is_an_input_error(
    tmp_path: Path, capsys: pytest.CaptureFixture[str]
) -> None:
    document = tmp_path / "doc.json"
    document.write_text("{not json", encoding="utf-8")

    exit_code = cli_entrypoint(["coerce", str(document)])

    assert exit_code == ExitCode.INPUT_ERROR
    assert "invalid JSON" in capsys.readouterr().err


@pytest.mark.smoke
def test_missing_document_is_an_input_error(
    tmp_path: Path, capsys: pytest.CaptureFixture[str]
) -> None:
    exit_code = cli_entrypoint(["coerce", str(tmp_path / "absent.json")])

    assert exit_code == ExitCode.INPUT_ERROR
    assert "unable to read" in capsys.readouterr().err


@pytest.mark.smoke
def test_config_errors(tmp_path: Path, capsys: pytest.CaptureFixture[str]) -> None:
    assert cli_entrypoint(["config", "--config", str(tmp_path / "absent.toml")]) == (
        ExitCode.CONFIG_ERROR
    )
    assert "config file not found" in capsys.readouterr().err

    assert cli_entrypoint(["config", "--set", "coercion.max_depth=0"]) == ExitCode.CONFIG_ERROR
    assert "coercion.max_depth: must be >= 1" in capsys.readouterr().err

    assert cli_entrypoint(["config", "--set", "missing-separator"]) == ExitCode.CONFIG_ERROR


@pytest.mark.smoke
def test_config_command_prints_effective_config(
    tmp_path: Path, capsys: pytest.CaptureFixture[str]
) -> None:
    (tmp_path / "reql_ast.toml").write_text("[coercion]\nmax_depth = 40\n", encoding="utf-8")

    exit_code = cli_entrypoint(["config", "--set", "observability.log_format=json"])

    output = capsys.readouterr().out
    payload = json.loads(output)
    assert exit_code == ExitCode.SUCCESS
    assert output == dump_effective_config(payload, indent=2) + "\n"
    assert payload["coercion"]["max_depth"] == 40
    assert payload["observability"]["log_format"] == "json"


@pytest.mark.smoke
def test_usage_error_exit_code(capsys: pytest.CaptureFixture[str]) -> None:
    assert cli_entrypoint([]) == 2
    assert "usage: reql-ast" in capsys.readouterr().err
