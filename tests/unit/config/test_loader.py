"""
reql-ast — unit tests for config loader

Purpose
- Validate deterministic config loading from defaults, TOML, env overrides, and CLI overrides.

What this test file should cover
- Precedence: CLI > env > file > defaults.
- Deterministic env var path mapping and type coercion.
- Load failures for missing, malformed, or invalid config.
- Construction of a configured coercer.
"""

from __future__ import annotations

import json
from datetime import datetime
from pathlib import Path

import pytest

from reql_ast.config import (
    ConfigLoadError,
    ConfigValidationError,
    coercer_from_config,
    default_config,
    dump_effective_config,
    load_config,
)
from reql_ast.terms import Iso8601


def _write_config(path: Path, text: str) -> None:
    path.parent.mkdir(parents=True, exist_ok=True)
    path.write_text(text, encoding="utf-8")


def test_defaults_when_no_config_file(tmp_path: Path, monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.chdir(tmp_path)

    assert load_config(environ={}) == default_config()


def test_default_config_file_in_working_directory(
    tmp_path: Path, monkeypatch: pytest.MonkeyPatch
) -> None:
    _write_config(tmp_path / "reql_ast.toml", "[coercion]\nmax_depth = 25\n")
    monkeypatch.chdir(tmp_path)

    assert load_config(environ={})["coercion"]["max_depth"] == 25


def test_loader_precedence_default_file_env_cli(tmp_path: Path) -> None:
    config_path = tmp_path / "reql_ast.toml"
    _write_config(
        config_path,
        """
[coercion]
max_depth = 50
local_timezone = "UTC"

[observability]
log_format = "json"
""".strip(),
    )

    from_file = load_config(config_path, environ={})
    assert from_file["coercion"]["max_depth"] == 50
    assert from_file["coercion"]["count_mapping_depth"] is True
    assert from_file["observability"] == {"log_level": "WARNING", "log_format": "json"}

    env = {
        "REQL_COERCION_MAX_DEPTH": "60",
        "REQL_COERCION_COUNT_MAPPING_DEPTH": "off",
        "REQL_OBSERVABILITY_LOG_LEVEL": "DEBUG",
    }
    from_env = load_config(config_path, environ=env)
    assert from_env["coercion"]["max_depth"] == 60
    assert from_env["coercion"]["count_mapping_depth"] is False
    assert from_env["observability"]["log_level"] == "DEBUG"

    from_cli = load_config(
        config_path,
        environ=env,
        cli_overrides={"coercion.max_depth": 70, "observability.log_level": "ERROR"},
    )
    assert from_cli["coercion"]["max_depth"] == 70
    assert from_cli["observability"]["log_level"] == "ERROR"
    assert from_cli["coercion"]["local_timezone"] == "UTC"


def test_env_cannot_override_schema_version(tmp_path: Path) -> None:
    config_path = tmp_path / "reql_ast.toml"
    _write_config(config_path, "")

    loaded = load_config(config_path, environ={"REQL_META_SCHEMA_VERSION": "9"})

    assert loaded["meta"]["schema_version"] == 1


@pytest.mark.parametrize(
    ("name", "value", "message"),
    [
        ("REQL_COERCION_MAX_DEPTH", "deep", "must be an integer"),
        ("REQL_COERCION_COUNT_MAPPING_DEPTH", "maybe", "must be a boolean"),
    ],
)
def test_env_values_are_type_checked(
    tmp_path: Path, name: str, value: str, message: str
) -> None:
    config_path = tmp_path / "reql_ast.toml"
    _write_config(config_path, "")

    with pytest.raises(ConfigLoadError, match=message):
        load_config(config_path, environ={name: value})


def test_explicit_missing_file_is_an_error(tmp_path: Path) -> None:
    with pytest.raises(ConfigLoadError, match="config file not found"):
        load_config(tmp_path / "absent.toml", environ={})


def test_malformed_toml_is_an_error(tmp_path: Path) -> None:
    config_path = tmp_path / "reql_ast.toml"
    _write_config(config_path, "[coercion\nmax_depth = ")

    with pytest.raises(ConfigLoadError, match="invalid TOML"):
        load_config(config_path, environ={})


def test_invalid_values_report_field_paths(tmp_path: Path) -> None:
    config_path = tmp_path / "reql_ast.toml"
    _write_config(config_path, "[coercion]\nmax_depth = 0\nbogus = 1\n")

    with pytest.raises(ConfigValidationError) as excinfo:
        load_config(config_path, environ={})

    paths = {issue.path for issue in excinfo.value.issues}
    assert paths == {"coercion.max_depth", "coercion.bogus"}


def test_cli_override_is_validated(tmp_path: Path) -> None:
    config_path = tmp_path / "reql_ast.toml"
    _write_config(config_path, "")

    with pytest.raises(ConfigValidationError, match="log_format"):
        load_config(config_path, environ={}, cli_overrides={"observability.log_format": "xml"})
    with pytest.raises(ConfigLoadError, match="invalid CLI override key"):
        load_config(config_path, environ={}, cli_overrides={".": 1})


def test_dump_effective_config_is_deterministic(tmp_path: Path) -> None:
    config_path = tmp_path / "reql_ast.toml"
    _write_config(config_path, "[observability]\nlog_level = 'INFO'\n")

    first = dump_effective_config(load_config(config_path, environ={}))
    second = dump_effective_config(load_config(config_path, environ={}))

    assert first == second
    assert first.startswith('{"coercion":{"count_mapping_depth":true,"local_timezone":""')

def test_dump_effective_config_can_be_indented() -> None:
    config = default_config()

    rendered = dump_effective_config(config, indent=2)

    assert rendered.startswith('{\n  "coercion": {\n    "count_mapping_depth": true,')
    assert json.loads(rendered) == config
    assert json.loads(dump_effective_config(config)) == config



def test_coercer_from_config() -> None:
    config = default_config()
    config["coercion"]["max_depth"] = 12
    config["coercion"]["count_mapping_depth"] = False
    config["coercion"]["local_timezone"] = "Asia/Tokyo"

    coercer = coercer_from_config(config)
    converted = coercer.to_ast(datetime(2021, 6, 15, 10, 30))

    assert coercer.max_depth == 12
    assert coercer.count_mapping_depth is False
    assert isinstance(converted, Iso8601)
    assert converted.text == "2021-06-15T10:30:00.000+09:00"
