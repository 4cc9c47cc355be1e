"""
reql-ast — runtime config loader.

Purpose
- Build the effective config from layered sources.

Layers, lowest to highest precedence
- Built-in defaults (``DEFAULT_CONFIG``).
- ``reql_ast.toml`` in the working directory, or an explicit ``--config`` path.
- ``REQL_<SECTION>_<FIELD>`` environment variables, one per scalar default.
- Dotted ``section.field`` CLI overrides.

Functional requirements
- The file layer is validated on its own so that file mistakes are reported
  against the file; the fully merged result is validated again.
- A missing default file is not an error; a missing explicit path is.
"""

from __future__ import annotations

import json
import os
import tomllib
from collections.abc import Callable, Mapping
from dataclasses import dataclass
from pathlib import Path
from typing import Any, Final

from reql_ast.coercion import Coercer, resolve_zone
from reql_ast.config.schema import (
    DEFAULT_CONFIG,
    assert_valid_config,
    default_config,
    merge_config,
)

DEFAULT_CONFIG_FILE: Final[str] = "reql_ast.toml"
ENV_PREFIX: Final[str] = "REQL_"

_ENV_SKIPPED_SECTIONS: Final[frozenset[str]] = frozenset({"meta"})
_FLAG_WORDS: Final[Mapping[str, bool]] = {
    "1": True,
    "true": True,
    "yes": True,
    "on": True,
    "0": False,
    "false": False,
    "no": False,
    "off": False,
}


class ConfigLoadError(ValueError):
    """Raised when a config source cannot be read or one of its values cannot be parsed."""


@dataclass(frozen=True, slots=True)
class _EnvBinding:
    variable: str
    section: str
    field: str
    parse: Callable[[str], object]


def load_config(
    config_path: str | Path | None = None,
    *,
    cli_overrides: Mapping[str, object] | None = None,
    environ: Mapping[str, str] | None = None,
) -> dict[str, Any]:
    """Return the validated effective config (CLI > env > file > defaults)."""

    if config_path is None:
        path = Path.cwd() / DEFAULT_CONFIG_FILE
    else:
        path = Path(config_path).expanduser()

    config = assert_valid_config(
        merge_config(default_config(), _file_layer(path, required=config_path is not None))
    )
    for layer in (
        _env_layer(os.environ if environ is None else environ),
        _cli_layer(cli_overrides or {}),
    ):
        config = merge_config(config, layer)
    return assert_valid_config(config)


def dump_effective_config(config: Mapping[str, object], *, indent: int | None = None) -> str:
    """Key-sorted JSON rendering of ``config``; compact unless ``indent`` is given."""

    separators = (",", ":") if indent is None else (",", ": ")
    return json.dumps(
        config, sort_keys=True, indent=indent, separators=separators, ensure_ascii=False
    )


def coercer_from_config(config: Mapping[str, Any], *, logger: Any | None = None) -> Coercer:
    """Build a ``Coercer`` from the ``[coercion]`` section of a validated config."""

    section = config["coercion"]
    return Coercer(
        section["max_depth"],
        count_mapping_depth=section["count_mapping_depth"],
        local_zone=resolve_zone(section["local_timezone"]),
        logger=logger,
    )


# ---------------------------------------------------------------------------
# Layers
# ---------------------------------------------------------------------------


def _file_layer(path: Path, *, required: bool) -> dict[str, Any]:
    try:
        raw = path.read_bytes()
    except FileNotFoundError as exc:
        if required:
            raise ConfigLoadError(f"config file not found: {path}") from exc
        return {}
    except OSError as exc:
        raise ConfigLoadError(f"unable to read config file {path}: {exc}") from exc

    try:
        return tomllib.loads(raw.decode("utf-8"))
    except (UnicodeDecodeError, tomllib.TOMLDecodeError) as exc:
        raise ConfigLoadError(f"invalid TOML in {path}: {exc}") from exc


def _env_layer(environ: Mapping[str, str]) -> dict[str, Any]:
    layer: dict[str, dict[str, object]] = {}
    for binding in _env_bindings():
        raw = environ.get(binding.variable)
        if raw is None:
            continue
        try:
            value = binding.parse(raw)
        except ValueError as exc:
            raise ConfigLoadError(
                f"{binding.variable} ({binding.section}.{binding.field}) {exc}"
            ) from exc
        layer.setdefault(binding.section, {})[binding.field] = value
    return layer


def _cli_layer(overrides: Mapping[str, object]) -> dict[str, Any]:
    layer: dict[str, Any] = {}
    for dotted in sorted(overrides):
        parts = [part for part in dotted.split(".") if part]
        if not parts:
            raise ConfigLoadError(f"invalid CLI override key {dotted!r}")
        node = layer
        for part in parts[:-1]:
            node = node.setdefault(part, {})
            if not isinstance(node, dict):
                raise ConfigLoadError(f"CLI override {dotted!r} conflicts with another override")
        node[parts[-1]] = overrides[dotted]
    return layer


# ---------------------------------------------------------------------------
# Environment bindings
# ---------------------------------------------------------------------------


def _env_bindings() -> list[_EnvBinding]:
    bindings: list[_EnvBinding] = []
    for section, fields in sorted(DEFAULT_CONFIG.items()):
        if section in _ENV_SKIPPED_SECTIONS:
            continue
        for field, default in sorted(fields.items()):
            bindings.append(
                _EnvBinding(
                    variable=f"{ENV_PREFIX}{section.upper()}_{field.upper()}",
                    section=section,
                    field=field,
                    parse=_parser_for(default),
                )
            )
    return bindings


def _parser_for(default: object) -> Callable[[str], object]:
    if isinstance(default, bool):
        return _parse_flag
    if isinstance(default, int):
        return _parse_integer
    return str.strip


def _parse_flag(raw: str) -> bool:
    try:
        return _FLAG_WORDS[raw.strip().lower()]
    except KeyError:
        raise ValueError("must be a boolean (true/false/yes/no/on/off/1/0)") from None


def _parse_integer(raw: str) -> int:
    try:
        return int(raw.strip())
    except ValueError:
        raise ValueError("must be an integer") from None


__all__ = [
    "ConfigLoadError",
    "DEFAULT_CONFIG_FILE",
    "ENV_PREFIX",
    "coercer_from_config",
    "dump_effective_config",
    "load_config",
]
