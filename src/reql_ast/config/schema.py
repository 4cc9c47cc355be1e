"""
reql-ast — configuration schema and validation.

Purpose
- Define configuration defaults and the per-field rules that validate them.

Functional requirements
- Validate config payloads and return structured errors (field path + message).
- Reject unknown sections and fields; report schema version mismatches with
  migration guidance.
- Return a normalized copy (trimmed strings) when validation succeeds.
"""

from __future__ import annotations

import copy
from collections.abc import Callable, Mapping, Sequence
from dataclasses import dataclass
from typing import Any, Final, Literal, TypedDict
from zoneinfo import ZoneInfo, ZoneInfoNotFoundError

from reql_ast.constants import (
    CONFIG_SCHEMA_VERSION,
    DEFAULT_RECURSION_BUDGET,
    MAX_RECURSION_BUDGET,
)

ConfigSchemaVersion: Final[int] = CONFIG_SCHEMA_VERSION
LOG_LEVELS: Final[tuple[str, ...]] = ("DEBUG", "INFO", "WARNING", "ERROR")
LOG_FORMATS: Final[tuple[str, ...]] = ("json", "text")


class MetaConfig(TypedDict):
    schema_version: int


class CoercionConfig(TypedDict):
    max_depth: int
    count_mapping_depth: bool
    local_timezone: str


class ObservabilityConfig(TypedDict):
    log_level: Literal["DEBUG", "INFO", "WARNING", "ERROR"]
    log_format: Literal["json", "text"]


class ReqlAstConfig(TypedDict):
    meta: MetaConfig
    coercion: CoercionConfig
    observability: ObservabilityConfig


DEFAULT_CONFIG: Final[ReqlAstConfig] = {
    "meta": {
        "schema_version": ConfigSchemaVersion,
    },
    "coercion": {
        "max_depth": DEFAULT_RECURSION_BUDGET,
        "count_mapping_depth": True,
        "local_timezone": "",
    },
    "observability": {
        "log_level": "WARNING",
        "log_format": "text",
    },
}


@dataclass(frozen=True, slots=True)
class ConfigValidationIssue:
    path: str
    message: str


@dataclass(frozen=True, slots=True)
class ConfigValidationResult:
    """Outcome of ``validate_config``; ``config`` is set only when there are no issues."""

    config: dict[str, Any] | None
    issues: tuple[ConfigValidationIssue, ...]

    @property
    def is_valid(self) -> bool:
        return self.config is not None and not self.issues


class ConfigValidationError(ValueError):
    """Raised by ``assert_valid_config``; carries every issue found."""

    def __init__(self, issues: Sequence[ConfigValidationIssue]) -> None:
        self.issues = tuple(issues)
        lines = [f"- {issue.path}: {issue.message}" for issue in self.issues]
        super().__init__("invalid config:\n" + ("\n".join(lines) or "- <root>: unknown failure"))


class _Invalid(Exception):
    """Field-level rule failure; converted into a ``ConfigValidationIssue``."""


# ---------------------------------------------------------------------------
# Field rules
# ---------------------------------------------------------------------------

FieldRule = Callable[[object], object]


def _type_name(value: object) -> str:
    return type(value).__name__


def _integer(minimum: int, maximum: int | None = None) -> Callable[[object], int]:
    def rule(value: object) -> int:
        if isinstance(value, bool) or not isinstance(value, int):
            raise _Invalid(f"expected integer, got {_type_name(value)}")
        if value < minimum:
            raise _Invalid(f"must be >= {minimum}")
        if maximum is not None and value > maximum:
            raise _Invalid(f"must be <= {maximum}")
        return value

    return rule


def _boolean(value: object) -> bool:
    if not isinstance(value, bool):
        raise _Invalid(f"expected boolean, got {_type_name(value)}")
    return value


def _choice(allowed: tuple[str, ...]) -> FieldRule:
    def rule(value: object) -> str:
        if not isinstance(value, str):
            raise _Invalid(f"expected string, got {_type_name(value)}")
        candidate = value.strip()
        if candidate not in allowed:
            raise _Invalid(
                f"invalid value {candidate!r}; expected one of: {', '.join(sorted(allowed))}"
            )
        return candidate

    return rule


def _zone_name(value: object) -> str:
    if not isinstance(value, str):
        raise _Invalid(f"expected string, got {_type_name(value)}")
    name = value.strip()
    if name:
        try:
            ZoneInfo(name)
        except (ZoneInfoNotFoundError, ValueError):
            raise _Invalid(f"unknown IANA time zone {name!r}") from None
    return name


def _schema_version(value: object) -> int:
    version = _integer(1)(value)
    if version != ConfigSchemaVersion:
        raise _Invalid(migration_guidance(version))
    return version


_SCHEMA: Final[Mapping[str, Mapping[str, FieldRule]]] = {
    "meta": {"schema_version": _schema_version},
    "coercion": {
        "max_depth": _integer(1, MAX_RECURSION_BUDGET),
        "count_mapping_depth": _boolean,
        "local_timezone": _zone_name,
    },
    "observability": {
        "log_level": _choice(LOG_LEVELS),
        "log_format": _choice(LOG_FORMATS),
    },
}


# ---------------------------------------------------------------------------
# Public API
# ---------------------------------------------------------------------------


def default_config() -> ReqlAstConfig:
    """Return a deep copy of the built-in defaults."""

    return copy.deepcopy(DEFAULT_CONFIG)


def migration_guidance(found_version: int) -> str:
    """Explain how to resolve a ``meta.schema_version`` mismatch."""

    if found_version == ConfigSchemaVersion:
        return "schema version is current"
    if found_version < ConfigSchemaVersion:
        relation, action = "older", "upgrade reql_ast.toml to the current schema"
    else:
        relation, action = "newer", "upgrade the reql-ast package"
    return (
        f"schema version {found_version} is {relation} than supported "
        f"{ConfigSchemaVersion}; {action}"
    )


def merge_config(base: Mapping[str, object], overlay: Mapping[str, object]) -> dict[str, Any]:
    """Deep-merge ``overlay`` onto a copy of ``base``; neither input is modified."""

    merged: dict[str, Any] = {key: copy.deepcopy(value) for key, value in base.items()}
    for key, value in overlay.items():
        current = merged.get(key)
        if isinstance(value, Mapping):
            merged[key] = merge_config(current if isinstance(current, Mapping) else {}, value)
        else:
            merged[key] = copy.deepcopy(value)
    return merged


def validate_config(config: object) -> ConfigValidationResult:
    """Check ``config`` against the schema and normalize its values."""

    if not isinstance(config, Mapping):
        issue = ConfigValidationIssue("<root>", f"expected object, got {_type_name(config)}")
        return ConfigValidationResult(config=None, issues=(issue,))

    issues = _key_issues(config, _SCHEMA, prefix="")
    normalized: dict[str, Any] = {}
    for section, rules in _SCHEMA.items():
        payload = config.get(section)
        if payload is None:
            continue
        if not isinstance(payload, Mapping):
            issues.append(
                ConfigValidationIssue(section, f"expected object, got {_type_name(payload)}")
            )
            continue
        issues.extend(_key_issues(payload, rules, prefix=section))
        values: dict[str, Any] = {}
        for field, rule in rules.items():
            if field not in payload:
                continue
            try:
                values[field] = rule(payload[field])
            except _Invalid as exc:
                issues.append(ConfigValidationIssue(f"{section}.{field}", str(exc)))
        normalized[section] = values

    if issues:
        return ConfigValidationResult(config=None, issues=tuple(issues))
    return ConfigValidationResult(config=normalized, issues=())


def assert_valid_config(config: object) -> dict[str, Any]:
    """Return the normalized config or raise ``ConfigValidationError``."""

    result = validate_config(config)
    if result.config is None:
        raise ConfigValidationError(result.issues)
    return result.config


def _key_issues(
    payload: Mapping[Any, object], known: Mapping[str, object], *, prefix: str
) -> list[ConfigValidationIssue]:
    def path(key: object) -> str:
        return f"{prefix}.{key}" if prefix else str(key)

    issues = [
        ConfigValidationIssue(path(key), "unknown field")
        for key in sorted(payload, key=str)
        if key not in known
    ]
    issues.extend(
        ConfigValidationIssue(path(key), "missing required field")
        for key in known
        if key not in payload
    )
    return issues


__all__ = [
    "DEFAULT_CONFIG",
    "LOG_FORMATS",
    "LOG_LEVELS",
    "CoercionConfig",
    "ConfigSchemaVersion",
    "ConfigValidationError",
    "ConfigValidationIssue",
    "ConfigValidationResult",
    "FieldRule",
    "ObservabilityConfig",
    "ReqlAstConfig",
    "assert_valid_config",
    "default_config",
    "merge_config",
    "migration_guidance",
    "validate_config",
]
