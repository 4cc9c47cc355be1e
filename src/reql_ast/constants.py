"""Stable constants shared across the term and coercion layers."""

from __future__ import annotations

from typing import Final

# Recursion budget for a single top-level coercion.
DEFAULT_RECURSION_BUDGET: Final[int] = 100
MAX_RECURSION_BUDGET: Final[int] = 10_000

# Schema version for ``reql_ast.toml``.
CONFIG_SCHEMA_VERSION: Final[int] = 1

# Fixed-width integers at or below this many bytes are "narrow".
NARROW_INT_MAX_BYTES: Final[int] = 4

# Timestamp rendering: millisecond precision, numeric offset suffix.
TIMESTAMP_MILLIS_DIGITS: Final[int] = 3

__all__ = [
    "CONFIG_SCHEMA_VERSION",
    "DEFAULT_RECURSION_BUDGET",
    "MAX_RECURSION_BUDGET",
    "NARROW_INT_MAX_BYTES",
    "TIMESTAMP_MILLIS_DIGITS",
]
