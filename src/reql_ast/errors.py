"""Driver error hierarchy raised by term construction and value coercion."""

from __future__ import annotations


class ReqlError(Exception):
    """Base class for every error raised by ``reql_ast``."""

    def __init__(self, message: str, *args: object) -> None:
        rendered = message % args if args else message
        super().__init__(rendered)
        self.message = rendered

    def __str__(self) -> str:
        return self.message


class ReqlDriverError(ReqlError):
    """Generic driver-side failure (introspection failures, wrong node kinds)."""


class ReqlDriverCompileError(ReqlDriverError):
    """The value cannot be compiled into a term tree as given.

    Raised for recursion-budget exhaustion, non-string object keys and
    literals that have no wire representation.
    """


class ReqlAccessError(ReqlDriverError):
    """The caller's object model violates the introspection contract.

    Raised when an object's class is not public or when a property holds a
    narrow (32-bit or smaller) integer.
    """


__all__ = [
    "ReqlAccessError",
    "ReqlDriverCompileError",
    "ReqlDriverError",
    "ReqlError",
]
