"""Recursive, depth-limited conversion of native values into term trees.

Dispatch order matters for values that match more than one rule:

1. existing terms are returned unchanged
2. ordered sequences (lists, tuples, deques, ranges, ``UserList``, numpy arrays)
   become ``MakeArray``; ``str`` and byte strings are not sequences here
3. mappings become ``MakeObj`` (string keys only)
4. callables become ``Func``
5. datetimes become ``Iso8601``; dates are anchored at local midnight first
6. narrow integers, booleans, numbers, strings and ``None`` become ``Datum``
7. anything else is converted through its property snapshot

Every nested conversion spends one unit of the recursion budget; an
exhausted budget raises ``ReqlDriverCompileError`` instead of recursing into a
cyclic or pathologically deep value. Exhausting the interpreter stack before the
budget runs out raises the same error.
"""

from __future__ import annotations

from collections.abc import Mapping, Sequence
from datetime import date, datetime, time, tzinfo
from decimal import Decimal
from numbers import Real
from typing import Any

import numpy as np
import structlog

from reql_ast.coercion.primitives import format_timestamp, is_narrow_int
from reql_ast.coercion.snapshot import property_snapshot
from reql_ast.constants import DEFAULT_RECURSION_BUDGET, MAX_RECURSION_BUDGET
from reql_ast.errors import ReqlDriverCompileError, ReqlDriverError
from reql_ast.terms.nodes import Datum, Func, Iso8601, MakeArray, MakeObj, ReqlAst, ReqlExpr


class Coercer:
    """
    Convert native values into ``ReqlAst`` nodes.

    ``count_mapping_depth`` controls whether nesting through mappings spends
    the recursion budget like nesting through sequences does. Disabling it
    lets mapping-of-mapping chains recurse without a budget check; a
    self-referential mapping then fails once the interpreter stack is exhausted.
    """

    def __init__(
        self,
        max_depth: int = DEFAULT_RECURSION_BUDGET,
        *,
        count_mapping_depth: bool = True,
        local_zone: tzinfo | None = None,
        logger: Any | None = None,
    ) -> None:
        if isinstance(max_depth, bool) or not isinstance(max_depth, int):
            raise TypeError("max_depth must be an integer")
        if not 1 <= max_depth <= MAX_RECURSION_BUDGET:
            raise ValueError(f"max_depth must be between 1 and {MAX_RECURSION_BUDGET}")

        self._max_depth = max_depth
        self._count_mapping_depth = count_mapping_depth
        self._local_zone = local_zone
        self._logger = logger if logger is not None else structlog.get_logger(__name__)

    @property
    def max_depth(self) -> int:
        return self._max_depth

    @property
    def count_mapping_depth(self) -> bool:
        return self._count_mapping_depth

    def to_ast(self, value: object) -> ReqlAst:
        """Coerce ``value`` into a term tree with a fresh recursion budget."""

        try:
            return self._convert(value, self._max_depth)
        except RecursionError as exc:
            self._logger.warning(
                "reql_recursion_limit",
                max_depth=self._max_depth,
                value_type=type(value).__name__,
                interpreter_limit=True,
            )
            raise ReqlDriverCompileError("Recursion limit reached converting to ReqlAst") from exc

    def to_expr(self, value: object) -> ReqlExpr:
        """Coerce ``value`` and require the result to be a value expression."""

        converted = self.to_ast(value)
        if isinstance(converted, ReqlExpr):
            return converted
        raise ReqlDriverError("Cannot convert %s to ReqlExpr", value)

    def _convert(self, value: object, remaining: int) -> ReqlAst:
        if remaining <= 0:
            self._logger.warning(
                "reql_recursion_limit",
                max_depth=self._max_depth,
                value_type=type(value).__name__,
            )
            raise ReqlDriverCompileError("Recursion limit reached converting to ReqlAst")

        if isinstance(value, ReqlAst):
            return value

        if _is_sequence(value):
            return MakeArray([self._convert(item, remaining - 1) for item in value])

        if isinstance(value, Mapping):
            return self._convert_mapping(value, remaining)

        if callable(value) and not isinstance(value, type):
            return Func.from_lambda(value, coerce=self.to_ast)

        if isinstance(value, datetime):
            return Iso8601.from_string(format_timestamp(value, local_zone=self._local_zone))
        if isinstance(value, date):
            midnight = datetime.combine(value, time())
            return Iso8601.from_string(format_timestamp(midnight, local_zone=self._local_zone))

        if is_narrow_int(value):
            return Datum.from_int32(value)  # type: ignore[arg-type]
        if isinstance(value, (bool, np.bool_)):
            return Datum.from_bool(bool(value))
        if isinstance(value, (Real, Decimal)):
            return Datum.from_number(value)
        if isinstance(value, str):
            return Datum.from_str(value)
        if value is None:
            return Datum.null()

        snapshot = property_snapshot(value, logger=self._logger)
        return self._convert(snapshot, remaining - 1)

    def _convert_mapping(self, value: Mapping[Any, object], remaining: int) -> MakeObj:
        child_budget = remaining - 1 if self._count_mapping_depth else remaining
        converted: dict[str, ReqlAst] = {}
        for key, item in value.items():
            if not isinstance(key, str):
                raise ReqlDriverCompileError("Object keys can only be strings")
            converted[key] = self._convert(item, child_budget)
        return MakeObj.from_map(converted)


_NON_SEQUENCE_TYPES = (str, bytes, bytearray, memoryview)


def _is_sequence(value: object) -> bool:
    if isinstance(value, np.ndarray):
        return value.ndim >= 1
    if isinstance(value, _NON_SEQUENCE_TYPES):
        return False
    return isinstance(value, Sequence)


_DEFAULT_COERCER = Coercer()


def default_coercer() -> Coercer:
    """Return the shared coercer whose recursion budget is fixed at 100."""

    return _DEFAULT_COERCER


def to_ast(value: object) -> ReqlAst:
    """Coerce a native value into a term tree (recursion budget 100)."""

    return _DEFAULT_COERCER.to_ast(value)


def to_expr(value: object) -> ReqlExpr:
    """Coerce a native value into a value expression.

    Raises ``ReqlDriverError`` when the value converts to a term that cannot
    stand as an expression, such as a bare ``Func``.
    """

    return _DEFAULT_COERCER.to_expr(value)


__all__ = ["Coercer", "default_coercer", "to_ast", "to_expr"]
