"""Term tree node types and their canonical wire serialization."""

from __future__ import annotations

import json
import math
from collections.abc import Callable, Iterable, Mapping
from decimal import Decimal
from enum import IntEnum
from numbers import Integral, Real
from typing import Final, Literal, cast

from reql_ast.errors import ReqlDriverCompileError

JSONScalar = str | int | float | bool | None
JSONValue = JSONScalar | list["JSONValue"] | dict[str, "JSONValue"]
NumericType = Literal["int32", "int64", "float"]

_INT32_MIN: Final[int] = -(2**31)
_INT32_MAX: Final[int] = 2**31 - 1


class TermType(IntEnum):
    """Protocol term codes for the node kinds this package emits."""

    DATUM = 1
    MAKE_ARRAY = 2
    MAKE_OBJ = 3
    VAR = 10
    GET_FIELD = 31
    FUNC = 69
    ISO8601 = 99
    BRACKET = 170


class ReqlAst:
    """A node of the query term tree.

    Nodes are immutable after construction. Equality is structural so that
    independently built subtrees can be compared in tests and caches.
    """

    __slots__ = ("args", "optargs", "term_type")

    def __init__(
        self,
        term_type: TermType,
        args: Iterable[ReqlAst] = (),
        optargs: Mapping[str, ReqlAst] | None = None,
    ) -> None:
        self.term_type = TermType(term_type)
        self.args: tuple[ReqlAst, ...] = tuple(args)
        self.optargs: dict[str, ReqlAst] = dict(optargs or {})

    def build(self) -> JSONValue:
        """Return the JSON-compatible wire form ``[term, [args...], {optargs}]``."""

        payload: list[JSONValue] = [int(self.term_type), [arg.build() for arg in self.args]]
        if self.optargs:
            payload.append({key: value.build() for key, value in self.optargs.items()})
        return payload

    def to_json(self) -> str:
        return json.dumps(self.build(), sort_keys=True, separators=(",", ":"), ensure_ascii=False)

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, ReqlAst) or type(other) is not type(self):
            return NotImplemented
        return (
            self.term_type is other.term_type
            and self.args == other.args
            and self.optargs == other.optargs
        )

    __hash__ = None  # type: ignore[assignment]

    def __repr__(self) -> str:
        inner = ", ".join(repr(arg) for arg in self.args)
        if self.optargs:
            opts = ", ".join(f"{key}={value!r}" for key, value in self.optargs.items())
            inner = f"{inner}, {opts}" if inner else opts
        return f"{type(self).__name__}({inner})"


class ReqlExpr(ReqlAst):
    """A term that evaluates to a value and can be used as a query expression."""

    __slots__ = ()

    def __getitem__(self, key: str | int | ReqlAst) -> Bracket:
        return Bracket(self, key)

    def get_field(self, name: str) -> GetField:
        return GetField(self, name)


class Datum(ReqlExpr):
    """Leaf literal.

    ``numeric_type`` records which constructor produced a numeric literal so
    that a 32-bit source value stays distinguishable from a 64-bit one.
    """

    __slots__ = ("numeric_type", "value")

    def __init__(self, value: JSONScalar, numeric_type: NumericType | None = None) -> None:
        super().__init__(TermType.DATUM)
        self.value = value
        self.numeric_type = numeric_type

    @classmethod
    def null(cls) -> Datum:
        return cls(None)

    @classmethod
    def from_bool(cls, value: bool) -> Datum:
        return cls(bool(value))

    @classmethod
    def from_str(cls, value: str) -> Datum:
        return cls(str(value))

    @classmethod
    def from_int32(cls, value: Integral | int) -> Datum:
        number = int(value)
        if not _INT32_MIN <= number <= _INT32_MAX:
            raise ReqlDriverCompileError("%s does not fit in a 32-bit integer", number)
        return cls(number, "int32")

    @classmethod
    def from_number(cls, value: Real | Decimal | int | float) -> Datum:
        if isinstance(value, bool):
            raise TypeError("use Datum.from_bool for boolean literals")
        if isinstance(value, Integral):
            return cls(int(value), "int64")
        if (
            isinstance(value, Decimal)
            and value.is_finite()
            and value == value.to_integral_value()
        ):
            return cls(int(value), "int64")
        number = float(value)
        if not math.isfinite(number):
            raise ReqlDriverCompileError("Non-finite number %s cannot be sent as a literal", value)
        return cls(number, "float")

    def build(self) -> JSONValue:
        return self.value

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, Datum):
            return NotImplemented
        return (
            type(self.value) is type(other.value)
            and self.value == other.value
            and self.numeric_type == other.numeric_type
        )

    __hash__ = None  # type: ignore[assignment]

    def __repr__(self) -> str:
        if self.numeric_type is None:
            return f"Datum({self.value!r})"
        return f"Datum({self.value!r}, {self.numeric_type})"


class MakeArray(ReqlExpr):
    __slots__ = ()

    def __init__(self, args: Iterable[ReqlAst] = ()) -> None:
        super().__init__(TermType.MAKE_ARRAY, args)


class MakeObj(ReqlExpr):
    """Object literal; serialized as a plain JSON object."""

    __slots__ = ()

    def __init__(self, optargs: Mapping[str, ReqlAst] | None = None) -> None:
        super().__init__(TermType.MAKE_OBJ, (), optargs)

    @classmethod
    def from_map(cls, mapping: Mapping[str, ReqlAst]) -> MakeObj:
        for key in mapping:
            if not isinstance(key, str):
                raise ReqlDriverCompileError("Object keys can only be strings")
        return cls(mapping)

    def build(self) -> JSONValue:
        return {key: value.build() for key, value in self.optargs.items()}


class Iso8601(ReqlExpr):
    __slots__ = ()

    def __init__(self, text: Datum) -> None:
        super().__init__(TermType.ISO8601, (text,))

    @classmethod
    def from_string(cls, text: str) -> Iso8601:
        return cls(Datum.from_str(text))

    @property
    def text(self) -> str:
        datum = cast("Datum", self.args[0])
        return str(datum.value)


class Var(ReqlExpr):
    """Placeholder for a lambda parameter inside a ``Func`` body."""

    __slots__ = ()

    def __init__(self, var_id: int) -> None:
        super().__init__(TermType.VAR, (Datum.from_number(var_id),))

    @property
    def var_id(self) -> int:
        datum = cast("Datum", self.args[0])
        return int(cast("int", datum.value))


class Bracket(ReqlExpr):
    __slots__ = ()

    def __init__(self, target: ReqlExpr, key: str | int | ReqlAst) -> None:
        super().__init__(TermType.BRACKET, (target, _key_term(key)))


class GetField(ReqlExpr):
    __slots__ = ()

    def __init__(self, target: ReqlExpr, name: str) -> None:
        super().__init__(TermType.GET_FIELD, (target, Datum.from_str(name)))


class Func(ReqlAst):
    """Wrapped callback: ``[FUNC, [[MAKE_ARRAY, [ids...]], body]]``.

    A ``Func`` is not a value expression; it is only valid where the server
    expects a function argument.
    """

    __slots__ = ()

    def __init__(self, params: MakeArray, body: ReqlAst) -> None:
        super().__init__(TermType.FUNC, (params, body))

    @classmethod
    def from_lambda(
        cls,
        fn: Callable[..., object],
        *,
        coerce: Callable[[object], ReqlAst] | None = None,
    ) -> Func:
        from reql_ast.terms.lambdas import wrap_lambda

        return wrap_lambda(fn, coerce=coerce)

    @property
    def parameter_ids(self) -> tuple[int, ...]:
        params = self.args[0]
        return tuple(int(arg.value) for arg in params.args if isinstance(arg, Datum))  # type: ignore[arg-type]

    @property
    def body(self) -> ReqlAst:
        return self.args[1]


def _key_term(key: str | int | ReqlAst) -> ReqlAst:
    if isinstance(key, ReqlAst):
        return key
    if isinstance(key, str):
        return Datum.from_str(key)
    if isinstance(key, int) and not isinstance(key, bool):
        return Datum.from_number(key)
    raise ReqlDriverCompileError("Bracket keys must be strings, integers or terms")


__all__ = [
    "Bracket",
    "Datum",
    "Func",
    "GetField",
    "Iso8601",
    "JSONScalar",
    "JSONValue",
    "MakeArray",
    "MakeObj",
    "NumericType",
    "ReqlAst",
    "ReqlExpr",
    "TermType",
    "Var",
]
