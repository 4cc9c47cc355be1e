"""Translate native Python callables into placeholder-parameterized ``Func`` terms.

The callable is invoked once, at build time, with ``Var`` placeholders in
place of its parameters; whatever it returns is coerced into the body of the
function term. Captured state is not copied.
"""

from __future__ import annotations

import inspect
import itertools
import threading
from collections.abc import Callable
from typing import Final

from reql_ast.errors import ReqlDriverError
from reql_ast.terms.nodes import Datum, Func, MakeArray, ReqlAst, Var

Coerce = Callable[[object], ReqlAst]

_POSITIONAL_KINDS: Final = frozenset(
    {inspect.Parameter.POSITIONAL_ONLY, inspect.Parameter.POSITIONAL_OR_KEYWORD}
)

_VAR_ID_LOCK = threading.Lock()
_VAR_IDS = itertools.count(1)


def lambda_arity(fn: Callable[..., object]) -> int:
    """Return the number of placeholders ``fn`` is called with.

    Required positional parameters count; a lambda taking only ``*args`` gets
    a single placeholder.
    """

    try:
        signature = inspect.signature(fn)
    except (TypeError, ValueError) as exc:
        raise ReqlDriverError("Cannot inspect callable %r: %s", fn, exc) from exc

    required = 0
    variadic = False
    for parameter in signature.parameters.values():
        if parameter.kind in _POSITIONAL_KINDS and parameter.default is inspect.Parameter.empty:
            required += 1
        elif parameter.kind is inspect.Parameter.VAR_POSITIONAL:
            variadic = True
    if required == 0 and variadic:
        return 1
    return required


def next_var_ids(count: int) -> tuple[int, ...]:
    """Allocate ``count`` fresh, process-unique variable ids."""

    if count < 0:
        raise ValueError("count must be >= 0")
    with _VAR_ID_LOCK:
        return tuple(next(_VAR_IDS) for _ in range(count))


def wrap_lambda(fn: Callable[..., object], *, coerce: Coerce | None = None) -> Func:
    """Build a ``Func`` term from ``fn``; the body is coerced with ``coerce``."""

    if coerce is None:
        from reql_ast.coercion import to_ast

        coerce = to_ast

    var_ids = next_var_ids(lambda_arity(fn))
    placeholders = [Var(var_id) for var_id in var_ids]
    body = coerce(fn(*placeholders))
    params = MakeArray(Datum.from_number(var_id) for var_id in var_ids)
    return Func(params, body)


__all__ = ["lambda_arity", "next_var_ids", "wrap_lambda"]
