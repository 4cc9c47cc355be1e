"""Query term tree: node types, wire serialization and lambda wrapping."""

from reql_ast.terms.lambdas import lambda_arity, next_var_ids, wrap_lambda
from reql_ast.terms.nodes import (
    Bracket,
    Datum,
    Func,
    GetField,
    Iso8601,
    JSONValue,
    MakeArray,
    MakeObj,
    ReqlAst,
    ReqlExpr,
    TermType,
    Var,
)

__all__ = [
    "Bracket",
    "Datum",
    "Func",
    "GetField",
    "Iso8601",
    "JSONValue",
    "MakeArray",
    "MakeObj",
    "ReqlAst",
    "ReqlExpr",
    "TermType",
    "Var",
    "lambda_arity",
    "next_var_ids",
    "wrap_lambda",
]
