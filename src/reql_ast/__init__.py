"""
reql-ast: coerce native Python values into query term trees.

``to_ast`` and ``to_expr`` convert values into the term classes exported here.
Importing the package does not load config or configure logging.
"""

from reql_ast.coercion import (
    Coercer,
    CustomSerialize,
    ExcludesFields,
    SerializationStrategy,
    serialization_strategy,
    to_ast,
    to_expr,
    transient_field,
)
from reql_ast.errors import ReqlAccessError, ReqlDriverCompileError, ReqlDriverError, ReqlError
from reql_ast.terms import (
    Datum,
    Func,
    Iso8601,
    MakeArray,
    MakeObj,
    ReqlAst,
    ReqlExpr,
    TermType,
    Var,
)

__version__ = "0.1.0"

__all__ = [
    "Coercer",
    "CustomSerialize",
    "Datum",
    "ExcludesFields",
    "Func",
    "Iso8601",
    "MakeArray",
    "MakeObj",
    "ReqlAccessError",
    "ReqlAst",
    "ReqlDriverCompileError",
    "ReqlDriverError",
    "ReqlError",
    "ReqlExpr",
    "SerializationStrategy",
    "TermType",
    "Var",
    "__version__",
    "serialization_strategy",
    "to_ast",
    "to_expr",
    "transient_field",
]
