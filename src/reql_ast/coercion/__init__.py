"""Value coercion: native Python values to query term trees."""

from reql_ast.coercion.coercer import Coercer, default_coercer, to_ast, to_expr
from reql_ast.coercion.primitives import format_timestamp, is_narrow_int, resolve_zone
from reql_ast.coercion.snapshot import (
    CustomSerialize,
    ExcludesFields,
    SerializationStrategy,
    property_snapshot,
    serialization_strategy,
    transient_field,
)

__all__ = [
    "Coercer",
    "CustomSerialize",
    "ExcludesFields",
    "SerializationStrategy",
    "default_coercer",
    "format_timestamp",
    "is_narrow_int",
    "property_snapshot",
    "resolve_zone",
    "serialization_strategy",
    "to_ast",
    "to_expr",
    "transient_field",
]
