"""Property snapshots: turn an opaque object into a string-keyed mapping.

Lookup order for a given object:
1. A class-level serialization strategy (``@serialization_strategy``) or the
   ``__reql_serialize__`` capability; its mapping is used as-is.
2. Otherwise the class must be public, and the snapshot is read from the
   object's declared shape: dataclass fields, ``property`` members, then
   public instance attributes.

Fields marked with ``transient_field`` or named by ``excluded_fields()`` are
left out. Narrow (32-bit) integer values are rejected so callers widen them
before they reach the wire.
"""

from __future__ import annotations

import dataclasses
from collections.abc import Callable, Iterator, Mapping
from typing import Any, Final, Protocol, TypeVar, runtime_checkable

import structlog

from reql_ast.coercion.primitives import is_narrow_int
from reql_ast.errors import ReqlAccessError, ReqlDriverError, ReqlError

TRANSIENT_METADATA_KEY: Final[str] = "reql_transient"
STRATEGY_ATTRIBUTE: Final[str] = "__reql_strategy__"

_SLOT_NAMES_TO_SKIP: Final[frozenset[str]] = frozenset({"__dict__", "__weakref__"})

TClass = TypeVar("TClass", bound=type)

_LOGGER = structlog.get_logger(__name__)


class SerializationStrategy:
    """Caller-supplied encoding for a class; instantiated once per snapshot."""

    def serialize(self, obj: Any) -> Mapping[str, object]:
        raise NotImplementedError


@runtime_checkable
class CustomSerialize(Protocol):
    def __reql_serialize__(self) -> Mapping[str, object]: ...


@runtime_checkable
class ExcludesFields(Protocol):
    def excluded_fields(self) -> set[str] | frozenset[str]: ...


def serialization_strategy(
    strategy: type[SerializationStrategy],
) -> Callable[[TClass], TClass]:
    """Class decorator that routes snapshots of the class through ``strategy``."""

    if not (isinstance(strategy, type) and issubclass(strategy, SerializationStrategy)):
        raise TypeError("strategy must be a SerializationStrategy subclass")

    def decorate(cls: TClass) -> TClass:
        setattr(cls, STRATEGY_ATTRIBUTE, strategy)
        return cls

    return decorate


def transient_field(**kwargs: Any) -> Any:
    """``dataclasses.field`` that is excluded from property snapshots."""

    metadata = dict(kwargs.pop("metadata", None) or {})
    metadata[TRANSIENT_METADATA_KEY] = True
    return dataclasses.field(metadata=metadata, **kwargs)


def property_snapshot(obj: object, *, logger: Any | None = None) -> dict[str, object]:
    """Return the string-keyed property mapping used to coerce ``obj``.

    Raises ``ReqlAccessError`` for non-public classes and narrow integer
    values; any other failure while reading the object surfaces as
    ``ReqlDriverError`` chained from the underlying exception.
    """

    log = logger if logger is not None else _LOGGER
    try:
        custom = _custom_snapshot(obj, log)
        if custom is not None:
            return custom

        cls = type(obj)
        if isinstance(obj, type):
            raise ReqlDriverError("Can't convert %r to a ReqlAst: classes have no properties", obj)
        if not _is_public_class(cls):
            raise ReqlAccessError("%r's class should be public", obj)

        excluded = _excluded_names(obj)
        snapshot: dict[str, object] = {}
        for name in _readable_names(obj):
            if name in excluded:
                continue
            value = getattr(obj, name)
            if is_narrow_int(value):
                raise ReqlAccessError(
                    "Make %s of %r a 64-bit integer instead of %s",
                    name,
                    obj,
                    type(value).__name__,
                )
            snapshot[name] = value
    except ReqlError:
        raise
    except Exception as exc:  # noqa: BLE001 - reader failures are re-raised as driver errors.
        raise ReqlDriverError("Can't convert %r to a ReqlAst: %s", obj, exc) from exc

    log.debug("reql_snapshot_extracted", type=type(obj).__qualname__, keys=sorted(snapshot))
    return snapshot


def _custom_snapshot(obj: object, log: Any) -> dict[str, object] | None:
    strategy_cls = getattr(type(obj), STRATEGY_ATTRIBUTE, None)
    if strategy_cls is not None:
        log.debug(
            "reql_strategy_delegated",
            type=type(obj).__qualname__,
            strategy=strategy_cls.__qualname__,
        )
        return _as_snapshot(strategy_cls().serialize(obj), obj)
    if isinstance(obj, CustomSerialize) and not isinstance(obj, type):
        return _as_snapshot(obj.__reql_serialize__(), obj)
    return None


def _as_snapshot(raw: object, obj: object) -> dict[str, object]:
    if not isinstance(raw, Mapping):
        raise ReqlDriverError(
            "Can't convert %r to a ReqlAst: custom serialization returned %s",
            obj,
            type(raw).__name__,
        )
    return dict(raw)


def _is_public_class(cls: type) -> bool:
    return not cls.__name__.startswith("_") and "<locals>" not in cls.__qualname__


def _excluded_names(obj: object) -> frozenset[str]:
    names: set[str] = set()
    if dataclasses.is_dataclass(obj):
        names.update(
            item.name
            for item in dataclasses.fields(obj)
            if item.metadata.get(TRANSIENT_METADATA_KEY)
        )
    if isinstance(obj, ExcludesFields):
        names.update(obj.excluded_fields())
    return frozenset(names)


def _readable_names(obj: object) -> list[str]:
    cls = type(obj)
    has_shape = hasattr(obj, "__dict__") or dataclasses.is_dataclass(obj)
    ordered: dict[str, None] = {}

    if dataclasses.is_dataclass(obj):
        for item in dataclasses.fields(obj):
            ordered[item.name] = None

    for name in _property_names(cls):
        has_shape = True
        ordered[name] = None

    for name in _slot_names(cls):
        has_shape = True
        if hasattr(obj, name):
            ordered[name] = None

    for name in getattr(obj, "__dict__", {}):
        ordered[name] = None

    if not has_shape:
        raise ReqlDriverError(
            "Can't convert %r to a ReqlAst: %s has no readable properties", obj, cls.__qualname__
        )
    return [name for name in ordered if isinstance(name, str) and not name.startswith("_")]


def _property_names(cls: type) -> Iterator[str]:
    for klass in reversed(cls.__mro__):
        for name, member in vars(klass).items():
            if isinstance(member, property) and member.fget is not None:
                yield name


def _slot_names(cls: type) -> Iterator[str]:
    for klass in reversed(cls.__mro__):
        slots = vars(klass).get("__slots__", ())
        if isinstance(slots, str):
            slots = (slots,)
        for name in slots:
            if name not in _SLOT_NAMES_TO_SKIP:
                yield name


__all__ = [
    "CustomSerialize",
    "ExcludesFields",
    "STRATEGY_ATTRIBUTE",
    "SerializationStrategy",
    "TRANSIENT_METADATA_KEY",
    "property_snapshot",
    "serialization_strategy",
    "transient_field",
]
