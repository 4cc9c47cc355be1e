"""Unit tests for property snapshots of opaque objects."""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any

import numpy as np
import pytest

from reql_ast.coercion import (
    SerializationStrategy,
    property_snapshot,
    serialization_strategy,
    to_ast,
    transient_field,
)
from reql_ast.errors import ReqlAccessError, ReqlDriverError


@dataclass
class Player:
    name: str
    level: int
    session_token: str = transient_field(default="secret")


class Inventory:
    def __init__(self) -> None:
        self.gold = 10
        self._cache: dict[str, int] = {}

    @property
    def item_count(self) -> int:
        return 3

    def total(self) -> int:
        return self.gold


class _HiddenRecord:
    def __init__(self) -> None:
        self.value = 1


class NarrowStats:
    def __init__(self) -> None:
        self.hp = np.int16(5)


class BrokenProperty:
    @property
    def value(self) -> int:
        raise RuntimeError("boom")


class PointStrategy(SerializationStrategy):
    def serialize(self, obj: Any) -> dict[str, object]:
        return {"xy": [obj.x, obj.y]}


@serialization_strategy(PointStrategy)
class Point:
    def __init__(self, x: int, y: int) -> None:
        self.x = x
        self.y = y


@serialization_strategy(PointStrategy)
class _PrivatePoint:
    def __init__(self) -> None:
        self.x = 0
        self.y = 0


class Temperature:
    def __init__(self, celsius: float) -> None:
        self.celsius = celsius

    def __reql_serialize__(self) -> dict[str, object]:
        return {"celsius": self.celsius, "unit": "C"}


class Account:
    def __init__(self) -> None:
        self.user = "ada"
        self.password = "hunter2"

    def excluded_fields(self) -> set[str]:
        return {"password"}


class Slotted:
    __slots__ = ("a", "b")

    def __init__(self) -> None:
        self.a = 1


class ListStrategy(SerializationStrategy):
    def serialize(self, obj: Any) -> list[str]:  # type: ignore[override]
        return ["not", "a", "mapping"]


@serialization_strategy(ListStrategy)
class Unmappable:
    pass


class ExplodingStrategy(SerializationStrategy):
    def __init__(self) -> None:
        raise RuntimeError("strategy unavailable")


@serialization_strategy(ExplodingStrategy)
class Exploding:
    pass


def test_dataclass_fields_in_declaration_order() -> None:
    snapshot = property_snapshot(Player("ada", 3))

    assert list(snapshot) == ["name", "level"]
    assert snapshot == {"name": "ada", "level": 3}


def test_properties_then_public_attributes() -> None:
    snapshot = property_snapshot(Inventory())

    assert snapshot == {"item_count": 3, "gold": 10}
    assert list(snapshot) == ["item_count", "gold"]


def test_slots_skip_unset_members() -> None:
    assert property_snapshot(Slotted()) == {"a": 1}


def test_excluded_fields_are_dropped() -> None:
    assert property_snapshot(Account()) == {"user": "ada"}


def test_non_public_class_is_rejected() -> None:
    with pytest.raises(ReqlAccessError, match="class should be public"):
        property_snapshot(_HiddenRecord())


def test_class_defined_in_function_is_rejected() -> None:
    class Local:
        def __init__(self) -> None:
            self.value = 1

    with pytest.raises(ReqlAccessError, match="class should be public"):
        property_snapshot(Local())


def test_narrow_integer_value_is_rejected() -> None:
    with pytest.raises(ReqlAccessError, match="Make hp of .* a 64-bit integer instead of int16"):
        property_snapshot(NarrowStats())


def test_reader_failure_is_wrapped() -> None:
    with pytest.raises(ReqlDriverError, match="boom") as excinfo:
        property_snapshot(BrokenProperty())

    assert not isinstance(excinfo.value, ReqlAccessError)
    assert isinstance(excinfo.value.__cause__, RuntimeError)


def test_value_without_shape_is_rejected() -> None:
    with pytest.raises(ReqlDriverError, match="no readable properties"):
        property_snapshot({1, 2})
    with pytest.raises(ReqlDriverError, match="no readable properties"):
        to_ast(b"raw")


def test_strategy_takes_precedence() -> None:
    assert property_snapshot(Point(1, 2)) == {"xy": [1, 2]}
    assert to_ast(Point(1, 2)).build() == {"xy": [2, [1, 2]]}


def test_strategy_is_consulted_before_visibility() -> None:
    assert property_snapshot(_PrivatePoint()) == {"xy": [0, 0]}


def test_custom_serialize_capability() -> None:
    assert to_ast(Temperature(21.5)).build() == {"celsius": 21.5, "unit": "C"}


def test_strategy_must_return_mapping() -> None:
    with pytest.raises(ReqlDriverError, match="custom serialization returned list"):
        property_snapshot(Unmappable())


def test_strategy_construction_failure_is_wrapped() -> None:
    with pytest.raises(ReqlDriverError, match="strategy unavailable") as excinfo:
        property_snapshot(Exploding())

    assert isinstance(excinfo.value.__cause__, RuntimeError)


def test_decorator_requires_strategy_subclass() -> None:
    with pytest.raises(TypeError):
        serialization_strategy(dict)  # type: ignore[arg-type]
