"""Entity selection and the set operations applied to it."""

from __future__ import annotations

from collections.abc import Iterable, Iterator
from enum import Enum


class SetOperation(str, Enum):
    """How a newly picked entity set combines with the selection."""

    REPLACE = "replace"
    ADD = "add"
    SUBTRACT = "subtract"
    INTERSECT = "intersect"

    @classmethod
    def from_modifiers(cls, shift: bool, ctrl: bool) -> "SetOperation":
        """plain = replace, shift = subtract, ctrl = add, both = intersect."""
        if shift and ctrl:
            return cls.INTERSECT
        if shift:
            return cls.SUBTRACT
        if ctrl:
            return cls.ADD
        return cls.REPLACE


class Selection:
    """The set of selected entity strings."""

    def __init__(self, entities: Iterable[str] = ()) -> None:
        self._entities: set[str] = set(entities)

    def apply(self, entities: Iterable[str], operation: SetOperation) -> None:
        picked = set(entities)
        if operation == SetOperation.REPLACE:
            self._entities = picked
        elif operation == SetOperation.ADD:
            self._entities |= picked
        elif operation == SetOperation.SUBTRACT:
            self._entities -= picked
        else:
            self._entities &= picked

    def select(self, entities: Iterable[str]) -> None:
        self.apply(entities, SetOperation.REPLACE)

    def add(self, entities: Iterable[str]) -> None:
        self.apply(entities, SetOperation.ADD)

    def subtract(self, entities: Iterable[str]) -> None:
        self.apply(entities, SetOperation.SUBTRACT)

    def intersect(self, entities: Iterable[str]) -> None:
        self.apply(entities, SetOperation.INTERSECT)

    def clear(self) -> None:
        self._entities = set()

    def intersects(self, entities: Iterable[str]) -> bool:
        return any(e in self._entities for e in entities)

    def entities(self) -> set[str]:
        """Copy of the selected entities."""
        return set(self._entities)

    def __contains__(self, entity: object) -> bool:
        return entity in self._entities

    def __iter__(self) -> Iterator[str]:
        return iter(self._entities)

    def __len__(self) -> int:
        return len(self._entities)
