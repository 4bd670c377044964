"""Record model - bundles, tablets and the record source."""

from __future__ import annotations

from collections.abc import Callable, Iterable, Iterator, Mapping
from dataclasses import dataclass, field
from datetime import datetime
from typing import Any, TYPE_CHECKING

if TYPE_CHECKING:
    from linknode.models.relationship import RelationshipSpec


@dataclass(eq=False)
class Bundle:
    """
    An opaque reference to one tabular record.

    Bundles hash by identity: two records with identical values are
    still two distinct bundles.
    """

    values: Mapping[str, Any]
    tablet: str = ""
    timestamp: datetime | None = None

    def get(self, field_name: str) -> Any:
        """Raw value of a field (None when absent)."""
        return self.values.get(field_name)

    def __repr__(self) -> str:
        return f"Bundle({self.tablet!r}, {dict(self.values)!r})"


class Tablet:
    """A tabular source: an ordered field schema plus its records.

    Field resolution turns one record's field into zero or more string
    keys. Blank values resolve to the not-set sentinel so that the
    graph can still show (or deliberately ignore) them.
    """

    def __init__(
        self,
        name: str,
        fields: Iterable[str],
        multi_valued: Iterable[str] = (),
        not_set: str = "[notset]",
        delimiter: str = ",",
    ) -> None:
        self.name = name
        self.fields: list[str] = list(fields)
        self.multi_valued = set(multi_valued)
        self.not_set = not_set
        self.delimiter = delimiter
        self.bundles: list[Bundle] = []
        self._field_set = set(self.fields)

    def add(self, values: Mapping[str, Any], timestamp: datetime | None = None) -> Bundle:
        """Append a record and return its bundle."""
        for name in values:
            if name not in self._field_set:
                self.fields.append(name)
                self._field_set.add(name)
        bundle = Bundle(values=dict(values), tablet=self.name, timestamp=timestamp)
        self.bundles.append(bundle)
        return bundle

    def can_resolve(self, field_name: str) -> bool:
        """Check whether this tablet produces values for a field."""
        return field_name in self._field_set

    def fills(self, spec: "RelationshipSpec") -> bool:
        """Check whether both endpoint fields of a relationship resolve."""
        return self.can_resolve(spec.from_field) and self.can_resolve(spec.to_field)

    def resolve(self, field_name: str, bundle: Bundle) -> list[str]:
        """Resolve a field of a record to its string keys.

        Returns:
            Deduplicated keys in first-seen order; ``[]`` if the tablet
            does not have the field at all.
        """
        if not self.can_resolve(field_name):
            return []

        raw = bundle.get(field_name)
        if raw is None:
            return [self.not_set]

        if isinstance(raw, (list, tuple, set, frozenset)):
            parts = [str(v).strip() for v in raw]
        elif field_name in self.multi_valued:
            parts = [p.strip() for p in str(raw).split(self.delimiter)]
        else:
            parts = [str(raw).strip()]

        keys: list[str] = []
        for part in parts:
            key = part if part else self.not_set
            if key not in keys:
                keys.append(key)
        return keys or [self.not_set]

    def __iter__(self) -> Iterator[Bundle]:
        return iter(self.bundles)

    def __len__(self) -> int:
        return len(self.bundles)

    def __repr__(self) -> str:
        return f"Tablet({self.name!r}, fields={self.fields!r}, records={len(self.bundles)})"


@dataclass
class Bundles:
    """The record source: an ordered collection of tablets.

    A ``Bundles`` may also be a restricted view (render scope) over the
    same tablets, produced by ``subset``.
    """

    tablets: list[Tablet] = field(default_factory=list)
    _members: set[Bundle] | None = None

    def __iter__(self) -> Iterator[Bundle]:
        for tablet in self.tablets:
            for bundle in tablet:
                if self._members is None or bundle in self._members:
                    yield bundle

    def __len__(self) -> int:
        return sum(1 for _ in self)

    def __contains__(self, bundle: object) -> bool:
        if self._members is not None:
            return bundle in self._members
        return any(bundle in t.bundles for t in self.tablets)

    def tablet_bundles(self, tablet: Tablet) -> Iterator[Bundle]:
        """Records of one tablet that belong to this collection."""
        for bundle in tablet:
            if self._members is None or bundle in self._members:
                yield bundle

    def subset(self, predicate: Callable[[Bundle], bool]) -> "Bundles":
        """Restrict to the records matching a predicate."""
        return Bundles(tablets=self.tablets, _members={b for b in self if predicate(b)})

    def time_range(self) -> tuple[datetime, datetime] | None:
        """Earliest and latest record timestamps, if any record has one."""
        stamps = [b.timestamp for b in self if b.timestamp is not None]
        if not stamps:
            return None
        return min(stamps), max(stamps)

    @classmethod
    def from_rows(
        cls,
        rows: Iterable[Mapping[str, Any]],
        name: str = "records",
        multi_valued: Iterable[str] = (),
        not_set: str = "[notset]",
        delimiter: str = ",",
    ) -> "Bundles":
        """Build a single-tablet record source from dictionaries."""
        rows = list(rows)
        fields: list[str] = []
        for row in rows:
            for key in row:
                if key not in fields:
                    fields.append(key)
        tablet = Tablet(
            name, fields, multi_valued=multi_valued, not_set=not_set, delimiter=delimiter
        )
        for row in rows:
            tablet.add(row)
        return cls(tablets=[tablet])
