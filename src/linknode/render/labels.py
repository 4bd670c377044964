"""Labeling engine - short display strings and colors for aggregated shapes."""

from __future__ import annotations

from collections.abc import Callable, Iterable
from dataclasses import dataclass, field
from enum import Enum

from linknode.errors import ViewConfigError
from linknode.models.records import Bundle
from linknode.render.colors import ColorManager


class LabelKind(str, Enum):
    """What a label calculator reports."""

    ENTITY = "entity"  # The aggregated entity name(s)
    COUNT = "count"  # Number of backing records
    FIELD = "field"  # Distinct values of one field among the backing records


@dataclass
class LabelTarget:
    """Everything a calculator may look at for one node or link."""

    entities: list[str]
    bundles: set[Bundle]
    resolver: Callable[[Bundle, str], "list[str] | None"]
    total: float = 0.0
    maximum: float = 0.0
    _values: dict[str, list[str]] = field(default_factory=dict)

    def field_values(self, field_name: str) -> list[str]:
        """Sorted distinct values of a field among the backing records."""
        if field_name not in self._values:
            values: set[str] = set()
            for bundle in self.bundles:
                values.update(self.resolver(bundle, field_name) or [])
            self._values[field_name] = sorted(values)
        return self._values[field_name]


@dataclass(frozen=True)
class LabelSpec:
    """A label calculator: a kind plus, for FIELD, the field name."""

    kind: LabelKind
    field_name: str | None = None

    def encode(self) -> str:
        if self.kind == LabelKind.FIELD:
            return f"{self.kind.value}:{self.field_name}"
        return self.kind.value

    @classmethod
    def parse(cls, text: str) -> "LabelSpec":
        """Parse ``entity``, ``count`` or ``field:<name>``."""
        kind_text, _, field_name = text.partition(":")
        try:
            kind = LabelKind(kind_text)
        except ValueError as e:
            raise ViewConfigError(f"Unknown label kind {kind_text!r}") from e
        if kind == LabelKind.FIELD:
            if not field_name:
                raise ViewConfigError(f"Field label needs a field name: {text!r}")
            return cls(kind, field_name)
        return cls(kind)

    def compute_label_text(self, target: LabelTarget) -> str:
        if self.kind == LabelKind.ENTITY:
            names = sorted(target.entities)
            if not names:
                return ""
            if len(names) == 1:
                return names[0]
            return f"{names[0]} (+{len(names) - 1})"
        if self.kind == LabelKind.COUNT:
            return str(len(target.bundles))
        values = target.field_values(self.field_name or "")
        if len(values) == 1:
            return values[0]
        return f"[{len(values)} {self.field_name}]"

    def compute_color(self, target: LabelTarget, colors: ColorManager) -> str:
        if self.kind == LabelKind.ENTITY:
            if len(target.entities) == 1:
                return colors.color_for(target.entities[0])
            return colors.multi
        if self.kind == LabelKind.COUNT:
            return colors.log_color(target.total, target.maximum)
        values = target.field_values(self.field_name or "")
        if len(values) == 1:
            return colors.color_for(values[0])
        return colors.multi


def compose_label(specs: Iterable[LabelSpec], target: LabelTarget, max_chars: int) -> str:
    """Join the text of several calculators, truncated to a length."""
    parts = [p for p in (spec.compute_label_text(target) for spec in specs) if p]
    text = " | ".join(parts)
    if len(text) > max_chars:
        text = text[: max(0, max_chars - 3)] + "..."
    return text
