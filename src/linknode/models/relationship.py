"""Relationship specs - declarative field-pair rules that produce graph edges."""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum
from urllib.parse import quote_plus, unquote_plus

from linknode.errors import RelationshipFormatError

RELATIONSHIP_TOKENS = 8


class EdgeStyle(str, Enum):
    """Stroke style tag attached to a directed edge."""

    SOLID = "solid"
    LONG_DASH = "longdash"
    DOTTED = "dotted"
    ALTERNATE = "alternate"


def encode_token(value: str) -> str:
    """URL-encode a single token (safe for pipe/comma delimited strings)."""
    return quote_plus(value, safe=".")


def decode_token(value: str) -> str:
    """Inverse of ``encode_token``."""
    return unquote_plus(value)


def _parse_bool(token: str) -> bool:
    lowered = token.lower()
    if lowered == "true":
        return True
    if lowered == "false":
        return False
    raise RelationshipFormatError(f"Expected true/false, got {token!r}")


@dataclass(frozen=True)
class RelationshipSpec:
    """
    Maps two fields of a record to the endpoints of a directed edge.

    Example: ``RelationshipSpec("sip", "dip")`` connects every source
    address to every destination address seen in the same record.
    """

    from_field: str
    to_field: str
    from_icon: str = ""
    to_icon: str = ""
    from_typed: bool = False
    to_typed: bool = False
    style: EdgeStyle = EdgeStyle.SOLID
    ignore_not_set: bool = False

    def encode(self) -> str:
        """Encode as a pipe-delimited, URL-encoded tuple."""
        tokens = [
            self.from_field,
            self.from_icon,
            "true" if self.from_typed else "false",
            self.to_field,
            self.to_icon,
            "true" if self.to_typed else "false",
            self.style.value,
            "true" if self.ignore_not_set else "false",
        ]
        return "|".join(encode_token(t) for t in tokens)

    @classmethod
    def decode(cls, text: str) -> "RelationshipSpec":
        """Parse the output of ``encode``.

        Raises:
            RelationshipFormatError: on a wrong token count or a bad value
        """
        tokens = [decode_token(t) for t in text.split("|")]
        if len(tokens) != RELATIONSHIP_TOKENS:
            raise RelationshipFormatError(
                f"Relationship needs {RELATIONSHIP_TOKENS} tokens, got {len(tokens)}: {text!r}"
            )
        from_field, from_icon, from_typed, to_field, to_icon, to_typed, style, ignore = tokens
        try:
            edge_style = EdgeStyle(style)
        except ValueError as e:
            raise RelationshipFormatError(f"Unknown edge style {style!r}") from e
        return cls(
            from_field=from_field,
            to_field=to_field,
            from_icon=from_icon,
            to_icon=to_icon,
            from_typed=_parse_bool(from_typed),
            to_typed=_parse_bool(to_typed),
            style=edge_style,
            ignore_not_set=_parse_bool(ignore),
        )

    @classmethod
    def parse_arrow(cls, text: str, **kwargs) -> "RelationshipSpec":
        """Parse the shorthand ``"from=>to"`` used on the command line."""
        if "=>" not in text:
            raise RelationshipFormatError(f"Expected 'from=>to', got {text!r}")
        from_field, to_field = (part.strip() for part in text.split("=>", 1))
        if not from_field or not to_field:
            raise RelationshipFormatError(f"Empty field in {text!r}")
        return cls(from_field=from_field, to_field=to_field, **kwargs)

    def __str__(self) -> str:
        return f"{self.from_field} => {self.to_field}"


class RelationshipHistory:
    """Most-recently-used list of encoded relationships."""

    def __init__(self, capacity: int = 20) -> None:
        self.capacity = capacity
        self._recent: list[str] = []

    def touch(self, spec: RelationshipSpec) -> None:
        """Record a use, moving the spec to the front."""
        encoded = spec.encode()
        if encoded in self._recent:
            self._recent.remove(encoded)
        self._recent.insert(0, encoded)
        del self._recent[self.capacity:]

    def recent(self) -> list[RelationshipSpec]:
        """Specs, most recent first."""
        return [RelationshipSpec.decode(e) for e in self._recent]

    def __len__(self) -> int:
        return len(self._recent)
