"""Render options and the bookmarkable view configuration string."""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from enum import Enum
from typing import Any

from linknode.errors import RelationshipFormatError, ViewConfigError
from linknode.models.relationship import RelationshipSpec, decode_token, encode_token
from linknode.render.labels import LabelKind, LabelSpec
from linknode.render.modes import (
    BackgroundMode,
    LinkColorMode,
    LinkSizeMode,
    NodeColorMode,
    NodeSizeMode,
)

logger = logging.getLogger(__name__)


@dataclass
class RenderOptions:
    """Everything besides the graph and the viewport that shapes a frame."""

    node_size: NodeSizeMode = NodeSizeMode.COUNT
    node_color: NodeColorMode = NodeColorMode.COUNT
    link_size: LinkSizeMode = LinkSizeMode.FIXED
    link_color: LinkColorMode = LinkColorMode.DEFAULT
    count_by: str | None = None
    color_by: str | None = None

    curves: bool = False
    transparency: bool = False
    arrows: bool = True
    timing_marks: bool = False
    strict_matches: bool = False
    dynamic_labels: bool = False
    node_labels: bool = True
    link_labels: bool = False

    node_label_selection: list[LabelSpec] = field(
        default_factory=lambda: [LabelSpec(LabelKind.ENTITY)]
    )
    link_label_selection: list[LabelSpec] = field(
        default_factory=lambda: [LabelSpec(LabelKind.COUNT)]
    )
    background: BackgroundMode = BackgroundMode.NONE


def _bool(value: str) -> bool:
    if value == "true":
        return True
    if value == "false":
        return False
    raise ValueError(f"expected true/false, got {value!r}")


def _optional_field(value: str) -> str | None:
    return decode_token(value) or None


def _labels(value: str) -> list[LabelSpec]:
    if not value:
        return []
    return [LabelSpec.parse(decode_token(v)) for v in value.split(",")]


def _relationships(value: str) -> list[RelationshipSpec]:
    if not value:
        return []
    return [RelationshipSpec.decode(decode_token(v)) for v in value.split(",")]


# key -> (options attribute, parser); "relationships" is handled apart
_FIELDS: dict[str, tuple[str, Any]] = {
    "nodesz": ("node_size", NodeSizeMode),
    "nodecolor": ("node_color", NodeColorMode),
    "linksz": ("link_size", LinkSizeMode),
    "linkcolor": ("link_color", LinkColorMode),
    "countby": ("count_by", _optional_field),
    "colorby": ("color_by", _optional_field),
    "curves": ("curves", _bool),
    "transparent": ("transparency", _bool),
    "arrows": ("arrows", _bool),
    "timing": ("timing_marks", _bool),
    "strict": ("strict_matches", _bool),
    "dynlabels": ("dynamic_labels", _bool),
    "nodelabels": ("node_labels", _bool),
    "linklabels": ("link_labels", _bool),
    "nodelabelsel": ("node_label_selection", _labels),
    "linklabelsel": ("link_label_selection", _labels),
    "background": ("background", BackgroundMode),
}
RELATIONSHIPS_KEY = "relationships"


def _format(value: Any) -> str:
    if isinstance(value, bool):
        return "true" if value else "false"
    if isinstance(value, Enum):
        return value.value
    if value is None:
        return ""
    if isinstance(value, list):
        return ",".join(encode_token(v.encode()) for v in value)
    return encode_token(str(value))


class ViewConfig:
    """Pipe-delimited ``key=value`` encoding of the render options plus
    the active relationship list.

    Every value is URL-encoded, so each token splits into exactly one
    key and one value on ``=``.
    """

    @staticmethod
    def serialize(options: RenderOptions, relationships: list[RelationshipSpec]) -> str:
        tokens = [f"{key}={_format(getattr(options, attr))}" for key, (attr, _) in _FIELDS.items()]
        tokens.append(f"{RELATIONSHIPS_KEY}={_format(relationships)}")
        return "|".join(tokens)

    @staticmethod
    def parse(text: str) -> tuple[RenderOptions, list[RelationshipSpec]]:
        """Parse a configuration string.

        Keys that are not present keep their defaults. Nothing is
        returned unless every token parses.

        Raises:
            ViewConfigError: on an unexpected key, a token that is not
                ``key=value``, a repeated key or an invalid value
        """
        values: dict[str, Any] = {}
        relationships: list[RelationshipSpec] = []
        seen: set[str] = set()

        for token in text.split("|") if text else []:
            parts = token.split("=")
            if len(parts) != 2:
                raise ViewConfigError(f"Malformed token {token!r}: expected key=value")
            key, raw = parts
            if key in seen:
                raise ViewConfigError(f"Repeated key {key!r}")
            seen.add(key)

            if key == RELATIONSHIPS_KEY:
                try:
                    relationships = _relationships(raw)
                except RelationshipFormatError as e:
                    raise ViewConfigError(f"Bad relationship list: {e}") from e
                continue

            if key not in _FIELDS:
                raise ViewConfigError(f"Unexpected key {key!r}")
            attr, parser = _FIELDS[key]
            try:
                values[attr] = parser(raw)
            except ValueError as e:
                raise ViewConfigError(f"Bad value for {key!r}: {raw!r}") from e

        logger.debug(f"Parsed view config: {len(values)} options, {len(relationships)} relationships")
        return RenderOptions(**values), relationships
