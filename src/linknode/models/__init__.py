"""Link-node data models."""

from linknode.models.records import Bundle, Bundles, Tablet
from linknode.models.relationship import (
    EdgeStyle,
    RelationshipHistory,
    RelationshipSpec,
    decode_token,
    encode_token,
)

__all__ = [
    "Bundle",
    "Bundles",
    "Tablet",
    "EdgeStyle",
    "RelationshipSpec",
    "RelationshipHistory",
    "encode_token",
    "decode_token",
]
