"""Selection, direct-manipulation layouts and the pointer state machine."""

from linknode.interaction.arrangements import (
    circle_positions,
    grid_positions,
    grid_shape,
    line_positions,
)
from linknode.interaction.controller import (
    Drag,
    InteractionController,
    InteractionState,
    ModeKey,
    PointerButton,
    PointerEvent,
)
from linknode.interaction.selection import Selection, SetOperation

__all__ = [
    "Selection",
    "SetOperation",
    "InteractionController",
    "InteractionState",
    "ModeKey",
    "PointerButton",
    "PointerEvent",
    "Drag",
    "grid_shape",
    "grid_positions",
    "line_positions",
    "circle_positions",
]
