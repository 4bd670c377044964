"""Pointer-driven interaction state machine.

A press picks a state from the button, the held modifiers and the mode
latches; drags update a live rectangle; the release applies the
gesture and always returns the controller to NONE.

States:
- PANNING: translate the viewport (a click on empty canvas fits instead)
- SELECTING: rubber-band selection with a set operation
- MOVING: drag the selected entities through world space
- GRID/LINE/CIRCLE_LAYOUT: arrange the selection inside the drag
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from enum import Enum
from typing import TYPE_CHECKING

from linknode.graph.world import Point
from linknode.interaction.arrangements import circle_positions, grid_positions, line_positions
from linknode.interaction.selection import SetOperation

if TYPE_CHECKING:
    from linknode.view import LinkNodeView

logger = logging.getLogger(__name__)


class InteractionState(str, Enum):
    NONE = "none"
    PANNING = "panning"
    SELECTING = "selecting"
    MOVING = "moving"
    GRID_LAYOUT = "grid_layout"
    LINE_LAYOUT = "line_layout"
    CIRCLE_LAYOUT = "circle_layout"


class PointerButton(str, Enum):
    PRIMARY = "primary"
    SECONDARY = "secondary"


class ModeKey(str, Enum):
    """Keys that pre-select the modality of the next press."""

    PAN = "pan"
    GRID = "grid"
    LINE = "line"
    CIRCLE = "circle"


_LAYOUT_STATES = {
    ModeKey.GRID: InteractionState.GRID_LAYOUT,
    ModeKey.LINE: InteractionState.LINE_LAYOUT,
    ModeKey.CIRCLE: InteractionState.CIRCLE_LAYOUT,
}


@dataclass(frozen=True)
class PointerEvent:
    """A pointer event in screen pixels."""

    sx: float
    sy: float
    button: PointerButton = PointerButton.PRIMARY
    shift: bool = False
    ctrl: bool = False


@dataclass
class Drag:
    """Live drag vector in screen and world units."""

    sx0: float
    sy0: float
    sx1: float
    sy1: float
    wx0: float
    wy0: float
    wx1: float
    wy1: float

    @property
    def world_start(self) -> Point:
        return self.wx0, self.wy0

    @property
    def world_end(self) -> Point:
        return self.wx1, self.wy1

    @property
    def moved(self) -> bool:
        return self.sx0 != self.sx1 or self.sy0 != self.sy1


class InteractionController:
    """Turns press/drag/release sequences into view mutations."""

    def __init__(self, view: "LinkNodeView") -> None:
        self.view = view
        self.state = InteractionState.NONE
        self.drag: Drag | None = None
        self.latches: set[ModeKey] = set()
        self._shift = False
        self._ctrl = False

    # ------------------------------------------------------------------
    # Mode latches
    # ------------------------------------------------------------------

    def key_down(self, key: ModeKey) -> None:
        self.latches.add(key)

    def key_up(self, key: ModeKey) -> None:
        """Release a latch; a gesture already in progress is unaffected."""
        self.latches.discard(key)

    # ------------------------------------------------------------------
    # Pointer events
    # ------------------------------------------------------------------

    def press(self, event: PointerEvent) -> InteractionState:
        if self.state != InteractionState.NONE:
            logger.debug(f"Press ignored while {self.state.value}")
            return self.state

        transform = self.view.transform
        wx, wy = transform.sx_to_wx(event.sx), transform.sy_to_wy(event.sy)
        self.drag = Drag(event.sx, event.sy, event.sx, event.sy, wx, wy, wx, wy)
        self._shift, self._ctrl = event.shift, event.ctrl

        if event.button == PointerButton.SECONDARY or ModeKey.PAN in self.latches:
            self.state = InteractionState.PANNING
            return self.state

        for key, layout_state in _LAYOUT_STATES.items():
            if key in self.latches:
                self.state = layout_state
                return self.state

        selection = self.view.selection
        under = self.view.entities_at(event.sx, event.sy)
        if under and selection.intersects(under):
            self.state = InteractionState.MOVING
        elif under and not (event.shift or event.ctrl):
            selection.select(under)
            self.state = InteractionState.MOVING
            self.view.render()
        elif under:
            selection.apply(under, SetOperation.from_modifiers(event.shift, event.ctrl))
            self.drag = None
            self.state = InteractionState.NONE
            self.view.render()
        else:
            self.state = InteractionState.SELECTING
        return self.state

    def drag_to(self, event: PointerEvent) -> Drag | None:
        """Update the live drag; pan and line layouts honor axis locks.

        Shift locks to horizontal, ctrl to vertical.
        """
        if self.drag is None or self.state == InteractionState.NONE:
            return None
        sx, sy = event.sx, event.sy
        if self.state in (InteractionState.PANNING, InteractionState.LINE_LAYOUT):
            if event.shift:
                sy = self.drag.sy0
            elif event.ctrl:
                sx = self.drag.sx0
        transform = self.view.transform
        self.drag.sx1, self.drag.sy1 = sx, sy
        self.drag.wx1, self.drag.wy1 = transform.sx_to_wx(sx), transform.sy_to_wy(sy)
        return self.drag

    def release(self, event: PointerEvent) -> InteractionState:
        """Finish the gesture; the controller is back in NONE afterwards."""
        drag = self.drag_to(event)
        state = self.state
        try:
            if drag is None:
                return InteractionState.NONE
            if state == InteractionState.PANNING:
                self._release_pan(drag)
            elif state == InteractionState.SELECTING:
                self._release_select(drag)
            elif state == InteractionState.MOVING:
                self._release_move(drag)
            elif state in (
                InteractionState.GRID_LAYOUT,
                InteractionState.LINE_LAYOUT,
                InteractionState.CIRCLE_LAYOUT,
            ):
                self._release_layout(state, drag)
        finally:
            self.state = InteractionState.NONE
            self.drag = None
        return self.state

    # ------------------------------------------------------------------
    # Gesture completion
    # ------------------------------------------------------------------

    def _operation(self) -> SetOperation:
        return SetOperation.from_modifiers(self._shift, self._ctrl)

    def _release_pan(self, drag: Drag) -> None:
        if not drag.moved:
            if not self.view.entities_at(drag.sx0, drag.sy0):
                self.view.zoom_to_fit()
            return
        # Content follows the pointer, so the viewport moves the other way
        self.view.transform.pan(drag.wx0 - drag.wx1, drag.wy0 - drag.wy1)
        self.view.render()

    def _release_select(self, drag: Drag) -> None:
        picked = self.view.entities_in_rect(drag.sx0, drag.sy0, drag.sx1, drag.sy1)
        self.view.selection.apply(picked, self._operation())
        logger.debug(f"Rubber-band picked {len(picked)} entities")
        self.view.render()

    def _release_move(self, drag: Drag) -> None:
        if not drag.moved:
            under = self.view.entities_at(drag.sx0, drag.sy0)
            self.view.selection.apply(under, self._operation())
            self.view.render()
            return
        world = self.view.engine.world
        moved = world.translate(self.view.selection, drag.wx1 - drag.wx0, drag.wy1 - drag.wy0)
        for entity in moved:
            self.view.transform.transform(entity)
        self.view.render()

    def _release_layout(self, state: InteractionState, drag: Drag) -> None:
        entities = sorted(self.view.selection, key=lambda e: (-self.view.entity_total(e), e))
        if not entities:
            return
        if state == InteractionState.GRID_LAYOUT:
            points = grid_positions(len(entities), drag.world_start, drag.world_end)
        elif state == InteractionState.LINE_LAYOUT:
            points = line_positions(len(entities), drag.world_start, drag.world_end)
        else:
            radius = ((drag.wx1 - drag.wx0) ** 2 + (drag.wy1 - drag.wy0) ** 2) ** 0.5
            points = circle_positions(len(entities), drag.world_start, radius)

        world = self.view.engine.world
        for entity, (x, y) in zip(entities, points):
            world.set(entity, x, y)
            self.view.transform.transform(entity)
        logger.info(f"Arranged {len(entities)} entities ({state.value})")
        self.view.render()
