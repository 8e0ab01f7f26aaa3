from __future__ import annotations

from dataclasses import dataclass
from enum import Enum
from typing import Optional, Protocol, Tuple

from protocol import Point, round_half_away_from_zero


# ---------- Coordinate mapping ----------
@dataclass(frozen=True)
class CanvasGeometry:
    """Where the canvas sits on screen and the resolution it draws at."""

    left: float
    top: float
    displayed_width: float
    displayed_height: float
    internal_width: int
    internal_height: int

    def __post_init__(self) -> None:
        if self.displayed_width <= 0 or self.displayed_height <= 0:
            raise ValueError("displayed canvas size must be positive")

    @classmethod
    def unscaled(cls, width: int, height: int) -> "CanvasGeometry":
        return cls(0.0, 0.0, float(width), float(height), width, height)


def map_pointer(client_x: float, client_y: float, geometry: CanvasGeometry) -> Point:
    """Convert a pointer position in display space to a grid Point."""

    scale_x = geometry.internal_width / geometry.displayed_width
    scale_y = geometry.internal_height / geometry.displayed_height
    return Point(
        round_half_away_from_zero((client_x - geometry.left) * scale_x),
        round_half_away_from_zero((client_y - geometry.top) * scale_y),
    )


# ---------- Selection ----------
class SelectionState(Enum):
    EMPTY = "empty"
    HAS_START = "has_start"
    HAS_BOTH = "has_both"


class SelectionEffect(Enum):
    CLEAR_CANVAS = "clear_canvas"
    DRAW_START = "draw_start"
    DRAW_END = "draw_end"


class Cancellable(Protocol):
    def cancel(self) -> None: ...


@dataclass(frozen=True)
class Selection:
    start: Optional[Point] = None
    end: Optional[Point] = None

    def __post_init__(self) -> None:
        if self.end is not None and self.start is None:
            raise ValueError("end cannot be set without start")

    @property
    def complete(self) -> bool:
        return self.start is not None and self.end is not None


class SelectionStateMachine:
    """Tracks start/end picks; a pick after both are set starts over.

    The machine does not draw. Each transition returns the effects the
    caller has to apply, in order. Clearing the selection cancels whatever
    animation ``animations`` currently runs.
    """

    def __init__(self, animations: Cancellable) -> None:
        self._animations = animations
        self.selection = Selection()

    @property
    def state(self) -> SelectionState:
        if self.selection.start is None:
            return SelectionState.EMPTY
        if self.selection.end is None:
            return SelectionState.HAS_START
        return SelectionState.HAS_BOTH

    def choose(self, point: Point) -> Tuple[SelectionEffect, ...]:
        state = self.state
        if state is SelectionState.EMPTY:
            self.selection = Selection(start=point)
            return (SelectionEffect.DRAW_START,)
        if state is SelectionState.HAS_START:
            self.selection = Selection(start=self.selection.start, end=point)
            return (SelectionEffect.DRAW_END,)

        effects = self.reset()
        self.selection = Selection(start=point)
        return effects + (SelectionEffect.DRAW_START,)

    def reset(self) -> Tuple[SelectionEffect, ...]:
        self._animations.cancel()
        self.selection = Selection()
        return (SelectionEffect.CLEAR_CANVAS,)
