"""Cooperative, cancellable rendering of a solver result.

Everything runs on one asyncio loop. The only places where other work can
interleave are the scheduler's suspend points, and those are also the only
places where cancellation is observed.
"""

from __future__ import annotations

import asyncio
import logging
from typing import Awaitable, Callable, Optional, Protocol, Sequence, Tuple

from protocol import Algorithm, ParsedResult, Point

logger = logging.getLogger(__name__)

Color = Tuple[int, int, int, int]

# Tunables. Dots are batched so long traces stay watchable.
EXPLORATION_BATCH = 3
FRAME_DELAY = 0.02

START_COLOR: Color = (72, 187, 120, 255)
END_COLOR: Color = (245, 101, 101, 255)
PATH_COLOR: Color = (255, 215, 0, 255)
EXPLORED_COLORS = {
    Algorithm.ASTAR: (255, 0, 0, 51),
    Algorithm.DIJKSTRA: (59, 130, 246, 51),
}


class Canvas(Protocol):
    def reset(self) -> None: ...

    def draw_marker(self, point: Point, color: Color) -> None: ...

    def draw_dot(self, point: Point, color: Color) -> None: ...

    def draw_segment(self, a: Point, b: Point, color: Color) -> None: ...

    def present(self) -> None: ...


class AnimationSession:
    """Cancellation token for a single animation run."""

    def __init__(self) -> None:
        self.cancelled = False

    def cancel(self) -> None:
        self.cancelled = True


class AnimationScheduler:
    """Draws the exploration trace, then the path, yielding between batches.

    Only one session may be active. ``claim`` hands out the session and
    ``release`` gives the slot back; callers keep the slot for the whole
    request so a second find-path cannot overlap the first.
    """

    def __init__(
        self,
        canvas: Canvas,
        delay: float = FRAME_DELAY,
        batch: int = EXPLORATION_BATCH,
        sleep: Callable[[float], Awaitable[None]] = asyncio.sleep,
    ) -> None:
        self.canvas = canvas
        self.delay = delay
        self.batch = max(1, batch)
        self._sleep = sleep
        self.current: Optional[AnimationSession] = None

    @property
    def busy(self) -> bool:
        return self.current is not None

    def claim(self) -> Optional[AnimationSession]:
        if self.current is not None:
            return None
        self.current = AnimationSession()
        return self.current

    def release(self, session: AnimationSession) -> None:
        if self.current is session:
            self.current = None

    def cancel(self) -> None:
        if self.current is not None:
            self.current.cancel()

    async def _suspend(self, session: AnimationSession) -> bool:
        """Yield to the loop; False means the session was cancelled meanwhile."""

        self.canvas.present()
        await self._sleep(self.delay)
        return not session.cancelled

    async def play(
        self,
        session: AnimationSession,
        result: ParsedResult,
        algorithm: Algorithm,
        markers: Sequence[Tuple[Point, Color]] = (),
    ) -> bool:
        """Render ``result``; returns True when it ran to completion."""

        if session.cancelled:
            return False

        self.canvas.reset()
        for point, color in markers:
            self.canvas.draw_marker(point, color)

        dot_color = EXPLORED_COLORS[algorithm]
        for index, point in enumerate(result.visited, start=1):
            self.canvas.draw_dot(point, dot_color)
            if index % self.batch == 0 and not await self._suspend(session):
                logger.info("Animation cancelled after %d explored points", index)
                return False

        for index in range(1, len(result.path)):
            self.canvas.draw_segment(result.path[index - 1], result.path[index], PATH_COLOR)
            if not await self._suspend(session):
                logger.info("Animation cancelled after %d path segments", index)
                return False

        for point, color in markers:
            self.canvas.draw_marker(point, color)
        self.canvas.present()
        return True
