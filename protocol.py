"""Solver wire protocol: shared types, the line parser and its serializer.

The solver writes one record per line::

    VISITED <x>,<y>     exploration trace, in discovery order
    PATH_START          end of the trace
    <x>,<y>             final path, in path order

Anything that does not parse is dropped. A response without ``PATH_START``
or without valid points after it carries an empty path.
"""

from __future__ import annotations

import logging
import math
from dataclasses import dataclass, field
from enum import Enum
from typing import Iterator, List, NamedTuple, Optional, Union

logger = logging.getLogger(__name__)

VISITED_TOKEN = "VISITED"
PATH_START_TOKEN = "PATH_START"


class Point(NamedTuple):
    x: int
    y: int


class Algorithm(str, Enum):
    ASTAR = "astar"
    DIJKSTRA = "dijkstra"

    @classmethod
    def from_query(cls, value: Optional[str]) -> "Algorithm":
        """Only the exact value ``astar`` selects A*; anything else is Dijkstra."""

        return cls.ASTAR if value == cls.ASTAR.value else cls.DIJKSTRA

    @property
    def code(self) -> str:
        """Positional argument understood by the solver executable."""

        return "0" if self is Algorithm.ASTAR else "1"


@dataclass(frozen=True)
class SolverRequest:
    start: Point
    end: Point
    algorithm: Algorithm = Algorithm.DIJKSTRA

    def to_argv(self) -> List[str]:
        return [
            str(self.start.x),
            str(self.start.y),
            str(self.end.x),
            str(self.end.y),
            self.algorithm.code,
        ]

    def to_query(self) -> dict:
        return {
            "startX": self.start.x,
            "startY": self.start.y,
            "endX": self.end.x,
            "endY": self.end.y,
            "algorithm": self.algorithm.value,
        }


# ---------- Events ----------
@dataclass(frozen=True)
class Visited:
    point: Point


@dataclass(frozen=True)
class PathStart:
    pass


@dataclass(frozen=True)
class PathPoint:
    point: Point


ProtocolEvent = Union[Visited, PathStart, PathPoint]


@dataclass
class ParsedResult:
    visited: List[Point] = field(default_factory=list)
    path: List[Point] = field(default_factory=list)

    @property
    def found_path(self) -> bool:
        return bool(self.path)


@dataclass(frozen=True)
class MapPoint:
    """One row of the auxiliary map CSV."""

    x: int
    y: int
    path: Optional[int] = None


# ---------- Numbers ----------
def round_half_away_from_zero(value: float) -> int:
    """Round to the nearest integer, ties away from zero (2.5 -> 3, -2.5 -> -3)."""

    magnitude = math.floor(abs(value) + 0.5)
    return int(math.copysign(magnitude, value))


def parse_number(text: str) -> Optional[int]:
    """Return ``text`` as a rounded integer, or None if it is not a finite number."""

    try:
        value = float(text.strip())
    except (TypeError, ValueError):
        return None
    if not math.isfinite(value):
        return None
    return round_half_away_from_zero(value)


def parse_pair(fragment: str) -> Optional[Point]:
    """Parse ``x,y`` into a Point; None when either component is not numeric."""

    parts = fragment.split(",")
    if len(parts) != 2:
        return None
    x, y = parse_number(parts[0]), parse_number(parts[1])
    if x is None or y is None:
        return None
    return Point(x, y)


# ---------- Parser ----------
def iter_events(text: str) -> Iterator[ProtocolEvent]:
    """Yield protocol events in stream order, skipping malformed lines."""

    in_path = False
    for lineno, raw in enumerate(text.split("\n"), start=1):
        line = raw.strip()
        if not line:
            continue

        head, _, rest = line.partition(" ")
        if head == VISITED_TOKEN:
            point = parse_pair(rest.strip())
            if point is None:
                logger.debug("Dropping malformed VISITED line %d: %r", lineno, line)
                continue
            yield Visited(point)
            continue

        if line == PATH_START_TOKEN:
            in_path = True
            yield PathStart()
            continue

        if in_path and "," in line:
            point = parse_pair(line)
            if point is None:
                logger.debug("Dropping malformed path line %d: %r", lineno, line)
                continue
            yield PathPoint(point)
            continue

        logger.debug("Ignoring unrecognised line %d: %r", lineno, line)


def parse_response(text: str) -> ParsedResult:
    """Decode a full response body into the exploration trace and final path."""

    result = ParsedResult()
    for event in iter_events(text):
        if isinstance(event, Visited):
            result.visited.append(event.point)
        elif isinstance(event, PathPoint):
            result.path.append(event.point)
    return result


def serialize_result(result: ParsedResult) -> str:
    """Render a ParsedResult back into protocol text."""

    lines = [f"{VISITED_TOKEN} {p.x},{p.y}" for p in result.visited]
    if result.path:
        lines.append(PATH_START_TOKEN)
        lines.extend(f"{p.x},{p.y}" for p in result.path)
    return "".join(f"{line}\n" for line in lines)


# ---------- Map CSV ----------
def parse_map_csv(text: str) -> List[MapPoint]:
    """Read ``x,y,path`` rows after the header, skipping rows without numeric x/y."""

    points: List[MapPoint] = []
    rows = text.strip().splitlines()
    for row in rows[1:]:
        cells = [cell.strip() for cell in row.split(",")]
        if len(cells) < 2:
            continue
        x, y = parse_number(cells[0]), parse_number(cells[1])
        if x is None or y is None:
            continue
        path_id = parse_number(cells[2]) if len(cells) > 2 and cells[2] else None
        points.append(MapPoint(x=x, y=y, path=path_id))
    return points
