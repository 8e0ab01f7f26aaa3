"""Reference solver implementing the pathfinder command-line contract.

    python solver.py <startX> <startY> <endX> <endY> <algorithm>

``algorithm`` is 0 for A* and 1 for Dijkstra. Walkable cells are read from
``map_data.csv`` in the working directory. Start and end snap to the nearest
walkable cell; moves go to the 8 neighbouring cells at Euclidean cost.
Writes the exploration trace and path to stdout, diagnostics to stderr, and
exits non-zero when no path can be produced.
"""

from __future__ import annotations

import heapq
import math
import sys
from pathlib import Path
from typing import Callable, Dict, List, Optional, Sequence, Set, TextIO, Tuple

from protocol import PATH_START_TOKEN, VISITED_TOKEN, Point, parse_map_csv

MAP_DATA_FILE = "map_data.csv"

NEIGHBOR_OFFSETS = [(dx, dy) for dx in (-1, 0, 1) for dy in (-1, 0, 1) if (dx, dy) != (0, 0)]


def distance(a: Point, b: Point) -> float:
    return math.hypot(a.x - b.x, a.y - b.y)


def load_walkable(path: Path) -> Set[Point]:
    return {Point(p.x, p.y) for p in parse_map_csv(path.read_text())}


def nearest_walkable(walkable: Set[Point], target: Point) -> Optional[Point]:
    if target in walkable:
        return target
    return min(walkable, key=lambda p: distance(p, target), default=None)


def search(
    walkable: Set[Point],
    start: Point,
    goal: Point,
    heuristic: Callable[[Point, Point], float],
) -> Tuple[List[Point], List[Point]]:
    """Best-first search; returns (path, explored order). Path is empty if unreachable."""

    g_costs: Dict[Point, float] = {start: 0.0}
    came_from: Dict[Point, Point] = {}
    open_heap: List[Tuple[float, int, Point]] = []
    counter = 0
    heapq.heappush(open_heap, (heuristic(start, goal), counter, start))

    explored_order: List[Point] = []
    closed: Set[Point] = set()

    while open_heap:
        _, _, current = heapq.heappop(open_heap)
        if current in closed:
            continue
        closed.add(current)
        explored_order.append(current)

        if current == goal:
            path: List[Point] = [current]
            while current in came_from:
                current = came_from[current]
                path.append(current)
            path.reverse()
            return path, explored_order

        current_cost = g_costs[current]
        for dx, dy in NEIGHBOR_OFFSETS:
            neighbor = Point(current.x + dx, current.y + dy)
            if neighbor not in walkable or neighbor in closed:
                continue
            tentative = current_cost + distance(current, neighbor)
            if tentative < g_costs.get(neighbor, float("inf")):
                came_from[neighbor] = current
                g_costs[neighbor] = tentative
                counter += 1
                heapq.heappush(open_heap, (tentative + heuristic(neighbor, goal), counter, neighbor))

    return [], explored_order


HEURISTICS: Dict[str, Callable[[Point, Point], float]] = {
    "0": distance,
    "1": lambda a, b: 0.0,
}


def main(argv: Sequence[str], stdout: TextIO = sys.stdout, stderr: TextIO = sys.stderr) -> int:
    if len(argv) != 5:
        print("Usage: solver.py <startX> <startY> <endX> <endY> <algorithm>", file=stderr)
        print("Algorithm: 0 for A*, 1 for Dijkstra", file=stderr)
        return 1

    try:
        sx, sy, ex, ey = (int(value) for value in argv[:4])
    except ValueError as exc:
        print(f"Error: {exc}", file=stderr)
        return 1

    heuristic = HEURISTICS.get(argv[4])
    if heuristic is None:
        print("Invalid algorithm choice. Use 0 for A* or 1 for Dijkstra.", file=stderr)
        return 1

    try:
        walkable = load_walkable(Path(MAP_DATA_FILE))
    except OSError as exc:
        print(f"Error: could not open {MAP_DATA_FILE}: {exc}", file=stderr)
        return 1

    start = nearest_walkable(walkable, Point(sx, sy))
    goal = nearest_walkable(walkable, Point(ex, ey))
    if start is None or goal is None:
        print("Start or End point not found in valid points.", file=stderr)
        return 1

    path, explored = search(walkable, start, goal, heuristic)
    for point in explored:
        stdout.write(f"{VISITED_TOKEN} {point.x},{point.y}\n")
    if not path:
        print("No path found.", file=stderr)
        return 1

    stdout.write(f"{PATH_START_TOKEN}\n")
    for point in path:
        stdout.write(f"{point.x},{point.y}\n")
    return 0


if __name__ == "__main__":
    sys.exit(main(sys.argv[1:]))
