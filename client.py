"""Headless client: selection, fetching a route and animating it on a canvas.

Usage:
    python client.py --start 120,340 --end 610,95 --algorithm astar --gif run.gif
"""

from __future__ import annotations

import argparse
import asyncio
import io
import logging
import sys
from pathlib import Path
from typing import List, Optional, Protocol, Tuple

import httpx
from PIL import Image

from animation import END_COLOR, START_COLOR, AnimationScheduler, Canvas, Color
from config import configure_logging
from protocol import Algorithm, MapPoint, ParsedResult, Point, SolverRequest, parse_map_csv, parse_pair, parse_response
from render import ImageCanvas, save_animation, save_summary_figure
from selection import CanvasGeometry, SelectionEffect, SelectionStateMachine, map_pointer

logger = logging.getLogger(__name__)

DEFAULT_SERVER = "http://127.0.0.1:3000"

# InvalidURL and StreamError do not derive from httpx.HTTPError.
HTTP_ERRORS = (httpx.HTTPError, httpx.InvalidURL, httpx.StreamError)


# ---------- Errors ----------
class ClientError(Exception):
    """A failure shown to the user as a single message."""


class InputIncomplete(ClientError):
    pass


class TransportFailure(ClientError):
    pass


class NoPathFound(ClientError):
    pass


# ---------- Transport ----------
class Transport(Protocol):
    async def fetch(self, request: SolverRequest) -> str: ...


class SolverClient:
    """Calls ``GET /path`` on the pathscope server."""

    def __init__(self, http: httpx.AsyncClient) -> None:
        self.http = http

    async def fetch(self, request: SolverRequest) -> str:
        try:
            response = await self.http.get("/path", params=request.to_query())
        except HTTP_ERRORS as exc:
            raise TransportFailure(f"Could not reach the path server: {exc}") from exc
        if not response.is_success:
            detail = response.text.strip() or response.reason_phrase
            raise TransportFailure(f"Path server returned {response.status_code}: {detail}")
        return response.text

    async def fetch_map_points(self, filename: str = "map_data.csv") -> List[MapPoint]:
        try:
            response = await self.http.get(f"/static/{filename}")
            response.raise_for_status()
        except HTTP_ERRORS as exc:
            raise TransportFailure(f"Could not load map data: {exc}") from exc
        return parse_map_csv(response.text)

    async def fetch_image(self, filename: str) -> Image.Image:
        try:
            response = await self.http.get(f"/static/{filename}")
            response.raise_for_status()
        except HTTP_ERRORS as exc:
            raise TransportFailure(f"Could not load map image: {exc}") from exc
        return Image.open(io.BytesIO(response.content)).convert("RGB")


# ---------- Controller ----------
class Presenter(Protocol):
    def show_error(self, message: str) -> None: ...


class LogPresenter:
    def __init__(self) -> None:
        self.messages: List[str] = []

    def show_error(self, message: str) -> None:
        self.messages.append(message)
        logger.error(message)


class PathFinderController:
    """Owns the selection and the animation slot; one method per UI event."""

    def __init__(
        self,
        canvas: Canvas,
        transport: Transport,
        presenter: Optional[Presenter] = None,
        scheduler: Optional[AnimationScheduler] = None,
    ) -> None:
        self.canvas = canvas
        self.transport = transport
        self.presenter = presenter or LogPresenter()
        self.scheduler = scheduler or AnimationScheduler(canvas)
        self.selection = SelectionStateMachine(self.scheduler)
        self.map_points: List[MapPoint] = []
        self.last_result: Optional[ParsedResult] = None

    def _markers(self) -> List[Tuple[Point, Color]]:
        current = self.selection.selection
        markers: List[Tuple[Point, Color]] = []
        if current.start is not None:
            markers.append((current.start, START_COLOR))
        if current.end is not None:
            markers.append((current.end, END_COLOR))
        return markers

    def _restore_view(self) -> None:
        self.canvas.reset()
        for point, color in self._markers():
            self.canvas.draw_marker(point, color)
        self.canvas.present()

    def _solver_request(self, algorithm: Algorithm) -> SolverRequest:
        current = self.selection.selection
        if current.start is None or current.end is None:
            raise InputIncomplete("Please select both start and end points first.")
        return SolverRequest(current.start, current.end, algorithm)

    def _apply(self, effects: Tuple[SelectionEffect, ...], point: Point) -> None:
        for effect in effects:
            if effect is SelectionEffect.CLEAR_CANVAS:
                self.canvas.reset()
            elif effect is SelectionEffect.DRAW_START:
                self.canvas.draw_marker(point, START_COLOR)
            elif effect is SelectionEffect.DRAW_END:
                self.canvas.draw_marker(point, END_COLOR)
        self.canvas.present()

    def on_load(self, map_points: List[MapPoint]) -> None:
        self.map_points = list(map_points)
        self.on_reset()

    def on_click(self, client_x: float, client_y: float, geometry: CanvasGeometry) -> Point:
        point = map_pointer(client_x, client_y, geometry)
        self.on_point(point)
        return point

    def on_point(self, point: Point) -> None:
        self._apply(self.selection.choose(point), point)

    def on_reset(self) -> None:
        self.selection.reset()
        self._restore_view()

    async def on_find_path(self, algorithm: Algorithm) -> Optional[ParsedResult]:
        """Fetch and animate a route; returns the parsed result when it was drawn."""

        try:
            request = self._solver_request(algorithm)
        except InputIncomplete as exc:
            self.presenter.show_error(str(exc))
            return None

        session = self.scheduler.claim()
        if session is None:
            logger.debug("Find path ignored: an animation is already running")
            return None

        try:
            text = await self.transport.fetch(request)
            result = parse_response(text)
            if not result.found_path:
                raise NoPathFound("No path found between the selected points.")
            self.last_result = result
            completed = await self.scheduler.play(session, result, algorithm, self._markers())
            return result if completed else None
        except ClientError as exc:
            session.cancel()
            self._restore_view()
            self.presenter.show_error(str(exc))
            return None
        finally:
            self.scheduler.release(session)


# ---------- CLI ----------
def point_arg(value: str) -> Point:
    point = parse_pair(value)
    if point is None:
        raise argparse.ArgumentTypeError(f"expected X,Y but got {value!r}")
    return point


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(description="Animate a pathscope route headlessly.")
    parser.add_argument("--server", default=DEFAULT_SERVER, help="pathscope server base URL")
    parser.add_argument("--start", type=point_arg, required=True, help="start point as X,Y")
    parser.add_argument("--end", type=point_arg, required=True, help="end point as X,Y")
    parser.add_argument("--algorithm", choices=[a.value for a in Algorithm], default="dijkstra")
    parser.add_argument("--map-image", default="ufmap.png")
    parser.add_argument("--map-data", default="map_data.csv")
    parser.add_argument("--gif", type=Path, help="write the animation to this GIF")
    parser.add_argument("--summary", type=Path, help="write a summary figure to this PNG")
    parser.add_argument("--delay", type=float, default=0.0, help="seconds between frames")
    parser.add_argument("--log-level", default="INFO")
    return parser


async def run(args: argparse.Namespace) -> int:
    async with httpx.AsyncClient(base_url=args.server, timeout=None) as http:
        client = SolverClient(http)
        try:
            base = await client.fetch_image(args.map_image)
        except TransportFailure as exc:
            logger.error("%s", exc)
            return 1

        canvas = ImageCanvas(base, record=args.gif is not None)
        presenter = LogPresenter()
        controller = PathFinderController(
            canvas,
            client,
            presenter=presenter,
            scheduler=AnimationScheduler(canvas, delay=args.delay),
        )
        try:
            controller.on_load(await client.fetch_map_points(args.map_data))
        except TransportFailure as exc:
            logger.warning("Continuing without map data: %s", exc)
        controller.on_point(args.start)
        controller.on_point(args.end)
        algorithm = Algorithm(args.algorithm)
        result = await controller.on_find_path(algorithm)

    if result is None:
        return 1
    logger.info("Path of %d points after exploring %d", len(result.path), len(result.visited))
    if args.gif is not None:
        save_animation(canvas.frames, args.gif)
        logger.info("Animation saved: %s", args.gif)
    if args.summary is not None:
        save_summary_figure(canvas.base_array(), result, algorithm, args.summary)
        logger.info("Summary saved: %s", args.summary)
    return 0


def main(argv: Optional[List[str]] = None) -> int:
    args = build_parser().parse_args(argv)
    configure_logging(args.log_level)
    return asyncio.run(run(args))


if __name__ == "__main__":
    sys.exit(main())
