"""Launch the external solver for one request and collect its output."""

from __future__ import annotations

import asyncio
import logging
from pathlib import Path
from typing import Mapping, Optional, Sequence

from protocol import Algorithm, Point, SolverRequest, parse_number

logger = logging.getLogger(__name__)

COORDINATE_FIELDS = ("startX", "startY", "endX", "endY")


class InvalidQuery(ValueError):
    """A query value is missing or not a number."""


class SolverError(Exception):
    """Base class for solver failures; carries the HTTP status to answer with."""

    status_code = 500


class ProcessLaunchFailure(SolverError):
    pass


class ProcessExitFailure(SolverError):
    def __init__(self, returncode: int, stderr: str) -> None:
        self.returncode = returncode
        self.stderr = stderr
        detail = stderr.strip() or "no diagnostic output"
        super().__init__(f"Error finding path (exit code {returncode}): {detail}")


class SolverTimeout(SolverError):
    status_code = 504


def build_request(query: Mapping[str, Optional[str]], strict_algorithm: bool = False) -> SolverRequest:
    """Validate raw query values and turn them into a SolverRequest."""

    coords = {}
    for name in COORDINATE_FIELDS:
        raw = query.get(name)
        if raw is None or not str(raw).strip():
            raise InvalidQuery(f"{name} is required.")
        value = parse_number(str(raw))
        if value is None:
            raise InvalidQuery(f"{name} must be a number.")
        coords[name] = value

    raw_algorithm = query.get("algorithm")
    algorithm = Algorithm.from_query(raw_algorithm)
    if raw_algorithm not in (None, Algorithm.ASTAR.value, Algorithm.DIJKSTRA.value):
        if strict_algorithm:
            raise InvalidQuery("algorithm must be 'astar' or 'dijkstra'.")
        logger.warning("Unknown algorithm %r, falling back to %s", raw_algorithm, algorithm.value)

    return SolverRequest(
        start=Point(coords["startX"], coords["startY"]),
        end=Point(coords["endX"], coords["endY"]),
        algorithm=algorithm,
    )


async def _kill(process: asyncio.subprocess.Process) -> None:
    """Kill the child if it is still running and reap it."""

    if process.returncode is None:
        process.kill()
    await process.wait()


class SolverBridge:
    """Runs one solver process per request, at most ``max_concurrent`` at a time."""

    def __init__(
        self,
        command: Sequence[str],
        cwd: Path,
        max_concurrent: int = 4,
        timeout: Optional[float] = 30.0,
    ) -> None:
        if not command:
            raise ValueError("solver command must not be empty")
        self.command = tuple(command)
        self.cwd = cwd
        self.timeout = timeout
        self.max_concurrent = max_concurrent
        self._slots = asyncio.Semaphore(max_concurrent)

    async def run(self, request: SolverRequest) -> bytes:
        """Return the solver's raw stdout, or raise a SolverError subclass."""

        argv = [*self.command, *request.to_argv()]
        async with self._slots:
            logger.info(
                "Executing pathfinder with coordinates: %d,%d to %d,%d (%s)",
                request.start.x,
                request.start.y,
                request.end.x,
                request.end.y,
                request.algorithm.value,
            )
            try:
                process = await asyncio.create_subprocess_exec(
                    *argv,
                    cwd=str(self.cwd),
                    stdout=asyncio.subprocess.PIPE,
                    stderr=asyncio.subprocess.PIPE,
                )
            except OSError as exc:
                logger.error("Failed to start pathfinder: %s", exc)
                raise ProcessLaunchFailure(f"Failed to start pathfinder process: {exc}") from exc

            try:
                stdout, stderr = await asyncio.wait_for(process.communicate(), timeout=self.timeout)
            except asyncio.TimeoutError as exc:
                await _kill(process)
                logger.error("Pathfinder timed out after %.1fs; killed pid %s", self.timeout, process.pid)
                raise SolverTimeout(f"Pathfinder timed out after {self.timeout:g} seconds") from exc
            except asyncio.CancelledError:
                await _kill(process)
                logger.warning("Pathfinder request cancelled; killed pid %s", process.pid)
                raise

        error = stderr.decode("utf-8", errors="replace")
        if error:
            logger.warning("Pathfinder stderr: %s", error.strip())

        if process.returncode != 0:
            logger.error("Pathfinder process exited with code %s", process.returncode)
            raise ProcessExitFailure(process.returncode, error)

        logger.info("Pathfinder produced %d bytes of output", len(stdout))
        return stdout
