from __future__ import annotations

import logging
import os
import shlex
import sys
from dataclasses import dataclass, field
from pathlib import Path
from typing import Mapping, Optional, Tuple

BASE_DIR = Path(__file__).resolve().parent
TEMPLATE_DIR = BASE_DIR / "templates"

LOG_FORMAT = "%(asctime)s %(levelname)s %(name)s: %(message)s"


def default_solver_command(root_dir: Path, platform: str = sys.platform) -> Tuple[str, ...]:
    """Return the solver executable for the host platform, resolved under ``root_dir``."""

    executable = "pathfinder.exe" if platform == "win32" else "pathfinder"
    return (str(root_dir / executable),)


@dataclass
class Settings:
    root_dir: Path = BASE_DIR
    host: str = "127.0.0.1"
    port: int = 3000

    # Solver process
    solver_command: Tuple[str, ...] = field(default_factory=lambda: default_solver_command(BASE_DIR))
    max_concurrent_solvers: int = 4
    solver_timeout: float = 30.0
    strict_algorithm: bool = False  # reject unknown algorithm values instead of using Dijkstra

    # Static assets served from root_dir
    map_image: str = "ufmap.png"
    map_data: str = "map_data.csv"

    log_level: str = "INFO"

    @property
    def static_assets(self) -> Tuple[str, ...]:
        return (self.map_image, self.map_data)


def _env_bool(value: str) -> bool:
    return value.strip().lower() in {"1", "true", "yes", "on"}


def load_settings(environ: Optional[Mapping[str, str]] = None) -> Settings:
    """Build settings from ``PATHSCOPE_*`` environment variables (and ``PORT``)."""

    env = os.environ if environ is None else environ
    root_dir = Path(env.get("PATHSCOPE_ROOT", str(BASE_DIR))).resolve()

    raw_command = env.get("PATHSCOPE_SOLVER")
    if raw_command:
        solver_command = tuple(shlex.split(raw_command, posix=sys.platform != "win32"))
    else:
        solver_command = default_solver_command(root_dir)

    try:
        return Settings(
            root_dir=root_dir,
            host=env.get("PATHSCOPE_HOST", "127.0.0.1"),
            port=int(env.get("PORT", env.get("PATHSCOPE_PORT", "3000"))),
            solver_command=solver_command,
            max_concurrent_solvers=max(1, int(env.get("PATHSCOPE_MAX_SOLVERS", "4"))),
            solver_timeout=float(env.get("PATHSCOPE_SOLVER_TIMEOUT", "30")),
            strict_algorithm=_env_bool(env.get("PATHSCOPE_STRICT_ALGORITHM", "")),
            map_image=env.get("PATHSCOPE_MAP_IMAGE", "ufmap.png"),
            map_data=env.get("PATHSCOPE_MAP_DATA", "map_data.csv"),
            log_level=env.get("PATHSCOPE_LOG_LEVEL", "INFO").upper(),
        )
    except ValueError as exc:
        raise ValueError(f"Invalid pathscope configuration: {exc}") from exc


def configure_logging(level: str = "INFO") -> None:
    logging.basicConfig(level=getattr(logging, level.upper(), logging.INFO), format=LOG_FORMAT)
