from __future__ import annotations

from math import ceil
from pathlib import Path
from typing import List, Sequence, Tuple

import imageio
import matplotlib

matplotlib.use("Agg")
import matplotlib.pyplot as plt
import numpy as np
from PIL import Image, ImageDraw

from animation import EXPLORED_COLORS, Color
from protocol import Algorithm, ParsedResult, Point

# Tunables. Keep small to avoid stalls on large maps.
MAX_GIF_FRAMES = 300
TAIL_FRAMES = 15
FPS = 20

MARKER_RADIUS = 8
MARKER_CORE_RADIUS = 4
DOT_RADIUS = 3
PATH_WIDTH = 3
BLANK_COLOR = (45, 55, 72)


class ImageCanvas:
    """Pillow-backed drawing surface over a base map image.

    Drawing goes through an RGBA ``ImageDraw`` so translucent colours blend
    into the RGB image. With ``record`` set, every ``present`` call keeps a
    frame for :func:`save_animation`.
    """

    def __init__(self, base: Image.Image, record: bool = False) -> None:
        self.base = base.convert("RGB")
        self.record = record
        self.frames: List[np.ndarray] = []
        self.reset()

    @classmethod
    def blank(cls, width: int, height: int, record: bool = False) -> "ImageCanvas":
        return cls(Image.new("RGB", (width, height), BLANK_COLOR), record=record)

    @property
    def size(self) -> Tuple[int, int]:
        return self.base.size

    def reset(self) -> None:
        self.image = self.base.copy()
        self._draw = ImageDraw.Draw(self.image, "RGBA")

    def _circle(self, point: Point, radius: int, color: Color) -> None:
        x, y = point
        self._draw.ellipse((x - radius, y - radius, x + radius, y + radius), fill=color)

    def draw_marker(self, point: Point, color: Color) -> None:
        self._circle(point, MARKER_RADIUS, color)
        self._circle(point, MARKER_CORE_RADIUS, (255, 255, 255, 255))

    def draw_dot(self, point: Point, color: Color) -> None:
        self._circle(point, DOT_RADIUS, color)

    def draw_segment(self, a: Point, b: Point, color: Color) -> None:
        self._draw.line([tuple(a), tuple(b)], fill=color, width=PATH_WIDTH)

    def present(self) -> None:
        if self.record:
            self.frames.append(self.to_array())

    def to_array(self) -> np.ndarray:
        return np.array(self.image, dtype=np.uint8)

    def base_array(self) -> np.ndarray:
        return np.array(self.base, dtype=np.uint8)


def save_animation(frames: Sequence[np.ndarray], output_path: Path, fps: int = FPS) -> Path:
    """Write recorded frames as a GIF, subsampling to respect the frame cap."""

    if not frames:
        raise ValueError("No frames recorded.")
    output_path.parent.mkdir(parents=True, exist_ok=True)

    body, last = list(frames[:-1]), frames[-1]
    max_body = max(1, MAX_GIF_FRAMES - TAIL_FRAMES)
    stride = 1 if len(body) <= max_body else ceil(len(body) / max_body)
    # Hold the final view for a moment.
    selected = body[::stride] + [last] * TAIL_FRAMES
    imageio.mimsave(str(output_path), selected, format="GIF", duration=1000.0 / fps, loop=0)
    return output_path


def save_summary_figure(
    rgb: np.ndarray,
    result: ParsedResult,
    algorithm: Algorithm,
    summary_path: Path,
) -> Path:
    """Create and store a side-by-side figure of explored points and the path."""

    summary_path.parent.mkdir(parents=True, exist_ok=True)

    fig, axes = plt.subplots(1, 2, figsize=(14, 7))
    xs = [pt.x for pt in result.path]
    ys = [pt.y for pt in result.path]

    r, g, b, a = EXPLORED_COLORS[algorithm]
    axes[0].imshow(rgb)
    if result.visited:
        axes[0].scatter(
            [pt.x for pt in result.visited],
            [pt.y for pt in result.visited],
            s=2,
            color=(r / 255, g / 255, b / 255),
            alpha=0.35,
            label="Explored",
        )
        axes[0].legend(loc="upper right")
    axes[0].set_title(f"Explored Points ({len(result.visited)})")
    axes[0].axis("off")

    axes[1].imshow(rgb)
    if xs:
        axes[1].plot(xs, ys, color="gold", linewidth=3, alpha=0.9)
        axes[1].scatter([xs[0]], [ys[0]], color="#48bb78", s=60, zorder=3)
        axes[1].scatter([xs[-1]], [ys[-1]], color="#f56565", s=60, zorder=3)
    axes[1].set_title("Final Path Overlay")
    axes[1].axis("off")
    axes[1].set_ylim(rgb.shape[0], 0)

    fig.subplots_adjust(wspace=0.05, top=0.94, bottom=0.04)
    fig.savefig(summary_path, dpi=160, bbox_inches="tight")
    plt.close(fig)
    return summary_path
