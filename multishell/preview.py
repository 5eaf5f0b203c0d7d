"""3D wireframe preview of generated toolpaths."""

from pathlib import Path
from typing import Optional

import numpy as np
import matplotlib
matplotlib.use("Agg")
from matplotlib.figure import Figure

from .geometry import Vector2D
from .printer import Printer


class PreviewPrinter(Printer):
    """Records the toolpath as 3D polylines and renders them with matplotlib.

    Extrusions are collected per shell (between reset_extrude() calls);
    non-extruding moves are kept separately so they can be shown thin.
    """

    def __init__(self, show_moves: bool = True):
        super().__init__()
        self.show_moves = show_moves
        self.shells: list[list[np.ndarray]] = []
        self.moves: list[np.ndarray] = []
        self._current: list[tuple[float, float, float]] = []
        self._last: Optional[tuple[float, float, float]] = None
        self._travel: float = 0.0
        self._segments: list[np.ndarray] = []
        self.bed_limits: Optional[Vector2D] = None

    def _flush(self) -> None:
        if len(self._current) >= 2:
            self._segments.append(np.array(self._current))
        self._current = []

    def preamble(self, bed_limits: Vector2D, feed_mm_per_sec: float) -> None:
        self.bed_limits = bed_limits

    def init(self, bed_limits: Vector2D, feed_mm_per_sec: float) -> None:
        pass

    def postamble(self) -> None:
        self._flush()
        if self._segments:
            self.shells.append(self._segments)
            self._segments = []

    def comment(self, fmt: str, *args) -> None:
        pass

    def set_temperature(self, temperature: float) -> None:
        pass

    def set_speed(self, feed_mm_per_sec: float) -> None:
        pass

    def go_z_pos(self, z: float) -> None:
        if self._last is not None:
            self.move_to(Vector2D(self._last[0], self._last[1]), z)

    def move_to(self, pos: Vector2D, z: float) -> None:
        self._flush()
        point = (pos.x, pos.y, z)
        if self._last is not None and self.show_moves:
            self.moves.append(np.array([self._last, point]))
        self._current = [point]
        self._last = point

    def extrude_to(self, pos: Vector2D, z: float, extrusion_multiplier: float = 1.0) -> None:
        point = (pos.x, pos.y, z)
        if self._last is not None:
            self._travel += float(np.linalg.norm(np.subtract(point, self._last)))
            if not self._current:
                self._current = [self._last]
        self._current.append(point)
        self._last = point

    def switch_fan(self, on: bool) -> None:
        pass

    def get_extrusion_distance(self) -> float:
        return self._travel

    def _reset_extrude(self) -> None:
        self._flush()
        if self._segments:
            self.shells.append(self._segments)
        self._segments = []
        self._travel = 0.0

    def _retract(self) -> None:
        self._flush()

    def render(self, figure: Optional[Figure] = None, title: str = "Toolpaths") -> Figure:
        """Plot toolpaths as 3D wireframes."""
        figure = figure or Figure(figsize=(6, 5))
        figure.clear()
        ax = figure.add_subplot(111, projection='3d')

        all_pts = []
        colors = matplotlib.colormaps["viridis"](np.linspace(0, 1, max(len(self.shells), 1)))
        for shell, color in zip(self.shells, colors):
            for pts in shell:
                ax.plot(pts[:, 0], pts[:, 1], pts[:, 2],
                        color=color, linewidth=0.8, alpha=0.8)
                all_pts.append(pts)

        for pts in self.moves:
            ax.plot(pts[:, 0], pts[:, 1], pts[:, 2],
                    color='gray', linewidth=0.3, alpha=0.5)

        ax.set_xlabel('X (mm)')
        ax.set_ylabel('Y (mm)')
        ax.set_zlabel('Z (mm)')

        # Set equal aspect
        if all_pts:
            stacked = np.vstack(all_pts)
            ranges = stacked.max(axis=0) - stacked.min(axis=0)
            max_range = ranges.max()
            if max_range > 0:
                ax.set_box_aspect([
                    ranges[0] / max_range or 1,
                    ranges[1] / max_range or 1,
                    ranges[2] / max_range or 0.3,
                ])

        ax.set_title(f"{title}\nShells: {len(self.shells)}")
        return figure

    def save(self, path: Path, title: str = "Toolpaths") -> None:
        """Render and write the preview image (format from the file suffix)."""
        figure = self.render(title=title)
        figure.savefig(str(path), dpi=120)
