"""Geometry primitives and polygon file loading."""

import logging
import math
from dataclasses import dataclass
from pathlib import Path
from typing import Iterable, Iterator, Optional

import numpy as np
from svgpathtools import svg2paths2, Path as SvgPath, Line, CubicBezier, QuadraticBezier, Arc
from shapely.geometry import Polygon as ShapelyPolygon

logger = logging.getLogger(__name__)


class PolygonError(ValueError):
    """Raised when a polygon is unusable (empty or too few vertices)."""


@dataclass(frozen=True)
class Vector2D:
    """Immutable 2D point/vector."""
    x: float = 0.0
    y: float = 0.0

    def __add__(self, other: "Vector2D") -> "Vector2D":
        return Vector2D(self.x + other.x, self.y + other.y)

    def __sub__(self, other: "Vector2D") -> "Vector2D":
        return Vector2D(self.x - other.x, self.y - other.y)

    def __mul__(self, factor: float) -> "Vector2D":
        return Vector2D(self.x * factor, self.y * factor)

    __rmul__ = __mul__

    def __truediv__(self, divisor: float) -> "Vector2D":
        return Vector2D(self.x / divisor, self.y / divisor)

    def __iter__(self) -> Iterator[float]:
        yield self.x
        yield self.y

    def magnitude(self) -> float:
        return math.hypot(self.x, self.y)

    def rotated(self, angle: float) -> "Vector2D":
        """Rotate counter-clockwise around the origin by angle (radians)."""
        c, s = math.cos(angle), math.sin(angle)
        return Vector2D(self.x * c - self.y * s, self.y * c + self.x * s)


@dataclass
class BoundingBox:
    """Axis-aligned bounding box."""
    min_x: float
    min_y: float
    max_x: float
    max_y: float

    @property
    def width(self) -> float:
        return self.max_x - self.min_x

    @property
    def height(self) -> float:
        return self.max_y - self.min_y

    def straddles(self, point: Vector2D) -> bool:
        """True if the point lies strictly inside the box on both axes."""
        return (self.min_x < point.x < self.max_x
                and self.min_y < point.y < self.max_y)


class Polygon:
    """Implicitly closed polygon; vertices stored as an Nx2 array."""

    MIN_VERTICES = 3

    def __init__(self, points: Optional[Iterable] = None):
        if points is None:
            self.points = np.empty((0, 2))
        else:
            arr = np.array([tuple(p) for p in points], dtype=float)
            self.points = arr.reshape(-1, 2)

    @classmethod
    def from_array(cls, points: np.ndarray) -> "Polygon":
        polygon = cls()
        polygon.points = np.asarray(points, dtype=float).reshape(-1, 2)
        return polygon

    def __len__(self) -> int:
        return len(self.points)

    def __bool__(self) -> bool:
        return len(self.points) > 0

    def __getitem__(self, index: int) -> Vector2D:
        x, y = self.points[index]
        return Vector2D(float(x), float(y))

    def __iter__(self) -> Iterator[Vector2D]:
        for x, y in self.points:
            yield Vector2D(float(x), float(y))

    def __repr__(self) -> str:
        return f"Polygon({len(self)} vertices)"

    @property
    def is_usable(self) -> bool:
        return len(self.points) >= self.MIN_VERTICES

    def edge_lengths(self) -> np.ndarray:
        """Length of edge i, from vertex i-1 to vertex i (edge 0 closes the loop)."""
        if len(self.points) < 2:
            return np.zeros(len(self.points))
        deltas = self.points - np.roll(self.points, 1, axis=0)
        return np.hypot(deltas[:, 0], deltas[:, 1])

    @property
    def perimeter(self) -> float:
        """Total closed length, including the segment back to the start."""
        return float(self.edge_lengths().sum())

    @property
    def centroid(self) -> Vector2D:
        """Vertex average. Not the area centroid."""
        if not self:
            return Vector2D()
        cx, cy = self.points.mean(axis=0)
        return Vector2D(float(cx), float(cy))

    @property
    def signed_area(self) -> float:
        """Shoelace area; positive for counter-clockwise."""
        if len(self.points) < 3:
            return 0.0
        x = self.points[:, 0]
        y = self.points[:, 1]
        return float(0.5 * (np.dot(x, np.roll(y, -1)) - np.dot(y, np.roll(x, -1))))

    @property
    def bounds(self) -> BoundingBox:
        return BoundingBox(
            min_x=float(self.points[:, 0].min()),
            min_y=float(self.points[:, 1].min()),
            max_x=float(self.points[:, 0].max()),
            max_y=float(self.points[:, 1].max()),
        )

    def radius(self, center: Vector2D = Vector2D()) -> float:
        """Radius of the circle around center enclosing all vertices."""
        if not self:
            return -1.0
        d = self.points - np.array([center.x, center.y])
        return float(np.hypot(d[:, 0], d[:, 1]).max())

    def translated(self, delta: Vector2D) -> "Polygon":
        return Polygon.from_array(self.points + np.array([delta.x, delta.y]))

    def rotated(self, angle: float) -> "Polygon":
        c, s = math.cos(angle), math.sin(angle)
        rot = np.array([[c, s], [-s, c]])
        return Polygon.from_array(self.points @ rot)

    def scaled(self, factor: float) -> "Polygon":
        return Polygon.from_array(self.points * factor)

    def centered(self) -> "Polygon":
        """Shift so the vertex centroid sits on the origin."""
        return self.translated(self.centroid * -1)

    def to_shapely(self) -> ShapelyPolygon:
        """Convert to Shapely geometry."""
        return ShapelyPolygon(self.points)


def require_usable(polygon: Polygon, what: str = "polygon") -> None:
    """Raise PolygonError unless the polygon has at least three vertices."""
    if not polygon:
        raise PolygonError(f"{what} is empty")
    if not polygon.is_usable:
        raise PolygonError(
            f"{what} has {len(polygon)} vertices, need at least {Polygon.MIN_VERTICES}"
        )


def pump_polygon(polygon: Polygon, pump_r: float) -> Polygon:
    """Stretch a polygon as if its center was a circle of radius pump_r.

    Every vertex moves radially outward by pump_r.
    """
    if pump_r <= 0 or not polygon:
        return polygon
    dist = np.hypot(polygon.points[:, 0], polygon.points[:, 1])
    # A vertex sitting on the center has no direction to move in.
    stretch = np.where(dist > 0, (dist + pump_r) / np.where(dist > 0, dist, 1.0), 1.0)
    return Polygon.from_array(polygon.points * stretch[:, None])


def parse_polygon_text(lines: Iterable[str], factor: float = 1.0, source: str = "<text>") -> Polygon:
    """Parse 'x y' lines into a polygon, scaled by factor.

    Blank lines and lines starting with '#' are ignored. Malformed lines
    are reported and skipped.
    """
    points = []
    for lineno, raw in enumerate(lines, start=1):
        line = raw.strip()
        if not line or line.startswith("#"):
            continue
        fields = line.split()
        try:
            if len(fields) != 2:
                raise ValueError(f"expected 2 values, got {len(fields)}")
            x, y = float(fields[0]), float(fields[1])
        except ValueError as e:
            logger.warning(f"{source}:{lineno}: skipping malformed line {line!r} ({e})")
            continue
        points.append((x * factor, y * factor))
    return Polygon(points)


class SVGLoader:
    """Load the first closed path of an SVG file as a polygon."""

    # Number of points to sample along curves
    CURVE_SAMPLES = 20

    def load(self, svg_path: Path, factor: float = 1.0) -> Polygon:
        paths, attributes, _ = svg2paths2(str(svg_path))

        for i, (svg_path_obj, attrs) in enumerate(zip(paths, attributes)):
            if not svg_path_obj.isclosed():
                continue
            points = self._path_to_points(svg_path_obj)
            if len(points) < Polygon.MIN_VERTICES:
                continue
            logger.debug(f"Using SVG path {attrs.get('id', f'path_{i}')} ({len(points)} points)")
            # SVG y axis points down.
            points[:, 1] *= -1
            return Polygon.from_array(points * factor)

        logger.warning(f"{svg_path}: no closed path found")
        return Polygon()

    def _path_to_points(self, svg_path: SvgPath) -> np.ndarray:
        """Convert an SVG path to a numpy array of points."""
        points = []

        for segment in svg_path:
            if isinstance(segment, Line):
                # Just need start point; end point comes from next segment
                points.append((segment.start.real, segment.start.imag))
            elif isinstance(segment, (CubicBezier, QuadraticBezier, Arc)):
                for t in np.linspace(0, 1, self.CURVE_SAMPLES, endpoint=False):
                    pt = segment.point(t)
                    points.append((pt.real, pt.imag))

        if not points:
            return np.array([]).reshape(0, 2)

        return np.array(points, dtype=float)


def load_polygon_file(path: Path, factor: float = 1.0) -> Polygon:
    """Read a polygon from a text or SVG file, centered on its centroid.

    Returns an empty polygon if the file cannot be read.
    """
    path = Path(path)
    try:
        if path.suffix.lower() == ".svg":
            polygon = SVGLoader().load(path, factor)
        else:
            with open(path) as f:
                polygon = parse_polygon_text(f, factor, source=str(path))
    except OSError as e:
        logger.error(f"Can't open {path}: {e}")
        return Polygon()
    if not polygon:
        return polygon
    return polygon.centered()
