"""Polygon offsetting (inset/outset) for nested shells."""

import logging
import math
from enum import Enum

import numpy as np
import shapely
from shapely.geometry import Polygon as ShapelyPolygon, MultiPolygon, GeometryCollection
from shapely.geometry.polygon import orient
from shapely.ops import unary_union

from .geometry import Polygon, Vector2D

logger = logging.getLogger(__name__)

# Offsetting runs on an integer grid; 1 unit = 1/ACCURACY mm.
ACCURACY = 500.0

# Max deviation of round joins from the true arc, in grid units (0.01mm).
ARC_TOLERANCE = 5.0

MITER_LIMIT = 2.0


class JoinStyle(Enum):
    """How corners are joined when offsetting outward."""
    ROUND = "round"    # Arc around the corner
    SQUARE = "square"  # Corner cut off at the offset distance
    MITER = "miter"    # Sharp corner, cut off beyond MITER_LIMIT


def _quad_segs(delta: float) -> int:
    """Segments per quarter circle to keep round joins within ARC_TOLERANCE."""
    radius = abs(delta)
    if radius <= ARC_TOLERANCE:
        return 1
    step = 2 * math.acos(1 - ARC_TOLERANCE / radius)
    return min(256, max(1, math.ceil((math.pi / 2) / step)))


def _buffer_kwargs(join_style: JoinStyle, delta: float) -> dict:
    if join_style == JoinStyle.ROUND:
        return {"join_style": "round", "quad_segs": _quad_segs(delta)}
    elif join_style == JoinStyle.SQUARE:
        # A mitre limited to 1.0 is bevelled exactly at the offset distance
        return {"join_style": "mitre", "mitre_limit": 1.0}
    else:  # MITER
        return {"join_style": "mitre", "mitre_limit": MITER_LIMIT}


def _polygonal_parts(geom) -> list[ShapelyPolygon]:
    """Extract the non-empty polygons of any geometry."""
    if geom.is_empty:
        return []
    if isinstance(geom, ShapelyPolygon):
        return [geom]
    if isinstance(geom, (MultiPolygon, GeometryCollection)):
        parts = []
        for g in geom.geoms:
            parts.extend(_polygonal_parts(g))
        return parts
    return []


def _to_grid(polygon: Polygon):
    """Polygon in integer grid units, repaired if self-intersecting."""
    grid = Polygon.from_array(np.rint(polygon.scaled(ACCURACY).points))
    shape = grid.to_shapely()
    if not shape.is_valid:
        # Twisted profiles fold over themselves; keep the covered area.
        shape = unary_union(_polygonal_parts(shapely.make_valid(shape)))
    return shape


def _is_residue(part, shape, delta: float) -> bool:
    """True for a leftover of a collapsed inward offset.

    A genuine inset keeps about |delta| from the source boundary; a
    shrink past the inradius can leave a speck much closer to it.
    """
    clearance = part.exterior.distance(shape.boundary)
    return clearance < abs(delta) - 2 * ARC_TOLERANCE


def offset_loops(
    polygon: Polygon,
    distance: float,
    join_style: JoinStyle = JoinStyle.ROUND,
) -> list[Polygon]:
    """Offset a polygon and return every resulting outer loop.

    Args:
        polygon: Closed polygon, at least three vertices
        distance: Positive grows the polygon, negative shrinks it (mm)
        join_style: Corner treatment

    Returns:
        Zero or more loops in mm, oriented like the input polygon.
    """
    if not polygon.is_usable:
        return []

    shape = _to_grid(polygon)
    if shape.is_empty:
        return []

    delta = distance * ACCURACY
    result = shape.buffer(delta, **_buffer_kwargs(join_style, delta))
    result = shapely.set_precision(result, grid_size=1.0)

    sign = 1.0 if polygon.signed_area >= 0 else -1.0
    loops = []
    for part in _polygonal_parts(result):
        if delta < 0 and _is_residue(part, shape, delta):
            continue
        ring = np.array(orient(part, sign=sign).exterior.coords)[:-1]
        if len(ring) >= Polygon.MIN_VERTICES:
            loops.append(Polygon.from_array(ring / ACCURACY))
    return loops


def _start_near(polygon: Polygon, reference: Vector2D) -> Polygon:
    """Rotate vertex order so the vertex closest to reference comes first."""
    d = polygon.points - np.array([reference.x, reference.y])
    start = int(np.argmin(np.hypot(d[:, 0], d[:, 1])))
    return Polygon.from_array(np.roll(polygon.points, -start, axis=0))


def offset_polygon(
    polygon: Polygon,
    distance: float,
    join_style: JoinStyle = JoinStyle.ROUND,
) -> Polygon:
    """Offset a polygon, keeping the piece around its own centroid.

    An inward offset can split a polygon into several loops. The loop
    whose bounding box straddles the centroid of the input is kept; this
    is a heuristic and can pick the wrong piece for strongly non
    star-shaped inputs. The result starts at the vertex closest to the
    input's first vertex, so nested shells share their seam.

    Returns:
        The offset polygon, or an empty polygon if the offset collapsed
        or no piece is centered.
    """
    loops = offset_loops(polygon, distance, join_style)
    if not loops:
        logger.debug(f"Offset {distance:.3f}mm: nothing left")
        return Polygon()

    centroid = polygon.centroid
    centered = next((loop for loop in loops if loop.bounds.straddles(centroid)), None)
    if centered is None:
        logger.debug(f"Offset {distance:.3f}mm: {len(loops)} loop(s), none centered")
        return Polygon()
    if len(loops) > 1:
        logger.debug(f"Offset {distance:.3f}mm split into {len(loops)} loops")

    return _start_near(centered, polygon[0])
