"""Base polygon construction from a cyclic radial profile string."""

import logging
import math

import numpy as np

from .geometry import Polygon

logger = logging.getLogger(__name__)

# Chordal error tolerated when sampling the outer circle (mm).
DEFAULT_MAX_ERROR = 0.15 / 2

# Twist magnitude above which the face count is quadrupled.
TWIST_THRESHOLD = 0.05


class RadialProfile:
    """Periodic radial function rolled out from a template string.

    Each character maps to a value in [0, 1] by rescaling its ordinal
    with the min/max ordinal of the whole string. The sequence covers
    one revolution; values in between are linearly interpolated, with
    the last sample wrapping back to the first.
    """

    def __init__(self, template: str):
        if not template:
            raise ValueError("profile template must not be empty")
        ordinals = np.array([ord(c) for c in template], dtype=float)
        lo, hi = ordinals.min(), ordinals.max()
        span = hi - lo
        if span > 0:
            self.values = (ordinals - lo) / span
        else:
            self.values = np.zeros(len(ordinals))

    def __len__(self) -> int:
        return len(self.values)

    def value(self, phi: float) -> float:
        """Profile value at phi, a fraction of a full turn."""
        n = len(self.values)
        pos = (phi % 1.0) * n
        index = int(pos) % n
        a = self.values[index]
        b = self.values[(index + 1) % n]
        return float(a + (b - a) * (pos - int(pos)))


def _quantize_up(x: int, q: int) -> int:
    return q * ((x + q - 1) // q)


def face_count(max_r: float, profile_len: int, twist: float = 0.0,
               max_error: float = DEFAULT_MAX_ERROR) -> int:
    """Number of polygon faces needed to keep chordal error below max_error.

    The half chord follows from the sagitta of a circle of radius max_r.
    The count is rounded up to a multiple of profile_len so every profile
    sample falls on a face boundary.
    """
    if max_r <= max_error:
        faces = profile_len
    else:
        half_segment = math.sqrt(max_r * max_r - (max_r - max_error) ** 2)
        faces = math.ceil((2 * math.pi * max_r) / (2 * half_segment))
    faces = _quantize_up(max(faces, 1), profile_len)
    if abs(twist) > TWIST_THRESHOLD:
        faces *= 4
    return faces


def rotational_polygon(
    template: str,
    inner_radius: float,
    thread_depth: float,
    twist: float = 0.0,
    max_error: float = DEFAULT_MAX_ERROR,
) -> Polygon:
    """Build a closed polygon around the origin from a profile template.

    Args:
        template: Profile string; one character per 'dent' around the circumference
        inner_radius: Radius where the profile value is 0
        thread_depth: Radial distance between profile values 0 and 1
        twist: Extra turn fraction at max radius; scales linearly with radius
        max_error: Tolerated chordal error of the sampling (mm)

    Returns:
        Polygon centered at the origin, counter-clockwise.
    """
    profile = RadialProfile(template)
    max_r = inner_radius + thread_depth
    faces = face_count(max_r, len(profile), twist, max_error)
    logger.debug(f"Profile '{template}': {faces} faces, max radius {max_r:.2f}mm")

    phi = np.arange(faces) / faces
    values = np.array([profile.value(p) for p in phi])
    r = inner_radius + thread_depth * values
    # Lever arm: outer parts of the profile twist further.
    twist_angle = twist * r / max_r if max_r > 0 else np.zeros(faces)
    angle = (phi + twist_angle) * 2 * math.pi
    return Polygon.from_array(np.column_stack([r * np.cos(angle), r * np.sin(angle)]))
