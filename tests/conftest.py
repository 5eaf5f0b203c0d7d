"""
Pytest configuration and shared fixtures for multishell tests.
"""

import math

import numpy as np
import pytest

from multishell.geometry import Polygon, Vector2D
from multishell.printer import Printer


class RecordingPrinter(Printer):
    """Printer that records every call as (name, args...)."""

    def __init__(self):
        super().__init__()
        self.calls: list[tuple] = []
        self._distance = 0.0
        self._last = None

    def _record(self, *call):
        self.calls.append(call)

    def named(self, name: str) -> list[tuple]:
        return [c for c in self.calls if c[0] == name]

    def preamble(self, bed_limits, feed_mm_per_sec):
        self._record("preamble", bed_limits, feed_mm_per_sec)

    def init(self, bed_limits, feed_mm_per_sec):
        self._record("init", bed_limits, feed_mm_per_sec)

    def postamble(self):
        self._record("postamble")

    def comment(self, fmt, *args):
        self._record("comment", self._format(fmt, args))

    def set_temperature(self, temperature):
        self._record("set_temperature", temperature)

    def set_speed(self, feed_mm_per_sec):
        self._record("set_speed", feed_mm_per_sec)

    def go_z_pos(self, z):
        self._record("go_z_pos", z)

    def move_to(self, pos, z):
        self._record("move_to", pos, z)
        self._last = (pos.x, pos.y, z)

    def extrude_to(self, pos, z, extrusion_multiplier=1.0):
        self._record("extrude_to", pos, z, extrusion_multiplier)
        if self._last is not None:
            self._distance += math.dist(self._last, (pos.x, pos.y, z))
        self._last = (pos.x, pos.y, z)

    def switch_fan(self, on):
        self._record("switch_fan", on)

    def set_color(self, r, g, b):
        self._record("set_color", r, g, b)

    def get_extrusion_distance(self):
        return self._distance

    def _reset_extrude(self):
        self._record("reset_extrude")
        self._distance = 0.0

    def _retract(self):
        self._record("retract")


def regular_polygon(n: int, radius: float, phase: float = 0.0) -> Polygon:
    """Counter-clockwise regular n-gon around the origin."""
    angles = phase + 2 * math.pi * np.arange(n) / n
    return Polygon.from_array(np.column_stack([radius * np.cos(angles), radius * np.sin(angles)]))


@pytest.fixture
def make_regular():
    return regular_polygon


@pytest.fixture
def recorder():
    return RecordingPrinter()


@pytest.fixture
def square():
    """10x10 square centered on the origin."""
    return Polygon([(-5, -5), (5, -5), (5, 5), (-5, 5)])


@pytest.fixture
def circle():
    """Fine 360-gon of radius 10."""
    return regular_polygon(360, 10.0)


@pytest.fixture
def origin():
    return Vector2D(0.0, 0.0)
