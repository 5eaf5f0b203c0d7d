"""Layer-by-layer helical sweep of one shell."""

import logging
import math
from dataclasses import dataclass, field
from enum import Enum

from .geometry import Polygon, Vector2D
from .offset import offset_polygon
from .printer import Printer

logger = logging.getLogger(__name__)


class LockState(Enum):
    """Which polygon the sweep is currently tracing."""
    START = "start"
    WIDE_LOCK = "wide_lock"      # Grown polygon at the bottom of the screw
    NORMAL = "normal"
    NARROW_LOCK = "narrow_lock"  # Shrunk polygon at the top of the screw


@dataclass(frozen=True)
class ExtrusionParams:
    """Parameters for sweeping one shell."""
    feed_rate: float  # mm/s, already limited by layer time
    layer_height: float
    total_height: float
    rotation_per_mm: float = 0.0  # turns per mm height; sign sets chirality
    lock_offset: float = -1.0  # <= 0 disables lock geometry
    lock_overlap: float = 3.0  # mm of height spent in each lock polygon
    fan_on_height: float = 1.5
    first_layer_extrusion: float = 1.0  # multiplier during the first layers
    extrusion_ramp_layers: int = 2
    first_layer_speed: float = 0.7  # fraction of feed rate at height 0
    speed_ramp_layers: int = 4
    wipe_fraction: float = 0.2  # fraction of a layer at the top without extrusion
    bottom_z_offset: float = 0.0
    temperature: float = 190.0
    temperature_variation: float = 0.0  # amplitude; 0 leaves temperature alone
    temperature_period: float = 5.0  # mm of height per temperature cycle

    @property
    def rotation_per_layer(self) -> float:
        """Rotation in radians over one layer height."""
        return self.layer_height * self.rotation_per_mm * 2 * math.pi

    @property
    def layer_count(self) -> int:
        if self.layer_height <= 0 or self.total_height <= 0:
            return 0
        return math.ceil(self.total_height / self.layer_height - 1e-9)

    @property
    def locking(self) -> bool:
        return self.lock_offset > 0


@dataclass
class SweepStats:
    """What a sweep emitted."""
    layers: int = 0
    extrude_moves: int = 0
    wipe_moves: int = 0
    states: list[LockState] = field(default_factory=list)


def _next_state(state: LockState, height: float, params: ExtrusionParams) -> LockState:
    """Lock state machine transition for the layer at height."""
    if state == LockState.START:
        return LockState.WIDE_LOCK if params.locking else LockState.NORMAL
    if not params.locking:
        return state
    if state == LockState.WIDE_LOCK and height > params.lock_overlap:
        return LockState.NORMAL
    if state == LockState.NORMAL and height >= params.total_height - params.lock_overlap:
        return LockState.NARROW_LOCK
    return state


def _lock_polygons(polygon: Polygon, params: ExtrusionParams) -> dict[LockState, Polygon]:
    polygons = {LockState.NORMAL: polygon}
    if not params.locking:
        return polygons
    for state, distance in ((LockState.WIDE_LOCK, params.lock_offset),
                            (LockState.NARROW_LOCK, -params.lock_offset)):
        locked = offset_polygon(polygon, distance)
        if not locked.is_usable or locked.perimeter <= 0:
            logger.warning(f"Lock offset {distance:+.2f}mm collapses the shell; using plain polygon")
            locked = polygon
        polygons[state] = locked
    return polygons


def _speed_factor(height: float, params: ExtrusionParams) -> float:
    ramp = params.speed_ramp_layers * params.layer_height
    if ramp <= 0:
        return 1.0
    f0 = params.first_layer_speed
    return min(1.0, f0 + (1.0 - f0) * height / ramp)


def _place(p: Vector2D, angle: float, center: Vector2D) -> Vector2D:
    return p.rotated(angle) + center


def sweep(
    polygon: Polygon,
    printer: Printer,
    center: Vector2D,
    params: ExtrusionParams,
) -> SweepStats:
    """Extrude a polygon upward while rotating it, layer by layer.

    Rotation and height advance continuously along the perimeter, not in
    steps per layer, so the result is a smooth helical surface. The
    polygon is expected to be centered on the origin; it is placed at
    center.

    Returns:
        Statistics about the emitted commands. A polygon that cannot be
        swept (empty, degenerate) is skipped with a warning.
    """
    stats = SweepStats()
    if not polygon.is_usable or polygon.perimeter <= 0:
        logger.warning(f"Skipping sweep at ({center.x:.1f}, {center.y:.1f}): degenerate polygon")
        return stats

    printer.comment("Center X=%.1f Y=%.1f", center.x, center.y)
    printer.switch_fan(False)

    polygons = _lock_polygons(polygon, params)
    rotation_per_layer = params.rotation_per_layer
    top_wipe = params.total_height - params.wipe_fraction * params.layer_height
    bottom_wipe = params.bottom_z_offset / 2
    ramping = params.first_layer_speed != 1.0
    ramp_height = params.speed_ramp_layers * params.layer_height
    slowed = False

    state = LockState.START
    active = polygon
    edges = active.edge_lengths()
    polygon_len = float(edges.sum())
    fan_is_on = False

    for layer in range(params.layer_count):
        height = layer * params.layer_height
        angle = layer * rotation_per_layer

        new_state = _next_state(state, height, params)
        if new_state != state:
            logger.debug(f"Layer {layer} (z={height:.2f}): {state.value} -> {new_state.value}")
            state = new_state
            stats.states.append(state)
            active = polygons[state]
            edges = active.edge_lengths()
            polygon_len = float(edges.sum())
            # New seam point for the arc-length interpolation.
            printer.move_to(_place(active[0], angle, center), height)

        if ramping:
            if height < ramp_height:
                printer.set_speed(params.feed_rate * _speed_factor(height, params))
                slowed = True
            elif slowed:
                printer.set_speed(params.feed_rate)
                slowed = False

        if not fan_is_on and height > params.fan_on_height:
            printer.switch_fan(True)
            fan_is_on = True

        if params.temperature_variation != 0 and params.temperature_period > 0:
            printer.set_temperature(
                params.temperature + params.temperature_variation
                * math.sin(2 * math.pi * height / params.temperature_period)
            )

        extrusion = (params.first_layer_extrusion
                     if height < params.extrusion_ramp_layers * params.layer_height else 1.0)

        run_len = 0.0
        for i in range(len(active)):
            if i > 0:
                run_len += edges[i]
            fraction = run_len / polygon_len
            a = angle + fraction * rotation_per_layer
            pos = _place(active[i], a, center)
            z = height + params.layer_height * fraction
            if z >= top_wipe or z < bottom_wipe:
                # Clean start/stop of the shell without extruding.
                printer.move_to(pos, z)
                stats.wipe_moves += 1
            else:
                printer.extrude_to(pos, z, extrusion)
                stats.extrude_moves += 1

        stats.layers += 1

    return stats
