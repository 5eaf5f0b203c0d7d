"""Lay out and print a family of nested screw shells."""

import colorsys
import logging
from dataclasses import dataclass, replace
from typing import Sequence

from .config import ScrewConfig
from .extrusion import sweep
from .geometry import Polygon, Vector2D, load_polygon_file, pump_polygon, require_usable
from .offset import offset_polygon
from .printer import Printer
from .profile import rotational_polygon

logger = logging.getLogger(__name__)

# Margin kept to the bed edges and around nested previews (mm).
EDGE_CLEARANCE = 5.0
# Height above the print to travel between shells (mm).
TRAVEL_CLEARANCE = 5.0


@dataclass
class PrintSummary:
    """Totals over all printed shells."""
    shells_printed: int = 0
    skipped: int = 0
    truncated: bool = False
    total_travel: float = 0.0  # mm extruded along
    total_time: float = 0.0  # seconds, ignoring acceleration


def build_base_polygon(config: ScrewConfig) -> Polygon:
    """Polygon all shells are offset from, centered on the origin."""
    if config.data_file is not None:
        polygon = load_polygon_file(config.data_file, config.initial_size)
    else:
        polygon = rotational_polygon(
            config.template,
            config.initial_size,
            config.effective_thread_depth,
            config.twist,
            max_error=config.face_error(),
        )
    return pump_polygon(polygon, config.pump)


def _shell_color(index: int, count: int) -> tuple[float, float, float]:
    return colorsys.hsv_to_rgb(index / max(count, 1), 0.8, 0.8)


def nested_layout(base_polygon: Polygon, config: ScrewConfig) -> tuple[Vector2D, Vector2D]:
    """Bed size and shared center that fit the largest shell."""
    # Increments may be negative, so any shell can be the largest.
    radii = [offset_polygon(base_polygon, config.shell_offset(i)).radius()
             for i in range(config.screw_count)]
    max_radius = max(radii + [base_polygon.radius()])
    half = max_radius + EDGE_CLEARANCE
    return Vector2D(2 * half, 2 * half), Vector2D(half, half)


def print_shells(
    base_polygon: Polygon,
    printer: Printer,
    config: ScrewConfig,
    header: Sequence[str] = (),
) -> PrintSummary:
    """Print config.screw_count shells of base_polygon into printer.

    Shells are placed diagonally across the bed, each one offset by the
    head clearance from the previous, unless config.nested puts them all
    on one center. Printing stops early, with a warning, once a shell
    would leave the bed.

    Raises:
        PolygonError: base polygon unusable; nothing has been written.
        ConfigurationError: invalid configuration; nothing has been written.
    """
    config.validate()
    require_usable(base_polygon, "base polygon")

    machine = config.machine
    bed = machine.bed_size
    position = machine.start
    if config.nested:
        bed, position = nested_layout(base_polygon, config)

    printer.preamble(bed, machine.feed_rate)
    for line in header:
        printer.comment("%s", line)
    printer.comment("")
    printer.comment("screw template '%s'", config.template if config.data_file is None else config.data_file)
    printer.comment("size=%.1fmm h=%.1fmm n=%d (shell-increment=%.1fmm)",
                    config.initial_size, config.total_height, config.screw_count,
                    config.shell_increment)
    printer.comment("thread-depth=%.1fmm faces=%d", config.effective_thread_depth, len(base_polygon))
    printer.comment("feed=%.1fmm/s (maximum; layer time at least %.1f s)",
                    machine.feed_rate, machine.min_layer_time)
    printer.comment("pitch=%.1fmm/turn layer-height=%.3f", config.pitch, config.layer_height)
    printer.comment("machine limits: bed: (%.0f/%.0f):  head-offset: (%.0f,%.0f)",
                    bed.x, bed.y, machine.head_offset.x, machine.head_offset.y)
    printer.comment("----")

    printer.init(bed, machine.feed_rate)

    summary = PrintSummary()
    printer.set_speed(machine.feed_rate)  # initial speed
    for i in range(config.screw_count):
        shell_offset = config.shell_offset(i)
        polygon = offset_polygon(base_polygon, shell_offset)
        if not polygon.is_usable:
            logger.warning(f"Screw #{i}: offset {shell_offset:.2f}mm leaves no polygon, skipping")
            summary.skipped += 1
            continue

        radius = polygon.radius()
        if not config.nested:
            position = position + Vector2D(radius, radius)
        if (position.x + radius + EDGE_CLEARANCE > bed.x
                or position.y + radius + EDGE_CLEARANCE > bed.y):
            logger.warning(
                f"With currently configured bed size and head offset, only {i} screws fit. "
                f"Configure your machine constraints (currently bed {bed.x:.0f},{bed.y:.0f} "
                f"head-offset {machine.head_offset.x:.0f},{machine.head_offset.y:.0f})"
            )
            summary.truncated = True
            break

        travel_z = TRAVEL_CLEARANCE if summary.shells_printed == 0 else config.total_height + TRAVEL_CLEARANCE
        printer.move_to(position, travel_z)
        layer_feedrate = config.layer_feedrate(polygon.perimeter)
        printer.reset_extrude()
        printer.set_speed(layer_feedrate)
        printer.set_color(*_shell_color(i, config.screw_count))
        printer.comment("Screw #%d, polygon-offset=%.1f", i, shell_offset)
        logger.info(f"Screw #{i}: offset {shell_offset:.2f}mm, radius {radius:.2f}mm, "
                    f"feed {layer_feedrate:.1f}mm/s")

        params = config.extrusion_params(layer_feedrate)
        sweep(polygon, printer, position, params)

        travel = printer.get_extrusion_distance()  # since last reset
        summary.total_travel += travel
        if layer_feedrate > 0:
            summary.total_time += travel / layer_feedrate  # roughly (without acceleration)
        summary.shells_printed += 1

        printer.set_speed(machine.feed_rate)
        printer.retract()
        printer.go_z_pos(config.total_height + TRAVEL_CLEARANCE)
        if not config.nested:
            position = position + Vector2D(machine.head_offset.x + radius,
                                           machine.head_offset.y + radius)

    printer.postamble()
    return summary


def preview_config(config: ScrewConfig, layers: int = 3) -> ScrewConfig:
    """Copy of config limited to a few layers; enough for a schematic."""
    return replace(config, total_height=min(config.total_height, layers * config.layer_height))
