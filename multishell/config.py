"""Configuration for a multi-shell print."""

from dataclasses import dataclass, field
from enum import Enum
from pathlib import Path
from typing import Optional

from .extrusion import ExtrusionParams
from .geometry import Vector2D


class ConfigurationError(ValueError):
    """Invalid or contradicting configuration values."""


class OutputFormat(Enum):
    GCODE = "gcode"
    POSTSCRIPT = "postscript"


DEFAULT_TEMPLATE = "AABBBAABBBAABBB"

# Pitch below which the screw is printed straight.
MIN_PITCH = 0.1


@dataclass
class MachineConfig:
    """Printer and filament properties."""
    bed_size: Vector2D = field(default_factory=lambda: Vector2D(150.0, 150.0))
    # Clearance needed from hotend tip to the left and front of the head
    head_offset: Vector2D = field(default_factory=lambda: Vector2D(45.0, 45.0))
    start: Vector2D = field(default_factory=lambda: Vector2D(5.0, 5.0))
    feed_rate: float = 100.0  # mm/s, maximum
    min_layer_time: float = 6.0  # seconds; limits feed rate on small shells
    nozzle_diameter: float = 0.4
    filament_diameter: float = 1.75
    shell_thickness_factor: float = 1.7  # ~2*nozzle = ~0.8mm shell thickness
    temperature: float = 190.0


@dataclass
class ScrewConfig:
    """What to print: the polygon and how to sweep it."""
    total_height: float
    template: str = DEFAULT_TEMPLATE
    data_file: Optional[Path] = None
    initial_size: float = 10.0  # radius for templates, scale for data files
    thread_depth: Optional[float] = None  # defaults to initial_size / 5
    twist: float = 0.0
    pump: float = 0.0
    screw_count: int = 2
    initial_shell: float = 0.0
    shell_increment: float = 1.2
    layer_height: float = 0.16
    pitch: float = 30.0  # mm height per full turn; negative for left-hand
    lock_offset: float = -1.0
    lock_overlap: float = 3.0
    fan_on_height: float = 1.5
    first_layer_extrusion: float = 1.0
    first_layer_speed: float = 0.7
    wipe_fraction: float = 0.2
    bottom_z_offset: float = 0.0
    temperature_variation: float = 0.0
    temperature_period: float = 5.0
    output: OutputFormat = OutputFormat.GCODE
    nested: bool = False  # all shells on one center; preview only
    machine: MachineConfig = field(default_factory=MachineConfig)

    @property
    def effective_thread_depth(self) -> float:
        if self.thread_depth is None or self.thread_depth < 0:
            return self.initial_size / 5
        return self.thread_depth

    @property
    def rotation_per_mm(self) -> float:
        """Turns per mm of height."""
        if abs(self.pitch) < MIN_PITCH:
            return 0.0
        return 1.0 / self.pitch

    @property
    def extrusion_factor(self) -> float:
        """mm of filament per mm of extruded travel."""
        nozzle_r = self.machine.nozzle_diameter / 2
        filament_r = self.machine.filament_diameter / 2
        return (self.machine.shell_thickness_factor * nozzle_r * (self.layer_height / 2)
                / (filament_r * filament_r))

    @property
    def line_thickness(self) -> float:
        return self.machine.shell_thickness_factor * self.machine.nozzle_diameter

    def shell_offset(self, index: int) -> float:
        return self.initial_shell + index * self.shell_increment

    def validate(self) -> None:
        """Raise ConfigurationError for unusable values."""
        if self.total_height <= 0:
            raise ConfigurationError(f"height must be positive, got {self.total_height}")
        if self.layer_height <= 0:
            raise ConfigurationError(f"layer height must be positive, got {self.layer_height}")
        if self.screw_count < 1:
            raise ConfigurationError(f"need at least one screw, got {self.screw_count}")
        if self.data_file is None and not self.template:
            raise ConfigurationError("template must not be empty")
        if self.initial_size <= 0:
            raise ConfigurationError(f"size must be positive, got {self.initial_size}")
        if self.machine.feed_rate <= 0:
            raise ConfigurationError(f"feed rate must be positive, got {self.machine.feed_rate}")
        if self.machine.min_layer_time < 0:
            raise ConfigurationError("layer time must not be negative")
        if self.nested and self.output != OutputFormat.POSTSCRIPT:
            raise ConfigurationError("nested mode only valid with postscript output")

    def extrusion_params(self, feed_rate: float) -> ExtrusionParams:
        """Sweep parameters for a shell printed at feed_rate."""
        return ExtrusionParams(
            feed_rate=feed_rate,
            layer_height=self.layer_height,
            total_height=self.total_height,
            rotation_per_mm=self.rotation_per_mm,
            lock_offset=self.lock_offset,
            lock_overlap=self.lock_overlap,
            fan_on_height=self.fan_on_height,
            first_layer_extrusion=self.first_layer_extrusion,
            first_layer_speed=self.first_layer_speed,
            wipe_fraction=self.wipe_fraction,
            bottom_z_offset=self.bottom_z_offset,
            temperature=self.machine.temperature,
            temperature_variation=self.temperature_variation,
            temperature_period=self.temperature_period,
        )

    def layer_feedrate(self, perimeter: float) -> float:
        """Feed rate bounded by the maximum and by the minimum layer time."""
        if self.machine.min_layer_time <= 0:
            return self.machine.feed_rate
        return min(self.machine.feed_rate, perimeter / self.machine.min_layer_time)

    def face_error(self) -> float:
        """Chordal error tolerated when building the profile polygon."""
        return self.layer_height / 2
