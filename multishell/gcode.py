"""G-code output for RepRap-style 3D printers."""

import math
from typing import Optional, TextIO

from .geometry import Vector2D
from .printer import Printer


class GCodePrinter(Printer):
    """Writes absolute-extrusion G-code.

    Extruded length is tracked in mm of travel and converted to E-axis
    units with extrusion_factor.
    """

    RETRACT_AMOUNT = 2.0  # mm of filament
    # Pushing back a bit more than was retracted primes the nozzle.
    PRIME_FUDGE = 1.1

    def __init__(
        self,
        extrusion_factor: float,
        temperature: float = 190.0,
        stream: Optional[TextIO] = None,
    ):
        super().__init__(stream)
        self.extrusion_factor = extrusion_factor
        self.temperature = temperature
        self._travel: float = 0.0  # mm moved while extruding
        self._e_length: float = 0.0  # mm weighted by extrusion multiplier
        self._last: Optional[tuple[float, float, float]] = None

    def _format_coord(self, value: float) -> str:
        """Format a coordinate value."""
        return f"{value:.3f}"

    def _relative_e(self, amount: float, comment: str) -> None:
        self._write("M83")  # extruder relative mode
        self._write(f"G1 E{amount:.1f} ; {comment}")
        self._write("M82")  # extruder absolute mode

    def preamble(self, bed_limits: Vector2D, feed_mm_per_sec: float) -> None:
        self._write("; G-Code")
        self._write("")

    def init(self, bed_limits: Vector2D, feed_mm_per_sec: float) -> None:
        self._write("G28")
        self._write(f"G1 F{feed_mm_per_sec * 60:.1f}")
        self._write("G1 X150 Y10 Z30")
        self._write(f"M109 S{self.temperature:.0f}")
        self._write("M116")
        self._write("M82 ; absolute extrusion")
        self._write("G1 E5")  # squirt out stuff
        self._write("G92 E0")
        self._write("; test extrusion...")
        test_from = 0.8 * bed_limits.x
        test_to = 0.2 * bed_limits.x
        self._write(f"G1 X{test_from:.1f} Y10 Z0")
        self._write(
            f"G1 X{test_to:.1f} Y10 E{(test_from - test_to) * self.extrusion_factor:.3f} F1000"
        )
        self._relative_e(-self.RETRACT_AMOUNT, "retract")
        self._write("G1 Z5")

    def postamble(self) -> None:
        self._write("M104 S0 ; hotend off")
        self._write("M106 S0 ; fan off")
        self._write("G28 X0 Y0")
        self._write("M84")

    def comment(self, fmt: str, *args) -> None:
        text = self._format(fmt, args)
        for line in text.split("\n"):
            self._write(f"; {line}".rstrip())

    def set_temperature(self, temperature: float) -> None:
        self._write(f"M104 S{temperature:.0f}")

    def set_speed(self, feed_mm_per_sec: float) -> None:
        self._write(f"G1 F{feed_mm_per_sec * 60:.1f}  ; feedrate={feed_mm_per_sec:.1f}mm/s")

    def go_z_pos(self, z: float) -> None:
        self._write(f"G1 Z{self._format_coord(z)}")
        if self._last is not None:
            self._last = (self._last[0], self._last[1], z)

    def move_to(self, pos: Vector2D, z: float) -> None:
        self._write(
            f"G1 X{self._format_coord(pos.x)} Y{self._format_coord(pos.y)} Z{self._format_coord(z)}"
        )
        self._last = (pos.x, pos.y, z)

    def extrude_to(self, pos: Vector2D, z: float, extrusion_multiplier: float = 1.0) -> None:
        if self._last is not None:
            lx, ly, lz = self._last
            dist = math.sqrt((pos.x - lx) ** 2 + (pos.y - ly) ** 2 + (z - lz) ** 2)
            self._travel += dist
            self._e_length += dist * extrusion_multiplier
        self._write(
            f"G1 X{self._format_coord(pos.x)} Y{self._format_coord(pos.y)} Z{self._format_coord(z)} "
            f"E{self._e_length * self.extrusion_factor:.3f}"
        )
        self._last = (pos.x, pos.y, z)

    def switch_fan(self, on: bool) -> None:
        self._write(f"M106 S{255 if on else 0}")

    def get_extrusion_distance(self) -> float:
        return self._travel

    def _reset_extrude(self) -> None:
        self._relative_e(self.PRIME_FUDGE * self.RETRACT_AMOUNT, "filament back to nozzle tip")
        self._write("G92 E0  ; start extrusion")
        self._travel = 0.0
        self._e_length = 0.0

    def _retract(self) -> None:
        self._relative_e(-self.RETRACT_AMOUNT, "retract")
