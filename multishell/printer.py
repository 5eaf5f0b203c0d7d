"""Abstract 3D output: moving and extruding in space.

Concrete printers write G-code for a 3D printer or a PostScript/image
preview. The sweep and shell code only talk to this interface.
"""

from abc import ABC, abstractmethod
from io import StringIO
from typing import Optional, TextIO

from .geometry import Vector2D


class PrinterMisuseError(RuntimeError):
    """Retract/reset-extrude called out of order. A programming error."""


class Printer(ABC):
    """Sink for an ordered stream of toolpath commands.

    The filament starts out retracted: init() ends with a retract, so
    every reset_extrude() must be followed by exactly one retract()
    before the next reset_extrude().
    """

    def __init__(self, stream: Optional[TextIO] = None):
        self.stream = stream if stream is not None else StringIO()
        self._retracted = True

    def _write(self, line: str) -> None:
        self.stream.write(line + "\n")

    def get_output(self) -> str:
        """Everything written so far, if the stream is an in-memory buffer."""
        return self.stream.getvalue()

    @staticmethod
    def _format(fmt: str, args: tuple) -> str:
        text = fmt % args if args else fmt
        return text.rstrip("\n")

    # Lifecycle
    @abstractmethod
    def preamble(self, bed_limits: Vector2D, feed_mm_per_sec: float) -> None:
        """Start of the output."""

    @abstractmethod
    def init(self, bed_limits: Vector2D, feed_mm_per_sec: float) -> None:
        """Machine setup, after preamble() and the header comments."""

    @abstractmethod
    def postamble(self) -> None:
        """End of the output."""

    @abstractmethod
    def comment(self, fmt: str, *args) -> None:
        """Free-form annotation; printf-style formatting."""

    @abstractmethod
    def set_temperature(self, temperature: float) -> None:
        pass

    @abstractmethod
    def set_speed(self, feed_mm_per_sec: float) -> None:
        pass

    @abstractmethod
    def go_z_pos(self, z: float) -> None:
        """Go to z position without changing x/y."""

    @abstractmethod
    def move_to(self, pos: Vector2D, z: float) -> None:
        """Move to an absolute position without extruding."""

    @abstractmethod
    def extrude_to(self, pos: Vector2D, z: float, extrusion_multiplier: float = 1.0) -> None:
        """Move to an absolute position while extruding."""

    @abstractmethod
    def switch_fan(self, on: bool) -> None:
        pass

    @abstractmethod
    def get_extrusion_distance(self) -> float:
        """Distance extruded along since the last reset_extrude()."""

    def set_color(self, r: float, g: float, b: float) -> None:
        """Visualization only; ignored by machine output."""

    # Filament state, guarded
    def reset_extrude(self) -> None:
        if not self._retracted:
            raise PrinterMisuseError("reset_extrude() without preceding retract()")
        self._retracted = False
        self._reset_extrude()

    def retract(self) -> None:
        if self._retracted:
            raise PrinterMisuseError("retract() without preceding reset_extrude()")
        self._retracted = True
        self._retract()

    @abstractmethod
    def _reset_extrude(self) -> None:
        """Push filament back and zero the extrusion accounting."""

    @abstractmethod
    def _retract(self) -> None:
        """Pull filament back from the nozzle."""
