"""PostScript schematic output: a top view of the toolpath."""

from typing import Optional, TextIO

from .geometry import Vector2D
from .printer import Printer

MM_TO_POINT = 72.0 / 25.4


class PostScriptPrinter(Printer):
    """Draws extrusions as lines; moves optionally as thin grey lines."""

    def __init__(
        self,
        show_move_as_line: bool,
        line_thickness: float,
        stream: Optional[TextIO] = None,
    ):
        super().__init__(stream)
        self.show_move_as_line = show_move_as_line
        self.line_thickness = line_thickness
        self._in_move_color = False
        self._color = (0.0, 0.0, 0.0)

    def _color_switch(self, line_width: float, r: float, g: float, b: float) -> None:
        self._write("currentpoint")
        self._write("stroke")  # finish last path; remember pos
        self._write(f"{line_width:.1f} setlinewidth % mm")
        self._write(f"{r:.1f} {g:.1f} {b:.1f} setrgbcolor")
        self._write("moveto")

    def preamble(self, bed_limits: Vector2D, feed_mm_per_sec: float) -> None:
        self._write("%!PS-Adobe-3.0")
        self._write(
            f"%%BoundingBox: 0 0 {bed_limits.x * MM_TO_POINT:.0f} {bed_limits.y * MM_TO_POINT:.0f}"
        )
        self._write("")

    def init(self, bed_limits: Vector2D, feed_mm_per_sec: float) -> None:
        self._write("72.0 25.4 div dup scale  % Switch to mm")
        self._write("1 setlinejoin")
        self._write(f"{self.line_thickness:.2f} setlinewidth % mm")
        self._write("0 0 moveto")

    def postamble(self) -> None:
        self._write("stroke")
        self._write("showpage")

    def comment(self, fmt: str, *args) -> None:
        text = self._format(fmt, args)
        for line in text.split("\n"):
            self._write(f"% {line}".rstrip())

    def set_temperature(self, temperature: float) -> None:
        pass

    def set_speed(self, feed_mm_per_sec: float) -> None:
        pass

    def go_z_pos(self, z: float) -> None:
        pass

    def set_color(self, r: float, g: float, b: float) -> None:
        self._color = (r, g, b)
        if not self._in_move_color:
            self._color_switch(self.line_thickness, r, g, b)

    def move_to(self, pos: Vector2D, z: float) -> None:
        if self.show_move_as_line:
            if not self._in_move_color:
                self._color_switch(0, 0, 0, 0.9)
                self._in_move_color = True
            self._write(f"{pos.x:.1f} {pos.y:.1f} lineto")
        else:
            self._write(f"{pos.x:.1f} {pos.y:.1f} moveto")

    def extrude_to(self, pos: Vector2D, z: float, extrusion_multiplier: float = 1.0) -> None:
        if self._in_move_color:
            self._color_switch(self.line_thickness, *self._color)
            self._in_move_color = False
        self._write(f"{pos.x:.1f} {pos.y:.1f} lineto")

    def switch_fan(self, on: bool) -> None:
        pass

    def get_extrusion_distance(self) -> float:
        return 0.0

    def _reset_extrude(self) -> None:
        self._write("% Flush lines but remember where we are.")
        self._write("currentpoint")
        self._write("stroke")
        self._write("moveto")

    def _retract(self) -> None:
        pass
