"""
Tests for the G-code and PostScript output sinks.
"""

import io

import pytest

from multishell.gcode import GCodePrinter
from multishell.geometry import Vector2D
from multishell.postscript import MM_TO_POINT, PostScriptPrinter
from multishell.printer import PrinterMisuseError

BED = Vector2D(150, 150)


def _lines(printer):
    return printer.get_output().splitlines()


@pytest.fixture
def gcode():
    return GCodePrinter(extrusion_factor=0.5, temperature=205)


@pytest.fixture
def postscript():
    return PostScriptPrinter(show_move_as_line=True, line_thickness=0.68)


class TestMisuseGuard:
    """Retract and reset-extrude must alternate."""

    @pytest.mark.parametrize("factory", [
        lambda: GCodePrinter(0.5),
        lambda: PostScriptPrinter(True, 0.68),
    ])
    def test_double_retract(self, factory):
        printer = factory()
        with pytest.raises(PrinterMisuseError):
            printer.retract()

    @pytest.mark.parametrize("factory", [
        lambda: GCodePrinter(0.5),
        lambda: PostScriptPrinter(True, 0.68),
    ])
    def test_double_reset(self, factory):
        printer = factory()
        printer.reset_extrude()
        with pytest.raises(PrinterMisuseError):
            printer.reset_extrude()

    def test_alternating_ok(self, gcode):
        for _ in range(3):
            gcode.reset_extrude()
            gcode.retract()

    def test_misuse_is_runtime_error(self):
        assert issubclass(PrinterMisuseError, RuntimeError)


class TestGCode:
    """G-code text output."""

    def test_init_heats_and_retracts(self, gcode):
        gcode.init(BED, 100.0)
        lines = _lines(gcode)
        assert lines[0] == "G28"
        assert "G1 F6000.0" in lines
        assert "M109 S205" in lines
        assert "M82 ; absolute extrusion" in lines
        assert "G1 E-2.0 ; retract" in lines
        assert lines[-1] == "G1 Z5"

    def test_test_extrusion_line(self, gcode):
        gcode.init(BED, 100.0)
        lines = _lines(gcode)
        assert "G1 X120.0 Y10 Z0" in lines
        # 90mm of travel at factor 0.5
        assert "G1 X30.0 Y10 E45.000 F1000" in lines

    def test_comments(self, gcode):
        gcode.comment("Screw #%d, polygon-offset=%.1f", 2, 2.4)
        gcode.comment("")
        gcode.comment("100%")
        gcode.comment("two\nlines")
        assert _lines(gcode) == ["; Screw #2, polygon-offset=2.4", ";", "; 100%",
                                 "; two", "; lines"]

    def test_speed_in_mm_per_minute(self, gcode):
        gcode.set_speed(12.5)
        assert _lines(gcode) == ["G1 F750.0  ; feedrate=12.5mm/s"]

    def test_absolute_extrusion(self, gcode):
        gcode.reset_extrude()
        gcode.move_to(Vector2D(0, 0), 0.0)
        gcode.extrude_to(Vector2D(3, 4), 0.0)
        gcode.extrude_to(Vector2D(3, 14), 0.0, extrusion_multiplier=0.5)
        lines = _lines(gcode)
        assert lines[-3] == "G1 X0.000 Y0.000 Z0.000"
        assert lines[-2] == "G1 X3.000 Y4.000 Z0.000 E2.500"
        # 5mm + 10mm at half extrusion, times factor 0.5
        assert lines[-1] == "G1 X3.000 Y14.000 Z0.000 E5.000"
        assert gcode.get_extrusion_distance() == pytest.approx(15.0)

    def test_reset_extrude_primes_and_zeroes(self, gcode):
        gcode.reset_extrude()
        gcode.move_to(Vector2D(0, 0), 0.0)
        gcode.extrude_to(Vector2D(10, 0), 0.0)
        gcode.retract()
        gcode.reset_extrude()
        lines = _lines(gcode)
        assert lines[-4:] == ["M83", "G1 E2.2 ; filament back to nozzle tip", "M82",
                              "G92 E0  ; start extrusion"]
        assert gcode.get_extrusion_distance() == 0.0

    def test_go_z_keeps_xy(self, gcode):
        gcode.move_to(Vector2D(1, 1), 0.0)
        gcode.go_z_pos(10.0)
        gcode.reset_extrude()
        gcode.extrude_to(Vector2D(1, 1), 11.0)
        assert gcode.get_extrusion_distance() == pytest.approx(1.0)

    def test_fan_and_temperature(self, gcode):
        gcode.switch_fan(True)
        gcode.switch_fan(False)
        gcode.set_temperature(199.6)
        assert _lines(gcode) == ["M106 S255", "M106 S0", "M104 S200"]

    def test_postamble_shuts_down(self, gcode):
        gcode.postamble()
        assert _lines(gcode) == ["M104 S0 ; hotend off", "M106 S0 ; fan off", "G28 X0 Y0", "M84"]

    def test_writes_to_stream(self):
        stream = io.StringIO()
        printer = GCodePrinter(0.5, stream=stream)
        printer.go_z_pos(1.0)
        assert stream.getvalue() == "G1 Z1.000\n"


class TestPostScript:
    """PostScript schematic output."""

    def test_preamble_bounding_box(self, postscript):
        postscript.preamble(BED, 100.0)
        lines = _lines(postscript)
        assert lines[0] == "%!PS-Adobe-3.0"
        size = f"{150 * MM_TO_POINT:.0f}"
        assert lines[1] == f"%%BoundingBox: 0 0 {size} {size}"

    def test_init_switches_to_mm(self, postscript):
        postscript.init(BED, 100.0)
        lines = _lines(postscript)
        assert lines[0] == "72.0 25.4 div dup scale  % Switch to mm"
        assert "0.68 setlinewidth % mm" in lines

    def test_moves_as_grey_lines(self, postscript):
        postscript.set_color(1.0, 0.0, 0.0)
        postscript.move_to(Vector2D(10, 20), 5.0)
        lines = _lines(postscript)
        assert "0.0 0.0 0.9 setrgbcolor" in lines
        assert lines[-1] == "10.0 20.0 lineto"

    def test_extrusion_restores_shell_color(self, postscript):
        postscript.set_color(1.0, 0.0, 0.0)
        postscript.move_to(Vector2D(10, 20), 5.0)
        postscript.extrude_to(Vector2D(11, 20), 0.1)
        lines = _lines(postscript)
        assert lines[-1] == "11.0 20.0 lineto"
        assert lines[-3] == "1.0 0.0 0.0 setrgbcolor"

    def test_hidden_moves(self):
        printer = PostScriptPrinter(show_move_as_line=False, line_thickness=0.68)
        printer.move_to(Vector2D(10, 20), 5.0)
        assert _lines(printer) == ["10.0 20.0 moveto"]

    def test_machine_commands_ignored(self, postscript):
        postscript.set_speed(10.0)
        postscript.set_temperature(200.0)
        postscript.switch_fan(True)
        postscript.go_z_pos(3.0)
        assert postscript.get_output() == ""
        assert postscript.get_extrusion_distance() == 0.0

    def test_comment_and_postamble(self, postscript):
        postscript.comment("Screw #%d", 1)
        postscript.postamble()
        assert _lines(postscript) == ["% Screw #1", "stroke", "showpage"]
