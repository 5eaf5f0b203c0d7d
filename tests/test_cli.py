"""
Tests for the command-line interface.
"""

import logging
import subprocess
import sys

import pytest

from multishell.cli import build_parser, config_from_args, main
from multishell.config import OutputFormat
from multishell.geometry import Vector2D


class TestParser:
    """Argument parsing."""

    def test_defaults(self):
        args = build_parser().parse_args(["-H", "20"])
        config = config_from_args(args)
        assert config.total_height == 20.0
        assert config.screw_count == 2
        assert config.layer_height == 0.16
        assert config.output == OutputFormat.GCODE
        assert config.machine.bed_size == Vector2D(150, 150)

    def test_pairs(self):
        args = build_parser().parse_args(["-H", "5", "-L", "200,180", "-o", "30,40"])
        config = config_from_args(args)
        assert config.machine.bed_size == Vector2D(200, 180)
        assert config.machine.head_offset == Vector2D(30, 40)

    def test_sweep_constants(self):
        args = build_parser().parse_args(["-H", "5", "--wipe-fraction", "0.4",
                                          "--bottom-z-offset", "0.3",
                                          "--temperature-period", "2.5"])
        params = config_from_args(args).extrusion_params(50.0)
        assert params.wipe_fraction == 0.4
        assert params.bottom_z_offset == 0.3
        assert params.temperature_period == 2.5

    def test_bad_pair(self):
        with pytest.raises(SystemExit):
            build_parser().parse_args(["-H", "5", "-L", "200"])

    def test_height_required(self):
        with pytest.raises(SystemExit):
            build_parser().parse_args([])


class TestMain:
    """End-to-end runs writing to a file."""

    def test_gcode_output(self, tmp_path):
        out = tmp_path / "screw.gcode"
        assert main(["-H", "1", "-l", "0.2", "-n", "2", "-O", str(out)]) == 0
        text = out.read_text()
        assert text.startswith("; G-Code")
        assert "; Screw #0, polygon-offset=0.0" in text
        assert "; Screw #1, polygon-offset=1.2" in text
        assert text.rstrip().endswith("M84")

    def test_postscript_output(self, tmp_path):
        out = tmp_path / "screw.ps"
        assert main(["-H", "20", "-P", "-m", "-n", "3", "-O", str(out)]) == 0
        text = out.read_text()
        assert text.startswith("%!PS-Adobe-3.0")
        assert text.rstrip().endswith("showpage")
        # Limited to a few layers; no move lines in nested mode
        assert "0.0 0.0 0.9 setrgbcolor" not in text

    def test_data_file(self, tmp_path):
        data = tmp_path / "shape.txt"
        data.write_text("0 0\n20 0\n20 20\n0 20\n")
        out = tmp_path / "square.gcode"
        assert main(["-H", "0.5", "-D", str(data), "-s", "1", "-n", "1", "-O", str(out)]) == 0
        assert "; Screw #0" in out.read_text()

    def test_nested_needs_postscript(self, tmp_path, caplog):
        out = tmp_path / "never.gcode"
        assert main(["-H", "5", "-m", "-O", str(out)]) == 1
        assert not out.exists()
        assert "nested" in caplog.text

    def test_missing_data_file(self, tmp_path, caplog):
        assert main(["-H", "5", "-D", str(tmp_path / "nope.txt")]) == 1
        assert "empty" in caplog.text

    def test_preview_image(self, tmp_path):
        out = tmp_path / "screw.gcode"
        image = tmp_path / "screw.png"
        assert main(["-H", "0.6", "-l", "0.2", "-n", "1", "-O", str(out),
                     "--preview", str(image)]) == 0
        assert image.exists()

    def test_preview_does_not_repeat_log(self, tmp_path, caplog):
        caplog.set_level(logging.INFO, logger="multishell")
        out = tmp_path / "screw.gcode"
        image = tmp_path / "screw.png"
        assert main(["-H", "0.6", "-l", "0.2", "-n", "1", "-O", str(out),
                     "--preview", str(image)]) == 0
        assert caplog.text.count("Screw #0:") == 1

    def test_log_file(self, tmp_path):
        out = tmp_path / "screw.gcode"
        log = tmp_path / "run.log"
        assert main(["-H", "0.6", "-l", "0.2", "-n", "1", "-O", str(out),
                     "--log-file", str(log)]) == 0
        for handler in logging.getLogger("multishell").handlers:
            handler.close()
        assert "Screw #0:" in log.read_text()


class TestModuleEntryPoint:
    """python -m multishell."""

    def test_help(self):
        result = subprocess.run([sys.executable, "-m", "multishell", "--help"],
                                capture_output=True, text=True)
        assert result.returncode == 0
        assert "--height" in result.stdout
