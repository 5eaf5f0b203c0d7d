"""Multi-shell helical screw toolpath generator."""

from .geometry import Polygon, PolygonError, Vector2D, load_polygon_file, pump_polygon
from .profile import RadialProfile, rotational_polygon
from .offset import JoinStyle, offset_polygon, offset_loops
from .printer import Printer, PrinterMisuseError
from .extrusion import ExtrusionParams, LockState, SweepStats, sweep
from .config import ConfigurationError, MachineConfig, OutputFormat, ScrewConfig
from .shells import PrintSummary, build_base_polygon, print_shells
from .gcode import GCodePrinter
from .postscript import PostScriptPrinter

__version__ = "0.1.0"

__all__ = [
    "Polygon",
    "PolygonError",
    "Vector2D",
    "load_polygon_file",
    "pump_polygon",
    "RadialProfile",
    "rotational_polygon",
    "JoinStyle",
    "offset_polygon",
    "offset_loops",
    "Printer",
    "PrinterMisuseError",
    "ExtrusionParams",
    "LockState",
    "SweepStats",
    "sweep",
    "ConfigurationError",
    "MachineConfig",
    "OutputFormat",
    "ScrewConfig",
    "PrintSummary",
    "build_base_polygon",
    "print_shells",
    "GCodePrinter",
    "PostScriptPrinter",
]
