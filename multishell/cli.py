"""
Command-line interface for multi-shell screw toolpath generation.
"""

import argparse
import logging
import sys
from contextlib import nullcontext
from pathlib import Path

from . import __version__
from .config import ConfigurationError, MachineConfig, OutputFormat, ScrewConfig, DEFAULT_TEMPLATE
from .gcode import GCodePrinter
from .geometry import PolygonError, Vector2D, require_usable
from .logging_config import setup_logging
from .postscript import PostScriptPrinter
from .shells import build_base_polygon, preview_config, print_shells

logger = logging.getLogger(__name__)


def _pair(text: str) -> Vector2D:
    """Parse 'x,y'."""
    try:
        x, y = (float(v) for v in text.split(","))
    except ValueError:
        raise argparse.ArgumentTypeError(f"expected <x>,<y>, got {text!r}")
    return Vector2D(x, y)


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="multishell",
        description="Generate G-code (or a PostScript preview) for nested, "
                    "helically twisted screw shells.",
    )
    parser.add_argument("-H", "--height", type=float, required=True,
                        help="Total height to be printed (mm)")

    template = parser.add_argument_group("Screw from a string template")
    template.add_argument("-t", "--template", default=DEFAULT_TEMPLATE,
                          help="Template string; each letter is one dent around the "
                               "circumference (default: %(default)s)")
    template.add_argument("-d", "--thread-depth", type=float, default=None,
                          help="Depth of thread (default: size/5)")
    template.add_argument("-w", "--twist", type=float, default=0.0,
                          help="Twist ratio of angle per radius fraction (good range: -0.3...0.3)")

    data = parser.add_argument_group("Screw from a polygon data file")
    data.add_argument("-D", "--data", type=Path, default=None,
                      help="Polygon file: lines with x y pairs, or an SVG file")

    general = parser.add_argument_group("General parameters")
    general.add_argument("-s", "--size", type=float, default=10.0,
                         help="Polygon sizing: radius for templates, factor for data files")
    general.add_argument("-u", "--pump", type=float, default=0.0,
                         help="Pump up polygon as if the center was a circle of this radius")
    general.add_argument("-n", "--count", type=int, default=2,
                         help="Number of screws to be printed (default: %(default)s)")
    general.add_argument("-i", "--initial-shell", type=float, default=0.0,
                         help="Offset of the first shell (mm)")
    general.add_argument("-R", "--shell-increment", type=float, default=1.2,
                         help="Increment between screws, the clearance (mm)")
    general.add_argument("-l", "--layer-height", type=float, default=0.16,
                         help="Height of each layer (mm)")
    general.add_argument("-p", "--pitch", type=float, default=30.0,
                         help="mm height per full screw turn; negative for left screw, 0 for straight")
    general.add_argument("--lock-offset", type=float, default=-1.0,
                         help="Widen/narrow the screw ends by this much; <= 0 disables")
    general.add_argument("--lock-overlap", type=float, default=3.0,
                         help="Height of the lock sections (mm)")
    general.add_argument("--wipe-fraction", type=float, default=0.2,
                         help="Fraction of the last layer travelled without extruding")
    general.add_argument("--bottom-z-offset", type=float, default=0.0,
                         help="Skip extrusion below half of this height (mm)")

    machine = parser.add_argument_group("Machine")
    machine.add_argument("-f", "--feed-rate", type=float, default=100.0,
                         help="Maximum feed rate (mm/s)")
    machine.add_argument("-T", "--layer-time", type=float, default=6.0,
                         help="Minimum time per layer; limits the feed rate (s)")
    machine.add_argument("-L", "--bed", type=_pair, default=Vector2D(150, 150),
                         help="x,y size limit of the print bed (mm)")
    machine.add_argument("-o", "--head-offset", type=_pair, default=Vector2D(45, 45),
                         help="dx,dy clearance from hotend tip to left and front (mm)")
    machine.add_argument("--temperature", type=float, default=190.0,
                         help="Hotend temperature")
    machine.add_argument("--temperature-variation", type=float, default=0.0,
                         help="Amplitude of per-layer temperature banding")
    machine.add_argument("--temperature-period", type=float, default=5.0,
                         help="Height of one temperature banding cycle (mm)")
    machine.add_argument("--fan-on-height", type=float, default=1.5,
                         help="Switch the fan on above this height (mm)")
    machine.add_argument("--first-layer-speed", type=float, default=0.7,
                         help="Speed factor at the first layer, ramped up to 1.0")
    machine.add_argument("--first-layer-extrusion", type=float, default=1.0,
                         help="Extrusion multiplier for the first two layers")

    output = parser.add_argument_group("Output options")
    output.add_argument("-P", "--postscript", action="store_true",
                        help="PostScript output instead of G-code")
    output.add_argument("-m", "--nested", action="store_true",
                        help="For PostScript: show nested (Matryoshka doll style)")
    output.add_argument("-O", "--output", type=Path, default=None,
                        help="Write output to this file instead of stdout")
    output.add_argument("--preview", type=Path, default=None,
                        help="Also render a 3D preview image (png, svg, pdf)")
    output.add_argument("-v", "--verbose", action="store_true",
                        help="Verbose logging")
    output.add_argument("--log-file", type=Path, default=None,
                        help="Also write the log to this file")
    return parser


def config_from_args(args: argparse.Namespace) -> ScrewConfig:
    machine = MachineConfig(
        bed_size=args.bed,
        head_offset=args.head_offset,
        feed_rate=args.feed_rate,
        min_layer_time=args.layer_time,
        temperature=args.temperature,
    )
    return ScrewConfig(
        total_height=args.height,
        template=args.template,
        data_file=args.data,
        initial_size=args.size,
        thread_depth=args.thread_depth,
        twist=args.twist,
        pump=args.pump,
        screw_count=args.count,
        initial_shell=args.initial_shell,
        shell_increment=args.shell_increment,
        layer_height=args.layer_height,
        pitch=args.pitch,
        lock_offset=args.lock_offset,
        lock_overlap=args.lock_overlap,
        fan_on_height=args.fan_on_height,
        first_layer_extrusion=args.first_layer_extrusion,
        first_layer_speed=args.first_layer_speed,
        wipe_fraction=args.wipe_fraction,
        bottom_z_offset=args.bottom_z_offset,
        temperature_variation=args.temperature_variation,
        temperature_period=args.temperature_period,
        output=OutputFormat.POSTSCRIPT if args.postscript else OutputFormat.GCODE,
        nested=args.nested,
        machine=machine,
    )


def main(argv=None) -> int:
    parser = build_parser()
    args = parser.parse_args(argv)
    setup_logging(logging.DEBUG if args.verbose else logging.INFO, args.log_file)

    config = config_from_args(args)
    try:
        config.validate()
        if config.output == OutputFormat.POSTSCRIPT:
            config = preview_config(config)  # a few layers show the geometry
        base_polygon = build_base_polygon(config)
        require_usable(base_polygon, "base polygon")
    except (ConfigurationError, PolygonError) as e:
        logger.error(str(e))
        return 1

    header = [f"multishell {__version__}", "",
              " ".join(["multishell"] + (argv if argv is not None else sys.argv[1:]))]

    out = open(args.output, "w") if args.output else nullcontext(sys.stdout)
    with out as stream:
        if config.output == OutputFormat.POSTSCRIPT:
            # no move lines in nested mode
            printer = PostScriptPrinter(not config.nested, config.line_thickness, stream)
        else:
            printer = GCodePrinter(config.extrusion_factor, config.machine.temperature, stream)
        summary = print_shells(base_polygon, printer, config, header)

    if summary.total_time > 0:  # doesn't make sense for PostScript
        logger.info(f"Total time >= {summary.total_time:.0f} seconds; "
                    f"{summary.total_travel * config.extrusion_factor / 1000:.2f}m filament")

    if args.preview:
        from .preview import PreviewPrinter

        preview = PreviewPrinter(show_moves=not config.nested)
        # Same shells again; progress and warnings were already reported.
        package_logger = logging.getLogger("multishell")
        level = package_logger.level
        package_logger.setLevel(logging.ERROR)
        try:
            print_shells(base_polygon, preview, config)
        finally:
            package_logger.setLevel(level)
        preview.save(args.preview)
        logger.info(f"Preview written to {args.preview}")

    return 0


if __name__ == "__main__":
    sys.exit(main())
