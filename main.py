"""Command-line entry point for funnel chart layouts.

Reads ordered funnel rows from a JSON file, lays them out with the
funnel_model engine and prints (or saves) the resulting block data and path
descriptors as JSON for an external renderer.
"""

import argparse
import json
import logging
import sys
from pathlib import Path
from typing import Any, Optional

from pydantic import ValidationError

from config import settings, get_output_dir
from funnel_model import ChartConfig, CurveConfig, FunnelError, LabelConfig, LayoutEngine


# Configure logging
logging.basicConfig(
    level=getattr(logging, settings.LOG_LEVEL),
    format="%(asctime)s - %(name)s - %(levelname)s - %(message)s"
)
logger = logging.getLogger(__name__)


def parse_args(argv: Optional[list[str]] = None) -> argparse.Namespace:
    """Parse command-line arguments.

    Args:
        argv: Argument list, defaults to sys.argv[1:].

    Returns:
        Parsed arguments namespace.
    """
    parser = argparse.ArgumentParser(
        description="Funnel chart layout generator",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Examples:
  python main.py --data stages.json                        # Default funnel
  python main.py --data stages.json --dynamic-height       # Heights follow values
  python main.py --data stages.json --curved --inverted    # Curved pyramid
  python main.py --data stages.json --bottom-pinch 2 --save

Input file:
  Either a list of rows, e.g. [["Leads", 5000], ["Sales", [500, "500 deals"], "#ff0000"]],
  or an object {"rows": [...], "options": {"bottom_width": 0.25, ...}}.
        """
    )

    parser.add_argument("--data", required=True, help="JSON file with funnel rows")
    parser.add_argument("--width", type=float, help="Chart width in pixels")
    parser.add_argument("--height", type=float, help="Chart height in pixels")
    parser.add_argument("--bottom-width", type=float, help="Narrow edge width as a fraction of the width")
    parser.add_argument("--bottom-pinch", type=int, help="Number of pinched blocks at the narrow end")
    parser.add_argument("--inverted", action="store_true", default=None, help="Pyramid orientation")
    parser.add_argument("--curved", action="store_true", default=None, help="Curved block edges")
    parser.add_argument("--curve-height", type=float, help="Curve depth in pixels")
    parser.add_argument("--dynamic-height", action="store_true", default=None,
                        help="Block heights proportional to values")
    parser.add_argument("--min-height", type=float, help="Guaranteed block height for dynamic heights")
    parser.add_argument("--fill-type", choices=["solid", "gradient"], help="Block fill type")
    parser.add_argument("--format", dest="label_format", help="Label template, e.g. '{l}: {f}'")
    parser.add_argument("--output", help="Write the layout JSON to this file")
    parser.add_argument("--save", action="store_true",
                        help="Write the layout JSON into the output directory")

    parser.add_argument(
        "--log-level",
        choices=["DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"],
        default=settings.LOG_LEVEL,
        help="Set logging level (default: %(default)s)"
    )

    return parser.parse_args(argv)


def load_input(path: Path) -> tuple[Any, dict[str, Any]]:
    """Load rows and chart options from a JSON file.

    Args:
        path: Input file path.

    Returns:
        Tuple of (rows, options).

    Raises:
        ValueError: If the options entry is not a JSON object.
    """
    with open(path, "r", encoding="utf-8") as f:
        content = json.load(f)

    if isinstance(content, dict):
        options = content.get("options", {})
        if not isinstance(options, dict):
            raise ValueError(f"\"options\" must be a JSON object, got {type(options).__name__}")
        return content.get("rows"), options
    return content, {}


def build_config(args: argparse.Namespace, options: dict[str, Any]) -> ChartConfig:
    """Build the chart config from settings, file options and CLI flags (in that order).

    Args:
        args: Parsed arguments.
        options: Options read from the input file.

    Returns:
        Validated chart configuration.
    """
    config = ChartConfig(
        width=settings.CHART_WIDTH,
        height=settings.CHART_HEIGHT,
        label=LabelConfig(format=settings.LABEL_FORMAT, fill=settings.LABEL_FILL)
    )
    if options:
        config = config.with_overrides(**options)

    overrides: dict[str, Any] = {
        name: value
        for name, value in {
            "width": args.width,
            "height": args.height,
            "bottom_width": args.bottom_width,
            "bottom_pinch": args.bottom_pinch,
            "inverted": args.inverted,
            "dynamic_height": args.dynamic_height,
            "min_height": args.min_height,
            "fill_type": args.fill_type,
        }.items()
        if value is not None
    }

    if args.curved is not None or args.curve_height is not None:
        curve = dict(config.curve)
        if args.curved is not None:
            curve["enabled"] = args.curved
        if args.curve_height is not None:
            curve["height"] = args.curve_height
        overrides["curve"] = CurveConfig(**curve)

    if args.label_format is not None:
        overrides["label"] = LabelConfig(**{**dict(config.label), "format": args.label_format})

    if overrides:
        config = config.with_overrides(**overrides)
    return config


def main(argv: Optional[list[str]] = None) -> int:
    """Run the layout for one input file.

    Returns:
        Process exit code.
    """
    args = parse_args(argv)

    # Update log level if specified
    if args.log_level != settings.LOG_LEVEL:
        logging.getLogger().setLevel(getattr(logging, args.log_level))
        logger.info(f"Log level set to {args.log_level}")

    data_path = Path(args.data)
    try:
        rows, options = load_input(data_path)
        config = build_config(args, options)
        layout = LayoutEngine(config).layout(rows)
    except (OSError, json.JSONDecodeError) as e:
        logger.error(f"Could not read funnel data from {data_path}: {e}")
        print(f"Error: could not read {data_path}: {e}", file=sys.stderr)
        return 1
    except ValidationError as e:
        logger.error(f"Invalid chart options: {e}")
        print(f"Error: invalid chart options:\n{e}", file=sys.stderr)
        return 1
    except FunnelError as e:
        logger.error(f"Funnel layout failed: {e}")
        print(f"Error: {e}", file=sys.stderr)
        return 1
    except ValueError as e:
        logger.error(f"Invalid funnel data in {data_path}: {e}")
        print(f"Error: invalid input {data_path}: {e}", file=sys.stderr)
        return 1

    logger.info(f"Laid out {len(layout.shapes)} blocks from {data_path}")
    output = json.dumps(layout.to_dict(), indent=2)

    output_path = None
    if args.output:
        output_path = Path(args.output)
    elif args.save:
        output_path = get_output_dir() / f"{data_path.stem}_layout.json"

    if output_path is None:
        print(output)
    else:
        with open(output_path, "w", encoding="utf-8") as f:
            f.write(output)
        logger.info(f"Layout saved to {output_path}")
        print(f"[Layout saved to {output_path}]")

    return 0


if __name__ == "__main__":
    sys.exit(main())
