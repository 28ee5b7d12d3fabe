#!/usr/bin/env python3
"""Query line of sight between two points on a saved height map.

Usage (from the repository root):
    python scripts/line_of_sight.py --config scene.json --data heights.json \\
        --from 0,0,1 --to 500,250,1
    python scripts/line_of_sight.py --config scene.json --data heights.json \\
        --from 0,0,1 --to 500,250,1 --by-shape --include-no-height

Prints the blocked regions as JSON. ``--from`` and ``--to`` are ``x,y,h``
in scene pixels and height units.
"""

import argparse
import json
import logging
import sys
from pathlib import Path

# Add the repository root to path so we can import heightmap
SCRIPT_DIR = Path(__file__).resolve().parent
ROOT_DIR = SCRIPT_DIR.parent
sys.path.insert(0, str(ROOT_DIR))

from heightmap.errors import HeightMapError  # noqa: E402
from heightmap.heightmap_io import load_height_map  # noqa: E402


def _parse_point(text):
    """Parse ``x,y,h`` into a list of three floats."""
    parts = text.split(",")
    if len(parts) != 3:
        raise argparse.ArgumentTypeError(
            f"expected x,y,h but got {text!r}"
        )
    try:
        return [float(p) for p in parts]
    except ValueError:
        raise argparse.ArgumentTypeError(
            f"coordinates must be numbers: {text!r}"
        ) from None


def main():
    parser = argparse.ArgumentParser(
        description="Line of sight query against a height map"
    )
    parser.add_argument(
        "--config", type=Path, required=True, help="Scene config JSON"
    )
    parser.add_argument(
        "--data", type=Path, required=True, help="Height map data JSON"
    )
    parser.add_argument(
        "--from",
        dest="p1",
        type=_parse_point,
        required=True,
        help="Start point as x,y,h",
    )
    parser.add_argument(
        "--to",
        dest="p2",
        type=_parse_point,
        required=True,
        help="End point as x,y,h",
    )
    parser.add_argument(
        "--by-shape",
        action="store_true",
        help="Report regions per shape instead of merged runs",
    )
    parser.add_argument(
        "--include-no-height",
        action="store_true",
        help="Let terrain types without height block the line",
    )
    parser.add_argument(
        "-v", "--verbose", action="store_true", help="Debug logging"
    )
    args = parser.parse_args()

    logging.basicConfig(
        level=logging.DEBUG if args.verbose else logging.WARNING,
        format="%(levelname)s %(name)s: %(message)s",
    )

    try:
        height_map = load_height_map(args.config, args.data)
        if args.by_shape:
            results = height_map.calculate_line_of_sight_by_shape(
                args.p1,
                args.p2,
                include_no_height_terrain=args.include_no_height,
            )
        else:
            results = height_map.calculate_line_of_sight(
                args.p1,
                args.p2,
                include_no_height_terrain=args.include_no_height,
            )
    except HeightMapError as ex:
        print(f"Error: {ex}", file=sys.stderr)
        sys.exit(1)

    print(json.dumps([r.to_dict() for r in results], indent=2))


if __name__ == "__main__":
    main()
