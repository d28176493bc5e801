#!/usr/bin/env python3
"""Export a downsampled land mask grid to .npy for fast server startup.

Building the grid from global-land-mask loads the package's full-resolution
mask into memory. Exporting once and pointing API_LAND_MASK_PATH at the
result lets the server skip that step.

Usage:
    python scripts/export_land_mask.py --output land_mask.npy
    python scripts/export_land_mask.py --output land_mask.npy --resolution 0.1

    API_LAND_MASK_PATH=land_mask.npy asciimap-server
"""

from __future__ import annotations

import argparse
import sys
from pathlib import Path

from asciimap.render.landmask import LandMask


def main() -> int:
    parser = argparse.ArgumentParser(description=__doc__.splitlines()[0])
    parser.add_argument("--output", required=True, type=Path, help="Destination .npy file")
    parser.add_argument(
        "--resolution",
        type=float,
        default=0.25,
        help="Degrees per grid cell (default: 0.25)",
    )
    args = parser.parse_args()

    if args.resolution <= 0 or args.resolution > 180:
        print(f"ERROR: resolution must be in (0, 180], got {args.resolution}", file=sys.stderr)
        return 1

    mask = LandMask.from_globe(args.resolution)
    mask.save(args.output)
    rows, cols = mask.shape
    print(f"Wrote {rows}x{cols} land mask to {args.output}")
    return 0


if __name__ == "__main__":
    sys.exit(main())
