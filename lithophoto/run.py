#!/usr/bin/env python3
"""
Lithophoto - Orchestrator

Generate a lithophane STL from an image.

Usage:
    lithophoto --input photo.png --output photo.stl
    lithophoto -i photo.png -o photo.stl --width 150 --thickness 3 --contrast 0.8
    lithophoto -i photo.png -o photo.stl --config settings.json --metadata
"""

import argparse
import logging
import math
import sys
from pathlib import Path
from typing import List, Optional

from .common.config import LithophaneConfig, MeshMetadata, DEFAULT_CONFIG
from .common.errors import LithophotoError
from .common.io import load_image, save_stl
from .common.mesh_ops import compute_mesh_stats
from .geometry import Mesh
from .solid import image_to_mesh

logger = logging.getLogger(__name__)


def parse_float(value: str) -> float:
    """argparse type: a finite floating point number."""
    try:
        number = float(value)
    except ValueError:
        raise argparse.ArgumentTypeError(f"invalid number: {value!r}")
    if not math.isfinite(number):
        raise argparse.ArgumentTypeError(f"number must be finite: {value!r}")
    return number


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="lithophoto",
        description="Generates STL lithophane models from images"
    )
    parser.add_argument(
        "--input", "-i",
        type=Path,
        required=True,
        metavar="FILE",
        help="Input image file"
    )
    parser.add_argument(
        "--output", "-o",
        type=Path,
        required=True,
        metavar="FILE",
        help="Save the output STL file to the given path"
    )
    parser.add_argument(
        "--width", "-w",
        type=parse_float,
        default=None,
        help=f"Model width in mm; height follows the image aspect ratio (default {DEFAULT_CONFIG.mesh_width:g})"
    )
    parser.add_argument(
        "--thickness", "-t",
        type=parse_float,
        default=None,
        help=f"Model thickness in mm (default {DEFAULT_CONFIG.thickness:g})"
    )
    parser.add_argument(
        "--contrast", "-c",
        type=parse_float,
        default=None,
        help=f"Value between 0 and 1 controlling how much of the thickness is exposed (default {DEFAULT_CONFIG.contrast:g})"
    )
    parser.add_argument(
        "--config",
        type=Path,
        default=None,
        help="JSON file with default mesh_width / thickness / contrast"
    )
    parser.add_argument(
        "--metadata",
        action="store_true",
        help="Write a JSON metadata sidecar next to the STL"
    )
    parser.add_argument(
        "--verbose", "-v",
        action="store_true",
        help="Verbose logging"
    )
    return parser


def build_config(args: argparse.Namespace) -> LithophaneConfig:
    """Config file values first, command-line flags override."""
    config = LithophaneConfig.from_json(args.config) if args.config else LithophaneConfig()
    if args.width is not None:
        config.mesh_width = args.width
    if args.thickness is not None:
        config.thickness = args.thickness
    if args.contrast is not None:
        config.contrast = args.contrast
    return config.validate()


def build_metadata(
    mesh: Mesh,
    input_path: Path,
    width_px: int,
    height_px: int,
    config: LithophaneConfig,
) -> MeshMetadata:
    return MeshMetadata(
        source_image=str(input_path),
        image_width_px=width_px,
        image_height_px=height_px,
        model_width_mm=config.mesh_width,
        model_height_mm=config.model_height(width_px, height_px),
        thickness_mm=config.thickness,
        n_triangles=mesh.n_triangles,
        stats=compute_mesh_stats(mesh, back_plane_z=0.0),
        generation_params=config.to_dict(),
    )


def run(args: argparse.Namespace) -> Mesh:
    """Validate arguments, decode the image, build the solid, write the STL."""
    config = build_config(args)
    logger.info(
        f"Parameters: width={config.mesh_width:g}mm, thickness={config.thickness:g}mm, "
        f"contrast={config.contrast:g}"
    )

    pixels = load_image(args.input)
    mesh = image_to_mesh(pixels, config)

    metadata = None
    if args.metadata:
        metadata = build_metadata(mesh, args.input, pixels.width, pixels.height, config)

    save_stl(mesh, args.output, metadata)
    return mesh


def main(argv: Optional[List[str]] = None) -> int:
    parser = build_parser()
    args = parser.parse_args(argv)

    # Setup logging
    logging.basicConfig(
        level=logging.DEBUG if args.verbose else logging.INFO,
        format='%(asctime)s - %(levelname)s - %(message)s'
    )

    try:
        run(args)
    except LithophotoError as e:
        logger.error(str(e))
        return 1

    logger.info("Done.")
    return 0


if __name__ == "__main__":
    sys.exit(main())
