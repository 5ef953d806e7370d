"""
Height field sampling: pixel grid -> relief depth per pixel.

Algorithm:
1. Luma brightness (ITU-R BT.601 weights), scaled to [0, 1]
2. Depth = thickness - brightness * contrast * thickness
   (bright pixels are thin, dark pixels approach full thickness)
3. Pixel column/row -> millimeters with one scale factor (square pixels)
4. Vertical flip: field row 0 is the image's bottom raster row

The field is a read-only (H, W, 3) float32 array of points.
"""

import logging
from typing import Protocol, Tuple

import numpy as np
from tqdm import tqdm

from .common.errors import ArgumentError, InputError
from .geometry import FLOAT

logger = logging.getLogger(__name__)

LUMA_WEIGHTS = (0.299, 0.587, 0.114)


class PixelSource(Protocol):
    """Anything that exposes random-access RGB pixels."""
    width: int
    height: int

    def pixel(self, x: int, y: int) -> Tuple[int, int, int]:
        ...


def check_dimensions(width: int, height: int) -> None:
    """A solid needs at least one full quad: both dimensions must be >= 2."""
    if width < 2 or height < 2:
        raise InputError(
            f"Image must be at least 2x2 pixels to form a mesh, got {width}x{height}"
        )


def pixel_brightness(r, g, b):
    """
    Luma brightness in [0, 1].

    Accepts scalars or arrays of 8-bit channel values.
    """
    wr, wg, wb = (FLOAT(w) for w in LUMA_WEIGHTS)
    r = np.asarray(r, dtype=FLOAT)
    g = np.asarray(g, dtype=FLOAT)
    b = np.asarray(b, dtype=FLOAT)
    brightness = (r * wr + g * wg + b * wb) / FLOAT(255.0)
    return np.clip(brightness, FLOAT(0.0), FLOAT(1.0))


def brightness_to_depth(brightness, thickness: float, contrast: float):
    """Relief depth in mm for a brightness in [0, 1]."""
    thickness = FLOAT(thickness)
    return thickness - np.asarray(brightness, dtype=FLOAT) * FLOAT(contrast) * thickness


def pixel_to_mm(index, mesh_width: float, width: int):
    """Pixel index -> millimeters; the same factor serves both axes."""
    return np.asarray(index, dtype=FLOAT) * FLOAT(mesh_width) / FLOAT(width)


def _raster_rgb(pixels: PixelSource) -> np.ndarray:
    """(H, W, 3) uint8 array in raster order (row 0 = image top)."""
    to_array = getattr(pixels, "to_array", None)
    if to_array is not None:
        rgb = np.asarray(to_array(), dtype=np.uint8)
        expected = (pixels.height, pixels.width, 3)
        if rgb.shape != expected:
            raise InputError(f"Pixel array has shape {rgb.shape}, expected {expected}")
        return rgb

    rgb = np.empty((pixels.height, pixels.width, 3), dtype=np.uint8)
    rows = tqdm(range(pixels.height), desc="Reading pixels", unit="row", leave=False,
                disable=not logger.isEnabledFor(logging.INFO))
    for y in rows:
        for x in range(pixels.width):
            rgb[y, x] = pixels.pixel(x, y)[:3]
    return rgb


def sample_height_field(
    pixels: PixelSource,
    mesh_width: float,
    thickness: float,
    contrast: float,
) -> np.ndarray:
    """
    Compute the height field for a pixel grid.

    Args:
        pixels: Pixel source (width, height, pixel(x, y) -> (r, g, b))
        mesh_width: Model width in mm
        thickness: Maximum relief thickness in mm
        contrast: Fraction of the thickness carved away at full brightness

    Returns:
        Read-only (H, W, 3) float32 array; field[y, x] = (x_mm, y_mm, z_mm)
    """
    width, height = pixels.width, pixels.height
    logger.info(f"Computing brightness for {width}x{height} pixels...")

    # Field row y comes from raster row H - y - 1
    rgb = _raster_rgb(pixels)[::-1]

    brightness = pixel_brightness(rgb[..., 0], rgb[..., 1], rgb[..., 2])
    depth = brightness_to_depth(brightness, thickness, contrast)

    field = np.empty((height, width, 3), dtype=FLOAT)
    field[..., 0] = pixel_to_mm(np.arange(width), mesh_width, width)[np.newaxis, :]
    field[..., 1] = pixel_to_mm(np.arange(height), mesh_width, width)[:, np.newaxis]
    field[..., 2] = depth

    if not np.all(np.isfinite(field)):
        raise ArgumentError("Height field contains non-finite values")

    logger.debug(
        f"Depth range: {float(depth.min()):.3f} - {float(depth.max()):.3f} mm"
    )

    field.flags.writeable = False
    return field
