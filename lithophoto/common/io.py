"""
Data I/O utilities.

Handles decoding input images into pixel grids and saving meshes as binary
STL with an optional metadata sidecar.
"""

import logging
from pathlib import Path
from typing import Optional, Tuple, Union

import numpy as np
from PIL import Image, UnidentifiedImageError

from .config import MeshMetadata
from .errors import InputError, OutputError
from ..geometry import Mesh
from ..stl import write_binary_stl

logger = logging.getLogger(__name__)


class PixelGrid:
    """
    RGB pixel grid in raster order (row 0 = image top).

    pixel(x, y) returns the (r, g, b) triple at column x, raster row y.
    """

    def __init__(self, rgb: np.ndarray):
        rgb = np.asarray(rgb, dtype=np.uint8)
        if rgb.ndim != 3 or rgb.shape[2] != 3:
            raise InputError(f"Expected an (H, W, 3) RGB array, got shape {rgb.shape}")
        self._rgb = rgb

    @property
    def width(self) -> int:
        return self._rgb.shape[1]

    @property
    def height(self) -> int:
        return self._rgb.shape[0]

    def pixel(self, x: int, y: int) -> Tuple[int, int, int]:
        r, g, b = self._rgb[y, x]
        return int(r), int(g), int(b)

    def to_array(self) -> np.ndarray:
        return self._rgb

    @classmethod
    def filled(cls, width: int, height: int, rgb: Tuple[int, int, int]) -> "PixelGrid":
        """Uniform grid of one color."""
        data = np.empty((height, width, 3), dtype=np.uint8)
        data[...] = rgb
        return cls(data)

    @classmethod
    def from_image(cls, image: Image.Image) -> "PixelGrid":
        return cls(np.asarray(image.convert("RGB")))


def load_image(path: Union[str, Path]) -> PixelGrid:
    """
    Decode an image file into a PixelGrid.

    Any decode failure (missing file, unsupported or corrupt data) is
    reported as InputError.
    """
    path = Path(path)
    try:
        with Image.open(path) as image:
            grid = PixelGrid.from_image(image)
    except FileNotFoundError as e:
        raise InputError(f"Image not found at {path}") from e
    except (UnidentifiedImageError, OSError, ValueError) as e:
        raise InputError(f"Could not decode image {path}: {e}") from e

    logger.info(f"Loaded image {path} ({grid.width}x{grid.height})")
    return grid


def save_stl(
    mesh: Mesh,
    path: Union[str, Path],
    metadata: Optional[MeshMetadata] = None,
) -> None:
    """
    Save mesh to a binary STL file, with an optional metadata sidecar.

    Args:
        mesh: Mesh to encode
        path: Output path (should end in .stl)
        metadata: MeshMetadata saved as a .json sidecar next to the STL

    A failed write leaves whatever was written in place.
    """
    path = Path(path)
    try:
        path.parent.mkdir(parents=True, exist_ok=True)
        with open(path, "wb") as f:
            n_bytes = write_binary_stl(mesh, f)
    except OSError as e:
        raise OutputError(f"Could not write STL to {path}: {e}") from e
    logger.info(f"Saved mesh: {path} ({mesh.n_triangles} tris, {n_bytes} bytes)")

    if metadata is not None:
        meta_path = path.with_suffix('.json')
        try:
            metadata.save(meta_path)
        except OSError as e:
            raise OutputError(f"Could not write metadata to {meta_path}: {e}") from e
        logger.info(f"Saved metadata: {meta_path}")
