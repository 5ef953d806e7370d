"""
Solid mesh builder: height field -> closed triangle mesh.

Surfaces, in output order:
1. Front (relief) face - one quad per grid cell, row-major, per-quad normal
2. Back cap - a single quad at z = 0, normal (0, 0, -1)
3. Walls scanned by column - along field rows 0 and H-1, normals (0, -1, 0) / (0, 1, 0)
4. Walls scanned by row - along columns 0 and W-1, normals (-1, 0, 0) / (1, 0, 0)

Every quad (q0, q1, q2, q3) becomes triangles (q0, q1, q2) and (q0, q2, q3).
Front normals are computed from the vertices; back and wall normals are fixed,
and their corner order is chosen so the winding agrees with them. Opposite
walls use reversed corner order.

Triangle count: 2(W-1)(H-1) + 2 + 4(W-1) + 4(H-1)
"""

import logging

import numpy as np

from .common.config import LithophaneConfig
from .geometry import FLOAT, Mesh
from .heightfield import PixelSource, check_dimensions, pixel_to_mm, sample_height_field

logger = logging.getLogger(__name__)

NORMAL_BACK = np.array([0.0, 0.0, -1.0], dtype=FLOAT)
NORMAL_FIRST_ROW = np.array([0.0, -1.0, 0.0], dtype=FLOAT)
NORMAL_LAST_ROW = np.array([0.0, 1.0, 0.0], dtype=FLOAT)
NORMAL_FIRST_COL = np.array([-1.0, 0.0, 0.0], dtype=FLOAT)
NORMAL_LAST_COL = np.array([1.0, 0.0, 0.0], dtype=FLOAT)


def expected_triangle_count(width: int, height: int) -> int:
    return 2 * (width - 1) * (height - 1) + 2 + 4 * (width - 1) + 4 * (height - 1)


def quad_normal(q0: np.ndarray, q1: np.ndarray, q2: np.ndarray) -> np.ndarray:
    """(q1 - q0) x (q2 - q0), not normalized."""
    return np.cross(q1 - q0, q2 - q0).astype(FLOAT)


def quad_triangles_with_normal(q0, q1, q2, q3, normal) -> Mesh:
    """
    Split quads into triangle pairs sharing the q0-q2 diagonal.

    q0..q3 are (3,) points or (N, 3) arrays of points; normal broadcasts to
    the same shape. Triangles of quad i are at 2i and 2i + 1.
    """
    q0, q1, q2, q3 = (np.asarray(q, dtype=FLOAT).reshape(-1, 3) for q in (q0, q1, q2, q3))
    normals = np.broadcast_to(np.asarray(normal, dtype=FLOAT), q0.shape)

    first = np.stack([q0, q1, q2], axis=1)
    second = np.stack([q0, q2, q3], axis=1)
    vertices = np.stack([first, second], axis=1)
    normals = np.stack([normals, normals], axis=1)
    return Mesh(normals.reshape(-1, 3), vertices.reshape(-1, 3, 3))


def quad_triangles(q0, q1, q2, q3) -> Mesh:
    """Split quads into triangle pairs, normal computed from (q0, q1, q2)."""
    q0, q1, q2 = (np.asarray(q, dtype=FLOAT).reshape(-1, 3) for q in (q0, q1, q2))
    return quad_triangles_with_normal(q0, q1, q2, q3, quad_normal(q0, q1, q2))


def project_to_back(points: np.ndarray) -> np.ndarray:
    """Same x, y on the back plane z = 0."""
    projected = np.array(points, dtype=FLOAT)
    projected[..., 2] = 0.0
    return projected


def interleave(a: Mesh, b: Mesh) -> Mesh:
    """Alternate quads (triangle pairs) of two equally sized quad meshes."""
    n = a.n_triangles // 2
    normals = np.stack([a.normals.reshape(n, 2, 3), b.normals.reshape(n, 2, 3)], axis=1)
    vertices = np.stack([a.vertices.reshape(n, 2, 3, 3), b.vertices.reshape(n, 2, 3, 3)], axis=1)
    return Mesh(normals.reshape(-1, 3), vertices.reshape(-1, 3, 3))


def build_front_face(field: np.ndarray) -> Mesh:
    """Relief surface, one quad per cell, scanned row by row."""
    q0 = field[:-1, :-1]
    q1 = field[:-1, 1:]
    q2 = field[1:, 1:]
    q3 = field[1:, :-1]
    return quad_triangles(q0, q1, q2, q3)


def build_back_face(width: int, height: int, mesh_width: float) -> Mesh:
    """Flat cap at z = 0 over the whole footprint, facing -z."""
    max_x = pixel_to_mm(width - 1, mesh_width, width)
    max_y = pixel_to_mm(height - 1, mesh_width, width)
    c0 = np.array([0.0, 0.0, 0.0], dtype=FLOAT)
    c1 = np.array([0.0, max_y, 0.0], dtype=FLOAT)
    c2 = np.array([max_x, max_y, 0.0], dtype=FLOAT)
    c3 = np.array([max_x, 0.0, 0.0], dtype=FLOAT)
    return quad_triangles_with_normal(c0, c1, c2, c3, NORMAL_BACK)


def _forward_wall(a0: np.ndarray, a1: np.ndarray, normal: np.ndarray) -> Mesh:
    return quad_triangles_with_normal(a0, a1, project_to_back(a1), project_to_back(a0), normal)


def _reverse_wall(a0: np.ndarray, a1: np.ndarray, normal: np.ndarray) -> Mesh:
    return quad_triangles_with_normal(a1, a0, project_to_back(a0), project_to_back(a1), normal)


def build_column_walls(field: np.ndarray) -> Mesh:
    """Walls along field rows 0 and H-1, one quad pair per column step."""
    first = _reverse_wall(field[0, :-1], field[0, 1:], NORMAL_FIRST_ROW)
    last = _forward_wall(field[-1, :-1], field[-1, 1:], NORMAL_LAST_ROW)
    return interleave(first, last)


def build_row_walls(field: np.ndarray) -> Mesh:
    """Walls along columns 0 and W-1, one quad pair per row step."""
    first = _forward_wall(field[:-1, 0], field[1:, 0], NORMAL_FIRST_COL)
    last = _reverse_wall(field[:-1, -1], field[1:, -1], NORMAL_LAST_COL)
    return interleave(first, last)


def build_solid(field: np.ndarray, mesh_width: float) -> Mesh:
    """
    Tessellate a height field into a closed solid.

    Args:
        field: (H, W, 3) height field from sample_height_field
        mesh_width: Model width in mm, same value used for sampling

    Returns:
        Mesh in generation order
    """
    height, width = field.shape[:2]
    check_dimensions(width, height)

    logger.info("Generating mesh...")
    mesh = Mesh.concatenate([
        build_front_face(field),
        build_back_face(width, height, mesh_width),
        build_column_walls(field),
        build_row_walls(field),
    ])
    logger.info(f"Generated {mesh.n_triangles} triangles")
    return mesh


def image_to_mesh(pixels: PixelSource, config: LithophaneConfig) -> Mesh:
    """Sample an image into a height field and build the solid."""
    config.validate()
    check_dimensions(pixels.width, pixels.height)

    field = sample_height_field(
        pixels,
        mesh_width=config.mesh_width,
        thickness=config.thickness,
        contrast=config.contrast,
    )
    return build_solid(field, config.mesh_width)
