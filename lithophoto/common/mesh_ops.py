"""
Mesh operation utilities.

Conversion to trimesh, statistics and closure checks.

Closure of a lithophane solid is checked off the back plane: the back cap is
a single quad whose perimeter is subdivided by the wall bottoms, so strict
edge pairing (and trimesh's is_watertight) only holds for 2x2 images.
"""

from typing import Any, Dict, List, Optional, Tuple
import logging

import numpy as np
import trimesh

from ..geometry import Mesh

logger = logging.getLogger(__name__)

Vertex = Tuple[float, float, float]
Edge = Tuple[Vertex, Vertex]


def to_trimesh(mesh: Mesh) -> trimesh.Trimesh:
    """
    Convert a triangle soup to a trimesh with merged vertices.

    Face order is kept; face normals are recomputed by trimesh from winding.
    """
    vertices = mesh.vertices.reshape(-1, 3).astype(np.float64)
    faces = np.arange(len(vertices)).reshape(-1, 3)
    return trimesh.Trimesh(vertices=vertices, faces=faces, process=True)


def weld(mesh: Mesh) -> Tuple[np.ndarray, np.ndarray]:
    """
    Exact-match vertex welding.

    Returns:
        (unique_vertices (V, 3), faces (N, 3) indexing into them)
    """
    # + 0.0 folds -0.0 into 0.0 so both weld to one vertex
    flat = mesh.vertices.reshape(-1, 3) + np.float32(0.0)
    unique, inverse = np.unique(flat, axis=0, return_inverse=True)
    return unique, inverse.reshape(-1, 3)


def directed_edges(mesh: Mesh) -> Tuple[np.ndarray, np.ndarray, np.ndarray]:
    """
    Distinct directed edges (a -> b) over all triangles with their counts.

    Returns:
        (unique_vertices, edges (E, 2) of vertex indices, counts (E,))
    """
    unique, faces = weld(mesh)
    pairs = np.stack([faces, np.roll(faces, -1, axis=1)], axis=2).reshape(-1, 2)
    edges, counts = np.unique(pairs, axis=0, return_counts=True)
    return unique, edges, counts


def directed_edge_mismatches(
    mesh: Mesh,
    skip_plane_z: Optional[float] = None,
) -> List[Edge]:
    """
    Edges that break closed-manifold pairing.

    Each directed edge must occur exactly once and its reverse exactly once.
    Edges with both endpoints at z == skip_plane_z are ignored.
    """
    if mesh.n_triangles == 0:
        return []
    unique, edges, counts = directed_edges(mesh)
    n = np.int64(len(unique))

    keys = edges[:, 0].astype(np.int64) * n + edges[:, 1]
    reverse = edges[:, 1].astype(np.int64) * n + edges[:, 0]
    # keys come out of np.unique sorted
    pos = np.clip(np.searchsorted(keys, reverse), 0, len(keys) - 1)
    reverse_counts = np.where(keys[pos] == reverse, counts[pos], 0)

    bad = (counts != 1) | (reverse_counts != 1)
    if skip_plane_z is not None:
        z = unique[:, 2]
        bad &= ~((z[edges[:, 0]] == skip_plane_z) & (z[edges[:, 1]] == skip_plane_z))

    return [
        (tuple(float(c) for c in unique[a]), tuple(float(c) for c in unique[b]))
        for a, b in edges[bad]
    ]


def signed_volume(mesh: Mesh) -> float:
    """
    Enclosed volume via the divergence theorem.

    Positive for an outward-wound closed surface.
    """
    v = mesh.vertices.astype(np.float64)
    return float(np.einsum("ij,ij->i", v[:, 0], np.cross(v[:, 1], v[:, 2])).sum() / 6.0)


def compute_mesh_stats(mesh: Mesh, back_plane_z: Optional[float] = None) -> Dict[str, Any]:
    """
    Compute mesh statistics.

    Args:
        mesh: Mesh to inspect
        back_plane_z: z of a flat back cap whose perimeter edges are allowed
            to be subdivided by the walls; its edges are left out of the
            pairing check

    Returns:
        Dictionary of mesh statistics. is_watertight is trimesh's strict
        check; is_closed uses the back-plane aware pairing plus a positive
        enclosed volume.
    """
    tm = to_trimesh(mesh)
    bounds = tm.bounds
    extents = tm.extents
    volume = signed_volume(mesh)
    unpaired = len(directed_edge_mismatches(mesh, skip_plane_z=back_plane_z))

    return {
        "n_triangles": mesh.n_triangles,
        "n_vertices": len(tm.vertices),
        "bounds": {
            "min": bounds[0].tolist(),
            "max": bounds[1].tolist()
        },
        "extents": extents.tolist(),
        "max_extent": float(max(extents)),
        "volume": volume,
        "surface_area": float(tm.area),
        "is_watertight": bool(tm.is_watertight),
        "is_winding_consistent": bool(tm.is_winding_consistent),
        "back_plane_z": back_plane_z,
        "unpaired_edges": unpaired,
        "is_closed": unpaired == 0 and volume > 0,
    }
