"""
Geometry value types: points, triangles and the triangle soup mesh.

All coordinates are float32 millimeters. A Mesh is an ordered triangle list
with one normal per triangle; order is generation order and is kept exactly
through encoding.
"""

from typing import Iterator, NamedTuple, Sequence, Union

import numpy as np

FLOAT = np.float32


def point3(x: float, y: float, z: float) -> np.ndarray:
    """Single-precision (x, y, z) point."""
    return np.array([x, y, z], dtype=FLOAT)


class Triangle(NamedTuple):
    """Face normal plus three vertices in winding order."""
    normal: np.ndarray
    v0: np.ndarray
    v1: np.ndarray
    v2: np.ndarray


class Mesh:
    """
    Ordered triangle list.

    normals:  (N, 3) float32
    vertices: (N, 3, 3) float32, vertices[i] = (v0, v1, v2) of triangle i
    """

    def __init__(self, normals: np.ndarray, vertices: np.ndarray):
        normals = np.asarray(normals, dtype=FLOAT).reshape(-1, 3)
        vertices = np.asarray(vertices, dtype=FLOAT).reshape(-1, 3, 3)
        if len(normals) != len(vertices):
            raise ValueError(
                f"normals and vertices disagree: {len(normals)} vs {len(vertices)} triangles"
            )
        self.normals = normals
        self.vertices = vertices

    @classmethod
    def empty(cls) -> "Mesh":
        return cls(np.empty((0, 3), dtype=FLOAT), np.empty((0, 3, 3), dtype=FLOAT))

    @classmethod
    def from_triangles(cls, triangles: Sequence[Triangle]) -> "Mesh":
        if not triangles:
            return cls.empty()
        normals = np.stack([t.normal for t in triangles])
        vertices = np.stack([np.stack([t.v0, t.v1, t.v2]) for t in triangles])
        return cls(normals, vertices)

    @classmethod
    def concatenate(cls, meshes: Sequence["Mesh"]) -> "Mesh":
        """Join meshes end to end, preserving order."""
        if not meshes:
            return cls.empty()
        return cls(
            np.concatenate([m.normals for m in meshes]),
            np.concatenate([m.vertices for m in meshes]),
        )

    @property
    def n_triangles(self) -> int:
        return len(self.normals)

    def __len__(self) -> int:
        return self.n_triangles

    def __getitem__(self, index: Union[int, slice]) -> Union[Triangle, "Mesh"]:
        if isinstance(index, slice):
            return Mesh(self.normals[index], self.vertices[index])
        v = self.vertices[index]
        return Triangle(self.normals[index], v[0], v[1], v[2])

    def __iter__(self) -> Iterator[Triangle]:
        for i in range(self.n_triangles):
            yield self[i]

    def __repr__(self) -> str:
        return f"Mesh(n_triangles={self.n_triangles})"
