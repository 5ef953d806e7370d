"""
Binary STL encoding.

Layout (little-endian):
- 80-byte header, all zero
- uint32 triangle count
- per triangle: normal (3 x float32), v0, v1, v2 (3 x float32 each),
  uint16 attribute byte count = 0

Total size is exactly 84 + 50 * n_triangles bytes.
"""

import io
import logging
import struct
from typing import BinaryIO

import numpy as np

from .geometry import Mesh

logger = logging.getLogger(__name__)

HEADER_SIZE = 80
RECORD_SIZE = 50

STL_TRIANGLE_DTYPE = np.dtype([
    ("normal", "<f4", (3,)),
    ("v0", "<f4", (3,)),
    ("v1", "<f4", (3,)),
    ("v2", "<f4", (3,)),
    ("attr", "<u2"),
])


def encoded_size(n_triangles: int) -> int:
    return HEADER_SIZE + 4 + RECORD_SIZE * n_triangles


def to_records(mesh: Mesh) -> np.ndarray:
    """Pack a mesh into STL triangle records, in mesh order."""
    records = np.zeros((mesh.n_triangles,), dtype=STL_TRIANGLE_DTYPE)
    records["normal"] = mesh.normals
    records["v0"] = mesh.vertices[:, 0]
    records["v1"] = mesh.vertices[:, 1]
    records["v2"] = mesh.vertices[:, 2]
    return records


def _write_all(sink: BinaryIO, data: bytes) -> int:
    """
    Write all of data, repeating after short writes.

    A sink that returns None from write() is taken to have consumed
    everything; one that accepts 0 bytes raises OSError.
    """
    view = memoryview(data)
    total = len(view)
    while view:
        written = sink.write(view)
        if written is None:
            break
        if written <= 0:
            raise OSError(f"Sink accepted no bytes with {len(view)} of {total} remaining")
        view = view[written:]
    return total


def write_binary_stl(mesh: Mesh, sink: BinaryIO) -> int:
    """
    Write a mesh to a byte sink as binary STL.

    Short writes from raw sinks are retried until every byte is accepted.
    Write errors from the sink propagate; nothing already written is
    rolled back.

    Returns:
        Number of bytes written
    """
    logger.info(f"Writing STL ({mesh.n_triangles} triangles)...")
    n_bytes = _write_all(sink, bytes(HEADER_SIZE))
    n_bytes += _write_all(sink, struct.pack("<I", mesh.n_triangles))
    n_bytes += _write_all(sink, to_records(mesh).tobytes())
    return n_bytes


def encode_binary_stl(mesh: Mesh) -> bytes:
    buffer = io.BytesIO()
    write_binary_stl(mesh, buffer)
    return buffer.getvalue()


def read_binary_stl(data: bytes) -> Mesh:
    """
    Decode binary STL bytes back into a Mesh.

    Raises ValueError if the data is shorter than its triangle count implies.
    """
    if len(data) < HEADER_SIZE + 4:
        raise ValueError(f"STL data too short for header: {len(data)} bytes")
    (n_triangles,) = struct.unpack_from("<I", data, HEADER_SIZE)
    expected = encoded_size(n_triangles)
    if len(data) < expected:
        raise ValueError(
            f"STL data truncated: {n_triangles} triangles need {expected} bytes, got {len(data)}"
        )
    records = np.frombuffer(data, dtype=STL_TRIANGLE_DTYPE, count=n_triangles, offset=HEADER_SIZE + 4)
    vertices = np.stack([records["v0"], records["v1"], records["v2"]], axis=1)
    return Mesh(records["normal"], vertices)
