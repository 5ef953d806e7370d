"""
Common modules shared by the sampler, the solid builder and the CLI.

Unit Model:
- Pixel grid -> millimeters (x, y scaled by mesh_width / image width)
- z = relief depth in millimeters, back face at z = 0
"""

from .config import LithophaneConfig, MeshMetadata, DEFAULT_CONFIG
from .errors import LithophotoError, InputError, ArgumentError, OutputError
from .io import PixelGrid, load_image, save_stl
from .mesh_ops import to_trimesh, compute_mesh_stats, directed_edge_mismatches, signed_volume

__all__ = [
    'LithophaneConfig', 'MeshMetadata', 'DEFAULT_CONFIG',
    'LithophotoError', 'InputError', 'ArgumentError', 'OutputError',
    'PixelGrid', 'load_image', 'save_stl',
    'to_trimesh', 'compute_mesh_stats', 'directed_edge_mismatches', 'signed_volume',
]
