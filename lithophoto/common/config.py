"""
Configuration and metadata for lithophane generation.

Unit Model:
- All lengths are millimeters
- mesh_width fixes the model's X extent; the Y extent follows the image aspect
- thickness is the maximum relief depth; contrast scales how much of it is carved
"""

from dataclasses import dataclass, field
from typing import Optional, Dict, Any
import json
import math
from pathlib import Path

from .errors import ArgumentError


@dataclass
class MeshMetadata:
    """
    Metadata written as a JSON sidecar next to an exported STL.
    """
    source_image: str
    image_width_px: int
    image_height_px: int
    model_width_mm: float
    model_height_mm: float
    thickness_mm: float
    n_triangles: int
    stats: Optional[Dict[str, Any]] = None
    generation_params: Dict[str, Any] = field(default_factory=dict)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "source_image": self.source_image,
            "image_width_px": self.image_width_px,
            "image_height_px": self.image_height_px,
            "model_width_mm": self.model_width_mm,
            "model_height_mm": self.model_height_mm,
            "thickness_mm": self.thickness_mm,
            "n_triangles": self.n_triangles,
            "stats": self.stats,
            "generation_params": self.generation_params,
        }

    def save(self, path: Path) -> None:
        """Save metadata to JSON file."""
        path.parent.mkdir(parents=True, exist_ok=True)
        with open(path, 'w') as f:
            json.dump(self.to_dict(), f, indent=2)

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "MeshMetadata":
        return cls(**data)


@dataclass
class LithophaneConfig:
    """
    Generation parameters.

    mesh_width: model width in mm (X extent)
    thickness: maximum relief thickness in mm
    contrast: 0 = flat slab of full thickness, 1 = brightest pixel carved to z = 0
    """

    mesh_width: float = 100.0
    thickness: float = 10.0
    contrast: float = 0.5

    def validate(self) -> "LithophaneConfig":
        """Raise ArgumentError if any parameter is out of range."""
        for name in ("mesh_width", "thickness", "contrast"):
            value = getattr(self, name)
            if not math.isfinite(value):
                raise ArgumentError(f"{name} must be a finite number, got {value!r}")
        if self.mesh_width <= 0:
            raise ArgumentError(f"mesh_width must be positive, got {self.mesh_width}")
        if self.thickness <= 0:
            raise ArgumentError(f"thickness must be positive, got {self.thickness}")
        if not 0.0 <= self.contrast <= 1.0:
            raise ArgumentError(f"contrast must be between 0 and 1, got {self.contrast}")
        return self

    def model_height(self, width_px: int, height_px: int) -> float:
        """Y extent in mm for an image of the given pixel size (square pixels)."""
        return self.mesh_width * height_px / width_px

    def to_dict(self) -> Dict[str, Any]:
        return {
            "mesh_width": self.mesh_width,
            "thickness": self.thickness,
            "contrast": self.contrast,
        }

    @classmethod
    def from_json(cls, path: Path) -> "LithophaneConfig":
        """
        Load config from JSON file.

        Unreadable files, malformed JSON, a non-object top level, unknown
        keys and non-numeric values all raise ArgumentError.
        """
        try:
            with open(path) as f:
                data = json.load(f)
        except OSError as e:
            raise ArgumentError(f"Could not read config file {path}: {e}") from e
        except json.JSONDecodeError as e:
            raise ArgumentError(f"Config file {path} is not valid JSON: {e}") from e

        if not isinstance(data, dict):
            raise ArgumentError(
                f"Config file {path} must contain a JSON object, got {type(data).__name__}"
            )
        try:
            return cls(**{k: float(v) for k, v in data.items()})
        except (TypeError, ValueError) as e:
            raise ArgumentError(f"Invalid config file {path}: {e}") from e

    def save(self, path: Path) -> None:
        """Save config to JSON file."""
        path.parent.mkdir(parents=True, exist_ok=True)
        with open(path, 'w') as f:
            json.dump(self.to_dict(), f, indent=2)


# Global default config
DEFAULT_CONFIG = LithophaneConfig()
