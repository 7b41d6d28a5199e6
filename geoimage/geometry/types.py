"""Data types for primitive models and meshes."""

import logging
import math
import re
import time
from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Dict, List, Optional, Tuple

import numpy as np
import trimesh

from geoimage.config import DEFAULT_COLOR
from geoimage.errors import InvalidColorError

logger = logging.getLogger(__name__)

Vec3 = Tuple[float, float, float]
RGB = Tuple[int, int, int]
Face = Tuple[int, ...]

HEX_COLOR_PATTERN = re.compile(r"^#([0-9a-fA-F]{6})$")


class PrimitiveKind(str, Enum):
    """Supported primitive shapes."""

    BOX = "BOX"
    CYLINDER = "CYLINDER"
    PYRAMID = "PYRAMID"
    SPHERE = "SPHERE"


class Unit(str, Enum):
    """Working unit label for positions, scales and calibration lengths."""

    MM = "mm"
    CM = "cm"
    M = "m"
    IN = "in"
    FT = "ft"


class LOD(str, Enum):
    """Level of detail, bounding how many primitives inference may return."""

    LOW = "LOW"
    MEDIUM = "MEDIUM"
    HIGH = "HIGH"


def parse_hex_color(value: Any) -> RGB:
    """Parse a ``#rrggbb`` string into an RGB triple.

    Raises:
        InvalidColorError: If the value is not a 7-character hex color.
    """
    if not isinstance(value, str):
        raise InvalidColorError(f"Color must be a string, got {type(value).__name__}")
    match = HEX_COLOR_PATTERN.match(value.strip())
    if not match:
        raise InvalidColorError(f"Invalid hex color: {value!r}")
    digits = match.group(1)
    return (int(digits[0:2], 16), int(digits[2:4], 16), int(digits[4:6], 16))


def color_or_default(value: Any, default: str = DEFAULT_COLOR) -> RGB:
    """Parse a hex color, falling back to the default on malformed input."""
    try:
        return parse_hex_color(value)
    except InvalidColorError as e:
        logger.warning(f"{e}; using default color {default}")
        return parse_hex_color(default)


def rgb_to_hex(rgb: RGB) -> str:
    """Format an RGB triple as ``#rrggbb``."""
    return "#{:02x}{:02x}{:02x}".format(*rgb)


def _as_vec3(value: Any, name: str) -> Vec3:
    if len(value) != 3:
        raise ValueError(f"{name} must have 3 components, got {len(value)}")
    vec = (float(value[0]), float(value[1]), float(value[2]))
    if not all(math.isfinite(c) for c in vec):
        raise ValueError(f"{name} components must be finite, got {vec}")
    return vec


@dataclass(frozen=True)
class Primitive:
    """A single parametric solid with pose and color."""

    kind: PrimitiveKind
    position: Vec3 = (0.0, 0.0, 0.0)
    rotation: Vec3 = (0.0, 0.0, 0.0)  # radians, applied X then Y then Z
    scale: Vec3 = (1.0, 1.0, 1.0)
    color: str = DEFAULT_COLOR

    def __post_init__(self):
        object.__setattr__(self, "position", _as_vec3(self.position, "position"))
        object.__setattr__(self, "rotation", _as_vec3(self.rotation, "rotation"))
        object.__setattr__(self, "scale", _as_vec3(self.scale, "scale"))
        if any(s < 0 for s in self.scale):
            raise ValueError(f"Scale components must be non-negative: {self.scale}")

    @property
    def rgb(self) -> RGB:
        """Resolved color, default color if the hex string is malformed."""
        return color_or_default(self.color)

    def to_dict(self) -> dict:
        kind = self.kind.value if isinstance(self.kind, PrimitiveKind) else str(self.kind)
        return {
            "type": kind,
            "position": list(self.position),
            "rotation": list(self.rotation),
            "scale": list(self.scale),
            "color": self.color,
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "Primitive":
        """Create a primitive from its wire representation.

        Raises:
            KeyError: If a required field is missing.
            ValueError: If the kind is unknown or a vector is malformed.
        """
        return cls(
            kind=PrimitiveKind(data["type"]),
            position=data["position"],
            rotation=data["rotation"],
            scale=data["scale"],
            color=data["color"],
        )


@dataclass(frozen=True)
class Model:
    """Ordered primitive set plus generation metadata."""

    primitives: Tuple[Primitive, ...] = ()
    generation_time: int = field(default_factory=lambda: int(time.time() * 1000))
    unit: Unit = Unit.CM
    lod: Optional[LOD] = None

    def __post_init__(self):
        object.__setattr__(self, "primitives", tuple(self.primitives))

    def __len__(self) -> int:
        return len(self.primitives)

    def to_dict(self) -> dict:
        return {
            "primitives": [p.to_dict() for p in self.primitives],
            "generation_time": self.generation_time,
            "unit": self.unit.value,
            "lod": self.lod.value if self.lod else None,
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "Model":
        kwargs: Dict[str, Any] = {
            "primitives": [Primitive.from_dict(p) for p in data["primitives"]],
            "unit": Unit(data.get("unit", Unit.CM.value)),
        }
        if data.get("generation_time") is not None:
            kwargs["generation_time"] = int(data["generation_time"])
        if data.get("lod"):
            kwargs["lod"] = LOD(data["lod"])
        return cls(**kwargs)


@dataclass
class Mesh3D:
    """Indexed mesh with mixed triangle/quad faces."""

    vertices: np.ndarray = field(default_factory=lambda: np.zeros((0, 3)))
    faces: Tuple[Face, ...] = ()
    kind: Optional[PrimitiveKind] = None
    source_index: int = 0  # 0-based position of the source primitive in its model

    @property
    def vertex_count(self) -> int:
        return int(self.vertices.shape[0])

    @property
    def face_count(self) -> int:
        return len(self.faces)

    def triangles(self) -> np.ndarray:
        """Split faces into triangles (quads fan from their first vertex)."""
        tris: List[Tuple[int, int, int]] = []
        for face in self.faces:
            for i in range(1, len(face) - 1):
                tris.append((face[0], face[i], face[i + 1]))
        if not tris:
            return np.zeros((0, 3), dtype=np.int64)
        return np.array(tris, dtype=np.int64)

    def to_trimesh(self) -> trimesh.Trimesh:
        """Convert to trimesh object without merging or dropping vertices."""
        if self.vertex_count == 0 or not self.faces:
            return trimesh.Trimesh()
        mesh = trimesh.Trimesh(
            vertices=self.vertices, faces=self.triangles(), process=False
        )
        mesh.metadata["kind"] = self.kind.value if self.kind else None
        mesh.metadata["source_index"] = self.source_index
        return mesh
