"""Affine transform from unit space to world space.

Order is fixed: scale, rotate X, rotate Y, rotate Z, translate. The global
scale factor multiplies the primitive's scale and position, never its
rotation.
"""

import math
from typing import Sequence

import numpy as np

from .types import Primitive, Vec3


def rotation_x(angle: float) -> np.ndarray:
    """Right-handed rotation matrix about the X axis."""
    c, s = math.cos(angle), math.sin(angle)
    return np.array([[1.0, 0.0, 0.0], [0.0, c, -s], [0.0, s, c]])


def rotation_y(angle: float) -> np.ndarray:
    """Right-handed rotation matrix about the Y axis."""
    c, s = math.cos(angle), math.sin(angle)
    return np.array([[c, 0.0, s], [0.0, 1.0, 0.0], [-s, 0.0, c]])


def rotation_z(angle: float) -> np.ndarray:
    """Right-handed rotation matrix about the Z axis."""
    c, s = math.cos(angle), math.sin(angle)
    return np.array([[c, -s, 0.0], [s, c, 0.0], [0.0, 0.0, 1.0]])


def validate_global_scale(global_scale: float) -> float:
    """Return the scale as float, rejecting non-finite or non-positive values."""
    value = float(global_scale)
    if not math.isfinite(value) or value <= 0:
        raise ValueError(f"Global scale must be a positive finite number, got {global_scale}")
    return value


def transform_vertices(
    unit_vertices: np.ndarray, primitive: Primitive, global_scale: float = 1.0
) -> np.ndarray:
    """
    Transform unit-space vertices of a primitive into world space.

    Args:
        unit_vertices: ``(n, 3)`` array in canonical unit space
        primitive: Primitive supplying scale, rotation and position
        global_scale: Calibration factor applied to scale and position

    Returns:
        New ``(n, 3)`` float64 array of world-space vertices
    """
    k = validate_global_scale(global_scale)
    vertices = np.asarray(unit_vertices, dtype=np.float64).reshape(-1, 3)

    scaled = vertices * (np.array(primitive.scale, dtype=np.float64) * k)

    rx, ry, rz = primitive.rotation
    rotated = scaled @ rotation_x(rx).T
    rotated = rotated @ rotation_y(ry).T
    rotated = rotated @ rotation_z(rz).T

    return rotated + np.array(primitive.position, dtype=np.float64) * k


def transform(
    unit_vertex: Sequence[float], primitive: Primitive, global_scale: float = 1.0
) -> Vec3:
    """Transform a single unit-space vertex into world space."""
    x, y, z = transform_vertices(np.array([unit_vertex]), primitive, global_scale)[0]
    return (float(x), float(y), float(z))
