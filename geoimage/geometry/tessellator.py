"""Unit-space tessellation of primitive kinds.

Every kind is built inside the canonical unit volume ``[-0.5, 0.5]^3``
centered at the origin, with faces wound counter-clockwise when seen from
outside. Faces are tuples of 3 or 4 vertex indices.
"""

import math
from functools import lru_cache
from typing import Any, List, Tuple

import numpy as np

from geoimage.errors import ShapeKindError

from .types import Face, PrimitiveKind

CYLINDER_SEGMENTS = 16
SPHERE_RINGS = 8  # latitude bands
SPHERE_SEGMENTS = 12  # longitude segments

Tessellation = Tuple[np.ndarray, Tuple[Face, ...]]


def _box() -> Tuple[List[List[float]], List[Face]]:
    vertices = [
        [-0.5, -0.5, -0.5],  # 0
        [0.5, -0.5, -0.5],  # 1
        [0.5, 0.5, -0.5],  # 2
        [-0.5, 0.5, -0.5],  # 3
        [-0.5, -0.5, 0.5],  # 4
        [0.5, -0.5, 0.5],  # 5
        [0.5, 0.5, 0.5],  # 6
        [-0.5, 0.5, 0.5],  # 7
    ]
    faces = [
        (0, 3, 2, 1),  # -Z
        (4, 5, 6, 7),  # +Z
        (0, 1, 5, 4),  # -Y
        (2, 3, 7, 6),  # +Y
        (1, 2, 6, 5),  # +X
        (0, 4, 7, 3),  # -X
    ]
    return vertices, faces


def _cylinder(segments: int = CYLINDER_SEGMENTS) -> Tuple[List[List[float]], List[Face]]:
    vertices = []
    for y in (-0.5, 0.5):
        for j in range(segments):
            theta = 2.0 * math.pi * j / segments
            vertices.append([0.5 * math.cos(theta), y, 0.5 * math.sin(theta)])

    bottom_center = len(vertices)
    vertices.append([0.0, -0.5, 0.0])
    top_center = len(vertices)
    vertices.append([0.0, 0.5, 0.0])

    faces: List[Face] = []
    for j in range(segments):
        k = (j + 1) % segments
        b_j, b_k = j, k
        t_j, t_k = segments + j, segments + k
        faces.append((b_j, t_j, t_k, b_k))  # side
    for j in range(segments):
        k = (j + 1) % segments
        faces.append((bottom_center, j, k))  # bottom cap
    for j in range(segments):
        k = (j + 1) % segments
        faces.append((top_center, segments + k, segments + j))  # top cap
    return vertices, faces


def _pyramid() -> Tuple[List[List[float]], List[Face]]:
    vertices = [
        [-0.5, -0.5, -0.5],
        [0.5, -0.5, -0.5],
        [0.5, -0.5, 0.5],
        [-0.5, -0.5, 0.5],
        [0.0, 0.5, 0.0],  # apex
    ]
    faces: List[Face] = [(0, 1, 2, 3)]
    for i in range(4):
        faces.append((i, 4, (i + 1) % 4))
    return vertices, faces


def _sphere(
    rings: int = SPHERE_RINGS, segments: int = SPHERE_SEGMENTS
) -> Tuple[List[List[float]], List[Face]]:
    vertices = [[0.0, 0.5, 0.0]]  # north pole
    for ring in range(1, rings):
        phi = math.pi * ring / rings
        y = 0.5 * math.cos(phi)
        r = 0.5 * math.sin(phi)
        for j in range(segments):
            theta = 2.0 * math.pi * j / segments
            vertices.append([r * math.cos(theta), y, r * math.sin(theta)])
    south = len(vertices)
    vertices.append([0.0, -0.5, 0.0])

    def ring_index(ring: int, j: int) -> int:
        return 1 + (ring - 1) * segments + (j % segments)

    faces: List[Face] = []
    for j in range(segments):
        faces.append((0, ring_index(1, j + 1), ring_index(1, j)))
    for ring in range(1, rings - 1):
        for j in range(segments):
            upper_j, upper_k = ring_index(ring, j), ring_index(ring, j + 1)
            lower_j, lower_k = ring_index(ring + 1, j), ring_index(ring + 1, j + 1)
            faces.append((lower_j, upper_j, upper_k, lower_k))
    for j in range(segments):
        faces.append((south, ring_index(rings - 1, j), ring_index(rings - 1, j + 1)))
    return vertices, faces


_BUILDERS = {
    PrimitiveKind.BOX: _box,
    PrimitiveKind.CYLINDER: _cylinder,
    PrimitiveKind.PYRAMID: _pyramid,
    PrimitiveKind.SPHERE: _sphere,
}


def _resolve_kind(kind: Any) -> PrimitiveKind:
    if isinstance(kind, PrimitiveKind):
        return kind
    try:
        return PrimitiveKind(kind)
    except ValueError:
        raise ShapeKindError(f"Unrecognized primitive kind: {kind!r}") from None


@lru_cache(maxsize=None)
def _tessellate_cached(kind: PrimitiveKind) -> Tessellation:
    vertices, faces = _BUILDERS[kind]()
    array = np.array(vertices, dtype=np.float64)
    array.flags.writeable = False
    return array, tuple(tuple(f) for f in faces)


def tessellate(kind: Any) -> Tessellation:
    """
    Tessellate a primitive kind in canonical unit space.

    Args:
        kind: PrimitiveKind member or its string value

    Returns:
        Tuple of (read-only ``(n, 3)`` vertex array, tuple of faces)

    Raises:
        ShapeKindError: If the kind has no tessellation
    """
    resolved = _resolve_kind(kind)
    if resolved not in _BUILDERS:
        raise ShapeKindError(f"No tessellation for primitive kind: {resolved.value}")
    return _tessellate_cached(resolved)
