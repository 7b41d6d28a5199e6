"""Mesh assembly: tessellate and transform every primitive of a model."""

import logging
from typing import List, Sequence, Tuple

import numpy as np

from .tessellator import tessellate
from .transform import transform_vertices, validate_global_scale
from .types import Face, Mesh3D, Model, Primitive, Vec3

logger = logging.getLogger(__name__)

PrimitiveMesh = Tuple[Primitive, Mesh3D]


def build_primitive_mesh(
    primitive: Primitive, global_scale: float = 1.0, index: int = 0
) -> Mesh3D:
    """Build the world-space mesh of one primitive."""
    unit_vertices, faces = tessellate(primitive.kind)
    return Mesh3D(
        vertices=transform_vertices(unit_vertices, primitive, global_scale),
        faces=faces,
        kind=primitive.kind,
        source_index=index,
    )


def assemble_per_primitive(model: Model, global_scale: float = 1.0) -> List[PrimitiveMesh]:
    """
    Build one mesh per primitive, in model order.

    Args:
        model: Model whose primitives are tessellated
        global_scale: Calibration factor, read once for the whole pass

    Returns:
        List of (primitive, world-space mesh) pairs
    """
    k = validate_global_scale(global_scale)
    parts = [
        (primitive, build_primitive_mesh(primitive, k, index))
        for index, primitive in enumerate(model.primitives)
    ]
    logger.debug(f"Assembled {len(parts)} primitive meshes at scale {k}")
    return parts


def vertex_offsets(parts: Sequence[PrimitiveMesh]) -> List[int]:
    """Running vertex-index offset of each primitive mesh."""
    offsets = []
    running = 0
    for _, mesh in parts:
        offsets.append(running)
        running += mesh.vertex_count
    return offsets


def assemble(model: Model, global_scale: float = 1.0) -> Mesh3D:
    """Combine all primitive meshes into one flat indexed mesh."""
    parts = assemble_per_primitive(model, global_scale)
    if not parts:
        return Mesh3D()

    faces: List[Face] = []
    for offset, (_, mesh) in zip(vertex_offsets(parts), parts):
        faces.extend(tuple(i + offset for i in face) for face in mesh.faces)

    return Mesh3D(
        vertices=np.vstack([mesh.vertices for _, mesh in parts]),
        faces=tuple(faces),
    )


def model_bounds(model: Model, global_scale: float = 1.0) -> Tuple[Vec3, Vec3]:
    """Axis-aligned bounds of the assembled model."""
    mesh = assemble(model, global_scale)
    if mesh.vertex_count == 0:
        return ((0.0, 0.0, 0.0), (0.0, 0.0, 0.0))
    min_pt = tuple(float(v) for v in mesh.vertices.min(axis=0))
    max_pt = tuple(float(v) for v in mesh.vertices.max(axis=0))
    return (min_pt, max_pt)
