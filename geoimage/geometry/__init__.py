"""Primitive geometry module.

Turns a Model (ordered primitives with pose and color) into world-space
meshes through one shared tessellate -> transform -> assemble pipeline.

Usage:
    from geoimage.geometry import assemble_per_primitive, demo_model

    for primitive, mesh in assemble_per_primitive(demo_model(), global_scale=1.0):
        print(primitive.kind, mesh.vertex_count, mesh.face_count)
"""

from .assembler import (
    assemble,
    assemble_per_primitive,
    build_primitive_mesh,
    model_bounds,
    vertex_offsets,
)
from .demo import demo_model
from .tessellator import tessellate
from .transform import transform, transform_vertices
from .types import (
    LOD,
    Mesh3D,
    Model,
    Primitive,
    PrimitiveKind,
    Unit,
    color_or_default,
    parse_hex_color,
    rgb_to_hex,
)

__all__ = [
    # Data model
    "PrimitiveKind",
    "Primitive",
    "Model",
    "Mesh3D",
    "Unit",
    "LOD",
    "parse_hex_color",
    "color_or_default",
    "rgb_to_hex",
    # Pipeline
    "tessellate",
    "transform",
    "transform_vertices",
    "build_primitive_mesh",
    "assemble",
    "assemble_per_primitive",
    "vertex_offsets",
    "model_bounds",
    # Demo
    "demo_model",
]
