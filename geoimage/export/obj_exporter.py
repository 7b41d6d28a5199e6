"""Wavefront OBJ export with an MTL color companion."""

import logging
from typing import List, Optional

from geoimage.config import DEFAULT_COLOR
from geoimage.geometry.assembler import assemble_per_primitive, vertex_offsets
from geoimage.geometry.types import Model, Primitive, color_or_default, rgb_to_hex

logger = logging.getLogger(__name__)

OBJ_HEADER = "# GeoImage Export"


def group_name(index: int, primitive: Primitive) -> str:
    """OBJ group name for the primitive at 0-based ``index``."""
    kind = getattr(primitive.kind, "value", primitive.kind)
    return f"Primitive_{index + 1}_{kind}"


def material_name(primitive: Primitive, default_color: str = DEFAULT_COLOR) -> str:
    """Material name derived from the primitive's resolved color."""
    return "color_" + rgb_to_hex(color_or_default(primitive.color, default_color))[1:]


def to_obj(
    model: Model,
    global_scale: float = 1.0,
    mtl_name: Optional[str] = None,
    precision: int = 6,
    default_color: str = DEFAULT_COLOR,
) -> str:
    """
    Serialize a model to OBJ text.

    Each primitive becomes a named group. Face indices are 1-based and
    global across the file.

    Args:
        model: Model to export
        global_scale: Calibration factor applied to positions and scales
        mtl_name: Optional MTL file name referenced with ``mtllib``
        precision: Decimal digits for vertex coordinates
        default_color: Fallback for malformed primitive colors

    Returns:
        OBJ document text
    """
    parts = assemble_per_primitive(model, global_scale)

    lines: List[str] = [
        OBJ_HEADER,
        f"# Units: {model.unit.value}",
        f"# Global scale: {float(global_scale):.{precision}f}",
        f"# Primitives: {len(parts)}",
    ]
    if mtl_name:
        lines.append(f"mtllib {mtl_name}")

    for offset, (primitive, mesh) in zip(vertex_offsets(parts), parts):
        lines.append(f"g {group_name(mesh.source_index, primitive)}")
        lines.append(f"usemtl {material_name(primitive, default_color)}")
        for x, y, z in mesh.vertices:
            lines.append(f"v {x:.{precision}f} {y:.{precision}f} {z:.{precision}f}")
        for face in mesh.faces:
            lines.append("f " + " ".join(str(i + offset + 1) for i in face))

    logger.info(f"Exported {len(parts)} primitives to OBJ")
    return "\n".join(lines) + "\n"


def to_mtl(model: Model, default_color: str = DEFAULT_COLOR) -> str:
    """Serialize one diffuse material per distinct primitive color."""
    lines = ["# GeoImage Materials"]
    seen = set()
    for primitive in model.primitives:
        name = material_name(primitive, default_color)
        if name in seen:
            continue
        seen.add(name)
        r, g, b = color_or_default(primitive.color, default_color)
        lines.append(f"newmtl {name}")
        lines.append(f"Kd {r / 255:.6f} {g / 255:.6f} {b / 255:.6f}")
        lines.append("illum 1")
    return "\n".join(lines) + "\n"
