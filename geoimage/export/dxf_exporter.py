"""DXF export with one layer per primitive, written with ezdxf."""

import io
import logging
from typing import List, Optional, Sequence

import ezdxf
from ezdxf import units
from ezdxf.document import Drawing

from geoimage.config import EngineConfig
from geoimage.geometry.assembler import assemble_per_primitive
from geoimage.geometry.types import RGB, Mesh3D, Model, Unit, color_or_default

logger = logging.getLogger(__name__)

LAYER_PREFIX = "PIEZA"

# Base AutoCAD Color Index entries; 7 renders white on dark and black on light backgrounds
ACI_WHITE = 7
ACI_BASE_COLORS = [
    (ACI_WHITE, (255, 255, 255)),
    (ACI_WHITE, (0, 0, 0)),
    (1, (255, 0, 0)),
    (2, (255, 255, 0)),
    (3, (0, 255, 0)),
    (4, (0, 255, 255)),
    (5, (0, 0, 255)),
    (6, (255, 0, 255)),
]

INSUNITS = {
    Unit.MM: units.MM,
    Unit.CM: units.CM,
    Unit.M: units.M,
    Unit.IN: units.IN,
    Unit.FT: units.FT,
}


def rgb_to_aci(rgb: RGB) -> int:
    """Map an RGB color to the nearest base ACI color, ties going to 7."""
    best_aci = ACI_WHITE
    best_distance = None
    for aci, (r, g, b) in ACI_BASE_COLORS:
        distance = (rgb[0] - r) ** 2 + (rgb[1] - g) ** 2 + (rgb[2] - b) ** 2
        if best_distance is None or distance < best_distance:
            best_aci, best_distance = aci, distance
    return best_aci


def layer_name(index: int) -> str:
    """Layer name for the primitive at 0-based ``index``."""
    return f"{LAYER_PREFIX}_{index + 1}"


def face_points(mesh: Mesh3D, face: Sequence[int]) -> List[tuple]:
    """Four corner points of a 3DFACE; triangles repeat their third vertex."""
    points = [tuple(float(c) for c in mesh.vertices[i]) for i in face]
    if len(points) == 3:
        points.append(points[2])
    return points


def build_dxf(
    model: Model, global_scale: float = 1.0, config: Optional[EngineConfig] = None
) -> Drawing:
    """
    Build an ezdxf document for a model.

    Args:
        model: Model to export
        global_scale: Calibration factor applied to positions and scales
        config: Export settings (DXF version, color policy, entity style)

    Returns:
        ezdxf Drawing with one layer and one face group per primitive
    """
    config = config or EngineConfig()
    parts = assemble_per_primitive(model, global_scale)

    doc = ezdxf.new(dxfversion=config.dxf_version, setup=False)
    doc.units = INSUNITS.get(model.unit, units.CM)
    msp = doc.modelspace()

    for primitive, mesh in parts:
        name = layer_name(mesh.source_index)
        rgb = color_or_default(primitive.color, config.default_color)
        layer = doc.layers.add(name, color=rgb_to_aci(rgb))
        if config.uses_true_color():
            layer.rgb = rgb

        attribs = {"layer": name}
        if config.uses_polyface():
            polyface = msp.add_polyface(dxfattribs=attribs)
            polyface.append_faces(
                [[tuple(float(c) for c in mesh.vertices[i]) for i in face] for face in mesh.faces],
                dxfattribs=attribs,
            )
        else:
            for face in mesh.faces:
                msp.add_3dface(face_points(mesh, face), dxfattribs=attribs)

    logger.info(
        f"Built DXF {doc.dxfversion} with {len(parts)} layers "
        f"({config.dxf_entity_style}, {config.dxf_color_policy})"
    )
    return doc


def to_dxf(
    model: Model, global_scale: float = 1.0, config: Optional[EngineConfig] = None
) -> str:
    """Serialize a model to DXF text."""
    doc = build_dxf(model, global_scale, config)
    stream = io.StringIO()
    doc.write(stream)
    return stream.getvalue()
