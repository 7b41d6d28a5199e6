"""CAD interchange export (OBJ, MTL, DXF)."""

from .dxf_exporter import build_dxf, layer_name, rgb_to_aci, to_dxf
from .obj_exporter import group_name, material_name, to_mtl, to_obj
from .writer import write_dxf, write_obj, write_text_atomic, write_texts_atomic

__all__ = [
    "to_obj",
    "to_mtl",
    "to_dxf",
    "build_dxf",
    "write_obj",
    "write_dxf",
    "write_text_atomic",
    "write_texts_atomic",
    "group_name",
    "material_name",
    "layer_name",
    "rgb_to_aci",
]
