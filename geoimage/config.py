"""Engine configuration management."""

import os
from dataclasses import dataclass, field
from typing import Dict

DEFAULT_COLOR = "#ffffff"

DEFAULT_LOD_LIMITS = {
    "LOW": 5,
    "MEDIUM": 12,
    "HIGH": 25,
}


@dataclass
class EngineConfig:
    """Export and calibration settings."""

    # Calibration
    snap_threshold: float = 0.2  # world units, after global scale

    # OBJ
    obj_precision: int = 6

    # DXF
    dxf_version: str = "R2010"
    dxf_color_policy: str = "aci"  # aci, true_color
    dxf_entity_style: str = "3dface"  # 3dface, polyface

    # Colors
    default_color: str = DEFAULT_COLOR

    # Max primitives requested from inference per LOD
    lod_limits: Dict[str, int] = field(default_factory=lambda: dict(DEFAULT_LOD_LIMITS))

    @classmethod
    def from_env(cls) -> "EngineConfig":
        """Load configuration from environment variables."""
        return cls(
            snap_threshold=float(os.getenv("GEOIMAGE_SNAP_THRESHOLD", "0.2")),
            obj_precision=int(os.getenv("GEOIMAGE_OBJ_PRECISION", "6")),
            dxf_version=os.getenv("GEOIMAGE_DXF_VERSION", "R2010"),
            dxf_color_policy=os.getenv("GEOIMAGE_DXF_COLOR_POLICY", "aci"),
            dxf_entity_style=os.getenv("GEOIMAGE_DXF_ENTITY_STYLE", "3dface"),
            default_color=os.getenv("GEOIMAGE_DEFAULT_COLOR", DEFAULT_COLOR),
            lod_limits={
                "LOW": int(os.getenv("GEOIMAGE_LOD_LOW", "5")),
                "MEDIUM": int(os.getenv("GEOIMAGE_LOD_MEDIUM", "12")),
                "HIGH": int(os.getenv("GEOIMAGE_LOD_HIGH", "25")),
            },
        )

    def uses_true_color(self) -> bool:
        """Check if DXF layers should carry 24-bit color."""
        return self.dxf_color_policy.lower() == "true_color"

    def uses_polyface(self) -> bool:
        """Check if DXF primitives are written as polyface meshes."""
        return self.dxf_entity_style.lower() == "polyface"
