"""Interactive scale calibration.

Usage:
    from geoimage.calibration import CalibrationSession, ray_pick

    session = CalibrationSession()
    session.start()
    hit = ray_pick(model, session.global_scale, origin, direction)
    session.pick(hit.point, hit.mesh)
    ...
    new_scale = session.confirm("120")
"""

from .engine import (
    DEFAULT_SNAP_THRESHOLD,
    CalibrationSession,
    CalibrationState,
    parse_length,
    snap_to_vertex,
)
from .picking import PickHit, ray_pick

__all__ = [
    "CalibrationSession",
    "CalibrationState",
    "DEFAULT_SNAP_THRESHOLD",
    "snap_to_vertex",
    "parse_length",
    "ray_pick",
    "PickHit",
]
