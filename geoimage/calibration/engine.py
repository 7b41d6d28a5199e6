"""Two-point scale calibration with vertex snapping."""

import logging
import math
from enum import Enum
from typing import Any, Optional, Sequence

import numpy as np
from scipy.spatial import cKDTree

from geoimage.errors import CalibrationInputError, CalibrationStateError
from geoimage.geometry.transform import validate_global_scale
from geoimage.geometry.types import Mesh3D, Vec3

logger = logging.getLogger(__name__)

DEFAULT_SNAP_THRESHOLD = 0.2


class CalibrationState(str, Enum):
    """Calibration progress."""

    IDLE = "idle"
    AWAITING_POINT_A = "awaiting_point_a"
    AWAITING_POINT_B = "awaiting_point_b"
    READY = "ready"


def _as_point(value: Sequence[float]) -> np.ndarray:
    point = np.asarray(value, dtype=np.float64).reshape(-1)
    if point.shape != (3,) or not np.all(np.isfinite(point)):
        raise ValueError(f"Point must be 3 finite coordinates, got {value}")
    return point


def _to_vec3(point: np.ndarray) -> Vec3:
    return (float(point[0]), float(point[1]), float(point[2]))


def snap_to_vertex(
    point: Sequence[float], vertices: np.ndarray, threshold: float = DEFAULT_SNAP_THRESHOLD
) -> Vec3:
    """
    Snap a point to the nearest vertex if it lies within ``threshold``.

    Args:
        point: Raw pick point in world space
        vertices: ``(n, 3)`` world-space vertices of the picked mesh
        threshold: Maximum snap distance in world units

    Returns:
        The nearest vertex, or the raw point if none is close enough
    """
    raw = _as_point(point)
    vertices = np.asarray(vertices, dtype=np.float64).reshape(-1, 3)
    if vertices.shape[0] == 0:
        return _to_vec3(raw)

    distance, index = cKDTree(vertices).query(raw)
    if distance <= threshold:
        return _to_vec3(vertices[index])
    return _to_vec3(raw)


def parse_length(value: Any) -> float:
    """Parse a user-entered real-world length; must be finite and positive."""
    if isinstance(value, bool):
        raise CalibrationInputError("Length must be a number")
    try:
        length = float(value.strip() if isinstance(value, str) else value)
    except (TypeError, ValueError):
        raise CalibrationInputError(f"Length must be a number, got {value!r}") from None
    if not math.isfinite(length):
        raise CalibrationInputError(f"Length must be finite, got {value!r}")
    if length <= 0:
        raise CalibrationInputError(f"Length must be positive, got {length}")
    return length


class CalibrationSession:
    """
    Owns the global scale factor and the two-point measurement that updates it.

    Flow: ``start()`` -> ``pick()`` point A -> ``pick()`` point B ->
    ``confirm(length)``. ``cancel()`` returns to idle at any time without
    touching the scale.
    """

    def __init__(
        self,
        global_scale: float = 1.0,
        snap_threshold: float = DEFAULT_SNAP_THRESHOLD,
    ):
        self._global_scale = validate_global_scale(global_scale)
        self.snap_threshold = snap_threshold
        self.state = CalibrationState.IDLE
        self.point_a: Optional[Vec3] = None
        self.point_b: Optional[Vec3] = None

    @property
    def global_scale(self) -> float:
        return self._global_scale

    @property
    def measured_distance(self) -> Optional[float]:
        """Distance between the two picked points, once both exist."""
        if self.state != CalibrationState.READY:
            return None
        return float(np.linalg.norm(np.subtract(self.point_b, self.point_a)))

    def start(self) -> None:
        """Enter calibration mode and wait for the first point."""
        self._clear_points()
        self.state = CalibrationState.AWAITING_POINT_A
        logger.debug("Calibration started")

    def cancel(self) -> None:
        """Leave calibration mode, keeping the current scale."""
        self._clear_points()
        self.state = CalibrationState.IDLE
        logger.debug("Calibration cancelled")

    def pick(self, raw_point: Sequence[float], mesh: Optional[Mesh3D] = None) -> Vec3:
        """
        Record a picked point, snapped to ``mesh`` when close to one of its vertices.

        ``mesh`` must be the picked primitive's mesh at the current global
        scale. Picking after both points are set starts a new measurement.

        Raises:
            CalibrationStateError: If calibration has not been started
        """
        if self.state == CalibrationState.IDLE:
            raise CalibrationStateError("Calibration not started")

        if mesh is not None:
            point = snap_to_vertex(raw_point, mesh.vertices, self.snap_threshold)
        else:
            point = _to_vec3(_as_point(raw_point))

        if self.state == CalibrationState.AWAITING_POINT_B:
            self.point_b = point
            self.state = CalibrationState.READY
            logger.info(f"Calibration point B {point}, distance {self.measured_distance:.6f}")
        else:
            self.point_a = point
            self.point_b = None
            self.state = CalibrationState.AWAITING_POINT_B
            logger.info(f"Calibration point A {point}")
        return point

    def live_distance(
        self, hover_point: Sequence[float], mesh: Optional[Mesh3D] = None
    ) -> Optional[float]:
        """Distance from point A to a candidate second point, snapped like ``pick``."""
        if self.state != CalibrationState.AWAITING_POINT_B:
            return None
        if mesh is not None:
            point = np.asarray(snap_to_vertex(hover_point, mesh.vertices, self.snap_threshold))
        else:
            point = _as_point(hover_point)
        return float(np.linalg.norm(point - np.asarray(self.point_a)))


    def confirm(self, length: Any) -> float:
        """
        Apply a new global scale so the measured segment is ``length`` long.

        The measured distance is converted back to unscaled model units with
        the scale in effect when it was measured, so repeated calibrations
        do not compound.

        Returns:
            The new global scale

        Raises:
            CalibrationStateError: If two points have not been picked
            CalibrationInputError: If the length is invalid or the points coincide
        """
        if self.state != CalibrationState.READY:
            raise CalibrationStateError("Two points must be picked before confirming")

        target = parse_length(length)
        distance = self.measured_distance
        if distance == 0:
            raise CalibrationInputError("Picked points coincide")

        raw_distance = distance / self._global_scale
        new_scale = target / raw_distance
        if not math.isfinite(new_scale) or new_scale <= 0:
            raise CalibrationInputError(f"Derived scale is invalid: {new_scale}")

        logger.info(f"Calibrated global scale {self._global_scale} -> {new_scale}")
        self._global_scale = new_scale
        self._clear_points()
        self.state = CalibrationState.IDLE
        return new_scale

    def to_dict(self) -> dict:
        return {
            "state": self.state.value,
            "global_scale": self._global_scale,
            "point_a": list(self.point_a) if self.point_a else None,
            "point_b": list(self.point_b) if self.point_b else None,
            "measured_distance": self.measured_distance,
            "snap_threshold": self.snap_threshold,
        }

    def _clear_points(self) -> None:
        self.point_a = None
        self.point_b = None
