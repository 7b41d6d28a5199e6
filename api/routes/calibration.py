"""Scale calibration routes."""

import logging
from typing import Optional, Union

from fastapi import APIRouter, HTTPException
from pydantic import BaseModel, model_validator

from geoimage.calibration import ray_pick
from geoimage.errors import CalibrationInputError, CalibrationStateError
from geoimage.geometry import build_primitive_mesh

from .models import get_entry

logger = logging.getLogger(__name__)

router = APIRouter()


class PickRequest(BaseModel):
    """A surface point on a primitive, or a ray to cast into the scene."""

    point: Optional[list[float]] = None
    primitive_index: Optional[int] = None  # 1-based, as shown to the user
    origin: Optional[list[float]] = None
    direction: Optional[list[float]] = None

    @model_validator(mode="after")
    def point_or_ray(self) -> "PickRequest":
        """Validate that exactly one pick style is given."""
        has_point = self.point is not None
        has_ray = self.origin is not None and self.direction is not None
        if has_point == has_ray:
            raise ValueError("Provide either point (with primitive_index) or origin and direction")
        for vec in (self.point, self.origin, self.direction):
            if vec is not None and len(vec) != 3:
                raise ValueError("Vectors must have exactly 3 components")
        return self


class ConfirmRequest(BaseModel):
    """Real-world length of the measured segment."""

    length: Union[float, str]


@router.get("/{model_id}/calibration")
async def get_calibration(model_id: str):
    """Get calibration state and current global scale."""
    return get_entry(model_id)["session"].to_dict()


@router.post("/{model_id}/calibration/start")
async def start_calibration(model_id: str):
    """Enter calibration mode."""
    session = get_entry(model_id)["session"]
    session.start()
    return session.to_dict()


def _resolve_point(model, session, request: PickRequest):
    """Raw point and snapping mesh for a pick-style request."""
    if request.point is not None:
        mesh = None
        if request.primitive_index is not None:
            if not 1 <= request.primitive_index <= len(model):
                raise HTTPException(status_code=404, detail="Primitive not found")
            index = request.primitive_index - 1
            mesh = build_primitive_mesh(model.primitives[index], session.global_scale, index)
        return request.point, mesh

    try:
        hit = ray_pick(model, session.global_scale, request.origin, request.direction)
    except ValueError as e:
        raise HTTPException(status_code=400, detail=str(e))
    if hit is None:
        raise HTTPException(status_code=404, detail="Ray did not hit the model")
    return hit.point, hit.mesh


@router.post("/{model_id}/calibration/pick")
async def pick_point(model_id: str, request: PickRequest):
    """Record a calibration point, snapped to the nearest vertex when close."""
    entry = get_entry(model_id)
    session = entry["session"]
    raw_point, mesh = _resolve_point(entry["model"], session, request)

    try:
        snapped = session.pick(raw_point, mesh)
    except CalibrationStateError as e:
        raise HTTPException(status_code=409, detail=str(e))
    except ValueError as e:
        raise HTTPException(status_code=400, detail=str(e))

    result = session.to_dict()
    result["picked"] = list(snapped)
    return result


@router.post("/{model_id}/calibration/hover")
async def hover_point(model_id: str, request: PickRequest):
    """Distance from point A to a hovered point, without recording it."""
    entry = get_entry(model_id)
    session = entry["session"]
    raw_point, mesh = _resolve_point(entry["model"], session, request)

    try:
        distance = session.live_distance(raw_point, mesh)
    except ValueError as e:
        raise HTTPException(status_code=400, detail=str(e))

    return {"state": session.state.value, "live_distance": distance}


@router.post("/{model_id}/calibration/confirm")
async def confirm_calibration(model_id: str, request: ConfirmRequest):
    """Apply the new global scale from the entered real-world length."""
    session = get_entry(model_id)["session"]
    try:
        new_scale = session.confirm(request.length)
    except CalibrationStateError as e:
        raise HTTPException(status_code=409, detail=str(e))
    except CalibrationInputError as e:
        raise HTTPException(status_code=422, detail=str(e))

    logger.info(f"Model {model_id} calibrated to scale {new_scale}")
    return session.to_dict()


@router.post("/{model_id}/calibration/cancel")
async def cancel_calibration(model_id: str):
    """Leave calibration mode without changing the scale."""
    session = get_entry(model_id)["session"]
    session.cancel()
    return session.to_dict()
