"""Model management, inference and export routes."""

import dataclasses
import logging
import os
import uuid
from datetime import datetime
from pathlib import Path
from typing import Optional

from fastapi import APIRouter, File, Form, HTTPException, UploadFile
from fastapi.responses import PlainTextResponse
from pydantic import BaseModel, field_validator

from geoimage.calibration import CalibrationSession
from geoimage.config import EngineConfig
from geoimage.errors import (
    EmptyResponseError,
    MalformedDataError,
    SerializationIOError,
    ShapeKindError,
)
from geoimage.export import to_dxf, to_mtl, to_obj, write_dxf, write_obj
from geoimage.geometry import LOD, Model, Primitive, PrimitiveKind, Unit, demo_model, model_bounds
from geoimage.inference import InferenceConfig, PrimitiveInferenceService

logger = logging.getLogger(__name__)

router = APIRouter()

# In-memory model storage: model, calibration session and timestamps
MODELS: dict = {}

ENGINE_CONFIG = EngineConfig.from_env()
OUTPUT_DIR = Path(os.getenv("GEOIMAGE_OUTPUT_DIR", "output"))

EXPORT_MEDIA_TYPES = {
    "obj": "text/plain",
    "mtl": "text/plain",
    "dxf": "application/dxf",
}

_inference_service: Optional[PrimitiveInferenceService] = None


def get_inference_service() -> PrimitiveInferenceService:
    """Get or create the inference service."""
    global _inference_service
    if _inference_service is None:
        _inference_service = PrimitiveInferenceService(InferenceConfig.from_env())
    return _inference_service


class PrimitiveIn(BaseModel):
    """Primitive descriptor in wire format."""

    type: PrimitiveKind
    position: list[float]
    rotation: list[float] = [0.0, 0.0, 0.0]
    scale: list[float]
    color: str = "#ffffff"

    @field_validator("position", "rotation", "scale")
    @classmethod
    def must_have_three_components(cls, v: list[float]) -> list[float]:
        """Validate that vectors are 3D."""
        if len(v) != 3:
            raise ValueError("Vectors must have exactly 3 components")
        return v

    @field_validator("scale")
    @classmethod
    def scale_must_be_non_negative(cls, v: list[float]) -> list[float]:
        """Validate that scale components are non-negative."""
        if any(c < 0 for c in v):
            raise ValueError("Scale components must be non-negative")
        return v


class ModelCreate(BaseModel):
    """Model creation request."""

    primitives: list[PrimitiveIn]
    unit: Unit = Unit.CM


class ModelUpdate(BaseModel):
    """Model update request."""

    unit: Unit


class ModelResponse(BaseModel):
    """Model response."""

    id: str
    created_at: str
    unit: str
    lod: Optional[str]
    generation_time: int
    global_scale: float
    primitive_count: int
    primitives: list[dict]
    bounds: dict


def _register(model: Model) -> dict:
    model_id = str(uuid.uuid4())[:8]
    MODELS[model_id] = {
        "id": model_id,
        "model": model,
        "session": CalibrationSession(snap_threshold=ENGINE_CONFIG.snap_threshold),
        "created_at": datetime.utcnow().isoformat(),
    }
    logger.info(f"Registered model {model_id} with {len(model)} primitives")
    return MODELS[model_id]


def get_entry(model_id: str) -> dict:
    """Look up a stored model or fail with 404."""
    if model_id not in MODELS:
        raise HTTPException(status_code=404, detail="Model not found")
    return MODELS[model_id]


def export_base_name(model: Model) -> str:
    """File stem for downloads: ``GeoImage_<LOD>_<generation time>``."""
    return f"GeoImage_{model.lod.value if model.lod else 'MODEL'}_{model.generation_time}"


def _response(entry: dict) -> dict:
    model: Model = entry["model"]
    scale = entry["session"].global_scale
    bounds_min, bounds_max = model_bounds(model, scale)
    return {
        "id": entry["id"],
        "created_at": entry["created_at"],
        "unit": model.unit.value,
        "lod": model.lod.value if model.lod else None,
        "generation_time": model.generation_time,
        "global_scale": scale,
        "primitive_count": len(model),
        "primitives": [p.to_dict() for p in model.primitives],
        "bounds": {"min": list(bounds_min), "max": list(bounds_max)},
    }


@router.post("/demo", response_model=ModelResponse)
async def load_demo(unit: Unit = Unit.CM):
    """Load the built-in demo model."""
    return _response(_register(demo_model(unit)))


@router.post("/", response_model=ModelResponse)
async def create_model(request: ModelCreate):
    """Create a model from explicit primitives."""
    primitives = [
        Primitive(
            kind=p.type,
            position=p.position,
            rotation=p.rotation,
            scale=p.scale,
            color=p.color,
        )
        for p in request.primitives
    ]
    return _response(_register(Model(primitives=primitives, unit=request.unit)))


@router.post("/generate", response_model=ModelResponse)
async def generate_model(
    files: list[UploadFile] = File(...),
    lod: LOD = Form(LOD.MEDIUM),
    reference_length: float = Form(100.0),
    unit: Unit = Form(Unit.CM),
):
    """Infer a model from uploaded images."""
    if reference_length <= 0:
        raise HTTPException(status_code=400, detail="Reference length must be positive")

    service = get_inference_service()
    if not service.config.is_configured():
        raise HTTPException(
            status_code=503,
            detail="Inference not available. Azure OpenAI is not configured.",
        )

    images = []
    for upload in files:
        data = await upload.read()
        if not data:
            raise HTTPException(status_code=400, detail=f"Empty file: {upload.filename}")
        images.append(data)

    try:
        model = await service.generate(
            images,
            max_primitive_count=ENGINE_CONFIG.lod_limits[lod.value],
            reference_length=reference_length,
            unit=unit,
            lod=lod,
        )
    except (EmptyResponseError, MalformedDataError) as e:
        logger.error(f"Inference returned unusable data: {e}")
        raise HTTPException(status_code=502, detail=str(e))
    except Exception as e:
        logger.error(f"Inference failed: {e}")
        raise HTTPException(status_code=500, detail=str(e))

    return _response(_register(model))


@router.get("/", response_model=list[ModelResponse])
async def list_models():
    """List all models."""
    return [_response(entry) for entry in MODELS.values()]


@router.get("/{model_id}", response_model=ModelResponse)
async def get_model(model_id: str):
    """Get model by ID."""
    return _response(get_entry(model_id))


@router.patch("/{model_id}", response_model=ModelResponse)
async def update_model(model_id: str, request: ModelUpdate):
    """Relabel a model's unit without touching its geometry or calibration."""
    entry = get_entry(model_id)
    entry["model"] = dataclasses.replace(entry["model"], unit=request.unit)
    logger.info(f"Model {model_id} unit set to {request.unit.value}")
    return _response(entry)


@router.delete("/{model_id}")

async def delete_model(model_id: str):
    """Delete a model."""
    get_entry(model_id)
    del MODELS[model_id]
    logger.info(f"Deleted model: {model_id}")
    return {"status": "deleted", "id": model_id}


@router.get("/{model_id}/export/{fmt}")
async def export_model(model_id: str, fmt: str):
    """Export a model as OBJ, MTL or DXF at its calibrated scale."""
    entry = get_entry(model_id)
    fmt = fmt.lower()
    if fmt not in EXPORT_MEDIA_TYPES:
        raise HTTPException(
            status_code=400, detail="Invalid format. Supported formats: obj, mtl, dxf."
        )

    model: Model = entry["model"]
    scale = entry["session"].global_scale
    base_name = export_base_name(model)

    try:
        if fmt == "obj":
            content = to_obj(
                model,
                scale,
                mtl_name=f"{base_name}.mtl",
                precision=ENGINE_CONFIG.obj_precision,
                default_color=ENGINE_CONFIG.default_color,
            )
        elif fmt == "mtl":
            content = to_mtl(model, ENGINE_CONFIG.default_color)
        else:
            content = to_dxf(model, scale, ENGINE_CONFIG)
    except ShapeKindError as e:
        raise HTTPException(status_code=422, detail=str(e))

    logger.info(f"Exported model {model_id} as {fmt} at scale {scale}")
    return PlainTextResponse(
        content,
        media_type=EXPORT_MEDIA_TYPES[fmt],
        headers={"Content-Disposition": f'attachment; filename="{base_name}.{fmt}"'},
    )


@router.post("/{model_id}/export/{fmt}/save")
async def save_export(model_id: str, fmt: str):
    """Write an OBJ (with MTL) or DXF export to the output directory."""
    entry = get_entry(model_id)
    fmt = fmt.lower()
    if fmt not in ("obj", "dxf"):
        raise HTTPException(status_code=400, detail="Invalid format. Supported formats: obj, dxf.")

    model: Model = entry["model"]
    scale = entry["session"].global_scale
    model_dir = OUTPUT_DIR / model_id
    path = model_dir / f"{export_base_name(model)}.{fmt}"

    try:
        model_dir.mkdir(parents=True, exist_ok=True)
        if fmt == "obj":
            write_obj(path, model, scale, ENGINE_CONFIG)
        else:
            write_dxf(path, model, scale, ENGINE_CONFIG)
    except ShapeKindError as e:
        raise HTTPException(status_code=422, detail=str(e))
    except (OSError, SerializationIOError) as e:
        logger.error(f"Failed to save export for model {model_id}: {e}")
        raise HTTPException(status_code=500, detail=f"Failed to save export: {e}")

    files = [path.name] + ([path.with_suffix(".mtl").name] if fmt == "obj" else [])
    return {
        "id": model_id,
        "format": fmt,
        "global_scale": scale,
        "files": [f"/output/{model_id}/{name}" for name in files],
    }
