"""Health check routes."""

from fastapi import APIRouter

from .models import MODELS, get_inference_service

router = APIRouter()


@router.get("/health")
async def health_check():
    """Health check endpoint."""
    return {"status": "healthy"}


@router.get("/health/inference")
async def inference_status():
    """Check whether image inference is configured."""
    service = get_inference_service()
    return {
        "available": service.config.is_configured(),
        "deployment": service.config.vision_deployment,
        "models_loaded": len(MODELS),
    }
