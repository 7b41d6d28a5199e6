"""Image-to-primitive inference collaborator."""

from .config import InferenceConfig
from .parser import parse_model_payload, strip_code_fence
from .service import (
    SYSTEM_PROMPT,
    PrimitiveInferenceService,
    build_user_prompt,
    to_image_url,
)

__all__ = [
    "InferenceConfig",
    "PrimitiveInferenceService",
    "SYSTEM_PROMPT",
    "build_user_prompt",
    "to_image_url",
    "parse_model_payload",
    "strip_code_fence",
]
