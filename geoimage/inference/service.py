"""Image-to-primitive inference through an Azure OpenAI vision deployment."""

import base64
import logging
from typing import List, Optional, Union

from openai import AzureOpenAI

from geoimage.geometry.types import LOD, Model, PrimitiveKind, Unit

from .config import InferenceConfig
from .parser import parse_model_payload

logger = logging.getLogger(__name__)

ImageInput = Union[bytes, str]

SYSTEM_PROMPT = """You are an expert 3D modeler for BIM and CAD software.
Decompose the object shown in one or more images into a small set of SIMPLE
3D primitives: BOX, CYLINDER, PYRAMID, SPHERE.

Images may be photos or technical drawings (plans, elevations, sections).
Ignore text, dimension lines, annotations, grids and title blocks; use only
geometric outlines. Correlate multiple views into one coherent object.

Rules:
1. Use at most the requested number of primitives.
2. Every primitive is a unit shape centered on its position, sized by scale.
3. position and scale are [x, y, z] in the requested unit; rotation is
   [x, y, z] in radians, applied X then Y then Z.
4. The reference length is the LARGEST dimension of the whole object.
5. color is a #rrggbb hex string; for drawings use standard CAD colors.

Respond in JSON format:
{
    "primitives": [
        {"type": "BOX", "position": [0, 0, 0], "rotation": [0, 0, 0],
         "scale": [1, 1, 1], "color": "#3b82f6"}
    ]
}"""


def to_image_url(image: ImageInput, media_type: str = "image/jpeg") -> str:
    """Encode raw image bytes (or pass through a data URL) for the vision API."""
    if isinstance(image, str):
        if image.startswith("data:"):
            return image
        return f"data:{media_type};base64,{image}"
    return f"data:{media_type};base64,{base64.b64encode(image).decode('utf-8')}"


def build_user_prompt(max_primitive_count: int, reference_length: float, unit: Unit) -> str:
    kinds = ", ".join(k.value for k in PrimitiveKind)
    return (
        "Reconstruct the object in the attached image(s) as a 3D model.\n"
        f"- Allowed types: {kinds}\n"
        f"- Maximum primitives: {max_primitive_count}\n"
        f"- The largest dimension of the object is exactly {reference_length} {unit.value}.\n"
        f"- Output all positions and scales in {unit.value}."
    )


class PrimitiveInferenceService:
    """Turns images into a primitive Model with a vision chat model."""

    def __init__(self, config: InferenceConfig):
        self.config = config
        self._client: Optional[AzureOpenAI] = None

    @property
    def client(self) -> AzureOpenAI:
        """Get or create Azure OpenAI client."""
        if self._client is None:
            if not self.config.is_configured():
                raise ValueError(
                    "Azure OpenAI is not configured. Set AZURE_OPENAI_ENDPOINT and AZURE_OPENAI_API_KEY."
                )

            self._client = AzureOpenAI(
                azure_endpoint=self.config.openai_endpoint,
                api_key=self.config.openai_api_key,
                api_version=self.config.openai_api_version,
            )
        return self._client

    async def generate(
        self,
        images: List[ImageInput],
        max_primitive_count: int,
        reference_length: float,
        unit: Unit = Unit.CM,
        lod: Optional[LOD] = None,
    ) -> Model:
        """
        Infer a primitive model from images.

        Args:
            images: Raw image bytes or data URLs
            max_primitive_count: Upper bound on returned primitives
            reference_length: Largest dimension of the object, in ``unit``
            unit: Working unit for positions and scales
            lod: Level of detail recorded on the model

        Returns:
            Parsed Model

        Raises:
            ValueError: If no images are given or the service is not configured
            EmptyResponseError: If the model returns no content
            MalformedDataError: If the content does not match the schema
        """
        if not images:
            raise ValueError("At least one image is required")

        content: list = [
            {"type": "image_url", "image_url": {"url": to_image_url(image)}}
            for image in images
        ]
        content.append(
            {"type": "text", "text": build_user_prompt(max_primitive_count, reference_length, unit)}
        )
        messages = [
            {"role": "system", "content": SYSTEM_PROMPT},
            {"role": "user", "content": content},
        ]

        try:
            response = self.client.chat.completions.create(
                model=self.config.vision_deployment,
                messages=messages,
                max_tokens=self.config.max_tokens,
                temperature=self.config.temperature,
                response_format={"type": "json_object"},
            )
        except Exception as e:
            logger.error(f"Primitive inference failed: {e}")
            raise

        text = response.choices[0].message.content if response.choices else None
        model = parse_model_payload(text, unit=unit, lod=lod)

        if len(model) > max_primitive_count:
            logger.warning(
                f"Inference returned {len(model)} primitives, limit was {max_primitive_count}"
            )
        logger.info(f"Inferred {len(model)} primitives from {len(images)} image(s)")
        return model
