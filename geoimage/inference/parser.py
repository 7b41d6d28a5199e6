"""Strict parsing of inference payloads into the primitive schema."""

import json
import logging
from typing import Any, Optional

from geoimage.errors import EmptyResponseError, MalformedDataError
from geoimage.geometry.types import LOD, Model, Primitive, PrimitiveKind, Unit

logger = logging.getLogger(__name__)

REQUIRED_FIELDS = ("type", "position", "rotation", "scale", "color")


def strip_code_fence(text: str) -> str:
    """Remove a surrounding markdown code block, if any."""
    text = text.strip()
    if text.startswith("```"):
        text = text.split("```")[1]
        if text.startswith("json"):
            text = text[4:]
    return text.strip()


def _parse_primitive(index: int, data: Any) -> Primitive:
    if not isinstance(data, dict):
        raise MalformedDataError(f"Primitive {index + 1} is not an object")

    missing = [name for name in REQUIRED_FIELDS if name not in data]
    if missing:
        raise MalformedDataError(f"Primitive {index + 1} is missing {', '.join(missing)}")

    try:
        kind = PrimitiveKind(data["type"])
    except ValueError:
        raise MalformedDataError(
            f"Primitive {index + 1} has unknown type {data['type']!r}"
        ) from None

    for name in ("position", "rotation", "scale"):
        value = data[name]
        if not isinstance(value, list) or len(value) != 3:
            raise MalformedDataError(f"Primitive {index + 1} {name} must be a 3-element array")
        if not all(isinstance(v, (int, float)) and not isinstance(v, bool) for v in value):
            raise MalformedDataError(f"Primitive {index + 1} {name} must contain numbers")

    try:
        return Primitive(
            kind=kind,
            position=data["position"],
            rotation=data["rotation"],
            scale=data["scale"],
            color=data["color"] if isinstance(data["color"], str) else "",
        )
    except ValueError as e:
        raise MalformedDataError(f"Primitive {index + 1}: {e}") from e


def parse_model_payload(
    text: Optional[str],
    unit: Unit = Unit.CM,
    lod: Optional[LOD] = None,
) -> Model:
    """
    Parse an inference response into a Model.

    Args:
        text: Raw response text, optionally wrapped in a markdown code block
        unit: Unit label the primitives were requested in
        lod: Level of detail the request was made with

    Returns:
        Model with primitives in response order

    Raises:
        EmptyResponseError: If the response is empty
        MalformedDataError: If the payload does not match the primitive schema
    """
    if not text or not text.strip():
        raise EmptyResponseError("Empty response from inference service")

    try:
        data = json.loads(strip_code_fence(text))
    except json.JSONDecodeError as e:
        logger.error(f"Failed to parse inference response: {text[:200]}")
        raise MalformedDataError(f"Response is not valid JSON: {e}") from e

    if not isinstance(data, dict) or not isinstance(data.get("primitives"), list):
        raise MalformedDataError("Response must contain a 'primitives' array")

    primitives = [_parse_primitive(i, p) for i, p in enumerate(data["primitives"])]
    return Model(primitives=primitives, unit=unit, lod=lod)
