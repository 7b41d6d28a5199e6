"""Renderer-agnostic ray picking against transformed primitive meshes."""

import logging
from dataclasses import dataclass
from typing import Optional, Sequence

import numpy as np

from geoimage.geometry.assembler import assemble_per_primitive
from geoimage.geometry.types import Mesh3D, Model, Vec3

logger = logging.getLogger(__name__)


@dataclass
class PickHit:
    """Nearest ray/surface intersection."""

    primitive_index: int
    point: Vec3
    distance: float
    mesh: Mesh3D


def ray_pick(
    model: Model,
    global_scale: float,
    origin: Sequence[float],
    direction: Sequence[float],
) -> Optional[PickHit]:
    """
    Cast a ray against every primitive and return the closest hit.

    Args:
        model: Model to pick from
        global_scale: Scale the meshes are built at (the view's current scale)
        origin: Ray origin in world space
        direction: Ray direction (need not be normalized)

    Returns:
        PickHit for the nearest intersection, or None if the ray misses
    """
    origin_arr = np.asarray(origin, dtype=np.float64).reshape(3)
    direction_arr = np.asarray(direction, dtype=np.float64).reshape(3)
    norm = np.linalg.norm(direction_arr)
    if norm == 0:
        raise ValueError("Ray direction must be non-zero")
    direction_arr = direction_arr / norm

    best: Optional[PickHit] = None
    for _, mesh in assemble_per_primitive(model, global_scale):
        tm = mesh.to_trimesh()
        if len(tm.faces) == 0 or tm.area == 0:
            continue

        locations, _, _ = tm.ray.intersects_location(
            ray_origins=[origin_arr], ray_directions=[direction_arr]
        )
        if len(locations) == 0:
            continue

        distances = (locations - origin_arr) @ direction_arr
        ahead = distances >= 0
        if not np.any(ahead):
            continue
        nearest = int(np.argmin(np.where(ahead, distances, np.inf)))
        distance = float(distances[nearest])

        if best is None or distance < best.distance:
            x, y, z = locations[nearest]
            best = PickHit(
                primitive_index=mesh.source_index,
                point=(float(x), float(y), float(z)),
                distance=distance,
                mesh=mesh,
            )

    if best:
        logger.debug(f"Ray hit primitive {best.primitive_index + 1} at {best.point}")
    return best
