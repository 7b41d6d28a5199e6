"""Write exported documents to disk without leaving partial files."""

import logging
import os
import tempfile
from pathlib import Path
from typing import List, Optional, Sequence, Tuple

from geoimage.config import EngineConfig
from geoimage.errors import SerializationIOError
from geoimage.geometry.types import Model

from .dxf_exporter import to_dxf
from .obj_exporter import to_mtl, to_obj

logger = logging.getLogger(__name__)


def _discard(tmp_names: Sequence[str]) -> None:
    for tmp_name in tmp_names:
        if os.path.exists(tmp_name):
            os.unlink(tmp_name)


def _stage(path: Path, content: str) -> str:
    """Write ``content`` to a temporary file beside ``path`` and return its name."""
    tmp_name = None
    try:
        fd, tmp_name = tempfile.mkstemp(
            prefix=f".{path.name}.", suffix=".tmp", dir=str(path.parent)
        )
        with os.fdopen(fd, "w", encoding="utf-8", newline="") as f:
            f.write(content)
    except OSError as e:
        if tmp_name:
            _discard([tmp_name])
        logger.error(f"Failed to write {path}: {e}")
        raise SerializationIOError(f"Unable to write {path}: {e}") from e
    return tmp_name


def write_texts_atomic(files: Sequence[Tuple[str | Path, str]]) -> List[Path]:
    """
    Write several text files as one unit.

    Every file is staged to a temporary file first; destinations are only
    replaced once all of them are staged. If a rename fails, destinations
    created by this call are removed again and all temporary files are
    deleted.

    Raises:
        SerializationIOError: If any destination cannot be written
    """
    targets = [Path(path) for path, _ in files]
    staged: List[str] = []
    try:
        for path, (_, content) in zip(targets, files):
            staged.append(_stage(path, content))
    except SerializationIOError:
        _discard(staged)
        raise

    created: List[Path] = []
    try:
        for tmp_name, path in zip(staged, targets):
            existed = path.exists()
            os.replace(tmp_name, path)
            if not existed:
                created.append(path)
    except OSError as e:
        _discard(staged)
        for path in created:
            path.unlink()
        logger.error(f"Failed to write {path}: {e}")
        raise SerializationIOError(f"Unable to write {path}: {e}") from e

    for path in targets:
        logger.info(f"Wrote {path}")
    return targets


def write_text_atomic(path: str | Path, content: str) -> Path:
    """
    Write text through a temporary file renamed into place.

    Raises:
        SerializationIOError: If the destination cannot be written. The
            destination is left untouched and no temporary file remains.
    """
    return write_texts_atomic([(path, content)])[0]


def write_obj(
    path: str | Path,
    model: Model,
    global_scale: float = 1.0,
    config: Optional[EngineConfig] = None,
    with_mtl: bool = True,
) -> Path:
    """Export a model to an OBJ file, with an MTL file beside it."""
    config = config or EngineConfig()
    path = Path(path)
    mtl_path = path.with_suffix(".mtl") if with_mtl else None

    content = to_obj(
        model,
        global_scale,
        mtl_name=mtl_path.name if mtl_path else None,
        precision=config.obj_precision,
        default_color=config.default_color,
    )
    files = [(path, content)]
    if mtl_path:
        files.append((mtl_path, to_mtl(model, config.default_color)))
    return write_texts_atomic(files)[0]


def write_dxf(
    path: str | Path,
    model: Model,
    global_scale: float = 1.0,
    config: Optional[EngineConfig] = None,
) -> Path:
    """Export a model to a DXF file."""
    return write_text_atomic(path, to_dxf(model, global_scale, config))
