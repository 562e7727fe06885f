"""Per-invocation temporary directories for extracted keyframes."""

from __future__ import annotations

import shutil
import uuid
from contextlib import contextmanager
from pathlib import Path
from typing import Iterator, Optional

from logging_utils import get_logger

LOGGER = get_logger(__name__)


def allocate_workspace(root: Path, request_id: Optional[str] = None) -> Path:
    """Create a fresh ``keyframes_<id>`` directory under ``root``."""

    request_id = request_id or uuid.uuid4().hex
    path = root / f"keyframes_{request_id}"
    root.mkdir(parents=True, exist_ok=True)
    # exist_ok=False: two requests must never share a directory
    path.mkdir(exist_ok=False)
    return path


def cleanup_temp_dir(path: Path) -> None:
    """Remove a temporary keyframe directory."""

    if path.exists():
        shutil.rmtree(path, ignore_errors=True)
    if path.exists():
        LOGGER.warning("Could not fully remove workspace %s", path)


@contextmanager
def keyframe_workspace(root: Path, request_id: Optional[str] = None) -> Iterator[Path]:
    """Yield a unique workspace and release it on every exit path."""

    path = allocate_workspace(root, request_id)
    LOGGER.debug("Allocated workspace %s", path)
    try:
        yield path
    finally:
        cleanup_temp_dir(path)
        LOGGER.debug("Released workspace %s", path)
