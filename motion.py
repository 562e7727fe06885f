"""Cheap frame-to-frame dissimilarity used as a motion and overlap proxy."""

from __future__ import annotations

from typing import Optional

import cv2
import numpy as np

from config import AnalysisConfig
from frame_quality import cover, to_gray
from logging_utils import get_logger
from models import RasterFrame

LOGGER = get_logger(__name__)

# Values used when one side of a pair cannot be measured.
FALLBACK_MOTION = 20.0
FALLBACK_SCENE_CHANGE = 5.0


def _pair(a: np.ndarray, b: np.ndarray, size: int):
    small_a = cover(to_gray(a), size, size).astype(np.int16)
    small_b = cover(to_gray(b), size, size).astype(np.int16)
    return small_a, small_b


def estimate_motion(a: np.ndarray, b: np.ndarray, size: int = 64) -> float:
    """Mean absolute pixel difference of two frames at ``size`` x ``size``."""

    small_a, small_b = _pair(a, b, size)
    return float(np.mean(np.abs(small_a - small_b)))


def changed_pixel_percentage(a: np.ndarray, b: np.ndarray, size: int = 50, threshold: float = 50.0) -> float:
    """Percentage of pixels whose absolute difference exceeds ``threshold``."""

    small_a, small_b = _pair(a, b, size)
    changed = int(np.count_nonzero(np.abs(small_a - small_b) > threshold))
    return changed / small_a.size * 100.0


def frame_motion(prev: RasterFrame, cur: RasterFrame, config: Optional[AnalysisConfig] = None) -> float:
    config = config or AnalysisConfig()
    if not (prev.is_readable and cur.is_readable):
        LOGGER.warning("Motion between frames %d and %d not measurable", prev.index, cur.index)
        return FALLBACK_MOTION
    try:
        return estimate_motion(prev.pixels, cur.pixels, config.motion_size)
    except (ValueError, cv2.error) as err:
        LOGGER.warning("Motion between frames %d and %d failed: %s", prev.index, cur.index, err)
        return FALLBACK_MOTION


def frame_scene_change(a: RasterFrame, b: RasterFrame, config: Optional[AnalysisConfig] = None) -> float:
    config = config or AnalysisConfig()
    if not (a.is_readable and b.is_readable):
        LOGGER.warning("Scene change between frames %d and %d not measurable", a.index, b.index)
        return FALLBACK_SCENE_CHANGE
    try:
        return changed_pixel_percentage(a.pixels, b.pixels, config.scene_change_size, config.scene_change_threshold)
    except (ValueError, cv2.error) as err:
        LOGGER.warning("Scene change between frames %d and %d failed: %s", a.index, b.index, err)
        return FALLBACK_SCENE_CHANGE
