"""Per-frame pixel metrics and the image primitives the scorers share."""

from __future__ import annotations

from typing import Optional

import cv2
import numpy as np

from config import AnalysisConfig
from logging_utils import get_logger
from models import FrameMetrics, RasterFrame
from scoring import round_half_up

LOGGER = get_logger(__name__)

LAPLACIAN_KERNEL = np.array([[0, -1, 0], [-1, 4, -1], [0, -1, 0]], dtype=np.float32)
CORNER_KERNEL = np.array([[-1, -1, -1], [-1, 8, -1], [-1, -1, -1]], dtype=np.float32)

SHARPNESS_DIVISOR = 20.0

FALLBACK_BRIGHTNESS = 128.0
FALLBACK_CONTRAST = 50.0
FALLBACK_SHARPNESS = 50
FALLBACK_EDGE_DENSITY = 50


def to_gray(image: np.ndarray) -> np.ndarray:
    """Return a 2-D uint8 grayscale view of a BGR, BGRA or gray image."""

    if image is None or image.size == 0:
        raise ValueError("Empty image buffer")
    if image.ndim == 3 and image.shape[2] == 1:
        image = image[:, :, 0]
    elif image.ndim == 3:
        if image.shape[2] not in (3, 4):
            raise ValueError(f"Unsupported channel count {image.shape[2]}")
        code = cv2.COLOR_BGRA2GRAY if image.shape[2] == 4 else cv2.COLOR_BGR2GRAY
        image = cv2.cvtColor(image, code)
    elif image.ndim != 2:
        raise ValueError(f"Unsupported image shape {image.shape}")
    if image.dtype != np.uint8:
        image = np.clip(image, 0, 255).astype(np.uint8)
    return image


def downscale(gray: np.ndarray, width: int, height: int) -> np.ndarray:
    """Resize to an exact size, ignoring aspect ratio."""

    h, w = gray.shape[:2]
    if (w, h) == (width, height):
        return gray
    interpolation = cv2.INTER_AREA if width <= w and height <= h else cv2.INTER_LINEAR
    return cv2.resize(gray, (width, height), interpolation=interpolation)


def cover(gray: np.ndarray, width: int, height: int) -> np.ndarray:
    """Scale to fill ``width`` x ``height`` with aspect preserved, then centre-crop."""

    h, w = gray.shape[:2]
    scale = max(width / w, height / h)
    scaled_w = max(width, round_half_up(w * scale))
    scaled_h = max(height, round_half_up(h * scale))
    scaled = downscale(gray, scaled_w, scaled_h)
    left = (scaled_w - width) // 2
    top = (scaled_h - height) // 2
    return scaled[top:top + height, left:left + width]


def fit_inside(gray: np.ndarray, size: int) -> np.ndarray:
    """Resize so the image fits a ``size`` x ``size`` box with aspect preserved."""

    h, w = gray.shape[:2]
    scale = min(size / w, size / h)
    width = max(1, round_half_up(w * scale))
    height = max(1, round_half_up(h * scale))
    return downscale(gray, width, height)


def convolve(gray: np.ndarray, kernel: np.ndarray) -> np.ndarray:
    """Apply a 3x3 kernel with the response saturated to the 8-bit range."""

    return cv2.filter2D(gray, cv2.CV_8U, kernel, borderType=cv2.BORDER_REPLICATE)


def brightness(gray: np.ndarray) -> float:
    return float(np.mean(gray))


def contrast(gray: np.ndarray, mean: Optional[float] = None) -> float:
    """Population standard deviation around ``mean``."""

    if mean is None:
        mean = brightness(gray)
    diff = gray.astype(np.float64) - mean
    return float(np.sqrt(np.mean(diff * diff)))


def laplacian_variance(gray: np.ndarray, size: int = 200) -> float:
    filtered = convolve(fit_inside(gray, size), LAPLACIAN_KERNEL)
    return float(filtered.astype(np.float64).var())


def sharpness(gray: np.ndarray, size: int = 200) -> int:
    """Blur proxy in [0, 100]; flat frames score 0."""

    return min(100, round_half_up(laplacian_variance(gray, size) / SHARPNESS_DIVISOR))


def edge_density(gray: np.ndarray, threshold: float = 30.0) -> int:
    """Percentage of pixels whose forward-difference gradient exceeds ``threshold``."""

    h, w = gray.shape[:2]
    if h < 2 or w < 2:
        return 0
    data = gray.astype(np.float64)
    current = data[:-1, :-1]
    gx = np.abs(data[:-1, 1:] - current)
    gy = np.abs(data[1:, :-1] - current)
    gradient = np.sqrt(gx * gx + gy * gy)
    edges = int(np.count_nonzero(gradient > threshold))
    return round_half_up(edges / current.size * 100.0)


def highlight_percentage(gray: np.ndarray, size: int = 100, level: int = 240) -> float:
    """Share of near-white pixels, used as a specular reflection proxy."""

    small = cover(gray, size, size)
    return float(np.count_nonzero(small > level)) / small.size * 100.0


def count_corner_features(
    gray: np.ndarray,
    size: int = 100,
    threshold: float = 100.0,
    normalization: float = 4.0,
) -> float:
    """Estimate a feature count from strong corner-kernel responses."""

    response = convolve(cover(gray, size, size), CORNER_KERNEL)
    strong = int(np.count_nonzero(response > threshold))
    return strong / normalization


def _fallback_metrics(frame: RasterFrame, reason: str) -> FrameMetrics:
    return FrameMetrics(
        index=frame.index,
        timestamp=frame.timestamp,
        brightness=FALLBACK_BRIGHTNESS,
        contrast=FALLBACK_CONTRAST,
        sharpness=FALLBACK_SHARPNESS,
        edge_density=FALLBACK_EDGE_DENSITY,
        error=reason,
    )


def compute_frame_metrics(frame: RasterFrame, config: Optional[AnalysisConfig] = None) -> FrameMetrics:
    """Compute brightness, contrast, sharpness and edge density for one frame.

    A frame that cannot be read yields neutral values flagged with ``error``
    so a single bad frame never fails the whole video.
    """

    config = config or AnalysisConfig()
    if not frame.is_readable:
        LOGGER.warning("Frame %d unreadable, using fallback metrics: %s", frame.index, frame.error)
        return _fallback_metrics(frame, frame.error or "missing pixel buffer")
    try:
        gray = to_gray(frame.pixels)
    except (ValueError, cv2.error) as err:
        LOGGER.warning("Frame %d could not be converted, using fallback metrics: %s", frame.index, err)
        return _fallback_metrics(frame, str(err))

    mean = brightness(gray)
    metrics = FrameMetrics(
        index=frame.index,
        timestamp=frame.timestamp,
        brightness=mean,
        contrast=contrast(gray, mean),
        sharpness=sharpness(gray, config.sharpness_size),
        edge_density=edge_density(gray, config.edge_threshold),
    )
    LOGGER.debug(
        "Frame %d: brightness=%.1f sharpness=%d edges=%d",
        metrics.index,
        metrics.brightness,
        metrics.sharpness,
        metrics.edge_density,
    )
    return metrics
