"""Video probing and keyframe extraction with OpenCV."""

from __future__ import annotations

import math
from dataclasses import dataclass
from pathlib import Path
from typing import List

import cv2

from config import ExtractionConfig
from logging_utils import get_logger
from models import RasterFrame, VideoMetadata

LOGGER = get_logger(__name__)


class ExtractionError(RuntimeError):
    """The video could not be probed or sampled."""


@dataclass
class KeyframeFile:
    """A sampled keyframe written into the workspace."""

    index: int
    timestamp: float
    path: Path


def _fourcc_to_codec(fourcc: float) -> str:
    code = int(fourcc)
    if code <= 0:
        return "unknown"
    chars = "".join(chr((code >> (8 * i)) & 0xFF) for i in range(4))
    return chars.strip("\x00 ").lower() or "unknown"


def _open(video_path: Path) -> cv2.VideoCapture:
    cap = cv2.VideoCapture(str(video_path))
    if not cap.isOpened():
        cap.release()
        raise ExtractionError(f"Failed to open video {video_path}")
    return cap


def probe_metadata(video_path: Path) -> VideoMetadata:
    """Read duration, fps, resolution and codec from the container."""

    cap = _open(video_path)
    try:
        fps = cap.get(cv2.CAP_PROP_FPS)
        total_frames = cap.get(cv2.CAP_PROP_FRAME_COUNT)
        width = int(cap.get(cv2.CAP_PROP_FRAME_WIDTH))
        height = int(cap.get(cv2.CAP_PROP_FRAME_HEIGHT))
        codec = _fourcc_to_codec(cap.get(cv2.CAP_PROP_FOURCC))
    finally:
        cap.release()

    if not fps or fps <= 0 or not total_frames or total_frames <= 0:
        raise ExtractionError(f"No usable video stream in {video_path}")
    duration = round(total_frames / fps, 1)
    metadata = VideoMetadata(duration=duration, fps=float(fps), width=width, height=height, codec=codec)
    LOGGER.info(
        "Metadata: %.1fs, %.2ffps, %s, codec=%s",
        metadata.duration,
        metadata.fps,
        metadata.resolution,
        metadata.codec,
    )
    return metadata


def fallback_metadata(config: ExtractionConfig) -> VideoMetadata:
    """Conservative metadata used when the container cannot be probed."""

    return VideoMetadata(
        duration=config.fallback_duration,
        fps=config.fallback_fps,
        width=config.fallback_width,
        height=config.fallback_height,
        codec="unknown",
    )


def sampling_interval(duration: float, config: ExtractionConfig) -> float:
    """Seconds between keyframes so roughly ``target_samples`` are taken."""

    if duration <= 0:
        raise ExtractionError("Video duration is unknown")
    total = max(1, min(config.target_samples, math.floor(duration)))
    return max(config.min_interval_sec, duration / total)


def sample_timestamps(duration: float, config: ExtractionConfig) -> List[float]:
    interval = sampling_interval(duration, config)
    count = min(config.target_samples, max(1, math.ceil(duration / interval)))
    return [i * interval for i in range(count)]


def _resize_to_width(image, width: int):
    h, w = image.shape[:2]
    if w == width:
        return image
    height = max(1, int(round(h * width / w)))
    interpolation = cv2.INTER_AREA if width < w else cv2.INTER_LINEAR
    return cv2.resize(image, (width, height), interpolation=interpolation)


def extract_keyframes(
    video_path: Path,
    metadata: VideoMetadata,
    workspace: Path,
    config: ExtractionConfig,
) -> List[KeyframeFile]:
    """Write evenly spaced, downsized keyframes into ``workspace``."""

    timestamps = sample_timestamps(metadata.duration, config)
    params = [cv2.IMWRITE_JPEG_QUALITY, config.jpeg_quality]
    keyframes: List[KeyframeFile] = []
    cap = _open(video_path)
    try:
        for timestamp in timestamps:
            cap.set(cv2.CAP_PROP_POS_MSEC, timestamp * 1000.0)
            ok, frame = cap.read()
            if not ok or frame is None:
                LOGGER.debug("No frame at %.2fs, stopping", timestamp)
                break
            index = len(keyframes)
            path = workspace / f"frame_{index + 1:03d}.jpg"
            if not cv2.imwrite(str(path), _resize_to_width(frame, config.frame_width), params):
                raise ExtractionError(f"Failed to write keyframe {path}")
            keyframes.append(KeyframeFile(index=index, timestamp=timestamp, path=path))
    finally:
        cap.release()

    if not keyframes:
        raise ExtractionError(f"No keyframes could be extracted from {video_path}")
    LOGGER.info("Extracted %d keyframes from %s", len(keyframes), video_path.name)
    return keyframes


def load_raster_frame(keyframe: KeyframeFile) -> RasterFrame:
    """Decode a keyframe as grayscale; unreadable files keep an error instead of pixels."""

    gray = cv2.imread(str(keyframe.path), cv2.IMREAD_GRAYSCALE)
    if gray is None:
        LOGGER.warning("Could not decode keyframe %s", keyframe.path)
        return RasterFrame(
            index=keyframe.index,
            timestamp=keyframe.timestamp,
            width=0,
            height=0,
            pixels=None,
            error=f"unreadable image {keyframe.path.name}",
        )
    height, width = gray.shape[:2]
    return RasterFrame(index=keyframe.index, timestamp=keyframe.timestamp, width=width, height=height, pixels=gray)
