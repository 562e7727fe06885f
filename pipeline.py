"""High-level orchestration: extract, measure, score and gate one video."""

from __future__ import annotations

import threading
from concurrent.futures import ThreadPoolExecutor
from pathlib import Path
from typing import Callable, List, Optional, Sequence, Tuple

from config import AnalysisConfig, GateConfig, default_config
from frame_quality import compute_frame_metrics
from logging_utils import get_logger, setup_logging
from models import AssessmentStatus, FrameMetrics, GateOutcome, QualityReport, RasterFrame, VideoMetadata
from quality_gate import Handoff, build_report, run_gate
from video_reader import ExtractionError, extract_keyframes, fallback_metadata, load_raster_frame, probe_metadata
from workspace import keyframe_workspace
from writer import save_outcome

LOGGER = get_logger(__name__)


class AnalysisCancelled(Exception):
    """The caller asked to abandon an in-flight analysis."""


class ProgressUpdate:
    """Lightweight struct emitted to callers for progress reporting."""

    def __init__(self, message: str, stage: str, current: int, total: int):
        self.message = message
        self.stage = stage
        self.current = current
        self.total = total


ProgressCallback = Callable[[ProgressUpdate], None]


def _check_cancelled(cancel_event: Optional[threading.Event]) -> None:
    if cancel_event is not None and cancel_event.is_set():
        raise AnalysisCancelled("Analysis cancelled")


def _emit(progress_cb: Optional[ProgressCallback], message: str, stage: str, current: int, total: int) -> None:
    if progress_cb:
        progress_cb(ProgressUpdate(message, stage, current, total))


def compute_all_metrics(
    frames: Sequence[RasterFrame],
    config: Optional[AnalysisConfig] = None,
    cancel_event: Optional[threading.Event] = None,
    progress_cb: Optional[ProgressCallback] = None,
) -> List[FrameMetrics]:
    """Per-frame metrics in extraction order, optionally across worker threads."""

    config = config or AnalysisConfig()
    total = len(frames)

    def _measure(frame: RasterFrame) -> FrameMetrics:
        _check_cancelled(cancel_event)
        return compute_frame_metrics(frame, config)

    metrics: List[FrameMetrics] = []
    if config.max_workers > 1 and total > 1:
        with ThreadPoolExecutor(max_workers=config.max_workers) as pool:
            # map keeps input order regardless of completion order
            for result in pool.map(_measure, frames):
                metrics.append(result)
                _emit(progress_cb, "frame", "metrics", len(metrics), total)
    else:
        for frame in frames:
            metrics.append(_measure(frame))
            _emit(progress_cb, "frame", "metrics", len(metrics), total)
    return metrics


def _resolve_status(metadata_ok: bool, frames_ok: bool) -> AssessmentStatus:
    if not metadata_ok and not frames_ok:
        return AssessmentStatus.CANNOT_ASSESS
    if not metadata_ok or not frames_ok:
        return AssessmentStatus.DEGRADED
    return AssessmentStatus.ASSESSED


def assess_frames(
    frames: Sequence[RasterFrame],
    metadata: VideoMetadata,
    config: Optional[GateConfig] = None,
    status: AssessmentStatus = AssessmentStatus.ASSESSED,
    warnings: Sequence[str] = (),
    cancel_event: Optional[threading.Event] = None,
    progress_cb: Optional[ProgressCallback] = None,
) -> Tuple[QualityReport, List[FrameMetrics]]:
    """Score already-decoded frames; no I/O and no shared state."""

    config = config or default_config()
    metrics = compute_all_metrics(frames, config.analysis, cancel_event, progress_cb)
    _check_cancelled(cancel_event)
    report = build_report(metrics, frames, metadata, config, status, warnings)
    return report, metrics


def _load_frames(
    video_path: Path,
    metadata: VideoMetadata,
    workspace: Path,
    config: GateConfig,
    warnings: List[str],
    cancel_event: Optional[threading.Event],
    progress_cb: Optional[ProgressCallback],
) -> Tuple[List[RasterFrame], bool]:
    try:
        keyframes = extract_keyframes(video_path, metadata, workspace, config.extraction)
    except ExtractionError as err:
        LOGGER.warning("Keyframe extraction failed: %s", err)
        warnings.append(f"keyframe extraction failed: {err}")
        return [], False

    frames: List[RasterFrame] = []
    for keyframe in keyframes:
        _check_cancelled(cancel_event)
        frames.append(load_raster_frame(keyframe))
        _emit(progress_cb, "keyframe", "extract", len(frames), len(keyframes))
    return frames, True


def analyze_video(
    video_path: Path,
    config: Optional[GateConfig] = None,
    handoff: Optional[Handoff] = None,
    cancel_event: Optional[threading.Event] = None,
    progress_cb: Optional[ProgressCallback] = None,
) -> GateOutcome:
    """Run the quality gate for one video.

    Keyframes live in a per-call workspace that is removed on every exit
    path. ``handoff`` (the downstream reconstruction step) is called only
    when the gate passes.
    """

    config = config or default_config()
    video_path = Path(video_path)
    if config.output.report_dir is not None:
        setup_logging(config.output.report_dir, config.log_level)
    LOGGER.info("Analyzing %s", video_path)
    warnings: List[str] = []

    _check_cancelled(cancel_event)
    try:
        metadata = probe_metadata(video_path)
        metadata_ok = True
    except ExtractionError as err:
        LOGGER.warning("Metadata probe failed, assuming defaults: %s", err)
        warnings.append(f"metadata unavailable, assumed defaults: {err}")
        metadata = fallback_metadata(config.extraction)
        metadata_ok = False

    with keyframe_workspace(config.output.workspace_root) as workspace:
        frames, frames_ok = _load_frames(video_path, metadata, workspace, config, warnings, cancel_event, progress_cb)

    status = _resolve_status(metadata_ok, frames_ok)
    report, metrics = assess_frames(frames, metadata, config, status, warnings, cancel_event, progress_cb)
    _check_cancelled(cancel_event)
    outcome = run_gate(report, metadata, config, handoff=handoff, frame_metrics=metrics)

    if config.output.report_dir is not None:
        save_outcome(
            outcome,
            config.output.report_dir,
            video_path,
            metrics_format=config.output.metrics_format,
            with_metrics=config.output.save_frame_metrics,
        )
    LOGGER.info("Finished %s: score=%d passed=%s", video_path.name, report.overall_score, outcome.passed)
    return outcome
