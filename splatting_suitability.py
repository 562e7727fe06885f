"""Suitability of footage for Gaussian Splatting reconstruction.

Six checks go beyond generic video quality and target what structure-from-
motion and splat training need:

1. camera motion      - enough parallax for depth, not so much it blurs
2. frame overlap      - enough shared content for feature matching
3. exposure           - stable brightness without auto-exposure swings
4. reflective areas   - specular highlights produce view-dependent features
5. scene staticness   - moving objects leave ghost artefacts
6. feature density    - textureless scenes give SfM nothing to track

Each check returns a ``CheckResult`` with an issue label when sub-optimal and
a ``recommendation`` in its details.
"""

from __future__ import annotations

from typing import Dict, List, Optional, Sequence

import cv2

from config import AnalysisConfig, SplattingThresholds
from frame_quality import count_corner_features, highlight_percentage, to_gray
from logging_utils import get_logger
from models import (
    CheckResult,
    EstimatedQuality,
    FrameMetrics,
    RasterFrame,
    Recommendation,
    SplattingSuitabilityResult,
)
from motion import frame_motion, frame_scene_change
from scoring import clamp, mean, round_half_up, score_at_least, variance, weighted_sum

LOGGER = get_logger(__name__)

SPLATTING_WEIGHTS = {
    "cameraMotion": 0.25,
    "frameOverlap": 0.15,
    "exposureConsistency": 0.10,
    "reflectiveSurfaces": 0.15,
    "sceneStaticness": 0.10,
    "featureDensity": 0.25,
}

PRIORITY_ORDER = (
    "featureDensity",
    "cameraMotion",
    "reflectiveSurfaces",
    "frameOverlap",
    "sceneStaticness",
    "exposureConsistency",
)

MAX_TIPS = 3
ACCEPTABLE_SCORE = 60

LEVEL_TIERS = ((80, "excellent"), (65, "good"), (50, "acceptable"))

ESTIMATED_QUALITY_TIERS = (
    (85, EstimatedQuality("high", "High-quality 3D reconstruction expected")),
    (70, EstimatedQuality("medium", "Usable reconstruction, possibly with minor artefacts")),
    (50, EstimatedQuality("low", "Basic reconstruction possible, quality limited")),
)
VERY_LOW_QUALITY = EstimatedQuality("very_low", "Reconstruction may be faulty or incomplete")

# Recommendation text switches that are not tied to a configurable threshold.
FAST_MOTION_HINT = 80.0
EXPOSURE_HINT_VARIANCE = 15.0
REFLECTION_HINT_PERCENT = 20.0

DEFAULT_RECOMMENDATION = "Please optimise the recording"
FALLBACK_FEATURE_COUNT = 50.0


def _too_few(score: float, issue: str) -> CheckResult:
    return CheckResult(score, issue, {})


def _pair_motions(frames: Sequence[RasterFrame], config: AnalysisConfig) -> List[float]:
    sample = frames[: config.motion_sample_frames]
    return [frame_motion(prev, cur, config) for prev, cur in zip(sample, sample[1:])]


def _frame_highlights(frame: RasterFrame, config: AnalysisConfig) -> float:
    if not frame.is_readable:
        return 0.0
    try:
        return highlight_percentage(to_gray(frame.pixels), config.highlight_size, config.highlight_level)
    except (ValueError, cv2.error) as err:
        LOGGER.warning("Highlights of frame %d not measurable: %s", frame.index, err)
        return 0.0


def _frame_features(frame: RasterFrame, config: AnalysisConfig) -> float:
    if not frame.is_readable:
        return FALLBACK_FEATURE_COUNT
    try:
        return count_corner_features(
            to_gray(frame.pixels),
            config.feature_size,
            config.feature_response_threshold,
            config.feature_normalization,
        )
    except (ValueError, cv2.error) as err:
        LOGGER.warning("Features of frame %d not measurable: %s", frame.index, err)
        return FALLBACK_FEATURE_COUNT


def analyze_camera_motion(
    frames: Sequence[RasterFrame],
    thresholds: SplattingThresholds,
    config: AnalysisConfig,
    motions: Optional[List[float]] = None,
) -> CheckResult:
    """Average and spread of motion across the leading consecutive pairs."""

    if len(frames) < 2:
        return _too_few(0, "Too few frames")
    if motions is None:
        motions = _pair_motions(frames, config)
    avg_motion = mean(motions)
    motion_variance = variance(motions)

    if avg_motion < thresholds.min_camera_motion:
        score, issue = 30, "Too little camera motion - hardly any parallax for 3D"
    elif avg_motion > thresholds.max_camera_motion:
        score, issue = 40, "Camera moves too fast - risk of motion blur"
    elif motion_variance > thresholds.max_motion_variance:
        score, issue = 60, "Uneven movement - jerky footage"
    else:
        score, issue = min(100.0, 70 + avg_motion / 3), None

    if avg_motion < thresholds.min_camera_motion:
        recommendation = "Move the camera slowly around the object"
    elif avg_motion > FAST_MOTION_HINT:
        recommendation = "Move the camera more slowly"
    else:
        recommendation = "Good camera motion"

    LOGGER.info("Camera motion: avg=%.1f variance=%.1f score=%.1f", avg_motion, motion_variance, score)
    return CheckResult(
        score,
        issue,
        {
            "averageMotion": round_half_up(avg_motion),
            "motionVariance": round_half_up(motion_variance),
            "pairsSampled": len(motions),
            "recommendation": recommendation,
        },
    )


def analyze_frame_overlap(
    frames: Sequence[RasterFrame],
    thresholds: SplattingThresholds,
    config: AnalysisConfig,
    motions: Optional[List[float]] = None,
) -> CheckResult:
    """Overlap estimated from average motion: little motion means high overlap."""

    if len(frames) < 2:
        return _too_few(0, "Too few frames")
    if motions is None:
        motions = _pair_motions(frames, config)
    # overlap follows the reported (rounded) average motion
    estimated_overlap = clamp(95.0 - round_half_up(mean(motions)), 40.0, 95.0)

    if estimated_overlap > thresholds.max_overlap:
        score, issue = 60, "Too much overlap - more movement needed for parallax"
        recommendation = "Move the camera further between frames"
    elif estimated_overlap < thresholds.min_overlap:
        score, issue = 40, "Too little overlap - move slower or record more frames"
        recommendation = "Move the camera more slowly"
    else:
        score, issue = 85, None
        recommendation = "Good frame overlap"

    LOGGER.info("Frame overlap: ~%.0f%% score=%d", estimated_overlap, score)
    return CheckResult(
        score,
        issue,
        {"estimatedOverlap": round_half_up(estimated_overlap), "recommendation": recommendation},
    )


def analyze_exposure_consistency(metrics: Sequence[FrameMetrics], thresholds: SplattingThresholds) -> CheckResult:
    """Brightness variance across all keyframes, not just neighbours."""

    if len(metrics) < 3:
        return _too_few(50, "Too few frames")
    values = [m.brightness for m in metrics]
    avg_brightness = mean(values)
    brightness_variance = variance(values)
    max_deviation = max(abs(v - avg_brightness) for v in values)
    limit = thresholds.max_exposure_variance

    if brightness_variance > limit * 2:
        score, issue = 30, "Strong brightness fluctuations - disable auto exposure"
    elif brightness_variance > limit:
        score, issue = 60, "Slight brightness fluctuations detected"
    else:
        score, issue = min(100.0, 80 + (limit - brightness_variance)), None

    LOGGER.info("Exposure consistency: variance=%.1f score=%.1f", brightness_variance, score)
    return CheckResult(
        score,
        issue,
        {
            "averageBrightness": round_half_up(avg_brightness),
            "brightnessVariance": round_half_up(brightness_variance),
            "maxDeviation": round_half_up(max_deviation),
            "recommendation": (
                "Use manual exposure mode" if brightness_variance > EXPOSURE_HINT_VARIANCE else "Stable exposure"
            ),
        },
    )


def analyze_reflective_surfaces(
    frames: Sequence[RasterFrame],
    thresholds: SplattingThresholds,
    config: AnalysisConfig,
) -> CheckResult:
    """Near-white highlight share over the first few frames."""

    if not frames:
        return _too_few(50, "No frames")
    highlights = [_frame_highlights(frame, config) for frame in frames[: config.highlight_sample_frames]]
    avg_highlight = mean(highlights)
    limit = thresholds.max_reflective_area

    if avg_highlight > limit:
        score, issue = 40, "Many reflective surfaces detected (metal/glass)"
    elif avg_highlight > limit / 2:
        score, issue = 70, "Some glossy areas detected"
    else:
        score, issue = 90, None

    LOGGER.info("Reflective surfaces: %.1f%% score=%d", avg_highlight, score)
    return CheckResult(
        score,
        issue,
        {
            "highlightPercentage": round_half_up(avg_highlight),
            "recommendation": (
                "Avoid glossy surfaces or use diffuse lighting"
                if avg_highlight > REFLECTION_HINT_PERCENT
                else "No problematic reflections"
            ),
        },
    )


def analyze_scene_staticness(
    frames: Sequence[RasterFrame],
    thresholds: SplattingThresholds,
    config: AnalysisConfig,
) -> CheckResult:
    """Changed-pixel share between frames two apart: did content move, not just the camera."""

    if len(frames) < 3:
        return _too_few(50, "Too few frames")
    limit = min(len(frames), config.staticness_frame_limit)
    changes = [frame_scene_change(frames[i - 2], frames[i], config) for i in range(2, limit, 2)]
    avg_change = mean(changes)
    max_pixels = thresholds.max_motion_pixels

    if avg_change > max_pixels * 3:
        score, issue = 30, "Moving objects detected in the scene"
    elif avg_change > max_pixels:
        score, issue = 60, "Slight movement in the scene"
    else:
        score, issue = 90, None

    LOGGER.info("Scene staticness: change=%.1f%% score=%d", avg_change, score)
    return CheckResult(
        score,
        issue,
        {
            "movingPixelPercentage": round_half_up(avg_change),
            "recommendation": (
                "Make sure no objects in the scene are being moved"
                if avg_change > max_pixels
                else "Scene is sufficiently static"
            ),
        },
    )


def analyze_feature_density(
    frames: Sequence[RasterFrame],
    thresholds: SplattingThresholds,
    config: AnalysisConfig,
) -> CheckResult:
    """Corner-like responses over the first few frames as a feature count."""

    if not frames:
        return _too_few(0, "No frames")
    counts = [_frame_features(frame, config) for frame in frames[: config.feature_sample_frames]]
    avg_features = mean(counts)
    minimum = thresholds.min_feature_count

    if avg_features < minimum:
        score, issue = 30, "Too few recognisable features - scene too smooth or uniform"
    elif avg_features < minimum * 2:
        score, issue = 60, "Moderate feature density - more texture would help"
    else:
        score, issue = min(100.0, 70 + avg_features / 5), None

    LOGGER.info("Feature density: avg=%.0f score=%.1f", avg_features, score)
    return CheckResult(
        score,
        issue,
        {
            "averageFeatureCount": round_half_up(avg_features),
            "recommendation": (
                "Add textured objects or film closer"
                if avg_features < minimum
                else "Enough features for reconstruction"
            ),
        },
    )


def splatting_level(score: float) -> str:
    return score_at_least(score, LEVEL_TIERS, "poor")


def estimate_output_quality(score: float) -> EstimatedQuality:
    return score_at_least(score, ESTIMATED_QUALITY_TIERS, VERY_LOW_QUALITY)


def build_recommendation(checks: Dict[str, CheckResult], score: float) -> Recommendation:
    """Collect checks with issues, highest priority first, and keep the top tips."""

    flagged = [name for name in PRIORITY_ORDER if checks.get(name) is not None and checks[name].issue]
    if not flagged:
        return Recommendation(
            status="optimal",
            message="The video is excellently suited for Gaussian Splatting!",
        )
    tips = tuple((checks[name].recommendation or DEFAULT_RECOMMENDATION) for name in flagged[:MAX_TIPS])
    if score >= ACCEPTABLE_SCORE:
        return Recommendation(
            status="acceptable",
            message="The video can be processed, but optimisations would improve the result.",
            tips=tips,
        )
    return Recommendation(
        status="needs_improvement",
        message="The video should be optimised before processing.",
        tips=tips,
    )


def analyze_splatting_suitability(
    frames: Sequence[RasterFrame],
    metrics: Sequence[FrameMetrics],
    thresholds: Optional[SplattingThresholds] = None,
    config: Optional[AnalysisConfig] = None,
) -> SplattingSuitabilityResult:
    """Run all six checks and combine them into a suitability score."""

    thresholds = thresholds or SplattingThresholds()
    config = config or AnalysisConfig()
    LOGGER.info("Starting Gaussian Splatting suitability analysis on %d frames", len(frames))

    motions = _pair_motions(frames, config) if len(frames) >= 2 else []
    checks = {
        "cameraMotion": analyze_camera_motion(frames, thresholds, config, motions),
        "frameOverlap": analyze_frame_overlap(frames, thresholds, config, motions),
        "exposureConsistency": analyze_exposure_consistency(metrics, thresholds),
        "reflectiveSurfaces": analyze_reflective_surfaces(frames, thresholds, config),
        "sceneStaticness": analyze_scene_staticness(frames, thresholds, config),
        "featureDensity": analyze_feature_density(frames, thresholds, config),
    }
    score = weighted_sum({name: check.score for name, check in checks.items()}, SPLATTING_WEIGHTS)
    return SplattingSuitabilityResult(
        score=score,
        level=splatting_level(score),
        checks=checks,
        recommendation=build_recommendation(checks, score),
        estimated_quality=estimate_output_quality(score),
    )
