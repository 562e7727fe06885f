"""Basic visual quality: brightness, blur, length and consistency."""

from __future__ import annotations

from typing import Dict, List, Optional, Sequence

from config import QualityGateConfig
from logging_utils import get_logger
from models import BasicQualityResult, CheckResult, FrameMetrics, VideoMetadata
from scoring import mean, round_half_up, score_at_least, score_below, weighted_sum

LOGGER = get_logger(__name__)

BASIC_WEIGHTS = {
    "brightness": 0.25,
    "motionBlur": 0.30,
    "frameCount": 0.25,
    "consistency": 0.20,
}

SHARPNESS_TIERS = ((100, 100), (80, 85), (60, 70), (40, 50))
CONSISTENCY_TIERS = ((10, 100), (20, 85), (30, 70), (50, 50))

PASSING_SUBSCORE = 70

# Fixed feedback order: (metric, primary issue name, suggestion).
_FEEDBACK = (
    ("brightness", "lighting", "More light: film in better lighting conditions"),
    ("motionBlur", "motion blur", "Steadier footage: use a tripod or move the camera more slowly"),
    ("frameCount", "video length", "Longer recording: the video should be at least 5 seconds long"),
    ("consistency", "consistency", "Even movement: avoid abrupt camera movements"),
)


def brightness_tiers(min_brightness: float):
    return ((100, 100), (80, 85), (min_brightness, 70), (min_brightness * 0.5, 40))


def frame_count_tiers(min_frames: int, ideal_frames: int):
    return ((ideal_frames, 100), (min_frames * 2, 85), (min_frames, 70), (min_frames * 0.5, 40))


def score_brightness(metrics: Sequence[FrameMetrics], config: QualityGateConfig) -> CheckResult:
    if not metrics:
        return CheckResult(0, "no frames", {"averageBrightness": None})
    avg = mean([m.brightness for m in metrics])
    score = score_at_least(avg, brightness_tiers(config.min_brightness), 20)
    return CheckResult(
        score,
        "too dark" if score < PASSING_SUBSCORE else None,
        {"averageBrightness": round(avg, 1), "minBrightness": config.min_brightness},
    )


def score_sharpness(metrics: Sequence[FrameMetrics]) -> CheckResult:
    if not metrics:
        return CheckResult(0, "no frames", {"averageSharpness": None})
    avg = mean([m.sharpness for m in metrics])
    score = score_at_least(avg, SHARPNESS_TIERS, 30)
    return CheckResult(
        score,
        "blurry" if score < PASSING_SUBSCORE else None,
        {"averageSharpness": round(avg, 1)},
    )


def score_frame_count(metadata: VideoMetadata, config: QualityGateConfig) -> CheckResult:
    frames = metadata.frame_count
    score = score_at_least(frames, frame_count_tiers(config.min_frame_count, config.ideal_frame_count), 20)
    return CheckResult(
        score,
        "too short" if score < PASSING_SUBSCORE else None,
        {"frameCount": frames, "minFrameCount": config.min_frame_count, "idealFrameCount": config.ideal_frame_count},
    )


def score_consistency(metrics: Sequence[FrameMetrics]) -> CheckResult:
    """Mean brightness jump between consecutive frames; fewer than 2 frames scores 0."""

    if len(metrics) < 2:
        return CheckResult(0, "too few frames", {"averageVariation": None})
    deltas = [abs(cur.brightness - prev.brightness) for prev, cur in zip(metrics, metrics[1:])]
    avg = mean(deltas)
    score = score_below(avg, CONSISTENCY_TIERS, 30)
    return CheckResult(
        score,
        "inconsistent" if score < PASSING_SUBSCORE else None,
        {"averageVariation": round(avg, 2)},
    )


def generate_feedback(scores: Dict[str, float]):
    """Return ``(message, suggestions, primary_issue)`` for the four sub-scores."""

    suggestions: List[str] = []
    primary_issue: Optional[str] = None
    for metric, issue_name, suggestion in _FEEDBACK:
        if scores[metric] < PASSING_SUBSCORE:
            suggestions.append(suggestion)
            if primary_issue is None:
                primary_issue = issue_name

    avg_score = round_half_up(mean([scores[metric] for metric, _, _ in _FEEDBACK]))
    if avg_score >= 80:
        message = "Excellent video quality! Ready for 3D reconstruction."
    elif avg_score >= 60:
        if primary_issue is None:
            message = "Acceptable quality with room for improvement."
        else:
            message = f"Acceptable quality, but {primary_issue} could be improved."
    else:
        message = f"The video quality is insufficient. Main issue: {primary_issue}."
    return message, suggestions, primary_issue


def score_basic_quality(
    metrics: Sequence[FrameMetrics],
    metadata: VideoMetadata,
    config: Optional[QualityGateConfig] = None,
) -> BasicQualityResult:
    """Score the four basic sub-metrics and combine them."""

    config = config or QualityGateConfig()
    checks = {
        "brightness": score_brightness(metrics, config),
        "motionBlur": score_sharpness(metrics),
        "frameCount": score_frame_count(metadata, config),
        "consistency": score_consistency(metrics),
    }
    scores = {name: check.score for name, check in checks.items()}
    total = weighted_sum(scores, BASIC_WEIGHTS)
    message, suggestions, primary_issue = generate_feedback(scores)
    LOGGER.info(
        "Basic quality %d (brightness=%s blur=%s frames=%s consistency=%s)",
        total,
        scores["brightness"],
        scores["motionBlur"],
        scores["frameCount"],
        scores["consistency"],
    )
    return BasicQualityResult(
        score=total,
        metrics=checks,
        message=message,
        suggestions=tuple(suggestions),
        primary_issue=primary_issue,
    )
