"""Tests for report blending and the pass/fail gate."""

import numpy as np
import pytest

from config import GateConfig, QualityGateConfig
from models import (
    AssessmentStatus,
    BasicQualityResult,
    CheckResult,
    EstimatedQuality,
    FrameMetrics,
    RasterFrame,
    Recommendation,
    SplattingSuitabilityResult,
    VideoMetadata,
)
from quality_gate import (
    OVERALL_WEIGHTS,
    assemble_report,
    build_report,
    evaluate_gate,
    overall_level,
    run_gate,
)

METADATA = VideoMetadata(duration=10.0, fps=30.0, width=1920, height=1080, codec="h264")


def _basic(score, suggestions=("basic tip",)):
    return BasicQualityResult(
        score=score,
        metrics={"brightness": CheckResult(100)},
        message="basic message",
        suggestions=tuple(suggestions),
    )


def _splatting(score, tips=("splat tip",)):
    return SplattingSuitabilityResult(
        score=score,
        level="good",
        checks={"cameraMotion": CheckResult(80)},
        recommendation=Recommendation("acceptable", "splatting message", tuple(tips)),
        estimated_quality=EstimatedQuality("medium", "usable"),
    )


def _config(threshold=70, **kwargs):
    return GateConfig(quality_gate=QualityGateConfig(quality_threshold=threshold, **kwargs))


def test_overall_weights_sum_to_one():
    assert sum(OVERALL_WEIGHTS.values()) == pytest.approx(1.0)


def test_overall_score_blends_sixty_forty():
    report = assemble_report(_basic(90), _splatting(40), METADATA, 20)
    assert report.overall_score == 70
    assert report.overall_level == "medium"
    assert report.resolution == "1920x1080"
    assert report.duration == 10.0


@pytest.mark.parametrize("score,level", [(80, "good"), (79, "medium"), (60, "medium"), (59, "poor")])
def test_overall_levels(score, level):
    assert overall_level(score) == level


def test_overall_score_is_monotonic_in_each_input():
    previous = -1
    for basic in range(0, 101):
        score = assemble_report(_basic(basic), _splatting(55), METADATA, 10).overall_score
        assert score >= previous
        previous = score
    previous = -1
    for splat in range(0, 101):
        score = assemble_report(_basic(55), _splatting(splat), METADATA, 10).overall_score
        assert score >= previous
        previous = score


def test_feedback_prefers_splatting_message_when_unsuitable():
    assert assemble_report(_basic(90), _splatting(59), METADATA, 5).feedback_message == "splatting message"
    assert assemble_report(_basic(90), _splatting(60), METADATA, 5).feedback_message == "basic message"


def test_suggestions_are_basic_first_and_capped_at_five():
    report = assemble_report(
        _basic(50, suggestions=("b1", "b2", "b3", "b4")),
        _splatting(40, tips=("s1", "s2", "s3")),
        METADATA,
        5,
    )
    assert report.suggestions == ("b1", "b2", "b3", "b4", "s1")


def test_gate_boundary():
    config = _config(70)
    below = assemble_report(_basic(69), _splatting(69), METADATA, 20)
    at = assemble_report(_basic(70), _splatting(70), METADATA, 20)

    assert below.overall_score == 69
    assert evaluate_gate(below, config).passed is False
    assert evaluate_gate(below, config).reason == "below_threshold"
    assert evaluate_gate(at, config).passed is True


def test_handoff_only_called_when_gate_passes():
    calls = []

    def handoff(metadata, report):
        calls.append((metadata, report.overall_score))
        return "job-1"

    failing = assemble_report(_basic(40), _splatting(40), METADATA, 20)
    outcome = run_gate(failing, METADATA, _config(70), handoff=handoff)
    assert not outcome.passed
    assert calls == []
    assert outcome.payload["success"] is False
    assert outcome.payload["phase"] == "quality_gate"
    assert outcome.payload["suggestions"] == ["basic tip", "splat tip"]

    passing = assemble_report(_basic(90), _splatting(90), METADATA, 20)
    outcome = run_gate(passing, METADATA, _config(70), handoff=handoff)
    assert outcome.passed
    assert outcome.handoff_result == "job-1"
    assert calls == [(METADATA, 90)]


def test_degraded_and_unassessable_reports_do_not_pass_by_default():
    degraded = assemble_report(_basic(95), _splatting(95), METADATA, 20, status=AssessmentStatus.DEGRADED)
    unknown = assemble_report(_basic(95), _splatting(95), METADATA, 0, status=AssessmentStatus.CANNOT_ASSESS)

    assert degraded.to_dict()["lowConfidence"] is True
    assert evaluate_gate(degraded, _config()).reason == "low_confidence"
    assert evaluate_gate(degraded, _config(allow_degraded_pass=True)).passed is True
    assert evaluate_gate(unknown, _config(allow_degraded_pass=True)).reason == "cannot_assess"


def test_report_dict_uses_api_field_names():
    data = assemble_report(_basic(80), _splatting(70), METADATA, 12).to_dict()
    assert set(data) >= {
        "overallScore",
        "overallLevel",
        "basicQuality",
        "splattingSuitability",
        "feedbackMessage",
        "suggestions",
        "keyframeCount",
        "duration",
        "resolution",
    }
    assert data["basicQuality"]["metrics"] == {"brightness": 100}
    assert data["splattingSuitability"]["estimatedQuality"] == {"level": "medium", "description": "usable"}


def test_motionless_midgray_video_end_to_end():
    frames = [
        RasterFrame(index=i, timestamp=i * 0.5, width=160, height=90, pixels=np.full((90, 160), 128, dtype=np.uint8))
        for i in range(20)
    ]
    metrics = [
        FrameMetrics(index=i, timestamp=i * 0.5, brightness=128.0, contrast=0.0, sharpness=0, edge_density=0)
        for i in range(20)
    ]
    report = build_report(metrics, frames, METADATA)

    assert report.basic_quality.score == 79
    assert report.splatting_suitability.checks["cameraMotion"].score == 30
    assert report.splatting_suitability.score < 60
    assert report.overall_score == 70
    assert report.feedback_message == report.splatting_suitability.recommendation.message
    assert report.keyframe_count == 20


def test_report_is_deterministic():
    rng = np.random.default_rng(11)
    frames = [
        RasterFrame(index=i, timestamp=float(i), width=160, height=90,
                    pixels=rng.integers(0, 256, size=(90, 160), dtype=np.uint8))
        for i in range(8)
    ]
    metrics = [
        FrameMetrics(index=i, timestamp=float(i), brightness=120.0 + i, contrast=40.0, sharpness=70, edge_density=30)
        for i in range(8)
    ]
    first = build_report(metrics, frames, METADATA)
    second = build_report(metrics, frames, METADATA)
    assert first.to_dict() == second.to_dict()
