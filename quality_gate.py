"""Blend basic quality and splat suitability into a report and a gate decision."""

from __future__ import annotations

from typing import Any, Callable, Dict, Iterable, Optional, Sequence

from basic_quality import score_basic_quality
from config import GateConfig
from logging_utils import get_logger
from models import (
    AssessmentStatus,
    BasicQualityResult,
    FrameMetrics,
    GateDecision,
    GateOutcome,
    QualityReport,
    RasterFrame,
    SplattingSuitabilityResult,
    VideoMetadata,
)
from scoring import score_at_least, weighted_sum
from splatting_suitability import analyze_splatting_suitability

LOGGER = get_logger(__name__)

OVERALL_WEIGHTS = {"basic": 0.6, "splatting": 0.4}
OVERALL_LEVEL_TIERS = ((80, "good"), (60, "medium"))
MAX_SUGGESTIONS = 5
SPLATTING_FEEDBACK_BELOW = 60

Handoff = Callable[[VideoMetadata, QualityReport], Any]


def overall_level(score: float) -> str:
    return score_at_least(score, OVERALL_LEVEL_TIERS, "poor")


def combine_suggestions(basic: Iterable[str], tips: Iterable[str]) -> tuple:
    return tuple([*basic, *tips][:MAX_SUGGESTIONS])


def assemble_report(
    basic: BasicQualityResult,
    splatting: SplattingSuitabilityResult,
    metadata: VideoMetadata,
    keyframe_count: int,
    status: AssessmentStatus = AssessmentStatus.ASSESSED,
    warnings: Sequence[str] = (),
) -> QualityReport:
    """Combine the two halves into the final report."""

    score = weighted_sum({"basic": basic.score, "splatting": splatting.score}, OVERALL_WEIGHTS)
    if splatting.score < SPLATTING_FEEDBACK_BELOW:
        feedback = splatting.recommendation.message
    else:
        feedback = basic.message
    return QualityReport(
        overall_score=score,
        overall_level=overall_level(score),
        basic_quality=basic,
        splatting_suitability=splatting,
        feedback_message=feedback,
        suggestions=combine_suggestions(basic.suggestions, splatting.recommendation.tips),
        keyframe_count=keyframe_count,
        duration=metadata.duration,
        resolution=metadata.resolution,
        status=status,
        warnings=tuple(warnings),
    )


def build_report(
    metrics: Sequence[FrameMetrics],
    frames: Sequence[RasterFrame],
    metadata: VideoMetadata,
    config: Optional[GateConfig] = None,
    status: AssessmentStatus = AssessmentStatus.ASSESSED,
    warnings: Sequence[str] = (),
) -> QualityReport:
    """Score ordered frame metrics and frames for one video."""

    config = config or GateConfig()
    basic = score_basic_quality(metrics, metadata, config.quality_gate)
    splatting = analyze_splatting_suitability(frames, metrics, config.splatting, config.analysis)
    report = assemble_report(basic, splatting, metadata, len(frames), status, warnings)
    LOGGER.info(
        "Overall score %d (%s): basic=%d splatting=%d status=%s",
        report.overall_score,
        report.overall_level,
        basic.score,
        splatting.score,
        report.status.value,
    )
    return report


def evaluate_gate(report: QualityReport, config: Optional[GateConfig] = None) -> GateDecision:
    """Decide whether the footage may proceed to reconstruction."""

    config = config or GateConfig()
    threshold = config.quality_gate.quality_threshold
    if report.status is AssessmentStatus.CANNOT_ASSESS:
        return GateDecision(False, report.overall_score, threshold, "cannot_assess")
    if report.status is AssessmentStatus.DEGRADED and not config.quality_gate.allow_degraded_pass:
        return GateDecision(False, report.overall_score, threshold, "low_confidence")
    if report.overall_score < threshold:
        return GateDecision(False, report.overall_score, threshold, "below_threshold")
    return GateDecision(True, report.overall_score, threshold, "passed")


def fail_fast_payload(report: QualityReport, decision: GateDecision) -> Dict[str, Any]:
    """Terminal rejection response carrying the full report for the user."""

    payload = report.to_dict()
    payload.update(
        {
            "success": False,
            "phase": "quality_gate",
            "reason": decision.reason,
            "qualityThreshold": decision.threshold,
        }
    )
    return payload


def run_gate(
    report: QualityReport,
    metadata: VideoMetadata,
    config: Optional[GateConfig] = None,
    handoff: Optional[Handoff] = None,
    frame_metrics: Sequence[FrameMetrics] = (),
) -> GateOutcome:
    """Apply the gate; only a passing report is handed downstream."""

    decision = evaluate_gate(report, config)
    if not decision.passed:
        LOGGER.info(
            "Quality insufficient (%d/%s, %s) - returning feedback",
            decision.score,
            decision.threshold,
            decision.reason,
        )
        return GateOutcome(
            report=report,
            decision=decision,
            frame_metrics=list(frame_metrics),
            payload=fail_fast_payload(report, decision),
        )

    LOGGER.info("Quality gate passed (%d/%s)", decision.score, decision.threshold)
    handoff_result = handoff(metadata, report) if handoff is not None else None
    payload = report.to_dict()
    payload.update({"success": True, "phase": "quality_gate", "qualityThreshold": decision.threshold})
    return GateOutcome(
        report=report,
        decision=decision,
        frame_metrics=list(frame_metrics),
        payload=payload,
        handoff_result=handoff_result,
    )
