"""Tests for the command line front end."""

import json

from models import (
    AssessmentStatus,
    BasicQualityResult,
    EstimatedQuality,
    GateDecision,
    GateOutcome,
    QualityReport,
    Recommendation,
    SplattingSuitabilityResult,
)
from splat_gate_cli import EXIT_CANNOT_ASSESS, EXIT_PASSED, EXIT_REJECTED, build_config, main, parse_args


def _outcome(passed, status=AssessmentStatus.ASSESSED):
    report = QualityReport(
        overall_score=75 if passed else 40,
        overall_level="medium",
        basic_quality=BasicQualityResult(75, {}, "ok", ()),
        splatting_suitability=SplattingSuitabilityResult(
            75, "good", {}, Recommendation("optimal", "fine"), EstimatedQuality("medium", "usable")
        ),
        feedback_message="ok",
        suggestions=(),
        keyframe_count=10,
        duration=10.0,
        resolution="1920x1080",
        status=status,
    )
    decision = GateDecision(passed, report.overall_score, 70.0, "passed" if passed else "below_threshold")
    return GateOutcome(report=report, decision=decision, payload={"overallScore": report.overall_score})


def test_flags_override_config():
    args = parse_args(["clip.mp4", "--quality-threshold", "55", "--min-brightness", "60", "--workers", "3"])
    cfg = build_config(args)
    assert cfg.quality_gate.quality_threshold == 55
    assert cfg.quality_gate.min_brightness == 60
    assert cfg.analysis.max_workers == 3
    assert cfg.output.save_frame_metrics is False


def test_exit_codes(monkeypatch, capsys):
    for outcome, expected in [
        (_outcome(True), EXIT_PASSED),
        (_outcome(False), EXIT_REJECTED),
        (_outcome(False, AssessmentStatus.CANNOT_ASSESS), EXIT_CANNOT_ASSESS),
    ]:
        monkeypatch.setattr("splat_gate_cli.analyze_video", lambda *_args, _o=outcome, **_kwargs: _o)
        assert main(["clip.mp4", "--no-progress"]) == expected
        printed = capsys.readouterr().out
        assert json.loads(printed)["overallScore"] == outcome.report.overall_score
