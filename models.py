"""Data records passed between the extraction, scoring and gate stages."""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from types import MappingProxyType
from typing import Any, Dict, List, Mapping, Optional, Tuple

import numpy as np

from scoring import round_half_up


@dataclass(frozen=True)
class RasterFrame:
    """One sampled keyframe as a 2-D uint8 grayscale array.

    ``pixels`` is ``None`` when the frame could not be decoded; ``error`` then
    says why. A flat row-major buffer of ``width * height`` intensities (or
    ``width * height * channels`` values) is reshaped to image form.
    """

    index: int
    timestamp: float
    width: int
    height: int
    pixels: Optional[np.ndarray] = field(default=None, repr=False, compare=False)
    error: Optional[str] = None

    def __post_init__(self) -> None:
        pixels = self.pixels
        if pixels is None or pixels.ndim != 1 or self.width <= 0 or self.height <= 0:
            return
        plane = self.width * self.height
        if pixels.size == plane:
            object.__setattr__(self, "pixels", pixels.reshape(self.height, self.width))
        elif pixels.size in (plane * 3, plane * 4):
            channels = pixels.size // plane
            object.__setattr__(self, "pixels", pixels.reshape(self.height, self.width, channels))

    @property
    def is_readable(self) -> bool:
        return self.pixels is not None and self.pixels.size > 0


@dataclass(frozen=True)
class VideoMetadata:
    """Container metadata reported by the extraction step."""

    duration: float
    fps: float
    width: int
    height: int
    codec: str = "unknown"

    @property
    def frame_count(self) -> int:
        return round_half_up(self.duration * self.fps)

    @property
    def resolution(self) -> str:
        return f"{self.width}x{self.height}"


@dataclass(frozen=True)
class FrameMetrics:
    """Per-frame pixel statistics."""

    index: int
    timestamp: float
    brightness: float
    contrast: float
    sharpness: int
    edge_density: int
    error: Optional[str] = None

    def to_dict(self) -> Dict[str, Any]:
        return {
            "index": self.index,
            "timestamp": self.timestamp,
            "brightness": self.brightness,
            "contrast": self.contrast,
            "sharpness": self.sharpness,
            "edgeDensity": self.edge_density,
            "error": self.error,
        }


@dataclass(frozen=True)
class CheckResult:
    """Score plus an optional issue label and diagnostic details."""

    score: float
    issue: Optional[str] = None
    details: Mapping[str, Any] = field(default_factory=dict)

    def __post_init__(self) -> None:
        if not 0.0 <= self.score <= 100.0:
            raise ValueError(f"Check score out of range: {self.score}")
        object.__setattr__(self, "details", MappingProxyType(dict(self.details)))

    @property
    def recommendation(self) -> Optional[str]:
        return self.details.get("recommendation")

    def to_dict(self) -> Dict[str, Any]:
        return {"score": self.score, "issue": self.issue, "details": dict(self.details)}


@dataclass(frozen=True)
class BasicQualityResult:
    score: int
    metrics: Mapping[str, CheckResult]
    message: str
    suggestions: Tuple[str, ...]
    primary_issue: Optional[str] = None

    def to_dict(self) -> Dict[str, Any]:
        return {
            "score": self.score,
            "metrics": {name: check.score for name, check in self.metrics.items()},
            "checks": {name: check.to_dict() for name, check in self.metrics.items()},
        }


@dataclass(frozen=True)
class Recommendation:
    status: str
    message: str
    tips: Tuple[str, ...] = ()

    def to_dict(self) -> Dict[str, Any]:
        return {"status": self.status, "message": self.message, "tips": list(self.tips)}


@dataclass(frozen=True)
class EstimatedQuality:
    level: str
    description: str

    def to_dict(self) -> Dict[str, str]:
        return {"level": self.level, "description": self.description}


@dataclass(frozen=True)
class SplattingSuitabilityResult:
    score: int
    level: str
    checks: Mapping[str, CheckResult]
    recommendation: Recommendation
    estimated_quality: EstimatedQuality

    def to_dict(self) -> Dict[str, Any]:
        return {
            "score": self.score,
            "level": self.level,
            "checks": {name: check.to_dict() for name, check in self.checks.items()},
            "scores": {name: check.score for name, check in self.checks.items()},
            "recommendation": self.recommendation.to_dict(),
            "estimatedQuality": self.estimated_quality.to_dict(),
        }


class AssessmentStatus(str, Enum):
    """How much the report can be trusted."""

    ASSESSED = "assessed"
    DEGRADED = "degraded"
    CANNOT_ASSESS = "cannot_assess"


@dataclass(frozen=True)
class QualityReport:
    """Final per-video report returned to the caller."""

    overall_score: int
    overall_level: str
    basic_quality: BasicQualityResult
    splatting_suitability: SplattingSuitabilityResult
    feedback_message: str
    suggestions: Tuple[str, ...]
    keyframe_count: int
    duration: float
    resolution: str
    status: AssessmentStatus = AssessmentStatus.ASSESSED
    warnings: Tuple[str, ...] = ()

    @property
    def low_confidence(self) -> bool:
        return self.status is not AssessmentStatus.ASSESSED

    def to_dict(self) -> Dict[str, Any]:
        return {
            "overallScore": self.overall_score,
            "overallLevel": self.overall_level,
            "basicQuality": self.basic_quality.to_dict(),
            "splattingSuitability": self.splatting_suitability.to_dict(),
            "feedbackMessage": self.feedback_message,
            "suggestions": list(self.suggestions),
            "keyframeCount": self.keyframe_count,
            "duration": self.duration,
            "resolution": self.resolution,
            "status": self.status.value,
            "lowConfidence": self.low_confidence,
            "warnings": list(self.warnings),
        }


@dataclass(frozen=True)
class GateDecision:
    passed: bool
    score: int
    threshold: float
    reason: str


@dataclass
class GateOutcome:
    """What the pipeline hands back for one video."""

    report: QualityReport
    decision: GateDecision
    frame_metrics: List[FrameMetrics] = field(default_factory=list)
    payload: Dict[str, Any] = field(default_factory=dict)
    handoff_result: Any = None

    @property
    def passed(self) -> bool:
        return self.decision.passed
