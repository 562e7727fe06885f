"""Configuration models for the splat footage quality gate."""

from __future__ import annotations

import tempfile
from pathlib import Path
from typing import Any, Dict, Literal, Optional

from pydantic import BaseModel, ConfigDict, Field, PositiveInt, field_validator, model_validator
from pydantic.alias_generators import to_camel


class _SettingsModel(BaseModel):
    """Accepts snake_case names or their camelCase form; unknown keys are errors."""

    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True, extra="forbid")


class QualityGateConfig(_SettingsModel):
    """Basic-quality thresholds and the pass/fail cutoff."""

    min_brightness: float = Field(40.0, ge=0.0, le=255.0)
    min_frame_count: PositiveInt = 30
    ideal_frame_count: PositiveInt = 150
    quality_threshold: float = Field(70.0, ge=0.0, le=100.0)
    allow_degraded_pass: bool = False


class SplattingThresholds(_SettingsModel):
    """Thresholds for the Gaussian Splatting suitability checks."""

    min_camera_motion: float = Field(5.0, ge=0.0)
    max_camera_motion: float = Field(100.0, ge=0.0)
    max_motion_variance: float = Field(500.0, ge=0.0)
    min_overlap: float = Field(50.0, ge=0.0, le=100.0)
    max_overlap: float = Field(85.0, ge=0.0, le=100.0)
    max_exposure_variance: float = Field(20.0, ge=0.0)
    min_feature_count: float = Field(50.0, ge=0.0)
    max_reflective_area: float = Field(30.0, ge=0.0, le=100.0)
    max_motion_pixels: float = Field(10.0, ge=0.0, le=100.0)

    @model_validator(mode="after")
    def _check_ranges(self) -> "SplattingThresholds":
        """Ensure every max threshold sits above its min counterpart."""

        if self.max_camera_motion <= self.min_camera_motion:
            raise ValueError("max_camera_motion must be greater than min_camera_motion")
        if self.max_overlap <= self.min_overlap:
            raise ValueError("max_overlap must be greater than min_overlap")
        return self


class AnalysisConfig(_SettingsModel):
    """Pixel-level sampling sizes and filter thresholds."""

    sharpness_size: PositiveInt = 200
    motion_size: PositiveInt = 64
    scene_change_size: PositiveInt = 50
    scene_change_threshold: float = Field(50.0, ge=0.0, le=255.0)
    highlight_size: PositiveInt = 100
    highlight_level: int = Field(240, ge=0, le=255)
    feature_size: PositiveInt = 100
    feature_response_threshold: float = Field(100.0, ge=0.0, le=255.0)
    feature_normalization: float = Field(4.0, gt=0.0)
    edge_threshold: float = Field(30.0, ge=0.0)
    motion_sample_frames: int = Field(10, ge=2)
    highlight_sample_frames: PositiveInt = 5
    feature_sample_frames: PositiveInt = 5
    staticness_frame_limit: int = Field(8, ge=3)
    max_workers: PositiveInt = 1


class ExtractionConfig(_SettingsModel):
    """Keyframe sampling and the metadata assumed when probing fails."""

    target_samples: PositiveInt = 20
    frame_width: PositiveInt = 160
    min_interval_sec: float = Field(0.5, gt=0.0)
    jpeg_quality: int = Field(95, ge=1, le=100)
    fallback_duration: float = Field(10.0, gt=0.0)
    fallback_fps: float = Field(30.0, gt=0.0)
    fallback_width: PositiveInt = 1920
    fallback_height: PositiveInt = 1080


class OutputConfig(_SettingsModel):
    """Where temporary keyframes and reports go."""

    workspace_root: Path = Path(tempfile.gettempdir()) / "splat_gate"
    report_dir: Optional[Path] = None
    metrics_format: Literal["parquet", "csv", "jsonl"] = "jsonl"
    save_frame_metrics: bool = False


class GateConfig(_SettingsModel):
    """Top-level configuration tying everything together."""

    quality_gate: QualityGateConfig = Field(default_factory=QualityGateConfig)
    splatting: SplattingThresholds = Field(default_factory=SplattingThresholds)
    analysis: AnalysisConfig = Field(default_factory=AnalysisConfig)
    extraction: ExtractionConfig = Field(default_factory=ExtractionConfig)
    output: OutputConfig = Field(default_factory=OutputConfig)
    log_level: Literal["INFO", "DEBUG", "WARNING"] = "INFO"

    @field_validator("log_level", mode="before")
    @classmethod
    def _upper_log_level(cls, value: Any) -> Any:
        if isinstance(value, str):
            return value.upper()
        return value

    @model_validator(mode="after")
    def _ensure_report_dir_separate(self) -> "GateConfig":
        """Reports must not be written into the disposable keyframe workspace."""

        report_dir = self.output.report_dir
        if report_dir is not None:
            workspace = self.output.workspace_root.resolve()
            resolved = report_dir.resolve()
            if resolved == workspace or resolved.is_relative_to(workspace):
                raise ValueError("report_dir must not be inside workspace_root")
        return self

    def to_jsonable(self) -> Dict[str, Any]:
        return self.model_dump(mode="json")


def default_config() -> GateConfig:
    """Return a ready-to-use default configuration."""

    return GateConfig()


def config_to_dict(config: GateConfig) -> Dict[str, Any]:
    """Dump config into plain JSON-compatible types."""

    return config.to_jsonable()


def load_config(path: Path) -> GateConfig:
    """Load config from a JSON or YAML file."""

    import json

    if path.suffix.lower() in {".yaml", ".yml"}:
        import yaml

        with path.open("r", encoding="utf-8") as f:
            data = yaml.safe_load(f) or {}
    else:
        with path.open("r", encoding="utf-8") as f:
            data = json.load(f)
    return GateConfig(**data)


def save_config(config: GateConfig, path: Path) -> None:
    """Persist config to disk."""

    import json

    if path.suffix.lower() in {".yaml", ".yml"}:
        import yaml

        with path.open("w", encoding="utf-8") as f:
            yaml.safe_dump(config_to_dict(config), f, sort_keys=False)
    else:
        with path.open("w", encoding="utf-8") as f:
            json.dump(config_to_dict(config), f, indent=2)
