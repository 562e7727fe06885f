"""Persistence of quality reports and per-frame metrics."""

from __future__ import annotations

import json
import uuid
from pathlib import Path
from typing import Any, Dict, Sequence

import pandas as pd

from logging_utils import get_logger
from models import FrameMetrics, GateOutcome

LOGGER = get_logger(__name__)

_EXTENSIONS = {"parquet": "parquet", "csv": "csv", "jsonl": "jsonl"}
METRIC_COLUMNS = ["index", "timestamp", "brightness", "contrast", "sharpness", "edgeDensity", "error"]


def report_stem(video_path: Path) -> str:
    """Unique, readable stem for the artifacts of one analysis run."""

    return f"{video_path.stem}_{uuid.uuid4().hex[:6]}"


def save_report(payload: Dict[str, Any], path: Path) -> Path:
    """Write a report payload as pretty-printed JSON."""

    path.parent.mkdir(parents=True, exist_ok=True)
    with path.open("w", encoding="utf-8") as f:
        json.dump(payload, f, indent=2, ensure_ascii=False)
    LOGGER.info("Report written to %s", path)
    return path


def metrics_frame(metrics: Sequence[FrameMetrics]) -> pd.DataFrame:
    return pd.DataFrame([m.to_dict() for m in metrics], columns=METRIC_COLUMNS)


def save_frame_metrics(metrics: Sequence[FrameMetrics], path: Path, fmt: str = "jsonl") -> Path:
    """Write the per-frame metrics table in extraction order."""

    if fmt not in _EXTENSIONS:
        raise ValueError(f"Unsupported metrics format {fmt}")
    path.parent.mkdir(parents=True, exist_ok=True)
    df = metrics_frame(metrics)
    if fmt == "parquet":
        _write_parquet(df, path)
    elif fmt == "csv":
        df.to_csv(path, index=False)
    else:  # jsonl
        with path.open("w", encoding="utf-8") as f:
            for record in df.to_dict(orient="records"):
                f.write(json.dumps(record, default=_jsonable))
                f.write("\n")
    LOGGER.info("Frame metrics (%d rows) written to %s", len(df), path)
    return path


def _jsonable(value: Any) -> Any:
    # numpy scalars coming back from pandas
    if hasattr(value, "item"):
        return value.item()
    raise TypeError(f"Object of type {type(value).__name__} is not JSON serializable")


def _write_parquet(df: pd.DataFrame, path: Path) -> None:
    import pyarrow as pa
    import pyarrow.parquet as pq

    table = pa.Table.from_pandas(df, preserve_index=False)
    pq.write_table(table, path)


def save_outcome(outcome: GateOutcome, report_dir: Path, video_path: Path, metrics_format: str = "jsonl", with_metrics: bool = False) -> Path:
    """Persist the gate payload and optionally the metrics table side by side."""

    stem = report_stem(video_path)
    report_path = save_report(outcome.payload, report_dir / f"{stem}_report.json")
    if with_metrics:
        save_frame_metrics(outcome.frame_metrics, report_dir / f"{stem}_frames.{_EXTENSIONS[metrics_format]}", metrics_format)
    return report_path
