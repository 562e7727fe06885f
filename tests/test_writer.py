"""Tests for writer module."""

import json

import pandas as pd
import pytest

from models import FrameMetrics
from writer import METRIC_COLUMNS, report_stem, save_frame_metrics, save_report


def _metrics():
    return [
        FrameMetrics(index=0, timestamp=0.0, brightness=120.5, contrast=40.2, sharpness=72, edge_density=14),
        FrameMetrics(index=1, timestamp=0.5, brightness=128.0, contrast=50.0, sharpness=50, edge_density=50,
                     error="unreadable image frame_002.jpg"),
    ]


def test_save_report_writes_json(tmp_path):
    path = save_report({"overallScore": 72, "suggestions": ["Mehr Licht"]}, tmp_path / "out" / "r.json")
    data = json.loads(path.read_text(encoding="utf-8"))
    assert data == {"overallScore": 72, "suggestions": ["Mehr Licht"]}


def test_jsonl_metrics_keep_order(tmp_path):
    path = save_frame_metrics(_metrics(), tmp_path / "frames.jsonl", "jsonl")
    rows = [json.loads(line) for line in path.read_text(encoding="utf-8").splitlines()]
    assert [row["index"] for row in rows] == [0, 1]
    assert rows[0]["edgeDensity"] == 14
    assert rows[1]["error"].startswith("unreadable")


def test_csv_metrics(tmp_path):
    path = save_frame_metrics(_metrics(), tmp_path / "frames.csv", "csv")
    df = pd.read_csv(path)
    assert list(df.columns) == METRIC_COLUMNS
    assert len(df) == 2


def test_parquet_metrics(tmp_path):
    path = save_frame_metrics(_metrics(), tmp_path / "frames.parquet", "parquet")
    assert path.exists() and path.stat().st_size > 0


def test_unknown_format_rejected(tmp_path):
    with pytest.raises(ValueError):
        save_frame_metrics(_metrics(), tmp_path / "frames.xml", "xml")


def test_report_stem_is_unique(tmp_path):
    video = tmp_path / "walkaround.mp4"
    first, second = report_stem(video), report_stem(video)
    assert first.startswith("walkaround_")
    assert first != second
