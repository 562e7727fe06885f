#!/usr/bin/env python
"""Command line front end: score a video and report whether it passes the gate."""

import argparse
import json
import sys
from pathlib import Path

from tqdm import tqdm

from config import default_config, load_config
from logging_utils import setup_logging
from models import AssessmentStatus
from pipeline import analyze_video

EXIT_PASSED = 0
EXIT_REJECTED = 1
EXIT_CANNOT_ASSESS = 2


# ----------------- ARGPARSE -----------------

def parse_args(argv=None):
    p = argparse.ArgumentParser(
        description="Score footage for Gaussian Splatting reconstruction and apply the quality gate."
    )
    p.add_argument("video", type=str, help="Path to the video file to analyze.")
    p.add_argument("--config", type=str, default=None,
                   help="YAML or JSON config file; CLI flags override it.")

    # gate thresholds
    p.add_argument("--min-brightness", type=float, default=None,
                   help="Minimum average brightness (0-255).")
    p.add_argument("--min-frame-count", type=int, default=None,
                   help="Minimum number of video frames.")
    p.add_argument("--quality-threshold", type=float, default=None,
                   help="Overall score (0-100) required to proceed.")

    # runtime
    p.add_argument("--workers", type=int, default=None,
                   help="Threads used for per-frame metrics.")
    p.add_argument("--output-dir", type=str, default=None,
                   help="Directory for report JSON and logs.")
    p.add_argument("--metrics-format", choices=["jsonl", "csv", "parquet"], default=None,
                   help="If set, also write per-frame metrics in this format.")
    p.add_argument("--log-level", type=str, default=None, help="INFO, DEBUG or WARNING.")
    p.add_argument("--no-progress", action="store_true", help="Disable the progress bar.")
    return p.parse_args(argv)


def build_config(args):
    """Merge CLI flags over the file or default config."""

    cfg = load_config(Path(args.config)) if args.config else default_config()
    data = cfg.model_dump()
    if args.min_brightness is not None:
        data["quality_gate"]["min_brightness"] = args.min_brightness
    if args.min_frame_count is not None:
        data["quality_gate"]["min_frame_count"] = args.min_frame_count
    if args.quality_threshold is not None:
        data["quality_gate"]["quality_threshold"] = args.quality_threshold
    if args.workers is not None:
        data["analysis"]["max_workers"] = args.workers
    if args.output_dir is not None:
        data["output"]["report_dir"] = Path(args.output_dir)
    if args.metrics_format is not None:
        data["output"]["metrics_format"] = args.metrics_format
        data["output"]["save_frame_metrics"] = True
    if args.log_level is not None:
        data["log_level"] = args.log_level
    return type(cfg)(**data)


def exit_code_for(outcome) -> int:
    if outcome.report.status is AssessmentStatus.CANNOT_ASSESS:
        return EXIT_CANNOT_ASSESS
    return EXIT_PASSED if outcome.passed else EXIT_REJECTED


def main(argv=None) -> int:
    args = parse_args(argv)
    cfg = build_config(args)
    setup_logging(cfg.output.report_dir, cfg.log_level)

    bar = None if args.no_progress else tqdm(desc="Analyzing frames", unit="frame", leave=False)

    def on_progress(update):
        if bar is None or update.stage != "metrics":
            return
        bar.total = update.total
        bar.n = update.current
        bar.refresh()

    try:
        outcome = analyze_video(Path(args.video), cfg, progress_cb=on_progress)
    finally:
        if bar is not None:
            bar.close()

    print(json.dumps(outcome.payload, indent=2, ensure_ascii=False))
    verdict = "PASS" if outcome.passed else "REJECT"
    print(f"[{verdict}] score={outcome.decision.score} threshold={outcome.decision.threshold} "
          f"reason={outcome.decision.reason}", file=sys.stderr)
    return exit_code_for(outcome)


if __name__ == "__main__":
    sys.exit(main())
