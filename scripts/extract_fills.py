#!/usr/bin/env python3
"""Detect drum fills in parsed-chart JSON files.

Each input file holds one chart in the parser's JSON shape
(``resolution``, ``tempos``, ``trackData``, ...).

Usage:
    uv run python scripts/extract_fills.py song.json                  # fills as JSON
    uv run python scripts/extract_fills.py a.json b.json -o fills.json
    uv run python scripts/extract_fills.py *.json --difficulty hard
    uv run python scripts/extract_fills.py *.json --shared-cache      # novelty across songs
    uv run python scripts/extract_fills.py song.json --summary --validate
"""

import argparse
import dataclasses
import json
import logging
import sys
from pathlib import Path

from pydantic import ValidationError
from tqdm import tqdm

sys.path.insert(0, str(Path(__file__).resolve().parent.parent))

from fillscan.analysis.engine import FillDetector, create_extraction_summary  # noqa: E402
from fillscan.analysis.errors import FillDetectionError  # noqa: E402
from fillscan.analysis.segments import validate_fill_segments  # noqa: E402
from fillscan.api.schemas import ChartRequest  # noqa: E402
from fillscan.config import settings  # noqa: E402

logger = logging.getLogger("extract_fills")


def load_chart(path: Path):
    with open(path) as f:
        return ChartRequest.model_validate(json.load(f)).to_chart()


def process_file(path: Path, detector: FillDetector, args) -> dict:
    chart = load_chart(path)
    song_id = chart.name or path.stem
    fills = detector.detect(chart, song_id=song_id)

    entry = {"file": str(path), "fills": [dataclasses.asdict(f) for f in fills]}
    if args.summary:
        entry["summary"] = create_extraction_summary(chart, fills, detector.config)
    if args.validate:
        report = validate_fill_segments(fills)
        entry["validation"] = {"errors": report.errors, "warnings": report.warnings}
        for warning in report.warnings:
            tqdm.write(f"  WARN {path.name}: {warning}")
    return entry


def main():
    parser = argparse.ArgumentParser(description="Detect drum fills in parsed charts")
    parser.add_argument("files", nargs="+", type=Path, help="Parsed-chart JSON files")
    parser.add_argument("-o", "--output", type=Path, default=None,
                        help="Write results here instead of stdout")
    parser.add_argument("--difficulty", default=settings.difficulty,
                        choices=["expert", "hard", "medium", "easy"])
    parser.add_argument("--config", type=Path, default=None,
                        help="JSON file with configuration overrides")
    parser.add_argument("--shared-cache", action="store_true",
                        help="Carry the pattern cache across files (order-dependent novelty)")
    parser.add_argument("--summary", action="store_true", help="Include per-song summary")
    parser.add_argument("--validate", action="store_true", help="Include segment validation report")
    parser.add_argument("--verbose", action="store_true")
    args = parser.parse_args()

    logging.basicConfig(
        level=logging.DEBUG if args.verbose else getattr(logging, settings.log_level.upper(), logging.INFO),
        format="%(levelname)s %(name)s: %(message)s",
    )

    overrides = {}
    if args.config:
        with open(args.config) as f:
            overrides = json.load(f)
    overrides["difficulty"] = args.difficulty

    try:
        detector = FillDetector(overrides)
    except FillDetectionError as e:
        parser.error(str(e))

    results = []
    failures = 0
    for path in tqdm(args.files, desc="Charts", unit="file", disable=len(args.files) < 2):
        if not args.shared_cache:
            detector.pattern_cache.clear()
        try:
            results.append(process_file(path, detector, args))
        except (OSError, json.JSONDecodeError, ValidationError, FillDetectionError) as e:
            failures += 1
            tqdm.write(f"  ERR  {path.name}: {e}")
            results.append({"file": str(path), "error": str(e)})

    text = json.dumps(results, indent=2)
    if args.output:
        args.output.write_text(text)
        print(f"Wrote {len(results)} results to {args.output}")
    else:
        print(text)

    if failures:
        sys.exit(1)


if __name__ == "__main__":
    main()
