#!/usr/bin/env python3
"""Render a forecast series to SVG.

The input is a JSON list of ``{"month": ..., "forecastedDemand": ...}`` rows,
or of ``{"label": ..., "value": ...}`` points.
"""

from __future__ import annotations

import argparse
import json
import sys
from pathlib import Path

from pydantic import ValidationError

APP_DIR = Path(__file__).resolve().parents[1]
if str(APP_DIR) not in sys.path:
    sys.path.insert(0, str(APP_DIR))

from schemas.forecast import ForecastPointDto, SeriesPointDto
from services.chart_service import DegenerateSeries, line_color_for, render_svg, summarize_series


def _load_points(path: Path) -> list[SeriesPointDto]:
    rows = json.loads(path.read_text(encoding="utf-8"))
    if not isinstance(rows, list):
        raise ValueError("series file must contain a JSON list")
    points = []
    for row in rows:
        if isinstance(row, dict) and "forecastedDemand" in row:
            points.append(ForecastPointDto.model_validate(row).to_series_point())
        else:
            points.append(SeriesPointDto.model_validate(row))
    return points


def _build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(description="Render a forecast trend chart as SVG.")
    parser.add_argument("series", type=Path, help="JSON file with the series rows")
    parser.add_argument("--output", "-o", type=Path, default=None, help="SVG file to write; stdout when omitted")
    parser.add_argument("--width", type=int, default=600)
    parser.add_argument("--height", type=int, default=250)
    parser.add_argument("--equipment-type", default=None, help="Pick the line colour for this equipment type")
    parser.add_argument("--color", default=None, help="Explicit stroke colour, overrides --equipment-type")
    return parser


def main() -> int:
    args = _build_parser().parse_args()

    try:
        points = _load_points(args.series)
    except (OSError, ValueError, ValidationError) as exc:
        print(f"Could not read series: {exc}", file=sys.stderr)
        return 2

    color = args.color or line_color_for(args.equipment_type)
    try:
        svg = render_svg(points, args.width, args.height, color)
    except DegenerateSeries as exc:
        print(f"Could not render chart: {exc}", file=sys.stderr)
        return 3

    if args.output:
        args.output.write_text(svg, encoding="utf-8")
        summary = summarize_series(points)
        print(
            f"Wrote {args.output} points={summary['months']} "
            f"min={summary['minDemand']} max={summary['maxDemand']} avg={summary['averageDemand']}"
        )
    else:
        sys.stdout.write(svg + "\n")
    return 0


if __name__ == "__main__":
    sys.exit(main())
