#!/usr/bin/env python3
# -*- coding: utf-8 -*-
"""
chainstats runner.
- Loads the YAML chart configuration
- Fetches every visible series from the chain-stats API
- Writes the resulting chart spec (JSON) and optionally a PNG

Usage examples:
  python -m chainstats.main --help
  python -m chainstats.main --config path/to/chart.yaml
  python -m chainstats.main --config chart.yaml --resolution M --stack --png
  python -m chainstats.main --config chart.yaml --print-config
"""
from __future__ import annotations

import argparse
import json
import logging
import sys
from pathlib import Path
from typing import List, Optional

import yaml

from .core.exporter import create_telemetry
from .core.plotting import render_chart_png
from .core.session import ChartSession
from .shared.aggregation import get_merge_summary
from .shared.config import AppConfig, ConfigError, apply_cli_overrides, load_config
from .shared.logging_setup import configure_logging
from .shared.metrics_catalog import search_metrics
from .shared.models import SeriesStatus
from .shared.stats_client import create_stats_client


def run(config: AppConfig) -> int:
    """Fetch, compute and write outputs; returns the process exit code."""
    log = logging.getLogger(__name__)
    telemetry = create_telemetry(config.telemetry.enabled, config.telemetry.port)
    session = ChartSession.from_config(config.chart, telemetry=telemetry)
    if len(session.registry) == 0:
        log.warning("No series configured; the chart will be empty")

    client = create_stats_client(config.api, telemetry=telemetry)
    try:
        statuses = session.load_visible(client, max_workers=config.api.max_workers)
    finally:
        client.close()

    failed = [sid for sid, status in statuses.items() if status == SeriesStatus.FAILED]
    for sid in failed:
        log.warning(f"{sid}: not loaded [reason: {session.failure_reason(sid)}]")

    spec = session.recompute()
    stats = session.merger.merge_stats(session.resampled_series(), session.build_table())
    log.info("\n" + get_merge_summary(stats, spec.title))

    out_dir = Path(config.output.dir)
    out_dir.mkdir(parents=True, exist_ok=True)
    spec_path = out_dir / "chart_spec.json"
    with open(spec_path, "w", encoding="utf-8") as f:
        json.dump(spec.to_dict(), f, indent=2)
    log.info(f"Chart spec written to {spec_path}")

    if config.output.include_png:
        png = render_chart_png(
            spec,
            str(out_dir / "chart.png"),
            width=config.output.chart_width,
            height=config.output.chart_height,
            dpi=config.output.dpi,
        )
        if png:
            log.info(f"Chart image written to {png}")
        else:
            log.warning("Nothing to draw, chart image skipped")

    # Partial charts are expected; only a chart with no data at all is a failure
    if failed and not spec.rows:
        return 1
    return 0


def main(argv: Optional[List[str]] = None) -> int:
    parser = argparse.ArgumentParser(description="Chain stats chart builder")
    parser.add_argument("--config", type=str, default=None, help="Path to chart YAML config")
    parser.add_argument("--resolution", choices=["D", "W", "M", "Q", "Y"], default=None, help="Override chart resolution")
    parser.add_argument("--stack", action="store_true", default=None, help="Stack bar/area series of the same metric")
    parser.add_argument("--png", action="store_true", default=None, help="Also render chart.png")
    parser.add_argument("--output-dir", type=str, default=None, help="Override output directory")
    parser.add_argument("--log-level", type=str, default=None, help="Logging level (DEBUG, INFO, WARNING, ...)")
    parser.add_argument("--metrics-port", type=int, default=None, help="Expose fetch telemetry on this port")
    parser.add_argument("--print-config", action="store_true", help="Print the effective configuration and exit")
    parser.add_argument("--list-metrics", nargs="?", const="", default=None, metavar="TERM",
                        help="List plottable metrics (optionally filtered) and exit")
    args = parser.parse_args(argv)

    if args.list_metrics is not None:
        for metric in search_metrics(args.list_metrics):
            print(f"{metric.key:<22} {metric.name:<26} {metric.aggregation.value}")
        return 0

    base = Path(__file__).resolve().parents[1]
    config_path = args.config or str(base / "config" / "chart.yaml")
    try:
        config = load_config(config_path)
        config = apply_cli_overrides(
            config,
            resolution=args.resolution,
            stack_same_metrics=args.stack,
            include_png=args.png,
            output_dir=args.output_dir,
            log_level=args.log_level,
            metrics_port=args.metrics_port,
        )
    except ConfigError as e:
        print(f"Configuration error: {e}", file=sys.stderr)
        return 2

    configure_logging(config.logging.level, config.logging.file)

    if args.print_config:
        chart = config.chart
        print(yaml.safe_dump({
            "title": chart.title,
            "resolution": chart.resolution.value,
            "stack_same_metrics": chart.stack_same_metrics,
            "series": chart.series,
        }, sort_keys=False))
        return 0

    return run(config)


if __name__ == "__main__":
    sys.exit(main())
