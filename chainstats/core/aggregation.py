#!/usr/bin/env python3
"""
Calendar resampling of daily metric series.

Collapses a daily series into week/month/quarter/year buckets keyed by
strings whose lexicographic order is date order:

    W -> "YYYY-MM-DD" of the Sunday starting the week
    M -> "YYYY-MM"
    Q -> "YYYY-Qn"
    Y -> "YYYY"

Running totals (cumulative metrics) keep the bucket max, flow metrics the sum.
"""
from __future__ import annotations

import numpy as np
from datetime import date, timedelta
from typing import Dict, List, Mapping, Optional
import logging

from ..shared.models import Aggregation, MetricPoint, Resolution
from ..shared.utils import parse_calendar_day
from ..shared.metrics_catalog import aggregation_for

log = logging.getLogger(__name__)


def bucket_key(day: date, resolution: Resolution) -> str:
    """
    Bucket label of a calendar day at the given resolution.

    Args:
        day: Calendar day
        resolution: Target resolution (D returns the ISO day itself)

    Example:
        >>> bucket_key(date(2024, 2, 14), Resolution.QUARTERLY)
        '2024-Q1'
    """
    resolution = Resolution.parse(resolution)
    if resolution == Resolution.DAILY:
        return day.isoformat()
    if resolution == Resolution.WEEKLY:
        # weekday(): Monday=0 .. Sunday=6; weeks start on Sunday
        days_since_sunday = (day.weekday() + 1) % 7
        return (day - timedelta(days=days_since_sunday)).isoformat()
    if resolution == Resolution.MONTHLY:
        return f"{day.year:04d}-{day.month:02d}"
    if resolution == Resolution.QUARTERLY:
        quarter = (day.month - 1) // 3 + 1
        return f"{day.year:04d}-Q{quarter}"
    return f"{day.year:04d}"


def resample(
    points: List[MetricPoint],
    resolution: Resolution,
    metric_key: str = "",
    aggregation: Optional[Aggregation] = None,
) -> List[MetricPoint]:
    """
    Resample a daily series to the requested resolution.

    Args:
        points: Daily points in ascending date order
        resolution: D, W, M, Q or Y
        metric_key: Metric identifier, selects sum or max aggregation
        aggregation: Explicit policy overriding the one derived from metric_key

    Returns:
        Points keyed by bucket, ascending by key. D returns the input unchanged.

    Edge Cases:
        - Empty input: returns an empty list
        - One point in a bucket: passes through with its value
    """
    resolution = Resolution.parse(resolution)
    if resolution == Resolution.DAILY:
        return points
    if not points:
        return []

    policy = aggregation or aggregation_for(metric_key)
    grouped: Dict[str, List[float]] = {}
    for point in points:
        key = bucket_key(parse_calendar_day(point.date), resolution)
        grouped.setdefault(key, []).append(point.value)

    reducer = np.max if policy == Aggregation.MAX else np.sum
    resampled = [
        MetricPoint(date=key, value=float(reducer(np.asarray(values, dtype=float))))
        for key, values in sorted(grouped.items())
    ]
    log.debug(
        f"Resampled {len(points)} points of '{metric_key}' into {len(resampled)} "
        f"{resolution.value} buckets ({policy.value})"
    )
    return resampled


def resample_many(
    series: Mapping[str, List[MetricPoint]],
    metric_keys: Mapping[str, str],
    resolution: Resolution,
) -> Dict[str, List[MetricPoint]]:
    """
    Resample every series in a cache-like mapping.

    Args:
        series: series_id -> daily points
        metric_keys: series_id -> metric key (drives sum/max)
        resolution: Target resolution
    """
    return {
        series_id: resample(points, resolution, metric_keys.get(series_id, ""))
        for series_id, points in series.items()
    }
