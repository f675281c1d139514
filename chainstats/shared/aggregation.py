#!/usr/bin/env python3
# -*- coding: utf-8 -*-
"""
Merge & Align Engine for chainstats
Outer-joins independently fetched series into one date-indexed table.
"""

import logging
from typing import Dict, List, Mapping, Optional, Set

from .models import ChartRow, MergeStats, MetricPoint


class MergeError(Exception):
    """Merge-related errors"""
    pass


class SeriesMerger:
    """
    Combines N series with possibly different date ranges into chart rows

    Handles:
    - Union of bucket keys across all series, sorted ascending
    - One column per series, present only where that series has a point
    - No forward/back filling: a missing column means "no data", not zero
    """

    def __init__(self):
        self.logger = logging.getLogger(self.__class__.__name__)

    def merge(self, series_map: Mapping[str, List[MetricPoint]]) -> List[ChartRow]:
        """
        Merge series into rows {"date": key, <series_id>: value, ...}

        Args:
            series_map: Mapping of series id to its (resampled) points

        Returns:
            Rows sorted ascending by key, one per distinct key in any series

        Raises:
            MergeError: If a series id collides with the "date" column
        """
        if not series_map:
            self.logger.debug("No series provided for merge")
            return []

        if "date" in series_map:
            raise MergeError("Series id 'date' collides with the date column")

        rows_by_key: Dict[str, ChartRow] = {}
        for series_id, points in series_map.items():
            for point in points:
                row = rows_by_key.get(point.date)
                if row is None:
                    row = {"date": point.date}
                    rows_by_key[point.date] = row
                row[series_id] = point.value

        merged = [rows_by_key[key] for key in sorted(rows_by_key)]
        self.logger.debug(f"Merged {len(series_map)} series into {len(merged)} rows")
        return merged

    def merge_stats(
        self,
        series_map: Mapping[str, List[MetricPoint]],
        rows: List[ChartRow],
    ) -> MergeStats:
        """
        Describe a merge: row count, series count, points and empty cells

        Args:
            series_map: Series that were merged
            rows: Resulting rows from merge()
        """
        total_points = sum(len(points) for points in series_map.values())
        all_keys: Set[str] = {row["date"] for row in rows}
        expected_cells = len(all_keys) * len(series_map)
        return MergeStats(
            total_rows=len(rows),
            series_merged=len(series_map),
            total_points=total_points,
            first_key=rows[0]["date"] if rows else None,
            last_key=rows[-1]["date"] if rows else None,
            missing_cells=max(0, expected_cells - total_points),
        )


def get_merge_summary(stats: MergeStats, title: Optional[str] = None) -> str:
    """
    Generate a human-readable summary of a merge

    Args:
        stats: Merge statistics
        title: Optional chart title for the header line

    Returns:
        Formatted multi-line summary
    """
    if stats.total_rows == 0:
        return "No merged data available"

    lines = [f"📊 {title or 'Chart'} summary:"]
    lines.append(f"  Rows: {stats.total_rows}")
    lines.append(f"  Series: {stats.series_merged}")
    lines.append(f"  Points: {stats.total_points}")
    lines.append(f"  Range: {stats.first_key} to {stats.last_key}")
    lines.append(f"  Empty cells: {stats.missing_cells}")
    return "\n".join(lines)
