#!/usr/bin/env python3
# -*- coding: utf-8 -*-
"""
Viewport (brush) control over a merged chart table.

Daily charts open on the most recent 90 rows, coarser resolutions on the full
range. The default is recomputed when the resolution changes or when the
table goes from empty to non-empty; user ranges are clamped to the table.
"""
from __future__ import annotations

import logging
from typing import List, Optional

import numpy as np

from ..shared.models import ChartRow, Resolution, ViewportRange

log = logging.getLogger(__name__)

DAILY_WINDOW = 90


class ViewportError(Exception):
    pass


def compute_default_range(table_length: int, resolution: Resolution) -> Optional[ViewportRange]:
    """
    Default brush range for a table.

    Returns:
        None for an empty table, otherwise the last DAILY_WINDOW rows at D
        resolution and the full range for W/M/Q/Y.
    """
    if table_length <= 0:
        return None
    end = table_length - 1
    if Resolution.parse(resolution) == Resolution.DAILY:
        return ViewportRange(start_index=max(0, table_length - DAILY_WINDOW), end_index=end)
    return ViewportRange(start_index=0, end_index=end)


def clamp_range(start: int, end: int, table_length: int) -> ViewportRange:
    """Clamp both bounds into [0, table_length-1], swapping reversed bounds."""
    if table_length <= 0:
        raise ViewportError("Cannot set a viewport on an empty table")
    lo, hi = (start, end) if start <= end else (end, start)
    lo, hi = np.clip([lo, hi], 0, table_length - 1).tolist()
    return ViewportRange(start_index=int(lo), end_index=int(hi))


class ViewportController:
    """Tracks the visible sub-range of one chart's merged table."""

    def __init__(self, resolution: Resolution = Resolution.DAILY) -> None:
        self.resolution = Resolution.parse(resolution)
        self.table_length = 0
        self.range: Optional[ViewportRange] = None

    def sync(self, table_length: int, resolution: Resolution) -> Optional[ViewportRange]:
        """
        Reconcile the range with the current table length and resolution.

        Resets to the default when the resolution changed or the table went
        from empty to non-empty; otherwise re-clamps the existing range.
        """
        resolution = Resolution.parse(resolution)
        resolution_changed = resolution != self.resolution
        became_non_empty = self.table_length == 0 and table_length > 0
        self.resolution = resolution
        self.table_length = max(0, table_length)

        if self.table_length == 0:
            self.range = None
        elif resolution_changed or became_non_empty or self.range is None:
            self.range = compute_default_range(self.table_length, resolution)
            log.debug(f"Viewport reset to {self.range} ({resolution.value}, {table_length} rows)")
        else:
            self.range = clamp_range(self.range.start_index, self.range.end_index, self.table_length)
        return self.range

    def set_range(self, start: int, end: int) -> ViewportRange:
        """User-driven override (brush drag), clamped to the table."""
        self.range = clamp_range(start, end, self.table_length)
        return self.range


def slice_rows(table: List[ChartRow], viewport: Optional[ViewportRange]) -> List[ChartRow]:
    """Inclusive slice of the table; the whole table when there is no range."""
    if viewport is None:
        return list(table)
    return table[viewport.start_index:viewport.end_index + 1]
