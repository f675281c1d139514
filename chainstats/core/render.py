#!/usr/bin/env python3
# -*- coding: utf-8 -*-
"""
Render adapter: registry + merged table + viewport -> ChartSpec.

Only visible series become primitives, ordered by ascending z_order so later
(higher) series draw on top. With stacking enabled, bar and area series that
share a metric and have at least one visible peer get the stack group
"stack-<metric_key>"; lines never stack. A bar or area series with its own
stack_group set keeps that group whether or not the toggle is on.
"""
from __future__ import annotations

from collections import defaultdict
from typing import Dict, Iterable, List, Optional

from ..shared.models import (
    ChartRow,
    ChartSpec,
    ChartStyle,
    PlotPrimitive,
    Resolution,
    SeriesDescriptor,
    ViewportRange,
)
from .registry import SeriesRegistry
from .viewport import slice_rows


def stack_group_id(metric_key: str) -> str:
    return f"stack-{metric_key}"


def _stack_groups(visible: List[SeriesDescriptor], stack_same_metrics: bool) -> Dict[str, Optional[str]]:
    groups: Dict[str, Optional[str]] = {}
    by_metric: Dict[str, List[SeriesDescriptor]] = defaultdict(list)
    for series in visible:
        # an explicit group on a bar/area series wins over the metric toggle
        if series.chart_style != ChartStyle.LINE and series.stack_group:
            groups[series.id] = series.stack_group
        else:
            groups[series.id] = None
            by_metric[series.metric_key].append(series)
    if not stack_same_metrics:
        return groups
    for metric_key, members in by_metric.items():
        if len(members) < 2:
            continue
        for series in members:
            if series.chart_style != ChartStyle.LINE:
                groups[series.id] = stack_group_id(metric_key)
    return groups


def to_chart_spec(
    registry: SeriesRegistry,
    table: List[ChartRow],
    viewport: Optional[ViewportRange],
    stack_same_metrics: bool = False,
    resolution: Resolution = Resolution.DAILY,
    title: str = "Chart",
    loading_ids: Iterable[str] = (),
) -> ChartSpec:
    """
    Build the declarative chart description.

    Args:
        registry: Series registry (visibility, style, axis, z_order)
        table: Merged table at the chart's resolution
        viewport: Visible range, None to show the whole table
        stack_same_metrics: Global "stack same metrics" toggle
        resolution: Resolution the table was built at
        title: Chart title
        loading_ids: Series still being fetched; they are left out

    Returns:
        ChartSpec with primitives in draw order and the sliced rows
    """
    loading = set(loading_ids)
    visible = registry.visible_series()
    groups = _stack_groups(visible, stack_same_metrics)

    primitives = [
        PlotPrimitive(
            series_id=series.id,
            kind=series.chart_style,
            data_key=series.id,
            axis_id=series.y_axis,
            color=series.color,
            name=series.name or series.id,
            z_order=series.z_order,
            stack_group=groups[series.id],
        )
        for series in visible
        if series.id not in loading
    ]
    return ChartSpec(
        title=title,
        resolution=Resolution.parse(resolution),
        primitives=primitives,
        rows=slice_rows(table, viewport),
        viewport=viewport,
    )
