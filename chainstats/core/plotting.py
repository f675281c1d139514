#!/usr/bin/env python3
# -*- coding: utf-8 -*-
"""
PNG rendering of a ChartSpec with matplotlib

Draws each primitive in z_order on its left or right axis:
- line: plain line, missing cells break the line
- bar: bars offset side by side unless they share a stack group
- area: filled area; stacked groups are cumulated in draw order
"""
from __future__ import annotations

from pathlib import Path
from typing import Dict, List, Optional, Tuple

import matplotlib
matplotlib.use("Agg")  # non-interactive backend
import matplotlib.pyplot as plt
from matplotlib.ticker import FuncFormatter
import numpy as np

from ..shared.models import ChartRow, ChartSpec, ChartStyle, PlotPrimitive, YAxis
from ..shared.logging_setup import get_logger
from ..shared.utils import format_axis_label, format_compact_number

logger = get_logger(__name__)


def column_values(rows: List[ChartRow], data_key: str) -> np.ndarray:
    """Column as floats; rows without the key become NaN (a gap, not zero)."""
    return np.array([float(row[data_key]) if data_key in row else np.nan for row in rows], dtype=float)


def _tick_positions(count: int, max_ticks: int = 10) -> np.ndarray:
    if count <= max_ticks:
        return np.arange(count)
    return np.unique(np.linspace(0, count - 1, max_ticks).round().astype(int))


def render_chart_png(
    spec: ChartSpec,
    out_path: str,
    width: float = 12.0,
    height: float = 6.0,
    dpi: int = 150,
) -> Optional[str]:
    """
    Render a chart description to a PNG file.

    Returns:
        Path of the written file, or None when there is nothing to draw
    """
    if not spec.primitives or not spec.rows:
        return None

    x = np.arange(len(spec.rows))
    fig, ax_left = plt.subplots(figsize=(width, height))
    ax_right = ax_left.twinx() if spec.has_right_axis else None
    axes = {YAxis.LEFT: ax_left, YAxis.RIGHT: ax_right or ax_left}

    # Running baselines per (axis, stack group)
    baselines: Dict[Tuple[YAxis, str], np.ndarray] = {}
    bar_primitives = [p for p in spec.primitives if p.kind == ChartStyle.BAR]
    bar_slots: Dict[str, int] = {}
    for p in bar_primitives:
        slot_key = p.stack_group or p.series_id
        bar_slots.setdefault(slot_key, len(bar_slots))
    bar_width = 0.8 / max(1, len(bar_slots))

    try:
        for primitive in spec.primitives:
            ax = axes[primitive.axis_id]
            values = column_values(spec.rows, primitive.data_key)
            bottom = _baseline(baselines, primitive, len(x))
            if primitive.kind == ChartStyle.LINE:
                ax.plot(x, values, color=primitive.color, linewidth=2, label=primitive.name)
            elif primitive.kind == ChartStyle.BAR:
                slot = bar_slots[primitive.stack_group or primitive.series_id]
                offset = (slot - (len(bar_slots) - 1) / 2.0) * bar_width
                ax.bar(x + offset, np.nan_to_num(values), width=bar_width, bottom=bottom,
                       color=primitive.color, label=primitive.name)
            else:
                top = bottom + np.nan_to_num(values)
                mask = ~np.isnan(values)
                ax.fill_between(x, bottom, top, where=mask, color=primitive.color,
                                alpha=0.6 if primitive.stack_group else 0.3, linewidth=1,
                                label=primitive.name)
            if primitive.stack_group:
                baselines[(primitive.axis_id, primitive.stack_group)] = bottom + np.nan_to_num(values)

        ticks = _tick_positions(len(spec.rows))
        ax_left.set_xticks(ticks)
        ax_left.set_xticklabels(
            [format_axis_label(str(spec.rows[i]["date"]), spec.resolution.value) for i in ticks],
            rotation=0,
        )
        compact = FuncFormatter(lambda v, _pos: format_compact_number(v))
        ax_left.yaxis.set_major_formatter(compact)
        if ax_right is not None:
            ax_right.yaxis.set_major_formatter(compact)
        ax_left.grid(True, axis="y", linestyle="--", alpha=0.4)
        ax_left.set_title(spec.title)

        handles, labels = ax_left.get_legend_handles_labels()
        if ax_right is not None:
            h2, l2 = ax_right.get_legend_handles_labels()
            handles, labels = handles + h2, labels + l2
        if handles:
            ax_left.legend(handles, labels, loc="upper left", fontsize="small")

        out = Path(out_path)
        out.parent.mkdir(parents=True, exist_ok=True)
        fig.tight_layout()
        fig.savefig(out, dpi=dpi)
        logger.debug(f"Rendered {len(spec.primitives)} series over {len(spec.rows)} rows to {out}")
        return str(out)
    finally:
        plt.close(fig)


def _baseline(baselines: Dict[Tuple[YAxis, str], np.ndarray], primitive: PlotPrimitive, length: int) -> np.ndarray:
    if primitive.stack_group is None:
        return np.zeros(length)
    return baselines.get((primitive.axis_id, primitive.stack_group), np.zeros(length))
