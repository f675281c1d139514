#!/usr/bin/env python3
# -*- coding: utf-8 -*-
"""
Domain Models for the chainstats chart engine
Defines series descriptors, metric points, viewport ranges and chart specs.
"""

from dataclasses import dataclass, field, asdict
from enum import Enum
from typing import Any, Dict, List, Optional


class Resolution(str, Enum):
    """Temporal bucket granularity of a chart"""
    DAILY = "D"
    WEEKLY = "W"
    MONTHLY = "M"
    QUARTERLY = "Q"
    YEARLY = "Y"

    @classmethod
    def parse(cls, value: Any) -> "Resolution":
        if isinstance(value, cls):
            return value
        text = str(value or "").strip().upper()
        for member in cls:
            if member.value == text:
                return member
        raise ValueError(f"resolution must be one of {[m.value for m in cls]}, got {value!r}")


class ChartStyle(str, Enum):
    LINE = "line"
    BAR = "bar"
    AREA = "area"

    @classmethod
    def parse(cls, value: Any) -> "ChartStyle":
        if isinstance(value, cls):
            return value
        return cls(str(value).strip().lower())


class YAxis(str, Enum):
    LEFT = "left"
    RIGHT = "right"

    @classmethod
    def parse(cls, value: Any) -> "YAxis":
        if isinstance(value, cls):
            return value
        return cls(str(value).strip().lower())


class Aggregation(str, Enum):
    """How daily values collapse into a coarser bucket"""
    SUM = "sum"
    MAX = "max"


class SeriesStatus(str, Enum):
    IDLE = "idle"
    LOADING = "loading"
    LOADED = "loaded"
    FAILED = "failed"


# A merged table row: {"date": bucket_key, <series_id>: value, ...}
ChartRow = Dict[str, Any]


@dataclass(frozen=True)
class MetricPoint:
    """
    One sample of a metric series

    date is an ISO calendar day (YYYY-MM-DD) for raw daily data, or a bucket
    key (YYYY-MM-DD week start, YYYY-MM, YYYY-Qn, YYYY) after resampling.
    """
    date: str
    value: float

    def __post_init__(self):
        if not self.date or not str(self.date).strip():
            raise ValueError("MetricPoint date cannot be empty")


def make_series_id(entity_id: str, metric_key: str) -> str:
    """Composite key identifying an (entity, metric) pair"""
    return f"{entity_id}-{metric_key}"


@dataclass
class SeriesDescriptor:
    """
    One plotted series bound to an (entity, metric) pair

    z_order controls paint order: lower values paint first (behind).
    """
    id: str
    entity_id: str
    entity_name: str
    metric_key: str
    color: str
    y_axis: YAxis = YAxis.LEFT
    chart_style: ChartStyle = ChartStyle.LINE
    visible: bool = True
    stack_group: Optional[str] = None
    z_order: int = 1
    name: str = ""

    def __post_init__(self):
        if not self.id or not self.id.strip():
            raise ValueError("series id cannot be empty")
        self.y_axis = YAxis.parse(self.y_axis)
        self.chart_style = ChartStyle.parse(self.chart_style)
        if self.z_order < 1:
            raise ValueError("z_order must be >= 1")

    def to_dict(self) -> Dict[str, Any]:
        data = asdict(self)
        data["y_axis"] = self.y_axis.value
        data["chart_style"] = self.chart_style.value
        return data


@dataclass(frozen=True)
class ViewportRange:
    """Inclusive index range into a merged table"""
    start_index: int
    end_index: int

    def __post_init__(self):
        if self.start_index < 0 or self.end_index < self.start_index:
            raise ValueError(
                f"invalid viewport range: start={self.start_index}, end={self.end_index}"
            )

    def __len__(self) -> int:
        return self.end_index - self.start_index + 1


@dataclass
class MergeStats:
    """Statistics about one merge of cached series into a table"""
    total_rows: int
    series_merged: int
    total_points: int
    first_key: Optional[str] = None
    last_key: Optional[str] = None
    missing_cells: int = 0

    def __post_init__(self):
        if any(count < 0 for count in [self.total_rows, self.series_merged, self.total_points, self.missing_cells]):
            raise ValueError("Counts cannot be negative")


@dataclass(frozen=True)
class PlotPrimitive:
    """A single line/bar/area handed to the charting surface"""
    series_id: str
    kind: ChartStyle
    data_key: str
    axis_id: YAxis
    color: str
    name: str
    z_order: int
    stack_group: Optional[str] = None

    def to_dict(self) -> Dict[str, Any]:
        return {
            "series_id": self.series_id,
            "kind": self.kind.value,
            "data_key": self.data_key,
            "axis_id": self.axis_id.value,
            "color": self.color,
            "name": self.name,
            "z_order": self.z_order,
            "stack_group": self.stack_group,
        }


@dataclass
class ChartSpec:
    """
    Declarative chart description produced by the render adapter

    primitives are ordered by ascending z_order (drawn first = behind), rows
    is the viewport slice of the merged table.
    """
    title: str
    resolution: Resolution
    primitives: List[PlotPrimitive] = field(default_factory=list)
    rows: List[ChartRow] = field(default_factory=list)
    viewport: Optional[ViewportRange] = None

    @property
    def has_left_axis(self) -> bool:
        return any(p.axis_id == YAxis.LEFT for p in self.primitives)

    @property
    def has_right_axis(self) -> bool:
        return any(p.axis_id == YAxis.RIGHT for p in self.primitives)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "title": self.title,
            "resolution": self.resolution.value,
            "primitives": [p.to_dict() for p in self.primitives],
            "rows": [dict(row) for row in self.rows],
            "viewport": (
                {"start_index": self.viewport.start_index, "end_index": self.viewport.end_index}
                if self.viewport is not None else None
            ),
            "has_left_axis": self.has_left_axis,
            "has_right_axis": self.has_right_axis,
        }
