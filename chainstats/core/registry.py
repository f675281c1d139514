#!/usr/bin/env python3
# -*- coding: utf-8 -*-
"""
Series registry: the ordered list of user-configured chart series.

Notes:
- Series ids are "<entity_id>-<metric_key>"; adding an existing pair toggles
  its visibility instead of duplicating it.
- z_order values always form the permutation 1..N after a mutation.
- Default colors cycle through an 8-color palette by registry size.
- A new series reuses the axis of the first series with the same metric,
  otherwise alternates left/right by registry size parity.
"""
from __future__ import annotations

import logging
from dataclasses import fields
from typing import Any, Dict, Iterable, Iterator, List, Optional

from ..shared.models import ChartStyle, SeriesDescriptor, YAxis, make_series_id
from ..shared.metrics_catalog import metric_display_name

DEFAULT_COLORS = [
    "#FF6B35",  # Orange
    "#4ECDC4",  # Cyan
    "#45B7D1",  # Blue
    "#FFA07A",  # Light Salmon
    "#98D8C8",  # Mint
    "#F7DC6F",  # Yellow
    "#A855F7",  # Purple
    "#EC4899",  # Pink
]

# Fields a style update may touch; identity fields and z_order are not editable
STYLE_FIELDS = {"color", "y_axis", "chart_style", "visible", "name", "stack_group"}


class RegistryError(Exception):
    pass


def default_color(registry_size: int) -> str:
    return DEFAULT_COLORS[registry_size % len(DEFAULT_COLORS)]


def default_axis(existing: List[SeriesDescriptor], metric_key: str) -> YAxis:
    for series in existing:
        if series.metric_key == metric_key:
            return series.y_axis
    return YAxis.LEFT if len(existing) % 2 == 0 else YAxis.RIGHT


class SeriesRegistry:
    def __init__(self, series: Optional[Iterable[SeriesDescriptor]] = None) -> None:
        self._series: List[SeriesDescriptor] = []
        self.logger = logging.getLogger(self.__class__.__name__)
        for descriptor in series or []:
            if self.get(descriptor.id) is not None:
                raise RegistryError(f"Duplicate series id: {descriptor.id}")
            self._series.append(descriptor)
        self._renumber(sort_by_z=True)

    def __len__(self) -> int:
        return len(self._series)

    def __iter__(self) -> Iterator[SeriesDescriptor]:
        return iter(list(self._series))

    def __contains__(self, series_id: object) -> bool:
        return self.get(str(series_id)) is not None

    @property
    def series(self) -> List[SeriesDescriptor]:
        return list(self._series)

    def get(self, series_id: str) -> Optional[SeriesDescriptor]:
        for descriptor in self._series:
            if descriptor.id == series_id:
                return descriptor
        return None

    def _require(self, series_id: str) -> SeriesDescriptor:
        descriptor = self.get(series_id)
        if descriptor is None:
            raise RegistryError(f"Unknown series id: {series_id}")
        return descriptor

    def _index_of(self, series_id: str) -> int:
        for idx, descriptor in enumerate(self._series):
            if descriptor.id == series_id:
                return idx
        raise RegistryError(f"Unknown series id: {series_id}")

    def _renumber(self, sort_by_z: bool = False) -> None:
        if sort_by_z:
            # stable: ties keep their list position
            self._series.sort(key=lambda s: s.z_order)
        for idx, descriptor in enumerate(self._series):
            descriptor.z_order = idx + 1

    def add_series(self, entity_id: str, entity_name: str, metric_key: str) -> SeriesDescriptor:
        """
        Add an (entity, metric) series, or toggle it if already present.

        Returns:
            The new descriptor, or the existing one after toggling visibility
        """
        if not entity_id or not metric_key:
            raise RegistryError("entity_id and metric_key are required")

        series_id = make_series_id(entity_id, metric_key)
        existing = self.get(series_id)
        if existing is not None:
            existing.visible = not existing.visible
            self.logger.debug(f"Series {series_id} already registered, visible={existing.visible}")
            return existing

        max_z = max((s.z_order for s in self._series), default=0)
        descriptor = SeriesDescriptor(
            id=series_id,
            entity_id=entity_id,
            entity_name=entity_name,
            metric_key=metric_key,
            color=default_color(len(self._series)),
            y_axis=default_axis(self._series, metric_key),
            chart_style=ChartStyle.LINE,
            visible=True,
            z_order=max_z + 1,
            name=f"{entity_name}: {metric_display_name(metric_key)}",
        )
        self._series.append(descriptor)
        self.logger.info(f"Added series {series_id} ({descriptor.y_axis.value} axis, z={descriptor.z_order})")
        return descriptor

    def remove_series(self, series_id: str) -> SeriesDescriptor:
        descriptor = self._series.pop(self._index_of(series_id))
        self._renumber(sort_by_z=True)
        self.logger.info(f"Removed series {series_id}")
        return descriptor

    def toggle_visibility(self, series_id: str) -> SeriesDescriptor:
        descriptor = self._require(series_id)
        descriptor.visible = not descriptor.visible
        return descriptor

    def update_style(self, series_id: str, **changes: Any) -> SeriesDescriptor:
        """
        Partially update display properties of one series.

        Raises:
            RegistryError: Unknown id, non-style field or invalid value
        """
        descriptor = self._require(series_id)
        unknown = set(changes) - STYLE_FIELDS
        if unknown:
            raise RegistryError(f"Cannot update fields {sorted(unknown)} on series {series_id}")
        try:
            if "y_axis" in changes:
                changes["y_axis"] = YAxis.parse(changes["y_axis"])
            if "chart_style" in changes:
                changes["chart_style"] = ChartStyle.parse(changes["chart_style"])
        except ValueError as e:
            raise RegistryError(f"Invalid style for {series_id}: {e}")
        for key, value in changes.items():
            setattr(descriptor, key, value)
        return descriptor

    def reorder(self, from_index: int, to_index: int) -> List[SeriesDescriptor]:
        """Move one series to a new list position and renumber z_order 1..N."""
        size = len(self._series)
        if not (0 <= from_index < size) or not (0 <= to_index < size):
            raise RegistryError(f"Reorder indices out of range: {from_index} -> {to_index} (size {size})")
        moved = self._series.pop(from_index)
        self._series.insert(to_index, moved)
        self._renumber()
        return self.series

    def move_to_drop_target(self, dragged_index: int, target_index: int) -> List[SeriesDescriptor]:
        """
        Drag-and-drop reorder: drop the dragged chip onto the chip at target_index.

        Dragging forward inserts before the target's shifted position.
        """
        if dragged_index == target_index:
            return self.series
        insert_index = target_index - 1 if dragged_index < target_index else target_index
        return self.reorder(dragged_index, insert_index)

    def visible_series(self) -> List[SeriesDescriptor]:
        """Visible series, lowest z_order first (painted behind)."""
        return sorted((s for s in self._series if s.visible), key=lambda s: s.z_order)

    def to_dicts(self) -> List[Dict[str, Any]]:
        return [s.to_dict() for s in self._series]

    @classmethod
    def from_dicts(cls, items: Iterable[Dict[str, Any]]) -> "SeriesRegistry":
        """
        Hydrate a registry from saved series dicts.

        Missing fields take positional defaults: id "series-<idx>", palette
        color by index, left axis, visible, line style, z_order idx+1.
        """
        allowed = {f.name for f in fields(SeriesDescriptor)}
        descriptors = []
        for idx, raw in enumerate(items):
            if not isinstance(raw, dict):
                raise RegistryError(f"Series entry {idx} must be a mapping")
            unknown = set(raw) - allowed
            if unknown:
                raise RegistryError(f"Unknown series fields {sorted(unknown)} in entry {idx}")
            entity_id = str(raw.get("entity_id") or "")
            metric_key = str(raw.get("metric_key") or "")
            if raw.get("id"):
                series_id = str(raw["id"])
            elif entity_id and metric_key:
                series_id = make_series_id(entity_id, metric_key)
            else:
                series_id = f"series-{idx}"
            entity_name = str(raw.get("entity_name") or "")
            try:
                descriptors.append(SeriesDescriptor(
                    id=series_id,
                    entity_id=entity_id,
                    entity_name=entity_name,
                    metric_key=metric_key,
                    color=raw.get("color") or default_color(idx),
                    y_axis=raw.get("y_axis") or YAxis.LEFT,
                    chart_style=raw.get("chart_style") or ChartStyle.LINE,
                    visible=bool(raw.get("visible", True)),
                    stack_group=raw.get("stack_group"),
                    z_order=int(raw["z_order"]) if raw.get("z_order") is not None else idx + 1,
                    name=raw.get("name") or (
                        f"{entity_name}: {metric_display_name(metric_key)}" if entity_name else f"Series {idx + 1}"
                    ),
                ))
            except (TypeError, ValueError) as e:
                raise RegistryError(f"Invalid series entry {idx}: {e}")
        return cls(descriptors)
