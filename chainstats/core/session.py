#!/usr/bin/env python3
# -*- coding: utf-8 -*-
"""
Chart session: all state owned by one chart instance and its pipeline.

The session holds the series registry, the fetched-series cache, the set of
in-flight fetches, failed series, the resolution, the stacking toggle and the
viewport. recompute() derives a ChartSpec from that state:

    cache -> resample (resolution) -> merge (visible series) -> viewport -> render

Fetch completions may arrive on worker threads in any order; state changes
go through one lock. A completion for a series removed while its fetch was in
flight is dropped.
"""
from __future__ import annotations

import logging
import threading
from concurrent.futures import ThreadPoolExecutor
from typing import Dict, List, Optional, Set

from ..shared.aggregation import SeriesMerger, get_merge_summary
from ..shared.config import ChartConfig
from ..shared.models import (
    ChartRow,
    ChartSpec,
    MetricPoint,
    Resolution,
    SeriesDescriptor,
    SeriesStatus,
    ViewportRange,
)
from ..shared.stats_client import StatsClientError
from .aggregation import resample_many
from .registry import SeriesRegistry
from .render import to_chart_spec
from .viewport import ViewportController

log = logging.getLogger(__name__)


class ChartSession:
    def __init__(
        self,
        title: str = "Chart",
        resolution: Resolution = Resolution.DAILY,
        stack_same_metrics: bool = False,
        registry: Optional[SeriesRegistry] = None,
        telemetry=None,
    ) -> None:
        self.title = title
        self.resolution = Resolution.parse(resolution)
        self.stack_same_metrics = stack_same_metrics
        self.registry = registry or SeriesRegistry()
        self.telemetry = telemetry
        self.viewport = ViewportController(self.resolution)
        self.merger = SeriesMerger()
        self._cache: Dict[str, List[MetricPoint]] = {}
        self._loading: Set[str] = set()
        self._failed: Dict[str, str] = {}
        self._lock = threading.RLock()

    # ----- configuration round-trip -------------------------------------

    @classmethod
    def from_config(cls, config: ChartConfig, telemetry=None) -> "ChartSession":
        return cls(
            title=config.title,
            resolution=config.resolution,
            stack_same_metrics=config.stack_same_metrics,
            registry=SeriesRegistry.from_dicts(config.series),
            telemetry=telemetry,
        )

    def to_config(self) -> ChartConfig:
        with self._lock:
            return ChartConfig(
                title=self.title,
                resolution=self.resolution,
                stack_same_metrics=self.stack_same_metrics,
                series=self.registry.to_dicts(),
            )

    # ----- registry operations ------------------------------------------

    def add_series(self, entity_id: str, entity_name: str, metric_key: str) -> SeriesDescriptor:
        with self._lock:
            return self.registry.add_series(entity_id, entity_name, metric_key)

    def remove_series(self, series_id: str) -> SeriesDescriptor:
        with self._lock:
            descriptor = self.registry.remove_series(series_id)
            self._cache.pop(series_id, None)
            self._failed.pop(series_id, None)
            # an in-flight fetch finishes on its own; complete_fetch drops the result
            self._loading.discard(series_id)
            self._update_loaded_gauge()
            return descriptor

    def toggle_visibility(self, series_id: str) -> SeriesDescriptor:
        with self._lock:
            return self.registry.toggle_visibility(series_id)

    def update_style(self, series_id: str, **changes) -> SeriesDescriptor:
        with self._lock:
            return self.registry.update_style(series_id, **changes)

    def reorder(self, from_index: int, to_index: int) -> List[SeriesDescriptor]:
        with self._lock:
            return self.registry.reorder(from_index, to_index)

    def set_resolution(self, resolution: Resolution) -> None:
        with self._lock:
            self.resolution = Resolution.parse(resolution)

    def set_stack_same_metrics(self, enabled: bool) -> None:
        with self._lock:
            self.stack_same_metrics = bool(enabled)

    def set_viewport(self, start: int, end: int) -> ViewportRange:
        """Brush drag: sync with the current table, then clamp the user range."""
        with self._lock:
            self.viewport.sync(len(self.build_table()), self.resolution)
            return self.viewport.set_range(start, end)

    # ----- fetch lifecycle ----------------------------------------------

    def cached_series(self, series_id: str) -> Optional[List[MetricPoint]]:
        with self._lock:
            points = self._cache.get(series_id)
            return list(points) if points is not None else None

    def status(self, series_id: str) -> SeriesStatus:
        with self._lock:
            if series_id in self._loading:
                return SeriesStatus.LOADING
            if series_id in self._cache:
                return SeriesStatus.LOADED
            if series_id in self._failed:
                return SeriesStatus.FAILED
            return SeriesStatus.IDLE

    def loading_ids(self) -> Set[str]:
        with self._lock:
            return set(self._loading)

    def failure_reason(self, series_id: str) -> Optional[str]:
        with self._lock:
            return self._failed.get(series_id)

    def begin_fetch(self, series_id: str) -> bool:
        """Mark a fetch in flight; False when cached, already loading or unknown."""
        with self._lock:
            if series_id not in self.registry:
                return False
            if series_id in self._loading or series_id in self._cache:
                return False
            self._loading.add(series_id)
            self._failed.pop(series_id, None)
            return True

    def complete_fetch(self, series_id: str, points: List[MetricPoint]) -> bool:
        """Store fetched points; False when the series was removed meanwhile."""
        with self._lock:
            self._loading.discard(series_id)
            if series_id not in self.registry:
                log.debug(f"Dropping fetch result for removed series {series_id}")
                return False
            self._cache[series_id] = list(points)
            self._update_loaded_gauge()
            return True

    def fail_fetch(self, series_id: str, error: Exception) -> None:
        with self._lock:
            self._loading.discard(series_id)
            if series_id in self.registry:
                self._failed[series_id] = str(error)
        log.warning(f"Series {series_id} failed to load: {error}")

    def retry(self, series_id: str, client) -> SeriesStatus:
        """Manual retry of a failed (or never loaded) series."""
        with self._lock:
            self._failed.pop(series_id, None)
        self._fetch_one(series_id, client)
        return self.status(series_id)

    def _fetch_one(self, series_id: str, client) -> None:
        with self._lock:
            descriptor = self.registry.get(series_id)
        if descriptor is None or not self.begin_fetch(series_id):
            return
        try:
            points = client.fetch_series(descriptor.entity_id, descriptor.metric_key)
        except StatsClientError as e:
            self.fail_fetch(series_id, e)
            return
        except Exception as e:
            # a failing series never aborts the batch
            log.exception(f"Unexpected error fetching {series_id}")
            self.fail_fetch(series_id, e)
            return
        self.complete_fetch(series_id, points)

    def pending_fetches(self) -> List[str]:
        """Visible series with an entity and metric that are neither cached nor in flight."""
        with self._lock:
            return [
                s.id for s in self.registry.visible_series()
                if s.entity_id and s.metric_key
                and s.id not in self._cache and s.id not in self._loading
            ]

    def load_visible(self, client, max_workers: int = 4) -> Dict[str, SeriesStatus]:
        """
        Fetch every pending visible series concurrently.

        Failures are recorded per series and never raised.
        """
        pending = self.pending_fetches()
        if pending:
            log.info(f"Fetching {len(pending)} series with {max_workers} workers")
            with ThreadPoolExecutor(max_workers=max_workers) as pool:
                for future in [pool.submit(self._fetch_one, sid, client) for sid in pending]:
                    future.result()
        return {series_id: self.status(series_id) for series_id in pending}

    def _update_loaded_gauge(self) -> None:
        if self.telemetry is not None:
            self.telemetry.set_loaded(len(self._cache))

    # ----- pipeline ------------------------------------------------------

    def resampled_series(self) -> Dict[str, List[MetricPoint]]:
        """Cached visible series at the current resolution."""
        with self._lock:
            cached = [s for s in self.registry.visible_series() if s.id in self._cache]
            return resample_many(
                {s.id: self._cache[s.id] for s in cached},
                {s.id: s.metric_key for s in cached},
                self.resolution,
            )

    def build_table(self) -> List[ChartRow]:
        return self.merger.merge(self.resampled_series())

    def recompute(self) -> ChartSpec:
        """Derive the chart description from the current state."""
        with self._lock:
            series_map = self.resampled_series()
            table = self.merger.merge(series_map)
            viewport = self.viewport.sync(len(table), self.resolution)
            spec = to_chart_spec(
                self.registry,
                table,
                viewport,
                stack_same_metrics=self.stack_same_metrics,
                resolution=self.resolution,
                title=self.title,
                loading_ids=self._loading,
            )
            log.debug(get_merge_summary(self.merger.merge_stats(series_map, table), self.title))
            return spec
