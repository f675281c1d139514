#!/usr/bin/env python3
# -*- coding: utf-8 -*-
"""
Prometheus telemetry for series fetches using prometheus_client.
"""
from __future__ import annotations

import logging
import threading
from typing import Optional

from prometheus_client import CollectorRegistry, Counter, Gauge, Histogram, generate_latest, start_http_server

log = logging.getLogger(__name__)


class FetchTelemetry:
    """Fetch counters, latency histogram and loaded-series gauge in a private registry."""

    def __init__(self, prefix: str = "chainstats_") -> None:
        self.registry = CollectorRegistry()
        self.fetch_total = Counter(
            f"{prefix}fetch_total", "Series fetches by metric and outcome",
            ['metric', 'outcome'], registry=self.registry,
        )
        self.fetch_seconds = Histogram(
            f"{prefix}fetch_seconds", "Series fetch latency (seconds)",
            ['metric'], registry=self.registry,
        )
        self.series_loaded = Gauge(
            f"{prefix}series_loaded", "Series currently held in the chart cache",
            registry=self.registry,
        )
        self._server_started = False
        self._lock = threading.Lock()

    def observe_fetch(self, metric: str, outcome: str, seconds: float) -> None:
        self.fetch_total.labels(metric=metric, outcome=outcome).inc()
        self.fetch_seconds.labels(metric=metric).observe(max(0.0, seconds))

    def set_loaded(self, count: int) -> None:
        self.series_loaded.set(count)

    def render(self) -> bytes:
        return generate_latest(self.registry)

    def start_http(self, port: int, addr: str = "0.0.0.0") -> None:
        """Expose /metrics on the given port (idempotent)."""
        with self._lock:
            if self._server_started:
                return
            start_http_server(port, addr=addr, registry=self.registry)
            self._server_started = True
        log.info(f"Telemetry listening on {addr}:{port}")


def create_telemetry(enabled: bool, port: Optional[int] = None) -> Optional[FetchTelemetry]:
    if not enabled:
        return None
    telemetry = FetchTelemetry()
    if port:
        telemetry.start_http(port)
    return telemetry
