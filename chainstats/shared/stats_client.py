#!/usr/bin/env python3
# -*- coding: utf-8 -*-
"""
Chain-stats HTTP client for chainstats
Fetches a chain's metric time series and normalizes it into MetricPoints.
"""

import json
import logging
import time
from typing import Any, Dict, List, Optional

import requests

from .config import StatsApiConfig
from .models import MetricPoint
from .utils import parse_calendar_day, parse_metric_value, retry_with_backoff
from .metrics_catalog import get_metric


class StatsClientError(Exception):
    """Base exception for chain-stats API operations"""
    pass


class StatsConnectionError(StatsClientError):
    """Connection-related errors (refused, DNS, timeout)"""
    pass


class StatsHTTPError(StatsClientError):
    """Non-2xx responses"""

    def __init__(self, status_code: int, message: str):
        super().__init__(message)
        self.status_code = status_code


class StatsPayloadError(StatsClientError):
    """Response body does not have the expected shape"""
    pass


class StatsClient:
    """
    HTTP client for the chain-stats endpoint

    Handles:
    - One GET per (entity, metric) request
    - Envelope extraction ({current_value, data} or {daily, weekly, monthly})
    - Field normalization (messageCount -> value for ICM messages)
    - Chronological ordering (newest-first payloads are reversed)
    """

    def __init__(self, config: StatsApiConfig, telemetry=None, session: Optional[requests.Session] = None):
        """
        Args:
            config: API connection configuration
            telemetry: Optional FetchTelemetry recording outcomes and latency
            session: Optional pre-built requests session
        """
        self.config = config
        self.telemetry = telemetry
        self.logger = logging.getLogger(self.__class__.__name__)

        self.session = session or requests.Session()
        self.session.headers.update({
            'Accept': 'application/json',
            'User-Agent': 'chainstats/1.0',
        })
        self.logger.info(f"Initialized chain-stats client: {self.config.base_url}")

    def series_url(self, entity_id: str) -> str:
        return f"{self.config.base_url}{self.config.series_path.format(entity_id=entity_id)}"

    def _get_json(self, entity_id: str) -> Dict[str, Any]:
        """
        Fetch the raw chain-stats document for one entity

        Raises:
            StatsConnectionError: Connection issues or timeout
            StatsHTTPError: Non-2xx response
            StatsPayloadError: Body is not a JSON object
        """
        url = self.series_url(entity_id)

        def _do_request():
            self.logger.debug(f"GET {url}")
            try:
                response = self.session.get(
                    url,
                    params={'timeRange': self.config.time_range},
                    timeout=self.config.timeout,
                )
            except requests.exceptions.Timeout as e:
                raise StatsConnectionError(f"Request timeout for {url}: {e}")
            except requests.exceptions.RequestException as e:
                raise StatsConnectionError(f"Failed to reach {url}: {e}")

            if not 200 <= response.status_code < 300:
                raise StatsHTTPError(response.status_code, f"HTTP {response.status_code} from {url}")

            try:
                return response.json()
            except (json.JSONDecodeError, ValueError) as e:
                raise StatsPayloadError(f"Invalid JSON response from {url}: {e}")

        result = retry_with_backoff(
            _do_request,
            max_attempts=self.config.max_attempts,
            base_delay=1.0,
            exceptions=(StatsConnectionError, StatsHTTPError),
        )
        if not isinstance(result, dict):
            raise StatsPayloadError(f"Expected a JSON object from {url}, got {type(result).__name__}")
        return result

    @staticmethod
    def _extract_envelope(document: Dict[str, Any], metric_key: str) -> Dict[str, Any]:
        envelope = document.get(metric_key)
        if envelope is None:
            raise StatsPayloadError(f"Metric {metric_key} not found")
        if not isinstance(envelope, dict):
            raise StatsPayloadError(f"Metric {metric_key} must be an object")
        # Some metrics are served per window: {daily, weekly, monthly}
        if "data" not in envelope and isinstance(envelope.get("daily"), dict):
            envelope = envelope["daily"]
        if not isinstance(envelope.get("data"), list):
            raise StatsPayloadError(f"Metric {metric_key} has no 'data' list")
        return envelope

    def parse_series(self, document: Dict[str, Any], metric_key: str) -> List[MetricPoint]:
        """
        Map a chain-stats document into ascending MetricPoints for one metric

        Raises:
            StatsPayloadError: If the metric or its points are malformed
        """
        definition = get_metric(metric_key)
        value_field = definition.value_field if definition else "value"
        envelope = self._extract_envelope(document, metric_key)

        points: List[MetricPoint] = []
        for idx, raw in enumerate(envelope["data"]):
            if not isinstance(raw, dict) or "date" not in raw or value_field not in raw:
                raise StatsPayloadError(f"Point {idx} of {metric_key} lacks 'date'/'{value_field}'")
            try:
                day = parse_calendar_day(raw["date"])
                value = parse_metric_value(raw[value_field])
            except ValueError as e:
                raise StatsPayloadError(f"Point {idx} of {metric_key}: {e}")
            points.append(MetricPoint(date=day.isoformat(), value=value))

        if len(points) > 1 and points[0].date > points[-1].date:
            points.reverse()
        return points

    def fetch_series(self, entity_id: str, metric_key: str) -> List[MetricPoint]:
        """
        Fetch one metric series for one entity

        Args:
            entity_id: Chain identifier
            metric_key: Metric key from the catalog

        Returns:
            Points in ascending date order (may be empty)

        Raises:
            ValueError: Unknown metric key or empty entity id
            StatsClientError: Network, HTTP or payload failure
        """
        if not entity_id or not str(entity_id).strip():
            raise ValueError("entity_id cannot be empty")
        if get_metric(metric_key) is None:
            raise ValueError(f"Unknown metric key: {metric_key}")

        started = time.monotonic()
        outcome = "error"
        try:
            document = self._get_json(entity_id)
            points = self.parse_series(document, metric_key)
            outcome = "success"
            self.logger.info(f"Fetched {len(points)} points of {metric_key} for chain {entity_id}")
            return points
        except StatsClientError as e:
            self.logger.error(f"Error fetching {metric_key} for chain {entity_id}: {e}")
            raise
        finally:
            if self.telemetry is not None:
                self.telemetry.observe_fetch(metric_key, outcome, time.monotonic() - started)

    def close(self) -> None:
        self.session.close()


def create_stats_client(config: StatsApiConfig, telemetry=None) -> StatsClient:
    """Factory mirroring the config-driven construction used by the runner"""
    return StatsClient(config, telemetry=telemetry)
