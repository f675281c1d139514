#!/usr/bin/env python3
# -*- coding: utf-8 -*-
"""
Metric catalog for chain statistics.

Lists every metric a chart can plot, its display name, the field that carries
the value in the chain-stats payload, and how it collapses when resampled.

Notes:
- Running totals (cumulative*) aggregate by max; summing them would double count.
- Keys missing from the catalog fall back to the name heuristic: a key
  containing "cumulative" (any case) is a running total, everything else sums.
  A semantically cumulative metric without that substring is summed.
"""
from __future__ import annotations

from dataclasses import dataclass
from typing import Dict, List, Optional

from .models import Aggregation


@dataclass(frozen=True)
class MetricDefinition:
    key: str
    name: str
    aggregation: Aggregation = Aggregation.SUM
    value_field: str = "value"


_DEFINITIONS: List[MetricDefinition] = [
    MetricDefinition("activeAddresses", "Active Addresses"),
    MetricDefinition("activeSenders", "Active Senders"),
    MetricDefinition("cumulativeAddresses", "Cumulative Addresses", Aggregation.MAX),
    MetricDefinition("cumulativeDeployers", "Cumulative Deployers", Aggregation.MAX),
    MetricDefinition("txCount", "Transactions"),
    MetricDefinition("cumulativeTxCount", "Cumulative Transactions", Aggregation.MAX),
    MetricDefinition("cumulativeContracts", "Cumulative Contracts", Aggregation.MAX),
    MetricDefinition("contracts", "Contracts"),
    MetricDefinition("deployers", "Deployers"),
    MetricDefinition("gasUsed", "Gas Used"),
    MetricDefinition("avgGps", "Avg GPS"),
    MetricDefinition("maxGps", "Max GPS"),
    MetricDefinition("avgTps", "Avg TPS"),
    MetricDefinition("maxTps", "Max TPS"),
    MetricDefinition("avgGasPrice", "Avg Gas Price"),
    MetricDefinition("maxGasPrice", "Max Gas Price"),
    MetricDefinition("feesPaid", "Fees Paid"),
    MetricDefinition("icmMessages", "ICM Messages", value_field="messageCount"),
]

METRICS: Dict[str, MetricDefinition] = {d.key: d for d in _DEFINITIONS}


def get_metric(metric_key: str) -> Optional[MetricDefinition]:
    return METRICS.get(metric_key)


def is_known_metric(metric_key: str) -> bool:
    return metric_key in METRICS


def metric_display_name(metric_key: str) -> str:
    definition = METRICS.get(metric_key)
    return definition.name if definition else metric_key


def is_cumulative_name(metric_key: str) -> bool:
    return "cumulative" in (metric_key or "").lower()


def aggregation_for(metric_key: str) -> Aggregation:
    """Catalog policy when the metric is known, otherwise the name heuristic."""
    definition = METRICS.get(metric_key)
    if definition is not None:
        return definition.aggregation
    return Aggregation.MAX if is_cumulative_name(metric_key) else Aggregation.SUM


def search_metrics(term: str) -> List[MetricDefinition]:
    """Case-insensitive substring match on display names, catalog order."""
    needle = (term or "").strip().lower()
    return [d for d in _DEFINITIONS if needle in d.name.lower()]
