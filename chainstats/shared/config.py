#!/usr/bin/env python3
# -*- coding: utf-8 -*-
"""
Configuration System for chainstats
Handles YAML configuration loading, validation, and CLI overrides.
"""

import copy
import yaml
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Dict, List, Optional

from .models import Resolution


@dataclass
class StatsApiConfig:
    """Chain-stats HTTP API connection configuration"""
    base_url: str = "https://build.avax.network"
    series_path: str = "/api/chain-stats/{entity_id}"
    time_range: str = "all"
    timeout: int = 10
    max_attempts: int = 1  # 1 = no automatic retry
    max_workers: int = 4

    def __post_init__(self):
        """Validate connection parameters"""
        if not self.base_url or not str(self.base_url).strip():
            raise ValueError("API base_url cannot be empty")
        if "{entity_id}" not in self.series_path:
            raise ValueError("series_path must contain the '{entity_id}' placeholder")
        if self.timeout <= 0:
            raise ValueError("Timeout must be positive")
        if self.max_attempts < 1:
            raise ValueError("max_attempts must be >= 1")
        if self.max_workers < 1:
            raise ValueError("max_workers must be >= 1")
        self.base_url = str(self.base_url).strip().rstrip("/")


@dataclass
class LoggingConfig:
    level: str = "INFO"
    file: Optional[str] = None

    def __post_init__(self):
        valid_levels = ["DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"]
        if str(self.level).upper() not in valid_levels:
            raise ValueError(f"logging level must be one of: {valid_levels}")
        self.level = str(self.level).upper()


@dataclass
class OutputConfig:
    """Output configuration for chart specs and images"""
    dir: str = "output"
    dpi: int = 150
    chart_width: float = 12.0
    chart_height: float = 6.0
    include_png: bool = False

    def __post_init__(self):
        if self.dpi <= 0:
            raise ValueError("DPI must be positive")
        if self.chart_width <= 0 or self.chart_height <= 0:
            raise ValueError("Chart dimensions must be positive")


@dataclass
class TelemetryConfig:
    """Prometheus exposition of fetch counters"""
    enabled: bool = False
    port: int = 9108

    def __post_init__(self):
        if not (1 <= self.port <= 65535):
            raise ValueError("Port must be between 1 and 65535")


@dataclass
class ChartConfig:
    """A saved chart: title, resolution, stacking toggle and series entries"""
    title: str = "Chart"
    resolution: Resolution = Resolution.DAILY
    stack_same_metrics: bool = False
    series: List[Dict[str, Any]] = field(default_factory=list)

    def __post_init__(self):
        self.resolution = Resolution.parse(self.resolution)
        if not isinstance(self.series, list):
            raise ValueError("'series' must be a list")
        for idx, entry in enumerate(self.series):
            if not isinstance(entry, dict):
                raise ValueError(f"series entry {idx} must be a mapping")


@dataclass
class AppConfig:
    """Main configuration"""
    api: StatsApiConfig = field(default_factory=StatsApiConfig)
    logging: LoggingConfig = field(default_factory=LoggingConfig)
    output: OutputConfig = field(default_factory=OutputConfig)
    telemetry: TelemetryConfig = field(default_factory=TelemetryConfig)
    chart: ChartConfig = field(default_factory=ChartConfig)


class ConfigError(Exception):
    """Configuration-related errors"""
    pass


def _load_raw_config(config_path: str) -> Dict[str, Any]:
    """
    Load raw configuration from YAML file

    Raises:
        ConfigError: If file cannot be loaded or parsed
    """
    config_file = Path(config_path)

    if not config_file.exists():
        raise ConfigError(f"Configuration file not found: {config_path}")

    try:
        with open(config_file, 'r', encoding='utf-8') as f:
            raw_config = yaml.safe_load(f)
    except yaml.YAMLError as e:
        raise ConfigError(f"Invalid YAML in {config_path}: {e}")
    except OSError as e:
        raise ConfigError(f"Failed to read {config_path}: {e}")

    if raw_config is None:
        return {}
    if not isinstance(raw_config, dict):
        raise ConfigError(f"Configuration must be a YAML mapping, got {type(raw_config)}")

    return raw_config


def _section(parent: Dict[str, Any], name: str) -> Dict[str, Any]:
    value = parent.get(name) or {}
    if not isinstance(value, dict):
        raise ConfigError(f"'{name}' section must be a mapping")
    return value


def build_config_from_dict(config_dict: Dict[str, Any]) -> AppConfig:
    """
    Build AppConfig from a raw mapping (the parsed YAML document)

    Raises:
        ConfigError: If configuration is invalid
    """
    try:
        client_raw = _section(config_dict, "client")
        api_raw = _section(client_raw, "api")
        logging_raw = _section(client_raw, "logging")
        output_raw = _section(client_raw, "output")
        telemetry_raw = _section(client_raw, "telemetry")
        chart_raw = _section(config_dict, "chart")

        api = StatsApiConfig(
            base_url=api_raw.get("base_url", "https://build.avax.network"),
            series_path=api_raw.get("series_path", "/api/chain-stats/{entity_id}"),
            time_range=str(api_raw.get("time_range", "all")),
            timeout=api_raw.get("timeout", 10),
            max_attempts=api_raw.get("max_attempts", 1),
            max_workers=api_raw.get("max_workers", 4),
        )
        logging_config = LoggingConfig(
            level=logging_raw.get("level", "INFO"),
            file=logging_raw.get("file"),
        )
        output = OutputConfig(
            dir=str(output_raw.get("dir", "output")),
            dpi=output_raw.get("dpi", 150),
            chart_width=output_raw.get("chart_width", 12.0),
            chart_height=output_raw.get("chart_height", 6.0),
            include_png=bool(output_raw.get("include_png", False)),
        )
        telemetry = TelemetryConfig(
            enabled=bool(telemetry_raw.get("enabled", False)),
            port=telemetry_raw.get("port", 9108),
        )
        chart = ChartConfig(
            title=str(chart_raw.get("title", "Chart")),
            resolution=chart_raw.get("resolution", "D"),
            stack_same_metrics=bool(chart_raw.get("stack_same_metrics", False)),
            series=chart_raw.get("series") or [],
        )
        return AppConfig(api=api, logging=logging_config, output=output, telemetry=telemetry, chart=chart)

    except (ValueError, TypeError) as e:
        raise ConfigError(f"Configuration validation failed: {e}")


def load_config(config_path: str) -> AppConfig:
    """
    Load and validate configuration from a YAML file

    Raises:
        ConfigError: If configuration cannot be loaded or is invalid
    """
    return build_config_from_dict(_load_raw_config(config_path))


def apply_cli_overrides(config: AppConfig, **overrides) -> AppConfig:
    """
    Apply command-line overrides to a copy of the configuration

    Recognized keys: resolution, stack_same_metrics, output_dir, include_png,
    log_level, metrics_port. None values are ignored.

    Raises:
        ConfigError: If overrides are invalid
    """
    updated = copy.deepcopy(config)
    try:
        if overrides.get("resolution") is not None:
            updated.chart.resolution = Resolution.parse(overrides["resolution"])
        if overrides.get("stack_same_metrics") is not None:
            updated.chart.stack_same_metrics = bool(overrides["stack_same_metrics"])
        if overrides.get("output_dir"):
            updated.output.dir = str(overrides["output_dir"])
        if overrides.get("include_png") is not None:
            updated.output.include_png = bool(overrides["include_png"])
        if overrides.get("log_level"):
            updated.logging.level = str(overrides["log_level"])
        if overrides.get("metrics_port") is not None:
            updated.telemetry.enabled = True
            updated.telemetry.port = int(overrides["metrics_port"])

        # Re-validate after overrides
        updated.chart.__post_init__()
        updated.output.__post_init__()
        updated.logging.__post_init__()
        updated.telemetry.__post_init__()
    except (ValueError, TypeError) as e:
        raise ConfigError(f"Failed to apply CLI overrides: {e}")
    return updated
