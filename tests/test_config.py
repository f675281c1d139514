#!/usr/bin/env python3
"""
Tests for YAML configuration loading, CLI overrides and label formatting helpers
"""
import pytest
from pathlib import Path
import sys

# Add parent directory to path for imports
sys.path.insert(0, str(Path(__file__).parent.parent))

from chainstats.shared.config import (
    ConfigError,
    apply_cli_overrides,
    build_config_from_dict,
    load_config,
)
from chainstats.shared.models import Resolution
from chainstats.shared.utils import (
    format_axis_label,
    format_compact_number,
    format_tooltip_label,
    parse_calendar_day,
    parse_metric_value,
    retry_with_backoff,
)


class TestLoadConfig:
    """Test load_config with YAML files"""

    def test_sample_config_loads(self):
        """Test the shipped sample config loads"""
        config = load_config(str(Path(__file__).parent.parent / "config" / "chart.yaml"))

        assert config.chart.title == "C-Chain activity"
        assert config.chart.resolution == Resolution.DAILY
        assert len(config.chart.series) == 2
        assert config.api.max_attempts == 1

    def test_minimal_yaml(self, tmp_path):
        """Test defaults fill a minimal YAML file"""
        path = tmp_path / "chart.yaml"
        path.write_text("""
client:
  api:
    base_url: "http://localhost:3000/"
chart:
  resolution: q
  series:
    - entity_id: "1"
      metric_key: txCount
""")
        config = load_config(str(path))

        assert config.api.base_url == "http://localhost:3000"
        assert config.api.series_path == "/api/chain-stats/{entity_id}"
        assert config.chart.resolution == Resolution.QUARTERLY
        assert config.logging.level == "INFO"
        assert config.telemetry.enabled is False

    def test_empty_file_uses_defaults(self, tmp_path):
        """Test an empty file yields the default config"""
        path = tmp_path / "empty.yaml"
        path.write_text("")

        config = load_config(str(path))

        assert config.chart.series == []
        assert config.output.dir == "output"

    def test_missing_file(self, tmp_path):
        """Test a missing file raises ConfigError"""
        with pytest.raises(ConfigError, match="not found"):
            load_config(str(tmp_path / "nope.yaml"))

    def test_invalid_yaml(self, tmp_path):
        """Test malformed YAML raises ConfigError"""
        path = tmp_path / "bad.yaml"
        path.write_text("chart: [unclosed")
        with pytest.raises(ConfigError):
            load_config(str(path))

    @pytest.mark.parametrize("raw", [
        {"chart": {"resolution": "H"}},
        {"client": {"api": {"series_path": "/api/stats"}}},
        {"client": {"api": {"max_attempts": 0}}},
        {"client": {"logging": {"level": "LOUD"}}},
        {"client": {"telemetry": {"port": 70000}}},
        {"chart": {"series": ["txCount"]}},
        {"client": "yes"},
    ])
    def test_invalid_values(self, raw):
        """Test invalid values are wrapped in ConfigError"""
        with pytest.raises(ConfigError):
            build_config_from_dict(raw)


class TestCliOverrides:
    """Test apply_cli_overrides"""

    def test_overrides_applied_to_copy(self):
        """Test overrides land on a copy, not the original"""
        config = build_config_from_dict({})

        updated = apply_cli_overrides(
            config, resolution="Y", stack_same_metrics=True, output_dir="/tmp/out",
            include_png=True, log_level="debug", metrics_port=9200,
        )

        assert updated.chart.resolution == Resolution.YEARLY
        assert updated.chart.stack_same_metrics is True
        assert updated.output.dir == "/tmp/out"
        assert updated.output.include_png is True
        assert updated.logging.level == "DEBUG"
        assert updated.telemetry.enabled is True and updated.telemetry.port == 9200
        assert config.chart.resolution == Resolution.DAILY

    def test_none_values_ignored(self):
        """Test None overrides leave values alone"""
        config = build_config_from_dict({"chart": {"resolution": "W"}})
        assert apply_cli_overrides(config, resolution=None).chart.resolution == Resolution.WEEKLY

    def test_invalid_override(self):
        """Test an invalid override raises ConfigError"""
        with pytest.raises(ConfigError):
            apply_cli_overrides(build_config_from_dict({}), resolution="H")


class TestFormatting:
    """Test axis and tooltip label helpers"""

    @pytest.mark.parametrize("value,expected", [
        (2_500_000_000, "2.5B"),
        (1_250_000, "1.2M"),
        (1500, "1.5K"),
        (999, "999"),
        (12.5, "12.5"),
        (0, "0"),
    ])
    def test_compact_number(self, value, expected):
        """Test compact B/M/K number labels"""
        assert format_compact_number(value) == expected

    @pytest.mark.parametrize("key,res,expected", [
        ("2024-Q1", "Q", "Q1 '24"),
        ("2024", "Y", "2024"),
        ("2024-01", "M", "Jan 24"),
        ("2024-01-05", "D", "Jan 5"),
        ("2023-12-31", "W", "Dec 31"),
    ])
    def test_axis_label(self, key, res, expected):
        """Test short axis labels per resolution"""
        assert format_axis_label(key, res) == expected

    @pytest.mark.parametrize("key,res,expected", [
        ("2024-Q3", "Q", "Q3 2024"),
        ("2024", "Y", "2024"),
        ("2024-02", "M", "February 2024"),
        ("2024-01-05", "D", "January 5, 2024"),
    ])
    def test_tooltip_label(self, key, res, expected):
        """Test long tooltip labels per resolution"""
        assert format_tooltip_label(key, res) == expected


class TestParsing:
    """Test API value parsing helpers"""

    def test_calendar_day_from_timestamp(self):
        """Test timestamps are cut to their calendar day"""
        assert parse_calendar_day("2024-01-05T12:00:00Z").isoformat() == "2024-01-05"

    @pytest.mark.parametrize("raw", [None, True, "abc", float("nan"), [1]])
    def test_bad_metric_values(self, raw):
        """Test non-numeric values are rejected"""
        with pytest.raises(ValueError):
            parse_metric_value(raw)

    def test_retry_with_backoff_delays(self):
        """Test retry delays grow by the backoff factor"""
        attempts = []
        delays = []

        def flaky():
            attempts.append(1)
            if len(attempts) < 3:
                raise ConnectionError("down")
            return "ok"

        result = retry_with_backoff(flaky, max_attempts=3, base_delay=0.5, sleep=delays.append)

        assert result == "ok"
        assert delays == [0.5, 1.0]

    def test_retry_gives_up(self):
        """Test the last error is raised after all attempts"""
        def broken():
            raise ConnectionError("down")

        with pytest.raises(ConnectionError):
            retry_with_backoff(broken, max_attempts=2, sleep=lambda _d: None)
