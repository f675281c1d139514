#!/usr/bin/env python3
# -*- coding: utf-8 -*-
"""
Utility Functions for chainstats
Shared helpers for retries, calendar-day parsing and chart label formatting.
"""

import logging
import math
import time
from datetime import date, datetime
from typing import Any, Callable, Optional

MONTH_ABBR = ("Jan", "Feb", "Mar", "Apr", "May", "Jun", "Jul", "Aug", "Sep", "Oct", "Nov", "Dec")
MONTH_NAMES = (
    "January", "February", "March", "April", "May", "June",
    "July", "August", "September", "October", "November", "December",
)


def parse_calendar_day(value: Any) -> date:
    """
    Parse a calendar day from the formats the stats API emits

    Accepts date/datetime objects, 'YYYY-MM-DD' and ISO timestamps such as
    '2024-01-05T00:00:00Z' (the time component is dropped).

    Raises:
        ValueError: If the value is not a recognizable day
    """
    if isinstance(value, datetime):
        return value.date()
    if isinstance(value, date):
        return value
    if isinstance(value, str):
        text = value.strip()
        try:
            return datetime.strptime(text[:10], "%Y-%m-%d").date()
        except ValueError:
            pass
    raise ValueError(f"Invalid calendar day: {value!r}. Expected 'YYYY-MM-DD'")


def parse_metric_value(value: Any) -> float:
    """
    Convert an API value (number or numeric string) to float

    Raises:
        ValueError: For None, booleans, non-numeric strings and NaN
    """
    if value is None or isinstance(value, bool):
        raise ValueError(f"Invalid metric value: {value!r}")
    if isinstance(value, (int, float)):
        result = float(value)
    elif isinstance(value, str):
        try:
            result = float(value.strip())
        except ValueError:
            raise ValueError(f"Invalid metric value: {value!r}")
    else:
        raise ValueError(f"Invalid metric value type: {type(value)}")
    if math.isnan(result):
        raise ValueError("Metric value cannot be NaN")
    return result


def retry_with_backoff(
    func: Callable[[], Any],
    max_attempts: int = 3,
    base_delay: float = 1.0,
    backoff_factor: float = 2.0,
    exceptions: tuple = (Exception,),
    sleep: Callable[[float], None] = time.sleep,
):
    """
    Retry function with exponential backoff

    Args:
        func: Function to retry
        max_attempts: Maximum number of attempts (1 means a single try)
        base_delay: Initial delay in seconds
        backoff_factor: Multiplier for delay on each retry
        exceptions: Tuple of exceptions to catch and retry
        sleep: Delay function, replaceable in tests

    Returns:
        Function result

    Raises:
        Last exception if all retries fail
    """
    if max_attempts < 1:
        raise ValueError("max_attempts must be >= 1")

    log = logging.getLogger(__name__)
    for attempt in range(max_attempts):
        try:
            return func()
        except exceptions as e:
            if attempt >= max_attempts - 1:
                if max_attempts > 1:
                    log.error(f"All {max_attempts} attempts failed")
                raise
            delay = base_delay * (backoff_factor ** attempt)
            log.warning(f"Attempt {attempt + 1} failed: {e}. Retrying in {delay:.1f}s...")
            sleep(delay)


def _plain_number(value: float) -> str:
    """Thousands separators, at most three decimals, no trailing zeros"""
    text = f"{value:,.3f}"
    if "." in text:
        text = text.rstrip("0").rstrip(".")
    return text


def format_compact_number(value: float) -> str:
    """
    Compact y-axis label: 1.2B, 3.4M, 5.6K, otherwise the plain number

    >>> format_compact_number(1_250_000)
    '1.2M'
    """
    if value >= 1e9:
        return f"{value / 1e9:.1f}B"
    if value >= 1e6:
        return f"{value / 1e6:.1f}M"
    if value >= 1e3:
        return f"{value / 1e3:.1f}K"
    return _plain_number(value)


def _split_quarter(key: str) -> Optional[tuple]:
    parts = key.split("-")
    if len(parts) == 2 and parts[1].startswith("Q"):
        return parts[0], parts[1]
    return None


def format_axis_label(key: str, resolution: str) -> str:
    """
    Short x-axis tick label for a bucket key

    Q: "Q1 '24", Y: "2024", M: "Jan 24", D/W: "Jan 5"
    """
    if resolution == "Q":
        parts = _split_quarter(key)
        return f"{parts[1]} '{parts[0][-2:]}" if parts else key
    if resolution == "Y":
        return key
    if resolution == "M":
        try:
            month_start = datetime.strptime(key[:7], "%Y-%m")
        except ValueError:
            return key
        return f"{MONTH_ABBR[month_start.month - 1]} {month_start.strftime('%y')}"
    try:
        day = parse_calendar_day(key)
    except ValueError:
        return key
    return f"{MONTH_ABBR[day.month - 1]} {day.day}"


def format_tooltip_label(key: str, resolution: str) -> str:
    """
    Long label for a bucket key

    Q: "Q1 2024", Y: "2024", M: "January 2024", D/W: "January 5, 2024"
    """
    if resolution == "Y":
        return key
    if resolution == "Q":
        parts = _split_quarter(key)
        return f"{parts[1]} {parts[0]}" if parts else key
    if resolution == "M":
        try:
            month_start = datetime.strptime(key[:7], "%Y-%m")
        except ValueError:
            return key
        return f"{MONTH_NAMES[month_start.month - 1]} {month_start.year}"
    try:
        day = parse_calendar_day(key)
    except ValueError:
        return key
    return f"{MONTH_NAMES[day.month - 1]} {day.day}, {day.year}"
