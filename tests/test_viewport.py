#!/usr/bin/env python3
"""
Unit tests for the viewport (brush) controller
"""
import pytest
from pathlib import Path
import sys

# Add parent directory to path for imports
sys.path.insert(0, str(Path(__file__).parent.parent))

from chainstats.core.viewport import ViewportController, ViewportError, compute_default_range, slice_rows
from chainstats.shared.models import Resolution, ViewportRange


class TestDefaultRange:
    """Test compute_default_range"""

    def test_daily_shows_last_90(self):
        """Test daily default shows the last 90 rows"""
        assert compute_default_range(400, Resolution.DAILY) == ViewportRange(start_index=310, end_index=399)

    def test_daily_short_table_starts_at_zero(self):
        """Test short daily tables start at zero"""
        assert compute_default_range(30, "D") == ViewportRange(0, 29)

    def test_coarse_resolutions_show_everything(self):
        """Test coarse resolutions show the full range"""
        for res in ("W", "M", "Q", "Y"):
            assert compute_default_range(37, res) == ViewportRange(0, 36)

    def test_empty_table(self):
        """Test no range for an empty table"""
        assert compute_default_range(0, "D") is None
        assert compute_default_range(0, "M") is None

    def test_single_row(self):
        """Test a single row gives a one-row range"""
        assert compute_default_range(1, "D") == ViewportRange(0, 0)


class TestViewportController:
    """Test ViewportController state transitions"""

    def test_set_range_clamps(self):
        """Test user ranges are clamped and swapped"""
        vp = ViewportController()
        vp.sync(100, "D")

        assert vp.set_range(-5, 500) == ViewportRange(0, 99)
        assert vp.set_range(40, 10) == ViewportRange(10, 40)

    def test_set_range_on_empty_table(self):
        """Test setting a range on an empty table raises"""
        with pytest.raises(ViewportError):
            ViewportController().set_range(0, 1)

    def test_user_range_survives_same_length_sync(self):
        """Test a user range survives a sync at the same length"""
        vp = ViewportController()
        vp.sync(200, "D")
        vp.set_range(5, 20)

        assert vp.sync(200, "D") == ViewportRange(5, 20)

    def test_resolution_change_resets(self):
        """Test a resolution change resets the range"""
        vp = ViewportController()
        vp.sync(200, "D")
        vp.set_range(5, 20)

        assert vp.sync(7, "M") == ViewportRange(0, 6)

    def test_empty_to_non_empty_resets(self):
        """Test the first data resets the range"""
        vp = ViewportController()
        assert vp.sync(0, "D") is None

        assert vp.sync(120, "D") == ViewportRange(30, 119)

    def test_shrinking_table_reclamps(self):
        """Test a shrinking table re-clamps the range"""
        vp = ViewportController()
        vp.sync(200, "D")
        vp.set_range(150, 199)

        assert vp.sync(160, "D") == ViewportRange(150, 159)

    def test_emptied_table_clears_range(self):
        """Test an emptied table clears the range"""
        vp = ViewportController()
        vp.sync(10, "W")
        assert vp.sync(0, "W") is None
        assert slice_rows([], vp.range) == []

    def test_slice_rows_is_inclusive(self):
        """Test slices include both bounds"""
        vp = ViewportController()
        table = [{"date": str(i)} for i in range(10)]
        vp.sync(len(table), "M")
        vp.set_range(2, 4)

        assert [r["date"] for r in slice_rows(table, vp.range)] == ["2", "3", "4"]

    def test_slice_rows_without_range(self):
        """Test a missing range returns a copy of the whole table"""
        table = [{"date": "a"}, {"date": "b"}]

        rows = slice_rows(table, None)

        assert rows == table
        assert rows is not table
