#!/usr/bin/env python3
"""
Unit tests for the series registry

Tests cover:
- Id stability (re-adding toggles visibility)
- Default color, axis and z_order assignment
- z_order permutation after reorder/remove
- Style updates and hydration from saved dicts
"""
import itertools
import pytest
from pathlib import Path
import sys

# Add parent directory to path for imports
sys.path.insert(0, str(Path(__file__).parent.parent))

from chainstats.core.registry import DEFAULT_COLORS, RegistryError, SeriesRegistry
from chainstats.shared.models import ChartStyle, YAxis


def build(n: int) -> SeriesRegistry:
    registry = SeriesRegistry()
    for i in range(n):
        registry.add_series(f"chain{i}", f"Chain {i}", "txCount" if i % 2 == 0 else "gasUsed")
    return registry


def z_orders(registry: SeriesRegistry):
    return sorted(s.z_order for s in registry)


class TestAddSeries:
    """Test add_series"""

    def test_readding_toggles_instead_of_duplicating(self):
        """Test adding an existing pair toggles its visibility"""
        registry = SeriesRegistry()

        first = registry.add_series("chain1", "Chain 1", "txCount")
        assert first.visible is True

        second = registry.add_series("chain1", "Chain 1", "txCount")

        assert len(registry) == 1
        assert second is first
        assert second.visible is False

    def test_defaults_for_new_series(self):
        """Test defaults of a newly added series"""
        registry = SeriesRegistry()
        series = registry.add_series("43114", "C-Chain", "txCount")

        assert series.id == "43114-txCount"
        assert series.color == DEFAULT_COLORS[0]
        assert series.y_axis == YAxis.LEFT
        assert series.chart_style == ChartStyle.LINE
        assert series.z_order == 1
        assert series.name == "C-Chain: Transactions"

    def test_color_cycles_through_palette(self):
        """Test colors cycle through the palette"""
        registry = build(9)
        colors = [s.color for s in registry]

        assert colors[:8] == DEFAULT_COLORS
        assert colors[8] == DEFAULT_COLORS[0]

    def test_axis_alternates_by_parity(self):
        """Test new metrics alternate left/right"""
        registry = SeriesRegistry()
        a = registry.add_series("c1", "C1", "txCount")
        b = registry.add_series("c1", "C1", "gasUsed")
        c = registry.add_series("c1", "C1", "feesPaid")

        assert (a.y_axis, b.y_axis, c.y_axis) == (YAxis.LEFT, YAxis.RIGHT, YAxis.LEFT)

    def test_same_metric_reuses_axis_of_first(self):
        """Test a repeated metric reuses the first axis"""
        registry = SeriesRegistry()
        registry.add_series("c1", "C1", "txCount")
        gas = registry.add_series("c1", "C1", "gasUsed")
        assert gas.y_axis == YAxis.RIGHT

        other_gas = registry.add_series("c2", "C2", "gasUsed")

        # parity would say left (size 2); same metric keeps the right axis
        assert other_gas.y_axis == YAxis.RIGHT

    def test_z_order_is_max_plus_one(self):
        """Test new series go on top"""
        registry = build(3)
        assert [s.z_order for s in registry] == [1, 2, 3]

    def test_requires_entity_and_metric(self):
        """Test entity and metric are required"""
        with pytest.raises(RegistryError):
            SeriesRegistry().add_series("", "x", "txCount")


class TestReorder:
    """Test reorder and z_order invariants"""

    def test_every_move_keeps_permutation(self):
        """Test z_order stays 1..N after every move"""
        size = 5
        for from_index, to_index in itertools.product(range(size), repeat=2):
            registry = build(size)
            registry.reorder(from_index, to_index)
            assert z_orders(registry) == list(range(1, size + 1))
            assert [s.z_order for s in registry] == list(range(1, size + 1))

    def test_moved_series_lands_at_target(self):
        """Test the moved series ends at the target index"""
        registry = build(4)
        moved_id = registry.series[0].id

        registry.reorder(0, 3)

        assert registry.series[3].id == moved_id
        assert registry.get(moved_id).z_order == 4

    def test_out_of_range(self):
        """Test out-of-range indices are rejected"""
        with pytest.raises(RegistryError):
            build(2).reorder(0, 2)

    def test_drop_target_forward_and_backward(self):
        """Test drag-drop insert index in both directions"""
        registry = build(4)
        ids = [s.id for s in registry]

        registry.move_to_drop_target(0, 2)
        assert [s.id for s in registry] == [ids[1], ids[0], ids[2], ids[3]]

        registry.move_to_drop_target(3, 0)
        assert [s.id for s in registry][0] == ids[3]
        assert z_orders(registry) == [1, 2, 3, 4]


class TestMutations:
    """Test remove, toggle and style updates"""

    def test_remove_renumbers(self):
        """Test removal renumbers z_order"""
        registry = build(4)
        registry.remove_series(registry.series[1].id)

        assert len(registry) == 3
        assert z_orders(registry) == [1, 2, 3]

    def test_remove_unknown(self):
        """Test removing an unknown id raises"""
        with pytest.raises(RegistryError):
            SeriesRegistry().remove_series("nope")

    def test_toggle_visibility(self):
        """Test visibility toggling"""
        registry = build(1)
        sid = registry.series[0].id

        registry.toggle_visibility(sid)
        assert registry.get(sid).visible is False
        assert registry.visible_series() == []

    def test_update_style_partial(self):
        """Test partial style updates"""
        registry = build(1)
        sid = registry.series[0].id

        updated = registry.update_style(sid, chart_style="area", y_axis="right", color="#000000")

        assert updated.chart_style == ChartStyle.AREA
        assert updated.y_axis == YAxis.RIGHT
        assert updated.color == "#000000"
        assert updated.visible is True

    def test_update_style_rejects_identity_fields(self):
        """Test identity fields cannot be updated"""
        registry = build(1)
        with pytest.raises(RegistryError):
            registry.update_style(registry.series[0].id, z_order=5)
        with pytest.raises(RegistryError):
            registry.update_style(registry.series[0].id, chart_style="pie")

    def test_visible_series_sorted_by_z(self):
        """Test visible series come back in z_order"""
        registry = build(3)
        registry.reorder(2, 0)
        assert [s.z_order for s in registry.visible_series()] == [1, 2, 3]


class TestHydration:
    """Test from_dicts / to_dicts"""

    def test_defaults_for_sparse_entries(self):
        """Test defaults for sparse saved entries"""
        registry = SeriesRegistry.from_dicts([
            {"entity_id": "43114", "entity_name": "C-Chain", "metric_key": "txCount"},
            {},
        ])
        first, second = registry.series

        assert first.id == "43114-txCount"
        assert first.color == DEFAULT_COLORS[0]
        assert second.id == "series-1"
        assert second.color == DEFAULT_COLORS[1]
        assert second.y_axis == YAxis.LEFT
        assert second.visible is True
        assert second.name == "Series 2"
        assert [first.z_order, second.z_order] == [1, 2]

    def test_saved_z_order_sorted_and_normalized(self):
        """Test saved z_order is sorted and renumbered"""
        registry = SeriesRegistry.from_dicts([
            {"entity_id": "a", "metric_key": "txCount", "z_order": 7},
            {"entity_id": "b", "metric_key": "txCount", "z_order": 3},
        ])
        assert [(s.id, s.z_order) for s in registry] == [("b-txCount", 1), ("a-txCount", 2)]

    def test_round_trip(self):
        """Test to_dicts/from_dicts round trip"""
        registry = build(3)
        registry.update_style(registry.series[1].id, chart_style="bar")

        restored = SeriesRegistry.from_dicts(registry.to_dicts())

        assert restored.to_dicts() == registry.to_dicts()

    def test_duplicate_ids_rejected(self):
        """Test duplicate saved ids are rejected"""
        with pytest.raises(RegistryError):
            SeriesRegistry.from_dicts([
                {"entity_id": "a", "metric_key": "txCount"},
                {"entity_id": "a", "metric_key": "txCount"},
            ])

    def test_unknown_fields_rejected(self):
        """Test unknown saved fields are rejected"""
        with pytest.raises(RegistryError):
            SeriesRegistry.from_dicts([{"entity_id": "a", "metric_key": "txCount", "shape": "round"}])
