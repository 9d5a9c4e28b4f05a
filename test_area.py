"""
Tests for the area calculator.

Run: python -m pytest test_area.py -v
"""

import math

import pytest

from floorplan_mcp.area import (
    actual_ratio,
    compute_size,
    from_display_ratio,
    in_dead_zone,
    local_block_size,
    snap_to_feasible,
    to_display_ratio,
)
from floorplan_mcp.models import InvalidConfigError, ModuleNode, TechNodeConfig

from conftest import leaf


SIDE = math.sqrt(45000 / 0.65)     # local-logic side of a 10k-register leaf
LEAF_W = SIDE + 48                 # margin on both sides
LEAF_H = SIDE + 84                 # margin on both sides + header


class TestLeafSizing:
    """The 10k-register 28nm leaf example."""

    def test_breakdown(self, tech):
        w, h, stats = compute_size(leaf("a"), tech)

        assert stats.reg_area == pytest.approx(45000)
        assert stats.mem_area == 0
        assert stats.logic_area == 0
        assert stats.local_area == pytest.approx(69230.769, rel=1e-6)
        assert stats.children_area == 0
        assert stats.ideal_width == pytest.approx(263.117, abs=1e-3)
        assert stats.ideal_height == pytest.approx(263.117, abs=1e-3)

    def test_footprint_wraps_local_logic(self, tech):
        w, h, stats = compute_size(leaf("a"), tech)

        assert w == pytest.approx(max(stats.ideal_width, SIDE + 48))
        assert h == pytest.approx(max(stats.ideal_height, SIDE + 84))
        assert (w, h) == (stats.calculated_width, stats.calculated_height)
        assert stats.total_area == pytest.approx(w * h)

    def test_utilization_overhead(self, tech):
        _, _, stats = compute_size(leaf("a"), tech)
        assert stats.utilization_overhead == pytest.approx(stats.total_area * 0.65 - 45000)

    def test_internal_offset_grows_envelope(self, tech):
        w, h, _ = compute_size(leaf("a", internal_x=10, internal_y=5), tech)
        assert w == pytest.approx(LEAF_W + 10)
        assert h == pytest.approx(LEAF_H + 5)

    def test_all_resources(self, tech):
        node = ModuleNode(id="m", registers=100, memory_bits=1000, logic_gates=400)
        _, _, stats = compute_size(node, tech)
        assert stats.reg_area == pytest.approx(450)
        assert stats.mem_area == pytest.approx(120)
        assert stats.logic_area == pytest.approx(200)
        assert stats.local_area == pytest.approx(770 / 0.65)


class TestChildren:

    def test_children_area_is_sum_of_footprints(self, tech):
        parent = ModuleNode(
            id="p", registers=0,
            children=[leaf("a"), leaf("b", x=LEAF_W + 16)],
        )
        _, _, stats = compute_size(parent, tech)
        assert stats.children_area == pytest.approx(2 * LEAF_W * LEAF_H)
        assert stats.local_area == 0

    def test_envelope_covers_placed_children(self, tech):
        parent = ModuleNode(
            id="p", registers=0,
            children=[leaf("a"), leaf("b", x=500, y=300)],
        )
        w, h, _ = compute_size(parent, tech)
        assert w == pytest.approx(500 + LEAF_W + 48)
        assert h == pytest.approx(300 + LEAF_H + 84)

    def test_footprint_dominates_ideal(self, tech):
        parent = ModuleNode(
            id="p", registers=20000, aspect_ratio=2.5,
            children=[leaf("a", x=400), leaf("b", y=400, aspect_ratio=0.5)],
        )
        for node in parent.walk():
            w, h, stats = compute_size(node, tech)
            assert w >= stats.ideal_width
            assert h >= stats.ideal_height
            assert stats.total_area >= 0


class TestMonotonicity:

    @pytest.mark.parametrize("field", ["registers", "memory_bits", "logic_gates"])
    def test_more_resources_more_area(self, tech, field):
        base = ModuleNode(id="m", registers=5000, memory_bits=5000, logic_gates=5000, is_ratio_linked=True)
        bigger = base.model_copy(update={field: getattr(base, field) + 1000})
        _, _, small = compute_size(base, tech)
        _, _, large = compute_size(bigger, tech)
        assert large.total_area > small.total_area

    def test_bigger_child_bigger_parent(self, tech):
        parent = ModuleNode(id="p", registers=100, children=[leaf("a", x=50)])
        grown = parent.model_copy(update={"children": [leaf("a", x=50, registers=20000)]})
        assert compute_size(grown, tech)[2].total_area > compute_size(parent, tech)[2].total_area


class TestFeasibleRatio:

    def test_interval_is_sorted(self, tech):
        # Content that does not overlap can never fill the envelope exactly,
        # so the raw bounds come out reversed.
        _, _, stats = compute_size(leaf("a"), tech)
        raw_min = LEAF_W ** 2 / stats.local_area
        raw_max = stats.local_area / LEAF_H ** 2

        assert raw_min > raw_max
        assert stats.min_feasible_ratio == pytest.approx(raw_max)
        assert stats.max_feasible_ratio == pytest.approx(raw_min)
        assert stats.has_feasible_ratio is False

    def _stacked(self, ratio):
        # A child stacked on the local logic makes the envelope smaller
        # than the summed content area, so an exact fit exists.
        return ModuleNode(
            id="p", registers=10000, aspect_ratio=ratio,
            internal_aspect_ratio=1.0, is_ratio_linked=False,
            children=[leaf("a")],
        )

    def test_ideal_inside_interval(self, tech):
        _, _, stats = compute_size(self._stacked(1.0), tech)
        assert stats.has_feasible_ratio
        assert stats.min_feasible_ratio < stats.max_feasible_ratio < 1.0

        mid = (stats.min_feasible_ratio + stats.max_feasible_ratio) / 2
        w, h, inside = compute_size(self._stacked(mid), tech)
        assert w == pytest.approx(inside.ideal_width)
        assert h == pytest.approx(inside.ideal_height)
        assert not in_dead_zone(self._stacked(mid), inside)

    def test_dead_zone_outside_interval(self, tech):
        node = self._stacked(1.0)
        w, h, stats = compute_size(node, tech)
        assert not (w == pytest.approx(stats.ideal_width) and h == pytest.approx(stats.ideal_height))
        assert in_dead_zone(node, stats)

    def test_snap_clamps_to_bound(self, tech):
        node = self._stacked(1.0)
        _, _, stats = compute_size(node, tech)
        snapped = snap_to_feasible(node, tech)
        # the ~0.9535 bound is stored as it displays, -1.05
        assert snapped.aspect_ratio == from_display_ratio(to_display_ratio(stats.max_feasible_ratio))
        assert snapped.aspect_ratio == pytest.approx(1 / 1.05)
        assert to_display_ratio(snapped.aspect_ratio) == -1.05
        assert snapped.internal_aspect_ratio == 1.0  # unlinked

    def test_snap_inside_interval_is_noop(self, tech):
        node = leaf("a")
        assert snap_to_feasible(node, tech) is node


class TestRatioLinkage:

    def test_linked_ignores_stale_internal_ratio(self, tech):
        stale = leaf("a", aspect_ratio=2.0, internal_aspect_ratio=0.25)
        fresh = leaf("a", aspect_ratio=2.0, internal_aspect_ratio=2.0)
        assert stale.effective_internal_ratio == 2.0
        assert compute_size(stale, tech) == compute_size(fresh, tech)

    def test_unlinked_uses_internal_ratio(self, tech):
        node = leaf("a", aspect_ratio=2.0, internal_aspect_ratio=0.5, is_ratio_linked=False)
        _, _, stats = compute_size(node, tech)
        w, h = local_block_size(node, stats.local_area)
        assert w / h == pytest.approx(0.5)
        assert w * h == pytest.approx(stats.local_area)


class TestDegenerate:

    def test_empty_module_is_zero_size(self, tech):
        w, h, stats = compute_size(ModuleNode(id="empty"), tech)
        assert (w, h) == (0.0, 0.0)
        assert stats.total_area == 0
        assert stats.min_feasible_ratio == 0 and stats.max_feasible_ratio == 0
        assert not any(math.isnan(v) for v in stats.model_dump().values() if isinstance(v, float))

    def test_non_positive_ratio_treated_as_square(self, tech):
        zero = leaf("a", aspect_ratio=0.0, internal_aspect_ratio=0.0)
        square = leaf("a", aspect_ratio=1.0)
        assert compute_size(zero, tech)[:2] == pytest.approx(compute_size(square, tech)[:2])

    def test_actual_ratio_of_empty(self, tech):
        _, _, stats = compute_size(ModuleNode(id="empty"), tech)
        assert actual_ratio(stats) == 1.0


class TestConfigValidation:

    def test_zero_utilization_rejected(self):
        with pytest.raises(ValueError, match="utilization"):
            TechNodeConfig(dff_area=1, gate_area=1, sram_area_per_bit=1, utilization=0)

    def test_negative_area_rejected(self):
        with pytest.raises(ValueError):
            TechNodeConfig(dff_area=-1, gate_area=1, sram_area_per_bit=1, utilization=0.5)

    def test_unvalidated_config_rejected_by_calculator(self):
        bad = TechNodeConfig.model_construct(
            name="bad", dff_area=1.0, gate_area=1.0, sram_area_per_bit=1.0, utilization=0.0,
        )
        with pytest.raises(InvalidConfigError, match="utilization"):
            compute_size(leaf("a"), bad)


class TestDisplayRatio:

    @pytest.mark.parametrize("ratio, shown", [
        (2.0, 2.0), (1.0, 1.0), (0.5, -2.0), (0.8, -1.25), (0, 1.0), (-3, 1.0),
    ])
    def test_to_display(self, ratio, shown):
        assert to_display_ratio(ratio) == shown

    @pytest.mark.parametrize("shown, ratio", [(2.0, 2.0), (-2.0, 0.5), (-4.0, 0.25), (0, 1.0)])
    def test_from_display(self, shown, ratio):
        assert from_display_ratio(shown) == pytest.approx(ratio)
