"""Tests for Layer 2 — axis expansion planning and flow restore."""

import math

import pytest

# Import all stages to trigger registration
import reframe.engine.layer0.s0_01_layout_profile
import reframe.engine.layer0.s0_02_safe_area
import reframe.engine.layer0.s0_03_content_analysis
import reframe.engine.layer0.s0_04_scale
import reframe.engine.layer1.s1_01_element_transform
import reframe.engine.layer2.s2_01_axis_expansion
import reframe.engine.layer2.s2_02_flow_restore

from reframe.engine.config import RetargetConfig
from reframe.engine.context import Margins, ScaleResult
from reframe.engine.layer2.s2_01_axis_expansion import (
    interior_weight,
    normalize_margins,
    plan_axis_expansion,
)
from reframe.engine.layer1.s1_01_element_transform import element_transform
from reframe.engine.layer2.s2_02_flow_restore import PROMOTED_SUFFIX, enforce_flow_fit, flow_restore
from reframe.engine.pipeline import Pipeline, build_context
from reframe.engine.registry import Layer
from reframe.models.metrics import DiagnosticCode, LayoutProfile
from reframe.models.target import Target
from reframe.scene.nodes import Align, LayoutMode
from tests.conftest import VERTICAL_TARGET, build

CFG = RetargetConfig()


def _expanded(comp, target):
    ctx = build_context(comp, target)
    pipeline = Pipeline()
    for layer in (Layer.ANALYSIS, Layer.TRANSFORM, Layer.EXPANSION):
        pipeline.run_layer(ctx, layer)
    return ctx


# --- planner ---


@pytest.mark.parametrize(
    "total,insets,margins,count,allow,focal",
    [
        (630, (60, 60), (33.75, 596.25), 1, False, None),
        (1787.25, (154, 320), (213.75, 193.5), 2, True, None),
        (1000, (0, 0), (100, 100), 3, True, 0.2),
        (400, (50, 50), (0, 0), 5, True, 0.9),
        (80, (60, 60), (10, 10), 2, True, None),
        (333.33, (12.5, 7.25), (3, 97), 4, True, 0.5),
    ],
)
def test_plan_conserves_total(total, insets, margins, count, allow, focal):
    plan = plan_axis_expansion(total, insets, margins, count, 20, allow, focal)
    assert plan.start + plan.end + plan.interior == pytest.approx(total, abs=1e-6)
    assert plan.start >= 0 and plan.end >= -1e-9 and plan.interior >= 0


def test_insets_satisfied_first():
    plan = plan_axis_expansion(1000, insets=(100, 100), margins=(10, 990))
    assert plan.start == 100
    assert plan.end == 900


def test_short_surplus_split_by_inset_ratio():
    plan = plan_axis_expansion(100, insets=(100, 300))
    assert (plan.start, plan.end, plan.interior) == (25, 75, 0)


def test_no_surplus_no_plan():
    assert plan_axis_expansion(0).total == 0
    assert plan_axis_expansion(-50).total == 0
    assert plan_axis_expansion(math.inf).total == 0


def test_interior_spreads_new_space():
    plan = plan_axis_expansion(1000, (0, 0), (100, 100), 3, 20, allow_interior=True)
    assert plan.interior == pytest.approx(680)
    assert plan.start == pytest.approx(160)
    assert plan.end == pytest.approx(160)


def test_interior_requires_permission_and_gaps():
    assert plan_axis_expansion(1000, (0, 0), (100, 100), 3, 20, allow_interior=False).interior == 0
    assert plan_axis_expansion(1000, (0, 0), (100, 100), 1, 20, allow_interior=True).interior == 0


def test_original_margins_reserved_before_interior():
    # Surplus equals the scaled original margins: nothing is new, nothing moves inward
    plan = plan_axis_expansion(724, (0, 0), (380, 344), 2, 0, allow_interior=True)
    assert plan.interior == 0
    assert plan.start == 380


def test_focal_bias_pushes_away_from_near_edge():
    centered = plan_axis_expansion(400, margins=(100, 100))
    near_start = plan_axis_expansion(400, margins=(100, 100), focal_ratio=0.2)
    near_end = plan_axis_expansion(400, margins=(100, 100), focal_ratio=0.8)
    assert centered.start == 200
    assert near_start.start > centered.start
    assert near_end.start < centered.start


def test_interior_weight_damping():
    loose = interior_weight(2, 24, (100, 100), CFG)
    tight = interior_weight(2, 8, (100, 100), CFG)
    lopsided = interior_weight(2, 24, (10, 190), CFG)
    assert loose == pytest.approx(0.85)
    assert tight == pytest.approx(0.85 * 0.95)
    assert lopsided < loose
    assert interior_weight(50, 24, (0, 0), CFG) <= CFG.interior_max_weight


# --- margin normalization ---


def test_margins_kept_on_small_aspect_change():
    m = Margins(10, 190, 20, 20)
    out = normalize_margins(m, LayoutProfile.SQUARE, LayoutProfile.SQUARE, 1.0, 1.1)
    assert out == m


def test_lopsided_horizontal_margins_rebalanced():
    m = Margins(10, 190, 0, 0)
    out = normalize_margins(m, LayoutProfile.SQUARE, LayoutProfile.HORIZONTAL, 0.5, 1.78)
    assert out.left == pytest.approx(77.5)
    assert out.right == pytest.approx(122.5)
    assert out.left + out.right == pytest.approx(200)


def test_vertical_target_favors_bottom_margin():
    m = Margins(0, 0, 10, 290)
    out = normalize_margins(m, LayoutProfile.HORIZONTAL, LayoutProfile.VERTICAL, 2.0, 0.5625)
    assert out.top == pytest.approx(77.5)
    assert out.bottom == pytest.approx(222.5)


# --- stage S2.01 ---


def test_promo_plans_on_vertical_target(promo):
    ctx = _expanded(promo, VERTICAL_TARGET)
    h, v = ctx.horizontal_plan, ctx.vertical_plan
    assert h.total == pytest.approx(630)
    assert v.total == pytest.approx(1787.25)
    assert h.start == 60
    assert v.start >= 154 and v.end >= 320 - 0.01
    # Two vertical bands of content share the interior space
    assert v.interior > 0
    assert h.interior == 0
    assert not ctx.adopted_vertical_flow


# --- stage S2.02 ---


def test_row_promoted_to_column_on_tall_target(flow_row):
    ctx = _expanded(flow_row, VERTICAL_TARGET)
    root = ctx.composition.root_node

    assert ctx.adopted_vertical_flow
    assert root.id == "row" + PROMOTED_SUFFIX
    assert ctx.id_remap == {"row": root.id}
    assert ctx.lookup("row") == ctx.root
    assert ctx.source_id(root.id) == "row"
    assert root.flow.mode == LayoutMode.VERTICAL
    assert root.flow.primary_align == Align.MIN
    assert not root.flow.wrap


def test_promoted_column_fits(flow_row):
    ctx = _expanded(flow_row, VERTICAL_TARGET)
    comp = ctx.composition
    flow = comp.root_node.flow
    heights = [comp.node(c).box.height for c in comp.flow_children(ctx.root)]

    assert flow.padding_top >= 154
    assert flow.padding_bottom >= 320 - 0.01
    assert flow.padding_left >= 60 and flow.padding_right >= 60
    used = flow.padding_top + flow.padding_bottom + sum(heights) + flow.item_spacing * (len(heights) - 1)
    assert used <= 1920 + 0.5
    assert DiagnosticCode.FLOW_OVERFLOW not in {d.code for d in ctx.diagnostics}


def test_row_kept_on_wide_target(flow_row):
    ctx = _expanded(flow_row, Target(width=1920, height=600))
    root = ctx.composition.root_node
    assert root.id == "row"
    assert root.flow.mode == LayoutMode.HORIZONTAL
    assert ctx.id_remap == {}
    # Interior space widens the gaps between cards
    assert root.flow.item_spacing > 20


def _column(heights: list[float], height: float = 100):
    return build({
        "id": "col", "type": "FRAME", "width": 200, "height": height,
        "layoutMode": "VERTICAL", "paddingTop": 10, "paddingBottom": 10, "itemSpacing": 20,
        "children": [
            {"id": f"c{i}", "type": "RECTANGLE", "width": 100, "height": h}
            for i, h in enumerate(heights)
        ],
    })


def test_flow_fit_untouched_when_it_fits():
    ctx = build_context(_column([30, 30]), Target(width=200, height=100))
    enforce_flow_fit(ctx, ctx.root)
    assert ctx.composition.root_node.flow.item_spacing == 20
    assert ctx.diagnostics == []


def test_flow_fit_shrinks_spacing_first():
    ctx = build_context(_column([40, 40]), Target(width=200, height=100))
    enforce_flow_fit(ctx, ctx.root)
    root = ctx.composition.root_node
    assert root.flow.item_spacing == 0
    assert not root.clips_content
    assert ctx.diagnostics == []


def test_flow_overflow_clips_and_reports():
    ctx = build_context(_column([50, 50]), Target(width=200, height=100))
    enforce_flow_fit(ctx, ctx.root)
    root = ctx.composition.root_node
    assert root.flow.item_spacing == 0
    assert root.clips_content
    assert [d.code for d in ctx.diagnostics] == [DiagnosticCode.FLOW_OVERFLOW]


def _toolbar(wrap: bool = False):
    """A 100px row of five 16px icons inside a free-form frame."""
    return build({
        "id": "frame", "type": "FRAME", "width": 500, "height": 500,
        "children": [{
            "id": "toolbar", "type": "FRAME", "x": 0, "y": 0, "width": 100, "height": 20,
            "layoutMode": "HORIZONTAL", "itemSpacing": 4, "layoutWrap": "WRAP" if wrap else "NO_WRAP",
            "children": [
                {"id": f"i{i}", "type": "RECTANGLE", "name": "Icon", "width": 16, "height": 16}
                for i in range(5)
            ],
        }],
    })


def _shrunk(comp, scale=0.2):
    ctx = build_context(comp, Target(width=100, height=100))
    ctx.scale = ScaleResult(scale=scale, raw_scale=scale, frame_cap=scale)
    element_transform(ctx)
    flow_restore(ctx)
    return ctx


def test_nested_row_overflowing_after_floors_clips():
    ctx = _shrunk(_toolbar())
    toolbar = ctx.composition.find("toolbar")

    # Icons keep their 16px floor in a 20px row
    assert toolbar.box.width == 20
    assert ctx.composition.find("i0").box.width == 16
    assert toolbar.flow.item_spacing == 0
    assert toolbar.clips_content
    diag = [d for d in ctx.diagnostics if d.code == DiagnosticCode.FLOW_OVERFLOW]
    assert [d.node_id for d in diag] == ["toolbar"]
    assert diag[0].details["needed"] == 84


def test_nested_row_that_fits_is_left_alone():
    ctx = _shrunk(_toolbar(), scale=1.0)
    toolbar = ctx.composition.find("toolbar")
    assert toolbar.flow.item_spacing == 4
    assert not toolbar.clips_content
    assert ctx.diagnostics == []


def test_wrapping_row_not_clipped():
    ctx = _shrunk(_toolbar(wrap=True))
    assert not ctx.composition.find("toolbar").clips_content
    assert ctx.diagnostics == []
