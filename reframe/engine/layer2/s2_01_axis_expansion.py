"""S2.01 — Axis Expansion. ★★★

Per axis, allocate the surplus left after scaling (target − scaled content)
into leading margin, trailing margin and interior gaps:

1. safe-area insets are satisfied first;
2. space the source composition never had (beyond the scaled original
   margins, or the insets where larger) may be spread across gaps when
   interior expansion is permitted;
3. the remaining edge budget is split between the margins in the original
   margin ratio, blended toward the focal ratio so a subject near one edge
   is pushed away from it.

Every plan satisfies start + end + interior == total extra.
"""

from __future__ import annotations

import logging
import math

from reframe.engine.classification import partition_root_children
from reframe.engine.config import RetargetConfig
from reframe.engine.context import Margins, RetargetContext
from reframe.engine.layer0.s0_01_layout_profile import should_adopt_vertical_flow
from reframe.engine.registry import Layer, stage
from reframe.models.metrics import AxisExpansionPlan, LayoutProfile
from reframe.scene.nodes import LayoutMode
from reframe.utils.geometry import group_extents
from reframe.utils.math_helpers import clamp, round2

logger = logging.getLogger(__name__)


def interior_weight(
    gaps: int,
    base_spacing: float,
    margins: tuple[float, float],
    config: RetargetConfig,
) -> float:
    """Share of the new space that goes between items rather than to the edges."""
    weight = min(config.interior_base_weight + config.interior_weight_per_gap * gaps, config.interior_weight_cap)
    if base_spacing < config.interior_tight_spacing:
        weight *= config.interior_tight_factor
    total = margins[0] + margins[1]
    if total > 0:
        # Lopsided source margins are intentional; keep more space at the edges
        asymmetry = abs(margins[0] - margins[1]) / total
        weight *= 1 - asymmetry * config.interior_asymmetry_damping
    return clamp(weight, 0.0, config.interior_max_weight)


def margin_share(
    margins: tuple[float, float],
    focal_ratio: float | None,
    config: RetargetConfig,
) -> float:
    """Fraction of the edge budget that goes to the leading edge."""
    total = margins[0] + margins[1]
    share = margins[0] / total if total > 0 else 0.5
    if focal_ratio is not None:
        # Focal content near the leading edge gets more leading space
        toward = clamp(1.0 - focal_ratio, 0.0, 1.0)
        share = share * (1 - config.focal_bias_weight) + toward * config.focal_bias_weight
    return share


def plan_axis_expansion(
    total_extra: float,
    insets: tuple[float, float] = (0.0, 0.0),
    margins: tuple[float, float] = (0.0, 0.0),
    flow_child_count: int = 0,
    base_spacing: float = 0.0,
    allow_interior: bool = False,
    focal_ratio: float | None = None,
    config: RetargetConfig | None = None,
) -> AxisExpansionPlan:
    cfg = config or RetargetConfig()
    total = total_extra if math.isfinite(total_extra) else 0.0
    total = max(total, 0.0)
    if total <= 0:
        return AxisExpansionPlan(start=0.0, end=0.0, interior=0.0)

    inset_start, inset_end = max(insets[0], 0.0), max(insets[1], 0.0)
    margin_start, margin_end = max(margins[0], 0.0), max(margins[1], 0.0)
    inset_total = inset_start + inset_end

    if total <= inset_total:
        # Not even the insets fit; share what there is in their proportion
        start = round2(total * inset_start / inset_total)
        return AxisExpansionPlan(start=start, end=total - start, interior=0.0)

    interior = 0.0
    gaps = flow_child_count - 1
    if allow_interior and gaps >= 1:
        reserved = max(inset_start, margin_start) + max(inset_end, margin_end)
        new_space = max(total - reserved, 0.0)
        weight = interior_weight(gaps, base_spacing, (margin_start, margin_end), cfg)
        interior = round2(new_space * weight)

    edge = total - interior
    share = margin_share((margin_start, margin_end), focal_ratio, cfg)
    start = round2(clamp(edge * share, inset_start, edge - inset_end))
    return AxisExpansionPlan(start=start, end=total - start - interior, interior=interior)


def normalize_margins(
    margins: Margins,
    source_profile: LayoutProfile,
    target_profile: LayoutProfile,
    source_ratio: float,
    target_ratio: float,
    config: RetargetConfig | None = None,
) -> Margins:
    """Rebalance lopsided margins when the aspect change is large.

    Totals per axis are preserved; only the split moves.
    """
    cfg = config or RetargetConfig()
    significant = (
        abs(source_ratio - target_ratio) > cfg.significant_aspect_change
        or source_profile != target_profile
    )
    if not significant:
        return Margins(margins.left, margins.right, margins.top, margins.bottom)

    keep = cfg.margin_original_weight
    threshold = cfg.margin_asymmetry_threshold
    if target_profile == LayoutProfile.SQUARE:
        threshold *= 0.8

    out = Margins(margins.left, margins.right, margins.top, margins.bottom)

    h_total = margins.left + margins.right
    h_asym = abs(margins.left - margins.right) / h_total if h_total > 0 else 0.0
    if target_profile != LayoutProfile.VERTICAL and h_asym > threshold:
        avg = h_total / 2
        out.left = margins.left * keep + avg * (1 - keep)
        out.right = margins.right * keep + avg * (1 - keep)

    v_total = margins.top + margins.bottom
    v_asym = abs(margins.top - margins.bottom) / v_total if v_total > 0 else 0.0
    if target_profile != LayoutProfile.HORIZONTAL and v_asym > threshold:
        if target_profile == LayoutProfile.VERTICAL:
            top = v_total * cfg.vertical_top_share
            bottom = v_total - top
        else:
            top = bottom = v_total / 2
        out.top = margins.top * keep + top * (1 - keep)
        out.bottom = margins.bottom * keep + bottom * (1 - keep)

    return out


def _band_count(ctx: RetargetContext, indices: list[int], axis: str) -> int:
    comp = ctx.composition
    if axis == "x":
        intervals = [(comp.node(i).box.x, comp.node(i).box.right) for i in indices]
    else:
        intervals = [(comp.node(i).box.y, comp.node(i).box.bottom) for i in indices]
    bands = group_extents(intervals)
    return max(bands) + 1 if bands else 0


def _column_extent(ctx: RetargetContext, spacing: float) -> tuple[float, float]:
    """(width, height) of the root's flow children restacked as a column."""
    comp = ctx.composition
    boxes = [comp.node(i).box for i in comp.flow_children(ctx.root)]
    if not boxes:
        return 0.0, 0.0
    width = max(b.width for b in boxes)
    height = sum(b.height for b in boxes) + spacing * (len(boxes) - 1)
    return width, height


def _focal_ratios(ctx: RetargetContext) -> tuple[float | None, float | None]:
    """Primary focal point as a 0–1 position within the content bounds."""
    focal = ctx.signals.primary_focal_point(ctx.config.focal_min_confidence)
    if focal is None or ctx.content is None:
        return None, None
    b = ctx.content.bounds
    fx = focal.x * ctx.source_width
    fy = focal.y * ctx.source_height
    rx = clamp((fx - b.x) / b.width, 0.0, 1.0) if b.width > 0 else 0.5
    ry = clamp((fy - b.y) / b.height, 0.0, 1.0) if b.height > 0 else 0.5
    return rx, ry


@stage(
    id="S2.01",
    layer=Layer.EXPANSION,
    dependencies=["S1.01"],
    description="Allocate surplus space into margins and interior gaps",
)
def axis_expansion(ctx: RetargetContext) -> None:
    cfg = ctx.config
    s = ctx.scale_factor
    content = ctx.content
    if content is None:
        raise ValueError("content analysis missing")

    snap = ctx.root_snapshot
    adopt = should_adopt_vertical_flow(ctx.profile, snap)
    ctx.adopted_vertical_flow = adopt
    spacing = snap.item_spacing * s

    scaled_w = content.effective_width * s
    scaled_h = content.effective_height * s
    if adopt and snap.mode == LayoutMode.HORIZONTAL:
        scaled_w, scaled_h = _column_extent(ctx, spacing)
    extra_x = max(ctx.target.width - scaled_w, 0.0)
    extra_y = max(ctx.target.height - scaled_h, 0.0)

    raw = content.margins
    margins = normalize_margins(
        Margins(raw.left * s, raw.right * s, raw.top * s, raw.bottom * s),
        ctx.source_profile,
        ctx.profile,
        max(ctx.source_width, 1.0) / max(ctx.source_height, 1.0),
        ctx.target.aspect_ratio,
        cfg,
    )

    _, _, regular = partition_root_children(ctx)
    x_bands = _band_count(ctx, regular, "x")
    y_bands = _band_count(ctx, regular, "y")

    if snap.mode == LayoutMode.HORIZONTAL and not adopt:
        h_count, h_spacing = snap.flow_child_count, spacing
    elif snap.mode == LayoutMode.NONE:
        h_count, h_spacing = x_bands, 0.0
    else:
        h_count, h_spacing = 0, 0.0

    if snap.mode == LayoutMode.VERTICAL or adopt:
        v_count, v_spacing = snap.flow_child_count, spacing
    elif snap.mode == LayoutMode.NONE:
        v_count, v_spacing = y_bands, 0.0
    else:
        v_count, v_spacing = 0, 0.0

    focal_x, focal_y = _focal_ratios(ctx)
    ctx.horizontal_plan = plan_axis_expansion(
        extra_x,
        (ctx.insets.left, ctx.insets.right),
        (margins.left, margins.right),
        h_count,
        h_spacing,
        allow_interior=h_count >= 2,
        focal_ratio=focal_x,
        config=cfg,
    )
    ctx.vertical_plan = plan_axis_expansion(
        extra_y,
        (ctx.insets.top, ctx.insets.bottom),
        (margins.top, margins.bottom),
        v_count,
        v_spacing,
        allow_interior=v_count >= 2,
        focal_ratio=focal_y,
        config=cfg,
    )
    logger.debug("plans h=%s v=%s adopt=%s", ctx.horizontal_plan, ctx.vertical_plan, adopt)
