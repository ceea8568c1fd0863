"""S0.01 — Layout Profile. ★

Classify target and source aspect ratios into vertical / horizontal / square,
plus the heuristic policy switches every later stage consults.
"""

from __future__ import annotations

from reframe.engine.config import RetargetConfig
from reframe.engine.context import FlowSnapshot, RetargetContext
from reframe.engine.registry import Layer, stage
from reframe.models.metrics import LayoutProfile
from reframe.scene.nodes import Align, LayoutMode


def resolve_layout_profile(
    width: float,
    height: float,
    config: RetargetConfig | None = None,
) -> LayoutProfile:
    cfg = config or RetargetConfig()
    ratio = max(width, 1.0) / max(height, 1.0)
    if ratio < cfg.vertical_ratio_max:
        return LayoutProfile.VERTICAL
    if ratio > cfg.horizontal_ratio_min:
        return LayoutProfile.HORIZONTAL
    return LayoutProfile.SQUARE


def should_adopt_vertical_flow(profile: LayoutProfile, snapshot: FlowSnapshot | None) -> bool:
    """Heuristic switch: stack a row-based root into a column on tall targets.

    Already-vertical roots keep their column; a horizontal row with at least
    one flow child is promoted. Free-form roots are never promoted.
    """
    if profile != LayoutProfile.VERTICAL or snapshot is None:
        return False
    if snapshot.mode == LayoutMode.VERTICAL:
        return True
    if snapshot.mode == LayoutMode.HORIZONTAL:
        return snapshot.flow_child_count >= 1
    return False


def should_expand_absolute_children(
    root_mode: LayoutMode,
    adopted_vertical_flow: bool,
    profile: LayoutProfile,
) -> bool:
    if adopted_vertical_flow:
        return True
    if profile == LayoutProfile.VERTICAL and root_mode != LayoutMode.VERTICAL:
        return True
    return root_mode == LayoutMode.NONE


def resolve_vertical_align(current: Align, interior: float) -> Align:
    """Primary-axis alignment for a column on a vertical target."""
    if current == Align.SPACE_BETWEEN and interior <= 0:
        return Align.SPACE_BETWEEN
    # Distributed interior space already spreads the items; anchor to the top
    return Align.MIN


@stage(
    id="S0.01",
    layer=Layer.ANALYSIS,
    description="Classify target and source aspect ratios",
)
def layout_profile(ctx: RetargetContext) -> None:
    ctx.profile = resolve_layout_profile(ctx.target.width, ctx.target.height, ctx.config)
    ctx.source_profile = resolve_layout_profile(ctx.source_width, ctx.source_height, ctx.config)
