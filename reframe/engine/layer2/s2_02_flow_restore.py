"""S2.02 — Flow Restore. ★★

Reapply padding, spacing and alignment to the root flow container from the
expansion plans. On tall targets a row-based root may be promoted to a
column; the promoted node gets a new id and the old→new pair is recorded in
the context's remap table for any pending lookups.

Every other non-wrapping flow container is then checked for fit: size floors
and 1px gap floors from S1.01 can push its children past its primary axis.
"""

from __future__ import annotations

import copy
import logging

from reframe.engine.context import RetargetContext
from reframe.engine.layer0.s0_01_layout_profile import resolve_vertical_align
from reframe.engine.registry import Layer, stage
from reframe.models.metrics import DiagnosticCode, LayoutProfile
from reframe.scene.nodes import LayoutMode, Node
from reframe.utils.math_helpers import round2

logger = logging.getLogger(__name__)

PROMOTED_SUFFIX = ":column"


def promote_to_vertical_flow(ctx: RetargetContext, index: int) -> str:
    """Replace a horizontal flow container with a vertical one. Returns the new id."""
    comp = ctx.composition
    old = comp.node(index)
    promoted: Node = copy.deepcopy(old)
    promoted.id = f"{old.id}{PROMOTED_SUFFIX}"
    if promoted.flow is not None:
        promoted.flow.mode = LayoutMode.VERTICAL
    old_id = comp.replace(index, promoted)
    ctx.id_remap[old_id] = promoted.id
    logger.info("[%s] promoted %s to a vertical flow (%s)", ctx.target.id, old_id, promoted.id)
    return promoted.id


def _primary_sizes(ctx: RetargetContext, index: int) -> tuple[float, float, list[float]]:
    """(container primary size, padding sum, child primary sizes)."""
    comp = ctx.composition
    node = comp.node(index)
    flow = node.flow
    children = comp.flow_children(index)
    if flow.mode == LayoutMode.HORIZONTAL:
        return (
            node.box.width,
            flow.padding_left + flow.padding_right,
            [comp.node(c).box.width for c in children],
        )
    return (
        node.box.height,
        flow.padding_top + flow.padding_bottom,
        [comp.node(c).box.height for c in children],
    )


def enforce_flow_fit(ctx: RetargetContext, index: int) -> None:
    """Children + padding + spacing must fit the primary axis.

    Spacing gives way first; if the children alone still overflow, the
    container clips and the overflow is reported.
    """
    comp = ctx.composition
    node = comp.node(index)
    flow = node.flow
    size, padding, sizes = _primary_sizes(ctx, index)
    if not sizes:
        return
    gaps = len(sizes) - 1
    needed = padding + sum(sizes) + flow.item_spacing * gaps
    if needed <= size + 0.5:
        return

    available = size - padding - sum(sizes)
    if gaps > 0:
        flow.item_spacing = round2(max(available / gaps, 0.0))
    if available < 0:
        node.clips_content = True
        ctx.report(
            DiagnosticCode.FLOW_OVERFLOW,
            f"flow children need {needed:.1f}px of {size:.1f}px; clipping",
            node_id=node.id,
            needed=round2(needed),
            available=round2(size),
        )


def _restore_root(ctx: RetargetContext) -> None:
    comp = ctx.composition
    root_idx = ctx.root
    h, v = ctx.horizontal_plan, ctx.vertical_plan
    if h is None or v is None:
        raise ValueError("expansion plans missing")

    flow = comp.root_node.flow
    flow.padding_left = round2(h.start)
    flow.padding_right = round2(h.end)
    flow.padding_top = round2(v.start)
    flow.padding_bottom = round2(v.end)

    gaps = max(len(comp.flow_children(root_idx)) - 1, 0)
    base = ctx.root_snapshot.item_spacing * ctx.scale_factor
    interior = h.interior if flow.mode == LayoutMode.HORIZONTAL else v.interior
    flow.item_spacing = round2(base + interior / gaps) if gaps else round2(base)

    if ctx.profile == LayoutProfile.VERTICAL and flow.mode == LayoutMode.VERTICAL:
        flow.primary_align = resolve_vertical_align(flow.primary_align, interior)
        flow.wrap = False

    enforce_flow_fit(ctx, root_idx)


@stage(
    id="S2.02",
    layer=Layer.EXPANSION,
    dependencies=["S2.01"],
    description="Restore root flow padding/spacing and fit every flow container",
)
def flow_restore(ctx: RetargetContext) -> None:
    comp = ctx.composition
    if ctx.adopted_vertical_flow and comp.root_node.layout_mode == LayoutMode.HORIZONTAL:
        promote_to_vertical_flow(ctx, ctx.root)

    if comp.root_node.is_flow_container:
        _restore_root(ctx)

    # Nested rows and columns keep their scaled metrics; floors can still overflow them
    for idx in comp.walk():
        node = comp.node(idx)
        if idx == ctx.root or not node.is_flow_container or node.flow.wrap:
            continue
        enforce_flow_fit(ctx, idx)
