"""S3.01 — Absolute Placement. ★★★

Place the free-floating children of the root on the target:

- backdrops end at the target origin, covering it exactly;
- bleed children keep, per axis, the distance-from-nearest-edge / frame
  ratio they had in the source, so cropped content stays cropped the same way;
- regular children move as one block to the planned leading margin, with
  the planned interior space spread across the gaps between bands of
  children, then are clamped into the safe bounds. A single row on a tall
  target is restacked as a centered column.

With faces or a focal point present, the safe bounds are scored as a 3x3
grid and children straddling several regions are nudged into the
best-scoring one they touch.
"""

from __future__ import annotations

import logging

from reframe.engine.classification import partition_root_children, resolve_role
from reframe.engine.constants import ANCHORED_ROLES, MOVABLE_ROLES
from reframe.engine.context import RetargetContext
from reframe.engine.layer0.s0_01_layout_profile import should_expand_absolute_children
from reframe.engine.placement import (
    clamp_into,
    face_bounds,
    face_element_indices,
    inset_bounds,
    map_source_point,
    region_at,
    region_bounds,
    safe_bounds,
    score_placement_regions,
)
from reframe.engine.registry import Layer, stage
from reframe.models.metrics import LayoutProfile, PlacementScoring
from reframe.scene.nodes import Box
from reframe.utils.geometry import Bounds, group_extents
from reframe.utils.math_helpers import clamp, round2

logger = logging.getLogger(__name__)

# Clamping slack so sub-pixel rounding never counts as leaving the safe area
_CLAMP_EPS = 0.01


def anchor_bleed_axis(
    orig_pos: float,
    orig_size: float,
    orig_frame: float,
    new_size: float,
    new_frame: float,
) -> float:
    """New offset preserving the edge ratio against the nearest frame edge."""
    if orig_frame <= 0:
        return orig_pos
    center = orig_pos + orig_size / 2
    if center <= orig_frame / 2:
        ratio = orig_pos / orig_frame
        return ratio * new_frame
    ratio = (orig_frame - (orig_pos + orig_size)) / orig_frame
    return new_frame - ratio * new_frame - new_size


def forms_single_row(boxes: list[Box]) -> bool:
    """True when every pair of boxes shares vertical extent."""
    if len(boxes) < 2:
        return False
    bands = group_extents([(b.y, b.bottom) for b in boxes])
    if max(bands) != 0:
        return False
    return max(b.y for b in boxes) < min(b.bottom for b in boxes)


def project_bands(ctx: RetargetContext, indices: list[int]) -> None:
    """Move the content block to the planned start; spread interior across band gaps.

    Offsets are measured from the scaled content origin, so children keep
    their distance to content (bleeds included) they don't move with.
    """
    comp = ctx.composition
    hp, vp = ctx.horizontal_plan, ctx.vertical_plan
    boxes = [comp.node(i).box for i in indices]
    x_bands = group_extents([(b.x, b.right) for b in boxes])
    y_bands = group_extents([(b.y, b.bottom) for b in boxes])
    nx, ny = max(x_bands) + 1, max(y_bands) + 1
    gap_x = hp.interior / (nx - 1) if nx > 1 else 0.0
    gap_y = vp.interior / (ny - 1) if ny > 1 else 0.0
    s = ctx.scale_factor
    if ctx.content is not None and not ctx.content.fell_back:
        block_x = ctx.content.bounds.x * s
        block_y = ctx.content.bounds.y * s
    else:
        block_x = min(b.x for b in boxes)
        block_y = min(b.y for b in boxes)
    for box, bx, by in zip(boxes, x_bands, y_bands):
        box.x = round2(hp.start + (box.x - block_x) + gap_x * bx)
        box.y = round2(vp.start + (box.y - block_y) + gap_y * by)


def stack_column(ctx: RetargetContext, indices: list[int], safe: Bounds) -> None:
    """Restack a row as a centered column inside the safe bounds."""
    comp = ctx.composition
    ordered = sorted(indices, key=lambda i: (comp.node(i).box.x, comp.node(i).box.y))
    boxes = [comp.node(i).box for i in ordered]
    safe_w, safe_h = safe[2] - safe[0], safe[3] - safe[1]
    total = sum(b.height for b in boxes)
    gaps = len(boxes) - 1
    gap = clamp((safe_h - total) / gaps, 0.0, ctx.config.stack_max_gap_ratio * safe_h) if gaps else 0.0
    y = safe[1] + max((safe_h - total - gap * gaps) / 2, 0.0)
    for box in boxes:
        box.x = round2(safe[0] + (safe_w - box.width) / 2)
        box.y = round2(y)
        y += box.height + gap


def clamp_to_safe(ctx: RetargetContext, indices: list[int], safe: Bounds) -> None:
    comp = ctx.composition
    frame = (0.0, 0.0, float(ctx.target.width), float(ctx.target.height))
    loose = (safe[0] - _CLAMP_EPS, safe[1] - _CLAMP_EPS, safe[2] + _CLAMP_EPS, safe[3] + _CLAMP_EPS)
    for idx in indices:
        box = comp.node(idx).box
        x, y = clamp_into(box.x, box.y, box.width, box.height, loose)
        # Too big for the safe area: at least keep it on the canvas
        x, y = clamp_into(x, y, box.width, box.height, frame)
        box.x, box.y = round2(x), round2(y)


def _is_movable(ctx: RetargetContext, index: int, anchored: set[int]) -> bool:
    if index in anchored:
        return False
    node = ctx.composition.node(index)
    role = resolve_role(ctx, index)
    if role in ANCHORED_ROLES:
        return False
    if role in MOVABLE_ROLES or node.has_text:
        return True
    return role is None and not node.has_image_paint


def _contains_any(ctx: RetargetContext, index: int, targets: set[int]) -> bool:
    return any(i in targets for i in ctx.composition.walk(index))


def score_and_nudge(ctx: RetargetContext, indices: list[int], safe: Bounds) -> PlacementScoring:
    comp = ctx.composition
    faces = [(face_bounds(ctx, f), f.confidence) for f in ctx.signals.face_regions]
    focal = None
    fp = ctx.signals.primary_focal_point(ctx.config.focal_min_confidence)
    if fp is not None:
        px, py = map_source_point(ctx, fp.x, fp.y, fp.element_id)
        focal = (px / ctx.target.width, py / ctx.target.height, fp.confidence)

    scoring = score_placement_regions(
        ctx.profile,
        safe,
        (float(ctx.target.width), float(ctx.target.height)),
        faces,
        focal,
        ctx.config,
    )
    carriers = face_element_indices(ctx)
    strength = ctx.config.nudge_strength

    for idx in indices:
        if not _is_movable(ctx, idx, carriers) or _contains_any(ctx, idx, carriers):
            continue
        box = comp.node(idx).box
        b = box.as_bounds()
        touched = {
            region_at((x, y), safe)
            for x in (b[0], box.center[0], b[2] - 1e-6)
            for y in (b[1], box.center[1], b[3] - 1e-6)
        }
        if len(touched) < 2:
            continue
        home = region_at(box.center, safe)
        best = max(touched, key=lambda r: (scoring.score_for(r).final_score, r == home))
        if best == home:
            continue
        rb = region_bounds(best, safe)
        tx, ty = clamp_into(box.x, box.y, box.width, box.height, rb)
        if box.width > rb[2] - rb[0]:
            tx = (rb[0] + rb[2]) / 2 - box.width / 2
        if box.height > rb[3] - rb[1]:
            ty = (rb[1] + rb[3]) / 2 - box.height / 2
        nx = box.x + (tx - box.x) * strength
        ny = box.y + (ty - box.y) * strength
        nx, ny = clamp_into(nx, ny, box.width, box.height, safe)
        logger.debug("nudged %s %s → %s", comp.node(idx).id, home, best)
        box.x, box.y = round2(nx), round2(ny)

    return scoring


@stage(
    id="S3.01",
    layer=Layer.PLACEMENT,
    dependencies=["S2.02"],
    description="Reposition free-floating and bleed children",
)
def absolute_placement(ctx: RetargetContext) -> None:
    comp = ctx.composition
    width, height = float(ctx.target.width), float(ctx.target.height)
    backgrounds, bleeds, regular = partition_root_children(ctx)

    for idx in backgrounds:
        comp.node(idx).box = Box(0.0, 0.0, width, height)

    for idx in bleeds:
        orig = ctx.original_box(idx)
        box = comp.node(idx).box
        box.x = round2(anchor_bleed_axis(orig.x, orig.width, ctx.source_width, box.width, width))
        box.y = round2(anchor_bleed_axis(orig.y, orig.height, ctx.source_height, box.height, height))

    expand = should_expand_absolute_children(
        ctx.root_snapshot.mode, ctx.adopted_vertical_flow, ctx.profile
    )
    if not expand or not regular:
        return
    if ctx.horizontal_plan is None or ctx.vertical_plan is None:
        raise ValueError("expansion plans missing")

    safe = safe_bounds(ctx)
    boxes = [comp.node(i).box for i in regular]
    if ctx.profile == LayoutProfile.VERTICAL and forms_single_row(boxes):
        # The plans were sized for the row; the column gets the whole inset area
        safe = inset_bounds(ctx)
        stack_column(ctx, regular, safe)
    else:
        project_bands(ctx, regular)
    clamp_to_safe(ctx, regular, safe)

    if ctx.signals.face_regions or ctx.signals.primary_focal_point(ctx.config.focal_min_confidence):
        ctx.placement = score_and_nudge(ctx, regular, safe)
        logger.debug("recommended region %s", ctx.placement.recommended_region)
