"""Placement helpers shared by the repositioner and the collision validator.

Face regions and focal points arrive normalized to the SOURCE frame. Before
any comparison they are carried through the transform of the element that
holds them (the advisor's element id, else the smallest non-text element
containing the point), so they land where that element now is.
"""

from __future__ import annotations

import math

import numpy as np

from reframe.engine.config import RetargetConfig
from reframe.engine.constants import REGION_BASE_SCORES, REGION_IDS
from reframe.engine.context import RetargetContext
from reframe.models.metrics import LayoutProfile, PlacementScoring, RegionScore
from reframe.models.signals import FaceRegion
from reframe.utils.geometry import Bounds, bounds_center, overlap_area
from reframe.utils.math_helpers import clamp


def safe_bounds(ctx: RetargetContext) -> Bounds:
    """Target box minus the planned start/end per axis.

    Degenerate plans fall back to the safe-area insets, then the frame.
    """
    w, h = float(ctx.target.width), float(ctx.target.height)
    hp, vp = ctx.horizontal_plan, ctx.vertical_plan
    if hp is not None and vp is not None:
        b = (hp.start, vp.start, w - hp.end, h - vp.end)
        if b[2] - b[0] > 1 and b[3] - b[1] > 1:
            return b
    return inset_bounds(ctx)


def inset_bounds(ctx: RetargetContext) -> Bounds:
    """Target box minus the safe-area insets, else the whole frame."""
    w, h = float(ctx.target.width), float(ctx.target.height)
    ins = ctx.insets
    b = (ins.left, ins.top, w - ins.right, h - ins.bottom)
    if b[2] - b[0] > 1 and b[3] - b[1] > 1:
        return b
    return (0.0, 0.0, w, h)


def _hit_test(ctx: RetargetContext, sx: float, sy: float) -> int | None:
    """Smallest visible non-text element whose original box holds the point."""
    comp = ctx.composition
    best: int | None = None
    best_area = math.inf
    for idx in comp.walk():
        if idx == ctx.root:
            continue
        node = comp.node(idx)
        if not node.visible or node.has_text:
            continue
        box = ctx.original_box(idx)
        if box.x <= sx <= box.right and box.y <= sy <= box.bottom and 0 < box.area < best_area:
            best, best_area = idx, box.area
    return best


def map_source_point(
    ctx: RetargetContext,
    x: float,
    y: float,
    element_id: str | None = None,
) -> tuple[float, float]:
    """Normalized source-frame point → target pixels, via its carrier element."""
    sx, sy = x * ctx.source_width, y * ctx.source_height
    index = ctx.lookup(element_id)
    if index is None:
        index = _hit_test(ctx, sx, sy)
    if index is None or index == ctx.root:
        return (x * ctx.target.width, y * ctx.target.height)

    orig = ctx.original_box(index)
    cur = ctx.composition.absolute_box(index)
    u = (sx - orig.x) / orig.width if orig.width > 0 else 0.5
    v = (sy - orig.y) / orig.height if orig.height > 0 else 0.5
    return (cur.x + u * cur.width, cur.y + v * cur.height)


def face_bounds(ctx: RetargetContext, face: FaceRegion) -> Bounds:
    """Face box in target pixels. Face x/y is the center."""
    x0, y0 = map_source_point(ctx, face.x - face.width / 2, face.y - face.height / 2, face.element_id)
    x1, y1 = map_source_point(ctx, face.x + face.width / 2, face.y + face.height / 2, face.element_id)
    return (min(x0, x1), min(y0, y1), max(x0, x1), max(y0, y1))


def face_element_indices(ctx: RetargetContext) -> set[int]:
    """Elements carrying a face. These are never displaced."""
    found: set[int] = set()
    for face in ctx.signals.face_regions:
        idx = ctx.lookup(face.element_id)
        if idx is None:
            idx = _hit_test(ctx, face.x * ctx.source_width, face.y * ctx.source_height)
        if idx is not None and idx != ctx.root:
            found.add(idx)
    return found


def region_bounds(region_id: str, safe: Bounds) -> Bounds:
    cell_w = (safe[2] - safe[0]) / 3
    cell_h = (safe[3] - safe[1]) / 3
    pos = REGION_IDS.index(region_id)
    row, col = divmod(pos, 3)
    x0 = safe[0] + col * cell_w
    y0 = safe[1] + row * cell_h
    return (x0, y0, x0 + cell_w, y0 + cell_h)


def region_at(point: tuple[float, float], safe: Bounds) -> str:
    """Region holding a point; points outside the safe bounds snap to the edge cells."""
    cell_w = max((safe[2] - safe[0]) / 3, 1e-9)
    cell_h = max((safe[3] - safe[1]) / 3, 1e-9)
    col = int(np.clip((point[0] - safe[0]) // cell_w, 0, 2))
    row = int(np.clip((point[1] - safe[1]) // cell_h, 0, 2))
    return REGION_IDS[row * 3 + col]


def score_placement_regions(
    profile: LayoutProfile,
    safe: Bounds,
    frame_size: tuple[float, float],
    faces: list[tuple[Bounds, float]],
    focal: tuple[float, float, float] | None,
    config: RetargetConfig | None = None,
) -> PlacementScoring:
    """Score the 3x3 grid over the safe bounds.

    ``faces`` are (pixel bounds, confidence); ``focal`` is (x, y, confidence)
    normalized to the target frame.
    """
    cfg = config or RetargetConfig()
    base_scores = REGION_BASE_SCORES[profile.value]
    fw, fh = max(frame_size[0], 1.0), max(frame_size[1], 1.0)

    regions: list[RegionScore] = []
    for region_id in REGION_IDS:
        rb = region_bounds(region_id, safe)
        area = (rb[2] - rb[0]) * (rb[3] - rb[1])

        face_avoidance = 0.0
        if area > 0:
            for fb, confidence in faces:
                face_avoidance += overlap_area(rb, fb) / area * confidence * cfg.face_penalty_factor
            face_avoidance = min(face_avoidance, cfg.face_penalty_cap)

        focal_avoidance = 0.0
        if focal is not None and focal[2] > cfg.focal_penalty_min_confidence:
            cx, cy = bounds_center(rb)
            dist = math.hypot(cx / fw - focal[0], cy / fh - focal[1])
            if dist < cfg.focal_penalty_radius:
                focal_avoidance = (1 - dist / cfg.focal_penalty_radius) * focal[2] * cfg.focal_penalty_factor

        base = base_scores[region_id]
        regions.append(RegionScore(
            region_id=region_id,
            base_score=base,
            face_avoidance=round(face_avoidance, 4),
            focal_avoidance=round(focal_avoidance, 4),
            final_score=round(max(0.0, base - face_avoidance - focal_avoidance), 4),
        ))

    # max() keeps the first of equal scores, i.e. grid order
    best = max(regions, key=lambda r: r.final_score)
    return PlacementScoring(regions=regions, recommended_region=best.region_id)


def clamp_into(
    x: float,
    y: float,
    width: float,
    height: float,
    outer: Bounds,
) -> tuple[float, float]:
    """Translate a box into ``outer`` on each axis where it fits."""
    if width <= outer[2] - outer[0]:
        x = clamp(x, outer[0], outer[2] - width)
    if height <= outer[3] - outer[1]:
        y = clamp(y, outer[1], outer[3] - height)
    return x, y
