"""S0.03 — Content Analysis. ★★

Effective content bounds of the root frame: the union of visible,
non-background children, clipped to the frame. Backdrops (≥95% of the root
area) are skipped but their children still count. Fails open to the whole
frame when nothing measurable exists.
"""

from __future__ import annotations

import logging

from reframe.engine.classification import is_background_like, is_overlay
from reframe.engine.context import ContentAnalysis, Margins, RetargetContext
from reframe.engine.registry import Layer, stage
from reframe.models.metrics import Density, DiagnosticCode
from reframe.scene.nodes import Box
from reframe.utils.geometry import intersect_bounds, union_bounds

logger = logging.getLogger(__name__)


def classify_density(child_count: int) -> Density:
    if child_count > 10:
        return Density.DENSE
    if child_count <= 2:
        return Density.SPARSE
    return Density.MEDIUM


def _content_children(ctx: RetargetContext) -> list[int]:
    """Visible root children, with backdrops replaced by their own children."""
    comp = ctx.composition
    result: list[int] = []
    stack = list(reversed(comp.children_of(ctx.root)))
    while stack:
        idx = stack.pop()
        node = comp.node(idx)
        if not node.visible or is_overlay(ctx, idx):
            continue
        if is_background_like(ctx, idx):
            stack.extend(reversed(node.children))
            continue
        result.append(idx)
    return result


def analyze_content(ctx: RetargetContext) -> ContentAnalysis:
    comp = ctx.composition
    frame = Box(0.0, 0.0, ctx.source_width, ctx.source_height)

    has_text = False
    has_images = False
    for idx in comp.walk():
        node = comp.node(idx)
        if not node.visible:
            continue
        if node.has_text and node.characters.strip():
            has_text = True
        if node.has_image_paint:
            has_images = True

    children = _content_children(ctx)
    boxes = []
    for idx in children:
        box = ctx.original_box(idx)
        if box.width > 0 or box.height > 0:
            boxes.append(box.as_bounds())

    union = union_bounds(boxes)
    clipped = intersect_bounds(union, frame.as_bounds()) if union is not None else None
    if clipped is None and union is not None:
        # Zero-area content (a single rule line) still has a usable extent
        x0 = min(max(union[0], 0.0), frame.width)
        y0 = min(max(union[1], 0.0), frame.height)
        x1 = min(max(union[2], 0.0), frame.width)
        y1 = min(max(union[3], 0.0), frame.height)
        if x1 > x0 or y1 > y0:
            clipped = (x0, y0, x1, y1)

    if clipped is None:
        ctx.report(
            DiagnosticCode.MISSING_EFFECTIVE_CONTENT,
            "no measurable non-background content; using the whole frame",
            node_id=comp.root_node.id,
        )
        return ContentAnalysis(
            bounds=frame,
            density=classify_density(len(children)),
            has_text=has_text,
            has_images=has_images,
            child_count=len(children),
            fell_back=True,
        )

    bounds = Box.from_bounds(clipped)
    margins = Margins(
        left=max(bounds.x, 0.0),
        right=max(frame.width - bounds.right, 0.0),
        top=max(bounds.y, 0.0),
        bottom=max(frame.height - bounds.bottom, 0.0),
    )
    return ContentAnalysis(
        bounds=bounds,
        density=classify_density(len(children)),
        has_text=has_text,
        has_images=has_images,
        child_count=len(children),
        margins=margins,
    )


@stage(
    id="S0.03",
    layer=Layer.ANALYSIS,
    description="Measure effective content bounds and density",
)
def content_analysis(ctx: RetargetContext) -> None:
    ctx.content = analyze_content(ctx)
    logger.debug(
        "content %.1fx%.1f (%s, %d children)",
        ctx.content.effective_width,
        ctx.content.effective_height,
        ctx.content.density.value,
        ctx.content.child_count,
    )
