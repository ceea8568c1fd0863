"""S4.02 — Bounds Validation.

Root children that are neither bleed nor backdrop must end inside the
target. Oversized ones shrink to fit, the whole subtree scaled by the same
factor; the rest are translated back onto the canvas.
"""

from __future__ import annotations

import logging

from reframe.engine.classification import partition_root_children
from reframe.engine.context import RetargetContext
from reframe.engine.layer1.s1_01_element_transform import scale_subtree
from reframe.engine.placement import clamp_into
from reframe.engine.registry import Layer, stage
from reframe.models.metrics import DiagnosticCode
from reframe.utils.geometry import contains_bounds
from reframe.utils.math_helpers import round2

logger = logging.getLogger(__name__)


@stage(
    id="S4.02",
    layer=Layer.VALIDATION,
    dependencies=["S3.01"],
    description="Keep non-bleed root children inside the target",
)
def bounds_validation(ctx: RetargetContext) -> None:
    comp = ctx.composition
    width, height = float(ctx.target.width), float(ctx.target.height)
    frame = (0.0, 0.0, width, height)
    _, _, regular = partition_root_children(ctx)

    for idx in regular:
        node = comp.node(idx)
        box = node.box
        if contains_bounds(frame, box.as_bounds(), eps=0.01):
            continue
        before = box.as_bounds()

        fit = 1.0
        if box.width > width or box.height > height:
            fit = min(width / box.width, height / box.height)
            scale_subtree(ctx, idx, fit)
            logger.debug("%s: subtree shrunk by %.4f to fit the target", node.id, fit)
        x, y = clamp_into(box.x, box.y, box.width, box.height, frame)
        box.x, box.y = round2(x), round2(y)

        ctx.report(
            DiagnosticCode.OUT_OF_BOUNDS,
            "moved back inside the target",
            node_id=node.id,
            before=[round2(v) for v in before],
            after=[round2(v) for v in box.as_bounds()],
            fit=round2(fit),
        )
