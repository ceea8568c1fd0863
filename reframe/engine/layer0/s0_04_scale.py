"""S0.04 — Scale. ★★

One uniform factor: the largest scale at which the effective content plus
safe-area insets fits the target, capped at the scale where the whole source
frame still fits (so a full-bleed backdrop cannot drive over-scaling).
"""

from __future__ import annotations

import math

from reframe.engine.config import RetargetConfig
from reframe.engine.context import RetargetContext, ScaleResult
from reframe.engine.registry import Layer, stage
from reframe.models.metrics import DiagnosticCode
from reframe.models.target import SafeAreaInsets
from reframe.utils.math_helpers import is_finite_positive


def compute_scale(
    effective_width: float,
    effective_height: float,
    frame_width: float,
    frame_height: float,
    target_width: float,
    target_height: float,
    insets: SafeAreaInsets,
    config: RetargetConfig | None = None,
) -> ScaleResult:
    cfg = config or RetargetConfig()

    if frame_width > 0 and frame_height > 0:
        cap = min(target_width / frame_width, target_height / frame_height)
    else:
        cap = math.nan

    if effective_width <= 0 or effective_height <= 0:
        # Degenerate content: only the frame can bound the scale
        raw = cap
    else:
        raw = min(
            (target_width - insets.left - insets.right) / effective_width,
            (target_height - insets.top - insets.bottom) / effective_height,
        )

    if is_finite_positive(raw) and is_finite_positive(cap):
        return ScaleResult(scale=min(raw, cap), raw_scale=raw, frame_cap=cap)
    if is_finite_positive(raw):
        return ScaleResult(scale=raw, raw_scale=raw, frame_cap=cap, fallback="frame cap undefined")
    # Insets leave no room, or the content is unmeasurable
    return ScaleResult(
        scale=cfg.min_scale,
        raw_scale=raw,
        frame_cap=cap,
        fallback=f"computed scale {raw!r} is not a positive finite number",
    )


@stage(
    id="S0.04",
    layer=Layer.ANALYSIS,
    dependencies=["S0.02", "S0.03"],
    description="Compute the uniform scale factor",
)
def scale(ctx: RetargetContext) -> None:
    content = ctx.content
    ew = content.effective_width if content else 0.0
    eh = content.effective_height if content else 0.0
    result = compute_scale(
        ew,
        eh,
        ctx.source_width,
        ctx.source_height,
        ctx.target.width,
        ctx.target.height,
        ctx.insets,
        ctx.config,
    )
    if result.fallback is not None:
        ctx.report(
            DiagnosticCode.INVALID_GEOMETRY,
            result.fallback,
            node_id=ctx.composition.root_node.id,
            scale=result.scale,
        )
    ctx.scale = result
