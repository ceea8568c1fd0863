"""S0.02 — Safe Area. ★

Resolve per-edge safe-area insets: explicit target insets, then platform
overrides, then the symmetric ratio.
"""

from __future__ import annotations

from reframe.config import settings
from reframe.engine.context import RetargetContext
from reframe.engine.registry import Layer, stage
from reframe.targets import resolve_safe_area


@stage(
    id="S0.02",
    layer=Layer.ANALYSIS,
    description="Resolve safe-area insets for the target",
)
def safe_area(ctx: RetargetContext) -> None:
    ratio = ctx.config.safe_area_ratio
    if ratio is None:
        ratio = settings.reframe_safe_area_ratio
    ctx.insets = resolve_safe_area(ctx.target, ratio)
