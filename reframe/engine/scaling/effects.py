"""Effect and paint scaling.

Effects grow linearly up to the damping threshold and sub-linearly beyond it,
then hit hard caps: a 4× upscale of a 20px shadow should read as "a bigger
shadow", not as an 80px smear.
"""

from __future__ import annotations

from reframe.engine.config import RetargetConfig
from reframe.scene.nodes import Effect, Paint
from reframe.utils.math_helpers import damped_factor, round2


def _capped(value: float, factor: float, cap: float) -> float:
    """Scale, but never grow past ``cap`` (values already above it stay put)."""
    scaled = value * factor
    return round2(min(scaled, max(cap, value)))


def scale_effect(effect: Effect, scale: float, config: RetargetConfig) -> None:
    threshold = config.effect_damping_threshold
    if effect.is_shadow:
        effect.radius = _capped(
            effect.radius,
            damped_factor(scale, config.shadow_radius_exponent, threshold),
            config.max_shadow_radius,
        )
        offset = damped_factor(scale, config.shadow_offset_exponent, threshold)
        effect.offset_x = round2(effect.offset_x * offset)
        effect.offset_y = round2(effect.offset_y * offset)
        effect.spread = round2(
            effect.spread * damped_factor(scale, config.shadow_spread_exponent, threshold)
        )
    elif effect.kind == "layer_blur":
        effect.radius = _capped(
            effect.radius,
            damped_factor(scale, config.blur_exponent, threshold),
            config.max_layer_blur,
        )
    elif effect.kind == "background_blur":
        effect.radius = _capped(
            effect.radius,
            damped_factor(scale, config.blur_exponent, threshold),
            config.max_background_blur,
        )
    # Unknown effect kinds pass through unchanged


def scale_paint(paint: Paint, scale: float, *, force_fill: bool = False) -> None:
    if paint.kind == "gradient":
        paint.gradient_handles = [(round2(x * scale), round2(y * scale)) for x, y in paint.gradient_handles]
        if paint.gradient_transform is not None:
            (a, b, tx), (c, d, ty) = paint.gradient_transform
            # Linear part scales; translation stays
            paint.gradient_transform = (
                (a * scale, b * scale, tx),
                (c * scale, d * scale, ty),
            )
    elif paint.kind == "image":
        if paint.scale_mode == "tile":
            paint.scaling_factor = round(paint.scaling_factor * scale, 4)
        if force_fill:
            # Backdrops must cover the target exactly
            paint.scale_mode = "fill"
            paint.image_transform = None
