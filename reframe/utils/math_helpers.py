"""Math helpers — rounding, clamping, damping. No engine imports."""

from __future__ import annotations

import math

import numpy as np


def round2(value: float) -> float:
    """Round to 2 decimals (sub-pixel precision kept for geometry)."""
    return round(float(value), 2)


def round_half_px(value: float) -> float:
    """Round to the nearest half pixel, half-up. 17.25 → 17.5, 17.2 → 17.0."""
    return math.floor(value * 2 + 0.5) / 2


def clamp(value: float, lo: float, hi: float) -> float:
    """Clamp into [lo, hi]. If the range is inverted, lo wins."""
    if hi < lo:
        return lo
    return float(np.clip(value, lo, hi))


def is_finite_positive(value: float | None) -> bool:
    return value is not None and bool(np.isfinite(value)) and value > 0


def safe_dimension(value: float, fallback: float = 1.0) -> float:
    """Replace non-finite or sub-pixel dimensions with a ≥1px fallback."""
    if value is None or not np.isfinite(value):
        return max(fallback, 1.0)
    return max(float(value), 1.0)


def damped_factor(scale: float, exponent: float, threshold: float) -> float:
    """Linear up to ``threshold``, then ``scale ** exponent``.

    Used for effects: a 4× upscale should not produce a 4× shadow.
    """
    if scale <= threshold:
        return scale
    return float(scale**exponent)


def scale_metric(value: float, scale: float, minimum: float = 0.0) -> float:
    """Scale a padding/spacing metric. Zero stays zero; non-zero is floored."""
    if value == 0:
        return 0.0
    return max(round2(value * scale), minimum)
