"""Size, constraint, stroke and corner-radius scaling."""

from __future__ import annotations

import math

from reframe.scene.nodes import Node, SizeConstraints
from reframe.utils.math_helpers import round2


def scale_dimension(value: float, scale: float) -> float | None:
    """Scaled box dimension, or None when the result is not finite.

    Anything that was at least 1px stays at least 1px.
    """
    result = value * scale
    if not math.isfinite(result):
        return None
    result = round2(result)
    if value >= 1.0:
        result = max(result, 1.0)
    return max(result, 0.0)


def floor_scale(width: float, height: float, scale: float, floor: tuple[float, float]) -> float:
    """max(requested scale, scale needed to meet the floor on either axis)."""
    min_w, min_h = floor
    factor = scale
    if width > 0:
        factor = max(factor, min_w / width)
    if height > 0:
        factor = max(factor, min_h / height)
    return factor


def fit_within(width: float, height: float, max_width: float, max_height: float) -> tuple[float, float]:
    """Largest (w, h) with the source aspect that fits inside max_width × max_height."""
    if width <= 0 or height <= 0:
        return (max_width, max_height)
    fit = min(max_width / width, max_height / height)
    return (round2(width * fit), round2(height * fit))


def aspect_drift(orig_w: float, orig_h: float, new_w: float, new_h: float) -> float:
    """Relative change of the width/height ratio."""
    if orig_w <= 0 or orig_h <= 0 or new_h <= 0:
        return 0.0
    orig = orig_w / orig_h
    return abs(new_w / new_h - orig) / orig


def _scale_opt(value: float | None, scale: float) -> float | None:
    return None if value is None else round2(value * scale)


def _validate_axis(
    lo: float | None,
    hi: float | None,
    size: float,
) -> tuple[float | None, float | None, bool]:
    """Make (min, max) consistent with each other and with ``size``.

    Returns (min, max, conflicted).
    """
    conflicted = False
    if lo is not None and hi is not None and lo > hi:
        conflicted = True
        avg = (lo + hi) / 2
        lo = min(avg, size)
        hi = max(avg, size)
    if lo is not None and lo > size:
        lo = size
    if hi is not None and hi < size:
        hi = size
    return lo, hi, conflicted


def scale_constraints(
    constraints: SizeConstraints,
    scale: float,
    width: float,
    height: float,
) -> tuple[SizeConstraints, list[str]]:
    """Scale min/max sizes; returns the new constraints and the conflicted axes."""
    scaled = SizeConstraints(
        min_width=_scale_opt(constraints.min_width, scale),
        max_width=_scale_opt(constraints.max_width, scale),
        min_height=_scale_opt(constraints.min_height, scale),
        max_height=_scale_opt(constraints.max_height, scale),
    )
    conflicts: list[str] = []
    scaled.min_width, scaled.max_width, bad_w = _validate_axis(scaled.min_width, scaled.max_width, width)
    scaled.min_height, scaled.max_height, bad_h = _validate_axis(scaled.min_height, scaled.max_height, height)
    if bad_w:
        conflicts.append("width")
    if bad_h:
        conflicts.append("height")
    return scaled, conflicts


def scale_stroke_and_radii(node: Node, scale: float) -> None:
    """Strokes and radii scale linearly; radii never exceed half the short side."""
    if node.stroke_weight > 0:
        node.stroke_weight = max(round2(node.stroke_weight * scale), 0.01)

    limit = max(min(node.box.width, node.box.height) / 2, 0.0)
    if node.corner_radius > 0:
        node.corner_radius = round2(min(node.corner_radius * scale, limit))
    if node.corner_radii is not None:
        node.corner_radii = tuple(  # type: ignore[assignment]
            round2(min(r * scale, limit)) for r in node.corner_radii
        )
