"""Leaf-node geometry helpers. No engine imports.

Bounds are (xmin, ymin, xmax, ymax) tuples throughout.
"""

from __future__ import annotations

import numpy as np
from shapely.geometry import box as shapely_box

Bounds = tuple[float, float, float, float]


def union_bounds(bounds: list[Bounds]) -> Bounds | None:
    """Axis-aligned union of a list of bounds, or None if empty."""
    if not bounds:
        return None
    arr = np.asarray(bounds, dtype=np.float64)
    return (
        float(np.min(arr[:, 0])),
        float(np.min(arr[:, 1])),
        float(np.max(arr[:, 2])),
        float(np.max(arr[:, 3])),
    )


def intersect_bounds(a: Bounds, b: Bounds) -> Bounds | None:
    """Intersection of two bounds, or None when they do not overlap with area."""
    inter = shapely_box(*a).intersection(shapely_box(*b))
    if inter.is_empty or inter.area <= 0:
        return None
    return tuple(float(v) for v in inter.bounds)  # type: ignore[return-value]


def overlap_area(a: Bounds, b: Bounds) -> float:
    """Area shared by two bounds (0 when disjoint or degenerate)."""
    if a[2] <= a[0] or a[3] <= a[1] or b[2] <= b[0] or b[3] <= b[1]:
        return 0.0
    return float(shapely_box(*a).intersection(shapely_box(*b)).area)


def overlap_fraction(a: Bounds, b: Bounds) -> float:
    """Fraction of ``a`` covered by ``b``, in [0, 1]."""
    area_a = (a[2] - a[0]) * (a[3] - a[1])
    if area_a <= 0:
        return 0.0
    return overlap_area(a, b) / area_a


def contains_bounds(outer: Bounds, inner: Bounds, eps: float = 0.5) -> bool:
    return (
        inner[0] >= outer[0] - eps
        and inner[1] >= outer[1] - eps
        and inner[2] <= outer[2] + eps
        and inner[3] <= outer[3] + eps
    )


def bounds_center(b: Bounds) -> tuple[float, float]:
    return ((b[0] + b[2]) / 2, (b[1] + b[3]) / 2)


def group_extents(intervals: list[tuple[float, float]]) -> list[int]:
    """Assign each (start, end) interval a band index along one axis.

    Intervals that overlap (transitively) share a band; bands are numbered in
    ascending order of their start. Touching intervals are separate bands.
    """
    if not intervals:
        return []
    arr = np.asarray(intervals, dtype=np.float64)
    order = np.argsort(arr[:, 0], kind="stable")
    bands = [0] * len(intervals)
    band = 0
    band_end = arr[order[0], 1]
    for rank, idx in enumerate(order):
        start, end = arr[idx]
        if rank > 0 and start >= band_end:
            band += 1
            band_end = end
        else:
            band_end = max(band_end, end)
        bands[int(idx)] = band
    return bands
