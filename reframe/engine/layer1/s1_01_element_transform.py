"""S1.01 — Element Transform. ★★★

Depth-first walk over the clone applying the uniform scale to every visual
property: position, size, text metrics, strokes, radii, effects, paints and
nested flow metadata. Aspect-lock overrides (size floors, decorative
pointers, backdrops) are resolved per node.

The walk is an explicit work list of node indices computed up front, so a
stage that later swaps a node into the same slot never invalidates it.
"""

from __future__ import annotations

import logging

from reframe.engine.classification import floor_role, is_background_like, is_decorative_pointer
from reframe.engine.context import RetargetContext
from reframe.engine.registry import Layer, stage
from reframe.engine.scaling.effects import scale_effect, scale_paint
from reframe.engine.scaling.sizing import (
    aspect_drift,
    fit_within,
    floor_scale,
    scale_constraints,
    scale_dimension,
    scale_stroke_and_radii,
)
from reframe.engine.scaling.text import minimum_legible_size, scale_text_node
from reframe.models.metrics import DiagnosticCode
from reframe.scene.nodes import FlowLayout, Node
from reframe.utils.math_helpers import round2, scale_metric

logger = logging.getLogger(__name__)


def scale_flow_metadata(flow: FlowLayout, scale: float) -> None:
    flow.padding_left = scale_metric(flow.padding_left, scale)
    flow.padding_right = scale_metric(flow.padding_right, scale)
    flow.padding_top = scale_metric(flow.padding_top, scale)
    flow.padding_bottom = scale_metric(flow.padding_bottom, scale)
    # Non-zero gaps never collapse
    flow.item_spacing = scale_metric(flow.item_spacing, scale, minimum=1.0)
    flow.counter_axis_spacing = scale_metric(
        flow.counter_axis_spacing, scale, minimum=1.0 if flow.wrap else 0.0
    )


def _decorate(node: Node, scale: float, ctx: RetargetContext, force_fill: bool) -> None:
    scale_stroke_and_radii(node, scale)
    for effect in node.effects:
        scale_effect(effect, scale, ctx.config)
    if not node.has_paints:
        return
    for paint in node.paints:
        scale_paint(paint, scale, force_fill=force_fill)
    for paint in node.strokes:
        scale_paint(paint, scale)


def _dimension(ctx: RetargetContext, node: Node, value: float, scale: float, axis: str) -> float:
    result = scale_dimension(value, scale)
    if result is None:
        ctx.report(
            DiagnosticCode.INVALID_GEOMETRY,
            f"non-finite {axis} ({value} x {scale}); using 1px",
            node_id=node.id,
        )
        return 1.0
    return result


def _scaled_size(ctx: RetargetContext, index: int, scale: float) -> tuple[float, float]:
    node = ctx.composition.node(index)
    w, h = node.box.width, node.box.height

    factor = scale
    floor = None
    role = floor_role(ctx, index)
    if role is not None and role in ctx.config.min_element_sizes:
        floor = ctx.config.min_element_sizes[role]
        factor = floor_scale(w, h, scale, floor)
        if factor > scale:
            logger.debug("%s: %s floor %sx%s raises scale %.3f → %.3f", node.id, role, *floor, scale, factor)

    new_w = _dimension(ctx, node, w, factor, "width")
    new_h = _dimension(ctx, node, h, factor, "height")
    if floor is not None and factor > scale:
        # factor ≥ floor/size on both axes, so this only absorbs float error
        new_w = max(new_w, floor[0]) if w > 0 else new_w
        new_h = max(new_h, floor[1]) if h > 0 else new_h

    if is_decorative_pointer(ctx, index):
        if aspect_drift(w, h, new_w, new_h) > ctx.config.decorative_aspect_tolerance:
            new_w, new_h = fit_within(w, h, new_w, new_h)
    return new_w, new_h


def _transform_root(ctx: RetargetContext, scale: float) -> None:
    root = ctx.composition.root_node
    # The frame keeps its page offset and takes the target size
    root.box.width = float(ctx.target.width)
    root.box.height = float(ctx.target.height)
    _decorate(root, scale, ctx, force_fill=True)
    if root.flow is not None:
        scale_flow_metadata(root.flow, scale)


def transform_node(ctx: RetargetContext, index: int, scale: float, min_font: float) -> None:
    comp = ctx.composition
    node = comp.node(index)
    background = is_background_like(ctx, index)

    if background:
        # Absolute origin of the target frame, expressed in the parent's space
        parent_abs = comp.absolute_box(node.parent) if node.parent not in (None, ctx.root) else None
        node.box.x = -parent_abs.x if parent_abs else 0.0
        node.box.y = -parent_abs.y if parent_abs else 0.0
    elif comp.is_free_floating(index):
        node.box.x = round2(node.box.x * scale)
        node.box.y = round2(node.box.y * scale)

    if node.has_text:
        # Runs are scaled and floored even when the text box spans the frame
        floored = scale_text_node(node, scale, min_font, ctx.font_cache)
        if floored:
            logger.debug("%s: %d text runs raised to %.1fpx", node.id, floored, min_font)

    if background:
        node.box.width, node.box.height = float(ctx.target.width), float(ctx.target.height)
    elif not node.has_text:
        node.box.width, node.box.height = _scaled_size(ctx, index, scale)

    if not node.constraints.is_empty:
        node.constraints, conflicts = scale_constraints(
            node.constraints, scale, node.box.width, node.box.height
        )
        for axis in conflicts:
            ctx.report(
                DiagnosticCode.CONSTRAINT_CONFLICT,
                f"scaled min {axis} exceeded max {axis}; collapsed to their average",
                node_id=node.id,
                axis=axis,
            )

    _decorate(node, scale, ctx, force_fill=background)
    if node.flow is not None and node.is_container:
        scale_flow_metadata(node.flow, scale)


def scale_subtree(ctx: RetargetContext, index: int, factor: float) -> None:
    """Uniformly rescale an already-transformed subtree by ``factor``.

    The top node keeps its position; descendants scale their offsets with
    it. Size floors are not reapplied, the text legibility floor is.
    """
    comp = ctx.composition
    min_font = minimum_legible_size(ctx.target.width, ctx.target.height, ctx.config)
    for idx in comp.walk(index):
        node = comp.node(idx)
        if idx != index:
            node.box.x = round2(node.box.x * factor)
            node.box.y = round2(node.box.y * factor)
        if node.has_text:
            scale_text_node(node, factor, min_font, ctx.font_cache)
        else:
            node.box.width = _dimension(ctx, node, node.box.width, factor, "width")
            node.box.height = _dimension(ctx, node, node.box.height, factor, "height")
        if not node.constraints.is_empty:
            node.constraints, _ = scale_constraints(
                node.constraints, factor, node.box.width, node.box.height
            )
        _decorate(node, factor, ctx, force_fill=False)
        if node.flow is not None and node.is_container:
            scale_flow_metadata(node.flow, factor)


@stage(
    id="S1.01",
    layer=Layer.TRANSFORM,
    dependencies=["S0.01", "S0.04"],
    description="Scale position, size, text, strokes, effects and paints",
)
def element_transform(ctx: RetargetContext) -> None:
    comp = ctx.composition
    scale = ctx.scale_factor
    min_font = minimum_legible_size(ctx.target.width, ctx.target.height, ctx.config)

    work = comp.walk()
    _transform_root(ctx, scale)
    for index in work:
        if index == ctx.root:
            continue
        transform_node(ctx, index, scale, min_font)

    logger.debug(
        "transformed %d nodes at scale %.4f (%d fonts)", len(work), scale, len(ctx.font_cache)
    )
