"""Composition loader — nested dict (adapter export) → array-backed Composition.

Accepts the camelCase keys a design-tool adapter emits as well as the
snake_case keys ``dump_composition`` produces.
"""

from __future__ import annotations

import logging
from typing import Any

from reframe.errors import CompositionError
from reframe.scene.nodes import (
    Align,
    AutoResize,
    Box,
    Composition,
    Effect,
    FlowLayout,
    LayoutMode,
    Node,
    NodeKind,
    Paint,
    Positioning,
    SizeConstraints,
    TextRun,
)

logger = logging.getLogger(__name__)

_CONTAINER_TYPES = {
    "container", "frame", "group", "component", "component_set", "instance", "section",
}
_TEXT_TYPES = {"text"}
_LEAF_TYPES = {
    "leaf", "rectangle", "ellipse", "vector", "line", "star", "polygon", "boolean_operation",
}

_EFFECT_KINDS = {
    "drop_shadow": "drop_shadow",
    "inner_shadow": "inner_shadow",
    "layer_blur": "layer_blur",
    "background_blur": "background_blur",
}


def _get(data: dict[str, Any], *keys: str, default: Any = None) -> Any:
    """First present key wins."""
    for k in keys:
        if k in data and data[k] is not None:
            return data[k]
    return default


def _num(value: Any, default: float = 0.0) -> float:
    try:
        return float(value)
    except (TypeError, ValueError):
        return default


def _opt_num(value: Any) -> float | None:
    if value is None:
        return None
    try:
        return float(value)
    except (TypeError, ValueError):
        return None


def _kind(data: dict[str, Any]) -> NodeKind:
    raw = str(_get(data, "kind", "type", default="")).lower()
    if raw in _TEXT_TYPES:
        return NodeKind.TEXT
    if raw in _CONTAINER_TYPES or "children" in data:
        return NodeKind.CONTAINER
    # Anything else (rectangles, vectors, unknown host types) is a leaf
    return NodeKind.LEAF


def _is_known(data: dict[str, Any], kind: NodeKind) -> bool:
    if kind != NodeKind.LEAF:
        return True
    return str(_get(data, "kind", "type", default="")).lower() in _LEAF_TYPES


def _affine(value: Any) -> tuple[tuple[float, float, float], tuple[float, float, float]] | None:
    if value is None:
        return None
    return (
        tuple(float(v) for v in value[0]),  # type: ignore[return-value]
        tuple(float(v) for v in value[1]),
    )


def _paint(data: dict[str, Any]) -> Paint:
    raw_kind = str(_get(data, "kind", "type", default="solid")).lower()
    if raw_kind.startswith("gradient"):
        kind = "gradient"
    elif raw_kind in ("image", "video"):
        kind = "image"
    else:
        kind = "solid"

    gradient_transform = _affine(_get(data, "gradient_transform", "gradientTransform"))
    image_transform = _affine(_get(data, "image_transform", "imageTransform"))

    handles = []
    for h in _get(data, "gradient_handles", "gradientHandlePositions", default=[]):
        if isinstance(h, dict):
            handles.append((_num(h.get("x")), _num(h.get("y"))))
        else:
            handles.append((_num(h[0]), _num(h[1])))

    return Paint(
        kind=kind,
        scale_mode=str(_get(data, "scale_mode", "scaleMode", default="fill")).lower(),
        scaling_factor=_num(_get(data, "scaling_factor", "scalingFactor", default=1.0), 1.0),
        gradient_handles=handles,
        gradient_transform=gradient_transform,
        image_transform=image_transform,
        opacity=_num(_get(data, "opacity", default=1.0), 1.0),
        visible=bool(_get(data, "visible", default=True)),
    )


def _effect(data: dict[str, Any]) -> Effect:
    raw_kind = str(_get(data, "kind", "type", default="drop_shadow")).lower()
    offset = data.get("offset") or {}
    return Effect(
        kind=_EFFECT_KINDS.get(raw_kind, raw_kind),
        radius=_num(_get(data, "radius", default=0.0)),
        offset_x=_num(_get(data, "offset_x", "offsetX", default=offset.get("x", 0.0))),
        offset_y=_num(_get(data, "offset_y", "offsetY", default=offset.get("y", 0.0))),
        spread=_num(_get(data, "spread", default=0.0)),
        visible=bool(_get(data, "visible", default=True)),
    )


def _metric(value: Any, default_unit: str) -> tuple[float | None, str]:
    """Text metric as (value, unit); accepts numbers or {value, unit} dicts."""
    if value is None:
        return None, default_unit
    if isinstance(value, dict):
        unit = str(value.get("unit", default_unit)).lower()
        if unit == "pixels":
            unit = "px"
        return _opt_num(value.get("value")), unit
    return _num(value), "px"


def _text_run(data: dict[str, Any], fallback_size: float) -> TextRun:
    font_name = data.get("fontName") or {}
    line_height, lh_unit = _metric(_get(data, "line_height", "lineHeight"), "auto")
    if line_height is None:
        lh_unit = "auto"
    spacing, ls_unit = _metric(_get(data, "letter_spacing", "letterSpacing"), "px")
    return TextRun(
        start=int(_num(_get(data, "start", default=0))),
        end=int(_num(_get(data, "end", default=0))),
        font_family=str(_get(data, "font_family", "fontFamily", default=font_name.get("family", "Inter"))),
        font_style=str(_get(data, "font_style", "fontStyle", default=font_name.get("style", "Regular"))),
        font_size=_num(_get(data, "font_size", "fontSize", default=fallback_size), fallback_size),
        line_height=line_height,
        line_height_unit=_get(data, "line_height_unit", default=lh_unit),
        letter_spacing=spacing or 0.0,
        letter_spacing_unit=_get(data, "letter_spacing_unit", default=ls_unit),
    )


def _flow(data: dict[str, Any]) -> FlowLayout | None:
    mode = str(_get(data, "layout_mode", "layoutMode", default="NONE")).upper()
    if mode not in LayoutMode.__members__:
        mode = "NONE"
    wrap_raw = _get(data, "wrap", "layoutWrap", default=False)
    wrap = wrap_raw == "WRAP" if isinstance(wrap_raw, str) else bool(wrap_raw)

    def _align(*keys: str) -> Align:
        raw = str(_get(data, *keys, default="MIN")).upper()
        return Align(raw) if raw in Align.__members__ else Align.MIN

    return FlowLayout(
        mode=LayoutMode(mode),
        padding_left=_num(_get(data, "padding_left", "paddingLeft", default=0.0)),
        padding_right=_num(_get(data, "padding_right", "paddingRight", default=0.0)),
        padding_top=_num(_get(data, "padding_top", "paddingTop", default=0.0)),
        padding_bottom=_num(_get(data, "padding_bottom", "paddingBottom", default=0.0)),
        item_spacing=_num(_get(data, "item_spacing", "itemSpacing", default=0.0)),
        counter_axis_spacing=_num(_get(data, "counter_axis_spacing", "counterAxisSpacing", default=0.0)),
        wrap=wrap,
        primary_align=_align("primary_align", "primaryAxisAlignItems"),
        counter_align=_align("counter_align", "counterAxisAlignItems"),
    )


def _node(data: dict[str, Any], index: int) -> Node:
    kind = _kind(data)
    font_size = _num(_get(data, "font_size", "fontSize", default=16.0), 16.0)

    radii = _get(data, "corner_radii", "cornerRadii")
    if radii is None and "topLeftRadius" in data:
        radii = [
            data.get("topLeftRadius", 0), data.get("topRightRadius", 0),
            data.get("bottomRightRadius", 0), data.get("bottomLeftRadius", 0),
        ]

    constraints_data = _get(data, "size_constraints", "sizeConstraints", default=data)
    positioning = str(_get(data, "positioning", "layoutPositioning", default="AUTO")).upper()
    auto_resize = str(_get(data, "auto_resize", "textAutoResize", default="NONE")).upper()
    # Unknown host types pass through untouched: no paints for the engine to rescale
    known = _is_known(data, kind)

    node = Node(
        id=str(_get(data, "id", default=f"n{index}")),
        kind=kind,
        name=str(_get(data, "name", default="")),
        box=Box(
            _num(data.get("x")),
            _num(data.get("y")),
            _num(data.get("width")),
            _num(data.get("height")),
        ),
        visible=bool(_get(data, "visible", default=True)),
        z=int(_num(_get(data, "z", default=0))),
        role=_get(data, "role"),
        role_confidence=_num(_get(data, "role_confidence", "roleConfidence", default=1.0), 1.0),
        bleed=bool(_get(data, "bleed", default=False)),
        positioning=Positioning(positioning) if positioning in Positioning.__members__ else Positioning.AUTO,
        paints=[_paint(p) for p in _get(data, "paints", "fills", default=[])] if known else [],
        strokes=[_paint(p) for p in _get(data, "strokes", default=[])] if known else [],
        stroke_weight=_num(_get(data, "stroke_weight", "strokeWeight", default=0.0)),
        corner_radius=_num(_get(data, "corner_radius", "cornerRadius", default=0.0)),
        corner_radii=tuple(_num(r) for r in radii) if radii is not None else None,  # type: ignore[arg-type]
        effects=[_effect(e) for e in _get(data, "effects", default=[])],
        constraints=SizeConstraints(
            min_width=_opt_num(_get(constraints_data, "min_width", "minWidth")),
            max_width=_opt_num(_get(constraints_data, "max_width", "maxWidth")),
            min_height=_opt_num(_get(constraints_data, "min_height", "minHeight")),
            max_height=_opt_num(_get(constraints_data, "max_height", "maxHeight")),
        ),
        flow=_flow(data) if kind == NodeKind.CONTAINER else None,
        clips_content=bool(_get(data, "clips_content", "clipsContent", default=False)),
        characters=str(_get(data, "characters", default="")),
        font_size=font_size,
        auto_resize=AutoResize(auto_resize) if auto_resize in AutoResize.__members__ else AutoResize.NONE,
    )
    if kind == NodeKind.TEXT:
        node.text_runs = [
            _text_run(r, font_size) for r in _get(data, "text_runs", "textRuns", "segments", default=[])
        ]
    return node


def load_composition(data: dict[str, Any]) -> Composition:
    """Build a Composition from a nested dict tree. The top-level dict is the root."""
    if not isinstance(data, dict) or not data:
        raise CompositionError("Composition root must be a non-empty mapping")

    comp = Composition()
    # Work list of (payload, parent index)
    stack: list[tuple[dict[str, Any], int | None]] = [(data, None)]
    while stack:
        payload, parent = stack.pop()
        if not isinstance(payload, dict):
            raise CompositionError(f"Child of node {parent} is not a mapping: {type(payload).__name__}")
        node = _node(payload, len(comp.nodes))
        if comp.index_of(node.id) is not None:
            raise CompositionError(f"Duplicate node id: {node.id}")
        idx = comp.add(node, parent)
        if "z" not in payload and parent is not None:
            node.z = len(comp.nodes[parent].children) - 1
        children = payload.get("children") or []
        if not isinstance(children, list):
            raise CompositionError(f"children of {node.id} must be a list")
        # Reverse so children are appended in document order
        for child in reversed(children):
            stack.append((child, idx))

    comp.root = 0
    logger.debug("Loaded composition with %d nodes", len(comp.nodes))
    return comp
