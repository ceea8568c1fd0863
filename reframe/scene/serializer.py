"""Composition serializer — array-backed Composition → nested dict.

The output is the hand-off shape for the scene mutation adapter, and loads
back through ``load_composition`` unchanged.
"""

from __future__ import annotations

from typing import Any

from reframe.scene.nodes import Composition, Effect, Node, NodeKind, Paint, TextRun


def _paint(p: Paint) -> dict[str, Any]:
    out: dict[str, Any] = {
        "kind": p.kind,
        "scale_mode": p.scale_mode,
        "scaling_factor": p.scaling_factor,
        "opacity": p.opacity,
        "visible": p.visible,
    }
    if p.gradient_handles:
        out["gradient_handles"] = [list(h) for h in p.gradient_handles]
    if p.gradient_transform is not None:
        out["gradient_transform"] = [list(row) for row in p.gradient_transform]
    if p.image_transform is not None:
        out["image_transform"] = [list(row) for row in p.image_transform]
    return out


def _effect(e: Effect) -> dict[str, Any]:
    return {
        "kind": e.kind,
        "radius": e.radius,
        "offset_x": e.offset_x,
        "offset_y": e.offset_y,
        "spread": e.spread,
        "visible": e.visible,
    }


def _run(r: TextRun) -> dict[str, Any]:
    return {
        "start": r.start,
        "end": r.end,
        "font_family": r.font_family,
        "font_style": r.font_style,
        "font_size": r.font_size,
        "line_height": r.line_height,
        "line_height_unit": r.line_height_unit,
        "letter_spacing": r.letter_spacing,
        "letter_spacing_unit": r.letter_spacing_unit,
    }


def _node(node: Node) -> dict[str, Any]:
    out: dict[str, Any] = {
        "id": node.id,
        "kind": node.kind.value,
        "name": node.name,
        "x": node.box.x,
        "y": node.box.y,
        "width": node.box.width,
        "height": node.box.height,
        "visible": node.visible,
        "z": node.z,
        "positioning": node.positioning.value,
        "paints": [_paint(p) for p in node.paints],
        "strokes": [_paint(p) for p in node.strokes],
        "stroke_weight": node.stroke_weight,
        "corner_radius": node.corner_radius,
        "effects": [_effect(e) for e in node.effects],
        "clips_content": node.clips_content,
    }
    if node.role is not None:
        out["role"] = node.role
        out["role_confidence"] = node.role_confidence
    if node.bleed:
        out["bleed"] = True
    if node.corner_radii is not None:
        out["corner_radii"] = list(node.corner_radii)
    if not node.constraints.is_empty:
        c = node.constraints
        out["size_constraints"] = {
            "min_width": c.min_width,
            "max_width": c.max_width,
            "min_height": c.min_height,
            "max_height": c.max_height,
        }
    if node.flow is not None:
        f = node.flow
        out.update({
            "layout_mode": f.mode.value,
            "padding_left": f.padding_left,
            "padding_right": f.padding_right,
            "padding_top": f.padding_top,
            "padding_bottom": f.padding_bottom,
            "item_spacing": f.item_spacing,
            "counter_axis_spacing": f.counter_axis_spacing,
            "wrap": f.wrap,
            "primary_align": f.primary_align.value,
            "counter_align": f.counter_align.value,
        })
    if node.kind == NodeKind.TEXT:
        out.update({
            "characters": node.characters,
            "font_size": node.font_size,
            "auto_resize": node.auto_resize.value,
            "text_runs": [_run(r) for r in node.text_runs],
        })
    return out


def dump_composition(comp: Composition) -> dict[str, Any]:
    """Serialize to a nested dict rooted at ``comp.root``."""
    payloads: dict[int, dict[str, Any]] = {}
    for idx in comp.walk():
        node = comp.node(idx)
        payload = _node(node)
        if node.kind == NodeKind.CONTAINER:
            payload["children"] = []
        payloads[idx] = payload
        if node.parent is not None and node.parent in payloads:
            payloads[node.parent]["children"].append(payload)
    return payloads[comp.root]
