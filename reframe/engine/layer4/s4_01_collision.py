"""S4.01 — Collision Validation. ★★

Final pass over text after placement: any visible, free-floating text node
whose box overlaps a face region beyond the tolerance is displaced along
one axis, just past the face edge. Candidate moves are ranked by distance;
the first that clears every face inside the safe bounds wins, then inside
the target. Without such a move, the least-overlapping position on the
canvas is kept and the node is reported as unresolved.

Face-bearing elements and flow-managed text never move. Nothing is deleted.
"""

from __future__ import annotations

import logging

from reframe.engine.context import RetargetContext
from reframe.engine.placement import clamp_into, face_bounds, face_element_indices, safe_bounds
from reframe.engine.registry import Layer, stage
from reframe.models.metrics import CollisionReport, Correction, DiagnosticCode
from reframe.utils.geometry import Bounds, contains_bounds, overlap_fraction
from reframe.utils.math_helpers import round2

logger = logging.getLogger(__name__)

# Moves end this far past the face edge so rounding can't re-touch it
_CLEARANCE = 0.01


def face_overlap(box: Bounds, faces: list[Bounds]) -> float:
    """Summed fraction of ``box`` covered by the faces."""
    return sum(overlap_fraction(box, f) for f in faces)


def candidate_moves(box: Bounds, faces: list[Bounds]) -> list[tuple[float, float]]:
    """Single-axis displacements that take ``box`` past each face edge."""
    moves: list[tuple[float, float]] = []
    for f in faces:
        moves.append((f[0] - box[2] - _CLEARANCE, 0.0))
        moves.append((f[2] - box[0] + _CLEARANCE, 0.0))
        moves.append((0.0, f[1] - box[3] - _CLEARANCE))
        moves.append((0.0, f[3] - box[1] + _CLEARANCE))
    return sorted(moves, key=lambda m: (abs(m[0]) + abs(m[1]), m))


def _shift(box: Bounds, dx: float, dy: float) -> Bounds:
    return (box[0] + dx, box[1] + dy, box[2] + dx, box[3] + dy)


def resolve_displacement(
    box: Bounds,
    faces: list[Bounds],
    safe: Bounds,
    frame: Bounds,
    tolerance: float = 0.0,
) -> tuple[float, float, bool]:
    """(dx, dy, resolved) for a box overlapping faces."""
    moves = candidate_moves(box, faces)
    for outer in (safe, frame):
        for dx, dy in moves:
            moved = _shift(box, dx, dy)
            if face_overlap(moved, faces) <= tolerance and contains_bounds(outer, moved, eps=_CLEARANCE):
                return dx, dy, True

    # Best effort: least overlap once kept on the canvas, shortest move on ties
    width, height = box[2] - box[0], box[3] - box[1]
    best = (0.0, 0.0)
    best_key = (face_overlap(box, faces), 0.0)
    for dx, dy in moves:
        x, y = clamp_into(box[0] + dx, box[1] + dy, width, height, frame)
        moved = (x, y, x + width, y + height)
        key = (face_overlap(moved, faces), abs(x - box[0]) + abs(y - box[1]))
        if key < best_key:
            best, best_key = (x - box[0], y - box[1]), key
    return best[0], best[1], best_key[0] <= tolerance


def validate_collisions(ctx: RetargetContext) -> CollisionReport:
    comp = ctx.composition
    faces = [face_bounds(ctx, f) for f in ctx.signals.face_regions]
    carriers = face_element_indices(ctx)
    safe = safe_bounds(ctx)
    frame = (0.0, 0.0, float(ctx.target.width), float(ctx.target.height))
    tolerance = ctx.config.face_overlap_tolerance

    report = CollisionReport(face_count=len(faces))
    for idx in comp.walk():
        node = comp.node(idx)
        if not node.has_text or not node.visible or idx in carriers:
            continue
        report.text_node_count += 1
        if not comp.is_free_floating(idx):
            continue

        box = comp.absolute_box(idx).as_bounds()
        before = face_overlap(box, faces)
        if before <= tolerance:
            continue

        dx, dy, resolved = resolve_displacement(box, faces, safe, frame, tolerance)
        original = (node.box.x, node.box.y)
        node.box.x = round2(node.box.x + dx)
        node.box.y = round2(node.box.y + dy)
        after = face_overlap(comp.absolute_box(idx).as_bounds(), faces)

        report.corrections.append(Correction(
            node_id=node.id,
            node_name=node.name,
            original=original,
            corrected=(node.box.x, node.box.y),
            nudge=(round2(node.box.x - original[0]), round2(node.box.y - original[1])),
            overlap_before=round(before, 4),
            overlap_after=round(after, 4),
            resolved=resolved,
        ))
        if not resolved:
            report.unresolved.append(node.id)
            ctx.report(
                DiagnosticCode.FACE_OVERLAP_UNRESOLVABLE,
                f"text still covers {after:.0%} face area after best effort",
                node_id=node.id,
                overlap=round(after, 4),
            )
        else:
            logger.debug("moved %s by (%.1f, %.1f) off a face", node.id, dx, dy)

    report.corrected = bool(report.corrections)
    return report


@stage(
    id="S4.01",
    layer=Layer.VALIDATION,
    dependencies=["S3.01"],
    tags={"faces"},
    description="Move text off detected faces",
)
def collision_validation(ctx: RetargetContext) -> None:
    ctx.collision_report = validate_collisions(ctx)
    logger.info(
        "[%s] collision check: %d faces, %d text nodes, %d corrections",
        ctx.target.id,
        ctx.collision_report.face_count,
        ctx.collision_report.text_node_count,
        len(ctx.collision_report.corrections),
    )
