"""Tests for Layer 4 — face collision and bounds validation."""

import pytest

# Import all stages to trigger registration
import reframe.engine.layer4.s4_01_collision
import reframe.engine.layer4.s4_02_bounds_validation

from reframe.engine.layer4.s4_01_collision import (
    candidate_moves,
    face_overlap,
    resolve_displacement,
)
from reframe.engine.layer4.s4_02_bounds_validation import bounds_validation
from reframe.engine.pipeline import build_context, retarget
from reframe.models.metrics import DiagnosticCode
from reframe.models.signals import FaceRegion, SemanticSignals
from reframe.models.target import Target
from reframe.scene.nodes import Box
from tests.conftest import NO_INSETS, build

SAME_SIZE = Target(id="same", width=1200, height=1200, safe_area=NO_INSETS)


# --- S4.01 helpers ---


def test_face_overlap_sums_faces():
    box = (0, 0, 10, 10)
    faces = [(0, 0, 5, 10), (5, 0, 10, 5)]
    assert face_overlap(box, faces) == pytest.approx(0.75)
    assert face_overlap(box, []) == 0


def test_candidate_moves_shortest_first():
    moves = candidate_moves((0, 0, 10, 10), [(5, 0, 20, 10)])
    assert moves[0] == pytest.approx((-5.01, 0))
    # Equal distances resolve toward the negative move
    assert moves[1] == pytest.approx((0, -10.01))
    assert moves[2] == pytest.approx((0, 10.01))
    assert len(moves) == 4


def test_displacement_prefers_safe_bounds():
    dx, dy, ok = resolve_displacement((0, 0, 10, 10), [(5, 0, 20, 10)], (0, 0, 100, 100), (0, 0, 100, 100))
    assert ok
    assert (dx, dy) == pytest.approx((0, 10.01))


def test_displacement_falls_back_to_frame():
    dx, dy, ok = resolve_displacement(
        (20, 20, 30, 30), [(25, 20, 40, 30)], safe=(20, 20, 30, 30), frame=(0, 0, 100, 100),
    )
    assert ok
    assert (dx, dy) == pytest.approx((-5.01, 0))


def test_displacement_unresolvable_stays_put():
    dx, dy, ok = resolve_displacement((10, 10, 20, 20), [(0, 0, 100, 100)], (0, 0, 100, 100), (0, 0, 100, 100))
    assert not ok
    assert (dx, dy) == (0, 0)


def test_displacement_tolerance():
    # 10% of the box overlaps; a 20% tolerance accepts the best-effort spot
    box = (0, 0, 10, 10)
    dx, dy, ok = resolve_displacement(box, [(9, 0, 100, 100)], (0, 0, 10, 10), (0, 0, 10, 10), tolerance=0.2)
    assert ok
    assert (dx, dy) == (0, 0)


# --- S4.01 stage ---


def test_headline_moved_off_face(portrait, portrait_signals):
    result = retarget(portrait, SAME_SIZE, portrait_signals)
    report = result.collision_report
    headline = result.composition.find("headline")

    assert report is not None
    assert report.face_count == 1
    assert report.text_node_count == 1
    assert report.corrected
    assert len(report.corrections) == 1
    fix = report.corrections[0]
    assert fix.node_id == "headline"
    assert fix.resolved
    assert fix.overlap_before == pytest.approx(0.1667, abs=1e-4)
    assert fix.overlap_after == 0
    # Left is shorter but leaves the safe area; up is next
    assert headline.box.x == pytest.approx(100)
    assert headline.box.y == pytest.approx(299.99)
    assert report.unresolved == []


def test_face_carrier_untouched(portrait, portrait_signals):
    result = retarget(portrait, SAME_SIZE, portrait_signals)
    assert result.composition.find("photo").box == Box(300, 0, 900, 1200)


def test_no_faces_no_report(portrait):
    result = retarget(portrait, SAME_SIZE)
    assert result.collision_report is None
    assert result.composition.find("headline").box == Box(100, 450, 300, 100)


def test_unresolvable_overlap_reported(portrait):
    # A face filling the whole photo and beyond: no move can clear it
    face = FaceRegion(x=0.5, y=0.5, width=1.0, height=1.0, confidence=0.9)
    result = retarget(portrait, SAME_SIZE, SemanticSignals(face_regions=[face]))
    report = result.collision_report

    assert report.unresolved == ["headline"]
    assert not report.corrections[0].resolved
    assert DiagnosticCode.FACE_OVERLAP_UNRESOLVABLE in {d.code for d in result.diagnostics}
    # Never deleted
    assert result.composition.find("headline") is not None


# --- S4.02 ---


def _canvas(*children: dict):
    return build({
        "id": "frame", "type": "FRAME", "name": "Canvas",
        "x": 0, "y": 0, "width": 1000, "height": 1000,
        "children": list(children),
    })


def test_out_of_bounds_translated():
    comp = _canvas({"id": "tag", "type": "RECTANGLE", "x": 900, "y": 900, "width": 200, "height": 50})
    ctx = build_context(comp, Target(width=1000, height=1000))

    bounds_validation(ctx)

    assert ctx.composition.find("tag").box == Box(800, 900, 200, 50)
    diag = ctx.diagnostics[0]
    assert diag.code == DiagnosticCode.OUT_OF_BOUNDS
    assert diag.node_id == "tag"
    assert diag.details["before"] == [900, 900, 1100, 950]
    assert diag.details["after"] == [800, 900, 1000, 950]


def test_oversized_shrinks_with_aspect():
    comp = _canvas({"id": "strip", "type": "RECTANGLE", "x": 0, "y": 0, "width": 2000, "height": 400})
    ctx = build_context(comp, Target(width=1000, height=1000))

    bounds_validation(ctx)

    assert ctx.composition.find("strip").box == Box(0, 0, 1000, 200)


def test_inside_and_bleed_children_left_alone():
    comp = _canvas(
        {"id": "ok", "type": "RECTANGLE", "x": 10, "y": 10, "width": 100, "height": 100},
        {"id": "hero", "type": "RECTANGLE", "x": -200, "y": 0, "width": 600, "height": 400, "bleed": True},
    )
    ctx = build_context(comp, Target(width=1000, height=1000))

    bounds_validation(ctx)

    assert ctx.composition.find("hero").box == Box(-200, 0, 600, 400)
    assert ctx.diagnostics == []


def test_oversized_subtree_shrinks_uniformly():
    comp = _canvas({
        "id": "band", "type": "FRAME", "x": -100, "y": 150, "width": 1200, "height": 500,
        "children": [
            {"id": "strip", "type": "RECTANGLE", "x": 0, "y": 0, "width": 1200, "height": 500,
             "cornerRadius": 24},
            {"id": "label", "type": "TEXT", "x": 600, "y": 100, "width": 400, "height": 100,
             "characters": "Sale", "fontSize": 48, "segments": [{"start": 0, "end": 4, "fontSize": 48}]},
        ],
    })
    ctx = build_context(comp, Target(width=1000, height=1000))

    bounds_validation(ctx)

    comp = ctx.composition
    band = comp.find("band")
    assert band.box == Box(0, 150, 1000, 416.67)
    assert comp.absolute_box(comp.index_of("strip")) == Box(0, 150, 1000, 416.67)
    assert comp.find("strip").corner_radius == pytest.approx(20)
    label = comp.find("label")
    assert (label.box.x, label.box.y) == pytest.approx((500, 83.33))
    assert (label.box.width, label.box.height) == pytest.approx((333.33, 83.33))
    assert label.text_runs[0].font_size == 40
    for idx in comp.walk(comp.index_of("band")):
        right, bottom = comp.absolute_box(idx).as_bounds()[2:]
        assert right <= 1000.01 and bottom <= 1000.01
    assert ctx.diagnostics[0].details["fit"] == pytest.approx(0.83)
