"""Tests for the pipeline orchestrator and the retarget entry points."""

import math

import pytest

from reframe.engine.config import RetargetConfig
from reframe.engine.context import RetargetContext
from reframe.engine.pipeline import Pipeline, create_pipeline, retarget, retarget_many
from reframe.engine.registry import Layer, StageRegistry, StageSpec, get_registry
from reframe.errors import InvalidTargetError
from reframe.models.metrics import LayoutProfile
from reframe.models.signals import FaceRegion, SemanticSignals
from reframe.models.target import Target
from reframe.scene.nodes import AutoResize, Box, Composition, Node, NodeKind
from tests.conftest import (
    NO_INSETS,
    PORTRAIT_WITH_HEADLINE,
    PROMO_LANDSCAPE,
    VERTICAL_TARGET,
    build,
)


def _ctx(signals: SemanticSignals | None = None) -> RetargetContext:
    comp = Composition(nodes=[Node(id="root", kind=NodeKind.CONTAINER, box=Box(0, 0, 100, 100))])
    return RetargetContext(
        composition=comp,
        target=Target(width=100, height=100),
        signals=signals or SemanticSignals(),
    )


def test_pipeline_runs_stages():
    reg = StageRegistry()
    results = []

    def s1(ctx: RetargetContext) -> None:
        results.append("s1")

    def s2(ctx: RetargetContext) -> None:
        results.append(ctx.current_stage)

    reg.register(StageSpec(id="S0.01", layer=Layer.ANALYSIS, fn=s1))
    reg.register(StageSpec(id="S0.02", layer=Layer.ANALYSIS, fn=s2, dependencies=["S0.01"]))

    ctx = Pipeline(registry=reg).run(_ctx())

    assert results == ["s1", "S0.02"]
    assert ctx.completed_stages == {"S0.01", "S0.02"}
    assert ctx.current_stage == ""


def test_pipeline_handles_errors():
    reg = StageRegistry()
    ran = []

    def fail(ctx: RetargetContext) -> None:
        raise ValueError("test error")

    reg.register(StageSpec(id="S0.01", layer=Layer.ANALYSIS, fn=fail))
    reg.register(StageSpec(id="S0.02", layer=Layer.ANALYSIS, fn=lambda ctx: ran.append(1)))

    ctx = Pipeline(registry=reg).run(_ctx())

    assert "test error" in ctx.errors["S0.01"]
    # One failing stage does not stop the rest
    assert ran == [1]


def _gate_registry(ran: list[str]) -> StageRegistry:
    reg = StageRegistry()
    reg.register(StageSpec(id="S3.01", layer=Layer.PLACEMENT, fn=lambda ctx: ran.append("S3.01")))
    reg.register(StageSpec(
        id="S4.01", layer=Layer.VALIDATION, fn=lambda ctx: ran.append("S4.01"), dependencies=["S3.01"],
        tags={"faces"},
    ))
    return reg


def test_collision_stage_skipped_without_faces():
    ran: list[str] = []
    Pipeline(registry=_gate_registry(ran)).run(_ctx())
    assert ran == ["S3.01"]


def test_collision_stage_runs_with_faces():
    ran: list[str] = []
    signals = SemanticSignals(face_regions=[FaceRegion(x=0.5, y=0.5, width=0.1, height=0.1)])
    Pipeline(registry=_gate_registry(ran)).run(_ctx(signals))
    assert ran == ["S3.01", "S4.01"]


def test_collision_stage_disabled_by_config():
    ran: list[str] = []
    signals = SemanticSignals(face_regions=[FaceRegion(x=0.5, y=0.5, width=0.1, height=0.1)])
    pipeline = Pipeline(registry=_gate_registry(ran), config=RetargetConfig(collision_validation=False))
    pipeline.run(_ctx(signals))
    assert ran == ["S3.01"]


def test_run_layer_only_runs_that_layer():
    ran: list[str] = []
    reg = _gate_registry(ran)
    Pipeline(registry=reg).run_layer(_ctx(), Layer.VALIDATION)
    assert ran == ["S4.01"]


def test_create_pipeline_registers_all_stages():
    create_pipeline()
    ids = {s.id for s in get_registry().all()}
    assert {
        "S0.01", "S0.02", "S0.03", "S0.04", "S1.01",
        "S2.01", "S2.02", "S3.01", "S4.01", "S4.02",
    } <= ids


# --- retarget ---


def test_landscape_to_vertical_story(promo):
    """1920x960 promo onto a 1080x1920 story with platform insets."""
    result = retarget(promo, VERTICAL_TARGET)
    comp = result.composition

    assert result.ok, result.errors
    assert result.metrics.profile == LayoutProfile.VERTICAL
    assert result.metrics.scale == pytest.approx(0.5625)
    assert comp.find("bg").box == Box(0, 0, 1080, 1920)

    title = comp.find("title")
    assert title.box.width == pytest.approx(450)
    assert title.text_runs[0].font_size == 36
    assert title.font_size >= 11
    assert title.auto_resize == AutoResize.HEIGHT


def test_plans_conserve_surplus(promo):
    result = retarget(promo, VERTICAL_TARGET)
    m = result.metrics
    assert m.horizontal_plan.total == pytest.approx(1080 - m.scaled_width, abs=0.01)
    assert m.vertical_plan.total == pytest.approx(1920 - m.scaled_height, abs=0.01)
    assert m.horizontal_plan.start >= 60
    assert m.vertical_plan.start >= 154


def test_scale_respects_insets(promo):
    result = retarget(promo, VERTICAL_TARGET)
    m = result.metrics
    assert m.scaled_width + 120 <= 1080 + 1e-6
    assert m.scaled_height + 154 + 320 <= 1920 + 1e-6


def test_boxes_end_inside_target(promo):
    result = retarget(promo, VERTICAL_TARGET)
    comp = result.composition
    for idx in comp.children_of(comp.root):
        box = comp.node(idx).box
        assert box.x >= -0.01 and box.y >= -0.01
        assert box.right <= 1080.01 and box.bottom <= 1920.01


def test_source_composition_untouched(promo):
    before = [(n.id, n.box.x, n.box.y, n.box.width, n.box.height) for n in promo.nodes]
    retarget(promo, VERTICAL_TARGET)
    after = [(n.id, n.box.x, n.box.y, n.box.width, n.box.height) for n in promo.nodes]
    assert before == after


@pytest.mark.parametrize("sample", [PROMO_LANDSCAPE, PORTRAIT_WITH_HEADLINE])
def test_identity_retarget_keeps_every_box(sample):
    comp = build(sample)
    root = comp.root_node
    target = Target(id="same", width=root.box.width, height=root.box.height, safe_area=NO_INSETS)

    result = retarget(comp, target)

    assert result.metrics.scale == pytest.approx(1.0)
    for node in comp.nodes:
        assert result.composition.find(node.id).box == node.box, node.id


def test_retarget_accepts_dict_and_preset_id():
    result = retarget(PROMO_LANDSCAPE, "social-carousel")
    assert result.target.id == "social-carousel"
    assert result.composition.root_node.box.width == 1080
    assert result.metrics.profile == LayoutProfile.SQUARE


@pytest.mark.parametrize("width,height", [(0, 100), (100, -5), (math.nan, 100), (100, math.inf)])
def test_invalid_target_raises(promo, width, height):
    with pytest.raises(InvalidTargetError):
        retarget(promo, Target(id="bad", width=width, height=height))


def test_font_loader_called_once_per_font(promo):
    calls = []

    def loader(family: str, style: str) -> None:
        calls.append((family, style))

    result = retarget(promo, VERTICAL_TARGET, font_loader=loader)
    assert calls == [("Inter", "Bold")]
    assert result.fonts == [("Inter", "Bold")]


def test_to_dict_is_plain_data(promo):
    data = retarget(promo, VERTICAL_TARGET).to_dict()
    assert data["composition"]["id"] == "frame"
    assert data["metrics"]["profile"] == "vertical"
    assert data["collision_report"] is None
    assert data["fonts"] == [["Inter", "Bold"]]


# --- retarget_many ---


def test_retarget_many_keeps_input_order(promo):
    targets = [VERTICAL_TARGET, "social-carousel", Target(id="wide", width=1920, height=960)]
    results = retarget_many(promo, targets, max_workers=3)
    assert [r.target.id for r in results] == ["story", "social-carousel", "wide"]
    assert [r.composition.root_node.box.width for r in results] == [1080, 1080, 1920]


def test_retarget_many_runs_are_independent(promo):
    sequential = retarget_many(promo, [VERTICAL_TARGET, "social-carousel"], max_workers=0)
    parallel = retarget_many(promo, [VERTICAL_TARGET, "social-carousel"], max_workers=2)
    for a, b in zip(sequential, parallel):
        assert [n.box for n in a.composition.nodes] == [n.box for n in b.composition.nodes]
    assert sequential[0].composition is not sequential[1].composition


def test_retarget_many_validates_before_running(promo):
    with pytest.raises(InvalidTargetError):
        retarget_many(promo, [VERTICAL_TARGET, Target(id="bad", width=0, height=10)])
