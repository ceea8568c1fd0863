"""Pipeline orchestrator — runs stages in dependency order with adaptive gating."""

from __future__ import annotations

import importlib
import logging
import math
import pkgutil
import time
from concurrent.futures import ThreadPoolExecutor
from dataclasses import dataclass, field
from typing import Any, Callable, Sequence

from reframe.config import settings
from reframe.engine.config import RetargetConfig
from reframe.engine.context import FlowSnapshot, FontCache, RetargetContext
from reframe.engine.registry import Layer, StageRegistry, get_registry
from reframe.errors import InvalidTargetError
from reframe.models.metrics import (
    AxisExpansionPlan,
    CollisionReport,
    Diagnostic,
    PlacementScoring,
    SafeAreaMetrics,
)
from reframe.models.signals import SemanticSignals
from reframe.models.target import Target
from reframe.scene.loader import load_composition
from reframe.scene.nodes import Composition
from reframe.scene.serializer import dump_composition
from reframe.targets import get_target

logger = logging.getLogger(__name__)

FontLoader = Callable[[str, str], Any]

_LAYER_PACKAGES = ["layer0", "layer1", "layer2", "layer3", "layer4"]


def _register_stages() -> None:
    """Import all stage modules so @stage decorators fire."""
    for layer_name in _LAYER_PACKAGES:
        package = importlib.import_module(f"reframe.engine.{layer_name}")
        for _, module_name, _ in pkgutil.iter_modules(package.__path__):
            importlib.import_module(f"{package.__name__}.{module_name}")


class Pipeline:
    """Orchestrates the retarget stages."""

    def __init__(
        self,
        registry: StageRegistry | None = None,
        config: RetargetConfig | None = None,
    ) -> None:
        self.registry = registry or get_registry()
        self.config = config or RetargetConfig()

    def run(self, ctx: RetargetContext) -> RetargetContext:
        """Run the full pipeline on the given context."""
        start = time.perf_counter()

        skip_ids = self._adaptive_gate(ctx)

        all_specs = self.registry.all()
        requested = {s.id for s in all_specs} - skip_ids
        ordered = self.registry.resolve_order(requested)

        logger.info(
            "[%s] Pipeline: %d stages queued (%d skipped)",
            ctx.target.id,
            len(ordered),
            len(skip_ids),
        )

        for spec in ordered:
            ctx.current_stage = spec.id
            t0 = time.perf_counter()
            try:
                spec.fn(ctx)
                ctx.completed_stages.add(spec.id)
                elapsed = (time.perf_counter() - t0) * 1000
                logger.debug("  %s completed in %.1fms", spec.id, elapsed)
            except Exception as e:
                ctx.errors[spec.id] = str(e)
                logger.warning("  %s FAILED: %s", spec.id, e)
        ctx.current_stage = ""

        total = (time.perf_counter() - start) * 1000
        logger.info(
            "[%s] Pipeline complete: %d/%d stages in %.0fms",
            ctx.target.id,
            len(ctx.completed_stages),
            len(ordered),
            total,
        )
        return ctx

    def run_layer(self, ctx: RetargetContext, layer: Layer) -> RetargetContext:
        """Run only stages in a specific layer."""
        for spec in self.registry.get_layer(layer):
            ctx.current_stage = spec.id
            try:
                spec.fn(ctx)
                ctx.completed_stages.add(spec.id)
            except Exception as e:
                ctx.errors[spec.id] = str(e)
                logger.warning("  %s FAILED: %s", spec.id, e)
        ctx.current_stage = ""
        return ctx

    def _adaptive_gate(self, ctx: RetargetContext) -> set[str]:
        """Stages to skip for this run.

        - No face regions: nothing for stages tagged "faces" to check
        - Collision validation switched off in the config
        """
        skip: set[str] = set()
        if not ctx.signals.has_faces or not self.config.collision_validation:
            skip |= self.registry.tagged("faces")
        return skip


def create_pipeline(config: RetargetConfig | None = None) -> Pipeline:
    """Factory function for creating a pipeline instance."""
    _register_stages()
    return Pipeline(config=config)


def validate_target(target: Target) -> None:
    for name in ("width", "height"):
        value = getattr(target, name)
        if not math.isfinite(value) or value <= 0:
            raise InvalidTargetError(f"target {target.id!r} has invalid {name}: {value}")


def build_context(
    composition: Composition,
    target: Target,
    signals: SemanticSignals | None = None,
    config: RetargetConfig | None = None,
    font_loader: FontLoader | None = None,
) -> RetargetContext:
    """Fresh context over a private clone of ``composition``."""
    clone = composition.clone()
    root = clone.root_node
    ctx = RetargetContext(
        composition=clone,
        target=target,
        signals=signals or SemanticSignals(),
        config=config or RetargetConfig(),
        source_width=root.box.width,
        source_height=root.box.height,
        font_cache=FontCache(font_loader),
    )
    ctx.original_boxes = {i: clone.absolute_box(i) for i in range(len(clone))}
    if root.is_flow_container:
        ctx.root_snapshot = FlowSnapshot(
            mode=root.flow.mode,
            flow_child_count=len(clone.flow_children(clone.root)),
            item_spacing=root.flow.item_spacing,
            counter_axis_spacing=root.flow.counter_axis_spacing,
            wrap=root.flow.wrap,
            primary_align=root.flow.primary_align,
            counter_align=root.flow.counter_align,
        )
    return ctx


@dataclass
class RetargetResult:
    """Everything one target run produced, ready for the mutation adapter."""

    target: Target
    composition: Composition
    metrics: SafeAreaMetrics
    placement: PlacementScoring | None = None
    collision_report: CollisionReport | None = None
    diagnostics: list[Diagnostic] = field(default_factory=list)
    id_remap: dict[str, str] = field(default_factory=dict)
    # (family, style) pairs the adapter must load before applying text
    fonts: list[tuple[str, str]] = field(default_factory=list)
    # Stage id → error message for stages that raised
    errors: dict[str, str] = field(default_factory=dict)

    @property
    def ok(self) -> bool:
        return not self.errors

    def to_dict(self) -> dict[str, Any]:
        return {
            "target": self.target.model_dump(),
            "composition": dump_composition(self.composition),
            "metrics": self.metrics.model_dump(mode="json"),
            "placement": self.placement.model_dump(mode="json") if self.placement else None,
            "collision_report": (
                self.collision_report.model_dump(mode="json") if self.collision_report else None
            ),
            "diagnostics": [d.model_dump(mode="json") for d in self.diagnostics],
            "id_remap": dict(self.id_remap),
            "fonts": [list(f) for f in self.fonts],
            "errors": dict(self.errors),
        }


def safe_area_metrics(ctx: RetargetContext) -> SafeAreaMetrics:
    s = ctx.scale_factor
    content_w = ctx.content.effective_width if ctx.content else ctx.source_width
    content_h = ctx.content.effective_height if ctx.content else ctx.source_height
    return SafeAreaMetrics(
        scale=s,
        scaled_width=round(content_w * s, 2),
        scaled_height=round(content_h * s, 2),
        safe_inset_x=max(ctx.insets.left, ctx.insets.right),
        safe_inset_y=max(ctx.insets.top, ctx.insets.bottom),
        target_width=ctx.target.width,
        target_height=ctx.target.height,
        horizontal_plan=ctx.horizontal_plan or AxisExpansionPlan(),
        vertical_plan=ctx.vertical_plan or AxisExpansionPlan(),
        profile=ctx.profile,
        adopted_vertical_flow=ctx.adopted_vertical_flow,
    )


def _coerce(
    composition: Composition | dict[str, Any],
    target: Target | str,
) -> tuple[Composition, Target]:
    if isinstance(composition, dict):
        composition = load_composition(composition)
    if isinstance(target, str):
        target = get_target(target)
    return composition, target


def retarget(
    composition: Composition | dict[str, Any],
    target: Target | str,
    signals: SemanticSignals | None = None,
    config: RetargetConfig | None = None,
    font_loader: FontLoader | None = None,
) -> RetargetResult:
    """Transform a clone of ``composition`` for one target.

    ``composition`` may be a parsed tree or its dict form; ``target`` a
    Target or a preset id. The source is never mutated. Raises
    InvalidTargetError for a non-positive or non-finite target size.
    """
    composition, target = _coerce(composition, target)
    validate_target(target)

    cfg = config or RetargetConfig()
    ctx = build_context(composition, target, signals, cfg, font_loader)
    create_pipeline(cfg).run(ctx)

    if ctx.errors:
        logger.warning("[%s] %d stages failed: %s", target.id, len(ctx.errors), sorted(ctx.errors))

    return RetargetResult(
        target=target,
        composition=ctx.composition,
        metrics=safe_area_metrics(ctx),
        placement=ctx.placement,
        collision_report=ctx.collision_report,
        diagnostics=list(ctx.diagnostics),
        id_remap=dict(ctx.id_remap),
        fonts=ctx.font_cache.fonts,
        errors=dict(ctx.errors),
    )


def retarget_many(
    composition: Composition | dict[str, Any],
    targets: Sequence[Target | str],
    signals: SemanticSignals | None = None,
    config: RetargetConfig | None = None,
    max_workers: int | None = None,
    font_loader: FontLoader | None = None,
) -> list[RetargetResult]:
    """Retarget one composition to several targets, results in input order.

    Each target runs on its own clone; only the read-only signals are
    shared. Every target is validated before any work starts.
    """
    if isinstance(composition, dict):
        composition = load_composition(composition)
    resolved = [get_target(t) if isinstance(t, str) else t for t in targets]
    for target in resolved:
        validate_target(target)

    workers = settings.reframe_max_workers if max_workers is None else max_workers
    _register_stages()

    def _run(target: Target) -> RetargetResult:
        return retarget(composition, target, signals, config, font_loader)

    if workers <= 1 or len(resolved) <= 1:
        return [_run(t) for t in resolved]

    with ThreadPoolExecutor(max_workers=workers) as pool:
        return list(pool.map(_run, resolved))
