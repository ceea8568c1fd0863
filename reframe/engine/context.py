"""RetargetContext — the single mutable state object flowing through all stages.

One context per target run. The composition it holds is a private clone;
the source composition and the semantic signals are never mutated.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import Any, Callable

from reframe.engine.config import RetargetConfig
from reframe.models.metrics import (
    AxisExpansionPlan,
    CollisionReport,
    Density,
    Diagnostic,
    DiagnosticCode,
    LayoutProfile,
    PlacementScoring,
)
from reframe.models.signals import SemanticSignals
from reframe.models.target import SafeAreaInsets, Target
from reframe.scene.nodes import Align, Box, Composition, LayoutMode

logger = logging.getLogger(__name__)

# Recoveries are routine; these deserve attention
_WARNING_CODES = {DiagnosticCode.FACE_OVERLAP_UNRESOLVABLE, DiagnosticCode.FLOW_OVERFLOW}


@dataclass
class Margins:
    left: float = 0.0
    right: float = 0.0
    top: float = 0.0
    bottom: float = 0.0


@dataclass
class ContentAnalysis:
    """Effective content extent inside the root frame."""

    bounds: Box
    density: Density = Density.SPARSE
    has_text: bool = False
    has_images: bool = False
    child_count: int = 0
    # Gaps between the content bounds and the frame edges
    margins: Margins = field(default_factory=Margins)
    # True when no measurable content existed and the frame was used
    fell_back: bool = False

    @property
    def effective_width(self) -> float:
        return self.bounds.width

    @property
    def effective_height(self) -> float:
        return self.bounds.height


@dataclass
class ScaleResult:
    scale: float
    raw_scale: float
    frame_cap: float
    # Why a fallback replaced the computed scale, if one did
    fallback: str | None = None


@dataclass
class FlowSnapshot:
    """Root flow layout as it was before any stage touched it."""

    mode: LayoutMode = LayoutMode.NONE
    flow_child_count: int = 0
    item_spacing: float = 0.0
    counter_axis_spacing: float = 0.0
    wrap: bool = False
    primary_align: Align = Align.MIN
    counter_align: Align = Align.MIN


class FontCache:
    """Per-run record of the (family, style) pairs text scaling touched.

    ``loader`` is the host's font hook (e.g. the adapter's font loader); it is
    called once per pair. Passed explicitly through the text transform so
    parallel runs never share it.
    """

    def __init__(self, loader: Callable[[str, str], Any] | None = None) -> None:
        self._loader = loader
        self._loaded: dict[tuple[str, str], bool] = {}

    def ensure(self, family: str, style: str) -> bool:
        key = (family, style)
        if key not in self._loaded:
            ok = True
            if self._loader is not None:
                ok = self._loader(family, style) is not False
            self._loaded[key] = ok
        return self._loaded[key]

    @property
    def fonts(self) -> list[tuple[str, str]]:
        return sorted(self._loaded)

    def __len__(self) -> int:
        return len(self._loaded)


@dataclass
class RetargetContext:
    """Shared state flowing through the entire pipeline."""

    composition: Composition
    target: Target
    signals: SemanticSignals = field(default_factory=SemanticSignals)
    config: RetargetConfig = field(default_factory=RetargetConfig)

    # Root frame size before transform
    source_width: float = 0.0
    source_height: float = 0.0
    # Absolute boxes before transform, by node index
    original_boxes: dict[int, Box] = field(default_factory=dict)
    root_snapshot: FlowSnapshot = field(default_factory=FlowSnapshot)

    # --- Layer 0 ---
    profile: LayoutProfile = LayoutProfile.SQUARE
    source_profile: LayoutProfile = LayoutProfile.SQUARE
    insets: SafeAreaInsets = field(default_factory=SafeAreaInsets)
    content: ContentAnalysis | None = None
    scale: ScaleResult | None = None

    # --- Layer 2 ---
    horizontal_plan: AxisExpansionPlan | None = None
    vertical_plan: AxisExpansionPlan | None = None
    adopted_vertical_flow: bool = False

    # --- Layer 3/4 ---
    placement: PlacementScoring | None = None
    collision_report: CollisionReport | None = None

    # --- Run bookkeeping ---
    font_cache: FontCache = field(default_factory=FontCache)
    # Old node id → new node id for representation changes
    id_remap: dict[str, str] = field(default_factory=dict)
    diagnostics: list[Diagnostic] = field(default_factory=list)
    current_stage: str = ""
    completed_stages: set[str] = field(default_factory=set)
    errors: dict[str, str] = field(default_factory=dict)

    @property
    def root(self) -> int:
        return self.composition.root

    @property
    def root_area(self) -> float:
        return max(self.source_width, 0.0) * max(self.source_height, 0.0)

    @property
    def scale_factor(self) -> float:
        return self.scale.scale if self.scale is not None else 1.0

    def report(
        self,
        code: DiagnosticCode,
        message: str,
        node_id: str | None = None,
        **details: Any,
    ) -> Diagnostic:
        """Record a recovered edge case as a structured event."""
        diag = Diagnostic(
            code=code,
            message=message,
            stage_id=self.current_stage,
            node_id=node_id,
            details=details,
        )
        self.diagnostics.append(diag)
        level = logging.WARNING if code in _WARNING_CODES else logging.INFO
        logger.log(level, "[%s] %s %s: %s", self.target.id, code.value, node_id or "-", message)
        return diag

    def resolve_id(self, node_id: str) -> str:
        """Follow the remap table to the node's current id."""
        seen: set[str] = set()
        while node_id in self.id_remap and node_id not in seen:
            seen.add(node_id)
            node_id = self.id_remap[node_id]
        return node_id

    def source_id(self, node_id: str) -> str:
        """Inverse of resolve_id: the id the advisor saw for this node."""
        reverse = {new: old for old, new in self.id_remap.items()}
        while node_id in reverse:
            node_id = reverse.pop(node_id)
        return node_id

    def lookup(self, node_id: str | None) -> int | None:
        """Index of a node by (possibly stale) id."""
        if node_id is None:
            return None
        return self.composition.index_of(self.resolve_id(node_id))

    def original_box(self, index: int) -> Box:
        return self.original_boxes.get(index) or self.composition.absolute_box(index)
