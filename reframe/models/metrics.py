"""Run outputs — plans, scoring, correction report, diagnostics, metrics."""

from __future__ import annotations

import enum
from typing import Any

from pydantic import BaseModel, Field


class LayoutProfile(str, enum.Enum):
    VERTICAL = "vertical"
    HORIZONTAL = "horizontal"
    SQUARE = "square"


class Density(str, enum.Enum):
    SPARSE = "sparse"
    MEDIUM = "medium"
    DENSE = "dense"


class DiagnosticCode(str, enum.Enum):
    INVALID_GEOMETRY = "INVALID_GEOMETRY"
    MISSING_EFFECTIVE_CONTENT = "MISSING_EFFECTIVE_CONTENT"
    CONSTRAINT_CONFLICT = "CONSTRAINT_CONFLICT"
    FACE_OVERLAP_UNRESOLVABLE = "FACE_OVERLAP_UNRESOLVABLE"
    FLOW_OVERFLOW = "FLOW_OVERFLOW"
    OUT_OF_BOUNDS = "OUT_OF_BOUNDS"


class Diagnostic(BaseModel):
    """A recovered edge case. Emitted as data, never raised."""

    code: DiagnosticCode
    message: str
    stage_id: str = ""
    node_id: str | None = None
    details: dict[str, Any] = Field(default_factory=dict)


class AxisExpansionPlan(BaseModel):
    start: float = 0.0
    end: float = 0.0
    interior: float = 0.0

    @property
    def total(self) -> float:
        return self.start + self.end + self.interior


class RegionScore(BaseModel):
    region_id: str
    base_score: float
    face_avoidance: float = 0.0
    focal_avoidance: float = 0.0
    final_score: float = 0.0


class PlacementScoring(BaseModel):
    regions: list[RegionScore] = Field(default_factory=list)
    recommended_region: str = "center"

    def score_for(self, region_id: str) -> RegionScore | None:
        for r in self.regions:
            if r.region_id == region_id:
                return r
        return None


class Correction(BaseModel):
    node_id: str
    node_name: str = ""
    original: tuple[float, float]
    corrected: tuple[float, float]
    nudge: tuple[float, float]
    overlap_before: float
    overlap_after: float = 0.0
    resolved: bool = True


class CollisionReport(BaseModel):
    corrected: bool = False
    corrections: list[Correction] = Field(default_factory=list)
    # Node ids still overlapping a face after best effort
    unresolved: list[str] = Field(default_factory=list)
    face_count: int = 0
    text_node_count: int = 0


class SafeAreaMetrics(BaseModel):
    scale: float
    scaled_width: float
    scaled_height: float
    safe_inset_x: float
    safe_inset_y: float
    target_width: float
    target_height: float
    horizontal_plan: AxisExpansionPlan
    vertical_plan: AxisExpansionPlan
    profile: LayoutProfile
    adopted_vertical_flow: bool = False
