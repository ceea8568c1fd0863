"""Semantic signals — read-only advisor output consumed by the geometry stages.

Models are frozen: one signal set is shared by every parallel target run.
"""

from __future__ import annotations

from pydantic import BaseModel, ConfigDict, Field, field_validator

ROLE_LOGO = "logo"
ROLE_HERO_IMAGE = "hero_image"
ROLE_HERO_BLEED = "hero_bleed"
ROLE_BACKGROUND = "background"
ROLE_TITLE = "title"
ROLE_SUBTITLE = "subtitle"
ROLE_BODY = "body"
ROLE_CAPTION = "caption"
ROLE_CTA = "cta"
ROLE_BADGE = "badge"
ROLE_ICON = "icon"
ROLE_DECORATIVE = "decorative"
ROLE_OVERLAY = "overlay"


def _unit(value: float) -> float:
    return min(max(float(value), 0.0), 1.0)


class RoleEvidence(BaseModel):
    model_config = ConfigDict(frozen=True)

    element_id: str
    role: str
    confidence: float = 1.0

    @field_validator("confidence")
    @classmethod
    def _clamp(cls, v: float) -> float:
        return _unit(v)


class FocalPoint(BaseModel):
    """Normalized (0–1) coordinate of the most important point in the frame."""

    model_config = ConfigDict(frozen=True)

    x: float
    y: float
    confidence: float = 1.0
    element_id: str | None = None

    @field_validator("x", "y", "confidence")
    @classmethod
    def _clamp(cls, v: float) -> float:
        return _unit(v)


class FaceRegion(BaseModel):
    """Detected face. x/y is the face CENTER, normalized to the source frame."""

    model_config = ConfigDict(frozen=True)

    element_id: str | None = None
    x: float
    y: float
    width: float
    height: float
    confidence: float = 1.0

    @field_validator("x", "y", "width", "height", "confidence")
    @classmethod
    def _clamp(cls, v: float) -> float:
        return _unit(v)


class QaSignal(BaseModel):
    """Advisory quality signal. Never read by geometry."""

    model_config = ConfigDict(frozen=True)

    code: str
    severity: str = "info"
    message: str = ""
    confidence: float = 1.0


class SemanticSignals(BaseModel):
    model_config = ConfigDict(frozen=True)

    roles: list[RoleEvidence] = Field(default_factory=list)
    focal_points: list[FocalPoint] = Field(default_factory=list)
    face_regions: list[FaceRegion] = Field(default_factory=list)
    qa: list[QaSignal] = Field(default_factory=list)

    def role_for(self, element_id: str, min_confidence: float = 0.0) -> str | None:
        """Highest-confidence role for an element at or above the minimum."""
        best: RoleEvidence | None = None
        for ev in self.roles:
            if ev.element_id != element_id or ev.confidence < min_confidence:
                continue
            if best is None or ev.confidence > best.confidence:
                best = ev
        return best.role if best else None

    def primary_focal_point(self, min_confidence: float = 0.0) -> FocalPoint | None:
        candidates = [f for f in self.focal_points if f.confidence >= min_confidence]
        if not candidates:
            return None
        return max(candidates, key=lambda f: f.confidence)

    def is_bleed(self, element_id: str, min_confidence: float = 0.0) -> bool:
        return any(
            ev.element_id == element_id
            and ev.role == ROLE_HERO_BLEED
            and ev.confidence >= min_confidence
            for ev in self.roles
        )

    @property
    def has_faces(self) -> bool:
        return bool(self.face_regions)
