"""Target descriptors — destination canvas plus its safe viewing zone."""

from __future__ import annotations

from pydantic import BaseModel, Field


class SafeAreaInsets(BaseModel):
    """Per-edge insets (px) that must stay free of critical content."""

    left: float = Field(default=0.0, ge=0)
    right: float = Field(default=0.0, ge=0)
    top: float = Field(default=0.0, ge=0)
    bottom: float = Field(default=0.0, ge=0)

    @property
    def horizontal(self) -> float:
        return self.left + self.right

    @property
    def vertical(self) -> float:
        return self.top + self.bottom

    @classmethod
    def symmetric(cls, width: float, height: float, ratio: float) -> SafeAreaInsets:
        inset_x = max(0.0, width * ratio)
        inset_y = max(0.0, height * ratio)
        return cls(left=inset_x, right=inset_x, top=inset_y, bottom=inset_y)


class Target(BaseModel):
    """One output variant. Width/height are validated by the engine, not here,
    so a bad target surfaces as InvalidTargetError at retarget time."""

    id: str = "custom"
    width: float
    height: float
    label: str = ""
    # Explicit insets win over safe_area_ratio
    safe_area: SafeAreaInsets | None = None
    safe_area_ratio: float | None = None

    @property
    def aspect_ratio(self) -> float:
        return max(self.width, 1.0) / max(self.height, 1.0)
