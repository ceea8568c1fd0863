"""Retarget configuration — every tunable threshold of the engine."""

from __future__ import annotations

from dataclasses import dataclass, field

from reframe.engine.constants import MIN_ELEMENT_SIZES


@dataclass
class RetargetConfig:
    """Engine thresholds. Defaults reproduce the production behavior."""

    # Layout profile (target width / height)
    vertical_ratio_max: float = 0.8  # ratio < this → vertical
    horizontal_ratio_min: float = 1.25  # ratio > this → horizontal

    # Elements covering this share of the root are backdrops, not content
    background_area_ratio: float = 0.95

    # Fallback when the computed scale is non-finite or ≤ 0
    min_scale: float = 0.01

    # Symmetric safe-area ratio; None defers to Settings.reframe_safe_area_ratio
    safe_area_ratio: float | None = None

    # Minimum legible font size per resolution tier
    min_font_thumbnail: float = 9.0
    min_font_standard: float = 11.0
    min_font_large: float = 14.0
    thumbnail_max_dimension: float = 600.0  # min(W, H) below → thumbnail tier
    large_display_dimension: float = 2000.0  # W or H at/above → large tier

    # Role size floors
    min_element_sizes: dict[str, tuple[float, float]] = field(
        default_factory=lambda: dict(MIN_ELEMENT_SIZES)
    )
    role_min_confidence: float = 0.35

    # Decorative pointer aspect drift tolerance (relative)
    decorative_aspect_tolerance: float = 0.02

    # Effect damping above effect_damping_threshold× magnification
    effect_damping_threshold: float = 2.0
    shadow_radius_exponent: float = 0.65
    shadow_offset_exponent: float = 0.7
    shadow_spread_exponent: float = 0.6
    blur_exponent: float = 0.6
    max_shadow_radius: float = 100.0
    max_background_blur: float = 100.0
    max_layer_blur: float = 50.0

    # Interior expansion weight = min(base + per_gap * gaps, cap), then damped
    interior_base_weight: float = 0.65
    interior_weight_per_gap: float = 0.10
    interior_weight_cap: float = 0.88
    interior_tight_spacing: float = 16.0  # base spacing below this is "tight"
    interior_tight_factor: float = 0.95
    interior_asymmetry_damping: float = 0.6
    interior_max_weight: float = 0.9

    # Share of the margin split steered by the focal ratio (0 = margins only)
    focal_bias_weight: float = 0.5
    focal_min_confidence: float = 0.35

    # Margin normalization on significant aspect change
    margin_asymmetry_threshold: float = 0.6
    margin_original_weight: float = 0.25
    significant_aspect_change: float = 1.0
    vertical_top_share: float = 1.0 / 3.0

    # Placement scoring
    face_penalty_factor: float = 0.5
    face_penalty_cap: float = 0.6
    focal_penalty_radius: float = 0.25
    focal_penalty_factor: float = 0.25
    focal_penalty_min_confidence: float = 0.5
    nudge_strength: float = 0.5

    # Row → column restack on vertical targets
    stack_max_gap_ratio: float = 0.08

    # Collision validation
    collision_validation: bool = True
    face_overlap_tolerance: float = 0.0  # fraction of the text box
