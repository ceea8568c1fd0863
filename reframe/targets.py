"""Target presets and safe-area resolution."""

from __future__ import annotations

from reframe.models.target import SafeAreaInsets, Target

# (id, label, width, height)
_PRESETS: list[tuple[str, str, float, float]] = [
    ("figma-cover", "Figma Community Cover", 1920, 960),
    ("figma-gallery", "Figma Community Gallery", 1600, 960),
    ("figma-thumbnail", "Figma Community Thumbnail", 480, 320),
    ("web-hero", "Web Hero Banner", 1440, 600),
    ("social-carousel", "Social Carousel Panel", 1080, 1080),
    ("youtube-cover", "YouTube Cover", 2560, 1440),
    ("tiktok-vertical", "TikTok Vertical Promo", 1080, 1920),
    ("youtube-shorts", "YouTube Shorts", 1080, 1920),
    ("instagram-reels", "Instagram Reels", 1080, 1920),
    ("gumroad-cover", "Gumroad Cover", 1280, 720),
    ("gumroad-thumbnail", "Gumroad Thumbnail", 600, 600),
]

# Platform UI chrome (captions, buttons, profile rails) covers these edges
SAFE_AREA_OVERRIDES: dict[str, SafeAreaInsets] = {
    "tiktok-vertical": SafeAreaInsets(top=150, bottom=400, left=90, right=120),
    "youtube-shorts": SafeAreaInsets(top=200, bottom=280, left=60, right=120),
    "instagram-reels": SafeAreaInsets(top=108, bottom=340, left=60, right=120),
}

# YouTube channel art: only this centered region is visible on every device
YOUTUBE_COVER_SAFE_SIZE = (1546.0, 423.0)

TARGETS: dict[str, Target] = {
    tid: Target(id=tid, label=label, width=w, height=h) for tid, label, w, h in _PRESETS
}


def get_target(target_id: str) -> Target:
    """Preset by id. Raises KeyError for unknown ids."""
    try:
        return TARGETS[target_id].model_copy()
    except KeyError:
        raise KeyError(f"Unknown target preset: {target_id}") from None


def list_targets() -> list[Target]:
    return [t.model_copy() for t in TARGETS.values()]


def resolve_safe_area(target: Target, default_ratio: float) -> SafeAreaInsets:
    """Per-edge insets for a target.

    Explicit insets win, then platform overrides, then the symmetric ratio
    (the target's own ratio if set, else ``default_ratio``).
    """
    if target.safe_area is not None:
        return target.safe_area

    override = SAFE_AREA_OVERRIDES.get(target.id)
    if override is not None:
        return override.model_copy()

    if target.id == "youtube-cover":
        safe_w, safe_h = YOUTUBE_COVER_SAFE_SIZE
        side = max(0.0, (target.width - safe_w) / 2)
        cap = max(0.0, (target.height - safe_h) / 2)
        return SafeAreaInsets(left=side, right=side, top=cap, bottom=cap)

    ratio = target.safe_area_ratio if target.safe_area_ratio is not None else default_ratio
    return SafeAreaInsets.symmetric(target.width, target.height, ratio)
