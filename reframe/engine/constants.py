"""Shared constants for the placement and transform stages."""

from __future__ import annotations

import re

# Role → minimum rendered size (w, h). Brand marks and tap targets stop
# being recognizable below these.
MIN_ELEMENT_SIZES: dict[str, tuple[float, float]] = {
    "logo": (24.0, 24.0),
    "icon": (16.0, 16.0),
    "badge": (20.0, 16.0),
    "button": (40.0, 24.0),
}

# Advisor roles that map onto a size-floor role
ROLE_ALIASES: dict[str, str] = {
    "logo": "logo",
    "icon": "icon",
    "badge": "badge",
    "cta": "button",
    "button": "button",
}

# Name patterns used when neither the node nor the advisor declares a role
ROLE_NAME_PATTERNS: list[tuple[str, re.Pattern[str]]] = [
    ("logo", re.compile(r"logo|brand|mark", re.IGNORECASE)),
    ("icon", re.compile(r"icon|symbol", re.IGNORECASE)),
    ("badge", re.compile(r"badge|chip|tag|pill", re.IGNORECASE)),
    ("button", re.compile(r"button|btn|cta", re.IGNORECASE)),
]

# Decorative pointer detection (speech-bubble tails, tooltip carets)
POINTER_PARENT_PATTERN = re.compile(
    r"frame|container|card|box|bubble|speech|tooltip|callout", re.IGNORECASE
)
POINTER_NAME_PATTERN = re.compile(r"pointer|arrow|triangle|tip|caret|tail", re.IGNORECASE)
POINTER_ASPECT_MAX = 3.0
POINTER_ASPECT_MIN = 0.33

# 3x3 placement grid, row-major
REGION_IDS: list[str] = [
    "top-left", "top-center", "top-right",
    "middle-left", "center", "middle-right",
    "bottom-left", "bottom-center", "bottom-right",
]

# Base aspect-fit score per region. Vertical canvases read bottom-up from
# the platform chrome; horizontal canvases favor the right third.
REGION_BASE_SCORES: dict[str, dict[str, float]] = {
    "vertical": {
        "top-left": 0.35, "top-center": 0.35, "top-right": 0.35,
        "middle-left": 0.50, "center": 0.50, "middle-right": 0.50,
        "bottom-left": 0.75, "bottom-center": 0.80, "bottom-right": 0.75,
    },
    "square": {
        "top-left": 0.35, "top-center": 0.35, "top-right": 0.35,
        "middle-left": 0.50, "center": 0.45, "middle-right": 0.50,
        "bottom-left": 0.70, "bottom-center": 0.75, "bottom-right": 0.70,
    },
    "horizontal": {
        "top-left": 0.35, "top-center": 0.50, "top-right": 0.70,
        "middle-left": 0.35, "center": 0.50, "middle-right": 0.75,
        "bottom-left": 0.35, "bottom-center": 0.50, "bottom-right": 0.70,
    },
}

# Roles the repositioner may nudge away from faces/focal subjects
MOVABLE_ROLES = {"title", "subtitle", "body", "caption", "cta", "badge", "logo", "icon"}
# Roles that carry the focal subject and are never nudged
ANCHORED_ROLES = {"hero_image", "hero_bleed", "background", "decorative", "overlay"}
