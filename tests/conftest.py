"""Shared test fixtures."""

from __future__ import annotations

import copy

import pytest

from reframe.models.signals import FaceRegion, SemanticSignals
from reframe.models.target import SafeAreaInsets, Target
from reframe.scene.loader import load_composition


# Sample compositions, in the adapter's camelCase export shape

# Landscape promo: full-bleed backdrop, a headline and a button
PROMO_LANDSCAPE = {
    "id": "frame",
    "type": "FRAME",
    "name": "Promo",
    "x": 0, "y": 0, "width": 1920, "height": 960,
    "layoutMode": "NONE",
    "fills": [{"type": "SOLID"}],
    "children": [
        {
            "id": "bg", "type": "RECTANGLE", "name": "Background",
            "x": 0, "y": 0, "width": 1920, "height": 960,
            "fills": [{"type": "IMAGE", "scaleMode": "CROP"}],
        },
        {
            "id": "title", "type": "TEXT", "name": "Headline",
            "x": 60, "y": 380, "width": 800, "height": 80,
            "characters": "Ship faster", "fontSize": 64,
            "textAutoResize": "WIDTH_AND_HEIGHT",
            "textRuns": [
                {"start": 0, "end": 11, "fontSize": 64,
                 "fontName": {"family": "Inter", "style": "Bold"},
                 "lineHeight": {"value": 72, "unit": "PIXELS"},
                 "letterSpacing": {"value": -1.2, "unit": "PIXELS"}},
            ],
        },
        {
            "id": "cta", "type": "RECTANGLE", "name": "CTA Button",
            "x": 60, "y": 560, "width": 200, "height": 56,
            "cornerRadius": 12,
            "fills": [{"type": "SOLID"}],
        },
    ],
}

# Hero photo cropped by the left edge, plus a caption
BLEED_HERO = {
    "id": "frame", "type": "FRAME", "name": "Bleed",
    "x": 0, "y": 0, "width": 1000, "height": 500,
    "children": [
        {
            "id": "hero", "type": "RECTANGLE", "name": "Hero",
            "x": -50, "y": 100, "width": 400, "height": 300, "bleed": True,
            "fills": [{"type": "IMAGE"}],
        },
        {
            "id": "caption", "type": "TEXT", "name": "Caption",
            "x": 600, "y": 200, "width": 300, "height": 60,
            "characters": "Caption", "fontSize": 24,
        },
    ],
}

# Small logo on a large canvas
LOGO_CANVAS = {
    "id": "frame", "type": "FRAME", "name": "Canvas",
    "x": 0, "y": 0, "width": 1000, "height": 1000,
    "children": [
        {
            "id": "logo", "type": "VECTOR", "name": "Brand Logo",
            "x": 100, "y": 100, "width": 40, "height": 40,
            "fills": [{"type": "SOLID"}],
        },
    ],
}

# Portrait photo with a headline partly covering the face
PORTRAIT_WITH_HEADLINE = {
    "id": "frame", "type": "FRAME", "name": "Portrait",
    "x": 0, "y": 0, "width": 1200, "height": 1200,
    "children": [
        {
            "id": "photo", "type": "RECTANGLE", "name": "Portrait",
            "x": 300, "y": 0, "width": 900, "height": 1200,
            "fills": [{"type": "IMAGE"}],
        },
        {
            "id": "headline", "type": "TEXT", "name": "Headline",
            "x": 100, "y": 450, "width": 300, "height": 100,
            "characters": "Meet the team", "fontSize": 32,
        },
    ],
}

# Face centered at (450, 500) px, 200x200 px, on the photo
PORTRAIT_FACE = FaceRegion(
    element_id="photo",
    x=450 / 1200,
    y=500 / 1200,
    width=200 / 1200,
    height=200 / 1200,
    confidence=0.95,
)

# Horizontal flow row with three cards
FLOW_ROW = {
    "id": "row", "type": "FRAME", "name": "Cards",
    "x": 0, "y": 0, "width": 1200, "height": 400,
    "layoutMode": "HORIZONTAL",
    "paddingLeft": 40, "paddingRight": 40, "paddingTop": 40, "paddingBottom": 40,
    "itemSpacing": 20,
    "children": [
        {"id": f"card{i}", "type": "FRAME", "name": f"Card {i}",
         "x": 40 + i * 380, "y": 40, "width": 360, "height": 320, "children": []}
        for i in range(3)
    ],
}

VERTICAL_TARGET = Target(
    id="story",
    width=1080,
    height=1920,
    safe_area=SafeAreaInsets(top=154, bottom=320, left=60, right=60),
)

NO_INSETS = SafeAreaInsets()


def build(data: dict):
    """Fresh composition from a sample (samples are never mutated)."""
    return load_composition(copy.deepcopy(data))


@pytest.fixture
def promo():
    return build(PROMO_LANDSCAPE)


@pytest.fixture
def bleed_hero():
    return build(BLEED_HERO)


@pytest.fixture
def logo_canvas():
    return build(LOGO_CANVAS)


@pytest.fixture
def portrait():
    return build(PORTRAIT_WITH_HEADLINE)


@pytest.fixture
def portrait_signals() -> SemanticSignals:
    return SemanticSignals(face_regions=[PORTRAIT_FACE])


@pytest.fixture
def flow_row():
    return build(FLOW_ROW)
