"""Element classification — background, bleed, overlay, size-floor role, pointer.

All checks read the pre-transform geometry recorded on the context, so the
answer does not change as stages mutate the clone.
"""

from __future__ import annotations

from reframe.engine.constants import (
    POINTER_ASPECT_MAX,
    POINTER_ASPECT_MIN,
    POINTER_NAME_PATTERN,
    POINTER_PARENT_PATTERN,
    ROLE_ALIASES,
    ROLE_NAME_PATTERNS,
)
from reframe.engine.context import RetargetContext
from reframe.models.signals import ROLE_BACKGROUND, ROLE_HERO_BLEED, ROLE_OVERLAY


def resolve_role(ctx: RetargetContext, index: int) -> str | None:
    """Author-tagged role wins over advisor evidence."""
    node = ctx.composition.node(index)
    if node.role and node.role_confidence >= ctx.config.role_min_confidence:
        return node.role
    return ctx.signals.role_for(ctx.source_id(node.id), ctx.config.role_min_confidence)


def is_background_like(ctx: RetargetContext, index: int) -> bool:
    if index == ctx.root:
        return False
    if resolve_role(ctx, index) == ROLE_BACKGROUND:
        return True
    root_area = ctx.root_area
    if root_area <= 0:
        return False
    return ctx.original_box(index).area >= root_area * ctx.config.background_area_ratio


def is_bleed(ctx: RetargetContext, index: int) -> bool:
    """Author flag or tagged role first; otherwise any confident advisor bleed evidence."""
    node = ctx.composition.node(index)
    if node.bleed:
        return True
    if node.role and node.role_confidence >= ctx.config.role_min_confidence:
        return node.role == ROLE_HERO_BLEED
    return ctx.signals.is_bleed(ctx.source_id(node.id), ctx.config.role_min_confidence)


def is_overlay(ctx: RetargetContext, index: int) -> bool:
    return resolve_role(ctx, index) == ROLE_OVERLAY


def floor_role(ctx: RetargetContext, index: int) -> str | None:
    """Size-floor role (logo/icon/badge/button) for a non-text element."""
    node = ctx.composition.node(index)
    if node.has_text or index == ctx.root:
        return None
    role = resolve_role(ctx, index)
    if role is not None:
        return ROLE_ALIASES.get(role)
    for floor, pattern in ROLE_NAME_PATTERNS:
        if node.name and pattern.search(node.name):
            return floor
    return None


def partition_root_children(ctx: RetargetContext) -> tuple[list[int], list[int], list[int]]:
    """Free-floating root children split into (backgrounds, bleeds, regular).

    Flow-managed and hidden children belong to none of them.
    """
    comp = ctx.composition
    backgrounds: list[int] = []
    bleeds: list[int] = []
    regular: list[int] = []
    for idx in comp.children_of(ctx.root):
        node = comp.node(idx)
        if not node.visible or is_overlay(ctx, idx):
            continue
        if is_background_like(ctx, idx):
            backgrounds.append(idx)
        elif not comp.is_free_floating(idx):
            continue
        elif is_bleed(ctx, idx):
            bleeds.append(idx)
        else:
            regular.append(idx)
    return backgrounds, bleeds, regular


def is_decorative_pointer(ctx: RetargetContext, index: int) -> bool:
    """Extreme-aspect tails/carets hanging off a card or bubble."""
    comp = ctx.composition
    node = comp.node(index)
    if node.has_text or node.box.width <= 0 or node.box.height <= 0:
        return False
    aspect = node.box.width / node.box.height
    if POINTER_ASPECT_MIN <= aspect <= POINTER_ASPECT_MAX:
        return False
    if POINTER_NAME_PATTERN.search(node.name or ""):
        return True
    parent = comp.parent_of(index)
    if parent is None:
        return False
    return bool(POINTER_PARENT_PATTERN.search(comp.node(parent).name or ""))
