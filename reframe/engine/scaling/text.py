"""Text scaling — box first, then every font run, with a legibility floor."""

from __future__ import annotations

from reframe.engine.config import RetargetConfig
from reframe.engine.context import FontCache
from reframe.scene.nodes import AutoResize, Node
from reframe.utils.math_helpers import round2, round_half_px, safe_dimension


def minimum_legible_size(width: float, height: float, config: RetargetConfig | None = None) -> float:
    """Resolution-tier font floor: thumbnails, large displays, everything else."""
    cfg = config or RetargetConfig()
    if min(width, height) < cfg.thumbnail_max_dimension:
        return cfg.min_font_thumbnail
    if width >= cfg.large_display_dimension or height >= cfg.large_display_dimension:
        return cfg.min_font_large
    return cfg.min_font_standard


def scale_font_size(size: float, scale: float, minimum: float) -> float:
    return max(round_half_px(size * scale), minimum)


def scale_text_node(
    node: Node,
    scale: float,
    min_font_size: float,
    font_cache: FontCache,
) -> int:
    """Scale a text node in place. Returns the number of runs raised to the floor."""
    original_mode = node.auto_resize
    # Host text engines re-measure while auto-resize is on; lock the box first
    node.auto_resize = AutoResize.NONE

    if node.box.width > 0:
        node.box.width = safe_dimension(round2(node.box.width * scale))
    if node.box.height > 0:
        node.box.height = safe_dimension(round2(node.box.height * scale))

    floored = 0
    for run in node.text_runs:
        font_cache.ensure(run.font_family, run.font_style)
        scaled = round_half_px(run.font_size * scale)
        if scaled < min_font_size:
            floored += 1
        run.font_size = max(scaled, min_font_size)
        if run.line_height_unit == "px" and run.line_height is not None:
            run.line_height = round_half_px(run.line_height * scale)
        if run.letter_spacing_unit == "px":
            run.letter_spacing = round2(run.letter_spacing * scale)

    node.font_size = scale_font_size(node.font_size, scale, min_font_size)

    if original_mode == AutoResize.WIDTH_AND_HEIGHT:
        # Free-width growth after a shrink re-wraps mid-word; grow downward only
        node.auto_resize = AutoResize.HEIGHT
    else:
        node.auto_resize = original_mode
    return floored
