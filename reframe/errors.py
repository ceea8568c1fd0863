"""Error types for reframe.

Only caller errors raise. Geometry edge cases met while transforming a
composition are recovered locally and recorded as diagnostics on the run
context (see ``reframe.models.metrics.Diagnostic``).
"""

from __future__ import annotations


class ReframeError(Exception):
    """Base exception for all reframe errors."""


class InvalidTargetError(ReframeError, ValueError):
    """
    Raised when a target cannot be retargeted to.

    Examples:
    - Zero or negative width/height
    - NaN or infinite dimensions
    """


class CompositionError(ReframeError, ValueError):
    """
    Raised when composition input is structurally invalid.

    Examples:
    - Missing root node
    - Children that are not mappings
    - Duplicate node ids
    """
