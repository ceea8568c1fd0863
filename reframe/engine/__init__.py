"""reframe retargeting engine."""

from reframe.engine.registry import stage, Layer, get_registry
from reframe.engine.context import RetargetContext
from reframe.engine.pipeline import Pipeline, RetargetResult, create_pipeline, retarget, retarget_many

__all__ = [
    "stage",
    "Layer",
    "get_registry",
    "RetargetContext",
    "Pipeline",
    "RetargetResult",
    "create_pipeline",
    "retarget",
    "retarget_many",
]
