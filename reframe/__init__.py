"""reframe — aspect-ratio retargeting engine."""

__version__ = "0.1.0"
