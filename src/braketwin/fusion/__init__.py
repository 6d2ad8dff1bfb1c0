"""Physics + learned-model fusion."""

from braketwin.fusion.engine import (
    BlendWeights,
    CalibrationSample,
    FusionConfig,
    FusionEngine,
    FusionExplanation,
    FusionInputs,
)

__all__ = [
    "BlendWeights",
    "CalibrationSample",
    "FusionConfig",
    "FusionEngine",
    "FusionExplanation",
    "FusionInputs",
]
