"""Domain models shared by the physics, learned, fusion, and evaluation layers."""

from braketwin.domain.models import (
    DEFAULT_SEQUENCE_PREDICTION,
    FallbackReason,
    FusedPrediction,
    HistorySequence,
    OperatingState,
    OutcomeStatus,
    PhysicsOutput,
    PredictionOutcome,
    PredictionTarget,
    Scenario,
    SequencePrediction,
)

__all__ = [
    "DEFAULT_SEQUENCE_PREDICTION",
    "FallbackReason",
    "FusedPrediction",
    "HistorySequence",
    "OperatingState",
    "OutcomeStatus",
    "PhysicsOutput",
    "PredictionOutcome",
    "PredictionTarget",
    "Scenario",
    "SequencePrediction",
]
