"""Learned sequence predictors and their PyTorch networks."""

from braketwin.ml.features import FEATURE_NAMES, normalize_sequence, window_features
from braketwin.ml.networks import (
    AttentionTrace,
    BidirectionalAttentionLSTM,
    DilatedCausalConvNetwork,
    GatedMemoryCell,
    GatedRecurrentNetwork,
)
from braketwin.ml.predictors import (
    DilatedConvConfig,
    DilatedConvPredictor,
    GatedSequenceConfig,
    GatedSequencePredictor,
    PredictorKind,
    RecurrentAttentionConfig,
    RecurrentAttentionPredictor,
    SequencePredictor,
    build_predictor,
    predict_outcome_of,
)

__all__ = [
    "FEATURE_NAMES",
    "AttentionTrace",
    "BidirectionalAttentionLSTM",
    "DilatedCausalConvNetwork",
    "DilatedConvConfig",
    "DilatedConvPredictor",
    "GatedMemoryCell",
    "GatedRecurrentNetwork",
    "GatedSequenceConfig",
    "GatedSequencePredictor",
    "PredictorKind",
    "RecurrentAttentionConfig",
    "RecurrentAttentionPredictor",
    "SequencePredictor",
    "build_predictor",
    "predict_outcome_of",
    "normalize_sequence",
    "window_features",
]
