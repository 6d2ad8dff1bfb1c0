"""Sequence predictors turning history windows into temperature/wear/laps estimates."""

from __future__ import annotations

import logging
from dataclasses import dataclass
from enum import StrEnum
from typing import Any, Callable, Protocol, runtime_checkable

import numpy as np
import torch

from braketwin.domain.models import (
    DEFAULT_SEQUENCE_PREDICTION,
    FallbackReason,
    HistorySequence,
    PredictionOutcome,
    SequencePrediction,
)
from braketwin.ml.features import FEATURE_NAMES, window_features
from braketwin.ml.initialization import make_generator
from braketwin.ml.networks import (
    BidirectionalAttentionLSTM,
    DilatedCausalConvNetwork,
    GatedRecurrentNetwork,
)


logger = logging.getLogger(__name__)

TEMPERATURE_FLOOR_C = 25.0
TEMPERATURE_SPAN_C = 1175.0
WEAR_SPAN = 0.5
LAPS_SPAN = 200.0


class PredictorKind(StrEnum):
    """Selectable learned-model families."""

    RECURRENT_ATTENTION = "recurrent_attention"
    GATED = "gated"
    DILATED_CONV = "dilated_conv"


@runtime_checkable
class SequencePredictor(Protocol):
    """Capability shared by every learned-model family.

    Built-in predictors also expose ``predict_outcome``; use
    :func:`predict_outcome_of` to get a tagged outcome from any predictor.
    """

    def predict(self, sequence: HistorySequence) -> SequencePrediction: ...


def predict_outcome_of(
    predictor: SequencePredictor,
    sequence: HistorySequence,
) -> PredictionOutcome[SequencePrediction]:
    """Tagged outcome from ``predict_outcome`` when available, else from ``predict``."""
    predict_outcome = getattr(predictor, "predict_outcome", None)
    if callable(predict_outcome):
        return predict_outcome(sequence)
    prediction = predictor.predict(sequence)
    if not prediction.is_finite:
        return PredictionOutcome.fallback(
            prediction,
            FallbackReason.INVALID_OUTPUT,
            "non-finite prediction fields",
        )
    return PredictionOutcome.computed(prediction)


@dataclass(frozen=True, slots=True)
class RecurrentAttentionConfig:
    """Architecture of the bidirectional attention network."""

    sequence_length: int = 10
    hidden_size: int = 128
    num_layers: int = 2
    bidirectional: bool = True
    use_attention: bool = True
    init_std: float = 0.1
    keep_hidden_states: bool = True

    def __post_init__(self) -> None:
        if self.sequence_length <= 0:
            raise ValueError("sequence_length must be > 0")
        if self.hidden_size <= 0:
            raise ValueError("hidden_size must be > 0")
        if self.num_layers <= 0:
            raise ValueError("num_layers must be > 0")
        if self.init_std <= 0.0:
            raise ValueError("init_std must be > 0")


@dataclass(frozen=True, slots=True)
class GatedSequenceConfig:
    """Architecture of the single-direction gated recurrent baseline."""

    sequence_length: int = 10
    hidden_size: int = 64
    init_std: float = 0.1
    confidence: float = 0.6

    def __post_init__(self) -> None:
        if self.sequence_length <= 0:
            raise ValueError("sequence_length must be > 0")
        if self.hidden_size <= 0:
            raise ValueError("hidden_size must be > 0")
        if self.init_std <= 0.0:
            raise ValueError("init_std must be > 0")
        if self.confidence < 0.0 or self.confidence > 1.0:
            raise ValueError("confidence must be in [0, 1]")


@dataclass(frozen=True, slots=True)
class DilatedConvConfig:
    """Architecture of the dilated causal convolution baseline."""

    sequence_length: int = 10
    channels: int = 32
    kernel_size: int = 3
    dilations: tuple[int, ...] = (1, 2, 4, 8)
    residual_scale: float = 0.1
    init_std: float = 0.1
    confidence: float = 0.55

    def __post_init__(self) -> None:
        if self.sequence_length <= 0:
            raise ValueError("sequence_length must be > 0")
        if self.channels <= 0:
            raise ValueError("channels must be > 0")
        if self.kernel_size <= 0:
            raise ValueError("kernel_size must be > 0")
        if not self.dilations or any(value <= 0 for value in self.dilations):
            raise ValueError("dilations must be non-empty and > 0")
        if self.init_std <= 0.0:
            raise ValueError("init_std must be > 0")
        if self.confidence < 0.0 or self.confidence > 1.0:
            raise ValueError("confidence must be in [0, 1]")


class RecurrentAttentionPredictor:
    """Bidirectional gated-memory predictor with attention pooling."""

    def __init__(self, config: RecurrentAttentionConfig | None = None, *, seed: int | None = None) -> None:
        self._config = RecurrentAttentionConfig() if config is None else config
        self._network = BidirectionalAttentionLSTM(
            input_size=len(FEATURE_NAMES),
            hidden_size=self._config.hidden_size,
            num_layers=self._config.num_layers,
            bidirectional=self._config.bidirectional,
            use_attention=self._config.use_attention,
            init_std=self._config.init_std,
            generator=make_generator(seed),
        )
        self._network.eval()

    @property
    def config(self) -> RecurrentAttentionConfig:
        return self._config

    @property
    def network(self) -> BidirectionalAttentionLSTM:
        return self._network

    def predict(self, sequence: HistorySequence) -> SequencePrediction:
        """Predict from history; never raises."""
        return self.predict_outcome(sequence).value

    def predict_outcome(self, sequence: HistorySequence) -> PredictionOutcome[SequencePrediction]:
        return _guarded_predict("recurrent_attention", sequence, self._compute)

    def parameter_count(self) -> int:
        return sum(int(parameter.numel()) for parameter in self._network.parameters())

    def model_info(self) -> dict[str, Any]:
        """Architecture summary for reporting."""
        return {
            "architecture": "bidirectional gated-memory network with attention",
            "sequence_length": self._config.sequence_length,
            "hidden_size": self._config.hidden_size,
            "input_size": len(FEATURE_NAMES),
            "output_size": 3,
            "num_layers": self._config.num_layers,
            "bidirectional": self._config.bidirectional,
            "use_attention": self._config.use_attention,
            "trained": False,
            "total_parameters": self.parameter_count(),
        }

    def _compute(self, sequence: HistorySequence) -> SequencePrediction:
        window = window_features(sequence, window=self._config.sequence_length)
        with torch.no_grad():
            trace = self._network(torch.from_numpy(window))
        temperature, wear_rate, laps = _denormalize(trace.output)
        peak = trace.peak_attention if self._config.use_attention else 1.0
        confidence = _attention_confidence(sequence, peak)

        hidden_states: tuple[tuple[float, ...], ...] = ()
        if self._config.keep_hidden_states:
            hidden_states = tuple(tuple(row) for row in trace.forward_states.tolist())
        return SequencePrediction(
            temperature=temperature,
            wear_rate=wear_rate,
            predicted_laps_remaining=laps,
            confidence=confidence,
            attention_weights=tuple(float(value) for value in trace.attention_weights.tolist()),
            hidden_states=hidden_states,
        )


class GatedSequencePredictor:
    """Single-pass reset/update gated recurrent baseline."""

    def __init__(self, config: GatedSequenceConfig | None = None, *, seed: int | None = None) -> None:
        self._config = GatedSequenceConfig() if config is None else config
        self._network = GatedRecurrentNetwork(
            input_size=len(FEATURE_NAMES),
            hidden_size=self._config.hidden_size,
            init_std=self._config.init_std,
            generator=make_generator(seed),
        )
        self._network.eval()

    @property
    def config(self) -> GatedSequenceConfig:
        return self._config

    def predict(self, sequence: HistorySequence) -> SequencePrediction:
        return self.predict_outcome(sequence).value

    def predict_outcome(self, sequence: HistorySequence) -> PredictionOutcome[SequencePrediction]:
        return _guarded_predict("gated", sequence, self._compute)

    def _compute(self, sequence: HistorySequence) -> SequencePrediction:
        window = window_features(sequence, window=self._config.sequence_length)
        with torch.no_grad():
            output = self._network(torch.from_numpy(window))
        temperature, wear_rate, laps = _denormalize(output)
        return SequencePrediction(
            temperature=temperature,
            wear_rate=wear_rate,
            predicted_laps_remaining=laps,
            confidence=self._config.confidence,
        )


class DilatedConvPredictor:
    """Causal dilated convolution baseline over a collapsed feature channel."""

    def __init__(self, config: DilatedConvConfig | None = None, *, seed: int | None = None) -> None:
        self._config = DilatedConvConfig() if config is None else config
        self._network = DilatedCausalConvNetwork(
            channels=self._config.channels,
            kernel_size=self._config.kernel_size,
            dilations=self._config.dilations,
            residual_scale=self._config.residual_scale,
            init_std=self._config.init_std,
            generator=make_generator(seed),
        )
        self._network.eval()

    @property
    def config(self) -> DilatedConvConfig:
        return self._config

    def predict(self, sequence: HistorySequence) -> SequencePrediction:
        return self.predict_outcome(sequence).value

    def predict_outcome(self, sequence: HistorySequence) -> PredictionOutcome[SequencePrediction]:
        return _guarded_predict("dilated_conv", sequence, self._compute)

    def _compute(self, sequence: HistorySequence) -> SequencePrediction:
        window = window_features(sequence, window=self._config.sequence_length)
        signal = np.mean(window, axis=1)
        with torch.no_grad():
            output = self._network(torch.from_numpy(signal))
        temperature, wear_rate, laps = _denormalize(output)
        return SequencePrediction(
            temperature=temperature,
            wear_rate=wear_rate,
            predicted_laps_remaining=laps,
            confidence=self._config.confidence,
        )


def build_predictor(kind: PredictorKind | str, *, seed: int | None = None) -> SequencePredictor:
    """Instantiate a predictor family by name with its default architecture."""
    resolved = PredictorKind(kind)
    if resolved == PredictorKind.RECURRENT_ATTENTION:
        return RecurrentAttentionPredictor(seed=seed)
    if resolved == PredictorKind.GATED:
        return GatedSequencePredictor(seed=seed)
    return DilatedConvPredictor(seed=seed)


def _guarded_predict(
    name: str,
    sequence: HistorySequence,
    compute: Callable[[HistorySequence], SequencePrediction],
) -> PredictionOutcome[SequencePrediction]:
    if sequence.is_empty:
        logger.warning("%s predictor received an empty sequence; using default prediction", name)
        return PredictionOutcome.fallback(
            DEFAULT_SEQUENCE_PREDICTION,
            FallbackReason.EMPTY_SEQUENCE,
            "sequence contains no samples",
        )
    try:
        prediction = compute(sequence)
    except (ValueError, RuntimeError, FloatingPointError) as exc:
        logger.warning("%s predictor failed: %s", name, exc)
        return PredictionOutcome.fallback(
            DEFAULT_SEQUENCE_PREDICTION,
            FallbackReason.MODEL_ERROR,
            str(exc),
        )
    if not prediction.is_finite:
        logger.warning("%s predictor produced non-finite output; using default prediction", name)
        return PredictionOutcome.fallback(
            DEFAULT_SEQUENCE_PREDICTION,
            FallbackReason.INVALID_OUTPUT,
            "non-finite prediction fields",
        )
    return PredictionOutcome.computed(prediction)


def _denormalize(raw: torch.Tensor) -> tuple[float, float, float]:
    normalized = torch.clamp(raw, 0.0, 1.0).tolist()
    temperature = TEMPERATURE_FLOOR_C + normalized[0] * TEMPERATURE_SPAN_C
    wear_rate = normalized[1] * WEAR_SPAN
    laps = normalized[2] * LAPS_SPAN
    return float(temperature), float(wear_rate), float(laps)


def _attention_confidence(sequence: HistorySequence, peak_attention: float) -> float:
    recent_speeds = np.asarray(sequence.wheel_speed[-5:], dtype=np.float64)
    speed_variance = float(np.var(recent_speeds)) if recent_speeds.size else 0.0
    speed_consistency = max(0.0, 1.0 - speed_variance / 100_000.0)
    data_quality = 1.0 if len(sequence) >= 5 else 0.5
    confidence = peak_attention * 0.4 + speed_consistency * 0.3 + data_quality * 0.3
    return float(np.clip(confidence, 0.1, 0.99))
