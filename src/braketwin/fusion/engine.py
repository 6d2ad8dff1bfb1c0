"""Adaptive physics + learned-model fusion with anomaly and confidence scoring."""

from __future__ import annotations

import logging
from dataclasses import dataclass
from math import isfinite
from typing import Any, Sequence

import numpy as np

from braketwin.domain.models import (
    FallbackReason,
    FusedPrediction,
    HistorySequence,
    OperatingState,
    PhysicsOutput,
    PredictionOutcome,
    SequencePrediction,
)
from braketwin.ml.predictors import (
    RecurrentAttentionPredictor,
    SequencePredictor,
    predict_outcome_of,
)
from braketwin.physics.simulator import MAX_TEMPERATURE_C, PhysicsSimulator


logger = logging.getLogger(__name__)

MIN_WEAR_PER_LAP = 0.001
MAX_FUSED_WEAR_RATE = 1.0


@dataclass(frozen=True, slots=True)
class FusionConfig:
    """Blend, anomaly, and confidence tunables for the fusion engine."""

    base_physics_weight: float = 0.6
    anomaly_threshold: float = 0.3
    anomaly_gain: float = 0.2
    confidence_threshold: float = 0.7
    confidence_gain: float = 0.15
    max_physics_weight: float = 0.8
    temperature_tolerance_c: float = 200.0
    wear_tolerance: float = 0.1
    anomaly_penalty: float = 0.3
    min_confidence: float = 0.5
    max_confidence: float = 0.95
    high_wear_rate: float = 0.1
    invalid_output_confidence: float = 0.3
    model_error_confidence: float = 0.2
    calibration_error_threshold: float = 0.1
    calibration_physics_step: float = 0.1

    def __post_init__(self) -> None:
        for name in (
            "base_physics_weight",
            "anomaly_threshold",
            "confidence_threshold",
            "max_physics_weight",
            "min_confidence",
            "max_confidence",
            "invalid_output_confidence",
            "model_error_confidence",
        ):
            value = getattr(self, name)
            if value < 0.0 or value > 1.0:
                raise ValueError(f"{name} must be in [0, 1]")
        if self.temperature_tolerance_c <= 0.0:
            raise ValueError("temperature_tolerance_c must be > 0")
        if self.wear_tolerance <= 0.0:
            raise ValueError("wear_tolerance must be > 0")
        if self.min_confidence > self.max_confidence:
            raise ValueError("min_confidence cannot be greater than max_confidence")
        if self.base_physics_weight > self.max_physics_weight:
            raise ValueError("base_physics_weight cannot exceed max_physics_weight")


@dataclass(frozen=True, slots=True)
class FusionInputs:
    """One fusion request: current sample plus the history window."""

    current_state: OperatingState
    historical_sequence: HistorySequence
    previous_temperature: float | None = None


@dataclass(frozen=True, slots=True)
class CalibrationSample:
    """Predicted vs. measured temperature pair."""

    predicted: float
    actual: float


@dataclass(frozen=True, slots=True)
class BlendWeights:
    physics: float
    learned: float


@dataclass(frozen=True, slots=True)
class FusionExplanation:
    """Human-readable breakdown of what drove a fused prediction."""

    physics_contribution: tuple[str, ...]
    learned_contribution: tuple[str, ...]
    confidence_factors: tuple[str, ...]
    anomaly_explanation: str


class FusionEngine:
    """Blend the physics simulator with the recurrent-attention predictor.

    Physics weight starts at ``base_physics_weight`` and is raised when the two
    estimates disagree or the learned confidence is low. The calibration factor
    and base weight persist for the lifetime of the instance only.
    """

    def __init__(
        self,
        config: FusionConfig | None = None,
        *,
        physics: PhysicsSimulator | None = None,
        predictor: SequencePredictor | None = None,
        seed: int | None = None,
    ) -> None:
        self._config = FusionConfig() if config is None else config
        self._physics = PhysicsSimulator() if physics is None else physics
        self._predictor = RecurrentAttentionPredictor(seed=seed) if predictor is None else predictor
        self._base_physics_weight = self._config.base_physics_weight
        self._calibration_factor = 1.0

    @property
    def config(self) -> FusionConfig:
        return self._config

    @property
    def calibration_factor(self) -> float:
        return self._calibration_factor

    @property
    def base_weights(self) -> BlendWeights:
        return BlendWeights(
            physics=self._base_physics_weight,
            learned=1.0 - self._base_physics_weight,
        )

    def predict(self, inputs: FusionInputs) -> FusedPrediction:
        """Return a bounds-clamped fused prediction; never raises."""
        return self.predict_outcome(inputs).value

    def predict_outcome(self, inputs: FusionInputs) -> PredictionOutcome[FusedPrediction]:
        """Fused prediction tagged with whether the learned path was substituted."""
        state = inputs.current_state
        previous = 25.0 if inputs.previous_temperature is None else inputs.previous_temperature
        try:
            physics_result = self._physics.predict(state, previous)
        except (ValueError, ArithmeticError) as exc:
            logger.error("physics simulation failed: %s", exc)
            return PredictionOutcome.fallback(
                self._degraded(state, None),
                FallbackReason.TOTAL_FAILURE,
                f"physics: {exc}",
            )
        if not _physics_is_finite(physics_result):
            logger.error("physics simulation produced non-finite output")
            return PredictionOutcome.fallback(
                self._degraded(state, None),
                FallbackReason.TOTAL_FAILURE,
                "physics: non-finite output",
            )

        learned, substitution = self._learned_estimate(inputs.historical_sequence, physics_result)
        try:
            fused = self._blend(state, physics_result, learned)
        except (ValueError, ArithmeticError) as exc:
            logger.error("fusion blend failed: %s", exc)
            return PredictionOutcome.fallback(
                self._degraded(state, physics_result),
                FallbackReason.TOTAL_FAILURE,
                f"blend: {exc}",
            )

        if substitution is not None:
            reason, detail = substitution
            return PredictionOutcome.fallback(fused, reason, detail)
        return PredictionOutcome.computed(fused)

    def anomaly_score(self, physics_result: PhysicsOutput, learned: SequencePrediction) -> float:
        """Mean of tolerance-normalized temperature and wear divergence, each capped at 1."""
        temperature_gap = abs(physics_result.temperature - learned.temperature)
        wear_gap = abs(physics_result.wear_rate - learned.wear_rate)
        normalized_temperature = min(temperature_gap / self._config.temperature_tolerance_c, 1.0)
        normalized_wear = min(wear_gap / self._config.wear_tolerance, 1.0)
        return float((normalized_temperature + normalized_wear) / 2.0)

    def adapt_weights(self, anomaly_score: float, learned_confidence: float) -> BlendWeights:
        """Shift weight toward physics under disagreement or low learned confidence."""
        cfg = self._config
        physics_weight = self._base_physics_weight
        learned_weight = 1.0 - self._base_physics_weight

        if anomaly_score > cfg.anomaly_threshold:
            physics_weight += cfg.anomaly_gain * anomaly_score
        if learned_confidence < cfg.confidence_threshold:
            physics_weight += cfg.confidence_gain * (cfg.confidence_threshold - learned_confidence)

        total = physics_weight + learned_weight
        physics_weight = min(cfg.max_physics_weight, physics_weight / total)
        return BlendWeights(physics=physics_weight, learned=1.0 - physics_weight)

    def calibrate(self, samples: Sequence[CalibrationSample]) -> float:
        """Refit the temperature calibration factor from measured samples."""
        errors = [
            abs(sample.predicted - sample.actual) / abs(sample.actual)
            for sample in samples
            if isfinite(sample.predicted) and isfinite(sample.actual) and sample.actual != 0.0
        ]
        if not errors:
            logger.debug("calibration skipped: no usable samples")
            return self._calibration_factor

        mean_error = float(np.mean(np.asarray(errors, dtype=np.float64)))
        self._calibration_factor = 1.0 / (1.0 + mean_error)
        if mean_error > self._config.calibration_error_threshold:
            self._base_physics_weight = min(
                self._config.max_physics_weight,
                self._base_physics_weight + self._config.calibration_physics_step,
            )
        logger.info(
            "fusion calibrated: factor=%.3f mean_relative_error=%.3f base_physics_weight=%.2f",
            self._calibration_factor,
            mean_error,
            self._base_physics_weight,
        )
        return self._calibration_factor

    def explain(self, prediction: FusedPrediction) -> FusionExplanation:
        """Summarize physics and learned contributions behind ``prediction``."""
        sequence_length = getattr(getattr(self._predictor, "config", None), "sequence_length", None)
        memory_line = (
            f"Temporal dependencies: bidirectional memory of the past {sequence_length} steps"
            if sequence_length is not None
            else "Temporal dependencies: recurrent memory of recent steps"
        )
        if prediction.anomaly_score > 0.3:
            anomaly_explanation = (
                "High anomaly: physics and learned estimates disagree significantly; "
                "operating conditions are unusual or a sensor may be faulty."
            )
        elif prediction.anomaly_score > 0.15:
            anomaly_explanation = "Moderate anomaly: some disagreement between estimates; monitor closely."
        else:
            anomaly_explanation = "Low anomaly: physics and learned estimates agree."

        return FusionExplanation(
            physics_contribution=(
                f"Heat generation: {prediction.heat_generation:.1f} W from friction force x rim velocity",
                f"Cooling rate: {prediction.cooling_rate:.1f} W from convective transfer",
                "Wear: Archard's equation with temperature-dependent hardness",
                f"Thermal stress: {prediction.thermal_stress:.1f} MPa from linear expansion",
            ),
            learned_contribution=(
                "Pattern recognition: historical sequence analysis",
                "Attention pooling over per-timestep hidden states",
                memory_line,
            ),
            confidence_factors=(
                f"Confidence: {prediction.confidence * 100:.1f}%",
                f"Physics weight: {prediction.physics_weight * 100:.1f}%",
                f"Learned weight: {prediction.ml_weight * 100:.1f}%",
                f"Anomaly score: {prediction.anomaly_score * 100:.1f}%",
            ),
            anomaly_explanation=anomaly_explanation,
        )

    def model_info(self) -> dict[str, Any]:
        predictor_info = getattr(self._predictor, "model_info", None)
        return {
            "physics_model": "first-principles brake thermodynamics and wear model",
            "learned_model": predictor_info() if callable(predictor_info) else type(self._predictor).__name__,
            "base_weights": {
                "physics": self._base_physics_weight,
                "learned": 1.0 - self._base_physics_weight,
            },
            "calibration_factor": self._calibration_factor,
        }

    def _learned_estimate(
        self,
        sequence: HistorySequence,
        physics_result: PhysicsOutput,
    ) -> tuple[SequencePrediction, tuple[FallbackReason, str] | None]:
        try:
            outcome = predict_outcome_of(self._predictor, sequence)
        except Exception as exc:
            logger.error("learned predictor raised: %s", exc)
            return (
                _physics_as_learned(physics_result, self._config.model_error_confidence),
                (FallbackReason.MODEL_ERROR, str(exc)),
            )

        if outcome.reason == FallbackReason.MODEL_ERROR:
            logger.warning("learned predictor failed, using physics estimate: %s", outcome.detail)
            return (
                _physics_as_learned(physics_result, self._config.model_error_confidence),
                (FallbackReason.MODEL_ERROR, outcome.detail),
            )
        if outcome.reason == FallbackReason.INVALID_OUTPUT or not outcome.value.is_finite:
            logger.warning("learned predictor returned invalid output, using physics estimate")
            return (
                _physics_as_learned(physics_result, self._config.invalid_output_confidence),
                (FallbackReason.INVALID_OUTPUT, outcome.detail or "non-finite prediction fields"),
            )
        if outcome.reason == FallbackReason.EMPTY_SEQUENCE:
            return outcome.value, (FallbackReason.EMPTY_SEQUENCE, outcome.detail)
        return outcome.value, None

    def _blend(
        self,
        state: OperatingState,
        physics_result: PhysicsOutput,
        learned: SequencePrediction,
    ) -> FusedPrediction:
        cfg = self._config
        anomaly = self.anomaly_score(physics_result, learned)
        weights = self.adapt_weights(anomaly, learned.confidence)

        temperature = (
            physics_result.temperature * weights.physics + learned.temperature * weights.learned
        ) * self._calibration_factor
        wear_rate = physics_result.wear_rate * weights.physics + learned.wear_rate * weights.learned
        laps = (
            physics_result.predicted_laps_remaining * weights.physics
            + learned.predicted_laps_remaining * weights.learned
        )

        ambient = _ambient(state)
        thickness = max(0.0, state.pad_thickness) if isfinite(state.pad_thickness) else 0.0
        temperature = float(np.clip(temperature, ambient, max(ambient, MAX_TEMPERATURE_C)))
        wear_rate = float(np.clip(wear_rate, 0.0, MAX_FUSED_WEAR_RATE))
        laps = float(np.clip(laps, 0.0, thickness / MIN_WEAR_PER_LAP))
        if wear_rate > cfg.high_wear_rate:
            laps = min(laps, thickness / wear_rate)
        if not all(isfinite(value) for value in (temperature, wear_rate, laps)):
            raise ArithmeticError("blended prediction is not finite")

        confidence = float(
            np.clip(
                learned.confidence - max(0.0, anomaly * cfg.anomaly_penalty),
                cfg.min_confidence,
                cfg.max_confidence,
            )
        )
        return FusedPrediction(
            temperature=temperature,
            wear_rate=wear_rate,
            predicted_laps_remaining=laps,
            heat_generation=physics_result.heat_generation,
            cooling_rate=physics_result.cooling_rate,
            thermal_stress=physics_result.thermal_stress,
            confidence=confidence,
            physics_weight=weights.physics,
            ml_weight=weights.learned,
            anomaly_score=anomaly,
        )

    def _degraded(self, state: OperatingState, physics_result: PhysicsOutput | None) -> FusedPrediction:
        if physics_result is None:
            ambient = _ambient(state)
            return FusedPrediction(
                temperature=ambient,
                wear_rate=self._config.high_wear_rate,
                predicted_laps_remaining=0.0,
                heat_generation=0.0,
                cooling_rate=0.0,
                thermal_stress=0.0,
                confidence=0.4,
                physics_weight=1.0,
                ml_weight=0.0,
                anomaly_score=0.8,
            )
        return FusedPrediction(
            temperature=physics_result.temperature,
            wear_rate=physics_result.wear_rate,
            predicted_laps_remaining=float(physics_result.predicted_laps_remaining),
            heat_generation=physics_result.heat_generation,
            cooling_rate=physics_result.cooling_rate,
            thermal_stress=physics_result.thermal_stress,
            confidence=0.4,
            physics_weight=1.0,
            ml_weight=0.0,
            anomaly_score=0.8,
        )


def _physics_as_learned(physics_result: PhysicsOutput, confidence: float) -> SequencePrediction:
    return SequencePrediction(
        temperature=physics_result.temperature,
        wear_rate=physics_result.wear_rate,
        predicted_laps_remaining=float(physics_result.predicted_laps_remaining),
        confidence=confidence,
    )


def _physics_is_finite(physics_result: PhysicsOutput) -> bool:
    return all(
        isfinite(value)
        for value in (
            physics_result.temperature,
            physics_result.wear_rate,
            physics_result.heat_generation,
            physics_result.cooling_rate,
            physics_result.predicted_laps_remaining,
            physics_result.thermal_stress,
        )
    )


def _ambient(state: OperatingState) -> float:
    if not isfinite(state.ambient_temp):
        return 25.0
    return float(np.clip(state.ambient_temp, -50.0, MAX_TEMPERATURE_C))
