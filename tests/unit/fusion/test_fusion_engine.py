"""Tests for physics + learned fusion, anomaly scoring, and calibration."""

from __future__ import annotations

import pytest

from braketwin.domain import (
    FallbackReason,
    FusedPrediction,
    HistorySequence,
    OperatingState,
    PhysicsOutput,
    PredictionOutcome,
    SequencePrediction,
)
from braketwin.evaluation import DEFAULT_SCENARIOS, scenario_by_id
from braketwin.fusion import CalibrationSample, FusionConfig, FusionEngine, FusionInputs
from braketwin.ml import GatedSequencePredictor
from braketwin.physics import PhysicsSimulator


class _StubPredictor:
    def __init__(self, outcome: PredictionOutcome[SequencePrediction]) -> None:
        self.outcome = outcome

    def predict(self, sequence: HistorySequence) -> SequencePrediction:
        return self.outcome.value

    def predict_outcome(self, sequence: HistorySequence) -> PredictionOutcome[SequencePrediction]:
        return self.outcome


class _RaisingPredictor:
    def predict(self, sequence: HistorySequence) -> SequencePrediction:
        raise RuntimeError("weights corrupted")

    def predict_outcome(self, sequence: HistorySequence) -> PredictionOutcome[SequencePrediction]:
        raise RuntimeError("weights corrupted")


class _BrokenPhysics:
    def predict(self, state: OperatingState, previous_temperature: float = 25.0) -> None:
        raise ValueError("solver diverged")


def _extreme_heat_inputs() -> FusionInputs:
    scenario = scenario_by_id("extreme_heat_1")
    return FusionInputs(current_state=scenario.current_state, historical_sequence=scenario.history)


def _learned(
    temperature: float,
    wear_rate: float,
    *,
    laps: float = 20.0,
    confidence: float = 0.9,
) -> PredictionOutcome[SequencePrediction]:
    return PredictionOutcome.computed(
        SequencePrediction(
            temperature=temperature,
            wear_rate=wear_rate,
            predicted_laps_remaining=laps,
            confidence=confidence,
        )
    )


def _engine_with(outcome: PredictionOutcome[SequencePrediction], **config: float) -> FusionEngine:
    return FusionEngine(FusionConfig(**config), predictor=_StubPredictor(outcome))


def test_anomaly_score_grows_with_divergence() -> None:
    inputs = _extreme_heat_inputs()
    physics = PhysicsSimulator().predict(inputs.current_state)

    close = _engine_with(_learned(physics.temperature + 30.0, physics.wear_rate)).predict(inputs)
    far = _engine_with(_learned(physics.temperature + 300.0, physics.wear_rate)).predict(inputs)

    assert close.anomaly_score == pytest.approx(0.075)
    assert far.anomaly_score == pytest.approx(0.5)
    assert close.anomaly_score < far.anomaly_score
    assert far.physics_weight > close.physics_weight


def test_fused_outputs_respect_bounds_on_every_scenario() -> None:
    engine = FusionEngine(predictor=GatedSequencePredictor(seed=3))
    for scenario in DEFAULT_SCENARIOS:
        fused = engine.predict(
            FusionInputs(current_state=scenario.current_state, historical_sequence=scenario.history)
        )
        ambient = scenario.current_state.ambient_temp

        assert fused.physics_weight + fused.ml_weight == pytest.approx(1.0)
        assert fused.physics_weight <= 0.8 + 1e-12
        assert 0.5 <= fused.confidence <= 0.95
        assert ambient <= fused.temperature <= 1200.0
        assert 0.0 <= fused.wear_rate <= 1.0
        assert fused.predicted_laps_remaining >= 0.0


def test_adapt_weights_shifts_toward_physics() -> None:
    engine = FusionEngine(predictor=_StubPredictor(_learned(500.0, 0.1)))

    neutral = engine.adapt_weights(0.0, 0.9)
    low_confidence = engine.adapt_weights(0.0, 0.3)
    anomalous = engine.adapt_weights(1.0, 0.9)

    assert neutral.physics == pytest.approx(0.6)
    assert low_confidence.physics == pytest.approx(0.66 / 1.06)
    assert anomalous.physics == pytest.approx(0.8 / 1.2)
    assert anomalous.physics + anomalous.learned == pytest.approx(1.0)


def test_adapt_weights_caps_physics_share() -> None:
    engine = _engine_with(_learned(500.0, 0.1), base_physics_weight=0.8)
    assert engine.adapt_weights(1.0, 0.0).physics == pytest.approx(0.8)


def test_high_wear_limits_laps_to_pad_life() -> None:
    inputs = _extreme_heat_inputs()
    physics = PhysicsSimulator().predict(inputs.current_state)
    engine = _engine_with(_learned(physics.temperature, 0.5, laps=150.0))

    fused = engine.predict(inputs)

    assert fused.wear_rate > 0.1
    assert fused.predicted_laps_remaining <= inputs.current_state.pad_thickness / fused.wear_rate + 1e-9


def test_learned_model_error_substitutes_physics() -> None:
    inputs = _extreme_heat_inputs()
    physics = PhysicsSimulator().predict(inputs.current_state)
    failed = PredictionOutcome.fallback(
        SequencePrediction(temperature=450.0, wear_rate=0.1, predicted_laps_remaining=45.0, confidence=0.5),
        FallbackReason.MODEL_ERROR,
        "bad weights",
    )

    outcome = _engine_with(failed).predict_outcome(inputs)

    assert outcome.reason == FallbackReason.MODEL_ERROR
    assert outcome.value.temperature == pytest.approx(physics.temperature)
    assert outcome.value.anomaly_score == pytest.approx(0.0)
    assert outcome.value.confidence == pytest.approx(0.5)


def test_raising_predictor_is_contained() -> None:
    outcome = FusionEngine(predictor=_RaisingPredictor()).predict_outcome(_extreme_heat_inputs())

    assert outcome.reason == FallbackReason.MODEL_ERROR
    assert "weights corrupted" in outcome.detail
    assert 0.5 <= outcome.value.confidence <= 0.95


def test_non_finite_learned_output_is_invalid() -> None:
    outcome = _engine_with(_learned(float("nan"), 0.1)).predict_outcome(_extreme_heat_inputs())
    assert outcome.reason == FallbackReason.INVALID_OUTPUT


def test_empty_history_uses_default_learned_estimate() -> None:
    scenario = scenario_by_id("normal_1")
    engine = FusionEngine(predictor=GatedSequencePredictor(seed=0))

    outcome = engine.predict_outcome(
        FusionInputs(current_state=scenario.current_state, historical_sequence=HistorySequence.empty())
    )

    assert outcome.reason == FallbackReason.EMPTY_SEQUENCE
    assert outcome.value.ml_weight > 0.0


def test_physics_failure_returns_degraded_prediction() -> None:
    engine = FusionEngine(physics=_BrokenPhysics(), predictor=_StubPredictor(_learned(500.0, 0.1)))  # type: ignore[arg-type]

    outcome = engine.predict_outcome(_extreme_heat_inputs())

    assert outcome.reason == FallbackReason.TOTAL_FAILURE
    assert outcome.value.temperature == pytest.approx(35.0)
    assert outcome.value.confidence == pytest.approx(0.4)
    assert outcome.value.physics_weight == pytest.approx(1.0)
    assert outcome.value.anomaly_score == pytest.approx(0.8)


def test_calibrate_scales_temperature_and_raises_physics_weight() -> None:
    inputs = _extreme_heat_inputs()
    physics = PhysicsSimulator().predict(inputs.current_state)
    engine = _engine_with(_learned(physics.temperature, physics.wear_rate))
    before = engine.predict(inputs).temperature

    factor = engine.calibrate(
        [CalibrationSample(predicted=150.0, actual=100.0), CalibrationSample(predicted=50.0, actual=100.0)]
    )

    assert factor == pytest.approx(1.0 / 1.5)
    assert engine.calibration_factor == pytest.approx(factor)
    assert engine.base_weights.physics == pytest.approx(0.7)
    assert engine.predict(inputs).temperature == pytest.approx(before / 1.5)


def test_calibrate_small_error_keeps_base_weight() -> None:
    engine = _engine_with(_learned(500.0, 0.1))
    factor = engine.calibrate(
        [CalibrationSample(predicted=105.0, actual=100.0), CalibrationSample(predicted=0.0, actual=0.0)]
    )

    assert factor == pytest.approx(1.0 / 1.05)
    assert engine.base_weights.physics == pytest.approx(0.6)


def test_calibrate_without_usable_samples_is_noop() -> None:
    engine = _engine_with(_learned(500.0, 0.1))
    assert engine.calibrate([]) == pytest.approx(1.0)
    assert engine.calibrate([CalibrationSample(predicted=10.0, actual=0.0)]) == pytest.approx(1.0)


@pytest.mark.parametrize(
    ("anomaly", "expected"),
    [(0.5, "High anomaly"), (0.2, "Moderate anomaly"), (0.05, "Low anomaly")],
)
def test_explain_anomaly_tiers(anomaly: float, expected: str) -> None:
    prediction = FusedPrediction(
        temperature=500.0,
        wear_rate=0.1,
        predicted_laps_remaining=20.0,
        heat_generation=4000.0,
        cooling_rate=100.0,
        thermal_stress=900.0,
        confidence=0.8,
        physics_weight=0.6,
        ml_weight=0.4,
        anomaly_score=anomaly,
    )
    explanation = FusionEngine(predictor=_StubPredictor(_learned(500.0, 0.1))).explain(prediction)

    assert explanation.anomaly_explanation.startswith(expected)
    assert any("4000.0 W" in line for line in explanation.physics_contribution)
    assert explanation.confidence_factors[0] == "Confidence: 80.0%"


def test_model_info_describes_both_models() -> None:
    engine = FusionEngine(predictor=GatedSequencePredictor(seed=0))
    info = engine.model_info()

    assert info["base_weights"] == {"physics": 0.6, "learned": pytest.approx(0.4)}
    assert info["calibration_factor"] == pytest.approx(1.0)
    assert info["learned_model"] == "GatedSequencePredictor"


def test_fusion_config_validation() -> None:
    with pytest.raises(ValueError, match="base_physics_weight"):
        FusionConfig(base_physics_weight=0.9)
    with pytest.raises(ValueError, match="min_confidence"):
        FusionConfig(min_confidence=0.99)


class _NonFinitePhysics:
    def predict(self, state: OperatingState, previous_temperature: float = 25.0) -> PhysicsOutput:
        return PhysicsOutput(
            temperature=float("nan"),
            wear_rate=0.05,
            heat_generation=float("nan"),
            cooling_rate=0.0,
            predicted_laps_remaining=10,
            thermal_stress=0.0,
        )


class _PredictOnly:
    def __init__(self, prediction: SequencePrediction) -> None:
        self.prediction = prediction

    def predict(self, sequence: HistorySequence) -> SequencePrediction:
        return self.prediction


def test_non_finite_physics_output_uses_ambient_degraded_prediction() -> None:
    engine = FusionEngine(physics=_NonFinitePhysics(), predictor=_StubPredictor(_learned(500.0, 0.1)))  # type: ignore[arg-type]

    outcome = engine.predict_outcome(_extreme_heat_inputs())

    assert outcome.reason == FallbackReason.TOTAL_FAILURE
    assert outcome.value.temperature == pytest.approx(35.0)
    assert outcome.value.heat_generation == pytest.approx(0.0)
    assert outcome.value.confidence == pytest.approx(0.4)


def test_overflowing_wheel_speed_gives_bounded_fusion() -> None:
    state = OperatingState(wheel_speed=1e308, brake_pressure=0.0, ambient_temp=25.0, pad_thickness=10.0)
    engine = FusionEngine(predictor=GatedSequencePredictor(seed=0))

    fused = engine.predict(FusionInputs(current_state=state, historical_sequence=scenario_by_id("normal_1").history))

    assert 25.0 <= fused.temperature <= 1200.0
    assert 0.0 <= fused.heat_generation <= 5000.0
    assert 0.0 <= fused.anomaly_score <= 1.0
    assert 0.5 <= fused.confidence <= 0.95


def test_predict_only_predictor_is_blended() -> None:
    inputs = _extreme_heat_inputs()
    physics = PhysicsSimulator().predict(inputs.current_state)
    learned = SequencePrediction(
        temperature=physics.temperature + 30.0,
        wear_rate=physics.wear_rate,
        predicted_laps_remaining=20.0,
        confidence=0.9,
    )

    outcome = FusionEngine(predictor=_PredictOnly(learned)).predict_outcome(inputs)

    assert not outcome.is_fallback
    assert outcome.value.ml_weight == pytest.approx(0.4)
    assert outcome.value.anomaly_score == pytest.approx(0.075)


def test_predict_only_predictor_with_nan_is_invalid_output() -> None:
    learned = SequencePrediction(
        temperature=float("nan"),
        wear_rate=0.1,
        predicted_laps_remaining=20.0,
        confidence=0.9,
    )
    outcome = FusionEngine(predictor=_PredictOnly(learned)).predict_outcome(_extreme_heat_inputs())
    assert outcome.reason == FallbackReason.INVALID_OUTPUT
