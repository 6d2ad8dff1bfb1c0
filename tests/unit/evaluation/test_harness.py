"""Tests for comparative model evaluation and report rendering."""

from __future__ import annotations

import dataclasses
import json

import pytest

from braketwin.domain import PredictionTarget, Scenario
from braketwin.evaluation import (
    DEFAULT_SCENARIOS,
    EvaluationConfig,
    EvaluationError,
    EvaluationHarness,
    ModelEstimate,
    ModelName,
    PerformanceReport,
    evaluation_result_to_jsonable,
    render_report,
)
from braketwin.fusion import FusionEngine
from braketwin.ml import GatedSequencePredictor, RecurrentAttentionConfig, RecurrentAttentionPredictor


def _harness(seed: int = 7) -> EvaluationHarness:
    return EvaluationHarness(
        recurrent_attention=RecurrentAttentionPredictor(RecurrentAttentionConfig(hidden_size=16), seed=seed),
        fusion=FusionEngine(predictor=GatedSequencePredictor(seed=seed)),
        seed=seed,
    )


def _report(model: ModelName, *, accuracy: float, response_ms: float) -> PerformanceReport:
    return PerformanceReport(
        model=model,
        accuracy=accuracy,
        mean_response_time_ms=response_ms,
        interpretability=50.0,
        mean_absolute_error=0.1,
        root_mean_square_error=0.1,
        r_squared=0.5,
        calibration=None,
        results=(),
    )


def _perfect(scenario: Scenario) -> ModelEstimate:
    truth = scenario.ground_truth
    return ModelEstimate(
        temperature=truth.temperature,
        wear_rate=truth.wear_rate,
        predicted_laps_remaining=truth.predicted_laps_remaining,
        confidence=0.95,
    )


def test_evaluate_models_scores_and_ranks_all_models() -> None:
    result = _harness().evaluate_models()

    assert set(result.reports) == set(ModelName)
    scores = [score for _model, score in result.ranking]
    assert scores == sorted(scores, reverse=True)
    assert result.winner == result.ranking[0][0]
    assert len(result.comparisons) == 4
    assert all(comparison.candidate == ModelName.FUSION for comparison in result.comparisons)
    assert "Winner:" in result.summary


def test_reports_carry_per_scenario_rows() -> None:
    result = _harness().evaluate_models([ModelName.PHYSICS, ModelName.FUSION])

    physics = result.reports[ModelName.PHYSICS]
    fusion = result.reports[ModelName.FUSION]
    assert len(physics.results) == len(DEFAULT_SCENARIOS)
    assert physics.calibration is None
    assert fusion.calibration is not None
    assert 0.0 <= fusion.calibration.expected_calibration_error <= 1.0
    assert physics.interpretability == pytest.approx(95.0)
    assert all(row.response_time_ms >= 0.0 for row in physics.results)
    assert 0.0 <= physics.accuracy <= 100.0


def test_same_seed_reproduces_predictions() -> None:
    first = _harness(seed=3).evaluate_model(ModelName.RECURRENT_ATTENTION)
    second = _harness(seed=3).evaluate_model(ModelName.RECURRENT_ATTENTION)

    assert [row.predicted for row in first.results] == [row.predicted for row in second.results]


def test_registered_estimator_is_scored() -> None:
    harness = _harness()
    harness.register(ModelName.GATED, _perfect)

    report = harness.evaluate_model(ModelName.GATED)

    assert report.accuracy == pytest.approx(100.0)
    assert report.r_squared == pytest.approx(1.0)
    assert report.fallback_count == 0


def test_missing_model_raises() -> None:
    harness = _harness()
    harness.register(ModelName.DILATED_CONV, None)

    with pytest.raises(EvaluationError, match="dilated_conv"):
        harness.evaluate_models()


def test_empty_scenarios_raise() -> None:
    harness = EvaluationHarness(scenarios=(), seed=1)
    with pytest.raises(EvaluationError, match="no evaluation scenarios"):
        harness.evaluate_models([ModelName.PHYSICS])


def test_estimator_failure_raises_evaluation_error() -> None:
    def broken(scenario: Scenario) -> ModelEstimate:
        raise RuntimeError("backend offline")

    harness = _harness()
    harness.register(ModelName.GATED, broken)
    with pytest.raises(EvaluationError, match="backend offline"):
        harness.evaluate_model(ModelName.GATED)


def test_weighted_score_formula() -> None:
    harness = EvaluationHarness(scenarios=DEFAULT_SCENARIOS[:1], seed=0)
    report = _report(ModelName.PHYSICS, accuracy=80.0, response_ms=150.0)

    # latency is capped at 100 ms, so the speed term is zero
    assert harness.weighted_score(report) == pytest.approx(80.0 * 0.4 + 0.0 + 50.0 * 0.4)


def test_compare_reports_tie_within_margin() -> None:
    harness = EvaluationHarness(EvaluationConfig(tie_margin=2.0), scenarios=DEFAULT_SCENARIOS[:1], seed=0)
    candidate = _report(ModelName.FUSION, accuracy=81.0, response_ms=10.0)
    baseline = _report(ModelName.PHYSICS, accuracy=80.0, response_ms=10.0)

    tie = harness.compare(candidate, baseline)
    assert tie.winner is None
    assert tie.accuracy_improvement == pytest.approx(1.25)
    assert "TIE" in tie.summary

    win = harness.compare(_report(ModelName.FUSION, accuracy=95.0, response_ms=5.0), baseline)
    assert win.winner == ModelName.FUSION
    assert win.response_time_improvement == pytest.approx(50.0)


def test_evaluation_config_validation() -> None:
    with pytest.raises(ValueError, match="sum to 1.0"):
        EvaluationConfig(accuracy_weight=0.5)
    with pytest.raises(ValueError, match="calibration_bins"):
        EvaluationConfig(calibration_bins=0)


def test_report_rendering_and_serialization() -> None:
    result = _harness().evaluate_models([ModelName.PHYSICS, ModelName.FUSION, ModelName.GATED])

    markdown = render_report(result)
    assert markdown.startswith("# Brake Digital Twin Evaluation Report")
    assert "## Model Performance" in markdown
    assert "### fusion vs physics" in markdown
    assert "| physics |" in markdown

    payload = json.loads(json.dumps(evaluation_result_to_jsonable(result)))
    assert payload["winner"] == result.winner.value
    assert set(payload["reports"]) == {"physics", "fusion", "gated"}
    assert len(payload["reports"]["physics"]["results"]) == len(DEFAULT_SCENARIOS)


def test_report_error_metrics_are_consistent() -> None:
    result = _harness().evaluate_models()

    for report in result.reports.values():
        assert report.mean_absolute_error >= 0.0
        assert report.root_mean_square_error >= report.mean_absolute_error - 1e-12
        assert report.r_squared <= 1.0


@pytest.mark.parametrize("temperature", [0.0, float("nan")])
def test_unusable_ground_truth_raises_evaluation_error(temperature: float) -> None:
    scenario = dataclasses.replace(
        DEFAULT_SCENARIOS[0],
        ground_truth=PredictionTarget(temperature=temperature, wear_rate=0.1, predicted_laps_remaining=10.0),
    )
    harness = EvaluationHarness(scenarios=(scenario,), seed=1)

    with pytest.raises(EvaluationError, match="ground-truth"):
        harness.evaluate_model(ModelName.PHYSICS)
