"""Comparative evaluation of physics, learned, and fused models on fixed scenarios."""

from __future__ import annotations

import logging
import time
from dataclasses import asdict, dataclass, field
from enum import StrEnum
from typing import Any, Callable, Mapping, Sequence

import numpy as np

from braketwin.domain.models import FallbackReason, PredictionTarget, Scenario
from braketwin.evaluation.metrics import (
    CalibrationMetrics,
    compute_calibration_metrics,
    compute_regression_metrics,
)
from braketwin.evaluation.scenarios import DEFAULT_SCENARIOS
from braketwin.fusion.engine import FusionEngine, FusionInputs
from braketwin.ml.predictors import (
    DilatedConvPredictor,
    GatedSequencePredictor,
    RecurrentAttentionPredictor,
    SequencePredictor,
    predict_outcome_of,
)
from braketwin.physics.simulator import PhysicsSimulator


logger = logging.getLogger(__name__)


class ModelName(StrEnum):
    """Model families scored by the harness."""

    PHYSICS = "physics"
    RECURRENT_ATTENTION = "recurrent_attention"
    FUSION = "fusion"
    GATED = "gated"
    DILATED_CONV = "dilated_conv"


INTERPRETABILITY_SCORES: Mapping[ModelName, float] = {
    ModelName.PHYSICS: 95.0,
    ModelName.FUSION: 85.0,
    ModelName.RECURRENT_ATTENTION: 35.0,
    ModelName.GATED: 30.0,
    ModelName.DILATED_CONV: 40.0,
}


class EvaluationError(RuntimeError):
    """Raised when a report cannot be produced at all."""


@dataclass(frozen=True, slots=True)
class EvaluationConfig:
    """Scoring parameters for the evaluation harness."""

    calibration_bins: int = 5
    correctness_tolerance: float = 0.10
    tie_margin: float = 2.0
    response_time_cap_ms: float = 100.0
    accuracy_weight: float = 0.4
    speed_weight: float = 0.2
    interpretability_weight: float = 0.4

    def __post_init__(self) -> None:
        if self.calibration_bins <= 0:
            raise ValueError("calibration_bins must be > 0")
        if self.correctness_tolerance <= 0.0:
            raise ValueError("correctness_tolerance must be > 0")
        if self.tie_margin < 0.0:
            raise ValueError("tie_margin must be >= 0")
        if self.response_time_cap_ms <= 0.0:
            raise ValueError("response_time_cap_ms must be > 0")
        total = self.accuracy_weight + self.speed_weight + self.interpretability_weight
        if abs(total - 1.0) > 1e-9:
            raise ValueError("score weights must sum to 1.0")


@dataclass(frozen=True, slots=True)
class ModelEstimate:
    """What one model said about one scenario."""

    temperature: float
    wear_rate: float
    predicted_laps_remaining: float
    confidence: float | None = None
    fallback_reason: FallbackReason | None = None


@dataclass(frozen=True, slots=True)
class ScenarioResult:
    """Per-scenario prediction row."""

    scenario_id: str
    scenario_name: str
    predicted: ModelEstimate
    actual: PredictionTarget
    relative_error: float
    response_time_ms: float


@dataclass(frozen=True, slots=True)
class PerformanceReport:
    """Aggregated accuracy, latency, and calibration for one model."""

    model: ModelName
    accuracy: float
    mean_response_time_ms: float
    interpretability: float
    mean_absolute_error: float
    root_mean_square_error: float
    r_squared: float
    calibration: CalibrationMetrics | None
    results: tuple[ScenarioResult, ...]

    @property
    def fallback_count(self) -> int:
        return sum(1 for row in self.results if row.predicted.fallback_reason is not None)


@dataclass(frozen=True, slots=True)
class PairwiseComparison:
    """Head-to-head comparison between two model reports."""

    candidate: ModelName
    baseline: ModelName
    winner: ModelName | None
    accuracy_improvement: float
    response_time_improvement: float
    interpretability_improvement: float
    summary: str


@dataclass(frozen=True, slots=True)
class EvaluationResult:
    """Reports for every model plus the overall ranking."""

    reports: dict[ModelName, PerformanceReport]
    ranking: tuple[tuple[ModelName, float], ...]
    winner: ModelName
    summary: str
    comparisons: tuple[PairwiseComparison, ...] = field(default_factory=tuple)


Estimator = Callable[[Scenario], ModelEstimate]


class EvaluationHarness:
    """Run the scenario battery through every model and rank them."""

    def __init__(
        self,
        config: EvaluationConfig | None = None,
        *,
        scenarios: Sequence[Scenario] | None = None,
        physics: PhysicsSimulator | None = None,
        recurrent_attention: SequencePredictor | None = None,
        fusion: FusionEngine | None = None,
        gated: SequencePredictor | None = None,
        dilated_conv: SequencePredictor | None = None,
        seed: int | None = None,
    ) -> None:
        self._config = EvaluationConfig() if config is None else config
        self._scenarios = tuple(DEFAULT_SCENARIOS if scenarios is None else scenarios)

        def derived_seed(offset: int) -> int | None:
            return None if seed is None else seed + offset

        physics_model = PhysicsSimulator() if physics is None else physics
        attention_model = (
            RecurrentAttentionPredictor(seed=derived_seed(1))
            if recurrent_attention is None
            else recurrent_attention
        )
        fusion_model = FusionEngine(seed=derived_seed(2)) if fusion is None else fusion
        gated_model = GatedSequencePredictor(seed=derived_seed(3)) if gated is None else gated
        conv_model = DilatedConvPredictor(seed=derived_seed(4)) if dilated_conv is None else dilated_conv

        self._estimators: dict[ModelName, Estimator] = {
            ModelName.PHYSICS: _physics_estimator(physics_model),
            ModelName.RECURRENT_ATTENTION: _sequence_estimator(attention_model),
            ModelName.FUSION: _fusion_estimator(fusion_model),
            ModelName.GATED: _sequence_estimator(gated_model),
            ModelName.DILATED_CONV: _sequence_estimator(conv_model),
        }

    @property
    def scenarios(self) -> tuple[Scenario, ...]:
        return self._scenarios

    @property
    def config(self) -> EvaluationConfig:
        return self._config

    def register(self, name: ModelName, estimator: Estimator | None) -> None:
        """Replace or remove (``None``) the estimator for a model family."""
        if estimator is None:
            self._estimators.pop(name, None)
        else:
            self._estimators[name] = estimator

    def evaluate_models(self, models: Sequence[ModelName] | None = None) -> EvaluationResult:
        """Score every requested model and rank them by weighted score."""
        requested = tuple(ModelName) if models is None else tuple(ModelName(model) for model in models)
        if not self._scenarios:
            raise EvaluationError("no evaluation scenarios configured")
        if not requested:
            raise EvaluationError("no models requested")
        missing = [model.value for model in requested if model not in self._estimators]
        if missing:
            raise EvaluationError(f"missing model instance(s): {', '.join(missing)}")

        logger.info(
            "evaluating %d model(s) on %d scenario(s)", len(requested), len(self._scenarios)
        )
        reports = {model: self.evaluate_model(model) for model in requested}
        ranking = tuple(
            sorted(
                ((model, self.weighted_score(report)) for model, report in reports.items()),
                key=lambda item: item[1],
                reverse=True,
            )
        )
        winner = ranking[0][0]

        comparisons: list[PairwiseComparison] = []
        if ModelName.FUSION in reports:
            for model, report in reports.items():
                if model != ModelName.FUSION:
                    comparisons.append(self.compare(reports[ModelName.FUSION], report))

        return EvaluationResult(
            reports=reports,
            ranking=ranking,
            winner=winner,
            summary=_ranking_summary(reports, ranking),
            comparisons=tuple(comparisons),
        )

    def evaluate_model(self, model: ModelName) -> PerformanceReport:
        """Run all scenarios through one model."""
        estimator = self._estimators.get(model)
        if estimator is None:
            raise EvaluationError(f"missing model instance: {model.value}")

        rows: list[ScenarioResult] = []
        for scenario in self._scenarios:
            target_temperature = scenario.ground_truth.temperature
            if not np.isfinite(target_temperature) or target_temperature == 0.0:
                raise EvaluationError(
                    f"scenario {scenario.scenario_id} has unusable ground-truth temperature: "
                    f"{target_temperature}"
                )
            start = time.perf_counter()
            try:
                estimate = estimator(scenario)
            except Exception as exc:
                raise EvaluationError(
                    f"{model.value} failed on scenario {scenario.scenario_id}: {exc}"
                ) from exc
            elapsed_ms = (time.perf_counter() - start) * 1000.0
            if estimate.fallback_reason is not None:
                logger.warning(
                    "%s fell back on scenario %s: %s",
                    model.value,
                    scenario.scenario_id,
                    estimate.fallback_reason.value,
                )
            actual = scenario.ground_truth
            error = abs(estimate.temperature - actual.temperature) / abs(actual.temperature)
            rows.append(
                ScenarioResult(
                    scenario_id=scenario.scenario_id,
                    scenario_name=scenario.name,
                    predicted=estimate,
                    actual=actual,
                    relative_error=float(error),
                    response_time_ms=float(elapsed_ms),
                )
            )

        try:
            regression = compute_regression_metrics(
                [row.actual.temperature for row in rows],
                [row.predicted.temperature for row in rows],
            )
        except ValueError as exc:
            raise EvaluationError(f"cannot score {model.value}: {exc}") from exc

        calibration: CalibrationMetrics | None = None
        confidences = [row.predicted.confidence for row in rows]
        if all(value is not None for value in confidences):
            correct = [row.relative_error <= self._config.correctness_tolerance for row in rows]
            calibration = compute_calibration_metrics(
                np.clip(np.asarray(confidences, dtype=np.float64), 0.0, 1.0),
                correct,
                num_bins=self._config.calibration_bins,
            )

        return PerformanceReport(
            model=model,
            accuracy=regression.accuracy_percent,
            mean_response_time_ms=float(np.mean([row.response_time_ms for row in rows])),
            interpretability=INTERPRETABILITY_SCORES[model],
            mean_absolute_error=regression.mean_absolute_error,
            root_mean_square_error=regression.root_mean_square_error,
            r_squared=regression.r_squared,
            calibration=calibration,
            results=tuple(rows),
        )

    def weighted_score(self, report: PerformanceReport) -> float:
        """accuracy*0.4 + (100 - clamped latency)*0.2 + interpretability*0.4 by default."""
        cfg = self._config
        latency = float(np.clip(report.mean_response_time_ms, 0.0, cfg.response_time_cap_ms))
        return (
            report.accuracy * cfg.accuracy_weight
            + (cfg.response_time_cap_ms - latency) * cfg.speed_weight
            + report.interpretability * cfg.interpretability_weight
        )

    def compare(self, candidate: PerformanceReport, baseline: PerformanceReport) -> PairwiseComparison:
        """Relative improvements of ``candidate`` over ``baseline`` and the winner."""
        accuracy_improvement = _relative_change(candidate.accuracy, baseline.accuracy)
        response_time_improvement = _relative_change(
            baseline.mean_response_time_ms,
            candidate.mean_response_time_ms,
            reference=baseline.mean_response_time_ms,
        )
        interpretability_improvement = _relative_change(
            candidate.interpretability, baseline.interpretability
        )

        candidate_score = self.weighted_score(candidate)
        baseline_score = self.weighted_score(baseline)
        winner: ModelName | None = None
        if candidate_score > baseline_score + self._config.tie_margin:
            winner = candidate.model
        elif baseline_score > candidate_score + self._config.tie_margin:
            winner = baseline.model

        lines = [
            f"- {candidate.model.value}: {candidate.accuracy:.1f}% accuracy, "
            f"{candidate.mean_response_time_ms:.1f}ms response, "
            f"{candidate.interpretability:.0f}/100 interpretability",
            f"- {baseline.model.value}: {baseline.accuracy:.1f}% accuracy, "
            f"{baseline.mean_response_time_ms:.1f}ms response, "
            f"{baseline.interpretability:.0f}/100 interpretability",
            f"- Winner: {'TIE' if winner is None else winner.value.upper()}",
            f"- Improvements: Accuracy {accuracy_improvement:.1f}%, "
            f"Speed {response_time_improvement:.1f}%, "
            f"Interpretability {interpretability_improvement:.1f}%",
        ]
        return PairwiseComparison(
            candidate=candidate.model,
            baseline=baseline.model,
            winner=winner,
            accuracy_improvement=accuracy_improvement,
            response_time_improvement=response_time_improvement,
            interpretability_improvement=interpretability_improvement,
            summary="\n".join(lines),
        )


def render_report(result: EvaluationResult) -> str:
    """Render an evaluation result as a markdown report."""
    lines = ["# Brake Digital Twin Evaluation Report", "", "## Executive Summary", result.summary, ""]
    lines.append("## Model Performance")
    lines.append("")
    lines.append(
        "| Model | Accuracy % | Response ms | Interpretability | MAE | RMSE | R^2 | ECE | Fallbacks |"
    )
    lines.append("|---|---|---|---|---|---|---|---|---|")
    for model, _score in result.ranking:
        report = result.reports[model]
        ece = (
            "n/a"
            if report.calibration is None
            else f"{report.calibration.expected_calibration_error:.3f}"
        )
        lines.append(
            f"| {model.value} | {report.accuracy:.2f} | {report.mean_response_time_ms:.2f} | "
            f"{report.interpretability:.0f} | {report.mean_absolute_error * 100:.2f}% | "
            f"{report.root_mean_square_error * 100:.2f}% | {report.r_squared:.3f} | {ece} | "
            f"{report.fallback_count} |"
        )
    lines.append("")

    if result.comparisons:
        lines.append("## Fusion Comparisons")
        lines.append("")
        for comparison in result.comparisons:
            lines.append(f"### fusion vs {comparison.baseline.value}")
            lines.append(comparison.summary)
            lines.append("")

    lines.append("## Key Findings")
    lines.append("")
    if result.winner == ModelName.FUSION:
        lines.append("- The fused physics + learned model ranks first.")
    elif result.winner == ModelName.PHYSICS:
        lines.append("- The physics model ranks first; the learned estimators add no value here.")
    else:
        lines.append(
            f"- {result.winner.value} ranks first; physics integration may need refinement."
        )
    fusion_report = result.reports.get(ModelName.FUSION)
    if fusion_report is not None and fusion_report.calibration is not None:
        lines.append(
            "- Fusion expected calibration error: "
            f"{fusion_report.calibration.expected_calibration_error:.3f}"
        )
    lines.append("")
    lines.append("## Recommendations")
    lines.append("")
    lines.append(
        "1. For production use: "
        + ("deploy the fused model" if result.winner == ModelName.FUSION else "further optimize fusion")
    )
    lines.append("2. For safety-critical decisions: prefer models with physics grounding")
    fastest = min(result.reports.values(), key=lambda report: report.mean_response_time_ms)
    lines.append(f"3. For real-time loops: {fastest.model.value} has the lowest latency")
    return "\n".join(lines) + "\n"


def evaluation_result_to_jsonable(result: EvaluationResult) -> dict[str, Any]:
    """Serialize an evaluation result into a JSON-safe structure."""
    return {
        "winner": result.winner.value,
        "ranking": [{"model": model.value, "score": score} for model, score in result.ranking],
        "summary": result.summary,
        "reports": {model.value: asdict(report) for model, report in result.reports.items()},
        "comparisons": [asdict(comparison) for comparison in result.comparisons],
    }


def _physics_estimator(physics: PhysicsSimulator) -> Estimator:
    def estimate(scenario: Scenario) -> ModelEstimate:
        output = physics.predict(scenario.current_state)
        return ModelEstimate(
            temperature=output.temperature,
            wear_rate=output.wear_rate,
            predicted_laps_remaining=float(output.predicted_laps_remaining),
        )

    return estimate


def _sequence_estimator(predictor: SequencePredictor) -> Estimator:
    def estimate(scenario: Scenario) -> ModelEstimate:
        outcome = predict_outcome_of(predictor, scenario.history)
        prediction = outcome.value
        return ModelEstimate(
            temperature=prediction.temperature,
            wear_rate=prediction.wear_rate,
            predicted_laps_remaining=prediction.predicted_laps_remaining,
            confidence=prediction.confidence,
            fallback_reason=outcome.reason,
        )

    return estimate


def _fusion_estimator(engine: FusionEngine) -> Estimator:
    def estimate(scenario: Scenario) -> ModelEstimate:
        outcome = engine.predict_outcome(
            FusionInputs(current_state=scenario.current_state, historical_sequence=scenario.history)
        )
        prediction = outcome.value
        return ModelEstimate(
            temperature=prediction.temperature,
            wear_rate=prediction.wear_rate,
            predicted_laps_remaining=prediction.predicted_laps_remaining,
            confidence=prediction.confidence,
            fallback_reason=outcome.reason,
        )

    return estimate


def _relative_change(new: float, old: float, *, reference: float | None = None) -> float:
    base = old if reference is None else reference
    if abs(base) < 1e-12:
        return 0.0
    return float((new - old) / base * 100.0)


def _ranking_summary(
    reports: Mapping[ModelName, PerformanceReport],
    ranking: Sequence[tuple[ModelName, float]],
) -> str:
    lines = ["Comparison Results:"]
    for model, score in ranking:
        report = reports[model]
        lines.append(
            f"- {model.value}: {report.accuracy:.1f}% accuracy, "
            f"{report.mean_response_time_ms:.1f}ms response, "
            f"{report.interpretability:.0f}/100 interpretability, score {score:.1f}"
        )
    lines.append(f"- Winner: {ranking[0][0].value.upper()}")
    return "\n".join(lines)
