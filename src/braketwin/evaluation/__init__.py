"""Scenario battery, metrics, and comparative model evaluation."""

from braketwin.evaluation.harness import (
    INTERPRETABILITY_SCORES,
    EvaluationConfig,
    EvaluationError,
    EvaluationHarness,
    EvaluationResult,
    ModelEstimate,
    ModelName,
    PairwiseComparison,
    PerformanceReport,
    ScenarioResult,
    evaluation_result_to_jsonable,
    render_report,
)
from braketwin.evaluation.metrics import (
    CalibrationBin,
    CalibrationMetrics,
    RegressionMetrics,
    compute_calibration_metrics,
    compute_regression_metrics,
    relative_errors,
)
from braketwin.evaluation.scenarios import DEFAULT_SCENARIOS, ScenarioType, scenario_by_id

__all__ = [
    "DEFAULT_SCENARIOS",
    "INTERPRETABILITY_SCORES",
    "CalibrationBin",
    "CalibrationMetrics",
    "EvaluationConfig",
    "EvaluationError",
    "EvaluationHarness",
    "EvaluationResult",
    "ModelEstimate",
    "ModelName",
    "PairwiseComparison",
    "PerformanceReport",
    "RegressionMetrics",
    "ScenarioResult",
    "ScenarioType",
    "compute_calibration_metrics",
    "compute_regression_metrics",
    "evaluation_result_to_jsonable",
    "relative_errors",
    "render_report",
    "scenario_by_id",
]
