"""Regression accuracy and confidence calibration metrics."""

from __future__ import annotations

from dataclasses import dataclass

import numpy as np
import numpy.typing as npt


FloatArray = npt.NDArray[np.float64]
BoolArray = npt.NDArray[np.bool_]


@dataclass(frozen=True, slots=True)
class RegressionMetrics:
    """Relative-error aggregates and coefficient of determination."""

    mean_absolute_error: float
    root_mean_square_error: float
    r_squared: float
    relative_errors: tuple[float, ...]

    @property
    def accuracy_percent(self) -> float:
        return float(max(0.0, (1.0 - self.mean_absolute_error) * 100.0))


@dataclass(frozen=True, slots=True)
class CalibrationBin:
    """One equal-width confidence bucket."""

    lower: float
    upper: float
    count: int
    mean_confidence: float
    accuracy: float


@dataclass(frozen=True, slots=True)
class CalibrationMetrics:
    """Calibration summary metrics."""

    expected_calibration_error: float
    avg_confidence: float
    bins: tuple[CalibrationBin, ...]


def relative_errors(targets: npt.ArrayLike, predictions: npt.ArrayLike) -> FloatArray:
    """Absolute error divided by the magnitude of each target."""
    y_true, y_pred = _paired_vectors(targets, predictions)
    if np.any(y_true == 0.0):
        raise ValueError("targets must be non-zero for relative error")
    return np.abs(y_pred - y_true) / np.abs(y_true)


def compute_regression_metrics(
    targets: npt.ArrayLike,
    predictions: npt.ArrayLike,
) -> RegressionMetrics:
    """Compute relative MAE/RMSE and R^2 against the mean target."""
    y_true, y_pred = _paired_vectors(targets, predictions)
    errors = relative_errors(y_true, y_pred)

    ss_res = float(np.sum(np.square(y_true - y_pred)))
    ss_tot = float(np.sum(np.square(y_true - np.mean(y_true))))
    if ss_tot < 1e-12:
        r_squared = 1.0 if ss_res < 1e-12 else 0.0
    else:
        r_squared = 1.0 - ss_res / ss_tot

    return RegressionMetrics(
        mean_absolute_error=float(np.mean(errors)),
        root_mean_square_error=float(np.sqrt(np.mean(np.square(errors)))),
        r_squared=float(r_squared),
        relative_errors=tuple(float(value) for value in errors),
    )


def compute_calibration_metrics(
    confidences: npt.ArrayLike,
    correct: npt.ArrayLike,
    *,
    num_bins: int = 5,
) -> CalibrationMetrics:
    """Compute ECE over equal-width confidence bins weighted by occupancy."""
    conf = np.asarray(confidences, dtype=np.float64)
    hits = np.asarray(correct, dtype=np.bool_)
    if conf.ndim != 1 or hits.ndim != 1:
        raise ValueError("confidences and correct must be 1D")
    if conf.shape != hits.shape:
        raise ValueError("confidences and correct must have same shape")
    if conf.size == 0:
        raise ValueError("confidences must not be empty")
    if num_bins <= 0:
        raise ValueError("num_bins must be > 0")
    if np.any(conf < 0.0) or np.any(conf > 1.0):
        raise ValueError("confidences must be in [0, 1]")

    correctness = hits.astype(np.float64)
    edges = np.linspace(0.0, 1.0, num_bins + 1)
    ece = 0.0
    bins: list[CalibrationBin] = []
    for bin_idx in range(num_bins):
        low, high = edges[bin_idx], edges[bin_idx + 1]
        if bin_idx == num_bins - 1:
            in_bin = (conf >= low) & (conf <= high)
        else:
            in_bin = (conf >= low) & (conf < high)
        count = int(np.sum(in_bin))
        if count == 0:
            bins.append(
                CalibrationBin(lower=float(low), upper=float(high), count=0, mean_confidence=0.0, accuracy=0.0)
            )
            continue
        bin_acc = float(np.mean(correctness[in_bin]))
        bin_conf = float(np.mean(conf[in_bin]))
        bin_frac = count / conf.size
        ece += abs(bin_acc - bin_conf) * bin_frac
        bins.append(
            CalibrationBin(
                lower=float(low),
                upper=float(high),
                count=count,
                mean_confidence=bin_conf,
                accuracy=bin_acc,
            )
        )

    return CalibrationMetrics(
        expected_calibration_error=float(ece),
        avg_confidence=float(np.mean(conf)),
        bins=tuple(bins),
    )


def _paired_vectors(targets: npt.ArrayLike, predictions: npt.ArrayLike) -> tuple[FloatArray, FloatArray]:
    y_true = np.asarray(targets, dtype=np.float64)
    y_pred = np.asarray(predictions, dtype=np.float64)
    if y_true.ndim != 1 or y_pred.ndim != 1:
        raise ValueError("targets and predictions must be 1D")
    if y_true.shape != y_pred.shape:
        raise ValueError("targets and predictions must have same shape")
    if y_true.size == 0:
        raise ValueError("targets must not be empty")
    if not (np.all(np.isfinite(y_true)) and np.all(np.isfinite(y_pred))):
        raise ValueError("targets and predictions must be finite")
    return y_true, y_pred
