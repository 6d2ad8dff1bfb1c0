"""Per-feature normalization and fixed-window shaping of history sequences."""

from __future__ import annotations

import logging

import numpy as np
import numpy.typing as npt

from braketwin.domain.models import HistorySequence


logger = logging.getLogger(__name__)

FloatArray = npt.NDArray[np.float64]

FEATURE_NAMES = ("wheel_speed", "brake_pressure", "ambient_temp", "pad_thickness")
FEATURE_SCALE = np.asarray((3000.0, 300.0, 1200.0, 15.0), dtype=np.float64)
FEATURE_OFFSET = np.asarray((0.0, 0.0, 50.0, 0.0), dtype=np.float64)


def normalize_sequence(sequence: HistorySequence) -> FloatArray:
    """Return features with shape [timesteps, 4] scaled to roughly unit range."""
    if sequence.is_empty:
        return np.zeros((0, len(FEATURE_NAMES)), dtype=np.float64)
    raw = np.asarray(sequence.feature_rows(), dtype=np.float64)
    return (raw + FEATURE_OFFSET) / FEATURE_SCALE


def window_features(sequence: HistorySequence, *, window: int) -> FloatArray:
    """Keep the most recent ``window`` rows, left-padding with the earliest row."""
    if window <= 0:
        raise ValueError("window must be > 0")
    features = normalize_sequence(sequence)
    if features.shape[0] == 0:
        raise ValueError("sequence must contain at least one sample")

    recent = features[-window:]
    missing = window - recent.shape[0]
    if missing > 0:
        logger.debug("history has %d of %d steps; left-padding", recent.shape[0], window)
        padding = np.repeat(recent[:1], missing, axis=0)
        recent = np.concatenate((padding, recent), axis=0)
    return recent
