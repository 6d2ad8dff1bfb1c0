"""Core domain models for brake thermal and wear prediction."""

from __future__ import annotations

from dataclasses import dataclass
from enum import StrEnum
from math import isfinite
from typing import Generic, Sequence, TypeVar


T = TypeVar("T")


@dataclass(frozen=True, slots=True)
class OperatingState:
    """Single instantaneous operating sample for one brake corner."""

    wheel_speed: float
    brake_pressure: float
    ambient_temp: float
    pad_thickness: float
    component_mass: float = 8.5
    pad_area: float = 150.0
    time_step: float = 1.0


@dataclass(frozen=True, slots=True)
class HistorySequence:
    """Parallel, oldest-first telemetry arrays feeding the sequence predictors."""

    wheel_speed: tuple[float, ...] = ()
    brake_pressure: tuple[float, ...] = ()
    ambient_temp: tuple[float, ...] = ()
    pad_thickness: tuple[float, ...] = ()
    timestamp: tuple[float, ...] = ()

    def __post_init__(self) -> None:
        lengths = {
            len(self.wheel_speed),
            len(self.brake_pressure),
            len(self.ambient_temp),
            len(self.pad_thickness),
            len(self.timestamp),
        }
        if len(lengths) != 1:
            raise ValueError("history arrays must all have the same length")

    @classmethod
    def from_columns(
        cls,
        *,
        wheel_speed: Sequence[float],
        brake_pressure: Sequence[float],
        ambient_temp: Sequence[float],
        pad_thickness: Sequence[float],
        timestamp: Sequence[float] | None = None,
    ) -> HistorySequence:
        """Build a sequence from column lists, defaulting timestamps to 0..n-1."""
        resolved_timestamp = (
            tuple(float(idx) for idx in range(len(wheel_speed)))
            if timestamp is None
            else tuple(float(value) for value in timestamp)
        )
        return cls(
            wheel_speed=tuple(float(value) for value in wheel_speed),
            brake_pressure=tuple(float(value) for value in brake_pressure),
            ambient_temp=tuple(float(value) for value in ambient_temp),
            pad_thickness=tuple(float(value) for value in pad_thickness),
            timestamp=resolved_timestamp,
        )

    @classmethod
    def empty(cls) -> HistorySequence:
        """Sequence with no samples."""
        return cls()

    def __len__(self) -> int:
        return len(self.wheel_speed)

    @property
    def is_empty(self) -> bool:
        return len(self.wheel_speed) == 0

    def feature_rows(self) -> tuple[tuple[float, float, float, float], ...]:
        """Return per-timestep (speed, pressure, ambient, thickness) rows."""
        return tuple(
            zip(self.wheel_speed, self.brake_pressure, self.ambient_temp, self.pad_thickness)
        )


@dataclass(frozen=True, slots=True)
class PhysicsOutput:
    """Closed-form thermal/wear estimate for one timestep."""

    temperature: float
    wear_rate: float
    heat_generation: float
    cooling_rate: float
    predicted_laps_remaining: int
    thermal_stress: float


@dataclass(frozen=True, slots=True)
class SequencePrediction:
    """Learned-model estimate derived from a history sequence."""

    temperature: float
    wear_rate: float
    predicted_laps_remaining: float
    confidence: float
    attention_weights: tuple[float, ...] = ()
    hidden_states: tuple[tuple[float, ...], ...] = ()

    @property
    def is_finite(self) -> bool:
        """Whether all primary fields are finite numbers."""
        return all(
            isfinite(value)
            for value in (
                self.temperature,
                self.wear_rate,
                self.predicted_laps_remaining,
                self.confidence,
            )
        )


DEFAULT_SEQUENCE_PREDICTION = SequencePrediction(
    temperature=450.0,
    wear_rate=0.1,
    predicted_laps_remaining=45.0,
    confidence=0.5,
)


@dataclass(frozen=True, slots=True)
class FusedPrediction:
    """Blended physics + learned prediction with weighting diagnostics."""

    temperature: float
    wear_rate: float
    predicted_laps_remaining: float
    heat_generation: float
    cooling_rate: float
    thermal_stress: float
    confidence: float
    physics_weight: float
    ml_weight: float
    anomaly_score: float


class OutcomeStatus(StrEnum):
    """Whether a prediction was computed or substituted."""

    COMPUTED = "computed"
    FALLBACK = "fallback"


class FallbackReason(StrEnum):
    """Reason tags attached to substituted predictions."""

    EMPTY_SEQUENCE = "empty_sequence"
    INVALID_OUTPUT = "invalid_output"
    MODEL_ERROR = "model_error"
    TOTAL_FAILURE = "total_failure"


@dataclass(frozen=True, slots=True)
class PredictionOutcome(Generic[T]):
    """Prediction payload tagged with how it was produced."""

    value: T
    status: OutcomeStatus = OutcomeStatus.COMPUTED
    reason: FallbackReason | None = None
    detail: str = ""

    def __post_init__(self) -> None:
        if self.status == OutcomeStatus.FALLBACK and self.reason is None:
            raise ValueError("fallback outcomes must carry a reason")
        if self.status == OutcomeStatus.COMPUTED and self.reason is not None:
            raise ValueError("computed outcomes must not carry a reason")

    @classmethod
    def computed(cls, value: T) -> PredictionOutcome[T]:
        return cls(value=value)

    @classmethod
    def fallback(cls, value: T, reason: FallbackReason, detail: str = "") -> PredictionOutcome[T]:
        return cls(value=value, status=OutcomeStatus.FALLBACK, reason=reason, detail=detail)

    @property
    def is_fallback(self) -> bool:
        return self.status == OutcomeStatus.FALLBACK


@dataclass(frozen=True, slots=True)
class PredictionTarget:
    """Ground-truth values a scenario is scored against."""

    temperature: float
    wear_rate: float
    predicted_laps_remaining: float


@dataclass(frozen=True, slots=True)
class Scenario:
    """Named evaluation fixture pairing inputs with a ground-truth target."""

    scenario_id: str
    name: str
    description: str
    scenario_type: str
    current_state: OperatingState
    history: HistorySequence
    ground_truth: PredictionTarget
