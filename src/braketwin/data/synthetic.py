"""Seeded synthetic race telemetry for exercising the engine end to end."""

from __future__ import annotations

from dataclasses import dataclass
from enum import StrEnum
from math import pi, sin

import numpy as np

from braketwin.domain.models import (
    HistorySequence,
    OperatingState,
    PredictionTarget,
    Scenario,
)


LAP_DURATION_S = 90.0
MAX_WHEEL_SPEED = 2800.0
MAX_BRAKE_PRESSURE = 280.0


class TrackCondition(StrEnum):
    DRY = "dry"
    WET = "wet"
    MIXED = "mixed"


@dataclass(frozen=True, slots=True)
class BrakingZone:
    start: float
    end: float
    intensity: float


BRAKING_ZONES: tuple[BrakingZone, ...] = (
    BrakingZone(start=0.15, end=0.25, intensity=0.8),
    BrakingZone(start=0.35, end=0.45, intensity=0.6),
    BrakingZone(start=0.65, end=0.75, intensity=0.9),
    BrakingZone(start=0.85, end=0.95, intensity=0.7),
)


@dataclass(frozen=True, slots=True)
class BrakeDataPoint:
    """One telemetry sample with its simulated ground truth."""

    timestamp: float
    wheel_speed: float
    brake_pressure: float
    ambient_temp: float
    pad_thickness: float
    actual_temperature: float
    actual_wear_rate: float
    lap_number: int
    track_condition: TrackCondition


def track_condition_for_lap(lap: int) -> TrackCondition:
    """Dry opening stint, occasional wet laps, mixed finish."""
    if lap < 10:
        return TrackCondition.DRY
    if lap > 40:
        return TrackCondition.MIXED
    if lap % 7 == 0:
        return TrackCondition.WET
    return TrackCondition.DRY


def braking_profile(time_in_lap: float, lap: int, condition: TrackCondition) -> tuple[float, float]:
    """Return (wheel_speed, brake_pressure) for a position in the lap."""
    intensity = 0.1
    for zone in BRAKING_ZONES:
        if zone.start <= time_in_lap <= zone.end:
            intensity = zone.intensity
            break

    if condition == TrackCondition.WET:
        intensity *= 0.7
    elif condition == TrackCondition.MIXED:
        intensity *= 0.85
    # tyre degradation lengthens braking as the race goes on
    intensity *= 1.0 + (lap - 1) * 0.005

    base_speed = MAX_WHEEL_SPEED * (0.4 + 0.6 * (1.0 - intensity))
    wheel_speed = base_speed + sin(time_in_lap * 4.0 * pi) * 200.0
    brake_pressure = MAX_BRAKE_PRESSURE * intensity
    return max(500.0, wheel_speed), max(20.0, brake_pressure)


def generate_race_data(
    num_laps: int = 50,
    samples_per_lap: int = 10,
    *,
    seed: int | None = 0,
) -> tuple[BrakeDataPoint, ...]:
    """Simulate a race stint with noisy sensors and cumulative pad wear."""
    if num_laps <= 0:
        raise ValueError("num_laps must be > 0")
    if samples_per_lap <= 0:
        raise ValueError("samples_per_lap must be > 0")

    rng = np.random.default_rng(seed)
    points: list[BrakeDataPoint] = []
    pad_thickness = 15.0
    base_temp = 25.0
    for lap in range(1, num_laps + 1):
        condition = track_condition_for_lap(lap)
        for sample in range(samples_per_lap):
            time_in_lap = sample / samples_per_lap
            wheel_speed, brake_pressure = braking_profile(time_in_lap, lap, condition)

            heat_input = (brake_pressure / 100.0) * (wheel_speed / 1000.0) * 120.0
            cooling = 0.02 * (base_temp - 25.0)
            base_temp = max(25.0, base_temp + (heat_input - cooling) * 0.3)
            temperature = min(1200.0, base_temp + float(rng.uniform(-15.0, 15.0)))

            wear_rate = (brake_pressure / 200.0) * (temperature / 500.0) * 0.008
            pad_thickness -= wear_rate / samples_per_lap

            points.append(
                BrakeDataPoint(
                    timestamp=lap * LAP_DURATION_S + sample * LAP_DURATION_S / samples_per_lap,
                    wheel_speed=wheel_speed + float(rng.uniform(-25.0, 25.0)),
                    brake_pressure=brake_pressure + float(rng.uniform(-5.0, 5.0)),
                    ambient_temp=25.0 + sin(lap * 0.1) * 10.0 + float(rng.uniform(-2.5, 2.5)),
                    pad_thickness=pad_thickness,
                    actual_temperature=temperature,
                    actual_wear_rate=wear_rate,
                    lap_number=lap,
                    track_condition=condition,
                )
            )
    return tuple(points)


def generate_edge_cases(*, seed: int | None = 0) -> tuple[BrakeDataPoint, ...]:
    """Brake fade, cold start, and sensor malfunction sample runs."""
    rng = np.random.default_rng(seed)
    points: list[BrakeDataPoint] = []
    for idx in range(20):
        points.append(
            BrakeDataPoint(
                timestamp=idx * 5.0,
                wheel_speed=2500.0 + idx * 50.0,
                brake_pressure=250.0 + idx * 5.0,
                ambient_temp=35.0,
                pad_thickness=6.0 - idx * 0.1,
                actual_temperature=600.0 + idx * 30.0,
                actual_wear_rate=0.2 + idx * 0.02,
                lap_number=1,
                track_condition=TrackCondition.DRY,
            )
        )
    for idx in range(15):
        points.append(
            BrakeDataPoint(
                timestamp=1000.0 + idx * 5.0,
                wheel_speed=800.0 + idx * 100.0,
                brake_pressure=50.0 + idx * 10.0,
                ambient_temp=5.0,
                pad_thickness=14.0 - idx * 0.05,
                actual_temperature=5.0 + idx * 15.0,
                actual_wear_rate=0.01 + idx * 0.005,
                lap_number=1,
                track_condition=TrackCondition.DRY,
            )
        )
    for idx in range(10):
        points.append(
            BrakeDataPoint(
                timestamp=2000.0 + idx * 5.0,
                wheel_speed=1500.0 + float(rng.uniform(-250.0, 250.0)),
                brake_pressure=120.0 + float(rng.uniform(-50.0, 50.0)),
                ambient_temp=25.0 + float(rng.uniform(-10.0, 10.0)),
                pad_thickness=8.0 - idx * 0.1,
                actual_temperature=450.0,
                actual_wear_rate=0.1,
                lap_number=1,
                track_condition=TrackCondition.DRY,
            )
        )
    return tuple(points)


def windowed_sequences(
    points: tuple[BrakeDataPoint, ...],
    *,
    sequence_length: int = 10,
    step_size: int = 1,
) -> tuple[tuple[HistorySequence, BrakeDataPoint], ...]:
    """Pair each history window with the sample that immediately follows it."""
    if sequence_length <= 0:
        raise ValueError("sequence_length must be > 0")
    if step_size <= 0:
        raise ValueError("step_size must be > 0")

    pairs: list[tuple[HistorySequence, BrakeDataPoint]] = []
    for end in range(sequence_length, len(points), step_size):
        window = points[end - sequence_length : end]
        history = HistorySequence(
            wheel_speed=tuple(point.wheel_speed for point in window),
            brake_pressure=tuple(point.brake_pressure for point in window),
            ambient_temp=tuple(point.ambient_temp for point in window),
            pad_thickness=tuple(point.pad_thickness for point in window),
            timestamp=tuple(point.timestamp for point in window),
        )
        pairs.append((history, points[end]))
    return tuple(pairs)


def scenarios_from_points(
    points: tuple[BrakeDataPoint, ...],
    *,
    sequence_length: int = 10,
    step_size: int = 10,
    prefix: str = "synthetic",
) -> tuple[Scenario, ...]:
    """Turn generated telemetry into evaluation scenarios."""
    scenarios: list[Scenario] = []
    for idx, (history, target) in enumerate(
        windowed_sequences(points, sequence_length=sequence_length, step_size=step_size)
    ):
        wear_rate = target.actual_wear_rate
        # relative error needs non-zero ground truth
        if target.actual_temperature <= 0.0 or wear_rate <= 0.0 or target.pad_thickness <= 0.0:
            continue
        laps = target.pad_thickness / wear_rate
        scenarios.append(
            Scenario(
                scenario_id=f"{prefix}_{idx}",
                name=f"Synthetic lap {target.lap_number} sample {idx}",
                description=f"Generated {target.track_condition.value} telemetry window",
                scenario_type=target.track_condition.value,
                current_state=OperatingState(
                    wheel_speed=target.wheel_speed,
                    brake_pressure=target.brake_pressure,
                    ambient_temp=target.ambient_temp,
                    pad_thickness=target.pad_thickness,
                ),
                history=history,
                ground_truth=PredictionTarget(
                    temperature=target.actual_temperature,
                    wear_rate=wear_rate,
                    predicted_laps_remaining=laps,
                ),
            )
        )
    return tuple(scenarios)
