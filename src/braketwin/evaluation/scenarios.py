"""Fixed evaluation scenarios with pre-computed ground truth."""

from __future__ import annotations

from enum import StrEnum

from braketwin.domain.models import (
    HistorySequence,
    OperatingState,
    PredictionTarget,
    Scenario,
)


class ScenarioType(StrEnum):
    """Operating regimes covered by the scenario battery."""

    NORMAL = "normal"
    EXTREME_HEAT = "extreme_heat"
    HIGH_WEAR = "high_wear"
    SENSOR_NOISE = "sensor_noise"
    RAPID_CHANGE = "rapid_change"


_TIMESTAMPS = tuple(float(idx) for idx in range(10))


def _history(
    wheel_speed: tuple[float, ...],
    brake_pressure: tuple[float, ...],
    ambient_temp: tuple[float, ...],
    pad_thickness: tuple[float, ...],
) -> HistorySequence:
    return HistorySequence(
        wheel_speed=wheel_speed,
        brake_pressure=brake_pressure,
        ambient_temp=ambient_temp,
        pad_thickness=pad_thickness,
        timestamp=_TIMESTAMPS,
    )


DEFAULT_SCENARIOS: tuple[Scenario, ...] = (
    Scenario(
        scenario_id="normal_1",
        name="Normal Racing Conditions",
        description="Typical race conditions with moderate braking",
        scenario_type=ScenarioType.NORMAL,
        current_state=OperatingState(
            wheel_speed=1500.0, brake_pressure=120.0, ambient_temp=25.0, pad_thickness=10.0
        ),
        history=_history(
            (1500, 1505, 1510, 1508, 1512, 1509, 1511, 1507, 1513, 1500),
            (120, 122, 118, 125, 119, 123, 117, 124, 121, 120),
            (25, 25, 26, 25, 24, 25, 25, 24, 25, 25),
            (10.1, 10.08, 10.05, 10.03, 10.01, 10.0, 9.98, 9.96, 9.95, 10.0),
        ),
        ground_truth=PredictionTarget(temperature=520.0, wear_rate=0.08, predicted_laps_remaining=42.0),
    ),
    Scenario(
        scenario_id="extreme_heat_1",
        name="High Temperature Braking",
        description="Extreme braking causing high temperatures",
        scenario_type=ScenarioType.EXTREME_HEAT,
        current_state=OperatingState(
            wheel_speed=2200.0, brake_pressure=250.0, ambient_temp=35.0, pad_thickness=8.0
        ),
        history=_history(
            (2000, 2100, 2150, 2180, 2200, 2220, 2200, 2190, 2210, 2200),
            (200, 220, 235, 245, 250, 255, 248, 250, 252, 250),
            (35, 35, 36, 35, 35, 36, 35, 35, 35, 35),
            (8.2, 8.15, 8.1, 8.08, 8.05, 8.03, 8.01, 8.0, 7.98, 8.0),
        ),
        ground_truth=PredictionTarget(temperature=850.0, wear_rate=0.25, predicted_laps_remaining=18.0),
    ),
    Scenario(
        scenario_id="high_wear_1",
        name="Aggressive Braking Pattern",
        description="Repeated heavy braking causing accelerated wear",
        scenario_type=ScenarioType.HIGH_WEAR,
        current_state=OperatingState(
            wheel_speed=1800.0, brake_pressure=200.0, ambient_temp=28.0, pad_thickness=4.5
        ),
        history=_history(
            (1750, 1780, 1800, 1820, 1790, 1800, 1810, 1780, 1800, 1800),
            (190, 195, 200, 205, 198, 200, 203, 197, 200, 200),
            (28, 28, 29, 28, 28, 28, 29, 28, 28, 28),
            (5.2, 5.0, 4.8, 4.7, 4.6, 4.55, 4.52, 4.5, 4.48, 4.5),
        ),
        ground_truth=PredictionTarget(temperature=720.0, wear_rate=0.35, predicted_laps_remaining=8.0),
    ),
    Scenario(
        scenario_id="sensor_noise_1",
        name="Noisy Sensor Data",
        description="Robustness against sensor measurement noise",
        scenario_type=ScenarioType.SENSOR_NOISE,
        current_state=OperatingState(
            wheel_speed=1520.0, brake_pressure=118.0, ambient_temp=24.0, pad_thickness=9.8
        ),
        history=_history(
            (1505, 1498, 1515, 1522, 1485, 1510, 1508, 1525, 1495, 1520),
            (122, 115, 125, 112, 128, 118, 120, 114, 125, 118),
            (24, 25, 23, 26, 24, 25, 23, 24, 25, 24),
            (9.85, 9.83, 9.82, 9.81, 9.80, 9.79, 9.78, 9.79, 9.80, 9.8),
        ),
        ground_truth=PredictionTarget(temperature=530.0, wear_rate=0.09, predicted_laps_remaining=40.0),
    ),
    Scenario(
        scenario_id="rapid_change_1",
        name="Sudden Condition Change",
        description="Rapid transition from light to heavy braking",
        scenario_type=ScenarioType.RAPID_CHANGE,
        current_state=OperatingState(
            wheel_speed=2000.0, brake_pressure=220.0, ambient_temp=30.0, pad_thickness=7.5
        ),
        history=_history(
            (1200, 1250, 1300, 1400, 1600, 1700, 1850, 1900, 1950, 2000),
            (80, 85, 90, 120, 150, 180, 200, 210, 215, 220),
            (30, 30, 30, 30, 31, 31, 30, 30, 30, 30),
            (7.8, 7.75, 7.7, 7.65, 7.6, 7.58, 7.55, 7.53, 7.51, 7.5),
        ),
        ground_truth=PredictionTarget(temperature=650.0, wear_rate=0.18, predicted_laps_remaining=25.0),
    ),
)


def scenario_by_id(scenario_id: str) -> Scenario:
    """Look up one of the default scenarios."""
    for scenario in DEFAULT_SCENARIOS:
        if scenario.scenario_id == scenario_id:
            return scenario
    raise KeyError(f"unknown scenario: {scenario_id}")
