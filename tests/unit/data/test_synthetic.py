"""Tests for seeded synthetic race telemetry."""

from __future__ import annotations

import pytest

from braketwin.data import (
    TrackCondition,
    braking_profile,
    generate_edge_cases,
    generate_race_data,
    scenarios_from_points,
    track_condition_for_lap,
    windowed_sequences,
)


def test_race_data_shape_and_determinism() -> None:
    first = generate_race_data(num_laps=3, samples_per_lap=10, seed=5)
    second = generate_race_data(num_laps=3, samples_per_lap=10, seed=5)
    other = generate_race_data(num_laps=3, samples_per_lap=10, seed=6)

    assert len(first) == 30
    assert first == second
    assert first != other
    assert first[0].lap_number == 1
    assert first[-1].lap_number == 3


def test_race_data_pad_wears_monotonically() -> None:
    points = generate_race_data(num_laps=5, seed=0)
    thickness = [point.pad_thickness for point in points]

    assert thickness == sorted(thickness, reverse=True)
    assert all(point.actual_wear_rate > 0.0 for point in points)
    assert all(point.actual_temperature <= 1200.0 for point in points)


def test_race_data_rejects_bad_arguments() -> None:
    with pytest.raises(ValueError, match="num_laps"):
        generate_race_data(num_laps=0)
    with pytest.raises(ValueError, match="samples_per_lap"):
        generate_race_data(samples_per_lap=0)


@pytest.mark.parametrize(
    ("lap", "expected"),
    [(1, TrackCondition.DRY), (14, TrackCondition.WET), (15, TrackCondition.DRY), (41, TrackCondition.MIXED)],
)
def test_track_condition_schedule(lap: int, expected: TrackCondition) -> None:
    assert track_condition_for_lap(lap) == expected


def test_braking_zone_raises_pressure() -> None:
    _, zone_pressure = braking_profile(0.7, 1, TrackCondition.DRY)
    _, straight_pressure = braking_profile(0.5, 1, TrackCondition.DRY)
    _, wet_pressure = braking_profile(0.7, 1, TrackCondition.WET)

    assert zone_pressure == pytest.approx(280.0 * 0.9)
    assert straight_pressure == pytest.approx(28.0)
    assert wet_pressure < zone_pressure


def test_edge_cases_cover_three_regimes() -> None:
    points = generate_edge_cases(seed=1)

    assert len(points) == 45
    assert points[0].brake_pressure == pytest.approx(250.0)
    assert points[20].ambient_temp == pytest.approx(5.0)
    assert all(point.actual_temperature == pytest.approx(450.0) for point in points[35:])


def test_windowed_sequences_pair_history_with_next_sample() -> None:
    points = generate_race_data(num_laps=2, samples_per_lap=10, seed=2)
    pairs = windowed_sequences(points, sequence_length=10, step_size=5)

    assert len(pairs) == 2
    history, target = pairs[0]
    assert len(history) == 10
    assert history.wheel_speed[-1] == pytest.approx(points[9].wheel_speed)
    assert target == points[10]


def test_scenarios_from_points_have_positive_ground_truth() -> None:
    scenarios = scenarios_from_points(generate_race_data(num_laps=3, seed=4))

    assert len(scenarios) == 2
    for scenario in scenarios:
        assert len(scenario.history) == 10
        assert scenario.ground_truth.temperature > 0.0
        assert scenario.ground_truth.wear_rate > 0.0
        assert scenario.ground_truth.predicted_laps_remaining > 0.0
        assert scenario.scenario_id.startswith("synthetic_")
