"""Synthetic telemetry generation."""

from braketwin.data.synthetic import (
    BRAKING_ZONES,
    BrakeDataPoint,
    BrakingZone,
    TrackCondition,
    braking_profile,
    generate_edge_cases,
    generate_race_data,
    scenarios_from_points,
    track_condition_for_lap,
    windowed_sequences,
)

__all__ = [
    "BRAKING_ZONES",
    "BrakeDataPoint",
    "BrakingZone",
    "TrackCondition",
    "braking_profile",
    "generate_edge_cases",
    "generate_race_data",
    "scenarios_from_points",
    "track_condition_for_lap",
    "windowed_sequences",
]
