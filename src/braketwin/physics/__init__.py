"""First-principles brake thermal and wear simulation."""

from braketwin.physics.simulator import (
    MAX_BRAKE_PRESSURE_BAR,
    MAX_LAPS_REMAINING,
    MAX_TEMPERATURE_C,
    MAX_WHEEL_SPEED_RPM,
    PhysicsConstants,
    PhysicsSimulator,
)

__all__ = [
    "MAX_BRAKE_PRESSURE_BAR",
    "MAX_LAPS_REMAINING",
    "MAX_TEMPERATURE_C",
    "MAX_WHEEL_SPEED_RPM",
    "PhysicsConstants",
    "PhysicsSimulator",
]
