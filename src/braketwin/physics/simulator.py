"""Closed-form thermodynamic and wear simulator for a brake disc/pad pair."""

from __future__ import annotations

from dataclasses import dataclass
from math import floor, isfinite, pi

import numpy as np

from braketwin.domain.models import OperatingState, PhysicsOutput


MAX_TEMPERATURE_C = 1200.0
MAX_HEAT_GENERATION_W = 5000.0
MAX_COOLING_RATE_W = 1000.0
MIN_WEAR_RATE = 0.001
MAX_WEAR_RATE = 0.1
MAX_LAPS_REMAINING = 200
MAX_WHEEL_SPEED_RPM = 30_000.0
MAX_BRAKE_PRESSURE_BAR = 3_000.0
MAX_PAD_AREA_CM2 = 10_000.0


@dataclass(frozen=True, slots=True)
class PhysicsConstants:
    """Material and geometry constants for the lumped-capacitance brake model."""

    friction_coefficient: float = 0.4
    specific_heat: float = 1200.0
    convection_coefficient: float = 25.0
    wear_coefficient: float = 2.5e-9
    disc_radius_m: float = 0.15
    disc_mass_kg: float = 8.5
    cooling_surface_m2: float = 0.05
    lap_duration_s: float = 90.0
    min_pad_thickness_mm: float = 2.0
    base_hardness: float = 150.0
    hardness_temperature_slope: float = 0.1
    min_hardness: float = 50.0
    thermal_expansion_per_k: float = 12e-6
    elastic_modulus_pa: float = 200e9

    def __post_init__(self) -> None:
        for name in (
            "friction_coefficient",
            "specific_heat",
            "convection_coefficient",
            "wear_coefficient",
            "disc_radius_m",
            "disc_mass_kg",
            "cooling_surface_m2",
            "lap_duration_s",
            "min_hardness",
        ):
            if getattr(self, name) <= 0.0:
                raise ValueError(f"{name} must be > 0")
        if self.min_pad_thickness_mm < 0.0:
            raise ValueError("min_pad_thickness_mm must be >= 0")


class PhysicsSimulator:
    """Deterministic brake thermal/wear model.

    Heat generation is friction force times rim velocity. Temperature integrates
    one explicit-Euler step of the lumped-capacitance ODE, wear follows Archard's
    equation with a temperature-softened hardness. Inputs outside the physical
    domain are clamped, so ``predict`` never raises.
    """

    def __init__(self, constants: PhysicsConstants | None = None) -> None:
        self._constants = PhysicsConstants() if constants is None else constants

    @property
    def constants(self) -> PhysicsConstants:
        return self._constants

    def predict(self, state: OperatingState, previous_temperature: float = 25.0) -> PhysicsOutput:
        """Advance the thermal state by one ``time_step`` and estimate wear."""
        c = self._constants
        speed, pressure, ambient, thickness, mass, pad_area_cm2, dt = _sanitize(state, c)
        prev_temp = float(previous_temperature) if isfinite(previous_temperature) else ambient
        prev_temp = float(np.clip(prev_temp, -50.0, MAX_TEMPERATURE_C))

        wheel_speed_rad = speed * 2.0 * pi / 60.0
        pressure_pa = pressure * 100_000.0
        pad_area_m2 = pad_area_cm2 / 10_000.0

        normal_force = pressure_pa * pad_area_m2
        friction_force = c.friction_coefficient * normal_force
        linear_velocity = wheel_speed_rad * c.disc_radius_m
        heat_generation = friction_force * linear_velocity

        thermal_capacity = mass * c.specific_heat
        convective_cooling = c.convection_coefficient * c.cooling_surface_m2 * (prev_temp - ambient)
        temperature = prev_temp + (heat_generation - convective_cooling) * dt / thermal_capacity

        # Archard: V = K * N * s / H
        sliding_distance = linear_velocity * dt
        hardness = c.base_hardness - (temperature - 25.0) * c.hardness_temperature_slope
        wear_volume = (
            c.wear_coefficient * normal_force * sliding_distance / max(hardness, c.min_hardness)
        )
        wear_depth_mm = wear_volume / pad_area_m2 * 1000.0
        wear_per_lap = max(MIN_WEAR_RATE, wear_depth_mm / dt * c.lap_duration_s)

        usable_thickness = max(0.0, thickness - c.min_pad_thickness_mm)
        laps_remaining = min(float(MAX_LAPS_REMAINING), usable_thickness / wear_per_lap)

        reported_temperature = float(np.clip(temperature, ambient, max(ambient, MAX_TEMPERATURE_C)))
        expansion = c.thermal_expansion_per_k * (reported_temperature - 25.0)
        thermal_stress = expansion * c.elastic_modulus_pa / 1e6

        return PhysicsOutput(
            temperature=reported_temperature,
            wear_rate=float(np.clip(wear_per_lap, MIN_WEAR_RATE, MAX_WEAR_RATE)),
            heat_generation=float(np.clip(heat_generation, 0.0, MAX_HEAT_GENERATION_W)),
            cooling_rate=float(np.clip(convective_cooling, 0.0, MAX_COOLING_RATE_W)),
            predicted_laps_remaining=int(round(max(0.0, laps_remaining))),
            thermal_stress=float(max(0.0, thermal_stress)),
        )

    def simulate_over_time(
        self,
        state: OperatingState,
        duration: float,
        initial_temperature: float = 25.0,
    ) -> tuple[PhysicsOutput, ...]:
        """Apply ``predict`` repeatedly for ``duration`` seconds, feeding temperature back."""
        _, _, _, _, _, _, dt = _sanitize(state, self._constants)
        if not isfinite(duration) or duration <= 0.0:
            return ()
        steps = int(floor(duration / dt))

        trajectory: list[PhysicsOutput] = []
        current = initial_temperature
        for _ in range(steps):
            result = self.predict(state, current)
            trajectory.append(result)
            current = result.temperature
        return tuple(trajectory)

    def steady_state(
        self,
        state: OperatingState,
        *,
        tolerance: float = 0.1,
        max_iterations: int = 100,
    ) -> PhysicsOutput:
        """Iterate under constant load until the temperature settles."""
        if tolerance <= 0.0:
            raise ValueError("tolerance must be > 0")
        if max_iterations <= 0:
            raise ValueError("max_iterations must be > 0")

        current = _sanitize(state, self._constants)[2]
        for _ in range(max_iterations):
            following = self.predict(state, current).temperature
            converged = abs(following - current) < tolerance
            current = following
            if converged:
                break
        return self.predict(state, current)


def _sanitize(
    state: OperatingState,
    constants: PhysicsConstants,
) -> tuple[float, float, float, float, float, float, float]:
    def finite_or(value: float, default: float) -> float:
        return float(value) if isfinite(value) else default

    speed = float(np.clip(finite_or(state.wheel_speed, 0.0), 0.0, MAX_WHEEL_SPEED_RPM))
    pressure = float(np.clip(finite_or(state.brake_pressure, 0.0), 0.0, MAX_BRAKE_PRESSURE_BAR))
    ambient = float(np.clip(finite_or(state.ambient_temp, 25.0), -50.0, MAX_TEMPERATURE_C))
    thickness = max(0.0, finite_or(state.pad_thickness, 0.0))
    mass = finite_or(state.component_mass, constants.disc_mass_kg)
    if mass <= 0.0:
        mass = constants.disc_mass_kg
    pad_area = min(finite_or(state.pad_area, 150.0), MAX_PAD_AREA_CM2)
    if pad_area <= 0.0:
        pad_area = 150.0
    dt = finite_or(state.time_step, 1.0)
    if dt <= 0.0:
        dt = 1.0
    return speed, pressure, ambient, thickness, mass, pad_area, dt
