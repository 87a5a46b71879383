"""
Deterministic kinematic vehicle implementing the EnvironmentAdapter protocol.

A point-mass multirotor stand-in for SITL: guided navigation at a fixed
horizontal speed, a second-order altitude loop driven by tunable gains with
throttle saturation, and a simple battery power model. There is no noise,
so a fixed action sequence always produces the same trajectory.

Tunable parameters:
    WPNAV_SPEED: Horizontal navigation speed (m/s)
    ALT_KP: Altitude error gain (1/s^2)
    ALT_KD: Climb rate damping gain (1/s)
    THR_HOVER: Throttle needed to hover (0..1)
"""

from __future__ import annotations

import logging
import math
from typing import Dict, Optional

import numpy as np

from ..core.types import (
    Command,
    NavigationCommand,
    Observation,
    ParameterCommand,
    Pose,
    Vector3,
    as_vector3,
)

logger = logging.getLogger(__name__)

__all__ = ["KinematicVehicle", "DEFAULT_VEHICLE_PARAMETERS"]

DEFAULT_VEHICLE_PARAMETERS: Dict[str, float] = {
    "WPNAV_SPEED": 5.0,
    "ALT_KP": 2.0,
    "ALT_KD": 2.4,
    "THR_HOVER": 0.5,
}

# Vertical acceleration (m/s^2) produced per unit of throttle above hover.
THROTTLE_AUTHORITY = 20.0
PITCH_PER_ACCEL = 0.05
MAX_VERTICAL_SPEED = 5.0


class KinematicVehicle:
    """Simulated vehicle advanced explicitly with ``advance(dt)``.

    Args:
        home: Position at construction and the default reset pose
        ready_after_s: Simulated time before ``is_ready`` turns True
        parameters: Overrides for ``DEFAULT_VEHICLE_PARAMETERS``
        hover_power_w: Electrical power at hover
        drag_power_coeff: Extra power per (m/s)^2 of ground speed
        climb_power_coeff: Extra power per m/s of climb rate
        battery_voltage: Constant pack voltage
        ground_altitude: Floor the vehicle cannot descend below
    """

    def __init__(
        self,
        home: Vector3 = (0.0, 0.0, 0.0),
        *,
        ready_after_s: float = 0.0,
        parameters: Optional[Dict[str, float]] = None,
        hover_power_w: float = 180.0,
        drag_power_coeff: float = 2.0,
        climb_power_coeff: float = 25.0,
        battery_voltage: float = 12.6,
        ground_altitude: Optional[float] = None,
    ) -> None:
        if ready_after_s < 0.0:
            raise ValueError(f"ready_after_s must be non-negative, got {ready_after_s}")
        self.parameters: Dict[str, float] = dict(DEFAULT_VEHICLE_PARAMETERS)
        if parameters:
            self.parameters.update(parameters)
        self.ready_after_s = ready_after_s
        self.hover_power_w = hover_power_w
        self.drag_power_coeff = drag_power_coeff
        self.climb_power_coeff = climb_power_coeff
        self.battery_voltage = battery_voltage

        home = as_vector3(home)
        self.ground_altitude = home[2] if ground_altitude is None else ground_altitude
        self.time_s = 0.0
        self._position = np.array(home, dtype=float)
        self._velocity = np.zeros(3)
        self._attitude = np.zeros(3)
        self._angular_velocity = np.zeros(3)
        self._armed = False
        self._target: Optional[np.ndarray] = None
        self._throttle = 0.0
        self.resets = 0

    # EnvironmentAdapter -------------------------------------------------

    def is_ready(self) -> bool:
        return self.time_s >= self.ready_after_s

    def reset(self, nominal_pose: Pose) -> None:
        self._position = np.array(nominal_pose.position, dtype=float)
        self._velocity = np.array(nominal_pose.velocity, dtype=float)
        self._attitude = np.array(nominal_pose.attitude, dtype=float)
        self._angular_velocity = np.array(nominal_pose.angular_velocity, dtype=float)
        self._target = None
        self._throttle = 0.0
        self.resets += 1

    def arm(self) -> bool:
        if not self.is_ready():
            return False
        self._armed = True
        return True

    def disarm(self) -> None:
        self._armed = False
        self._target = None
        self._throttle = 0.0

    def is_armed(self) -> bool:
        return self._armed

    def apply_action(self, command: Command) -> None:
        if isinstance(command, ParameterCommand):
            self.parameters[command.name] = float(command.value)
        elif isinstance(command, NavigationCommand):
            self._target = np.array(command.target, dtype=float)
        else:
            raise TypeError(f"Unsupported command: {command!r}")

    def observe(self) -> Observation:
        speed = float(np.linalg.norm(self._velocity))
        return Observation(
            position=as_vector3(self._position),
            velocity=as_vector3(self._velocity),
            attitude=as_vector3(self._attitude),
            angular_velocity=as_vector3(self._angular_velocity),
            airspeed=speed,
            throttle=self._throttle,
            battery_voltage=self.battery_voltage,
            battery_current=self._current(),
            armed=self._armed,
            time_s=self.time_s,
        )

    def distance_to(self, target: Vector3) -> float:
        return float(np.linalg.norm(self._position - np.asarray(target, dtype=float)))

    # Simulation ----------------------------------------------------------

    @property
    def position(self) -> Vector3:
        return as_vector3(self._position)

    def _current(self) -> float:
        if not self._armed:
            return 0.0
        ground_speed = math.hypot(self._velocity[0], self._velocity[1])
        power = (
            self.hover_power_w
            + self.drag_power_coeff * ground_speed**2
            + self.climb_power_coeff * max(0.0, float(self._velocity[2]))
        )
        return power / self.battery_voltage

    def advance(self, dt: float) -> None:
        """Integrate the vehicle forward by ``dt`` seconds."""
        if dt < 0.0:
            raise ValueError(f"dt must be non-negative, got {dt}")
        self.time_s += dt
        if dt == 0.0:
            return
        if not self._armed or self._target is None:
            self._velocity[:] = 0.0
            self._angular_velocity[:] = 0.0
            self._throttle = 0.0 if not self._armed else self.parameters["THR_HOVER"]
            return

        # Horizontal: straight line toward the target at WPNAV_SPEED.
        offset = self._target[:2] - self._position[:2]
        distance = float(np.linalg.norm(offset))
        step = min(distance, self.parameters["WPNAV_SPEED"] * dt)
        if distance > 0.0:
            move = offset / distance * step
        else:
            move = np.zeros(2)
        self._position[:2] += move
        self._velocity[:2] = move / dt

        # Vertical: PD loop through a saturating throttle.
        kp = self.parameters["ALT_KP"]
        kd = self.parameters["ALT_KD"]
        hover = self.parameters["THR_HOVER"]
        demand = kp * (self._target[2] - self._position[2]) - kd * self._velocity[2]
        self._throttle = float(np.clip(hover + demand / THROTTLE_AUTHORITY, 0.0, 1.0))
        accel = (self._throttle - hover) * THROTTLE_AUTHORITY
        vz = float(np.clip(self._velocity[2] + accel * dt, -MAX_VERTICAL_SPEED, MAX_VERTICAL_SPEED))
        z = self._position[2] + vz * dt
        if z < self.ground_altitude:
            z = self.ground_altitude
            vz = max(vz, 0.0)
        self._position[2] = z
        self._velocity[2] = vz

        pitch = PITCH_PER_ACCEL * accel
        self._angular_velocity[1] = (pitch - self._attitude[1]) / dt
        self._attitude[1] = pitch
