"""
Reset controller: return the simulated vehicle to its nominal pose.

The nominal pose is captured once, at first readiness, and reused for every
subsequent episode. A reset is a teleport: disarm if armed, then ask the
environment to place the vehicle at the nominal pose with zero velocity.
"""

from __future__ import annotations

import logging
from typing import Optional

from ..interfaces.environment import EnvironmentAdapter
from ..utils.exceptions import StateError
from .constants import DEFAULT_RESET_TOLERANCE_M, DEFAULT_RESET_TOLERANCE_RAD
from .types import Observation, Pose

logger = logging.getLogger(__name__)

__all__ = ["ResetController"]


class ResetController:
    """Capture, restore and verify the nominal starting pose.

    Args:
        env: Environment the vehicle lives in
        tolerance_m: Allowed position and speed error after a reset
        tolerance_rad: Allowed attitude error after a reset
    """

    def __init__(
        self,
        env: EnvironmentAdapter,
        tolerance_m: float = DEFAULT_RESET_TOLERANCE_M,
        tolerance_rad: float = DEFAULT_RESET_TOLERANCE_RAD,
    ) -> None:
        self.env = env
        self.tolerance_m = tolerance_m
        self.tolerance_rad = tolerance_rad
        self._nominal: Optional[Pose] = None
        self.resets_performed = 0

    @property
    def nominal_pose(self) -> Optional[Pose]:
        return self._nominal

    @property
    def captured(self) -> bool:
        return self._nominal is not None

    def capture(self, observation: Observation) -> Pose:
        """Record the nominal pose from ``observation`` unless already captured."""
        if self._nominal is None:
            self._nominal = Pose.nominal(observation.position, observation.attitude)
            logger.info("Captured nominal pose at %s", self._nominal.position)
        return self._nominal

    def reset(self) -> None:
        """Teleport the vehicle to the nominal pose.

        Raises:
            StateError: If no nominal pose has been captured
        """
        if self._nominal is None:
            raise StateError(
                "Cannot reset before the nominal pose is captured",
                current_state="uncaptured",
                expected_state="captured",
            )
        if self.env.is_armed():
            self.env.disarm()
        self.env.reset(self._nominal)
        self.resets_performed += 1
        logger.debug("Reset #%d to nominal pose", self.resets_performed)

    def verify(self, observation: Optional[Observation] = None) -> bool:
        """Check that the vehicle is at rest at the nominal pose, disarmed."""
        if self._nominal is None:
            return False
        obs = observation if observation is not None else self.env.observe()
        ok = (not obs.armed) and obs.pose().is_close(
            self._nominal, self.tolerance_m, self.tolerance_rad
        )
        if not ok:
            pose = obs.pose()
            logger.warning(
                "Reset verification failed: position error %.4f m, speed error %.4f, "
                "attitude error %.4f rad, armed=%s",
                pose.position_error(self._nominal),
                pose.speed_error(self._nominal),
                pose.attitude_error(self._nominal),
                obs.armed,
            )
        return ok

    def reset_and_verify(self) -> bool:
        self.reset()
        return self.verify()
