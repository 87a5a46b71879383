"""
Environment Adapter Protocol Definition.

The fixed method set through which the tuning engine talks to one simulated
vehicle instance. Every call site in the engine depends only on this protocol,
so a scripted test double can stand in for a full simulator.
"""

from __future__ import annotations

from typing import TYPE_CHECKING, Protocol, runtime_checkable

if TYPE_CHECKING:
    from ..core.types import Command, Observation, Pose, Vector3


@runtime_checkable
class EnvironmentAdapter(Protocol):
    """Protocol for the controlled-vehicle simulation.

    Properties:
        1. Non-blocking: every method returns promptly; waiting is expressed
           by the caller re-polling on later ticks
        2. ``reset`` is idempotent: two consecutive calls with the same pose
           leave the vehicle in the same state
    """

    def is_ready(self) -> bool:
        """Return True once the reference frame is established."""
        ...

    def reset(self, nominal_pose: "Pose") -> None:
        """Teleport to ``nominal_pose`` with zero velocity and re-assert home."""
        ...

    def arm(self) -> bool:
        """Request arming; return True if the vehicle is armed afterwards."""
        ...

    def disarm(self) -> None:
        ...

    def is_armed(self) -> bool:
        ...

    def apply_action(self, command: "Command") -> None:
        """Set a parameter value or a navigation goal."""
        ...

    def observe(self) -> "Observation":
        ...

    def distance_to(self, target: "Vector3") -> float:
        """Distance in metres from the vehicle to ``target``."""
        ...
