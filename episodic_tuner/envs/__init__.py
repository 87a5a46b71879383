"""Environment adapters."""

from .kinematic import DEFAULT_VEHICLE_PARAMETERS, KinematicVehicle

__all__ = ["DEFAULT_VEHICLE_PARAMETERS", "KinematicVehicle"]
