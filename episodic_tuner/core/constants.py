"""
Default constants for the episodic tuning engine.

Values mirror the defaults the tuning scripts were run with in SITL; all of
them can be overridden through ``episodic_tuner.config.TrainingConfig``.
"""

from typing import Tuple

PACKAGE_NAME = "episodic_tuner"
PACKAGE_VERSION = "0.1.0"

# Q-learning hyperparameters
DEFAULT_ALPHA = 0.1
DEFAULT_GAMMA = 0.9
DEFAULT_EPSILON_INIT = 0.2
DEFAULT_EPSILON_DECAY = 0.98
DEFAULT_EPSILON_MIN = 0.01
DEFAULT_STABLE_THRESHOLD = 50

# Value assigned to an action rejected as invalid for a state.
INVALID_ACTION_VALUE = -1e9

# Host scheduling (milliseconds)
LOOP_FAST_MS = 50
LOOP_IDLE_MS = 500

# Launch preconditions
DEFAULT_TAKEOFF_ALT_M = 10.0
DEFAULT_TAKEOFF_TOLERANCE_M = 0.5
DEFAULT_LAUNCH_TIMEOUT_TICKS = 600

# Arrival tolerance for navigation sub-goals
DEFAULT_ARRIVAL_THRESHOLD_M = 0.5

# Reward shaping
DEFAULT_EVENT_PENALTY = 500.0
DEFAULT_SATURATION_FRACTION_LIMIT = 0.35
DEFAULT_CONTROL_VARIANCE_WEIGHT = 0.5
DEFAULT_OSCILLATION_RMS_WEIGHT = 1.0
THROTTLE_SATURATION_HIGH = 0.98
THROTTLE_SATURATION_LOW = 0.02

# Reset verification
DEFAULT_RESET_TOLERANCE_M = 0.01
DEFAULT_RESET_TOLERANCE_RAD = 1e-3
MAX_RESET_ATTEMPTS = 10

# Waypoint offsets (north, east, up) in metres used by the five-point tour.
DEFAULT_TOUR_OFFSETS: Tuple[Tuple[float, float, float], ...] = (
    (20.0, 0.0, 20.0),
    (0.0, 20.0, 20.0),
    (-20.0, 0.0, 20.0),
    (0.0, -20.0, 20.0),
    (20.0, 20.0, 20.0),
)

# WPNAV_SPEED choices (m/s) for tours that also learn leg speed.
DEFAULT_TOUR_SPEED_OPTIONS: Tuple[float, ...] = (5.0, 7.0, 13.0, 20.0)

SEED_MIN_VALUE = 0
SEED_MAX_VALUE = 2**31 - 1
