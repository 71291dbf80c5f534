"""
Constants for the airspace traffic simulator.

This module defines the kinematic constants, intercept thresholds and
default tables shared by the aircraft model, the separation monitor and
the command engine.
"""

from enum import Enum
from typing import Dict, List


class CommandType(Enum):
    """Operator instruction types."""
    HEADING = "heading"
    ALTITUDE = "altitude"
    DIRECT = "direct"
    TAKEOFF = "takeoff"
    LAND = "land"
    ABORT = "abort"
    SPEED = "speed"
    HOLD = "hold"


class FlightCategory(Enum):
    """Flight categories."""
    ARRIVAL = "arrival"
    DEPARTURE = "departure"


# Units: distance in miles, altitude in hundreds of feet, speed in knots
ALTITUDE_UNIT_FT = 100.0
KNOTS_TO_MPH = 1.15
TIME_SCALE = 5.0  # simulation runs 5x faster than wall time

# Kinematics
ACCELERATION_KT_PER_SEC = 2.0
EXPEDITE_FACTOR = 2.0

# Trail
TRAIL_LENGTH = 5
TRAIL_MIN_SPACING = 0.5

# Landing intercept
TOUCHDOWN_DISTANCE = 0.5
TOUCHDOWN_ALTITUDE = 5.0
TERMINAL_AREA_DISTANCE = 15.0
ALIGNMENT_CONE_DEG = 40.0
ALIGNMENT_DISTANCE = 3.0
FLARE_DISTANCE = 1.0
FORCED_ALIGNMENT_DISTANCE = 2.0
DESCENT_START_DISTANCE = 12.0

# Heading values at or above this are headings, not altitudes
HEADING_MIN_VALUE = 100
HEADING_DIGITS = 3

# Airspace defaults
DEFAULT_BOUNDARY_RADIUS = 50.0
DEFAULT_MAX_DT = 0.1

# Callsign prefixes
ARRIVAL_CALLSIGN_PREFIX = "UAL"
DEPARTURE_CALLSIGN_PREFIX = "AAL"
CALLSIGN_NUMBER_MIN = 100
CALLSIGN_NUMBER_MAX = 999

# Aircraft performance profiles, keyed by type designator
DEFAULT_PERFORMANCE: Dict[str, float] = {
    "speed_cruise": 250.0,
    "speed_landing": 140.0,
    "rate_climb": 8.0,
    "rate_turn": 3.0,
}

AIRCRAFT_TYPES: Dict[str, Dict[str, float]] = {
    "B737": dict(DEFAULT_PERFORMANCE),
    "A320": dict(DEFAULT_PERFORMANCE),
}

# Operator log
LOG_HISTORY_SIZE = 200

# Environment observation layout
AIRCRAFT_FEATURE_DIM = 12
GLOBAL_STATE_DIM = 4

ENV_COMMAND_TYPES: List[CommandType] = [
    CommandType.ALTITUDE,
    CommandType.HEADING,
    CommandType.SPEED,
    CommandType.LAND,
    CommandType.DIRECT,
    CommandType.TAKEOFF,
]

ALTITUDE_VALUES: List[int] = [10, 20, 30, 40, 50, 60, 70, 80, 90]

HEADING_VALUES: List[int] = [
    0, 30, 60, 90, 120, 150, 180, 210, 240, 270, 300, 330
]

SPEED_VALUES: List[int] = [140, 180, 210, 250]
