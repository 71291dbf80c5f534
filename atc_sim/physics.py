"""
Geometry helpers for the simulator.

Headings are compass degrees measured clockwise from north; the position
plane has +x east and +y north.
"""

from typing import Tuple

import numpy as np

from .constants import KNOTS_TO_MPH, TIME_SCALE


def normalize_heading(heading: float) -> float:
    """Wrap a heading into [0, 360)."""
    wrapped = float(heading) % 360.0
    # -1e-15 % 360 rounds up to 360.0
    return 0.0 if wrapped >= 360.0 else wrapped


def shortest_heading_difference(current: float, target: float) -> float:
    """
    Signed shortest angular difference from current to target.

    Positive means turn right, negative means turn left.

    Returns:
        Difference in degrees within [-180, 180]
    """
    return (target - current + 180.0) % 360.0 - 180.0


def bearing_to(x: float, y: float, target_x: float, target_y: float) -> float:
    """
    Compass bearing from (x, y) to (target_x, target_y).

    Returns:
        Bearing in degrees within [0, 360)
    """
    return normalize_heading(np.degrees(np.arctan2(target_x - x, target_y - y)))


def distance(x1: float, y1: float, x2: float, y2: float) -> float:
    """Planar distance between two points."""
    return float(np.hypot(x2 - x1, y2 - y1))


def heading_vector(heading: float) -> Tuple[float, float]:
    """Unit vector (east, north) for a compass heading."""
    rad = np.radians(heading)
    return float(np.sin(rad)), float(np.cos(rad))


def distance_per_second(speed_kts: float) -> float:
    """
    Distance travelled per simulated second at the given speed.

    Knots are converted to miles and scaled by the simulation time multiplier.
    """
    return speed_kts * KNOTS_TO_MPH / 3600.0 * TIME_SCALE


def step_towards(value: float, target: float, max_step: float) -> float:
    """Move value toward target by at most max_step, snapping when within reach."""
    delta = target - value
    if abs(delta) <= max_step:
        return target
    return value + float(np.sign(delta)) * max_step
