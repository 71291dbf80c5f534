"""
Aircraft simulation module.

Implements the per-aircraft state machine: first-order kinematics toward
operator targets, direct-to-fix homing and the staged runway intercept.
"""

import json
import logging
from collections import deque
from dataclasses import dataclass
from pathlib import Path
from typing import Any, Dict, Optional, Tuple, Union

import yaml

from .airspace import Fix, Runway
from .constants import (
    ACCELERATION_KT_PER_SEC,
    AIRCRAFT_TYPES,
    ALIGNMENT_CONE_DEG,
    ALIGNMENT_DISTANCE,
    DEFAULT_PERFORMANCE,
    DESCENT_START_DISTANCE,
    EXPEDITE_FACTOR,
    FLARE_DISTANCE,
    FORCED_ALIGNMENT_DISTANCE,
    TERMINAL_AREA_DISTANCE,
    TOUCHDOWN_ALTITUDE,
    TOUCHDOWN_DISTANCE,
    TRAIL_LENGTH,
    TRAIL_MIN_SPACING,
    FlightCategory,
)
from .exceptions import ConfigurationError
from .physics import (
    bearing_to,
    distance,
    distance_per_second,
    heading_vector,
    normalize_heading,
    shortest_heading_difference,
    step_towards,
)


logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class AircraftPerformance:
    """Performance profile of an aircraft type."""
    speed_cruise: float = DEFAULT_PERFORMANCE["speed_cruise"]
    speed_landing: float = DEFAULT_PERFORMANCE["speed_landing"]
    rate_climb: float = DEFAULT_PERFORMANCE["rate_climb"]  # altitude units per second
    rate_turn: float = DEFAULT_PERFORMANCE["rate_turn"]  # degrees per second
    wake_category: Optional[str] = None

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> 'AircraftPerformance':
        try:
            return cls(
                speed_cruise=float(data.get("speed_cruise", DEFAULT_PERFORMANCE["speed_cruise"])),
                speed_landing=float(data.get("speed_landing", DEFAULT_PERFORMANCE["speed_landing"])),
                rate_climb=float(data.get("rate_climb", DEFAULT_PERFORMANCE["rate_climb"])),
                rate_turn=float(data.get("rate_turn", DEFAULT_PERFORMANCE["rate_turn"])),
                wake_category=data.get("wake_category"),
            )
        except (AttributeError, TypeError, ValueError) as e:
            raise ConfigurationError(f"Invalid aircraft performance {data!r}: {e}") from e


def default_aircraft_types() -> Dict[str, AircraftPerformance]:
    """Built-in performance table."""
    return {name: AircraftPerformance.from_dict(stats) for name, stats in AIRCRAFT_TYPES.items()}


def load_aircraft_types(path: Union[str, Path]) -> Dict[str, AircraftPerformance]:
    """
    Load aircraft performance profiles from a JSON or YAML file.

    The file maps type designators to ``speed_cruise``, ``speed_landing``,
    ``rate_climb``, ``rate_turn`` and an optional ``wake_category``.

    Raises:
        ConfigurationError: If the file cannot be read or parsed
    """
    path = Path(path)
    try:
        with open(path, 'r') as f:
            data = json.load(f) if path.suffix.lower() == ".json" else yaml.safe_load(f)
    except (OSError, json.JSONDecodeError, yaml.YAMLError) as e:
        raise ConfigurationError(f"Failed to read aircraft types {path}: {e}") from e

    if not isinstance(data, dict):
        raise ConfigurationError(f"Aircraft types file must be a mapping: {path}")

    types = {name.upper(): AircraftPerformance.from_dict(stats) for name, stats in data.items()}
    logger.info(f"Loaded {len(types)} aircraft types from {path}")
    return types


# Navigation modes. Exactly one is active per aircraft.

@dataclass(frozen=True)
class NoNavigation:
    """Heading under direct operator control."""
    pass


@dataclass(frozen=True)
class DirectToFix:
    """Continuous homing to a fix."""
    fix: Fix


@dataclass(frozen=True)
class LandingIntercept:
    """Staged intercept of a runway."""
    runway: Runway


NavigationMode = Union[NoNavigation, DirectToFix, LandingIntercept]

NO_NAVIGATION = NoNavigation()


class Aircraft:
    """
    Simulates one aircraft under simplified flight kinematics.

    Positions are in miles around the airspace center, altitudes in
    hundreds of feet and speeds in knots. Operator instructions only change
    the ``target_*`` fields and the navigation mode; ``update`` converges the
    actual state toward them.

    Attributes:
        callsign: Unique aircraft identifier (e.g. "UAL123")
        aircraft_type: Type designator (e.g. "B737")
        performance: Performance profile for the type
        is_arrival: True for arrivals, False for departures
        navigation: Active navigation mode
        trail: Most recent positions, newest first
        violation: Set by the separation monitor each tick
    """

    def __init__(
        self,
        callsign: str,
        aircraft_type: str,
        x: float,
        y: float,
        heading: float,
        altitude: float,
        speed: float,
        is_arrival: bool,
        performance: Optional[AircraftPerformance] = None,
    ):
        self.callsign = callsign
        self.aircraft_type = aircraft_type
        self.performance = performance or AircraftPerformance()

        self.x = float(x)
        self.y = float(y)
        self.heading = normalize_heading(heading)
        self.altitude = max(0.0, float(altitude))
        self.speed = max(0.0, float(speed))
        self.is_arrival = is_arrival

        self.target_heading = self.heading
        self.target_altitude = self.altitude
        self.target_speed = self.speed
        self.expedite = False
        self.holding = False

        self.navigation: NavigationMode = NO_NAVIGATION
        self.is_on_ground = not is_arrival and self.altitude == 0
        self.is_taking_off = False

        self.trail: deque = deque(maxlen=TRAIL_LENGTH)
        self.violation = False

    # ------------------------------------------------------------------
    # Operator instructions
    # ------------------------------------------------------------------

    def set_heading(self, heading: float) -> None:
        """Fly a heading; cancels fix and runway navigation."""
        self.target_heading = normalize_heading(heading)
        self.navigation = NO_NAVIGATION
        self.holding = False

    def set_altitude(self, altitude: float, expedite: bool = False) -> None:
        """Climb or descend to an altitude, optionally at double rate."""
        self.target_altitude = max(0.0, float(altitude))
        self.expedite = expedite

    def set_speed(self, speed: float) -> None:
        self.target_speed = max(0.0, float(speed))

    def set_fix_target(self, name: str, point: Union[Fix, Tuple[float, float]]) -> None:
        """Proceed direct to a fix; cancels heading and runway navigation."""
        if not isinstance(point, Fix):
            point = Fix(name, float(point[0]), float(point[1]))
        self.navigation = DirectToFix(point)
        self.holding = False

    def set_landing_target(self, runway: Runway) -> None:
        """Intercept and land on a runway; cancels heading and fix navigation."""
        self.navigation = LandingIntercept(runway)
        self.holding = False

    def clear_navigation(self) -> None:
        """Drop fix or runway navigation, keeping current targets."""
        self.navigation = NO_NAVIGATION

    def takeoff(self) -> bool:
        """
        Begin the takeoff roll.

        Only effective while on the ground with an altitude clearance
        already issued.

        Returns:
            True if the takeoff started
        """
        if not (self.is_on_ground and self.target_altitude > 0):
            return False

        self.is_taking_off = True
        self.is_on_ground = False
        self.speed = self.performance.speed_landing  # rotate speed
        self.target_speed = self.performance.speed_cruise
        return True

    # ------------------------------------------------------------------
    # Simulation
    # ------------------------------------------------------------------

    def update(self, dt: float) -> None:
        """
        Advance the aircraft by one tick.

        Args:
            dt: Elapsed simulated seconds, already clamped by the caller
        """
        if self.is_on_ground and not self.is_taking_off:
            return

        self._update_speed(dt)
        self._resolve_navigation()
        self._update_heading(dt)
        self._update_altitude(dt)
        self._update_position(dt)
        self._update_trail()

    def _update_speed(self, dt: float) -> None:
        self.speed = step_towards(self.speed, self.target_speed, ACCELERATION_KT_PER_SEC * dt)

    def _resolve_navigation(self) -> None:
        """Refresh target heading (and altitude on approach) from the navigation mode."""
        if isinstance(self.navigation, DirectToFix):
            fix = self.navigation.fix
            self.target_heading = bearing_to(self.x, self.y, fix.x, fix.y)
        elif isinstance(self.navigation, LandingIntercept):
            self._intercept(self.navigation.runway)

    def _intercept(self, runway: Runway) -> None:
        bearing = bearing_to(self.x, self.y, runway.x, runway.y)
        dist = distance(self.x, self.y, runway.x, runway.y)
        runway_heading = normalize_heading(runway.heading)

        if dist < TOUCHDOWN_DISTANCE and self.altitude < TOUCHDOWN_ALTITUDE and self.target_altitude == 0:
            self._touch_down()
            return

        if dist >= TERMINAL_AREA_DISTANCE:
            # Far out
            self.target_heading = bearing
            return

        heading_error = abs(shortest_heading_difference(self.heading, runway_heading))
        aligned = heading_error < ALIGNMENT_CONE_DEG or dist < ALIGNMENT_DISTANCE

        if aligned:
            # Keep homing on the threshold to close lateral offset; lock to
            # the runway heading only in the flare
            self.target_heading = runway_heading if dist < FLARE_DISTANCE else bearing
            if dist < DESCENT_START_DISTANCE:
                self.target_altitude = 0.0
        else:
            self.target_heading = bearing
            if dist < FORCED_ALIGNMENT_DISTANCE:
                self.target_heading = runway_heading
                self.target_altitude = 0.0

    def _touch_down(self) -> None:
        self.is_on_ground = True
        self.is_taking_off = False
        self.speed = 0.0
        self.target_speed = 0.0
        logger.debug(f"{self.callsign} touched down on {self.navigation.runway.name}")

    def _update_heading(self, dt: float) -> None:
        diff = shortest_heading_difference(self.heading, self.target_heading)
        max_turn = self.performance.rate_turn * dt

        if abs(diff) <= max_turn:
            self.heading = self.target_heading
        else:
            self.heading += max_turn if diff > 0 else -max_turn

        self.heading = normalize_heading(self.heading)

    def _update_altitude(self, dt: float) -> None:
        rate = self.performance.rate_climb * dt
        if self.expedite:
            rate *= EXPEDITE_FACTOR
        self.altitude = step_towards(self.altitude, self.target_altitude, rate)

    def _update_position(self, dt: float) -> None:
        move = distance_per_second(self.speed) * dt
        east, north = heading_vector(self.heading)
        self.x += east * move
        self.y += north * move

    def _update_trail(self) -> None:
        if not self.trail or distance(self.x, self.y, *self.trail[0]) > TRAIL_MIN_SPACING:
            self.trail.appendleft((self.x, self.y))

    # ------------------------------------------------------------------
    # Queries
    # ------------------------------------------------------------------

    @property
    def nav_fix(self) -> Optional[Fix]:
        if isinstance(self.navigation, DirectToFix):
            return self.navigation.fix
        return None

    @property
    def landing_runway(self) -> Optional[Runway]:
        if isinstance(self.navigation, LandingIntercept):
            return self.navigation.runway
        return None

    @property
    def category(self) -> FlightCategory:
        return FlightCategory.ARRIVAL if self.is_arrival else FlightCategory.DEPARTURE

    @property
    def is_airborne(self) -> bool:
        return not self.is_on_ground

    def distance_from_center(self) -> float:
        return distance(0.0, 0.0, self.x, self.y)

    def to_strip(self) -> Dict[str, Any]:
        """Flight strip data for the display layer."""
        fix = self.nav_fix
        runway = self.landing_runway
        return {
            'id': self.callsign,
            'type': self.aircraft_type,
            'altitude': self.altitude,
            'speed': self.speed,
            'heading': self.heading,
            'is_arrival': self.is_arrival,
            'category': self.category.value,
            'nav_fix': fix.name if fix else None,
            'landing_runway': runway.name if runway else None,
            'trail': list(self.trail),
        }

    def get_state(self) -> Dict[str, Any]:
        """Get current aircraft state as dictionary."""
        state = self.to_strip()
        state.update({
            'x': self.x,
            'y': self.y,
            'target_heading': self.target_heading,
            'target_altitude': self.target_altitude,
            'target_speed': self.target_speed,
            'expedite': self.expedite,
            'is_on_ground': self.is_on_ground,
            'is_taking_off': self.is_taking_off,
            'violation': self.violation,
        })
        return state

    def __repr__(self):
        return (f"Aircraft({self.callsign}, pos=({self.x:.1f}, {self.y:.1f}), "
                f"alt={self.altitude:.0f}, spd={self.speed:.0f}kt, hdg={self.heading:.0f})")
