"""
Traffic controller module.

Owns the live aircraft for one session and drives the simulation: it
advances every aircraft each tick, retires aircraft that have landed or
left the airspace, spawns new traffic on a timer, runs the separation
scan and keeps the score and the operator log.
"""

import logging
import math
from collections import deque
from typing import Any, Callable, Deque, Dict, List, Optional

import numpy as np

from .aircraft import Aircraft, AircraftPerformance, default_aircraft_types
from .airspace import Airspace, default_airspace
from .commands import CommandEngine
from .config import SimulationConfig, validate_config
from .constants import (
    ARRIVAL_CALLSIGN_PREFIX,
    CALLSIGN_NUMBER_MAX,
    CALLSIGN_NUMBER_MIN,
    DEPARTURE_CALLSIGN_PREFIX,
    LOG_HISTORY_SIZE,
)
from .metrics import SessionMetrics
from .physics import bearing_to
from .separation import SeparationMonitor, SeparationReport


logger = logging.getLogger(__name__)


class TrafficController:
    """
    Session orchestrator for the airspace simulation.

    The controller is driven by ``tick(dt)`` from whatever loop hosts it
    (a render loop, the CLI runner or the gymnasium environment). A tick
    never runs with more than ``config.max_dt`` simulated seconds, so a
    long stall is clamped rather than replayed.

    Callbacks:
        on_aircraft_added(aircraft): After an aircraft enters the session
        on_aircraft_removed(aircraft): After an aircraft leaves the session
        on_score_updated(score): After every score change
        on_log(message): For every operator log line
    """

    def __init__(
        self,
        airspace: Optional[Airspace] = None,
        config: Optional[SimulationConfig] = None,
        seed: Optional[int] = None,
        rng: Optional[np.random.Generator] = None,
        aircraft_types: Optional[Dict[str, AircraftPerformance]] = None,
    ):
        """
        Initialize the traffic controller.

        Args:
            airspace: Session layout (defaults to the built-in layout)
            config: Session configuration
            seed: Seed for the traffic generator; ignored when ``rng`` is given
            rng: Random generator to draw spawns and callsigns from
            aircraft_types: Performance table keyed by type designator
        """
        self.airspace = airspace or default_airspace()
        self.config = config or SimulationConfig()
        validate_config(self.config)

        self.rng = rng if rng is not None else np.random.default_rng(seed)
        self.aircraft_types = aircraft_types or default_aircraft_types()

        self.aircraft: List[Aircraft] = []
        self.score = 0.0
        self.time_elapsed = 0.0
        self.spawn_timer = self.config.spawn.initial_delay
        self.last_report = SeparationReport()
        self.log_history: Deque[str] = deque(maxlen=LOG_HISTORY_SIZE)

        self.metrics = SessionMetrics()
        self.separation = SeparationMonitor(self.config.separation)
        self.commands = CommandEngine(
            self.airspace,
            self.get_aircraft,
            emit=self.log,
            allow_speed_control=self.config.allow_speed_control,
            landing_ceiling=self.config.landing_ceiling,
            metrics=self.metrics,
        )

        self.on_aircraft_added: Optional[Callable[[Aircraft], None]] = None
        self.on_aircraft_removed: Optional[Callable[[Aircraft], None]] = None
        self.on_score_updated: Optional[Callable[[float], None]] = None
        self.on_log: Optional[Callable[[str], None]] = None

        logger.info(f"Traffic controller ready: {self.airspace.code or self.airspace.name}, "
                    f"{len(self.airspace.runways)} runways, radius {self.boundary_radius}")

    @property
    def boundary_radius(self) -> float:
        if self.airspace.boundary_radius is not None:
            return self.airspace.boundary_radius
        return self.config.boundary_radius

    # ------------------------------------------------------------------
    # Session lifecycle
    # ------------------------------------------------------------------

    def start(self) -> None:
        """Seed the session with one random aircraft and the initial departures."""
        logger.info(f"Session started at {self.airspace.code or self.airspace.name}")
        self.spawn_aircraft()
        for _ in range(self.config.spawn.initial_departures):
            self.spawn_departure()
        self.spawn_timer = self.config.spawn.initial_delay

    def reset(self) -> None:
        """Drop all traffic and restart score, timers, log and metrics."""
        self.aircraft.clear()
        self.score = 0.0
        self.time_elapsed = 0.0
        self.spawn_timer = self.config.spawn.initial_delay
        self.last_report = SeparationReport()
        self.log_history.clear()
        self.metrics.reset()

    def tick(self, dt: float) -> SeparationReport:
        """
        Advance the session by one tick.

        Order within a tick: update every aircraft, retire aircraft that
        landed or exited, run the spawn timer, then scan separation.

        Args:
            dt: Elapsed seconds since the previous tick

        Returns:
            Separation report for this tick
        """
        dt = float(dt)
        if not math.isfinite(dt):
            logger.warning(f"Ignoring non-finite tick length {dt}")
            dt = 0.0
        dt = min(max(dt, 0.0), self.config.max_dt)

        for ac in self.aircraft:
            ac.update(dt)

        self._retire_aircraft()

        self.spawn_timer -= dt
        if self.spawn_timer <= 0:
            self.spawn_aircraft()
            spawn = self.config.spawn
            self.spawn_timer = spawn.interval_min + self.rng.random() * (spawn.interval_max - spawn.interval_min)

        report = self.separation.scan(self.aircraft)
        if report.penalty:
            self._add_score(-report.penalty)
        self.last_report = report

        self.time_elapsed += dt
        self.metrics.record_tick(dt, len(self.aircraft))
        self.metrics.record_violations(report.violation_count)
        return report

    def advance(self, elapsed: float) -> int:
        """
        Run ``elapsed`` seconds as consecutive ticks of at most ``max_dt``.

        Returns:
            Number of ticks run
        """
        max_dt = self.config.max_dt
        steps = int(math.ceil(elapsed / max_dt - 1e-9)) if math.isfinite(elapsed) and elapsed > 0 else 0
        remaining = float(elapsed)
        for _ in range(steps):
            self.tick(min(max_dt, remaining))
            remaining -= max_dt
        return steps

    def _retire_aircraft(self) -> None:
        scoring = self.config.scoring
        remaining = []
        for ac in self.aircraft:
            if ac.is_arrival and ac.is_on_ground and ac.speed < scoring.landed_speed_threshold:
                self._remove(ac, scoring.landing_credit, "landed")
            elif not ac.is_arrival and ac.distance_from_center() > self.boundary_radius:
                self._remove(ac, scoring.departure_credit, "exited airspace")
            else:
                remaining.append(ac)
        self.aircraft = remaining

    def _remove(self, ac: Aircraft, credit: float, reason: str) -> None:
        self._add_score(credit)
        self.metrics.record_removal(ac.is_arrival)
        logger.info(f"{ac.callsign} {reason}, +{credit:g}")
        if self.on_aircraft_removed:
            self.on_aircraft_removed(ac)

    def _add_score(self, delta: float) -> None:
        self.score += delta
        if self.on_score_updated:
            self.on_score_updated(self.score)

    # ------------------------------------------------------------------
    # Traffic generation
    # ------------------------------------------------------------------

    def spawn_aircraft(self) -> Optional[Aircraft]:
        """Spawn an arrival or a departure according to the arrival probability."""
        if self.rng.random() < self.config.spawn.arrival_probability:
            return self.spawn_arrival()
        return self.spawn_departure()

    def spawn_arrival(self) -> Optional[Aircraft]:
        """Spawn an arrival on the boundary, pointed at the airspace center."""
        if self._at_capacity():
            return None
        callsign = self._generate_callsign(ARRIVAL_CALLSIGN_PREFIX)
        if callsign is None:
            return None

        spawn = self.config.spawn
        angle = self.rng.random() * 2 * math.pi
        x = math.cos(angle) * self.boundary_radius
        y = math.sin(angle) * self.boundary_radius
        altitude = spawn.arrival_altitude_min + int(
            self.rng.integers(0, spawn.arrival_altitude_max - spawn.arrival_altitude_min + 1))

        ac = Aircraft(
            callsign, spawn.arrival_type, x, y,
            heading=bearing_to(x, y, 0.0, 0.0),
            altitude=altitude,
            speed=spawn.arrival_speed,
            is_arrival=True,
            performance=self._performance(spawn.arrival_type),
        )
        return self.add_aircraft(ac)

    def spawn_departure(self) -> Optional[Aircraft]:
        """Spawn a departure holding at a random runway threshold."""
        if self._at_capacity():
            return None
        if not self.airspace.runways:
            logger.warning("No runways available for departures")
            return None
        callsign = self._generate_callsign(DEPARTURE_CALLSIGN_PREFIX)
        if callsign is None:
            return None

        spawn = self.config.spawn
        runway = self.airspace.runways[int(self.rng.integers(len(self.airspace.runways)))]
        ac = Aircraft(
            callsign, spawn.departure_type, runway.x, runway.y,
            heading=runway.heading,
            altitude=0.0,
            speed=0.0,
            is_arrival=False,
            performance=self._performance(spawn.departure_type),
        )
        return self.add_aircraft(ac)

    def add_aircraft(self, ac: Aircraft) -> Aircraft:
        """
        Insert an aircraft into the session.

        Raises:
            ValueError: If the callsign is already in use
        """
        if self.get_aircraft(ac.callsign) is not None:
            raise ValueError(f"Callsign already in use: {ac.callsign}")

        self.aircraft.append(ac)
        self.metrics.record_spawn(ac.is_arrival)
        logger.info(f"Spawned {ac.category.value} {ac!r}")
        if self.on_aircraft_added:
            self.on_aircraft_added(ac)
        return ac

    def _at_capacity(self) -> bool:
        limit = self.config.spawn.max_aircraft
        return limit > 0 and len(self.aircraft) >= limit

    def _performance(self, aircraft_type: str) -> AircraftPerformance:
        performance = self.aircraft_types.get(aircraft_type.upper())
        if performance is None:
            logger.warning(f"Unknown aircraft type {aircraft_type}, using default performance")
            performance = AircraftPerformance()
        return performance

    def _generate_callsign(self, prefix: str) -> Optional[str]:
        """Draw a random unused callsign; fall back to the first free number."""
        in_use = {ac.callsign for ac in self.aircraft}
        for _ in range(10):
            callsign = f"{prefix}{int(self.rng.integers(CALLSIGN_NUMBER_MIN, CALLSIGN_NUMBER_MAX + 1))}"
            if callsign not in in_use:
                return callsign

        for number in range(CALLSIGN_NUMBER_MIN, CALLSIGN_NUMBER_MAX + 1):
            callsign = f"{prefix}{number}"
            if callsign not in in_use:
                return callsign

        logger.warning(f"No free {prefix} callsigns, skipping spawn")
        return None

    # ------------------------------------------------------------------
    # Operator surface
    # ------------------------------------------------------------------

    def execute(self, command: str) -> List[str]:
        """Apply one operator command line; returns the log lines it produced."""
        return self.commands.execute(command)

    def log(self, message: str) -> None:
        self.log_history.append(message)
        logger.debug(f"[operator] {message}")
        if self.on_log:
            self.on_log(message)

    def get_aircraft(self, callsign: str) -> Optional[Aircraft]:
        callsign = callsign.upper()
        for ac in self.aircraft:
            if ac.callsign == callsign:
                return ac
        return None

    def remove_aircraft(self, callsign: str) -> bool:
        """Remove an aircraft without score credit."""
        ac = self.get_aircraft(callsign)
        if ac is None:
            return False
        self.aircraft.remove(ac)
        if self.on_aircraft_removed:
            self.on_aircraft_removed(ac)
        return True

    def get_state(self) -> Dict[str, Any]:
        """Snapshot of the session for display and observation layers."""
        return {
            'time': self.time_elapsed,
            'score': self.score,
            'spawn_timer': self.spawn_timer,
            'aircraft': [ac.get_state() for ac in self.aircraft],
            'violations': [
                {
                    'aircraft1': v.aircraft1,
                    'aircraft2': v.aircraft2,
                    'horizontal': v.horizontal_separation,
                    'vertical': v.vertical_separation,
                }
                for v in self.last_report.violations
            ],
            'log': list(self.log_history),
        }
