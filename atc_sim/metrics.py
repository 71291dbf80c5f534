"""
Session metrics tracking.

This module provides the counters a traffic session keeps alongside its
score: traffic flow, separation and operator workload.
"""

from dataclasses import dataclass, field
from typing import Any, Dict

from .constants import CommandType


def _empty_command_counts() -> Dict[str, int]:
    return {command_type.value: 0 for command_type in CommandType}


@dataclass
class SessionMetrics:
    """
    Tracks metrics for a single traffic session.

    Separation is counted in pair-ticks: one violating pair sustained for
    ten ticks counts ten.
    """

    # Time tracking
    ticks: int = 0
    simulated_time: float = 0.0

    # Traffic tracking
    arrivals_spawned: int = 0
    departures_spawned: int = 0
    landings: int = 0
    departures_exited: int = 0
    peak_aircraft: int = 0

    # Separation tracking
    violation_pair_ticks: int = 0

    # Command tracking
    commands_issued: int = 0
    commands_rejected: int = 0
    commands_by_type: Dict[str, int] = field(default_factory=_empty_command_counts)

    def reset(self) -> None:
        """Start tracking a new session."""
        self.ticks = 0
        self.simulated_time = 0.0
        self.arrivals_spawned = 0
        self.departures_spawned = 0
        self.landings = 0
        self.departures_exited = 0
        self.peak_aircraft = 0
        self.violation_pair_ticks = 0
        self.commands_issued = 0
        self.commands_rejected = 0
        self.commands_by_type = _empty_command_counts()

    def record_tick(self, dt: float, aircraft_count: int) -> None:
        self.ticks += 1
        self.simulated_time += dt
        self.peak_aircraft = max(self.peak_aircraft, aircraft_count)

    def record_spawn(self, is_arrival: bool) -> None:
        if is_arrival:
            self.arrivals_spawned += 1
        else:
            self.departures_spawned += 1

    def record_removal(self, is_arrival: bool) -> None:
        if is_arrival:
            self.landings += 1
        else:
            self.departures_exited += 1

    def record_violations(self, pair_count: int) -> None:
        self.violation_pair_ticks += pair_count

    def record_command(self, command_type: str) -> None:
        """Record an accepted instruction."""
        self.commands_issued += 1
        if command_type in self.commands_by_type:
            self.commands_by_type[command_type] += 1

    def record_rejection(self) -> None:
        """Record a refused instruction."""
        self.commands_rejected += 1

    @property
    def aircraft_handled(self) -> int:
        return self.landings + self.departures_exited

    def to_dict(self) -> Dict[str, Any]:
        """Convert metrics to dictionary."""
        return {
            'ticks': self.ticks,
            'simulated_time': self.simulated_time,
            'traffic': {
                'arrivals_spawned': self.arrivals_spawned,
                'departures_spawned': self.departures_spawned,
                'landings': self.landings,
                'departures_exited': self.departures_exited,
                'peak_aircraft': self.peak_aircraft,
            },
            'separation': {
                'violation_pair_ticks': self.violation_pair_ticks,
            },
            'commands': {
                'issued': self.commands_issued,
                'rejected': self.commands_rejected,
                'by_type': dict(self.commands_by_type),
            },
        }
