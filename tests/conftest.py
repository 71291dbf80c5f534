"""
Pytest configuration and shared fixtures for airspace simulator tests.
"""

import pytest
from typing import Any, Dict, List

from atc_sim.aircraft import Aircraft
from atc_sim.airspace import Airspace
from atc_sim.commands import CommandEngine
from atc_sim.config import create_default_config
from atc_sim.controller import TrafficController
from atc_sim.metrics import SessionMetrics


@pytest.fixture
def layout() -> Dict[str, Any]:
    """A small sea-level layout with two opposing runways and two fixes."""
    return {
        "name": "Test Field",
        "code": "TST",
        "elevation": 0,
        "runways": [
            {"name": "27", "heading": 270, "start": {"x": 0, "y": 0}, "end": {"x": -2, "y": 0}},
            {"name": "09", "heading": 90, "start": {"x": -2, "y": 0}, "end": {"x": 0, "y": 0}},
        ],
        "fixes": {
            "OBK": {"x": 10, "y": -20},
            "FONTI": {"x": 20, "y": 30},
        },
    }


@pytest.fixture
def airspace(layout) -> Airspace:
    return Airspace.from_dict(layout)


@pytest.fixture
def make_arrival():
    """Factory for airborne arrivals."""
    def _make(callsign="UAL123", x=20.0, y=0.0, heading=270.0, altitude=50.0, speed=250.0):
        return Aircraft(callsign, "B737", x, y, heading, altitude, speed, is_arrival=True)
    return _make


@pytest.fixture
def make_departure():
    """Factory for departures; altitude 0 starts them on the ground."""
    def _make(callsign="AAL456", x=0.0, y=0.0, heading=270.0, altitude=0.0, speed=0.0):
        return Aircraft(callsign, "A320", x, y, heading, altitude, speed, is_arrival=False)
    return _make


@pytest.fixture
def fleet() -> Dict[str, Aircraft]:
    """Mutable callsign -> aircraft mapping used as a command lookup."""
    return {}


@pytest.fixture
def log_lines() -> List[str]:
    return []


@pytest.fixture
def metrics() -> SessionMetrics:
    return SessionMetrics()


@pytest.fixture
def engine(airspace, fleet, log_lines, metrics) -> CommandEngine:
    """Command engine over the test airspace, logging into ``log_lines``."""
    return CommandEngine(
        airspace,
        lambda callsign: fleet.get(callsign.upper()),
        emit=log_lines.append,
        metrics=metrics,
    )


@pytest.fixture
def default_config():
    """Default configuration for testing."""
    return create_default_config()


@pytest.fixture
def controller(airspace, default_config) -> TrafficController:
    """Seeded controller with no traffic."""
    return TrafficController(airspace=airspace, config=default_config, seed=42)
