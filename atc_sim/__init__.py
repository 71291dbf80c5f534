"""
Airspace traffic simulator.

This package provides the aircraft state machine, separation monitoring,
the operator command engine and the session controller for a simplified
terminal-area air traffic control simulation, plus a gymnasium
environment over one session.
"""

from .aircraft import (
    Aircraft,
    AircraftPerformance,
    DirectToFix,
    LandingIntercept,
    NoNavigation,
    default_aircraft_types,
    load_aircraft_types,
)
from .airspace import Airspace, Fix, Runway, default_airspace, load_airspace
from .commands import CommandEngine, Instruction, ParsedCommand, parse_command
from .config import (
    EnvConfig,
    ScoringConfig,
    SeparationConfig,
    SimulationConfig,
    SpawnConfig,
    create_default_config,
    load_config,
    save_config,
    validate_config,
)
from .constants import CommandType, FlightCategory
from .controller import TrafficController
from .env import AirspaceEnv
from .exceptions import (
    AirspaceLoadError,
    AtcSimError,
    CommandParseError,
    ConfigurationError,
)
from .metrics import SessionMetrics
from .separation import SeparationMonitor, SeparationReport, SeparationViolation

# Public API
__all__ = [
    # Simulation
    "Aircraft",
    "AircraftPerformance",
    "NoNavigation",
    "DirectToFix",
    "LandingIntercept",
    "default_aircraft_types",
    "load_aircraft_types",
    "TrafficController",
    "SeparationMonitor",
    "SeparationReport",
    "SeparationViolation",
    "SessionMetrics",

    # Airspace
    "Airspace",
    "Runway",
    "Fix",
    "default_airspace",
    "load_airspace",

    # Commands
    "CommandEngine",
    "Instruction",
    "ParsedCommand",
    "parse_command",
    "CommandType",
    "FlightCategory",

    # Environment
    "AirspaceEnv",

    # Configuration
    "SimulationConfig",
    "SpawnConfig",
    "SeparationConfig",
    "ScoringConfig",
    "EnvConfig",
    "create_default_config",
    "validate_config",
    "load_config",
    "save_config",

    # Exceptions
    "AtcSimError",
    "ConfigurationError",
    "AirspaceLoadError",
    "CommandParseError",
]

__version__ = "0.1.0"
