"""
Configuration module for the airspace traffic simulator.

This module defines dataclasses for all session options, with validation,
override routing and YAML persistence.
"""

import logging
from dataclasses import asdict, dataclass, field, fields
from pathlib import Path
from typing import Any, Dict, List, Optional, Union

import yaml

from .constants import (
    ALTITUDE_VALUES,
    DEFAULT_BOUNDARY_RADIUS,
    DEFAULT_MAX_DT,
    HEADING_VALUES,
    SPEED_VALUES,
)
from .exceptions import ConfigurationError


logger = logging.getLogger(__name__)


@dataclass
class SpawnConfig:
    """Configuration for traffic generation."""

    initial_delay: float = 2.0  # seed traffic quickly
    interval_min: float = 10.0
    interval_max: float = 20.0
    arrival_probability: float = 0.7

    # Arrivals enter at the boundary at a random cruise level
    arrival_altitude_min: int = 50
    arrival_altitude_max: int = 99
    arrival_speed: float = 250.0
    arrival_type: str = "B737"

    departure_type: str = "A320"
    initial_departures: int = 2

    max_aircraft: int = 0  # 0 means unlimited


@dataclass
class SeparationConfig:
    """Configuration for separation monitoring."""

    horizontal: float = 3.0
    vertical: float = 10.0
    penalty_per_tick: float = 0.1


@dataclass
class ScoringConfig:
    """Configuration for score credits."""

    landing_credit: float = 50.0
    departure_credit: float = 50.0
    landed_speed_threshold: float = 10.0


@dataclass
class EnvConfig:
    """Configuration for the gymnasium surface."""

    max_aircraft: int = 10
    episode_length: float = 600.0
    action_interval: float = 5.0

    altitude_values: List[int] = field(default_factory=lambda: list(ALTITUDE_VALUES))
    heading_values: List[int] = field(default_factory=lambda: list(HEADING_VALUES))
    speed_values: List[int] = field(default_factory=lambda: list(SPEED_VALUES))

    def __post_init__(self):
        """Validate configuration after initialization."""
        if self.max_aircraft <= 0:
            raise ConfigurationError("max_aircraft must be positive")
        if self.episode_length <= 0:
            raise ConfigurationError("episode_length must be positive")
        if self.action_interval <= 0:
            raise ConfigurationError("action_interval must be positive")
        for name in ("altitude_values", "heading_values", "speed_values"):
            if not getattr(self, name):
                raise ConfigurationError(f"{name} must not be empty")
        # Two-digit clearances are altitudes; anything longer reads as a heading
        if any(not 0 <= value < 100 for value in self.altitude_values):
            raise ConfigurationError("altitude_values must be in [0, 100)")
        if any(not 0 <= value < 360 for value in self.heading_values):
            raise ConfigurationError("heading_values must be in [0, 360)")


@dataclass
class SimulationConfig:
    """Main configuration for a traffic session."""

    boundary_radius: float = DEFAULT_BOUNDARY_RADIUS
    max_dt: float = DEFAULT_MAX_DT
    allow_speed_control: bool = True
    landing_ceiling: float = 30.0

    # Component configurations
    spawn: SpawnConfig = field(default_factory=SpawnConfig)
    separation: SeparationConfig = field(default_factory=SeparationConfig)
    scoring: ScoringConfig = field(default_factory=ScoringConfig)
    env: EnvConfig = field(default_factory=EnvConfig)

    # Custom configuration
    custom_config: Dict[str, Any] = field(default_factory=dict)

    def __post_init__(self):
        """Validate configuration consistency."""
        if self.boundary_radius <= 0:
            raise ConfigurationError("boundary_radius must be positive")
        if self.max_dt <= 0:
            raise ConfigurationError("max_dt must be positive")

    def to_dict(self) -> Dict[str, Any]:
        """Convert configuration to a plain dictionary."""
        return asdict(self)


_SECTIONS = {
    "spawn": SpawnConfig,
    "separation": SeparationConfig,
    "scoring": ScoringConfig,
    "env": EnvConfig,
}


def create_default_config(**overrides) -> SimulationConfig:
    """
    Create a default configuration with optional overrides.

    Each override is applied to the top-level config if it owns the
    attribute, otherwise to the first nested section that does. Keys no
    section knows about are kept in ``custom_config``.

    Args:
        **overrides: Configuration values to override

    Returns:
        SimulationConfig: Configured session settings

    Example:
        >>> config = create_default_config(
        ...     boundary_radius=40.0,
        ...     arrival_probability=1.0,
        ... )
    """
    config = SimulationConfig()

    for key, value in overrides.items():
        if key in _SECTIONS or key == "custom_config":
            setattr(config, key, value)
        elif hasattr(config, key):
            setattr(config, key, value)
        elif hasattr(config.spawn, key):
            setattr(config.spawn, key, value)
        elif hasattr(config.separation, key):
            setattr(config.separation, key, value)
        elif hasattr(config.scoring, key):
            setattr(config.scoring, key, value)
        elif hasattr(config.env, key):
            setattr(config.env, key, value)
        else:
            config.custom_config[key] = value

    return config


def validate_config(config: SimulationConfig) -> bool:
    """
    Validate configuration for consistency and correctness.

    Args:
        config: Configuration to validate

    Returns:
        bool: True if configuration is valid

    Raises:
        ConfigurationError: If configuration is invalid
    """
    if config.boundary_radius <= 0:
        raise ConfigurationError("boundary_radius must be positive")

    if config.max_dt <= 0 or config.max_dt > 1.0:
        raise ConfigurationError("max_dt must be in (0, 1]")

    if config.landing_ceiling < 0:
        raise ConfigurationError("landing_ceiling must not be negative")

    spawn = config.spawn
    if spawn.interval_min <= 0 or spawn.interval_max < spawn.interval_min:
        raise ConfigurationError("spawn interval must satisfy 0 < min <= max")

    if not 0.0 <= spawn.arrival_probability <= 1.0:
        raise ConfigurationError("arrival_probability must be between 0 and 1")

    if spawn.arrival_altitude_min < 0 or spawn.arrival_altitude_max < spawn.arrival_altitude_min:
        raise ConfigurationError("arrival altitude band must satisfy 0 <= min <= max")

    if spawn.initial_departures < 0 or spawn.max_aircraft < 0:
        raise ConfigurationError("aircraft counts must not be negative")

    separation = config.separation
    if separation.horizontal <= 0 or separation.vertical <= 0:
        raise ConfigurationError("separation minima must be positive")

    return True


def _build_section(cls, values: Optional[Dict[str, Any]]):
    if values is None:
        return cls()
    if not isinstance(values, dict):
        raise ConfigurationError(f"Section for {cls.__name__} must be a mapping")
    known = {f.name for f in fields(cls)}
    unknown = set(values) - known
    if unknown:
        raise ConfigurationError(f"Unknown {cls.__name__} keys: {sorted(unknown)}")
    return cls(**values)


def config_from_dict(data: Dict[str, Any]) -> SimulationConfig:
    """
    Build a configuration from a nested dictionary.

    Args:
        data: Mapping with top-level keys and optional section mappings

    Returns:
        SimulationConfig built from the mapping
    """
    data = dict(data or {})
    sections = {name: _build_section(cls, data.pop(name, None)) for name, cls in _SECTIONS.items()}
    custom = data.pop("custom_config", {}) or {}

    known = {f.name for f in fields(SimulationConfig)}
    unknown = set(data) - known
    if unknown:
        raise ConfigurationError(f"Unknown configuration keys: {sorted(unknown)}")

    config = SimulationConfig(**data, **sections, custom_config=custom)
    validate_config(config)
    return config


def load_config(config_path: Union[str, Path]) -> SimulationConfig:
    """
    Load session configuration from a YAML file.

    Args:
        config_path: Path to config YAML file

    Returns:
        Validated SimulationConfig

    Raises:
        ConfigurationError: If the file is missing or malformed
    """
    config_path = Path(config_path)

    if not config_path.exists():
        raise ConfigurationError(f"Config file not found: {config_path}")

    try:
        with open(config_path, 'r') as f:
            config_dict = yaml.safe_load(f) or {}
    except (OSError, yaml.YAMLError) as e:
        raise ConfigurationError(f"Failed to read config {config_path}: {e}") from e

    config = config_from_dict(config_dict)
    logger.info(f"Simulation config loaded from: {config_path}")
    return config


def save_config(config: SimulationConfig, config_path: Union[str, Path]) -> str:
    """
    Save configuration to a YAML file.

    Args:
        config: Configuration to save
        config_path: Destination path

    Returns:
        Path to saved config file
    """
    config_path = Path(config_path)
    config_path.parent.mkdir(parents=True, exist_ok=True)

    with open(config_path, 'w') as f:
        yaml.dump(config.to_dict(), f, default_flow_style=False, sort_keys=False)

    logger.info(f"Simulation config saved to: {config_path}")
    return str(config_path)
