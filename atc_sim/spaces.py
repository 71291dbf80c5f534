"""
Observation and action spaces for the airspace environment.

Both spaces are derived from ``EnvConfig``: observations are padded to
``max_aircraft`` slots, and the discrete action components index the
configured value tables and the airspace's runways and fixes.
"""

from typing import Dict, Tuple

import numpy as np
from gymnasium import spaces

from .config import EnvConfig
from .constants import AIRCRAFT_FEATURE_DIM, ENV_COMMAND_TYPES, GLOBAL_STATE_DIM


# Components whose values are flags or fractions in [0, 1].
UNIT_COMPONENTS = ("aircraft_mask", "conflict_matrix")


def observation_layout(max_aircraft: int) -> Dict[str, Tuple[Tuple[int, ...], type]]:
    """Shape and dtype of every observation component."""
    return {
        "aircraft": ((max_aircraft, AIRCRAFT_FEATURE_DIM), np.float32),
        "aircraft_mask": ((max_aircraft,), np.bool_),
        "global_state": ((GLOBAL_STATE_DIM,), np.float32),
        "conflict_matrix": ((max_aircraft, max_aircraft), np.float32),
    }


def create_observation_space(config: EnvConfig) -> spaces.Dict:
    """
    Create the observation space for ``config.max_aircraft`` slots.

    Aircraft features are left unbounded since traffic may wander past the
    boundary; the slot mask and conflict matrix lie in [0, 1].
    """
    components = {}
    for key, (shape, dtype) in observation_layout(config.max_aircraft).items():
        if key in UNIT_COMPONENTS:
            components[key] = spaces.Box(low=0, high=1, shape=shape, dtype=dtype)
        else:
            components[key] = spaces.Box(low=-np.inf, high=np.inf, shape=shape, dtype=dtype)
    return spaces.Dict(components)


def create_action_space(config: EnvConfig, runway_count: int, fix_count: int) -> spaces.Dict:
    """
    Create action space for the environment.

    ``aircraft_id == max_aircraft`` is the no-op slot. The runway and fix
    components index the airspace's runways and fixes in declaration order.

    Args:
        config: Environment configuration
        runway_count: Number of runways in the airspace
        fix_count: Number of fixes in the airspace

    Returns:
        Dict space containing aircraft selection and command parameters
    """
    return spaces.Dict({
        "aircraft_id": spaces.Discrete(config.max_aircraft + 1),  # +1 for "no action"
        "command_type": spaces.Discrete(len(ENV_COMMAND_TYPES)),
        "altitude": spaces.Discrete(len(config.altitude_values)),
        "heading": spaces.Discrete(len(config.heading_values)),
        "speed": spaces.Discrete(len(config.speed_values)),
        "runway": spaces.Discrete(max(runway_count, 1)),
        "fix": spaces.Discrete(max(fix_count, 1)),
    })


def validate_observation(obs: Dict[str, np.ndarray], max_aircraft: int) -> bool:
    """
    Check an observation against ``observation_layout``.

    Raises:
        ValueError: On a missing component, a wrong shape or a wrong dtype
    """
    for key, (shape, dtype) in observation_layout(max_aircraft).items():
        if key not in obs:
            raise ValueError(f"Missing observation key: {key}")
        value = obs[key]
        if value.shape != shape:
            raise ValueError(f"Invalid shape for {key}: expected {shape}, got {value.shape}")
        if value.dtype != dtype:
            raise ValueError(f"{key} must be {np.dtype(dtype)}, got {value.dtype}")
    return True
