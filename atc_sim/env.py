"""
Gymnasium environment over one traffic session.

Agent actions are rendered into ordinary operator command lines and sent
through the controller's command engine, so agents and human operators
share one instruction path. The reward is the score change over each
action interval.
"""

import logging
from typing import Any, Dict, List, Optional, Tuple

import gymnasium as gym
import numpy as np

from .aircraft import Aircraft, AircraftPerformance
from .airspace import Airspace, default_airspace
from .config import SimulationConfig
from .constants import AIRCRAFT_FEATURE_DIM, ENV_COMMAND_TYPES, CommandType
from .controller import TrafficController
from .physics import heading_vector
from .spaces import create_action_space, create_observation_space


logger = logging.getLogger(__name__)


class AirspaceEnv(gym.Env):
    """
    Single-agent environment controlling every aircraft in one session.

    Observations are padded to ``config.env.max_aircraft`` slots; the
    ``aircraft_id`` action component indexes those slots and its last value
    means "no command this step".
    """

    metadata = {"render_modes": []}

    def __init__(
        self,
        config: Optional[SimulationConfig] = None,
        airspace: Optional[Airspace] = None,
        aircraft_types: Optional[Dict[str, AircraftPerformance]] = None,
    ):
        super().__init__()
        self.config = config or SimulationConfig()
        self.airspace = airspace or default_airspace()
        self.aircraft_types = aircraft_types
        self.env_config = self.config.env
        self.max_aircraft = self.env_config.max_aircraft

        self.runway_names = [runway.name for runway in self.airspace.runways]
        self.fix_names = list(self.airspace.fixes)

        self.observation_space = create_observation_space(self.env_config)
        self.action_space = create_action_space(
            self.env_config, len(self.runway_names), len(self.fix_names))

        self.controller: Optional[TrafficController] = None
        self.current_step = 0

    def reset(
        self, seed: Optional[int] = None, options: Optional[dict] = None
    ) -> Tuple[Dict[str, np.ndarray], Dict[str, Any]]:
        """Start a fresh session seeded from the environment's generator."""
        super().reset(seed=seed)

        self.controller = TrafficController(
            airspace=self.airspace,
            config=self.config,
            rng=self.np_random,
            aircraft_types=self.aircraft_types,
        )
        self.controller.start()
        self.current_step = 0

        return self._get_observation(), self._get_info(command=None, lines=[])

    def step(self, action: Dict[str, int]) -> Tuple[Dict[str, np.ndarray], float, bool, bool, Dict[str, Any]]:
        """Apply one action, then advance the session by the action interval."""
        if self.controller is None:
            raise RuntimeError("Call reset() before step()")

        prev_score = self.controller.score

        command = self.build_command(action)
        lines = self.controller.execute(command) if command else []

        self.controller.advance(self.env_config.action_interval)
        self.current_step += 1

        reward = float(self.controller.score - prev_score)
        terminated = False
        truncated = self.current_step * self.env_config.action_interval >= self.env_config.episode_length

        return self._get_observation(), reward, terminated, truncated, self._get_info(command, lines)

    def build_command(self, action: Dict[str, int]) -> Optional[str]:
        """
        Render an action as an operator command line.

        Returns:
            Command string, or None for the no-op slot or an empty slot
        """
        slot = int(action["aircraft_id"])
        visible = self.visible_aircraft()
        if slot >= len(visible):
            return None

        aircraft = visible[slot]
        command_type = ENV_COMMAND_TYPES[int(action["command_type"])]
        callsign = aircraft.callsign

        if command_type == CommandType.ALTITUDE:
            return f"{callsign} C {self.env_config.altitude_values[int(action['altitude'])]}"
        elif command_type == CommandType.HEADING:
            return f"{callsign} C {self.env_config.heading_values[int(action['heading'])]:03d}"
        elif command_type == CommandType.SPEED:
            return f"{callsign} S {self.env_config.speed_values[int(action['speed'])]}"
        elif command_type == CommandType.LAND:
            if not self.runway_names:
                return None
            return f"{callsign} L {self.runway_names[int(action['runway']) % len(self.runway_names)]}"
        elif command_type == CommandType.DIRECT:
            if not self.fix_names:
                return None
            return f"{callsign} C {self.fix_names[int(action['fix']) % len(self.fix_names)]}"
        elif command_type == CommandType.TAKEOFF:
            return f"{callsign} T"

        logger.debug(f"No command mapping for {command_type}")
        return None

    def visible_aircraft(self) -> List[Aircraft]:
        """Aircraft bound to observation slots, nearest to the airspace center first."""
        ordered = sorted(self.controller.aircraft, key=lambda ac: ac.distance_from_center())
        return ordered[:self.max_aircraft]

    def _get_observation(self) -> Dict[str, np.ndarray]:
        controller = self.controller
        visible = self.visible_aircraft()

        features = np.zeros((self.max_aircraft, AIRCRAFT_FEATURE_DIM), dtype=np.float32)
        mask = np.zeros(self.max_aircraft, dtype=np.bool_)
        for i, ac in enumerate(visible):
            features[i] = self._aircraft_features(ac)
            mask[i] = True

        conflicts = np.zeros((self.max_aircraft, self.max_aircraft), dtype=np.float32)
        n = len(visible)
        if n:
            conflicts[:n, :n] = controller.separation.conflict_matrix(visible)

        global_state = np.array([
            controller.time_elapsed / self.env_config.episode_length,
            len(controller.aircraft) / self.max_aircraft,
            controller.score / 100.0,
            controller.last_report.violation_count / max(len(controller.aircraft), 1),
        ], dtype=np.float32)

        return {
            "aircraft": features,
            "aircraft_mask": mask,
            "global_state": global_state,
            "conflict_matrix": conflicts,
        }

    def _aircraft_features(self, ac: Aircraft) -> np.ndarray:
        radius = self.controller.boundary_radius
        east, north = heading_vector(ac.heading)
        return np.array([
            ac.x / radius,
            ac.y / radius,
            ac.altitude / 100.0,
            ac.speed / 300.0,
            east,
            north,
            ac.target_altitude / 100.0,
            float(ac.is_arrival),
            float(ac.is_on_ground),
            float(ac.violation),
            float(ac.nav_fix is not None),
            float(ac.landing_runway is not None),
        ], dtype=np.float32)

    def _get_info(self, command: Optional[str], lines) -> Dict[str, Any]:
        controller = self.controller
        return {
            "score": controller.score,
            "time": controller.time_elapsed,
            "aircraft_count": len(controller.aircraft),
            "violation_count": controller.last_report.violation_count,
            "command": command,
            "log": list(lines),
            "metrics": controller.metrics.to_dict(),
        }

    def render(self):
        """Rendering is left to the display layer."""
        return None
