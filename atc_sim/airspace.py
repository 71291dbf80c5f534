"""
Airspace geometry module.

Defines runways, fixes and the read-only airspace layout supplied once per
session, plus the loader that normalizes the supported layout formats.
"""

import json
import logging
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Dict, List, Optional, Tuple, Union

import numpy as np
import yaml

from .constants import ALTITUDE_UNIT_FT
from .exceptions import AirspaceLoadError
from .physics import heading_vector, normalize_heading


logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class Fix:
    """Named waypoint used for direct-to navigation."""
    name: str
    x: float
    y: float

    @property
    def position(self) -> Tuple[float, float]:
        return self.x, self.y


@dataclass(frozen=True)
class Runway:
    """
    Runway geometry.

    Attributes:
        name: Runway designator (e.g. "27R")
        heading: Landing/takeoff heading in degrees
        x, y: Threshold point
        end_x, end_y: Far end of the runway
    """
    name: str
    heading: float
    x: float
    y: float
    end_x: float
    end_y: float

    @classmethod
    def from_length(cls, name: str, heading: float, threshold: Tuple[float, float],
                    length: float) -> 'Runway':
        """Build a runway whose end lies `length` units along `heading` from the threshold."""
        east, north = heading_vector(heading)
        x, y = threshold
        return cls(name, heading, x, y, x + east * length, y + north * length)

    @property
    def threshold(self) -> Tuple[float, float]:
        return self.x, self.y

    @property
    def end(self) -> Tuple[float, float]:
        return self.end_x, self.end_y

    @property
    def length(self) -> float:
        return float(np.hypot(self.end_x - self.x, self.end_y - self.y))


@dataclass
class Airspace:
    """
    Read-only airspace layout for one session.

    Attributes:
        name: Airport name
        code: Airport identifier
        elevation: Field elevation in feet MSL
        runways: Runways in declaration order
        fixes: Fixes keyed by upper-case name
        boundary_radius: Radius of the controlled airspace around (0, 0);
            None defers to the session configuration
    """
    name: str = "Unnamed"
    code: str = ""
    elevation: float = 0.0
    runways: List[Runway] = field(default_factory=list)
    fixes: Dict[str, Fix] = field(default_factory=dict)
    boundary_radius: Optional[float] = None

    @property
    def field_elevation(self) -> float:
        """Field elevation in altitude units (hundreds of feet)."""
        return self.elevation / ALTITUDE_UNIT_FT

    def get_runway(self, name: str) -> Optional[Runway]:
        """Find a runway by name."""
        name = name.upper()
        for runway in self.runways:
            if runway.name == name:
                return runway
        return None

    def get_fix(self, name: str) -> Optional[Fix]:
        """Find a fix by name."""
        return self.fixes.get(name.upper())

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> 'Airspace':
        """
        Build an airspace from a layout mapping.

        Args:
            data: Layout with ``runways``, optional ``fixes``, ``elevation``,
                ``name``, ``code`` and ``boundary_radius``

        Returns:
            Normalized Airspace

        Raises:
            AirspaceLoadError: If the layout is unusable
        """
        if not isinstance(data, dict):
            raise AirspaceLoadError("Airspace layout must be a mapping")

        raw_runways = data.get("runways")
        if raw_runways is None:
            raise AirspaceLoadError("Airspace layout has no runways")

        runways = [_parse_runway(raw) for raw in raw_runways]

        fixes = {}
        for fix_name, point in (data.get("fixes") or {}).items():
            try:
                fixes[fix_name.upper()] = Fix(fix_name.upper(), float(point["x"]), float(point["y"]))
            except (KeyError, TypeError, ValueError) as e:
                raise AirspaceLoadError(f"Invalid fix {fix_name!r}: {e}") from e

        return cls(
            name=data.get("name", "Unnamed"),
            code=data.get("code", ""),
            elevation=float(data.get("elevation", 0.0)),
            runways=runways,
            fixes=fixes,
            boundary_radius=_optional_float(data.get("boundary_radius")),
        )


def _optional_float(value: Any) -> Optional[float]:
    return None if value is None else float(value)


def _point(value: Any) -> Tuple[float, float]:
    return float(value["x"]), float(value["y"])


def _parse_runway(raw: Dict[str, Any]) -> Runway:
    if not isinstance(raw, dict):
        raise AirspaceLoadError(f"Invalid runway entry: {raw!r}")

    name = raw.get("name")
    if not name and raw.get("id"):
        name = str(raw["id"])
        if name.startswith("RWY_"):
            name = name[len("RWY_"):]
    name = str(name or "UNK").upper()

    if raw.get("heading") is None:
        raise AirspaceLoadError(f"Runway {name} has no heading")

    try:
        heading = normalize_heading(float(raw["heading"]))

        if raw.get("start") is not None:
            threshold = _point(raw["start"])
        elif raw.get("threshold") is not None:
            threshold = _point(raw["threshold"])
        else:
            threshold = float(raw.get("x", 0.0)), float(raw.get("y", 0.0))

        if raw.get("end") is not None:
            end = _point(raw["end"])
        elif raw.get("endX") is not None or raw.get("endY") is not None:
            end = float(raw.get("endX", 0.0)), float(raw.get("endY", 0.0))
        elif raw.get("rectangle"):
            end = _far_end(threshold, heading, [_point(p) for p in raw["rectangle"]])
        elif raw.get("length") is not None:
            return Runway.from_length(name, heading, threshold, float(raw["length"]))
        else:
            end = threshold
    except (KeyError, TypeError, ValueError) as e:
        raise AirspaceLoadError(f"Invalid geometry for runway {name}: {e}") from e

    return Runway(name, heading, threshold[0], threshold[1], end[0], end[1])


def _far_end(threshold: Tuple[float, float], heading: float,
             corners: List[Tuple[float, float]]) -> Tuple[float, float]:
    """Project the polygon onto the runway axis and return the farthest point along it."""
    east, north = heading_vector(heading)
    offsets = np.asarray(corners, dtype=float) - np.asarray(threshold, dtype=float)
    reach = max(float(np.max(offsets @ np.array([east, north]))), 0.0)
    return threshold[0] + east * reach, threshold[1] + north * reach


def load_airspace(path: Union[str, Path]) -> Airspace:
    """
    Load an airspace layout from a JSON or YAML file.

    Args:
        path: Layout file (.json, .yaml or .yml)

    Returns:
        Normalized Airspace

    Raises:
        AirspaceLoadError: If the file cannot be read or parsed
    """
    path = Path(path)
    if not path.exists():
        raise AirspaceLoadError(f"Airspace file not found: {path}")

    try:
        with open(path, 'r') as f:
            if path.suffix.lower() == ".json":
                data = json.load(f)
            else:
                data = yaml.safe_load(f)
    except (OSError, json.JSONDecodeError, yaml.YAMLError) as e:
        raise AirspaceLoadError(f"Failed to read airspace {path}: {e}") from e

    airspace = Airspace.from_dict(data)
    logger.info(f"Loaded airspace {airspace.name}: {len(airspace.runways)} runways, "
                f"{len(airspace.fixes)} fixes")
    return airspace


DEFAULT_LAYOUT: Dict[str, Any] = {
    "name": "Chicago O'Hare",
    "code": "ORD",
    "elevation": 668,
    "runways": [
        {"name": "27R", "x": 6, "y": 1.5, "heading": 270, "endX": -6, "endY": 1.5},
        {"name": "27L", "x": 6, "y": -1.5, "heading": 270, "endX": -6, "endY": -1.5},
        {"name": "09L", "x": -6, "y": 1.5, "heading": 90, "endX": 6, "endY": 1.5},
        {"name": "09R", "x": -6, "y": -1.5, "heading": 90, "endX": 6, "endY": -1.5},
        {"name": "18C", "x": 0, "y": 6, "heading": 180, "endX": 0, "endY": -6},
        {"name": "36C", "x": 0, "y": -6, "heading": 360, "endX": 0, "endY": 6},
        {"name": "18L", "x": -4, "y": 6, "heading": 180, "endX": -4, "endY": -6},
        {"name": "36R", "x": -4, "y": -6, "heading": 360, "endX": -4, "endY": 6},
        {"name": "18R", "x": 4, "y": 6, "heading": 180, "endX": 4, "endY": -6},
        {"name": "36L", "x": 4, "y": -6, "heading": 360, "endX": 4, "endY": 6},
        {"name": "04", "x": -4, "y": -4, "heading": 45, "endX": 4, "endY": 4},
        {"name": "22", "x": 4, "y": 4, "heading": 225, "endX": -4, "endY": -4},
        {"name": "14", "x": -4, "y": 4, "heading": 135, "endX": 4, "endY": -4},
        {"name": "32", "x": 4, "y": -4, "heading": 315, "endX": -4, "endY": 4},
    ],
    "fixes": {
        "FONTI": {"x": 20, "y": 30},
        "OBK": {"x": 10, "y": -20},
        "DPA": {"x": -30, "y": 10},
        "VANA": {"x": -20, "y": -30},
        "KEAN": {"x": 24, "y": 10},
        "NIL": {"x": -24, "y": -10},
    },
}


def default_airspace() -> Airspace:
    """Built-in layout used when no airspace file is supplied."""
    return Airspace.from_dict(DEFAULT_LAYOUT)
