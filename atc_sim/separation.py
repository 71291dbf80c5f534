"""
Separation monitoring.

Scans every pair of airborne aircraft each tick and flags pairs that are
closer than the horizontal minimum and the vertical minimum at once.
"""

import logging
from dataclasses import dataclass, field
from typing import List, Optional, Sequence, Tuple

import numpy as np

from .aircraft import Aircraft
from .config import SeparationConfig


logger = logging.getLogger(__name__)


@dataclass
class SeparationViolation:
    """Record of a separation violation in one tick."""
    aircraft1: str
    aircraft2: str
    horizontal_separation: float
    vertical_separation: float


@dataclass
class SeparationReport:
    """Result of one separation scan."""
    violations: List[SeparationViolation] = field(default_factory=list)
    penalty: float = 0.0

    @property
    def violation_count(self) -> int:
        return len(self.violations)

    def involves(self, callsign: str) -> bool:
        return any(callsign in (v.aircraft1, v.aircraft2) for v in self.violations)


def _pairwise_separation(aircraft: Sequence[Aircraft]) -> Tuple[np.ndarray, np.ndarray]:
    """
    Compute horizontal and vertical separation matrices with broadcasting.

    Returns:
        Tuple of (horizontal, vertical) matrices of shape (n, n)
    """
    positions = np.array([[ac.x, ac.y, ac.altitude] for ac in aircraft], dtype=float)
    deltas = positions[:, None, :2] - positions[None, :, :2]
    horizontal = np.sqrt(np.sum(deltas ** 2, axis=-1))
    vertical = np.abs(positions[:, None, 2] - positions[None, :, 2])
    return horizontal, vertical


class SeparationMonitor:
    """
    Flags proximity violations between airborne aircraft.

    Evaluated fresh every tick with no hysteresis: an aircraft's
    ``violation`` flag is set exactly when it is in violation with at least
    one other airborne aircraft in that tick. Each violating pair drains
    ``penalty_per_tick`` from the score for every tick it persists.
    """

    def __init__(self, config: Optional[SeparationConfig] = None):
        self.config = config or SeparationConfig()

    def conflict_matrix(self, aircraft: Sequence[Aircraft]) -> np.ndarray:
        """
        Boolean matrix of violating pairs.

        Pairs involving an aircraft on the ground are never in violation.
        """
        n = len(aircraft)
        if n < 2:
            return np.zeros((n, n), dtype=bool)

        horizontal, vertical = _pairwise_separation(aircraft)
        airborne = np.array([not ac.is_on_ground for ac in aircraft], dtype=bool)

        matrix = (
            (horizontal < self.config.horizontal)
            & (vertical < self.config.vertical)
            & airborne[:, None]
            & airborne[None, :]
        )
        np.fill_diagonal(matrix, False)
        return matrix

    def scan(self, aircraft: Sequence[Aircraft]) -> SeparationReport:
        """
        Recompute violation flags for all aircraft.

        Args:
            aircraft: Live aircraft, already updated for this tick

        Returns:
            SeparationReport with the violating pairs and the score penalty
        """
        aircraft = list(aircraft)
        report = SeparationReport()

        matrix = self.conflict_matrix(aircraft)
        flagged = matrix.any(axis=1) if len(aircraft) else np.zeros(0, dtype=bool)
        for ac, is_violating in zip(aircraft, flagged):
            ac.violation = bool(is_violating)

        if not matrix.any():
            return report

        horizontal, vertical = _pairwise_separation(aircraft)
        for i, j in zip(*np.nonzero(np.triu(matrix, k=1))):
            report.violations.append(SeparationViolation(
                aircraft1=aircraft[i].callsign,
                aircraft2=aircraft[j].callsign,
                horizontal_separation=float(horizontal[i, j]),
                vertical_separation=float(vertical[i, j]),
            ))

        report.penalty = self.config.penalty_per_tick * len(report.violations)
        logger.debug(f"Separation scan: {len(report.violations)} violating pairs")
        return report
