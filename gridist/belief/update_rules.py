"""
Belief update rules.

A rule maps (prior, observed state) to per-cell free probabilities. Rules
are pure functions of their inputs, so repeating an update or reordering
observations cannot change the result. Both rules here are marginal
models: each cell carries its own probability and no joint consistency
across cells is maintained.
"""

import logging
import numpy as np
from abc import ABC, abstractmethod
from typing import Dict, Tuple, Any
from scipy.ndimage import correlate

logger = logging.getLogger(__name__)

UNOBSERVED = -1
FREE = 0
BLOCKED = 1

Region = Tuple[slice, slice]


class BeliefUpdateRule(ABC):

    name = "base"

    @property
    @abstractmethod
    def radius(self) -> int:
        """How far (Chebyshev) an observation can move other cells' probabilities."""

    @abstractmethod
    def compute(self, prior: np.ndarray, observed: np.ndarray, region: Region) -> np.ndarray:
        """
        Free probabilities for ``region`` given the full prior and observed arrays.

        Observed cells must come back as exactly 1.0 (free) or 0.0 (blocked).
        """

    def describe(self) -> Dict[str, Any]:
        return {'rule': self.name, 'radius': self.radius}

    @staticmethod
    def _pin_observed(probs: np.ndarray, observed: np.ndarray) -> np.ndarray:
        probs = probs.copy()
        probs[observed == FREE] = 1.0
        probs[observed == BLOCKED] = 0.0
        return probs


class IndependentCellRule(BeliefUpdateRule):
    """Unobserved cells keep their prior; observations affect only their own cell."""

    name = "independent"

    @property
    def radius(self) -> int:
        return 0

    def compute(self, prior: np.ndarray, observed: np.ndarray, region: Region) -> np.ndarray:
        return self._pin_observed(prior[region], observed[region])


class NeighborhoodSmoothingRule(BeliefUpdateRule):
    """
    Local smoothing of free probability around observations.

    Each unobserved cell gets the weighted mean of its prior (weight
    ``prior_weight``) and the free/blocked indicators of observed cells in
    the surrounding (2r+1)x(2r+1) window, weighted by 1 / Chebyshev distance.
    Observed blockages lower nearby probabilities, observed free space
    raises them.
    """

    name = "smoothing"

    def __init__(self, radius: int = 2, prior_weight: float = 2.0):
        if radius < 1:
            raise ValueError(f"radius must be >= 1, got {radius}")
        if prior_weight <= 0:
            raise ValueError(f"prior_weight must be > 0, got {prior_weight}")
        self._radius = int(radius)
        self.prior_weight = float(prior_weight)
        self.kernel = self._create_kernel()

    @property
    def radius(self) -> int:
        return self._radius

    def _create_kernel(self) -> np.ndarray:
        size = 2 * self._radius + 1
        kernel = np.zeros((size, size), dtype=np.float64)
        for r in range(size):
            for c in range(size):
                d = max(abs(r - self._radius), abs(c - self._radius))
                if d > 0:
                    kernel[r, c] = 1.0 / d
        return kernel

    def compute(self, prior: np.ndarray, observed: np.ndarray, region: Region) -> np.ndarray:
        rows, cols = region
        r = self._radius
        # Pad the region by r so correlation inside it sees every contributing cell.
        r0 = max(rows.start - r, 0)
        r1 = min(rows.stop + r, observed.shape[0])
        c0 = max(cols.start - r, 0)
        c1 = min(cols.stop + r, observed.shape[1])

        window = observed[r0:r1, c0:c1]
        free = (window == FREE).astype(np.float64)
        known = (window != UNOBSERVED).astype(np.float64)

        free_weight = correlate(free, self.kernel, mode='constant', cval=0.0)
        known_weight = correlate(known, self.kernel, mode='constant', cval=0.0)

        inner = (slice(rows.start - r0, rows.stop - r0), slice(cols.start - c0, cols.stop - c0))
        w0 = self.prior_weight
        probs = (w0 * prior[region] + free_weight[inner]) / (w0 + known_weight[inner])

        return self._pin_observed(np.clip(probs, 0.0, 1.0), observed[region])

    def describe(self) -> Dict[str, Any]:
        return {'rule': self.name, 'radius': self.radius, 'prior_weight': self.prior_weight}


def build_update_rule(config: Dict[str, Any]) -> BeliefUpdateRule:
    """Build the rule named by ``config['update_rule']``."""
    rule_name = config.get('update_rule', 'smoothing')

    if rule_name == 'independent':
        return IndependentCellRule()
    if rule_name == 'smoothing':
        return NeighborhoodSmoothingRule(
            radius=config.get('smoothing_radius', 2),
            prior_weight=config.get('prior_weight', 2.0),
        )

    raise ValueError(f"Unknown belief update rule: {rule_name}")
