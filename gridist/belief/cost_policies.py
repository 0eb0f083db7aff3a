"""
Expected-cost policies.

Map an edge's base cost and the probability that the edge is traversable
to an expected cost. Every policy is monotone non-increasing in the
probability, returns exactly the base cost at probability 1, and never
returns less than the base cost, which keeps distance heuristics admissible.
"""

import logging
from abc import ABC, abstractmethod
from typing import Dict, Any

from gridist.types import INF

logger = logging.getLogger(__name__)


class ExpectedCostPolicy(ABC):

    name = "base"

    @abstractmethod
    def cost(self, base_cost: float, prob_free: float) -> float:
        """Expected cost of an edge with ``base_cost`` traversable with ``prob_free``."""

    def describe(self) -> Dict[str, Any]:
        return {'policy': self.name}


class InverseProbabilityCost(ExpectedCostPolicy):
    """base / p, infinite below ``min_probability``."""

    name = "inverse"

    def __init__(self, min_probability: float = 0.0):
        if not 0.0 <= min_probability <= 1.0:
            raise ValueError(f"min_probability must lie in [0, 1], got {min_probability}")
        self.min_probability = min_probability

    def cost(self, base_cost: float, prob_free: float) -> float:
        if prob_free <= 0.0 or prob_free < self.min_probability:
            return INF
        if prob_free >= 1.0:
            return base_cost
        return base_cost / prob_free

    def describe(self) -> Dict[str, Any]:
        return {'policy': self.name, 'min_probability': self.min_probability}


class LinearPenaltyCost(ExpectedCostPolicy):
    """base * (1 + penalty * (1 - p)). Finite everywhere."""

    name = "linear"

    def __init__(self, penalty: float = 10.0):
        if penalty < 0:
            raise ValueError(f"penalty must be >= 0, got {penalty}")
        self.penalty = penalty

    def cost(self, base_cost: float, prob_free: float) -> float:
        p = min(max(prob_free, 0.0), 1.0)
        return base_cost * (1.0 + self.penalty * (1.0 - p))

    def describe(self) -> Dict[str, Any]:
        return {'policy': self.name, 'penalty': self.penalty}


class ThresholdCost(ExpectedCostPolicy):
    """
    base if p >= threshold, else infinite.

    threshold 0 treats every unobserved cell as free (freespace assumption).
    """

    name = "threshold"

    def __init__(self, threshold: float = 0.5):
        if not 0.0 <= threshold <= 1.0:
            raise ValueError(f"threshold must lie in [0, 1], got {threshold}")
        self.threshold = threshold

    def cost(self, base_cost: float, prob_free: float) -> float:
        if prob_free >= self.threshold:
            return base_cost
        return INF

    def describe(self) -> Dict[str, Any]:
        return {'policy': self.name, 'threshold': self.threshold}


def build_cost_policy(config: Dict[str, Any]) -> ExpectedCostPolicy:
    """Build the policy named by ``config['cost_policy']``."""
    policy_name = config.get('cost_policy', 'inverse')

    if policy_name == 'inverse':
        return InverseProbabilityCost(config.get('min_probability', 0.0))
    if policy_name == 'linear':
        return LinearPenaltyCost(config.get('penalty', 10.0))
    if policy_name == 'threshold':
        return ThresholdCost(config.get('threshold', 0.5))
    if policy_name == 'freespace':
        return ThresholdCost(0.0)

    raise ValueError(f"Unknown cost policy: {policy_name}")
