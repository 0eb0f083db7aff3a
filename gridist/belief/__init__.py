"""
Belief module.
Per-cell free probabilities for unobserved cells and the expected costs derived from them.
"""

from gridist.belief.belief_model import BeliefModel, normalize_edge
from gridist.belief.cost_policies import (
    ExpectedCostPolicy,
    InverseProbabilityCost,
    LinearPenaltyCost,
    ThresholdCost,
    build_cost_policy,
)
from gridist.belief.priors import array_prior, build_prior, density_prior, uniform_prior
from gridist.belief.update_rules import (
    BeliefUpdateRule,
    IndependentCellRule,
    NeighborhoodSmoothingRule,
    build_update_rule,
)

__all__ = [
    "BeliefModel",
    "normalize_edge",
    "ExpectedCostPolicy",
    "InverseProbabilityCost",
    "LinearPenaltyCost",
    "ThresholdCost",
    "build_cost_policy",
    "array_prior",
    "build_prior",
    "density_prior",
    "uniform_prior",
    "BeliefUpdateRule",
    "IndependentCellRule",
    "NeighborhoodSmoothingRule",
    "build_update_rule",
]
