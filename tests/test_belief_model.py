"""Tests for the belief model, update rules, priors and cost policies"""

import os
import sys
import math
import unittest

import numpy as np
import pytest

sys.path.insert(0, os.path.join(os.path.dirname(__file__), ".."))

from gridist.belief.belief_model import BeliefModel
from gridist.belief.cost_policies import (
    InverseProbabilityCost,
    LinearPenaltyCost,
    ThresholdCost,
    build_cost_policy,
)
from gridist.belief.priors import array_prior, build_prior, density_prior, uniform_prior
from gridist.belief.update_rules import IndependentCellRule, NeighborhoodSmoothingRule, build_update_rule
from gridist.environment.grid_model import GridModel
from gridist.exceptions import InconsistentObservationError, InvalidPriorError, OutOfBoundsError
from gridist.types import INF, CellStatus, Observation, ObservedStatus

FREE = CellStatus.FREE
BLOCKED = CellStatus.BLOCKED


@pytest.fixture
def grid():
    return GridModel({"connectivity": 8}, blocked=np.zeros((7, 7), dtype=bool))


@pytest.fixture
def belief(grid):
    return BeliefModel({"prior": {"p_free": 0.5}}, grid)


class TestBeliefModel:

    def test_prior_and_initial_probabilities(self, belief):
        assert belief.prior_free((3, 3)) == 0.5
        assert belief.prob_free((3, 3)) == 0.5
        assert belief.observed_status((3, 3)) is ObservedStatus.UNOBSERVED

    def test_invalid_prior_rejected(self, grid):
        with pytest.raises(InvalidPriorError):
            BeliefModel({}, grid, prior=1.5)
        with pytest.raises(InvalidPriorError):
            BeliefModel({"prior": {"p_free": -0.1}}, grid)
        with pytest.raises(InvalidPriorError):
            BeliefModel({}, grid, prior=np.full((7, 7), np.nan))

    def test_observed_cells_are_pinned(self, belief):
        belief.update([Observation((1, 1), FREE), Observation((5, 5), BLOCKED)])
        assert belief.prob_free((1, 1)) == 1.0
        assert belief.prob_free((5, 5)) == 0.0
        assert belief.observed_status((5, 5)) is ObservedStatus.BLOCKED

    def test_update_accepts_pairs(self, belief):
        changed = belief.update([((2, 2), BLOCKED)])
        assert (2, 2) in changed
        assert belief.is_observed((2, 2))

    def test_update_is_idempotent(self, belief):
        observations = [Observation((3, 3), BLOCKED), Observation((3, 4), FREE)]
        first = belief.update(observations)
        probs = belief.probability_array()

        second = belief.update(observations)
        assert first
        assert second == set()
        np.testing.assert_array_equal(belief.probability_array(), probs)

    def test_update_is_order_independent(self, grid):
        observations = [
            Observation((1, 1), BLOCKED),
            Observation((1, 2), FREE),
            Observation((4, 4), BLOCKED),
            Observation((5, 1), FREE),
        ]
        one = BeliefModel({}, grid)
        other = BeliefModel({}, grid)

        one.update(observations)
        for observation in reversed(observations):
            other.update([observation])

        np.testing.assert_allclose(one.probability_array(), other.probability_array())

    def test_contradiction_raises_and_leaves_state(self, belief):
        belief.update([Observation((2, 2), FREE)])
        before = belief.probability_array()

        with pytest.raises(InconsistentObservationError) as excinfo:
            belief.update([Observation((4, 4), BLOCKED), Observation((2, 2), BLOCKED)])

        assert excinfo.value.cell == (2, 2)
        np.testing.assert_array_equal(belief.probability_array(), before)
        assert not belief.is_observed((4, 4))

    def test_contradiction_within_one_batch(self, belief):
        with pytest.raises(InconsistentObservationError):
            belief.update([Observation((2, 2), FREE), Observation((2, 2), BLOCKED)])

    def test_out_of_bounds(self, belief):
        with pytest.raises(OutOfBoundsError):
            belief.prob_free((7, 0))
        with pytest.raises(OutOfBoundsError):
            belief.update([Observation((-1, 0), FREE)])

    def test_smoothing_lowers_probability_near_blockage(self, belief):
        changed = belief.update([Observation((3, 3), BLOCKED)])
        assert belief.prob_free((3, 4)) < 0.5
        assert belief.prob_free((3, 5)) < 0.5
        # Farther neighbors move less
        assert belief.prob_free((3, 4)) < belief.prob_free((3, 5))
        # Outside the smoothing window nothing changes
        assert belief.prob_free((0, 0)) == 0.5
        assert (0, 0) not in changed

    def test_smoothing_raises_probability_near_free(self, belief):
        belief.update([Observation((3, 3), FREE)])
        assert belief.prob_free((3, 4)) > 0.5

    def test_expected_cost(self, grid):
        belief = BeliefModel({"update_rule": "independent"}, grid, prior=0.5)
        belief.update([Observation((0, 0), FREE), Observation((0, 1), FREE),
                       Observation((1, 1), BLOCKED)])

        assert belief.expected_cost((0, 0), (0, 1)) == 1.0
        assert belief.expected_cost((0, 0), (1, 1)) == INF
        # Observed free (1.0) times unobserved (0.5)
        assert belief.expected_cost((0, 1), (0, 2)) == pytest.approx(2.0)
        # Both unobserved, diagonal: sqrt(2) / 0.25
        assert belief.expected_cost((2, 2), (3, 3)) == pytest.approx(4 * math.sqrt(2))

    def test_expected_cost_never_below_base(self, belief, grid):
        belief.update([Observation((3, 3), FREE), Observation((2, 4), BLOCKED)])
        for cell in [(2, 2), (3, 3), (4, 4), (1, 5)]:
            for neighbor in grid.neighbors(cell):
                assert belief.expected_cost(cell, neighbor) >= grid.traversal_cost(cell, neighbor)

    @pytest.mark.parametrize("policy", ["inverse", "linear", "threshold", "freespace"])
    def test_observation_matching_prior_is_reported(self, grid, policy):
        """Probability stays put but the observed status, and so the cost, changes"""
        prior = np.full((7, 7), 0.5)
        prior[2, 2] = 0.0
        prior[4, 4] = 1.0
        belief = BeliefModel({"update_rule": "independent", "cost_policy": policy}, grid, prior=prior)

        changed = belief.update([Observation((2, 2), BLOCKED), Observation((4, 4), FREE)])

        assert changed == {(2, 2), (4, 4)}
        assert belief.prob_free((2, 2)) == 0.0
        for neighbor in grid.neighbors((2, 2)):
            assert belief.expected_cost((2, 2), neighbor) == INF

    def test_changed_edges(self, belief):
        edges = belief.changed_edges({(0, 0)})
        assert edges == {((0, 0), (0, 1)), ((0, 0), (1, 0)), ((0, 0), (1, 1))}

    def test_statistics(self, belief):
        belief.update([Observation((0, 0), FREE)])
        belief.update([Observation((0, 0), FREE)])
        stats = belief.get_statistics()
        assert stats["updates"] == 2
        assert stats["observations_applied"] == 1
        assert stats["observations_ignored"] == 1
        assert stats["unobserved_cells"] == 48


class TestUpdateRules(unittest.TestCase):

    def setUp(self):
        self.prior = np.full((5, 5), 0.5)
        self.observed = np.full((5, 5), -1, dtype=np.int8)
        self.observed[2, 2] = 1
        self.full = (slice(0, 5), slice(0, 5))

    def test_independent_rule_keeps_prior(self):
        probs = IndependentCellRule().compute(self.prior, self.observed, self.full)
        self.assertEqual(probs[2, 2], 0.0)
        self.assertEqual(probs[0, 0], 0.5)
        self.assertEqual(IndependentCellRule().radius, 0)

    def test_smoothing_rule_weights(self):
        rule = NeighborhoodSmoothingRule(radius=1, prior_weight=1.0)
        probs = rule.compute(self.prior, self.observed, self.full)
        # One blocked neighbor at distance 1: (1 * 0.5 + 0) / (1 + 1)
        self.assertAlmostEqual(probs[2, 3], 0.25)
        self.assertAlmostEqual(probs[0, 0], 0.5)

    def test_smoothing_window_matches_full_computation(self):
        rule = NeighborhoodSmoothingRule(radius=2)
        window = (slice(1, 4), slice(0, 3))
        full = rule.compute(self.prior, self.observed, self.full)
        partial = rule.compute(self.prior, self.observed, window)
        np.testing.assert_allclose(partial, full[window])

    def test_invalid_smoothing_parameters(self):
        with self.assertRaises(ValueError):
            NeighborhoodSmoothingRule(radius=0)
        with self.assertRaises(ValueError):
            NeighborhoodSmoothingRule(prior_weight=0.0)

    def test_build_update_rule(self):
        self.assertIsInstance(build_update_rule({"update_rule": "independent"}), IndependentCellRule)
        rule = build_update_rule({"smoothing_radius": 3})
        self.assertIsInstance(rule, NeighborhoodSmoothingRule)
        self.assertEqual(rule.radius, 3)
        with self.assertRaises(ValueError):
            build_update_rule({"update_rule": "bayesian"})


class TestCostPolicies:

    @pytest.mark.parametrize("policy", [
        InverseProbabilityCost(),
        InverseProbabilityCost(min_probability=0.05),
        LinearPenaltyCost(penalty=5.0),
        ThresholdCost(threshold=0.3),
        ThresholdCost(threshold=0.0),
    ])
    def test_policy_contract(self, policy):
        """Exact base at p=1, never below base, non-increasing in p"""
        base = 1.5
        assert policy.cost(base, 1.0) == base

        probabilities = np.linspace(0.0, 1.0, 21)
        costs = [policy.cost(base, float(p)) for p in probabilities]
        assert all(c >= base for c in costs)
        assert all(a >= b for a, b in zip(costs, costs[1:]))

    def test_inverse_cost(self):
        policy = InverseProbabilityCost(min_probability=0.1)
        assert policy.cost(1.0, 0.5) == pytest.approx(2.0)
        assert policy.cost(1.0, 0.05) == INF
        assert InverseProbabilityCost().cost(1.0, 0.0) == INF

    def test_linear_cost_is_finite(self):
        assert LinearPenaltyCost(penalty=10.0).cost(1.0, 0.0) == pytest.approx(11.0)

    def test_freespace(self):
        policy = build_cost_policy({"cost_policy": "freespace"})
        assert policy.cost(1.0, 0.01) == 1.0

    def test_unknown_policy(self):
        with pytest.raises(ValueError):
            build_cost_policy({"cost_policy": "optimistic"})


class TestPriors:

    def test_uniform_prior(self):
        prior = uniform_prior((3, 4), 0.7)
        assert prior.shape == (3, 4)
        assert np.all(prior == 0.7)

    def test_array_prior_shape_mismatch(self):
        with pytest.raises(InvalidPriorError):
            array_prior(np.full((2, 2), 0.5), (3, 3))

    def test_density_prior(self):
        grids = [np.array([[True, False], [False, False]]),
                 np.array([[True, True], [False, False]])]
        scalar = density_prior(grids, (4, 4))
        assert scalar.shape == (4, 4)
        assert scalar[0, 0] == pytest.approx(5 / 8)

        per_cell = density_prior(grids, (2, 2), per_cell=True)
        np.testing.assert_allclose(per_cell, [[0.0, 0.5], [1.0, 1.0]])

    def test_density_prior_needs_grids(self):
        with pytest.raises(InvalidPriorError):
            density_prior([], (2, 2))

    def test_build_prior_explicit_wins(self):
        prior = build_prior({"prior": {"p_free": 0.2}}, (2, 2), prior=0.9)
        assert np.all(prior == 0.9)

    def test_build_prior_unknown_type(self):
        with pytest.raises(InvalidPriorError):
            build_prior({"prior": {"type": "learned"}}, (2, 2))


if __name__ == "__main__":
    unittest.main()
