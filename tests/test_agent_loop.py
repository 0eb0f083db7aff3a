"""Tests for the online agent loop and run context"""

import os
import sys
import math
import unittest
from unittest.mock import patch

import numpy as np
import pytest

sys.path.insert(0, os.path.join(os.path.dirname(__file__), ".."))

from gridist.belief.cost_policies import InverseProbabilityCost
from gridist.belief.update_rules import IndependentCellRule
from gridist.environment.grid_model import GridModel
from gridist.exceptions import InconsistentObservationError, OutOfBoundsError
from gridist.planning.astar_planner import AlwaysAStarAgent, RepeatedAStarAgent
from gridist.planning.incremental_search import SearchState
from gridist.planning.integration.agent_loop import AgentLoop, BaselineLoop, RunResult, RunStatus
from gridist.planning.integration.run_context import RunContext
from gridist.types import CellStatus, Observation

CONFIG = {"belief": {}, "search": {}, "agent": {"sensor_radius": 1}}


class TestAgentLoop:

    def test_full_visibility_reaches_goal_through_gap(self, wall_grid):
        wall_grid.reveal_all()
        context = RunContext(CONFIG, wall_grid, (0, 0), (4, 4))
        result = AgentLoop(CONFIG["agent"], context).run()

        assert result.status is RunStatus.GOAL_REACHED
        assert result.success
        assert len(result.path) - 1 == 8
        assert result.path_cost == pytest.approx(8.0)
        assert (2, 2) in result.path
        assert result.replan_count == 0

    def test_unobserved_gap_discovered(self, wall_grid):
        cells = [(r, c) for r in range(5) for c in range(5) if (r, c) != (2, 2)]
        wall_grid.observe_many(cells)

        context = RunContext(CONFIG, wall_grid, (0, 0), (4, 4), prior=0.1,
                             update_rule=IndependentCellRule(),
                             cost_policy=InverseProbabilityCost())
        loop = AgentLoop(CONFIG["agent"], context)
        result = loop.run()

        assert result.status is RunStatus.GOAL_REACHED
        assert result.path_cost == pytest.approx(8.0)
        assert result.steps == 8
        assert result.replan_count >= 1
        assert result.cells_expanded > 0
        assert context.search.state is SearchState.GOAL_REACHED

    def test_enclosed_goal_is_unreachable(self):
        blocked = np.zeros((6, 6), dtype=bool)
        blocked[4, 4] = blocked[4, 5] = blocked[5, 4] = True
        grid = GridModel({"connectivity": 8}, blocked=blocked)

        context = RunContext(CONFIG, grid, (0, 0), (5, 5))
        result = AgentLoop(CONFIG["agent"], context).run()

        assert result.status is RunStatus.GOAL_UNREACHABLE
        assert not result.success
        assert result.path[-1] != (5, 5)

    def test_unknown_map_reaches_goal(self, random_blocked):
        grid = GridModel({"connectivity": 8}, blocked=random_blocked)
        assert grid.has_path((0, 0), (14, 14))

        context = RunContext(CONFIG, grid, (0, 0), (14, 14))
        result = AgentLoop(CONFIG["agent"], context).run()

        assert result.status is RunStatus.GOAL_REACHED
        assert result.path[0] == (0, 0)
        assert result.path[-1] == (14, 14)
        # Every move is between adjacent free cells
        for a, b in zip(result.path, result.path[1:]):
            assert max(abs(a[0] - b[0]), abs(a[1] - b[1])) == 1
            assert grid.is_passable(b)

    def test_radius_zero_sensor_bumps(self, wall_grid):
        """With no lookahead the agent discovers the wall by walking into it"""
        config = {"agent": {"sensor_radius": 0}}
        # The straight line along row 0 runs into the wall at (0, 2)
        context = RunContext(config, wall_grid, (0, 0), (0, 4))
        loop = AgentLoop(config["agent"], context)
        result = loop.run()

        assert result.status is RunStatus.GOAL_REACHED
        assert loop.get_statistics()["bumps"] >= 1
        assert (0, 2) not in result.path

    def test_step_limit(self, wall_grid):
        context = RunContext(CONFIG, wall_grid, (0, 0), (4, 4))
        result = AgentLoop({"max_steps": 2}, context).run()

        assert result.status is RunStatus.STEP_LIMIT
        assert result.steps == 2

    def test_abort_between_steps(self, wall_grid):
        context = RunContext(CONFIG, wall_grid, (0, 0), (4, 4))
        loop = AgentLoop(CONFIG["agent"], context)

        assert loop.step() is None
        loop.abort()
        assert loop.step() is RunStatus.ABORTED
        assert loop.result().steps == 1
        # Terminal status sticks
        assert loop.step() is RunStatus.ABORTED

    def test_start_at_goal(self, wall_grid):
        context = RunContext(CONFIG, wall_grid, (3, 3), (3, 3))
        result = AgentLoop(CONFIG["agent"], context).run()
        assert result.status is RunStatus.GOAL_REACHED
        assert result.steps == 0
        assert result.path_cost == 0.0

    def test_inconsistent_observation_aborts(self, wall_grid):
        context = RunContext(CONFIG, wall_grid, (0, 0), (4, 4))
        loop = AgentLoop(CONFIG["agent"], context)

        contradiction = [Observation((0, 0), CellStatus.BLOCKED)]
        with patch.object(context.sensor, "sense", return_value=contradiction):
            with pytest.raises(InconsistentObservationError):
                loop.step()

        assert loop.finished
        assert loop.result().status is RunStatus.ABORTED

    def test_result_before_finish(self, wall_grid):
        loop = AgentLoop({}, RunContext(CONFIG, wall_grid, (0, 0), (4, 4)))
        with pytest.raises(RuntimeError):
            loop.result()

    def test_statistics(self, wall_grid):
        loop = AgentLoop({}, RunContext(CONFIG, wall_grid, (0, 0), (4, 4)))
        loop.run()
        stats = loop.get_statistics()
        assert stats["status"] == "goal_reached"
        assert stats["search"]["state"] == "goal_reached"
        assert stats["observations"] > 0


POLICIES = ["inverse", "linear", "threshold", "freespace"]


class TestObservedBlockage:
    """Observations that leave a probability unchanged still reach the search"""

    @pytest.mark.parametrize("policy", ["linear", "freespace"])
    def test_pinned_blocked_cell_is_not_entered(self, policy):
        grid = GridModel({"connectivity": 4}, blocked=np.array([[False, True, False]]))
        config = {"belief": {"update_rule": "independent", "cost_policy": policy},
                  "agent": {"sensor_radius": 0}}
        context = RunContext(config, grid, (0, 0), (0, 2), prior=np.array([[1.0, 0.0, 1.0]]))
        result = AgentLoop(config["agent"], context).run()

        assert result.status is RunStatus.GOAL_UNREACHABLE
        assert result.path == [(0, 0)]
        assert result.replan_count == 1

    @pytest.mark.parametrize("policy", POLICIES)
    def test_exact_prior_every_policy(self, wall_grid, wall_blocked, policy):
        config = {"belief": {"update_rule": "independent", "cost_policy": policy},
                  "agent": {"sensor_radius": 1}}
        prior = np.where(wall_blocked, 0.0, 1.0)
        context = RunContext(config, wall_grid, (0, 0), (4, 4), prior=prior)
        result = AgentLoop(config["agent"], context).run()

        assert result.status is RunStatus.GOAL_REACHED
        assert all(wall_grid.is_passable(cell) for cell in result.path)
        assert result.path_cost >= 8.0 - 1e-9
        if policy != "freespace":
            # Prior matches the layout, so the first plan is already optimal
            assert result.path_cost == pytest.approx(8.0)

    @pytest.mark.parametrize("policy", POLICIES)
    def test_freespace_prior_every_policy(self, random_blocked, policy):
        grid = GridModel({"connectivity": 8}, blocked=random_blocked)
        config = {"belief": {"update_rule": "independent", "cost_policy": policy},
                  "agent": {"sensor_radius": 1}}
        context = RunContext(config, grid, (0, 0), (14, 14), prior=1.0)
        result = AgentLoop(config["agent"], context).run()

        assert result.status is RunStatus.GOAL_REACHED
        assert all(grid.is_passable(cell) for cell in result.path)


class TestRunContext(unittest.TestCase):

    def setUp(self):
        blocked = np.zeros((5, 5), dtype=bool)
        blocked[1, 1] = True
        self.grid = GridModel({}, blocked=blocked)

    def test_blocked_start_rejected(self):
        with self.assertRaises(ValueError):
            RunContext(CONFIG, self.grid, (1, 1), (4, 4))

    def test_out_of_bounds(self):
        with self.assertRaises(OutOfBoundsError):
            RunContext(CONFIG, self.grid, (0, 0), (5, 5))

    def test_from_config_uses_fresh_grid(self):
        context = RunContext.from_config(CONFIG, self.grid, (0, 0), (4, 4))
        self.assertIsNot(context.grid, self.grid)
        self.assertEqual(self.grid.observations, [])

    def test_independent_runs(self):
        first = RunContext.from_config(CONFIG, self.grid, (0, 0), (4, 4))
        second = RunContext.from_config(CONFIG, self.grid, (0, 0), (4, 4))
        AgentLoop({}, first).run()
        self.assertEqual(len(second.grid.observations), 1)


class TestBaselineLoop:

    @pytest.mark.parametrize("agent_class", [RepeatedAStarAgent, AlwaysAStarAgent])
    def test_pillar_map(self, pillar_map, agent_class):
        grid = pillar_map.to_grid_model()
        loop = BaselineLoop({"sensor_radius": 1}, grid, (0, 0), (3, 3), agent_class({}))
        result = loop.run()

        assert result.status is RunStatus.GOAL_REACHED
        assert result.steps == 5
        assert result.path_cost == pytest.approx(4.0 + math.sqrt(2))

    def test_always_astar_plans_every_step(self, pillar_map):
        grid = pillar_map.to_grid_model()
        result = BaselineLoop({"sensor_radius": 1}, grid, (0, 0), (3, 3), AlwaysAStarAgent({})).run()
        assert result.replan_count == 5

    def test_repeated_astar_plans_less(self, pillar_map):
        grid = pillar_map.to_grid_model()
        result = BaselineLoop({"sensor_radius": 1}, grid, (0, 0), (3, 3), RepeatedAStarAgent({})).run()
        assert result.replan_count < 5

    def test_incremental_on_pillar_map(self, pillar_map):
        context = RunContext(CONFIG, pillar_map.to_grid_model(), (0, 0), (3, 3))
        result = AgentLoop(CONFIG["agent"], context).run()
        assert result.status is RunStatus.GOAL_REACHED
        assert result.path_cost >= 4.0 + math.sqrt(2) - 1e-9

    def test_unreachable(self):
        blocked = np.zeros((4, 4), dtype=bool)
        blocked[:, 2] = True
        grid = GridModel({}, blocked=blocked)
        result = BaselineLoop({}, grid, (0, 0), (3, 3), RepeatedAStarAgent({})).run()
        assert result.status is RunStatus.GOAL_UNREACHABLE


class TestRunResult(unittest.TestCase):

    def test_to_dict(self):
        result = RunResult(status=RunStatus.GOAL_REACHED, path=[(0, 0), (0, 1)],
                           path_cost=1.0, cells_expanded=10, replan_count=2, steps=1)
        data = result.to_dict()
        self.assertEqual(data["status"], "goal_reached")
        self.assertTrue(data["success"])
        self.assertEqual(data["path_length"], 1)
        self.assertEqual(data["replan_count"], 2)


if __name__ == "__main__":
    unittest.main()
