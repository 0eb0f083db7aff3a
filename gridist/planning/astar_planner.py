"""
A* Planner
From-scratch A* over the agent's current knowledge of the grid.

Serves as the brute-force baseline the incremental search is checked
against, and powers the repeated / always-replanning A* agents that use
the freespace assumption.
"""

import numpy as np
import heapq
import logging
import time
from itertools import count
from typing import Dict, List, Tuple, Optional, Any, Callable, Set
from dataclasses import dataclass, field

from gridist.environment.grid_model import GridModel
from gridist.planning.heuristics import GridHeuristics
from gridist.types import INF, Cell, ObservedStatus

EdgeCost = Callable[[Cell, Cell], float]


@dataclass
class AStarNode:
    """Node in A* search tree."""
    position: Cell
    g_cost: float = INF
    h_cost: float = 0.0
    f_cost: float = INF
    parent: Optional['AStarNode'] = None


@dataclass
class PlanningResult:
    """Result of A* planning."""
    path: List[Cell]
    total_cost: float
    planning_time: float
    nodes_expanded: int
    success: bool

    @property
    def length(self) -> int:
        return max(len(self.path) - 1, 0)


def freespace_cost(grid: GridModel) -> EdgeCost:
    """Edge cost treating every cell not observed blocked as free."""

    def cost(cell_a: Cell, cell_b: Cell) -> float:
        if (grid.observed_status(cell_a) is ObservedStatus.BLOCKED or
                grid.observed_status(cell_b) is ObservedStatus.BLOCKED):
            return INF
        return grid.traversal_cost(cell_a, cell_b)

    return cost


def ground_truth_cost(grid: GridModel) -> EdgeCost:
    """Edge cost on the true layout. Requires full ground truth."""

    def cost(cell_a: Cell, cell_b: Cell) -> float:
        if not (grid.is_passable(cell_a) and grid.is_passable(cell_b)):
            return INF
        return grid.traversal_cost(cell_a, cell_b)

    return cost


class AStarPlanner:
    """
    A* planner on a 2D grid under an arbitrary edge-cost function.
    """

    def __init__(self, config: Dict[str, Any]):
        self.config = config
        self.logger = logging.getLogger(__name__)

        self.max_iterations = config.get('max_iterations', 1000000)
        self.max_planning_time = config.get('max_planning_time', 30.0)  # seconds

        self.planning_statistics = {
            'total_plans': 0,
            'successful_plans': 0,
            'total_nodes_expanded': 0,
            'average_planning_time': 0.0,
            'average_nodes_expanded': 0.0,
            'average_path_length': 0.0,
        }

        self.logger.debug(f"A* planner initialized: max_iterations={self.max_iterations}")

    def plan_path(self, grid: GridModel, start: Cell, goal: Cell,
                  edge_cost: Optional[EdgeCost] = None) -> PlanningResult:
        """
        Plan a path using A*.

        Args:
            grid: Grid supplying neighbors and base costs
            start: Start cell
            goal: Goal cell
            edge_cost: Cost of moving between adjacent cells; defaults to
                the freespace assumption on the grid's observed state

        Returns:
            Planning result with path and statistics
        """
        planning_start = time.time()

        grid.check_bounds(start)
        grid.check_bounds(goal)
        start = (int(start[0]), int(start[1]))
        goal = (int(goal[0]), int(goal[1]))

        edge_cost = edge_cost or freespace_cost(grid)
        heuristics = GridHeuristics(self.config, grid.connectivity, grid.step_cost)

        result = self._astar_search(grid, start, goal, edge_cost, heuristics)
        result.planning_time = time.time() - planning_start

        self._update_statistics(result)

        self.logger.debug(f"A* {start} -> {goal}: success={result.success}, "
                          f"cost={result.total_cost:.2f}, expanded={result.nodes_expanded}")
        return result

    def _astar_search(self, grid: GridModel, start: Cell, goal: Cell,
                      edge_cost: EdgeCost, heuristics: GridHeuristics) -> PlanningResult:
        open_set: List[Tuple[float, float, int, AStarNode]] = []
        closed_set: Set[Cell] = set()
        nodes: Dict[Cell, AStarNode] = {}
        tie = count()

        start_node = AStarNode(position=start, g_cost=0.0)
        start_node.h_cost = heuristics.compute_heuristic(start, goal)
        start_node.f_cost = start_node.h_cost
        nodes[start] = start_node
        heapq.heappush(open_set, (start_node.f_cost, start_node.h_cost, next(tie), start_node))

        nodes_expanded = 0
        search_start = time.time()

        while open_set:
            if time.time() - search_start > self.max_planning_time:
                self.logger.warning("A* search timed out")
                break

            if nodes_expanded >= self.max_iterations:
                self.logger.warning("A* search hit iteration limit")
                break

            _, _, _, current_node = heapq.heappop(open_set)
            current_pos = current_node.position

            # Stale heap entry
            if current_pos in closed_set:
                continue

            if current_pos == goal:
                return PlanningResult(
                    path=self._reconstruct_path(current_node),
                    total_cost=current_node.g_cost,
                    planning_time=0.0,
                    nodes_expanded=nodes_expanded,
                    success=True,
                )

            closed_set.add(current_pos)
            nodes_expanded += 1

            for neighbor_pos in grid.neighbors(current_pos):
                if neighbor_pos in closed_set:
                    continue

                move_cost = edge_cost(current_pos, neighbor_pos)
                if move_cost == INF:
                    continue
                tentative_g_cost = current_node.g_cost + move_cost

                neighbor_node = nodes.get(neighbor_pos)
                if neighbor_node is None:
                    neighbor_node = AStarNode(position=neighbor_pos)
                    neighbor_node.h_cost = heuristics.compute_heuristic(neighbor_pos, goal)
                    nodes[neighbor_pos] = neighbor_node

                if tentative_g_cost < neighbor_node.g_cost:
                    neighbor_node.parent = current_node
                    neighbor_node.g_cost = tentative_g_cost
                    neighbor_node.f_cost = tentative_g_cost + neighbor_node.h_cost
                    heapq.heappush(open_set, (neighbor_node.f_cost, neighbor_node.h_cost,
                                              next(tie), neighbor_node))

        return PlanningResult(
            path=[], total_cost=INF, planning_time=0.0,
            nodes_expanded=nodes_expanded, success=False,
        )

    def _reconstruct_path(self, goal_node: AStarNode) -> List[Cell]:
        path = []
        current = goal_node

        while current is not None:
            path.append(current.position)
            current = current.parent

        path.reverse()
        return path

    def cost_to_goal(self, grid: GridModel, cell: Cell, goal: Cell,
                     edge_cost: Optional[EdgeCost] = None) -> float:
        """Optimal cost from ``cell`` to ``goal``, INF when unreachable."""
        return self.plan_path(grid, cell, goal, edge_cost).total_cost

    def _update_statistics(self, result: PlanningResult):
        stats = self.planning_statistics
        stats['total_plans'] += 1
        stats['total_nodes_expanded'] += result.nodes_expanded

        n = stats['total_plans']
        stats['average_planning_time'] = (
            stats['average_planning_time'] * (n - 1) + result.planning_time) / n
        stats['average_nodes_expanded'] = stats['total_nodes_expanded'] / n

        if result.success:
            stats['successful_plans'] += 1
            k = stats['successful_plans']
            stats['average_path_length'] = (
                stats['average_path_length'] * (k - 1) + result.length) / k

    def get_statistics(self) -> Dict[str, Any]:
        stats = self.planning_statistics.copy()
        if stats['total_plans'] > 0:
            stats['success_rate'] = stats['successful_plans'] / stats['total_plans']
        return stats


@dataclass
class AgentAction:
    """One move chosen by a baseline agent and the expansions spent choosing it."""
    action: Cell
    expansions: int = 0


class RepeatedAStarAgent:
    """
    Follow the last A* plan under the freespace assumption; replan only when
    the next cell on it is known to be blocked.
    """

    name = "repeated_astar"

    def __init__(self, config: Dict[str, Any]):
        self.config = config
        self.logger = logging.getLogger(__name__)
        self.planner = AStarPlanner(config)
        self._plan: List[Cell] = []
        self.episodes = 0

    def act(self, grid: GridModel, location: Cell, goal: Cell) -> Optional[AgentAction]:
        if self._plan:
            next_cell = self._plan[0]
            if grid.observed_status(next_cell) is not ObservedStatus.BLOCKED:
                self._plan.pop(0)
                return AgentAction(action=next_cell, expansions=0)

        result = self.planner.plan_path(grid, location, goal)
        self.episodes += 1
        if not result.success or result.length == 0:
            self._plan = []
            return None

        self._plan = result.path[2:]
        return AgentAction(action=result.path[1], expansions=result.nodes_expanded)

    def reset(self):
        self._plan = []
        self.episodes = 0


class AlwaysAStarAgent:
    """Replan from scratch under the freespace assumption on every step."""

    name = "always_astar"

    def __init__(self, config: Dict[str, Any]):
        self.config = config
        self.logger = logging.getLogger(__name__)
        self.planner = AStarPlanner(config)
        self.episodes = 0

    def act(self, grid: GridModel, location: Cell, goal: Cell) -> Optional[AgentAction]:
        result = self.planner.plan_path(grid, location, goal)
        self.episodes += 1
        if not result.success or result.length == 0:
            return None
        return AgentAction(action=result.path[1], expansions=result.nodes_expanded)

    def reset(self):
        self.episodes = 0


BASELINE_AGENTS = {
    RepeatedAStarAgent.name: RepeatedAStarAgent,
    AlwaysAStarAgent.name: AlwaysAStarAgent,
}


def build_baseline_agent(config: Dict[str, Any], name: str):
    if name not in BASELINE_AGENTS:
        raise ValueError(f"Unknown baseline agent: {name}")
    return BASELINE_AGENTS[name](config)


def optimal_cost_field(grid: GridModel, goal: Cell, edge_cost: EdgeCost) -> np.ndarray:
    """Exact cost-to-goal for every cell by brute force (one A* per cell)."""
    planner = AStarPlanner({'heuristic': 'zero'})
    field_values = np.full(grid.dimensions, INF, dtype=np.float64)
    for r in range(grid.rows):
        for c in range(grid.cols):
            field_values[r, c] = planner.plan_path(grid, (r, c), goal, edge_cost).total_cost
    return field_values
