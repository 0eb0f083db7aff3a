"""
Incremental Search
D* Lite over belief-derived edge costs.

Maintains a goal-rooted cost-to-goal field (g / rhs per cell) and repairs
it after localized edge-cost changes instead of recomputing it. Repair is
bounded by the key of the agent's current cell, so work stays in the
region the change actually affects.
"""

import heapq
import logging
import numpy as np
from typing import Dict, List, Tuple, Optional, Any, Callable, Union
from dataclasses import dataclass, field
from enum import Enum

from gridist.belief.belief_model import Edge, normalize_edge
from gridist.environment.grid_model import GridModel
from gridist.exceptions import NoPathFound, SearchStateError
from gridist.planning.heuristics import GridHeuristics
from gridist.types import INF, Cell

Key = Tuple[float, float]


class SearchState(Enum):
    """Lifecycle of the incremental search."""
    UNINITIALIZED = "uninitialized"
    CONVERGED = "converged"
    REPAIRING = "repairing"
    GOAL_UNREACHABLE = "goal_unreachable"
    GOAL_REACHED = "goal_reached"


@dataclass
class SearchEntry:
    """Per-cell search state, read-only snapshot."""
    cell: Cell
    g_value: float
    rhs_value: float
    cost_to_goal_estimate: float
    priority_key: Optional[Key]


@dataclass
class Path:
    """Cells from the query position to the goal, with their summed edge cost."""
    cells: List[Cell] = field(default_factory=list)
    cost: float = 0.0

    @property
    def length(self) -> int:
        """Number of moves."""
        return max(len(self.cells) - 1, 0)

    @property
    def start(self) -> Cell:
        return self.cells[0]

    @property
    def goal(self) -> Cell:
        return self.cells[-1]

    def next_cell(self) -> Optional[Cell]:
        return self.cells[1] if len(self.cells) > 1 else None

    def __iter__(self):
        return iter(self.cells)


class IncrementalSearch:
    """
    D* Lite incremental planner.

    Edge costs come from ``edge_cost`` (normally BeliefModel.expected_cost)
    the first time an edge is needed and are cached; afterwards the search
    only learns about cost changes through notify_edge_cost_changed.
    """

    def __init__(self, config: Dict[str, Any], edge_cost: Callable[[Cell, Cell], float]):
        self.config = config
        self.logger = logging.getLogger(__name__)

        self.edge_cost = edge_cost

        self.state = SearchState.UNINITIALIZED
        self.grid: Optional[GridModel] = None
        self.goal: Optional[Cell] = None
        self.start: Optional[Cell] = None
        self.last_start: Optional[Cell] = None
        self.km = 0.0

        self.heuristics: Optional[GridHeuristics] = None

        self.g = np.empty((0, 0))
        self.rhs = np.empty((0, 0))
        self._open: Dict[Cell, Key] = {}
        self._heap: List[Tuple[float, float, Cell]] = []
        self._edge_costs: Dict[Edge, float] = {}
        self._path_cache: Dict[Cell, Path] = {}

        self.search_statistics = {
            'initializations': 0,
            'repairs': 0,
            'notifications': 0,
            'cells_expanded': 0,
            'last_repair_expansions': 0,
        }

        self.logger.info("Incremental search created")

    # -------------------- lifecycle --------------------

    def initialize(self, grid: GridModel, goal: Cell, start: Optional[Cell] = None) -> SearchState:
        """
        Compute the initial cost field from the goal outward.

        Args:
            grid: Grid defining dimensions, connectivity and base costs
            goal: Goal cell
            start: Agent's cell; defaults to the goal

        Returns:
            CONVERGED, or GOAL_UNREACHABLE if the start cannot reach the goal
        """
        grid.check_bounds(goal)
        start = goal if start is None else start
        grid.check_bounds(start)

        self.grid = grid
        self.goal = (int(goal[0]), int(goal[1]))
        self.start = (int(start[0]), int(start[1]))
        self.last_start = self.start
        self.km = 0.0

        self.heuristics = GridHeuristics(self.config, grid.connectivity, grid.step_cost)

        self.g = np.full(grid.dimensions, INF, dtype=np.float64)
        self.rhs = np.full(grid.dimensions, INF, dtype=np.float64)
        self._open.clear()
        self._heap.clear()
        self._edge_costs.clear()
        self._path_cache.clear()

        self.rhs[self.goal] = 0.0
        self._push(self.goal, self._calculate_key(self.goal))

        expanded = self._compute_shortest_path(exhaustive=True)

        self.search_statistics['initializations'] += 1
        self.search_statistics['cells_expanded'] += expanded
        self.search_statistics['last_repair_expansions'] = expanded

        self.state = self._settled_state()
        self.logger.info(f"Search initialized: goal {self.goal}, start {self.start}, "
                         f"{expanded} cells expanded, state {self.state.value}")
        return self.state

    def update_start(self, cell: Cell):
        """Move the agent's position, shifting the key modifier by the heuristic step."""
        self._require_initialized()
        self.grid.check_bounds(cell)
        cell = (int(cell[0]), int(cell[1]))
        if cell == self.start:
            return
        self.km += self._h(self.last_start, cell)
        self.last_start = cell
        self.start = cell

    def notify_edge_cost_changed(self, cell_a: Cell, cell_b: Cell, new_cost: float) -> bool:
        """
        Record a new cost for the edge (cell_a, cell_b) and mark its ends inconsistent.

        Returns:
            True if the cost actually changed
        """
        self._require_initialized()
        if self.state is SearchState.GOAL_REACHED:
            raise SearchStateError("Search already terminated at the goal")
        self.grid.check_bounds(cell_a)
        self.grid.check_bounds(cell_b)
        if new_cost < 0:
            raise ValueError(f"Edge cost must be non-negative, got {new_cost}")

        key = normalize_edge(tuple(cell_a), tuple(cell_b))
        if self._edge_costs.get(key) == new_cost:
            return False

        self._edge_costs[key] = float(new_cost)
        self._update_vertex(key[0])
        self._update_vertex(key[1])

        self._path_cache.clear()
        self.search_statistics['notifications'] += 1
        self.state = SearchState.REPAIRING
        return True

    def repair(self, exhaustive: bool = False) -> SearchState:
        """
        Process inconsistent cells in key order.

        Stops once no queued cell has a key below the agent's cell and the
        agent's cell is consistent, or when the queue is empty.

        Args:
            exhaustive: Drain the whole queue, making every cell consistent

        Returns:
            CONVERGED or GOAL_UNREACHABLE
        """
        self._require_initialized()
        if self.state is SearchState.GOAL_REACHED:
            return self.state

        expanded = self._compute_shortest_path(exhaustive=exhaustive)

        self.search_statistics['repairs'] += 1
        self.search_statistics['cells_expanded'] += expanded
        self.search_statistics['last_repair_expansions'] = expanded

        self.state = self._settled_state()
        self.logger.debug(f"Repair expanded {expanded} cells, state {self.state.value}")
        return self.state

    def mark_goal_reached(self):
        self._require_initialized()
        self.state = SearchState.GOAL_REACHED

    def _settled_state(self) -> SearchState:
        if self.g[self.start] == INF and self.rhs[self.start] == INF:
            return SearchState.GOAL_UNREACHABLE
        return SearchState.CONVERGED

    def _require_initialized(self):
        if self.state is SearchState.UNINITIALIZED:
            raise SearchStateError("Search not initialized")

    # -------------------- core D* Lite --------------------

    def _h(self, a: Cell, b: Cell) -> float:
        return self.heuristics.compute_heuristic(a, b)

    def _cost(self, a: Cell, b: Cell) -> float:
        key = normalize_edge(a, b)
        cost = self._edge_costs.get(key)
        if cost is None:
            cost = float(self.edge_cost(a, b))
            self._edge_costs[key] = cost
        return cost

    def _calculate_key(self, cell: Cell) -> Key:
        m = min(self.g[cell], self.rhs[cell])
        if m == INF:
            return (INF, INF)
        return (float(m + self._h(self.start, cell) + self.km), float(m))

    def _push(self, cell: Cell, key: Key):
        self._open[cell] = key
        heapq.heappush(self._heap, (key[0], key[1], cell))

    def _top(self) -> Optional[Tuple[Key, Cell]]:
        # Entries whose key no longer matches the open list are stale.
        while self._heap:
            k1, k2, cell = self._heap[0]
            if self._open.get(cell) == (k1, k2):
                return (k1, k2), cell
            heapq.heappop(self._heap)
        return None

    def _update_vertex(self, cell: Cell):
        if cell != self.goal:
            best = INF
            for neighbor in self.grid.neighbors(cell):
                candidate = self._cost(cell, neighbor) + self.g[neighbor]
                if candidate < best:
                    best = candidate
            self.rhs[cell] = best

        self._open.pop(cell, None)
        if self.g[cell] != self.rhs[cell]:
            self._push(cell, self._calculate_key(cell))

    def _compute_shortest_path(self, exhaustive: bool) -> int:
        expanded = 0

        while True:
            top = self._top()
            if top is None:
                break
            k_old, cell = top

            if not exhaustive:
                start_key = self._calculate_key(self.start)
                start_consistent = self.g[self.start] == self.rhs[self.start]
                if not (k_old < start_key or not start_consistent):
                    break

            heapq.heappop(self._heap)
            del self._open[cell]

            k_new = self._calculate_key(cell)
            if k_old < k_new:
                self._push(cell, k_new)
                continue

            expanded += 1
            if self.g[cell] > self.rhs[cell]:
                self.g[cell] = self.rhs[cell]
                for neighbor in self.grid.neighbors(cell):
                    self._update_vertex(neighbor)
            else:
                self.g[cell] = INF
                self._update_vertex(cell)
                for neighbor in self.grid.neighbors(cell):
                    self._update_vertex(neighbor)

        return expanded

    # -------------------- queries --------------------

    def extract_path(self, from_cell: Optional[Cell] = None) -> Union[Path, NoPathFound]:
        """
        Follow minimum-cost successors from ``from_cell`` to the goal.

        Args:
            from_cell: Query position; defaults to the agent's cell

        Returns:
            Path, or NoPathFound if every way forward has infinite cost
        """
        self._require_initialized()
        origin = self.start if from_cell is None else (int(from_cell[0]), int(from_cell[1]))
        self.grid.check_bounds(origin)

        cached = self._path_cache.get(origin)
        if cached is not None:
            return cached

        result = self._follow_field(origin)
        if result is None:
            # Cells off the agent's region may still be inconsistent.
            self.logger.debug(f"Greedy descent from {origin} looped, draining queue")
            self.repair(exhaustive=True)
            result = self._follow_field(origin)
            if result is None:
                result = NoPathFound(origin, "cost field does not descend to the goal")

        if isinstance(result, Path):
            self._path_cache[origin] = result
        return result

    def _follow_field(self, origin: Cell) -> Optional[Union[Path, NoPathFound]]:
        if origin == self.goal:
            return Path(cells=[origin], cost=0.0)

        if min(self.g[origin], self.rhs[origin]) == INF:
            return NoPathFound(origin, "goal unreachable under current costs")

        cells = [origin]
        visited = {origin}
        total = 0.0
        current = origin

        while current != self.goal:
            best_cell = None
            best_value = INF
            best_edge = INF
            for neighbor in self.grid.neighbors(current):
                edge = self._cost(current, neighbor)
                value = edge + self.g[neighbor]
                if value < best_value:
                    best_value = value
                    best_cell = neighbor
                    best_edge = edge

            if best_cell is None or best_value == INF:
                return NoPathFound(current, "no finite-cost successor")
            if best_cell in visited:
                return None

            visited.add(best_cell)
            cells.append(best_cell)
            total += best_edge
            current = best_cell

        return Path(cells=cells, cost=float(total))

    def cost_to_goal(self, cell: Optional[Cell] = None) -> float:
        self._require_initialized()
        cell = self.start if cell is None else cell
        self.grid.check_bounds(cell)
        return float(self.g[cell])

    def known_edge_cost(self, cell_a: Cell, cell_b: Cell) -> float:
        """Edge cost as the search currently sees it."""
        self._require_initialized()
        return self._cost(tuple(cell_a), tuple(cell_b))

    def search_entry(self, cell: Cell) -> SearchEntry:
        self._require_initialized()
        self.grid.check_bounds(cell)
        cell = (int(cell[0]), int(cell[1]))
        return SearchEntry(
            cell=cell,
            g_value=float(self.g[cell]),
            rhs_value=float(self.rhs[cell]),
            cost_to_goal_estimate=float(min(self.g[cell], self.rhs[cell])),
            priority_key=self._open.get(cell),
        )

    def inconsistent_count(self) -> int:
        return len(self._open)

    def cost_field(self) -> np.ndarray:
        return self.g.copy()

    def reference_cost_field(self) -> np.ndarray:
        """
        Cost-to-goal for every cell by a from-scratch Dijkstra over the
        edge costs the search currently holds.
        """
        self._require_initialized()
        dist = np.full(self.grid.dimensions, INF, dtype=np.float64)
        dist[self.goal] = 0.0
        heap = [(0.0, self.goal)]

        while heap:
            d, cell = heapq.heappop(heap)
            if d > dist[cell]:
                continue
            for neighbor in self.grid.neighbors(cell):
                nd = d + self._cost(cell, neighbor)
                if nd < dist[neighbor]:
                    dist[neighbor] = nd
                    heapq.heappush(heap, (nd, neighbor))

        return dist

    def verify_against_scratch(self, atol: float = 1e-9) -> bool:
        """Drain the queue and compare the whole field with a from-scratch computation."""
        self.repair(exhaustive=True)
        return bool(np.allclose(self.g, self.reference_cost_field(), atol=atol, rtol=0.0))

    def get_statistics(self) -> Dict[str, Any]:
        stats = self.search_statistics.copy()
        stats['state'] = self.state.value
        stats['queue_size'] = len(self._open)
        stats['cached_edges'] = len(self._edge_costs)
        if self.heuristics is not None:
            stats['heuristic'] = self.heuristics.get_heuristic_info()
        return stats
