"""
Agent Loop
Drives one online run: plan, move, sense, update belief, repair.

The run is a strict step-ordered pipeline. Each step queries the current
best path, moves one cell along it, senses around the new position, feeds
the observations to the belief, notifies the search of every edge whose
expected cost changed and repairs the search before the next query.
"""

import logging
import time
from typing import Dict, List, Optional, Any
from dataclasses import dataclass, field
from enum import Enum

from gridist.environment.grid_model import GridModel
from gridist.environment.sensor_model import Sensor
from gridist.exceptions import InconsistentObservationError
from gridist.planning.incremental_search import SearchState
from gridist.planning.integration.run_context import RunContext
from gridist.types import Cell, CellStatus, Observation


class RunStatus(Enum):
    GOAL_REACHED = "goal_reached"
    GOAL_UNREACHABLE = "goal_unreachable"
    ABORTED = "aborted"
    STEP_LIMIT = "step_limit"


@dataclass
class RunResult:
    """Read-only outcome of a run."""
    status: RunStatus
    path: List[Cell] = field(default_factory=list)
    path_cost: float = 0.0
    cells_expanded: int = 0
    replan_count: int = 0
    steps: int = 0
    run_time: float = 0.0

    @property
    def success(self) -> bool:
        return self.status is RunStatus.GOAL_REACHED

    def to_dict(self) -> Dict[str, Any]:
        return {
            'status': self.status.value,
            'success': self.success,
            'path_length': max(len(self.path) - 1, 0),
            'path_cost': self.path_cost,
            'cells_expanded': self.cells_expanded,
            'replan_count': self.replan_count,
            'steps': self.steps,
            'run_time': self.run_time,
        }


@dataclass
class LoopState:

    position: Cell
    visited: List[Cell] = field(default_factory=list)
    path_cost: float = 0.0
    steps: int = 0
    replan_count: int = 0
    started: bool = False
    abort_requested: bool = False
    status: Optional[RunStatus] = None


class AgentLoop:
    """
    Online run over a RunContext with incremental replanning.

    ``config`` is the 'agent' section: max_steps (default 4 * rows * cols)
    and render (dump the observed grid at DEBUG after every step).
    """

    def __init__(self, config: Dict[str, Any], context: RunContext):
        self.config = config
        self.logger = logging.getLogger(__name__)

        self.context = context
        self.grid = context.grid
        self.belief = context.belief
        self.search = context.search
        self.sensor = context.sensor
        self.goal = context.goal

        rows, cols = self.grid.dimensions
        self.max_steps = int(config.get('max_steps') or 4 * rows * cols)
        self.render = config.get('render', False)

        self.loop_state = LoopState(position=context.start, visited=[context.start])

        self.loop_statistics = {
            'observations': 0,
            'cells_changed': 0,
            'edges_notified': 0,
            'bumps': 0,
        }
        self._run_start = None

        self.logger.info(f"Agent loop initialized: max_steps={self.max_steps}, "
                         f"sensor radius={self.sensor.radius}")

    @property
    def position(self) -> Cell:
        return self.loop_state.position

    @property
    def finished(self) -> bool:
        return self.loop_state.status is not None

    def abort(self):
        """Request cancellation; honored before the next step starts."""
        self.loop_state.abort_requested = True

    def _begin(self):
        self._run_start = time.time()
        self.loop_state.started = True

        self._incorporate(self.sensor.sense(self.grid, self.position), repair=False)
        self.search.initialize(self.grid, self.goal, self.position)

    def step(self) -> Optional[RunStatus]:
        """
        Advance the run by one move.

        Returns:
            Terminal status once the run has ended, otherwise None
        """
        state = self.loop_state
        if state.status is not None:
            return state.status

        if not state.started:
            self._begin()

        if state.abort_requested:
            return self._finish(RunStatus.ABORTED)
        if state.position == self.goal:
            return self._finish(RunStatus.GOAL_REACHED)
        if state.steps >= self.max_steps:
            return self._finish(RunStatus.STEP_LIMIT)

        while True:
            planned = self.search.extract_path(state.position)
            if not planned:
                self.logger.info(f"No path from {state.position}: {planned.reason}")
                return self._finish(RunStatus.GOAL_UNREACHABLE)

            next_cell = planned.next_cell()
            if self.grid.is_observed(next_cell):
                break

            # Moving into an unseen cell reveals it first, then the path is re-queried.
            status = self.grid.observe(next_cell)
            if status is CellStatus.BLOCKED:
                self.loop_statistics['bumps'] += 1
            self._incorporate([Observation(next_cell, status)])

        state.path_cost += self.grid.traversal_cost(state.position, next_cell)
        state.position = next_cell
        state.visited.append(next_cell)
        state.steps += 1
        self.search.update_start(next_cell)

        if next_cell == self.goal:
            return self._finish(RunStatus.GOAL_REACHED)

        self._incorporate(self.sensor.sense(self.grid, next_cell))

        if self.render and self.logger.isEnabledFor(logging.DEBUG):
            self.logger.debug("\n" + self.grid.render(agent=next_cell, goal=self.goal))

        return None

    def _incorporate(self, observations: List[Observation], repair: bool = True):
        try:
            changed = self.belief.update(observations)
        except InconsistentObservationError as e:
            self.logger.error(f"Run aborted: {e}")
            self.loop_state.status = RunStatus.ABORTED
            raise

        self.loop_statistics['observations'] += len(observations)
        self.loop_statistics['cells_changed'] += len(changed)
        if not changed or not repair:
            return

        notified = 0
        for cell_a, cell_b in self.belief.changed_edges(changed):
            new_cost = self.belief.expected_cost(cell_a, cell_b)
            if self.search.known_edge_cost(cell_a, cell_b) != new_cost:
                self.search.notify_edge_cost_changed(cell_a, cell_b, new_cost)
                notified += 1

        if notified:
            self.loop_statistics['edges_notified'] += notified
            self.loop_state.replan_count += 1
            self.search.repair()
            self.logger.debug(f"Replan #{self.loop_state.replan_count}: "
                              f"{notified} edges changed at {self.position}")

    def run(self) -> RunResult:
        """Step until the run terminates."""
        while self.step() is None:
            pass
        return self.result()

    def _finish(self, status: RunStatus) -> RunStatus:
        self.loop_state.status = status
        if status is RunStatus.GOAL_REACHED and self.search.state is not SearchState.UNINITIALIZED:
            self.search.mark_goal_reached()

        log = self.logger.info if status is RunStatus.GOAL_REACHED else self.logger.warning
        log(f"Run finished: {status.value} after {self.loop_state.steps} steps, "
            f"cost {self.loop_state.path_cost:.2f}, {self.loop_state.replan_count} replans")
        return status

    def result(self) -> RunResult:
        if self.loop_state.status is None:
            raise RuntimeError("Run has not finished")
        state = self.loop_state
        return RunResult(
            status=state.status,
            path=list(state.visited),
            path_cost=state.path_cost,
            cells_expanded=self.search.search_statistics['cells_expanded'],
            replan_count=state.replan_count,
            steps=state.steps,
            run_time=time.time() - self._run_start if self._run_start else 0.0,
        )

    def get_statistics(self) -> Dict[str, Any]:
        stats = self.loop_statistics.copy()
        stats['steps'] = self.loop_state.steps
        stats['replan_count'] = self.loop_state.replan_count
        stats['path_cost'] = self.loop_state.path_cost
        stats['status'] = self.loop_state.status.value if self.loop_state.status else None
        stats['search'] = self.search.get_statistics()
        stats['belief'] = self.belief.get_statistics()
        return stats


class BaselineLoop:
    """
    Online run for an A* baseline agent acting on the grid's observed state.

    Replan count is the agent's number of planning episodes and cells
    expanded the sum of its A* expansions.
    """

    def __init__(self, config: Dict[str, Any], grid: GridModel, start: Cell, goal: Cell,
                 agent, sensor: Optional[Sensor] = None):
        self.config = config
        self.logger = logging.getLogger(__name__)

        grid.check_bounds(start)
        grid.check_bounds(goal)

        self.grid = grid
        self.goal = (int(goal[0]), int(goal[1]))
        self.agent = agent
        self.sensor = sensor or Sensor(config)

        rows, cols = grid.dimensions
        self.max_steps = int(config.get('max_steps') or 4 * rows * cols)

        self.loop_state = LoopState(position=(int(start[0]), int(start[1])),
                                    visited=[(int(start[0]), int(start[1]))])
        self.expansions = 0
        self._run_start = None

        self.logger.info(f"Baseline loop initialized: agent={agent.name}")

    def abort(self):
        self.loop_state.abort_requested = True

    def step(self) -> Optional[RunStatus]:
        state = self.loop_state
        if state.status is not None:
            return state.status

        if not state.started:
            self._run_start = time.time()
            state.started = True
            self.sensor.sense(self.grid, state.position)

        if state.abort_requested:
            return self._finish(RunStatus.ABORTED)
        if state.position == self.goal:
            return self._finish(RunStatus.GOAL_REACHED)
        if state.steps >= self.max_steps:
            return self._finish(RunStatus.STEP_LIMIT)

        while True:
            datum = self.agent.act(self.grid, state.position, self.goal)
            if datum is None:
                return self._finish(RunStatus.GOAL_UNREACHABLE)
            self.expansions += datum.expansions

            # Freespace plans may lead into unseen cells; a blocked one is a bump.
            if self.grid.observe(datum.action) is CellStatus.FREE:
                break

        state.path_cost += self.grid.traversal_cost(state.position, datum.action)
        state.position = datum.action
        state.visited.append(datum.action)
        state.steps += 1

        if state.position == self.goal:
            return self._finish(RunStatus.GOAL_REACHED)

        self.sensor.sense(self.grid, state.position)
        return None

    def run(self) -> RunResult:
        while self.step() is None:
            pass
        return self.result()

    def _finish(self, status: RunStatus) -> RunStatus:
        self.loop_state.status = status
        self.logger.info(f"Baseline run finished: {status.value} after {self.loop_state.steps} steps")
        return status

    def result(self) -> RunResult:
        if self.loop_state.status is None:
            raise RuntimeError("Run has not finished")
        state = self.loop_state
        return RunResult(
            status=state.status,
            path=list(state.visited),
            path_cost=state.path_cost,
            cells_expanded=self.expansions,
            replan_count=self.agent.episodes,
            steps=state.steps,
            run_time=time.time() - self._run_start if self._run_start else 0.0,
        )
