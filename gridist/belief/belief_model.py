import numpy as np
import logging
from typing import Dict, List, Tuple, Optional, Any, Set, Iterable, Union

from gridist.belief.cost_policies import ExpectedCostPolicy, build_cost_policy
from gridist.belief.priors import PriorLike, build_prior
from gridist.belief.update_rules import (
    BLOCKED,
    FREE,
    UNOBSERVED,
    BeliefUpdateRule,
    build_update_rule,
)
from gridist.environment.grid_model import GridModel
from gridist.exceptions import InconsistentObservationError
from gridist.types import INF, Cell, CellStatus, Observation, ObservedStatus

ObservationLike = Union[Observation, Tuple[Cell, CellStatus]]

Edge = Tuple[Cell, Cell]


def normalize_edge(cell_a: Cell, cell_b: Cell) -> Edge:
    return (cell_a, cell_b) if cell_a <= cell_b else (cell_b, cell_a)


class BeliefModel:
    """
    Probability distribution over the true status of unobserved cells.

    Holds the prior, the observations received so far and the current
    per-cell free probability. The probability of an observed cell is
    pinned to 1.0 or 0.0 and never moves again. Expected edge costs are
    derived from these probabilities through a pluggable cost policy.
    """

    def __init__(self, config: Dict[str, Any], grid: GridModel,
                 prior: Optional[PriorLike] = None,
                 update_rule: Optional[BeliefUpdateRule] = None,
                 cost_policy: Optional[ExpectedCostPolicy] = None):
        self.config = config
        self.logger = logging.getLogger(__name__)

        self.grid = grid
        self.dimensions = grid.dimensions

        # Raises InvalidPriorError before anything else is built
        self._prior = build_prior(config, self.dimensions, prior)
        self._prior.setflags(write=False)

        self.update_rule = update_rule or build_update_rule(config)
        self.cost_policy = cost_policy or build_cost_policy(config)

        self._observed = np.full(self.dimensions, UNOBSERVED, dtype=np.int8)
        self._prob = self._prior.copy()

        self.update_statistics = {
            'updates': 0,
            'observations_applied': 0,
            'observations_ignored': 0,
            'cells_changed': 0,
        }

        self.logger.info(f"Belief model initialized: {self.dimensions}, "
                         f"mean prior {float(self._prior.mean()):.3f}")
        self.logger.info(f"Update rule: {self.update_rule.describe()}, "
                         f"cost policy: {self.cost_policy.describe()}")

    def prior_free(self, cell: Cell) -> float:
        self.grid.check_bounds(cell)
        return float(self._prior[cell])

    def prob_free(self, cell: Cell) -> float:
        """Current probability that ``cell`` is free (1.0 / 0.0 once observed)."""
        self.grid.check_bounds(cell)
        return float(self._prob[cell])

    def observed_status(self, cell: Cell) -> ObservedStatus:
        self.grid.check_bounds(cell)
        code = int(self._observed[cell])
        if code == FREE:
            return ObservedStatus.FREE
        if code == BLOCKED:
            return ObservedStatus.BLOCKED
        return ObservedStatus.UNOBSERVED

    def is_observed(self, cell: Cell) -> bool:
        self.grid.check_bounds(cell)
        return self._observed[cell] != UNOBSERVED

    def update(self, observations: Iterable[ObservationLike]) -> Set[Cell]:
        """
        Incorporate observations and revise nearby unobserved cells.

        Re-observing a cell with the same status is a no-op. A contradicting
        observation raises InconsistentObservationError and leaves the model
        untouched.

        Args:
            observations: Observation objects or (cell, status) pairs

        Returns:
            Cells whose free probability or observed status changed
        """
        fresh: Dict[Cell, int] = {}

        for observation in observations:
            cell, status = self._unpack(observation)
            self.grid.check_bounds(cell)
            code = BLOCKED if status is CellStatus.BLOCKED else FREE

            recorded = int(self._observed[cell])
            if recorded == UNOBSERVED:
                recorded = fresh.get(cell, UNOBSERVED)

            if recorded == UNOBSERVED:
                fresh[cell] = code
            elif recorded != code:
                raise InconsistentObservationError(
                    cell, self._status_name(recorded), self._status_name(code)
                )
            else:
                self.update_statistics['observations_ignored'] += 1

        self.update_statistics['updates'] += 1
        if not fresh:
            return set()

        for cell, code in fresh.items():
            self._observed[cell] = code
        self.update_statistics['observations_applied'] += len(fresh)

        region = self._affected_region(fresh.keys())
        new_probs = self.update_rule.compute(self._prior, self._observed, region)
        old_probs = self._prob[region]

        changed_mask = new_probs != old_probs
        self._prob[region] = new_probs

        # Newly observed cells change their edge costs even when the probability
        # stays put (prior 0.0 observed blocked, prior 1.0 observed free).
        changed: Set[Cell] = set(fresh)
        rows, cols = np.nonzero(changed_mask)
        for r, c in zip(rows, cols):
            changed.add((int(r) + region[0].start, int(c) + region[1].start))

        self.update_statistics['cells_changed'] += len(changed)
        self.logger.debug(f"Belief update: {len(fresh)} new observations, "
                          f"{len(changed)} cells changed")
        return changed

    @staticmethod
    def _unpack(observation: ObservationLike) -> Tuple[Cell, CellStatus]:
        if isinstance(observation, Observation):
            return observation.cell, observation.status
        cell, status = observation
        if status is CellStatus.UNKNOWN:
            raise ValueError(f"Observation of {cell} must be FREE or BLOCKED")
        return (int(cell[0]), int(cell[1])), status

    @staticmethod
    def _status_name(code: int) -> CellStatus:
        return CellStatus.BLOCKED if code == BLOCKED else CellStatus.FREE

    def _affected_region(self, cells: Iterable[Cell]) -> Tuple[slice, slice]:
        cells = list(cells)
        r = self.update_rule.radius
        rows = [c[0] for c in cells]
        cols = [c[1] for c in cells]
        return (
            slice(max(min(rows) - r, 0), min(max(rows) + r + 1, self.dimensions[0])),
            slice(max(min(cols) - r, 0), min(max(cols) + r + 1, self.dimensions[1])),
        )

    def expected_cost(self, cell_a: Cell, cell_b: Cell) -> float:
        """
        Expected traversal cost of the edge between two adjacent cells.

        Infinite if either endpoint is observed blocked, the base cost if
        both are observed free, otherwise the cost policy applied to the
        product of the endpoint free probabilities.
        """
        base_cost = self.grid.traversal_cost(cell_a, cell_b)

        code_a = self._observed[cell_a]
        code_b = self._observed[cell_b]

        if code_a == BLOCKED or code_b == BLOCKED:
            return INF
        if code_a == FREE and code_b == FREE:
            return base_cost

        prob_free = float(self._prob[cell_a]) * float(self._prob[cell_b])
        return self.cost_policy.cost(base_cost, prob_free)

    def changed_edges(self, cells: Iterable[Cell]) -> Set[Edge]:
        """All edges touching any of ``cells``, as normalized (low, high) pairs."""
        edges: Set[Edge] = set()
        for cell in cells:
            for neighbor in self.grid.neighbors(cell):
                edges.add(normalize_edge(cell, neighbor))
        return edges

    def unobserved_cells(self) -> List[Cell]:
        rows, cols = np.nonzero(self._observed == UNOBSERVED)
        return [(int(r), int(c)) for r, c in zip(rows, cols)]

    def probability_array(self) -> np.ndarray:
        return self._prob.copy()

    def prior_array(self) -> np.ndarray:
        return self._prior.copy()

    def get_statistics(self) -> Dict[str, Any]:
        stats = self.update_statistics.copy()
        unobserved = self._observed == UNOBSERVED
        stats['unobserved_cells'] = int(np.sum(unobserved))
        stats['mean_unobserved_prob_free'] = (
            float(self._prob[unobserved].mean()) if np.any(unobserved) else None
        )
        return stats
