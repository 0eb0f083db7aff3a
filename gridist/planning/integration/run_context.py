import logging
from typing import Dict, Any, Optional

from gridist.belief.belief_model import BeliefModel
from gridist.belief.cost_policies import ExpectedCostPolicy
from gridist.belief.priors import PriorLike
from gridist.belief.update_rules import BeliefUpdateRule
from gridist.environment.grid_model import GridModel
from gridist.environment.sensor_model import Sensor
from gridist.planning.incremental_search import IncrementalSearch
from gridist.types import Cell, CellStatus


class RunContext:
    """
    Everything one run owns: grid, belief, search and sensor.

    Nothing here is shared between runs; build a new context (over
    ``grid.fresh()`` for a repeated layout) for every run.

    ``config`` holds the sections 'belief', 'search' and 'agent'.
    """

    def __init__(self, config: Dict[str, Any], grid: GridModel, start: Cell, goal: Cell,
                 prior: Optional[PriorLike] = None,
                 update_rule: Optional[BeliefUpdateRule] = None,
                 cost_policy: Optional[ExpectedCostPolicy] = None,
                 sensor: Optional[Sensor] = None):
        self.config = config
        self.logger = logging.getLogger(__name__)

        grid.check_bounds(start)
        grid.check_bounds(goal)

        self.grid = grid
        self.start = (int(start[0]), int(start[1]))
        self.goal = (int(goal[0]), int(goal[1]))

        if grid.observe(self.start) is CellStatus.BLOCKED:
            raise ValueError(f"Start cell {self.start} is blocked")

        self.belief = BeliefModel(config.get('belief', {}), grid, prior=prior,
                                  update_rule=update_rule, cost_policy=cost_policy)
        self.search = IncrementalSearch(config.get('search', {}), self.belief.expected_cost)
        self.sensor = sensor or Sensor(config.get('agent', {}))

        # Observations made before the run (e.g. full initial visibility)
        self.belief.update(grid.observations)

        self.logger.info(f"Run context: {grid.dimensions} grid, {self.start} -> {self.goal}")

    @classmethod
    def from_config(cls, config: Dict[str, Any], grid: GridModel, start: Cell, goal: Cell,
                    **kwargs) -> "RunContext":
        """Context over a fresh copy of ``grid`` so the caller's grid stays unobserved."""
        return cls(config, grid.fresh(), start, goal, **kwargs)
