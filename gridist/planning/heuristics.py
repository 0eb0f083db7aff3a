import numpy as np
import logging
from typing import Dict, Any, Callable

from gridist.types import Cell, Connectivity

SQRT_2 = float(np.sqrt(2.0))


def euclidean(a: Cell, b: Cell) -> float:
    dr = b[0] - a[0]
    dc = b[1] - a[1]
    return float(np.sqrt(dr * dr + dc * dc))


def manhattan(a: Cell, b: Cell) -> float:
    return float(abs(b[0] - a[0]) + abs(b[1] - a[1]))


def chebyshev(a: Cell, b: Cell) -> float:
    return float(max(abs(b[0] - a[0]), abs(b[1] - a[1])))


def octile(a: Cell, b: Cell) -> float:
    """max(dr, dc) - min(dr, dc) + sqrt(2) * min(dr, dc)"""
    dr = abs(b[0] - a[0])
    dc = abs(b[1] - a[1])
    cartesian = max(dr, dc)
    diagonal = min(dr, dc)
    return float(cartesian - diagonal + SQRT_2 * diagonal)


def zero(a: Cell, b: Cell) -> float:
    return 0.0


DISTANCE_FUNCTIONS: Dict[str, Callable[[Cell, Cell], float]] = {
    "euclidean": euclidean,
    "manhattan": manhattan,
    "chebyshev": chebyshev,
    "octile": octile,
    "zero": zero,
}


class GridHeuristics:
    """
    Distance heuristics between grid cells, scaled by the base step cost.

    'auto' picks the tightest admissible metric for the connectivity:
    manhattan on 4-connected grids, octile on 8-connected ones.
    """

    def __init__(self, config: Dict[str, Any], connectivity: Connectivity = Connectivity.EIGHT,
                 step_cost: float = 1.0):
        self.config = config
        self.logger = logging.getLogger(__name__)

        self.connectivity = connectivity
        self.step_cost = step_cost
        self.weight = float(config.get("heuristic_weight", 1.0))

        self.heuristic_type = config.get("heuristic", "auto")
        if self.heuristic_type == "auto":
            self.heuristic_type = "manhattan" if connectivity is Connectivity.FOUR else "octile"

        if self.heuristic_type not in DISTANCE_FUNCTIONS:
            self.logger.warning(
                f"Unknown heuristic type: {self.heuristic_type}, using zero"
            )
            self.heuristic_type = "zero"

        if self.heuristic_type == "manhattan" and connectivity is Connectivity.EIGHT:
            self.logger.warning("Manhattan heuristic overestimates on 8-connected grids")

        self.heuristic_func = DISTANCE_FUNCTIONS[self.heuristic_type]

        self.logger.debug(f"Heuristics initialized with {self.heuristic_type}, weight {self.weight}")

    def compute_heuristic(self, current: Cell, goal: Cell) -> float:
        return self.weight * self.step_cost * self.heuristic_func(current, goal)

    def __call__(self, current: Cell, goal: Cell) -> float:
        return self.compute_heuristic(current, goal)

    def get_heuristic_info(self) -> Dict[str, Any]:

        return {
            "heuristic_type": self.heuristic_type,
            "weight": self.weight,
            "step_cost": self.step_cost,
            "connectivity": self.connectivity.value,
            "available_heuristics": list(DISTANCE_FUNCTIONS.keys()),
        }
