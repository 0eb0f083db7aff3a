import numpy as np
import logging
from typing import Dict, List, Tuple, Any
from dataclasses import dataclass

from gridist.environment.grid_model import GridModel
from gridist.types import Cell


@dataclass(frozen=True)
class Trial:
    index: int
    start: Cell
    goal: Cell


class TrialGenerator:
    """
    Seeded (start, goal) pairs on passable, connected cells.

    The RNG is seeded from (seed, rows, cols), and trials are drawn in order
    from index 0, so the window [start, end) is the same for a given seed
    whatever window is requested.
    """

    def __init__(self, config: Dict[str, Any]):
        self.config = config
        self.logger = logging.getLogger(__name__)

        self.seed = int(config.get('seed', 0))
        self.max_attempts = int(config.get('max_attempts', 100000))

    def generate(self, grid: GridModel, start: int = 0, end: int = 10) -> List[Trial]:
        """
        Draw trials ``start`` to ``end - 1``.

        Args:
            grid: Grid with full ground truth
            start: First trial index kept
            end: One past the last trial index

        Returns:
            Trials in index order
        """
        if start < 0 or end < start:
            raise ValueError(f"Invalid trial window [{start}, {end})")

        rng = np.random.default_rng([self.seed, grid.rows, grid.cols])
        labels = grid.component_labels()
        if not np.any(labels):
            raise ValueError("Grid has no passable cells")

        trials = []
        for index in range(end):
            source, target = self._draw_pair(rng, grid, labels)
            if index >= start:
                trials.append(Trial(index=index, start=source, goal=target))

        self.logger.info(f"Generated {len(trials)} trials [{start}, {end}) with seed {self.seed}")
        return trials

    def _draw_pair(self, rng: np.random.Generator, grid: GridModel,
                   labels: np.ndarray) -> Tuple[Cell, Cell]:
        for _ in range(self.max_attempts):
            source = (int(rng.integers(grid.rows)), int(rng.integers(grid.cols)))
            target = (int(rng.integers(grid.rows)), int(rng.integers(grid.cols)))
            # Label 0 marks blocked cells.
            if source != target and labels[source] and labels[source] == labels[target]:
                return source, target

        raise RuntimeError(f"No connected pair found in {self.max_attempts} attempts")
