import logging
from typing import Dict, List, Any
from collections import deque

from gridist.environment.grid_model import GridModel
from gridist.types import Cell, Observation

SENSOR_SHAPES = ('square', 'diamond')


class Sensor:
    """
    Fixed-radius sensor over a GridModel.

    Every in-bounds cell within ``radius`` of the agent (Chebyshev ball for
    'square', Manhattan ball for 'diamond') is observed through
    GridModel.observe, the only path by which hidden information enters.
    """

    def __init__(self, config: Dict[str, Any]):
        self.config = config
        self.logger = logging.getLogger(__name__)

        self.radius = int(config.get('sensor_radius', 1))
        self.shape = config.get('sensor_shape', 'square')

        if self.radius < 0:
            raise ValueError(f"sensor_radius must be >= 0, got {self.radius}")
        if self.shape not in SENSOR_SHAPES:
            raise ValueError(f"Unknown sensor shape: {self.shape}, expected one of {SENSOR_SHAPES}")

        self.scan_history: deque = deque(maxlen=100)
        self.total_scans = 0

        self.logger.info(f"Sensor initialized: radius={self.radius}, shape={self.shape}")

    def cells_in_range(self, grid: GridModel, center: Cell) -> List[Cell]:
        grid.check_bounds(center)
        r0, c0 = center
        cells = []
        for dr in range(-self.radius, self.radius + 1):
            for dc in range(-self.radius, self.radius + 1):
                if self.shape == 'diamond' and abs(dr) + abs(dc) > self.radius:
                    continue
                cell = (r0 + dr, c0 + dc)
                if grid.in_bounds(cell):
                    cells.append(cell)
        return cells

    def sense(self, grid: GridModel, center: Cell) -> List[Observation]:
        """
        Observe every cell in range of ``center``.

        Args:
            grid: Grid holding the ground truth
            center: Agent position

        Returns:
            Observations for all cells in range (already-observed cells included)
        """
        observations = grid.observe_many(self.cells_in_range(grid, center))

        self.total_scans += 1
        self.scan_history.append((tuple(center), len(observations)))
        self.logger.debug(f"Scan at {center}: {len(observations)} cells")

        return observations
