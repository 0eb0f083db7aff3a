import numpy as np
import logging
from typing import Dict, List, Tuple, Optional, Any, Callable, Iterable
from dataclasses import dataclass
from scipy.ndimage import label

from gridist.exceptions import OutOfBoundsError
from gridist.types import Cell, CellStatus, Connectivity, Observation, ObservedStatus

UNKNOWN = -1
FREE = 0
BLOCKED = 1

SQRT_2 = float(np.sqrt(2.0))

_STATUS_FROM_CODE = {
    UNKNOWN: CellStatus.UNKNOWN,
    FREE: CellStatus.FREE,
    BLOCKED: CellStatus.BLOCKED,
}

_OBSERVED_FROM_CODE = {
    UNKNOWN: ObservedStatus.UNOBSERVED,
    FREE: ObservedStatus.FREE,
    BLOCKED: ObservedStatus.BLOCKED,
}


@dataclass
class GridInfo:

    dimensions: Tuple[int, int]
    connectivity: int
    total_cells: int
    free_cells: int
    blocked_cells: int
    unknown_cells: int
    observed_cells: int


class GridModel:
    """
    Ground truth plus the agent's append-only observed state of a 2D grid.

    Ground truth is held as an int8 array (-1 unknown, 0 free, 1 blocked).
    Truth may be given in full or produced lazily by a generator the first
    time a cell is observed. Observations are permanent: once a cell is
    observed its status never changes.
    """

    def __init__(self, config: Dict[str, Any],
                 blocked: Optional[np.ndarray] = None,
                 generator: Optional[Callable[[Cell], CellStatus]] = None):
        self.config = config
        self.logger = logging.getLogger(__name__)

        if blocked is not None:
            blocked = np.asarray(blocked, dtype=bool)
            if blocked.ndim != 2:
                raise ValueError(f"Ground truth must be 2D, got shape {blocked.shape}")
            self.dimensions = (int(blocked.shape[0]), int(blocked.shape[1]))
            self._truth = np.where(blocked, BLOCKED, FREE).astype(np.int8)
        else:
            rows = int(config.get('rows', 0))
            cols = int(config.get('cols', 0))
            if rows <= 0 or cols <= 0:
                raise ValueError(f"Grid dimensions must be > 0, got {(rows, cols)}")
            self.dimensions = (rows, cols)
            self._truth = np.full(self.dimensions, UNKNOWN, dtype=np.int8)

        if generator is None and np.any(self._truth == UNKNOWN):
            raise ValueError("Grid without full ground truth needs a generator")

        self._generator = generator
        self._observed = np.full(self.dimensions, UNKNOWN, dtype=np.int8)
        self._observation_log: List[Observation] = []

        self.connectivity = Connectivity.from_value(config.get('connectivity', 8))
        self.step_cost = float(config.get('step_cost', 1.0))
        if self.step_cost <= 0:
            raise ValueError(f"step_cost must be > 0, got {self.step_cost}")

        self._offsets = self._create_neighborhood()

        self.logger.info(f"Grid model initialized: {self.dimensions}, "
                         f"{self.connectivity.value}-connected, step cost {self.step_cost}")

    def _create_neighborhood(self) -> List[Tuple[int, int, float]]:
        offsets = []
        for dr in (-1, 0, 1):
            for dc in (-1, 0, 1):
                if dr == 0 and dc == 0:
                    continue
                diagonal = dr != 0 and dc != 0
                if diagonal and self.connectivity is Connectivity.FOUR:
                    continue
                offsets.append((dr, dc, self.step_cost * (SQRT_2 if diagonal else 1.0)))
        return offsets

    @property
    def rows(self) -> int:
        return self.dimensions[0]

    @property
    def cols(self) -> int:
        return self.dimensions[1]

    def in_bounds(self, cell: Cell) -> bool:
        r, c = cell
        return 0 <= r < self.dimensions[0] and 0 <= c < self.dimensions[1]

    def check_bounds(self, cell: Cell):
        if not self.in_bounds(cell):
            raise OutOfBoundsError(tuple(cell), self.dimensions)

    def cell_status(self, cell: Cell) -> CellStatus:
        """Ground truth. For the environment and sensor only, never the planner."""
        self.check_bounds(cell)
        return _STATUS_FROM_CODE[int(self._truth[cell])]

    def observed_status(self, cell: Cell) -> ObservedStatus:
        self.check_bounds(cell)
        return _OBSERVED_FROM_CODE[int(self._observed[cell])]

    def is_observed(self, cell: Cell) -> bool:
        self.check_bounds(cell)
        return self._observed[cell] != UNKNOWN

    def observe(self, cell: Cell) -> CellStatus:
        """
        Reveal the ground truth of a cell and record it permanently.

        Args:
            cell: Cell to observe

        Returns:
            CellStatus.FREE or CellStatus.BLOCKED
        """
        self.check_bounds(cell)
        cell = (int(cell[0]), int(cell[1]))

        recorded = int(self._observed[cell])
        if recorded != UNKNOWN:
            return _STATUS_FROM_CODE[recorded]

        truth = int(self._truth[cell])
        if truth == UNKNOWN:
            status = self._generator(cell)
            if status is CellStatus.UNKNOWN:
                raise ValueError(f"Generator left {cell} unresolved")
            truth = BLOCKED if status is CellStatus.BLOCKED else FREE
            self._truth[cell] = truth

        self._observed[cell] = truth
        status = _STATUS_FROM_CODE[truth]
        self._observation_log.append(Observation(cell, status))
        return status

    def observe_many(self, cells: Iterable[Cell]) -> List[Observation]:
        return [Observation((int(c[0]), int(c[1])), self.observe(c)) for c in cells]

    def reveal_all(self) -> List[Observation]:
        """Observe every cell (full initial visibility)."""
        cells = [(r, c) for r in range(self.rows) for c in range(self.cols)]
        observations = self.observe_many(cells)
        self.logger.debug(f"Revealed all {len(observations)} cells")
        return observations

    def neighbors(self, cell: Cell) -> List[Cell]:
        """In-bounds neighbors under the configured connectivity, blocked or not."""
        self.check_bounds(cell)
        r, c = cell
        rows, cols = self.dimensions
        out = []
        for dr, dc, _ in self._offsets:
            nr, nc = r + dr, c + dc
            if 0 <= nr < rows and 0 <= nc < cols:
                out.append((nr, nc))
        return out

    def traversal_cost(self, cell_a: Cell, cell_b: Cell) -> float:
        """Base cost of moving between two adjacent cells, ignoring occupancy."""
        self.check_bounds(cell_a)
        self.check_bounds(cell_b)
        dr = abs(cell_a[0] - cell_b[0])
        dc = abs(cell_a[1] - cell_b[1])
        if max(dr, dc) != 1:
            raise ValueError(f"Cells {cell_a} and {cell_b} are not adjacent")
        if dr and dc:
            if self.connectivity is Connectivity.FOUR:
                raise ValueError(f"Diagonal move {cell_a} -> {cell_b} on a 4-connected grid")
            return self.step_cost * SQRT_2
        return self.step_cost

    def is_passable(self, cell: Cell) -> bool:
        """Ground-truth passability."""
        return self.cell_status(cell) is CellStatus.FREE

    def has_path(self, source: Cell, target: Cell) -> bool:
        """Ground-truth connectivity check, used to draw solvable trials."""
        self.check_bounds(source)
        self.check_bounds(target)
        if np.any(self._truth == UNKNOWN):
            raise ValueError("has_path needs full ground truth")
        if not (self.is_passable(source) and self.is_passable(target)):
            return False
        labels = self.component_labels()
        return labels[source] == labels[target]

    def component_labels(self) -> np.ndarray:
        if self.connectivity is Connectivity.EIGHT:
            structure = np.ones((3, 3), dtype=bool)
        else:
            structure = np.array([[0, 1, 0], [1, 1, 1], [0, 1, 0]], dtype=bool)
        labels, _ = label(self._truth == FREE, structure=structure)
        return labels

    def fresh(self) -> "GridModel":
        """Same ground truth and configuration, nothing observed."""
        if self._generator is not None and np.any(self._truth == UNKNOWN):
            return GridModel(self.config, generator=self._generator)
        return GridModel(self.config, blocked=self._truth == BLOCKED)

    @property
    def observations(self) -> List[Observation]:
        return list(self._observation_log)

    def observed_array(self) -> np.ndarray:
        return self._observed.copy()

    def truth_array(self) -> np.ndarray:
        return self._truth.copy()

    def render(self, agent: Optional[Cell] = None, goal: Optional[Cell] = None) -> str:
        """Text view of the observed state: '.' free, '@' blocked, '?' unobserved."""
        symbols = {UNKNOWN: '?', FREE: '.', BLOCKED: '@'}
        lines = []
        for r in range(self.rows):
            row = []
            for c in range(self.cols):
                if agent is not None and (r, c) == tuple(agent):
                    row.append('a')
                elif goal is not None and (r, c) == tuple(goal):
                    row.append('*')
                else:
                    row.append(symbols[int(self._observed[r, c])])
            lines.append(''.join(row))
        return '\n'.join(lines)

    def get_info(self) -> GridInfo:

        total_cells = self.dimensions[0] * self.dimensions[1]

        return GridInfo(
            dimensions=self.dimensions,
            connectivity=self.connectivity.value,
            total_cells=total_cells,
            free_cells=int(np.sum(self._truth == FREE)),
            blocked_cells=int(np.sum(self._truth == BLOCKED)),
            unknown_cells=int(np.sum(self._truth == UNKNOWN)),
            observed_cells=int(np.sum(self._observed != UNKNOWN)),
        )
