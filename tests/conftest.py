import os
import sys

import numpy as np
import pytest

sys.path.insert(0, os.path.join(os.path.dirname(__file__), ".."))

from gridist.environment.grid_model import GridModel
from gridist.environment.map_parser import parse_map_rows


def wall_with_gap(size: int = 5, wall_col: int = 2, gap_row: int = 2) -> np.ndarray:
    """Vertical wall at ``wall_col`` with a single free cell at ``gap_row``."""
    blocked = np.zeros((size, size), dtype=bool)
    blocked[:, wall_col] = True
    blocked[gap_row, wall_col] = False
    return blocked


@pytest.fixture
def wall_blocked():
    return wall_with_gap()


@pytest.fixture
def wall_grid(wall_blocked):
    return GridModel({"connectivity": 4}, blocked=wall_blocked)


@pytest.fixture
def open_grid():
    return GridModel({"connectivity": 8}, blocked=np.zeros((10, 10), dtype=bool))


@pytest.fixture
def pillar_map():
    return parse_map_rows([
        "....",
        ".TT.",
        ".TT.",
        "....",
    ])


@pytest.fixture
def random_blocked():
    rng = np.random.default_rng(7)
    blocked = rng.random((15, 15)) < 0.25
    blocked[0, 0] = False
    blocked[14, 14] = False
    return blocked
