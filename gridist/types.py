"""Shared types used across the project."""

from dataclasses import dataclass
from enum import Enum
from typing import Tuple

Cell = Tuple[int, int]  # (row, col)

INF = float('inf')


class CellStatus(Enum):
    """Ground-truth status of a cell, as held by the environment."""
    FREE = "free"
    BLOCKED = "blocked"
    UNKNOWN = "unknown"


class ObservedStatus(Enum):
    """What the agent has actually seen of a cell."""
    FREE = "free"
    BLOCKED = "blocked"
    UNOBSERVED = "unobserved"


class Connectivity(Enum):
    FOUR = 4
    EIGHT = 8

    @classmethod
    def from_value(cls, value) -> "Connectivity":
        if isinstance(value, Connectivity):
            return value
        try:
            return cls(int(value))
        except (TypeError, ValueError):
            raise ValueError(f"Connectivity must be 4 or 8, got {value!r}")


@dataclass(frozen=True)
class Observation:
    """A sensing event: ``cell`` was seen to be ``status`` (FREE or BLOCKED)."""
    cell: Cell
    status: CellStatus

    def __post_init__(self):
        if self.status is CellStatus.UNKNOWN:
            raise ValueError(f"Observation of {self.cell} must be FREE or BLOCKED")


__all__ = [
    "Cell",
    "CellStatus",
    "Connectivity",
    "INF",
    "Observation",
    "ObservedStatus",
]
