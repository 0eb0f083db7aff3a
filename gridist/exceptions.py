"""
Error kinds raised by the gridist core.

Precondition violations fail fast at the call boundary. A missing path
is not an error: see ``NoPathFound``, which is returned, never raised.
"""

from dataclasses import dataclass
from typing import Optional, Tuple


class GridistError(Exception):
    """Base class for all gridist errors."""


class OutOfBoundsError(GridistError, IndexError):
    """Cell coordinates outside the grid. Never silently clamped."""

    def __init__(self, cell: Tuple[int, int], shape: Tuple[int, int]):
        self.cell = cell
        self.shape = shape
        super().__init__(f"Cell {cell} outside grid of shape {shape}")


class InvalidPriorError(GridistError, ValueError):
    """Prior probability outside [0, 1]."""


class InconsistentObservationError(GridistError, RuntimeError):
    """An observation contradicts a previously recorded one for the same cell.

    Fatal for the run: the permanence invariant no longer holds.
    """

    def __init__(self, cell: Tuple[int, int], recorded, observed):
        self.cell = cell
        self.recorded = recorded
        self.observed = observed
        super().__init__(
            f"Observation of {cell} as {observed} contradicts recorded {recorded}"
        )


class MapParseError(GridistError, ValueError):
    """Malformed map or scenario file."""

    def __init__(self, description: str, line: int, column: int,
                 source: Optional[str] = None):
        self.description = description
        self.line = line
        self.column = column
        self.source = source
        where = f"{source}@" if source else ""
        super().__init__(f"Parsing error: {description} ({where}{line}:{column})")


class SearchStateError(GridistError, RuntimeError):
    """Operation not valid in the incremental search's current state."""


@dataclass(frozen=True)
class NoPathFound:
    """Result value: the goal cannot be reached from ``origin`` under current knowledge."""

    origin: Tuple[int, int]
    reason: str = "no finite-cost successor"

    def __bool__(self) -> bool:
        return False
