"""Cell states of a SeaBattle grid."""

from __future__ import annotations

from enum import Enum


class CellState(Enum):
    """State of a single grid cell.

    Transitions are one-way: EMPTY -> SHIP at placement, SHIP -> HIT or
    EMPTY -> MISS once shot at. Only a board reset clears them.
    """

    EMPTY = "empty"
    SHIP = "ship"
    HIT = "hit"
    MISS = "miss"

    @property
    def is_resolved(self) -> bool:
        """True for cells that have already been shot at."""
        return self in (CellState.HIT, CellState.MISS)
