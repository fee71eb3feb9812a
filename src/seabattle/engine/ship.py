"""Ship domain model for the SeaBattle engine."""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from typing import Iterator, Sequence

from .cell import CellState

# One 4-deck, two 3-deck, three 2-deck and four 1-deck ships.
FLEET_MANIFEST: tuple[int, ...] = (4, 3, 3, 2, 2, 2, 1, 1, 1, 1)


@dataclass(frozen=True)
class Coordinate:
    """Immutable board coordinate.

    A vertical ship extends along ``row``; a horizontal one along ``col``.
    """

    row: int
    col: int

    def neighbours(self, size: int) -> Iterator[Coordinate]:
        """Yield the 8-neighbourhood of this cell, clamped to the board."""
        for delta_row in (-1, 0, 1):
            for delta_col in (-1, 0, 1):
                if delta_row == 0 and delta_col == 0:
                    continue
                row, col = self.row + delta_row, self.col + delta_col
                if 0 <= row < size and 0 <= col < size:
                    yield Coordinate(row, col)


class Orientation(Enum):
    """Allowed ship orientations."""

    HORIZONTAL = "horizontal"
    VERTICAL = "vertical"

    @property
    def is_horizontal(self) -> bool:
        return self is Orientation.HORIZONTAL


def segment(row: int, col: int, length: int, horizontal: bool) -> list[Coordinate]:
    """Return the cells a ship of ``length`` would cover from ``(row, col)``."""
    if horizontal:
        return [Coordinate(row, col + offset) for offset in range(length)]
    return [Coordinate(row + offset, col) for offset in range(length)]


@dataclass
class Ship:
    """A straight ship; its cells are recorded by the board at placement."""

    size: int
    _coordinates: list[Coordinate] = field(default_factory=list, repr=False)

    def __post_init__(self) -> None:
        if self.size < 1:
            raise ValueError("Ship size must be positive.")

    def add_coordinate(self, row: int, col: int) -> None:
        """Record one more occupied cell."""
        coord = Coordinate(row, col)
        if len(self._coordinates) >= self.size:
            raise ValueError(f"Ship of size {self.size} already holds all its cells.")
        if coord in self._coordinates:
            raise ValueError(f"Ship already occupies {coord}.")
        self._coordinates.append(coord)

    def coordinates(self) -> list[Coordinate]:
        """Return the ordered list of coordinates occupied by this ship."""
        return list(self._coordinates)

    def occupies(self, row: int, col: int) -> bool:
        return Coordinate(row, col) in self._coordinates

    def is_sunk(self, grid: Sequence[Sequence[CellState]]) -> bool:
        """Return True once every occupied cell is marked as hit in ``grid``."""
        if not self._coordinates:
            return False
        return all(grid[coord.row][coord.col] is CellState.HIT for coord in self._coordinates)
