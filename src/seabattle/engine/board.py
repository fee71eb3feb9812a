"""Grid and fleet management for a single SeaBattle player."""

from __future__ import annotations

import logging
from dataclasses import dataclass, field

from seabattle.telemetry import get_meter, get_tracer

from .cell import CellState
from .ship import Ship, segment

logger = logging.getLogger(__name__)
tracer = get_tracer("seabattle.engine.board")
meter = get_meter("seabattle.engine.board")

BOARD_SIZE = 10

PLACEMENT_COUNTER = meter.create_counter(
    "seabattle_engine_ship_placements",
    unit="1",
    description="Ships placed on a board",
)

SHOT_COUNTER = meter.create_counter(
    "seabattle_engine_shots",
    unit="1",
    description="Shots received by a board",
)


def _empty_grid(size: int) -> list[list[CellState]]:
    return [[CellState.EMPTY for _ in range(size)] for _ in range(size)]


@dataclass
class Board:
    """A player's square grid of cell states plus the fleet placed on it."""

    size: int = BOARD_SIZE
    owner: str = "unknown"
    reject_repeat_shots: bool = False
    grid: list[list[CellState]] = field(init=False)
    fleet: list[Ship] = field(init=False)

    def __post_init__(self) -> None:
        self.grid = _empty_grid(self.size)
        self.fleet = []

    def is_valid_coordinate(self, row: int, col: int) -> bool:
        """Check whether a coordinate lies inside the board boundaries."""
        return 0 <= row < self.size and 0 <= col < self.size

    def cell(self, row: int, col: int) -> CellState:
        return self.grid[row][col]

    def can_place_ship(self, row: int, col: int, length: int, horizontal: bool) -> bool:
        """Check that a ship fits here and keeps one free cell around every other ship."""
        if length < 1:
            return False
        cells = segment(row, col, length, horizontal)
        if not all(self.is_valid_coordinate(c.row, c.col) for c in cells):
            return False

        for coord in cells:
            if self.grid[coord.row][coord.col] is not CellState.EMPTY:
                return False
            for neighbour in coord.neighbours(self.size):
                if self.grid[neighbour.row][neighbour.col] is CellState.SHIP:
                    return False
        return True

    def place_ship(self, ship: Ship, row: int, col: int, horizontal: bool) -> None:
        """Write ``ship`` onto the grid; the position must pass ``can_place_ship``."""
        with tracer.start_as_current_span("board.place_ship") as span:
            span.set_attribute("ship.size", ship.size)
            span.set_attribute("ship.start.row", row)
            span.set_attribute("ship.start.col", col)
            span.set_attribute("ship.horizontal", horizontal)
            span.set_attribute("board.owner", self.owner)
            if ship.coordinates() or not self.can_place_ship(row, col, ship.size, horizontal):
                PLACEMENT_COUNTER.add(1, attributes={"result": "rejected", "owner": self.owner})
                logger.error(
                    "ship_placement_rejected",
                    extra={
                        "owner": self.owner,
                        "size": ship.size,
                        "row": row,
                        "col": col,
                        "horizontal": horizontal,
                    },
                )
                raise ValueError(
                    f"Cannot place ship of size {ship.size} at ({row}, {col})."
                )

            for coord in segment(row, col, ship.size, horizontal):
                self.grid[coord.row][coord.col] = CellState.SHIP
                ship.add_coordinate(coord.row, coord.col)
            self.fleet.append(ship)
            PLACEMENT_COUNTER.add(1, attributes={"result": "success", "owner": self.owner})
            logger.info(
                "ship_placed",
                extra={
                    "owner": self.owner,
                    "size": ship.size,
                    "row": row,
                    "col": col,
                    "horizontal": horizontal,
                },
            )

    def shoot(self, row: int, col: int) -> bool:
        """Resolve a shot at ``(row, col)`` and return True on a hit.

        Shooting a cell that was already hit or missed changes nothing and
        reports a miss, unless ``reject_repeat_shots`` is set.
        """
        with tracer.start_as_current_span("board.shoot") as span:
            span.set_attribute("shot.row", row)
            span.set_attribute("shot.col", col)
            span.set_attribute("board.owner", self.owner)
            if not self.is_valid_coordinate(row, col):
                logger.error(
                    "shot_out_of_bounds",
                    extra={"row": row, "col": col, "owner": self.owner},
                )
                raise ValueError("Shot out of bounds.")

            state = self.grid[row][col]
            if state is CellState.SHIP:
                self.grid[row][col] = CellState.HIT
                span.set_attribute("shot.outcome", "hit")
                SHOT_COUNTER.add(1, attributes={"outcome": "hit", "owner": self.owner})
                logger.info("shot_hit", extra={"row": row, "col": col, "owner": self.owner})
                ship = self.ship_at(row, col)
                if ship is not None and ship.is_sunk(self.grid):
                    span.set_attribute("shot.sunk", True)
                    logger.info(
                        "ship_sunk",
                        extra={"size": ship.size, "owner": self.owner},
                    )
                    self.mark_around_sunk_ship(ship)
                return True

            if state is CellState.EMPTY:
                self.grid[row][col] = CellState.MISS
                span.set_attribute("shot.outcome", "miss")
                SHOT_COUNTER.add(1, attributes={"outcome": "miss", "owner": self.owner})
                logger.info("shot_miss", extra={"row": row, "col": col, "owner": self.owner})
                return False

            if self.reject_repeat_shots:
                logger.error(
                    "shot_duplicate",
                    extra={"row": row, "col": col, "owner": self.owner},
                )
                raise ValueError("Cell has already been targeted.")
            span.set_attribute("shot.outcome", "repeat")
            SHOT_COUNTER.add(1, attributes={"outcome": "repeat", "owner": self.owner})
            logger.warning(
                "shot_repeated",
                extra={"row": row, "col": col, "state": state.value, "owner": self.owner},
            )
            return False

    def ship_at(self, row: int, col: int) -> Ship | None:
        """Return the first fleet ship covering ``(row, col)``."""
        for ship in self.fleet:
            if ship.occupies(row, col):
                return ship
        return None

    def mark_around_sunk_ship(self, ship: Ship) -> None:
        """Reveal the empty border of a sunk ship as misses."""
        revealed = 0
        for coord in ship.coordinates():
            for neighbour in coord.neighbours(self.size):
                if self.grid[neighbour.row][neighbour.col] is CellState.EMPTY:
                    self.grid[neighbour.row][neighbour.col] = CellState.MISS
                    revealed += 1
        logger.debug("sunk_border_revealed", extra={"cells": revealed, "owner": self.owner})

    def is_lost(self) -> bool:
        """True once every ship in the fleet is sunk (vacuously for an empty fleet)."""
        return all(ship.is_sunk(self.grid) for ship in self.fleet)

    def remaining_ships(self) -> int:
        return sum(1 for ship in self.fleet if not ship.is_sunk(self.grid))

    def reset(self) -> None:
        """Clear the grid and remove every ship."""
        self.grid = _empty_grid(self.size)
        self.fleet.clear()
        logger.debug("board_reset", extra={"owner": self.owner})
