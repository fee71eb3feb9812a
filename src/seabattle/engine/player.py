"""Players and random fleet placement."""

from __future__ import annotations

import logging
import random
from typing import Sequence

from seabattle.telemetry import get_tracer

from .board import BOARD_SIZE, Board
from .ship import FLEET_MANIFEST, Orientation, Ship

logger = logging.getLogger(__name__)
tracer = get_tracer("seabattle.engine.player")

DEFAULT_MAX_ATTEMPTS = 1000
DEFAULT_MAX_LAYOUTS = 20


class FleetPlacementError(RuntimeError):
    """Raised when no legal layout for the fleet could be found."""


class Player:
    """A named participant owning exactly one board."""

    def __init__(
        self,
        name: str,
        rng: random.Random | None = None,
        *,
        board_size: int = BOARD_SIZE,
        reject_repeat_shots: bool = False,
        max_attempts: int = DEFAULT_MAX_ATTEMPTS,
        max_layouts: int = DEFAULT_MAX_LAYOUTS,
    ) -> None:
        self.name = name
        self.board = Board(size=board_size, owner=name, reject_repeat_shots=reject_repeat_shots)
        self.rng = rng or random.Random()
        self.max_attempts = max_attempts
        self.max_layouts = max_layouts

    def __repr__(self) -> str:
        return f"Player(name={self.name!r})"

    def place_ships(self, manifest: Sequence[int] = FLEET_MANIFEST) -> None:
        """Randomly lay out one ship per entry of ``manifest``."""
        with tracer.start_as_current_span("player.place_ships") as span:
            span.set_attribute("player.name", self.name)
            span.set_attribute("fleet.size", len(manifest))
            for layout in range(1, self.max_layouts + 1):
                if self._try_layout(manifest):
                    span.set_attribute("fleet.layouts", layout)
                    logger.info(
                        "fleet_placed",
                        extra={"owner": self.name, "ships": len(manifest), "layouts": layout},
                    )
                    return
                logger.warning("fleet_layout_jammed", extra={"owner": self.name, "layout": layout})
                self.board.reset()
            logger.error(
                "fleet_placement_failed",
                extra={"owner": self.name, "layouts": self.max_layouts},
            )
            raise FleetPlacementError(
                f"Could not place fleet {list(manifest)} for {self.name} "
                f"after {self.max_layouts} layouts."
            )

    def _try_layout(self, manifest: Sequence[int]) -> bool:
        for length in manifest:
            slot = self._random_slot(length) or self._scan_slot(length)
            if slot is None:
                return False
            row, col, horizontal = slot
            self.board.place_ship(Ship(length), row, col, horizontal)
        return True

    def _random_slot(self, length: int) -> tuple[int, int, bool] | None:
        size = self.board.size
        for attempt in range(1, self.max_attempts + 1):
            row = self.rng.randrange(size)
            col = self.rng.randrange(size)
            horizontal = self.rng.choice(list(Orientation)).is_horizontal
            if self.board.can_place_ship(row, col, length, horizontal):
                logger.debug(
                    "random_slot_found",
                    extra={"owner": self.name, "size": length, "attempts": attempt},
                )
                return row, col, horizontal
        return None

    def _scan_slot(self, length: int) -> tuple[int, int, bool] | None:
        """Try every origin and orientation, in random order."""
        size = self.board.size
        candidates = [
            (row, col, horizontal)
            for row in range(size)
            for col in range(size)
            for horizontal in (True, False)
        ]
        self.rng.shuffle(candidates)
        for row, col, horizontal in candidates:
            if self.board.can_place_ship(row, col, length, horizontal):
                logger.info("scan_slot_found", extra={"owner": self.name, "size": length})
                return row, col, horizontal
        return None

    def reset_ships(self, manifest: Sequence[int] = FLEET_MANIFEST) -> None:
        """Clear the board and place a fresh fleet."""
        self.board.reset()
        self.place_ships(manifest)

    def shoot(self, opponent: Player, row: int, col: int) -> bool:
        """Fire at the opponent's board."""
        return opponent.board.shoot(row, col)
