"""Turn coordination between two SeaBattle players."""

from __future__ import annotations

import logging
import random
from dataclasses import dataclass
from enum import Enum
from typing import Callable, Sequence

from seabattle.telemetry import get_meter, get_tracer

from .board import Board
from .player import Player
from .ship import FLEET_MANIFEST, Coordinate

logger = logging.getLogger(__name__)
tracer = get_tracer("seabattle.engine.match")
meter = get_meter("seabattle.engine.match")

TURN_COUNTER = meter.create_counter(
    "seabattle_engine_turns",
    unit="1",
    description="Turns played in a Match",
)

TargetProvider = Callable[[Player, Player], Coordinate]
TurnStartedCallback = Callable[[str], None]
ShotFiredCallback = Callable[[str, int, int], None]
ShotResultCallback = Callable[[str, bool], None]
GameOverCallback = Callable[[str], None]


class MatchPhase(Enum):
    """Lifecycle of a match."""

    SETUP = "setup"
    AWAITING_TURN = "awaiting_turn"
    RESOLVING = "resolving"
    GAME_OVER = "game_over"


class MatchMode(Enum):
    """Who picks the targets for player one."""

    HUMAN_VS_COMPUTER = "human"
    COMPUTER_VS_COMPUTER = "computer"


class EventKind(Enum):
    TURN_STARTED = "turn_started"
    SHOT_FIRED = "shot_fired"
    SHOT_RESULT = "shot_result"
    GAME_OVER = "game_over"


@dataclass(frozen=True)
class MatchEvent:
    """One entry of the match's event log."""

    kind: EventKind
    player: str
    turn: int
    row: int | None = None
    col: int | None = None
    hit: bool | None = None


@dataclass(frozen=True)
class TurnSummary:
    """Shots fired during one turn, in order."""

    player: str
    shots: tuple[tuple[Coordinate, bool], ...]
    game_over: bool


def random_target(rng: random.Random, size: int) -> Coordinate:
    """Uniformly random cell; repeats are allowed."""
    return Coordinate(rng.randrange(size), rng.randrange(size))


def computer_target(rng: random.Random, board: Board) -> Coordinate:
    """Random cell on ``board``, skipping resolved cells when repeats are rejected."""
    if not board.reject_repeat_shots:
        return random_target(rng, board.size)
    open_cells = [
        Coordinate(row, col)
        for row in range(board.size)
        for col in range(board.size)
        if not board.cell(row, col).is_resolved
    ]
    if not open_cells:
        raise RuntimeError(f"No untargeted cells left on {board.owner}'s board.")
    return rng.choice(open_cells)


class Match:
    """Alternates turns between two players until one fleet is sunk.

    A hit lets the shooter fire again; the turn passes only after a miss.
    Observers subscribe to turn/shot/result/game-over notifications, which
    are delivered synchronously in registration order and also appended to
    :attr:`events`.
    """

    def __init__(
        self,
        player1: Player,
        player2: Player,
        *,
        mode: MatchMode = MatchMode.COMPUTER_VS_COMPUTER,
        rng: random.Random | None = None,
        human_targeting: TargetProvider | None = None,
        computer_targeting: TargetProvider | None = None,
        manifest: Sequence[int] = FLEET_MANIFEST,
    ) -> None:
        if mode is MatchMode.HUMAN_VS_COMPUTER and human_targeting is None:
            raise ValueError("Human mode requires a targeting callback.")
        self.players = (player1, player2)
        self.mode = mode
        self.rng = rng or random.Random()
        self.manifest = tuple(manifest)
        self._human_targeting = human_targeting
        self._computer_targeting = computer_targeting or self._random_targeting
        self.phase = MatchPhase.SETUP
        self.turn_number = 0
        self.winner: Player | None = None
        self.events: list[MatchEvent] = []
        self._current_index = 0
        self._turn_started: list[TurnStartedCallback] = []
        self._shot_fired: list[ShotFiredCallback] = []
        self._shot_result: list[ShotResultCallback] = []
        self._game_over: list[GameOverCallback] = []

    # ------------------------------------------------------------------ #
    # Subscriptions
    # ------------------------------------------------------------------ #
    def subscribe_turn_started(self, callback: TurnStartedCallback) -> None:
        self._turn_started.append(callback)

    def subscribe_shot_fired(self, callback: ShotFiredCallback) -> None:
        self._shot_fired.append(callback)

    def subscribe_shot_result(self, callback: ShotResultCallback) -> None:
        self._shot_result.append(callback)

    def subscribe_game_over(self, callback: GameOverCallback) -> None:
        self._game_over.append(callback)

    # ------------------------------------------------------------------ #
    # State queries
    # ------------------------------------------------------------------ #
    @property
    def current_player(self) -> Player:
        return self.players[self._current_index]

    @property
    def opponent(self) -> Player:
        return self.players[1 - self._current_index]

    @property
    def is_over(self) -> bool:
        return self.phase is MatchPhase.GAME_OVER

    def is_human(self, player: Player) -> bool:
        return self.mode is MatchMode.HUMAN_VS_COMPUTER and player is self.players[0]

    # ------------------------------------------------------------------ #
    # Lifecycle
    # ------------------------------------------------------------------ #
    def start(self, place_fleets: bool = True) -> None:
        """Place both fleets (unless already laid out) and hand the first turn to player one."""
        with tracer.start_as_current_span("match.start") as span:
            if place_fleets:
                for player in self.players:
                    player.place_ships(self.manifest)
            self._current_index = 0
            self.turn_number = 0
            self.winner = None
            self.events = []
            self.phase = MatchPhase.AWAITING_TURN
            span.set_attribute("match.mode", self.mode.value)
            logger.info(
                "match_started",
                extra={
                    "player1": self.players[0].name,
                    "player2": self.players[1].name,
                    "mode": self.mode.value,
                },
            )

    def rematch(self) -> None:
        """Re-roll both fleets and start over."""
        for player in self.players:
            player.reset_ships(self.manifest)
        self.start(place_fleets=False)

    def play(self) -> Player:
        """Run turns until one fleet is sunk and return the winner."""
        if self.phase is MatchPhase.SETUP:
            self.start()
        while not self.is_over:
            self.play_turn()
        if self.winner is None:
            raise RuntimeError("Match ended without a winner.")
        return self.winner

    def play_turn(self) -> TurnSummary:
        """Let the current player shoot until a miss, then pass the turn."""
        if self.phase is not MatchPhase.AWAITING_TURN:
            logger.error("turn_rejected", extra={"phase": self.phase.value})
            raise RuntimeError(f"Cannot play a turn while the match is {self.phase.value}.")

        shooter, target = self.current_player, self.opponent
        self.turn_number += 1
        with tracer.start_as_current_span("match.play_turn") as span:
            span.set_attribute("match.turn", self.turn_number)
            span.set_attribute("player", shooter.name)
            self._emit(MatchEvent(EventKind.TURN_STARTED, shooter.name, self.turn_number))

            shots: list[tuple[Coordinate, bool]] = []
            while True:
                coord = self._next_target(shooter, target)
                self.phase = MatchPhase.RESOLVING
                self._emit(
                    MatchEvent(
                        EventKind.SHOT_FIRED, shooter.name, self.turn_number, coord.row, coord.col
                    )
                )
                try:
                    hit = shooter.shoot(target, coord.row, coord.col)
                except (RuntimeError, ValueError):
                    # The shooter keeps the turn and may fire again.
                    self.phase = MatchPhase.AWAITING_TURN
                    logger.error(
                        "shot_rejected",
                        extra={"player": shooter.name, "row": coord.row, "col": coord.col},
                    )
                    raise
                shots.append((coord, hit))
                self._emit(
                    MatchEvent(
                        EventKind.SHOT_RESULT,
                        shooter.name,
                        self.turn_number,
                        coord.row,
                        coord.col,
                        hit,
                    )
                )
                if not hit or target.board.is_lost():
                    break

            span.set_attribute("turn.shots", len(shots))
            TURN_COUNTER.add(1, attributes={"player": shooter.name})
            self._finish_turn()
            return TurnSummary(shooter.name, tuple(shots), self.is_over)

    # ------------------------------------------------------------------ #
    # Internals
    # ------------------------------------------------------------------ #
    def _finish_turn(self) -> None:
        lost = [player for player in self.players if player.board.is_lost()]
        if not lost:
            self._current_index = 1 - self._current_index
            self.phase = MatchPhase.AWAITING_TURN
            return

        loser = lost[0]
        self.winner = self.players[1] if loser is self.players[0] else self.players[0]
        self.phase = MatchPhase.GAME_OVER
        logger.info(
            "match_finished",
            extra={"winner": self.winner.name, "loser": loser.name, "turns": self.turn_number},
        )
        self._emit(MatchEvent(EventKind.GAME_OVER, self.winner.name, self.turn_number))

    def _next_target(self, shooter: Player, target: Player) -> Coordinate:
        if self.is_human(shooter):
            if self._human_targeting is None:
                raise RuntimeError("Human mode requires a targeting callback.")
            coord = self._human_targeting(shooter, target)
        else:
            coord = self._computer_targeting(shooter, target)
        if not target.board.is_valid_coordinate(coord.row, coord.col):
            logger.error(
                "target_out_of_bounds",
                extra={"player": shooter.name, "row": coord.row, "col": coord.col},
            )
            raise ValueError(f"Target ({coord.row}, {coord.col}) is outside the board.")
        return coord

    def _random_targeting(self, shooter: Player, target: Player) -> Coordinate:
        return computer_target(self.rng, target.board)

    def _emit(self, event: MatchEvent) -> None:
        self.events.append(event)
        if event.kind is EventKind.TURN_STARTED:
            for callback in self._turn_started:
                callback(event.player)
        elif event.kind is EventKind.SHOT_FIRED:
            for callback in self._shot_fired:
                callback(event.player, event.row, event.col)
        elif event.kind is EventKind.SHOT_RESULT:
            for callback in self._shot_result:
                callback(event.player, bool(event.hit))
        else:
            for callback in self._game_over:
                callback(event.player)
