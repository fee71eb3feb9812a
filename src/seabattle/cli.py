"""Console front-end: input collection, board rendering and the entry point."""

from __future__ import annotations

import argparse
import time
from typing import Callable, Sequence

from seabattle.config import MatchConfig
from seabattle.engine.board import Board
from seabattle.engine.cell import CellState
from seabattle.engine.instrumented_match import InstrumentedMatch
from seabattle.engine.match import Match, MatchMode, computer_target
from seabattle.engine.player import Player
from seabattle.engine.ship import Coordinate
from seabattle.telemetry import configure_console_logging, init_telemetry

InputFn = Callable[[str], str]
OutputFn = Callable[[str], None]

GLYPHS = {
    CellState.EMPTY: ".",
    CellState.SHIP: "#",
    CellState.HIT: "X",
    CellState.MISS: "o",
}


def parse_coordinate(text: str, size: int = 10) -> Coordinate:
    """Parse ``"row col"`` (space or comma separated) into a coordinate."""
    parts = text.replace(",", " ").split()
    if len(parts) != 2:
        raise ValueError("Enter two numbers, e.g. '3 7'.")
    try:
        row, col = (int(part) for part in parts)
    except ValueError as exc:
        raise ValueError("Coordinates must be whole numbers.") from exc
    if not (0 <= row < size and 0 <= col < size):
        raise ValueError(f"Coordinates must be between 0 and {size - 1}.")
    return Coordinate(row, col)


def prompt_coordinate(
    input_fn: InputFn = input, output_fn: OutputFn = print, size: int = 10
) -> Coordinate:
    """Ask until a valid coordinate is entered; 'q' quits."""
    while True:
        raw = input_fn("Enter target as 'row col' (0-9) or 'q' to quit: ").strip()
        if raw.lower() == "q":
            raise SystemExit("Goodbye!")
        try:
            return parse_coordinate(raw, size)
        except ValueError as exc:
            output_fn(f"Invalid input: {exc}")


def format_board(board: Board, hide_ships: bool) -> str:
    header = "   " + " ".join(str(col) for col in range(board.size))
    rows = [header]
    for row in range(board.size):
        symbols = []
        for col in range(board.size):
            state = board.cell(row, col)
            if hide_ships and state is CellState.SHIP:
                state = CellState.EMPTY
            symbols.append(GLYPHS[state])
        rows.append(f"{row:>2} " + " ".join(symbols))
    return "\n".join(rows)


class ConsoleReporter:
    """Prints match notifications as they happen."""

    def __init__(self, match: Match, output_fn: OutputFn = print) -> None:
        self._output = output_fn
        match.subscribe_turn_started(self.turn_started)
        match.subscribe_shot_fired(self.shot_fired)
        match.subscribe_shot_result(self.shot_result)
        match.subscribe_game_over(self.game_over)

    def turn_started(self, player: str) -> None:
        self._output(f"\n{player}'s turn.")

    def shot_fired(self, player: str, row: int, col: int) -> None:
        self._output(f"{player} fires at ({row}, {col})...")

    def shot_result(self, player: str, hit: bool) -> None:
        self._output("Hit! Shoot again." if hit else "Miss.")

    def game_over(self, winner: str) -> None:
        self._output(f"\n{winner} wins!")


def build_match(
    config: MatchConfig,
    input_fn: InputFn = input,
    output_fn: OutputFn = print,
    sleep_fn: Callable[[float], None] = time.sleep,
) -> InstrumentedMatch:
    """Wire players, targeting and console output into a match."""
    rng = config.make_rng()
    player_options = {
        "reject_repeat_shots": config.reject_repeat_shots,
        "max_attempts": config.max_placement_attempts,
        "max_layouts": config.max_layouts,
    }
    player = Player(config.player_name, rng, **player_options)
    opponent = Player(config.opponent_name, rng, **player_options)

    def human_targeting(shooter: Player, target: Player) -> Coordinate:
        output_fn("\nYour board:")
        output_fn(format_board(shooter.board, hide_ships=False))
        output_fn("\nEnemy waters:")
        output_fn(format_board(target.board, hide_ships=True))
        output_fn(f"Enemy ships afloat: {target.board.remaining_ships()}")
        while True:
            coord = prompt_coordinate(input_fn, output_fn, target.board.size)
            already_shot = target.board.cell(coord.row, coord.col).is_resolved
            if not (target.board.reject_repeat_shots and already_shot):
                return coord
            output_fn("That cell has already been targeted. Choose another.")

    def computer_targeting(shooter: Player, target: Player) -> Coordinate:
        if config.computer_delay:
            sleep_fn(config.computer_delay)
        return computer_target(rng, target.board)

    human = config.mode is MatchMode.HUMAN_VS_COMPUTER
    match = InstrumentedMatch(
        player,
        opponent,
        mode=config.mode,
        rng=rng,
        human_targeting=human_targeting if human else None,
        computer_targeting=computer_targeting,
    )
    ConsoleReporter(match, output_fn)
    return match


def _ask_rematch(input_fn: InputFn) -> bool:
    while True:
        raw = input_fn("Play again? [y/N]: ").strip().lower()
        if raw in {"", "n", "no"}:
            return False
        if raw in {"y", "yes"}:
            return True


def play_game(
    config: MatchConfig,
    input_fn: InputFn = input,
    output_fn: OutputFn = print,
    sleep_fn: Callable[[float], None] = time.sleep,
) -> str:
    """Play until the user declines a rematch; returns the last winner's name."""
    output_fn("Welcome to SeaBattle!")
    match = build_match(config, input_fn, output_fn, sleep_fn)
    winner = match.play()
    while config.mode is MatchMode.HUMAN_VS_COMPUTER and _ask_rematch(input_fn):
        match.rematch()
        winner = match.play()

    for player in match.players:
        output_fn(f"\n{player.name}'s board:")
        output_fn(format_board(player.board, hide_ships=False))
    return winner.name


def parse_args(argv: Sequence[str] | None = None) -> argparse.Namespace:
    parser = argparse.ArgumentParser(description="Play SeaBattle in the terminal.")
    parser.add_argument("--seed", type=int, default=None, help="RNG seed for reproducible games.")
    parser.add_argument(
        "--mode",
        choices=[mode.value for mode in MatchMode],
        default=None,
        help="'human' to play against the computer, 'computer' to watch two bots.",
    )
    parser.add_argument(
        "--delay", type=float, default=None, help="Seconds to pause before each computer shot."
    )
    parser.add_argument("--player-name", default=None)
    parser.add_argument("--opponent-name", default=None)
    parser.add_argument("--log-level", default=None, help="Console log level (e.g. INFO).")
    return parser.parse_args(argv)


def main(argv: Sequence[str] | None = None) -> None:
    args = parse_args(argv)
    config = MatchConfig.from_env(
        seed=args.seed,
        mode=args.mode,
        computer_delay=args.delay,
        player_name=args.player_name,
        opponent_name=args.opponent_name,
        log_level=args.log_level,
    )
    configure_console_logging(config.log_level.upper())
    init_telemetry()
    play_game(config)


if __name__ == "__main__":
    main()
