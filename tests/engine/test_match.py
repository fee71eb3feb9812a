"""High-level match flow tests."""

import random
from typing import Iterable

import pytest

from seabattle.engine.board import Board
from seabattle.engine.cell import CellState
from seabattle.engine.match import EventKind, Match, MatchMode, MatchPhase, computer_target
from seabattle.engine.player import Player
from seabattle.engine.ship import Coordinate, Ship


def scripted(moves: dict[str, Iterable[tuple[int, int]]]):
    queues = {name: iter(shots) for name, shots in moves.items()}

    def targeting(shooter: Player, target: Player) -> Coordinate:
        return Coordinate(*next(queues[shooter.name]))

    return targeting


def _hand_placed_players() -> tuple[Player, Player]:
    alice, bob = Player("alice"), Player("bob")
    alice.board.place_ship(Ship(1), 9, 9, horizontal=True)
    bob.board.place_ship(Ship(2), 0, 0, horizontal=True)
    bob.board.place_ship(Ship(1), 5, 5, horizontal=True)
    return alice, bob


def test_hits_keep_the_turn_until_a_miss() -> None:
    alice, bob = _hand_placed_players()
    targeting = scripted({"alice": [(0, 0), (0, 1), (3, 3), (5, 5)], "bob": [(0, 0)]})
    match = Match(alice, bob, computer_targeting=targeting)
    match.start(place_fleets=False)

    summary = match.play_turn()
    assert summary.player == "alice"
    assert [hit for _, hit in summary.shots] == [True, True, False]
    fired_by = [e.player for e in match.events if e.kind is EventKind.SHOT_FIRED]
    assert fired_by == ["alice", "alice", "alice"]
    assert match.current_player is bob

    match.play_turn()
    assert match.current_player is alice

    final = match.play_turn()
    assert final.game_over
    assert match.phase is MatchPhase.GAME_OVER
    assert match.winner is alice
    assert match.events[-1].kind is EventKind.GAME_OVER


def test_turn_ends_when_the_last_ship_sinks() -> None:
    alice, bob = _hand_placed_players()
    targeting = scripted({"alice": [(0, 0), (0, 1), (5, 5), (8, 8)]})
    match = Match(alice, bob, computer_targeting=targeting)
    match.start(place_fleets=False)

    summary = match.play_turn()
    assert len(summary.shots) == 3
    assert match.winner is alice
    assert bob.board.is_lost()
    assert not alice.board.is_lost()


def test_events_are_delivered_in_registration_order() -> None:
    alice, bob = _hand_placed_players()
    match = Match(alice, bob, computer_targeting=scripted({"alice": [(7, 7)]}))
    received: list[tuple] = []
    match.subscribe_turn_started(lambda name: received.append(("turn", name)))
    match.subscribe_shot_fired(lambda name, row, col: received.append(("fired", name, row, col)))
    match.subscribe_shot_result(lambda name, hit: received.append(("result-1", name, hit)))
    match.subscribe_shot_result(lambda name, hit: received.append(("result-2", name, hit)))
    match.start(place_fleets=False)
    match.play_turn()

    assert received == [
        ("turn", "alice"),
        ("fired", "alice", 7, 7),
        ("result-1", "alice", False),
        ("result-2", "alice", False),
    ]


def test_play_turn_requires_started_match() -> None:
    alice, bob = _hand_placed_players()
    match = Match(alice, bob)
    with pytest.raises(RuntimeError):
        match.play_turn()


def test_play_turn_rejected_after_game_over() -> None:
    alice, bob = _hand_placed_players()
    match = Match(alice, bob, computer_targeting=scripted({"alice": [(0, 0), (0, 1), (5, 5)]}))
    match.start(place_fleets=False)
    match.play_turn()
    with pytest.raises(RuntimeError):
        match.play_turn()


def test_out_of_range_target_is_rejected() -> None:
    alice, bob = _hand_placed_players()
    match = Match(alice, bob, computer_targeting=scripted({"alice": [(10, 0)]}))
    match.start(place_fleets=False)
    with pytest.raises(ValueError):
        match.play_turn()
    assert match.events[-1].kind is EventKind.TURN_STARTED


def test_human_mode_requires_targeting() -> None:
    with pytest.raises(ValueError):
        Match(Player("a"), Player("b"), mode=MatchMode.HUMAN_VS_COMPUTER)


def test_human_targeting_only_drives_player_one() -> None:
    alice, bob = _hand_placed_players()
    human_calls: list[str] = []

    def human(shooter: Player, target: Player) -> Coordinate:
        human_calls.append(shooter.name)
        return Coordinate(8, 0)

    match = Match(
        alice,
        bob,
        mode=MatchMode.HUMAN_VS_COMPUTER,
        human_targeting=human,
        computer_targeting=scripted({"bob": [(0, 0)]}),
    )
    match.start(place_fleets=False)
    match.play_turn()
    match.play_turn()
    assert human_calls == ["alice"]


def test_single_ship_random_match_terminates() -> None:
    alice = Player("alice", random.Random(10))
    bob = Player("bob", random.Random(11))
    match = Match(alice, bob, rng=random.Random(12), manifest=(4,))
    match.start()

    for _ in range(10_000):
        if match.is_over:
            break
        match.play_turn()

    assert match.is_over
    assert [p.board.is_lost() for p in match.players].count(True) == 1
    assert match.winner is not None
    assert not match.winner.board.is_lost()


def test_full_random_match_declares_winner() -> None:
    rng = random.Random(42)
    match = Match(Player("alice", rng), Player("bob", rng), rng=rng)
    winner = match.play()
    loser = match.players[1] if winner is match.players[0] else match.players[0]
    assert loser.board.is_lost()
    assert not winner.board.is_lost()
    assert match.turn_number > 0


def test_rematch_resets_fleets_and_turns() -> None:
    rng = random.Random(3)
    match = Match(Player("alice", rng), Player("bob", rng), rng=rng)
    match.play()
    match.rematch()
    assert match.phase is MatchPhase.AWAITING_TURN
    assert match.winner is None
    assert match.turn_number == 0
    assert match.events == []
    for player in match.players:
        assert len(player.board.fleet) == 10
        assert not player.board.is_lost()


def test_rejected_repeat_shot_leaves_turn_playable() -> None:
    alice = Player("alice")
    bob = Player("bob", reject_repeat_shots=True)
    alice.board.place_ship(Ship(1), 9, 9, horizontal=True)
    bob.board.place_ship(Ship(2), 0, 0, horizontal=True)
    bob.board.place_ship(Ship(1), 5, 5, horizontal=True)
    targeting = scripted(
        {"alice": [(7, 7), (7, 7), (0, 0), (0, 1), (5, 5)], "bob": [(0, 0)]}
    )
    match = Match(alice, bob, computer_targeting=targeting)
    match.start(place_fleets=False)
    match.play_turn()
    match.play_turn()

    with pytest.raises(ValueError):
        match.play_turn()
    assert match.phase is MatchPhase.AWAITING_TURN
    assert match.current_player is alice

    summary = match.play_turn()
    assert summary.game_over
    assert match.winner is alice


def test_computer_target_skips_resolved_cells_when_rejecting() -> None:
    board = Board(reject_repeat_shots=True)
    for row in range(board.size):
        for col in range(board.size):
            board.grid[row][col] = CellState.MISS
    board.grid[4][4] = CellState.EMPTY
    assert computer_target(random.Random(0), board) == Coordinate(4, 4)

    board.grid[4][4] = CellState.MISS
    with pytest.raises(RuntimeError):
        computer_target(random.Random(0), board)


@pytest.mark.parametrize("seed", [0, 8, 31])
def test_random_match_with_repeat_rejection_completes(seed: int) -> None:
    rng = random.Random(seed)
    match = Match(
        Player("alice", rng, reject_repeat_shots=True),
        Player("bob", rng, reject_repeat_shots=True),
        rng=rng,
    )
    winner = match.play()
    assert not winner.board.is_lost()
    assert match.phase is MatchPhase.GAME_OVER
    shots_at = {player.name: 0 for player in match.players}
    for event in match.events:
        if event.kind is EventKind.SHOT_FIRED:
            shots_at[event.player] += 1
    assert all(count <= 100 for count in shots_at.values())


def test_missing_human_targeting_raises_runtime_error() -> None:
    alice, bob = _hand_placed_players()
    match = Match(
        alice,
        bob,
        mode=MatchMode.HUMAN_VS_COMPUTER,
        human_targeting=lambda shooter, target: Coordinate(0, 0),
    )
    match._human_targeting = None
    match.start(place_fleets=False)
    with pytest.raises(RuntimeError):
        match.play_turn()
    assert match.phase is MatchPhase.AWAITING_TURN
