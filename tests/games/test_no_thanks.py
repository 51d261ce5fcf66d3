"""Unit tests for src/games/no_thanks.py"""

import json

import pytest

from src.core.exceptions import GameDataError, IllegalMoveError
from src.games.no_thanks import (
    START_CHIPS,
    NoThanksData,
    NoThanksEngine,
    NoThanksPlayer,
    card_points,
)
from src.games.game_data import decode, encode

TAKE = json.dumps({"take": True})
PAY = json.dumps({"take": False})


@pytest.fixture
def engine() -> NoThanksEngine:
    return NoThanksEngine()


@pytest.fixture
def lobby(engine: NoThanksEngine) -> str:
    """Three ready players, not started yet."""
    game_data = engine.new_game(seed="42").game_data
    for user_id in ["alice", "bob", "carol"]:
        game_data = engine.add_player(game_data, user_id)
        game_data = engine.toggle_ready(game_data, user_id)
    return game_data


def running_game(
    deck: list[int], current_card: int, next_player_id: str = "alice", chips: int = START_CHIPS
) -> str:
    """Hand crafted running game with known cards."""
    data = NoThanksData(
        seed="1",
        started=True,
        players=[
            NoThanksPlayer(id=user_id, ready=True, chips=chips)
            for user_id in ["alice", "bob", "carol"]
        ],
        deck=deck,
        cards_left=len(deck),
        current_card=current_card,
        next_player_id=next_player_id,
    )
    return encode(data)


# --- Setup ---
def test_new_game(engine: NoThanksEngine) -> None:
    result = engine.new_game(seed="7")
    assert (result.players_min, result.players_max) == (3, 5)
    data = decode(result.game_data, NoThanksData)
    assert data.players == []
    assert data.seed == "7"
    assert not data.started


def test_new_game_seed_is_not_guessable(engine: NoThanksEngine) -> None:
    """128 random bits: no search over the seed space can reconstruct hidden cards from visible ones."""
    seeds = {decode(engine.new_game().game_data, NoThanksData).seed for _ in range(3)}
    assert len(seeds) == 3
    assert all(len(seed) == 32 and int(seed, 16) >= 0 for seed in seeds)


def test_roster(engine: NoThanksEngine) -> None:
    game_data = engine.new_game(seed="1").game_data
    game_data = engine.add_player(game_data, "alice")
    game_data = engine.add_player(game_data, "bob")
    game_data = engine.add_player(game_data, "alice")
    assert [p.id for p in decode(game_data, NoThanksData).players] == ["alice", "bob"]

    game_data = engine.remove_player(game_data, "alice")
    assert [p.id for p in decode(game_data, NoThanksData).players] == ["bob"]


def test_ready(engine: NoThanksEngine) -> None:
    game_data = engine.new_game(seed="1").game_data
    assert not engine.check_ready(game_data)

    game_data = engine.add_player(game_data, "alice")
    game_data = engine.add_player(game_data, "bob")
    game_data = engine.toggle_ready(game_data, "alice")
    assert not engine.check_ready(game_data)

    game_data = engine.toggle_ready(game_data, "bob")
    assert engine.check_ready(game_data)

    game_data = engine.toggle_ready(game_data, "bob")
    assert not engine.check_ready(game_data)


def test_toggle_ready_of_stranger(engine: NoThanksEngine) -> None:
    game_data = engine.add_player(engine.new_game(seed="1").game_data, "alice")
    assert engine.toggle_ready(game_data, "stranger") == game_data


def test_start_game(engine: NoThanksEngine, lobby: str) -> None:
    result = engine.start_game(lobby)
    data = decode(result.game_data, NoThanksData)

    assert data.started
    assert result.next_player_ids == [data.next_player_id]
    assert data.next_player_id in {"alice", "bob", "carol"}
    assert data.current_card is not None
    assert data.cards_left == len(data.deck) == 23
    assert len(set(data.deck + [data.current_card])) == 24
    assert all(3 <= card <= 35 for card in data.deck)
    assert all(player.chips == START_CHIPS for player in data.players)


def test_start_game_is_deterministic(engine: NoThanksEngine, lobby: str) -> None:
    assert engine.start_game(lobby) == engine.start_game(lobby)


def test_start_game_twice(engine: NoThanksEngine, lobby: str) -> None:
    started = engine.start_game(lobby).game_data
    with pytest.raises(IllegalMoveError):
        engine.start_game(started)


# --- Moves ---
def test_pay_passes_turn(engine: NoThanksEngine) -> None:
    result = engine.make_move(running_game([10, 20], current_card=30), "alice", PAY)
    data = decode(result.game_data, NoThanksData)

    assert result.next_player_ids == ["bob"]
    assert data.current_card_chips == 1
    assert data.players[0].chips == START_CHIPS - 1


def test_pay_wraps_around(engine: NoThanksEngine) -> None:
    result = engine.make_move(running_game([10], current_card=30, next_player_id="carol"), "carol", PAY)
    assert result.next_player_ids == ["alice"]


def test_take_keeps_turn(engine: NoThanksEngine) -> None:
    game_data = running_game([10, 20], current_card=30)
    game_data = engine.make_move(game_data, "alice", PAY).game_data
    game_data = engine.make_move(game_data, "bob", PAY).game_data
    result = engine.make_move(game_data, "carol", TAKE)
    data = decode(result.game_data, NoThanksData)

    assert result.next_player_ids == ["carol"]
    assert data.players[2].cards == [30]
    assert data.players[2].chips == START_CHIPS + 2
    assert data.current_card == 20
    assert data.current_card_chips == 0
    assert data.cards_left == 1


def test_no_chips_left(engine: NoThanksEngine) -> None:
    with pytest.raises(IllegalMoveError, match="No chips"):
        engine.make_move(running_game([10], current_card=30, chips=0), "alice", PAY)


def test_not_your_card(engine: NoThanksEngine) -> None:
    with pytest.raises(IllegalMoveError):
        engine.make_move(running_game([10], current_card=30), "bob", TAKE)


@pytest.mark.parametrize("move", ["take it", "{}", json.dumps({"take": [1]})])
def test_malformed_move(engine: NoThanksEngine, move: str) -> None:
    with pytest.raises(IllegalMoveError):
        engine.make_move(running_game([10], current_card=30), "alice", move)


def test_last_card_ends_game(engine: NoThanksEngine) -> None:
    """alice: 30 + 31 (a run, counts 30) - 11 chips = 19; bob and carol: 0 - 11 = -11 -> shared first place."""
    game_data = running_game([31], current_card=30)
    game_data = engine.make_move(game_data, "alice", TAKE).game_data
    result = engine.make_move(game_data, "alice", TAKE)
    data = decode(result.game_data, NoThanksData)

    assert result.next_player_ids == []
    assert data.finished
    assert [player.points for player in data.players] == [19, -11, -11]
    assert [player.place for player in data.players] == [3, 1, 1]

    summary = {placement.user_id: placement.place for placement in engine.terminal_summary(result.game_data)}
    assert summary == {"alice": 3, "bob": 1, "carol": 1}


def test_move_after_finish(engine: NoThanksEngine) -> None:
    game_data = engine.make_move(running_game([], current_card=30), "alice", TAKE).game_data
    with pytest.raises(IllegalMoveError, match="not in progress"):
        engine.make_move(game_data, "alice", TAKE)


def test_summary_of_running_game(engine: NoThanksEngine) -> None:
    with pytest.raises(GameDataError):
        engine.terminal_summary(running_game([10], current_card=30))


@pytest.mark.parametrize(
    "cards, expected",
    [
        ([], 0),
        ([35], 35),
        ([3, 4, 5], 3),
        ([10, 12, 13, 27], 10 + 12 + 27),
    ],
)
def test_card_points(cards: list[int], expected: int) -> None:
    assert card_points(cards) == expected


# --- Redaction ---
def test_redaction_hides_chips_and_deck(engine: NoThanksEngine) -> None:
    redacted = engine.redact_for_viewer(running_game([10, 20], current_card=30), "bob")
    data = decode(redacted, NoThanksData)

    assert data.deck == []
    assert data.cards_left == 2
    assert data.seed == ""
    assert {player.id: player.chips for player in data.players} == {
        "alice": None,
        "bob": START_CHIPS,
        "carol": None,
    }
    assert data.current_card == 30


def test_redaction_is_idempotent(engine: NoThanksEngine) -> None:
    once = engine.redact_for_viewer(running_game([10, 20], current_card=30), "bob")
    assert engine.redact_for_viewer(once, "bob") == once


def test_finished_game_is_not_redacted(engine: NoThanksEngine) -> None:
    game_data = engine.make_move(running_game([], current_card=30), "alice", TAKE).game_data
    assert engine.redact_for_viewer(game_data, "bob") == game_data
