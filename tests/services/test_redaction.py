"""Unit tests for src/services/redaction.py"""

import json

import pytest

from src.core.exceptions import SessionNotFoundError
from src.core.models import LogEntry, PublicSessionModel, SessionModel, utc_now
from src.core.shared_types import SessionState, Visibility
from src.games.no_thanks import NoThanksEngine
from src.services.redaction import project_for_viewer, project_public


@pytest.fixture
def engine() -> NoThanksEngine:
    return NoThanksEngine()


def make_session(engine: NoThanksEngine, state: SessionState) -> SessionModel:
    game_data = engine.new_game(seed="3").game_data
    for user_id in ["alice", "bob", "carol"]:
        game_data = engine.toggle_ready(engine.add_player(game_data, user_id), user_id)
    result = engine.start_game(game_data)
    return SessionModel(
        id=1,
        game_type="no_thanks",
        visibility=Visibility.PUBLIC,
        players_min=3,
        players_max=5,
        players=["alice", "bob", "carol"],
        online_players=["alice"],
        watchers=["wendy"],
        next_to_move=result.next_player_ids if state == SessionState.STARTED else [],
        state=state,
        game_data=result.game_data,
        logs=[LogEntry(timestamp=utc_now(), actor="alice", message="started the game")],
    )


def test_viewer_projection_of_running_game(engine: NoThanksEngine) -> None:
    session = make_session(engine, SessionState.STARTED)
    projected = project_for_viewer(session, "bob", engine)

    chips = {p["id"]: p["chips"] for p in json.loads(projected.game_data)["players"]}
    assert chips == {"alice": None, "bob": 11, "carol": None}
    assert projected.watchers == ["wendy"]
    # stored session is untouched
    assert json.loads(session.game_data)["deck"] != []


def test_watcher_sees_no_private_state(engine: NoThanksEngine) -> None:
    projected = project_for_viewer(make_session(engine, SessionState.STARTED), None, engine)
    assert all(p["chips"] is None for p in json.loads(projected.game_data)["players"])


def test_finished_session_is_not_redacted(engine: NoThanksEngine) -> None:
    session = make_session(engine, SessionState.FINISHED)
    assert project_for_viewer(session, "bob", engine).game_data == session.game_data


def test_public_projection(engine: NoThanksEngine) -> None:
    public = project_public(make_session(engine, SessionState.STARTED))
    assert public == PublicSessionModel(
        id=1,
        game_type="no_thanks",
        visibility=Visibility.PUBLIC,
        players_min=3,
        players_max=5,
        players=["alice", "bob", "carol"],
        state=SessionState.STARTED,
    )


def test_public_projection_needs_stored_session(engine: NoThanksEngine) -> None:
    session = make_session(engine, SessionState.LOBBY)
    session.id = None
    with pytest.raises(SessionNotFoundError):
        project_public(session)
