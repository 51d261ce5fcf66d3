"""Unit tests for src/services/dependencies.py"""

from src.api.models import CreateSessionRequest, GetSessionRequest
from src.core.config import Settings
from src.core.shared_types import SessionState
from src.services.dependencies import build_session_service, configure
from src.services.locks import SESSION_LOCKS


def test_wiring() -> None:
    settings = Settings(database_url="sqlite:///:memory:", lock_timeout=3.0, log_level="WARNING")
    session_factory = configure(settings)

    with session_factory() as db:
        service = build_session_service(db, settings)
        assert service.lock_timeout == 3.0
        assert service.locks is SESSION_LOCKS

        created = service.create_session(CreateSessionRequest(user_id="alice", game_type="perudo"))
        fetched = service.get_session(GetSessionRequest(session_id=created.session_id))
        assert fetched.state == SessionState.LOBBY
        assert (fetched.players_min, fetched.players_max) == (2, 6)
