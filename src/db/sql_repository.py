"""Implementation of (Session)Repository using SQLAlchemy"""

from datetime import datetime
from typing import Any

from sqlalchemy import select, update
from sqlalchemy.orm import Session

from src.core.models import LogEntry, SessionId, SessionModel, UserId, UserModel
from src.core.shared_types import SessionState, Visibility
from src.db.schema import DBSession, DBUser


class SQLSessionRepository:
    """Data stored using SQL / methods implemented using SQLAlchemy"""

    def __init__(self, db_session: Session) -> None:
        self.db = db_session

    def load_session(self, session_id: SessionId) -> SessionModel | None:
        """Get session by ID, if record exists."""
        session_db = self.db.get(DBSession, session_id)
        if session_db:
            return self._to_model(session_db)
        return None

    def save_session(self, session: SessionModel) -> SessionModel:
        """Insert (session without ID) or fully replace (session with ID) a record."""
        try:
            session_db = self._write_session(session)
            self.db.commit()
        except Exception:
            self.db.rollback()
            raise
        self.db.refresh(session_db)
        return self._to_model(session_db)

    def list_sessions(self) -> list[SessionModel]:
        query = select(DBSession).order_by(DBSession.id.desc())
        return [self._to_model(session_db) for session_db in self.db.scalars(query)]

    def load_user(self, user_id: UserId) -> UserModel | None:
        user_db = self.db.get(DBUser, user_id)
        if user_db:
            return UserModel(
                id=user_db.id,
                games_played=user_db.games_played,
                games_won=user_db.games_won,
            )
        return None

    def finish_session(
        self, session: SessionModel, results: dict[UserId, bool]
    ) -> SessionModel:
        """Session and counters are committed together; counters are incremented in SQL, not read and written back."""
        try:
            session_db = self._write_session(session)
            for user_id, won in results.items():
                if self.db.get(DBUser, user_id) is None:
                    self.db.add(DBUser(id=user_id, games_played=0, games_won=0))
                    self.db.flush()
                self.db.execute(
                    update(DBUser)
                    .where(DBUser.id == user_id)
                    .values(
                        games_played=DBUser.games_played + 1,
                        games_won=DBUser.games_won + (1 if won else 0),
                    )
                )
            self.db.commit()
        except Exception:
            self.db.rollback()
            raise
        self.db.refresh(session_db)
        return self._to_model(session_db)

    def _write_session(self, session: SessionModel) -> DBSession:
        """Stage the record of `session` (inserted or replaced) without committing."""
        session_db = self.db.get(DBSession, session.id) if session.id is not None else None
        if session_db is None:
            session_db = DBSession(id=session.id)
            self.db.add(session_db)

        session_db.game_type = session.game_type
        session_db.visibility = str(session.visibility)
        session_db.players_min = session.players_min
        session_db.players_max = session.players_max
        session_db.players = list(session.players)
        session_db.online_players = list(session.online_players)
        session_db.watchers = list(session.watchers)
        session_db.next_to_move = list(session.next_to_move)
        session_db.state = str(session.state)
        session_db.game_data = session.game_data
        session_db.logs = [self._log_to_json(entry) for entry in session.logs]
        return session_db

    def _to_model(self, session_db: DBSession) -> SessionModel:
        """Convert SQLAlchemy model to data transfer model."""
        return SessionModel(
            id=session_db.id,
            game_type=session_db.game_type,
            visibility=Visibility(session_db.visibility),
            players_min=session_db.players_min,
            players_max=session_db.players_max,
            players=list(session_db.players),
            online_players=list(session_db.online_players),
            watchers=list(session_db.watchers),
            next_to_move=list(session_db.next_to_move),
            state=SessionState(session_db.state),
            game_data=session_db.game_data,
            logs=[self._log_from_json(entry) for entry in session_db.logs],
        )

    @staticmethod
    def _log_to_json(entry: LogEntry) -> dict[str, Any]:
        return {
            "timestamp": entry.timestamp.isoformat(),
            "actor": entry.actor,
            "message": entry.message,
        }

    @staticmethod
    def _log_from_json(entry: dict[str, Any]) -> LogEntry:
        return LogEntry(
            timestamp=datetime.fromisoformat(entry["timestamp"]),
            actor=entry["actor"],
            message=entry["message"],
        )
