"""Protocol repository (implemented with SQLAlchemy; tests use a dictionary)"""

from typing import Protocol

from src.core.models import SessionId, SessionModel, UserId, UserModel


class SessionRepository(Protocol):
    """Persistence layer orchestration"""

    def load_session(self, session_id: SessionId) -> SessionModel | None:
        """Get session by ID, if record exists."""
        ...

    def save_session(self, session: SessionModel) -> SessionModel:
        """Insert (session without ID) or fully replace (session with ID) a record. Returns the stored data, including its ID."""
        ...

    def list_sessions(self) -> list[SessionModel]:
        """All sessions, newest first."""
        ...

    def load_user(self, user_id: UserId) -> UserModel | None:
        """Get a user's counters, if record exists."""
        ...

    def finish_session(
        self, session: SessionModel, results: dict[UserId, bool]
    ) -> SessionModel:
        """
        Store a finished session together with the counters of its players, as one unit of work.

        Every user in `results` gets one more game played, and one more game won if mapped to True
        (records are created as needed). Either everything is stored or nothing is.
        """
        ...
