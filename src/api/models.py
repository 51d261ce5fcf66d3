"""Requests and Response models"""

from datetime import datetime
from typing import Optional, Self

from pydantic import BaseModel, ValidationInfo, field_validator

from src.core.exceptions import InvalidRequestError, SessionError
from src.core.shared_types import SessionState, Visibility

SessionId = int
UserId = str


def _require_text(value: str, field_name: str) -> str:
    value = value.strip()
    if not value:
        raise InvalidRequestError(f"{field_name} must not be empty.")
    return value


# --- REQUEST MODELS ---
class CreateSessionRequest(BaseModel):
    user_id: UserId
    game_type: str
    visibility: Visibility = Visibility.PUBLIC

    @field_validator("user_id", "game_type")
    @classmethod
    def validate_not_blank(cls, value: str, info: ValidationInfo) -> str:
        return _require_text(value, info.field_name)


class SessionActionRequest(BaseModel):
    """Any action of a verified user on an existing session."""

    session_id: SessionId
    user_id: UserId

    @field_validator("user_id")
    @classmethod
    def validate_user_id(cls, value: str) -> str:
        return _require_text(value, "user_id")


class JoinSessionRequest(SessionActionRequest):
    pass


class OpenSessionRequest(SessionActionRequest):
    pass


class WatchSessionRequest(SessionActionRequest):
    pass


class LeaveSessionRequest(SessionActionRequest):
    pass


class CloseSessionRequest(SessionActionRequest):
    pass


class ToggleReadyRequest(SessionActionRequest):
    pass


class StartSessionRequest(SessionActionRequest):
    pass


class MoveRequest(SessionActionRequest):
    move: str  # engine specific, passed through untouched

    @field_validator("move")
    @classmethod
    def validate_move(cls, value: str) -> str:
        if not value.strip():
            raise InvalidRequestError("move must not be empty.")
        return value


class GetSessionRequest(BaseModel):
    session_id: SessionId
    viewer_id: Optional[UserId] = None


class ListSessionsRequest(BaseModel):
    ignore_not_started: bool = False
    ignore_started: bool = False
    ignore_finished: bool = False


# --- RESPONSE MODELS ---
class LogEntryResponse(BaseModel):
    timestamp: datetime
    actor: UserId
    message: str


class SessionResponse(BaseModel):
    session_id: SessionId
    game_type: str
    visibility: Visibility
    state: SessionState
    players_min: int
    players_max: int
    players: list[UserId]
    online_players: list[UserId]
    watchers: list[UserId]
    next_to_move: list[UserId]
    game_data: str
    logs: list[LogEntryResponse]


class SessionSummaryResponse(BaseModel):
    session_id: SessionId
    game_type: str
    visibility: Visibility
    state: SessionState
    players_min: int
    players_max: int
    players: list[UserId]


class ErrorResponse(BaseModel):
    kind: str
    action: Optional[str]
    message: str

    @classmethod
    def from_error(cls, error: SessionError) -> Self:
        return cls(kind=error.kind, action=error.action, message=error.message)
