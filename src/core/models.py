"""
Boundary layer data model(s).

These objects are used to communicate with the Service.
Both the API layer (higher) and the db / games layers (lower) send to / receive from the Service using the models defined here.
(Decouples the data model specific to the DB layer or the API layer from the information needed to send across boundaries)
"""

from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Optional

from src.core.shared_types import SessionState, Visibility

# Type aliases to make SessionModel easier to read
UserId = str
SessionId = int
GameData = str  # opaque, owned by the rules engine of the session's game type


def utc_now() -> datetime:
    return datetime.now(timezone.utc)


@dataclass
class LogEntry:
    """One line of the session's audit trail."""

    timestamp: datetime
    actor: UserId
    message: str


@dataclass
class SessionModel:
    """Transport-safe representation of one game session used between API, Service, DB, and Games layers."""

    id: Optional[SessionId]
    game_type: str
    visibility: Visibility
    players_min: int
    players_max: int
    players: list[UserId] = field(default_factory=list)
    online_players: list[UserId] = field(default_factory=list)
    watchers: list[UserId] = field(default_factory=list)
    next_to_move: list[UserId] = field(default_factory=list)
    state: SessionState = SessionState.LOBBY
    game_data: GameData = ""
    logs: list[LogEntry] = field(default_factory=list)


@dataclass
class PublicSessionModel:
    """What a list view gets to see of a session: no watchers, no logs, no game data."""

    id: SessionId
    game_type: str
    visibility: Visibility
    players_min: int
    players_max: int
    players: list[UserId]
    state: SessionState


@dataclass
class UserModel:
    """Cumulative counters of a user. Only changed when a session they play in finishes."""

    id: UserId
    games_played: int = 0
    games_won: int = 0
