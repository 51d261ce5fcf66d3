"""
Error taxonomy shared by all layers.

Every error is non-fatal to the process and is surfaced to the caller as-is: `kind` identifies the category,
`action` names the attempted action, and `str(error)` is the human-readable reason.
Business-rule failures are deterministic given unchanged state, so nothing here is retried.
"""

from typing import Optional


class SessionError(Exception):
    """Top-level error for anything going wrong while handling a session action."""

    kind = "session"
    default_action: Optional[str] = None

    def __init__(self, message: str, action: Optional[str] = None) -> None:
        super().__init__(message)
        self.message = message
        self.action = action or self.default_action

    def __repr__(self) -> str:
        return f"{type(self).__name__}(kind={self.kind!r}, action={self.action!r}, message={self.message!r})"


class InvalidRequestError(SessionError):
    kind = "invalid_request"


class UnknownGameTypeError(SessionError):
    kind = "unknown_game_type"
    default_action = "create"


class SessionNotFoundError(SessionError):
    kind = "session_not_found"


class SessionBusyError(SessionError):
    """Could not get hold of the session within the configured lock timeout."""

    kind = "session_busy"


# --- Lifecycle violations (one per action) ---
class JoinError(SessionError):
    kind = "join"
    default_action = "join"


class OpenError(SessionError):
    kind = "open"
    default_action = "open"


class WatchError(SessionError):
    kind = "watch"
    default_action = "watch"


class LeaveError(SessionError):
    kind = "leave"
    default_action = "leave"


class CloseError(SessionError):
    kind = "close"
    default_action = "close"


class StartError(SessionError):
    kind = "start"
    default_action = "start"


class MoveError(SessionError):
    kind = "move"
    default_action = "move"


StartingGameError = StartError
MakingMoveError = MoveError


# --- Rules engine side ---
class EngineError(SessionError):
    """The rules engine failed or returned something the session cannot accept."""

    kind = "engine"


class GameDataError(EngineError):
    """Game data blob could not be decoded."""


class IllegalMoveError(EngineError):
    """Move is well-formed but not allowed by the rules of the game."""
