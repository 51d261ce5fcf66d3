"""
Contract between the session layer and the rules of a specific game type.

The Service only ever talks to a `RulesEngine`. Game data is an opaque string it passes back and forth;
the one piece it needs to understand (who finished where) is exposed through `terminal_summary`.

`RosterRulesEngine` implements the roster bookkeeping (joining, leaving, readiness, placements, redaction of finished games)
that every game in this package shares, so a concrete game only has to implement dealing, moving, and hiding.
"""

import secrets
from dataclasses import dataclass
from typing import Callable, Generic, Optional, Protocol, TypeVar

from pydantic import BaseModel

from src.core.exceptions import GameDataError, IllegalMoveError
from src.games.game_data import decode, encode


# --- RESULT TYPES ---
@dataclass(frozen=True)
class NewGameResult:
    players_min: int
    players_max: int
    game_data: str


@dataclass(frozen=True)
class MoveResult:
    """Result of starting a game or making a move. No next players means the game is over."""

    game_data: str
    next_player_ids: list[str]


@dataclass(frozen=True)
class PlayerPlacement:
    user_id: str
    place: int


# --- CONTRACT ---
class RulesEngine(Protocol):
    """
    Rules of one game type.

    Every method is pure and deterministic given its inputs: implementations hold no per-session state,
    so a single instance serves all concurrent sessions of its game type.
    """

    def new_game(self) -> NewGameResult: ...

    def add_player(self, game_data: str, user_id: str) -> str: ...

    def remove_player(self, game_data: str, user_id: str) -> str: ...

    def toggle_ready(self, game_data: str, user_id: str) -> str: ...

    def check_ready(self, game_data: str) -> bool: ...

    def start_game(self, game_data: str) -> MoveResult: ...

    def make_move(self, game_data: str, user_id: str, move: str) -> MoveResult: ...

    def redact_for_viewer(self, game_data: str, viewer_id: str) -> str:
        """Hide what `viewer_id` is not supposed to see. Idempotent; returns finished games unchanged."""
        ...

    def terminal_summary(self, game_data: str) -> list[PlayerPlacement]:
        """Place of every player of a finished game (1 = winner)."""
        ...


# --- SHARED GAME DATA ---
class BasePlayer(BaseModel):
    id: str
    ready: bool = False
    place: Optional[int] = None


class BaseGameData(BaseModel):
    seed: str  # 128 bit token, never shown to players while the game runs
    started: bool = False
    finished: bool = False
    players: list[BasePlayer] = []


PlayerT = TypeVar("PlayerT", bound=BasePlayer)
DataT = TypeVar("DataT", bound=BaseGameData)


class RosterRulesEngine(Generic[DataT, PlayerT]):
    """Roster handling shared by the games in this package. Subclasses provide the game itself."""

    name: str
    players_min: int
    players_max: int
    data_model: type[DataT]
    player_model: type[PlayerT]

    # -- Contract --
    def new_game(self, seed: Optional[str] = None) -> NewGameResult:
        """Empty game waiting for players. All later randomness is derived from the seed stored in the game data."""
        data = self.data_model(seed=secrets.token_hex(16) if seed is None else seed)
        return NewGameResult(
            players_min=self.players_min,
            players_max=self.players_max,
            game_data=encode(data),
        )

    def add_player(self, game_data: str, user_id: str) -> str:
        data = self._load(game_data)
        if data.started:
            raise IllegalMoveError(f"Cannot add player {user_id!r}: game already started.")
        if not any(player.id == user_id for player in data.players):
            data.players.append(self.player_model(id=user_id))
        return encode(data)

    def remove_player(self, game_data: str, user_id: str) -> str:
        """Players leaving a finished game stay in its data, their result is history."""
        data = self._load(game_data)
        if data.finished:
            return game_data
        if data.started:
            raise IllegalMoveError(f"Cannot remove player {user_id!r} from a running game.")
        data.players = [player for player in data.players if player.id != user_id]
        return encode(data)

    def toggle_ready(self, game_data: str, user_id: str) -> str:
        """Unknown users are ignored."""
        data = self._load(game_data)
        for player in data.players:
            if player.id == user_id:
                player.ready = not player.ready
        return encode(data)

    def check_ready(self, game_data: str) -> bool:
        data = self._load(game_data)
        return bool(data.players) and all(player.ready for player in data.players)

    def start_game(self, game_data: str) -> MoveResult:
        data = self._load(game_data)
        if data.started:
            raise IllegalMoveError("Game already started.")
        first_player_id = self._deal(data)
        data.started = True
        return MoveResult(game_data=encode(data), next_player_ids=[first_player_id])

    def make_move(self, game_data: str, user_id: str, move: str) -> MoveResult:
        data = self._load(game_data)
        if not data.started or data.finished:
            raise IllegalMoveError("Game is not in progress.")
        next_player_ids = self._apply_move(data, self._player(data, user_id), move)
        return MoveResult(game_data=encode(data), next_player_ids=next_player_ids)

    def redact_for_viewer(self, game_data: str, viewer_id: str) -> str:
        data = self._load(game_data)
        if data.finished:
            return game_data
        data.seed = ""
        self._redact(data, viewer_id)
        return encode(data)

    def terminal_summary(self, game_data: str) -> list[PlayerPlacement]:
        data = self._load(game_data)
        if not data.finished:
            raise GameDataError("No terminal summary: game is not finished.")
        summary = []
        for player in data.players:
            if player.place is None:
                raise GameDataError(f"Finished game has no place for player {player.id!r}.")
            summary.append(PlayerPlacement(user_id=player.id, place=player.place))
        return summary

    # -- Game specific (implemented by subclasses) --
    def _deal(self, data: DataT) -> str:
        """Set up the started game in place. Returns the id of the first player to move."""
        raise NotImplementedError

    def _apply_move(self, data: DataT, player: PlayerT, move: str) -> list[str]:
        """Apply the move in place. Returns next players to move; an empty list when the game is over."""
        raise NotImplementedError

    def _redact(self, data: DataT, viewer_id: str) -> None:
        """Hide private information from `viewer_id` in place."""
        raise NotImplementedError

    # -- Helpers --
    def _load(self, game_data: str) -> DataT:
        return decode(game_data, self.data_model)

    def _player(self, data: DataT, user_id: str) -> PlayerT:
        for player in data.players:
            if player.id == user_id:
                return player
        raise IllegalMoveError(f"User {user_id!r} does not play in this game.")

    def _next_in_seating(
        self,
        data: DataT,
        player_id: str,
        is_active: Callable[[PlayerT], bool] = lambda player: True,
    ) -> PlayerT:
        """Next player clockwise from `player_id` that passes `is_active`."""
        index = next(i for i, player in enumerate(data.players) if player.id == player_id)
        seats = len(data.players)
        for offset in range(1, seats + 1):
            candidate = data.players[(index + offset) % seats]
            if is_active(candidate):
                return candidate
        raise GameDataError("No active player left to move.")


def competition_places(scores: dict[str, int]) -> dict[str, int]:
    """Lowest score is place 1, equal scores share a place (1, 2, 2, 4)."""
    return {
        player_id: 1 + sum(1 for other in scores.values() if other < score)
        for player_id, score in scores.items()
    }
