"""
Orchestration of communication from API layer to rules engines and persistence layer (and the reverse direction).

Every mutating action follows the same steps, all under the lock of its session:
load -> validate -> delegate to the rules engine -> merge into the session -> persist -> project for the acting user.
Validation happens on a copy of the stored session, so a failed action (rule violation or engine failure) leaves the stored session untouched.
"""

import logging
from contextlib import contextmanager
from copy import deepcopy
from typing import Any, Callable, Iterator, Mapping, Optional, TypeVar

from src.api.models import (
    CloseSessionRequest,
    CreateSessionRequest,
    GetSessionRequest,
    JoinSessionRequest,
    LeaveSessionRequest,
    ListSessionsRequest,
    LogEntryResponse,
    MoveRequest,
    OpenSessionRequest,
    SessionResponse,
    SessionSummaryResponse,
    StartSessionRequest,
    ToggleReadyRequest,
    WatchSessionRequest,
)
from src.core.config import Settings
from src.core.exceptions import (
    CloseError,
    EngineError,
    JoinError,
    LeaveError,
    MoveError,
    OpenError,
    SessionError,
    SessionNotFoundError,
    StartError,
    WatchError,
)
from src.core.models import (
    LogEntry,
    SessionId,
    SessionModel,
    UserId,
    utc_now,
)
from src.core.shared_types import SessionState, Visibility
from src.db.repository import SessionRepository
from src.games.base import RulesEngine
from src.games.registry import GAME_ENGINES, get_engine
from src.services.locks import SESSION_LOCKS, USER_LOCKS, SessionLocks
from src.services.redaction import project_for_viewer, project_public

logger = logging.getLogger(__name__)

T = TypeVar("T")


class SessionService:
    """Session lifecycle state machine: lobby -> started -> finished."""

    def __init__(
        self,
        repository: SessionRepository,
        engines: Mapping[str, RulesEngine] = GAME_ENGINES,
        locks: SessionLocks = SESSION_LOCKS,
        user_locks: SessionLocks = USER_LOCKS,
        settings: Optional[Settings] = None,
    ) -> None:
        self.repo = repository
        self.engines = engines
        self.locks = locks
        self.user_locks = user_locks
        self.lock_timeout = (settings or Settings.from_env()).lock_timeout

    # -- Session lifecycle ---
    def create_session(self, request: CreateSessionRequest) -> SessionResponse:
        """New session in the lobby. Player bounds and initial game data come from the engine."""
        with self._reporting("create", request.user_id):
            engine = get_engine(request.game_type, self.engines)
            new_game = self._call_engine(engine.new_game)
            if not 1 <= new_game.players_min <= new_game.players_max:
                raise EngineError(
                    f"Engine for {request.game_type!r} declared invalid player bounds: "
                    f"{new_game.players_min}..{new_game.players_max}"
                )

            session = SessionModel(
                id=None,
                game_type=request.game_type,
                visibility=request.visibility,
                players_min=new_game.players_min,
                players_max=new_game.players_max,
                game_data=new_game.game_data,
            )
            return self._persist(session, engine, request.user_id, f"created a {request.game_type} game")

    def join_session(self, request: JoinSessionRequest) -> SessionResponse:
        """Take a seat in a lobby (and be online in it)."""
        user_id = request.user_id
        with self._mutating("join", request):
            session, engine = self._fetch_session(request.session_id)

            if session.state != SessionState.LOBBY:
                raise JoinError("Can't join started or finished game")
            if len(session.players) >= session.players_max:
                raise JoinError("Can't join game with maximum players inside")
            if user_id in session.players:
                raise JoinError("Can't join game twice")
            if user_id in session.online_players:
                raise JoinError("Can't join opened game")

            session.game_data = self._call_engine(engine.add_player, session.game_data, user_id)
            session.players.append(user_id)
            session.online_players.append(user_id)

            return self._persist(session, engine, user_id, "joined the game")

    def open_session(self, request: OpenSessionRequest) -> SessionResponse:
        """A player (re)opens a session they joined earlier."""
        user_id = request.user_id
        with self._mutating("open", request):
            session, engine = self._fetch_session(request.session_id)

            if user_id not in session.players:
                raise OpenError("Can't open game without joining")
            if user_id in session.online_players:
                raise OpenError("Can't open game twice")

            session.online_players.append(user_id)

            return self._persist(session, engine, user_id, "opened the game")

    def watch_session(self, request: WatchSessionRequest) -> SessionResponse:
        """Spectate a running game. Finished games are available through their projection, no need to watch them."""
        user_id = request.user_id
        with self._mutating("watch", request):
            session, engine = self._fetch_session(request.session_id)

            if session.state == SessionState.LOBBY:
                raise WatchError("Can't watch not started game")
            if session.state == SessionState.FINISHED:
                raise WatchError("Can't watch finished game")
            if user_id in session.players:
                raise WatchError("Can't watch joining game")
            if user_id in session.watchers:
                raise WatchError("Can't watch game twice")

            session.watchers.append(user_id)

            return self._persist(session, engine, user_id, "started watching")

    def leave_session(self, request: LeaveSessionRequest) -> SessionResponse:
        """Give up a seat. Not allowed while the game is running."""
        user_id = request.user_id
        with self._mutating("leave", request):
            session, engine = self._fetch_session(request.session_id)

            if session.state == SessionState.STARTED:
                raise LeaveError("Can't leave started and not finished game")
            if user_id not in session.players:
                raise LeaveError("Can't leave game without joining")

            session.game_data = self._call_engine(engine.remove_player, session.game_data, user_id)
            session.players = [player for player in session.players if player != user_id]
            session.online_players = [player for player in session.players if player != user_id]

            return self._persist(session, engine, user_id, "left the game")

    def close_session(self, request: CloseSessionRequest) -> SessionResponse:
        """
        Closing the view of a session (browser tab closed).
        ----
        Watchers stop watching, players go offline but keep their seat.
        """
        user_id = request.user_id
        with self._mutating("close", request):
            session, engine = self._fetch_session(request.session_id)

            is_player = user_id in session.players
            is_watcher = user_id in session.watchers
            if not is_player and not is_watcher:
                raise CloseError("Can't close game without joining or watching")

            if is_watcher:
                session.watchers = [watcher for watcher in session.watchers if watcher != user_id]
            if is_player:
                session.online_players = [
                    player for player in session.online_players if player != user_id
                ]

            return self._persist(session, engine, user_id, "closed the game")

    def toggle_ready(self, request: ToggleReadyRequest) -> SessionResponse:
        """Readiness is the engine's business; the session itself puts no condition on it."""
        user_id = request.user_id
        with self._mutating("toggle_ready", request):
            session, engine = self._fetch_session(request.session_id)

            session.game_data = self._call_engine(engine.toggle_ready, session.game_data, user_id)

            return self._persist(session, engine, user_id, "toggled ready")

    def start_session(self, request: StartSessionRequest) -> SessionResponse:
        user_id = request.user_id
        with self._mutating("start", request):
            session, engine = self._fetch_session(request.session_id)

            if session.state != SessionState.LOBBY:
                raise StartError("Game already started")
            if len(session.players) < session.players_min:
                raise StartError("Not enough players")
            if len(session.players) > session.players_max:
                raise StartError("Too many players")
            if not self._call_engine(engine.check_ready, session.game_data):
                raise StartError("Not all players are ready")

            result = self._call_engine(engine.start_game, session.game_data)
            if not result.next_player_ids:
                raise EngineError("Engine started a game without anybody to move")
            self._check_next_players(session, result.next_player_ids)

            session.state = SessionState.STARTED
            session.game_data = result.game_data
            session.next_to_move = list(result.next_player_ids)

            return self._persist(session, engine, user_id, "started the game")

    def make_move(self, request: MoveRequest) -> SessionResponse:
        """
        Pass a move to the engine.
        ----
        When the engine reports no next players the game is over: the session is finished and
        the play / win counters of every player are updated from the engine's terminal summary.
        """
        user_id = request.user_id
        with self._mutating("move", request):
            session, engine = self._fetch_session(request.session_id)

            if user_id not in session.next_to_move:
                raise MoveError("It's not your turn to move")

            result = self._call_engine(engine.make_move, session.game_data, user_id, request.move)
            session.game_data = result.game_data

            if result.next_player_ids:
                self._check_next_players(session, result.next_player_ids)
                session.next_to_move = list(result.next_player_ids)
                return self._persist(session, engine, user_id, "made a move")

            session.state = SessionState.FINISHED
            session.next_to_move = []

            results = self._game_results(session, engine)
            with self.user_locks.hold_all(results, self.lock_timeout, "move"):
                response = self._persist(session, engine, user_id, "made the final move", results)
            logger.info(f"session {session.id} finished, counters updated for {sorted(results)}")
            return response

    # -- Read only (no lock, last persisted snapshot) ---
    def get_session(self, request: GetSessionRequest) -> SessionResponse:
        """The session as the viewer may see it. Without viewer, as any outsider sees it."""
        with self._reporting("get", request.viewer_id, request.session_id):
            session, engine = self._fetch_session(request.session_id)
            projected = self._call_engine(project_for_viewer, session, request.viewer_id, engine)
            return self._create_session_response(projected)

    def list_sessions(self, request: ListSessionsRequest) -> list[SessionSummaryResponse]:
        """Public sessions for list views, newest first."""
        ignored = {
            SessionState.LOBBY: request.ignore_not_started,
            SessionState.STARTED: request.ignore_started,
            SessionState.FINISHED: request.ignore_finished,
        }
        return [
            self._create_summary_response(session)
            for session in self.repo.list_sessions()
            if session.visibility == Visibility.PUBLIC and not ignored[session.state]
        ]

    # -- Internal helpers --
    @contextmanager
    def _reporting(
        self, action: str, user_id: Optional[UserId], session_id: Optional[SessionId] = None
    ) -> Iterator[None]:
        """Name the attempted action on every error passing through, and log the rejection."""
        try:
            yield
        except SessionError as exc:
            exc.action = exc.action or action
            logger.info(
                f"{action} by {user_id!r} on session {session_id} rejected ({exc.kind}): {exc.message}"
            )
            raise

    @contextmanager
    def _mutating(self, action: str, request: Any) -> Iterator[None]:
        """Critical section of one action on one session."""
        with self._reporting(action, request.user_id, request.session_id):
            with self.locks.hold(request.session_id, self.lock_timeout, action):
                yield

    def _fetch_session(self, session_id: SessionId) -> tuple[SessionModel, RulesEngine]:
        """Working copy of the stored session + the engine of its game type. Raise error if not found."""
        stored = self.repo.load_session(session_id)
        if stored is None:
            raise SessionNotFoundError(f"Session with {session_id=} not found.")
        return deepcopy(stored), get_engine(stored.game_type, self.engines)

    def _call_engine(self, operation: Callable[..., T], *args: Any) -> T:
        """Run an engine operation. Whatever goes wrong inside the engine comes out as an EngineError."""
        try:
            return operation(*args)
        except EngineError:
            raise
        except Exception as exc:
            name = getattr(operation, "__name__", repr(operation))
            logger.warning(f"rules engine failed in {name}: {exc!r}")
            raise EngineError(f"Rules engine failed: {exc}") from exc

    def _check_next_players(self, session: SessionModel, next_player_ids: list[UserId]) -> None:
        strangers = [player for player in next_player_ids if player not in session.players]
        if strangers:
            raise EngineError(f"Engine expects a move from users not in this session: {strangers}")

    def _game_results(self, session: SessionModel, engine: RulesEngine) -> dict[UserId, bool]:
        """Whether each player won (first place) the finished game, from the engine's terminal summary."""
        summary = self._call_engine(engine.terminal_summary, session.game_data)
        places = {placement.user_id: placement.place for placement in summary}

        results = {}
        for player_id in session.players:
            if player_id not in places:
                raise EngineError(f"Terminal summary has no place for player {player_id!r}")
            results[player_id] = places[player_id] == 1
        return results

    def _log(self, session: SessionModel, actor: UserId, message: str) -> None:
        session.logs.append(LogEntry(timestamp=utc_now(), actor=actor, message=message))

    def _persist(
        self,
        session: SessionModel,
        engine: RulesEngine,
        user_id: UserId,
        message: str,
        results: Optional[dict[UserId, bool]] = None,
    ) -> SessionResponse:
        """
        Record the action in the session log, store the session, and answer the acting user.

        The answer is projected before storing, so nothing is stored for an action the acting user cannot be answered on.
        With `results` the session is stored as finished, together with the counters of its players.
        """
        self._log(session, user_id, message)
        projected = self._call_engine(project_for_viewer, session, user_id, engine)

        if results is None:
            stored = self.repo.save_session(session)
        else:
            stored = self.repo.finish_session(session, results)
        logger.info(f"user {user_id!r} {message} (session {stored.id}, state {stored.state})")

        projected.id = stored.id
        return self._create_session_response(projected)

    def _create_session_response(self, projected: SessionModel) -> SessionResponse:
        """Convert a session projected for its viewer to a SessionResponse."""
        if projected.id is None:
            raise SessionNotFoundError("Session has no id: it was never stored.")
        return SessionResponse(
            session_id=projected.id,
            game_type=projected.game_type,
            visibility=projected.visibility,
            state=projected.state,
            players_min=projected.players_min,
            players_max=projected.players_max,
            players=projected.players,
            online_players=projected.online_players,
            watchers=projected.watchers,
            next_to_move=projected.next_to_move,
            game_data=projected.game_data,
            logs=[
                LogEntryResponse(timestamp=entry.timestamp, actor=entry.actor, message=entry.message)
                for entry in projected.logs
            ],
        )

    def _create_summary_response(self, session: SessionModel) -> SessionSummaryResponse:
        public = project_public(session)
        return SessionSummaryResponse(
            session_id=public.id,
            game_type=public.game_type,
            visibility=public.visibility,
            state=public.state,
            players_min=public.players_min,
            players_max=public.players_max,
            players=public.players,
        )
