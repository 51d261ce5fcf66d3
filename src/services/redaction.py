"""
Viewer specific and public projections of a session.

Read only: works on the last persisted snapshot and never takes the session lock.
"""

from copy import deepcopy
from typing import Optional

from src.core.exceptions import SessionNotFoundError
from src.core.models import PublicSessionModel, SessionModel, UserId
from src.core.shared_types import SessionState
from src.games.base import RulesEngine


def project_for_viewer(
    session: SessionModel, viewer_id: Optional[UserId], engine: RulesEngine
) -> SessionModel:
    """
    Copy of the session as `viewer_id` may see it.

    Until the game is finished the engine hides whatever the viewer is not supposed to know (other hands, hidden dice, ...).
    A viewer without id (anonymous) sees what a non-participant sees.
    Once finished, everything is revealed.
    """
    projected = deepcopy(session)
    if session.state != SessionState.FINISHED:
        projected.game_data = engine.redact_for_viewer(session.game_data, viewer_id or "")
    return projected


def project_public(session: SessionModel) -> PublicSessionModel:
    """List view of a session, independent of its state."""
    if session.id is None:
        raise SessionNotFoundError("Only stored sessions can be listed.")
    return PublicSessionModel(
        id=session.id,
        game_type=session.game_type,
        visibility=session.visibility,
        players_min=session.players_min,
        players_max=session.players_max,
        players=list(session.players),
        state=session.state,
    )
