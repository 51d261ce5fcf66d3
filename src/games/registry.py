"""
Registered game types.

Static mapping from game type name to the (stateless) engine serving every session of that type, built at import time.
"""

from typing import Mapping

from src.core.exceptions import UnknownGameTypeError
from src.games.base import RulesEngine
from src.games.no_thanks import NO_THANKS, NoThanksEngine
from src.games.perudo import PERUDO, PerudoEngine

GAME_ENGINES: dict[str, RulesEngine] = {
    NO_THANKS: NoThanksEngine(),
    PERUDO: PerudoEngine(),
}


def get_engine(
    game_type: str, engines: Mapping[str, RulesEngine] = GAME_ENGINES
) -> RulesEngine:
    """Look up the engine for a game type, raise UnknownGameTypeError if nothing is registered under that name."""
    engine = engines.get(game_type)
    if engine is None:
        raise UnknownGameTypeError(
            f"Unknown game type: {game_type!r}. Pick one from {', '.join(sorted(engines))}"
        )
    return engine
