"""Process configuration, read from environment variables."""

import os
from dataclasses import dataclass
from typing import Optional, Self

ENV_PREFIX = "GAME_SESSIONS_"


def _as_bool(value: str) -> bool:
    return value.strip().lower() in {"1", "true", "yes", "on"}


def _as_timeout(value: str) -> Optional[float]:
    """Empty string or a non-positive number means: wait for the lock forever."""
    if not value.strip():
        return None
    timeout = float(value)
    return timeout if timeout > 0 else None


@dataclass(frozen=True)
class Settings:
    database_url: str = "sqlite:///./game_sessions.db"
    lock_timeout: Optional[float] = 10.0
    log_level: str = "INFO"
    sql_echo: bool = False

    @classmethod
    def from_env(cls, environ: Optional[dict[str, str]] = None) -> Self:
        """Build settings from (a copy of) the environment. Unset variables keep their defaults."""
        env = os.environ if environ is None else environ
        defaults = cls()
        return cls(
            database_url=env.get(f"{ENV_PREFIX}DATABASE_URL", defaults.database_url),
            lock_timeout=(
                _as_timeout(env[f"{ENV_PREFIX}LOCK_TIMEOUT"])
                if f"{ENV_PREFIX}LOCK_TIMEOUT" in env
                else defaults.lock_timeout
            ),
            log_level=env.get(f"{ENV_PREFIX}LOG_LEVEL", defaults.log_level).upper(),
            sql_echo=_as_bool(env.get(f"{ENV_PREFIX}SQL_ECHO", str(defaults.sql_echo))),
        )
