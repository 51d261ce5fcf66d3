"""Wiring of configuration, logging, persistence and the SessionService (used by whatever transport sits on top)."""

from typing import Optional

from sqlalchemy.orm import Session, sessionmaker

from src.core.config import Settings
from src.core.log_setup import setup_logging
from src.db.database import build_engine, build_session_factory
from src.db.sql_repository import SQLSessionRepository
from src.services.session_service import SessionService


def configure(settings: Optional[Settings] = None) -> sessionmaker[Session]:
    """Process start: set up logging, connect to the database, and return the factory for database sessions."""
    settings = settings or Settings.from_env()
    setup_logging(settings.log_level)
    return build_session_factory(build_engine(settings))


def build_session_service(db: Session, settings: Optional[Settings] = None) -> SessionService:
    """One service per database session. The per-session locks are shared process wide."""
    settings = settings or Settings.from_env()
    return SessionService(SQLSessionRepository(db), settings=settings)
