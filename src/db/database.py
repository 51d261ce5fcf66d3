"""Generate database session"""

from typing import Generator, Optional

from sqlalchemy import Engine, create_engine
from sqlalchemy.orm import Session, sessionmaker

from src.core.config import Settings
from src.db.schema import Base


def build_engine(settings: Optional[Settings] = None) -> Engine:
    """Create the SQLAlchemy engine from settings and ensure all tables are created."""
    settings = settings or Settings.from_env()
    connect_args = (
        {"check_same_thread": False}
        if settings.database_url.startswith("sqlite")
        else {}
    )
    engine = create_engine(
        settings.database_url, echo=settings.sql_echo, connect_args=connect_args
    )
    Base.metadata.create_all(bind=engine)
    return engine


def build_session_factory(engine: Engine) -> sessionmaker[Session]:
    return sessionmaker(bind=engine, autoflush=False, expire_on_commit=False)


def get_db(session_factory: sessionmaker[Session]) -> Generator[Session, None, None]:
    """One database session per unit of work (per request), always closed afterwards."""
    db = session_factory()
    try:
        yield db
    finally:
        db.close()
