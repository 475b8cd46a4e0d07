# File: labimport/database/engine.py

from typing import Optional

from sqlalchemy import create_engine
from sqlalchemy.engine import Engine

from labimport.core.config import get_database_url

engine: Optional[Engine] = None


def get_engine() -> Engine:
    """Return the SQLAlchemy engine instance, creating it on first use."""
    global engine
    if engine is None:
        engine = create_engine(get_database_url(), echo=False, future=True)
    return engine


def set_engine(new_engine: Optional[Engine]) -> None:
    """Replace the engine used by get_session(). None recreates it from settings on next use."""
    global engine
    engine = new_engine
