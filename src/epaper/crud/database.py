"""Engine construction, schema creation, and session helpers"""

import os

from sqlalchemy.engine import Engine
from sqlmodel import Session, SQLModel, create_engine

import epaper.crud.models  # noqa: F401  registers tables on SQLModel.metadata


DEFAULT_URL = "sqlite:///epaper.db"


def get_url(explicit: str | None = None) -> str:
    """Return explicit URL, else EPAPER_DB_URL, else the SQLite default."""
    if explicit:
        return explicit
    return os.getenv("EPAPER_DB_URL") or DEFAULT_URL


def make_engine(db_url: str) -> Engine:
    if db_url.startswith("sqlite"):
        return create_engine(db_url, echo=False, connect_args={"check_same_thread": False})
    return create_engine(db_url, echo=False)


def init_db(engine: Engine) -> None:
    SQLModel.metadata.create_all(engine)


def get_session(engine: Engine):
    with Session(engine) as session:
        yield session
