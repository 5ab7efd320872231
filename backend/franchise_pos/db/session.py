"""Engine, session factory and the request-scoped session dependency."""

from collections.abc import Generator, Iterator
from contextlib import contextmanager
from typing import Annotated, Any, Dict

from fastapi import Depends
from sqlalchemy import create_engine, event
from sqlalchemy.engine import Engine
from sqlalchemy.orm import Session, sessionmaker

from franchise_pos.core.config import settings


def is_sqlite(url: str) -> bool:
    return url.startswith("sqlite")


def engine_options(url: str) -> Dict[str, Any]:
    """create_engine keyword arguments for a database URL.

    SQLite gets a single-thread override for the threadpool FastAPI runs sync
    routes in; server databases get a bounded pool.
    """
    if is_sqlite(url):
        return {
            "connect_args": {"check_same_thread": False},
            "pool_pre_ping": True,
        }
    return {
        "pool_size": 10,
        "max_overflow": 20,
        "pool_pre_ping": True,
        "pool_recycle": 3600,
    }


def enable_sqlite_foreign_keys(target: Engine) -> None:
    @event.listens_for(target, "connect")
    def _set_sqlite_pragma(dbapi_connection, connection_record):
        cursor = dbapi_connection.cursor()
        cursor.execute("PRAGMA foreign_keys=ON")
        cursor.close()


engine = create_engine(
    settings.database_url,
    echo=settings.debug and settings.log_level == "DEBUG",
    **engine_options(settings.database_url),
)
if is_sqlite(settings.database_url):
    enable_sqlite_foreign_keys(engine)

SessionLocal = sessionmaker(autocommit=False, autoflush=False, bind=engine)


@contextmanager
def session_scope() -> Iterator[Session]:
    """Short-lived session outside a request (startup jobs, middleware, health checks)."""
    db = SessionLocal()
    try:
        yield db
    finally:
        db.close()


def get_db() -> Generator[Session, None, None]:
    with session_scope() as db:
        yield db


DbSession = Annotated[Session, Depends(get_db)]
