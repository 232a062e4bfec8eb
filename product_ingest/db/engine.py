"""Engine and session lifecycle for the ingestion store.

``DATABASE_URL`` may hold a full SQLAlchemy URL or a bare path to a SQLite
file. The process-wide engine is created on first use and can be torn down
with :func:`reset_engine`, which the CLI tests rely on to switch databases.
"""

from __future__ import annotations

import logging
import os
from collections.abc import Iterator
from contextlib import contextmanager
from dataclasses import dataclass
from pathlib import Path

from sqlalchemy import create_engine, event
from sqlalchemy.engine import Engine
from sqlalchemy.orm import Session, sessionmaker
from sqlalchemy.pool import StaticPool

logger = logging.getLogger(__name__)

DEFAULT_DB_PATH = Path.home() / ".product_ingest" / "product_ingest.db"
MEMORY_URLS = {"sqlite://", "sqlite:///:memory:"}


def get_database_url(db_path: Path | str | None = None) -> str:
    """Resolve the connection URL, creating the SQLite parent directory if needed."""
    raw = str(db_path) if db_path is not None else os.environ.get("DATABASE_URL", "")
    if "://" in raw:
        return raw
    if raw == ":memory:":
        return "sqlite:///:memory:"

    path = Path(raw) if raw else DEFAULT_DB_PATH
    path.parent.mkdir(parents=True, exist_ok=True)
    return f"sqlite:///{path}"


def _enable_sqlite_foreign_keys(dbapi_connection, connection_record) -> None:
    cursor = dbapi_connection.cursor()
    cursor.execute("PRAGMA foreign_keys=ON")
    cursor.close()


def create_db_engine(db_path: Path | str | None = None, echo: bool = False) -> Engine:
    url = get_database_url(db_path)
    if not url.startswith("sqlite"):
        return create_engine(url, echo=echo, pool_pre_ping=True)

    kwargs: dict = {"connect_args": {"check_same_thread": False}}
    if url in MEMORY_URLS:
        # One shared connection, otherwise every checkout sees a fresh empty database
        kwargs["poolclass"] = StaticPool

    engine = create_engine(url, echo=echo, **kwargs)
    event.listen(engine, "connect", _enable_sqlite_foreign_keys)
    return engine


@dataclass
class _EngineState:
    engine: Engine | None = None
    session_factory: sessionmaker[Session] | None = None

    def dispose(self) -> None:
        if self.engine is not None:
            self.engine.dispose()
        self.engine = None
        self.session_factory = None


_STATE = _EngineState()


def get_engine(db_path: Path | str | None = None, echo: bool = False) -> Engine:
    """Return the process-wide engine.

    ``db_path`` only matters on the first call; later calls reuse whatever
    engine is already configured until :func:`reset_engine` runs.
    """
    if _STATE.engine is None:
        _STATE.engine = create_db_engine(db_path, echo)
        logger.debug(f"Database engine created for {_STATE.engine.url!r}")
    return _STATE.engine


def get_session_factory(db_path: Path | str | None = None) -> sessionmaker[Session]:
    if _STATE.session_factory is None:
        _STATE.session_factory = sessionmaker(
            bind=get_engine(db_path), autoflush=False, expire_on_commit=False
        )
    return _STATE.session_factory


def reset_engine() -> None:
    """Dispose the engine and forget the session factory."""
    _STATE.dispose()


@contextmanager
def get_session(db_path: Path | str | None = None) -> Iterator[Session]:
    """Yield a session; uncommitted work is rolled back if the block raises.

    Callers commit explicitly. The import pipeline commits per item, so a
    failure halfway through keeps everything written before it.
    """
    session = get_session_factory(db_path)()
    try:
        yield session
    except Exception:
        session.rollback()
        raise
    finally:
        session.close()


def init_db(db_path: Path | str | None = None) -> None:
    """Create any missing tables."""
    from product_ingest.db.models import Base

    engine = get_engine(db_path)
    Base.metadata.create_all(bind=engine)
    logger.info(f"Database ready at {engine.url.render_as_string(hide_password=True)}")
