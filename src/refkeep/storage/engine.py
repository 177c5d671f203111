"""Database bootstrap for a refkeep repository.

A repository is a single SQLite file (or an in-memory database in tests).
Opening one means: build the URL, attach the connection pragmas, create
missing tables and make sure the bookkeeping rows exist.  Every repository
has a ``main`` worktree row from the moment it is created.
"""

from __future__ import annotations

import logging

from sqlalchemy import Engine, create_engine, event
from sqlalchemy.orm import Session, sessionmaker

from refkeep.exceptions import SchemaVersionError
from refkeep.models.worktree import MAIN_WORKTREE_ID
from refkeep.storage.schema import Base, RefkeepMetaRow, WorktreeRow

logger = logging.getLogger(__name__)

SCHEMA_VERSION = "2"
_VERSION_KEY = "schema_version"

# Applied on every new DB-API connection.
_SQLITE_PRAGMAS = (
    "journal_mode=WAL",
    "busy_timeout=5000",
    "synchronous=NORMAL",
    "foreign_keys=ON",
)


def database_url(db_path: str = ":memory:", url: str | None = None) -> str:
    """SQLAlchemy URL for a repository path; an explicit *url* wins."""
    if url is not None:
        return url
    if db_path == ":memory:":
        return "sqlite://"
    return f"sqlite:///{db_path}"


def _set_sqlite_pragmas(dbapi_conn, _connection_record) -> None:  # type: ignore[no-untyped-def]
    cursor = dbapi_conn.cursor()
    try:
        for pragma in _SQLITE_PRAGMAS:
            cursor.execute(f"PRAGMA {pragma}")
    finally:
        cursor.close()


def create_refkeep_engine(db_path: str = ":memory:", *, url: str | None = None) -> Engine:
    """Engine for the repository at *db_path* (or at *url*).

    SQLite connections get the repository pragmas; other backends are
    used as configured.
    """
    engine = create_engine(database_url(db_path, url))
    if engine.dialect.name == "sqlite":
        event.listen(engine, "connect", _set_sqlite_pragmas)
    logger.debug("opened %s engine for %s", engine.dialect.name, engine.url)
    return engine


def create_session_factory(engine: Engine) -> sessionmaker[Session]:
    # Rows stay readable after commit; the repository keeps them across calls.
    return sessionmaker(bind=engine, expire_on_commit=False)


def init_db(engine: Engine) -> None:
    """Create missing tables and bookkeeping rows.  Safe to call repeatedly.

    Raises:
        SchemaVersionError: If the database records a different schema version.
    """
    Base.metadata.create_all(engine)

    with Session(engine) as session:
        meta = session.get(RefkeepMetaRow, _VERSION_KEY)
        if meta is None:
            logger.info("initializing refkeep database (schema %s)", SCHEMA_VERSION)
            session.add(RefkeepMetaRow(key=_VERSION_KEY, value=SCHEMA_VERSION))
        elif meta.value != SCHEMA_VERSION:
            raise SchemaVersionError(meta.value, SCHEMA_VERSION)

        if session.get(WorktreeRow, MAIN_WORKTREE_ID) is None:
            session.add(WorktreeRow(worktree_id=MAIN_WORKTREE_ID, path=None, is_main=True))
        session.commit()
