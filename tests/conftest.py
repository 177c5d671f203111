"""Shared test fixtures for Refkeep.

Provides in-memory SQLite engine, session, and repository fixtures, plus
helpers to build small commit graphs and reflogs with controlled ages.
"""

import pytest
from sqlalchemy.orm import Session, sessionmaker

from refkeep.storage.engine import create_refkeep_engine, init_db
from refkeep.storage.sqlite import (
    SqliteConfigRepository,
    SqliteObjectRepository,
    SqliteRefRepository,
    SqliteReflogRepository,
    SqliteWorktreeRepository,
)

# Fixed reference time for every test that computes ages.
NOW = 1_700_000_000
DAY = 24 * 3600


def oid(n: int) -> str:
    """A deterministic 40-hex object id."""
    return f"{n:040x}"


def days_ago(days: float) -> int:
    return int(NOW - days * DAY)


@pytest.fixture
def engine():
    """In-memory SQLite engine with all tables created."""
    eng = create_refkeep_engine(":memory:")
    init_db(eng)
    yield eng
    eng.dispose()


@pytest.fixture
def session(engine):
    """Session with automatic rollback after each test."""
    SessionLocal = sessionmaker(bind=engine, expire_on_commit=False)
    sess = SessionLocal()
    yield sess
    sess.rollback()
    sess.close()


@pytest.fixture
def object_repo(session: Session) -> SqliteObjectRepository:
    return SqliteObjectRepository(session)


@pytest.fixture
def ref_repo(session: Session) -> SqliteRefRepository:
    return SqliteRefRepository(session)


@pytest.fixture
def reflog_repo(session: Session) -> SqliteReflogRepository:
    return SqliteReflogRepository(session)


@pytest.fixture
def worktree_repo(session: Session) -> SqliteWorktreeRepository:
    return SqliteWorktreeRepository(session)


@pytest.fixture
def config_repo(session: Session) -> SqliteConfigRepository:
    return SqliteConfigRepository(session)


# ------------------------------------------------------------------
# Shared test helpers
# ------------------------------------------------------------------

def make_repo(**kwargs) -> "Repository":
    """Create an in-memory Repository for testing."""
    from refkeep import Repository
    return Repository.open(":memory:", **kwargs)


@pytest.fixture
def repo():
    r = make_repo()
    yield r
    r.close()


def commit_chain(repo, ids: list[str], parent: str | None = None) -> list[str]:
    """Add a linear chain of commits, each the parent of the next."""
    for object_id in ids:
        repo.add_object(object_id, parent, committed_at=NOW)
        parent = object_id
    return ids


def log_moves(repo, ref_name: str, moves: list[tuple[str, float]]) -> None:
    """Move *ref_name* through ``(object_id, age_in_days)`` pairs, oldest first."""
    for object_id, age in moves:
        repo.update_ref(
            ref_name,
            object_id,
            message=f"commit: {object_id[-4:]}",
            timestamp=days_ago(age),
        )
