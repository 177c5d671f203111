"""SQLAlchemy ORM schema for Refkeep.

Defines all database tables: objects, object_parents, worktrees, refs,
reflogs, reflog_entries, config_entries, _refkeep_meta.

Refs and reflogs are keyed by a ``store`` column: ``""`` for the shared
namespace, a worktree id for refs private to that worktree (HEAD,
refs/bisect/*, pseudorefs).
"""

from __future__ import annotations

from typing import Optional

from sqlalchemy import (
    BigInteger,
    Boolean,
    ForeignKey,
    Index,
    Integer,
    String,
    Text,
)
from sqlalchemy.orm import DeclarativeBase, Mapped, mapped_column


class Base(DeclarativeBase):
    """Base class for all Refkeep ORM models."""

    pass


class ObjectRow(Base):
    """A commit object in the history graph.

    Only the graph shape and commit time are stored; object contents are
    out of scope.  ``parent_id`` is the first parent and is deliberately not
    a foreign key: a pruned repository may reference objects it no longer
    has.
    """

    __tablename__ = "objects"

    object_id: Mapped[str] = mapped_column(String(64), primary_key=True)
    parent_id: Mapped[Optional[str]] = mapped_column(String(64), nullable=True)
    committed_at: Mapped[int] = mapped_column(BigInteger, nullable=False)


class ObjectParentRow(Base):
    """Extra parents of merge commits.

    The first parent stays on ObjectRow.parent_id; this table stores the
    rest, with ``position`` preserving parent order (1 = second parent).
    """

    __tablename__ = "object_parents"

    object_id: Mapped[str] = mapped_column(
        String(64),
        ForeignKey("objects.object_id"),
        primary_key=True,
    )
    parent_id: Mapped[str] = mapped_column(String(64), primary_key=True)
    position: Mapped[int] = mapped_column(Integer, nullable=False)


class WorktreeRow(Base):
    """A working copy attached to the repository."""

    __tablename__ = "worktrees"

    worktree_id: Mapped[str] = mapped_column(String(255), primary_key=True)
    path: Mapped[Optional[str]] = mapped_column(Text, nullable=True)
    is_main: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)


class RefRow(Base):
    """Mutable named pointer to an object, or a symbolic ref to another ref."""

    __tablename__ = "refs"

    store: Mapped[str] = mapped_column(String(255), primary_key=True)
    ref_name: Mapped[str] = mapped_column(String(255), primary_key=True)
    object_id: Mapped[Optional[str]] = mapped_column(String(64), nullable=True)
    symbolic_target: Mapped[Optional[str]] = mapped_column(String(255), nullable=True)


class ReflogRow(Base):
    """Header row for one reflog.

    A log exists independently of its entries: expiring every entry leaves
    an empty log behind, which still answers ``exists``.
    """

    __tablename__ = "reflogs"

    store: Mapped[str] = mapped_column(String(255), primary_key=True)
    ref_name: Mapped[str] = mapped_column(String(255), primary_key=True)
    next_position: Mapped[int] = mapped_column(Integer, nullable=False, default=0)


class ReflogEntryRow(Base):
    """One reflog record.

    ``position`` orders the entries of a log oldest first.  Positions are
    left as-is when entries are removed, so the storage order of surviving
    entries never changes.
    """

    __tablename__ = "reflog_entries"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    store: Mapped[str] = mapped_column(String(255), nullable=False)
    ref_name: Mapped[str] = mapped_column(String(255), nullable=False)
    position: Mapped[int] = mapped_column(Integer, nullable=False)
    old_id: Mapped[str] = mapped_column(String(64), nullable=False)
    new_id: Mapped[str] = mapped_column(String(64), nullable=False)
    committer: Mapped[str] = mapped_column(Text, nullable=False)
    timestamp: Mapped[int] = mapped_column(BigInteger, nullable=False)
    tz_offset: Mapped[str] = mapped_column(String(5), nullable=False, default="+0000")
    message: Mapped[Optional[str]] = mapped_column(Text, nullable=True)

    __table_args__ = (
        Index("ix_reflog_entries_log", "store", "ref_name", "position"),
    )


class ConfigEntryRow(Base):
    """A raw configuration line.  Insertion order (``id``) is significant."""

    __tablename__ = "config_entries"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    key: Mapped[str] = mapped_column(String(512), nullable=False)
    value: Mapped[Optional[str]] = mapped_column(Text, nullable=True)


class RefkeepMetaRow(Base):
    """Key-value metadata for the Refkeep database itself (e.g., schema version)."""

    __tablename__ = "_refkeep_meta"

    key: Mapped[str] = mapped_column(String(255), primary_key=True)
    value: Mapped[str] = mapped_column(Text, nullable=False)
