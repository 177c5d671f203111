"""Abstract repository interfaces for Refkeep storage.

Defines ABC interfaces for all database operations. No SQLAlchemy
imports here -- pure abstract contracts.

Concrete implementations are in sqlite.py.
"""

from __future__ import annotations

from abc import ABC, abstractmethod
from typing import TYPE_CHECKING, Sequence

if TYPE_CHECKING:
    from refkeep.storage.schema import (
        ConfigEntryRow,
        ObjectRow,
        RefRow,
        ReflogEntryRow,
        WorktreeRow,
    )


class ObjectRepository(ABC):
    """Abstract interface for commit object storage."""

    @abstractmethod
    def get(self, object_id: str) -> ObjectRow | None:
        """Get an object by id. Returns None if not found."""
        ...

    @abstractmethod
    def save(self, obj: ObjectRow, extra_parents: Sequence[str] = ()) -> None:
        """Save an object, with any parents beyond the first."""
        ...

    @abstractmethod
    def get_parents(self, object_id: str) -> list[str]:
        """All parent ids of an object, first parent first.

        Returns an empty list for root commits and for unknown objects.
        """
        ...

    @abstractmethod
    def delete(self, object_id: str) -> None:
        """Delete an object (used to simulate pruned repositories)."""
        ...


class WorktreeRepository(ABC):
    """Abstract interface for worktree enumeration."""

    @abstractmethod
    def get(self, worktree_id: str) -> WorktreeRow | None:
        """Get a worktree by id. Returns None if not found."""
        ...

    @abstractmethod
    def list_all(self) -> Sequence[WorktreeRow]:
        """All worktrees in enumeration order: main first, then linked ones by id."""
        ...

    @abstractmethod
    def add(self, worktree_id: str, path: str | None = None) -> WorktreeRow:
        """Register a linked worktree."""
        ...


class RefRepository(ABC):
    """Abstract interface for ref storage.

    ``store`` is ``""`` for the shared namespace or a worktree id.
    """

    @abstractmethod
    def get(self, store: str, ref_name: str) -> RefRow | None:
        """Get a ref row. Returns None if not found."""
        ...

    @abstractmethod
    def resolve(self, store: str, ref_name: str) -> str | None:
        """Resolve a ref to an object id, following symbolic refs.

        Symbolic targets are looked up in the namespace the target name
        belongs to.  Returns None for unborn or missing refs.
        """
        ...

    @abstractmethod
    def set_ref(self, store: str, ref_name: str, object_id: str) -> None:
        """Create or move a ref to point at an object."""
        ...

    @abstractmethod
    def set_symbolic_ref(self, store: str, ref_name: str, target: str) -> None:
        """Create or replace a symbolic ref."""
        ...

    @abstractmethod
    def list_refs(self, store: str) -> list[str]:
        """Names of all refs in a namespace, sorted."""
        ...


class ReflogRepository(ABC):
    """Abstract interface for reflog storage."""

    @abstractmethod
    def exists(self, store: str, ref_name: str) -> bool:
        """Whether a log exists for the ref (it may be empty)."""
        ...

    @abstractmethod
    def create_log(self, store: str, ref_name: str) -> None:
        """Create an empty log if none exists."""
        ...

    @abstractmethod
    def get_entries(self, store: str, ref_name: str) -> Sequence[ReflogEntryRow]:
        """Entries of one log in storage order, oldest first."""
        ...

    @abstractmethod
    def append(self, entry: ReflogEntryRow) -> None:
        """Append an entry at the end of its log."""
        ...

    @abstractmethod
    def delete_entries(self, entries: Sequence[ReflogEntryRow]) -> None:
        """Remove entries from their log."""
        ...

    @abstractmethod
    def list_logs(self, store: str) -> list[str]:
        """Names of all refs with a log in a namespace, sorted."""
        ...


class ConfigRepository(ABC):
    """Abstract interface for raw configuration entries."""

    @abstractmethod
    def entries(self) -> list[tuple[str, str | None]]:
        """All (key, value) pairs in insertion order."""
        ...

    @abstractmethod
    def add(self, key: str, value: str | None) -> ConfigEntryRow:
        """Append a configuration line."""
        ...

    @abstractmethod
    def unset(self, key: str) -> int:
        """Remove every line for a key. Returns the number removed."""
        ...
