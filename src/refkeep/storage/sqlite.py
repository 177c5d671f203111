"""SQLite implementations of repository interfaces.

All repositories use SQLAlchemy 2.0-style queries (select() + session.execute()).
Each repository takes a Session in its constructor.
"""

from __future__ import annotations

from typing import Sequence

from sqlalchemy import delete, select
from sqlalchemy.orm import Session

from refkeep.models.worktree import MAIN_WORKTREE_ID
from refkeep.refs import store_key
from refkeep.storage.repositories import (
    ConfigRepository,
    ObjectRepository,
    RefRepository,
    ReflogRepository,
    WorktreeRepository,
)
from refkeep.storage.schema import (
    ConfigEntryRow,
    ObjectParentRow,
    ObjectRow,
    RefRow,
    ReflogEntryRow,
    ReflogRow,
    WorktreeRow,
)

# Symbolic ref chains longer than this are treated as broken.
MAX_SYMREF_DEPTH = 5


class SqliteObjectRepository(ObjectRepository):
    """SQLite implementation of object repository."""

    def __init__(self, session: Session) -> None:
        self._session = session

    def get(self, object_id: str) -> ObjectRow | None:
        stmt = select(ObjectRow).where(ObjectRow.object_id == object_id)
        return self._session.execute(stmt).scalar_one_or_none()

    def save(self, obj: ObjectRow, extra_parents: Sequence[str] = ()) -> None:
        self._session.add(obj)
        self._session.flush()
        for position, parent_id in enumerate(extra_parents, start=1):
            self._session.add(
                ObjectParentRow(
                    object_id=obj.object_id, parent_id=parent_id, position=position
                )
            )
        if extra_parents:
            self._session.flush()

    def get_parents(self, object_id: str) -> list[str]:
        obj = self.get(object_id)
        if obj is None:
            return []
        parents = [obj.parent_id] if obj.parent_id else []
        stmt = (
            select(ObjectParentRow.parent_id)
            .where(ObjectParentRow.object_id == object_id)
            .order_by(ObjectParentRow.position)
        )
        parents.extend(self._session.execute(stmt).scalars().all())
        return parents

    def delete(self, object_id: str) -> None:
        self._session.execute(
            delete(ObjectParentRow).where(ObjectParentRow.object_id == object_id)
        )
        obj = self.get(object_id)
        if obj is not None:
            self._session.delete(obj)
        self._session.flush()


class SqliteWorktreeRepository(WorktreeRepository):
    """SQLite implementation of worktree repository."""

    def __init__(self, session: Session) -> None:
        self._session = session

    def get(self, worktree_id: str) -> WorktreeRow | None:
        return self._session.get(WorktreeRow, worktree_id)

    def list_all(self) -> Sequence[WorktreeRow]:
        stmt = select(WorktreeRow).order_by(
            WorktreeRow.is_main.desc(), WorktreeRow.worktree_id
        )
        return self._session.execute(stmt).scalars().all()

    def add(self, worktree_id: str, path: str | None = None) -> WorktreeRow:
        row = WorktreeRow(
            worktree_id=worktree_id,
            path=path,
            is_main=worktree_id == MAIN_WORKTREE_ID,
        )
        self._session.add(row)
        self._session.flush()
        return row


class SqliteRefRepository(RefRepository):
    """SQLite implementation of ref repository.

    Symbolic refs store the target name in ``symbolic_target``; the target
    is resolved in the namespace its own name belongs to, so a private
    ``HEAD`` can point at a shared branch.
    """

    def __init__(self, session: Session) -> None:
        self._session = session

    def get(self, store: str, ref_name: str) -> RefRow | None:
        return self._session.get(RefRow, (store, ref_name))

    def resolve(self, store: str, ref_name: str) -> str | None:
        current_store, current_name = store, ref_name
        for _ in range(MAX_SYMREF_DEPTH):
            row = self.get(current_store, current_name)
            if row is None:
                return None
            if row.symbolic_target is None:
                return row.object_id
            current_name = row.symbolic_target
            current_store = store_key(store, current_name)
        return None

    def set_ref(self, store: str, ref_name: str, object_id: str) -> None:
        row = self.get(store, ref_name)
        if row is None:
            self._session.add(
                RefRow(store=store, ref_name=ref_name, object_id=object_id)
            )
        else:
            row.object_id = object_id
            row.symbolic_target = None
        self._session.flush()

    def set_symbolic_ref(self, store: str, ref_name: str, target: str) -> None:
        row = self.get(store, ref_name)
        if row is None:
            self._session.add(
                RefRow(store=store, ref_name=ref_name, symbolic_target=target)
            )
        else:
            row.object_id = None
            row.symbolic_target = target
        self._session.flush()

    def list_refs(self, store: str) -> list[str]:
        stmt = select(RefRow.ref_name).where(RefRow.store == store).order_by(RefRow.ref_name)
        return list(self._session.execute(stmt).scalars().all())


class SqliteReflogRepository(ReflogRepository):
    """SQLite implementation of reflog repository.

    Positions are handed out from ReflogRow.next_position so that entries
    appended after a deletion still sort after every surviving entry.
    """

    def __init__(self, session: Session) -> None:
        self._session = session

    def _get_log(self, store: str, ref_name: str) -> ReflogRow | None:
        return self._session.get(ReflogRow, (store, ref_name))

    def exists(self, store: str, ref_name: str) -> bool:
        return self._get_log(store, ref_name) is not None

    def create_log(self, store: str, ref_name: str) -> None:
        if self._get_log(store, ref_name) is None:
            self._session.add(ReflogRow(store=store, ref_name=ref_name, next_position=0))
            self._session.flush()

    def get_entries(self, store: str, ref_name: str) -> Sequence[ReflogEntryRow]:
        stmt = (
            select(ReflogEntryRow)
            .where(ReflogEntryRow.store == store, ReflogEntryRow.ref_name == ref_name)
            .order_by(ReflogEntryRow.position)
        )
        return self._session.execute(stmt).scalars().all()

    def append(self, entry: ReflogEntryRow) -> None:
        self.create_log(entry.store, entry.ref_name)
        log = self._get_log(entry.store, entry.ref_name)
        entry.position = log.next_position
        log.next_position += 1
        self._session.add(entry)
        self._session.flush()

    def delete_entries(self, entries: Sequence[ReflogEntryRow]) -> None:
        if not entries:
            return
        for entry in entries:
            self._session.delete(entry)
        self._session.flush()

    def list_logs(self, store: str) -> list[str]:
        stmt = (
            select(ReflogRow.ref_name)
            .where(ReflogRow.store == store)
            .order_by(ReflogRow.ref_name)
        )
        return list(self._session.execute(stmt).scalars().all())


class SqliteConfigRepository(ConfigRepository):
    """SQLite implementation of config repository."""

    def __init__(self, session: Session) -> None:
        self._session = session

    def entries(self) -> list[tuple[str, str | None]]:
        stmt = select(ConfigEntryRow).order_by(ConfigEntryRow.id)
        return [(row.key, row.value) for row in self._session.execute(stmt).scalars()]

    def add(self, key: str, value: str | None) -> ConfigEntryRow:
        row = ConfigEntryRow(key=key, value=value)
        self._session.add(row)
        self._session.flush()
        return row

    def unset(self, key: str) -> int:
        result = self._session.execute(delete(ConfigEntryRow).where(ConfigEntryRow.key == key))
        self._session.flush()
        return result.rowcount or 0
