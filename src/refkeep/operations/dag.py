"""DAG utilities for Refkeep -- ancestor queries over the object graph.

Walks follow every parent of a commit (first parent plus the extra parents
of merge commits).  Objects that are referenced but absent from the store
are tolerated: they are skipped, and reported through *missing* when the
caller asks for it.
"""

from __future__ import annotations

from collections import deque
from collections.abc import Iterator
from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from refkeep.storage.repositories import ObjectRepository


def _bfs_walk(
    start: str,
    object_repo: ObjectRepository,
    *,
    stop_at: set[str] | None = None,
    missing: set[str] | None = None,
) -> Iterator[str]:
    """BFS walk from a start id, yielding each present object id once.

    Args:
        start: Starting object id.
        object_repo: Object repository for lookups and parent lists.
        stop_at: Optional set of known-visited ids. When an object is
            in this set, it is yielded but its parents are not enqueued.
        missing: If given, ids that were referenced but not found are
            added to it.
    """
    visited: set[str] = set()
    queue: deque[str] = deque([start])
    while queue:
        current = queue.popleft()
        if current in visited:
            continue
        visited.add(current)
        if object_repo.get(current) is None:
            if missing is not None:
                missing.add(current)
            continue
        yield current
        if stop_at is not None and current in stop_at:
            continue
        for parent in object_repo.get_parents(current):
            if parent not in visited:
                queue.append(parent)


def get_all_ancestors(
    object_id: str,
    object_repo: ObjectRepository,
    *,
    stop_at: set[str] | None = None,
) -> set[str]:
    """Get all present ancestor ids of an object (including itself)."""
    return set(_bfs_walk(object_id, object_repo, stop_at=stop_at))


def is_ancestor(
    object_repo: ObjectRepository,
    potential_ancestor: str,
    object_id: str,
) -> bool:
    """Check if potential_ancestor is reachable from object_id.

    Stops as soon as the target is found.
    """
    for h in _bfs_walk(object_id, object_repo):
        if h == potential_ancestor:
            return True
    return False


def is_complete(
    object_id: str,
    object_repo: ObjectRepository,
    *,
    trusted: set[str] | None = None,
) -> bool:
    """Check that an object and its entire history are present.

    Objects in *trusted* (e.g. already marked reachable) are assumed
    complete and their history is not walked.
    """
    if trusted is not None and object_id in trusted:
        return True
    missing: set[str] = set()
    for _ in _bfs_walk(object_id, object_repo, stop_at=trusted, missing=missing):
        if missing:
            return False
    return not missing
