"""ReachabilityPrepass -- mark objects reachable from current references.

Run before expiration when ``--stale-fix`` is given: a repository pruned by
an older, less careful tool may hold reflog entries pointing at objects
whose history is gone.  The refs themselves can still be trusted, so every
object reachable from a current ref is marked; the retention predicate then
treats marked objects as complete and reachable.

Marking is additive and idempotent.  Nothing is deleted here.
"""

from __future__ import annotations

import logging
from collections.abc import Iterator
from typing import TYPE_CHECKING

from refkeep.operations.dag import get_all_ancestors

if TYPE_CHECKING:
    from refkeep.storage.repositories import (
        ObjectRepository,
        RefRepository,
        WorktreeRepository,
    )

logger = logging.getLogger(__name__)


class ReachabilityMarks:
    """The set of object ids marked reachable by a prepass."""

    def __init__(self) -> None:
        self._marked: set[str] = set()

    def mark(self, object_ids: set[str]) -> None:
        self._marked |= object_ids

    def is_marked(self, object_id: str) -> bool:
        return object_id in self._marked

    def as_set(self) -> set[str]:
        return self._marked

    def __contains__(self, object_id: object) -> bool:
        return object_id in self._marked

    def __len__(self) -> int:
        return len(self._marked)


def iter_ref_tips(ref_repo: RefRepository, worktree_repo: WorktreeRepository) -> Iterator[str]:
    """Object ids of every current ref: shared refs, then each worktree's own."""
    stores = [""] + [wt.worktree_id for wt in worktree_repo.list_all()]
    for store in stores:
        for name in ref_repo.list_refs(store):
            tip = ref_repo.resolve(store, name)
            if tip is not None:
                yield tip


def mark_reachable(
    ref_repo: RefRepository,
    worktree_repo: WorktreeRepository,
    object_repo: ObjectRepository,
    marks: ReachabilityMarks | None = None,
) -> ReachabilityMarks:
    """Mark every object reachable from a current ref.

    Missing objects along the way are skipped rather than treated as errors.

    Args:
        ref_repo: Ref repository.
        worktree_repo: Worktree repository, for per-worktree refs like HEAD.
        object_repo: Object repository.
        marks: Existing marks to extend.  A new set is created if None.

    Returns:
        The (possibly extended) marks.
    """
    if marks is None:
        marks = ReachabilityMarks()
    before = len(marks)
    for tip in iter_ref_tips(ref_repo, worktree_repo):
        marks.mark(get_all_ancestors(tip, object_repo, stop_at=marks.as_set()))
    logger.info("marked %d reachable objects", len(marks) - before)
    return marks
