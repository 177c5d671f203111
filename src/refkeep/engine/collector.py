"""ReflogCollector -- enumerate reflogs across worktrees.

Shared logs are visible from every worktree, so a scan over several
worktrees would see each of them several times.  They are emitted only
while the current worktree is being visited; private logs of the other
worktrees are emitted under their qualified names.
"""

from __future__ import annotations

import logging
from collections.abc import Sequence
from typing import TYPE_CHECKING

from refkeep.models.reflog import ReflogTarget
from refkeep.refs import is_shared_ref, worktree_ref_name

if TYPE_CHECKING:
    from refkeep.models.worktree import WorktreeInfo
    from refkeep.storage.repositories import ReflogRepository

logger = logging.getLogger(__name__)


def visible_reflogs(reflog_repo: ReflogRepository, worktree: WorktreeInfo) -> list[str]:
    """Bare names of every log visible from *worktree*, sorted."""
    names = set(reflog_repo.list_logs(""))
    names.update(reflog_repo.list_logs(worktree.worktree_id))
    return sorted(names)


def collect_reflogs(
    worktrees: Sequence[WorktreeInfo],
    reflog_repo: ReflogRepository,
    *,
    all_worktrees: bool = True,
) -> list[ReflogTarget]:
    """Collect the reflogs an ``expire --all`` run should process.

    Args:
        worktrees: Worktrees in enumeration order.
        reflog_repo: Reflog storage.
        all_worktrees: If False, worktrees other than the current one are
            skipped entirely.

    Returns:
        Targets in emission order.
    """
    targets: list[ReflogTarget] = []
    for worktree in worktrees:
        if not all_worktrees and not worktree.is_current:
            continue
        for name in visible_reflogs(reflog_repo, worktree):
            if not worktree.is_current and is_shared_ref(name):
                continue
            targets.append(
                ReflogTarget(
                    worktree_id=worktree.worktree_id,
                    ref_name=worktree_ref_name(worktree, name),
                )
            )
    logger.debug("collected %d reflogs from %d worktrees", len(targets), len(worktrees))
    return targets
