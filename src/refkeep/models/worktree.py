"""Worktree domain model for Refkeep.

WorktreeInfo is the SDK-facing model returned when listing worktrees.
"""

from __future__ import annotations

from typing import Optional

from pydantic import BaseModel

MAIN_WORKTREE_ID = "main"


class WorktreeInfo(BaseModel):
    """SDK-facing worktree information model.

    Returned by Repository.list_worktrees().  ``is_current`` is relative to
    the worktree the repository was opened from.
    """

    worktree_id: str
    path: Optional[str] = None
    is_main: bool = False
    is_current: bool = False
