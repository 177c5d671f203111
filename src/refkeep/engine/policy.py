"""Retention predicates handed to the reflog service.

A policy is a small value object carrying its bound state (resolved
cutoffs, stale-fix switch, reachability marks).  The reflog service calls
``prepare()`` once per log, ``should_prune()`` once per entry (oldest
first) and ``cleanup()`` at the end.

ExpirePolicy implements ``expire``; SelectorPolicy implements ``delete``
of one ``<ref>@{<n>}`` / ``<ref>@{<date>}`` selection, with the date form
resolved to an index by the reflog service.
"""

from __future__ import annotations

import enum
import logging
from abc import ABC, abstractmethod
from dataclasses import dataclass
from typing import TYPE_CHECKING

from refkeep.models.reflog import NULL_ID, Verdict
from refkeep.operations.dag import get_all_ancestors, is_complete

if TYPE_CHECKING:
    from refkeep.engine.reachability import ReachabilityMarks
    from refkeep.models.config import EffectiveCutoffs
    from refkeep.storage.repositories import ObjectRepository
    from refkeep.storage.schema import ReflogEntryRow

logger = logging.getLogger(__name__)


class UnreachableKind(str, enum.Enum):
    """How the unreachable-age axis decides reachability for one log."""

    NORMAL = "normal"  # ancestors of the ref's own tip
    HEAD = "head"  # ancestors of every ref tip
    ALWAYS = "always"  # no usable tip: everything past the cutoff goes


@dataclass(frozen=True)
class ReflogContext:
    """What the reflog service knows about a log before evaluating it."""

    ref_name: str
    tip: str | None
    head_like: bool
    all_tips: tuple[str, ...]
    entry_count: int


@dataclass(frozen=True)
class PruneDecision:
    verdict: Verdict
    reason: str

    @property
    def pruned(self) -> bool:
        return self.verdict is Verdict.PRUNE


KEEP = PruneDecision(Verdict.KEEP, "within retention")


class RetentionPolicy(ABC):
    """Per-entry predicate with per-log prepare/cleanup hooks."""

    def prepare(self, context: ReflogContext, object_repo: ObjectRepository) -> None:
        """Compute per-log state.  Default: nothing."""

    @abstractmethod
    def should_prune(
        self, entry: ReflogEntryRow, index: int, old_id: str | None = None
    ) -> PruneDecision:
        """Decide one entry.  *index* counts from the newest entry (0).

        *old_id* replaces the entry's stored old value when the log is being
        rewritten, so the predicate sees the value that would be written.
        """
        ...

    def cleanup(self) -> None:
        """Drop per-log state.  Default: nothing."""


class ExpirePolicy(RetentionPolicy):
    """Age-based retention with an unreachable-age axis.

    An entry is pruned when:

    1. it is older than ``expire_total``; or
    2. stale-fix is on and either side points at an object whose history
       is incomplete (objects marked reachable are trusted); or
    3. it is older than ``expire_unreachable`` and either side is not
       reachable from the ref's tip (from every ref tip for HEAD) nor
       marked by the reachability prepass.
    """

    def __init__(
        self,
        cutoffs: EffectiveCutoffs,
        *,
        stale_fix: bool = False,
        marks: ReachabilityMarks | None = None,
    ) -> None:
        self.cutoffs = cutoffs
        self.stale_fix = stale_fix
        self.marks = marks
        self._object_repo: ObjectRepository | None = None
        self._kind = UnreachableKind.ALWAYS
        self._reachable: set[str] = set()
        self._complete: dict[str, bool] = {}

    @property
    def unreachable_kind(self) -> UnreachableKind:
        return self._kind

    def prepare(self, context: ReflogContext, object_repo: ObjectRepository) -> None:
        self._object_repo = object_repo
        self._reachable = set()
        self._complete = {}

        if self.cutoffs.expire_unreachable <= self.cutoffs.expire_total:
            # Anything past the unreachable cutoff is already past the total one.
            self._kind = UnreachableKind.ALWAYS
        elif context.head_like:
            self._kind = UnreachableKind.HEAD
            for tip in context.all_tips:
                self._reachable |= get_all_ancestors(tip, object_repo, stop_at=self._reachable)
        elif context.tip is None or object_repo.get(context.tip) is None:
            self._kind = UnreachableKind.ALWAYS
        else:
            self._kind = UnreachableKind.NORMAL
            self._reachable = get_all_ancestors(context.tip, object_repo)

        logger.debug(
            "%s: unreachable mode %s, %d reachable objects",
            context.ref_name, self._kind.value, len(self._reachable),
        )

    def _is_marked(self, object_id: str) -> bool:
        return self.marks is not None and self.marks.is_marked(object_id)

    def _keep_object(self, object_id: str) -> bool:
        """Stale-fix check: the object and all of its history are present."""
        if object_id == NULL_ID or self._is_marked(object_id):
            return True
        cached = self._complete.get(object_id)
        if cached is None:
            trusted = self.marks.as_set() if self.marks is not None else None
            cached = is_complete(object_id, self._object_repo, trusted=trusted)
            self._complete[object_id] = cached
        return cached

    def _unreachable(self, object_id: str) -> bool:
        if object_id == NULL_ID or self._is_marked(object_id):
            return False
        return object_id not in self._reachable

    def should_prune(
        self, entry: ReflogEntryRow, index: int, old_id: str | None = None
    ) -> PruneDecision:
        if old_id is None:
            old_id = entry.old_id

        if entry.timestamp < self.cutoffs.expire_total:
            return PruneDecision(Verdict.PRUNE, "older than expire cutoff")

        if self.stale_fix and not (
            self._keep_object(old_id) and self._keep_object(entry.new_id)
        ):
            return PruneDecision(Verdict.PRUNE, "references missing objects")

        if entry.timestamp < self.cutoffs.expire_unreachable:
            if self._kind is UnreachableKind.ALWAYS:
                return PruneDecision(Verdict.PRUNE, "older than expire-unreachable cutoff")
            if self._unreachable(old_id) or self._unreachable(entry.new_id):
                return PruneDecision(
                    Verdict.PRUNE, "unreachable and older than expire-unreachable cutoff"
                )

        return KEEP

    def cleanup(self) -> None:
        self._object_repo = None
        self._reachable = set()
        self._complete = {}


class SelectorPolicy(RetentionPolicy):
    """Prune the single entry at *index* (0 = newest).

    An index past the oldest entry selects nothing.
    """

    def __init__(self, index: int) -> None:
        if index < 0:
            raise ValueError(f"selector index must not be negative: {index}")
        self.index = index

    def should_prune(
        self, entry: ReflogEntryRow, index: int, old_id: str | None = None
    ) -> PruneDecision:
        if index == self.index:
            return PruneDecision(Verdict.PRUNE, f"selected as @{{{self.index}}}")
        return KEEP
