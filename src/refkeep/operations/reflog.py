"""Reflog service: expire, delete, exists and show over the storage layer.

This is the collaborator the expiration engine delegates to.  It locates a
log (qualified ``main-worktree/`` / ``worktrees/<id>/`` names route to the
right worktree), walks its entries oldest first asking a RetentionPolicy
about each one, and applies the result unless running dry.

Every mutating call commits its own transaction, so an interrupted batch
leaves finished logs expired and the rest untouched.
"""

from __future__ import annotations

import logging
from collections.abc import Callable
from dataclasses import dataclass
from typing import TYPE_CHECKING

import arrow
from sqlalchemy.exc import SQLAlchemyError

from refkeep.engine.dates import parse_expiry_date
from refkeep.engine.policy import ReflogContext, SelectorPolicy
from refkeep.engine.reachability import iter_ref_tips
from refkeep.exceptions import NotAReflogError, ReflogNotFoundError, WorktreeNotFoundError
from refkeep.models.reflog import (
    NULL_ID,
    EntryDecision,
    ExpireFlags,
    ExpireReport,
    ReflogEntry,
)
from refkeep.refs import dwim_log_candidates, parse_worktree_ref, store_key
from refkeep.storage.schema import ReflogEntryRow

if TYPE_CHECKING:
    from sqlalchemy.orm import Session

    from refkeep.engine.policy import RetentionPolicy
    from refkeep.storage.repositories import (
        ObjectRepository,
        RefRepository,
        ReflogRepository,
        WorktreeRepository,
    )
    from refkeep.storage.schema import RefRow

logger = logging.getLogger(__name__)

DecisionCallback = Callable[[EntryDecision], None]


@dataclass(frozen=True)
class LogLocation:
    """Where a (possibly qualified) ref name lives."""

    worktree_id: str
    store: str
    ref_name: str


class ReflogService:
    """Reflog primitives bound to one repository and its current worktree."""

    def __init__(
        self,
        *,
        session: Session,
        current_worktree: str,
        reflog_repo: ReflogRepository,
        ref_repo: RefRepository,
        object_repo: ObjectRepository,
        worktree_repo: WorktreeRepository,
    ) -> None:
        self._session = session
        self._current_worktree = current_worktree
        self._reflog_repo = reflog_repo
        self._ref_repo = ref_repo
        self._object_repo = object_repo
        self._worktree_repo = worktree_repo

    # ------------------------------------------------------------------
    # Lookup
    # ------------------------------------------------------------------

    def locate(self, ref_name: str) -> LogLocation:
        worktree_id, bare = parse_worktree_ref(ref_name)
        if worktree_id is None:
            worktree_id = self._current_worktree
        elif self._worktree_repo.get(worktree_id) is None:
            raise WorktreeNotFoundError(worktree_id)
        return LogLocation(
            worktree_id=worktree_id,
            store=store_key(worktree_id, bare),
            ref_name=bare,
        )

    def exists(self, ref_name: str) -> bool:
        try:
            loc = self.locate(ref_name)
        except WorktreeNotFoundError:
            return False
        return self._reflog_repo.exists(loc.store, loc.ref_name)

    def dwim_log(self, name: str) -> str | None:
        """Expand a short name to the first full ref name that has a log."""
        for candidate in dwim_log_candidates(name):
            if self.exists(candidate):
                return candidate
        return None

    def show(self, ref_name: str, limit: int | None = None) -> list[ReflogEntry]:
        """Entries of a log, newest first."""
        loc = self.locate(ref_name)
        if not self._reflog_repo.exists(loc.store, loc.ref_name):
            raise ReflogNotFoundError(ref_name)
        rows = list(self._reflog_repo.get_entries(loc.store, loc.ref_name))
        rows.reverse()
        if limit is not None:
            rows = rows[:limit]
        return [
            ReflogEntry(
                ref_name=ref_name,
                index=i,
                old_id=row.old_id,
                new_id=row.new_id,
                committer=row.committer,
                timestamp=row.timestamp,
                tz_offset=row.tz_offset,
                message=row.message,
            )
            for i, row in enumerate(rows)
        ]

    def append(
        self,
        ref_name: str,
        new_id: str,
        *,
        old_id: str = NULL_ID,
        committer: str = "refkeep <refkeep@localhost>",
        timestamp: int | None = None,
        message: str | None = None,
    ) -> None:
        """Append a record to a log, creating the log if needed."""
        loc = self.locate(ref_name)
        if timestamp is None:
            timestamp = arrow.utcnow().int_timestamp
        self._reflog_repo.append(
            ReflogEntryRow(
                store=loc.store,
                ref_name=loc.ref_name,
                position=0,
                old_id=old_id,
                new_id=new_id,
                committer=committer,
                timestamp=timestamp,
                message=message,
            )
        )
        self._session.commit()

    # ------------------------------------------------------------------
    # Expire / delete
    # ------------------------------------------------------------------

    def expire(
        self,
        ref_name: str,
        flags: ExpireFlags,
        policy: RetentionPolicy,
        on_decision: DecisionCallback | None = None,
    ) -> ExpireReport:
        """Apply *policy* to every entry of one log.

        Raises:
            ReflogNotFoundError: If the ref has no log.
        """
        loc = self.locate(ref_name)
        if not self._reflog_repo.exists(loc.store, loc.ref_name):
            raise ReflogNotFoundError(ref_name)

        entries = list(self._reflog_repo.get_entries(loc.store, loc.ref_name))
        ref_row = self._ref_repo.get(loc.store, loc.ref_name)
        head_like = loc.ref_name == "HEAD"
        context = ReflogContext(
            ref_name=ref_name,
            tip=self._ref_repo.resolve(loc.store, loc.ref_name),
            head_like=head_like,
            all_tips=(
                tuple(iter_ref_tips(self._ref_repo, self._worktree_repo)) if head_like else ()
            ),
            entry_count=len(entries),
        )

        policy.prepare(context, self._object_repo)
        try:
            kept: list[ReflogEntryRow] = []
            pruned: list[ReflogEntryRow] = []
            decisions: list[EntryDecision] = []
            last_kept = NULL_ID
            for position, entry in enumerate(entries):
                old_id = last_kept if flags.rewrite else entry.old_id
                result = policy.should_prune(entry, len(entries) - 1 - position, old_id)
                if result.pruned:
                    pruned.append(entry)
                else:
                    kept.append(entry)
                    last_kept = entry.new_id
                if flags.verbose:
                    decision = EntryDecision(
                        ref_name=ref_name,
                        old_id=old_id,
                        new_id=entry.new_id,
                        timestamp=entry.timestamp,
                        message=entry.message or "",
                        verdict=result.verdict,
                        reason=result.reason,
                        dry_run=flags.dry_run,
                    )
                    decisions.append(decision)
                    if on_decision is not None:
                        on_decision(decision)
        finally:
            policy.cleanup()

        updated_to: str | None = None
        if not flags.dry_run:
            try:
                updated_to = self._apply(loc, ref_row, entries, kept, pruned, flags)
                self._session.commit()
            except SQLAlchemyError:
                self._session.rollback()
                raise
            if updated_to is not None:
                logger.info("%s updated to %s", ref_name, updated_to)

        logger.debug(
            "%s: %d entries, %d pruned%s",
            ref_name, len(entries), len(pruned), " (dry run)" if flags.dry_run else "",
        )
        return ExpireReport(
            ref_name=ref_name,
            entries_examined=len(entries),
            entries_pruned=len(pruned),
            dry_run=flags.dry_run,
            ref_updated_to=updated_to,
            decisions=decisions,
        )

    def _apply(
        self,
        loc: LogLocation,
        ref_row: RefRow | None,
        entries: list[ReflogEntryRow],
        kept: list[ReflogEntryRow],
        pruned: list[ReflogEntryRow],
        flags: ExpireFlags,
    ) -> str | None:
        """Write the decisions back.  Returns the new ref value, if moved."""
        newest_pruned = bool(entries) and entries[-1] in pruned
        if flags.rewrite:
            last_kept = NULL_ID
            for entry in kept:
                entry.old_id = last_kept
                last_kept = entry.new_id
        self._reflog_repo.delete_entries(pruned)

        if (
            flags.update_ref
            and newest_pruned
            and kept
            and ref_row is not None
            and ref_row.symbolic_target is None
        ):
            self._ref_repo.set_ref(loc.store, loc.ref_name, kept[-1].new_id)
            return kept[-1].new_id
        return None

    def delete(
        self,
        spec: str,
        flags: ExpireFlags,
        on_decision: DecisionCallback | None = None,
        *,
        now: int | None = None,
    ) -> ExpireReport:
        """Delete the entry selected by ``<ref>@{<n>}`` or ``<ref>@{<date>}``.

        A date selects the newest entry older than it; ``never`` selects the
        oldest entry.  A date older than every entry selects nothing.

        Raises:
            NotAReflogError: If *spec* has no ``@{...}`` selector.
            ReflogNotFoundError: If the ref has no log.
            InvalidExpiryDateError: If a date selector cannot be parsed.
        """
        at = spec.find("@{")
        if at < 0 or not spec.endswith("}"):
            raise NotAReflogError(spec)
        name, selector = spec[:at], spec[at + 2:-1]

        ref_name = self.dwim_log(name)
        if ref_name is None:
            raise ReflogNotFoundError(name)

        if selector.isdigit():
            index = int(selector)
        else:
            if now is None:
                now = arrow.utcnow().int_timestamp
            index = self._index_before(ref_name, parse_expiry_date(selector, now))
        return self.expire(ref_name, flags, SelectorPolicy(index), on_decision)

    def _index_before(self, ref_name: str, cutoff: int) -> int:
        """Index (0 = newest) of the newest entry older than *cutoff*.

        A zero cutoff counts every entry.  When no entry qualifies the
        result is one past the oldest entry.
        """
        loc = self.locate(ref_name)
        entries = list(self._reflog_repo.get_entries(loc.store, loc.ref_name))
        older = sum(1 for entry in entries if not cutoff or entry.timestamp < cutoff)
        return len(entries) - older
