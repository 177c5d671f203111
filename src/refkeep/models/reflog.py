"""Reflog domain models for Refkeep.

ReflogEntry is the SDK-facing model returned when reading a reflog.
ReflogTarget, ExpireFlags, EntryDecision, ExpireReport and RunResult carry
an expiration run from collection to the final exit status.
"""

from __future__ import annotations

import enum
from dataclasses import dataclass, field
from typing import Optional

from pydantic import BaseModel

NULL_ID = "0" * 40


class ReflogEntry(BaseModel):
    """SDK-facing reflog entry.

    ``index`` counts from the newest entry (0 = newest), matching the
    ``<ref>@{<n>}`` selector syntax.
    """

    ref_name: str
    index: int
    old_id: str
    new_id: str
    committer: str
    timestamp: int
    tz_offset: str = "+0000"
    message: Optional[str] = None

    @property
    def selector(self) -> str:
        return f"{self.ref_name}@{{{self.index}}}"

    def __str__(self) -> str:
        msg = self.message or ""
        return f"{self.new_id[:8]} {self.selector}: {msg}"


@dataclass(frozen=True)
class ReflogTarget:
    """One reflog to evaluate.

    ``ref_name`` is the name handed to the reflog service: the bare ref for
    shared logs and logs of the current worktree, a ``main-worktree/`` or
    ``worktrees/<id>/`` qualified name for another worktree's private log.
    """

    worktree_id: str
    ref_name: str

    def __str__(self) -> str:
        return self.ref_name


@dataclass(frozen=True)
class ExpireFlags:
    """Mutation and reporting switches for an expire or delete call."""

    dry_run: bool = False
    rewrite: bool = False
    update_ref: bool = False
    verbose: bool = False


class Verdict(str, enum.Enum):
    """Outcome of the retention predicate for one entry."""

    KEEP = "keep"
    PRUNE = "prune"

    def __str__(self) -> str:
        return self.value


@dataclass(frozen=True)
class EntryDecision:
    """A single retention decision, reported in verbose mode."""

    ref_name: str
    old_id: str
    new_id: str
    timestamp: int
    message: str
    verdict: Verdict
    reason: str
    dry_run: bool = False

    @property
    def pruned(self) -> bool:
        return self.verdict is Verdict.PRUNE

    def describe(self) -> str:
        """Operator-facing line, e.g. ``would prune commit: fix typo``."""
        if self.verdict is Verdict.KEEP:
            verb = "keep"
        elif self.dry_run:
            verb = "would prune"
        else:
            verb = "prune"
        return f"{verb} {self.message}"


@dataclass(frozen=True)
class ExpireReport:
    """Result of expiring (or deleting from) one reflog."""

    ref_name: str
    entries_examined: int
    entries_pruned: int
    dry_run: bool
    ref_updated_to: str | None = None
    decisions: list[EntryDecision] = field(default_factory=list)

    @property
    def entries_kept(self) -> int:
        return self.entries_examined - self.entries_pruned


@dataclass(frozen=True)
class TargetOutcome:
    """Per-target status recorded by the expiration runner."""

    ref_name: str
    status: int
    report: ExpireReport | None = None
    error: str | None = None

    @property
    def ok(self) -> bool:
        return self.status == 0


@dataclass
class RunResult:
    """Aggregate result of a run.

    ``status`` is the bitwise union of every target's status; the outcome
    list keeps per-target detail because the union alone cannot say which
    target failed.
    """

    status: int = 0
    outcomes: list[TargetOutcome] = field(default_factory=list)

    def record(self, outcome: TargetOutcome) -> None:
        self.outcomes.append(outcome)
        self.status |= outcome.status

    @property
    def failures(self) -> list[TargetOutcome]:
        return [o for o in self.outcomes if not o.ok]

    @property
    def entries_pruned(self) -> int:
        return sum(o.report.entries_pruned for o in self.outcomes if o.report is not None)

    def __str__(self) -> str:
        return (
            f"{len(self.outcomes)} reflogs | {self.entries_pruned} entries pruned | "
            f"{len(self.failures)} failed | status {self.status}"
        )
