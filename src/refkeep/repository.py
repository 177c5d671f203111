"""Repository -- the public SDK entry point for Refkeep.

Ties together storage, the reflog service and the expiration engine into a
user-facing API.  Users interact with ``Repository.open()``,
``repo.expire()``, ``repo.delete()``, ``repo.exists()``, etc.

Not thread-safe.  Each thread should open its own ``Repository``.
"""

from __future__ import annotations

import logging
from collections.abc import Sequence
from typing import TYPE_CHECKING, Optional

import arrow
from sqlalchemy.exc import SQLAlchemyError

from refkeep.engine.collector import collect_reflogs
from refkeep.engine.config import ExpireConfig, load_expire_config, parse_config_key
from refkeep.engine.dates import parse_expiry_date
from refkeep.engine.reachability import mark_reachable
from refkeep.engine.runner import FAILURE, ExpirationRunner
from refkeep.exceptions import (
    ConfigError,
    InvalidExpiryDateError,
    ReflogError,
    ReflogNotFoundError,
    UsageError,
    WorktreeNotFoundError,
)
from refkeep.models.config import ExplicitCutoffs, RefkeepConfig
from refkeep.models.reflog import NULL_ID, ExpireFlags, RunResult, TargetOutcome
from refkeep.models.worktree import MAIN_WORKTREE_ID, WorktreeInfo
from refkeep.operations.reflog import ReflogService
from refkeep.refs import check_refname_format
from refkeep.storage.engine import create_refkeep_engine, create_session_factory, init_db
from refkeep.storage.schema import ObjectRow
from refkeep.storage.sqlite import (
    SqliteConfigRepository,
    SqliteObjectRepository,
    SqliteRefRepository,
    SqliteReflogRepository,
    SqliteWorktreeRepository,
)

if TYPE_CHECKING:
    from collections.abc import Callable

    from sqlalchemy import Engine
    from sqlalchemy.orm import Session

    from refkeep.models.reflog import ReflogEntry, ReflogTarget
    from refkeep.operations.reflog import DecisionCallback

logger = logging.getLogger(__name__)

ConfigEntries = Sequence[tuple[str, Optional[str]]]


class Repository:
    """Primary entry point for Refkeep.

    Open a repository via :meth:`Repository.open` (recommended) or
    :meth:`Repository.from_components` (testing / DI).

    Example::

        with Repository.open(".refkeep.db") as repo:
            repo.set_config("gc.refs/heads/topic.reflogExpire", "1.day.ago")
            result = repo.expire(all_refs=True, dry_run=True, verbose=True)
            print(result)
    """

    # ------------------------------------------------------------------
    # Construction
    # ------------------------------------------------------------------

    def __init__(
        self,
        *,
        engine: Engine | None,
        session: Session,
        config: RefkeepConfig,
        current_worktree: str,
        object_repo: SqliteObjectRepository,
        worktree_repo: SqliteWorktreeRepository,
        ref_repo: SqliteRefRepository,
        reflog_repo: SqliteReflogRepository,
        config_repo: SqliteConfigRepository,
        config_overrides: ConfigEntries = (),
    ) -> None:
        self._engine = engine
        self._session = session
        self._config = config
        self._object_repo = object_repo
        self._worktree_repo = worktree_repo
        self._ref_repo = ref_repo
        self._reflog_repo = reflog_repo
        self._config_repo = config_repo
        self._config_overrides: list[tuple[str, str | None]] = list(config_overrides)
        self._closed = False
        self._current_worktree = MAIN_WORKTREE_ID
        self._service: ReflogService
        self.set_current_worktree(current_worktree)

    @classmethod
    def open(
        cls,
        path: str = ":memory:",
        *,
        worktree: str | None = None,
        config_overrides: ConfigEntries = (),
        config: RefkeepConfig | None = None,
    ) -> Repository:
        """Open (or create) a Refkeep repository.

        Args:
            path: SQLite path.  ``":memory:"`` for in-memory (default).
            worktree: Current worktree id.  The main worktree if omitted.
            config_overrides: Run-level ``(key, value)`` config entries,
                applied after the stored ones.
            config: Repository settings.  Defaults created if *None*.

        Returns:
            A ready-to-use ``Repository`` instance.

        Raises:
            WorktreeNotFoundError: If *worktree* is not registered.
        """
        if config is None:
            config = RefkeepConfig(db_path=path)

        # Engine / session
        engine = create_refkeep_engine(path, url=config.db_url)
        init_db(engine)
        session_factory = create_session_factory(engine)
        session = session_factory()

        try:
            return cls(
                engine=engine,
                session=session,
                config=config,
                current_worktree=worktree or MAIN_WORKTREE_ID,
                object_repo=SqliteObjectRepository(session),
                worktree_repo=SqliteWorktreeRepository(session),
                ref_repo=SqliteRefRepository(session),
                reflog_repo=SqliteReflogRepository(session),
                config_repo=SqliteConfigRepository(session),
                config_overrides=config_overrides,
            )
        except WorktreeNotFoundError:
            session.close()
            engine.dispose()
            raise

    @classmethod
    def from_components(
        cls,
        *,
        engine: Engine | None = None,
        session: Session,
        current_worktree: str = MAIN_WORKTREE_ID,
        config: RefkeepConfig | None = None,
        config_overrides: ConfigEntries = (),
    ) -> Repository:
        """Create a ``Repository`` over an existing session.

        Skips engine creation and schema setup.  Useful for testing and DI.
        """
        if config is None:
            config = RefkeepConfig()
        return cls(
            engine=engine,
            session=session,
            config=config,
            current_worktree=current_worktree,
            object_repo=SqliteObjectRepository(session),
            worktree_repo=SqliteWorktreeRepository(session),
            ref_repo=SqliteRefRepository(session),
            reflog_repo=SqliteReflogRepository(session),
            config_repo=SqliteConfigRepository(session),
            config_overrides=config_overrides,
        )

    # ------------------------------------------------------------------
    # Public properties
    # ------------------------------------------------------------------

    @property
    def config(self) -> RefkeepConfig:
        return self._config

    @property
    def current_worktree(self) -> str:
        """Id of the worktree this repository acts from."""
        return self._current_worktree

    @property
    def reflogs(self) -> ReflogService:
        """The underlying reflog service."""
        return self._service

    def set_current_worktree(self, worktree_id: str) -> None:
        """Act from another registered worktree.

        Raises:
            WorktreeNotFoundError: If *worktree_id* is not registered.
        """
        if self._worktree_repo.get(worktree_id) is None:
            raise WorktreeNotFoundError(worktree_id)
        self._current_worktree = worktree_id
        self._service = ReflogService(
            session=self._session,
            current_worktree=worktree_id,
            reflog_repo=self._reflog_repo,
            ref_repo=self._ref_repo,
            object_repo=self._object_repo,
            worktree_repo=self._worktree_repo,
        )

    # ------------------------------------------------------------------
    # Configuration
    # ------------------------------------------------------------------

    def config_entries(self, *, include_overrides: bool = True) -> list[tuple[str, str | None]]:
        """Raw config entries in application order: stored, then overrides."""
        entries = self._config_repo.entries()
        if include_overrides:
            entries.extend(self._config_overrides)
        return entries

    def set_config(self, key: str, value: str | None) -> None:
        """Append a config entry.  A later entry for the same key wins.

        Raises:
            ConfigError: If *key* is not of the form ``section[.sub].name``.
        """
        if parse_config_key(key) is None:
            raise ConfigError(f"key does not contain a section: {key}")
        self._config_repo.add(key, value)
        self._session.commit()

    def unset_config(self, key: str) -> int:
        """Remove every stored entry for *key*.  Returns how many were removed.

        Section and name compare case-insensitively, the subsection exactly.

        Raises:
            ConfigError: If *key* is not of the form ``section[.sub].name``.
        """
        target = parse_config_key(key)
        if target is None:
            raise ConfigError(f"key does not contain a section: {key}")
        spellings = {
            stored for stored, _value in self._config_repo.entries()
            if parse_config_key(stored) == target
        }
        removed = sum(self._config_repo.unset(stored) for stored in spellings)
        self._session.commit()
        return removed

    def load_expire_config(self, now: int) -> ExpireConfig:
        """Load retention configuration relative to *now*.

        Raises:
            ConfigError: If a retention key is malformed.
        """
        return load_expire_config(
            self.config_entries(),
            now,
            expire_days=self._config.default_expire_days,
            expire_unreachable_days=self._config.default_expire_unreachable_days,
            stash_ref=self._config.stash_ref,
        )

    # ------------------------------------------------------------------
    # Worktrees
    # ------------------------------------------------------------------

    def list_worktrees(self) -> list[WorktreeInfo]:
        """Registered worktrees, main first."""
        return [
            WorktreeInfo(
                worktree_id=row.worktree_id,
                path=row.path,
                is_main=row.is_main,
                is_current=row.worktree_id == self._current_worktree,
            )
            for row in self._worktree_repo.list_all()
        ]

    def add_worktree(self, worktree_id: str, path: str | None = None) -> WorktreeInfo:
        """Register a linked worktree."""
        check_refname_format(worktree_id, allow_onelevel=True)
        row = self._worktree_repo.add(worktree_id, path)
        self._session.commit()
        return WorktreeInfo(
            worktree_id=row.worktree_id,
            path=row.path,
            is_main=row.is_main,
            is_current=row.worktree_id == self._current_worktree,
        )

    def collect_reflogs(self, *, single_worktree: bool = False) -> list[ReflogTarget]:
        """Reflogs an ``expire --all`` run would process, in order."""
        return collect_reflogs(
            self.list_worktrees(),
            self._reflog_repo,
            all_worktrees=not single_worktree,
        )

    # ------------------------------------------------------------------
    # Objects and refs
    # ------------------------------------------------------------------

    def add_object(
        self,
        object_id: str,
        parent: str | None = None,
        *,
        extra_parents: Sequence[str] = (),
        committed_at: int | None = None,
    ) -> None:
        """Record a commit object in the history graph."""
        if committed_at is None:
            committed_at = arrow.utcnow().int_timestamp
        self._object_repo.save(
            ObjectRow(object_id=object_id, parent_id=parent, committed_at=committed_at),
            extra_parents=extra_parents,
        )
        self._session.commit()

    def remove_object(self, object_id: str) -> None:
        """Drop a commit object, leaving anything that points at it dangling."""
        self._object_repo.delete(object_id)
        self._session.commit()

    def resolve_ref(self, ref_name: str) -> str | None:
        """Object id a ref points at, following symbolic refs."""
        loc = self._service.locate(ref_name)
        return self._ref_repo.resolve(loc.store, loc.ref_name)

    def set_ref(self, ref_name: str, object_id: str) -> None:
        """Point a ref at an object without logging the change."""
        check_refname_format(ref_name, allow_onelevel=True)
        loc = self._service.locate(ref_name)
        self._ref_repo.set_ref(loc.store, loc.ref_name, object_id)
        self._session.commit()

    def set_symbolic_ref(self, ref_name: str, target: str) -> None:
        check_refname_format(ref_name, allow_onelevel=True)
        check_refname_format(target, allow_onelevel=True)
        loc = self._service.locate(ref_name)
        self._ref_repo.set_symbolic_ref(loc.store, loc.ref_name, target)
        self._session.commit()

    def update_ref(
        self,
        ref_name: str,
        new_id: str,
        *,
        message: str | None = None,
        timestamp: int | None = None,
        committer: str = "refkeep <refkeep@localhost>",
    ) -> None:
        """Move a ref and log the move, like a commit or checkout would.

        For a symbolic ref the target is moved and both logs get the entry.
        """
        check_refname_format(ref_name, allow_onelevel=True)
        loc = self._service.locate(ref_name)
        old_id = self._ref_repo.resolve(loc.store, loc.ref_name) or NULL_ID
        if timestamp is None:
            timestamp = arrow.utcnow().int_timestamp

        names = [ref_name]
        row = self._ref_repo.get(loc.store, loc.ref_name)
        if row is not None and row.symbolic_target is not None:
            target = row.symbolic_target
            names.append(target)
            target_loc = self._service.locate(target)
            self._ref_repo.set_ref(target_loc.store, target_loc.ref_name, new_id)
        else:
            self._ref_repo.set_ref(loc.store, loc.ref_name, new_id)

        for name in names:
            self._service.append(
                name,
                new_id,
                old_id=old_id,
                committer=committer,
                timestamp=timestamp,
                message=message,
            )

    def append_reflog(
        self,
        ref_name: str,
        new_id: str,
        *,
        old_id: str = NULL_ID,
        message: str | None = None,
        timestamp: int | None = None,
    ) -> None:
        """Append a raw reflog record without touching the ref."""
        check_refname_format(ref_name, allow_onelevel=True)
        self._service.append(
            ref_name, new_id, old_id=old_id, message=message, timestamp=timestamp
        )

    # ------------------------------------------------------------------
    # Reflog commands
    # ------------------------------------------------------------------

    def exists(self, ref_name: str) -> bool:
        """Whether *ref_name* has a reflog.  No short-name expansion.

        Raises:
            InvalidRefNameError: If *ref_name* is not a valid ref name; the
                existence check is not attempted.
        """
        check_refname_format(ref_name, allow_onelevel=True)
        return self._service.exists(ref_name)

    def show(self, ref_name: str = "HEAD", limit: int | None = None) -> list[ReflogEntry]:
        """Entries of a reflog, newest first.

        Raises:
            ReflogNotFoundError: If no reflog matches *ref_name*.
        """
        full_name = self._service.dwim_log(ref_name)
        if full_name is None:
            raise ReflogNotFoundError(ref_name)
        return self._service.show(full_name, limit)

    def expire(
        self,
        refs: Sequence[str] = (),
        *,
        all_refs: bool = False,
        single_worktree: bool = False,
        stale_fix: bool = False,
        expire: str | None = None,
        expire_unreachable: str | None = None,
        dry_run: bool = False,
        rewrite: bool = False,
        update_ref: bool = False,
        verbose: bool = False,
        on_decision: DecisionCallback | None = None,
        on_marking: Callable[[], None] | None = None,
        now: int | None = None,
    ) -> RunResult:
        """Prune old reflog entries.

        Configuration and the explicit dates are loaded before anything is
        touched; a bad value there raises and nothing is modified.  After
        that, every target is processed even if an earlier one fails.

        Args:
            refs: Reflogs to expire; short names are expanded.
            all_refs: Also expire every reflog of every worktree.
            single_worktree: With *all_refs*, only the current worktree.
            stale_fix: Also prune entries pointing at broken history.
            expire: Explicit total cutoff, overriding configuration.
            expire_unreachable: Explicit unreachable cutoff.
            dry_run: Decide and report, but do not modify anything.
            rewrite: Chain each kept entry's old id to its predecessor.
            update_ref: Move the ref back if its newest entry was pruned.
            verbose: Report every decision through *on_decision*.
            on_decision: Callback for verbose decisions.
            on_marking: Called before the stale-fix reachability walk.
            now: Reference time.  Captured once here when omitted.

        Returns:
            A RunResult whose ``status`` is the OR of every target's status.

        Raises:
            ConfigError: If configuration or an explicit date is invalid.
        """
        if now is None:
            now = arrow.utcnow().int_timestamp

        config = self.load_expire_config(now)
        explicit = ExplicitCutoffs.from_values(
            expire_total=_explicit_date(expire, now),
            expire_unreachable=_explicit_date(expire_unreachable, now),
        )

        marks = None
        if stale_fix:
            if on_marking is not None:
                on_marking()
            marks = mark_reachable(self._ref_repo, self._worktree_repo, self._object_repo)

        runner = ExpirationRunner(
            self._service,
            config,
            explicit,
            ExpireFlags(dry_run=dry_run, rewrite=rewrite, update_ref=update_ref, verbose=verbose),
            stale_fix=stale_fix,
            marks=marks,
            on_decision=on_decision,
        )

        result = RunResult()
        if all_refs:
            runner.run(self.collect_reflogs(single_worktree=single_worktree), result)
        runner.expire_named(refs, result)

        logger.info("expire: %s", result)
        return result

    def delete(
        self,
        specs: Sequence[str],
        *,
        dry_run: bool = False,
        rewrite: bool = False,
        update_ref: bool = False,
        verbose: bool = False,
        on_decision: DecisionCallback | None = None,
        now: int | None = None,
    ) -> RunResult:
        """Delete selected entries, e.g. ``HEAD@{2}`` or ``main@{1.week.ago}``.

        Raises:
            UsageError: If *specs* is empty.  Nothing is modified.
        """
        if not specs:
            raise UsageError("no reflog specified to delete")
        if now is None:
            now = arrow.utcnow().int_timestamp

        flags = ExpireFlags(dry_run=dry_run, rewrite=rewrite, update_ref=update_ref, verbose=verbose)
        result = RunResult()
        for spec in specs:
            try:
                report = self._service.delete(spec, flags, on_decision, now=now)
            except (ReflogError, InvalidExpiryDateError) as exc:
                logger.error("%s", exc)
                result.record(TargetOutcome(ref_name=spec, status=FAILURE, error=str(exc)))
                continue
            except SQLAlchemyError as exc:
                logger.error("failed to delete %s: %s", spec, exc)
                result.record(TargetOutcome(ref_name=spec, status=FAILURE, error=str(exc)))
                continue
            result.record(TargetOutcome(ref_name=spec, status=0, report=report))

        logger.info("delete: %s", result)
        return result

    # ------------------------------------------------------------------
    # Lifecycle
    # ------------------------------------------------------------------

    def close(self) -> None:
        """Close the session and dispose the engine."""
        if self._closed:
            return
        self._closed = True
        self._session.close()
        if self._engine is not None:
            self._engine.dispose()

    def __enter__(self) -> Repository:
        return self

    def __exit__(self, exc_type: type | None, exc_val: BaseException | None, exc_tb: object) -> None:
        self.close()

    def __repr__(self) -> str:
        if self._closed:
            return f"Repository(db_path='{self._config.db_path}', closed=True)"
        return (
            f"Repository(db_path='{self._config.db_path}', "
            f"worktree='{self._current_worktree}')"
        )


def _explicit_date(value: str | None, now: int) -> int | None:
    if value is None:
        return None
    return parse_expiry_date(value, now)
