"""ExpirationRunner -- drive expiration over a batch of reflogs.

For each target, in order: resolve the effective cutoffs, bind them into
an ExpirePolicy, and hand that to the reflog service.  A failure on one
target is logged, folded into the run status with bitwise OR, and the
batch moves on.
"""

from __future__ import annotations

import logging
from collections.abc import Iterable
from typing import TYPE_CHECKING

from sqlalchemy.exc import SQLAlchemyError

from refkeep.engine.policy import ExpirePolicy
from refkeep.engine.resolver import resolve_for
from refkeep.exceptions import RefNotFoundError, ReflogError
from refkeep.models.reflog import ExpireFlags, ReflogTarget, RunResult, TargetOutcome

if TYPE_CHECKING:
    from refkeep.engine.config import ExpireConfig
    from refkeep.engine.reachability import ReachabilityMarks
    from refkeep.models.config import ExplicitCutoffs
    from refkeep.operations.reflog import DecisionCallback, ReflogService

logger = logging.getLogger(__name__)

FAILURE = 1


class ExpirationRunner:
    """Applies one run's policy to a stream of independent targets.

    The only state carried between targets is the accumulating RunResult;
    configuration, explicit cutoffs and marks are read-only.
    """

    def __init__(
        self,
        service: ReflogService,
        config: ExpireConfig,
        explicit: ExplicitCutoffs,
        flags: ExpireFlags,
        *,
        stale_fix: bool = False,
        marks: ReachabilityMarks | None = None,
        on_decision: DecisionCallback | None = None,
    ) -> None:
        self._service = service
        self._config = config
        self._explicit = explicit
        self._flags = flags
        self._stale_fix = stale_fix
        self._marks = marks
        self._on_decision = on_decision

    def policy_for(self, ref_name: str) -> ExpirePolicy:
        cutoffs = resolve_for(ref_name, self._explicit, self._config)
        logger.debug(
            "%s: expire=%d expire-unreachable=%d",
            ref_name, cutoffs.expire_total, cutoffs.expire_unreachable,
        )
        return ExpirePolicy(cutoffs, stale_fix=self._stale_fix, marks=self._marks)

    def expire_one(self, ref_name: str) -> TargetOutcome:
        try:
            report = self._service.expire(
                ref_name, self._flags, self.policy_for(ref_name), self._on_decision
            )
        except ReflogError as exc:
            logger.error("%s", exc)
            return TargetOutcome(ref_name=ref_name, status=FAILURE, error=str(exc))
        except SQLAlchemyError as exc:
            logger.error("failed to expire %s: %s", ref_name, exc)
            return TargetOutcome(ref_name=ref_name, status=FAILURE, error=str(exc))
        return TargetOutcome(ref_name=ref_name, status=0, report=report)

    def run(self, targets: Iterable[ReflogTarget], result: RunResult | None = None) -> RunResult:
        """Expire every target in order."""
        if result is None:
            result = RunResult()
        for target in targets:
            result.record(self.expire_one(target.ref_name))
        return result

    def expire_named(self, names: Iterable[str], result: RunResult | None = None) -> RunResult:
        """Expire user-given names, expanding short names first."""
        if result is None:
            result = RunResult()
        for name in names:
            ref_name = self._service.dwim_log(name)
            if ref_name is None:
                err = RefNotFoundError(name)
                logger.error("%s", err)
                result.record(TargetOutcome(ref_name=name, status=FAILURE, error=str(err)))
                continue
            result.record(self.expire_one(ref_name))
        return result
