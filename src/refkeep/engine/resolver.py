"""ExpiryResolver -- effective cutoffs for one reference.

Precedence, per axis: explicit run override > first matching pattern >
stash exemption > global default.

A matching pattern supplies *both* non-explicit axes from the same entry,
including an axis the entry never configured (which is then 0, "never").
Resolution does not fall through to the stash rule or the defaults for
that axis.
"""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING

from refkeep.models.config import (
    STASH_REF,
    TIME_NEVER,
    EffectiveCutoffs,
    ExpireAxis,
    ExplicitCutoffs,
)

if TYPE_CHECKING:
    from refkeep.engine.config import ExpireConfig
    from refkeep.engine.patterns import PatternConfigStore
    from refkeep.models.config import GlobalDefaults

logger = logging.getLogger(__name__)


def resolve_cutoffs(
    ref_name: str,
    explicit: ExplicitCutoffs,
    store: PatternConfigStore,
    defaults: GlobalDefaults,
    *,
    stash_ref: str = STASH_REF,
) -> EffectiveCutoffs:
    """Resolve the (total, unreachable) cutoff pair for *ref_name*."""
    total = explicit.expire_total
    unreachable = explicit.expire_unreachable
    keep_total = explicit.has(ExpireAxis.TOTAL)
    keep_unreachable = explicit.has(ExpireAxis.UNREACHABLE)

    if keep_total and keep_unreachable:
        return EffectiveCutoffs(expire_total=total, expire_unreachable=unreachable)

    entry = store.find_first_match(ref_name)
    if entry is not None:
        if not keep_total:
            total = entry.expire_total
        if not keep_unreachable:
            unreachable = entry.expire_unreachable
        return EffectiveCutoffs(expire_total=total, expire_unreachable=unreachable)

    if ref_name == stash_ref:
        logger.debug("%s is exempt from expiry by default", ref_name)
        if not keep_total:
            total = TIME_NEVER
        if not keep_unreachable:
            unreachable = TIME_NEVER
        return EffectiveCutoffs(expire_total=total, expire_unreachable=unreachable)

    if not keep_total:
        total = defaults.expire_total
    if not keep_unreachable:
        unreachable = defaults.expire_unreachable
    return EffectiveCutoffs(expire_total=total, expire_unreachable=unreachable)


def resolve_for(ref_name: str, explicit: ExplicitCutoffs, config: ExpireConfig) -> EffectiveCutoffs:
    """Shorthand for :func:`resolve_cutoffs` with a loaded ExpireConfig."""
    return resolve_cutoffs(
        ref_name,
        explicit,
        config.store,
        config.defaults,
        stash_ref=config.stash_ref,
    )
