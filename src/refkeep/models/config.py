"""Configuration models for Refkeep.

RefkeepConfig holds per-repository settings.
PatternOverride, GlobalDefaults and EffectiveCutoffs describe the retention
policy: configured per-pattern overrides, the unqualified defaults, and the
cutoff pair resolved for one reference.
"""

from __future__ import annotations

import enum
from dataclasses import dataclass
from typing import Optional

from pydantic import BaseModel

SECONDS_PER_DAY = 24 * 3600

# Cutoff sentinels.  An entry is pruned when its timestamp is *older* than
# the cutoff, so 0 keeps everything and TIME_MAX prunes everything.
TIME_NEVER = 0
TIME_MAX = 2**63 - 1

DEFAULT_EXPIRE_DAYS = 90
DEFAULT_EXPIRE_UNREACHABLE_DAYS = 30
STASH_REF = "refs/stash"


class ExpireAxis(enum.Flag):
    """The two cutoff axes.  Combined with ``|`` to form an explicit mask."""

    NONE = 0
    TOTAL = enum.auto()
    UNREACHABLE = enum.auto()
    BOTH = TOTAL | UNREACHABLE


class RefkeepConfig(BaseModel):
    """Per-repository configuration."""

    db_path: str = ":memory:"
    db_url: Optional[str] = None
    stash_ref: str = STASH_REF
    default_expire_days: int = DEFAULT_EXPIRE_DAYS
    default_expire_unreachable_days: int = DEFAULT_EXPIRE_UNREACHABLE_DAYS


@dataclass
class PatternOverride:
    """Retention override for references matching a glob pattern.

    Axis values stay at 0 until a config line sets them.  ``order`` is the
    position at which the pattern was first seen.
    """

    pattern: str
    expire_total: int = 0
    expire_unreachable: int = 0
    order: int = 0

    def set_axis(self, axis: ExpireAxis, cutoff: int) -> None:
        if axis is ExpireAxis.TOTAL:
            self.expire_total = cutoff
        elif axis is ExpireAxis.UNREACHABLE:
            self.expire_unreachable = cutoff
        else:
            raise ValueError(f"Expected a single axis, got {axis!r}")


@dataclass
class GlobalDefaults:
    """Cutoffs used when neither an explicit value nor a pattern applies."""

    expire_total: int
    expire_unreachable: int

    @classmethod
    def from_now(
        cls,
        now: int,
        *,
        expire_days: int = DEFAULT_EXPIRE_DAYS,
        expire_unreachable_days: int = DEFAULT_EXPIRE_UNREACHABLE_DAYS,
    ) -> GlobalDefaults:
        """Fallback defaults relative to *now*: 90 and 30 days ago."""
        return cls(
            expire_total=now - expire_days * SECONDS_PER_DAY,
            expire_unreachable=now - expire_unreachable_days * SECONDS_PER_DAY,
        )

    def set_axis(self, axis: ExpireAxis, cutoff: int) -> None:
        if axis is ExpireAxis.TOTAL:
            self.expire_total = cutoff
        elif axis is ExpireAxis.UNREACHABLE:
            self.expire_unreachable = cutoff
        else:
            raise ValueError(f"Expected a single axis, got {axis!r}")


@dataclass(frozen=True)
class ExplicitCutoffs:
    """Run-level cutoffs given on the command line.

    ``mask`` records which axes were given explicitly; the value of an axis
    that is not in the mask is ignored by the resolver.
    """

    mask: ExpireAxis = ExpireAxis.NONE
    expire_total: int = 0
    expire_unreachable: int = 0

    @classmethod
    def from_values(
        cls,
        expire_total: int | None = None,
        expire_unreachable: int | None = None,
    ) -> ExplicitCutoffs:
        mask = ExpireAxis.NONE
        if expire_total is not None:
            mask |= ExpireAxis.TOTAL
        if expire_unreachable is not None:
            mask |= ExpireAxis.UNREACHABLE
        return cls(
            mask=mask,
            expire_total=expire_total if expire_total is not None else 0,
            expire_unreachable=expire_unreachable if expire_unreachable is not None else 0,
        )

    def has(self, axis: ExpireAxis) -> bool:
        return axis in self.mask


@dataclass(frozen=True)
class EffectiveCutoffs:
    """The resolved retention policy for one reference."""

    expire_total: int
    expire_unreachable: int
