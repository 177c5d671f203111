"""Loading retention configuration from raw config entries.

Recognized keys (section and key names are case-insensitive, the pattern
is matched verbatim)::

    gc.reflogExpire                          global total cutoff
    gc.reflogExpireUnreachable               global unreachable cutoff
    gc.<pattern>.reflogExpire                per-pattern total cutoff
    gc.<pattern>.reflogExpireUnreachable     per-pattern unreachable cutoff

Every other key is ignored.
"""

from __future__ import annotations

import logging
from collections.abc import Iterable
from dataclasses import dataclass

from refkeep.engine.dates import parse_expiry_date
from refkeep.engine.patterns import PatternConfigStore
from refkeep.exceptions import ConfigError, InvalidExpiryDateError
from refkeep.models.config import (
    DEFAULT_EXPIRE_DAYS,
    DEFAULT_EXPIRE_UNREACHABLE_DAYS,
    STASH_REF,
    ExpireAxis,
    GlobalDefaults,
)

logger = logging.getLogger(__name__)

_SECTION = "gc"
_AXIS_KEYS: dict[str, ExpireAxis] = {
    "reflogexpire": ExpireAxis.TOTAL,
    "reflogexpireunreachable": ExpireAxis.UNREACHABLE,
}


@dataclass
class ExpireConfig:
    """Everything loaded from configuration for one run.

    ``now`` is the single reference time every relative date of the run was
    computed against.
    """

    store: PatternConfigStore
    defaults: GlobalDefaults
    now: int
    stash_ref: str = STASH_REF


def parse_config_key(key: str) -> tuple[str, str | None, str] | None:
    """Split ``section[.subsection].name``.

    Section and name are lower-cased; the subsection is returned verbatim
    and may itself contain dots.  Returns None for keys without a dot.
    """
    first = key.find(".")
    last = key.rfind(".")
    if first <= 0 or last == len(key) - 1:
        return None
    section = key[:first].lower()
    name = key[last + 1:].lower()
    subsection = key[first + 1:last] if last > first else None
    return section, subsection, name


def load_expire_config(
    entries: Iterable[tuple[str, str | None]],
    now: int,
    *,
    expire_days: int = DEFAULT_EXPIRE_DAYS,
    expire_unreachable_days: int = DEFAULT_EXPIRE_UNREACHABLE_DAYS,
    stash_ref: str = STASH_REF,
) -> ExpireConfig:
    """Build the pattern store and global defaults from config entries.

    Entries are applied in order, so a later line for the same key wins.

    Raises:
        ConfigError: If a recognized key has no value or an unparsable date.
    """
    store = PatternConfigStore()
    defaults = GlobalDefaults.from_now(
        now,
        expire_days=expire_days,
        expire_unreachable_days=expire_unreachable_days,
    )

    for key, value in entries:
        parsed = parse_config_key(key)
        if parsed is None:
            continue
        section, pattern, name = parsed
        if section != _SECTION or name not in _AXIS_KEYS:
            continue
        axis = _AXIS_KEYS[name]

        if value is None:
            raise ConfigError(f"missing value for '{key}'")
        try:
            cutoff = parse_expiry_date(value, now)
        except InvalidExpiryDateError as exc:
            raise InvalidExpiryDateError(value, key=key) from exc

        if pattern is None:
            defaults.set_axis(axis, cutoff)
            logger.debug("default %s cutoff set to %d by %s", axis.name, cutoff, key)
        else:
            store.record_override(pattern, axis, cutoff)
            logger.debug("pattern %s %s cutoff set to %d", pattern, axis.name, cutoff)

    return ExpireConfig(store=store, defaults=defaults, now=now, stash_ref=stash_ref)
