"""Expiry date expressions.

Turns the values accepted by ``--expire``, ``--expire-unreachable`` and the
``gc.*reflogExpire*`` keys into cutoff timestamps (seconds since the epoch):

- ``never`` / ``false``: 0, nothing is ever older than the cutoff
- ``all`` / ``now``: TIME_MAX, every entry is older than the cutoff
- relative: ``90.days.ago``, ``2 weeks ago``, ``1.year.6.months.ago``
- ``yesterday``, ``@<epoch>``, a bare epoch, or an absolute date
"""

from __future__ import annotations

import re

import arrow
from arrow.parser import ParserError

from refkeep.exceptions import InvalidExpiryDateError
from refkeep.models.config import TIME_MAX, TIME_NEVER

_UNITS: dict[str, str] = {
    "s": "seconds",
    "sec": "seconds",
    "second": "seconds",
    "min": "minutes",
    "minute": "minutes",
    "h": "hours",
    "hour": "hours",
    "d": "days",
    "day": "days",
    "w": "weeks",
    "week": "weeks",
    "month": "months",
    "y": "years",
    "year": "years",
}

_TOKEN_SPLIT = re.compile(r"[\s.,]+")

# Bare numbers at least this large are taken as epoch seconds.
_MIN_EPOCH_LITERAL = 100_000_000


def _unit(token: str) -> str | None:
    unit = _UNITS.get(token)
    if unit is None and token.endswith("s"):
        unit = _UNITS.get(token[:-1])
    return unit


def _parse_relative(text: str, now: arrow.Arrow) -> arrow.Arrow | None:
    tokens = [t for t in _TOKEN_SPLIT.split(text) if t]
    if tokens and tokens[-1] == "ago":
        tokens = tokens[:-1]
    if not tokens or len(tokens) % 2:
        return None

    shift: dict[str, int] = {}
    for count, unit_token in zip(tokens[::2], tokens[1::2]):
        if not count.isdigit():
            return None
        unit = _unit(unit_token)
        if unit is None:
            return None
        shift[unit] = shift.get(unit, 0) - int(count)
    return now.shift(**shift)


def parse_expiry_date(value: str, now: int) -> int:
    """Parse an expiry date expression relative to *now*.

    Args:
        value: The expression, e.g. ``"30.days.ago"`` or ``"never"``.
        now: Reference time in epoch seconds, captured once per run.

    Returns:
        Cutoff timestamp in epoch seconds.

    Raises:
        InvalidExpiryDateError: If *value* is not a recognized expression.
    """
    text = value.strip().lower()
    if not text:
        raise InvalidExpiryDateError(value)

    if text in ("never", "false"):
        return TIME_NEVER
    if text in ("all", "now"):
        return TIME_MAX

    reference = arrow.get(now)
    if text == "yesterday":
        return reference.shift(days=-1).int_timestamp
    if text.startswith("@") and text[1:].isdigit():
        return int(text[1:])
    if text.isdigit():
        if int(text) >= _MIN_EPOCH_LITERAL:
            return int(text)
        raise InvalidExpiryDateError(value)

    relative = _parse_relative(text, reference)
    if relative is not None:
        return relative.int_timestamp

    try:
        return arrow.get(value.strip()).int_timestamp
    except (ParserError, ValueError, TypeError) as exc:
        raise InvalidExpiryDateError(value) from exc
