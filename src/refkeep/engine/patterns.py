"""PatternConfigStore -- per-pattern retention overrides.

Holds the ``gc.<pattern>.reflogExpire*`` overrides in the order their
patterns were first seen.  Lookup is first-match-wins: the first pattern
(in that order) that glob-matches a ref name is the only one consulted.

Patterns use wildmatch syntax without pathname semantics: ``*`` and ``?``
also match ``/``, bracket expressions accept ``!`` or ``^`` for negation,
ranges and POSIX classes such as ``[[:digit:]]``, and a backslash makes the
next character literal.  A malformed pattern matches nothing.
"""

from __future__ import annotations

import functools
import logging
import re
import string
from collections.abc import Iterator

from refkeep.models.config import ExpireAxis, PatternOverride

logger = logging.getLogger(__name__)

_CHAR_CLASSES: dict[str, str] = {
    "alnum": string.ascii_letters + string.digits,
    "alpha": string.ascii_letters,
    "blank": " \t",
    "cntrl": "".join(map(chr, range(0x20))) + "\x7f",
    "digit": string.digits,
    "graph": string.ascii_letters + string.digits + string.punctuation,
    "lower": string.ascii_lowercase,
    "print": string.ascii_letters + string.digits + string.punctuation + " ",
    "punct": string.punctuation,
    "space": string.whitespace,
    "upper": string.ascii_uppercase,
    "xdigit": string.hexdigits,
}


class _MalformedPattern(Exception):
    pass


def _literal(pattern: str, i: int) -> str:
    """The character at *i*, which must exist (it follows a backslash)."""
    if i >= len(pattern):
        raise _MalformedPattern(pattern)
    return pattern[i]


def _translate_bracket(pattern: str, start: int) -> tuple[str, int]:
    """Translate the bracket expression opening at *start*.

    Returns the regex and the index just past the closing ``]``.  A ``]``
    right after the opening bracket (or its negation) is a member.
    """
    i = start + 1
    negate = i < len(pattern) and pattern[i] in "!^"
    if negate:
        i += 1

    members: list[str] = []
    prev: str | None = None
    first = True
    while True:
        if i >= len(pattern):
            raise _MalformedPattern(pattern)
        ch = pattern[i]
        if ch == "]" and not first:
            i += 1
            break
        first = False

        if ch == "\\":
            i += 1
            prev = _literal(pattern, i)
            members.append(re.escape(prev))
        elif ch == "-" and prev is not None and i + 1 < len(pattern) and pattern[i + 1] != "]":
            i += 1
            high = pattern[i]
            if high == "\\":
                i += 1
                high = _literal(pattern, i)
            if prev <= high:
                members.append(f"{re.escape(prev)}-{re.escape(high)}")
            prev = None
        elif ch == "[" and pattern.startswith(":", i + 1):
            name_start = i + 2
            end = pattern.find("]", name_start)
            if end < 0:
                raise _MalformedPattern(pattern)
            if end == name_start or pattern[end - 1] != ":":
                # No ":]" before the next "]": a plain "[" member.
                members.append(re.escape("["))
                prev = "["
            else:
                chars = _CHAR_CLASSES.get(pattern[name_start:end - 1])
                if chars is None:
                    raise _MalformedPattern(pattern)
                members.extend(re.escape(c) for c in chars)
                prev = None
                i = end
        else:
            members.append(re.escape(ch))
            prev = ch
        i += 1

    return f"[{'^' if negate else ''}{''.join(members)}]", i


def _translate(pattern: str) -> str:
    parts: list[str] = []
    i = 0
    while i < len(pattern):
        ch = pattern[i]
        if ch == "*":
            while i < len(pattern) and pattern[i] == "*":
                i += 1
            parts.append(".*")
            continue
        if ch == "[":
            regex, i = _translate_bracket(pattern, i)
            parts.append(regex)
            continue
        if ch == "?":
            parts.append(".")
        elif ch == "\\":
            i += 1
            parts.append(re.escape(_literal(pattern, i)))
        else:
            parts.append(re.escape(ch))
        i += 1
    return "".join(parts)


@functools.lru_cache(maxsize=256)
def compile_glob(pattern: str) -> re.Pattern[str] | None:
    """Compile a wildmatch pattern.  Returns None for a malformed one."""
    try:
        return re.compile(_translate(pattern), re.DOTALL)
    except _MalformedPattern:
        logger.debug("malformed pattern %r never matches", pattern)
        return None


def glob_match(pattern: str, name: str) -> bool:
    """Whether *name* matches *pattern* as a whole."""
    regex = compile_glob(pattern)
    return regex is not None and regex.fullmatch(name) is not None


class PatternConfigStore:
    """Ordered collection of PatternOverride entries keyed by pattern text.

    Built once while loading configuration and read-only afterwards.
    """

    def __init__(self) -> None:
        self._entries: list[PatternOverride] = []
        self._by_pattern: dict[str, PatternOverride] = {}

    def record_override(self, pattern: str, axis: ExpireAxis, cutoff: int) -> PatternOverride:
        """Set one axis of the entry for *pattern*, creating it on first sight."""
        entry = self._by_pattern.get(pattern)
        if entry is None:
            entry = PatternOverride(pattern=pattern, order=len(self._entries))
            self._entries.append(entry)
            self._by_pattern[pattern] = entry
        entry.set_axis(axis, cutoff)
        return entry

    def find_first_match(self, ref_name: str) -> PatternOverride | None:
        for entry in self._entries:
            if glob_match(entry.pattern, ref_name):
                logger.debug("ref %s matched pattern %s", ref_name, entry.pattern)
                return entry
        return None

    def get(self, pattern: str) -> PatternOverride | None:
        return self._by_pattern.get(pattern)

    def __iter__(self) -> Iterator[PatternOverride]:
        return iter(self._entries)

    def __len__(self) -> int:
        return len(self._entries)

    def __repr__(self) -> str:
        patterns = ", ".join(e.pattern for e in self._entries)
        return f"PatternConfigStore([{patterns}])"
