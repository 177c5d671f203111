"""Reference name rules for Refkeep.

Validation (``check_refname_format``), classification of refs into shared
and worktree-private namespaces, the qualified-name scheme used to address
another worktree's private refs, and short-name expansion.
"""

from __future__ import annotations

import enum
import re
from typing import TYPE_CHECKING

from refkeep.exceptions import InvalidRefNameError
from refkeep.models.worktree import MAIN_WORKTREE_ID

if TYPE_CHECKING:
    from refkeep.models.worktree import WorktreeInfo


MAIN_WORKTREE_PREFIX = "main-worktree/"
WORKTREES_PREFIX = "worktrees/"

# Refs under these prefixes live in each worktree's private store.
_PER_WORKTREE_PREFIXES = ("refs/worktree/", "refs/bisect/", "refs/rewritten/")

_PSEUDOREF = re.compile(r"^[A-Z_-]+$")

# Characters never allowed anywhere in a ref name.
_BAD_CHARS = frozenset(" :?[\\^~\x7f")

# Expansion order for short names, most specific first.
_DWIM_RULES = (
    "{}",
    "refs/{}",
    "refs/tags/{}",
    "refs/heads/{}",
    "refs/remotes/{}",
    "refs/remotes/{}/HEAD",
)


class RefType(str, enum.Enum):
    """Namespace classification of a reference name."""

    PER_WORKTREE = "per_worktree"
    PSEUDOREF = "pseudoref"
    MAIN_PSEUDOREF = "main_pseudoref"
    OTHER_PSEUDOREF = "other_pseudoref"
    NORMAL = "normal"


# ---------------------------------------------------------------------------
# Validation
# ---------------------------------------------------------------------------


def _check_component(name: str, component: str, allow_star: bool) -> bool:
    """Validate one slash-separated component.

    Returns whether a ``*`` was consumed, so the caller can allow at most one.
    """
    if not component:
        raise InvalidRefNameError(name, "empty component (leading, trailing or double slash)")
    if component.startswith("."):
        raise InvalidRefNameError(name, "component cannot start with '.'")
    if component.endswith(".lock"):
        raise InvalidRefNameError(name, "component cannot end with '.lock'")

    used_star = False
    last = ""
    for ch in component:
        if ord(ch) < 0x20 or ch in _BAD_CHARS:
            raise InvalidRefNameError(name, f"forbidden character {ch!r}")
        if ch == "." and last == ".":
            raise InvalidRefNameError(name, "cannot contain '..'")
        if ch == "{" and last == "@":
            raise InvalidRefNameError(name, "cannot contain '@{'")
        if ch == "*":
            if not allow_star or used_star:
                raise InvalidRefNameError(name, "'*' is only allowed once in a refspec pattern")
            used_star = True
        last = ch
    return used_star


def check_refname_format(
    name: str,
    *,
    allow_onelevel: bool = False,
    refspec_pattern: bool = False,
) -> None:
    """Validate *name* against reference naming rules.

    Args:
        name: Full reference name, e.g. ``refs/heads/main``.
        allow_onelevel: Accept names with a single component (``HEAD``).
        refspec_pattern: Accept a single ``*`` wildcard.

    Raises:
        InvalidRefNameError: On the first violated rule.
    """
    if not name:
        raise InvalidRefNameError(name, "name cannot be empty")
    if name == "@":
        raise InvalidRefNameError(name, "name cannot be the single character '@'")
    if name.endswith("."):
        raise InvalidRefNameError(name, "name cannot end with '.'")

    components = name.split("/")
    allow_star = refspec_pattern
    for component in components:
        if _check_component(name, component, allow_star):
            allow_star = False

    if len(components) < 2 and not allow_onelevel:
        raise InvalidRefNameError(name, "name must contain at least one '/'")


def is_valid_refname(name: str, **kwargs: bool) -> bool:
    try:
        check_refname_format(name, **kwargs)
    except InvalidRefNameError:
        return False
    return True


def collapse_slashes(name: str) -> str:
    """Strip leading slashes and squeeze runs of slashes into one."""
    out: list[str] = []
    prev = "/"
    for ch in name:
        if prev == "/" and ch == "/":
            continue
        out.append(ch)
        prev = ch
    return "".join(out)


# ---------------------------------------------------------------------------
# Classification
# ---------------------------------------------------------------------------


def _is_per_worktree_ref(name: str) -> bool:
    return name == "HEAD" or name.startswith(_PER_WORKTREE_PREFIXES)


def _is_other_pseudoref(name: str) -> bool:
    if not name.startswith(WORKTREES_PREFIX):
        return False
    rest = name[len(WORKTREES_PREFIX):]
    worktree_id, sep, ref = rest.partition("/")
    return bool(worktree_id) and bool(sep) and bool(_PSEUDOREF.match(ref))


def ref_type(name: str) -> RefType:
    """Classify *name*.  Everything except NORMAL is private to a worktree."""
    if _is_per_worktree_ref(name):
        return RefType.PER_WORKTREE
    if _PSEUDOREF.match(name):
        return RefType.PSEUDOREF
    if name.startswith(MAIN_WORKTREE_PREFIX) and _PSEUDOREF.match(name[len(MAIN_WORKTREE_PREFIX):]):
        return RefType.MAIN_PSEUDOREF
    if _is_other_pseudoref(name):
        return RefType.OTHER_PSEUDOREF
    return RefType.NORMAL


def is_shared_ref(name: str) -> bool:
    return ref_type(name) is RefType.NORMAL


def store_key(worktree_id: str, ref_name: str) -> str:
    """Storage namespace for *ref_name* seen from *worktree_id*.

    Shared refs live in the common namespace (``""``); private refs live in
    the namespace of their worktree.
    """
    return "" if is_shared_ref(ref_name) else worktree_id


# ---------------------------------------------------------------------------
# Qualified names
# ---------------------------------------------------------------------------


def worktree_ref_name(worktree: WorktreeInfo, ref_name: str) -> str:
    """Name under which *ref_name* of *worktree* is addressed from the current one."""
    if worktree.is_current:
        return ref_name
    if worktree.is_main:
        return MAIN_WORKTREE_PREFIX + ref_name
    return f"{WORKTREES_PREFIX}{worktree.worktree_id}/{ref_name}"


def parse_worktree_ref(name: str) -> tuple[str | None, str]:
    """Split a possibly qualified name into ``(worktree_id, bare_ref)``.

    ``worktree_id`` is None when *name* is not qualified, i.e. it refers to
    the current worktree.
    """
    if name.startswith(MAIN_WORKTREE_PREFIX):
        return MAIN_WORKTREE_ID, name[len(MAIN_WORKTREE_PREFIX):]
    if name.startswith(WORKTREES_PREFIX):
        rest = name[len(WORKTREES_PREFIX):]
        worktree_id, sep, ref = rest.partition("/")
        if worktree_id and sep and ref:
            return worktree_id, ref
    return None, name


def dwim_log_candidates(name: str) -> list[str]:
    """Full ref names a short *name* may stand for, in lookup order."""
    if name == "@":
        name = "HEAD"
    seen: list[str] = []
    for rule in _DWIM_RULES:
        candidate = rule.format(name)
        if candidate not in seen:
            seen.append(candidate)
    return seen
