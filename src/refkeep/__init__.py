"""Refkeep: retention policies for reference logs.

Bounds the size of reflogs by pruning entries older than a configurable
horizon, while protecting entries still reachable from current history.
"""

from refkeep._version import __version__

# Core entry point
from refkeep.repository import Repository

# Configuration
from refkeep.models.config import (
    TIME_MAX,
    TIME_NEVER,
    EffectiveCutoffs,
    ExpireAxis,
    ExplicitCutoffs,
    GlobalDefaults,
    PatternOverride,
    RefkeepConfig,
)

# Reflog models
from refkeep.models.reflog import (
    NULL_ID,
    EntryDecision,
    ExpireFlags,
    ExpireReport,
    ReflogEntry,
    ReflogTarget,
    RunResult,
    TargetOutcome,
    Verdict,
)
from refkeep.models.worktree import WorktreeInfo

# Engine
from refkeep.engine.collector import collect_reflogs
from refkeep.engine.config import ExpireConfig, load_expire_config
from refkeep.engine.dates import parse_expiry_date
from refkeep.engine.patterns import PatternConfigStore
from refkeep.engine.policy import ExpirePolicy, RetentionPolicy, SelectorPolicy
from refkeep.engine.reachability import ReachabilityMarks, mark_reachable
from refkeep.engine.resolver import resolve_cutoffs
from refkeep.engine.runner import ExpirationRunner

# Exceptions
from refkeep.exceptions import (
    ConfigError,
    InvalidExpiryDateError,
    InvalidRefNameError,
    NotAReflogError,
    RefkeepError,
    RefNotFoundError,
    ReflogError,
    ReflogNotFoundError,
    SchemaVersionError,
    UsageError,
    WorktreeNotFoundError,
)

__all__ = [
    "__version__",
    # Core
    "Repository",
    # Configuration
    "TIME_MAX",
    "TIME_NEVER",
    "EffectiveCutoffs",
    "ExpireAxis",
    "ExplicitCutoffs",
    "GlobalDefaults",
    "PatternOverride",
    "RefkeepConfig",
    # Reflog models
    "NULL_ID",
    "EntryDecision",
    "ExpireFlags",
    "ExpireReport",
    "ReflogEntry",
    "ReflogTarget",
    "RunResult",
    "TargetOutcome",
    "Verdict",
    "WorktreeInfo",
    # Engine
    "collect_reflogs",
    "ExpireConfig",
    "load_expire_config",
    "parse_expiry_date",
    "PatternConfigStore",
    "ExpirePolicy",
    "RetentionPolicy",
    "SelectorPolicy",
    "ReachabilityMarks",
    "mark_reachable",
    "resolve_cutoffs",
    "ExpirationRunner",
    # Exceptions
    "ConfigError",
    "InvalidExpiryDateError",
    "InvalidRefNameError",
    "NotAReflogError",
    "RefkeepError",
    "RefNotFoundError",
    "ReflogError",
    "ReflogNotFoundError",
    "SchemaVersionError",
    "UsageError",
    "WorktreeNotFoundError",
]
