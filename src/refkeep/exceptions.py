"""Refkeep exception hierarchy.

All Refkeep-specific exceptions inherit from RefkeepError.

Fatal errors (ConfigError, InvalidRefNameError, UsageError) are raised
before any reflog is touched.  ReflogError and its subclasses describe a
failure for a single reflog; the expiration runner records them per target
and carries on with the rest of the batch.
"""


class RefkeepError(Exception):
    """Base exception for all Refkeep errors."""


class ConfigError(RefkeepError):
    """Raised when retention configuration cannot be loaded."""


class InvalidExpiryDateError(ConfigError):
    """Raised when an expiry date expression cannot be parsed."""

    def __init__(self, value: str, key: str | None = None) -> None:
        self.value = value
        self.key = key
        if key is not None:
            msg = f"Invalid expiry date for '{key}': '{value}'"
        else:
            msg = f"'{value}' is not a valid timestamp"
        super().__init__(msg)


class InvalidRefNameError(RefkeepError):
    """Raised when a reference name violates naming rules."""

    def __init__(self, name: str, reason: str) -> None:
        self.name = name
        self.reason = reason
        super().__init__(f"invalid ref format: {name} ({reason})")


class UsageError(RefkeepError):
    """Raised when a command is invoked with invalid arguments."""


class WorktreeNotFoundError(RefkeepError):
    """Raised when a worktree lookup fails."""

    def __init__(self, worktree_id: str) -> None:
        self.worktree_id = worktree_id
        super().__init__(f"Worktree not found: {worktree_id}")


class ReflogError(RefkeepError):
    """Base exception for failures affecting a single reflog."""


class ReflogNotFoundError(ReflogError):
    """Raised when a reference has no reflog."""

    def __init__(self, ref_name: str) -> None:
        self.ref_name = ref_name
        super().__init__(f"no reflog for '{ref_name}'")


class NotAReflogError(ReflogError):
    """Raised when a delete spec lacks an ``@{...}`` selector."""

    def __init__(self, spec: str) -> None:
        self.spec = spec
        super().__init__(f"not a reflog: {spec}")


class RefNotFoundError(ReflogError):
    """Raised when a user-supplied name resolves to no reflog."""

    def __init__(self, name: str) -> None:
        self.name = name
        super().__init__(f"{name} points nowhere!")


class SchemaVersionError(RefkeepError):
    """Raised when a database was written by an incompatible schema version."""

    def __init__(self, found: str, expected: str) -> None:
        self.found = found
        self.expected = expected
        super().__init__(f"unsupported database schema version {found} (expected {expected})")
