"""Exception hierarchy."""

from __future__ import annotations


class ClipGuardError(Exception):
    """Base class for all clipguard errors."""


class InvalidPattern(ClipGuardError):
    """A user-supplied regular expression failed to compile."""

    def __init__(self, pattern: str, reason: str) -> None:
        super().__init__(f"invalid pattern {pattern!r}: {reason}")
        self.pattern = pattern
        self.reason = reason


class ConfigError(ClipGuardError, ValueError):
    """A rule set supplied by an administrator has the wrong shape."""


class PersistenceError(ClipGuardError):
    """Durable storage could not be read or written."""


# Store-level failures.  The config manager turns these into
# PersistenceError (or a default rule set) before callers see them.

class StoreError(ClipGuardError):
    pass


class NotFound(StoreError):
    pass


class CorruptData(StoreError):
    pass


class StoreReadError(StoreError):
    pass


class StoreWriteError(StoreError):
    pass


# Text source / audit sink

class ReadError(ClipGuardError):
    pass


class WriteError(ClipGuardError):
    pass


class AuditSinkError(ClipGuardError):
    pass
