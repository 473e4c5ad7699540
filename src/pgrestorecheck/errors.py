"""Domain errors for pgrestorecheck."""

from typing import Optional

from .models import Severity


class RestoreCheckError(RuntimeError):
    """Raised when the restore check cannot continue safely."""

    def __init__(self, message: str, reason: Optional[str] = None):
        super().__init__(message)
        self.reason = reason or message


class ConfigError(RestoreCheckError):
    """Raised when the run configuration is incomplete or invalid."""


class PreconditionError(RestoreCheckError):
    """A safety gate failed before any destructive action was taken."""

    def __init__(
        self,
        message: str,
        reason: Optional[str] = None,
        severity: Severity = Severity.ERROR,
    ):
        super().__init__(message, reason=reason)
        self.severity = severity


class RestoreError(RestoreCheckError):
    """pg_restore did not complete; the target database is left for inspection."""


class CleanupError(RestoreCheckError):
    """The recovered database could not be dropped."""


class MeasurementError(RestoreCheckError):
    """A size measurement failed. Never fatal."""
