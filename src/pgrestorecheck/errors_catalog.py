"""Actionable error catalog for pgrestorecheck."""

from typing import Dict

from .errors import PreconditionError
from .models import Severity

_ERROR_MESSAGES: Dict[str, Dict[str, str]] = {
    "path_unavailable": {
        "reason": "path missing or unreadable: {path}",
        "what": "The directory {path} does not exist or is not readable.",
        "next": "Create the directory or fix its permissions for the user running the check.",
    },
    "host_mismatch": {
        "reason": "host mismatch",
        "what": "You're trying to restore db on {hostname}. Are you sure that it's the right server?",
        "next": "Run the check on {recovery_host} or fix `recovery_host` in the config.",
    },
    "engine_not_running": {
        "reason": "engine not running",
        "what": "Postgres is not running on the host.",
        "next": "Start the PostgreSQL server for {pg_data} and retry.",
    },
    "database_exists": {
        "reason": "target database already exists",
        "what": "Database {database} exists or this check's been impossible.",
        "next": "Drop {database} by hand once it has been inspected; the next run will retry.",
    },
    "no_dump": {
        "reason": "no dump matches suffix",
        "what": "A dump with the {suffix} suffix does not exist in {dump_dir}.",
        "next": "Check that the backup job produced a `YYYYMMDD{suffix}` directory.",
    },
}

_SEVERITIES: Dict[str, Severity] = {
    "host_mismatch": Severity.WARNING,
}


def actionable_error(code: str, **kwargs: str) -> str:
    if code not in _ERROR_MESSAGES:
        raise KeyError(f"Unknown error catalog key: {code}")

    template = _ERROR_MESSAGES[code]
    what = template["what"].format(**kwargs)
    next_step = template["next"].format(**kwargs)
    return f"{what} Suggested action: {next_step}"


def precondition_error(code: str, **kwargs: str) -> PreconditionError:
    """Build the PreconditionError for a catalog entry."""
    message = actionable_error(code, **kwargs)
    reason = _ERROR_MESSAGES[code]["reason"].format(**kwargs)
    return PreconditionError(
        message,
        reason=reason,
        severity=_SEVERITIES.get(code, Severity.ERROR),
    )
