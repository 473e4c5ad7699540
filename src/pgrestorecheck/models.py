"""Shared domain models for pgrestorecheck."""

import logging
import math
import os
from dataclasses import dataclass
from datetime import date as Date
from datetime import datetime
from enum import Enum
from typing import ClassVar, Optional, Tuple


class Severity(str, Enum):
    INFO = "INFO"
    WARNING = "WARNING"
    ERROR = "ERROR"

    @property
    def level(self) -> int:
        return logging.getLevelName(self.value)


@dataclass(frozen=True)
class LogEntry:
    """One line of the dated run log."""

    timestamp: datetime
    severity: Severity
    message: str

    TIMESTAMP_FORMAT: ClassVar[str] = "%Y.%m.%d_%H:%M:%S"

    def render(self) -> str:
        return f"{self.timestamp.strftime(self.TIMESTAMP_FORMAT)} {self.severity.value}: {self.message}"


@dataclass(frozen=True)
class RunContext:
    """Configuration resolved once per run and shared by every step."""

    hostname: str
    recovery_host: str
    dump_dir: str
    dump_suffix: str
    target_database: str
    pg_data: str
    pg_log_dir: str
    log_dir: str
    restore_jobs: int = 1
    pg_bin: str = ""
    log_prefix: str = "pgdump_check.log_"
    log_keep: int = 7
    send_mail: bool = True
    recipient: Optional[str] = None
    mail_transport: str = "mailx"
    smtp_host: str = "localhost"
    smtp_port: int = 25
    mail_sender: Optional[str] = None
    restore_timeout_minutes: Optional[int] = None
    audit_scope: str = "all"
    report_file: Optional[str] = None

    def binary(self, name: str) -> str:
        """Path of a PostgreSQL client binary, or its bare name to resolve from PATH."""
        if self.pg_bin:
            return os.path.join(self.pg_bin, name)
        return name

    @property
    def required_dirs(self) -> Tuple[str, ...]:
        return (self.pg_data, self.pg_log_dir, self.dump_dir, self.log_dir)


@dataclass(frozen=True)
class DumpArtifact:
    """A directory-format dump named `YYYYMMDD<suffix>`."""

    path: str
    date: Optional[Date] = None

    @property
    def name(self) -> str:
        return os.path.basename(self.path.rstrip(os.sep))

    @classmethod
    def from_path(cls, path: str) -> "DumpArtifact":
        name = os.path.basename(path.rstrip(os.sep))
        try:
            parsed = datetime.strptime(name[:8], "%Y%m%d").date()
        except ValueError:
            parsed = None
        return cls(path=path, date=parsed)


SIZE_UNITS = ("K", "M", "G", "T", "P")


def _round_up(value: float) -> float:
    if value < 10:
        return math.ceil(value * 10) / 10
    return float(math.ceil(value))


def format_size(size: Optional[int]) -> str:
    """Render a byte count the way `du -h` does (`49M`, `6.3G`, `1.0M` for 1023.5K)."""
    if size is None:
        return "unknown"
    if size < 1024:
        return f"{size}B"

    index = 0
    value = size / 1024.0
    while value >= 1024.0 and index < len(SIZE_UNITS) - 1:
        value /= 1024.0
        index += 1

    rounded = _round_up(value)
    if rounded >= 1024 and index < len(SIZE_UNITS) - 1:
        index += 1
        rounded = _round_up(value / 1024.0)

    if rounded < 10:
        return f"{rounded:.1f}{SIZE_UNITS[index]}"
    return f"{int(rounded)}{SIZE_UNITS[index]}"


def format_duration(seconds: float) -> str:
    hours, remainder = divmod(max(0, int(seconds)), 3600)
    minutes, secs = divmod(remainder, 60)
    return f"{hours:02d}:{minutes:02d}:{secs:02d}"


@dataclass(frozen=True)
class Stats:
    dump_size: Optional[int]
    duration_seconds: float
    cluster_size: Optional[int]

    def summary(self) -> str:
        return (
            f"dump_size={format_size(self.dump_size)}, "
            f"exec_time={format_duration(self.duration_seconds)}, "
            f"cluster_size={format_size(self.cluster_size)}"
        )


@dataclass(frozen=True)
class RunOutcome:
    """Terminal result of one restore check run."""

    status: ClassVar[str] = "unknown"
    exit_code: ClassVar[int] = 1

    @property
    def description(self) -> str:
        reason = getattr(self, "reason", None)
        if reason is not None:
            return reason
        return self.status


@dataclass(frozen=True)
class Aborted(RunOutcome):
    reason: str

    status: ClassVar[str] = "aborted"


@dataclass(frozen=True)
class RestoreFailed(RunOutcome):
    reason: str

    status: ClassVar[str] = "restore_failed"


@dataclass(frozen=True)
class RestoredWithWarnings(RunOutcome):
    stats: Stats
    warnings: Tuple[str, ...]

    status: ClassVar[str] = "restored_with_warnings"
    exit_code: ClassVar[int] = 0


@dataclass(frozen=True)
class Success(RunOutcome):
    stats: Stats

    status: ClassVar[str] = "success"
    exit_code: ClassVar[int] = 0


@dataclass(frozen=True)
class CleanupFailed(RunOutcome):
    reason: str

    status: ClassVar[str] = "cleanup_failed"
