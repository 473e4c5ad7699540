"""Dated, append-only run log with count-based retention."""

import os
from datetime import datetime
from typing import Callable, List, Optional

from pgrestorecheck.models import LogEntry, Severity


class RunLog:
    """One file per calendar day, named `<prefix>YYYYMMDD` inside `log_dir`.

    Entries are mirrored to the Python logger so they also reach the console.
    """

    def __init__(
        self,
        log_dir: str,
        prefix: str,
        logger,
        clock: Optional[Callable[[], datetime]] = None,
    ):
        self.log_dir = log_dir
        self.prefix = prefix
        self.logger = logger
        self.clock = clock or datetime.now
        self.entries: List[LogEntry] = []
        # a run that crosses midnight stays in the file it started in
        self.path = os.path.join(log_dir, f"{prefix}{self.clock().strftime('%Y%m%d')}")

    def write(self, severity: Severity, message: str) -> LogEntry:
        entry = LogEntry(timestamp=self.clock(), severity=severity, message=message)
        self.entries.append(entry)
        self.logger.log(severity.level, message)
        self._append(entry.render() + "\n")
        return entry

    def info(self, message: str) -> LogEntry:
        return self.write(Severity.INFO, message)

    def warning(self, message: str) -> LogEntry:
        return self.write(Severity.WARNING, message)

    def error(self, message: str) -> LogEntry:
        return self.write(Severity.ERROR, message)

    def append_raw(self, text: str):
        """Append external tool output verbatim, as a shell `2>>` redirect would."""
        if not text:
            return
        self._append(text if text.endswith("\n") else text + "\n")

    def _append(self, text: str):
        try:
            with open(self.path, "a", encoding="utf-8") as file_obj:
                file_obj.write(text)
        except OSError as exc:
            self.logger.warning("Could not write run log %s: %s", self.path, exc)

    def rotate(self, keep: int) -> List[str]:
        """Remove all but the `keep` newest daily files. Never raises."""
        removed: List[str] = []
        try:
            names = sorted(name for name in os.listdir(self.log_dir) if name.startswith(self.prefix))
        except OSError as exc:
            self.warning(f"log rotation skipped: {exc}")
            return removed

        stale = names[: max(0, len(names) - max(0, keep))]
        for name in stale:
            path = os.path.join(self.log_dir, name)
            try:
                os.remove(path)
                removed.append(path)
            except OSError as exc:
                self.warning(f"could not remove old log {path}: {exc}")

        if removed:
            self.logger.debug("Rotated %s old run log(s)", len(removed))
        return removed
