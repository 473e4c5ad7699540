"""Post-restore inspection of the PostgreSQL server log."""

import os
import re
from typing import Dict, List, Optional

MARKER_PATTERN = re.compile(r"ERROR|FATAL|PANIC")
BENIGN_PATTERN = re.compile(r"autovacuum", re.IGNORECASE)


class LogAuditor:
    """Finds server-reported errors in the engine log tree.

    Lines containing ERROR, FATAL or PANIC (case-sensitive) are reported
    unless they mention autovacuum in any case. With a snapshot taken before
    the restore, only bytes appended after the snapshot are scanned.
    """

    def __init__(self, logger):
        self.logger = logger

    def log_files(self, log_dir: str) -> List[str]:
        files = []
        for current_root, dirs, names in os.walk(log_dir):
            dirs.sort()
            for name in sorted(names):
                files.append(os.path.join(current_root, name))
        return files

    def snapshot(self, log_dir: str) -> Dict[str, int]:
        offsets = {}
        for path in self.log_files(log_dir):
            try:
                offsets[path] = os.path.getsize(path)
            except OSError:
                continue
        return offsets

    def scan(self, log_dir: str, since: Optional[Dict[str, int]] = None) -> List[str]:
        findings: List[str] = []
        for path in self.log_files(log_dir):
            offset = 0
            if since is not None:
                offset = since.get(path, 0)
                try:
                    if os.path.getsize(path) < offset:
                        # truncated or rotated in place
                        offset = 0
                except OSError:
                    continue

            try:
                with open(path, "rb") as file_obj:
                    file_obj.seek(offset)
                    for raw_line in file_obj:
                        line = raw_line.decode("utf-8", errors="replace")
                        if self.is_finding(line):
                            findings.append(f"{path}:{line.rstrip()}")
            except OSError as exc:
                self.logger.warning("Could not read engine log %s: %s", path, exc)

        return findings

    @staticmethod
    def is_finding(line: str) -> bool:
        return bool(MARKER_PATTERN.search(line)) and not BENIGN_PATTERN.search(line)
