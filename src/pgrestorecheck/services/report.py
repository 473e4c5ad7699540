"""JSON summary of one restore check run."""

import json
import os
import tempfile
import time
from dataclasses import fields
from datetime import datetime, timezone
from typing import Any, Callable, Dict, List, Optional

from pgrestorecheck.models import DumpArtifact, RunOutcome, Stats, format_duration, format_size


def stats_entry(stats: Stats) -> Dict[str, Any]:
    return {
        "dump_size_bytes": stats.dump_size,
        "dump_size": format_size(stats.dump_size),
        "cluster_size_bytes": stats.cluster_size,
        "cluster_size": format_size(stats.cluster_size),
        "duration_seconds": round(stats.duration_seconds, 3),
        "exec_time": format_duration(stats.duration_seconds),
    }


class ReportService:
    """Collects what a run verified and writes it to `report_file`.

    The report holds the host settings, the selected dump, the elapsed time of
    each pipeline step, the restore stats, the server log findings and the
    outcome with its fields. Without a report file nothing touches the disk.
    """

    def __init__(self, report_file: Optional[str], logger, clock: Callable[[], float] = time.monotonic):
        self.report_file = report_file
        self.logger = logger
        self.clock = clock
        self._step_clock: Dict[str, float] = {}
        self.report: Dict[str, Any] = {
            "status": "running",
            "exit_code": None,
            "started_at": None,
            "finished_at": None,
            "settings": {},
            "dump": None,
            "steps": [],
            "stats": None,
            "server_log_errors": [],
            "outcome": None,
        }

    def start_run(self, metadata: Dict[str, Any]):
        self.report["started_at"] = datetime.now(timezone.utc).isoformat()
        self.report["settings"] = dict(metadata)
        self.write()

    def set_dump(self, dump: DumpArtifact):
        self.report["dump"] = {
            "path": dump.path,
            "name": dump.name,
            "date": dump.date.isoformat() if dump.date else None,
        }
        self.write()

    def step_started(self, step_name: str):
        self._step_clock[step_name] = self.clock()
        self.report["steps"].append({"name": step_name, "status": "running", "seconds": None, "error": None})
        self.write()

    def step_finished(self, step_name: str, status: str, error: Optional[str] = None):
        started = self._step_clock.pop(step_name, None)
        step = self.report["steps"][-1]
        if step["name"] != step_name:
            step = next(item for item in reversed(self.report["steps"]) if item["name"] == step_name)
        step["status"] = status
        step["error"] = error
        if started is not None:
            step["seconds"] = round(self.clock() - started, 3)
        self.write()

    def set_stats(self, stats: Stats):
        self.report["stats"] = stats_entry(stats)
        self.write()

    def set_findings(self, findings: List[str]):
        self.report["server_log_errors"] = list(findings)
        self.write()

    def finalize(self, outcome: RunOutcome):
        detail: Dict[str, Any] = {"type": type(outcome).__name__}
        for field in fields(outcome):
            value = getattr(outcome, field.name)
            if isinstance(value, Stats):
                self.report["stats"] = stats_entry(value)
                continue
            detail[field.name] = list(value) if isinstance(value, tuple) else value

        self.report["status"] = outcome.status
        self.report["exit_code"] = outcome.exit_code
        self.report["finished_at"] = datetime.now(timezone.utc).isoformat()
        self.report["outcome"] = detail
        self.write()

    def write(self):
        if not self.report_file:
            return

        directory = os.path.dirname(self.report_file) or "."
        temp_path = None
        try:
            os.makedirs(directory, exist_ok=True)
            fd, temp_path = tempfile.mkstemp(prefix=".pgrestorecheck-", suffix=".json", dir=directory)
            with os.fdopen(fd, "w", encoding="utf-8") as file_obj:
                json.dump(self.report, file_obj, indent=2, sort_keys=True)
                file_obj.write("\n")
            os.replace(temp_path, self.report_file)
        except OSError as exc:
            self.logger.warning("Could not write run report '%s': %s", self.report_file, exc)
            if temp_path and os.path.exists(temp_path):
                os.remove(temp_path)
