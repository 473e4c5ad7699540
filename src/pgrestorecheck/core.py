import logging
import time
from typing import Any, Callable, Dict, List, Optional

from rich.console import Console

from .errors import CleanupError, PreconditionError, RestoreCheckError, RestoreError
from .errors_catalog import precondition_error
from .models import (
    Aborted,
    CleanupFailed,
    DumpArtifact,
    RestoredWithWarnings,
    RestoreFailed,
    RunContext,
    RunOutcome,
    Severity,
    Stats,
    Success,
    format_size,
)
from .services.command_runner import CommandRunner
from .services.database import PostgresEngine
from .services.dump_selector import DumpSelector
from .services.environment import EnvironmentValidator
from .services.filesystem import FileSystemService
from .services.log_audit import LogAuditor
from .services.notifier import Notifier
from .services.report import ReportService
from .services.run_log import RunLog

console = Console()
logger = logging.getLogger("pgrestorecheck")


class RestoreCheck:
    """Restores the newest dump on the recovery host, reports, then drops it again."""

    def __init__(
        self,
        run_context: RunContext,
        engine=None,
        command_runner: Optional[CommandRunner] = None,
        clock: Callable[[], float] = time.monotonic,
        smtp_factory=None,
    ):
        self.run_context = run_context
        self.clock = clock
        self.smtp_factory = smtp_factory

        self.command_runner = command_runner or CommandRunner(logger=logger)
        self.engine = engine or PostgresEngine(
            run_context=run_context,
            command_runner=self.command_runner,
            logger=logger,
        )
        self.filesystem_service = FileSystemService(logger=logger)
        self.environment_validator = EnvironmentValidator(
            logger=logger,
            filesystem_service=self.filesystem_service,
        )
        self.dump_selector = DumpSelector(logger=logger)
        self.log_auditor = LogAuditor(logger=logger)

        self.run_log: RunLog
        self.notifier: Notifier
        self.report_service: ReportService
        self.destructive_started = False
        self._reset()

    def _reset(self):
        self.run_log = RunLog(
            log_dir=self.run_context.log_dir,
            prefix=self.run_context.log_prefix,
            logger=logger,
        )
        notifier_kwargs: Dict[str, Any] = {}
        if self.smtp_factory is not None:
            notifier_kwargs["smtp_factory"] = self.smtp_factory
        self.notifier = Notifier(
            run_context=self.run_context,
            command_runner=self.command_runner,
            run_log=self.run_log,
            logger=logger,
            **notifier_kwargs,
        )
        self.report_service = ReportService(report_file=self.run_context.report_file, logger=logger)
        self.destructive_started = False

    def _build_report_metadata(self) -> Dict[str, Any]:
        return {
            "hostname": self.run_context.hostname,
            "recovery_host": self.run_context.recovery_host,
            "target_database": self.run_context.target_database,
            "dump_dir": self.run_context.dump_dir,
            "dump_suffix": self.run_context.dump_suffix,
            "restore_jobs": self.run_context.restore_jobs,
            "audit_scope": self.run_context.audit_scope,
        }

    def _run_step(self, name: str, callback, *args, **kwargs):
        self.report_service.step_started(name)
        try:
            result = callback(*args, **kwargs)
        except BaseException as exc:
            self.report_service.step_finished(name, "failed", error=str(exc) or type(exc).__name__)
            raise
        self.report_service.step_finished(name, "success")
        return result

    def check_engine(self):
        if not self.engine.is_running():
            raise precondition_error("engine_not_running", pg_data=self.run_context.pg_data)

    def check_target_absent(self):
        database = self.run_context.target_database
        if self.engine.database_exists(database):
            raise precondition_error("database_exists", database=database)
        self.run_log.info(f"{database} does not exist, begin recovery")

    def select_dump(self) -> DumpArtifact:
        dump = self.dump_selector.select(self.run_context.dump_dir, self.run_context.dump_suffix)
        self.report_service.set_dump(dump)
        self.run_log.info(f"the most recent dump is {dump.path}")
        return dump

    def measure(self, path: str, label: str) -> Optional[int]:
        try:
            return self.filesystem_service.disk_usage(path)
        except RestoreCheckError as exc:
            self.run_log.warning(f"{label} size is unknown: {exc}")
            return None

    def restore_dump(self, dump: DumpArtifact):
        timeout = None
        if self.run_context.restore_timeout_minutes:
            timeout = self.run_context.restore_timeout_minutes * 60.0

        console.print(f"[blue]Restoring {dump.path}...[/blue]")
        self.destructive_started = True
        try:
            engine_output = self.engine.restore(dump.path, self.run_context.restore_jobs, timeout=timeout)
        except RestoreError as exc:
            self.run_log.append_raw(str(exc))
            message = f"pg_restore of {dump.path} failed. See {self.run_log.path} for more info"
            raise RestoreError(message) from exc

        self.run_log.append_raw(engine_output)

    def audit_logs(self, since: Optional[Dict[str, int]]) -> List[str]:
        findings = self.log_auditor.scan(self.run_context.pg_log_dir, since=since)
        if findings:
            message = "errors was found after recovery\n\n" + "\n".join(findings)
            self.run_log.warning(message)
            self.notifier.notify(message)
        self.report_service.set_findings(findings)
        return findings

    def drop_database(self, restore_stats: Stats):
        database = self.run_context.target_database
        try:
            self.engine.drop_database(database)
        except CleanupError as exc:
            self.run_log.append_raw(str(exc))
            reason = f"dropping of {database} failed. See {self.run_log.path} for more info"
            raise CleanupError(
                f"{reason}. Restore was verified: {restore_stats.summary()}. "
                f"The next run will abort until {database} is dropped.",
                reason=reason,
            ) from exc
        self.run_log.info("database has been dropped")

    def _execute(self) -> RunOutcome:
        context = self.run_context

        self._run_step("validate_paths", self.environment_validator.validate_paths, context)
        self.run_log.info(f"=Start a dump check for the {context.target_database}=")
        self._run_step("check_host", self.environment_validator.check_host, context)
        self._run_step("check_engine", self.check_engine)
        self._run_step("check_target_absent", self.check_target_absent)
        dump = self._run_step("select_dump", self.select_dump)

        dump_size = self.measure(dump.path, "dump")
        self.run_log.info(f"dump size is {format_size(dump_size)}")

        snapshot = None
        if context.audit_scope == "run":
            snapshot = self.log_auditor.snapshot(context.pg_log_dir)

        started_at = self.clock()
        self._run_step("restore", self.restore_dump, dump)
        findings = self._run_step("audit_logs", self.audit_logs, snapshot)
        cluster_size = self._run_step("collect_stats", self.measure, context.pg_data, "cluster")

        restore_stats = Stats(
            dump_size=dump_size,
            duration_seconds=self.clock() - started_at,
            cluster_size=cluster_size,
        )
        self.report_service.set_stats(restore_stats)
        self.run_log.info(f"stats before cleanup: {restore_stats.summary()}")
        self._run_step("drop_database", self.drop_database, restore_stats)

        stats = Stats(
            dump_size=dump_size,
            duration_seconds=self.clock() - started_at,
            cluster_size=cluster_size,
        )
        message = f"pg_restore of {dump.path} has been done: {stats.summary()}"
        if findings:
            message = f"{message}, server_log_errors={len(findings)}"
        self.run_log.info(message)
        self.notifier.notify(message)
        self.run_log.info("=Recovery is done=")

        if findings:
            return RestoredWithWarnings(stats=stats, warnings=tuple(findings))
        return Success(stats=stats)

    def _report_failure(self, severity: Severity, message: str):
        self.run_log.write(severity, message)
        self.notifier.notify(message)

    def run(self) -> RunOutcome:
        self._reset()
        self.report_service.start_run(metadata=self._build_report_metadata())
        outcome: RunOutcome

        try:
            outcome = self._execute()
            console.print(f"[green]{outcome.status}[/green]")
        except PreconditionError as exc:
            self._report_failure(exc.severity, str(exc))
            outcome = Aborted(exc.reason)
        except RestoreError as exc:
            self._report_failure(Severity.ERROR, str(exc))
            outcome = RestoreFailed(exc.reason)
        except CleanupError as exc:
            self._report_failure(Severity.ERROR, str(exc))
            outcome = CleanupFailed(exc.reason)
        except KeyboardInterrupt:
            message = "Operation cancelled by user."
            self._report_failure(Severity.ERROR, message)
            outcome = self._unexpected_outcome(message)
        except Exception as exc:
            logger.exception("Unexpected error")
            message = f"Unexpected error: {exc}"
            self._report_failure(Severity.ERROR, message)
            outcome = self._unexpected_outcome(message)
        finally:
            self.run_log.rotate(self.run_context.log_keep)

        if outcome.exit_code != 0:
            console.print(f"[bold red]{outcome.status}:[/bold red] {outcome.description}")
        self.report_service.finalize(outcome)
        return outcome

    def _unexpected_outcome(self, message: str) -> RunOutcome:
        if self.destructive_started:
            return RestoreFailed(message)
        return Aborted(message)
