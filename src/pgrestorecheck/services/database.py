"""PostgreSQL liveness, restore and drop operations for pgrestorecheck."""

from typing import List, Optional

from pgrestorecheck.errors import CleanupError, RestoreCheckError, RestoreError


class PostgresEngine:
    """Thin wrapper over the PostgreSQL client binaries on the recovery host."""

    MAINTENANCE_DB = "postgres"

    def __init__(self, run_context, command_runner, logger):
        self.run_context = run_context
        self.command_runner = command_runner
        self.logger = logger

    def _psql(self, database: str, sql: str) -> List[str]:
        return [self.run_context.binary("psql"), "-d", database, "-t", "-c", sql]

    @staticmethod
    def quote_identifier(name: str) -> str:
        return '"' + name.replace('"', '""') + '"'

    def is_running(self) -> bool:
        cmd = [self.run_context.binary("pg_ctl"), "status", "-D", self.run_context.pg_data]
        try:
            result = self.command_runner.run(cmd, check=False, capture_output=True)
        except RestoreCheckError as exc:
            self.logger.debug("Liveness probe failed: %s", exc)
            return False
        return result.returncode == 0

    def database_exists(self, database: str) -> bool:
        """True when a connection succeeds, or when absence cannot be proven."""
        try:
            result = self.command_runner.run(
                self._psql(database, "SELECT now()"),
                check=False,
                capture_output=True,
            )
        except RestoreCheckError as exc:
            self.logger.debug("Existence probe failed: %s", exc)
            return True
        return result.returncode == 0

    def restore(self, dump_path: str, jobs: int, timeout: Optional[float] = None) -> str:
        """Restore a directory-format dump into a freshly created database.

        Returns whatever pg_restore wrote to stderr. Raises RestoreError on a
        non-zero exit, a missing binary or a timeout.
        """
        cmd = [
            self.run_context.binary("pg_restore"),
            "-F",
            "d",
            dump_path,
            "-j",
            str(jobs),
            "-C",
            "-d",
            self.MAINTENANCE_DB,
        ]
        try:
            result = self.command_runner.run(cmd, check=False, capture_output=True, timeout=timeout)
        except RestoreCheckError as exc:
            raise RestoreError(str(exc)) from exc

        stderr_output = (result.stderr or "").strip()
        if result.returncode != 0:
            message = f"pg_restore exited with code {result.returncode}"
            if stderr_output:
                message = f"{message}\n{stderr_output}"
            raise RestoreError(message)
        return stderr_output

    def drop_database(self, database: str):
        sql = f"DROP DATABASE {self.quote_identifier(database)};"
        try:
            result = self.command_runner.run(
                self._psql(self.MAINTENANCE_DB, sql),
                check=False,
                capture_output=True,
            )
        except RestoreCheckError as exc:
            raise CleanupError(str(exc)) from exc

        if result.returncode != 0:
            stderr_output = (result.stderr or "").strip()
            raise CleanupError(stderr_output or f"psql exited with code {result.returncode}")
