import subprocess

import pytest

from pgrestorecheck.errors import CleanupError, RestoreCheckError, RestoreError
from pgrestorecheck.models import RunContext
from pgrestorecheck.services.database import PostgresEngine


class DummyLogger:
    def debug(self, *_args, **_kwargs):
        return None


class ScriptedRunner:
    """Returns canned results keyed by the binary name of the command."""

    def __init__(self, results):
        self.results = results
        self.commands = []
        self.timeouts = []

    def run(self, cmd, check=True, capture_output=False, timeout=None, input_text=None):
        self.commands.append(cmd)
        self.timeouts.append(timeout)
        outcome = self.results[cmd[0].rsplit("/", 1)[-1]]
        if isinstance(outcome, Exception):
            raise outcome
        returncode, stderr = outcome
        return subprocess.CompletedProcess(cmd, returncode, stdout="", stderr=stderr)


def _context(**overrides) -> RunContext:
    values = dict(
        hostname="test125",
        recovery_host="test125",
        dump_dir="/tmp/backup",
        dump_suffix="_test_db",
        target_database="test_db",
        pg_data="/var/lib/pgsql/9.6/data",
        pg_log_dir="/var/lib/pgsql/9.6/data/pg_log",
        log_dir="/tmp/pg_check_log",
        pg_bin="/usr/pgsql-9.6/bin",
        restore_jobs=4,
    )
    values.update(overrides)
    return RunContext(**values)


def _engine(results, **overrides):
    runner = ScriptedRunner(results)
    return PostgresEngine(_context(**overrides), runner, DummyLogger()), runner


def test_is_running_uses_pg_ctl_status():
    engine, runner = _engine({"pg_ctl": (0, "")})

    assert engine.is_running() is True
    assert runner.commands[0] == [
        "/usr/pgsql-9.6/bin/pg_ctl",
        "status",
        "-D",
        "/var/lib/pgsql/9.6/data",
    ]


def test_is_running_false_when_pg_ctl_missing():
    engine, _ = _engine({"pg_ctl": RestoreCheckError("Required command not found: pg_ctl")})

    assert engine.is_running() is False


def test_database_exists_probes_with_select_now():
    engine, runner = _engine({"psql": (2, 'FATAL:  database "test_db" does not exist')})

    assert engine.database_exists("test_db") is False
    assert runner.commands[0][1:3] == ["-d", "test_db"]
    assert runner.commands[0][-1] == "SELECT now()"


def test_database_exists_when_probe_cannot_run():
    engine, _ = _engine({"psql": RestoreCheckError("Required command not found: psql")})

    assert engine.database_exists("test_db") is True


def test_restore_creates_database_with_configured_jobs():
    engine, runner = _engine({"pg_restore": (0, "pg_restore: warning: errors ignored on restore: 0\n")})

    output = engine.restore("/tmp/backup/20180329_test_db", jobs=4, timeout=600.0)

    assert output == "pg_restore: warning: errors ignored on restore: 0"
    assert runner.commands[0] == [
        "/usr/pgsql-9.6/bin/pg_restore",
        "-F",
        "d",
        "/tmp/backup/20180329_test_db",
        "-j",
        "4",
        "-C",
        "-d",
        "postgres",
    ]
    assert runner.timeouts[0] == 600.0


def test_restore_non_zero_exit_raises_restore_error():
    engine, _ = _engine({"pg_restore": (1, 'pg_restore: error: database "test_db" already exists')})

    with pytest.raises(RestoreError, match="already exists"):
        engine.restore("/tmp/backup/20180329_test_db", jobs=1)


def test_restore_timeout_is_a_restore_error():
    engine, _ = _engine({"pg_restore": RestoreCheckError("Command timed out after 60.0s: pg_restore")})

    with pytest.raises(RestoreError, match="timed out"):
        engine.restore("/tmp/backup/20180329_test_db", jobs=1, timeout=60.0)


def test_drop_database_quotes_identifier():
    engine, runner = _engine({"psql": (0, "")}, pg_bin="")

    engine.drop_database('odd"name')

    assert runner.commands[0][0] == "psql"
    assert runner.commands[0][-1] == 'DROP DATABASE "odd""name";'


def test_drop_database_failure_raises_cleanup_error():
    engine, _ = _engine({"psql": (1, 'ERROR:  database "test_db" is being accessed by other users')})

    with pytest.raises(CleanupError, match="being accessed"):
        engine.drop_database("test_db")
