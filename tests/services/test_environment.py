import logging

import pytest

from pgrestorecheck.errors import PreconditionError
from pgrestorecheck.models import RunContext, Severity
from pgrestorecheck.services.environment import EnvironmentValidator
from pgrestorecheck.services.filesystem import FileSystemService

logger = logging.getLogger("pgrestorecheck.tests")


def _context(tmp_path, **overrides):
    for name in ("data", "pg_log", "backup", "logs"):
        (tmp_path / name).mkdir(exist_ok=True)
    values = dict(
        hostname="test125",
        recovery_host="test125",
        dump_dir=str(tmp_path / "backup"),
        dump_suffix="_test_db",
        target_database="test_db",
        pg_data=str(tmp_path / "data"),
        pg_log_dir=str(tmp_path / "pg_log"),
        log_dir=str(tmp_path / "logs"),
    )
    values.update(overrides)
    return RunContext(**values)


def _validator():
    return EnvironmentValidator(logger, FileSystemService(logger))


def test_all_required_directories_pass(tmp_path):
    _validator().validate_paths(_context(tmp_path))


@pytest.mark.parametrize("field", ["pg_data", "pg_log_dir", "dump_dir", "log_dir"])
def test_each_required_directory_is_checked(tmp_path, field):
    missing = str(tmp_path / f"missing_{field}")

    with pytest.raises(PreconditionError) as excinfo:
        _validator().validate_paths(_context(tmp_path, **{field: missing}))

    assert excinfo.value.reason == f"path missing or unreadable: {missing}"
    assert excinfo.value.severity is Severity.ERROR


def test_host_guard_accepts_exact_match(tmp_path):
    _validator().check_host(_context(tmp_path))


def test_host_guard_rejects_mismatch_as_warning(tmp_path):
    with pytest.raises(PreconditionError) as excinfo:
        _validator().check_host(_context(tmp_path, hostname="prod-db01"))

    assert excinfo.value.reason == "host mismatch"
    assert excinfo.value.severity is Severity.WARNING
