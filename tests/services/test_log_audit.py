import logging

from pgrestorecheck.services.log_audit import LogAuditor

logger = logging.getLogger("pgrestorecheck.tests")


def test_scan_reports_markers_recursively(tmp_path):
    nested = tmp_path / "2018" / "03"
    nested.mkdir(parents=True)
    (tmp_path / "postgresql-Wed.log").write_text("LOG:  database system is ready\n", encoding="utf-8")
    (nested / "postgresql-Thu.log").write_text(
        "ERROR:  relation \"foo\" does not exist\n"
        "FATAL:  password authentication failed\n"
        "PANIC:  could not write to file\n",
        encoding="utf-8",
    )

    findings = LogAuditor(logger).scan(str(tmp_path))

    assert len(findings) == 3
    assert all(finding.startswith(str(nested / "postgresql-Thu.log") + ":") for finding in findings)


def test_markers_are_case_sensitive_and_autovacuum_is_benign(tmp_path):
    (tmp_path / "pg.log").write_text(
        "error: lowercase is not a marker\n"
        "ERROR:  canceling autovacuum task\n"
        "ERROR:  AUTOVACUUM launcher hiccup\n"
        "ERROR: duplicate key\n",
        encoding="utf-8",
    )

    findings = LogAuditor(logger).scan(str(tmp_path))

    assert findings == [f"{tmp_path / 'pg.log'}:ERROR: duplicate key"]


def test_snapshot_limits_scan_to_new_bytes(tmp_path):
    log_file = tmp_path / "pg.log"
    log_file.write_text("ERROR: old problem\n", encoding="utf-8")
    auditor = LogAuditor(logger)

    snapshot = auditor.snapshot(str(tmp_path))
    with open(log_file, "a", encoding="utf-8") as file_obj:
        file_obj.write("FATAL: new problem\n")
    (tmp_path / "pg2.log").write_text("PANIC: new file\n", encoding="utf-8")

    findings = auditor.scan(str(tmp_path), since=snapshot)

    assert [finding.split(":", 1)[1] for finding in findings] == ["FATAL: new problem", "PANIC: new file"]


def test_truncated_file_is_scanned_from_start(tmp_path):
    log_file = tmp_path / "pg.log"
    log_file.write_text("LOG: a fairly long line that will be truncated away\n", encoding="utf-8")
    auditor = LogAuditor(logger)
    snapshot = auditor.snapshot(str(tmp_path))

    log_file.write_text("ERROR: x\n", encoding="utf-8")

    assert len(auditor.scan(str(tmp_path), since=snapshot)) == 1


def test_undecodable_bytes_do_not_break_scan(tmp_path):
    (tmp_path / "pg.log").write_bytes(b"\xff\xfe ERROR: bad bytes\n")

    findings = LogAuditor(logger).scan(str(tmp_path))

    assert len(findings) == 1
