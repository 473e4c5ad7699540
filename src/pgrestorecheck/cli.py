import logging
import os
import socket
from typing import Any, Dict, Optional

import click
from rich.logging import RichHandler

from .core import RestoreCheck
from .errors import ConfigError, RestoreCheckError
from .models import RunContext
from .services.config_loader import ConfigLoader
from .services.notifier import Notifier

DEFAULT_CONFIG_NAME = ".pgrestorecheck.yml"
REQUIRED_KEYS = ("recovery_host", "dump_dir", "dump_suffix", "target_database", "pg_data")
AUDIT_SCOPES = ("all", "run")


def _resolve_option(cli_value, config, key, default=None):
    if cli_value is not None:
        return cli_value
    if key in config:
        return config[key]
    return default


def build_run_context(values: Dict[str, Any], hostname: Optional[str] = None) -> RunContext:
    """Turn resolved settings into the immutable per-run context."""
    missing = [key for key in REQUIRED_KEYS if not values.get(key)]
    if missing:
        raise ConfigError(f"Missing required settings: {', '.join(missing)}")

    send_mail = bool(values.get("send_mail", True))
    if send_mail and not values.get("recipient"):
        raise ConfigError("A notification recipient is required when send_mail is enabled.")

    mail_transport = str(values.get("mail_transport") or "mailx")
    if mail_transport not in Notifier.TRANSPORTS:
        raise ConfigError(f"Unsupported mail transport: {mail_transport}")

    audit_scope = str(values.get("audit_scope") or "all")
    if audit_scope not in AUDIT_SCOPES:
        raise ConfigError(f"Unsupported audit scope: {audit_scope}")

    try:
        restore_jobs = int(values.get("restore_jobs") or 1)
        log_keep = int(values.get("log_keep", 7))
        smtp_port = int(values.get("smtp_port") or 25)
        timeout = values.get("restore_timeout_minutes")
        restore_timeout_minutes = int(timeout) if timeout else None
    except (TypeError, ValueError) as exc:
        raise ConfigError(f"Invalid numeric setting: {exc}") from exc

    if restore_jobs < 1:
        raise ConfigError("restore_jobs must be at least 1.")
    if log_keep < 0:
        raise ConfigError("log_keep cannot be negative.")

    pg_data = str(values["pg_data"])
    return RunContext(
        hostname=hostname or socket.gethostname(),
        recovery_host=str(values["recovery_host"]),
        dump_dir=str(values["dump_dir"]),
        dump_suffix=str(values["dump_suffix"]),
        target_database=str(values["target_database"]),
        pg_data=pg_data,
        pg_log_dir=str(values.get("pg_log_dir") or os.path.join(pg_data, "pg_log")),
        log_dir=str(values.get("log_dir") or "/tmp/pg_check_log"),
        restore_jobs=restore_jobs,
        pg_bin=str(values.get("pg_bin") or ""),
        log_prefix=str(values.get("log_prefix") or "pgdump_check.log_"),
        log_keep=log_keep,
        send_mail=send_mail,
        recipient=values.get("recipient"),
        mail_transport=mail_transport,
        smtp_host=str(values.get("smtp_host") or "localhost"),
        smtp_port=smtp_port,
        mail_sender=values.get("mail_sender"),
        restore_timeout_minutes=restore_timeout_minutes,
        audit_scope=audit_scope,
        report_file=values.get("report_file"),
    )


logging.basicConfig(
    level="INFO",
    format="%(message)s",
    datefmt="[%X]",
    handlers=[RichHandler(rich_tracebacks=True, show_level=False, show_path=False)],
)


@click.command()
@click.option(
    "--config",
    required=False,
    type=click.Path(),
    help=f"Path to a YAML configuration file. Defaults to {DEFAULT_CONFIG_NAME} if present.",
)
@click.option("--recovery-host", required=False, help="Host name allowed to restore and drop the database.")
@click.option("--dump-dir", required=False, type=click.Path(), help="Directory holding dump directories.")
@click.option("--dump-suffix", required=False, help="Suffix of dump directory names, e.g. _test_db.")
@click.option("--target-database", required=False, help="Database name created by the restore.")
@click.option("--restore-jobs", required=False, type=int, default=None, help="pg_restore parallel jobs (default: 1).")
@click.option("--pg-bin", required=False, type=click.Path(), help="Directory with pg_ctl, psql and pg_restore.")
@click.option("--pg-data", required=False, type=click.Path(), help="PostgreSQL data directory.")
@click.option(
    "--pg-log-dir",
    required=False,
    type=click.Path(),
    help="PostgreSQL server log directory (default: <pg-data>/pg_log).",
)
@click.option("--log-dir", required=False, type=click.Path(), help="Directory for dated run logs.")
@click.option("--log-prefix", required=False, help="File name prefix of dated run logs.")
@click.option("--log-keep", required=False, type=int, default=None, help="Number of daily run logs to keep.")
@click.option("--send-mail/--no-send-mail", default=None, help="Enable or disable mail notifications.")
@click.option("--recipient", required=False, help="Notification recipient address.")
@click.option(
    "--mail-transport",
    required=False,
    type=click.Choice(Notifier.TRANSPORTS),
    help="How notifications are delivered (default: mailx).",
)
@click.option("--smtp-host", required=False, help="SMTP host for the smtp transport.")
@click.option("--smtp-port", required=False, type=int, default=None, help="SMTP port for the smtp transport.")
@click.option("--mail-sender", required=False, help="From address for the smtp transport.")
@click.option(
    "--restore-timeout-minutes",
    required=False,
    type=int,
    default=None,
    help="Abort pg_restore after this many minutes. No limit by default.",
)
@click.option(
    "--audit-scope",
    required=False,
    type=click.Choice(AUDIT_SCOPES),
    help="Scan the whole server log tree (all) or only lines written during this run (run).",
)
@click.option("--report-file", required=False, type=click.Path(), help="Write a JSON run report to this path.")
@click.option("--verbose", is_flag=True, default=None, help="Enable verbose logging")
@click.option("--log-file", type=click.Path(), help="Path to a diagnostic log file")
def main(config, verbose, log_file, **options):
    """Restore the most recent PostgreSQL dump on the recovery host and report the result."""
    logger = logging.getLogger("pgrestorecheck")

    try:
        config_loader = ConfigLoader()
        resolved_config = config
        if resolved_config is None:
            default_config_path = os.path.join(os.getcwd(), DEFAULT_CONFIG_NAME)
            if os.path.exists(default_config_path):
                resolved_config = default_config_path

        config_values = config_loader.load(resolved_config)
    except RestoreCheckError as exc:
        raise click.ClickException(str(exc)) from exc

    values = {key: _resolve_option(value, config_values, key) for key, value in options.items()}
    verbose = bool(_resolve_option(verbose, config_values, "verbose", default=False))
    log_file = _resolve_option(log_file, config_values, "log_file")

    if verbose:
        logging.getLogger().setLevel(logging.DEBUG)
        logger.setLevel(logging.DEBUG)
    else:
        logger.setLevel(logging.INFO)

    if log_file:
        file_handler = logging.FileHandler(log_file)
        file_handler.setLevel(logging.DEBUG if verbose else logging.INFO)
        file_handler.setFormatter(logging.Formatter("%(asctime)s [%(levelname)s] %(message)s"))
        logger.addHandler(file_handler)

    try:
        run_context = build_run_context({k: v for k, v in values.items() if v is not None})
        check = RestoreCheck(run_context=run_context)
    except RestoreCheckError as exc:
        raise click.ClickException(str(exc)) from exc

    outcome = check.run()
    raise SystemExit(outcome.exit_code)


if __name__ == "__main__":
    main()
