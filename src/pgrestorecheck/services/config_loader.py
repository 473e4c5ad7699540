"""Configuration loader for pgrestorecheck."""

from pathlib import Path
from typing import Any, Dict, Optional

import yaml

from pgrestorecheck.errors import ConfigError


class ConfigLoader:
    """Loads YAML configuration files for CLI defaults."""

    SUPPORTED_KEYS = {
        "recovery_host",
        "dump_dir",
        "dump_suffix",
        "target_database",
        "restore_jobs",
        "pg_bin",
        "pg_data",
        "pg_log_dir",
        "log_dir",
        "log_prefix",
        "log_keep",
        "send_mail",
        "recipient",
        "mail_transport",
        "smtp_host",
        "smtp_port",
        "mail_sender",
        "restore_timeout_minutes",
        "audit_scope",
        "report_file",
        "verbose",
        "log_file",
    }

    def load(self, config_path: Optional[str]) -> Dict[str, Any]:
        if not config_path:
            return {}

        path = Path(config_path).expanduser()
        if not path.is_file():
            raise ConfigError(f"Config file not found: {config_path}")

        settings = self._parse(path)
        unknown = sorted(str(key) for key in settings if key not in self.SUPPORTED_KEYS)
        if unknown:
            raise ConfigError(f"Unknown configuration keys in {path}: {', '.join(unknown)}")
        return settings

    @staticmethod
    def _parse(path: Path) -> Dict[str, Any]:
        try:
            with path.open(encoding="utf-8") as stream:
                document = yaml.safe_load(stream)
        except yaml.YAMLError as exc:
            raise ConfigError(f"Invalid YAML in {path}: {exc}") from exc
        except OSError as exc:
            raise ConfigError(f"Cannot read config file {path}: {exc}") from exc

        if document is None:
            return {}
        if not isinstance(document, dict):
            raise ConfigError(f"{path} must contain a YAML mapping at the root.")
        return document
