"""Pre-flight checks run before the database is touched."""

from pgrestorecheck.errors_catalog import precondition_error


class EnvironmentValidator:
    """Validates required directories and the recovery host identity."""

    def __init__(self, logger, filesystem_service):
        self.logger = logger
        self.filesystem_service = filesystem_service

    def validate_paths(self, run_context):
        for path in run_context.required_dirs:
            if not self.filesystem_service.is_readable_dir(path):
                raise precondition_error("path_unavailable", path=path)
            self.logger.debug("Directory is readable: %s", path)

    def check_host(self, run_context):
        """Only the designated recovery host may run restore and drop."""
        if run_context.hostname != run_context.recovery_host:
            raise precondition_error(
                "host_mismatch",
                hostname=run_context.hostname,
                recovery_host=run_context.recovery_host,
            )
