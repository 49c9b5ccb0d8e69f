"""Error taxonomy for the execution and audit paths."""


class GatewayError(Exception):
    """Base class for every error the gateway surfaces to its caller."""


class ConfigurationError(GatewayError):
    """Registry failed to load, or a required target is not configured."""


class TargetConnectionError(GatewayError):
    """A target was unreachable or rejected its credentials."""

    def __init__(self, target_name: str, cause: Exception):
        self.target_name = target_name
        self.cause = cause
        super().__init__(f"could not connect to target '{target_name}': {cause}")


class ExecutionError(GatewayError):
    """The submitted statement itself failed on the target."""


class AuditWriteError(GatewayError):
    """The audit record could not be persisted."""


class ReportError(GatewayError):
    """The audit store could not be read for a report."""


class InvalidDateError(ReportError):
    """A report bound was not a YYYY-MM-DD date."""


class UnsupportedFormatError(ReportError):
    """The requested report format is not one the exporter writes."""
