"""Submission and report entry points used by the web layer."""
from dataclasses import dataclass

import audit
import config
import export_results
from errors import ConfigurationError, ExecutionError, UnsupportedFormatError
from executor import execute
from log_utils import get_logger
from registry import Registry
from report import fetch_report

logger = get_logger(__name__)

SUBMIT_OK_MESSAGE = "Query executed and logged successfully."

_REPORT_FORMATS = {
    "csv": (export_results.to_csv, config.REPORT_CONTENT_TYPE, config.REPORT_FILENAME),
    "xlsx": (export_results.to_excel, config.REPORT_XLSX_CONTENT_TYPE, config.REPORT_XLSX_FILENAME),
}


@dataclass(frozen=True)
class ReportFile:
    content: bytes
    content_type: str
    filename: str


class QueryGateway:
    def __init__(self, registry: Registry, timeout: float = config.STATEMENT_TIMEOUT_SECONDS):
        self.registry = registry
        self.timeout = timeout

    def targets(self) -> list[str]:
        return self.registry.names()

    def submit(self, request: audit.ExecutionRequest) -> str:
        """
        Run request against its target and audit it.

        Raises ConfigurationError for an unknown target (nothing is executed
        or audited), AuditWriteError if the audit record could not be written,
        and ExecutionError if the statement failed but was audited.
        """
        target = self.registry.lookup(request.target_name)
        if target is None:
            raise ConfigurationError(f"Database configuration not found: {request.target_name!r}")
        outcome = execute(target, request.statement, timeout=self.timeout)
        audit.record(self.registry, request, target.name, outcome)
        if not outcome.succeeded:
            raise ExecutionError(f"Query failed and was logged: {outcome.message}")
        return SUBMIT_OK_MESSAGE

    def report(self, start_date: str, end_date: str, fmt: str = "csv") -> ReportFile:
        if fmt not in _REPORT_FORMATS:
            raise UnsupportedFormatError(f"unsupported report format {fmt!r}")
        serialize, content_type, filename = _REPORT_FORMATS[fmt]
        rows = fetch_report(self.registry, start_date, end_date)
        return ReportFile(serialize(rows), content_type, filename)
