"""Append-only audit trail of submitted statements."""
from dataclasses import dataclass
from datetime import datetime

from database import DRIVER_ERRORS, connection, placeholder
from errors import AuditWriteError, ConfigurationError, TargetConnectionError
from executor import ExecutionOutcome
from log_utils import get_logger
from registry import Registry

logger = get_logger(__name__)

AUDIT_COLUMNS = (
    "execution_time",
    "query_text",
    "submitted_by",
    "approved_by",
    "target_db",
    "execution_duration",
    "output",
    "status",
)


@dataclass(frozen=True)
class ExecutionRequest:
    statement: str
    submitted_by: str
    approved_by: str
    target_name: str


@dataclass(frozen=True)
class AuditRecord:
    timestamp: datetime
    statement_text: str
    submitted_by: str | None
    approved_by: str | None
    target_name: str
    duration_text: str
    output: str | None
    status: str


def to_db_timestamp(value: datetime, driver: str):
    # SQLite has no timestamp type; ISO text keeps range comparisons ordered
    if driver == "sqlite":
        return value.isoformat(sep=" ")
    return value


def record(registry: Registry, request: ExecutionRequest, target_name: str,
           outcome: ExecutionOutcome) -> AuditRecord:
    """
    Persist one AuditRecord for a submission, whatever the outcome was.
    Raises AuditWriteError if the audit store is missing or the insert fails.
    """
    entry = AuditRecord(
        timestamp=outcome.started_at,
        statement_text=request.statement,
        submitted_by=request.submitted_by,
        approved_by=request.approved_by,
        target_name=target_name,
        duration_text=outcome.duration_text,
        output=outcome.message,
        status=outcome.status,
    )
    try:
        store = registry.audit_target()
    except ConfigurationError as e:
        raise AuditWriteError(f"cannot record audit entry: {e}") from e
    ph = placeholder(store)
    sql = "INSERT INTO submitted_queries ({}) VALUES ({})".format(
        ", ".join(AUDIT_COLUMNS), ", ".join([ph] * len(AUDIT_COLUMNS))
    )
    params = (
        to_db_timestamp(entry.timestamp, store.driver),
        entry.statement_text,
        entry.submitted_by,
        entry.approved_by,
        entry.target_name,
        entry.duration_text,
        entry.output,
        entry.status,
    )
    try:
        with connection(store) as conn:
            cur = conn.cursor()
            try:
                cur.execute(sql, params)
            finally:
                cur.close()
    except (TargetConnectionError, *DRIVER_ERRORS) as e:
        logger.error("Audit write to %s failed for statement on %s: %s", store.name, target_name, e)
        raise AuditWriteError(f"failed to write audit record to {store.name!r}: {e}") from e
    logger.info("Audited %s statement on %s (submitted by %s, approved by %s)",
                entry.status, target_name, entry.submitted_by, entry.approved_by)
    return entry
