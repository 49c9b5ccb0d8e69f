"""Read audited executions back out of the audit store for reporting."""
from dataclasses import dataclass, astuple
from datetime import date, datetime, timedelta

import config
from audit import to_db_timestamp
from database import DRIVER_ERRORS, connection, placeholder
from errors import ConfigurationError, InvalidDateError, ReportError, TargetConnectionError
from log_utils import get_logger
from registry import Registry

logger = get_logger(__name__)


@dataclass(frozen=True)
class ReportRow:
    """One audited execution as displayed; field order matches config.REPORT_COLUMNS."""

    date: str
    query_text: str
    submitted_by: str
    approved_by: str
    target_db: str
    execution_time: str
    duration: str
    output: str
    status: str

    def as_list(self) -> list[str]:
        return list(astuple(self))


def parse_report_date(value: str) -> date:
    try:
        return datetime.strptime((value or "").strip(), config.REPORT_DATE_FORMAT).date()
    except ValueError:
        raise InvalidDateError(f"invalid date {value!r}, expected YYYY-MM-DD") from None


def report_bounds(start_date: str, end_date: str) -> tuple[datetime, datetime]:
    """Half-open [start, end + 1 day) range covering the whole end day."""
    start = parse_report_date(start_date)
    end = parse_report_date(end_date)
    lower = datetime.combine(start, datetime.min.time())
    upper = datetime.combine(end + timedelta(days=1), datetime.min.time())
    return lower, upper


def _display(value) -> str:
    if value is None:
        return config.PLACEHOLDER
    if isinstance(value, datetime):
        return value.isoformat(sep=" ")
    return str(value)


def _row_from_db(row) -> ReportRow:
    executed_at, query_text, submitted_by, approved_by, target_db, duration, output, status = row
    executed_text = _display(executed_at)
    return ReportRow(
        date=executed_text[:10],
        query_text=query_text,
        submitted_by=_display(submitted_by),
        approved_by=_display(approved_by),
        target_db=target_db,
        execution_time=executed_text,
        duration=_display(duration),
        output=_display(output),
        status=status,
    )


def fetch_report(registry: Registry, start_date: str, end_date: str) -> list[ReportRow]:
    """
    Return audited executions whose timestamp falls on start_date through
    end_date inclusive, oldest first. Raises ReportError if the audit store
    cannot be read or a date is malformed.
    """
    lower, upper = report_bounds(start_date, end_date)
    try:
        store = registry.audit_target()
    except ConfigurationError as e:
        raise ReportError(f"cannot read audit store: {e}") from e
    ph = placeholder(store)
    sql = f"""
        SELECT execution_time, query_text, submitted_by, approved_by, target_db,
               execution_duration, output, status
        FROM submitted_queries
        WHERE execution_time >= {ph} AND execution_time < {ph}
        ORDER BY execution_time ASC
    """
    params = (to_db_timestamp(lower, store.driver), to_db_timestamp(upper, store.driver))
    try:
        with connection(store) as conn:
            cur = conn.cursor()
            try:
                cur.execute(sql, params)
                rows = [_row_from_db(r) for r in cur.fetchall()]
            finally:
                cur.close()
    except (TargetConnectionError, *DRIVER_ERRORS) as e:
        logger.error("Report read from %s failed: %s", store.name, e)
        raise ReportError(f"failed to fetch report data: {e}") from e
    logger.info("Report %s..%s: %d record(s)", start_date, end_date, len(rows))
    return rows
