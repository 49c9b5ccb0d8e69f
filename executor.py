"""Run one caller-supplied statement against a target and time it."""
import time
from dataclasses import dataclass
from datetime import datetime

import config
from database import DRIVER_ERRORS, TIMEOUT_MESSAGE, connection, is_statement_timeout
from errors import TargetConnectionError
from log_utils import get_logger
from registry import TargetConfig

logger = get_logger(__name__)

SUCCESS_MESSAGE = "Query executed successfully, {} rows affected."


def _with_fraction(value: int, unit: int) -> str:
    whole, frac = divmod(value, unit)
    if not frac:
        return str(whole)
    digits = len(str(unit)) - 1
    return f"{whole}.{frac:0{digits}d}".rstrip("0")


def format_duration(seconds: float) -> str:
    """Render a duration the way existing audit history stores it (e.g. 1.5ms, 2m3.25s)."""
    ns = round(seconds * 1_000_000_000)
    if ns <= 0:
        return "0s"
    if ns < 1_000:
        return f"{ns}ns"
    if ns < 1_000_000:
        return _with_fraction(ns, 1_000) + "µs"
    if ns < 1_000_000_000:
        return _with_fraction(ns, 1_000_000) + "ms"
    hours, rem = divmod(ns, 3600 * 1_000_000_000)
    minutes, rem = divmod(rem, 60 * 1_000_000_000)
    out = ""
    if hours:
        out += f"{hours}h"
    if hours or minutes:
        out += f"{minutes}m"
    return out + _with_fraction(rem, 1_000_000_000) + "s"


@dataclass(frozen=True)
class ExecutionOutcome:
    started_at: datetime
    duration: float  # seconds
    succeeded: bool
    message: str
    rows_affected: int | None = None

    @property
    def duration_text(self) -> str:
        return format_duration(self.duration)

    @property
    def status(self) -> str:
        return config.STATUS_EXECUTED if self.succeeded else config.STATUS_FAILED


def execute(target: TargetConfig, statement: str,
            timeout: float = config.STATEMENT_TIMEOUT_SECONDS) -> ExecutionOutcome:
    """
    Execute statement on target exactly once, as a single unparameterized command.
    Never raises for connection or statement failures: those become a failed
    outcome carrying the error text. Duration covers connecting and executing,
    up to success or the point of failure.
    """
    started_at = datetime.now()
    start = time.perf_counter()
    try:
        with connection(target, statement_timeout=timeout) as conn:
            cur = conn.cursor()
            try:
                cur.execute(statement)
                rows = max(cur.rowcount, 0)
            finally:
                cur.close()
    except TargetConnectionError as e:
        return ExecutionOutcome(started_at, time.perf_counter() - start, False, str(e))
    except DRIVER_ERRORS as e:
        elapsed = time.perf_counter() - start
        if is_statement_timeout(e):
            message = TIMEOUT_MESSAGE
        else:
            message = str(e).strip()
        logger.info("Statement on %s failed after %s: %s", target.name, format_duration(elapsed), message)
        return ExecutionOutcome(started_at, elapsed, False, message)
    elapsed = time.perf_counter() - start
    logger.info("Statement on %s executed in %s, %d rows affected", target.name, format_duration(elapsed), rows)
    return ExecutionOutcome(started_at, elapsed, True, SUCCESS_MESSAGE.format(rows), rows)
