"""Scoped connections to configured targets, and audit store schema setup."""
import sqlite3
import time
from contextlib import contextmanager
from pathlib import Path

import psycopg2
import psycopg2.errors

import config
from errors import TargetConnectionError
from log_utils import get_logger
from registry import TargetConfig

logger = get_logger(__name__)

DRIVER_ERRORS = (sqlite3.Error, sqlite3.Warning, psycopg2.Error, psycopg2.Warning)

# SQLite progress handler granularity (VM instructions between deadline checks)
_SQLITE_PROGRESS_STEPS = 1000

TIMEOUT_MESSAGE = "canceling statement due to statement timeout"


def placeholder(target: TargetConfig) -> str:
    return "?" if target.driver == "sqlite" else "%s"


def _connect_postgres(target: TargetConfig, statement_timeout):
    kwargs = dict(
        host=target.host,
        port=target.port,
        user=target.user,
        password=target.password,
        dbname=target.dbname,
        sslmode=target.sslmode,
        connect_timeout=config.CONNECT_TIMEOUT_SECONDS,
    )
    if statement_timeout:
        kwargs["options"] = f"-c statement_timeout={int(statement_timeout * 1000)}"
    return psycopg2.connect(**kwargs)


def _connect_sqlite(target: TargetConfig, statement_timeout, create=False):
    mode = "rwc" if create else "rw"
    conn = sqlite3.connect(f"{Path(target.dbname).resolve().as_uri()}?mode={mode}", uri=True,
                           timeout=config.CONNECT_TIMEOUT_SECONDS)
    if statement_timeout:
        deadline = time.monotonic() + statement_timeout

        def _past_deadline():
            return 1 if time.monotonic() > deadline else 0

        conn.set_progress_handler(_past_deadline, _SQLITE_PROGRESS_STEPS)
    return conn


def get_connection(target: TargetConfig, statement_timeout=None, create=False):
    """
    Open a new connection to target. Raises TargetConnectionError on failure.
    statement_timeout (seconds) bounds each statement run on the connection.
    """
    logger.debug("Connecting to %s (%s)", target.name, target.describe())
    try:
        if target.driver == "sqlite":
            return _connect_sqlite(target, statement_timeout, create=create)
        return _connect_postgres(target, statement_timeout)
    except DRIVER_ERRORS as e:
        logger.warning("Connection to %s (%s) failed: %s", target.name, target.describe(), e)
        raise TargetConnectionError(target.name, e) from e


@contextmanager
def connection(target: TargetConfig, statement_timeout=None, create=False):
    """Yield a connection; commit on success, roll back on error, always close."""
    conn = get_connection(target, statement_timeout=statement_timeout, create=create)
    try:
        yield conn
        conn.commit()
    except Exception:
        conn.rollback()
        raise
    finally:
        conn.close()


def init_db(target: TargetConfig):
    """Create the audit tables on target if they do not exist."""
    if target.driver == "sqlite":
        timestamp_type = "TEXT"
    else:
        timestamp_type = "TIMESTAMP"
    with connection(target, create=True) as conn:
        cur = conn.cursor()
        cur.execute(f"""
            CREATE TABLE IF NOT EXISTS submitted_queries (
                execution_time {timestamp_type} NOT NULL,
                query_text TEXT NOT NULL,
                submitted_by TEXT,
                approved_by TEXT,
                target_db TEXT NOT NULL,
                execution_duration TEXT,
                output TEXT,
                status TEXT NOT NULL
            )
        """)
        cur.execute("""
            CREATE INDEX IF NOT EXISTS submitted_queries_execution_time
            ON submitted_queries (execution_time)
        """)
        cur.execute("""
            CREATE TABLE IF NOT EXISTS users (
                username TEXT PRIMARY KEY,
                password_hash TEXT NOT NULL
            )
        """)
        cur.close()
    logger.info("Audit store schema ready on %s", target.name)


def is_statement_timeout(exc: Exception) -> bool:
    """True if exc is the driver cancelling an over-long statement."""
    if isinstance(exc, psycopg2.errors.QueryCanceled):
        return True
    return isinstance(exc, sqlite3.OperationalError) and str(exc) == "interrupted"
