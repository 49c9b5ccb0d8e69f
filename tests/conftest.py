import sqlite3
from datetime import datetime

import pytest

from audit import ExecutionRequest
from database import init_db
from executor import ExecutionOutcome
from registry import parse_registry


@pytest.fixture
def sales_db(tmp_path):
    path = tmp_path / "sales.db"
    conn = sqlite3.connect(path)
    conn.execute("CREATE TABLE items (id INTEGER PRIMARY KEY, name TEXT NOT NULL UNIQUE)")
    conn.executemany("INSERT INTO items (name) VALUES (?)", [("apple",), ("pear",), ("plum",)])
    conn.commit()
    conn.close()
    return path


@pytest.fixture
def audit_db(tmp_path):
    return tmp_path / "audit.db"


@pytest.fixture
def registry(sales_db, audit_db, tmp_path):
    reg = parse_registry({"databases": [
        {"name": "Local Database", "driver": "sqlite", "dbname": str(audit_db)},
        {"name": "Sales", "driver": "sqlite", "dbname": str(sales_db)},
        {"name": "Offline", "driver": "sqlite", "dbname": str(tmp_path / "missing" / "gone.db")},
    ]})
    init_db(reg.audit_target())
    return reg


@pytest.fixture
def registry_without_audit(sales_db):
    return parse_registry({"databases": [
        {"name": "Sales", "driver": "sqlite", "dbname": str(sales_db)},
    ]})


@pytest.fixture
def audit_rows(audit_db):
    def fetch():
        conn = sqlite3.connect(audit_db)
        conn.row_factory = sqlite3.Row
        try:
            rows = conn.execute("SELECT * FROM submitted_queries ORDER BY rowid").fetchall()
            return [dict(r) for r in rows]
        finally:
            conn.close()
    return fetch


@pytest.fixture
def make_request():
    def build(statement="SELECT 1", target="Sales", submitted_by="alice", approved_by="bob"):
        return ExecutionRequest(statement, submitted_by, approved_by, target)
    return build


@pytest.fixture
def make_outcome():
    def build(started_at=None, succeeded=True, message="Query executed successfully, 1 rows affected.",
              duration=0.0015):
        return ExecutionOutcome(started_at or datetime.now(), duration, succeeded, message)
    return build
