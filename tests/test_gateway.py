import csv
import io
import sqlite3
from concurrent.futures import ThreadPoolExecutor

import pytest

import gateway as gateway_module
from errors import AuditWriteError, ConfigurationError, ExecutionError, InvalidDateError, UnsupportedFormatError
from gateway import SUBMIT_OK_MESSAGE, QueryGateway


@pytest.fixture
def gateway(registry):
    return QueryGateway(registry, timeout=5)


def test_successful_submission_is_audited_once(gateway, audit_rows, make_request):
    assert gateway.submit(make_request("UPDATE items SET name = name")) == SUBMIT_OK_MESSAGE
    rows = audit_rows()
    assert len(rows) == 1
    assert rows[0]["status"] == "executed"
    assert rows[0]["output"] == "Query executed successfully, 3 rows affected."


def test_failed_statement_is_audited_then_raised(gateway, audit_rows, make_request):
    with pytest.raises(ExecutionError, match="syntax error"):
        gateway.submit(make_request("SELEC nothing"))
    rows = audit_rows()
    assert len(rows) == 1
    assert rows[0]["status"] == "failed"
    assert "syntax error" in rows[0]["output"]
    assert rows[0]["execution_duration"]


def test_unreachable_target_is_audited_as_failed(gateway, audit_rows, make_request):
    with pytest.raises(ExecutionError, match="could not connect"):
        gateway.submit(make_request(target="Offline"))
    rows = audit_rows()
    assert [r["target_db"] for r in rows] == ["Offline"]
    assert rows[0]["status"] == "failed"


def test_unknown_target_no_connection_no_audit(gateway, audit_rows, make_request, monkeypatch):
    def fail_execute(*args, **kwargs):
        raise AssertionError("no connection may be attempted for an unknown target")

    monkeypatch.setattr(gateway_module, "execute", fail_execute)
    with pytest.raises(ConfigurationError, match="Database configuration not found"):
        gateway.submit(make_request(target="Warehouse"))
    assert audit_rows() == []


def test_missing_audit_store_after_successful_query(registry_without_audit, sales_db, make_request):
    gw = QueryGateway(registry_without_audit)
    with pytest.raises(AuditWriteError) as exc_info:
        gw.submit(make_request("UPDATE items SET name = 'same'"))
    assert not isinstance(exc_info.value, ExecutionError)
    # The statement itself still ran
    conn = sqlite3.connect(sales_db)
    assert conn.execute("SELECT COUNT(*) FROM items WHERE name = 'same'").fetchone()[0] == 3
    conn.close()


def test_concurrent_submissions_are_independent(gateway, audit_rows, make_request):
    requests = [make_request(f"INSERT INTO items (name) VALUES ('n{i}')") for i in range(5)]
    requests += [make_request(target="Offline") for _ in range(5)]

    def run(req):
        try:
            return gateway.submit(req)
        except ExecutionError as e:
            return e

    with ThreadPoolExecutor(max_workers=10) as pool:
        results = list(pool.map(run, requests))

    assert results[:5] == [SUBMIT_OK_MESSAGE] * 5
    assert all(isinstance(r, ExecutionError) for r in results[5:])
    rows = audit_rows()
    assert len(rows) == 10
    by_target = {}
    for row in rows:
        by_target.setdefault(row["target_db"], set()).add(row["status"])
    assert by_target == {"Sales": {"executed"}, "Offline": {"failed"}}


def test_report_csv(gateway, make_request):
    gateway.submit(make_request("UPDATE items SET name = name"))
    with pytest.raises(ExecutionError):
        gateway.submit(make_request("SELEC 1", submitted_by="carol"))
    report = gateway.report("2000-01-01", "2999-12-31")
    assert report.filename == "Report.csv"
    assert report.content_type == "text/csv"
    parsed = list(csv.reader(io.StringIO(report.content.decode("utf-8"))))
    assert len(parsed) == 3
    assert [row[8] for row in parsed[1:]] == ["executed", "failed"]
    assert parsed[2][2] == "carol"


def test_report_xlsx(gateway):
    report = gateway.report("2024-01-01", "2024-01-31", fmt="xlsx")
    assert report.filename == "Report.xlsx"
    assert report.content[:2] == b"PK"


def test_report_bad_date(gateway):
    with pytest.raises(InvalidDateError):
        gateway.report("yesterday", "2024-01-01")


def test_targets_in_config_order(gateway):
    assert gateway.targets() == ["Local Database", "Sales", "Offline"]


def test_report_unknown_format(gateway):
    with pytest.raises(UnsupportedFormatError):
        gateway.report("2024-01-01", "2024-01-31", fmt="pdf")


def test_report_csv_renders_null_submitter_as_placeholder(gateway, audit_db):
    conn = sqlite3.connect(audit_db)
    conn.execute(
        "INSERT INTO submitted_queries (execution_time, query_text, submitted_by, approved_by, "
        "target_db, execution_duration, output, status) VALUES (?, ?, NULL, ?, ?, ?, ?, ?)",
        ("2024-02-01 12:00:00", "DELETE FROM t", "bob", "Sales", "2ms", "ok", "executed"),
    )
    conn.commit()
    conn.close()
    report = gateway.report("2024-02-01", "2024-02-01")
    header, row = list(csv.reader(io.StringIO(report.content.decode("utf-8"), newline="")))
    assert row[header.index("Submitted By")] == "N/A"
    assert row[header.index("Approved By")] == "bob"
