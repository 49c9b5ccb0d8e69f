"""Configuration for the SQL gateway."""
import os
from pathlib import Path

BASE_DIR = Path(__file__).resolve().parent

# Security
SECRET_KEY = os.environ.get("SECRET_KEY", "dev-secret-change-in-production")
SESSION_COOKIE_HTTPONLY = True
SESSION_MAX_AGE_SECONDS = 3600
PASSWORD_HASH_ITERATIONS = 390_000

# Targets
DB_CONFIG_PATH = Path(os.environ.get("DB_CONFIG_PATH", BASE_DIR / "db_config.json"))
AUDIT_TARGET_NAME = "Local Database"
DEFAULT_DRIVER = "postgres"
DEFAULT_SSLMODE = "disable"

# Execution limits
CONNECT_TIMEOUT_SECONDS = int(os.environ.get("CONNECT_TIMEOUT_SECONDS", "10"))
STATEMENT_TIMEOUT_SECONDS = float(os.environ.get("STATEMENT_TIMEOUT_SECONDS", "300"))  # 0 = no limit

LOG_LEVEL = os.environ.get("LOG_LEVEL", "INFO")

# Report columns (order is the export contract)
REPORT_COLUMNS = [
    "Date",
    "Query Text",
    "Submitted By",
    "Approved By",
    "Target DB",
    "Execution Time",
    "Duration",
    "Output",
    "Status",
]
PLACEHOLDER = "N/A"
REPORT_FILENAME = "Report.csv"
REPORT_CONTENT_TYPE = "text/csv"
REPORT_XLSX_FILENAME = "Report.xlsx"
REPORT_XLSX_CONTENT_TYPE = "application/vnd.openxmlformats-officedocument.spreadsheetml.sheet"
REPORT_DATE_FORMAT = "%Y-%m-%d"

STATUS_EXECUTED = "executed"
STATUS_FAILED = "failed"
