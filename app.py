"""
SQL gateway: run audited statements against configured databases.
Run: flask --app app run
"""
import io
from datetime import timedelta

import click
from flask import Flask, current_app, redirect, render_template, request, send_file, session, url_for

import config
from audit import ExecutionRequest
from auth import create_user, login_required, verify_user
from database import init_db
from errors import (
    AuditWriteError, ConfigurationError, ExecutionError, InvalidDateError, ReportError, UnsupportedFormatError,
)
from gateway import QueryGateway
from log_utils import get_logger, setup_logging
from registry import load_registry

logger = get_logger(__name__)

SUBMIT_FIELDS = ("query_text", "submitted_by", "approved_by", "selected_db")


def create_app(registry=None, statement_timeout=config.STATEMENT_TIMEOUT_SECONDS):
    """Build the app. Loading the registry fails hard: no targets, no gateway."""
    setup_logging()
    if registry is None:
        registry = load_registry(config.DB_CONFIG_PATH)
    app = Flask(__name__)
    app.secret_key = config.SECRET_KEY
    app.config["SESSION_COOKIE_HTTPONLY"] = config.SESSION_COOKIE_HTTPONLY
    app.permanent_session_lifetime = timedelta(seconds=config.SESSION_MAX_AGE_SECONDS)
    app.extensions["gateway"] = QueryGateway(registry, timeout=statement_timeout)
    _register_routes(app)
    _register_commands(app)
    return app


def _gateway() -> QueryGateway:
    return current_app.extensions["gateway"]


def safe_next(url) -> str:
    """Only same-site paths; browsers treat a leading // or /\\ as another host."""
    if not url or not url.startswith("/") or url[1:2] in ("/", "\\"):
        return "/"
    return url


def _register_routes(app):
    # --- Auth routes ---
    @app.route("/login", methods=["GET", "POST"])
    def login():
        if request.method == "GET":
            return render_template("login.html", next=request.args.get("next", "/"))
        username = request.form.get("username", "").strip()
        password = request.form.get("password", "")
        if not username or not password:
            return "Username and password are required.", 400
        if not verify_user(_gateway().registry, username, password):
            return "Invalid username or password.", 401
        session.permanent = True
        session["username"] = username
        return redirect(safe_next(request.form.get("next")))

    @app.route("/logout")
    def logout():
        session.clear()
        return redirect(url_for("login"))

    # --- Submission and report forms ---
    @app.route("/")
    @login_required
    def index():
        return render_template("index.html", databases=_gateway().targets(), username=session["username"])

    @app.route("/submit", methods=["POST"])
    @login_required
    def submit():
        values = {f: request.form.get(f, "").strip() for f in SUBMIT_FIELDS}
        if not all(values.values()):
            return "All fields (Query Text, Submitted By, Approved By, Selected DB) are required.", 400
        req = ExecutionRequest(
            statement=values["query_text"],
            submitted_by=values["submitted_by"],
            approved_by=values["approved_by"],
            target_name=values["selected_db"],
        )
        try:
            return _gateway().submit(req), 200
        except ConfigurationError as e:
            return str(e), 400
        except ExecutionError as e:
            return str(e), 422
        except AuditWriteError as e:
            return f"Error logging query details: {e}", 500

    @app.route("/generate-report", methods=["POST"])
    @login_required
    def generate_report():
        fmt = request.form.get("format", "csv")
        try:
            report = _gateway().report(request.form.get("start_date", ""), request.form.get("end_date", ""), fmt=fmt)
        except (InvalidDateError, UnsupportedFormatError) as e:
            return str(e), 400
        except ReportError as e:
            return f"Failed to fetch report data: {e}", 500
        return send_file(
            io.BytesIO(report.content),
            mimetype=report.content_type,
            as_attachment=True,
            download_name=report.filename,
        )


def _register_commands(app):
    @app.cli.command("init-db")
    def init_db_command():
        """Create the audit store tables."""
        init_db(_gateway().registry.audit_target())
        click.echo("Audit store initialized.")

    @app.cli.command("create-user")
    @click.argument("username")
    @click.password_option()
    def create_user_command(username, password):
        """Add an operator login to the audit store."""
        create_user(_gateway().registry, username, password)
        click.echo(f"Created user {username}.")


if __name__ == "__main__":
    create_app().run(debug=True, port=8080)
