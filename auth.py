"""Operator login against the users table in the audit store."""
import base64
import functools
import hmac
import os

from cryptography.hazmat.primitives import hashes
from cryptography.hazmat.primitives.kdf.pbkdf2 import PBKDF2HMAC
from flask import redirect, request, session, url_for

import config
from database import DRIVER_ERRORS, connection, placeholder
from errors import ConfigurationError, TargetConnectionError
from log_utils import get_logger
from registry import Registry

logger = get_logger(__name__)

_SCHEME = "pbkdf2_sha256"


def _derive(password: str, salt: bytes, iterations: int) -> bytes:
    kdf = PBKDF2HMAC(algorithm=hashes.SHA256(), length=32, salt=salt, iterations=iterations)
    return kdf.derive(password.encode())


def hash_password(password: str, iterations: int = config.PASSWORD_HASH_ITERATIONS) -> str:
    salt = os.urandom(16)
    digest = _derive(password, salt, iterations)
    return "$".join([
        _SCHEME,
        str(iterations),
        base64.b64encode(salt).decode(),
        base64.b64encode(digest).decode(),
    ])


def check_password(password: str, stored: str) -> bool:
    try:
        scheme, iterations, salt, digest = stored.split("$")
        if scheme != _SCHEME:
            return False
        expected = base64.b64decode(digest)
        actual = _derive(password, base64.b64decode(salt), int(iterations))
    except ValueError:
        return False
    return hmac.compare_digest(actual, expected)


def create_user(registry: Registry, username: str, password: str):
    store = registry.audit_target()
    ph = placeholder(store)
    with connection(store) as conn:
        cur = conn.cursor()
        try:
            cur.execute(
                f"INSERT INTO users (username, password_hash) VALUES ({ph}, {ph})",
                (username, hash_password(password)),
            )
        finally:
            cur.close()
    logger.info("Created user %s", username)


def verify_user(registry: Registry, username: str, password: str) -> bool:
    try:
        store = registry.audit_target()
        ph = placeholder(store)
        with connection(store) as conn:
            cur = conn.cursor()
            try:
                cur.execute(f"SELECT password_hash FROM users WHERE username = {ph}", (username,))
                row = cur.fetchone()
            finally:
                cur.close()
    except (ConfigurationError, TargetConnectionError, *DRIVER_ERRORS) as e:
        logger.error("Login lookup for %s failed: %s", username, e)
        return False
    if row is None:
        logger.info("Login failed for unknown user %s", username)
        return False
    return check_password(password, row[0])


def login_required(f):
    @functools.wraps(f)
    def wrapped(*args, **kwargs):
        if not session.get("username"):
            return redirect(url_for("login", next=request.path))
        return f(*args, **kwargs)
    return wrapped
