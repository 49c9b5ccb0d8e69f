"""Centralized logging setup for the gateway."""
import logging
import sys

import config

_initialized = False


def setup_logging(level=None, format_string=None):
    """Configure root logging once; later calls are no-ops."""
    global _initialized
    if _initialized:
        return logging.getLogger("gateway")
    if format_string is None:
        format_string = "%(asctime)s | %(levelname)-8s | %(name)-12s | %(message)s"
    logging.basicConfig(
        level=level or config.LOG_LEVEL,
        format=format_string,
        handlers=[logging.StreamHandler(sys.stdout)],
    )
    # Keep werkzeug request lines out of the audit-relevant output
    logging.getLogger("werkzeug").setLevel(logging.WARNING)
    _initialized = True
    return logging.getLogger("gateway")


def get_logger(name: str) -> logging.Logger:
    return logging.getLogger(f"gateway.{name}")
