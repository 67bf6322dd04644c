from __future__ import annotations

import logging
import sys


def setup_logging(level: str | None = None) -> None:
    """
    Structured-enough logging for ops users.

    Messages are `event key=value` pairs; audit events use their own logger
    so they can be routed to a separate sink.
    """
    if level is None:
        from tenant_authz.configs.settings import get_settings

        level = get_settings().LOG_LEVEL

    root = logging.getLogger()
    root.setLevel(level.upper())

    handler = logging.StreamHandler(sys.stdout)
    formatter = logging.Formatter(
        fmt="%(asctime)s %(levelname)s %(name)s %(message)s",
    )
    handler.setFormatter(formatter)

    # Replace existing handlers to avoid duplicates under reload.
    root.handlers = [handler]


def get_logger(name: str) -> logging.Logger:
    return logging.getLogger(name)
