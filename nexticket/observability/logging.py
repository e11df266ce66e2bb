"""
Logging setup.

One stream handler on the "nexticket" logger tree, attached on first use.
Level comes from NEXTICKET_LOG_LEVEL; production switches to a compact
key=value line format. Chatty HTTP client loggers are held at WARNING so
every store request does not show up at INFO.
"""

from __future__ import annotations

import logging
import os
from typing import Final

_ROOT_NAME: Final[str] = "nexticket"
_DEV_FORMAT: Final[str] = "%(asctime)s - %(name)s - %(levelname)s - %(message)s"
_PROD_FORMAT: Final[str] = "ts=%(asctime)s level=%(levelname)s logger=%(name)s msg=%(message)s"
_QUIET_LOGGERS: Final[tuple[str, ...]] = ("httpx", "httpcore")

_configured = False


def _resolve_level() -> int:
    level_name = os.getenv("NEXTICKET_LOG_LEVEL", "INFO").upper()
    return getattr(logging, level_name, logging.INFO)


def _configure() -> None:
    global _configured

    fmt = _PROD_FORMAT if os.getenv("NEXTICKET_ENV") == "production" else _DEV_FORMAT
    handler = logging.StreamHandler()
    handler.setFormatter(logging.Formatter(fmt, datefmt="%Y-%m-%d %H:%M:%S"))

    package_logger = logging.getLogger(_ROOT_NAME)
    package_logger.addHandler(handler)
    package_logger.propagate = False

    for name in _QUIET_LOGGERS:
        logging.getLogger(name).setLevel(logging.WARNING)

    _configured = True


def get_logger(name: str) -> logging.Logger:
    """Return a logger under the nexticket tree, configuring the handler once."""
    if not _configured:
        _configure()

    logging.getLogger(_ROOT_NAME).setLevel(_resolve_level())
    if name != _ROOT_NAME and not name.startswith(f"{_ROOT_NAME}."):
        name = f"{_ROOT_NAME}.{name}"
    return logging.getLogger(name)
