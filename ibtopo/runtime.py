"""Process-level helpers shared by the service entry points."""

from __future__ import annotations

import logging
import sys
from typing import Callable
from urllib.parse import urlsplit, urlunsplit

_MASK = "xxxxx"

_LEVELS = {
    "DEBUG": logging.DEBUG,
    "INFO": logging.INFO,
    "ERROR": logging.ERROR,
}

_LOGGER_NAME = "ibtopo"


def mask_dsn(dsn: str) -> str:
    """Hide the password of a database URL; anything else is returned unchanged."""
    try:
        parts = urlsplit(dsn)
    except ValueError:
        return dsn

    userinfo, at, hostport = parts.netloc.rpartition("@")
    if not at:
        return dsn

    username, colon, _ = userinfo.partition(":")
    if not colon:
        return dsn

    return urlunsplit(parts._replace(netloc=f"{username}:{_MASK}@{hostport}"))


def make_logger(level: str) -> logging.Logger:
    """Return the package logger writing to stderr at the named level.

    Only DEBUG, INFO and ERROR are accepted.
    """
    try:
        numeric = _LEVELS[level]
    except KeyError:
        raise ValueError(f"unknown log level: {level}") from None

    logger = logging.getLogger(_LOGGER_NAME)
    logger.setLevel(numeric)
    for handler in list(logger.handlers):
        logger.removeHandler(handler)

    handler = logging.StreamHandler(sys.stderr)
    handler.setFormatter(
        logging.Formatter("time=%(asctime)s level=%(levelname)s msg=%(message)s")
    )
    logger.addHandler(handler)
    logger.propagate = False
    return logger


def close_client(log: logging.Logger, name: str, close_fn: Callable[[], object]) -> None:
    """Close a client, logging a warning instead of raising on failure."""
    try:
        close_fn()
    except Exception as err:  # noqa: BLE001 - closing must never abort shutdown
        log.warning("failed to close grpc client service=%s error=%s", name, err)