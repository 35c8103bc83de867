"""Logging setup with key=value fields attached to messages."""

from __future__ import annotations

import logging
import sys
from collections.abc import MutableMapping
from typing import Any

LOGGER_NAME = "mockhttpd"
_HANDLER_NAME = "mockhttpd-stdout"
_FORMAT = 'time="%(asctime)s" level=%(levelname)s msg="%(message)s"'
_DATE_FORMAT = "%Y-%m-%dT%H:%M:%S%z"


class _FieldsAdapter(logging.LoggerAdapter):
    """Appends sorted key=value fields to every message."""

    def process(
        self, msg: Any, kwargs: MutableMapping[str, Any]
    ) -> tuple[Any, MutableMapping[str, Any]]:
        fields = dict(self.extra or {})
        if fields:
            suffix = " ".join(f"{key}={value}" for key, value in sorted(fields.items()))
            msg = f"{msg} {suffix}"
        extra = dict(kwargs.get("extra") or {})
        extra["fields"] = fields
        kwargs["extra"] = extra
        return msg, kwargs


def init_logging() -> logging.Logger:
    """Send package logs to stdout at debug level with full timestamps."""
    logger = logging.getLogger(LOGGER_NAME)
    logger.setLevel(logging.DEBUG)
    for handler in list(logger.handlers):
        if handler.get_name() == _HANDLER_NAME:
            logger.removeHandler(handler)
    handler = logging.StreamHandler(sys.stdout)
    handler.set_name(_HANDLER_NAME)
    handler.setFormatter(logging.Formatter(_FORMAT, datefmt=_DATE_FORMAT))
    logger.addHandler(handler)
    return logger


def get_logger(name: str, **kwargs: Any) -> logging.LoggerAdapter:
    """Return a logger under the package namespace carrying the given fields."""
    if not name or name == LOGGER_NAME:
        full_name = LOGGER_NAME
    elif name.startswith(LOGGER_NAME + "."):
        full_name = name
    else:
        full_name = f"{LOGGER_NAME}.{name}"
    return _FieldsAdapter(logging.getLogger(full_name), kwargs)