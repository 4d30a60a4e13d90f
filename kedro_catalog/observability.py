"""Centralised logging helpers for catalog indexing."""

from __future__ import annotations

import logging
from typing import Any, Dict, Optional

_LOGGER_CACHE: Dict[str, logging.Logger] = {}


def get_logger(name: str = "kedro_catalog") -> logging.Logger:
    """Return a cached :class:`logging.Logger` instance."""

    if name not in _LOGGER_CACHE:
        _LOGGER_CACHE[name] = logging.getLogger(name)
    return _LOGGER_CACHE[name]


def log_catalog_event(
    event: str,
    message: str,
    *args: Any,
    level: int = logging.INFO,
    logger: Optional[logging.Logger] = None,
    **payload: Any,
) -> None:
    """Emit a structured log entry for an indexing event.

    ``message`` and ``args`` are formatted lazily like any logging call; the
    keyword payload travels in ``extra`` so handlers can pick it up without
    parsing the message.
    """

    target_logger = logger or get_logger("kedro_catalog.events")
    target_logger.log(
        level,
        message,
        *args,
        extra={"catalog_event": event, "catalog_data": dict(payload)},
    )


__all__ = ["get_logger", "log_catalog_event"]
