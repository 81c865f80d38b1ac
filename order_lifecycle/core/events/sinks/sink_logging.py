"""
Logging event sink.
"""
from __future__ import annotations

import logging
from typing import Any


class LoggingEventSink:
    """Logs ledger events through the standard logging module.

    The event object travels in ``extra`` under ``event``; the message names
    its type so plain formatters still show something useful.
    """

    def __init__(self, logger: logging.Logger, level: int = logging.INFO) -> None:
        self._logger = logger
        self._level = level

    def on_event(self, event: Any) -> None:
        self._logger.log(self._level, "domain_event %s", type(event).__name__, extra={"event": event})
