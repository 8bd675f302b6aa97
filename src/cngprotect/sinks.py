"""Pluggable sinks for failures the control loop deliberately absorbs.

Ledger and storage failures never reach the control loop. They are handed
to an :data:`ErrorSink` instead, which by default only logs. Supervisors
and tests inject their own sink to observe them.
"""

from __future__ import annotations

import logging
from collections.abc import Callable

from cngprotect.state.events import ErrorSource

_logger = logging.getLogger(__name__)

ErrorSink = Callable[[ErrorSource, Exception], None]


def log_error(source: ErrorSource, exc: Exception) -> None:
    """Default sink: ledger failures at ERROR, storage hiccups at DEBUG."""
    if source == ErrorSource.LEDGER:
        _logger.error("Ledger error: %s", exc)
        return
    _logger.debug("Storage error: %s", exc)


def null_sink(source: ErrorSource, exc: Exception) -> None:
    """Discard everything."""


def emit(sink: ErrorSink, source: ErrorSource, exc: Exception) -> None:
    """Deliver *exc* to *sink*; a failing sink is logged, never raised."""
    try:
        sink(source, exc)
    except Exception:
        _logger.debug("Error sink failed for %s error", source, exc_info=True)
