"""
Turn operator interrupts (Ctrl+C, SIGTERM) into the shared cancellation event.
"""

from __future__ import annotations

import logging
import signal
import threading
from typing import Any, Dict, Iterable, Optional

LOGGER = logging.getLogger(__name__)

DEFAULT_SIGNALS = (signal.SIGINT, signal.SIGTERM)


class CancellationBridge:
    """Install signal handlers that set ``cancel_event`` instead of exiting.

    The event is set on the first interrupt only; later interrupts are
    counted and logged but change nothing.
    """

    def __init__(
        self,
        cancel_event: Optional[threading.Event] = None,
        signals: Iterable[int] = DEFAULT_SIGNALS,
    ) -> None:
        self.cancel_event = cancel_event or threading.Event()
        self.signals = tuple(signals)
        self.interrupts = 0
        self._previous: Dict[int, Any] = {}

    def install(self) -> "CancellationBridge":
        for signum in self.signals:
            self._previous[signum] = signal.signal(signum, self._handle_signal)
        return self

    def uninstall(self) -> None:
        for signum, handler in self._previous.items():
            signal.signal(signum, handler)
        self._previous.clear()

    def trigger(self, signum: Optional[int] = None) -> bool:
        """Request cancellation. Returns True only for the call that set the event."""
        self.interrupts += 1
        if self.cancel_event.is_set():
            LOGGER.info("Already stopping (interrupt #%d ignored)", self.interrupts)
            return False
        self.cancel_event.set()

        if signum is not None:
            LOGGER.info("Received signal %d. Stopping stream gracefully...", signum)
        else:
            LOGGER.info("Stop requested. Stopping stream gracefully...")
        return True

    def _handle_signal(self, signum, frame) -> None:
        self.trigger(signum)

    def __enter__(self) -> "CancellationBridge":
        return self.install()

    def __exit__(self, *exc_info) -> None:
        self.uninstall()
