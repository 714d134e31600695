"""
Cooperative cancellation shared by every unit of one analysis batch.
"""

import logging
import threading
from typing import Optional

from .exceptions import AnalysisCancelledError

logger = logging.getLogger(__name__)


class CancellationToken:
    """
    Thread-safe cancellation signal.

    A single token is threaded through every registry and vulnerability call
    of a batch. Calls check it before doing I/O and raise
    AnalysisCancelledError once it is set.
    """

    def __init__(self):
        self._event = threading.Event()
        self._reason: Optional[str] = None

    def cancel(self, reason: Optional[str] = None) -> None:
        """
        Signal cancellation. Calling it more than once keeps the first reason.

        Args:
            reason: Optional human readable reason, used in the raised error
        """
        if not self._event.is_set():
            self._reason = reason
            self._event.set()
            logger.info(f"Cancellation requested{': ' + reason if reason else ''}")

    @property
    def is_cancelled(self) -> bool:
        return self._event.is_set()

    def raise_if_cancelled(self) -> None:
        """Raise AnalysisCancelledError if cancellation was requested."""
        if self._event.is_set():
            message = "Package analysis was cancelled"
            if self._reason:
                message += f": {self._reason}"
            raise AnalysisCancelledError(message)

    def wait(self, timeout: Optional[float] = None) -> bool:
        """Block until cancelled or the timeout expires; returns is_cancelled."""
        return self._event.wait(timeout)


def raise_if_cancelled(token: Optional[CancellationToken]) -> None:
    """Check an optional token."""
    if token is not None:
        token.raise_if_cancelled()
