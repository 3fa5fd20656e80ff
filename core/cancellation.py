"""Cooperative cancellation for long-running search runs."""
import threading
import time
from typing import Optional

from core.errors import PipelineCancelledError


class CancellationToken:
    """
    Stop signal plus an optional deadline.

    Checked at every suspension point of a run; inter-call delays wait on
    the token so a stop request interrupts them immediately.
    """

    def __init__(
        self,
        stop_event: Optional[threading.Event] = None,
        timeout_seconds: Optional[float] = None
    ):
        self.stop_event = stop_event or threading.Event()
        self.deadline = time.monotonic() + timeout_seconds if timeout_seconds else None

    @property
    def expired(self) -> bool:
        return self.deadline is not None and time.monotonic() >= self.deadline

    @property
    def cancelled(self) -> bool:
        return self.stop_event.is_set() or self.expired

    def cancel(self) -> None:
        self.stop_event.set()

    def raise_if_cancelled(self) -> None:
        if self.stop_event.is_set():
            raise PipelineCancelledError("Search cancelled")
        if self.expired:
            raise PipelineCancelledError("Search timed out")

    def wait(self, seconds: float) -> None:
        """Sleep for ``seconds`` unless cancelled first (then raise)."""
        if seconds > 0:
            if self.deadline is not None:
                seconds = min(seconds, max(self.deadline - time.monotonic(), 0))
            self.stop_event.wait(seconds)
        self.raise_if_cancelled()
