"""Throttled progress reporting."""

import threading
import time
from typing import Callable, Optional

from .constants import PROGRESS_INTERVAL
from .core import ScanProgress

ProgressCallback = Callable[[ScanProgress], None]


class ProgressThrottle:
    """Forward progress events at most once per interval.

    Reports are dropped, not queued, while the interval has not elapsed, so a
    slow consumer never sees a backlog. Safe to call from worker threads.
    """

    def __init__(
        self,
        callback: Optional[ProgressCallback],
        interval: float = PROGRESS_INTERVAL,
        clock: Callable[[], float] = time.monotonic,
    ):
        self.callback = callback
        self.interval = interval
        self._clock = clock
        self._last = clock()
        self._lock = threading.Lock()

    def report(
        self,
        message: str,
        items_processed: int = 0,
        files_processed: int = 0,
        current_item: Optional[str] = None,
        force: bool = False,
    ) -> bool:
        """Deliver an event if the interval has elapsed (or ``force``).

        Returns:
            True if the event was delivered
        """
        if self.callback is None:
            return False
        with self._lock:
            now = self._clock()
            if not force and now - self._last < self.interval:
                return False
            self._last = now
        self.callback(ScanProgress(
            message=message,
            items_processed=items_processed,
            files_processed=files_processed,
            current_item=current_item,
        ))
        return True
