"""
Interview Integrity Monitor - Session: Periodic Task

Cancellable fixed-interval scheduler running on a single worker thread.
"""

import logging
import threading
import time
from typing import Callable, Optional

logger = logging.getLogger(__name__)


class PeriodicTask:
    """
    Runs `callback` every `interval_seconds` on one daemon thread.

    Invocations never overlap. A late tick pushes the schedule forward
    instead of firing a burst of catch-up ticks. cancel() returns only
    after the worker has exited, so no tick starts after it returns.
    """

    def __init__(
        self,
        interval_seconds: float,
        callback: Callable[[], object],
        name: str = "periodic-task"
    ):
        if interval_seconds <= 0:
            raise ValueError("interval_seconds must be positive")

        self.interval = interval_seconds
        self.callback = callback
        self.name = name
        self.tick_count = 0

        self._stop_event = threading.Event()
        self._thread: Optional[threading.Thread] = None

    @property
    def running(self) -> bool:
        return self._thread is not None and self._thread.is_alive()

    def start(self):
        """Start ticking. No-op if already running."""
        if self.running:
            return

        self._stop_event.clear()
        self._thread = threading.Thread(target=self._run, name=self.name, daemon=True)
        self._thread.start()
        logger.debug(f"{self.name} started ({self.interval:.3f}s interval)")

    def cancel(self, timeout: Optional[float] = None):
        """Stop ticking and wait for the in-flight tick, if any."""
        self._stop_event.set()

        thread = self._thread
        if thread is not None and thread is not threading.current_thread():
            thread.join(timeout)
            if thread.is_alive():
                logger.warning(f"{self.name} did not stop within {timeout}s")
                return
        self._thread = None
        logger.debug(f"{self.name} cancelled after {self.tick_count} ticks")

    def _run(self):
        next_run = time.monotonic() + self.interval

        while not self._stop_event.wait(max(0.0, next_run - time.monotonic())):
            try:
                self.callback()
            except Exception as e:
                logger.error(f"Error in {self.name} tick: {e}", exc_info=True)
            self.tick_count += 1

            next_run += self.interval
            now = time.monotonic()
            if next_run <= now:
                skipped = int((now - next_run) // self.interval) + 1
                next_run += skipped * self.interval
                logger.debug(f"{self.name} skipped {skipped} late tick(s)")
