"""
Interview Integrity Monitor - Storage: Background Uploader

Background delivery of queued session writes to Supabase, and the session
store the controller talks to.
"""

import logging
import threading
import uuid
from datetime import datetime
from typing import Optional, Callable, Dict, Any

from interview_monitor.app.db.sqlite_queue import SQLiteQueue, QueueItem, payload_hash
from interview_monitor.app.storage.supabase_client import SupabaseClient

logger = logging.getLogger(__name__)


class BackgroundUploader:
    """
    Background service delivering queued items to Supabase.

    Features:
    - Exponential backoff retry
    - SHA-256 payload integrity verification
    - Insertion-order delivery
    """

    # Retry configuration
    MIN_RETRY_DELAY = 1.0  # seconds
    MAX_RETRY_DELAY = 300.0  # 5 minutes
    BACKOFF_FACTOR = 2.0
    MAX_ATTEMPTS = 5
    IDLE_POLL_SECONDS = 5.0

    def __init__(
        self,
        queue: SQLiteQueue,
        client: SupabaseClient,
        on_upload_complete: Optional[Callable[[QueueItem, bool], None]] = None
    ):
        """
        Initialize uploader.

        Args:
            queue: SQLite delivery queue
            client: Supabase client
            on_upload_complete: Callback when a delivery attempt completes
        """
        self.queue = queue
        self.client = client
        self.on_upload_complete = on_upload_complete

        self._running = False
        self._wake = threading.Event()
        self._thread: Optional[threading.Thread] = None
        self._current_retry_delay = self.MIN_RETRY_DELAY

    def start(self):
        """Start background delivery."""
        if self._running:
            return

        recovered = self.queue.requeue_interrupted()
        if recovered:
            logger.info(f"Recovered {recovered} interrupted queue item(s)")

        self._running = True
        self._wake.clear()
        self._thread = threading.Thread(target=self._upload_loop, name="uploader", daemon=True)
        self._thread.start()

        logger.info("Background uploader started")

    def stop(self):
        """Stop background delivery."""
        self._running = False
        self._wake.set()

        if self._thread:
            self._thread.join(timeout=5.0)
            self._thread = None

        logger.info("Background uploader stopped")

    def notify(self):
        """Wake the loop because new work was queued."""
        self._wake.set()

    def _sleep(self, seconds: float):
        self._wake.wait(seconds)
        self._wake.clear()

    def _upload_loop(self):
        """Main delivery loop."""
        while self._running:
            try:
                item = self.queue.dequeue()

                if item is None:
                    retry_count = self.queue.retry_failed(self.MAX_ATTEMPTS)
                    if retry_count > 0:
                        logger.debug(f"Reset {retry_count} failed items for retry")
                        continue
                    self._sleep(self.IDLE_POLL_SECONDS)
                    continue

                if self._upload_item(item):
                    self._current_retry_delay = self.MIN_RETRY_DELAY
                else:
                    self._current_retry_delay = min(
                        self._current_retry_delay * self.BACKOFF_FACTOR,
                        self.MAX_RETRY_DELAY
                    )
                    self._sleep(self._current_retry_delay)

            except Exception as e:
                logger.error(f"Upload loop error: {e}")
                self._sleep(self.IDLE_POLL_SECONDS)

    def _upload_item(self, item: QueueItem) -> bool:
        """
        Deliver a single queue item and record the outcome.

        Returns:
            True if successful
        """
        try:
            logger.debug(f"Delivering item {item.id} ({item.operation})")

            if payload_hash(item.payload) != item.hash_sha256:
                error = "Payload integrity check failed"
                logger.error(f"{error} for item {item.id}")
                self.queue.mark_failed(item.id, error)
                success = False
            else:
                if item.operation == "log_event":
                    success = self.client.log_event(item.session_id, item.payload)
                elif item.operation == "end_session":
                    success = self.client.end_session(item.session_id, item.payload)
                else:
                    logger.error(f"Unknown operation for item {item.id}: {item.operation}")
                    success = False

                if success:
                    self.queue.mark_success(item.id)
                else:
                    self.queue.mark_failed(item.id, f"{item.operation} failed")

        except Exception as e:
            logger.error(f"Upload error for item {item.id}: {e}")
            self.queue.mark_failed(item.id, str(e))
            success = False

        if self.on_upload_complete:
            self.on_upload_complete(item, success)
        return success

    def drain(self) -> int:
        """
        Deliver pending items synchronously until the queue is empty or a
        delivery fails.

        Returns:
            Number of items delivered
        """
        delivered = 0
        while True:
            item = self.queue.dequeue()
            if item is None or not self._upload_item(item):
                return delivered
            delivered += 1

    def get_status(self) -> dict:
        """Get uploader status."""
        return {
            "running": self._running,
            "pending_count": self.queue.get_pending_count(),
            "failed_count": self.queue.get_failed_count(),
            "current_retry_delay": self._current_retry_delay
        }


class QueuedSessionStore:
    """
    Persistence collaborator for the session controller.

    Session creation is synchronous because the controller needs the id.
    Event and report writes go through the local queue and never block
    the caller on the network.
    """

    def __init__(
        self,
        client: SupabaseClient,
        queue: SQLiteQueue,
        uploader: Optional[BackgroundUploader] = None,
        offline: bool = False
    ):
        """
        Args:
            client: Supabase client
            queue: Local delivery queue
            uploader: Background uploader (built from client/queue if None)
            offline: Assign local session ids instead of calling Supabase
        """
        self.client = client
        self.queue = queue
        self.uploader = uploader or BackgroundUploader(queue, client)
        self.offline = offline

    def start(self):
        if not self.offline:
            self.uploader.start()

    def close(self):
        """Flush what can be delivered now and stop the uploader."""
        self.uploader.stop()
        if not self.offline:
            delivered = self.uploader.drain()
            if delivered:
                logger.info(f"Flushed {delivered} queued item(s)")

    def create_session(self, candidate_name: str, start_time: datetime) -> Optional[str]:
        if self.offline:
            session_id = f"local-{uuid.uuid4()}"
            logger.info(f"Offline session id assigned: {session_id}")
            return session_id
        return self.client.create_session(candidate_name, start_time)

    def log_event(self, session_id: str, event: Dict[str, Any]):
        self.queue.enqueue("log_event", session_id, event)
        self.uploader.notify()

    def end_session(self, session_id: str, report: Dict[str, Any]):
        self.queue.enqueue("end_session", session_id, report)
        self.uploader.notify()
