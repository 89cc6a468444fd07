"""
Interview Integrity Monitor - DB: SQLite Queue

Local SQLite queue for session writes, so the sampling tick never waits on
the network and nothing is lost while offline.
"""

import sqlite3
import json
import hashlib
import logging
import threading
from datetime import datetime, timedelta
from pathlib import Path
from typing import Optional, List, Dict, Any
from dataclasses import dataclass

logger = logging.getLogger(__name__)


def payload_hash(payload: Dict[str, Any]) -> str:
    """SHA-256 over the canonical JSON form of a payload."""
    return hashlib.sha256(
        json.dumps(payload, sort_keys=True, default=str).encode()
    ).hexdigest()


@dataclass
class QueueItem:
    """Represents a pending session write."""
    id: int
    operation: str  # log_event, end_session
    session_id: str
    payload: Dict[str, Any]
    hash_sha256: str
    status: str  # pending, uploading, failed, success
    attempts: int
    last_error: Optional[str]
    created_at: datetime
    updated_at: datetime


class SQLiteQueue:
    """
    Local SQLite queue for offline operation.

    Items are delivered in insertion order and retried on failure.
    """

    OPERATIONS = ("log_event", "end_session")

    CREATE_TABLE = """
        CREATE TABLE IF NOT EXISTS delivery_queue (
            id INTEGER PRIMARY KEY AUTOINCREMENT,
            operation TEXT NOT NULL,
            session_id TEXT NOT NULL,
            payload TEXT NOT NULL,
            hash_sha256 TEXT NOT NULL,
            status TEXT DEFAULT 'pending',
            attempts INTEGER DEFAULT 0,
            last_error TEXT,
            created_at TEXT NOT NULL,
            updated_at TEXT NOT NULL
        )
    """

    CREATE_INDEX = """
        CREATE INDEX IF NOT EXISTS idx_queue_status ON delivery_queue(status)
    """

    def __init__(self, db_path: Optional[Path] = None):
        """
        Initialize SQLite queue.

        Args:
            db_path: Path to SQLite database file (global config if None)
        """
        if db_path is None:
            from interview_monitor.app.config import get_config
            db_path = get_config().queue_db
        self.db_path = Path(db_path)

        self._lock = threading.Lock()
        self._init_db()

    def _init_db(self):
        """Initialize database schema."""
        self.db_path.parent.mkdir(parents=True, exist_ok=True)

        with self._get_connection() as conn:
            conn.execute(self.CREATE_TABLE)
            conn.execute(self.CREATE_INDEX)
            conn.commit()

        logger.debug(f"SQLite queue initialized: {self.db_path}")

    def _get_connection(self) -> sqlite3.Connection:
        """Get a database connection."""
        conn = sqlite3.connect(str(self.db_path))
        conn.row_factory = sqlite3.Row
        return conn

    def enqueue(self, operation: str, session_id: str, payload: Dict[str, Any]) -> int:
        """
        Add a write to the queue.

        Args:
            operation: One of OPERATIONS
            session_id: Target session
            payload: Data to deliver (JSON serialized)

        Returns:
            Queue item ID
        """
        if operation not in self.OPERATIONS:
            raise ValueError(f"Unknown queue operation: {operation}")

        now = datetime.now().isoformat()
        body = json.dumps(payload, default=str)

        with self._lock:
            with self._get_connection() as conn:
                cursor = conn.execute(
                    """
                    INSERT INTO delivery_queue
                    (operation, session_id, payload, hash_sha256, status,
                     attempts, created_at, updated_at)
                    VALUES (?, ?, ?, ?, 'pending', 0, ?, ?)
                    """,
                    (
                        operation,
                        session_id,
                        body,
                        payload_hash(json.loads(body)),
                        now,
                        now
                    )
                )
                conn.commit()
                item_id = cursor.lastrowid

        logger.debug(f"Enqueued {operation} #{item_id} for session {session_id}")
        return item_id

    def dequeue(self) -> Optional[QueueItem]:
        """
        Claim the oldest pending item.

        Returns:
            QueueItem marked 'uploading', or None if nothing is pending
        """
        with self._lock:
            with self._get_connection() as conn:
                row = conn.execute(
                    """
                    SELECT * FROM delivery_queue
                    WHERE status = 'pending'
                    ORDER BY id ASC
                    LIMIT 1
                    """
                ).fetchone()

                if not row:
                    return None

                now = datetime.now()
                conn.execute(
                    """
                    UPDATE delivery_queue
                    SET status = 'uploading', updated_at = ?
                    WHERE id = ?
                    """,
                    (now.isoformat(), row['id'])
                )
                conn.commit()

                item = self._row_to_item(row)
                item.status = 'uploading'
                item.updated_at = now
                return item

    def mark_success(self, item_id: int):
        """Mark an item as delivered."""
        self._set_status(item_id, 'success')
        logger.debug(f"Queue item {item_id} marked success")

    def mark_failed(self, item_id: int, error: str):
        """Mark an item as failed with error."""
        with self._lock:
            with self._get_connection() as conn:
                conn.execute(
                    """
                    UPDATE delivery_queue
                    SET status = 'failed',
                        last_error = ?,
                        attempts = attempts + 1,
                        updated_at = ?
                    WHERE id = ?
                    """,
                    (error, datetime.now().isoformat(), item_id)
                )
                conn.commit()

        logger.debug(f"Queue item {item_id} marked failed: {error}")

    def retry_failed(self, max_attempts: int = 5) -> int:
        """
        Reset failed items for retry.

        Returns:
            Number of items reset
        """
        with self._lock:
            with self._get_connection() as conn:
                cursor = conn.execute(
                    """
                    UPDATE delivery_queue
                    SET status = 'pending', updated_at = ?
                    WHERE status = 'failed' AND attempts < ?
                    """,
                    (datetime.now().isoformat(), max_attempts)
                )
                conn.commit()
                return cursor.rowcount

    def requeue_interrupted(self) -> int:
        """Return items left 'uploading' by a previous run to pending."""
        with self._lock:
            with self._get_connection() as conn:
                cursor = conn.execute(
                    """
                    UPDATE delivery_queue
                    SET status = 'pending', updated_at = ?
                    WHERE status = 'uploading'
                    """,
                    (datetime.now().isoformat(),)
                )
                conn.commit()
                return cursor.rowcount

    def get_pending_count(self) -> int:
        """Get count of pending items."""
        return self._count('pending')

    def get_failed_count(self) -> int:
        """Get count of failed items."""
        return self._count('failed')

    def cleanup_old(self, days: int = 7) -> int:
        """
        Remove old delivered items.

        Args:
            days: Remove items older than this many days
        """
        cutoff = (datetime.now() - timedelta(days=days)).isoformat()

        with self._lock:
            with self._get_connection() as conn:
                cursor = conn.execute(
                    """
                    DELETE FROM delivery_queue
                    WHERE status = 'success' AND created_at < ?
                    """,
                    (cutoff,)
                )
                conn.commit()

        if cursor.rowcount > 0:
            logger.info(f"Cleaned up {cursor.rowcount} old queue items")
        return cursor.rowcount

    def get_all_pending(self) -> List[QueueItem]:
        """Get all pending items in delivery order."""
        with self._get_connection() as conn:
            rows = conn.execute(
                "SELECT * FROM delivery_queue WHERE status = 'pending' ORDER BY id"
            ).fetchall()

        return [self._row_to_item(row) for row in rows]

    def _set_status(self, item_id: int, status: str):
        with self._lock:
            with self._get_connection() as conn:
                conn.execute(
                    """
                    UPDATE delivery_queue
                    SET status = ?, updated_at = ?
                    WHERE id = ?
                    """,
                    (status, datetime.now().isoformat(), item_id)
                )
                conn.commit()

    def _count(self, status: str) -> int:
        with self._get_connection() as conn:
            row = conn.execute(
                "SELECT COUNT(*) as count FROM delivery_queue WHERE status = ?",
                (status,)
            ).fetchone()
            return row['count'] if row else 0

    @staticmethod
    def _row_to_item(row: sqlite3.Row) -> QueueItem:
        return QueueItem(
            id=row['id'],
            operation=row['operation'],
            session_id=row['session_id'],
            payload=json.loads(row['payload']),
            hash_sha256=row['hash_sha256'],
            status=row['status'],
            attempts=row['attempts'],
            last_error=row['last_error'],
            created_at=datetime.fromisoformat(row['created_at']),
            updated_at=datetime.fromisoformat(row['updated_at'])
        )


# Global instance
_queue: Optional[SQLiteQueue] = None


def get_sqlite_queue() -> SQLiteQueue:
    """Get global SQLite queue instance."""
    global _queue
    if _queue is None:
        _queue = SQLiteQueue()
    return _queue
