"""
Tests for the local SQLite delivery queue.
"""

import sqlite3

import pytest

from interview_monitor.app.db.sqlite_queue import SQLiteQueue, payload_hash


@pytest.fixture
def queue(tmp_path):
    return SQLiteQueue(tmp_path / "queue.db")


class TestSQLiteQueue:
    """Tests for enqueue/dequeue and retry bookkeeping."""

    def test_enqueue_dequeue(self, queue):
        payload = {"type": "NO_FACE", "session_time_ms": 11000}

        item_id = queue.enqueue("log_event", "s1", payload)
        item = queue.dequeue()

        assert item.id == item_id
        assert item.operation == "log_event"
        assert item.session_id == "s1"
        assert item.payload == payload
        assert item.status == "uploading"
        assert item.hash_sha256 == payload_hash(payload)
        assert queue.dequeue() is None

    def test_insertion_order(self, queue):
        for i in range(3):
            queue.enqueue("log_event", "s1", {"n": i})
        queue.enqueue("end_session", "s1", {"duration_sec": 3.0})

        operations = []
        item = queue.dequeue()
        while item is not None:
            operations.append((item.operation, item.payload))
            item = queue.dequeue()

        assert operations == [
            ("log_event", {"n": 0}),
            ("log_event", {"n": 1}),
            ("log_event", {"n": 2}),
            ("end_session", {"duration_sec": 3.0}),
        ]

    def test_unknown_operation(self, queue):
        with pytest.raises(ValueError):
            queue.enqueue("delete_session", "s1", {})

    def test_mark_failed_and_retry(self, queue):
        queue.enqueue("log_event", "s1", {"n": 1})
        item = queue.dequeue()

        queue.mark_failed(item.id, "HTTP 503")

        assert queue.get_failed_count() == 1
        assert queue.retry_failed(max_attempts=5) == 1
        retried = queue.dequeue()
        assert retried.id == item.id
        assert retried.attempts == 1
        assert retried.last_error == "HTTP 503"

    def test_retry_respects_max_attempts(self, queue):
        queue.enqueue("log_event", "s1", {"n": 1})
        item = queue.dequeue()
        queue.mark_failed(item.id, "first")
        queue.retry_failed()
        queue.dequeue()
        queue.mark_failed(item.id, "second")

        assert queue.retry_failed(max_attempts=2) == 0
        assert queue.get_failed_count() == 1

    def test_mark_success(self, queue):
        queue.enqueue("log_event", "s1", {"n": 1})
        item = queue.dequeue()

        queue.mark_success(item.id)

        assert queue.get_pending_count() == 0
        assert queue.get_failed_count() == 0

    def test_requeue_interrupted(self, queue, tmp_path):
        queue.enqueue("log_event", "s1", {"n": 1})
        queue.dequeue()

        reopened = SQLiteQueue(tmp_path / "queue.db")

        assert reopened.requeue_interrupted() == 1
        assert reopened.get_pending_count() == 1

    def test_get_all_pending(self, queue):
        queue.enqueue("log_event", "s1", {"n": 1})
        queue.enqueue("log_event", "s2", {"n": 2})

        pending = queue.get_all_pending()

        assert [item.session_id for item in pending] == ["s1", "s2"]

    def test_cleanup_old(self, queue):
        queue.enqueue("log_event", "s1", {"n": 1})
        item = queue.dequeue()
        queue.mark_success(item.id)
        with sqlite3.connect(str(queue.db_path)) as conn:
            conn.execute("UPDATE delivery_queue SET created_at = '2000-01-01T00:00:00'")

        assert queue.cleanup_old(days=7) == 1

    def test_payload_hash_is_key_order_independent(self):
        assert payload_hash({"a": 1, "b": 2}) == payload_hash({"b": 2, "a": 1})
        assert payload_hash({"a": 1}) != payload_hash({"a": 2})
