"""
Tests for the periodic task used by session ticks.
"""

import threading
import time

import pytest

from interview_monitor.app.session.scheduler import PeriodicTask


def wait_for(predicate, timeout=5.0):
    deadline = time.monotonic() + timeout
    while not predicate():
        if time.monotonic() > deadline:
            return False
        time.sleep(0.005)
    return True


class TestPeriodicTask:
    """Tests for start/cancel and tick behavior."""

    def test_invalid_interval(self):
        with pytest.raises(ValueError):
            PeriodicTask(0, lambda: None)

    @pytest.mark.timeout(10)
    def test_ticks_repeatedly(self):
        calls = []
        task = PeriodicTask(0.01, lambda: calls.append(time.monotonic()))

        task.start()
        assert wait_for(lambda: len(calls) >= 3)
        task.cancel()

        assert not task.running
        assert task.tick_count >= 3

    @pytest.mark.timeout(10)
    def test_no_tick_after_cancel(self):
        calls = []
        task = PeriodicTask(0.005, lambda: calls.append(1))
        task.start()
        wait_for(lambda: len(calls) >= 2)

        task.cancel()
        count = len(calls)
        time.sleep(0.05)

        assert len(calls) == count

    @pytest.mark.timeout(10)
    def test_cancel_waits_for_inflight_tick(self):
        entered = threading.Event()
        finished = []

        def slow():
            entered.set()
            time.sleep(0.1)
            finished.append(1)

        task = PeriodicTask(0.01, slow)
        task.start()
        assert entered.wait(5)

        task.cancel()

        assert finished

    @pytest.mark.timeout(10)
    def test_ticks_never_overlap(self):
        active = []
        overlap = []
        lock = threading.Lock()

        def tick():
            with lock:
                active.append(1)
                overlap.append(len(active))
            time.sleep(0.02)
            with lock:
                active.pop()

        task = PeriodicTask(0.005, tick)
        task.start()
        wait_for(lambda: len(overlap) >= 3)
        task.cancel()

        assert max(overlap) == 1

    @pytest.mark.timeout(10)
    def test_callback_error_keeps_ticking(self):
        calls = []

        def flaky():
            calls.append(1)
            if len(calls) == 1:
                raise RuntimeError("boom")

        task = PeriodicTask(0.01, flaky)
        task.start()
        assert wait_for(lambda: len(calls) >= 3)
        task.cancel()

    @pytest.mark.timeout(10)
    def test_cancel_from_callback(self):
        calls = []
        task = None

        def once():
            calls.append(1)
            task.cancel()

        task = PeriodicTask(0.01, once)
        task.start()
        wait_for(lambda: calls)
        time.sleep(0.05)

        assert calls == [1]

    def test_cancel_without_start(self):
        task = PeriodicTask(1.0, lambda: None)

        task.cancel()

        assert not task.running
