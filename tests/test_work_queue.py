"""
Tests for the Reliability Module — Work Queue and backoff.
"""

import threading

import pytest

from tls_secret_injector.reliability.work_queue import BackoffPolicy, WorkQueue


class FakeClock:
    """Manually advanced monotonic clock."""

    def __init__(self):
        self.now = 1000.0

    def __call__(self):
        return self.now

    def advance(self, seconds):
        self.now += seconds


@pytest.fixture
def clock():
    return FakeClock()


@pytest.fixture
def queue(clock):
    return WorkQueue("test", clock=clock)


class TestBackoffPolicy:
    """Tests for BackoffPolicy."""

    def test_starts_at_base_delay(self):
        assert BackoffPolicy().delay(1) == pytest.approx(0.005)

    def test_doubles_per_failure(self):
        policy = BackoffPolicy()
        assert policy.delay(2) == pytest.approx(0.01)
        assert policy.delay(5) == pytest.approx(0.08)

    def test_caps_at_maximum(self):
        assert BackoffPolicy().delay(50) == 1000.0
        assert BackoffPolicy().delay(10_000) == 1000.0

    def test_no_failures_no_delay(self):
        assert BackoffPolicy().delay(0) == 0.0


class TestWorkQueue:
    """Tests for WorkQueue."""

    def test_fifo_order(self, queue):
        queue.add("a")
        queue.add("b")

        assert queue.get(timeout=0) == "a"
        assert queue.get(timeout=0) == "b"

    def test_duplicate_adds_coalesce(self, queue):
        queue.add("a")
        queue.add("a")

        assert len(queue) == 1

    def test_get_times_out_when_empty(self, queue):
        assert queue.get(timeout=0) is None

    def test_key_added_while_processing_waits_for_done(self, queue):
        queue.add("a")
        key = queue.get(timeout=0)

        queue.add("a")
        assert queue.get(timeout=0) is None

        queue.done(key)
        assert queue.get(timeout=0) == "a"

    def test_done_without_re_add_does_not_requeue(self, queue):
        queue.add("a")
        queue.done(queue.get(timeout=0))

        assert len(queue) == 0

    def test_rate_limited_key_waits_for_backoff(self, queue, clock):
        delay = queue.add_rate_limited("a")

        assert delay == pytest.approx(0.005)
        assert queue.get(timeout=0) is None

        clock.advance(0.01)
        assert queue.get(timeout=0) == "a"

    def test_backoff_grows_until_forget(self, queue):
        first = queue.add_rate_limited("a")
        second = queue.add_rate_limited("a")

        assert second == pytest.approx(first * 2)
        assert queue.num_requeues("a") == 2

        queue.forget("a")
        assert queue.num_requeues("a") == 0

    def test_delayed_key_coalesces_with_pending(self, queue, clock):
        queue.add("a")
        queue.add_after("a", 1)
        clock.advance(2)

        assert queue.get(timeout=0) == "a"
        assert queue.get(timeout=0) is None

    def test_shutdown_releases_waiting_getters(self):
        queue = WorkQueue("test")
        results = []
        worker = threading.Thread(target=lambda: results.append(queue.get()))
        worker.start()

        queue.shutdown()
        worker.join(timeout=5)

        assert not worker.is_alive()
        assert results == [None]

    def test_add_after_shutdown_is_ignored(self, queue):
        queue.shutdown()
        queue.add("a")

        assert len(queue) == 0

    def test_blocking_get_wakes_on_add(self):
        queue = WorkQueue("test")
        results = []
        worker = threading.Thread(target=lambda: results.append(queue.get(timeout=5)))
        worker.start()

        queue.add("a")
        worker.join(timeout=5)

        assert results == ["a"]

    def test_stats(self, queue):
        queue.add("a")
        queue.add("b")
        queue.get(timeout=0)
        queue.add_rate_limited("c")

        stats = queue.stats().to_dict()

        assert stats["pending"] == 1
        assert stats["processing"] == 1
        assert stats["waiting"] == 1
        assert stats["failures"] == {"c": 1}
