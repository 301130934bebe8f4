"""
Frame Queue Tests
=================

Capacity, ordering and thread-safety of BoundedFrameQueue.
"""

import logging
import threading
import time

import pytest

from frame_streamer.stream import BoundedFrameQueue


class TestBoundedFrameQueue:
    """Single-threaded queue behavior."""

    def test_drops_newest_when_full(self, caplog):
        """Capacity 3, push A-D: D is dropped with a warning."""
        queue = BoundedFrameQueue(maxsize=3)

        with caplog.at_level(logging.WARNING):
            results = [queue.push(p) for p in ("A", "B", "C", "D")]

        assert results == [True, True, True, False]
        assert queue.size == 3
        assert queue.dropped_count == 1
        assert "full queue" in caplog.text
        assert [queue.pop_front() for _ in range(3)] == ["A", "B", "C"]

    def test_fifo_without_loss_under_capacity(self):
        queue = BoundedFrameQueue(maxsize=10)
        frames = [f"frame{i}" for i in range(10)]

        for frame in frames:
            assert queue.push(frame)

        assert [queue.pop_front() for _ in frames] == frames
        assert queue.pop_front() is None

    def test_pop_front_on_empty_returns_none(self):
        queue = BoundedFrameQueue(maxsize=1)
        assert queue.pop_front() is None
        assert queue.size == 0

    def test_space_frees_after_pop(self):
        queue = BoundedFrameQueue(maxsize=1)
        assert queue.push("a")
        assert not queue.push("b")
        assert queue.pop_front() == "a"
        assert queue.push("c")
        assert queue.pop_front() == "c"

    def test_get_times_out_on_empty(self):
        queue = BoundedFrameQueue(maxsize=2)

        start = time.monotonic()
        assert queue.get(timeout=0.05) is None
        assert time.monotonic() - start >= 0.04

    def test_get_wakes_on_push(self):
        queue = BoundedFrameQueue(maxsize=2)
        threading.Timer(0.05, queue.push, args=("late",)).start()

        assert queue.get(timeout=2.0) == "late"

    def test_clear_and_metrics(self):
        queue = BoundedFrameQueue(maxsize=2)
        for payload in ("a", "b", "c"):
            queue.push(payload)

        assert queue.metrics() == {
            "size": 2,
            "maxsize": 2,
            "dropped_count": 1,
            "total_pushed": 3,
        }
        assert queue.clear() == 2
        assert len(queue) == 0

    def test_rejects_invalid_maxsize(self):
        with pytest.raises(ValueError):
            BoundedFrameQueue(maxsize=0)


class TestBoundedFrameQueueConcurrency:
    """Multi-threaded capacity and ordering guarantees."""

    def test_concurrent_pushes_never_exceed_capacity(self):
        queue = BoundedFrameQueue(maxsize=25)
        barrier = threading.Barrier(8)
        max_seen = []

        def producer(worker: int) -> None:
            barrier.wait()
            for i in range(200):
                queue.push(f"{worker}-{i}")
                max_seen.append(queue.size)

        threads = [threading.Thread(target=producer, args=(w,)) for w in range(8)]
        for t in threads:
            t.start()
        for t in threads:
            t.join()

        assert queue.size == 25
        assert max(max_seen) <= 25
        assert queue.dropped_count == 8 * 200 - 25

    def test_concurrent_producer_consumer_preserves_order(self):
        queue = BoundedFrameQueue(maxsize=1000)
        received = []
        done = threading.Event()

        def consumer() -> None:
            while not done.is_set() or queue.size:
                payload = queue.get(timeout=0.01)
                if payload is not None:
                    received.append(payload)

        thread = threading.Thread(target=consumer)
        thread.start()

        sent = [str(i) for i in range(500)]
        for payload in sent:
            assert queue.push(payload)
        done.set()
        thread.join(timeout=5.0)

        assert received == sent
