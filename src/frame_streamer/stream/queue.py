"""
Bounded Frame Queue
===================

Thread-safe bounded FIFO for encoded frame payloads.

This module provides the BoundedFrameQueue class, which decouples the
frame production cadence from the transmission cadence of a StreamSession.

Design Rules:
    - Fixed maximum size (drops NEWEST on overflow)
    - Capacity check and append happen under the same lock
    - Never blocks the producer
    - Does NOT inspect or modify payloads
"""

import logging
import threading
from collections import deque
from typing import Deque, Optional


logger = logging.getLogger(__name__)


class BoundedFrameQueue:
    """
    Thread-safe bounded queue of frame payloads.

    Pushes beyond capacity are rejected rather than queued, so the
    producer is never blocked and memory use stays bounded. Removal
    is always from the front; insertion order is transmission order.

    Attributes:
        maxsize: Maximum number of payloads held at once
        dropped_count: Number of payloads rejected because the queue was full

    Example:
        queue = BoundedFrameQueue(maxsize=50)

        # Producer thread
        queue.push(payload)

        # Consumer thread
        payload = queue.get(timeout=0.1)
    """

    def __init__(self, maxsize: int = 50) -> None:
        """
        Initialize frame queue.

        Args:
            maxsize: Maximum payloads to hold. Must be >= 1.
        """
        if maxsize < 1:
            raise ValueError("maxsize must be >= 1")

        self._maxsize = maxsize
        self._items: Deque[str] = deque()
        self._not_empty = threading.Condition(threading.Lock())
        self._dropped_count: int = 0
        self._total_pushed: int = 0

    @property
    def maxsize(self) -> int:
        """Maximum queue size."""
        return self._maxsize

    @property
    def size(self) -> int:
        """Current number of payloads in the queue."""
        with self._not_empty:
            return len(self._items)

    @property
    def dropped_count(self) -> int:
        """Number of payloads dropped due to overflow."""
        with self._not_empty:
            return self._dropped_count

    @property
    def total_pushed(self) -> int:
        """Total push attempts, accepted or dropped."""
        with self._not_empty:
            return self._total_pushed

    def __len__(self) -> int:
        return self.size

    def push(self, payload: str) -> bool:
        """
        Append payload to the back of the queue unless it is full.

        Args:
            payload: Encoded frame payload

        Returns:
            True if the payload was queued, False if it was dropped.
        """
        with self._not_empty:
            self._total_pushed += 1

            if len(self._items) >= self._maxsize:
                self._dropped_count += 1
                dropped = self._dropped_count
            else:
                self._items.append(payload)
                self._not_empty.notify()
                return True

        logger.warning(
            f"Pushed to full queue, dropped newest frame. "
            f"Total dropped: {dropped}"
        )
        return False

    def pop_front(self) -> Optional[str]:
        """
        Remove and return the front payload without waiting.

        Returns:
            Front payload if available, None otherwise.
        """
        with self._not_empty:
            if not self._items:
                return None
            return self._items.popleft()

    def get(self, timeout: Optional[float] = None) -> Optional[str]:
        """
        Remove and return the front payload, waiting if the queue is empty.

        Args:
            timeout: Maximum seconds to wait. None = wait forever.

        Returns:
            Front payload, or None if timeout occurred.
        """
        with self._not_empty:
            if not self._not_empty.wait_for(lambda: self._items, timeout=timeout):
                return None
            return self._items.popleft()

    def clear(self) -> int:
        """
        Discard all pending payloads.

        Returns:
            Number of payloads cleared.
        """
        with self._not_empty:
            cleared = len(self._items)
            self._items.clear()
        return cleared

    def metrics(self) -> dict:
        """
        Get queue metrics for observability.

        Returns:
            Dict with size, maxsize, dropped_count, total_pushed
        """
        with self._not_empty:
            return {
                "size": len(self._items),
                "maxsize": self._maxsize,
                "dropped_count": self._dropped_count,
                "total_pushed": self._total_pushed,
            }
