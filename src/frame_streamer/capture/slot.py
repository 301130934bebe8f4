"""
Latest Frame Slot
=================

Single-slot handoff between a capture thread and the frame timer.

The capture side overwrites the slot with every new frame; the timer side
reads whatever is newest. Older frames are simply replaced, never queued.
"""

import threading
from typing import Generic, Optional, TypeVar


T = TypeVar("T")


class LatestFrameSlot(Generic[T]):
    """Lock-guarded holder for the most recent captured frame."""

    def __init__(self) -> None:
        self._lock = threading.Lock()
        self._value: Optional[T] = None
        self._version: int = 0

    @property
    def version(self) -> int:
        """Number of times the slot has been written."""
        with self._lock:
            return self._version

    def put(self, value: T) -> None:
        with self._lock:
            self._value = value
            self._version += 1

    def peek(self) -> Optional[T]:
        """Return the newest value without clearing the slot."""
        with self._lock:
            return self._value

    def take(self) -> Optional[T]:
        """Return the newest value and clear the slot."""
        with self._lock:
            value = self._value
            self._value = None
            return value

    def clear(self) -> None:
        with self._lock:
            self._value = None
