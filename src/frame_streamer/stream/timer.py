"""
Repeating Timer
===============

Background timer that invokes a callback at a fixed interval until cancelled.

Used by StreamSession to schedule periodic frame production.
"""

import logging
import threading
from typing import Callable, Optional


logger = logging.getLogger(__name__)


class RepeatingTimer:
    """
    Fires `callback` every `interval` seconds on a daemon thread.

    The first tick happens one interval after start(). Exceptions raised
    by the callback are logged and do not stop the schedule.
    """

    def __init__(
        self,
        interval: float,
        callback: Callable[[], None],
        name: str = "frame-timer",
    ) -> None:
        if interval <= 0:
            raise ValueError("interval must be > 0")

        self.interval = interval
        self._callback = callback
        self._name = name
        self._cancelled = threading.Event()
        self._thread: Optional[threading.Thread] = None

    @property
    def running(self) -> bool:
        """Whether the timer thread is alive and not cancelled."""
        return (
            self._thread is not None
            and self._thread.is_alive()
            and not self._cancelled.is_set()
        )

    def start(self) -> None:
        if self._thread is not None:
            raise RuntimeError("RepeatingTimer can only be started once")

        self._thread = threading.Thread(
            target=self._run,
            name=self._name,
            daemon=True,
        )
        self._thread.start()

    def cancel(self) -> None:
        """Stop scheduling further ticks. Safe to call more than once."""
        self._cancelled.set()

    def _run(self) -> None:
        # Event.wait doubles as the sleep so cancel() interrupts it
        while not self._cancelled.wait(self.interval):
            try:
                self._callback()
            except Exception as e:
                logger.error(f"Timer callback failed: {e}")
