"""
Frame Sources
=============

Producer-side abstraction for StreamSession.

A frame source captures raw frames on its own thread into a LatestFrameSlot.
The session's timer asks for the latest payload once per interval; the
source encodes whatever frame is newest at that moment.

Components:
    - FrameSource: Protocol consumed by StreamSession
    - ThreadedFrameSource: Base class running a capture loop on a thread
    - MockFrameSource: Deterministic synthetic frames for testing

Design Rules:
    - Capture never touches the network
    - Encoding happens on the caller's thread (the timer), not on capture
    - Capture errors are logged; the loop keeps the last good frame
"""

import logging
import threading
import time
from typing import Optional, Protocol

import numpy as np

from frame_streamer.capture.encoder import FrameEncodeError, encode_frame_png_b64
from frame_streamer.capture.slot import LatestFrameSlot


logger = logging.getLogger(__name__)


class CaptureError(Exception):
    """Raised when a frame source cannot be started."""
    pass


class FrameSource(Protocol):
    """
    Protocol for frame producers.

    Implementations:
        - MockFrameSource (synthetic frames, tests and demos)
        - CameraFrameSource (OpenCV VideoCapture)
    """

    def start(self) -> None:
        """Begin capturing. Raises CaptureError on failure."""
        ...

    def stop(self) -> None:
        """Stop capturing and release the device. Idempotent."""
        ...

    def latest_payload(self) -> Optional[str]:
        """
        Encode the newest captured frame.

        Returns:
            Base64 PNG payload, or None if nothing has been captured yet
        """
        ...


class ThreadedFrameSource:
    """
    Base class for sources that poll a device on a background thread.

    Subclasses implement _open(), _read() and _close(). _read() returns a
    frame as np.ndarray, or None when no frame is available this time.
    """

    def __init__(self, name: str = "frame-capture", stop_timeout: float = 2.0) -> None:
        self._name = name
        self.stop_timeout = stop_timeout
        self._slot: LatestFrameSlot[np.ndarray] = LatestFrameSlot()
        self._stop_event = threading.Event()
        self._thread: Optional[threading.Thread] = None
        self._read_errors: int = 0
        self._closing_thread: Optional[threading.Thread] = None

    @property
    def running(self) -> bool:
        return self._thread is not None and self._thread.is_alive()

    @property
    def frames_captured(self) -> int:
        return self._slot.version

    def start(self) -> None:
        if self.running:
            return

        if self._closing_thread is not None and self._closing_thread.is_alive():
            raise CaptureError(f"{self._name} is still releasing the device")

        try:
            self._open()
        except CaptureError:
            raise
        except Exception as e:
            raise CaptureError(f"Failed to open {self._name}: {e}") from e

        # Each capture thread gets its own event so a late-exiting thread
        # from a previous stop() is never revived
        self._stop_event = threading.Event()
        self._thread = threading.Thread(
            target=self._capture_loop,
            args=(self._stop_event,),
            name=self._name,
            daemon=True,
        )
        self._thread.start()
        logger.info(f"{type(self).__name__} started")

    def stop(self) -> None:
        if self._thread is None:
            return

        thread, self._thread = self._thread, None
        self._stop_event.set()
        thread.join(timeout=self.stop_timeout)
        if thread.is_alive():
            # The capture thread releases the device once read() returns
            self._closing_thread = thread
            logger.warning(
                f"{type(self).__name__} capture thread still busy after "
                f"{self.stop_timeout}s, device will close when it exits"
            )
        self._slot.clear()
        logger.info(f"{type(self).__name__} stopped")

    def latest_payload(self) -> Optional[str]:
        frame = self._slot.peek()
        if frame is None:
            return None

        try:
            return encode_frame_png_b64(frame)
        except FrameEncodeError as e:
            logger.warning(f"Dropping frame that failed to encode: {e}")
            return None

    def _capture_loop(self, stop_event: threading.Event) -> None:
        try:
            while not stop_event.is_set():
                try:
                    frame = self._read()
                except Exception as e:
                    self._read_errors += 1
                    logger.error(f"Capture read failed: {e}")
                    stop_event.wait(0.1)
                    continue

                if frame is not None and not stop_event.is_set():
                    self._slot.put(frame)
        finally:
            self._close()

    def _open(self) -> None:
        raise NotImplementedError

    def _read(self) -> Optional[np.ndarray]:
        raise NotImplementedError

    def _close(self) -> None:
        pass


class MockFrameSource(ThreadedFrameSource):
    """
    Deterministic synthetic frame source.

    Renders a horizontal gradient whose offset advances with every frame,
    so consecutive payloads differ while staying reproducible.

    Attributes:
        width: Frame width in pixels
        height: Frame height in pixels
        fps: Capture rate of the synthetic device
    """

    def __init__(self, width: int = 64, height: int = 48, fps: float = 30.0) -> None:
        super().__init__(name="mock-capture")
        if fps <= 0:
            raise ValueError("fps must be > 0")

        self.width = width
        self.height = height
        self.fps = fps
        self._counter: int = 0
        self._ramp = np.tile(
            np.linspace(0, 255, width, dtype=np.float32),
            (height, 1),
        )

    def _open(self) -> None:
        self._counter = 0

    def _read(self) -> Optional[np.ndarray]:
        time.sleep(1.0 / self.fps)

        offset = (self._counter * 8) % 256
        self._counter += 1

        gray = ((self._ramp + offset) % 256).astype(np.uint8)
        return np.dstack([gray, gray, gray])
