"""
Camera Frame Source
===================

OpenCV-backed frame source for a local camera device.
"""

import logging
from typing import Optional

import cv2
import numpy as np

from frame_streamer.capture.source import CaptureError, ThreadedFrameSource


logger = logging.getLogger(__name__)


class CameraFrameSource(ThreadedFrameSource):
    """
    Captures frames from a cv2.VideoCapture device.

    Late frames are discarded implicitly: only the newest frame is kept
    in the slot between timer ticks.

    Attributes:
        device_index: OpenCV device index (0 = default camera)
        width: Requested capture width, or None for the device default
        height: Requested capture height, or None for the device default
    """

    def __init__(
        self,
        device_index: int = 0,
        width: Optional[int] = None,
        height: Optional[int] = None,
    ) -> None:
        super().__init__(name=f"camera-{device_index}")
        self.device_index = device_index
        self.width = width
        self.height = height
        self._capture: Optional[cv2.VideoCapture] = None

    def _open(self) -> None:
        capture = cv2.VideoCapture(self.device_index)
        if not capture.isOpened():
            capture.release()
            raise CaptureError(f"Could not open camera device {self.device_index}")

        if self.width:
            capture.set(cv2.CAP_PROP_FRAME_WIDTH, self.width)
        if self.height:
            capture.set(cv2.CAP_PROP_FRAME_HEIGHT, self.height)

        self._capture = capture
        logger.info(
            f"Camera {self.device_index} opened: "
            f"{int(capture.get(cv2.CAP_PROP_FRAME_WIDTH))}x"
            f"{int(capture.get(cv2.CAP_PROP_FRAME_HEIGHT))}"
        )

    def _read(self) -> Optional[np.ndarray]:
        if self._capture is None:
            return None

        ok, frame = self._capture.read()
        if not ok:
            raise CaptureError(f"Camera {self.device_index} read failed")
        return frame

    def _close(self) -> None:
        if self._capture is not None:
            self._capture.release()
            self._capture = None
