"""
Frame Encoder
=============

Dedicated module for encoding OpenCV matrices into text-safe payloads.

Design Rules:
    - This is the ONLY place in the codebase that encodes images
    - Validates shape and dtype before encoding
    - Fails fast on invalid frames
    - Output is base64 PNG with no trailing newline (the transport adds it)
"""

import base64
import logging

import cv2
import numpy as np


logger = logging.getLogger(__name__)


class FrameEncodeError(Exception):
    """Raised when frame encoding fails."""
    pass


def _validate(image: np.ndarray) -> None:
    if not isinstance(image, np.ndarray):
        raise FrameEncodeError(f"Expected np.ndarray, got {type(image).__name__}")

    if image.dtype != np.uint8:
        raise FrameEncodeError(f"Invalid dtype: {image.dtype}")

    if image.ndim == 2:
        return

    if image.ndim != 3 or image.shape[2] not in (3, 4):
        raise FrameEncodeError(f"Invalid image shape: {image.shape}")


def encode_frame_png(image: np.ndarray) -> bytes:
    """
    Encode a BGR (or grayscale) frame to PNG bytes.

    Args:
        image: Frame as np.ndarray (H, W) or (H, W, 3|4), dtype=uint8

    Returns:
        PNG file bytes

    Raises:
        FrameEncodeError: If the frame is invalid or encoding fails
    """
    _validate(image)

    ok, encoded = cv2.imencode(".png", image)
    if not ok:
        raise FrameEncodeError(
            f"cv2.imencode failed for frame of shape {image.shape}"
        )

    return encoded.tobytes()


def encode_frame_png_b64(image: np.ndarray) -> str:
    """
    Encode a frame to a base64 PNG string.

    This is the payload format sent over the wire, one frame per line.

    Args:
        image: Frame as np.ndarray, dtype=uint8

    Returns:
        ASCII base64 string of the PNG bytes

    Raises:
        FrameEncodeError: If the frame is invalid or encoding fails
    """
    return base64.b64encode(encode_frame_png(image)).decode("ascii")
