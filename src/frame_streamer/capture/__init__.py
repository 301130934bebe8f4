"""
Capture Module
==============

Frame producers for StreamSession.

This module is the producer side of the pipeline:
    - FrameSource: Protocol the session depends on
    - MockFrameSource: Deterministic synthetic frames
    - CameraFrameSource: OpenCV camera capture
    - LatestFrameSlot: Single-slot handoff from capture thread to timer
    - encode_frame_png_b64: Frame to base64 PNG payload

Example:
    from frame_streamer.capture import MockFrameSource

    source = MockFrameSource(width=64, height=48)
    source.start()
    payload = source.latest_payload()
    source.stop()
"""

from frame_streamer.capture.encoder import (
    FrameEncodeError,
    encode_frame_png,
    encode_frame_png_b64,
)
from frame_streamer.capture.slot import LatestFrameSlot
from frame_streamer.capture.source import (
    CaptureError,
    FrameSource,
    MockFrameSource,
    ThreadedFrameSource,
)
from frame_streamer.capture.camera import CameraFrameSource


__all__ = [
    "CaptureError",
    "FrameSource",
    "ThreadedFrameSource",
    "MockFrameSource",
    "CameraFrameSource",
    "LatestFrameSlot",
    "FrameEncodeError",
    "encode_frame_png",
    "encode_frame_png_b64",
]
