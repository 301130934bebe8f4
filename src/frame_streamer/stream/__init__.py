"""
Stream Module
=============

Frame queueing and TCP transmission components.

This module provides the transport layer for the frame streamer:
    - BoundedFrameQueue: Thread-safe bounded FIFO (drops newest on overflow)
    - StreamSession: TCP connection, frame timer, and drain loop
    - RepeatingTimer: Periodic frame production schedule

Example:
    from frame_streamer.capture import MockFrameSource
    from frame_streamer.stream import StreamSession, ConnectionTimedOut

    session = StreamSession(source=MockFrameSource(), max_queue_size=50)
    try:
        session.start("127.0.0.1", 9000, interval=0.1)
    except ConnectionTimedOut as e:
        print(e.detail)

    # Frames can also be pushed directly
    session.push("aGVsbG8=")

    session.stop()
"""

from frame_streamer.stream.queue import BoundedFrameQueue
from frame_streamer.stream.timer import RepeatingTimer
from frame_streamer.stream.session import (
    DEFAULT_CONNECT_TIMEOUT,
    ConnectionTimedOut,
    ProducerStartError,
    SessionState,
    SessionStateError,
    StreamSession,
    StreamSessionMetrics,
    TransmissionError,
)


__all__ = [
    "BoundedFrameQueue",
    "RepeatingTimer",
    "StreamSession",
    "StreamSessionMetrics",
    "SessionState",
    "ConnectionTimedOut",
    "SessionStateError",
    "ProducerStartError",
    "TransmissionError",
    "DEFAULT_CONNECT_TIMEOUT",
]
