"""
FrameStreamer
=============

Streams encoded camera frames to a remote TCP server.

Frames are captured by a frame source, encoded as base64 PNG, pushed into
a bounded queue at a fixed interval, and drained over a TCP connection by
a background thread, one newline-terminated payload per frame.

Components:
    - stream: BoundedFrameQueue, StreamSession, RepeatingTimer
    - capture: Frame sources and the PNG/base64 encoder
    - models: Control API schemas
    - main: FastAPI control service

Example:
    from frame_streamer.capture import MockFrameSource
    from frame_streamer.stream import StreamSession

    session = StreamSession(source=MockFrameSource())
    session.start("127.0.0.1", 9000, interval=0.1)
    ...
    session.stop()
"""

__version__ = "0.1.0"

__all__ = [
    "__version__",
]
