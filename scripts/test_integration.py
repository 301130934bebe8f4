#!/usr/bin/env python3
"""
Loopback Integration Test Script
================================

Standalone script to exercise the stream transport end to end.

This script:
    1. Starts a line-oriented TCP receiver on loopback (or uses --host/--port)
    2. Streams mock frames through a StreamSession for a fixed duration
    3. Logs transport stats every few seconds
    4. Reports a final summary and verifies each received line decodes as PNG

Usage:
    python scripts/test_integration.py --duration 10
    python scripts/test_integration.py --host 192.168.1.20 --port 9000
"""

import argparse
import base64
import logging
import os
import socket
import sys
import threading
import time

# Add src to path for imports
sys.path.insert(0, os.path.join(os.path.dirname(__file__), "..", "src"))

from frame_streamer.capture import MockFrameSource
from frame_streamer.stream import ConnectionTimedOut, StreamSession


logging.basicConfig(
    level=logging.INFO,
    format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
    datefmt="%Y-%m-%dT%H:%M:%S",
)
logger = logging.getLogger(__name__)

PNG_SIGNATURE = b"\x89PNG\r\n\x1a\n"


class LineReceiver:
    """Accepts one connection and collects newline-terminated lines."""

    def __init__(self) -> None:
        self._server = socket.socket(socket.AF_INET, socket.SOCK_STREAM)
        self._server.setsockopt(socket.SOL_SOCKET, socket.SO_REUSEADDR, 1)
        self._server.bind(("127.0.0.1", 0))
        self._server.listen(1)
        self.port = self._server.getsockname()[1]
        self.lines = []
        self._thread = threading.Thread(target=self._run, daemon=True)
        self._thread.start()

    def _run(self) -> None:
        conn, _ = self._server.accept()
        buf = b""
        with conn:
            while True:
                data = conn.recv(65536)
                if not data:
                    break
                buf += data
                while b"\n" in buf:
                    line, buf = buf.split(b"\n", 1)
                    self.lines.append(line)

    def close(self) -> None:
        self._server.close()
        self._thread.join(timeout=2.0)


def run_test(host: str, port: int, duration: int, interval: float, queue_size: int) -> dict:
    logger.info("=" * 60)
    logger.info("Loopback Integration Test")
    logger.info("=" * 60)
    logger.info(f"Target: {host}:{port}")
    logger.info(f"Duration: {duration} seconds, interval: {interval}s")
    logger.info("=" * 60)

    session = StreamSession(source=MockFrameSource(), max_queue_size=queue_size)
    try:
        session.start(host, port, interval)
    except ConnectionTimedOut as e:
        logger.error(f"Could not connect: {e.detail}")
        return {"frames_sent": 0}

    start_time = time.time()
    last_report = start_time

    try:
        while time.time() - start_time < duration and session.connected:
            if time.time() - last_report >= 2.0:
                queue_metrics = session.queue.metrics()
                logger.info("-" * 40)
                logger.info(f"  Connected: {session.connected}")
                logger.info(f"  Frames produced: {session.metrics.frames_produced}")
                logger.info(f"  Frames sent: {session.metrics.frames_sent}")
                logger.info(f"  Queue: {queue_metrics['size']}/{queue_metrics['maxsize']}")
                logger.info(f"  Dropped: {queue_metrics['dropped_count']}")
                last_report = time.time()
            time.sleep(0.2)
    except KeyboardInterrupt:
        logger.info("Test interrupted by user")
    finally:
        session.stop()
        session.join(timeout=2.0)

    return {
        "duration": time.time() - start_time,
        **session.metrics.to_dict(),
        "queue_dropped": session.queue.dropped_count,
    }


def main():
    parser = argparse.ArgumentParser(description="Loopback test for the frame transport")
    parser.add_argument("--host", type=str, default=None, help="Remote host (default: local receiver)")
    parser.add_argument("--port", type=int, default=None, help="Remote port")
    parser.add_argument("--duration", type=int, default=10, help="Seconds to stream (default: 10)")
    parser.add_argument("--interval", type=float, default=0.1, help="Seconds between frames")
    parser.add_argument("--queue-size", type=int, default=50, help="Max queue size (default: 50)")
    args = parser.parse_args()

    receiver = None
    host, port = args.host, args.port
    if host is None:
        receiver = LineReceiver()
        host, port = "127.0.0.1", receiver.port

    result = run_test(host, port, args.duration, args.interval, args.queue_size)

    decoded_ok = True
    if receiver is not None:
        receiver.close()
        logger.info(f"Receiver got {len(receiver.lines)} lines")
        decoded_ok = all(
            base64.b64decode(line).startswith(PNG_SIGNATURE)
            for line in receiver.lines
        )

    logger.info("=" * 60)
    logger.info("FINAL SUMMARY")
    for key, value in result.items():
        logger.info(f"  {key}: {value}")
    logger.info("=" * 60)

    passed = result.get("frames_sent", 0) > 0 and decoded_ok
    if passed:
        logger.info("TEST PASSED - frames delivered")
    else:
        logger.error("TEST FAILED")
    sys.exit(0 if passed else 1)


if __name__ == "__main__":
    main()
