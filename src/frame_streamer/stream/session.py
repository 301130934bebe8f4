"""
Stream Session
==============

TCP frame transmission for a single streaming session.

This module provides the StreamSession class which:
    - Starts the frame source and opens a TCP connection (5s timeout)
    - Schedules periodic frame production into a BoundedFrameQueue
    - Drains the queue on a background thread, one line per frame
    - Stops itself on the first transmission error (no reconnection)

Wire format:
    <payload>\\n    repeated, UTF-8, no length prefix, no acknowledgement

Lifecycle:
    IDLE -> CONNECTING -> STREAMING -> STOPPED
    STOPPED is terminal; build a new session to stream again.

Design Rules:
    - Only the initial connect failure is raised to the caller
    - stop() is idempotent and never waits for the drain thread
    - Pending frames are discarded on stop, never flushed
    - Exposes metrics for status reporting
"""

import logging
import socket
import threading
from enum import Enum
from typing import Optional

from frame_streamer.capture.source import FrameSource
from frame_streamer.stream.queue import BoundedFrameQueue
from frame_streamer.stream.timer import RepeatingTimer


logger = logging.getLogger(__name__)


DEFAULT_CONNECT_TIMEOUT = 5.0


class SessionState(str, Enum):
    """
    Lifecycle states of a StreamSession.

    Attributes:
        IDLE: Constructed, never started
        CONNECTING: start() is opening the TCP connection
        STREAMING: Connected, drain loop running
        STOPPED: Terminal; connection closed
    """

    IDLE = "IDLE"
    CONNECTING = "CONNECTING"
    STREAMING = "STREAMING"
    STOPPED = "STOPPED"


class ConnectionTimedOut(Exception):
    """Raised by start() when the TCP connection cannot be established."""

    def __init__(self, detail: str) -> None:
        super().__init__(detail)
        self.detail = detail


class SessionStateError(Exception):
    """Raised when start() is called on a session that is not IDLE."""
    pass


class ProducerStartError(Exception):
    """Raised when the frame source fails to start and the session aborts."""
    pass


class TransmissionError(Exception):
    """Raised inside the drain loop when sending a frame fails."""
    pass


class StreamSessionMetrics:
    """
    Metrics for StreamSession observability.

    Updated from the timer thread, the drain thread and the caller of
    start(); every write goes through the record_* methods under one lock.
    """

    __slots__ = (
        "_lock",
        "frames_produced",
        "frames_sent",
        "bytes_sent",
        "send_errors",
        "last_error",
    )

    def __init__(self) -> None:
        self._lock = threading.Lock()
        self.frames_produced: int = 0
        self.frames_sent: int = 0
        self.bytes_sent: int = 0
        self.send_errors: int = 0
        self.last_error: Optional[str] = None

    def record_produced(self) -> None:
        with self._lock:
            self.frames_produced += 1

    def record_sent(self, nbytes: int) -> None:
        with self._lock:
            self.frames_sent += 1
            self.bytes_sent += nbytes

    def record_error(self, detail: str, send_error: bool = False) -> None:
        with self._lock:
            if send_error:
                self.send_errors += 1
            self.last_error = detail

    def to_dict(self) -> dict:
        """Export metrics as dict."""
        with self._lock:
            return {
                "frames_produced": self.frames_produced,
                "frames_sent": self.frames_sent,
                "bytes_sent": self.bytes_sent,
                "send_errors": self.send_errors,
                "last_error": self.last_error,
            }


def _close_socket(sock: socket.socket) -> None:
    try:
        sock.shutdown(socket.SHUT_RDWR)
    except OSError:
        # Already disconnected by the peer
        pass
    try:
        sock.close()
    except OSError as e:
        logger.debug(f"Socket close failed: {e}")


class StreamSession:
    """
    Single-use TCP streaming session.

    Owns the connection handle, the frame timer, and the drain thread.
    The frame queue is the only structure shared with producers.

    Attributes:
        state: Current SessionState
        connected: Whether the session is currently streaming
        queue: BoundedFrameQueue of pending payloads
        metrics: Operational metrics

    Example:
        session = StreamSession(source=MockFrameSource())
        try:
            session.start("192.168.1.20", 9000, interval=0.1)
        except ConnectionTimedOut as e:
            print(f"Could not connect: {e.detail}")

        # Later
        session.stop()
    """

    def __init__(
        self,
        source: Optional[FrameSource] = None,
        queue: Optional[BoundedFrameQueue] = None,
        max_queue_size: int = 50,
        connect_timeout: float = DEFAULT_CONNECT_TIMEOUT,
        send_delay: float = 0.01,
        poll_interval: float = 0.1,
        abort_on_producer_error: bool = True,
    ) -> None:
        """
        Initialize stream session.

        Args:
            source: Frame producer polled once per interval (None = push only)
            queue: Queue to drain; a new one of max_queue_size if omitted
            max_queue_size: Capacity of the queue created when queue is None
            connect_timeout: Seconds to wait for the TCP connect
            send_delay: Pause after each successful send
            poll_interval: Max seconds the drain loop waits on an empty queue
            abort_on_producer_error: Fail start() if the source cannot start
        """
        if connect_timeout <= 0:
            raise ValueError("connect_timeout must be > 0")
        if poll_interval <= 0:
            raise ValueError("poll_interval must be > 0")

        self.connect_timeout = connect_timeout
        self.send_delay = max(0.0, send_delay)
        self.poll_interval = poll_interval
        self.abort_on_producer_error = abort_on_producer_error

        self._source = source
        self._queue = queue if queue is not None else BoundedFrameQueue(max_queue_size)

        # State
        self._lock = threading.Lock()
        self._state = SessionState.IDLE
        self._stop_event = threading.Event()
        self._sock: Optional[socket.socket] = None
        self._timer: Optional[RepeatingTimer] = None
        self._drain_thread: Optional[threading.Thread] = None
        self._source_started: bool = False
        self._endpoint: Optional[str] = None

        # Metrics
        self.metrics = StreamSessionMetrics()

    @property
    def state(self) -> SessionState:
        with self._lock:
            return self._state

    @property
    def connected(self) -> bool:
        """Whether the session is streaming to the server."""
        return self.state is SessionState.STREAMING

    @property
    def queue(self) -> BoundedFrameQueue:
        return self._queue

    @property
    def endpoint(self) -> Optional[str]:
        """host:port given to start(), if any."""
        return self._endpoint

    # -------------------------------------------------------------------------
    # Lifecycle
    # -------------------------------------------------------------------------

    def start(self, address: str, port: int, interval: float) -> None:
        """
        Start the frame source, connect, and begin streaming.

        Args:
            address: Host name or IP of the TCP server
            port: TCP port of the server
            interval: Seconds between produced frames

        Raises:
            SessionStateError: If the session is not IDLE
            ValueError: If address, port or interval is invalid
            ProducerStartError: If the source fails and abort is enabled
            ConnectionTimedOut: If the connect fails or times out

        If stop() runs meanwhile, returns quietly with the session STOPPED.
        """
        if not address:
            raise ValueError("address must not be empty")
        if isinstance(port, bool) or not isinstance(port, int) or not 1 <= port <= 65535:
            raise ValueError(f"Invalid TCP port: {port!r}")
        if interval <= 0:
            raise ValueError("interval must be > 0")

        with self._lock:
            if self._state is not SessionState.IDLE:
                raise SessionStateError(
                    f"Cannot start session in state {self._state.value}"
                )
            self._state = SessionState.CONNECTING
            self._endpoint = f"{address}:{port}"

        self._start_source()

        with self._lock:
            stopped_meanwhile = self._state is SessionState.STOPPED
        if stopped_meanwhile:
            logger.info("Session stopped while starting frame source, not connecting")
            return

        logger.info(f"Connecting to {address}:{port} (timeout={self.connect_timeout}s)")
        try:
            sock = socket.create_connection(
                (address, port),
                timeout=self.connect_timeout,
            )
        except OSError as e:
            detail = str(e) or type(e).__name__
            if self.state is SessionState.STOPPED:
                logger.info(f"Connect aborted by stop: {detail}")
                return

            logger.error(f"Connection to {address}:{port} failed: {detail}")
            self.metrics.record_error(detail)
            self.stop()
            raise ConnectionTimedOut(detail) from e

        # No timeout on individual sends
        sock.settimeout(None)

        with self._lock:
            if self._state is not SessionState.CONNECTING:
                stopped_meanwhile = True
            else:
                stopped_meanwhile = False
                self._sock = sock
                self._state = SessionState.STREAMING

                if self._source is not None:
                    self._timer = RepeatingTimer(
                        interval,
                        self._produce_frame,
                        name="frame-timer",
                    )
                    self._timer.start()

                self._drain_thread = threading.Thread(
                    target=self._drain_loop,
                    args=(sock,),
                    name="frame-drain",
                    daemon=True,
                )
                self._drain_thread.start()

        if stopped_meanwhile:
            logger.info("Session stopped while connecting, closing new connection")
            _close_socket(sock)
            return

        logger.info(f"Streaming to {address}:{port} every {interval}s")

    def stop(self) -> None:
        """
        Stop streaming and release the connection.

        Idempotent. Signals the drain loop and returns without waiting
        for it; queued frames are discarded.
        """
        with self._lock:
            if self._state is SessionState.STOPPED:
                return

            previous = self._state
            self._state = SessionState.STOPPED
            self._stop_event.set()

            timer, self._timer = self._timer, None
            sock, self._sock = self._sock, None
            source_started, self._source_started = self._source_started, False

        if timer is not None:
            timer.cancel()

        if source_started and self._source is not None:
            try:
                self._source.stop()
            except Exception as e:
                logger.error(f"Frame source failed to stop: {e}")

        if sock is not None:
            _close_socket(sock)

        discarded = self._queue.clear()
        logger.info(
            f"Session stopped (was {previous.value}), "
            f"discarded {discarded} pending frames"
        )

    def join(self, timeout: Optional[float] = None) -> bool:
        """
        Wait for the drain thread to exit.

        Returns:
            True if no drain thread is running anymore.
        """
        thread = self._drain_thread
        if thread is None:
            return True
        thread.join(timeout)
        return not thread.is_alive()

    def __enter__(self) -> "StreamSession":
        return self

    def __exit__(self, *args) -> None:
        self.stop()

    # -------------------------------------------------------------------------
    # Producer side
    # -------------------------------------------------------------------------

    def push(self, frame: str) -> bool:
        """
        Queue a frame payload for transmission.

        Returns:
            False if the queue was full and the frame was dropped.
        """
        return self._queue.push(frame)

    def on_frame_ready(self, payload: str) -> bool:
        """Producer hook: one encoded frame is ready for sending."""
        self.metrics.record_produced()
        return self.push(payload)

    def _start_source(self) -> None:
        if self._source is None:
            return

        try:
            self._source.start()
        except Exception as e:
            logger.error(f"Frame source failed to start: {e}")
            if self.abort_on_producer_error:
                self.stop()
                raise ProducerStartError(str(e)) from e
            return

        with self._lock:
            stopped_meanwhile = self._state is SessionState.STOPPED
            if not stopped_meanwhile:
                self._source_started = True

        if stopped_meanwhile:
            self._source.stop()

    def _produce_frame(self) -> None:
        if self._stop_event.is_set() or self._source is None:
            return

        payload = self._source.latest_payload()
        if payload is not None:
            self.on_frame_ready(payload)

    # -------------------------------------------------------------------------
    # Transmission
    # -------------------------------------------------------------------------

    def _send(self, sock: socket.socket, payload: str) -> None:
        data = (payload + "\n").encode("utf-8")
        try:
            sock.sendall(data)
        except OSError as e:
            raise TransmissionError(str(e) or type(e).__name__) from e

        self.metrics.record_sent(len(data))

    def _drain_loop(self, sock: socket.socket) -> None:
        logger.info("Starting drain loop")

        while not self._stop_event.is_set():
            payload = self._queue.get(timeout=self.poll_interval)
            if payload is None or self._stop_event.is_set():
                continue

            try:
                self._send(sock, payload)
            except TransmissionError as e:
                if self._stop_event.is_set():
                    logger.info(f"Send interrupted by stop: {e}")
                else:
                    self.metrics.record_error(str(e), send_error=True)
                    logger.warning(f"Transmission error, stopping session: {e}")
                    self.stop()
                break

            if self.send_delay:
                self._stop_event.wait(self.send_delay)

        logger.info("Drain loop closing")
