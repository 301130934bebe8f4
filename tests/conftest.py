"""
Test Configuration
==================

Pytest fixtures and test helpers for the frame streamer.
"""

import socket
import threading
import time

import pytest


class LoopbackReceiver:
    """TCP server on 127.0.0.1 that records every byte it receives."""

    def __init__(self) -> None:
        self._server = socket.socket(socket.AF_INET, socket.SOCK_STREAM)
        self._server.setsockopt(socket.SOL_SOCKET, socket.SO_REUSEADDR, 1)
        self._server.bind(("127.0.0.1", 0))
        self._server.listen(1)
        self.port = self._server.getsockname()[1]

        self._lock = threading.Lock()
        self._data = b""
        self._conn = None
        self._closing = threading.Event()
        self._thread = threading.Thread(target=self._run, daemon=True)
        self._thread.start()

    @property
    def data(self) -> bytes:
        with self._lock:
            return self._data

    @property
    def lines(self) -> list:
        return self.data.split(b"\n")[:-1]

    def _run(self) -> None:
        self._server.settimeout(0.1)
        while not self._closing.is_set():
            try:
                conn, _ = self._server.accept()
                break
            except socket.timeout:
                continue
            except OSError:
                return
        else:
            return

        conn.settimeout(None)
        self._conn = conn
        with conn:
            while True:
                try:
                    chunk = conn.recv(65536)
                except OSError:
                    break
                if not chunk:
                    break
                with self._lock:
                    self._data += chunk

    def wait_for_lines(self, count: int, timeout: float = 5.0) -> list:
        deadline = time.monotonic() + timeout
        while time.monotonic() < deadline:
            lines = self.lines
            if len(lines) >= count:
                return lines
            time.sleep(0.01)
        return self.lines

    def close(self) -> None:
        self._closing.set()
        self._server.close()
        if self._conn is not None:
            try:
                self._conn.shutdown(socket.SHUT_RDWR)
            except OSError:
                pass
        self._thread.join(timeout=2.0)


class StaticFrameSource:
    """Frame source that always returns the same payload."""

    def __init__(self, payload: str = "frame") -> None:
        self.payload = payload
        self.started = False
        self.stop_calls = 0

    def start(self) -> None:
        self.started = True

    def stop(self) -> None:
        self.stop_calls += 1
        self.started = False

    def latest_payload(self):
        return self.payload if self.started else None


class FailingFrameSource(StaticFrameSource):
    """Frame source whose start() always fails."""

    def start(self) -> None:
        raise RuntimeError("camera unavailable")


class GatedStartSource(StaticFrameSource):
    """Frame source whose start() blocks until `release` is set."""

    def __init__(self, payload: str = "frame") -> None:
        super().__init__(payload)
        self.entered = threading.Event()
        self.release = threading.Event()

    def start(self) -> None:
        self.entered.set()
        self.release.wait(5.0)
        super().start()


class SlowStopSource(StaticFrameSource):
    """Frame source whose stop() takes `delay` seconds."""

    def __init__(self, delay: float = 0.5) -> None:
        super().__init__()
        self.delay = delay

    def stop(self) -> None:
        time.sleep(self.delay)
        super().stop()


class GatedConnect:
    """
    Stand-in for socket.create_connection that blocks until released.

    Returns `result` or raises `error` once the gate opens.
    """

    def __init__(self, result=None, error=None) -> None:
        self.result = result
        self.error = error
        self.calls = []
        self.entered = threading.Event()
        self.release = threading.Event()

    def __call__(self, address, timeout=None):
        self.calls.append((address, timeout))
        self.entered.set()
        self.release.wait(5.0)
        if self.error is not None:
            raise self.error
        return self.result


class FakeSocket:
    """Socket stand-in whose sendall fails after `fail_after` successful sends."""

    def __init__(self, fail_after: int = 0) -> None:
        self.fail_after = fail_after
        self.sent = []
        self.closed = False
        self.timeout = "unset"

    def settimeout(self, value) -> None:
        self.timeout = value

    def sendall(self, data: bytes) -> None:
        if len(self.sent) >= self.fail_after:
            raise BrokenPipeError(32, "Broken pipe")
        self.sent.append(data)

    def shutdown(self, how) -> None:
        pass

    def close(self) -> None:
        self.closed = True


def wait_until(predicate, timeout: float = 5.0) -> bool:
    """Poll `predicate` until it is truthy or `timeout` elapses."""
    deadline = time.monotonic() + timeout
    while time.monotonic() < deadline:
        if predicate():
            return True
        time.sleep(0.01)
    return bool(predicate())


@pytest.fixture
def receiver():
    """Provide a loopback TCP receiver, closed after the test."""
    server = LoopbackReceiver()
    yield server
    server.close()


@pytest.fixture
def closed_port():
    """Provide a loopback port with nothing listening on it."""
    sock = socket.socket(socket.AF_INET, socket.SOCK_STREAM)
    sock.bind(("127.0.0.1", 0))
    port = sock.getsockname()[1]
    sock.close()
    return port
