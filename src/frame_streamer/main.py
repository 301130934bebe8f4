"""
Frame Streamer Control Service
==============================

FastAPI entry point for starting and stopping frame streams.

A session streams encoded frames from the configured frame source to a
remote TCP server. Sessions are single-use: every POST /connect builds a
fresh StreamSession, and POST /disconnect discards it.

Endpoints:
    GET  /           - Service information
    GET  /health     - Liveness probe
    GET  /status     - Connection status (state, indicator, last error)
    GET  /metrics    - Queue and session metrics
    POST /connect    - Start streaming to {address, port, interval}
    POST /disconnect - Stop streaming
"""

import asyncio
import logging
import time
from contextlib import asynccontextmanager
from typing import AsyncIterator, Optional

from fastapi import FastAPI, HTTPException
from fastapi.responses import JSONResponse

from frame_streamer.config import settings
from frame_streamer.capture import CameraFrameSource, FrameSource, MockFrameSource
from frame_streamer.models import (
    CONNECTED_INDICATOR,
    DISCONNECTED_INDICATOR,
    ConnectRequest,
    SessionStatus,
)
from frame_streamer.stream import (
    ConnectionTimedOut,
    ProducerStartError,
    SessionState,
    SessionStateError,
    StreamSession,
)


logger = logging.getLogger(__name__)


# =============================================================================
# Global State
# =============================================================================

_session: Optional[StreamSession] = None
_last_error: Optional[str] = None
_control_lock = asyncio.Lock()
_startup_time: float = time.time()


def get_session() -> Optional[StreamSession]:
    return _session


# =============================================================================
# Session Factory
# =============================================================================

def create_frame_source() -> FrameSource:
    """
    Create frame source based on config.

    Fails fast on an unknown backend.
    """
    backend = settings.capture.backend

    if backend == "mock":
        logger.info("Using MockFrameSource")
        return MockFrameSource(
            width=settings.capture.width,
            height=settings.capture.height,
            fps=settings.capture.mock_fps,
        )

    elif backend == "camera":
        logger.info(f"Using CameraFrameSource: device={settings.capture.device_index}")
        return CameraFrameSource(
            device_index=settings.capture.device_index,
            width=settings.capture.width,
            height=settings.capture.height,
        )

    else:
        raise ValueError(f"Unknown capture backend: {backend}")


def create_session() -> StreamSession:
    return StreamSession(
        source=create_frame_source(),
        max_queue_size=settings.session.max_queue_size,
        connect_timeout=settings.session.connect_timeout,
        send_delay=settings.session.send_delay,
        poll_interval=settings.session.poll_interval,
        abort_on_producer_error=settings.session.abort_on_producer_error,
    )


def build_status() -> SessionStatus:
    session = get_session()

    if session is None:
        return SessionStatus(
            state="NONE",
            connected=False,
            indicator=DISCONNECTED_INDICATOR,
            error=_last_error,
        )

    connected = session.connected
    return SessionStatus(
        state=session.state.value,
        connected=connected,
        indicator=CONNECTED_INDICATOR if connected else DISCONNECTED_INDICATOR,
        endpoint=session.endpoint,
        error=_last_error or session.metrics.last_error,
    )


# =============================================================================
# Lifespan Management
# =============================================================================

@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncIterator[None]:
    """Application lifespan manager; stops any live session on shutdown."""
    global _startup_time, _session

    _startup_time = time.time()
    logger.info(f"Starting {settings.app.name} {settings.app.version}")

    # Fail on boot rather than on the first connect
    create_frame_source()
    logger.info(
        f"Capture backend: {settings.capture.backend}, "
        f"queue size: {settings.session.max_queue_size}"
    )

    yield

    logger.info("Shutting down gracefully...")
    session, _session = _session, None
    if session is not None:
        await asyncio.to_thread(session.stop)
        await asyncio.to_thread(session.join, 2.0)
    logger.info("Shutdown complete")


# =============================================================================
# FastAPI Application
# =============================================================================

app = FastAPI(
    title="FrameStreamer",
    description="Streams encoded camera frames to a TCP server",
    version=settings.app.version,
    lifespan=lifespan,
)


# =============================================================================
# HTTP Endpoints
# =============================================================================

@app.get("/")
async def root() -> JSONResponse:
    """Service information endpoint."""
    return JSONResponse({
        "service": "FrameStreamer",
        "version": settings.app.version,
        "name": settings.app.name,
        "capture_backend": settings.capture.backend,
    })


@app.get("/health")
async def health() -> JSONResponse:
    """Liveness probe. Always 200 while the process is running."""
    return JSONResponse({
        "status": "healthy",
        "uptime_seconds": round(time.time() - _startup_time, 1),
    })


@app.get("/status", response_model=SessionStatus)
async def status() -> SessionStatus:
    return build_status()


@app.get("/metrics")
async def metrics() -> JSONResponse:
    """Queue and session metrics for observability."""
    session = get_session()

    session_metrics = {}
    if session is not None:
        queue_metrics = session.queue.metrics()
        session_metrics = {
            "state": session.state.value,
            "queue_size": queue_metrics["size"],
            "queue_maxsize": queue_metrics["maxsize"],
            "queue_dropped": queue_metrics["dropped_count"],
            **session.metrics.to_dict(),
        }

    return JSONResponse({
        "uptime_seconds": round(time.time() - _startup_time, 1),
        "capture_backend": settings.capture.backend,
        **session_metrics,
    })


@app.post("/connect", response_model=SessionStatus)
async def connect(request: ConnectRequest) -> SessionStatus:
    """
    Start streaming to a TCP server.

    Blocks up to the configured connect timeout. Returns 502 with the
    connection error text if the server cannot be reached, and 409 if
    /disconnect arrived while the connection was being opened.
    """
    global _session, _last_error

    interval = request.interval or settings.session.interval

    # Serializes connects only; /disconnect never waits on it
    async with _control_lock:
        previous = _session
        if previous is not None and previous.connected:
            raise HTTPException(
                status_code=409,
                detail=f"Already streaming to {previous.endpoint}",
            )

        # Stopped sessions are never restarted in place
        if previous is not None:
            await asyncio.to_thread(previous.stop)

        try:
            session = create_session()
        except ValueError as e:
            _last_error = str(e)
            raise HTTPException(status_code=500, detail=_last_error)
        _session = session

        try:
            await asyncio.to_thread(
                session.start,
                request.address,
                request.port,
                interval,
            )
        except ConnectionTimedOut as e:
            _last_error = e.detail
            raise HTTPException(status_code=502, detail=e.detail)
        except ProducerStartError as e:
            _last_error = f"Frame source failed to start: {e}"
            raise HTTPException(status_code=500, detail=_last_error)
        except (ValueError, SessionStateError) as e:
            _last_error = str(e)
            raise HTTPException(status_code=422, detail=_last_error)

        if session.state is SessionState.STOPPED:
            raise HTTPException(
                status_code=409,
                detail="Disconnected while connecting",
            )

        _last_error = None
        logger.info(f"Streamer open: {session.endpoint}")
        return build_status()


@app.post("/disconnect", response_model=SessionStatus)
async def disconnect() -> SessionStatus:
    """
    Stop streaming. Safe to call when nothing is connected.

    Also aborts a session that /connect is still opening.
    """
    global _session

    session, _session = _session, None
    if session is not None:
        await asyncio.to_thread(session.stop)

    return build_status()


# =============================================================================
# Main Entry Point
# =============================================================================

def run() -> None:
    """Run the control service with uvicorn."""
    import uvicorn

    uvicorn.run(
        "frame_streamer.main:app",
        host=settings.server.host,
        port=settings.server.port,
        reload=False,
    )


if __name__ == "__main__":
    run()
