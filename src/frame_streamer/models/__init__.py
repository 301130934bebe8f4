"""
Data Models
===========

Pydantic models for the frame streamer control API.

Models:
    - ConnectRequest: Body of POST /connect
    - SessionStatus: Body of GET /status
"""

from frame_streamer.models.control import (
    CONNECTED_INDICATOR,
    DISCONNECTED_INDICATOR,
    ConnectRequest,
    SessionStatus,
)

__all__ = [
    "ConnectRequest",
    "SessionStatus",
    "CONNECTED_INDICATOR",
    "DISCONNECTED_INDICATOR",
]
