"""
Control API Schemas
===================

Pydantic models for the control service request and response bodies.

Example request (POST /connect):
    {
        "address": "192.168.1.20",
        "port": 9000,
        "interval": 0.1
    }
"""

from typing import Optional

from pydantic import BaseModel, Field


CONNECTED_INDICATOR = "✅"
DISCONNECTED_INDICATOR = "⚪️"


class ConnectRequest(BaseModel):
    """
    Parameters for starting a new stream session.

    Attributes:
        address: Host name or IP of the TCP server
        port: TCP port of the server
        interval: Seconds between frames (None = configured default)
    """

    address: str = Field(
        ...,
        min_length=1,
        description="TCP server host name or IP address",
    )

    port: int = Field(
        ...,
        ge=1,
        le=65535,
        description="TCP server port",
    )

    interval: Optional[float] = Field(
        default=None,
        gt=0,
        description="Seconds between produced frames",
    )

    model_config = {
        "json_schema_extra": {
            "example": {
                "address": "192.168.1.20",
                "port": 9000,
                "interval": 0.1,
            }
        }
    }


class SessionStatus(BaseModel):
    """
    Connection status as shown to the operator.

    Attributes:
        state: Session lifecycle state, or "NONE" when no session exists
        connected: Whether frames are currently being streamed
        indicator: Connected/disconnected status glyph
        endpoint: host:port of the current session
        error: Last connection or transmission error, if any
    """

    state: str = Field(..., description="Session lifecycle state")
    connected: bool = Field(..., description="Whether the session is streaming")
    indicator: str = Field(..., description="Status glyph")
    endpoint: Optional[str] = Field(default=None, description="host:port")
    error: Optional[str] = Field(default=None, description="Last error message")
