"""
Frame Streamer Configuration
============================

This module handles configuration loading for the frame streamer.

Configuration Sources (in order of precedence):
    1. Environment variables (highest priority)
    2. config.yaml file
    3. Default values (lowest priority)

Environment Variable Mapping:
    FRAME_STREAMER_CONNECT_TIMEOUT  -> session.connect_timeout
    FRAME_STREAMER_INTERVAL         -> session.interval
    FRAME_STREAMER_MAX_QUEUE_SIZE   -> session.max_queue_size
    FRAME_STREAMER_SEND_DELAY       -> session.send_delay
    FRAME_STREAMER_CAPTURE_BACKEND  -> capture.backend
    FRAME_STREAMER_CAMERA_INDEX     -> capture.device_index
    FRAME_STREAMER_PORT             -> server.port
    FRAME_STREAMER_LOG_LEVEL        -> logging.level
    PORT                            -> server.port (container platforms)

Example:
    from frame_streamer.config import settings

    print(settings.session.connect_timeout)
    print(settings.capture.backend)
"""

import os
import logging
from pathlib import Path
from typing import Literal, Optional

import yaml
from pydantic import BaseModel, Field


logger = logging.getLogger(__name__)


# =============================================================================
# Configuration Models
# =============================================================================

class AppConfig(BaseModel):
    """Service identification configuration."""

    name: str = Field(default="frame-streamer", description="Service name")
    version: str = Field(default="v0.1.0", description="Service version")


class SessionConfig(BaseModel):
    """Stream session configuration."""

    connect_timeout: float = Field(
        default=5.0,
        gt=0,
        description="Seconds to wait for the TCP connect",
    )
    interval: float = Field(
        default=0.1,
        gt=0,
        description="Default seconds between produced frames",
    )
    max_queue_size: int = Field(
        default=50,
        ge=1,
        description="Capacity of the pending frame queue",
    )
    send_delay: float = Field(
        default=0.01,
        ge=0,
        description="Pause after each successful send (seconds)",
    )
    poll_interval: float = Field(
        default=0.1,
        gt=0,
        description="Max wait on an empty queue before rechecking stop",
    )
    abort_on_producer_error: bool = Field(
        default=True,
        description="Fail start() when the frame source cannot start",
    )


class CaptureConfig(BaseModel):
    """Frame source configuration."""

    backend: Literal["mock", "camera"] = Field(
        default="mock",
        description="Frame source backend: 'mock' or 'camera'",
    )
    device_index: int = Field(default=0, ge=0, description="OpenCV camera index")
    width: int = Field(default=640, ge=1, description="Capture width in pixels")
    height: int = Field(default=480, ge=1, description="Capture height in pixels")
    mock_fps: float = Field(default=30.0, gt=0, description="Mock capture rate")


class ServerConfig(BaseModel):
    """Control API server configuration."""

    host: str = Field(default="0.0.0.0", description="Bind host")
    port: int = Field(default=8002, ge=1, le=65535, description="Bind port")


class LoggingConfig(BaseModel):
    """Logging configuration."""

    level: str = Field(default="INFO", description="Log level")
    format: str = Field(default="text", description="Log format: json or text")


class Settings(BaseModel):
    """
    Main settings class for the frame streamer.

    Loads configuration from YAML file and environment variables.
    Environment variables take precedence over file values.
    """

    app: AppConfig = Field(default_factory=AppConfig)
    session: SessionConfig = Field(default_factory=SessionConfig)
    capture: CaptureConfig = Field(default_factory=CaptureConfig)
    server: ServerConfig = Field(default_factory=ServerConfig)
    logging: LoggingConfig = Field(default_factory=LoggingConfig)


# =============================================================================
# Configuration Loading
# =============================================================================

def load_config(config_path: Optional[str] = None) -> Settings:
    """
    Load configuration from YAML file and environment variables.

    Priority (highest to lowest):
        1. Environment variables
        2. YAML config file
        3. Default values

    Args:
        config_path: Path to config.yaml. If None, searches common locations.

    Returns:
        Settings: Loaded configuration
    """
    if config_path is None:
        search_paths = [
            Path("config.yaml"),
            Path("config.yml"),
            Path(__file__).parent.parent.parent / "config.yaml",
        ]
        for path in search_paths:
            if path.exists():
                config_path = str(path)
                break

    config_data = {}
    if config_path and Path(config_path).exists():
        logger.info(f"Loading config from: {config_path}")
        with open(config_path, "r") as f:
            config_data = yaml.safe_load(f) or {}
    else:
        logger.debug("No config file found, using defaults and environment variables")

    _apply_env_overrides(config_data)

    return Settings.model_validate(config_data)


def _apply_env_overrides(config_data: dict) -> None:
    """Apply environment variable overrides to config data."""

    # Session settings
    if env_timeout := os.environ.get("FRAME_STREAMER_CONNECT_TIMEOUT"):
        config_data.setdefault("session", {})["connect_timeout"] = float(env_timeout)
    if env_interval := os.environ.get("FRAME_STREAMER_INTERVAL"):
        config_data.setdefault("session", {})["interval"] = float(env_interval)
    if env_queue := os.environ.get("FRAME_STREAMER_MAX_QUEUE_SIZE"):
        config_data.setdefault("session", {})["max_queue_size"] = int(env_queue)
    if env_delay := os.environ.get("FRAME_STREAMER_SEND_DELAY"):
        config_data.setdefault("session", {})["send_delay"] = float(env_delay)

    # Capture settings
    if env_backend := os.environ.get("FRAME_STREAMER_CAPTURE_BACKEND"):
        config_data.setdefault("capture", {})["backend"] = env_backend
    if env_index := os.environ.get("FRAME_STREAMER_CAMERA_INDEX"):
        config_data.setdefault("capture", {})["device_index"] = int(env_index)

    # Server settings
    if env_port := os.environ.get("PORT"):
        config_data.setdefault("server", {})["port"] = int(env_port)
    elif env_port := os.environ.get("FRAME_STREAMER_PORT"):
        config_data.setdefault("server", {})["port"] = int(env_port)

    # Logging settings
    if env_log := os.environ.get("FRAME_STREAMER_LOG_LEVEL"):
        config_data.setdefault("logging", {})["level"] = env_log


def setup_logging(settings: Settings) -> None:
    """Configure logging based on settings."""
    log_level = getattr(logging, settings.logging.level.upper(), logging.INFO)

    if settings.logging.format == "json":
        log_format = '{"time": "%(asctime)s", "level": "%(levelname)s", "module": "%(name)s", "thread": "%(threadName)s", "message": "%(message)s"}'
    else:
        log_format = "%(asctime)s - %(name)s - %(levelname)s - [%(threadName)s] %(message)s"

    logging.basicConfig(
        level=log_level,
        format=log_format,
        datefmt="%Y-%m-%dT%H:%M:%S",
    )


# =============================================================================
# Global Settings Instance
# =============================================================================

# Global settings instance - loaded on import
settings = load_config()
setup_logging(settings)
