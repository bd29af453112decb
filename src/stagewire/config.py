"""Environment-based configuration."""

from __future__ import annotations

import logging
from pathlib import Path
from typing import Annotated, Any

from pydantic import field_validator
from pydantic_settings import BaseSettings, NoDecode

from stagewire.constants import (
    OBSERVER_QUEUE_SIZE,
    RETRY_INITIAL_WAIT,
    RETRY_MAX_ATTEMPTS,
    RETRY_MAX_WAIT,
)

logger = logging.getLogger(__name__)


class Settings(BaseSettings):
    """Reads from .env file and environment variables."""

    # Account
    atxp_connection_string: str = ""

    # Remote tools (primary = required artifact, dependent = enrichment)
    primary_mcp_server: str = "https://image.mcp.atxp.ai"
    primary_tool_name: str = "image_create_image"
    dependent_mcp_server: str = "https://filestore.mcp.atxp.ai"
    dependent_tool_name: str = "filestore_write"

    # Remote call policy
    remote_call_timeout_seconds: float | None = None
    remote_retry_attempts: int = RETRY_MAX_ATTEMPTS
    remote_retry_initial_wait: float = RETRY_INITIAL_WAIT
    remote_retry_max_wait: float = RETRY_MAX_WAIT

    # Observers
    observer_queue_size: int = OBSERVER_QUEUE_SIZE

    # API
    host: str = "0.0.0.0"
    port: int = 3001
    cors_origins: Annotated[list[str], NoDecode] = [
        "http://localhost:3000",
        "http://localhost:3001",
    ]

    # Static frontend (production builds only)
    serve_static: bool = False
    static_dir: Path = Path("frontend/build")

    # Logging
    log_level: str = "INFO"
    log_dir: Path = Path("logs")

    @field_validator("cors_origins", mode="before")
    @classmethod
    def _parse_origins(cls, v: Any) -> Any:
        """Accept comma-separated string or JSON array."""
        if isinstance(v, str):
            return [s.strip() for s in v.split(",") if s.strip()]
        return v

    @field_validator("remote_call_timeout_seconds")
    @classmethod
    def _normalize_timeout(cls, v: float | None) -> float | None:
        """Zero or negative means no timeout."""
        if v is not None and v <= 0:
            return None
        return v

    @field_validator("remote_retry_attempts", "observer_queue_size")
    @classmethod
    def _at_least_one(cls, v: int) -> int:
        if v < 1:
            raise ValueError("must be at least 1")
        return v

    @field_validator("remote_retry_max_wait")
    @classmethod
    def _warn_small_max_wait(cls, v: float) -> float:
        if v < 0:
            raise ValueError("remote_retry_max_wait must be >= 0")
        if v == 0:
            logger.warning(
                "REMOTE_RETRY_MAX_WAIT is 0: retries fire back-to-back"
            )
        return v

    model_config = {
        "env_file": ".env",
        "env_file_encoding": "utf-8",
        "env_prefix": "",
        "extra": "ignore",
    }
