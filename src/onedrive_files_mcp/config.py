"""Runtime configuration loaded from environment variables.

Environment Variables:
    ONEDRIVE_FILES_GRAPH_BASE_URL: Microsoft Graph base URL
        (default: https://graph.microsoft.com/v1.0)
    ONEDRIVE_FILES_HOST: Interface the HTTP server binds to (default: 127.0.0.1)
    ONEDRIVE_FILES_PORT: HTTP port; PORT is honoured as a fallback (default: 3002)
    ONEDRIVE_FILES_ENV: "development" or "production" (default: production).
        Development mode adds stack traces to HTTP error envelopes.
    ONEDRIVE_FILES_LOG_LEVEL: Logging level name (default: INFO)
    ONEDRIVE_FILES_REQUEST_TIMEOUT: Seconds before a Graph call times out (default: 60)
    ONEDRIVE_FILES_PUSH_QUEUE_SIZE: Pending events per push channel before it
        is evicted (default: 100)
    ONEDRIVE_FILES_PORT_ATTEMPTS: Consecutive ports tried when the configured
        one is taken (default: 10)
"""

import os
from collections.abc import Mapping
from typing import Literal

from pydantic import BaseModel, Field
from pydantic import ValidationError as PydanticValidationError

from onedrive_files_mcp.errors import validation_error_from

DEFAULT_GRAPH_BASE_URL = "https://graph.microsoft.com/v1.0"
DEFAULT_HOST = "127.0.0.1"
DEFAULT_PORT = 3002
ENV_PREFIX = "ONEDRIVE_FILES_"
ENV_NAME_OVERRIDES = {"environment": "ENV"}


class ServerConfig(BaseModel):
    """Effective configuration for both front-ends."""

    graph_base_url: str = Field(default=DEFAULT_GRAPH_BASE_URL, description="Graph API base URL")
    host: str = Field(default=DEFAULT_HOST, description="HTTP bind address")
    port: int = Field(default=DEFAULT_PORT, ge=0, le=65535, description="HTTP port")
    environment: Literal["development", "production"] = Field(default="production")
    log_level: Literal["DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"] = Field(default="INFO")
    request_timeout: float = Field(default=60.0, gt=0, description="Graph call timeout (s)")
    push_queue_size: int = Field(default=100, ge=1, description="Events buffered per channel")
    port_attempts: int = Field(default=10, ge=1, description="Ports tried on conflict")

    model_config = {"frozen": True}

    @property
    def is_development(self) -> bool:
        """True when error envelopes should carry debugging details."""
        return self.environment == "development"


def load_config(environ: Mapping[str, str] | None = None) -> ServerConfig:
    """Build a ServerConfig from environment variables.

    Args:
        environ: Mapping to read from. Defaults to os.environ.

    Returns:
        Validated configuration.

    Raises:
        ValidationError: If a variable holds an invalid value.
    """
    env = os.environ if environ is None else environ

    values: dict[str, str] = {}
    for field_name in ServerConfig.model_fields:
        suffix = ENV_NAME_OVERRIDES.get(field_name, field_name.upper())
        raw = env.get(f"{ENV_PREFIX}{suffix}")
        if raw is not None and raw != "":
            values[field_name] = raw

    if "port" not in values and env.get("PORT"):
        values["port"] = env["PORT"]
    if "environment" in values:
        values["environment"] = values["environment"].lower()
    if "log_level" in values:
        values["log_level"] = values["log_level"].upper()

    try:
        return ServerConfig.model_validate(values)
    except PydanticValidationError as e:
        raise validation_error_from(e, "configuration") from e
