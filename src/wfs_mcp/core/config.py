"""
Environment-backed settings for WFS access.

Environment Variables
---------------------
WFS_MCP_TIMEOUT
    Per-request timeout in seconds (default: 30)
WFS_MCP_USER_AGENT
    User-Agent header sent with every request
WFS_MCP_PAGE_SIZE
    Features requested per GetFeature page (default: 1000)
WFS_MCP_MAX_FEATURES
    Upper bound on features collected by the download tool (default: 10000)
WFS_MCP_LOG_LEVEL
    Log level used by the server entry point (default: INFO)
"""

import os

from pydantic import BaseModel, Field, field_validator

DEFAULT_TIMEOUT_SECONDS = 30.0
DEFAULT_PAGE_SIZE = 1000
DEFAULT_MAX_FEATURES = 10000
DEFAULT_USER_AGENT = "wfs-mcp/0.1"


class WFSSettings(BaseModel):
    """Settings shared by the WFS client and the MCP tools."""

    timeout: float = Field(
        default_factory=lambda: float(os.getenv("WFS_MCP_TIMEOUT", str(DEFAULT_TIMEOUT_SECONDS))),
        gt=0,
        le=600,
        description="Per-request timeout in seconds",
    )
    user_agent: str = Field(
        default_factory=lambda: os.getenv("WFS_MCP_USER_AGENT", DEFAULT_USER_AGENT),
        description="User-Agent header for WFS requests",
    )
    page_size: int = Field(
        default_factory=lambda: int(os.getenv("WFS_MCP_PAGE_SIZE", str(DEFAULT_PAGE_SIZE))),
        ge=1,
        le=100000,
        description="Features requested per GetFeature page",
    )
    max_features: int = Field(
        default_factory=lambda: int(os.getenv("WFS_MCP_MAX_FEATURES", str(DEFAULT_MAX_FEATURES))),
        ge=1,
        description="Maximum number of features collected by a download",
    )
    log_level: str = Field(
        default_factory=lambda: os.getenv("WFS_MCP_LOG_LEVEL", "INFO"),
        description="Log level for the server process",
    )

    @field_validator("log_level")
    @classmethod
    def validate_log_level(cls, v: str) -> str:
        level = v.upper()
        if level not in {"DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"}:
            raise ValueError(f"Unknown log level: {v}")
        return level


_settings_cache: WFSSettings | None = None


def get_settings() -> WFSSettings:
    """
    Get the cached settings instance.

    Returns
    -------
    WFSSettings
        Settings read from the environment on first call
    """
    global _settings_cache

    if _settings_cache is None:
        _settings_cache = WFSSettings()

    return _settings_cache
