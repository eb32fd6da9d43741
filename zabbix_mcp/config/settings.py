"""
Application Settings
===================

Main application settings and environment configuration using Pydantic Settings.
Supports development, testing, and production environments.
"""

from typing import Optional, List, Union
from pydantic import Field, field_validator, model_validator
from pydantic_settings import BaseSettings, SettingsConfigDict
import json
from pathlib import Path

from zabbix_mcp import __version__


class Settings(BaseSettings):
    """Main application settings with environment variable support."""

    # Application Configuration
    app_name: str = Field(default="zabbix-mcp-server", description="Application name")
    app_version: str = Field(default=__version__, description="Application version")
    environment: str = Field(
        default="development", description="Environment: development, testing, production"
    )
    debug: bool = Field(default=False, description="Debug mode")

    # Server Configuration
    host: str = Field(default="0.0.0.0", description="Server host")
    port: int = Field(default=3001, description="Server port")
    allowed_hosts: List[str] = Field(default=["*"], description="Allowed origins for CORS")

    # Zabbix Configuration
    zabbix_url: str = Field(default="http://localhost/zabbix", description="Zabbix frontend URL")
    zabbix_token: Optional[str] = Field(default=None, description="Zabbix API token")
    zabbix_user: Optional[str] = Field(default="Admin", description="Zabbix username")
    zabbix_password: Optional[str] = Field(default="zabbix", description="Zabbix password")
    zabbix_timeout_seconds: float = Field(default=30.0, description="Upstream request timeout")
    zabbix_max_auth_attempts: int = Field(
        default=2, description="Maximum authentication strategies tried per request"
    )
    zabbix_verify_on_startup: bool = Field(
        default=True, description="Abort startup when the Zabbix API is unreachable"
    )
    read_only: bool = Field(default=True, description="Reject mutating tools")

    # Session Configuration
    session_idle_timeout_seconds: float = Field(
        default=1800.0, description="Idle time after which a session is evicted"
    )
    session_sweep_interval_seconds: float = Field(
        default=300.0, description="Interval between idle-session sweeps"
    )
    sse_keepalive_interval_seconds: float = Field(
        default=30.0, description="Interval between keepalive comments on idle streams"
    )
    sse_max_sessions: int = Field(default=100, description="Maximum concurrent sessions")
    message_path: str = Field(default="/message", description="Path clients post messages to")

    # Logging Configuration
    log_level: str = Field(default="INFO", description="Logging level")
    log_dir: Optional[Path] = Field(default=None, description="Directory for rotating log files")

    @field_validator("environment")
    @classmethod
    def validate_environment(cls, v: str) -> str:
        """Validate environment value."""
        allowed = {"development", "testing", "production"}
        if v not in allowed:
            raise ValueError(f"Environment must be one of: {allowed}")
        return v

    @field_validator("log_level")
    @classmethod
    def validate_log_level(cls, v: str) -> str:
        """Validate log level."""
        allowed = {"DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"}
        if v.upper() not in allowed:
            raise ValueError(f"Log level must be one of: {allowed}")
        return v.upper()

    @field_validator("allowed_hosts", mode="before")
    @classmethod
    def parse_allowed_hosts(cls, v: Union[str, List[str]]) -> List[str]:
        """Parse allowed hosts from string or list."""
        if isinstance(v, str):
            # Handle JSON-like string: ["*"] or ["host1", "host2"]
            v = v.strip()
            if v.startswith("[") and v.endswith("]"):
                try:
                    return json.loads(v)
                except json.JSONDecodeError:
                    pass
            # Handle comma-separated string: "*" or "host1,host2"
            return [host.strip() for host in v.split(",") if host.strip()]
        return v

    @field_validator("zabbix_url")
    @classmethod
    def normalize_zabbix_url(cls, v: str) -> str:
        """Strip the JSON-RPC endpoint and trailing slashes from the frontend URL."""
        v = v.strip()
        if v.endswith("/api_jsonrpc.php"):
            v = v[: -len("/api_jsonrpc.php")]
        v = v.rstrip("/")
        if not v.startswith(("http://", "https://")):
            raise ValueError("Zabbix URL must start with http:// or https://")
        return v

    @field_validator(
        "zabbix_timeout_seconds",
        "session_idle_timeout_seconds",
        "session_sweep_interval_seconds",
        "sse_keepalive_interval_seconds",
    )
    @classmethod
    def validate_positive(cls, v: float) -> float:
        """Durations must be positive."""
        if v <= 0:
            raise ValueError("Value must be greater than zero")
        return v

    @field_validator("zabbix_max_auth_attempts", "sse_max_sessions")
    @classmethod
    def validate_positive_count(cls, v: int) -> int:
        """Counts must be at least one."""
        if v < 1:
            raise ValueError("Value must be at least 1")
        return v

    @field_validator("message_path")
    @classmethod
    def validate_message_path(cls, v: str) -> str:
        """Message path must be absolute."""
        if not v.startswith("/"):
            raise ValueError("Message path must start with '/'")
        return v

    @model_validator(mode="after")
    def validate_credentials(self) -> "Settings":
        """Either a token or a user/password pair is required."""
        if not self.zabbix_token and not (self.zabbix_user and self.zabbix_password):
            raise ValueError("Either ZABBIX_TOKEN or ZABBIX_USER/ZABBIX_PASSWORD must be provided")
        return self

    model_config = SettingsConfigDict(
        env_file=".env", env_file_encoding="utf-8", case_sensitive=False, extra="ignore"
    )


# Global settings instance - will be initialized when needed
settings = None


def get_settings() -> Settings:
    """Get the global settings instance."""
    global settings
    if settings is None:
        settings = Settings()
    return settings


def reload_settings() -> Settings:
    """Reload settings from environment."""
    global settings
    settings = Settings()
    return settings
