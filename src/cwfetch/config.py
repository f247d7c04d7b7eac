"""
Configuration management.

Uses Pydantic Settings for environment variable handling and validation,
with an optional YAML file providing defaults.
"""

import os
import yaml
from functools import lru_cache
from pathlib import Path
from typing import Any, Dict, Optional

from pydantic import Field, field_validator
from pydantic_settings import BaseSettings

DEFAULT_REGION = "ap-northeast-1"


def load_config_file(config_path: Optional[str] = None) -> Dict[str, Any]:
    """Load configuration from YAML file."""
    if config_path is None:
        config_path = os.environ.get("CWFETCH_CONFIG")

    if config_path is None:
        # Look for a config file in common locations
        possible_paths = [
            "cwfetch.yaml",  # Current directory
            str(Path.home() / ".config" / "cwfetch" / "config.yaml"),
        ]

        for path in possible_paths:
            if os.path.exists(path):
                config_path = path
                break
        else:
            return {}

    if os.path.exists(config_path):
        with open(config_path, 'r') as f:
            config_data = yaml.safe_load(f) or {}
            return config_data
    return {}


class AWSSettings(BaseSettings):
    """AWS session and client configuration."""

    profile: Optional[str] = Field(default=None, description="AWS credentials profile")
    region: str = Field(default=DEFAULT_REGION, description="AWS region")
    role_arn: Optional[str] = Field(default=None, description="Role to assume before calling CloudWatch Logs")
    mfa_serial: Optional[str] = Field(default=None, description="Serial number of the MFA device for role assumption")
    role_session_name: str = Field(default="cwfetch", description="Session name used for assumed roles")

    connect_timeout_seconds: int = Field(default=10, description="Connection timeout")
    read_timeout_seconds: int = Field(default=60, description="Read timeout")
    # Remote errors are terminal; botocore must not retry behind our back
    max_retries: int = Field(default=0, ge=0, description="botocore retry attempts")

    class Config:
        env_prefix = "CWFETCH_AWS_"


class DisplaySettings(BaseSettings):
    """Output rendering configuration."""

    utc_offset_hours: int = Field(default=9, description="Fixed display offset from UTC")
    time_format: str = Field(default="%Y-%m-%d %H:%M:%S", description="Prefix timestamp format")

    @field_validator("utc_offset_hours")
    def validate_offset(cls, v: int) -> int:
        """Keep the offset inside the range datetime.timezone accepts."""
        if not -23 <= v <= 23:
            raise ValueError("utc_offset_hours must be between -23 and 23")
        return v

    class Config:
        env_prefix = "CWFETCH_DISPLAY_"


class Settings(BaseSettings):
    """Main application settings."""

    log_level: str = Field(default="WARNING", description="Log level")

    # Component settings
    aws: AWSSettings = Field(default_factory=AWSSettings)
    display: DisplaySettings = Field(default_factory=DisplaySettings)

    class Config:
        env_prefix = "CWFETCH_"
        case_sensitive = False


@lru_cache()
def get_settings() -> Settings:
    """Get cached settings instance with config file and env support."""

    # Load config file data
    config_data = load_config_file()

    # Config file provides defaults, env vars override
    if config_data:
        _set_env_from_config(config_data)

    settings = Settings()
    return settings


def _set_env_from_config(config_data: Dict[str, Any]) -> None:
    """Set environment variables from config file if not already set."""
    mappings = {
        ("logging", "level"): "CWFETCH_LOG_LEVEL",
        ("aws", "profile"): "CWFETCH_AWS_PROFILE",
        ("aws", "region"): "CWFETCH_AWS_REGION",
        ("aws", "role_arn"): "CWFETCH_AWS_ROLE_ARN",
        ("aws", "mfa_serial"): "CWFETCH_AWS_MFA_SERIAL",
        ("aws", "role_session_name"): "CWFETCH_AWS_ROLE_SESSION_NAME",
        ("aws", "connect_timeout_seconds"): "CWFETCH_AWS_CONNECT_TIMEOUT_SECONDS",
        ("aws", "read_timeout_seconds"): "CWFETCH_AWS_READ_TIMEOUT_SECONDS",
        ("display", "utc_offset_hours"): "CWFETCH_DISPLAY_UTC_OFFSET_HOURS",
        ("display", "time_format"): "CWFETCH_DISPLAY_TIME_FORMAT",
    }

    for (section, key), env_var in mappings.items():
        if env_var not in os.environ:
            value = (config_data.get(section) or {}).get(key)
            if value is not None:
                os.environ[env_var] = str(value)


def reload_settings() -> Settings:
    """Reload settings (clears cache)."""
    get_settings.cache_clear()
    return get_settings()
