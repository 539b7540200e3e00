"""
Stats Admin Configuration

Centralized configuration for the admin stats service with:
- Environment-based configuration
- Type-safe settings with Pydantic
- JSON file loading and saving
"""

from __future__ import annotations

import json
from enum import Enum
from pathlib import Path
from typing import Literal, Optional

from pydantic import BaseModel, Field, field_validator
from pydantic_settings import BaseSettings


class LogLevel(str, Enum):
    """Logging levels for the service."""
    DEBUG = "DEBUG"
    INFO = "INFO"
    WARNING = "WARNING"
    ERROR = "ERROR"
    CRITICAL = "CRITICAL"


DEFAULT_SUPPORTED_QUANTILES = (0.0, 0.25, 0.5, 0.75, 0.90, 0.95, 0.99, 0.995, 0.999, 1.0)


class AdminConfig(BaseModel):
    """Configuration for the stats admin endpoints."""
    recent_lookups_capacity: int = Field(default=100, gt=0)
    pretty_print_json: bool = False
    histogram_flush_interval: float = Field(default=5.0, gt=0)  # seconds
    histogram_max_samples: int = Field(default=10000, gt=0)
    supported_quantiles: tuple[float, ...] = DEFAULT_SUPPORTED_QUANTILES

    @field_validator("supported_quantiles")
    @classmethod
    def check_quantiles(cls, v: tuple[float, ...]) -> tuple[float, ...]:
        """Quantile levels must be ascending fractions in [0, 1]."""
        if not v:
            raise ValueError("supported_quantiles cannot be empty")
        if any(q < 0.0 or q > 1.0 for q in v):
            raise ValueError("quantile levels must be within [0, 1]")
        if list(v) != sorted(v):
            raise ValueError("quantile levels must be ascending")
        return v


class MonitoringConfig(BaseModel):
    """Configuration for logging and request statistics."""
    log_level: LogLevel = LogLevel.INFO
    log_format: Literal["json", "text"] = "json"
    enable_request_stats: bool = True


class StatsAdminConfig(BaseSettings):
    """
    Main service configuration.

    Loads configuration from environment variables and/or config files.
    Environment variables are prefixed with STATSADMIN_
    (e.g., STATSADMIN_MONITORING__LOG_LEVEL=DEBUG).
    """

    instance_id: str = Field(default="statsadmin-primary")

    # Server configuration
    host: str = "0.0.0.0"
    port: int = 9901
    debug: bool = False

    admin: AdminConfig = Field(default_factory=AdminConfig)
    monitoring: MonitoringConfig = Field(default_factory=MonitoringConfig)

    model_config = {
        "env_prefix": "STATSADMIN_",
        "env_nested_delimiter": "__",
        "case_sensitive": False,
    }

    @classmethod
    def from_file(cls, config_path: Path) -> "StatsAdminConfig":
        """Load configuration from a JSON file."""
        if not config_path.exists():
            raise FileNotFoundError(f"Config file not found: {config_path}")

        with open(config_path) as f:
            config_data = json.load(f)

        return cls(**config_data)

    def to_file(self, config_path: Path) -> None:
        """Save configuration to a JSON file."""
        config_path.parent.mkdir(parents=True, exist_ok=True)
        with open(config_path, "w") as f:
            json.dump(self.model_dump(mode="json"), f, indent=2)


# Global configuration instance (lazy loaded)
_config: Optional[StatsAdminConfig] = None


def get_config() -> StatsAdminConfig:
    """Get the global configuration instance."""
    global _config
    if _config is None:
        _config = StatsAdminConfig()
    return _config


def set_config(config: StatsAdminConfig) -> None:
    """Set the global configuration instance."""
    global _config
    _config = config


def reset_config() -> None:
    """Reset the global configuration to default."""
    global _config
    _config = None
