"""Stats Admin Core - configuration."""

from statsadmin.core.config import (
    AdminConfig,
    LogLevel,
    MonitoringConfig,
    StatsAdminConfig,
    get_config,
    reset_config,
    set_config,
)

__all__ = [
    "AdminConfig",
    "LogLevel",
    "MonitoringConfig",
    "StatsAdminConfig",
    "get_config",
    "reset_config",
    "set_config",
]
