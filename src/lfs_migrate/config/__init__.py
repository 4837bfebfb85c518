"""Configuration models and loaders."""

from .config import (
    ConfigError,
    ExportConfig,
    LoggingConfig,
    ProxyConfig,
    PullConfig,
    RetryConfig,
    Settings,
    SyncConfig,
    TransferMode,
)

__all__ = [
    'ConfigError',
    'ExportConfig',
    'LoggingConfig',
    'ProxyConfig',
    'PullConfig',
    'RetryConfig',
    'Settings',
    'SyncConfig',
    'TransferMode',
]
