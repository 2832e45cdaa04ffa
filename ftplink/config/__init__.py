"""Configuration management for ftplink."""

from .base import Config, BaseRemoteConfig, ConfigurationError, RemoteNotFoundError, ValidationError
from .remotes import FtpRemoteConfig, ProxyConfig
from .settings import Settings

__all__ = [
    "Config",
    "BaseRemoteConfig",
    "ConfigurationError",
    "RemoteNotFoundError",
    "ValidationError",
    "FtpRemoteConfig",
    "ProxyConfig",
    "Settings",
]
