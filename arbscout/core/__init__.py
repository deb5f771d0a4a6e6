"""
Core module - Engineering foundation

Contains configuration, logging, errors, the expiring cache, call quotas
and the HTTP client.
"""

from arbscout.core.cache import CacheEntry, ExpiringCache
from arbscout.core.config import Settings, get_settings, load_settings, load_yaml_config
from arbscout.core.errors import (
    ArbscoutError,
    ProviderError,
    ConfigurationError,
    MissingQuoteError,
    QuotaExceededError,
)
from arbscout.core.logging import setup_logging, get_logger

__all__ = [
    "CacheEntry",
    "ExpiringCache",
    "Settings",
    "get_settings",
    "load_settings",
    "load_yaml_config",
    "ArbscoutError",
    "ProviderError",
    "ConfigurationError",
    "MissingQuoteError",
    "QuotaExceededError",
    "setup_logging",
    "get_logger",
]
