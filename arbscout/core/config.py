"""
Configuration management for Arbscout.

Supports:
- Runtime knobs and secrets: environment variables / .env file
- YAML config for structural business rules (venues, batching, TTLs, quotas)
"""

import os
from functools import lru_cache
from pathlib import Path
from typing import Any, Optional

import yaml
from pydantic import Field, ValidationError, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

from arbscout.core.errors import ConfigurationError


class Settings(BaseSettings):
    """Application settings loaded from environment variables."""

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",
    )

    # ==============================================
    # Environment
    # ==============================================
    log_level: str = Field(default="INFO")
    timezone: str = Field(default="UTC")

    # ==============================================
    # Scanning thresholds
    # ==============================================
    arbitrage_threshold: float = Field(default=3.0, description="Minimum net profit %")
    volume_spike_threshold: float = Field(default=3.0, description="Spike ratio multiplier")
    min_absolute_volume: float = Field(default=500_000, description="Minimum 24h volume")

    # ==============================================
    # Active set
    # ==============================================
    active_set_size: int = Field(default=50)
    active_set_ttl: int = Field(default=1800, description="Entry TTL in seconds")

    # ==============================================
    # Cycles
    # ==============================================
    scan_interval: int = Field(default=300, description="Discovery cycle interval in seconds")
    trade_amount: float = Field(default=100.0, description="Nominal trade amount")
    funding_currency: str = Field(default="USDT")

    # ==============================================
    # Telegram
    # ==============================================
    telegram_bot_token: Optional[str] = Field(default=None)
    telegram_chat_id: Optional[str] = Field(default=None)
    telegram_enabled: bool = Field(default=False)

    # ==============================================
    # External endpoints
    # ==============================================
    coingecko_api_url: str = Field(default="https://api.coingecko.com/api/v3")
    http_timeout: int = Field(default=30, description="HTTP timeout in seconds")

    @field_validator("log_level")
    @classmethod
    def validate_log_level(cls, v: str) -> str:
        valid_levels = {"DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"}
        v = v.upper()
        if v not in valid_levels:
            raise ValueError(f"Invalid log level: {v}. Must be one of {valid_levels}")
        return v

    @field_validator("arbitrage_threshold")
    @classmethod
    def validate_arbitrage_threshold(cls, v: float) -> float:
        if v < 0 or v > 100:
            raise ValueError("arbitrage_threshold must be between 0 and 100")
        return v

    @field_validator("volume_spike_threshold")
    @classmethod
    def validate_spike_threshold(cls, v: float) -> float:
        if v < 1:
            raise ValueError("volume_spike_threshold must be >= 1")
        return v

    @field_validator("min_absolute_volume")
    @classmethod
    def validate_min_volume(cls, v: float) -> float:
        if v < 0:
            raise ValueError("min_absolute_volume must be >= 0")
        return v

    @field_validator("active_set_size")
    @classmethod
    def validate_active_set_size(cls, v: int) -> int:
        if v < 1 or v > 500:
            raise ValueError("active_set_size must be between 1 and 500")
        return v

    @field_validator("active_set_ttl", "scan_interval", "trade_amount", "http_timeout")
    @classmethod
    def validate_positive(cls, v: float) -> float:
        if v <= 0:
            raise ValueError("must be greater than 0")
        return v

    @field_validator("funding_currency")
    @classmethod
    def normalize_funding_currency(cls, v: str) -> str:
        v = v.strip().upper()
        if not v:
            raise ValueError("funding_currency must not be empty")
        return v

    @property
    def telegram_configured(self) -> bool:
        return bool(self.telegram_enabled and self.telegram_bot_token and self.telegram_chat_id)


def load_settings(**overrides: Any) -> Settings:
    """
    Build and validate settings.

    Raises:
        ConfigurationError: If any value is out of range.
    """
    try:
        return Settings(**overrides)
    except ValidationError as e:
        problems = [
            f"{'.'.join(str(p) for p in err['loc'])}: {err['msg']}"
            for err in e.errors()
        ]
        raise ConfigurationError(
            "Invalid configuration: " + "; ".join(problems),
            details={"errors": problems},
        ) from e


@lru_cache()
def get_settings() -> Settings:
    """Get cached settings instance."""
    return load_settings()


def _find_project_file(*parts: str) -> Optional[Path]:
    """Locate a file relative to the project root (where pyproject.toml is)."""
    current = Path(__file__).resolve()
    for parent in current.parents:
        if (parent / "pyproject.toml").exists():
            return parent.joinpath(*parts)
    return None


def load_yaml_config(config_path: Optional[str] = None) -> dict[str, Any]:
    """
    Load YAML configuration file.

    Args:
        config_path: Path to config file. Defaults to config/config.yaml,
            or ARBSCOUT_CONFIG when set.

    Returns:
        Configuration dictionary
    """
    if config_path is None:
        config_path = os.getenv("ARBSCOUT_CONFIG")
    if config_path is None:
        found = _find_project_file("config", "config.yaml")
        config_path = str(found) if found else "config/config.yaml"

    path = Path(config_path)
    if not path.exists():
        raise ConfigurationError(f"Config file not found: {config_path}")

    with open(path, "r", encoding="utf-8") as f:
        data = yaml.safe_load(f) or {}

    if not isinstance(data, dict):
        raise ConfigurationError(f"Config file must contain a mapping: {config_path}")
    return data


def require_positive(section: str, key: str, value: Any, *, allow_zero: bool = False) -> float:
    """Validate a numeric YAML value, failing fast on bad input."""
    try:
        number = float(value)
    except (TypeError, ValueError) as e:
        raise ConfigurationError(f"{section}.{key} must be a number, got {value!r}") from e
    if number < 0 or (number == 0 and not allow_zero):
        bound = "at least 0" if allow_zero else "greater than 0"
        raise ConfigurationError(f"{section}.{key} must be {bound}, got {value!r}")
    return number
