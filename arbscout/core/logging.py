"""
Logging setup for Arbscout.

config/logging.yaml (or the file named by ARBSCOUT_LOGGING) is applied with
dictConfig. Without it, the scanner logs to stdout in the same pipe-separated
format. Venue and HTTP libraries are held at WARNING unless debugging.
"""

import logging
import logging.config
import os
from pathlib import Path
from typing import Any, Optional

import yaml

from arbscout.core.errors import ConfigurationError

LOG_FORMAT = "%(asctime)s | %(levelname)-8s | %(name)s | %(message)s"
DATE_FORMAT = "%Y-%m-%d %H:%M:%S"

# One scan cycle issues hundreds of ticker requests.
NOISY_LOGGERS = ("ccxt", "httpx", "httpcore", "apscheduler", "telegram")

CONSOLE_CONFIG: dict[str, Any] = {
    "version": 1,
    "disable_existing_loggers": False,
    "formatters": {"standard": {"format": LOG_FORMAT, "datefmt": DATE_FORMAT}},
    "handlers": {
        "console": {
            "class": "logging.StreamHandler",
            "formatter": "standard",
            "stream": "ext://sys.stdout",
        },
    },
    "loggers": {"arbscout": {"handlers": ["console"], "propagate": False}},
    "root": {"level": "WARNING", "handlers": ["console"]},
}


def _default_config_path() -> Optional[Path]:
    env_path = os.getenv("ARBSCOUT_LOGGING")
    if env_path:
        return Path(env_path)
    for parent in Path(__file__).resolve().parents:
        if (parent / "pyproject.toml").exists():
            return parent / "config" / "logging.yaml"
    return None


def _resolve_level(level: str) -> int:
    resolved = logging.getLevelName(level.upper())
    if not isinstance(resolved, int):
        raise ConfigurationError(f"Unknown log level: {level}")
    return resolved


def setup_logging(
    config_path: Optional[str] = None,
    log_level: Optional[str] = None,
) -> None:
    """
    Configure the arbscout logger tree.

    Args:
        config_path: dictConfig YAML. Defaults to ARBSCOUT_LOGGING, then
            config/logging.yaml at the project root.
        log_level: Level for arbscout.*; falls back to LOG_LEVEL, then INFO.
    """
    level = _resolve_level(log_level or os.getenv("LOG_LEVEL", "INFO"))
    path = Path(config_path) if config_path else _default_config_path()

    if path is not None and path.exists():
        with open(path, "r", encoding="utf-8") as f:
            config = yaml.safe_load(f)

        for handler in config.get("handlers", {}).values():
            if "filename" in handler:
                Path(handler["filename"]).parent.mkdir(parents=True, exist_ok=True)
    else:
        config = CONSOLE_CONFIG

    logging.config.dictConfig(config)
    logging.getLogger("arbscout").setLevel(level)

    library_level = logging.DEBUG if level == logging.DEBUG else logging.WARNING
    for name in NOISY_LOGGERS:
        logging.getLogger(name).setLevel(library_level)


def get_logger(name: str) -> logging.Logger:
    """Logger under the arbscout namespace."""
    if not name.startswith("arbscout"):
        name = f"arbscout.{name}"
    return logging.getLogger(name)


class LoggerMixin:
    """Gives a class a `logger` named after it."""

    @property
    def logger(self) -> logging.Logger:
        if not hasattr(self, "_logger"):
            self._logger = get_logger(self.__class__.__name__)
        return self._logger
