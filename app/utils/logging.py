"""Logging setup for the proxy.

Pipeline functions take an optional logger; when none is given they log to
their module logger from ``get_logger``.
"""

import logging
import os
import sys

from pydantic import BaseModel, Field

DEFAULT_QUIET_LOGGERS = ["httpx", "httpcore", "uvicorn.access"]


class LogConfig(BaseModel):
    """Logging configuration, see ``LogConfig.from_env``."""

    level: str = "INFO"
    format: str = "%(asctime)s - %(name)s - %(levelname)s - %(message)s"
    date_format: str = "%Y-%m-%d %H:%M:%S"
    quiet_loggers: list[str] = Field(default_factory=lambda: list(DEFAULT_QUIET_LOGGERS))
    quiet_level: str = "WARNING"

    @classmethod
    def from_env(cls) -> "LogConfig":
        """Read LOG_LEVEL, LOG_FORMAT and LOG_QUIET (comma separated logger names)."""
        config = cls(level=os.getenv("LOG_LEVEL", "INFO"))
        if log_format := os.getenv("LOG_FORMAT"):
            config.format = log_format
        if quiet := os.getenv("LOG_QUIET"):
            config.quiet_loggers = [name.strip() for name in quiet.split(",") if name.strip()]
        return config


def setup_logging(config: LogConfig | None = None) -> None:
    """Configure the root logger and quieten chatty HTTP libraries."""
    config = config or LogConfig.from_env()

    logging.basicConfig(
        level=getattr(logging, config.level.upper(), logging.INFO),
        format=config.format,
        datefmt=config.date_format,
        stream=sys.stdout,
        force=True,
    )

    for name in config.quiet_loggers:
        logging.getLogger(name).setLevel(config.quiet_level.upper())


def get_logger(name: str, level: str | None = None) -> logging.Logger:
    """Get a module logger, at ``level`` or LOG_LEVEL."""
    logger = logging.getLogger(name)
    logger.setLevel((level or os.getenv("LOG_LEVEL", "INFO")).upper())
    return logger
