"""Logging configuration."""

import logging
import os
from typing import Optional, Union

_ROOT = "kubeartifacts"


def _default_level() -> int:
    level = os.environ.get("KUBEARTIFACTS_LOG_LEVEL", "INFO").upper()
    return getattr(logging, level, logging.INFO)


def get_logger(name: Optional[str] = None) -> logging.Logger:
    """Get a configured logger instance."""
    logger = logging.getLogger(name or __name__)

    # Only configure if no handlers exist
    if not logger.handlers:
        handler = logging.StreamHandler()
        formatter = logging.Formatter("%(asctime)s - %(name)s - %(levelname)s - %(message)s")
        handler.setFormatter(formatter)
        logger.addHandler(handler)
        logger.setLevel(_default_level())

    return logger


def set_log_level(level: Union[int, str]) -> None:
    """Change the level of every logger configured through get_logger."""
    if isinstance(level, str):
        level = getattr(logging, level.upper(), logging.INFO)

    for name, logger in logging.Logger.manager.loggerDict.items():
        if not isinstance(logger, logging.Logger):
            continue
        if name == _ROOT or name.startswith(_ROOT + "."):
            logger.setLevel(level)
