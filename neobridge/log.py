import sys

from loguru import logger

__all__ = ["configure_logging", "logger"]


def configure_logging(level: str = "INFO") -> None:
    logger.remove()
    logger.add(sys.stderr, level=level.upper())
