"""
Logging configuration for GBase Slides using Logfire.

Falls back to the standard library logger when no LOGFIRE_TOKEN is set.
"""
import logging
import os
from typing import Optional

import logfire

from gbase_slides.utils.logfire_config import configure_logfire, is_configured


def _format(message, args) -> str:
    # Handle % formatting if args provided
    if args:
        return message % args
    return message


class LogfireLogger:
    """Wrapper to make Logfire work like standard Python logging."""

    def __init__(self, name: str):
        self.name = name

    def info(self, message, *args, **kwargs):
        logfire.info(f"[{self.name}] {_format(message, args)}", **kwargs.get("extra", {}))

    def warning(self, message, *args, **kwargs):
        logfire.warn(f"[{self.name}] {_format(message, args)}", **kwargs.get("extra", {}))

    warn = warning

    def error(self, message, *args, **kwargs):
        logfire.error(f"[{self.name}] {_format(message, args)}", **kwargs.get("extra", {}))

    def debug(self, message, *args, **kwargs):
        logfire.debug(f"[{self.name}] {_format(message, args)}", **kwargs.get("extra", {}))

    def exception(self, message, *args, **kwargs):
        logfire.exception(f"[{self.name}] {_format(message, args)}", **kwargs.get("extra", {}))

    def setLevel(self, level):
        # No-op for compatibility
        pass


class StandardLogger:
    """Standard Python logger when Logfire is not configured."""

    def __init__(self, name: str, level: Optional[str] = None):
        self.logger = logging.getLogger(name)

        # Read LOG_LEVEL from environment, default to INFO
        log_level_str = (level or os.getenv('LOG_LEVEL', 'INFO')).upper()
        log_level = getattr(logging, log_level_str, logging.INFO)
        self.logger.setLevel(log_level)

        if not self.logger.handlers:
            handler = logging.StreamHandler()
            handler.setLevel(log_level)
            handler.setFormatter(logging.Formatter('[%(levelname)s %(name)s] %(message)s'))
            self.logger.addHandler(handler)

    def info(self, message, *args, **kwargs):
        self.logger.info(message, *args, **kwargs)

    def warning(self, message, *args, **kwargs):
        self.logger.warning(message, *args, **kwargs)

    warn = warning

    def error(self, message, *args, **kwargs):
        self.logger.error(message, *args, **kwargs)

    def debug(self, message, *args, **kwargs):
        self.logger.debug(message, *args, **kwargs)

    def exception(self, message, *args, **kwargs):
        self.logger.exception(message, *args, **kwargs)

    def setLevel(self, level):
        self.logger.setLevel(level)


def setup_logger(name: str, level: Optional[str] = None):
    """
    Set up a logger using Logfire or standard Python logging if not configured.

    Args:
        name: Logger name (usually __name__)
        level: Logging level (used for standard logger)

    Returns:
        LogfireLogger or StandardLogger instance
    """
    if is_configured() or configure_logfire():
        return LogfireLogger(name)
    return StandardLogger(name, level)
