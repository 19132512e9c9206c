"""
Logging manager for locator_resolver.

This module provides centralized logging configuration for applications and
the command line tool. Library modules only create module-level loggers;
handlers are installed here.
"""

import logging
import sys
from typing import Dict, Optional

from ..config.models import LoggingConfig, LogLevel
from .filters import LocatorCredentialFilter
from .formatters import ColoredFormatter, StructuredFormatter

PACKAGE_LOGGER = "locator_resolver"


class LoggingManager:
    """Centralized logging manager."""

    def __init__(self) -> None:
        """Initialize logging manager."""
        self._configured = False
        self._handlers: Dict[str, logging.Handler] = {}

    def setup_logging(self, config: Optional[LoggingConfig] = None) -> None:
        """
        Setup logging based on configuration.

        Args:
            config: Logging configuration (defaults if None)
        """
        config = config or LoggingConfig()
        if self._configured:
            self.cleanup()

        package_logger = logging.getLogger(PACKAGE_LOGGER)
        package_logger.setLevel(getattr(logging, LogLevel(config.level).value))

        handler = logging.StreamHandler(sys.stderr)
        formatter: logging.Formatter
        if config.enable_structured:
            formatter = StructuredFormatter()
        else:
            formatter = ColoredFormatter(config.format, use_colors=config.use_colors)
        handler.setFormatter(formatter)
        handler.addFilter(LocatorCredentialFilter())

        package_logger.addHandler(handler)
        self._handlers["console"] = handler

        for component, level in config.component_levels.items():
            logging.getLogger(component).setLevel(getattr(logging, LogLevel(level).value))

        self._configured = True
        package_logger.debug("Logging system configured")

    def set_level(self, level: LogLevel, component: Optional[str] = None) -> None:
        """
        Set logging level.

        Args:
            level: New logging level
            component: Specific component (package logger if None)
        """
        logging.getLogger(component or PACKAGE_LOGGER).setLevel(
            getattr(logging, LogLevel(level).value)
        )

    def cleanup(self) -> None:
        """Remove and close installed handlers."""
        package_logger = logging.getLogger(PACKAGE_LOGGER)
        for handler in list(self._handlers.values()):
            package_logger.removeHandler(handler)
            handler.close()

        self._handlers.clear()
        self._configured = False

    def is_configured(self) -> bool:
        """Check if logging is configured."""
        return self._configured


_logging_manager = LoggingManager()


def setup_logging(config: Optional[LoggingConfig] = None) -> None:
    """
    Setup logging with configuration.

    Args:
        config: Logging configuration
    """
    _logging_manager.setup_logging(config)


def cleanup_logging() -> None:
    """Cleanup logging system."""
    _logging_manager.cleanup()
