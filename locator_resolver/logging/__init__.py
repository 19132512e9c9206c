"""
Logging setup for locator_resolver.

Console handlers with colored or structured JSON output and credential
masking for locators.
"""

from .filters import LocatorCredentialFilter
from .formatters import ColoredFormatter, StructuredFormatter
from .manager import LoggingManager, cleanup_logging, setup_logging

__all__ = [
    "LoggingManager",
    "setup_logging",
    "cleanup_logging",
    "StructuredFormatter",
    "ColoredFormatter",
    "LocatorCredentialFilter",
]
