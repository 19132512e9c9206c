"""
Configuration management for locator_resolver.

Provides the pydantic configuration models, the layered loader and the
runtime configuration service.
"""

from .loader import ConfigLoader
from .manager import ConfigService
from .models import (
    DEFAULT_PLACEHOLDER_SERVICES,
    DEFAULT_PROXY_ENDPOINTS,
    ENVIRONMENT_PROFILES,
    Environment,
    LoggingConfig,
    LogLevel,
    ResolverConfig,
)

__all__ = [
    "ConfigLoader",
    "ConfigService",
    "ResolverConfig",
    "LoggingConfig",
    "LogLevel",
    "Environment",
    "ENVIRONMENT_PROFILES",
    "DEFAULT_PROXY_ENDPOINTS",
    "DEFAULT_PLACEHOLDER_SERVICES",
]
