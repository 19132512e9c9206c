"""
Configuration models for locator_resolver.

This module defines the resolver configuration with validation, defaults
and the per-environment profiles layered on top of the defaults.
"""

from __future__ import annotations

from enum import Enum
from typing import Any, Dict, List, Optional

from pydantic import BaseModel, ConfigDict, Field, field_validator
from pydantic.alias_generators import to_camel


class Environment(str, Enum):
    """Application environments."""

    DEVELOPMENT = "development"
    TESTING = "testing"
    PRODUCTION = "production"


class LogLevel(str, Enum):
    """Logging levels."""

    DEBUG = "DEBUG"
    INFO = "INFO"
    WARNING = "WARNING"
    ERROR = "ERROR"
    CRITICAL = "CRITICAL"


class LoggingConfig(BaseModel):
    """Logging configuration."""

    level: LogLevel = Field(default=LogLevel.INFO, description="Default logging level")
    format: str = Field(
        default="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
        description="Log message format",
    )
    enable_structured: bool = Field(
        default=False, description="Emit JSON log lines instead of text"
    )
    use_colors: Optional[bool] = Field(
        default=None, description="Colorize console output (auto-detect if None)"
    )

    # Component-specific log levels
    component_levels: Dict[str, LogLevel] = Field(
        default_factory=dict, description="Per-component log levels"
    )


DEFAULT_PROXY_ENDPOINTS = [
    "https://images.weserv.nl/?url=",
    "https://imageproxy.pimg.tw/resize?url=",
    "https://cors-anywhere.herokuapp.com/",
]

DEFAULT_PLACEHOLDER_SERVICES = [
    "https://via.placeholder.com/400x300/f0f0f0/666666?text=",
    "https://picsum.photos/400/300?random=",
]


class ResolverConfig(BaseModel):
    """Effective runtime configuration of the resolver."""

    # Probing
    probe_timeout_ms: int = Field(
        default=5000, gt=0, description="Per-candidate probe deadline"
    )
    probe_grace_ms: int = Field(
        default=250,
        ge=0,
        description="Extra time the local timer allows before forcing a failure",
    )
    max_concurrent: int = Field(
        default=3, ge=1, description="Chunk size for batch resolution"
    )
    retry_attempts: int = Field(
        default=0, ge=0, description="Re-probes of a transient failure"
    )
    retry_delay_ms: int = Field(
        default=1000, ge=0, description="Pause between re-probes"
    )
    cache_bust: bool = Field(
        default=True, description="Append a timestamp parameter to probe requests"
    )
    max_connections: int = Field(
        default=20, ge=1, description="Connection pool size of the probe session"
    )
    max_probe_bytes: int = Field(
        default=1024 * 1024,
        ge=1024,
        description="Most body bytes read per probe (the image header must fit)",
    )
    user_agent: str = Field(
        default="LocatorResolver/0.1.0", description="User-Agent header for probes"
    )

    # Cache
    enable_cache: bool = Field(
        default=True, description="Serve and record verification results in the cache"
    )
    cache_ttl_ms: int = Field(
        default=30 * 60 * 1000, gt=0, description="Cache entry freshness window"
    )
    max_cache_entries: int = Field(
        default=1000, ge=1, description="Eviction threshold"
    )

    # Cascade
    proxy_endpoints: List[str] = Field(
        default_factory=lambda: list(DEFAULT_PROXY_ENDPOINTS),
        description="Ordered proxy rewrite templates",
    )
    placeholder_services: List[str] = Field(
        default_factory=lambda: list(DEFAULT_PLACEHOLDER_SERVICES),
        description="Ordered synthetic placeholder generators",
    )
    base_url: Optional[str] = Field(
        default=None, description="Base for resolving relative locators"
    )

    # Debugging
    debug_enabled: bool = Field(
        default=False, description="Verbose per-probe logging of the cascade"
    )

    model_config = ConfigDict(
        validate_assignment=True,
        extra="forbid",
        alias_generator=to_camel,
        populate_by_name=True,
    )

    @field_validator("proxy_endpoints", "placeholder_services", mode="before")
    @classmethod
    def split_list(cls, v: Any) -> Any:
        """Accept comma-separated strings for list settings."""
        if isinstance(v, str):
            return [item.strip() for item in v.split(",") if item.strip()]
        return v

    @field_validator("proxy_endpoints", "placeholder_services")
    @classmethod
    def require_http_templates(cls, v: List[str]) -> List[str]:
        """Proxy and placeholder templates must be absolute http(s) URLs."""
        for item in v:
            if not item.startswith(("http://", "https://")):
                raise ValueError(f"Not an http(s) template: {item!r}")
        return v

    @classmethod
    def field_for(cls, key: str) -> Optional[str]:
        """Return the field name for a snake_case or camelCase key."""
        if key in cls.model_fields:
            return key
        for name, info in cls.model_fields.items():
            if info.alias == key:
                return name
        return None


ENVIRONMENT_PROFILES: Dict[Environment, Dict[str, Any]] = {
    Environment.PRODUCTION: {
        "probe_timeout_ms": 3000,
        "max_concurrent": 5,
        "debug_enabled": False,
        "cache_ttl_ms": 60 * 60 * 1000,
    },
    Environment.DEVELOPMENT: {
        "probe_timeout_ms": 8000,
        "max_concurrent": 2,
        "debug_enabled": True,
    },
    Environment.TESTING: {
        "probe_timeout_ms": 500,
        "probe_grace_ms": 50,
        "retry_delay_ms": 0,
        "proxy_endpoints": [],
        "debug_enabled": True,
    },
}
