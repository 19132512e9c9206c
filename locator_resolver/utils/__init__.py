"""
Utility modules for locator_resolver.

Locator normalization and the verification result cache.
"""

from .cache import CacheEntry, CacheService, CacheStats
from .url import (
    CACHE_BUSTER_PARAM,
    VOLATILE_PARAMS,
    UnwrapRegistry,
    UnwrapRule,
    absolutize,
    add_cache_buster,
    build_default_registry,
    canonicalize,
    default_unwrap_rules,
    encode_component,
    is_wire_encoded,
    proxy_rewrite,
    unwrap_platform_locator,
)

__all__ = [
    "CacheEntry",
    "CacheService",
    "CacheStats",
    "CACHE_BUSTER_PARAM",
    "VOLATILE_PARAMS",
    "UnwrapRegistry",
    "UnwrapRule",
    "absolutize",
    "add_cache_buster",
    "build_default_registry",
    "canonicalize",
    "default_unwrap_rules",
    "encode_component",
    "is_wire_encoded",
    "proxy_rewrite",
    "unwrap_platform_locator",
]
