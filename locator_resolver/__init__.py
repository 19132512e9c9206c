"""
Remote image locator resolution with a verification cache.

Given candidate image locators for a named entity, this package works out
which are currently retrievable, falling back through platform unwrapping,
proxy endpoints and placeholders, and memoizes every probe result.

Features:
- Async probing with AIOHTTP and image validation with Pillow
- Bounded, TTL based verification cache with hit/miss statistics
- Lazy, deterministic proxy cascade with a pluggable unwrap rule registry
- Chunked bounded-concurrency batch resolution with progress reporting
- Layered pydantic configuration with fail-safe runtime updates
"""

from .batch import BatchJob, BatchResolver, BatchResult, BatchStats, LocatorResolution
from .cascade import Candidate, CandidateKind, ProxyCascade, placeholder_locator
from .config import ConfigLoader, ConfigService, Environment, LoggingConfig, ResolverConfig
from .convenience import ResolutionService, build_service, resolve_locators
from .exceptions import (
    ConfigParseError,
    ProbeError,
    ProbeInvalidResourceError,
    ProbeNetworkError,
    ProbeTimeoutError,
    ResolverError,
)
from .utils import (
    CacheEntry,
    CacheService,
    CacheStats,
    UnwrapRegistry,
    UnwrapRule,
    absolutize,
    canonicalize,
    proxy_rewrite,
    unwrap_platform_locator,
)
from .verifier import VerificationOutcome, Verifier

__version__ = "0.1.0"

__all__ = [
    # Configuration
    "ConfigLoader",
    "ConfigService",
    "Environment",
    "LoggingConfig",
    "ResolverConfig",
    # Normalization
    "UnwrapRegistry",
    "UnwrapRule",
    "absolutize",
    "canonicalize",
    "proxy_rewrite",
    "unwrap_platform_locator",
    # Cache
    "CacheEntry",
    "CacheService",
    "CacheStats",
    # Verification
    "VerificationOutcome",
    "Verifier",
    # Cascade
    "Candidate",
    "CandidateKind",
    "ProxyCascade",
    "placeholder_locator",
    # Batch
    "BatchJob",
    "BatchResolver",
    "BatchResult",
    "BatchStats",
    "LocatorResolution",
    # Convenience
    "ResolutionService",
    "build_service",
    "resolve_locators",
    # Exceptions
    "ConfigParseError",
    "ProbeError",
    "ProbeInvalidResourceError",
    "ProbeNetworkError",
    "ProbeTimeoutError",
    "ResolverError",
]
