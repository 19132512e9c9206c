"""
Data models for batch resolution.

This module defines the batch job description, the aggregate statistics and
the batch result with its serialized output contract.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, Awaitable, Callable, Dict, List, Optional, Union

ProgressCallback = Callable[[float], Union[None, Awaitable[None]]]


@dataclass
class BatchJob:
    """Resolution request for the locators of one entity."""

    entity_name: Optional[str]
    locators: List[str] = field(default_factory=list)
    concurrency_limit: Optional[int] = None
    on_progress: Optional[ProgressCallback] = None

    def __post_init__(self) -> None:
        if self.concurrency_limit is not None and self.concurrency_limit < 1:
            raise ValueError("concurrency_limit must be at least 1")


@dataclass
class BatchStats:
    """Aggregate statistics of one batch."""

    original_attempts: int = 0
    proxy_attempts: int = 0
    successful_originals: int = 0
    total_processing_time_ms: int = 0
    cache_hits: int = 0
    retries: int = 0

    def to_dict(self) -> Dict[str, int]:
        return {
            "originalAttempts": self.original_attempts,
            "proxyAttempts": self.proxy_attempts,
            "successfulOriginals": self.successful_originals,
            "totalProcessingTimeMs": self.total_processing_time_ms,
            "cacheHits": self.cache_hits,
            "retries": self.retries,
        }


@dataclass
class LocatorResolution:
    """How one input locator was resolved."""

    original: str
    working: Optional[str] = None
    via: Optional[str] = None
    original_probes: int = 0
    proxy_probes: int = 0
    cache_hits: int = 0
    retries: int = 0

    @property
    def resolved(self) -> bool:
        return self.working is not None

    @property
    def resolved_to_original(self) -> bool:
        return self.working is not None and self.via == "original"


@dataclass
class BatchResult:
    """Outcome of resolving a batch of locators."""

    entity_name: Optional[str]
    working: List[str] = field(default_factory=list)
    failed: List[str] = field(default_factory=list)
    stats: BatchStats = field(default_factory=BatchStats)
    resolutions: List[LocatorResolution] = field(default_factory=list)

    @property
    def total(self) -> int:
        return len(self.working) + len(self.failed)

    @property
    def success_rate_percent(self) -> float:
        """Share of input locators that resolved, in percent."""
        if self.total == 0:
            return 0.0
        return len(self.working) / self.total * 100

    @property
    def all_failed(self) -> bool:
        return not self.working

    def to_dict(self) -> Dict[str, Any]:
        """Serialize to the output contract."""
        return {
            "entityName": self.entity_name,
            "workingLocators": list(self.working),
            "failedLocators": list(self.failed),
            "successRatePercent": self.success_rate_percent,
            "stats": self.stats.to_dict(),
        }
