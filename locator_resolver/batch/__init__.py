"""
Batch resolution of candidate locators.

Chunked, bounded-concurrency resolution with progress reporting and
aggregate statistics.
"""

from .models import BatchJob, BatchResult, BatchStats, LocatorResolution, ProgressCallback
from .resolver import BatchResolver

__all__ = [
    "BatchJob",
    "BatchResult",
    "BatchStats",
    "BatchResolver",
    "LocatorResolution",
    "ProgressCallback",
]
