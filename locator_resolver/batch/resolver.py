"""
Batch resolver for candidate image locators.

Each locator is resolved by walking its proxy cascade sequentially, one
candidate at a time, stopping at the first success. Locators are processed
in chunks of ``concurrency_limit``: the members of a chunk run concurrently
and the next chunk starts only after the whole chunk has finished.
"""

import asyncio
import inspect
import logging
import time
from typing import Optional, Sequence

from ..cascade import Candidate, ProxyCascade
from ..config import ConfigService, ResolverConfig
from ..utils.cache import CacheService
from ..utils.url import UnwrapRegistry, absolutize
from ..verifier import Verifier
from .models import BatchJob, BatchResult, LocatorResolution, ProgressCallback

logger = logging.getLogger(__name__)


class BatchResolver:
    """Resolves locators to retrievable alternatives."""

    def __init__(
        self,
        config_service: ConfigService,
        cache: CacheService,
        verifier: Optional[Verifier] = None,
        registry: Optional[UnwrapRegistry] = None,
    ):
        """
        Initialize batch resolver.

        Args:
            config_service: Source of concurrency, retry and cascade settings
            cache: Shared verification cache
            verifier: Verifier to probe with (one is created if None)
            registry: Unwrap rules for the cascade (built-in rules if None)
        """
        self.config_service = config_service
        self.cache = cache
        self.verifier = verifier or Verifier(config_service, cache)
        self.registry = registry

    async def __aenter__(self) -> "BatchResolver":
        return self

    async def __aexit__(self, exc_type, exc_val, exc_tb) -> None:
        await self.close()

    async def close(self) -> None:
        """Release the verifier's connections."""
        await self.verifier.close()

    async def resolve_one(self, locator: str, entity_name: Optional[str] = None) -> Optional[str]:
        """
        Find a retrievable locator for ``locator``.

        A cached success for the original returns immediately without any
        network activity. Otherwise the cascade is consumed sequentially.
        Synthetic placeholders are never returned.

        Args:
            locator: Original locator
            entity_name: Entity the locator belongs to

        Returns:
            The first working candidate, or None
        """
        resolution = await self._resolve(locator, entity_name, self.config_service.get_config())
        return resolution.working

    async def resolve_batch(
        self,
        locators: Sequence[str],
        entity_name: Optional[str] = None,
        concurrency_limit: Optional[int] = None,
        on_progress: Optional[ProgressCallback] = None,
    ) -> BatchResult:
        """
        Resolve a list of locators for one entity.

        Args:
            locators: Original locators, in display order
            entity_name: Entity the locators belong to
            concurrency_limit: Chunk size (``max_concurrent`` if None)
            on_progress: Called with a percentage after every locator;
                may be a coroutine function

        Returns:
            BatchResult with working locators (winning candidates),
            failed originals and aggregate statistics
        """
        started = time.monotonic()
        result = BatchResult(entity_name=entity_name)
        if not locators:
            return result

        config = self.config_service.get_config()
        limit = max(1, concurrency_limit or config.max_concurrent)
        total = len(locators)
        completed = 0

        logger.info(
            f"Resolving {total} locators for {entity_name or 'unknown entity'} "
            f"(concurrency {limit})"
        )

        async def run(locator: str) -> LocatorResolution:
            nonlocal completed
            resolution = await self._resolve(locator, entity_name, config)
            completed += 1
            await self._report_progress(on_progress, completed / total * 100)
            return resolution

        for start in range(0, total, limit):
            chunk = locators[start : start + limit]
            resolutions = await asyncio.gather(*(run(locator) for locator in chunk))
            for resolution in resolutions:
                self._collect(result, resolution)

        result.stats.total_processing_time_ms = int((time.monotonic() - started) * 1000)

        logger.info(
            f"Resolved {len(result.working)}/{total} locators for "
            f"{entity_name or 'unknown entity'} ({result.success_rate_percent:.1f}%): "
            f"{result.stats.successful_originals} originals ok, "
            f"{result.stats.original_attempts} original probes, "
            f"{result.stats.proxy_attempts} proxy probes, "
            f"{result.stats.cache_hits} cache hits, "
            f"{result.stats.total_processing_time_ms}ms"
        )
        return result

    async def resolve_job(self, job: BatchJob) -> BatchResult:
        """Resolve a BatchJob."""
        return await self.resolve_batch(
            job.locators,
            job.entity_name,
            concurrency_limit=job.concurrency_limit,
            on_progress=job.on_progress,
        )

    async def _resolve(
        self, locator: str, entity_name: Optional[str], config: ResolverConfig
    ) -> LocatorResolution:
        """Walk the cascade for one locator. Never raises."""
        resolution = LocatorResolution(original=locator)
        level = logging.INFO if config.debug_enabled else logging.DEBUG

        try:
            target = absolutize(locator, config.base_url)
            cascade = ProxyCascade(config, self.registry)

            for candidate in cascade.generate_candidates(target, entity_name):
                if candidate.synthetic:
                    logger.log(level, f"Cascade exhausted for {locator[:80]}")
                    break
                if await self._try_candidate(candidate, config, resolution):
                    resolution.working = candidate.locator
                    resolution.via = candidate.kind.value
                    logger.log(
                        level,
                        f"Resolved {locator[:60]} via {candidate.kind.value}: "
                        f"{candidate.locator[:80]}",
                    )
                    break
        except Exception as e:
            logger.error(f"Unexpected error resolving {locator[:80]}: {e}")
            resolution.working = None
            resolution.via = None

        return resolution

    async def _try_candidate(
        self, candidate: Candidate, config: ResolverConfig, resolution: LocatorResolution
    ) -> bool:
        """Cache-first check of one candidate, re-probing transient failures."""
        cached = self.cache.get(candidate.locator)
        if cached is not None:
            resolution.cache_hits += 1
            return cached

        if candidate.is_original:
            resolution.original_probes += 1
        else:
            resolution.proxy_probes += 1

        for attempt in range(config.retry_attempts + 1):
            if attempt:
                resolution.retries += 1
                await asyncio.sleep(config.retry_delay_ms / 1000.0)

            outcome = await self.verifier.probe(candidate.locator, config.probe_timeout_ms)
            if outcome.success:
                return True
            if not outcome.is_transient_failure:
                break

        return False

    @staticmethod
    def _collect(result: BatchResult, resolution: LocatorResolution) -> None:
        result.resolutions.append(resolution)
        if resolution.working is not None:
            result.working.append(resolution.working)
        else:
            result.failed.append(resolution.original)

        stats = result.stats
        stats.original_attempts += resolution.original_probes
        stats.proxy_attempts += resolution.proxy_probes
        stats.cache_hits += resolution.cache_hits
        stats.retries += resolution.retries
        if resolution.resolved_to_original:
            stats.successful_originals += 1

    @staticmethod
    async def _report_progress(callback: Optional[ProgressCallback], percent: float) -> None:
        if callback is None:
            return
        try:
            value = callback(min(100.0, percent))
            if inspect.isawaitable(value):
                await value
        except Exception as e:
            logger.warning(f"Progress callback failed: {e}")
