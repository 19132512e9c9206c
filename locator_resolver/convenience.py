"""
Convenience wiring for locator resolution.

Applications build one ResolutionService at startup and share it; the
module-level helpers cover one-off scripts and the command line tool.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Mapping, Optional, Sequence

from .batch import BatchResolver, BatchResult, ProgressCallback
from .config import ConfigService
from .utils.cache import CacheService
from .utils.url import UnwrapRegistry
from .verifier import Verifier


@dataclass
class ResolutionService:
    """The configured collaborators of one application instance."""

    config: ConfigService
    cache: CacheService
    verifier: Verifier
    resolver: BatchResolver

    async def __aenter__(self) -> "ResolutionService":
        return self

    async def __aexit__(self, exc_type, exc_val, exc_tb) -> None:
        await self.close()

    async def resolve(
        self,
        entity_name: Optional[str],
        locators: Sequence[str],
        concurrency_limit: Optional[int] = None,
        on_progress: Optional[ProgressCallback] = None,
    ) -> BatchResult:
        """Resolve the locators of one entity."""
        return await self.resolver.resolve_batch(
            locators, entity_name, concurrency_limit=concurrency_limit, on_progress=on_progress
        )

    async def close(self) -> None:
        """Stop background cleanup and close network connections."""
        await self.cache.close()
        await self.resolver.close()


def build_service(
    overrides: Optional[Mapping[str, Any]] = None,
    config_service: Optional[ConfigService] = None,
    registry: Optional[UnwrapRegistry] = None,
) -> ResolutionService:
    """
    Construct a config service, cache, verifier and resolver wired together.

    Args:
        overrides: Explicit configuration overrides (ignored if config_service is given)
        config_service: Existing configuration service to share
        registry: Custom unwrap rules

    Returns:
        ResolutionService holding the collaborators
    """
    config = config_service or ConfigService(overrides=overrides)
    cache = CacheService(config)
    verifier = Verifier(config, cache)
    resolver = BatchResolver(config, cache, verifier=verifier, registry=registry)
    return ResolutionService(config=config, cache=cache, verifier=verifier, resolver=resolver)


async def resolve_locators(
    entity_name: Optional[str],
    locators: Sequence[str],
    overrides: Optional[Mapping[str, Any]] = None,
    on_progress: Optional[ProgressCallback] = None,
) -> BatchResult:
    """
    Resolve locators with a throwaway service.

    Nothing is shared between calls, so the cache only helps within one
    call. Long-lived applications should use build_service instead.

    Example:
        ```python
        result = await resolve_locators("Bund", ["https://example.com/a.jpg"])
        print(result.to_dict())
        ```
    """
    async with build_service(overrides) as service:
        return await service.resolve(entity_name, locators, on_progress=on_progress)
