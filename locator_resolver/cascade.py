"""
Proxy cascade: the ordered fallback candidates for one locator.

Candidates are produced lazily so a consumer can stop at the first success
without building the rest of the list. The order is fixed by configuration
and never randomized.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from enum import Enum
from typing import Iterator, List, Optional, Set

from .config import ResolverConfig
from .utils.url import UnwrapRegistry, encode_component, proxy_rewrite, unwrap_platform_locator

logger = logging.getLogger(__name__)


class CandidateKind(str, Enum):
    """Where a candidate came from."""

    ORIGINAL = "original"
    UNWRAPPED = "unwrapped"
    PROXY = "proxy"
    PROXY_UNWRAPPED = "proxy_unwrapped"
    PLACEHOLDER = "placeholder"


@dataclass(frozen=True)
class Candidate:
    """One locator to try, tagged with its origin."""

    locator: str
    kind: CandidateKind
    synthetic: bool = False

    @property
    def is_original(self) -> bool:
        return self.kind == CandidateKind.ORIGINAL


def placeholder_locator(service: str, entity_name: str) -> str:
    """Build a placeholder locator for an entity from a service template."""
    text = encode_component(entity_name)
    if "{text}" in service:
        return service.replace("{text}", text)
    return f"{service}{text}"


class ProxyCascade:
    """
    Generates fallback candidates from a configuration snapshot.

    The proxy endpoint and placeholder lists are copied at construction, so
    configuration updates made while a cascade is being consumed do not
    change it.
    """

    def __init__(
        self,
        config: ResolverConfig,
        registry: Optional[UnwrapRegistry] = None,
    ):
        """
        Initialize the cascade.

        Args:
            config: Configuration snapshot providing proxy and placeholder lists
            registry: Unwrap rules (the built-in rules if None)
        """
        self.proxy_endpoints: List[str] = list(config.proxy_endpoints)
        self.placeholder_services: List[str] = list(config.placeholder_services)
        self.registry = registry

    def generate_candidates(
        self, original: str, entity_name: Optional[str] = None
    ) -> Iterator[Candidate]:
        """
        Lazily yield candidates in priority order.

        1. the original locator
        2. its platform-unwrapped form, if different
        3. the original through each proxy endpoint
        4. the unwrapped form through each proxy endpoint (only if 2 applied)
        5. synthetic placeholders for ``entity_name``, if given

        Locators already yielded are skipped.

        Args:
            original: Locator to resolve
            entity_name: Entity the locator belongs to

        Yields:
            Candidate objects; placeholders have ``synthetic=True``
        """
        seen: Set[str] = set()

        def fresh(locator: str) -> bool:
            if locator in seen:
                return False
            seen.add(locator)
            return True

        if fresh(original):
            yield Candidate(original, CandidateKind.ORIGINAL)

        unwrapped = unwrap_platform_locator(original, self.registry)
        if unwrapped == original:
            unwrapped = None
        if unwrapped and fresh(unwrapped):
            yield Candidate(unwrapped, CandidateKind.UNWRAPPED)

        for endpoint in self.proxy_endpoints:
            proxied = proxy_rewrite(original, endpoint)
            if fresh(proxied):
                yield Candidate(proxied, CandidateKind.PROXY)

        if unwrapped:
            for endpoint in self.proxy_endpoints:
                proxied = proxy_rewrite(unwrapped, endpoint)
                if fresh(proxied):
                    yield Candidate(proxied, CandidateKind.PROXY_UNWRAPPED)

        if entity_name:
            for service in self.placeholder_services:
                placeholder = placeholder_locator(service, entity_name)
                if fresh(placeholder):
                    yield Candidate(placeholder, CandidateKind.PLACEHOLDER, synthetic=True)
