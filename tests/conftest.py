"""
Shared test fixtures and configuration for the locator_resolver test suite.
"""

import asyncio
import io
import logging
import os
from typing import Any, Dict, List, Optional, Tuple

import aiohttp
import pytest
from PIL import Image

from locator_resolver import CacheService, ConfigService, Environment, Verifier
from locator_resolver.config import ResolverConfig
from locator_resolver.exceptions import ProbeNetworkError
from locator_resolver.logging import cleanup_logging


def make_png(width: int = 4, height: int = 3) -> bytes:
    """Encode a small solid-color PNG."""
    buffer = io.BytesIO()
    Image.new("RGB", (width, height), (200, 30, 30)).save(buffer, format="PNG")
    return buffer.getvalue()


class FakeClock:
    """Manually advanced clock for cache tests."""

    def __init__(self, start: float = 1_000_000.0) -> None:
        self.now = start

    def __call__(self) -> float:
        return self.now

    def advance(self, seconds: float) -> None:
        self.now += seconds


class ScriptedVerifier(Verifier):
    """
    Verifier whose network layer is a lookup table.

    ``responses`` maps a locator to bytes (served with status 200), an int
    (an HTTP error status), an exception instance (raised), or a list of
    those consumed one per fetch. Unknown locators fail with a connection
    error. Every fetch is recorded in ``fetched``.
    """

    def __init__(
        self,
        config_service: ConfigService,
        cache: CacheService,
        responses: Optional[Dict[str, Any]] = None,
        sizes: Optional[Dict[str, Tuple[int, int]]] = None,
        delays: Optional[Dict[str, float]] = None,
        default_delay: float = 0.0,
    ):
        super().__init__(config_service, cache)
        self.responses = dict(responses or {})
        self.sizes = dict(sizes or {})
        self.delays = dict(delays or {})
        self.default_delay = default_delay
        self.fetched: List[str] = []
        self.events: List[Tuple[str, str]] = []
        self.in_flight = 0
        self.max_in_flight = 0

    async def _fetch(self, locator: str, timeout_ms: int, config: ResolverConfig):
        self.fetched.append(locator)
        self.events.append(("start", locator))
        self.in_flight += 1
        self.max_in_flight = max(self.max_in_flight, self.in_flight)
        try:
            delay = self.delays.get(locator, self.default_delay)
            if delay:
                await asyncio.sleep(delay)

            response = self.responses.get(locator)
            if isinstance(response, list):
                response = response.pop(0) if len(response) > 1 else response[0]

            if response is None:
                raise aiohttp.ClientConnectionError(f"Connection refused: {locator}")
            if isinstance(response, BaseException):
                raise response
            if isinstance(response, int):
                raise ProbeNetworkError(f"HTTP {response}", locator, status_code=response)
            return response, 200
        finally:
            self.in_flight -= 1
            self.events.append(("end", locator))

    def _measure(self, locator: str, content: bytes) -> Tuple[int, int]:
        if locator in self.sizes:
            return self.sizes[locator]
        return super()._measure(locator, content)


@pytest.fixture(autouse=True)
def clean_environment(monkeypatch):
    """Keep LOCATOR_RESOLVER_* variables from the host out of the tests."""
    for key in list(os.environ):
        if key.startswith("LOCATOR_RESOLVER_"):
            monkeypatch.delenv(key, raising=False)


@pytest.fixture
def png_bytes() -> bytes:
    """A valid 4x3 PNG image."""
    return make_png()


@pytest.fixture
def clock() -> FakeClock:
    return FakeClock()


@pytest.fixture
def config_service() -> ConfigService:
    """Testing profile with a single deterministic proxy endpoint."""
    return ConfigService(
        environment=Environment.TESTING,
        overrides={
            "proxy_endpoints": ["https://proxy.example/?u="],
            "placeholder_services": ["https://placeholder.example/400x300?text="],
        },
    )


@pytest.fixture
def cache(config_service: ConfigService, clock: FakeClock) -> CacheService:
    return CacheService(config_service, clock=clock)


@pytest.fixture
def make_image():
    """Factory for PNG bodies of a given size."""
    return make_png


@pytest.fixture
def scripted_verifier(config_service: ConfigService, cache: CacheService):
    """Factory for ScriptedVerifier instances bound to the shared cache."""

    def factory(**kwargs: Any) -> ScriptedVerifier:
        return ScriptedVerifier(config_service, cache, **kwargs)

    return factory


@pytest.fixture(autouse=True)
def restore_package_logger():
    """Undo handler and level changes made by setup_logging."""
    package_logger = logging.getLogger("locator_resolver")
    level = package_logger.level
    yield
    cleanup_logging()
    package_logger.setLevel(level)
