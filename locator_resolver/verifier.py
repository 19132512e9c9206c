"""
Single-locator verification using AIOHTTP and Pillow.

A probe fetches one candidate within a bounded time, checks that the body is
an image with non-zero dimensions, and records the outcome in the cache no
matter how the probe ended.
"""

from __future__ import annotations

import asyncio
import io
import logging
import time
from dataclasses import dataclass
from typing import List, Optional, Tuple

from aiohttp import ClientResponse, ClientSession, ClientTimeout, TCPConnector
from PIL import Image
from yarl import URL

from .config import ConfigService, ResolverConfig
from .exceptions import (
    ProbeError,
    ProbeInvalidResourceError,
    ProbeNetworkError,
    classify_exception,
)
from .utils.cache import CacheService
from .utils.url import add_cache_buster, is_wire_encoded

logger = logging.getLogger(__name__)


@dataclass
class VerificationOutcome:
    """Result of probing one locator."""

    locator: str
    success: bool
    elapsed_ms: int
    error_kind: Optional[str] = None
    status_code: Optional[int] = None
    width: int = 0
    height: int = 0
    message: Optional[str] = None

    @property
    def is_transient_failure(self) -> bool:
        """Timeouts and transport errors may succeed on a re-probe."""
        if self.success:
            return False
        if self.error_kind == "timeout":
            return True
        return self.error_kind == "network" and (
            self.status_code is None or self.status_code >= 500 or self.status_code == 429
        )


class Verifier:
    """
    Probes locators and memoizes the results.

    The verifier owns an aiohttp session unless one is supplied. Use it as an
    async context manager (or call ``close``) to release connections.

    Usage:
        ```python
        async with Verifier(config_service, cache) as verifier:
            outcome = await verifier.probe("https://example.com/a.jpg")
            print(outcome.success, outcome.width, outcome.height)
        ```
    """

    def __init__(
        self,
        config_service: ConfigService,
        cache: CacheService,
        session: Optional[ClientSession] = None,
    ):
        """
        Initialize the verifier.

        Args:
            config_service: Source of timeouts and probe settings
            cache: Cache receiving every outcome
            session: Externally managed session (not closed by the verifier)
        """
        self.config_service = config_service
        self.cache = cache
        self._session = session
        self._owns_session = session is None

    async def __aenter__(self) -> "Verifier":
        await self._ensure_session()
        return self

    async def __aexit__(self, exc_type, exc_val, exc_tb) -> None:
        await self.close()

    async def _ensure_session(self) -> ClientSession:
        if self._session is None or self._session.closed:
            config = self.config_service.get_config()
            self._session = ClientSession(
                connector=TCPConnector(limit=config.max_connections),
                headers={"User-Agent": config.user_agent, "Accept": "image/*,*/*;q=0.8"},
            )
            self._owns_session = True
        return self._session

    async def close(self) -> None:
        """Close the session if the verifier created it."""
        if self._session is not None and self._owns_session and not self._session.closed:
            await self._session.close()
        self._session = None if self._owns_session else self._session

    async def probe(self, locator: str, timeout_ms: Optional[int] = None) -> VerificationOutcome:
        """
        Probe a locator once.

        Success needs a 2xx response fully read within ``timeout_ms`` and a
        body Pillow recognizes as an image with non-zero width and height.
        A local timer of ``timeout_ms + probe_grace_ms`` bounds the whole
        probe. Failures are classified and returned, never raised.

        Args:
            locator: Candidate locator
            timeout_ms: Deadline (``probe_timeout_ms`` if None)

        Returns:
            VerificationOutcome, also written to the cache
        """
        config = self.config_service.get_config()
        timeout_ms = timeout_ms or config.probe_timeout_ms
        deadline = (timeout_ms + config.probe_grace_ms) / 1000.0
        started = time.monotonic()

        try:
            content, status = await asyncio.wait_for(
                self._fetch(locator, timeout_ms, config), timeout=deadline
            )
            width, height = self._measure(locator, content)
            if width <= 0 or height <= 0:
                raise ProbeInvalidResourceError(
                    f"Empty image ({width}x{height})", locator, width=width, height=height
                )
            outcome = VerificationOutcome(
                locator=locator,
                success=True,
                elapsed_ms=self._elapsed_ms(started),
                status_code=status,
                width=width,
                height=height,
            )
        except Exception as e:
            error = classify_exception(e, locator, timeout_ms)
            outcome = self._failure(locator, error, started)

        self.cache.set(locator, outcome.success, outcome.elapsed_ms)
        self._log_outcome(outcome, config)
        return outcome

    async def check(self, locator: str, timeout_ms: Optional[int] = None) -> Tuple[bool, bool]:
        """
        Cache-first verification.

        Returns:
            Tuple of (retrievable, served_from_cache)
        """
        cached = self.cache.get(locator)
        if cached is not None:
            return cached, True
        outcome = await self.probe(locator, timeout_ms)
        return outcome.success, False

    async def _fetch(
        self, locator: str, timeout_ms: int, config: ResolverConfig
    ) -> Tuple[bytes, int]:
        """Fetch the raw body of a candidate. Raises on transport or HTTP errors."""
        session = await self._ensure_session()

        target = locator
        if config.cache_bust:
            target = add_cache_buster(locator, str(int(time.time() * 1000)))

        # Keep already-encoded locators (proxy rewrites) byte-for-byte on the wire
        url = URL(target, encoded=True) if is_wire_encoded(target) else URL(target)

        async with session.get(
            url, timeout=ClientTimeout(total=timeout_ms / 1000.0), allow_redirects=True
        ) as response:
            if not 200 <= response.status < 300:
                raise ProbeNetworkError(
                    f"HTTP {response.status}", locator, status_code=response.status
                )
            return await self._read_prefix(response, config.max_probe_bytes), response.status

    @staticmethod
    async def _read_prefix(response: ClientResponse, limit: int) -> bytes:
        """Read at most ``limit`` bytes of the body; image headers sit at the start."""
        chunks: List[bytes] = []
        size = 0
        async for chunk in response.content.iter_chunked(64 * 1024):
            chunks.append(chunk)
            size += len(chunk)
            if size >= limit:
                break
        return b"".join(chunks)[:limit]

    def _measure(self, locator: str, content: bytes) -> Tuple[int, int]:
        """Return the pixel dimensions of an image body."""
        if not content:
            raise ProbeInvalidResourceError("Empty response body", locator)
        try:
            with Image.open(io.BytesIO(content)) as img:
                return img.size
        except Exception as e:
            # Includes DecompressionBombError, which is not an OSError
            raise ProbeInvalidResourceError(f"Unreadable image: {e}", locator) from e

    def _failure(self, locator: str, error: ProbeError, started: float) -> VerificationOutcome:
        return VerificationOutcome(
            locator=locator,
            success=False,
            elapsed_ms=self._elapsed_ms(started),
            error_kind=error.kind,
            status_code=getattr(error, "status_code", None),
            width=getattr(error, "width", 0),
            height=getattr(error, "height", 0),
            message=error.message,
        )

    @staticmethod
    def _elapsed_ms(started: float) -> int:
        return int((time.monotonic() - started) * 1000)

    @staticmethod
    def _log_outcome(outcome: VerificationOutcome, config: ResolverConfig) -> None:
        level = logging.INFO if config.debug_enabled else logging.DEBUG
        if outcome.success:
            logger.log(
                level,
                f"Probe ok ({outcome.width}x{outcome.height}, {outcome.elapsed_ms}ms): "
                f"{outcome.locator[:80]}",
            )
        else:
            logger.log(
                level,
                f"Probe failed [{outcome.error_kind}] ({outcome.elapsed_ms}ms): "
                f"{outcome.locator[:80]} - {outcome.message}",
            )
