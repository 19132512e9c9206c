"""
Exception taxonomy for locator resolution.

Probe failures are raised inside the verifier and converted into
verification outcomes before they reach callers. Configuration problems are
logged as warnings and never halt operation. Nothing in this module is
expected to escape the public resolver API.
"""

from __future__ import annotations

import asyncio
from typing import Any, Optional

import aiohttp
from PIL import UnidentifiedImageError


class ResolverError(Exception):
    """
    Base exception for all locator resolution errors.

    Attributes:
        message: Human-readable error message
        locator: Locator that caused the error (if applicable)
        details: Additional error details as keyword arguments
    """

    def __init__(self, message: str, locator: Optional[str] = None, **kwargs: Any) -> None:
        super().__init__(message)
        self.message = message
        self.locator = locator
        self.details = kwargs


class ProbeError(ResolverError):
    """Base class for failures of a single probe."""

    kind = "error"


class ProbeTimeoutError(ProbeError):
    """
    Raised when a candidate does not settle within its deadline.

    Attributes:
        timeout_ms: The deadline that was exceeded (in milliseconds)
    """

    kind = "timeout"

    def __init__(
        self,
        message: str,
        locator: Optional[str] = None,
        timeout_ms: Optional[int] = None,
    ) -> None:
        super().__init__(message, locator)
        self.timeout_ms = timeout_ms


class ProbeNetworkError(ProbeError):
    """
    Raised when the fetch fails outright.

    Covers connection failures, DNS errors and non-2xx responses.
    """

    kind = "network"

    def __init__(
        self,
        message: str,
        locator: Optional[str] = None,
        status_code: Optional[int] = None,
    ) -> None:
        super().__init__(message, locator)
        self.status_code = status_code


class ProbeInvalidResourceError(ProbeError):
    """Raised when the fetch succeeded but the body is not a usable image."""

    kind = "invalid_resource"

    def __init__(
        self,
        message: str,
        locator: Optional[str] = None,
        width: int = 0,
        height: int = 0,
    ) -> None:
        super().__init__(message, locator)
        self.width = width
        self.height = height


class ConfigParseError(ResolverError):
    """Raised for a malformed configuration override value."""

    def __init__(
        self,
        message: str,
        key: Optional[str] = None,
        value: Any = None,
    ) -> None:
        super().__init__(message)
        self.key = key
        self.value = value


def classify_exception(
    exc: BaseException,
    locator: Optional[str] = None,
    timeout_ms: Optional[int] = None,
) -> ProbeError:
    """
    Map a low-level exception onto the probe error taxonomy.

    Args:
        exc: Exception raised while fetching or decoding a candidate
        locator: Candidate locator, for context
        timeout_ms: Deadline in effect, reported on timeouts

    Returns:
        A ProbeError describing the failure. Unrecognized exceptions map to a
        plain ProbeError (kind "error"), which is never retried.
    """
    if isinstance(exc, ProbeError):
        return exc

    if isinstance(exc, (asyncio.TimeoutError, aiohttp.ServerTimeoutError)):
        return ProbeTimeoutError(
            f"Probe timed out after {timeout_ms}ms", locator, timeout_ms=timeout_ms
        )

    # UnidentifiedImageError subclasses OSError, so it goes first
    if isinstance(exc, UnidentifiedImageError):
        return ProbeInvalidResourceError(f"Unreadable image: {exc}", locator)

    if isinstance(exc, aiohttp.ClientResponseError):
        return ProbeNetworkError(
            f"HTTP {exc.status}: {exc.message}", locator, status_code=exc.status
        )

    if isinstance(exc, (aiohttp.ClientError, OSError)):
        return ProbeNetworkError(f"Network error: {exc}", locator)

    if isinstance(exc, (ValueError, SyntaxError)):
        return ProbeInvalidResourceError(f"Unreadable image: {exc}", locator)

    return ProbeError(f"Unexpected probe failure: {exc}", locator)
