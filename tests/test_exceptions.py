"""
Tests for the exception taxonomy and failure classification.
"""

import asyncio

import aiohttp
import pytest
from PIL import UnidentifiedImageError

from locator_resolver.exceptions import (
    ConfigParseError,
    ProbeError,
    ProbeInvalidResourceError,
    ProbeNetworkError,
    ProbeTimeoutError,
    ResolverError,
    classify_exception,
)

LOCATOR = "https://a.example/x.png"


class TestExceptionHierarchy:
    """Test exception attributes and inheritance."""

    def test_base_error(self):
        error = ResolverError("failed", LOCATOR, attempt=2)

        assert str(error) == "failed"
        assert error.locator == LOCATOR
        assert error.details == {"attempt": 2}

    def test_probe_error_kinds(self):
        assert ProbeTimeoutError("t").kind == "timeout"
        assert ProbeNetworkError("n").kind == "network"
        assert ProbeInvalidResourceError("i").kind == "invalid_resource"
        assert issubclass(ProbeTimeoutError, ProbeError)
        assert issubclass(ProbeError, ResolverError)

    def test_config_parse_error(self):
        error = ConfigParseError("bad value", "max_concurrent", "lots")

        assert error.key == "max_concurrent"
        assert error.value == "lots"
        assert isinstance(error, ResolverError)


class TestClassifyException:
    """Test mapping of low-level exceptions."""

    def test_probe_errors_pass_through(self):
        error = ProbeNetworkError("HTTP 404", LOCATOR, status_code=404)

        assert classify_exception(error) is error

    def test_timeouts(self):
        for exc in (asyncio.TimeoutError(), aiohttp.ServerTimeoutError("read")):
            error = classify_exception(exc, LOCATOR, timeout_ms=300)

            assert isinstance(error, ProbeTimeoutError)
            assert error.timeout_ms == 300
            assert error.locator == LOCATOR

    def test_unidentified_image_is_invalid(self):
        error = classify_exception(UnidentifiedImageError("cannot identify"), LOCATOR)

        assert isinstance(error, ProbeInvalidResourceError)

    def test_response_error_keeps_status(self):
        exc = aiohttp.ClientResponseError(
            request_info=None, history=(), status=502, message="Bad Gateway"
        )

        error = classify_exception(exc, LOCATOR)

        assert isinstance(error, ProbeNetworkError)
        assert error.status_code == 502

    @pytest.mark.parametrize(
        "exc",
        [
            aiohttp.ClientConnectionError("refused"),
            aiohttp.ClientPayloadError("truncated"),
            ConnectionResetError("reset"),
        ],
    )
    def test_transport_errors_are_network(self, exc):
        error = classify_exception(exc, LOCATOR)

        assert isinstance(error, ProbeNetworkError)
        assert error.status_code is None

    def test_decode_errors_are_invalid(self):
        assert isinstance(classify_exception(ValueError("truncated"), LOCATOR), ProbeInvalidResourceError)
        assert isinstance(classify_exception(SyntaxError("bad"), LOCATOR), ProbeInvalidResourceError)

    def test_anything_else_is_a_plain_probe_error(self):
        error = classify_exception(RuntimeError("weird"), LOCATOR)

        assert type(error) is ProbeError
        assert error.kind == "error"
        assert "weird" in error.message
