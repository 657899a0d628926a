"""Behavior-focused tests for rate limiting middleware helpers."""

from unittest.mock import MagicMock

import pytest

from rail_live.adapters.web.rate_limit_middleware import (
    extract_client_ip,
    operation_key,
    rate_limited_response,
)
from rail_live.domain.errors import RateLimited


class TestExtractClientIp:
    """Tests for client IP extraction behavior."""

    def test_when_x_forwarded_for_has_chain_then_returns_first_ip(self) -> None:
        """Given X-Forwarded-For with IP chain, when extracting, then returns original client IP."""
        request = MagicMock()
        request.headers = {"X-Forwarded-For": "203.0.113.50, 70.41.3.18, 150.172.238.178"}
        request.client = None

        assert extract_client_ip(request) == "203.0.113.50"

    def test_when_x_forwarded_for_has_whitespace_then_trims_ip(self) -> None:
        """Given X-Forwarded-For with whitespace, when extracting, then returns trimmed IP."""
        request = MagicMock()
        request.headers = {"X-Forwarded-For": "  192.168.1.1  , 10.0.0.1"}
        request.client = None

        assert extract_client_ip(request) == "192.168.1.1"

    def test_when_x_forwarded_for_empty_then_uses_direct_client_ip(self) -> None:
        """Given empty X-Forwarded-For, when extracting, then falls back to direct IP."""
        request = MagicMock()
        request.headers = {"X-Forwarded-For": ""}
        request.client = MagicMock()
        request.client.host = "192.168.1.100"

        assert extract_client_ip(request) == "192.168.1.100"

    def test_when_no_client_info_then_returns_unknown(self) -> None:
        """Given no header and no client, when extracting, then returns 'unknown'."""
        request = MagicMock()
        request.headers = {}
        request.client = None

        assert extract_client_ip(request) == "unknown"


class TestOperationKey:
    """Tests for mapping paths onto rate limited operations."""

    @pytest.mark.parametrize(
        ("path", "expected"),
        [
            ("/api/departures/KGX", "departures"),
            ("/api/services/abc123", "services"),
            ("/api/stations/KGX/recent", "stations"),
            ("/internal/corpus/lookup", "corpus"),
            ("/health", "health"),
            ("/", "root"),
        ],
    )
    def test_when_path_given_then_operation_derived(self, path: str, expected: str) -> None:
        """Given a request path, when deriving the operation, then the resource name is used."""
        assert operation_key(path) == expected


class TestRateLimitedResponse:
    """Tests for the 429 envelope."""

    def test_when_retry_fractional_then_rounded_up(self) -> None:
        """Given 4.1s to wait, when building the response, then Retry-After is 5."""
        response = rate_limited_response(RateLimited(4.1))

        assert response.status_code == 429
        assert response.headers["Retry-After"] == "5"

    def test_when_retry_zero_then_at_least_one_second(self) -> None:
        """Given no wait, when building the response, then Retry-After is 1."""
        assert rate_limited_response(RateLimited(0)).headers["Retry-After"] == "1"
