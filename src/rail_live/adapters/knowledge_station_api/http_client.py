"""HTTP client for the Knowledge Station enrichment API."""

from __future__ import annotations

import asyncio
import logging
from typing import TYPE_CHECKING, Any

import aiohttp

from rail_live.adapters.api_request_logger import log_api_request
from rail_live.domain.errors import ConfigurationMissing, ParseError, TransportError

if TYPE_CHECKING:
    from aiohttp import ClientResponse, ClientSession

logger = logging.getLogger(__name__)

PLACEHOLDER_TOKEN = "your_knowledge_station_token_here"


class KnowledgeStationHttpClient:
    """JSON client with Basic auth and retries with exponential backoff on network errors."""

    def __init__(
        self,
        session: ClientSession | None,
        api_url: str | None,
        token: str | None = None,
        username: str | None = None,
        password: str | None = None,
        enabled: bool = True,
        timeout_seconds: float = 10.0,
        retries: int = 3,
        backoff_seconds: float = 1.0,
    ) -> None:
        """Initialize the client.

        Args:
            session: Shared aiohttp session.
            api_url: Base URL of the API.
            token: API token, sent as the Basic auth user name with an empty password.
            username: Basic auth user name, takes precedence over the token.
            password: Basic auth password.
            enabled: Master switch.
            timeout_seconds: Total timeout per attempt.
            retries: Attempts made before a network error is surfaced.
            backoff_seconds: Base delay, doubled for each further attempt.
        """
        self._session = session
        self._api_url = (api_url or "").rstrip("/")
        self._token = token or ""
        self._username = username or ""
        self._password = password or ""
        self._enabled = enabled
        self._timeout = aiohttp.ClientTimeout(total=timeout_seconds)
        self._retries = max(1, retries)
        self._backoff_seconds = backoff_seconds

    def is_configured(self) -> bool:
        """Whether the client is switched on and has a URL and credentials."""
        has_token = bool(self._token) and self._token != PLACEHOLDER_TOKEN
        return bool(
            self._enabled and self._session and self._api_url and (self._username or has_token)
        )

    def _auth(self) -> aiohttp.BasicAuth:
        if self._username:
            return aiohttp.BasicAuth(self._username, self._password)
        return aiohttp.BasicAuth(self._token, "")

    async def _handle_response(self, response: ClientResponse, url: str) -> Any:
        if response.status in (401, 403):
            raise TransportError(
                "Unauthorized: check Knowledge Station credentials",
                code="UNAUTHORIZED",
                status=response.status,
            )
        if not 200 <= response.status < 300:
            body = await response.text()
            logger.warning(f"Knowledge Station returned status {response.status} for {url}: {body[:200]}")
            raise TransportError(
                f"Knowledge Station returned HTTP {response.status}",
                code="HTTP_ERROR",
                status=response.status,
            )

        content_type = response.headers.get("Content-Type", "")
        if "application/json" not in content_type:
            raise ParseError(
                f"Expected JSON from Knowledge Station, got '{content_type}'",
                code="INVALID_RESPONSE_TYPE",
            )
        try:
            return await response.json()
        except ValueError as e:
            raise ParseError(f"Invalid JSON from Knowledge Station: {e}") from e

    async def get_json(self, endpoint: str, params: dict[str, str] | None = None) -> Any:
        """GET an endpoint and decode its JSON body.

        Raises:
            ConfigurationMissing: Client is not configured.
            TransportError: HTTP error status, or network failure after all retries.
            ParseError: The body is not JSON.
        """
        if not self.is_configured() or self._session is None:
            raise ConfigurationMissing("Knowledge Station is not enabled or properly configured")

        url = f"{self._api_url}{endpoint}"
        query = {"format": "json", **(params or {})}
        log_api_request("GET", url, params=query)

        attempt = 1
        while True:
            try:
                async with self._session.get(
                    url, params=query, auth=self._auth(), timeout=self._timeout
                ) as response:
                    return await self._handle_response(response, url)
            except (aiohttp.ClientError, TimeoutError) as e:
                if attempt >= self._retries:
                    raise TransportError(
                        f"Failed to connect to Knowledge Station after {self._retries} attempts: "
                        f"{e or type(e).__name__}",
                        code="CONNECTION_ERROR",
                    ) from e
                delay = self._backoff_seconds * 2 ** (attempt - 1)
                logger.info(f"Knowledge Station request to {url} failed ({e!r}), retrying in {delay}s")
                await asyncio.sleep(delay)
                attempt += 1

    async def fetch_station(self, code: str) -> dict[str, Any]:
        """Raw station record."""
        data = await self.get_json(f"/station/{code.upper()}", {"crs": code.upper()})
        if not isinstance(data, dict):
            raise ParseError(f"Unexpected station payload for {code}")
        return data

    async def fetch_service(self, service_id: str) -> dict[str, Any]:
        """Raw service tracking record."""
        data = await self.get_json(f"/service/{service_id}", {"service_id": service_id})
        if not isinstance(data, dict):
            raise ParseError(f"Unexpected service payload for {service_id}")
        return data

    async def fetch_disruptions(
        self, limit: int = 20, severity: str | None = None
    ) -> list[Any]:
        """Raw disruption records; the API answers with a list or ``{"disruptions": [...]}``."""
        params = {"limit": str(limit)}
        if severity:
            params["severity"] = severity
        data = await self.get_json("/disruptions", params)
        if isinstance(data, list):
            return data
        if isinstance(data, dict):
            disruptions = data.get("disruptions") or []
            return disruptions if isinstance(disruptions, list) else []
        raise ParseError("Unexpected disruptions payload")

    async def test_connection(self) -> bool:
        """Probe the health endpoint."""
        if not self.is_configured():
            return False
        try:
            await self.get_json("/health")
        except (TransportError, ParseError) as e:
            logger.warning(f"Knowledge Station connection test failed: {e.message}")
            return False
        return True
