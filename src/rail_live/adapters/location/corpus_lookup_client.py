"""Client for the internal CORPUS lookup endpoint."""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING

import aiohttp

from rail_live.adapters.api_request_logger import log_api_request
from rail_live.domain.errors import TransportError
from rail_live.domain.ports.location_lookup import LocationLookup

if TYPE_CHECKING:
    from aiohttp import ClientSession

logger = logging.getLogger(__name__)


class CorpusLookupClient(LocationLookup):
    """Resolves a TIPLOC through ``GET {url}?tpl=X`` guarded by an internal token."""

    def __init__(
        self,
        session: ClientSession | None,
        url: str | None,
        token: str | None,
        timeout_seconds: float = 10.0,
    ) -> None:
        self._session = session
        self._url = (url or "").rstrip("/")
        self._token = token or ""
        self._timeout = aiohttp.ClientTimeout(total=timeout_seconds)

    def is_configured(self) -> bool:
        return bool(self._session and self._url and self._token)

    async def lookup(self, identifier: str) -> str | None:
        """Look up the CRS for a TIPLOC.

        Returns:
            The three letter code, or None when the service does not know it.

        Raises:
            TransportError: Network failure or non-200 response.
        """
        if not self.is_configured() or self._session is None:
            return None

        params = {"tpl": identifier.upper()}
        headers = {"x-internal-token": self._token}
        log_api_request("GET", self._url, params=params, headers=headers)

        try:
            async with self._session.get(
                self._url, params=params, headers=headers, timeout=self._timeout
            ) as response:
                if response.status != 200:
                    raise TransportError(
                        f"CORPUS lookup returned {response.status}", status=response.status
                    )
                data = await response.json(content_type=None)
        except (aiohttp.ClientError, TimeoutError, ValueError) as e:
            raise TransportError(f"CORPUS lookup failed for {identifier}: {e!r}") from e

        code = data.get("crs") if isinstance(data, dict) else None
        if isinstance(code, str) and len(code) == 3:
            return code.upper()
        return None
