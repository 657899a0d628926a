"""Network Rail CORPUS reference table, the server side of the CORPUS lookup."""

from __future__ import annotations

import asyncio
import gzip
import json
import logging
from datetime import UTC, datetime
from typing import TYPE_CHECKING, Any

import aiohttp

from rail_live.adapters.api_request_logger import log_api_request
from rail_live.adapters.cache.ttl_cache import TTLCache
from rail_live.domain.errors import ConfigurationMissing, ParseError, TransportError
from rail_live.domain.ports.location_lookup import LocationLookup

if TYPE_CHECKING:
    from aiohttp import ClientSession

logger = logging.getLogger(__name__)

CORPUS_TTL_SECONDS = 6 * 60 * 60
_TABLE_KEY = "corpus:tiploc-to-crs"


def build_tiploc_map(data: Any) -> dict[str, str]:
    """Build TIPLOC -> CRS from a CORPUS extract.

    Records without a TIPLOC or a three letter code (CORPUS uses a blank for
    missing values) are skipped.
    """
    records = data.get("TIPLOCDATA") if isinstance(data, dict) else None
    if not isinstance(records, list):
        raise ParseError("CORPUS extract has no TIPLOCDATA list")

    mapping: dict[str, str] = {}
    for record in records:
        if not isinstance(record, dict):
            continue
        tiploc = str(record.get("TIPLOC") or record.get("tiploc") or "").strip().upper()
        code = str(record.get("3ALPHA") or record.get("crs_code") or "").strip().upper()
        if tiploc and len(code) == 3:
            mapping[tiploc] = code
    return mapping


def parse_extract(raw: bytes) -> dict[str, str]:
    """Decode a downloaded CORPUS extract, gzipped or plain, into the TIPLOC map."""
    # The extract is published gzipped
    if raw[:2] == b"\x1f\x8b":
        raw = gzip.decompress(raw)
    try:
        data = json.loads(raw)
    except ValueError as e:
        raise ParseError(f"CORPUS extract is not valid JSON: {e}") from e
    return build_tiploc_map(data)


class CorpusTable(LocationLookup):
    """Downloads CORPUS on demand and keeps the TIPLOC map cached for six hours.

    Reloads are single-flight: concurrent callers during a reload wait for it.
    """

    def __init__(
        self,
        session: ClientSession | None,
        corpus_url: str | None,
        username: str | None = None,
        password: str | None = None,
        cache: TTLCache | None = None,
        timeout_seconds: float = 60.0,
    ) -> None:
        self._session = session
        self._url = corpus_url or ""
        self._username = username or ""
        self._password = password or ""
        self._cache = cache or TTLCache(default_ttl_seconds=CORPUS_TTL_SECONDS)
        self._timeout = aiohttp.ClientTimeout(total=timeout_seconds)
        self._lock = asyncio.Lock()
        self.loaded_at: datetime | None = None
        self.downloads = 0

    def is_configured(self) -> bool:
        return bool(self._session and self._url)

    async def lookup(self, identifier: str) -> str | None:
        table = await self.get_table()
        return table.get(identifier.strip().upper())

    async def get_table(self) -> dict[str, str]:
        """The cached map, downloading it when missing or expired."""
        table = self._cache.get(_TABLE_KEY)
        if table is not None:
            return table  # type: ignore[no-any-return]

        async with self._lock:
            table = self._cache.get(_TABLE_KEY)
            if table is not None:
                return table  # type: ignore[no-any-return]
            table = await self._download()
            self._cache.set(_TABLE_KEY, table)
            self.loaded_at = datetime.now(UTC)
            logger.info(f"Loaded CORPUS table with {len(table)} TIPLOC mappings")
            return table

    async def _download(self) -> dict[str, str]:
        if not self.is_configured() or self._session is None:
            raise ConfigurationMissing("CORPUS source not configured - set NETWORK_RAIL_CORPUS_URL")

        auth = aiohttp.BasicAuth(self._username, self._password) if self._username else None
        log_api_request("GET", self._url)
        self.downloads += 1
        try:
            async with self._session.get(self._url, auth=auth, timeout=self._timeout) as response:
                if response.status != 200:
                    text = await response.text()
                    raise TransportError(
                        f"CORPUS download returned {response.status}: {text[:200]}",
                        status=response.status,
                    )
                raw = await response.read()
        except (aiohttp.ClientError, TimeoutError) as e:
            raise TransportError(f"CORPUS download failed: {e!r}") from e

        # Tens of megabytes, kept off the event loop
        return await asyncio.to_thread(parse_extract, raw)
