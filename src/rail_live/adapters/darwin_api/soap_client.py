"""zeep client for the Darwin LDB SOAP web service."""

from __future__ import annotations

import asyncio
import logging
from typing import TYPE_CHECKING, Any

import httpx
from zeep import AsyncClient, Settings
from zeep.exceptions import Error as ZeepError
from zeep.exceptions import Fault
from zeep.exceptions import TransportError as ZeepTransportError
from zeep.proxy import AsyncServiceProxy
from zeep.transports import AsyncTransport

from rail_live.adapters.darwin_api.constants import (
    DARWIN_WSDL_URL,
    OPERATION_DEPARTURE_BOARD,
    OPERATION_SERVICE_DETAILS,
    TEST_STATION_CODE,
)
from rail_live.adapters.darwin_api.response_parser import (
    parse_departure_board,
    parse_service_details,
)
from rail_live.adapters.darwin_api.soap_request import (
    RequestLoggingPlugin,
    access_token_header,
    departure_board_arguments,
)
from rail_live.domain.errors import (
    ConfigurationMissing,
    ParseError,
    ProtocolFault,
    RailDataError,
    TransportError,
)
from rail_live.domain.models.station_board_request import StationBoardRequest

if TYPE_CHECKING:
    from rail_live.domain.models.service_details import ServiceDetails
    from rail_live.domain.models.station_board import EnhancedStationBoard

logger = logging.getLogger(__name__)


class DarwinSoapClient:
    """Issues Darwin SOAP calls and turns the responses into domain objects."""

    def __init__(
        self,
        http_client: httpx.AsyncClient | None,
        api_url: str | None,
        api_token: str | None,
        wsdl_url: str = DARWIN_WSDL_URL,
        timeout_seconds: float = 10.0,
        service: Any | None = None,
    ) -> None:
        """Initialize the client.

        Args:
            http_client: Shared httpx client the SOAP transport posts with.
            api_url: Darwin LDB endpoint, overriding the address in the WSDL.
            api_token: Darwin access token sent in every SOAP header.
            wsdl_url: Where the service description is loaded from.
            timeout_seconds: Total timeout for one call.
            service: Bound zeep service proxy. Loaded from the WSDL on first use when omitted.
        """
        self._http_client = http_client
        self._api_url = api_url or ""
        self._api_token = api_token or ""
        self._wsdl_url = wsdl_url
        self._timeout_seconds = timeout_seconds
        self._service = service
        self._service_lock = asyncio.Lock()

    def is_configured(self) -> bool:
        """Whether an endpoint URL and access token are both set."""
        has_transport = self._http_client is not None or self._service is not None
        return bool(has_transport and self._api_url and self._api_token)

    def _load_service(self) -> Any:
        """Load the WSDL and bind its SOAP port to the configured endpoint."""
        with httpx.Client(timeout=self._timeout_seconds) as wsdl_client:
            transport = AsyncTransport(client=self._http_client, wsdl_client=wsdl_client)
            client = AsyncClient(
                self._wsdl_url,
                transport=transport,
                settings=Settings(strict=False),
                plugins=[RequestLoggingPlugin()],
            )
        service = next(iter(client.wsdl.services.values()))
        port = next(iter(service.ports.values()))
        options = {**port.binding_options, "address": self._api_url}
        logger.info(f"Loaded Darwin WSDL from {self._wsdl_url}, binding {port.binding.name}")
        return AsyncServiceProxy(client, port.binding, **options)

    async def _get_service(self) -> Any:
        if self._service is None:
            async with self._service_lock:
                if self._service is None:
                    self._service = await asyncio.to_thread(self._load_service)
        return self._service

    async def _call(self, operation: str, **arguments: Any) -> Any:
        """Invoke a SOAP operation, mapping zeep and httpx failures to domain errors."""
        if not self.is_configured():
            raise ConfigurationMissing(
                "Darwin SOAP API not configured - set DARWIN_API_URL and DARWIN_API_TOKEN"
            )

        try:
            service = await self._get_service()
            return await asyncio.wait_for(
                getattr(service, operation)(
                    **arguments, _soapheaders=[access_token_header(self._api_token)]
                ),
                timeout=self._timeout_seconds,
            )
        except Fault as e:
            # Darwin reports faults with HTTP 500 and a fault envelope
            raise ProtocolFault(e.message or "Unknown SOAP fault") from e
        except ZeepTransportError as e:
            if e.status_code == 401:
                raise TransportError(
                    "Darwin API authentication failed - check API token",
                    code="AUTH_ERROR",
                    status=401,
                ) from e
            logger.error(f"Darwin SOAP API returned status {e.status_code}: {e.message[:500]}")
            raise TransportError(
                f"Darwin SOAP API returned {e.status_code}",
                code="API_HTTP_ERROR",
                status=e.status_code,
            ) from e
        except (httpx.HTTPError, TimeoutError) as e:
            logger.warning(f"Network error calling Darwin SOAP API: {e!r}")
            raise TransportError(
                f"Network error calling Darwin SOAP API: {e or type(e).__name__}"
            ) from e
        except ZeepError as e:
            raise ParseError(f"Malformed Darwin SOAP response: {e.message}") from e

    async def get_departure_board(self, request: StationBoardRequest) -> EnhancedStationBoard:
        """Fetch and parse a departure board with service details.

        Raises:
            ConfigurationMissing: Client is not configured.
            TransportError: Network failure or unexpected HTTP status.
            ProtocolFault: Darwin returned a fault envelope.
            ParseError: The response contained no board.
        """
        result = await self._call(OPERATION_DEPARTURE_BOARD, **departure_board_arguments(request))
        board = parse_departure_board(result)
        logger.info(f"Fetched Darwin board for {request.location_code}: {len(board.departures)} services")
        return board

    async def get_service_details(self, service_id: str) -> ServiceDetails:
        """Fetch and parse details for one service."""
        result = await self._call(OPERATION_SERVICE_DETAILS, serviceID=service_id)
        return parse_service_details(result, service_id)

    async def test_connection(self) -> bool:
        """Check connectivity with a one-row board."""
        if not self.is_configured():
            return False
        try:
            await self.get_departure_board(
                StationBoardRequest(location_code=TEST_STATION_CODE, row_limit=1)
            )
        except RailDataError as e:
            logger.warning(f"Darwin SOAP connection test failed: {e.message}")
            return False
        return True
