"""Request arguments, access token header and logging hook for Darwin SOAP calls."""

from typing import Any

from lxml import etree
from zeep import Plugin, xsd

from rail_live.adapters.api_request_logger import log_api_request, should_log_requests
from rail_live.adapters.darwin_api.constants import DARWIN_MAX_ROWS, TOKEN_TYPES_NS
from rail_live.domain.models.station_board_request import StationBoardRequest

_ACCESS_TOKEN = xsd.Element(
    f"{{{TOKEN_TYPES_NS}}}AccessToken",
    xsd.ComplexType([xsd.Element(f"{{{TOKEN_TYPES_NS}}}TokenValue", xsd.String())]),
)


def access_token_header(token: str) -> Any:
    """SOAP header carrying the Darwin access token."""
    return _ACCESS_TOKEN(TokenValue=token)


def departure_board_arguments(request: StationBoardRequest) -> dict[str, Any]:
    """Arguments for GetDepBoardWithDetails.

    The row limit is clamped to DARWIN_MAX_ROWS. Filter fields are only included
    when a filter station is set.
    """
    arguments: dict[str, Any] = {
        "numRows": min(request.row_limit, DARWIN_MAX_ROWS),
        "crs": request.location_code.upper(),
    }
    if request.filter_code:
        arguments["filterCrs"] = request.filter_code.upper()
        arguments["filterType"] = request.filter_type
    arguments["timeOffset"] = request.time_offset
    arguments["timeWindow"] = request.time_window
    return arguments


class RequestLoggingPlugin(Plugin):
    """Logs outgoing envelopes, with the access token masked."""

    def egress(
        self,
        envelope: Any,
        http_headers: dict[str, str],
        operation: Any,
        binding_options: dict[str, Any],
    ) -> tuple[Any, dict[str, str]]:
        if should_log_requests():
            log_api_request(
                "POST",
                binding_options.get("address", ""),
                headers=dict(http_headers),
                payload=etree.tostring(envelope, encoding="unicode"),
            )
        return envelope, http_headers
