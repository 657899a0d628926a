"""Error kinds raised across the data sources, each with a stable machine-readable code."""

from rail_live.domain.models.error_details import ErrorDetails


class RailDataError(Exception):
    """Base class for all errors surfaced to callers."""

    code = "INTERNAL_ERROR"
    status_code = 500

    def __init__(self, message: str, code: str | None = None) -> None:
        super().__init__(message)
        self.message = message
        if code is not None:
            self.code = code

    def to_details(self) -> ErrorDetails:
        """Convert to the response envelope's error shape."""
        return ErrorDetails(code=self.code, message=self.message)


class ConfigurationMissing(RailDataError):
    """A data source or feed is not configured; treated as permanently unhealthy."""

    code = "API_NOT_CONFIGURED"
    status_code = 503


class ProtocolFault(RailDataError):
    """The upstream returned a structured fault."""

    code = "SOAP_FAULT"
    status_code = 502

    def __init__(self, fault_string: str) -> None:
        super().__init__(fault_string)
        self.fault_string = fault_string


class TransportError(RailDataError):
    """Network failure, timeout or unexpected HTTP status from an upstream."""

    code = "NETWORK_ERROR"
    status_code = 502

    def __init__(self, message: str, code: str | None = None, status: int | None = None) -> None:
        super().__init__(message, code)
        self.status = status


class ParseError(RailDataError):
    """An upstream record could not be understood."""

    code = "PARSE_ERROR"
    status_code = 502


class CapabilityUnsupported(RailDataError):
    """An adapter was asked for a feature it does not have."""

    code = "CAPABILITY_UNSUPPORTED"
    status_code = 501

    def __init__(self, adapter_name: str, capability: str) -> None:
        super().__init__(f"{adapter_name} does not support {capability}")
        self.adapter_name = adapter_name
        self.capability = capability


class NoPrimarySource(RailDataError):
    """The configured primary data source is not registered."""

    code = "NO_PRIMARY_SOURCE"
    status_code = 503


class InvalidRequest(RailDataError):
    """The caller's request failed validation."""

    code = "INVALID_REQUEST"
    status_code = 400


class NotFound(RailDataError):
    """The upstream had no data for the requested item."""

    code = "NO_DATA"
    status_code = 404


class RequestTimeout(RailDataError):
    """The request's overall deadline elapsed."""

    code = "REQUEST_TIMEOUT"
    status_code = 504


class RateLimited(RailDataError):
    """The caller exceeded its request quota."""

    code = "RATE_LIMITED"
    status_code = 429

    def __init__(self, retry_after_seconds: float) -> None:
        super().__init__("Rate limit exceeded. Please try again later.")
        self.retry_after_seconds = retry_after_seconds


class Unauthorized(RailDataError):
    """The caller did not present a valid access token."""

    code = "UNAUTHORIZED"
    status_code = 401
