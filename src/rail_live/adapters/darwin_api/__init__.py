"""Darwin LDB SOAP adapter."""

from .darwin_adapter import DarwinAdapter
from .soap_client import DarwinSoapClient

__all__ = ["DarwinAdapter", "DarwinSoapClient"]
