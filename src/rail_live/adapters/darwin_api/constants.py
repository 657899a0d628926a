"""Constants for the Darwin LDB SOAP web service."""

DARWIN_DEFAULT_URL = "https://lite.realtime.nationalrail.co.uk/OpenLDBWS/ldb11.asmx"
DARWIN_WSDL_URL = "https://lite.realtime.nationalrail.co.uk/OpenLDBWS/wsdl.aspx?ver=2021-11-01"

TOKEN_TYPES_NS = "http://thalesgroup.com/RTTI/2013-11-28/Token/types"

OPERATION_DEPARTURE_BOARD = "GetDepBoardWithDetails"
OPERATION_SERVICE_DETAILS = "GetServiceDetails"

# Darwin refuses boards longer than this
DARWIN_MAX_ROWS = 50

ON_TIME = "On time"
CANCELLED = "Cancelled"

# Connectivity probe station
TEST_STATION_CODE = "KGX"
