"""Live UK rail departures aggregated from Darwin, Knowledge Station and the Push Port."""

__version__ = "0.1.0"
