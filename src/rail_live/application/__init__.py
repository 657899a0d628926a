"""Application layer - use cases orchestrating the data sources."""
