"""Keys under which aggregated results are cached."""


def service_cache_key(service_id: str) -> str:
    return f"service:{service_id}"


def station_cache_key(code: str) -> str:
    return f"station:{code}"


def disruptions_cache_key(code: str | None, limit: int) -> str:
    return f"disruptions:{code or '*'}:{limit}"
