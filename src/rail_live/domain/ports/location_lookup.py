"""Remote location lookup port."""

from typing import Protocol


class LocationLookup(Protocol):
    """Resolves a provider location identifier to a public station code remotely."""

    def is_configured(self) -> bool:
        """Whether the lookup service is configured."""
        ...

    async def lookup(self, identifier: str) -> str | None:
        """Look up the station code for an identifier, None if unknown."""
        ...
