"""Station information domain model."""

from dataclasses import dataclass, field


@dataclass(frozen=True)
class Coordinates:
    """Geographic position of a station."""

    latitude: float
    longitude: float


@dataclass(frozen=True)
class AccessibilityInfo:
    """Accessibility flags for a station."""

    wheelchair_access: bool = False
    assistance_available: bool = False
    audio_announcements: bool = False
    induction_loop: bool = False


@dataclass(frozen=True)
class StationInfo:
    """Station details, either full (enhancement feed) or minimal (derived from a board)."""

    code: str
    name: str
    facilities: tuple[str, ...] = ()
    accessibility: AccessibilityInfo = field(default_factory=AccessibilityInfo)
    contacts: dict[str, str] = field(default_factory=dict)
    coordinates: Coordinates | None = None
    region: str | None = None
    operator: str | None = None
    source: str = "darwin"
