"""Shared fixtures for rail-live tests."""

from collections.abc import Callable
from unittest.mock import MagicMock

import pytest

from rail_live.domain.models.departure import Departure
from rail_live.domain.models.station_board import EnhancedStationBoard

from .factories import (
    DARWIN_CAPABILITIES,
    KNOWLEDGE_STATION_CAPABILITIES,
    build_adapter,
    build_board,
    build_departure,
)


@pytest.fixture
def darwin_adapter() -> MagicMock:
    """Primary adapter mock."""
    return build_adapter("darwin", 1, DARWIN_CAPABILITIES)


@pytest.fixture
def knowledge_station_adapter() -> MagicMock:
    """Enhancement adapter mock."""
    return build_adapter("knowledge-station", 2, KNOWLEDGE_STATION_CAPABILITIES)


@pytest.fixture
def make_departure() -> Callable[..., Departure]:
    return build_departure


@pytest.fixture
def make_board() -> Callable[..., EnhancedStationBoard]:
    return build_board
