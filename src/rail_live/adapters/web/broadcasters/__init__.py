"""Broadcasters for live updates."""

from .event_broadcaster import EventBroadcaster

__all__ = ["EventBroadcaster"]
