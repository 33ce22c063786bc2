"""Domain event vocabulary and the in-process event bus."""

from .bus import Event, EventBus, Handler
from .names import EventName

__all__ = ["Event", "EventBus", "EventName", "Handler"]
