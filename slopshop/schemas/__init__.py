from slopshop.schemas.events import Event, EventType

__all__ = ["Event", "EventType"]
