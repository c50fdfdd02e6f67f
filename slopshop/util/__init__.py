from slopshop.util.events import (
    EventLogger,
    NullEventLogger,
    NULL_EVENT_LOGGER,
    append_line,
    read_events,
    truncate,
)
from slopshop.util.stream import ChunkStream

__all__ = [
    "EventLogger",
    "NullEventLogger",
    "NULL_EVENT_LOGGER",
    "append_line",
    "read_events",
    "truncate",
    "ChunkStream",
]
