from datetime import datetime
from enum import StrEnum
from typing import Any

from pydantic import BaseModel


class EventType(StrEnum):
    DIRECTIVE_STARTED = "directive_started"
    DIRECTIVE_FINISHED = "directive_finished"
    DIFF_APPLIED = "diff_applied"
    # Shell events for run/test directives
    COMMAND_STARTED = "command_started"
    COMMAND_FINISHED = "command_finished"
    LLM_REQUEST_STARTED = "llm_request_started"
    LLM_REQUEST_FINISHED = "llm_request_finished"
    LLM_REQUEST_FAILED = "llm_request_failed"
    CHUNK_DROPPED = "chunk_dropped"

class Event(BaseModel):
    event_type: EventType
    timestamp: datetime
    run_id: str
    step_id: int
    payload: dict[str, Any]
