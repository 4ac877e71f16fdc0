"""
reactloop Event Emission

Fire-and-forget notifications for the UI layer. The core never blocks on
delivery: a sync sink is called inline, an async sink is scheduled on the
running loop, and a failing sink is logged and otherwise ignored.
"""

from __future__ import annotations

import asyncio
import inspect
from collections.abc import Callable
from datetime import datetime, timezone
from enum import Enum
from typing import Any

from pydantic import BaseModel, Field

from reactloop.logging import get_logger

logger = get_logger("reactloop.events")


class EventType(str, Enum):
    THINKING = "thinking"
    TOOL_CALLS = "tool-calls"
    TOOL_START = "tool-start"
    TOOL_END = "tool-end"
    TOOL_RESULTS = "tool-results"
    APPROVAL_REQUEST = "approval-request"
    TEXT_COMPLETE = "text-complete"
    CANCELLED = "cancelled"
    ERROR = "error"


class AgentEvent(BaseModel):
    type: EventType
    task_id: str = ""
    data: dict[str, Any] = Field(default_factory=dict)
    timestamp: datetime = Field(default_factory=lambda: datetime.now(timezone.utc))


EventSink = Callable[[AgentEvent], Any]


class EventEmitter:
    """Delivers AgentEvents to an optional sink."""

    def __init__(self, sink: EventSink | None = None):
        self._sink = sink
        self._tasks: set[asyncio.Task] = set()

    def emit(self, event_type: EventType, task_id: str = "", **data: Any) -> AgentEvent:
        event = AgentEvent(type=event_type, task_id=task_id, data=data)
        logger.debug("event %s", event_type.value, extra={"task_id": task_id or None})
        if self._sink is None:
            return event

        try:
            result = self._sink(event)
        except Exception:
            logger.warning("Event sink failed for %s", event_type.value, exc_info=True)
            return event

        if inspect.isawaitable(result):
            task = asyncio.ensure_future(result)
            self._tasks.add(task)
            task.add_done_callback(self._on_delivered)
        return event

    def _on_delivered(self, task: asyncio.Task) -> None:
        self._tasks.discard(task)
        if not task.cancelled() and task.exception() is not None:
            logger.warning("Async event sink failed", exc_info=task.exception())
