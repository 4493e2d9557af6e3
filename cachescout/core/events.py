"""
Agent event channel.
Typed events emitted by the agent loop and delivered to subscribers (CLI, API, WebSocket).
"""

import inspect
import logging
from collections import deque
from datetime import datetime
from enum import Enum
from typing import Any, Awaitable, Callable

from pydantic import BaseModel, Field


logger = logging.getLogger("cachescout.events")


class EventType(str, Enum):
    RUN_STARTED = "run_started"
    PHASE_CHANGED = "phase_changed"
    RECONNAISSANCE_COMPLETE = "reconnaissance_complete"
    PAGE_ANALYSIS_STARTED = "page_analysis_started"
    PAGE_ANALYZED = "page_analyzed"
    PAGE_FAILED = "page_failed"
    INSIGHT = "insight"
    STRATEGY_ADJUSTED = "strategy_adjusted"
    RULE_LEARNED = "rule_learned"
    EXPERIMENT_COMPLETE = "experiment_complete"
    EXPERIMENTS_COMPLETE = "experiments_complete"
    CHANGES_DETECTED = "changes_detected"
    MONITOR_CYCLE = "monitor_cycle"
    RUN_COMPLETED = "run_completed"
    RUN_FAILED = "run_failed"


class AgentEvent(BaseModel):
    """A single observable event."""
    type: EventType
    run_id: str
    timestamp: datetime = Field(default_factory=datetime.now)
    data: dict[str, Any] = Field(default_factory=dict)

    def to_message(self) -> dict[str, Any]:
        """Flatten into the JSON shape sent to WebSocket clients."""
        return {
            "event": self.type.value,
            "run_id": self.run_id,
            "timestamp": self.timestamp.isoformat(),
            **self.data,
        }


Subscriber = Callable[[AgentEvent], Awaitable[None] | None]


class EventBus:
    """
    Delivers events to subscribers in subscription order.

    Subscribers may be plain or async callables. A subscriber that raises is
    logged and skipped; it never interrupts the run.
    """

    def __init__(self, run_id: str, history_size: int = 500):
        self.run_id = run_id
        self._subscribers: list[Subscriber] = []
        self.history: deque[AgentEvent] = deque(maxlen=history_size)

    def subscribe(self, callback: Subscriber) -> Callable[[], None]:
        """
        Register a subscriber.

        Returns:
            A function that removes the subscription
        """
        self._subscribers.append(callback)

        def unsubscribe() -> None:
            if callback in self._subscribers:
                self._subscribers.remove(callback)

        return unsubscribe

    async def emit(self, event_type: EventType, data: dict[str, Any] | None = None) -> AgentEvent:
        """Build an event, record it and deliver it to every subscriber."""
        event = AgentEvent(type=event_type, run_id=self.run_id, data=data or {})
        self.history.append(event)

        for callback in list(self._subscribers):
            try:
                result = callback(event)
                if inspect.isawaitable(result):
                    await result
            except Exception as e:
                logger.warning(
                    "Event subscriber %r failed on %s: %s",
                    callback, event_type.value, e
                )
        return event

    def recent(self, limit: int = 50) -> list[AgentEvent]:
        return list(self.history)[-limit:]
