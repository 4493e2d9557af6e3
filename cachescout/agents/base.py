"""
Base Component Class.
Common logging and event plumbing for every step of the agent loop.
"""

import logging
from typing import Any

from ..core.config import AgentConfig
from ..core.events import EventBus, EventType
from ..memory.agent_memory import AgentMemory


class BaseComponent:
    """
    Shared functionality for agent components.

    Components log under `cachescout.<name>` and emit through the run's
    event bus when one is attached.
    """

    def __init__(
        self,
        name: str,
        config: AgentConfig,
        events: EventBus | None = None
    ):
        """
        Initialize component.

        Args:
            name: Component name (used as the logger suffix)
            config: Run configuration
            events: Event bus for observable events
        """
        self.name = name
        self.config = config
        self.events = events
        self.logger = logging.getLogger(f"cachescout.{name}")

    def log(self, message: str, level: int = logging.INFO) -> None:
        """Log a message under the component's logger."""
        self.logger.log(level, message)

    async def emit(self, event_type: EventType, data: dict[str, Any] | None = None) -> None:
        if self.events is not None:
            await self.events.emit(event_type, data)

    async def add_insight(self, memory: AgentMemory, insight: str) -> bool:
        """Record an insight and emit it, unless memory already holds it."""
        if not memory.add_insight(insight):
            return False
        self.log(f"Insight: {insight}")
        await self.emit(EventType.INSIGHT, {"insight": insight})
        return True
