"""
Agent run state.
Phase machine for the agent loop and the cooperative stop signal.
"""

import asyncio
from enum import Enum


class AgentPhase(str, Enum):
    """Phases of one agent run."""
    IDLE = "idle"
    RECONNAISSANCE = "reconnaissance"
    ANALYZING = "analyzing"
    EXPERIMENTING = "experimenting"
    SYNTHESIZING = "synthesizing"
    MONITORING = "monitoring"
    STOPPED = "stopped"


# Allowed transitions. STOPPED is reachable from every phase so a stop request
# or a failure can always end the run.
TRANSITIONS: dict[AgentPhase, set[AgentPhase]] = {
    AgentPhase.IDLE: {AgentPhase.RECONNAISSANCE, AgentPhase.STOPPED},
    AgentPhase.RECONNAISSANCE: {AgentPhase.ANALYZING, AgentPhase.STOPPED},
    AgentPhase.ANALYZING: {
        AgentPhase.EXPERIMENTING,
        AgentPhase.SYNTHESIZING,
        AgentPhase.STOPPED,
    },
    AgentPhase.EXPERIMENTING: {AgentPhase.SYNTHESIZING, AgentPhase.STOPPED},
    AgentPhase.SYNTHESIZING: {AgentPhase.MONITORING, AgentPhase.STOPPED},
    AgentPhase.MONITORING: {AgentPhase.STOPPED},
    AgentPhase.STOPPED: set(),
}


def can_transition(current: AgentPhase, target: AgentPhase) -> bool:
    """Check whether the phase machine allows moving from current to target."""
    return target in TRANSITIONS[current]


class StopToken:
    """
    Cooperative stop flag.

    Loops check `stopped` at the top of each iteration. `sleep()` waits for the
    monitor interval but wakes early when a stop is requested; in-flight network
    calls are never interrupted.
    """

    def __init__(self):
        self._event = asyncio.Event()

    @property
    def stopped(self) -> bool:
        return self._event.is_set()

    def request_stop(self) -> None:
        self._event.set()

    async def sleep(self, seconds: float) -> bool:
        """
        Sleep for up to `seconds`.

        Returns:
            True if a stop was requested before or during the sleep
        """
        if self._event.is_set():
            return True
        if seconds <= 0:
            return self._event.is_set()
        try:
            await asyncio.wait_for(self._event.wait(), timeout=seconds)
        except asyncio.TimeoutError:
            return False
        return True
