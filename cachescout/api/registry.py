"""
Run Registry - Background agent runs owned by the API process.
"""

import asyncio
import logging
from datetime import datetime
from typing import Callable

from ..core.config import AgentConfig
from ..core.events import EventBus
from ..core.models import Summary
from ..agents.orchestrator import AutonomousAgent
from ..probes.base import ProbeSet


logger = logging.getLogger("cachescout.api")

ProbeFactory = Callable[[], ProbeSet]


class RunHandle:
    """One agent run and the task executing it."""

    def __init__(self, agent: AutonomousAgent, owns_probes: bool):
        self.agent = agent
        self.created_at = datetime.now()
        self.task: asyncio.Task | None = None
        self.summary: Summary | None = None
        self.error: str | None = None
        self._owns_probes = owns_probes

    @property
    def run_id(self) -> str:
        return self.agent.run_id

    @property
    def events(self) -> EventBus:
        return self.agent.events

    @property
    def running(self) -> bool:
        return self.task is not None and not self.task.done()

    async def execute(self) -> None:
        try:
            self.summary = await self.agent.run()
        except Exception as e:
            self.error = str(e)
            logger.error("Run %s failed: %s", self.run_id, e)
        finally:
            # Probes built by the registry factory are closed here, not by the agent
            if self._owns_probes:
                await self.agent.probes.close()


class RunRegistry:
    """
    In-memory registry of runs for the lifetime of the API process.

    Nothing is persisted; a restart forgets every run.
    """

    def __init__(self, probe_factory: ProbeFactory | None = None):
        """
        Initialize registry.

        Args:
            probe_factory: Builds the probe set for each run (live probes when None)
        """
        self.probe_factory = probe_factory
        self.runs: dict[str, RunHandle] = {}

    def get(self, run_id: str) -> RunHandle | None:
        return self.runs.get(run_id)

    def start(self, config: AgentConfig) -> RunHandle:
        """
        Create an agent for the config and schedule it on the running loop.

        Raises:
            ConfigurationError: If the target is out of scope
        """
        probes = self.probe_factory() if self.probe_factory else None
        agent = AutonomousAgent(config, probes=probes)
        handle = RunHandle(agent, owns_probes=probes is not None)
        self.runs[handle.run_id] = handle
        handle.task = asyncio.create_task(handle.execute())
        logger.info("Started run %s for %s", handle.run_id, config.base_url)
        return handle

    async def shutdown(self) -> None:
        """Stop every active run and wait for it to finish."""
        active = [h for h in self.runs.values() if h.running]
        for handle in active:
            handle.agent.stop()
        if active:
            await asyncio.gather(*(h.task for h in active), return_exceptions=True)
