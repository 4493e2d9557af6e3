"""
Monitor.
Re-analyzes the reference URL on an interval and reports drift between consecutive summaries.
"""

from ..core.config import AgentConfig
from ..core.events import EventBus, EventType
from ..core.models import Summary, Snapshot, Change, ChangeKind
from ..core.state import StopToken
from ..memory.agent_memory import AgentMemory
from .base import BaseComponent
from .learner import RuleLearner
from .page_analysis import PageAnalysisStep
from .synthesizer import synthesize


TTFB_CHANGE_THRESHOLD_MS = 100


def _status(working: bool) -> str:
    return "working" if working else "not working"


def detect_changes(prev: Summary, curr: Summary) -> list[Change]:
    """
    Compare two summaries.

    Checks cache status, average TTFB (strictly more than 100ms apart), plugins
    added and plugins removed.
    """
    changes: list[Change] = []

    if prev.cache_working != curr.cache_working:
        changes.append(Change(
            kind=ChangeKind.CACHE_STATUS,
            description=(
                f"Cache status changed: {_status(prev.cache_working)} → "
                f"{_status(curr.cache_working)}"
            ),
            data={"previous": prev.cache_working, "current": curr.cache_working},
        ))

    diff = curr.average_ttfb_ms - prev.average_ttfb_ms
    if abs(diff) > TTFB_CHANGE_THRESHOLD_MS:
        direction = "increased" if diff > 0 else "decreased"
        changes.append(Change(
            kind=ChangeKind.TTFB,
            description=f"Average TTFB {direction} by {abs(diff)}ms",
            delta_ms=diff,
            data={"previous": prev.average_ttfb_ms, "current": curr.average_ttfb_ms},
        ))

    added = [p for p in curr.detected_plugins if p not in prev.detected_plugins]
    if added:
        changes.append(Change(
            kind=ChangeKind.PLUGINS_ADDED,
            description=f"New plugins detected: {', '.join(added)}",
            plugins=added,
        ))

    removed = [p for p in prev.detected_plugins if p not in curr.detected_plugins]
    if removed:
        changes.append(Change(
            kind=ChangeKind.PLUGINS_REMOVED,
            description=f"Plugins removed: {', '.join(removed)}",
            plugins=removed,
        ))

    return changes


class Monitor(BaseComponent):
    """
    Monitoring loop.

    The stop signal is honored before and right after each sleep; a cycle that
    has started its analysis always finishes.
    """

    def __init__(
        self,
        config: AgentConfig,
        page_step: PageAnalysisStep,
        learner: RuleLearner,
        events: EventBus | None = None
    ):
        super().__init__("monitor", config, events)
        self.page_step = page_step
        self.learner = learner

    async def run(self, memory: AgentMemory, initial: Summary, stop: StopToken) -> Summary:
        """
        Monitor until stopped or out of cycles.

        Args:
            memory: Run memory
            initial: Summary produced at the end of discovery
            stop: Cooperative stop signal

        Returns:
            The most recent summary
        """
        reference = self.config.reference_url
        memory.add_snapshot(Snapshot(summary=initial))
        latest = initial
        cycle = 0

        while not stop.stopped:
            cycle += 1
            if self.config.max_monitor_cycles > 0 and cycle > self.config.max_monitor_cycles:
                self.log(f"Reached max monitoring cycles ({self.config.max_monitor_cycles})")
                break

            self.log(
                f"Monitoring cycle {cycle}, waiting {self.config.monitor_interval_seconds:g}s..."
            )
            if await stop.sleep(self.config.monitor_interval_seconds):
                break

            memory.requeue(reference, depth=0)
            await self.page_step.analyze(memory, reference, 0)

            previous = memory.snapshots[-1].summary
            latest = synthesize(memory, reference, self.config.experiment_mode)
            memory.add_snapshot(Snapshot(summary=latest))

            changes = detect_changes(previous, latest)
            await self.emit(EventType.MONITOR_CYCLE, {
                "cycle": cycle,
                "changes": len(changes),
                "average_ttfb_ms": latest.average_ttfb_ms,
                "cache_working": latest.cache_working,
            })

            if changes:
                await self.handle_changes(memory, changes, latest)

        return latest

    async def handle_changes(self, memory: AgentMemory, changes: list[Change], summary: Summary) -> None:
        self.log("Changes detected:")
        for change in changes:
            self.log(f"  - {change.description}")

        await self.emit(EventType.CHANGES_DETECTED, {
            "changes": [c.model_dump(mode="json") for c in changes],
            "summary": summary.model_dump(mode="json"),
        })

        for rule in self.learner.learn_from_changes(memory, changes):
            await self.emit(EventType.RULE_LEARNED, {"rule": rule.model_dump()})

        for change in changes:
            if change.kind == ChangeKind.CACHE_STATUS:
                await self.add_insight(memory, f"{change.description} on {self.config.reference_url}")
