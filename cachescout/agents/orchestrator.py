"""
Autonomous Agent - Orchestrates one diagnostic run.

Phases: Reconnaissance → Analyze (decide / analyze / adjust) → Experiment → Synthesize → Monitor
"""

import asyncio
import logging
import uuid
from typing import Any
from urllib.parse import urlparse

from ..core.config import AgentConfig
from ..core.errors import ConfigurationError, GuardrailViolation
from ..core.events import EventBus, EventType
from ..core.guardrails import Guardrails
from ..core.models import ActionType, ReconFacts, Summary
from ..core.state import AgentPhase, StopToken, can_transition
from ..memory.agent_memory import AgentMemory
from ..inference.page_analyzer import SignatureAnalyzer
from ..inference.signatures import SignatureDatabase, default_signatures
from ..probes.base import ProbeSet, HttpProbeSet
from .base import BaseComponent
from .decision import DecisionEngine, Advisor
from .experimenter import ExperimentRunner
from .learner import RuleLearner
from .monitor import Monitor
from .page_analysis import PageAnalysisStep
from .reviewer import NarrativeReviewer
from .synthesizer import synthesize


class AutonomousAgent(BaseComponent):
    """
    Drives the full agent loop for one base URL.

    Memory is owned here and mutated only through the components below,
    one operation at a time. Only the reconnaissance probes run concurrently.
    """

    def __init__(
        self,
        config: AgentConfig,
        probes: ProbeSet | None = None,
        analyzer: SignatureAnalyzer | None = None,
        signatures: SignatureDatabase | None = None,
        reviewer: NarrativeReviewer | None = None,
        events: EventBus | None = None,
        advisor: Advisor | None = None,
        run_id: str | None = None
    ):
        """
        Initialize the agent.

        Args:
            config: Validated run configuration
            probes: Probe set (live httpx probes when omitted)
            analyzer: Page classifier (built from the signatures when omitted)
            signatures: Signature database (packaged copy when omitted)
            reviewer: Narrative reviewer (built when AI review is enabled)
            events: Event bus (a fresh one when omitted)
            advisor: Optional hook that may replace each decision
            run_id: Run identifier (random when omitted)

        Raises:
            ConfigurationError: If the base URL is out of scope
        """
        try:
            Guardrails().validate_target_url(config.base_url)
        except GuardrailViolation as e:
            raise ConfigurationError(e.message, e.context) from e

        self.run_id = run_id or uuid.uuid4().hex[:12]
        events = events or EventBus(self.run_id)
        super().__init__("agent", config, events)

        self.signatures = signatures or default_signatures()
        self._owns_probes = probes is None
        self.probes = probes or HttpProbeSet(self.signatures)
        self.analyzer = analyzer or SignatureAnalyzer(self.signatures)

        if reviewer is None and config.use_ai:
            reviewer = NarrativeReviewer(config, events=events)

        self.memory = AgentMemory(run_id=self.run_id, base_url=config.reference_url)
        self.stop_token = StopToken()
        self.phase = AgentPhase.IDLE
        self.summary: Summary | None = None

        self.learner = RuleLearner(config, events)
        self.decision = DecisionEngine(config, advisor=advisor, events=events)
        self.page_step = PageAnalysisStep(
            config, self.probes, self.analyzer, self.learner, reviewer, events
        )
        self.experimenter = ExperimentRunner(config, self.probes, self.signatures, events)
        self.monitor = Monitor(config, self.page_step, self.learner, events)

    @property
    def insights(self) -> list[str]:
        return self.memory.insights

    def stop(self) -> None:
        """Request a cooperative stop; the current operation finishes first."""
        if not self.stop_token.stopped:
            self.log("Stop requested")
        self.stop_token.request_stop()

    async def _set_phase(self, phase: AgentPhase) -> None:
        if phase == self.phase:
            return
        if not can_transition(self.phase, phase):
            raise RuntimeError(f"Invalid phase transition: {self.phase.value} -> {phase.value}")
        previous, self.phase = self.phase, phase
        self.log(f"Phase: {previous.value} -> {phase.value}", logging.DEBUG)
        await self.emit(EventType.PHASE_CHANGED, {"from": previous.value, "to": phase.value})

    # ==========================================================================
    # Run
    # ==========================================================================

    async def run(self) -> Summary:
        """
        Execute the run until the frontier is exhausted, a limit is hit or a
        stop is requested.

        Returns:
            The final summary (the latest one when monitoring)
        """
        self.log(f"Starting analysis of {self.config.base_url}")
        await self.emit(EventType.RUN_STARTED, {
            "base_url": self.config.base_url,
            "config": self.config.model_dump(),
        })

        try:
            await self._set_phase(AgentPhase.RECONNAISSANCE)
            await self.reconnaissance()

            await self._set_phase(AgentPhase.ANALYZING)
            await self.discover()

            if self.config.experiment_mode and not self.stop_token.stopped:
                await self._set_phase(AgentPhase.EXPERIMENTING)
                await self.experimenter.run(self.memory, self.stop_token)

            await self._set_phase(AgentPhase.SYNTHESIZING)
            self.summary = synthesize(
                self.memory, self.config.reference_url, self.config.experiment_mode
            )

            if self.config.monitor_mode and not self.stop_token.stopped:
                await self._set_phase(AgentPhase.MONITORING)
                self.summary = await self.monitor.run(self.memory, self.summary, self.stop_token)

            await self._set_phase(AgentPhase.STOPPED)

        except Exception as e:
            self.log(f"Run failed: {e}", logging.ERROR)
            if self.phase != AgentPhase.STOPPED:
                await self._set_phase(AgentPhase.STOPPED)
            await self.emit(EventType.RUN_FAILED, {"error": str(e)})
            raise

        finally:
            if self._owns_probes:
                await self.probes.close()

        self.log(
            f"Analysis complete: {self.summary.pages_analyzed} pages, "
            f"{len(self.memory.failed)} failed, {len(self.memory.insights)} insights"
        )
        await self.emit(EventType.RUN_COMPLETED, {
            "summary": self.summary.model_dump(mode="json"),
            "stopped_early": self.stop_token.stopped,
        })
        return self.summary

    # ==========================================================================
    # Reconnaissance
    # ==========================================================================

    async def reconnaissance(self) -> ReconFacts:
        """Run the DNS, site-health and TLS probes concurrently."""
        base = self.config.reference_url
        hostname = urlparse(base).hostname or ""
        self.log(f"Reconnaissance on {hostname}")

        dns, health, tls = await asyncio.gather(
            self.probes.resolve_dns(hostname),
            self.probes.site_health(base),
            self.probes.certificate_for(base),
            return_exceptions=True,
        )
        recon = ReconFacts(
            dns=self._settled(dns, "DNS"),
            site_health=self._settled(health, "site health"),
            tls=self._settled(tls, "TLS"),
        )
        self.memory.recon = recon

        if recon.site_health and recon.site_health.is_wordpress:
            await self.add_insight(self.memory, "Confirmed WordPress installation")
            if recon.site_health.rest_plugins:
                await self.add_insight(
                    self.memory,
                    f"Detected {len(recon.site_health.rest_plugins)} plugins via REST API"
                )
        if recon.dns and recon.dns.detected_cdn:
            await self.add_insight(self.memory, f"CDN detected: {recon.dns.detected_cdn}")

        await self.emit(EventType.RECONNAISSANCE_COMPLETE, recon.model_dump(mode="json"))
        return recon

    def _settled(self, result: Any, label: str) -> Any:
        if isinstance(result, BaseException):
            self.log(f"{label} probe failed: {result}", logging.WARNING)
            return None
        return result

    # ==========================================================================
    # Discovery loop
    # ==========================================================================

    async def discover(self) -> None:
        """Decide / act until the decision engine says stop or a stop is requested."""
        self.memory.enqueue(self.config.reference_url, 0)

        while not self.stop_token.stopped:
            decision = self.decision.decide(self.memory)
            self.log(f"Decision: {decision.action.value} - {decision.reason}", logging.DEBUG)

            if decision.action == ActionType.STOP:
                self.log(f"Stopping discovery: {decision.reason}")
                break

            if decision.action == ActionType.ADJUST_STRATEGY:
                removed = self.decision.adjust_strategy(self.memory, decision.reason)
                await self.emit(EventType.STRATEGY_ADJUSTED, {
                    "reason": decision.reason,
                    "pruned": removed,
                })
                continue

            if decision.target is None:
                self.log("Decision had no target URL, stopping discovery", logging.WARNING)
                break
            depth = self.memory.pending.get(decision.target, 0)
            await self.page_step.analyze(self.memory, decision.target, depth)
