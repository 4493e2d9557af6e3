"""
Decision Engine.
Chooses the next action of the discovery loop from memory and configuration.
"""

from typing import Callable

from ..core.config import AgentConfig
from ..core.models import ActionType, Decision, LearnedRule
from ..memory.agent_memory import AgentMemory
from ..inference.url_priority import pick_next, prune_prefix
from .base import BaseComponent


FAILURE_RATIO_THRESHOLD = 0.3

# Receives (memory, proposed decision) and returns the decision to act on
Advisor = Callable[[AgentMemory, Decision], Decision]


class DecisionEngine(BaseComponent):
    """
    Decides between analyzing a page, adjusting strategy and stopping.

    Learned rules are evaluated and counted but never change the outcome.
    An optional advisor may replace the decision; none is installed by default.
    """

    def __init__(self, config: AgentConfig, advisor: Advisor | None = None, events=None):
        super().__init__("decision", config, events)
        self.advisor = advisor

    def decide(self, memory: AgentMemory) -> Decision:
        """
        Produce the next action. Never fails.

        Args:
            memory: Current run memory

        Returns:
            Decision (analyze_page, adjust_strategy or stop)
        """
        self.apply_rules(memory)
        decision = self._decide(memory)
        if self.advisor is not None:
            decision = self.advisor(memory, decision)
        return decision

    def _decide(self, memory: AgentMemory) -> Decision:
        if memory.pages_analyzed >= self.config.max_pages:
            return Decision(action=ActionType.STOP, reason="Max pages reached")

        if not memory.pending:
            return Decision(action=ActionType.STOP, reason="No more URLs to analyze")

        best = pick_next(memory.pending)
        if best is None:
            return Decision(action=ActionType.STOP, reason="No valid URLs remaining")
        url, score = best

        if self.should_adjust_strategy(memory):
            return Decision(
                action=ActionType.ADJUST_STRATEGY,
                reason=(
                    f"High failure rate ({memory.failure_ratio:.0%}) - "
                    "adjusting URL selection"
                ),
                priority=10,
            )

        return Decision(
            action=ActionType.ANALYZE_PAGE,
            reason="Next prioritized URL",
            target=url,
            priority=score,
        )

    @staticmethod
    def should_adjust_strategy(memory: AgentMemory) -> bool:
        """Failure ratio above threshold and new failures since the last adjustment."""
        if memory.failure_ratio <= FAILURE_RATIO_THRESHOLD:
            return False
        return len(memory.failed) > memory.failed_at_last_adjustment

    def adjust_strategy(self, memory: AgentMemory, reason: str) -> list[str]:
        """
        Prune pending URLs lying under the subtree of any failed URL.

        Returns:
            The pruned URLs
        """
        self.log(f"Adjusting strategy: {reason}")
        prefixes = {prune_prefix(url) for url in memory.failed}
        removed = memory.prune_pending(prefixes)
        memory.failed_at_last_adjustment = len(memory.failed)
        if removed:
            self.log(f"Pruned {len(removed)} pending URLs under {sorted(prefixes)}")
        return removed

    # ==========================================================================
    # Learned Rules
    # ==========================================================================

    def apply_rules(self, memory: AgentMemory) -> list[LearnedRule]:
        """Count every rule whose trigger currently holds."""
        applied = []
        for rule in memory.learned_rules:
            if self.rule_holds(rule, memory):
                rule.times_applied += 1
                applied.append(rule)
                self.log(f"Applying learned rule: {rule.action}")
        return applied

    @staticmethod
    def rule_holds(rule: LearnedRule, memory: AgentMemory) -> bool:
        if rule.id == "dynamic_paths":
            return True
        if rule.id == "ttfb_investigation":
            return len(memory.snapshots) > 1
        return rule.confidence > 0.5
