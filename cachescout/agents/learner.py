"""
Rule Learner.
Turns recurring observations into advisory, confidence-weighted rules.
"""

from urllib.parse import urlparse

from ..core.models import PageAnalysis, LearnedRule, Change, ChangeKind
from ..memory.agent_memory import AgentMemory
from ..inference.url_priority import ACCOUNT_MARKERS
from .base import BaseComponent


DYNAMIC_PATH_MARKERS = ("/cart", "/checkout", *ACCOUNT_MARKERS)


def dynamic_paths_rule() -> LearnedRule:
    return LearnedRule(
        id="dynamic_paths",
        condition="path contains cart/checkout/account",
        action="expect_no_cache",
        confidence=0.9,
        success_rate=1.0,
    )


def ttfb_investigation_rule() -> LearnedRule:
    return LearnedRule(
        id="ttfb_investigation",
        condition="TTFB increased significantly",
        action="investigate_performance",
        confidence=0.8,
        success_rate=0.0,
    )


class RuleLearner(BaseComponent):
    """Upserts learned rules; never removes them."""

    def __init__(self, config, events=None):
        super().__init__("learner", config, events)

    def learn(self, memory: AgentMemory, page: PageAnalysis) -> LearnedRule | None:
        """
        Learn from one successfully analyzed page.

        Returns:
            The upserted rule, if any
        """
        path = urlparse(page.url).path.lower()
        if page.findings.cache_working:
            return None
        if not any(marker in path for marker in DYNAMIC_PATH_MARKERS):
            return None

        rule = memory.upsert_rule(dynamic_paths_rule())
        self.log(f"Learned rule {rule.id} (confidence {rule.confidence:.1f}) from {path}")
        return rule

    def learn_from_changes(self, memory: AgentMemory, changes: list[Change]) -> list[LearnedRule]:
        """React to monitor changes: a TTFB regression asks for a performance investigation."""
        learned = []
        for change in changes:
            if change.kind == ChangeKind.TTFB and (change.delta_ms or 0) > 0:
                learned.append(memory.upsert_rule(ttfb_investigation_rule()))
        return learned
