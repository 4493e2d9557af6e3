"""
Agent Memory - Cumulative state for one agent run.
Holds the page frontier, analyzed pages, insights, experiments, snapshots and learned rules.
"""

from datetime import datetime
from pydantic import BaseModel, Field

from ..core.models import (
    PageAnalysis,
    Experiment,
    LearnedRule,
    Snapshot,
    ReconFacts,
)
from ..inference.url_priority import under_prefix


class AgentMemory(BaseModel):
    """
    Run-scoped memory owned by the agent loop.

    A URL is in at most one of pending, pages (analyzed) and failed. All three
    are dicts so iteration follows insertion order.
    """

    run_id: str
    base_url: str
    started_at: datetime = Field(default_factory=datetime.now)

    # Frontier
    pending: dict[str, int] = Field(default_factory=dict)  # url -> discovery depth
    pages: dict[str, PageAnalysis] = Field(default_factory=dict)
    failed: dict[str, str] = Field(default_factory=dict)  # url -> error

    # Knowledge
    recon: ReconFacts = Field(default_factory=ReconFacts)
    insights: list[str] = Field(default_factory=list)
    experiments: list[Experiment] = Field(default_factory=list)
    snapshots: list[Snapshot] = Field(default_factory=list)
    learned_rules: list[LearnedRule] = Field(default_factory=list)

    # Failure count when strategy was last adjusted
    failed_at_last_adjustment: int = 0

    # ==========================================================================
    # Frontier
    # ==========================================================================

    def is_processed(self, url: str) -> bool:
        """True if the URL was analyzed or has failed."""
        return url in self.pages or url in self.failed

    def enqueue(self, url: str, depth: int) -> bool:
        """
        Add a URL to the pending frontier.

        Returns:
            False if the URL is already pending, analyzed or failed
        """
        if url in self.pending or self.is_processed(url):
            return False
        self.pending[url] = depth
        return True

    def take(self, url: str) -> int | None:
        """Remove a URL from pending, returning its depth if it was there."""
        return self.pending.pop(url, None)

    def record_page(self, page: PageAnalysis) -> None:
        self.pending.pop(page.url, None)
        self.failed.pop(page.url, None)
        self.pages[page.url] = page

    def mark_failed(self, url: str, error: str) -> None:
        self.pending.pop(url, None)
        self.pages.pop(url, None)
        self.failed[url] = error

    def requeue(self, url: str, depth: int = 0) -> None:
        """Move a URL back to pending, forgetting any previous result."""
        self.pages.pop(url, None)
        self.failed.pop(url, None)
        self.pending[url] = depth

    def prune_pending(self, prefixes: set[str]) -> list[str]:
        """
        Drop pending URLs lying under any of the given path prefixes.

        Returns:
            The removed URLs
        """
        removed = [
            url for url in self.pending
            if any(under_prefix(url, prefix) for prefix in prefixes)
        ]
        for url in removed:
            del self.pending[url]
        return removed

    @property
    def pages_analyzed(self) -> int:
        return len(self.pages)

    @property
    def failure_ratio(self) -> float:
        """failed / (analyzed + failed + 1)"""
        failed = len(self.failed)
        return failed / (len(self.pages) + failed + 1)

    # ==========================================================================
    # Knowledge
    # ==========================================================================

    def add_insight(self, insight: str) -> bool:
        """
        Record an insight unless an identical one exists.

        Returns:
            True if the insight is new
        """
        if insight in self.insights:
            return False
        self.insights.append(insight)
        return True

    def add_experiment(self, experiment: Experiment) -> None:
        self.experiments.append(experiment)

    def add_snapshot(self, snapshot: Snapshot) -> None:
        self.snapshots.append(snapshot)

    def get_rule(self, rule_id: str) -> LearnedRule | None:
        for rule in self.learned_rules:
            if rule.id == rule_id:
                return rule
        return None

    def upsert_rule(self, rule: LearnedRule, increment: float = 0.1) -> LearnedRule:
        """
        Insert a rule or reinforce the existing rule with the same id.

        A repeated observation raises confidence by `increment`, capped at 1.0.

        Returns:
            The stored rule
        """
        existing = self.get_rule(rule.id)
        if existing is None:
            self.learned_rules.append(rule)
            return rule
        existing.confidence = min(1.0, round(existing.confidence + increment, 4))
        return existing

    def reference_page(self, reference_url: str) -> PageAnalysis | None:
        """The reference page's analysis, else the first analyzed page."""
        page = self.pages.get(reference_url)
        if page is not None:
            return page
        return next(iter(self.pages.values()), None)
