"""
Page Analysis Step.
Fetches, cache-tests and classifies one URL, then folds the result back into memory.
"""

import logging
from urllib.parse import urlparse

from ..core.config import AgentConfig
from ..core.errors import AnalysisError
from ..core.events import EventBus, EventType
from ..core.models import CacheTestResult, FetchResult, PageAnalysis, PageFindings
from ..memory.agent_memory import AgentMemory
from ..inference.page_analyzer import SignatureAnalyzer
from ..inference.url_priority import extract_links
from ..probes.base import ProbeSet
from .base import BaseComponent
from .learner import RuleLearner
from .reviewer import NarrativeReviewer


SLOW_TTFB_MS = 1000


class PageAnalysisStep(BaseComponent):
    """
    Analyzes single pages on behalf of the discovery loop.

    A failed fetch, cache test or classification moves the URL to the failed
    set; it is never retried here.
    """

    def __init__(
        self,
        config: AgentConfig,
        probes: ProbeSet,
        analyzer: SignatureAnalyzer,
        learner: RuleLearner,
        reviewer: NarrativeReviewer | None = None,
        events: EventBus | None = None
    ):
        super().__init__("page_analysis", config, events)
        self.probes = probes
        self.analyzer = analyzer
        self.learner = learner
        self.reviewer = reviewer

    async def analyze(self, memory: AgentMemory, url: str, depth: int) -> PageAnalysis | None:
        """
        Analyze one URL.

        Args:
            memory: Run memory
            url: URL to analyze
            depth: Discovery depth of the URL

        Returns:
            The recorded PageAnalysis, or None if the URL was already
            processed or failed now
        """
        memory.take(url)
        if memory.is_processed(url):
            return None

        self.log(f"Analyzing: {url} (depth: {depth})")
        await self.emit(EventType.PAGE_ANALYSIS_STARTED, {"url": url, "depth": depth})

        fetch = await self.probes.fetch(url, timeout_ms=self.config.timeout_ms)
        if fetch.error:
            await self._fail(memory, url, fetch.error)
            return None

        try:
            cache_test = await self.probes.test_cache(url, timeout_ms=self.config.timeout_ms)
        except Exception as e:
            await self._fail(memory, url, f"Cache test failed: {e}")
            return None

        try:
            findings = self.classify(memory, fetch, cache_test)
        except AnalysisError as e:
            await self._fail(memory, url, e.message)
            return None

        links = extract_links(fetch.body, url)
        if depth < self.config.max_depth:
            queued = [link for link in links if memory.enqueue(link, depth + 1)]
            if queued:
                self.log(f"Queued {len(queued)} new links from {url}", logging.DEBUG)

        page = PageAnalysis(
            url=url,
            depth=depth,
            fetch=fetch,
            cache_test=cache_test,
            findings=findings,
            discovered_links=links,
        )

        if self.reviewer is not None:
            page.review = await self.reviewer.review(page)

        memory.record_page(page)
        await self.derive_insights(memory, page)

        rule = self.learner.learn(memory, page)
        if rule is not None:
            await self.emit(EventType.RULE_LEARNED, {"rule": rule.model_dump()})

        await self.emit(EventType.PAGE_ANALYZED, {
            "url": url,
            "depth": depth,
            "cache_working": findings.cache_working,
            "plugins": [p.name for p in findings.plugins],
            "cdns": [c.name for c in findings.cdns],
            "ttfb_ms": page.first_ttfb_ms,
        })
        return page

    def classify(
        self,
        memory: AgentMemory,
        fetch: FetchResult,
        cache_test: CacheTestResult
    ) -> PageFindings:
        """
        Classify a fetched page against the run's recon facts.

        Raises:
            AnalysisError: If the analyzer fails on this page
        """
        try:
            return self.analyzer.classify(
                fetch,
                cache_test,
                memory.recon.dns,
                memory.recon.site_health,
            )
        except Exception as e:
            raise AnalysisError(f"Analysis failed: {e}", {"url": fetch.url}) from e

    async def _fail(self, memory: AgentMemory, url: str, error: str) -> None:
        memory.mark_failed(url, error)
        self.log(f"Failed: {url} ({error})", logging.WARNING)
        await self.emit(EventType.PAGE_FAILED, {"url": url, "error": error})

    async def derive_insights(self, memory: AgentMemory, page: PageAnalysis) -> None:
        path = urlparse(page.url).path or "/"

        if not page.findings.cache_working:
            await self.add_insight(memory, f"Page not cached: {path}")

        for conflict in page.findings.conflicts:
            await self.add_insight(
                memory,
                f"Conflict: {' + '.join(conflict.plugins)} - {conflict.reason}"
            )

        ttfb = page.first_ttfb_ms
        if ttfb is not None and ttfb > SLOW_TTFB_MS:
            await self.add_insight(memory, f"Slow TTFB ({ttfb}ms) on {path}")
