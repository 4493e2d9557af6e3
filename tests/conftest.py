"""
tests/conftest.py

Shared fixtures. Network probes are replaced by an in-memory fake site so the
agent loop can be exercised end to end without I/O.
"""

from __future__ import annotations

from typing import Callable
from urllib.parse import urlparse

import pytest

from cachescout.core.config import AgentConfig
from cachescout.core.events import EventBus
from cachescout.core.models import (
    CacheTestResult,
    DetectedCdn,
    DetectedConflict,
    DetectedPlugin,
    DnsFacts,
    FetchResult,
    PageAnalysis,
    PageFindings,
    RequestSummary,
    SiteHealthFacts,
    Timing,
    TlsFacts,
)
from cachescout.inference.signatures import default_signatures
from cachescout.inference.url_priority import normalize_url
from cachescout.memory.agent_memory import AgentMemory
from cachescout.probes.base import ProbeSet


BASE_URL = "https://example.com"

HOME_HTML = """
<html><body>
  <a href="/about">About</a>
  <a href="/cart/">Cart</a>
  <a href="/shop">Shop</a>
  <a href="#top">Top</a>
  <a href="mailto:hello@example.com">Mail</a>
  <a href="https://elsewhere.org/x">Elsewhere</a>
</body></html>
"""


# ---------------------------------------------------------------------------
# Fake probe set
# ---------------------------------------------------------------------------


class FakeProbeSet(ProbeSet):
    """
    In-memory site.

    pages:            normalized URL -> HTML body (unknown URLs get an empty page)
    failing:          normalized URLs whose fetch reports an error
    uncached:         normalized URLs whose cache test reports not working
    ttfb_ms:          first-request TTFB reported by every cache test
    response_headers: callable (url, request headers) -> response headers
    """

    def __init__(
        self,
        pages: dict[str, str] | None = None,
        failing: set[str] | None = None,
        uncached: set[str] | None = None,
        ttfb_ms: int = 120,
        response_headers: Callable[[str, dict[str, str]], dict[str, str]] | None = None,
        wordpress: bool = False,
    ):
        self.pages = pages if pages is not None else {BASE_URL: HOME_HTML}
        self.failing = failing or set()
        self.uncached = uncached or set()
        self.ttfb_ms = ttfb_ms
        self.response_headers = response_headers or (lambda url, headers: {})
        self.wordpress = wordpress
        self.fetches: list[tuple[str, dict[str, str]]] = []
        self.cache_tests: list[str] = []
        self.closed = False

    async def fetch(self, url, headers=None, timeout_ms=30000):
        self.fetches.append((url, dict(headers or {})))
        key = normalize_url(url)
        if key in self.failing:
            return FetchResult(url=url, error="Connection refused")
        return FetchResult(
            url=url,
            final_url=url,
            status_code=200,
            headers={k.lower(): v for k, v in self.response_headers(url, headers or {}).items()},
            body=self.pages.get(key, "<html></html>"),
            timing=Timing(ttfb_ms=self.ttfb_ms, total_ms=self.ttfb_ms + 10),
        )

    async def test_cache(self, url, timeout_ms=30000):
        self.cache_tests.append(url)
        working = normalize_url(url) not in self.uncached
        return CacheTestResult(
            url=url,
            first_request=RequestSummary(status_code=200, ttfb_ms=self.ttfb_ms),
            second_request=RequestSummary(status_code=200, ttfb_ms=self.ttfb_ms // 4 if working else self.ttfb_ms),
            cache_working=working,
            explanation="fake",
        )

    async def resolve_dns(self, hostname):
        return DnsFacts(hostname=hostname, addresses=["203.0.113.10"])

    async def read_certificate(self, hostname, port=443):
        return TlsFacts(hostname=hostname, port=port, is_secure=True, days_remaining=90)

    async def site_health(self, base_url):
        return SiteHealthFacts(url=base_url, is_wordpress=self.wordpress)

    async def close(self):
        self.closed = True


# ---------------------------------------------------------------------------
# Fixtures
# ---------------------------------------------------------------------------


@pytest.fixture()
def config() -> AgentConfig:
    return AgentConfig(base_url=BASE_URL, max_pages=10, max_depth=2, monitor_interval_ms=0)


@pytest.fixture()
def memory() -> AgentMemory:
    return AgentMemory(run_id="test-run", base_url=BASE_URL)


@pytest.fixture()
def probes() -> FakeProbeSet:
    return FakeProbeSet()


@pytest.fixture()
def signatures():
    return default_signatures()


@pytest.fixture()
def events() -> EventBus:
    return EventBus("test-run")


@pytest.fixture()
def recorded(events: EventBus) -> list:
    """Every event emitted on the `events` bus, in order."""
    seen: list = []
    events.subscribe(seen.append)
    return seen


@pytest.fixture()
def make_page() -> Callable[..., PageAnalysis]:
    """Factory for analyzed pages with chosen findings."""

    def _make(
        path: str = "/",
        cache_working: bool = True,
        ttfb_ms: int | None = 100,
        plugins: list[str] | None = None,
        cdns: list[str] | None = None,
        conflicts: list[tuple[list[str], str]] | None = None,
    ) -> PageAnalysis:
        url = normalize_url(BASE_URL + path)
        cache_test = None
        if ttfb_ms is not None:
            cache_test = CacheTestResult(
                url=url,
                first_request=RequestSummary(status_code=200, ttfb_ms=ttfb_ms),
                second_request=RequestSummary(status_code=200, ttfb_ms=ttfb_ms),
                cache_working=cache_working,
            )
        findings = PageFindings(
            plugins=[DetectedPlugin(slug=p.lower().replace(" ", "-"), name=p) for p in plugins or []],
            cdns=[DetectedCdn(slug=c.lower(), name=c) for c in cdns or []],
            conflicts=[DetectedConflict(plugins=ps, reason=reason) for ps, reason in conflicts or []],
            cache_working=cache_working,
        )
        return PageAnalysis(
            url=url,
            depth=len([s for s in urlparse(url).path.split("/") if s]),
            fetch=FetchResult(url=url, status_code=200),
            cache_test=cache_test,
            findings=findings,
        )

    return _make
