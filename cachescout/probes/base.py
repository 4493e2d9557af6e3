"""
Probe Set Interface.
Abstracts the network probes behind a common interface so the agent loop can run against fakes.
"""

from abc import ABC, abstractmethod
from urllib.parse import urlparse

import httpx

from ..core.config import settings
from ..core.models import (
    FetchResult,
    CacheTestResult,
    DnsFacts,
    TlsFacts,
    SiteHealthFacts,
)
from ..inference.signatures import SignatureDatabase, default_signatures
from .http_client import fetch_page
from .cache_tester import run_double_hit_cache_test
from .dns_lookup import resolve_dns
from .tls_info import read_certificate, insecure_facts
from .site_health import check_site_health


class ProbeSet(ABC):
    """
    Independently invokable network probes.

    Each probe carries its own timeout and reports failure in its result
    rather than raising.
    """

    @abstractmethod
    async def fetch(
        self,
        url: str,
        headers: dict[str, str] | None = None,
        timeout_ms: int = 30000
    ) -> FetchResult:
        """Fetch a page and measure it."""
        pass

    @abstractmethod
    async def test_cache(self, url: str, timeout_ms: int = 30000) -> CacheTestResult:
        """Run the double-hit cache test."""
        pass

    @abstractmethod
    async def resolve_dns(self, hostname: str) -> DnsFacts:
        pass

    @abstractmethod
    async def read_certificate(self, hostname: str, port: int = 443) -> TlsFacts:
        pass

    @abstractmethod
    async def site_health(self, base_url: str) -> SiteHealthFacts:
        pass

    async def certificate_for(self, url: str) -> TlsFacts:
        """TLS facts for a URL; plain http sites report an insecure result."""
        parsed = urlparse(url)
        if parsed.scheme != "https":
            return insecure_facts(parsed.hostname or "", parsed.port or 80)
        return await self.read_certificate(parsed.hostname or "", parsed.port or 443)

    async def close(self) -> None:
        """Release any pooled connections."""
        return None


class HttpProbeSet(ProbeSet):
    """
    Live probes over httpx and the system resolver.

    One AsyncClient is shared by every HTTP probe for the life of the run.
    """

    def __init__(
        self,
        signatures: SignatureDatabase | None = None,
        client: httpx.AsyncClient | None = None,
        user_agent: str | None = None,
        cache_delay_ms: int = 500
    ):
        """
        Initialize live probes.

        Args:
            signatures: Database used to map REST namespaces to plugins
            client: Pre-built client (tests pass one with a MockTransport)
            user_agent: User-Agent override
            cache_delay_ms: Pause between the two double-hit requests
        """
        self.signatures = signatures or default_signatures()
        self._owns_client = client is None
        self.client = client or httpx.AsyncClient()
        self.user_agent = user_agent or settings.user_agent
        self.cache_delay_ms = cache_delay_ms

    async def fetch(
        self,
        url: str,
        headers: dict[str, str] | None = None,
        timeout_ms: int = 30000
    ) -> FetchResult:
        return await fetch_page(
            url,
            headers=headers,
            timeout_ms=timeout_ms,
            client=self.client,
            user_agent=self.user_agent,
        )

    async def test_cache(self, url: str, timeout_ms: int = 30000) -> CacheTestResult:
        return await run_double_hit_cache_test(
            self.fetch,
            url,
            timeout_ms=timeout_ms,
            delay_ms=self.cache_delay_ms,
        )

    async def resolve_dns(self, hostname: str) -> DnsFacts:
        return await resolve_dns(hostname)

    async def read_certificate(self, hostname: str, port: int = 443) -> TlsFacts:
        return await read_certificate(hostname, port)

    async def site_health(self, base_url: str) -> SiteHealthFacts:
        return await check_site_health(base_url, self.signatures, client=self.client)

    async def close(self) -> None:
        if self._owns_client:
            await self.client.aclose()
