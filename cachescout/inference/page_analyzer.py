"""
Page Analyzer.
Classifies one fetched page into WordPress, plugins, CDNs, server caches, conflicts and hosting.
"""

from ..core.models import (
    FetchResult,
    CacheTestResult,
    DnsFacts,
    SiteHealthFacts,
    PageFindings,
    DetectedPlugin,
    DetectedCdn,
    DetectedConflict,
)
from .signatures import SignatureDatabase, CdnSignature, default_signatures


WP_MARKERS = ("/wp-content/", "/wp-includes/", "wp-json")

# Header checks for managed hosts: (header present | server contains) -> host
HOSTING_HEADERS: list[tuple[tuple[str, ...], tuple[str, ...], str]] = [
    (("x-wpe-cached", "x-wpe-backend"), ("wpe",), "WP Engine"),
    (("x-kinsta-cache",), (), "Kinsta"),
    (("x-sg-cache",), ("siteground",), "SiteGround"),
    (("x-pantheon-styx-hostname",), (), "Pantheon"),
    (("x-fw-cache",), ("flywheel",), "Flywheel"),
    ((), ("cloudways",), "Cloudways"),
    ((), ("litespeed",), "LiteSpeed Server"),
]

HOSTING_HTML: list[tuple[tuple[str, ...], str]] = [
    (("wpenginepowered.com", "wpengine.com"), "WP Engine"),
    (("kinsta.cloud", "kinstacdn.com"), "Kinsta"),
    (("sgvps.net", "siteground"), "SiteGround"),
    (("flywheelsites.com", "flywheelstaging.com"), "Flywheel"),
    (("pantheonsite.io",), "Pantheon"),
]


class SignatureAnalyzer:
    """
    Stateless classifier over a single probe result.

    The signature database is injected; nothing here performs I/O.
    """

    def __init__(self, signatures: SignatureDatabase | None = None):
        self.signatures = signatures or default_signatures()

    def classify(
        self,
        fetch: FetchResult,
        cache_test: CacheTestResult | None = None,
        dns: DnsFacts | None = None,
        site_health: SiteHealthFacts | None = None
    ) -> PageFindings:
        """
        Classify a page.

        Args:
            fetch: The fetched page
            cache_test: Double-hit cache test for the same URL
            dns: Site DNS facts (adds a DNS-detected CDN and hosting)
            site_health: WordPress REST facts (confirms WordPress)

        Returns:
            PageFindings
        """
        plugins = self.detect_plugins(fetch)
        cdns = self._detect_header_signatures(fetch, self.signatures.cdns)

        if dns and dns.detected_cdn:
            known = {c.name.lower() for c in cdns}
            if not any(dns.detected_cdn.lower() in name for name in known):
                cdns.append(DetectedCdn(
                    slug=dns.detected_cdn.lower(),
                    name=dns.detected_cdn,
                    matched_by=["dns: cname"],
                ))

        return PageFindings(
            is_wordpress=self.detect_wordpress(fetch) or bool(site_health and site_health.is_wordpress),
            plugins=plugins,
            cdns=cdns,
            server_cache=self._detect_header_signatures(fetch, self.signatures.server_cache),
            conflicts=self.detect_conflicts(plugins),
            cache_working=cache_test.cache_working if cache_test else False,
            cache_explanation=cache_test.explanation if cache_test else "Cache test not run",
            hosting=self.detect_hosting(fetch, dns),
        )

    # ==========================================================================
    # Detectors
    # ==========================================================================

    @staticmethod
    def detect_wordpress(fetch: FetchResult) -> bool:
        if any(marker in fetch.body for marker in WP_MARKERS):
            return True
        if "wp-json" in fetch.headers.get("link", ""):
            return True
        if "wordpress" in fetch.headers.get("x-powered-by", "").lower():
            return True
        return any("wordpress" in c.lower() for c in fetch.html_comments)

    def detect_plugins(self, fetch: FetchResult) -> list[DetectedPlugin]:
        detected = []
        for slug, plugin in self.signatures.plugins.items():
            markers = plugin.signatures
            matched_by: list[str] = []

            for pattern in markers.html_comments:
                if pattern in fetch.body or any(pattern in c for c in fetch.html_comments):
                    matched_by.append(f"html_comment: {pattern[:30]}")
            for header in markers.headers:
                if header.lower() in fetch.headers:
                    matched_by.append(f"header: {header}")
            for cookie in markers.cookies:
                if any(cookie in c for c in fetch.cookies):
                    matched_by.append(f"cookie: {cookie}")
            for path in markers.paths:
                if path in fetch.body:
                    matched_by.append(f"path: {path}")

            if matched_by:
                detected.append(DetectedPlugin(
                    slug=slug,
                    name=plugin.name,
                    category=plugin.category,
                    matched_by=matched_by,
                ))
        return detected

    @staticmethod
    def _detect_header_signatures(
        fetch: FetchResult,
        table: dict[str, CdnSignature]
    ) -> list[DetectedCdn]:
        server = fetch.headers.get("server", "").lower()
        via = fetch.headers.get("via", "").lower()
        detected = []

        for slug, entry in table.items():
            markers = entry.signatures
            matched_by = [
                f"header: {h}" for h in markers.headers if h.lower() in fetch.headers
            ]
            if markers.server and markers.server.lower() in server:
                matched_by.append(f"server: {markers.server}")
            if markers.via and markers.via.lower() in via:
                matched_by.append(f"via: {markers.via}")

            if matched_by:
                detected.append(DetectedCdn(slug=slug, name=entry.name, matched_by=matched_by))
        return detected

    def detect_conflicts(self, plugins: list[DetectedPlugin]) -> list[DetectedConflict]:
        """A conflict applies when at least two of its plugins are present."""
        present = {p.slug for p in plugins}
        conflicts = []
        for rule in self.signatures.conflicts:
            matching = [slug for slug in rule.plugins if slug in present]
            if len(matching) >= 2:
                conflicts.append(DetectedConflict(
                    plugins=matching,
                    severity=rule.severity if rule.severity in ("high", "medium", "low") else "medium",
                    reason=rule.reason,
                ))
        return conflicts

    @staticmethod
    def detect_hosting(fetch: FetchResult, dns: DnsFacts | None = None) -> str | None:
        """Hosting from headers first, then DNS, then HTML."""
        server = fetch.headers.get("server", "").lower()
        powered_by = fetch.headers.get("x-powered-by", "")

        if "WP Engine" in powered_by:
            return "WP Engine"
        for headers, server_markers, host in HOSTING_HEADERS:
            if any(h in fetch.headers for h in headers) or any(m in server for m in server_markers):
                return host
        if "plesk" in server or "plesk" in powered_by.lower():
            return "Plesk"

        if dns and dns.detected_hosting:
            return dns.detected_hosting

        for markers, host in HOSTING_HTML:
            if any(m in fetch.body for m in markers):
                return host
        return None
