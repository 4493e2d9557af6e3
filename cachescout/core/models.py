"""
Pydantic models for the CacheScout agent.
Defines probe results, page findings, experiments, learned rules and summaries.
"""

from datetime import datetime
from enum import Enum
from typing import Literal, Any
from pydantic import BaseModel, Field


# ==============================================================================
# Enumerations
# ==============================================================================

class ActionType(str, Enum):
    """Actions the decision engine can choose."""
    ANALYZE_PAGE = "analyze_page"
    ADJUST_STRATEGY = "adjust_strategy"
    STOP = "stop"


class ExperimentKind(str, Enum):
    """Cache experiment variations."""
    CACHE_BYPASS = "cache_bypass"
    VARY_HEADER = "vary_header"
    COOKIE_BYPASS = "cookie_bypass"
    QUERY_STRING = "query_string"
    PLUGIN_PROBE = "plugin_probe"


class ChangeKind(str, Enum):
    """Kinds of drift the monitor reports between snapshots."""
    CACHE_STATUS = "cache_status"
    TTFB = "ttfb"
    PLUGINS_ADDED = "plugins_added"
    PLUGINS_REMOVED = "plugins_removed"


# ==============================================================================
# Probe Results
# ==============================================================================

class Timing(BaseModel):
    """Request timing in milliseconds."""
    ttfb_ms: int = 0
    total_ms: int = 0


class FetchResult(BaseModel):
    """A fetched page: status, headers, body and timing."""
    url: str
    final_url: str = ""
    status_code: int = 0
    headers: dict[str, str] = Field(default_factory=dict)  # keys lower-cased
    body: str = ""
    html_comments: list[str] = Field(default_factory=list)
    cookies: list[str] = Field(default_factory=list)
    timing: Timing = Field(default_factory=Timing)
    error: str | None = None

    @property
    def ok(self) -> bool:
        return self.error is None


class RequestSummary(BaseModel):
    """Condensed view of one request made by the cache tester."""
    status_code: int = 0
    ttfb_ms: int = 0
    cache_header: str | None = None
    cache_value: str | None = None


class CacheStatusHeader(BaseModel):
    """A cache-status header found on a response."""
    header: str
    value: str
    is_hit: bool


class BypassTest(BaseModel):
    """Outcome of requesting the page with a cache-busting query string."""
    request: RequestSummary
    bypassed: bool


class CacheTestResult(BaseModel):
    """Double-hit cache test outcome."""
    url: str
    first_request: RequestSummary
    second_request: RequestSummary
    cache_working: bool
    explanation: str = ""
    cache_headers: dict[str, str] = Field(default_factory=dict)
    status_headers: list[CacheStatusHeader] = Field(default_factory=list)
    bypass_test: BypassTest | None = None


class DnsFacts(BaseModel):
    """DNS resolution facts for the site's host."""
    hostname: str
    addresses: list[str] = Field(default_factory=list)
    cnames: list[str] = Field(default_factory=list)
    nameservers: list[str] = Field(default_factory=list)
    detected_cdn: str | None = None
    detected_waf: str | None = None
    detected_hosting: str | None = None
    error: str | None = None


class TlsFacts(BaseModel):
    """TLS certificate facts for the site's host."""
    hostname: str
    port: int = 443
    is_secure: bool = False
    issuer: str | None = None
    subject: str | None = None
    valid_to: datetime | None = None
    days_remaining: int | None = None
    protocol: str | None = None
    cipher: str | None = None
    error: str | None = None


class RestPlugin(BaseModel):
    """Plugin inferred from a WordPress REST namespace."""
    slug: str
    name: str
    namespace: str
    category: str | None = None


class SiteHealthFacts(BaseModel):
    """What the WordPress REST index reveals about the site."""
    url: str
    is_wordpress: bool = False
    wp_version: str | None = None
    site_name: str | None = None
    namespaces: list[str] = Field(default_factory=list)
    rest_plugins: list[RestPlugin] = Field(default_factory=list)
    error: str | None = None


class ReconFacts(BaseModel):
    """Site-wide facts gathered once at startup."""
    dns: DnsFacts | None = None
    site_health: SiteHealthFacts | None = None
    tls: TlsFacts | None = None


# ==============================================================================
# Page Findings
# ==============================================================================

class DetectedPlugin(BaseModel):
    slug: str
    name: str
    category: str = ""
    matched_by: list[str] = Field(default_factory=list)


class DetectedCdn(BaseModel):
    slug: str
    name: str
    matched_by: list[str] = Field(default_factory=list)


class DetectedConflict(BaseModel):
    plugins: list[str]
    severity: Literal["high", "medium", "low"] = "medium"
    reason: str

    @property
    def key(self) -> str:
        """Stable description used for deduplication across pages."""
        return f"{' + '.join(self.plugins)}: {self.reason}"


class PageFindings(BaseModel):
    """Classified findings for a single page."""
    is_wordpress: bool = False
    plugins: list[DetectedPlugin] = Field(default_factory=list)
    cdns: list[DetectedCdn] = Field(default_factory=list)
    server_cache: list[DetectedCdn] = Field(default_factory=list)
    conflicts: list[DetectedConflict] = Field(default_factory=list)
    cache_working: bool = False
    cache_explanation: str = ""
    hosting: str | None = None


class ReviewIssue(BaseModel):
    title: str
    severity: Literal["high", "medium", "low"] = "medium"
    description: str = ""


class ReviewRecommendation(BaseModel):
    title: str
    priority: int = Field(default=3, ge=1, le=5)  # 1 = most urgent
    description: str = ""


class NarrativeReview(BaseModel):
    """Optional AI review attached to a page."""
    summary: str = ""
    issues: list[ReviewIssue] = Field(default_factory=list)
    recommendations: list[ReviewRecommendation] = Field(default_factory=list)
    model: str = ""


class PageAnalysis(BaseModel):
    """One page's analysis result, owned by memory once recorded."""
    url: str
    depth: int = 0
    timestamp: datetime = Field(default_factory=datetime.now)
    fetch: FetchResult
    cache_test: CacheTestResult | None = None
    findings: PageFindings
    review: NarrativeReview | None = None
    discovered_links: list[str] = Field(default_factory=list)

    @property
    def first_ttfb_ms(self) -> int | None:
        if self.cache_test is None:
            return None
        return self.cache_test.first_request.ttfb_ms


# ==============================================================================
# Decisions, Experiments, Rules
# ==============================================================================

class Decision(BaseModel):
    """Next action chosen by the decision engine."""
    action: ActionType
    reason: str
    target: str | None = None
    priority: int = 0


class ExperimentOutcome(BaseModel):
    """What an experiment's fetch observed."""
    cache_hit: bool
    ttfb_ms: int
    status_code: int = 0
    headers: dict[str, str] = Field(default_factory=dict)


class Experiment(BaseModel):
    """A named cache-probing variation and, once run, its outcome."""
    name: str
    kind: ExperimentKind
    description: str
    headers: dict[str, str] = Field(default_factory=dict)
    expected_behavior: str = ""
    plugin: str | None = None
    outcome: ExperimentOutcome | None = None
    passed: bool | None = None
    insight: str | None = None
    error: str | None = None


class LearnedRule(BaseModel):
    """Advisory, confidence-weighted observation accumulated during a run."""
    id: str
    condition: str
    action: str
    confidence: float = Field(default=0.5, ge=0.0, le=1.0)
    times_applied: int = 0
    success_rate: float = Field(default=0.0, ge=0.0, le=1.0)


# ==============================================================================
# Summary & Monitoring
# ==============================================================================

class ExperimentTally(BaseModel):
    passed: int = 0
    failed: int = 0
    insights: list[str] = Field(default_factory=list)


class Summary(BaseModel):
    """Cross-page synthesis of everything in memory."""
    pages_analyzed: int = 0
    cache_working: bool = False
    cache_working_pages: int = 0
    cache_working_fraction: float = 0.0
    average_ttfb_ms: int = 0
    detected_plugins: list[str] = Field(default_factory=list)
    detected_cdns: list[str] = Field(default_factory=list)
    conflicts: list[str] = Field(default_factory=list)
    critical_issues: list[str] = Field(default_factory=list)
    recommendations: list[str] = Field(default_factory=list)
    experiment_results: ExperimentTally | None = None


class Snapshot(BaseModel):
    """A summary captured by the monitor."""
    timestamp: datetime = Field(default_factory=datetime.now)
    summary: Summary


class Change(BaseModel):
    """A difference between two consecutive snapshots."""
    kind: ChangeKind
    description: str
    delta_ms: int | None = None
    plugins: list[str] = Field(default_factory=list)
    data: dict[str, Any] = Field(default_factory=dict)
