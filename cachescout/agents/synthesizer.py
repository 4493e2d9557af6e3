"""
Synthesizer.
Reduces every analyzed page and experiment in memory into one cross-site summary.
"""

from ..core.models import Summary, ExperimentTally
from ..memory.agent_memory import AgentMemory


REC_ENABLE_CACHING = "Enable page caching - no cache detected on homepage"
REC_ADD_CDN = "Consider adding a CDN for global performance"
REC_INSTALL_PLUGIN = "Install a caching plugin (WP Rocket, LiteSpeed Cache, or W3 Total Cache)"

# Review recommendations at or below this priority are surfaced
TOP_PRIORITY = 2


def _append_unique(items: list[str], value: str) -> None:
    if value not in items:
        items.append(value)


def fallback_recommendations(memory: AgentMemory, reference_url: str) -> list[str]:
    """Generic checks against the reference page, used when no review surfaced any."""
    page = memory.reference_page(reference_url)
    if page is None:
        return []

    recommendations = []
    if not page.findings.cache_working:
        recommendations.append(REC_ENABLE_CACHING)
    if not page.findings.cdns:
        recommendations.append(REC_ADD_CDN)
    if not page.findings.plugins:
        recommendations.append(REC_INSTALL_PLUGIN)
    return recommendations


def synthesize(memory: AgentMemory, reference_url: str, experiment_mode: bool = True) -> Summary:
    """
    Build a summary from the current memory. Pure; repeated calls on an
    unchanged memory give equal summaries.

    Args:
        memory: Run memory
        reference_url: Page checked by the fallback recommendations
        experiment_mode: Include the experiment tally

    Returns:
        Summary
    """
    pages = list(memory.pages.values())

    plugins: list[str] = []
    cdns: list[str] = []
    conflicts: list[str] = []
    critical_issues: list[str] = []
    recommendations: list[str] = []
    working = 0
    ttfbs: list[int] = []

    for page in pages:
        findings = page.findings
        for plugin in findings.plugins:
            _append_unique(plugins, plugin.name)
        for cdn in findings.cdns:
            _append_unique(cdns, cdn.name)
        for conflict in findings.conflicts:
            _append_unique(conflicts, conflict.key)

        if findings.cache_working:
            working += 1
        if page.cache_test is not None:
            ttfbs.append(page.cache_test.first_request.ttfb_ms)

        if page.review is not None:
            for issue in page.review.issues:
                if issue.severity == "high":
                    _append_unique(critical_issues, issue.title)
            for rec in page.review.recommendations:
                if rec.priority <= TOP_PRIORITY:
                    _append_unique(recommendations, rec.title)

    total = len(pages)
    tally = None
    if experiment_mode:
        tally = ExperimentTally(
            passed=sum(1 for e in memory.experiments if e.passed is True),
            failed=sum(1 for e in memory.experiments if e.passed is False),
            insights=[e.insight for e in memory.experiments if e.insight],
        )

    return Summary(
        pages_analyzed=total,
        cache_working=working > total / 2,
        cache_working_pages=working,
        cache_working_fraction=round(working / total, 4) if total else 0.0,
        average_ttfb_ms=round(sum(ttfbs) / len(ttfbs)) if ttfbs else 0,
        detected_plugins=plugins,
        detected_cdns=cdns,
        conflicts=conflicts,
        critical_issues=critical_issues,
        recommendations=recommendations or fallback_recommendations(memory, reference_url),
        experiment_results=tally,
    )
