"""
tests/test_synthesizer.py

Cross-page summary: aggregation, majority cache flag, TTFB averaging,
recommendation fallback and determinism.
"""

from __future__ import annotations

from cachescout.agents.synthesizer import (
    REC_ADD_CDN,
    REC_ENABLE_CACHING,
    REC_INSTALL_PLUGIN,
    synthesize,
)
from cachescout.core.models import (
    Experiment,
    ExperimentKind,
    NarrativeReview,
    ReviewIssue,
    ReviewRecommendation,
)
from cachescout.memory.agent_memory import AgentMemory


REFERENCE = "https://example.com"


# ---------------------------------------------------------------------------
# Aggregation
# ---------------------------------------------------------------------------


class TestAggregation:
    def test_names_unioned_in_first_seen_order(self, memory: AgentMemory, make_page) -> None:
        memory.record_page(make_page("/", plugins=["WP Rocket"], cdns=["Cloudflare"]))
        memory.record_page(make_page("/a", plugins=["WooCommerce", "WP Rocket"], cdns=["Cloudflare"]))
        memory.record_page(make_page("/b", plugins=["wp rocket"]))

        summary = synthesize(memory, REFERENCE)

        assert summary.detected_plugins == ["WP Rocket", "WooCommerce", "wp rocket"]
        assert summary.detected_cdns == ["Cloudflare"]

    def test_conflicts_deduplicated_by_description(self, memory: AgentMemory, make_page) -> None:
        conflict = (["wp-rocket", "autoptimize"], "Duplicate minification")
        memory.record_page(make_page("/", conflicts=[conflict]))
        memory.record_page(make_page("/a", conflicts=[conflict]))

        summary = synthesize(memory, REFERENCE)

        assert summary.conflicts == ["wp-rocket + autoptimize: Duplicate minification"]

    def test_zero_pages(self, memory: AgentMemory) -> None:
        summary = synthesize(memory, REFERENCE)

        assert summary.pages_analyzed == 0
        assert summary.cache_working is False
        assert summary.cache_working_fraction == 0.0
        assert summary.average_ttfb_ms == 0
        assert summary.recommendations == []


class TestCacheWorking:
    def test_majority_required(self, memory: AgentMemory, make_page) -> None:
        memory.record_page(make_page("/", cache_working=True))
        memory.record_page(make_page("/a", cache_working=False))

        summary = synthesize(memory, REFERENCE)

        assert summary.cache_working_fraction == 0.5
        assert summary.cache_working is False

    def test_more_than_half(self, memory: AgentMemory, make_page) -> None:
        for path, working in (("/", True), ("/a", True), ("/b", False)):
            memory.record_page(make_page(path, cache_working=working))

        summary = synthesize(memory, REFERENCE)

        assert summary.cache_working is True
        assert summary.cache_working_pages == 2
        assert summary.cache_working_fraction == 0.6667


class TestAverageTtfb:
    def test_pages_without_cache_test_excluded(self, memory: AgentMemory, make_page) -> None:
        memory.record_page(make_page("/", ttfb_ms=100))
        memory.record_page(make_page("/a", ttfb_ms=301))
        memory.record_page(make_page("/b", ttfb_ms=None))

        assert synthesize(memory, REFERENCE).average_ttfb_ms == 200


# ---------------------------------------------------------------------------
# Recommendations
# ---------------------------------------------------------------------------


class TestRecommendations:
    def test_fallback_checks_reference_page(self, memory: AgentMemory, make_page) -> None:
        memory.record_page(make_page("/about", cache_working=True, plugins=["WP Rocket"], cdns=["Cloudflare"]))
        memory.record_page(make_page("/", cache_working=False))

        summary = synthesize(memory, REFERENCE)

        assert summary.recommendations == [REC_ENABLE_CACHING, REC_ADD_CDN, REC_INSTALL_PLUGIN]

    def test_fallback_uses_first_page_without_reference(self, memory: AgentMemory, make_page) -> None:
        memory.record_page(make_page("/about", cache_working=True, plugins=["WP Rocket"]))

        assert synthesize(memory, REFERENCE).recommendations == [REC_ADD_CDN]

    def test_review_recommendations_replace_fallback(self, memory: AgentMemory, make_page) -> None:
        page = make_page("/", cache_working=False)
        page.review = NarrativeReview(
            issues=[
                ReviewIssue(title="Page cache disabled", severity="high"),
                ReviewIssue(title="Large images", severity="low"),
            ],
            recommendations=[
                ReviewRecommendation(title="Enable page cache", priority=1),
                ReviewRecommendation(title="Preload fonts", priority=4),
            ],
        )
        memory.record_page(page)

        summary = synthesize(memory, REFERENCE)

        assert summary.critical_issues == ["Page cache disabled"]
        assert summary.recommendations == ["Enable page cache"]

    def test_low_priority_reviews_fall_back(self, memory: AgentMemory, make_page) -> None:
        page = make_page("/", cache_working=True, plugins=["WP Rocket"], cdns=["Cloudflare"])
        page.review = NarrativeReview(
            recommendations=[ReviewRecommendation(title="Preload fonts", priority=3)],
        )
        memory.record_page(page)

        assert synthesize(memory, REFERENCE).recommendations == []


# ---------------------------------------------------------------------------
# Experiments & determinism
# ---------------------------------------------------------------------------


def _add_experiments(memory: AgentMemory) -> None:
    for passed in (True, False, None, True):
        memory.add_experiment(Experiment(
            name="e", kind=ExperimentKind.CACHE_BYPASS, description="",
            passed=passed, insight=f"passed={passed}",
        ))


class TestExperimentTally:
    def test_unset_verdicts_excluded(self, memory: AgentMemory) -> None:
        _add_experiments(memory)

        tally = synthesize(memory, REFERENCE).experiment_results

        assert (tally.passed, tally.failed) == (2, 1)
        assert len(tally.insights) == 4

    def test_omitted_without_experiment_mode(self, memory: AgentMemory) -> None:
        _add_experiments(memory)
        assert synthesize(memory, REFERENCE, experiment_mode=False).experiment_results is None


class TestDeterminism:
    def test_repeat_calls_identical(self, memory: AgentMemory, make_page) -> None:
        memory.record_page(make_page("/", plugins=["WP Rocket"], conflicts=[(["a", "b"], "r")]))
        memory.record_page(make_page("/a", cache_working=False, ttfb_ms=333))
        _add_experiments(memory)

        first = synthesize(memory, REFERENCE)
        second = synthesize(memory, REFERENCE)

        assert first == second
        assert first.model_dump_json() == second.model_dump_json()

    def test_does_not_mutate_memory(self, memory: AgentMemory, make_page) -> None:
        memory.record_page(make_page("/", cache_working=False))
        before = memory.model_dump()

        synthesize(memory, REFERENCE)

        assert memory.model_dump() == before
