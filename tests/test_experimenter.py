"""
tests/test_experimenter.py

Experiment catalog, cache-hit detection, verdict interpretation and the
runner's handling of failed fetches.
"""

from __future__ import annotations

import pytest

from conftest import BASE_URL, FakeProbeSet

from cachescout.agents.experimenter import (
    ExperimentRunner,
    base_catalog,
    interpret,
    is_cache_hit,
)
from cachescout.core.events import EventType
from cachescout.core.models import (
    DetectedPlugin,
    Experiment,
    ExperimentKind,
    ExperimentOutcome,
    FetchResult,
)
from cachescout.core.state import StopToken


def _headers_by_request(mapping):
    """Response headers chosen by the first matching request header name."""
    def respond(url, headers):
        for name, response in mapping.items():
            if name in headers:
                return response
        return {}
    return respond


def _experiment(kind: ExperimentKind, hit: bool) -> Experiment:
    experiment = Experiment(name=kind.value, kind=kind, description="")
    experiment.outcome = ExperimentOutcome(cache_hit=hit, ttfb_ms=42)
    interpret(experiment)
    return experiment


# ---------------------------------------------------------------------------
# Cache-hit detection
# ---------------------------------------------------------------------------


class TestIsCacheHit:
    @pytest.mark.parametrize(
        "headers",
        [
            {"x-cache": "HIT"},
            {"x-cache": "Hit from cloudfront"},
            {"cf-cache-status": "hit"},
            {"x-wpe-cached": "cached"},
            {"x-litespeed-cache": "hit,private"},
        ],
    )
    def test_hits(self, headers) -> None:
        assert is_cache_hit(headers)

    @pytest.mark.parametrize(
        "headers",
        [{}, {"x-cache": "MISS"}, {"cf-cache-status": "DYNAMIC"}, {"x-served-by": "cache-hit-node"}],
    )
    def test_misses(self, headers) -> None:
        assert not is_cache_hit(headers)


# ---------------------------------------------------------------------------
# Verdicts
# ---------------------------------------------------------------------------


class TestInterpret:
    def test_bypass_hit_fails(self) -> None:
        experiment = _experiment(ExperimentKind.CACHE_BYPASS, hit=True)
        assert experiment.passed is False
        assert "does NOT respect no-cache" in experiment.insight

    def test_bypass_miss_passes(self) -> None:
        assert _experiment(ExperimentKind.CACHE_BYPASS, hit=False).passed is True

    def test_cookie_bypass(self) -> None:
        assert _experiment(ExperimentKind.COOKIE_BYPASS, hit=True).passed is False
        assert _experiment(ExperimentKind.COOKIE_BYPASS, hit=False).passed is True

    @pytest.mark.parametrize("hit", [True, False])
    def test_query_string_always_passes(self, hit: bool) -> None:
        experiment = _experiment(ExperimentKind.QUERY_STRING, hit=hit)
        assert experiment.passed is True
        assert ("are cached" in experiment.insight) is hit

    @pytest.mark.parametrize("kind", [ExperimentKind.VARY_HEADER, ExperimentKind.PLUGIN_PROBE])
    def test_observational_kinds_have_no_verdict(self, kind: ExperimentKind) -> None:
        experiment = _experiment(kind, hit=True)
        assert experiment.passed is None
        assert experiment.insight == "TTFB: 42ms, Cache: HIT"


# ---------------------------------------------------------------------------
# Catalog
# ---------------------------------------------------------------------------


class TestCatalog:
    def test_fixed_catalog(self) -> None:
        catalog = base_catalog()
        assert [e.kind for e in catalog] == [
            ExperimentKind.CACHE_BYPASS,
            ExperimentKind.VARY_HEADER,
            ExperimentKind.COOKIE_BYPASS,
            ExperimentKind.QUERY_STRING,
        ]
        assert catalog[0].headers == {"Cache-Control": "no-cache"}
        assert catalog[1].headers == {"Accept-Encoding": "identity"}
        assert catalog[2].headers == {"Cookie": "test_cookie=1"}
        assert catalog[3].headers == {}

    def test_plugin_probes_follow_reference_page(self, config, memory, probes, signatures, make_page) -> None:
        page = make_page("/")
        page.findings.plugins = [
            DetectedPlugin(slug="litespeed-cache", name="LiteSpeed Cache"),
            DetectedPlugin(slug="wp-rocket", name="WP Rocket"),
        ]
        memory.record_page(page)

        experiments = ExperimentRunner(config, probes, signatures).generate(memory)

        extra = experiments[4:]
        assert [(e.name, e.plugin) for e in extra] == [
            ("WP Rocket Mobile Cache", "wp-rocket"),
            ("LiteSpeed ESI Test", "litespeed-cache"),
        ]
        assert all(e.kind == ExperimentKind.PLUGIN_PROBE for e in extra)
        assert "iPhone" in extra[0].headers["User-Agent"]

    def test_no_plugin_probes_without_reference(self, config, memory, probes, signatures) -> None:
        assert len(ExperimentRunner(config, probes, signatures).generate(memory)) == 4


# ---------------------------------------------------------------------------
# Runner
# ---------------------------------------------------------------------------


class TestRunner:
    async def test_x_cache_verdicts(self, config, memory, signatures) -> None:
        probes = FakeProbeSet(response_headers=_headers_by_request({
            "Cache-Control": {"X-Cache": "HIT"},
            "Cookie": {"X-Cache": "MISS"},
        }))

        ran = await ExperimentRunner(config, probes, signatures).run(memory)
        by_kind = {e.kind: e for e in ran}

        assert by_kind[ExperimentKind.CACHE_BYPASS].passed is False
        assert by_kind[ExperimentKind.COOKIE_BYPASS].passed is True
        assert by_kind[ExperimentKind.VARY_HEADER].passed is None
        assert by_kind[ExperimentKind.QUERY_STRING].passed is True
        assert memory.experiments == ran

    async def test_one_fetch_per_experiment(self, config, memory, probes, signatures) -> None:
        await ExperimentRunner(config, probes, signatures).run(memory)

        urls = [url for url, _ in probes.fetches]
        assert len(urls) == 4
        assert urls[:3] == [BASE_URL] * 3
        assert urls[3].startswith(f"{BASE_URL}?cache_test=")
        assert probes.fetches[0][1] == {"Cache-Control": "no-cache"}

    async def test_failed_fetch_does_not_abort_catalog(self, config, memory, signatures) -> None:
        class FlakyProbes(FakeProbeSet):
            async def fetch(self, url, headers=None, timeout_ms=30000):
                if headers and "Cache-Control" in headers:
                    self.fetches.append((url, dict(headers)))
                    return FetchResult(url=url, error="Timed out after 30000ms")
                return await super().fetch(url, headers, timeout_ms)

        probes = FlakyProbes()
        ran = await ExperimentRunner(config, probes, signatures).run(memory)

        failed = ran[0]
        assert len(ran) == 4
        assert failed.error == "Timed out after 30000ms"
        assert failed.passed is None
        assert failed.outcome is None
        assert failed.insight == "Experiment failed: Timed out after 30000ms"
        assert 'Experiment "Cache Bypass Test": Experiment failed: Timed out after 30000ms' in memory.insights
        assert ran[2].passed is True

    async def test_events(self, config, memory, probes, signatures, events, recorded) -> None:
        await ExperimentRunner(config, probes, signatures, events).run(memory)

        completed = [e for e in recorded if e.type == EventType.EXPERIMENT_COMPLETE]
        assert len(completed) == 4
        assert recorded[-1].type == EventType.EXPERIMENTS_COMPLETE
        assert recorded[-1].data == {"count": 4, "passed": 3, "failed": 0}

    async def test_stop_between_experiments(self, config, memory, probes, signatures) -> None:
        stop = StopToken()
        stop.request_stop()

        ran = await ExperimentRunner(config, probes, signatures).run(memory, stop)

        assert ran == []
        assert probes.fetches == []
