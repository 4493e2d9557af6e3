"""
Narrative Reviewer.
Optional LLM review of interesting pages, producing issues and prioritized recommendations.
"""

import json
import logging
from urllib.parse import urlparse

from pydantic import ValidationError

from ..core.config import AgentConfig
from ..core.models import PageAnalysis, PageFindings, NarrativeReview
from ..llm.provider import LLMProvider, get_llm_provider
from .base import BaseComponent


REVIEW_SYSTEM_PROMPT = """You are a WordPress performance engineer reviewing one page of a site.

You are given passive findings: response headers, detected plugins and CDNs, plugin
conflicts and the result of a double-hit cache test. Only report what the evidence supports.

Severity:
- high: caching is broken or misconfigured in a way that affects every visitor
- medium: a measurable inefficiency or a risky combination of plugins
- low: a cosmetic or optional improvement

Recommendation priority runs from 1 (do this first) to 5 (nice to have)."""


REVIEW_OUTPUT_SCHEMA = {
    "type": "object",
    "properties": {
        "summary": {"type": "string"},
        "issues": {
            "type": "array",
            "items": {
                "type": "object",
                "properties": {
                    "title": {"type": "string"},
                    "severity": {"type": "string", "enum": ["high", "medium", "low"]},
                    "description": {"type": "string"}
                },
                "required": ["title", "severity"]
            }
        },
        "recommendations": {
            "type": "array",
            "items": {
                "type": "object",
                "properties": {
                    "title": {"type": "string"},
                    "priority": {"type": "integer", "minimum": 1, "maximum": 5},
                    "description": {"type": "string"}
                },
                "required": ["title", "priority"]
            }
        }
    },
    "required": ["summary", "issues", "recommendations"]
}

# Response headers worth showing the model
REVIEW_HEADERS = (
    "server", "x-powered-by", "cache-control", "expires", "age", "vary",
    "x-cache", "cf-cache-status", "x-litespeed-cache", "x-kinsta-cache", "x-wpe-cached",
)


def should_review(findings: PageFindings) -> bool:
    """Only pages with something to say are worth a model call."""
    return bool(findings.conflicts) or len(findings.plugins) > 2 or not findings.cache_working


class NarrativeReviewer(BaseComponent):
    """
    LLM-backed page reviewer.

    A failed review is logged and the page is kept without one.
    """

    def __init__(self, config: AgentConfig, llm_provider: LLMProvider | None = None, events=None):
        """
        Initialize reviewer.

        Args:
            config: Run configuration
            llm_provider: Provider to use (built from config when omitted)
        """
        super().__init__("reviewer", config, events)
        self.llm = llm_provider or get_llm_provider(config.llm_provider)

    def build_prompt(self, page: PageAnalysis) -> str:
        findings = page.findings
        headers = {k: v for k, v in page.fetch.headers.items() if k in REVIEW_HEADERS}
        cache = page.cache_test

        context = {
            "url": page.url,
            "path": urlparse(page.url).path or "/",
            "status_code": page.fetch.status_code,
            "headers": headers,
            "is_wordpress": findings.is_wordpress,
            "hosting": findings.hosting,
            "plugins": [p.name for p in findings.plugins],
            "cdns": [c.name for c in findings.cdns],
            "server_cache": [c.name for c in findings.server_cache],
            "conflicts": [c.key for c in findings.conflicts],
            "cache_test": {
                "working": findings.cache_working,
                "explanation": findings.cache_explanation,
                "first_ttfb_ms": cache.first_request.ttfb_ms if cache else None,
                "second_ttfb_ms": cache.second_request.ttfb_ms if cache else None,
            },
        }
        return "Review this page:\n\n" + json.dumps(context, indent=2)

    async def review(self, page: PageAnalysis) -> NarrativeReview | None:
        """
        Review a page when its findings are interesting.

        Returns:
            NarrativeReview, or None when skipped or failed
        """
        if not should_review(page.findings):
            return None

        try:
            raw = await self.llm.invoke_with_structured_output(
                prompt=self.build_prompt(page),
                output_schema=REVIEW_OUTPUT_SCHEMA,
                system_prompt=REVIEW_SYSTEM_PROMPT,
            )
            review = NarrativeReview.model_validate({**raw, "model": self.llm.model_name})
        except ValidationError as e:
            self.log(f"Review of {page.url} returned malformed output: {e}", logging.WARNING)
            return None
        except Exception as e:
            self.log(f"Review of {page.url} failed: {e}", logging.WARNING)
            return None

        self.log(f"Reviewed {page.url}: {len(review.issues)} issues, {len(review.recommendations)} recommendations")
        return review
