"""
Double-Hit Cache Tester.
Requests a URL twice and compares cache-status headers and latency.
"""

import asyncio
import time
from typing import Awaitable, Callable

from ..core.models import (
    FetchResult,
    RequestSummary,
    CacheStatusHeader,
    CacheTestResult,
    BypassTest,
)


# Known cache status headers, in reporting order
CACHE_STATUS_HEADERS = [
    "x-cache",
    "x-cache-status",
    "cf-cache-status",
    "x-fastcgi-cache",
    "x-nginx-cache",
    "x-varnish-cache",
    "x-proxy-cache",
    "x-litespeed-cache",
    "x-vercel-cache",
    "x-cache-hits",
    "x-served-by",
]

HIT_VALUES = ("hit", "tcp_hit", "mem_hit", "stale")

# Cache-related response headers captured from the second request
CACHE_HEADERS = [
    "cache-control",
    "expires",
    "etag",
    "last-modified",
    "vary",
    "age",
    "cf-edge-cache",
    "server-timing",
]

Fetcher = Callable[..., Awaitable[FetchResult]]


def find_cache_headers(headers: dict[str, str]) -> list[CacheStatusHeader]:
    """Every known cache-status header present, flagged hit or not."""
    found = []
    for name in CACHE_STATUS_HEADERS:
        value = headers.get(name)
        if value:
            lowered = value.lower()
            found.append(CacheStatusHeader(
                header=name,
                value=value,
                is_hit=any(hit in lowered for hit in HIT_VALUES),
            ))
    return found


def summarize_request(result: FetchResult) -> RequestSummary:
    found = find_cache_headers(result.headers)
    primary = next((h for h in found if h.is_hit), found[0] if found else None)
    return RequestSummary(
        status_code=result.status_code,
        ttfb_ms=result.timing.ttfb_ms,
        cache_header=primary.header if primary else None,
        cache_value=primary.value if primary else None,
    )


def interpret(first: FetchResult, second: FetchResult) -> tuple[bool, str]:
    """
    Decide whether caching works from two consecutive responses.

    Returns:
        (cache_working, explanation)
    """
    found = find_cache_headers(second.headers)
    hits = [h for h in found if h.is_hit]

    if hits:
        info = ", ".join(f"{h.header}: {h.value}" for h in hits)
        return True, f"Cache HIT detected ({info})"

    first_ttfb = first.timing.ttfb_ms
    second_ttfb = second.timing.ttfb_ms
    if second_ttfb < first_ttfb * 0.5:
        faster = round((1 - second_ttfb / first_ttfb) * 100)
        return True, f"Second request was {faster}% faster, suggesting cache is working"

    if found:
        info = ", ".join(f"{h.header}: {h.value}" for h in found)
        return False, f"Cache status: {info}"

    return False, "No cache status headers found and no significant speed improvement"


async def run_double_hit_cache_test(
    fetch: Fetcher,
    url: str,
    timeout_ms: int = 30000,
    delay_ms: int = 500,
    test_bypass: bool = True
) -> CacheTestResult:
    """
    Run the double-hit cache test.

    Args:
        fetch: Page fetcher with the `fetch_page` signature
        url: URL to test
        timeout_ms: Per-request timeout
        delay_ms: Pause between the two requests so the cache can populate
        test_bypass: Also request the URL with a cache-busting query string

    Returns:
        CacheTestResult
    """
    first = await fetch(url, timeout_ms=timeout_ms)
    await asyncio.sleep(delay_ms / 1000)
    second = await fetch(url, timeout_ms=timeout_ms)

    cache_working, explanation = interpret(first, second)

    result = CacheTestResult(
        url=url,
        first_request=summarize_request(first),
        second_request=summarize_request(second),
        cache_working=cache_working,
        explanation=explanation,
        cache_headers={
            name: second.headers[name]
            for name in CACHE_HEADERS
            if name in second.headers
        },
        status_headers=find_cache_headers(second.headers),
    )

    if test_bypass:
        separator = "&" if "?" in url else "?"
        bypass_url = f"{url}{separator}nocache={int(time.time() * 1000)}"
        bypass = await fetch(bypass_url, timeout_ms=timeout_ms)
        summary = summarize_request(bypass)
        bypass_hit = any(h.is_hit for h in find_cache_headers(bypass.headers))
        result.bypass_test = BypassTest(request=summary, bypassed=not bypass_hit)

    return result
