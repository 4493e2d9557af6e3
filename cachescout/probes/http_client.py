"""
HTTP Page Fetcher.
Fetches a URL and captures status, headers, body, HTML comments, cookies and timing.
"""

import re
import time

import httpx

from ..core.config import settings
from ..core.models import FetchResult, Timing


MAX_BODY_BYTES = 10 * 1024 * 1024

COMMENT_PATTERN = re.compile(r"<!--([\s\S]*?)-->")

BROWSER_HEADERS = {
    "Accept": "text/html,application/xhtml+xml,application/xml;q=0.9,image/avif,image/webp,*/*;q=0.8",
    "Accept-Language": "en-US,en;q=0.9",
    "Accept-Encoding": "gzip, deflate",
    "Upgrade-Insecure-Requests": "1",
    "Sec-Fetch-Dest": "document",
    "Sec-Fetch-Mode": "navigate",
    "Sec-Fetch-Site": "none",
    "Sec-Fetch-User": "?1",
}


class ResponseTooLarge(Exception):
    pass


def extract_html_comments(html: str) -> list[str]:
    return [m.group(1).strip() for m in COMMENT_PATTERN.finditer(html)]


def build_headers(custom: dict[str, str] | None = None, user_agent: str | None = None) -> dict[str, str]:
    """Browser-like defaults; custom headers override them case-insensitively."""
    headers = {"User-Agent": user_agent or settings.user_agent, **BROWSER_HEADERS}
    for key, value in (custom or {}).items():
        for existing in [k for k in headers if k.lower() == key.lower()]:
            del headers[existing]
        headers[key] = value
    return headers


async def _fetch(
    client: httpx.AsyncClient,
    url: str,
    headers: dict[str, str],
    timeout_ms: int
) -> FetchResult:
    start = time.perf_counter()
    async with client.stream(
        "GET",
        url,
        headers=headers,
        timeout=timeout_ms / 1000,
        follow_redirects=True,
    ) as response:
        ttfb = time.perf_counter() - start

        chunks: list[bytes] = []
        size = 0
        async for chunk in response.aiter_bytes():
            size += len(chunk)
            if size > MAX_BODY_BYTES:
                raise ResponseTooLarge("Response too large (>10MB)")
            chunks.append(chunk)

        body = b"".join(chunks).decode(response.charset_encoding or "utf-8", errors="replace")
        total = time.perf_counter() - start

        return FetchResult(
            url=url,
            final_url=str(response.url),
            status_code=response.status_code,
            headers={k.lower(): v for k, v in response.headers.items()},
            body=body,
            html_comments=extract_html_comments(body),
            cookies=response.headers.get_list("set-cookie"),
            timing=Timing(ttfb_ms=round(ttfb * 1000), total_ms=round(total * 1000)),
        )


async def fetch_page(
    url: str,
    headers: dict[str, str] | None = None,
    timeout_ms: int = 30000,
    client: httpx.AsyncClient | None = None,
    user_agent: str | None = None
) -> FetchResult:
    """
    Fetch a page, never raising.

    Args:
        url: URL to fetch (http or https)
        headers: Extra request headers, overriding the browser defaults
        timeout_ms: Request timeout in milliseconds
        client: Shared client; a short-lived one is created when omitted
        user_agent: User-Agent override

    Returns:
        FetchResult; on any failure `error` is set and status_code is 0
    """
    start = time.perf_counter()
    request_headers = build_headers(headers, user_agent)

    try:
        if not url.startswith(("http://", "https://")):
            raise ValueError("Only HTTP/HTTPS URLs are supported")
        if client is not None:
            return await _fetch(client, url, request_headers, timeout_ms)
        async with httpx.AsyncClient() as own_client:
            return await _fetch(own_client, url, request_headers, timeout_ms)

    except httpx.TimeoutException:
        error = f"Timed out after {timeout_ms}ms"
    except (httpx.HTTPError, ResponseTooLarge, ValueError) as e:
        error = str(e) or type(e).__name__

    return FetchResult(
        url=url,
        final_url=url,
        timing=Timing(total_ms=round((time.perf_counter() - start) * 1000)),
        error=error,
    )
