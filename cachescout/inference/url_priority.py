"""
URL Prioritization & Link Discovery.
Scores frontier URLs and extracts same-origin links from page bodies.
"""

import re
from urllib.parse import urljoin, urlparse


ACCOUNT_MARKERS = ("/my-account", "/account")

# (path markers, weight). A path collects every weight whose marker it contains.
PATH_WEIGHTS: list[tuple[tuple[str, ...], int]] = [
    (("/cart",), 8),
    (("/checkout",), 8),
    (ACCOUNT_MARKERS, 7),
    (("/shop",), 6),
    (("/product",), 5),
    (("/blog", "/news"), 4),
    (("/about",), 2),
    (("/contact",), 2),
    (("/privacy", "/terms"), 1),
]
ROOT_WEIGHT = 10

LINK_PATTERN = re.compile(r"""<a[^>]+href=["']([^"']+)["']""", re.IGNORECASE)
SKIPPED_PREFIXES = ("#", "javascript:", "mailto:", "tel:")


def normalize_url(url: str) -> str:
    """
    Reduce a URL to origin + path with no trailing slash.

    Query string and fragment are dropped so that one page has one identity
    in the frontier.
    """
    parsed = urlparse(url)
    path = parsed.path.rstrip("/")
    return f"{parsed.scheme}://{parsed.netloc}{path}"


def url_path(url: str) -> str:
    return urlparse(url).path.lower()


def score_url(url: str) -> int:
    """
    Additive priority heuristic over a URL's path.

    Root scores 10; transactional paths (cart, checkout, account, shop,
    product) score high; informational pages score low. One point is taken
    off per path segment so shallow pages come first.
    """
    path = url_path(url)
    score = 0

    if path in ("", "/"):
        score += ROOT_WEIGHT

    for markers, weight in PATH_WEIGHTS:
        if any(marker in path for marker in markers):
            score += weight

    depth = len([segment for segment in path.split("/") if segment])
    return score - depth


def pick_next(urls) -> tuple[str, int] | None:
    """
    Pick the highest-scoring URL.

    Ties go to the earliest URL in iteration order.

    Returns:
        (url, score) or None when there is nothing to pick
    """
    best: tuple[str, int] | None = None
    for url in urls:
        score = score_url(url)
        if best is None or score > best[1]:
            best = (url, score)
    return best


def extract_links(html: str, page_url: str) -> list[str]:
    """
    Extract same-origin links from an HTML body.

    Args:
        html: Page body
        page_url: URL the body was fetched from; relative links resolve against it

    Returns:
        Normalized, de-duplicated links excluding the page itself
    """
    page = urlparse(page_url)
    own = normalize_url(page_url)
    links: list[str] = []

    for match in LINK_PATTERN.finditer(html or ""):
        href = match.group(1).strip()
        if not href or href.lower().startswith(SKIPPED_PREFIXES):
            continue

        try:
            resolved = urlparse(urljoin(page_url, href))
        except ValueError:
            continue

        if resolved.scheme not in ("http", "https"):
            continue
        if (resolved.scheme, resolved.netloc.lower()) != (page.scheme, page.netloc.lower()):
            continue

        normalized = normalize_url(resolved.geturl())
        if normalized != own and normalized not in links:
            links.append(normalized)

    return links


def prune_prefix(failed_url: str) -> str:
    """
    Path prefix whose subtree should be skipped after a failure.

    The failed URL's parent path, or the failed path itself when the URL sits
    directly under the root.
    """
    segments = [s for s in url_path(failed_url).split("/") if s]
    if len(segments) <= 1:
        return "/" + "/".join(segments)
    return "/" + "/".join(segments[:-1])


def under_prefix(url: str, prefix: str) -> bool:
    """True when url's path lies strictly beneath prefix."""
    if prefix in ("", "/"):
        return False
    return url_path(url).startswith(prefix.rstrip("/") + "/")
