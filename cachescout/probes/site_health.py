"""
WordPress REST Probe.
Reads the /wp-json/ index to confirm WordPress and map REST namespaces to plugins.
"""

from typing import Any

import httpx

from ..core.config import settings
from ..core.models import SiteHealthFacts, RestPlugin
from ..inference.signatures import SignatureDatabase


JSON_HEADERS = {
    "Accept": "application/json, text/plain, */*",
    "Accept-Language": "en-US,en;q=0.9",
    "Sec-Fetch-Dest": "empty",
    "Sec-Fetch-Mode": "cors",
    "Sec-Fetch-Site": "same-origin",
}


def plugins_from_namespaces(
    namespaces: list[str],
    signatures: SignatureDatabase
) -> list[RestPlugin]:
    """Map REST namespaces (e.g. "wp-rocket/v1") to known plugins, one entry per plugin."""
    detected: list[RestPlugin] = []
    seen: set[str] = set()

    for ns in namespaces:
        base = ns.split("/")[0].lower()
        for prefix, plugin in signatures.rest_namespaces.items():
            if base == prefix or base.startswith(prefix + "-"):
                if plugin.name not in seen:
                    seen.add(plugin.name)
                    detected.append(RestPlugin(
                        slug=prefix,
                        name=plugin.name,
                        namespace=ns,
                        category=plugin.category,
                    ))
                break
    return detected


def estimate_wp_version(namespaces: list[str]) -> str | None:
    if "wp/v2" not in namespaces:
        return None
    if "wp-site-health/v1" in namespaces:
        return "5.2+"
    if "wp-block-editor/v1" in namespaces:
        return "5.0+"
    return "4.7+"


async def _get_json(client: httpx.AsyncClient, url: str, timeout_ms: int) -> Any | None:
    try:
        response = await client.get(
            url,
            headers={"User-Agent": settings.user_agent, **JSON_HEADERS},
            timeout=timeout_ms / 1000,
            follow_redirects=True,
        )
        if response.status_code != 200:
            return None
        return response.json()
    except (httpx.HTTPError, ValueError):
        return None


async def check_site_health(
    base_url: str,
    signatures: SignatureDatabase,
    timeout_ms: int = 10000,
    client: httpx.AsyncClient | None = None
) -> SiteHealthFacts:
    """
    Probe the WordPress REST index.

    Tries /wp-json/ first, then ?rest_route=/ for sites without pretty permalinks.

    Args:
        base_url: Site base URL
        signatures: Signature database holding the namespace map
        timeout_ms: Per-request timeout
        client: Shared client; a short-lived one is created when omitted

    Returns:
        SiteHealthFacts; `error` is set when the REST API is not reachable
    """
    base = base_url.rstrip("/")
    facts = SiteHealthFacts(url=base)

    async def probe(c: httpx.AsyncClient) -> Any | None:
        data = await _get_json(c, f"{base}/wp-json/", timeout_ms)
        if data is None:
            data = await _get_json(c, f"{base}/?rest_route=/", timeout_ms)
        return data

    if client is not None:
        data = await probe(client)
    else:
        async with httpx.AsyncClient() as own_client:
            data = await probe(own_client)

    if not isinstance(data, dict):
        facts.error = "WP REST API not accessible"
        return facts

    facts.is_wordpress = True
    facts.site_name = data.get("name")
    namespaces = data.get("namespaces")
    if isinstance(namespaces, list):
        facts.namespaces = [str(ns) for ns in namespaces]
        facts.rest_plugins = plugins_from_namespaces(facts.namespaces, signatures)
    facts.wp_version = estimate_wp_version(facts.namespaces)
    return facts
