"""
DNS Lookup.
Resolves a host and detects CDN, WAF and hosting providers from its CNAME chain.
"""

import asyncio
import socket

from ..core.models import DnsFacts


# Provider -> CNAME suffixes
CDN_CNAMES: dict[str, tuple[str, ...]] = {
    "Cloudflare": (".cloudflare.com", ".cloudflare-dns.com"),
    "Fastly": (".fastly.net", ".fastlylb.net"),
    "Akamai": (".akamai.net", ".akamaiedge.net", ".edgekey.net"),
    "Cloudfront": (".cloudfront.net",),
    "Keycdn": (".kxcdn.com",),
    "Bunnycdn": (".b-cdn.net",),
    "Stackpath": (".stackpathdns.com", ".hwcdn.net"),
}

WAF_CNAMES: dict[str, tuple[str, ...]] = {
    "Sucuri": (".sucuri.net", ".sucuridns.com"),
    "Incapsula": (".incapdns.net",),
}

HOSTING_CNAMES: dict[str, tuple[str, ...]] = {
    "WP Engine": (".wpengine.com", ".wpenginepowered.com"),
    "Kinsta": (".kinsta.cloud",),
    "SiteGround": (".sgvps.net", ".siteground.net"),
    "GoDaddy": (".godaddy.com", ".secureserver.net"),
    "Bluehost": (".bluehost.com",),
    "AWS": (".amazonaws.com", ".aws.amazon.com"),
    "Google Cloud": (".googleusercontent.com",),
    "DigitalOcean": (".digitalocean.com",),
    "Vercel": (".vercel-dns.com", ".vercel.app"),
    "Netlify": (".netlify.com", ".netlify.app"),
}


def _match(names: list[str], table: dict[str, tuple[str, ...]]) -> str | None:
    for name in names:
        lowered = name.lower().rstrip(".")
        for provider, suffixes in table.items():
            if lowered.endswith(suffixes):
                return provider
    return None


def detect_providers(names: list[str]) -> tuple[str | None, str | None, str | None]:
    """
    Match host names against the provider tables.

    Returns:
        (cdn, waf, hosting)
    """
    return (
        _match(names, CDN_CNAMES),
        _match(names, WAF_CNAMES),
        _match(names, HOSTING_CNAMES),
    )


async def resolve_dns(hostname: str, timeout_ms: int = 10000) -> DnsFacts:
    """
    Resolve addresses and CNAME aliases for a host.

    Name servers are not queried; the standard resolver does not expose them.

    Args:
        hostname: Host to resolve
        timeout_ms: Overall timeout

    Returns:
        DnsFacts; `error` is set when the host does not resolve
    """
    facts = DnsFacts(hostname=hostname)
    loop = asyncio.get_running_loop()

    try:
        infos = await asyncio.wait_for(
            loop.getaddrinfo(hostname, None, type=socket.SOCK_STREAM),
            timeout=timeout_ms / 1000,
        )
        addresses: list[str] = []
        for _family, _type, _proto, _canon, sockaddr in infos:
            if sockaddr[0] not in addresses:
                addresses.append(sockaddr[0])
        facts.addresses = addresses

        canonical, aliases, _ips = await asyncio.wait_for(
            asyncio.to_thread(socket.gethostbyname_ex, hostname),
            timeout=timeout_ms / 1000,
        )
        chain = [n for n in [*aliases, canonical] if n and n.lower() != hostname.lower()]
        facts.cnames = list(dict.fromkeys(chain))

    except asyncio.TimeoutError:
        facts.error = f"DNS lookup timed out after {timeout_ms}ms"
        return facts
    except OSError as e:
        facts.error = f"DNS lookup failed: {e}"
        if not facts.addresses:
            return facts

    cdn, waf, hosting = detect_providers([hostname, *facts.cnames])
    facts.detected_cdn = cdn
    facts.detected_waf = waf
    facts.detected_hosting = hosting
    return facts
