"""Probes module - page fetch, double-hit cache test, DNS, TLS and WordPress REST probes."""

from .base import ProbeSet, HttpProbeSet
from .http_client import fetch_page
from .cache_tester import run_double_hit_cache_test, find_cache_headers
from .dns_lookup import resolve_dns
from .tls_info import read_certificate
from .site_health import check_site_health

__all__ = [
    "ProbeSet",
    "HttpProbeSet",
    "fetch_page",
    "run_double_hit_cache_test",
    "find_cache_headers",
    "resolve_dns",
    "read_certificate",
    "check_site_health",
]
