"""
Scope & Safety Guardrails.
Keeps the agent on the site it was pointed at, and only there.
"""

from urllib.parse import urlparse

from .config import settings
from .errors import GuardrailViolation


class Guardrails:
    """
    Scope enforcement for diagnostic runs.

    AUTHORIZED USE ONLY: the operator must have permission to probe the target.
    Experiments send only benign header and query-string variations.
    """

    def __init__(self, authorized_domains: list[str] | None = None):
        """
        Args:
            authorized_domains: Hosts the operator may analyze, subdomains included.
                Read from settings when omitted; empty means any.
        """
        if authorized_domains is None:
            authorized_domains = [
                d.strip().lower()
                for d in settings.authorized_domains.split(",")
                if d.strip()
            ]
        self.authorized_domains = authorized_domains

    def validate_target_url(self, url: str) -> bool:
        """
        Validate that a target URL may be analyzed.

        Args:
            url: The URL to validate

        Returns:
            True if authorized

        Raises:
            GuardrailViolation: If the URL is malformed or out of scope
        """
        parsed = urlparse(url)
        if parsed.scheme not in ("http", "https"):
            raise GuardrailViolation(
                f"Unsupported scheme '{parsed.scheme}'",
                {"url": url}
            )

        domain = (parsed.hostname or "").lower()
        if not domain:
            raise GuardrailViolation("URL has no host", {"url": url})

        if not self.authorized_domains:
            return True

        for auth_domain in self.authorized_domains:
            if domain == auth_domain or domain.endswith(f".{auth_domain}"):
                return True

        raise GuardrailViolation(
            f"Domain '{domain}' is not in authorized domains: {self.authorized_domains}"
        )

    def is_same_origin(self, base_url: str, url: str) -> bool:
        """Check that url shares scheme, host and port with base_url."""
        a, b = urlparse(base_url), urlparse(url)
        return (a.scheme, a.netloc.lower()) == (b.scheme, b.netloc.lower())
