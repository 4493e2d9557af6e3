"""
TLS Certificate Reader.
Performs a TLS handshake and reports the peer certificate and negotiated parameters.
"""

import asyncio
import ssl
from datetime import datetime, timezone

from ..core.models import TlsFacts


def _name_field(name: tuple | None, key: str) -> str | None:
    """Pull one attribute (e.g. commonName) out of a getpeercert() name tuple."""
    for rdn in name or ():
        for attr, value in rdn:
            if attr == key:
                return value
    return None


def parse_certificate(cert: dict, facts: TlsFacts) -> TlsFacts:
    """Fill TlsFacts from the dict returned by SSLSocket.getpeercert()."""
    facts.subject = _name_field(cert.get("subject"), "commonName")
    facts.issuer = (
        _name_field(cert.get("issuer"), "organizationName")
        or _name_field(cert.get("issuer"), "commonName")
    )

    not_after = cert.get("notAfter")
    if not_after:
        valid_to = datetime.fromtimestamp(ssl.cert_time_to_seconds(not_after), tz=timezone.utc)
        facts.valid_to = valid_to
        facts.days_remaining = (valid_to - datetime.now(timezone.utc)).days

    return facts


async def read_certificate(hostname: str, port: int = 443, timeout_ms: int = 10000) -> TlsFacts:
    """
    Read the TLS certificate presented by hostname:port.

    Args:
        hostname: Host to connect to (also sent as SNI)
        port: TLS port
        timeout_ms: Handshake timeout

    Returns:
        TlsFacts; `error` is set when the handshake fails
    """
    facts = TlsFacts(hostname=hostname, port=port)
    context = ssl.create_default_context()

    try:
        _reader, writer = await asyncio.wait_for(
            asyncio.open_connection(hostname, port, ssl=context, server_hostname=hostname),
            timeout=timeout_ms / 1000,
        )
    except asyncio.TimeoutError:
        facts.error = f"TLS handshake timed out after {timeout_ms}ms"
        return facts
    except ssl.SSLError as e:
        facts.error = f"TLS error: {e}"
        return facts
    except OSError as e:
        facts.error = f"Connection failed: {e}"
        return facts

    try:
        ssl_object = writer.get_extra_info("ssl_object")
        facts.is_secure = True
        if ssl_object is not None:
            facts.protocol = ssl_object.version()
            cipher = ssl_object.cipher()
            facts.cipher = cipher[0] if cipher else None
            cert = ssl_object.getpeercert()
            if cert:
                parse_certificate(cert, facts)
            else:
                facts.error = "Could not retrieve certificate"
    finally:
        writer.close()
        try:
            await writer.wait_closed()
        except (ssl.SSLError, OSError):
            pass

    return facts


def insecure_facts(hostname: str, port: int = 80) -> TlsFacts:
    return TlsFacts(hostname=hostname, port=port, is_secure=False, error="Site is not using HTTPS")
