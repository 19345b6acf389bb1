"""
Protocol Resolver

Maps a parsed URL onto the transport family that can check it and detects
onion addresses, which are only reachable through a SOCKS5 proxy.
"""

from typing import Optional

from .data_models import NormalizedURL, Protocol
from .proxy_probe import ProxyContext

SCHEME_PROTOCOLS = {
    "http": Protocol.HTTP,
    "https": Protocol.HTTP,
    "ftp": Protocol.FTP,
    "rtsp": Protocol.RTSP,
    "mms": Protocol.MMS,
}

ONION_SUFFIX = ".onion"


def resolve_scheme(parts: NormalizedURL) -> Protocol:
    """
    Classify a URL by its scheme alone.

    A missing scheme is treated as HTTP because sanitizing defaults it to
    ``https``.
    """
    if not parts.scheme:
        return Protocol.HTTP
    return SCHEME_PROTOCOLS.get(parts.scheme.lower(), Protocol.UNSUPPORTED)


def is_onion(parts: NormalizedURL) -> bool:
    """Check whether the host is an onion address."""
    if not parts.host:
        return False
    return parts.host.lower().rstrip(".").endswith(ONION_SUFFIX)


class ProtocolResolver:
    """Resolves protocols with knowledge of onion proxy availability."""

    def __init__(self, proxy_context: Optional[ProxyContext] = None):
        self.proxy_context = proxy_context or ProxyContext(ready=False)

    def resolve(self, parts: NormalizedURL) -> Protocol:
        """
        Resolve the protocol of a URL.

        Onion addresses are UNSUPPORTED unless the proxy probe confirmed
        that onion routing works.
        """
        if is_onion(parts) and not self.proxy_context.ready:
            return Protocol.UNSUPPORTED
        return resolve_scheme(parts)

    def is_proxy_eligible(self, parts: NormalizedURL) -> bool:
        """Onion URLs are routed through the proxy once it is known to work."""
        return is_onion(parts) and self.proxy_context.ready


__all__ = [
    "SCHEME_PROTOCOLS",
    "resolve_scheme",
    "is_onion",
    "ProtocolResolver",
]
