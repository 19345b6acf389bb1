"""
Proxy Readiness Probe

Determines once per process whether a SOCKS5 proxy capable of routing onion
traffic is reachable. The outcome lives in a ``ProxyContext`` that callers
own and inject into the checker; a shared default context gives the
process-wide behaviour.
"""

import logging
import sys
import threading
from typing import Optional

import httpx

logger = logging.getLogger(__name__)

PROXY_CHECK_URL = "https://check.torproject.org/"
PROXY_CONFIRMATION = "Congratulations. This browser is configured to use Tor."

# Tor Browser listens on 9150, the tor daemon on 9050
WINDOWS_SOCKS5_PORT = 9150
DEFAULT_SOCKS5_PORT = 9050
DEFAULT_SOCKS5_HOST = "127.0.0.1"


def default_socks5_port() -> int:
    """Pick the SOCKS5 port for the host operating system."""
    if sys.platform.startswith("win"):
        return WINDOWS_SOCKS5_PORT
    return DEFAULT_SOCKS5_PORT


def probe_proxy(
    host: str,
    port: int,
    timeout: float = 30.0,
    user_agent: Optional[str] = None,
    transport: Optional[httpx.BaseTransport] = None,
) -> bool:
    """
    Fetch the proxy detection page through the SOCKS5 proxy.

    Args:
        host: Proxy host
        port: Proxy port
        timeout: Request timeout in seconds
        user_agent: Optional User-Agent header
        transport: Optional httpx transport replacing the proxied one

    Returns:
        True if the page confirms the request went through the proxy.
        Any failure to reach the page counts as not ready.
    """
    proxy_url = f"socks5://{host}:{port}"
    headers = {"User-Agent": user_agent} if user_agent else None

    try:
        if transport is not None:
            client = httpx.Client(
                transport=transport, timeout=timeout, follow_redirects=True
            )
        else:
            client = httpx.Client(
                proxy=proxy_url,
                timeout=timeout,
                follow_redirects=True,
                verify=False,
            )
        with client:
            response = client.get(PROXY_CHECK_URL, headers=headers)
    except httpx.HTTPError as e:
        logger.info(f"SOCKS5 proxy at {host}:{port} is not usable: {e}")
        return False

    ready = PROXY_CONFIRMATION in response.text
    logger.info(
        f"SOCKS5 proxy at {host}:{port} "
        f"{'is routing onion traffic' if ready else 'did not confirm onion routing'}"
    )
    return ready


class ProxyContext:
    """
    Initialize-once cell holding the proxy readiness outcome.

    ``None`` means the probe has not run yet. Once set, the value is never
    recomputed.
    """

    def __init__(self, ready: Optional[bool] = None):
        self._ready = ready
        self._lock = threading.Lock()

    @property
    def determined(self) -> bool:
        return self._ready is not None

    @property
    def ready(self) -> bool:
        return bool(self._ready)

    def ensure_probed(
        self,
        host: str = DEFAULT_SOCKS5_HOST,
        port: Optional[int] = None,
        timeout: float = 30.0,
        user_agent: Optional[str] = None,
        transport: Optional[httpx.BaseTransport] = None,
    ) -> bool:
        """Run the probe on first use, then return the cached outcome."""
        if self._ready is not None:
            return self._ready

        with self._lock:
            if self._ready is None:
                self._ready = probe_proxy(
                    host,
                    port or default_socks5_port(),
                    timeout=timeout,
                    user_agent=user_agent,
                    transport=transport,
                )
        return self._ready


_default_context = ProxyContext()


def get_default_proxy_context() -> ProxyContext:
    """Process-wide context shared by checkers that are not given one."""
    return _default_context


__all__ = [
    "PROXY_CHECK_URL",
    "PROXY_CONFIRMATION",
    "DEFAULT_SOCKS5_HOST",
    "default_socks5_port",
    "probe_proxy",
    "ProxyContext",
    "get_default_proxy_context",
]
