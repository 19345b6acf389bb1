"""
Request Options

Immutable per-request transport settings, built by a pure function from the
protocol, the request phase and proxy eligibility.
"""

from dataclasses import dataclass
from typing import Dict, Optional, Tuple

from ..config.pydantic_config import CheckerConfig
from ..utils.browser_simulator import BrowserSimulator
from .data_models import Phase, Protocol

# Credentials for anonymous FTP, only sent on full-body requests
FTP_ANONYMOUS_CREDENTIALS = ("anonymous", "anonymous@domain.com")


@dataclass(frozen=True)
class RequestOptions:
    """Settings handed to a transport for one request."""

    protocol: Protocol
    phase: Phase
    timeout: float
    user_agent: str
    headers: Tuple[Tuple[str, str], ...] = ()
    follow_redirects: bool = True
    verify_tls: bool = False
    max_redirects: int = 10
    ftp_credentials: Optional[Tuple[str, str]] = None
    compressed: bool = False
    proxy_url: Optional[str] = None

    @property
    def header_only(self) -> bool:
        return self.phase is Phase.HEADER

    @property
    def header_dict(self) -> Dict[str, str]:
        return dict(self.headers)


def build_request_options(
    protocol: Protocol,
    phase: Phase,
    proxy_eligible: bool,
    config: CheckerConfig,
) -> RequestOptions:
    """
    Build the transport options for one request.

    Args:
        protocol: Resolved protocol of the URL
        phase: Header-only or full-body request
        proxy_eligible: Whether the request is routed through the SOCKS5 proxy
        config: Checker configuration

    Returns:
        RequestOptions
    """
    full = phase is Phase.BODY
    media = protocol in (Protocol.RTSP, Protocol.MMS)
    compressed = full and protocol is Protocol.HTTP

    simulator = BrowserSimulator(user_agent=config.user_agent)
    headers = simulator.get_headers(media=media, compressed=compressed)

    return RequestOptions(
        protocol=protocol,
        phase=phase,
        timeout=float(config.body_timeout if full else config.header_timeout),
        user_agent=simulator.get_user_agent(media=media),
        headers=tuple(headers.items()),
        follow_redirects=True,
        verify_tls=False,
        max_redirects=config.max_redirects,
        ftp_credentials=(
            FTP_ANONYMOUS_CREDENTIALS if full and protocol is Protocol.FTP else None
        ),
        compressed=compressed,
        proxy_url=config.proxy_url if proxy_eligible else None,
    )


__all__ = [
    "FTP_ANONYMOUS_CREDENTIALS",
    "RequestOptions",
    "build_request_options",
]
