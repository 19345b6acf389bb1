"""
Dead Link Checker

Determines whether HTTP(S), FTP, RTSP and MMS links are dead or alive, for
batches of thousands of URLs, without hammering any single host.
"""

from .config.pydantic_config import CheckerConfig, ConfigurationManager
from .core.checker import DeadLinkChecker
from .core.data_models import FetchResult, LinkStatus, NormalizedURL, Protocol, Verdict
from .core.proxy_probe import ProxyContext
from .utils.error_handler import (
    ConfigurationError,
    DeadLinkCheckerError,
    TransportUnavailableError,
    URLParseError,
)

__version__ = "1.0.0"

__all__ = [
    "DeadLinkChecker",
    "CheckerConfig",
    "ConfigurationManager",
    "ProxyContext",
    "Verdict",
    "LinkStatus",
    "FetchResult",
    "NormalizedURL",
    "Protocol",
    "DeadLinkCheckerError",
    "ConfigurationError",
    "URLParseError",
    "TransportUnavailableError",
]
