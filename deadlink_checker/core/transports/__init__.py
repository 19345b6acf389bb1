"""Protocol transports used by the fetch engine."""

from typing import Dict, Optional

import httpx

from ..data_models import Protocol
from .base import Transport, TransportErrorCode, TransportRequest, error_result
from .ftp_transport import FTPTransport
from .http_transport import HTTPTransport
from .rtsp_transport import RTSPTransport


def default_transports(
    http_transport: Optional[httpx.AsyncBaseTransport] = None,
    max_connections: int = 100,
) -> Dict[Protocol, Transport]:
    """Build the transport for each supported protocol."""
    rtsp = RTSPTransport()
    return {
        Protocol.HTTP: HTTPTransport(
            transport=http_transport, max_connections=max_connections
        ),
        Protocol.FTP: FTPTransport(),
        Protocol.RTSP: rtsp,
        Protocol.MMS: rtsp,
    }


__all__ = [
    "Transport",
    "TransportErrorCode",
    "TransportRequest",
    "error_result",
    "HTTPTransport",
    "FTPTransport",
    "RTSPTransport",
    "default_transports",
]
