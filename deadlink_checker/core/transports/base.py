"""
Base classes for transports.

A transport performs one request for the fetch engine and reports the
status code, the effective URL after redirects and a transport error code.
Error codes follow the libcurl numbering so that classification tables are
shared by every protocol.
"""

from abc import ABC, abstractmethod
from dataclasses import dataclass
from enum import IntEnum
from typing import Optional

from ..data_models import FetchResult
from ..request_options import RequestOptions


class TransportErrorCode(IntEnum):
    """Transport error codes, numbered like libcurl's CURLcode values."""

    OK = 0
    UNSUPPORTED_PROTOCOL = 1
    URL_MALFORMAT = 3
    COULDNT_RESOLVE_PROXY = 5
    COULDNT_RESOLVE_HOST = 6
    COULDNT_CONNECT = 7
    WEIRD_SERVER_REPLY = 8
    REMOTE_ACCESS_DENIED = 9
    FTP_ACCEPT_FAILED = 10
    FTP_WEIRD_PASS_REPLY = 11
    FTP_ACCEPT_TIMEOUT = 12
    FTP_WEIRD_PASV_REPLY = 13
    FTP_COULDNT_RETR_FILE = 19
    OPERATION_TIMEDOUT = 28
    FTP_COULDNT_USE_REST = 31
    SSL_CONNECT_ERROR = 35
    TOO_MANY_REDIRECTS = 47
    GOT_NOTHING = 52
    SEND_ERROR = 55
    RECV_ERROR = 56
    PEER_FAILED_VERIFICATION = 60
    BAD_CONTENT_ENCODING = 61
    LOGIN_DENIED = 67
    REMOTE_FILE_NOT_FOUND = 78
    RTSP_CSEQ_ERROR = 85
    RTSP_SESSION_ERROR = 86


@dataclass(frozen=True)
class TransportRequest:
    """
    One request for a transport.

    Attributes:
        requested_url: Key the caller knows the URL by
        url: Sanitized URL that is sent on the wire
        options: Transport options for the request
    """

    requested_url: str
    url: str
    options: RequestOptions


def error_result(
    request: TransportRequest,
    code: TransportErrorCode,
    message: str,
    effective_url: Optional[str] = None,
    status_code: int = 0,
    response_time: float = 0.0,
) -> FetchResult:
    """Build the FetchResult for a request that failed in transport."""
    return FetchResult(
        requested_url=request.requested_url,
        sanitized_url=request.url,
        effective_url=effective_url or request.url,
        status_code=status_code,
        transport_error_code=int(code),
        transport_error_message=message,
        phase=request.options.phase,
        response_time=response_time,
    )


class Transport(ABC):
    """Abstract base class for protocol transports."""

    name: str = "transport"

    async def open(self) -> None:
        """
        Prepare the transport for a batch.

        Raises:
            TransportUnavailableError: If the transport cannot be initialized
        """

    async def close(self) -> None:
        """Release resources held for a batch."""

    @abstractmethod
    async def fetch(self, request: TransportRequest) -> FetchResult:
        """
        Perform one request.

        Network failures are reported in the result, never raised.
        """


__all__ = [
    "TransportErrorCode",
    "TransportRequest",
    "Transport",
    "error_result",
]
