"""
HTTP(S) Transport

Performs header-only (HEAD) and full-body (GET) requests with httpx,
following redirects and reporting the effective URL.
"""

import asyncio
import logging
import socket
import ssl
import time
from dataclasses import dataclass, field
from typing import Dict, Optional, Tuple

import httpx

from ...utils.error_handler import TransportUnavailableError
from ..data_models import FetchResult
from .base import Transport, TransportErrorCode, TransportRequest, error_result

logger = logging.getLogger(__name__)

_RESOLVE_FAILURE_MARKERS = (
    "name or service not known",
    "nodename nor servname",
    "getaddrinfo failed",
    "temporary failure in name resolution",
    "no address associated",
)


def _exception_chain(error: BaseException):
    seen = set()
    while error is not None and id(error) not in seen:
        seen.add(id(error))
        yield error
        error = error.__cause__ or error.__context__


def _connect_error_code(error: httpx.HTTPError) -> TransportErrorCode:
    for cause in _exception_chain(error):
        if isinstance(cause, socket.gaierror):
            return TransportErrorCode.COULDNT_RESOLVE_HOST
        if isinstance(cause, ssl.SSLCertVerificationError):
            return TransportErrorCode.PEER_FAILED_VERIFICATION
        if isinstance(cause, ssl.SSLError):
            return TransportErrorCode.SSL_CONNECT_ERROR

    message = str(error).lower()
    if any(marker in message for marker in _RESOLVE_FAILURE_MARKERS):
        return TransportErrorCode.COULDNT_RESOLVE_HOST
    return TransportErrorCode.COULDNT_CONNECT


def map_httpx_error(error: Exception) -> TransportErrorCode:
    """
    Map an httpx exception onto a transport error code.

    Args:
        error: Exception raised by httpx

    Returns:
        Closest matching TransportErrorCode
    """
    if isinstance(error, httpx.TimeoutException):
        return TransportErrorCode.OPERATION_TIMEDOUT
    if isinstance(error, httpx.ProxyError):
        return TransportErrorCode.COULDNT_CONNECT
    if isinstance(error, httpx.ConnectError):
        return _connect_error_code(error)
    if isinstance(error, httpx.TooManyRedirects):
        return TransportErrorCode.TOO_MANY_REDIRECTS
    if isinstance(error, httpx.RemoteProtocolError):
        message = str(error).lower()
        if "without sending" in message or "server disconnected" in message:
            return TransportErrorCode.GOT_NOTHING
        return TransportErrorCode.WEIRD_SERVER_REPLY
    if isinstance(error, httpx.DecodingError):
        return TransportErrorCode.BAD_CONTENT_ENCODING
    if isinstance(error, httpx.ReadError):
        return TransportErrorCode.RECV_ERROR
    if isinstance(error, httpx.WriteError):
        return TransportErrorCode.SEND_ERROR
    if isinstance(error, httpx.UnsupportedProtocol):
        return TransportErrorCode.UNSUPPORTED_PROTOCOL
    if isinstance(error, (httpx.InvalidURL, httpx.LocalProtocolError)):
        return TransportErrorCode.URL_MALFORMAT
    return TransportErrorCode.RECV_ERROR


@dataclass
class _ClientPool:
    """Clients shared by the batches running on one event loop."""

    clients: Dict[Tuple[Optional[str], int], httpx.AsyncClient] = field(
        default_factory=dict
    )
    users: int = 0


class HTTPTransport(Transport):
    """
    httpx-backed transport for http and https URLs.

    One client is kept per proxy setting while batches are running on an event
    loop, so that connections and cookies are reused between requests.
    Overlapping batches on the same loop share the clients; they are closed
    when the last of those batches ends.
    """

    name = "http"

    def __init__(
        self,
        transport: Optional[httpx.AsyncBaseTransport] = None,
        max_connections: int = 100,
    ):
        """
        Initialize the HTTP transport.

        Args:
            transport: Optional httpx transport replacing the network stack
            max_connections: Connection pool size per client
        """
        self._transport = transport
        self.max_connections = max_connections
        self._pools: Dict[int, _ClientPool] = {}

    def _pool(self) -> _ClientPool:
        key = id(asyncio.get_running_loop())
        if key not in self._pools:
            self._pools[key] = _ClientPool()
        return self._pools[key]

    async def open(self) -> None:
        self._pool().users += 1

    async def close(self) -> None:
        key = id(asyncio.get_running_loop())
        pool = self._pools.get(key)
        if pool is None:
            return
        pool.users -= 1
        if pool.users > 0:
            return
        del self._pools[key]
        for client in pool.clients.values():
            await client.aclose()

    def _get_client(self, proxy_url: Optional[str], max_redirects: int) -> httpx.AsyncClient:
        clients = self._pool().clients
        key = (proxy_url, max_redirects)
        if key not in clients:
            try:
                clients[key] = httpx.AsyncClient(
                    proxy=None if self._transport is not None else proxy_url,
                    transport=self._transport,
                    limits=httpx.Limits(
                        max_connections=self.max_connections,
                        max_keepalive_connections=20,
                    ),
                    follow_redirects=True,
                    max_redirects=max_redirects,
                    verify=False,
                )
            except (ImportError, ValueError) as e:
                raise TransportUnavailableError(
                    f"Could not initialize HTTP client: {e}"
                ) from e
        return clients[key]

    async def fetch(self, request: TransportRequest) -> FetchResult:
        options = request.options
        client = self._get_client(options.proxy_url, options.max_redirects)
        method = "HEAD" if options.header_only else "GET"

        start_time = time.monotonic()
        try:
            response = await client.request(
                method,
                request.url,
                headers=options.header_dict,
                # Only connect, read and write count against the timeout
                timeout=httpx.Timeout(options.timeout, pool=None),
                follow_redirects=options.follow_redirects,
            )
        except (httpx.HTTPError, httpx.InvalidURL) as e:
            effective_url = request.url
            if isinstance(e, httpx.HTTPError):
                try:
                    effective_url = str(e.request.url)
                except RuntimeError:
                    pass
            return error_result(
                request,
                map_httpx_error(e),
                str(e) or e.__class__.__name__,
                effective_url=effective_url,
                response_time=time.monotonic() - start_time,
            )

        return FetchResult(
            requested_url=request.requested_url,
            sanitized_url=request.url,
            effective_url=str(response.url),
            status_code=response.status_code,
            phase=options.phase,
            response_time=time.monotonic() - start_time,
        )


__all__ = ["HTTPTransport", "map_httpx_error"]
