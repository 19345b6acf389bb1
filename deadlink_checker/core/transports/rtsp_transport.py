"""
RTSP Transport

Minimal RTSP/1.0 client on asyncio streams. ``mms://`` URLs are rewritten to
``rtsp://`` since media servers answer both on the same protocol family.

A header-only check sends OPTIONS, a full-body check sends DESCRIBE and reads
the session description. Redirects announced with a Location header are
followed up to the configured limit.
"""

import asyncio
import logging
import re
import socket
import time
from typing import Dict, Optional, Tuple
from urllib.parse import urljoin

from python_socks import ProxyError as SocksProxyError
from python_socks.async_.asyncio import Proxy

from ..data_models import FetchResult
from ..url_normalizer import parse_url
from ...utils.error_handler import URLParseError
from .base import Transport, TransportErrorCode, TransportRequest, error_result

logger = logging.getLogger(__name__)

DEFAULT_RTSP_PORT = 554

REDIRECT_CODES = frozenset({301, 302, 303, 305, 307})

_STATUS_LINE = re.compile(r"^RTSP/\d\.\d\s+(\d{3})")

# Upper bound on a response header block
_MAX_HEADER_LINES = 100


class RTSPProtocolError(Exception):
    """The server answered with something that is not an RTSP response."""


class EmptyReplyError(Exception):
    """The server closed the connection without answering."""


class TooManyRedirectsError(Exception):
    """Redirect limit reached while following Location headers."""

    def __init__(self, url: str):
        self.url = url
        super().__init__(url)


def to_rtsp_url(url: str) -> str:
    """Rewrite an mms:// URL onto the rtsp scheme."""
    if url[:6].lower() == "mms://":
        return "rtsp://" + url[6:]
    return url


class RTSPTransport(Transport):
    """Transport for rtsp and mms URLs."""

    name = "rtsp"

    async def _open_stream(self, host: str, port: int, proxy_url: Optional[str],
                           timeout: float):
        if proxy_url:
            proxy = Proxy.from_url(proxy_url, rdns=True)
            sock = await proxy.connect(dest_host=host, dest_port=port, timeout=timeout)
            return await asyncio.open_connection(sock=sock)
        return await asyncio.open_connection(host, port)

    async def _exchange(self, url: str, method: str,
                        request: TransportRequest) -> Tuple[int, Dict[str, str]]:
        """Send one RTSP request and return the status code and headers."""
        options = request.options
        parts = parse_url(url)
        host = (parts.host or "").strip("[]")
        port = parts.port or DEFAULT_RTSP_PORT

        reader, writer = await self._open_stream(
            host, port, options.proxy_url, options.timeout
        )
        try:
            lines = [f"{method} {url} RTSP/1.0", "CSeq: 1"]
            for name, value in options.headers:
                if method == "OPTIONS" and name.lower() == "accept":
                    continue
                lines.append(f"{name}: {value}")
            writer.write(("\r\n".join(lines) + "\r\n\r\n").encode("utf-8"))
            await writer.drain()

            status_line = await reader.readline()
            if not status_line:
                raise EmptyReplyError("Empty reply from server")
            match = _STATUS_LINE.match(status_line.decode("latin-1"))
            if not match:
                raise RTSPProtocolError(
                    f"Unexpected reply: {status_line[:80]!r}"
                )

            headers: Dict[str, str] = {}
            for _ in range(_MAX_HEADER_LINES):
                line = (await reader.readline()).decode("latin-1").strip()
                if not line:
                    break
                name, _, value = line.partition(":")
                headers[name.strip().lower()] = value.strip()

            length = headers.get("content-length", "")
            if method == "DESCRIBE" and length.isdigit():
                await reader.readexactly(int(length))

            return int(match.group(1)), headers
        finally:
            writer.close()
            try:
                await writer.wait_closed()
            except OSError:
                pass

    async def _fetch_following(self, request: TransportRequest) -> Tuple[int, str]:
        options = request.options
        method = "OPTIONS" if options.header_only else "DESCRIBE"
        current = to_rtsp_url(request.url)

        for _ in range(options.max_redirects + 1):
            status, headers = await self._exchange(current, method, request)
            location = headers.get("location")
            if not (options.follow_redirects and status in REDIRECT_CODES and location):
                return status, current
            current = to_rtsp_url(urljoin(current, location))

        raise TooManyRedirectsError(current)

    async def fetch(self, request: TransportRequest) -> FetchResult:
        start_time = time.monotonic()

        def failed(code: TransportErrorCode, message: str,
                   effective_url: Optional[str] = None) -> FetchResult:
            return error_result(
                request,
                code,
                message,
                effective_url=effective_url,
                response_time=time.monotonic() - start_time,
            )

        try:
            status, effective_url = await asyncio.wait_for(
                self._fetch_following(request), timeout=request.options.timeout
            )
        except asyncio.TimeoutError:
            return failed(TransportErrorCode.OPERATION_TIMEDOUT, "Operation timed out")
        except URLParseError as e:
            return failed(TransportErrorCode.URL_MALFORMAT, str(e))
        except TooManyRedirectsError as e:
            return failed(
                TransportErrorCode.TOO_MANY_REDIRECTS,
                "Maximum redirects followed",
                effective_url=e.url,
            )
        except socket.gaierror as e:
            return failed(TransportErrorCode.COULDNT_RESOLVE_HOST, str(e))
        except (ConnectionRefusedError, SocksProxyError) as e:
            return failed(TransportErrorCode.COULDNT_CONNECT, str(e))
        except EmptyReplyError as e:
            return failed(TransportErrorCode.GOT_NOTHING, str(e))
        except asyncio.IncompleteReadError as e:
            return failed(TransportErrorCode.RECV_ERROR, str(e))
        except RTSPProtocolError as e:
            return failed(TransportErrorCode.WEIRD_SERVER_REPLY, str(e))
        except OSError as e:
            return failed(TransportErrorCode.COULDNT_CONNECT, str(e))

        logger.debug(f"RTSP {effective_url} answered {status}")
        return FetchResult(
            requested_url=request.requested_url,
            sanitized_url=request.url,
            effective_url=effective_url,
            status_code=status,
            phase=request.options.phase,
            response_time=time.monotonic() - start_time,
        )


__all__ = ["RTSPTransport", "to_rtsp_url"]
