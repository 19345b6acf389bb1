"""
FTP Transport

Checks ftp URLs with the standard library FTP client, run in a worker thread
so that a batch of FTP checks stays concurrent with the rest of the batch.

A header-only check logs in and asks for the size of a file, or changes into
a directory. A full-body check retrieves the file, or lists the directory,
and reports the final transfer reply.
"""

import asyncio
import ftplib
import logging
import socket
import time
from typing import Optional, Tuple
from urllib.parse import unquote

from python_socks import ProxyError as SocksProxyError
from python_socks.sync import Proxy

from ..data_models import FetchResult
from ..url_normalizer import parse_url
from ...utils.error_handler import URLParseError
from .base import Transport, TransportErrorCode, TransportRequest, error_result

logger = logging.getLogger(__name__)

DEFAULT_FTP_PORT = 21

# Credentials curl uses when a header-only request carries none
HEADER_ONLY_CREDENTIALS = ("anonymous", "ftp@example.com")

# SIZE is an extension; these replies mean the server does not implement it
_COMMAND_NOT_IMPLEMENTED = (500, 501, 502, 504)


def reply_code(reply: str) -> int:
    """Extract the three digit code from an FTP reply, 0 if there is none."""
    text = str(reply).strip()
    if len(text) >= 3 and text[:3].isdigit():
        return int(text[:3])
    return 0


def _decoded(component: Optional[str]) -> Optional[str]:
    return unquote(component) if component is not None else None


class _ProxiedFTP(ftplib.FTP):
    """FTP client whose control and data connections go through SOCKS5."""

    def __init__(self, proxy_url: str, timeout: float):
        super().__init__(timeout=timeout)
        self._proxy = Proxy.from_url(proxy_url, rdns=True)

    def connect(self, host="", port=0, timeout=-999, source_address=None):
        if host:
            self.host = host
        if port > 0:
            self.port = port
        if timeout != -999:
            self.timeout = timeout
        self.sock = self._proxy.connect(
            dest_host=self.host, dest_port=self.port, timeout=self.timeout
        )
        self.af = self.sock.family
        self.file = self.sock.makefile("r", encoding=self.encoding)
        self.welcome = self._get_welcome()
        return self.welcome

    def _get_welcome(self):
        resp = self.getresp()
        if resp[0] != "2":
            raise ftplib.error_reply(resp)
        return resp

    def ntransfercmd(self, cmd, rest=None):
        # The PASV address is only meaningful on the far side of the proxy
        _, port = self.makepasv()
        conn = self._proxy.connect(
            dest_host=self.host, dest_port=port, timeout=self.timeout
        )
        size = None
        try:
            if rest is not None:
                self.sendcmd(f"REST {rest}")
            resp = self.sendcmd(cmd)
            if resp[0] == "2":
                resp = self.getresp()
            if resp[0] != "1":
                raise ftplib.error_reply(resp)
        except BaseException:
            conn.close()
            raise
        if resp[:3] == "150":
            size = ftplib.parse150(resp)
        return conn, size


class FTPTransport(Transport):
    """Transport for ftp URLs."""

    name = "ftp"

    async def fetch(self, request: TransportRequest) -> FetchResult:
        return await asyncio.to_thread(self._fetch_sync, request)

    def _connect(self, host: str, port: int, request: TransportRequest) -> ftplib.FTP:
        options = request.options
        if options.proxy_url:
            ftp = _ProxiedFTP(options.proxy_url, options.timeout)
        else:
            ftp = ftplib.FTP(timeout=options.timeout)
        ftp.connect(host, port)
        ftp.set_pasv(True)
        return ftp

    def _credentials(self, user: Optional[str], password: Optional[str],
                     request: TransportRequest) -> Tuple[str, str]:
        if user:
            return user, password or ""
        return request.options.ftp_credentials or HEADER_ONLY_CREDENTIALS

    def _check_path(self, ftp: ftplib.FTP, path: str, header_only: bool) -> int:
        """Run the commands for the requested phase and return the reply code."""
        is_directory = not path or path.endswith("/")

        if is_directory:
            if header_only:
                return reply_code(ftp.cwd(path or "/"))
            if path:
                ftp.cwd(path)
            return reply_code(ftp.retrlines("LIST", lambda line: None))

        if header_only:
            try:
                return reply_code(ftp.sendcmd(f"SIZE {path}"))
            except ftplib.error_perm as e:
                if reply_code(e) in _COMMAND_NOT_IMPLEMENTED:
                    # Size unknown: leave the verdict to the full-body check
                    return 0
                raise

        ftp.voidcmd("TYPE I")
        return reply_code(ftp.retrbinary(f"RETR {path}", lambda block: None))

    def _fetch_sync(self, request: TransportRequest) -> FetchResult:
        start_time = time.monotonic()

        def failed(code: TransportErrorCode, message: str, status: int = 0) -> FetchResult:
            return error_result(
                request,
                code,
                message,
                status_code=status,
                response_time=time.monotonic() - start_time,
            )

        try:
            parts = parse_url(request.url)
        except URLParseError as e:
            return failed(TransportErrorCode.URL_MALFORMAT, str(e))

        host = (parts.host or "").strip("[]")
        port = parts.port or DEFAULT_FTP_PORT
        # FTP commands carry the decoded names, not the URL escapes
        user, password = self._credentials(
            _decoded(parts.user), _decoded(parts.password), request
        )
        path = unquote(parts.path or "")

        ftp = None
        try:
            try:
                ftp = self._connect(host, port, request)
            except socket.gaierror as e:
                return failed(TransportErrorCode.COULDNT_RESOLVE_HOST, str(e))
            except SocksProxyError as e:
                return failed(TransportErrorCode.COULDNT_CONNECT, str(e))

            try:
                ftp.login(user, password)
            except ftplib.error_perm as e:
                return failed(TransportErrorCode.LOGIN_DENIED, str(e), reply_code(e))

            status = self._check_path(ftp, path, request.options.header_only)

        except (socket.timeout, TimeoutError) as e:
            return failed(TransportErrorCode.OPERATION_TIMEDOUT, str(e) or "timed out")
        except ftplib.error_perm as e:
            code = reply_code(e)
            error_code = (
                TransportErrorCode.REMOTE_FILE_NOT_FOUND
                if code == 550
                else TransportErrorCode.FTP_COULDNT_RETR_FILE
            )
            return failed(error_code, str(e), code)
        except ftplib.error_temp as e:
            return failed(TransportErrorCode.FTP_COULDNT_RETR_FILE, str(e), reply_code(e))
        except (ftplib.error_reply, ftplib.error_proto) as e:
            return failed(TransportErrorCode.WEIRD_SERVER_REPLY, str(e), reply_code(e))
        except EOFError as e:
            return failed(TransportErrorCode.GOT_NOTHING, str(e) or "connection closed")
        except (ConnectionRefusedError, SocksProxyError) as e:
            return failed(TransportErrorCode.COULDNT_CONNECT, str(e))
        except OSError as e:
            if ftp is None:
                return failed(TransportErrorCode.COULDNT_CONNECT, str(e))
            return failed(TransportErrorCode.RECV_ERROR, str(e))
        finally:
            if ftp is not None:
                try:
                    ftp.quit()
                except (OSError, EOFError, ftplib.Error):
                    ftp.close()

        logger.debug(f"FTP {request.url} answered {status}")
        return FetchResult(
            requested_url=request.requested_url,
            sanitized_url=request.url,
            effective_url=request.url,
            status_code=status,
            phase=request.options.phase,
            response_time=time.monotonic() - start_time,
        )


__all__ = ["FTPTransport", "reply_code"]
