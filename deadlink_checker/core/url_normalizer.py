"""
URL Normalizer

Parses arbitrary, possibly malformed URLs into components and rebuilds them
as request-ready, correctly escaped URLs. Also produces the comparison keys
used for redirect and redirect-to-root detection.

The escaping helpers mirror the two classic encoders:
- ``_urlencode``: form encoding, space becomes ``+`` and only ``-_.`` and
  alphanumerics are left alone
- ``_rawurlencode``: RFC 3986 encoding, ``-_.~`` and alphanumerics are left
  alone and space becomes ``%20``

Bytes that are not valid UTF-8 are carried through with ``surrogateescape``
so that sequences such as ``%F6`` survive a decode/encode round trip.
"""

import logging
import re
from typing import List, Optional, Union
from urllib.parse import quote, quote_plus, unquote_to_bytes

import idna

from ..utils.error_handler import URLParseError
from .data_models import NormalizedURL

logger = logging.getLogger(__name__)

# Default ports that are dropped when rebuilding a URL
DEFAULT_PORTS = {
    "http": 80,
    "https": 443,
    "ftp": 21,
    "rtsp": 554,
}

# Schemes whose URLs must carry a host
NETWORK_SCHEMES = {"http", "https", "ftp", "rtsp", "mms"}

# Characters that never need escaping in a path (RFC 3986 section 3.3)
_UNSAFE_PATH = re.compile(r"[^0-9a-zA-Z$\-_.+!*'(),~:/\[\]@;=%]")
# Same set for a query string, plus the argument separator
_UNSAFE_QUERY = re.compile(r"[^0-9a-zA-Z$\-_.+!*'(),~:/\[\]@;=%&]")
# RFC 3986 userinfo: unreserved, sub-delims, ":" and escapes
_UNSAFE_USERINFO = re.compile(r"[^0-9a-zA-Z\-._~!$&'()*+,;=:%]")

# A scheme separator that was itself percent-encoded
_ENCODED_SEPARATOR = re.compile(r"^[a-z0-9+\-.]*(%3A%2F%2F|%3A//|:%2F%2F)", re.I)
_ENCODED_HASH = re.compile(r"%23", re.I)

_SCHEME = re.compile(r"^([a-z][a-z0-9+\-.]*):", re.I)
_KNOWN_SCHEME_NO_SLASH = re.compile(r"^(https?|ftp|rtsp|mms):(?!/)", re.I)
_SINGLE_SLASH = re.compile(r"^([a-z][a-z0-9+\-.]*:)/(?!/)", re.I)

# Runs of text between URL delimiters
_BETWEEN_DELIMITERS = re.compile(r"[^:/@?&=#\[\]]+")

_CLEAN_PREFIX = re.compile(r"^(([a-z][a-z0-9+\-.]*:)?//)?(www\.)?", re.I)
_APEX_DOMAIN = re.compile(
    r"(?P<domain>[a-z0-9][a-z0-9\-]{1,63}\.[a-z.]{2,6})$", re.I
)


# ============================================================================
# Percent-encoding primitives
# ============================================================================


def _urldecode(value: str) -> str:
    """Decode ``%XX`` escapes and ``+`` as space."""
    raw = unquote_to_bytes(value.replace("+", " "))
    return raw.decode("utf-8", errors="surrogateescape")


def _rawurldecode(value: str) -> str:
    """Decode ``%XX`` escapes, leaving ``+`` alone."""
    return unquote_to_bytes(value).decode("utf-8", errors="surrogateescape")


def _urlencode(value: str) -> str:
    encoded = quote_plus(value, safe="", encoding="utf-8", errors="surrogateescape")
    return encoded.replace("~", "%7E")


def _rawurlencode(value: str) -> str:
    return quote(value, safe="", encoding="utf-8", errors="surrogateescape")


# ============================================================================
# Parsing
# ============================================================================


def _decode_separators(url: str) -> str:
    """
    Decode a URL whose scheme separator was percent-encoded.

    The fragment is split off first and any ``%23`` left in the remainder is
    double-escaped, so decoding never manufactures a new fragment marker.
    """
    if not _ENCODED_SEPARATOR.match(url):
        return url

    head, hash_mark, fragment = url.partition("#")
    head = _ENCODED_HASH.sub("%2523", head)
    decoded = _rawurldecode(head)
    return decoded + hash_mark + fragment


def _repair(url: str) -> str:
    """Coerce the common malformed shapes into ``scheme://rest`` form."""
    url = _decode_separators(url)

    # "://example.com"
    if url.startswith("://"):
        return "http" + url
    # "http:example.com"
    if _KNOWN_SCHEME_NO_SLASH.match(url):
        return _KNOWN_SCHEME_NO_SLASH.sub(r"\1://", url, count=1)
    # "https:/example.com"
    if _SINGLE_SLASH.match(url):
        return _SINGLE_SLASH.sub(r"\1//", url, count=1)
    # "//example.com" stays scheme-relative
    if url.startswith("//"):
        return url

    match = _SCHEME.match(url)
    if match:
        rest = url[match.end():]
        # "mailto:x" is opaque, "example.com:8080/x" is a host and port
        if rest.startswith("//") or not rest[:1].isdigit():
            return url

    return "http://" + url


def _protect(url: str) -> str:
    """Escape every run of text between delimiters."""
    return _BETWEEN_DELIMITERS.sub(
        lambda match: quote_plus(
            match.group(0), safe="", encoding="utf-8", errors="surrogateescape"
        ),
        url,
    )


def _restore(component: Optional[str]) -> Optional[str]:
    if component is None:
        return None
    return _urldecode(component)


def _split_authority(authority: str, url: str, parts: NormalizedURL) -> None:
    userinfo, at_sign, hostport = authority.rpartition("@")
    if at_sign:
        user, colon, password = userinfo.partition(":")
        parts.user = _restore(user)
        if colon:
            parts.password = _restore(password)

    port = ""
    if hostport.startswith("["):
        end = hostport.find("]")
        if end == -1:
            raise URLParseError("Unterminated IPv6 host", url)
        host = hostport[: end + 1]
        remainder = hostport[end + 1:]
        if remainder.startswith(":"):
            port = remainder[1:]
        elif remainder:
            raise URLParseError("Unexpected text after IPv6 host", url)
    elif hostport.count(":") == 1:
        host, _, port = hostport.partition(":")
    else:
        # Bare IPv6 literals keep all of their colons
        host = hostport

    parts.host = _restore(host) if host else None

    if port:
        port = _restore(port)
        if not port.isdigit() or int(port) > 65535:
            raise URLParseError(f"Invalid port: {port!r}", url)
        parts.port = int(port)


def parse_url(url: str) -> NormalizedURL:
    """
    Parse a URL into its components.

    Tolerates a missing scheme, a single slash after the scheme, a bare
    ``://`` prefix and fully percent-encoded scheme separators. Component
    values keep the escaping they had in the input.

    Args:
        url: Raw URL text

    Returns:
        NormalizedURL with the components that are present

    Raises:
        URLParseError: If the input has no recoverable URL structure
    """
    if not isinstance(url, str) or not url.strip():
        raise URLParseError("Empty URL", url)

    original = url
    url = _repair(url.strip())
    parts = NormalizedURL()

    match = _SCHEME.match(url)
    if match:
        parts.scheme = match.group(1)
        url = url[match.end():]

    protected = _protect(url)

    protected, hash_mark, fragment = protected.partition("#")
    if hash_mark:
        parts.fragment = _restore(fragment)
    protected, question_mark, query = protected.partition("?")
    if question_mark:
        parts.query = _restore(query)

    if protected.startswith("//"):
        authority, slash, path = protected[2:].partition("/")
        _split_authority(authority, original, parts)
        path = slash + path
    else:
        path = protected

    if path:
        parts.path = _restore(path)

    scheme = (parts.scheme or "").lower()
    if not parts.host and (not scheme or scheme in NETWORK_SCHEMES):
        raise URLParseError("URL has no host", original)

    return parts


def get_host(url: str) -> Optional[str]:
    """Return the lower-cased host of a URL, or None if it cannot be parsed."""
    try:
        host = parse_url(url).host
    except URLParseError:
        return None
    return host.lower() if host else None


# ============================================================================
# Sanitizing
# ============================================================================


def _encode_host(host: str) -> str:
    """Lower-case a host and convert internationalized names to ASCII."""
    if host.isascii():
        return host.lower()
    try:
        return idna.encode(host, uts46=True).decode("ascii")
    except idna.IDNAError as e:
        logger.debug(f"Could not IDN-encode host {host!r}: {e}")
        return host.lower()


def _encode_path(path: str) -> str:
    """Re-escape a path unless it is already made of safe characters."""
    body = path[1:] if path.startswith("/") else path
    if not _UNSAFE_PATH.search(body):
        return body

    # A literal "+" in a path is not an encoded space
    decoded = _urldecode(body.replace("+", "%2B"))
    return "/".join(_rawurlencode(segment) for segment in decoded.split("/"))


def _encode_userinfo(value: str) -> str:
    """Re-escape a user name or password unless it is already safe."""
    if not _UNSAFE_USERINFO.search(value):
        return value
    return _rawurlencode(_rawurldecode(value))


def _encode_query_value(value: str, preserve_query_encoding: bool) -> str:
    if preserve_query_encoding:
        return "%20".join(
            _urlencode(_urldecode(piece)) for piece in value.split("%20")
        )
    return _urlencode(_urldecode(value))


def _encode_query(query: str, preserve_query_encoding: bool) -> str:
    """Re-escape a query string unless it is already made of safe characters."""
    if not _UNSAFE_QUERY.search(query):
        return query

    arguments = []
    for argument in query.split("&"):
        # Only the first "=" separates key from value
        arguments.append(
            "=".join(
                _encode_query_value(piece, preserve_query_encoding)
                for piece in argument.split("=", 1)
            )
        )
    return "&".join(arguments)


def sanitize_url(
    url: Union[str, NormalizedURL],
    strip_fragment: bool = False,
    preserve_query_encoding: bool = False,
) -> str:
    """
    Rebuild a URL so the receiving service understands the request.

    Args:
        url: Raw URL text or already parsed components
        strip_fragment: Drop the fragment from the result
        preserve_query_encoding: Keep literal ``%20`` sequences in the query
            when the query has to be re-escaped

    Returns:
        Well-formed, percent-escaped absolute URL

    Raises:
        URLParseError: If a raw URL cannot be parsed
    """
    parts = parse_url(url) if isinstance(url, str) else url

    scheme = parts.scheme.lower() if parts.scheme else "https"
    result = scheme + "://"

    if parts.user is not None:
        result += _encode_userinfo(parts.user)
        if parts.password is not None:
            result += ":" + _encode_userinfo(parts.password)
        result += "@"

    if parts.host:
        result += _encode_host(parts.host)
        if parts.port is not None and DEFAULT_PORTS.get(scheme) != parts.port:
            result += f":{parts.port}"

    result += "/"
    if parts.path:
        result += _encode_path(parts.path)

    if parts.query is not None:
        result += "?" + _encode_query(parts.query, preserve_query_encoding)

    if parts.fragment is not None and not strip_fragment:
        result += "#" + parts.fragment

    return result


# ============================================================================
# Comparison keys
# ============================================================================


def _clean_once(url: str) -> str:
    url = _CLEAN_PREFIX.sub("", url, count=1)
    url = url.split("#", 1)[0]
    if url.endswith("/"):
        url = url[:-1]
    return url


def clean_url(url: str) -> str:
    """
    Produce the comparison key of a URL.

    Strips the scheme and ``//``, a leading ``www.``, the fragment and a
    trailing slash, repeating until nothing changes so the key is idempotent.
    """
    while True:
        cleaned = _clean_once(url)
        if cleaned == url:
            return cleaned
        url = cleaned


def get_domain_roots(url: str) -> List[str]:
    """
    Compile the comparison keys a "redirect to the homepage" could land on.

    Args:
        url: URL that was requested

    Returns:
        Host, apex domain and last-two-label forms, each with and without a
        trailing slash
    """
    try:
        host = parse_url(url).host
    except URLParseError:
        return []
    if not host:
        return []

    roots = [host, host + "/"]

    match = _APEX_DOMAIN.search(host)
    if match:
        roots.extend([match.group("domain"), match.group("domain") + "/"])

    labels = host.split(".")
    if len(labels) >= 3:
        apex = ".".join(labels[-2:])
        roots.extend([apex, apex + "/"])

    return list(dict.fromkeys(roots))


__all__ = [
    "DEFAULT_PORTS",
    "parse_url",
    "get_host",
    "sanitize_url",
    "clean_url",
    "get_domain_roots",
]
