"""
Liveness Classifier

Turns one FetchResult into a verdict. Rules are applied in a fixed order and
the first match wins; header-only results that are not conclusive come back
Uncertain so the caller can re-check them with a full-body request.
"""

from .data_models import FetchResult, Phase, Protocol, Verdict
from .url_normalizer import clean_url, get_domain_roots

# Status codes that mean "alive" for HTTP, RTSP and MMS
GOOD_HTTP_CODES = frozenset({
    100, 101, 102, 103,
    200, 201, 202, 203, 204, 205, 206, 207, 208, 226, 250,
    300, 301, 302, 303, 304, 305, 306, 307, 308,
})

# Reply codes that mean "alive" for FTP
GOOD_FTP_CODES = frozenset({
    100, 110, 120, 125, 150,
    200, 202, 211, 212, 213, 214, 215,
    220, 221, 225, 226, 227, 228, 229,
    230, 231, 232, 234, 250, 257,
    300, 331, 332, 350,
    600, 631, 633,
})

# Transport error codes that make a URL dead whatever the phase
FATAL_TRANSPORT_ERROR_CODES = frozenset({
    3, 5, 6, 7, 8, 10, 11, 12, 13, 19, 28, 31, 47,
    51, 52, 60, 61, 64, 68, 74, 83, 85, 86, 87,
})

ERROR_PAGE_MARKERS = ("/404.htm", "/404/")

REASON_RESPONSE_CODE = "RESPONSE CODE: {code}"
REASON_REDIRECT_TO_404 = "REDIRECT TO 404"
REASON_REDIRECT_TO_ROOT = "REDIRECT TO ROOT"
REASON_TRANSPORT_ERROR = "Curl Error {code}: {message}"
REASON_NO_RESPONSE = "NO RESPONSE FROM SERVER"
REASON_PROTOCOL_CODE = "{protocol} RESPONSE CODE: {code}"


def good_codes_for(protocol: Protocol) -> frozenset:
    if protocol is Protocol.FTP:
        return GOOD_FTP_CODES
    return GOOD_HTTP_CODES


def looks_like_error_page(key: str) -> bool:
    """Check a comparison key for the usual "not found" page names."""
    return any(marker in key for marker in ERROR_PAGE_MARKERS) or (
        "notfound" in key.lower()
    )


def is_redirect_to_root(requested_url: str, effective_url: str) -> bool:
    """A redirect happened and it landed on the requested site's homepage."""
    requested_key = clean_url(requested_url)
    effective_key = clean_url(effective_url)
    if effective_key == requested_key:
        return False
    return effective_key in get_domain_roots(requested_url)


def classify(result: FetchResult, protocol: Protocol) -> Verdict:
    """
    Classify one fetch result.

    Args:
        result: Transport outcome; its phase selects header-only or
            full-body rules
        protocol: Resolved protocol of the requested URL

    Returns:
        Alive, Dead with a reason, or Uncertain for an inconclusive
        header-only result
    """
    full = result.phase is Phase.BODY
    status = result.status_code
    effective_url = result.effective_url or result.sanitized_url
    effective_key = clean_url(effective_url)

    if 400 <= status < 600:
        if full:
            return Verdict.dead(REASON_RESPONSE_CODE.format(code=status))
        return Verdict.uncertain()

    if looks_like_error_page(effective_key):
        if full:
            return Verdict.dead(REASON_REDIRECT_TO_404)
        return Verdict.uncertain()

    if is_redirect_to_root(result.sanitized_url, effective_url):
        return Verdict.dead(REASON_REDIRECT_TO_ROOT)

    if result.transport_error_code in FATAL_TRANSPORT_ERROR_CODES:
        return Verdict.dead(
            REASON_TRANSPORT_ERROR.format(
                code=result.transport_error_code,
                message=result.transport_error_message,
            )
        )

    if status == 0:
        if full:
            return Verdict.dead(REASON_NO_RESPONSE)
        return Verdict.uncertain()

    if status not in good_codes_for(protocol):
        return Verdict.dead(
            REASON_PROTOCOL_CODE.format(protocol=protocol.value, code=status)
        )

    return Verdict.alive()


class LivenessClassifier:
    """Classifier bound to a protocol lookup for results."""

    def __init__(self, resolve_protocol):
        """
        Args:
            resolve_protocol: Callable mapping a URL to its Protocol
        """
        self.resolve_protocol = resolve_protocol

    def classify(self, result: FetchResult) -> Verdict:
        return classify(result, self.resolve_protocol(result.sanitized_url))


__all__ = [
    "GOOD_HTTP_CODES",
    "GOOD_FTP_CODES",
    "FATAL_TRANSPORT_ERROR_CODES",
    "classify",
    "good_codes_for",
    "looks_like_error_page",
    "is_redirect_to_root",
    "LivenessClassifier",
]
