"""
Fetch Engine

Dispatches one batch of requests concurrently, each through the transport of
its protocol, and collects exactly one FetchResult per dispatched URL.
"""

import asyncio
import logging
import time
from dataclasses import dataclass, field
from typing import Dict, List, Optional, Sequence, Tuple

import httpx

from ..config.pydantic_config import CheckerConfig
from ..utils.error_handler import TransportUnavailableError, URLParseError
from .data_models import FetchResult, Phase, Protocol
from .protocol import ProtocolResolver
from .request_options import build_request_options
from .transports import (
    Transport,
    TransportErrorCode,
    TransportRequest,
    default_transports,
    error_result,
)
from .url_normalizer import parse_url, sanitize_url

logger = logging.getLogger(__name__)


@dataclass
class BatchFetch:
    """
    Outcome of one batch.

    Attributes:
        results: FetchResult per dispatched key
        unsupported: Keys that were never dispatched because their protocol
            is unsupported
        invalid: Parse failure message per key whose URL could not be parsed
        processing_time: Wall-clock duration of the batch in seconds
    """

    results: Dict[str, FetchResult] = field(default_factory=dict)
    unsupported: List[str] = field(default_factory=list)
    invalid: Dict[str, str] = field(default_factory=dict)
    processing_time: float = 0.0


class FetchEngine:
    """Concurrent batch fetcher over the protocol transports."""

    def __init__(
        self,
        config: CheckerConfig,
        resolver: ProtocolResolver,
        transports: Optional[Dict[Protocol, Transport]] = None,
        http_transport: Optional[httpx.AsyncBaseTransport] = None,
    ):
        """
        Initialize the fetch engine.

        Args:
            config: Checker configuration
            resolver: Protocol resolver aware of proxy readiness
            transports: Transport per protocol, replacing the defaults
            http_transport: httpx transport for the default HTTP transport
        """
        self.config = config
        self.resolver = resolver
        self.transports = transports or default_transports(
            http_transport, max_connections=config.max_concurrent_requests
        )
        self._detail_level = logging.INFO if config.verbose else logging.DEBUG

    def _prepare(
        self, key: str, url: str, phase: Phase, batch: BatchFetch
    ) -> Optional[Tuple[Transport, TransportRequest]]:
        """Resolve, sanitize and build options for one URL."""
        try:
            parts = parse_url(url)
            protocol = self.resolver.resolve(parts)
            if protocol is Protocol.UNSUPPORTED:
                logger.log(self._detail_level, f"Skipping unsupported URL: {url}")
                batch.unsupported.append(key)
                return None
            sanitized = sanitize_url(
                parts,
                strip_fragment=True,
                preserve_query_encoding=phase is Phase.BODY,
            )
        except URLParseError as e:
            logger.warning(f"Could not parse URL {url!r}: {e}")
            batch.invalid[key] = str(e)
            return None

        transport = self.transports.get(protocol)
        if transport is None:
            batch.unsupported.append(key)
            return None

        options = build_request_options(
            protocol, phase, self.resolver.is_proxy_eligible(parts), self.config
        )
        return transport, TransportRequest(key, sanitized, options)

    async def fetch_batch(
        self, items: Sequence[Tuple[str, str]], phase: Phase
    ) -> BatchFetch:
        """
        Fetch a batch of URLs concurrently.

        Args:
            items: (key, url) pairs; the key identifies the result and the url
                is what gets requested
            phase: Header-only or full-body

        Returns:
            BatchFetch with one result per dispatched key

        Raises:
            TransportUnavailableError: If a transport cannot be initialized
        """
        start_time = time.time()
        batch = BatchFetch()

        prepared = []
        for key, url in items:
            entry = self._prepare(key, url, phase, batch)
            if entry is not None:
                prepared.append(entry)

        if not prepared:
            return batch

        logger.debug(f"Dispatching {len(prepared)} {phase.value} requests")

        used = list({id(t): t for t, _ in prepared}.values())
        try:
            for transport in used:
                await transport.open()

            semaphore = asyncio.Semaphore(
                min(self.config.max_concurrent_requests, len(prepared))
            )

            async def fetch_with_semaphore(transport, request):
                async with semaphore:
                    return await transport.fetch(request)

            outcomes = await asyncio.gather(
                *(fetch_with_semaphore(t, r) for t, r in prepared),
                return_exceptions=True,
            )
        finally:
            for transport in used:
                await transport.close()

        for (transport, request), outcome in zip(prepared, outcomes):
            if isinstance(outcome, TransportUnavailableError):
                raise outcome
            if isinstance(outcome, BaseException):
                logger.error(
                    f"{transport.name} transport failed on {request.url}: {outcome}"
                )
                outcome = error_result(
                    request, TransportErrorCode.OK, str(outcome) or repr(outcome)
                )
            batch.results[request.requested_url] = outcome
            self._log_detail(outcome)

        batch.processing_time = time.time() - start_time
        logger.debug(
            f"Batch of {len(prepared)} {phase.value} requests completed "
            f"in {batch.processing_time:.2f}s"
        )
        return batch

    def _log_detail(self, result: FetchResult) -> None:
        if result.transport_error_code:
            logger.log(
                self._detail_level,
                f"{result.sanitized_url} -> error {result.transport_error_code}: "
                f"{result.transport_error_message}",
            )
        else:
            logger.log(
                self._detail_level,
                f"{result.sanitized_url} -> {result.status_code} "
                f"({result.effective_url}, {result.response_time:.2f}s)",
            )


__all__ = ["BatchFetch", "FetchEngine"]
