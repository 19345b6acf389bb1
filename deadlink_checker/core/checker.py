"""
Dead Link Checker

Public entry point of the checking engine. URLs are spread into host-distinct
waves, each wave is checked with header-only requests, and every inconclusive
result is checked again with a full-body request of its effective URL.
"""

import asyncio
import logging
from typing import Dict, Iterable, List, Optional, Tuple

import httpx

from ..config.pydantic_config import CheckerConfig
from ..utils.error_handler import URLParseError
from . import url_normalizer
from .classifier import LivenessClassifier
from .data_models import FetchResult, LinkStatus, NormalizedURL, Phase, Protocol, Verdict
from .fetch_engine import FetchEngine
from .protocol import ProtocolResolver, resolve_scheme
from .proxy_probe import ProxyContext, get_default_proxy_context
from .scheduler import DomainScheduler
from .transports import Transport

logger = logging.getLogger(__name__)

REASON_INVALID_URL = "INVALID URL: {message}"


def _protocol_of(url: str) -> Protocol:
    try:
        return resolve_scheme(url_normalizer.parse_url(url))
    except URLParseError:
        return Protocol.UNSUPPORTED


class DeadLinkChecker:
    """
    Checks batches of URLs for liveness.

    Results are keyed by the exact strings the caller passed in. Errors and
    request details describe the most recent call only.
    """

    def __init__(
        self,
        config: Optional[CheckerConfig] = None,
        proxy_context: Optional[ProxyContext] = None,
        transports: Optional[Dict[Protocol, Transport]] = None,
        http_transport: Optional[httpx.AsyncBaseTransport] = None,
        **overrides,
    ):
        """
        Initialize the checker.

        Args:
            config: Checker configuration; defaults are used when omitted
            proxy_context: Proxy readiness cell; the process-wide one if omitted
            transports: Transport per protocol, replacing the defaults
            http_transport: httpx transport for the default HTTP transport
            **overrides: Individual CheckerConfig fields to override
        """
        config = config or CheckerConfig()
        if overrides:
            config = CheckerConfig(**{**config.model_dump(), **overrides})
        self.config = config

        self.proxy_context = proxy_context or get_default_proxy_context()
        self.proxy_context.ensure_probed(
            config.socks5_host,
            config.effective_socks5_port,
            timeout=config.header_timeout,
            user_agent=config.effective_user_agent,
        )

        self.resolver = ProtocolResolver(self.proxy_context)
        self.scheduler = DomainScheduler(queued_testing=config.queued_testing)
        self.classifier = LivenessClassifier(_protocol_of)
        self.fetch_engine = FetchEngine(
            config, self.resolver, transports=transports, http_transport=http_transport
        )

        self._errors: Dict[str, str] = {}
        self._details: Dict[str, FetchResult] = {}

    # ------------------------------------------------------------------
    # Async API
    # ------------------------------------------------------------------

    async def acheck_links(self, urls: Iterable[str]) -> Dict[str, Verdict]:
        """
        Check a batch of URLs.

        Args:
            urls: URLs to check; duplicates are checked once

        Returns:
            Verdict for every input URL

        Raises:
            TransportUnavailableError: If the transport layer cannot be used
        """
        urls = list(urls)
        self._errors = {}
        self._details = {}
        verdicts: Dict[str, Verdict] = {}

        unique = list(dict.fromkeys(urls))
        waves = self.scheduler.schedule(unique)
        logger.info(f"Checking {len(unique)} URLs in {len(waves)} waves")

        for index, wave in enumerate(waves):
            if index > 0 and self.config.wave_delay > 0:
                await asyncio.sleep(self.config.wave_delay)
            await self._check_wave([url for _, url in wave], verdicts)

        dead = sum(1 for v in verdicts.values() if v.status is LinkStatus.DEAD)
        logger.info(f"Checked {len(unique)} URLs: {dead} dead")
        return {url: verdicts[url] for url in urls}

    async def aare_links_dead(self, urls: Iterable[str]) -> Dict[str, Optional[bool]]:
        """Async variant of ``are_links_dead``."""
        verdicts = await self.acheck_links(urls)
        return {url: verdict.is_dead for url, verdict in verdicts.items()}

    async def _check_wave(self, urls: List[str], verdicts: Dict[str, Verdict]) -> None:
        header_batch = await self.fetch_engine.fetch_batch(
            [(url, url) for url in urls], Phase.HEADER
        )

        retry: List[Tuple[str, str]] = []
        for url in urls:
            if url in header_batch.invalid:
                self._mark_invalid(url, header_batch.invalid[url], verdicts)
                continue
            if url in header_batch.unsupported:
                verdicts[url] = Verdict.uncertain()
                continue

            result = header_batch.results[url]
            self._details[url] = result
            verdict = self.classifier.classify(result)
            if verdict.status is LinkStatus.UNCERTAIN:
                retry.append((url, result.effective_url or result.sanitized_url))
            else:
                verdicts[url] = verdict

        if not retry:
            return

        logger.debug(f"Re-checking {len(retry)} URLs with full-body requests")
        body_batch = await self.fetch_engine.fetch_batch(retry, Phase.BODY)

        for url, _ in retry:
            if url in body_batch.invalid:
                self._mark_invalid(url, body_batch.invalid[url], verdicts)
                continue
            if url in body_batch.unsupported:
                verdicts[url] = Verdict.uncertain()
                continue

            result = body_batch.results[url]
            self._details[url] = result
            verdict = self.classifier.classify(result)
            verdicts[url] = verdict
            if verdict.status is LinkStatus.DEAD:
                self._errors[url] = verdict.reason

    def _mark_invalid(self, url: str, message: str, verdicts: Dict[str, Verdict]) -> None:
        verdict = Verdict.dead(REASON_INVALID_URL.format(message=message))
        verdicts[url] = verdict
        self._errors[url] = verdict.reason

    # ------------------------------------------------------------------
    # Sync API
    # ------------------------------------------------------------------

    def check_links(self, urls: Iterable[str]) -> Dict[str, Verdict]:
        """Check a batch of URLs and return a Verdict per input URL."""
        return asyncio.run(self.acheck_links(urls))

    def are_links_dead(self, urls: Iterable[str]) -> Dict[str, Optional[bool]]:
        """
        Check a batch of URLs.

        Returns:
            True (dead), False (alive) or None (not evaluable) per input URL
        """
        return asyncio.run(self.aare_links_dead(urls))

    def is_link_dead(self, url: str) -> Optional[bool]:
        """Check a single URL."""
        return self.are_links_dead([url])[url]

    def get_errors(self) -> Dict[str, str]:
        """Reasons for URLs found dead by the last call."""
        return dict(self._errors)

    def get_request_details(self) -> Dict[str, FetchResult]:
        """Final transport result per URL of the last call."""
        return dict(self._details)

    def is_proxy_ready(self) -> bool:
        return self.proxy_context.ready

    # ------------------------------------------------------------------
    # URL helpers
    # ------------------------------------------------------------------

    @staticmethod
    def parse_url(url: str) -> NormalizedURL:
        return url_normalizer.parse_url(url)

    @staticmethod
    def sanitize_url(url, strip_fragment: bool = False,
                     preserve_query_encoding: bool = False) -> str:
        return url_normalizer.sanitize_url(
            url,
            strip_fragment=strip_fragment,
            preserve_query_encoding=preserve_query_encoding,
        )

    @staticmethod
    def clean_url(url: str) -> str:
        return url_normalizer.clean_url(url)

    @staticmethod
    def get_domain_roots(url: str) -> List[str]:
        return url_normalizer.get_domain_roots(url)


__all__ = ["DeadLinkChecker"]
