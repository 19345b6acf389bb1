"""
Pytest configuration and shared fixtures for dead link checker tests.

This module provides common fixtures that are shared across multiple test
modules. Every checker built here runs against mocked transports.
"""

from typing import Dict, Optional

import httpx
import pytest

from deadlink_checker.config.pydantic_config import CheckerConfig
from deadlink_checker.core.checker import DeadLinkChecker
from deadlink_checker.core.data_models import Protocol
from deadlink_checker.core.proxy_probe import ProxyContext
from deadlink_checker.core.transports import HTTPTransport, Transport
from tests.fixtures.fake_transports import FakeTransport, RoutedHandler, make_result

# ============================================================================
# Pytest Configuration
# ============================================================================


def pytest_configure(config):
    """Register custom markers."""
    config.addinivalue_line(
        "markers", "network: test reaches the internet (needs --runnetwork)"
    )


def pytest_addoption(parser):
    """Add custom command line options."""
    parser.addoption(
        "--runnetwork",
        action="store_true",
        default=False,
        help="run network tests",
    )


def pytest_runtest_setup(item):
    """Skip network tests unless requested."""
    if "network" in item.keywords and not item.config.getoption("--runnetwork"):
        pytest.skip("need --runnetwork option to run")


# ============================================================================
# Fixtures
# ============================================================================


@pytest.fixture
def offline_proxy() -> ProxyContext:
    """Proxy context whose probe already failed."""
    return ProxyContext(ready=False)


@pytest.fixture
def ready_proxy() -> ProxyContext:
    """Proxy context whose probe already succeeded."""
    return ProxyContext(ready=True)


@pytest.fixture
def config() -> CheckerConfig:
    """Configuration without the politeness delay."""
    return CheckerConfig(wave_delay=0.0)


@pytest.fixture
def make_checker(config, offline_proxy):
    """Factory building a checker over a mocked HTTP stack and fake transports."""

    def factory(
        handler: Optional[RoutedHandler] = None,
        ftp: Optional[FakeTransport] = None,
        rtsp: Optional[FakeTransport] = None,
        proxy_context: Optional[ProxyContext] = None,
        **overrides,
    ) -> DeadLinkChecker:
        handler = handler or RoutedHandler()
        rtsp = rtsp or FakeTransport(lambda request: make_result(request, 200))
        transports: Dict[Protocol, Transport] = {
            Protocol.HTTP: HTTPTransport(transport=httpx.MockTransport(handler)),
            Protocol.FTP: ftp or FakeTransport(lambda request: make_result(request, 226)),
            Protocol.RTSP: rtsp,
            Protocol.MMS: rtsp,
        }
        return DeadLinkChecker(
            config,
            proxy_context=proxy_context or offline_proxy,
            transports=transports,
            **overrides,
        )

    return factory
