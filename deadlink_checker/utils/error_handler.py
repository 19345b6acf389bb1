"""
Exception Hierarchy for the Dead Link Checker

All custom exceptions for the project are defined here. Per-URL problems are
never raised out of a batch check; they become verdicts. Only failures that
make an entire batch impossible propagate to the caller.
"""

from typing import Optional


# ============================================================================
# Base
# ============================================================================


class DeadLinkCheckerError(Exception):
    """Base exception for all dead link checker errors."""

    pass


# ============================================================================
# Validation Errors
# ============================================================================


class ValidationError(DeadLinkCheckerError):
    """General validation errors."""

    pass


class URLParseError(ValidationError):
    """Raised when a URL has no recoverable structure."""

    def __init__(self, message: str, url: Optional[str] = None):
        self.url = url
        super().__init__(message)


# ============================================================================
# Configuration Errors
# ============================================================================


class ConfigurationError(DeadLinkCheckerError):
    """Configuration-related errors."""

    pass


# ============================================================================
# Network Errors
# ============================================================================


class NetworkError(DeadLinkCheckerError):
    """Network/transport related errors."""

    pass


class TransportUnavailableError(NetworkError):
    """The transport layer could not be initialized for a batch."""

    pass


__all__ = [
    "DeadLinkCheckerError",
    "ValidationError",
    "URLParseError",
    "ConfigurationError",
    "NetworkError",
    "TransportUnavailableError",
]
