"""
Core Data Models

This module contains the data structures shared by the checking engine:
parsed URL components, raw transport results and the final liveness verdict.
"""

from __future__ import annotations

from dataclasses import dataclass, field, fields
from datetime import datetime
from enum import Enum
from typing import Any, Dict, List, Optional, Tuple


class Protocol(Enum):
    """Transport protocol family a URL resolves to."""

    HTTP = "HTTP"
    FTP = "FTP"
    RTSP = "RTSP"
    MMS = "MMS"
    UNSUPPORTED = "UNSUPPORTED"


class Phase(Enum):
    """Request phase: metadata only, or the complete response body."""

    HEADER = "header"
    BODY = "body"


class LinkStatus(Enum):
    """Tri-state liveness classification."""

    ALIVE = "alive"
    DEAD = "dead"
    UNCERTAIN = "uncertain"


@dataclass
class NormalizedURL:
    """
    URL broken into its components.

    Every component is optional. Values are the text as it appeared in the
    input, escapes untouched; ``sanitize_url`` normalizes the escaping.
    """

    scheme: Optional[str] = None
    user: Optional[str] = None
    password: Optional[str] = None
    host: Optional[str] = None
    port: Optional[int] = None
    path: Optional[str] = None
    query: Optional[str] = None
    fragment: Optional[str] = None

    def to_dict(self) -> Dict[str, Any]:
        """Return only the components that are present."""
        return {
            f.name: getattr(self, f.name)
            for f in fields(self)
            if getattr(self, f.name) is not None
        }


@dataclass
class FetchResult:
    """Raw outcome of one transport request."""

    requested_url: str
    sanitized_url: str
    effective_url: str
    status_code: int = 0
    transport_error_code: int = 0
    transport_error_message: str = ""
    phase: Phase = Phase.HEADER
    response_time: float = 0.0
    timestamp: datetime = field(default_factory=datetime.now)

    def to_dict(self) -> Dict[str, Any]:
        """Convert to dictionary for serialization"""
        return {
            "requested_url": self.requested_url,
            "sanitized_url": self.sanitized_url,
            "effective_url": self.effective_url,
            "status_code": self.status_code,
            "transport_error_code": self.transport_error_code,
            "transport_error_message": self.transport_error_message,
            "phase": self.phase.value,
            "response_time": self.response_time,
            "timestamp": self.timestamp.isoformat(),
        }


@dataclass(frozen=True)
class Verdict:
    """Liveness verdict for one URL: Alive, Dead(reason) or Uncertain."""

    status: LinkStatus
    reason: Optional[str] = None

    @classmethod
    def alive(cls) -> "Verdict":
        return cls(LinkStatus.ALIVE)

    @classmethod
    def dead(cls, reason: str) -> "Verdict":
        return cls(LinkStatus.DEAD, reason)

    @classmethod
    def uncertain(cls, reason: Optional[str] = None) -> "Verdict":
        return cls(LinkStatus.UNCERTAIN, reason)

    @property
    def is_dead(self) -> Optional[bool]:
        """True (dead), False (alive) or None (not evaluable)."""
        if self.status is LinkStatus.UNCERTAIN:
            return None
        return self.status is LinkStatus.DEAD

    def __str__(self) -> str:
        if self.reason:
            return f"{self.status.value} ({self.reason})"
        return self.status.value


# A wave is an ordered list of (host, url) pairs with no repeated host
Wave = List[Tuple[Optional[str], str]]


__all__ = [
    "Protocol",
    "Phase",
    "LinkStatus",
    "NormalizedURL",
    "FetchResult",
    "Verdict",
    "Wave",
]
