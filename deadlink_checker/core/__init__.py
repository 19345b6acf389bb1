"""
Core checking engine.

Submodules are imported directly; only the shared data models are exposed
here.
"""

from .data_models import (
    FetchResult,
    LinkStatus,
    NormalizedURL,
    Phase,
    Protocol,
    Verdict,
)

__all__ = [
    "FetchResult",
    "LinkStatus",
    "NormalizedURL",
    "Phase",
    "Protocol",
    "Verdict",
]
