"""
Browser Simulator Module

Provides realistic request headers so that servers answer the checker the
way they would answer a person. Web requests look like a desktop browser,
streaming requests (RTSP/MMS) look like a media player.
"""

from dataclasses import dataclass
from typing import Dict, Optional

# Accept-Encoding is only sent when the full body is requested
COMPRESSED_ENCODINGS = "gzip, deflate, br"

MEDIA_PLAYER_USER_AGENT = "VLC/3.0.20 LibVLC/3.0.20"


@dataclass(frozen=True)
class BrowserProfile:
    """Browser profile with headers and capabilities"""

    user_agent: str
    accept: str
    accept_language: str
    accept_charset: Optional[str] = None
    cache_control: Optional[str] = "max-age=0"
    keep_alive: Optional[str] = "300"


DESKTOP_PROFILE = BrowserProfile(
    user_agent=(
        "Mozilla/5.0 (Windows NT 10.0; Win64; x64) AppleWebKit/537.36 "
        "(KHTML, like Gecko) Chrome/120.0.0.0 Safari/537.36"
    ),
    accept=(
        "text/html,application/xhtml+xml,application/xml;q=0.9,"
        "text/plain;q=0.8,image/avif,image/webp,image/png,*/*;q=0.5"
    ),
    accept_language="en-US,en;q=0.5",
    accept_charset="ISO-8859-1,utf-8;q=0.7,*;q=0.7",
)

MEDIA_PLAYER_PROFILE = BrowserProfile(
    user_agent=MEDIA_PLAYER_USER_AGENT,
    accept="application/sdp",
    accept_language="en-US,en;q=0.5",
    cache_control=None,
    keep_alive=None,
)


class BrowserSimulator:
    """Builds header sets for web and streaming requests"""

    def __init__(self, user_agent: Optional[str] = None):
        """
        Initialize browser simulator.

        Args:
            user_agent: Overrides the desktop browser User-Agent
        """
        self.user_agent = user_agent

    def get_profile(self, media: bool = False) -> BrowserProfile:
        if media:
            return MEDIA_PLAYER_PROFILE
        return DESKTOP_PROFILE

    def get_user_agent(self, media: bool = False) -> str:
        if media:
            return MEDIA_PLAYER_PROFILE.user_agent
        return self.user_agent or DESKTOP_PROFILE.user_agent

    def get_headers(self, media: bool = False, compressed: bool = False) -> Dict[str, str]:
        """
        Get request headers.

        Args:
            media: Use the media player profile (RTSP/MMS)
            compressed: Advertise gzip/deflate/br support

        Returns:
            Dictionary of headers
        """
        profile = self.get_profile(media)

        headers = {
            "User-Agent": self.get_user_agent(media),
            "Accept": profile.accept,
            "Accept-Language": profile.accept_language,
        }
        if profile.accept_charset:
            headers["Accept-Charset"] = profile.accept_charset
        if profile.cache_control:
            headers["Cache-Control"] = profile.cache_control
        if profile.keep_alive:
            headers["Connection"] = "keep-alive"
            headers["Keep-Alive"] = profile.keep_alive
        if compressed:
            headers["Accept-Encoding"] = COMPRESSED_ENCODINGS
        elif not media:
            headers["Accept-Encoding"] = "identity"

        return headers


__all__ = [
    "BrowserProfile",
    "BrowserSimulator",
    "DESKTOP_PROFILE",
    "MEDIA_PLAYER_PROFILE",
    "MEDIA_PLAYER_USER_AGENT",
    "COMPRESSED_ENCODINGS",
]
