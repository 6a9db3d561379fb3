"""Vimeo oEmbed client used for lesson thumbnails and the oEmbed proxy."""

import re
from typing import Any, Dict, Optional

import httpx

from fxdojo.core.config import settings
from fxdojo.core.logging import get_logger

logger = get_logger(__name__)

VIMEO_URL_PATTERN = re.compile(
    r"^(?:https?://)?(?:www\.)?(?:player\.)?vimeo\.com/(?:video/)?(\d+)(?:[/?#].*)?$"
)


class VimeoError(Exception):
    """Raised when Vimeo cannot be reached or answers with an error."""


def extract_video_id(value: Optional[str]) -> Optional[str]:
    """Return the numeric Vimeo id in a bare id or a vimeo.com / player URL."""
    if not value:
        return None
    value = value.strip()
    if value.isdigit():
        return value
    match = VIMEO_URL_PATTERN.match(value)
    return match.group(1) if match else None


class VimeoClient:
    """Client for the public Vimeo oEmbed endpoint."""

    def __init__(
        self,
        oembed_url: Optional[str] = None,
        transport: Optional[httpx.BaseTransport] = None,
    ):
        self.oembed_url = oembed_url or settings.VIMEO_OEMBED_URL
        self.client = httpx.Client(timeout=10.0, transport=transport)

    def get_oembed(self, video_id: str) -> Dict[str, Any]:
        try:
            response = self.client.get(
                self.oembed_url,
                params={"url": f"https://vimeo.com/{video_id}"},
            )
            response.raise_for_status()
            return response.json()
        except (httpx.HTTPError, ValueError) as e:
            logger.warning("vimeo oembed request failed", video_id=video_id, error=str(e))
            raise VimeoError(str(e)) from e

    def get_thumbnail(self, video: Optional[str]) -> Optional[str]:
        """Thumbnail URL for a video id or URL; None when unavailable."""
        video_id = extract_video_id(video)
        if video_id is None:
            return None
        try:
            return self.get_oembed(video_id).get("thumbnail_url")
        except VimeoError:
            return None

    def close(self):
        self.client.close()


_vimeo_client: Optional[VimeoClient] = None


def get_vimeo_client() -> VimeoClient:
    global _vimeo_client
    if _vimeo_client is None:
        _vimeo_client = VimeoClient()
    return _vimeo_client
