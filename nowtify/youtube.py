"""YouTube Data API v3 search — display title → first video id."""
import logging
from typing import Optional

import httpx

from .config import HTTP_TIMEOUT, YOUTUBE_API_KEY, YOUTUBE_QUERY_SUFFIX, YOUTUBE_SEARCH_URL
from .errors import log_error

logger = logging.getLogger(__name__)

VIDEO_KIND = "youtube#video"


class YouTubeSearch:
    def __init__(
        self,
        api_key: str = YOUTUBE_API_KEY,
        query_suffix: str = YOUTUBE_QUERY_SUFFIX,
        timeout: float = HTTP_TIMEOUT,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ):
        self.api_key = api_key
        self.query_suffix = query_suffix
        self.timeout = timeout
        self._transport = transport

    @property
    def configured(self) -> bool:
        return bool(self.api_key)

    async def search(self, query: str) -> Optional[str]:
        """Return the first video id for query, or None. Never raises."""
        if not self.api_key:
            logger.warning("YOUTUBE_API_KEY missing — can't search for %r", query)
            return None

        params = {
            "part": "snippet",
            "q": f"{query}{self.query_suffix}",
            "type": "video",
            "maxResults": 1,
            "key": self.api_key,
        }

        try:
            async with httpx.AsyncClient(timeout=self.timeout, transport=self._transport) as client:
                r = await client.get(YOUTUBE_SEARCH_URL, params=params)
                data = r.json()
        except httpx.HTTPError as e:
            log_error("youtube_search", query, raw=f"YouTube request failed: {e}")
            return None
        except ValueError as e:
            log_error("youtube_search", query, raw=f"YouTube returned invalid JSON: {e}")
            return None

        if r.status_code != 200:
            # Quota exhaustion, bad key, malformed request
            err = data.get("error") if isinstance(data, dict) else None
            message = err.get("message", "") if isinstance(err, dict) else str(err or "")
            log_error("youtube_search", query, raw=f"YouTube HTTP {r.status_code}: {message}")
            return None

        return first_video_id(data)


def first_video_id(data) -> Optional[str]:
    """Pick the first item of kind youtube#video from a search response."""
    if not isinstance(data, dict):
        return None
    for item in data.get("items") or []:
        ident = item.get("id") if isinstance(item, dict) else None
        if isinstance(ident, dict) and ident.get("kind") == VIDEO_KIND:
            return ident.get("videoId") or None
    return None
