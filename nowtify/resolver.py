"""Reference resolver — cache first, live YouTube search on a miss."""
import asyncio
import logging
from typing import Optional

from .cache import VideoCache
from .youtube import YouTubeSearch

logger = logging.getLogger(__name__)


class VideoResolver:
    def __init__(self, search: Optional[YouTubeSearch] = None, cache: Optional[VideoCache] = None):
        """Either collaborator may be None; a missing one never produces a hit."""
        self.search = search
        self.cache = cache
        self._writes: set[asyncio.Task] = set()

    async def resolve(self, title: str, track_id: str) -> Optional[str]:
        """Return a video id for the track, or None if nothing playable was found."""
        if self.cache is not None and track_id:
            cached = await self._cache_get(track_id)
            if cached:
                logger.info("Cache hit: %s → %s", title, cached)
                return cached

        if self.search is None:
            return None

        logger.info("Searching YouTube for %r", title)
        video_id = await self.search.search(title)
        if not video_id:
            logger.info("No video found for %r", title)
            return None

        if self.cache is not None and track_id:
            # Fire-and-forget: the load command doesn't wait on the write
            task = asyncio.create_task(self._cache_put(track_id, title, video_id))
            self._writes.add(task)
            task.add_done_callback(self._writes.discard)
        return video_id

    async def flush(self):
        """Wait for pending cache writes (shutdown, tests)."""
        if self._writes:
            await asyncio.gather(*self._writes, return_exceptions=True)

    async def _cache_get(self, track_id: str) -> Optional[str]:
        try:
            return await self.cache.get(track_id)
        except Exception as e:
            logger.warning("Cache lookup failed for %s: %s", track_id, e)
            return None

    async def _cache_put(self, track_id: str, title: str, video_id: str) -> bool:
        try:
            return await self.cache.put(track_id, title, video_id)
        except Exception as e:
            logger.warning("Cache write failed for %s: %s", track_id, e)
            return False
