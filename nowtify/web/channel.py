"""SyncChannel — fan-out of engine commands to connected viewers.

Every viewer owns a bounded queue of (event, data) tuples. Commands are
only meaningful as "latest state", so a viewer that falls behind loses its
oldest queued command rather than blocking the engine or being cut off.
"""
import asyncio
import logging
from dataclasses import dataclass
from typing import Any

logger = logging.getLogger(__name__)


@dataclass
class _Viewer:
    queue: asyncio.Queue
    dropped: int = 0
    lagging: bool = False


class SyncChannel:
    def __init__(self, maxsize: int = 50):
        self.maxsize = maxsize
        self._viewers: dict[str, _Viewer] = {}

    def subscribe(self, viewer_id: str) -> asyncio.Queue:
        """Register a viewer and return its queue. Nothing sent earlier is replayed."""
        viewer = _Viewer(asyncio.Queue(maxsize=self.maxsize))
        self._viewers[viewer_id] = viewer
        return viewer.queue

    def unsubscribe(self, viewer_id: str):
        viewer = self._viewers.pop(viewer_id, None)
        if viewer is not None and viewer.dropped:
            logger.info("Viewer %s left after missing %d commands", viewer_id, viewer.dropped)

    @property
    def viewer_count(self) -> int:
        return len(self._viewers)

    def dropped(self, viewer_id: str) -> int:
        viewer = self._viewers.get(viewer_id)
        return viewer.dropped if viewer else 0

    async def broadcast(self, event: str, data: Any) -> int:
        """Queue a command for every viewer. Returns how many viewers it reached."""
        for viewer_id, viewer in self._viewers.items():
            if viewer.queue.full():
                viewer.queue.get_nowait()
                viewer.dropped += 1
                if not viewer.lagging:
                    viewer.lagging = True
                    logger.warning("Viewer %s is falling behind; dropping its oldest commands", viewer_id)
            elif viewer.lagging and viewer.queue.empty():
                viewer.lagging = False
            viewer.queue.put_nowait((event, data))
        return len(self._viewers)
