"""Sync engine — status snapshots in, transport commands out.

Each snapshot is handled by handle_status() and yields one command
(stop / load / play / pause) broadcast to every viewer. Track changes
suspend on the resolvers; other snapshots keep flowing meanwhile. The final
"commit session state + broadcast" step is serialized under one lock, and a
resolution that a newer snapshot has overtaken is dropped there instead of
being applied.
"""
import asyncio
import logging
from typing import Any, Optional

from .config import LYRICS_GRACE
from .lyrics import LyricsResolver
from .models import (
    Command,
    StatusSnapshot,
    load_command,
    parse_snapshot,
    stop_command,
    transport_command,
)
from .resolver import VideoResolver
from .state import SessionState

logger = logging.getLogger(__name__)

SYNC_EVENT = "syncCommand"


class SyncEngine:
    def __init__(
        self,
        state: SessionState,
        resolver: VideoResolver,
        channel,
        lyrics: Optional[LyricsResolver] = None,
        lyrics_grace: float = LYRICS_GRACE,
    ):
        """channel: anything with ``async broadcast(event, data)``."""
        self.state = state
        self.resolver = resolver
        self.channel = channel
        self.lyrics = lyrics
        self.lyrics_grace = lyrics_grace

        self._seq = 0
        # Track uri the newest snapshot reported (None = stopped)
        self._requested_uri: Optional[str] = None
        self._commit_lock = asyncio.Lock()
        self._tasks: set[asyncio.Task] = set()

    # ── Public API (called from WebSocket handlers) ──────────────────────────

    def submit(self, data: Any) -> asyncio.Task:
        """Process a snapshot in the background so slow lookups don't block the reader."""
        task = asyncio.create_task(self._run(data))
        self._tasks.add(task)
        task.add_done_callback(self._tasks.discard)
        return task

    async def handle_status(self, data: Any) -> Optional[Command]:
        """Process one snapshot. Returns the broadcast command, or None if superseded."""
        snapshot = data if isinstance(data, StatusSnapshot) else parse_snapshot(data)
        self._seq += 1
        seq = self._seq

        if snapshot.is_stopped:
            self._requested_uri = None
            async with self._commit_lock:
                if self.state.is_loaded:
                    logger.info("Playback stopped")
                self.state.clear(seq)
                return await self._emit(stop_command())

        track = snapshot.track
        self._requested_uri = track.uri

        async with self._commit_lock:
            if self.state.is_current(track.uri):
                return await self._emit(transport_command(snapshot, self.state.current_video_id))

        return await self._change_track(snapshot, seq)

    async def stop(self):
        """Graceful shutdown."""
        for task in list(self._tasks):
            task.cancel()
        if self._tasks:
            await asyncio.gather(*self._tasks, return_exceptions=True)
        await self.resolver.flush()

    # ── Internals ────────────────────────────────────────────────────────────

    async def _run(self, data: Any):
        try:
            await self.handle_status(data)
        except asyncio.CancelledError:
            raise
        except Exception:
            logger.exception("Snapshot processing failed")

    async def _change_track(self, snapshot: StatusSnapshot, seq: int) -> Optional[Command]:
        track = snapshot.track
        title = track.display_title
        logger.info("New track detected: %s — resolving video", title)

        lyrics_task = None
        if self.lyrics is not None:
            lyrics_task = asyncio.create_task(self.lyrics.resolve_lyrics(title, track.duration_ms))

        try:
            video_id = await self.resolver.resolve(title, track.id)
        except Exception:
            if lyrics_task:
                lyrics_task.cancel()
            raise

        lyrics = None
        if video_id and lyrics_task:
            lyrics = await self._collect_lyrics(lyrics_task)
        elif lyrics_task:
            lyrics_task.cancel()

        async with self._commit_lock:
            if self.state.is_current(track.uri):
                # A duplicate resolution already loaded this track
                return await self._emit(transport_command(snapshot, self.state.current_video_id))

            if self._is_superseded(track.uri, seq):
                logger.debug("Dropping superseded resolution for %s", title)
                return None

            if not video_id:
                # Forget the uri so the next snapshot for this track retries.
                # No seq: a slower lookup for this same uri may still land.
                self.state.clear()
                return await self._emit(stop_command())

            self.state.load(track.uri, video_id, title, seq)
            return await self._emit(load_command(snapshot, video_id, lyrics))

    def _is_superseded(self, track_uri: str, seq: int) -> bool:
        if seq < self.state.transition_seq:
            return True
        return self._requested_uri != track_uri

    async def _collect_lyrics(self, task: asyncio.Task) -> Optional[str]:
        done, _ = await asyncio.wait({task}, timeout=self.lyrics_grace)
        if task not in done:
            logger.info("Lyrics still pending after %.1fs — loading without them", self.lyrics_grace)
            task.cancel()
            return None
        if task.cancelled() or task.exception() is not None:
            return None
        return task.result() or None

    async def _emit(self, command: Command) -> Command:
        payload = command.to_payload()
        logger.debug("Broadcasting %s", payload)
        await self.channel.broadcast(SYNC_EVENT, payload)
        return command
