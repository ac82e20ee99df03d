"""Video cache — track id → YouTube video id.

Two stores share the same two-call surface:

    get(track_id) -> video_id | None     (any failure is a miss)
    put(track_id, title, video_id) -> bool  (best-effort, never raises)

SupabaseCache talks to a PostgREST table; JsonFileCache keeps a local file.
"""
import asyncio
import json
import logging
from pathlib import Path
from typing import Optional, Protocol

import httpx

from .config import CACHE_FILE, HTTP_TIMEOUT, SUPABASE_KEY, SUPABASE_TABLE, SUPABASE_URL
from .errors import log_error

logger = logging.getLogger(__name__)


class VideoCache(Protocol):
    async def get(self, track_id: str) -> Optional[str]: ...

    async def put(self, track_id: str, title: str, video_id: str) -> bool: ...


class SupabaseCache:
    """Rows of (track_id PK, track_title, video_id) in a Supabase table."""

    def __init__(
        self,
        url: str,
        key: str,
        table: str = SUPABASE_TABLE,
        timeout: float = HTTP_TIMEOUT,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ):
        self.endpoint = f"{url.rstrip('/')}/rest/v1/{table}"
        self.timeout = timeout
        self._headers = {
            "apikey": key,
            "Authorization": f"Bearer {key}",
        }
        self._transport = transport

    def _client(self) -> httpx.AsyncClient:
        return httpx.AsyncClient(
            timeout=self.timeout, headers=self._headers, transport=self._transport,
        )

    async def get(self, track_id: str) -> Optional[str]:
        params = {"select": "video_id", "track_id": f"eq.{track_id}", "limit": 1}
        try:
            async with self._client() as client:
                r = await client.get(self.endpoint, params=params)
                r.raise_for_status()
                rows = r.json()
        except (httpx.HTTPError, ValueError) as e:
            log_error("cache_read", track_id, raw=str(e))
            return None

        if not isinstance(rows, list) or not rows or not isinstance(rows[0], dict):
            return None
        return rows[0].get("video_id") or None

    async def put(self, track_id: str, title: str, video_id: str) -> bool:
        row = {"track_id": track_id, "track_title": title, "video_id": video_id}
        headers = {"Prefer": "resolution=merge-duplicates,return=minimal"}
        try:
            async with self._client() as client:
                r = await client.post(
                    self.endpoint, params={"on_conflict": "track_id"}, json=row, headers=headers,
                )
                r.raise_for_status()
        except httpx.HTTPError as e:
            log_error("cache_write", track_id, {"title": title, "video_id": video_id}, str(e))
            return False
        logger.info("Cached %s → %s (%s)", track_id, video_id, title)
        return True


class JsonFileCache:
    """Single JSON object on disk: {track_id: {"title": ..., "video_id": ...}}."""

    def __init__(self, path: Path):
        self.path = Path(path)
        self._entries: Optional[dict] = None
        self._lock = asyncio.Lock()

    def _load(self) -> dict:
        if self._entries is None:
            try:
                data = json.loads(self.path.read_text())
                self._entries = data if isinstance(data, dict) else {}
            except FileNotFoundError:
                self._entries = {}
            except (ValueError, OSError) as e:
                # Undecodable bytes or bad JSON: start empty, the next put rewrites the file
                log_error("cache_read", str(self.path), raw=str(e))
                self._entries = {}
        return self._entries

    def _save(self, entries: dict):
        """Atomic write — write to tmp then replace."""
        self.path.parent.mkdir(parents=True, exist_ok=True)
        tmp = self.path.with_suffix(".tmp")
        tmp.write_text(json.dumps(entries, indent=2))
        tmp.replace(self.path)

    async def get(self, track_id: str) -> Optional[str]:
        entry = self._load().get(track_id)
        if not isinstance(entry, dict):
            return None
        return entry.get("video_id") or None

    async def put(self, track_id: str, title: str, video_id: str) -> bool:
        async with self._lock:
            entries = dict(self._load())
            entries[track_id] = {"title": title, "video_id": video_id}
            try:
                loop = asyncio.get_running_loop()
                await loop.run_in_executor(None, self._save, entries)
            except OSError as e:
                log_error("cache_write", track_id, {"title": title, "video_id": video_id}, str(e))
                return False
            # Memory only follows a successful write
            self._entries = entries
        return True


def cache_from_config() -> Optional[VideoCache]:
    """Supabase if configured, else the local file cache, else nothing."""
    if SUPABASE_URL and SUPABASE_KEY:
        return SupabaseCache(SUPABASE_URL, SUPABASE_KEY)
    if SUPABASE_URL or SUPABASE_KEY:
        logger.warning("Supabase URL or key missing — video cache disabled")
    if CACHE_FILE:
        return JsonFileCache(Path(CACHE_FILE))
    return None
