"""LRCLIB lyrics lookup.

resolve_lyrics() always returns a displayable LRC string: synced lyrics when
LRCLIB has them, plain lyrics pinned to 00:00 otherwise, or a placeholder.
It never raises.
"""
import logging
import re
from typing import Optional

import httpx

from .config import HTTP_TIMEOUT, LRCLIB_HOST, USER_AGENT
from .errors import log_error

logger = logging.getLogger(__name__)

NOT_FOUND = "[00:00.00] Lyrics not found"
INSTRUMENTAL = "[00:00.00] Instrumental"

# "(feat. X)", "[ft. X]", "(with X)", "(featuring X)"
_FEATURING_RE = re.compile(r"\s*[\(\[]\s*(?:feat\.?|ft\.?|featuring|with)\s[^\)\]]*[\)\]]", re.IGNORECASE)


def split_display_title(display_title: str) -> tuple[str, str]:
    """'Artist A, Artist B - Song' → ('Artist A', 'Song')."""
    if " - " in display_title:
        artist, title = display_title.split(" - ", 1)
    else:
        artist, title = "", display_title
    artist = _FEATURING_RE.sub("", artist).strip()
    # Primary artist only, LRCLIB matches poorly on joined names
    artist = artist.split(", ")[0].strip()
    return artist, title.strip()


def wrap_plain(plain: str) -> str:
    return f"[00:00.00] {plain.strip()}"


class LyricsResolver:
    def __init__(
        self,
        host: str = LRCLIB_HOST,
        timeout: float = HTTP_TIMEOUT,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ):
        self.host = host.rstrip("/")
        self.timeout = timeout
        self._transport = transport

    async def resolve_lyrics(self, display_title: str, duration_ms: int = 0) -> str:
        artist, title = split_display_title(display_title)
        if not title:
            return NOT_FOUND

        try:
            record = await self._find(artist, title, duration_ms)
        except (httpx.HTTPError, ValueError) as e:
            log_error("lyrics", display_title, raw=str(e))
            return NOT_FOUND

        if not record:
            logger.info("No lyrics for %r", display_title)
            return NOT_FOUND
        return lyrics_from_record(record)

    async def _find(self, artist: str, title: str, duration_ms: int) -> Optional[dict]:
        """GET /api/get by metadata, falling back to /api/search."""
        params = {"track_name": title, "artist_name": artist}
        if duration_ms > 0:
            params["duration"] = int(round(duration_ms / 1000))

        async with httpx.AsyncClient(
            timeout=self.timeout,
            headers={"User-Agent": USER_AGENT},
            transport=self._transport,
        ) as client:
            r = await client.get(f"{self.host}/api/get", params=params)
            if r.status_code != 404:
                r.raise_for_status()
                data = r.json()
                if isinstance(data, dict) and _has_content(data):
                    return data

            search = {"track_name": title}
            if artist:
                search["artist_name"] = artist
            r = await client.get(f"{self.host}/api/search", params=search)
            r.raise_for_status()
            items = r.json()

        if not isinstance(items, list):
            return None
        usable = [i for i in items if isinstance(i, dict) and _has_content(i)]
        # Synced matches beat plain ones
        for item in usable:
            if _text(item, "syncedLyrics"):
                return item
        return usable[0] if usable else None


def _text(record: dict, key: str) -> str:
    value = record.get(key)
    return value.strip() if isinstance(value, str) else ""


def _has_content(record: dict) -> bool:
    return bool(
        _text(record, "syncedLyrics")
        or _text(record, "plainLyrics")
        or record.get("instrumental")
    )


def lyrics_from_record(record: dict) -> str:
    synced = _text(record, "syncedLyrics")
    if synced:
        return synced
    plain = _text(record, "plainLyrics")
    if plain:
        return wrap_plain(plain)
    if record.get("instrumental"):
        return INSTRUMENTAL
    return NOT_FOUND
