"""Snapshot parsing and outbound command shapes.

Snapshots arrive in the Spotify "currently playing" shape
(``item``/``is_playing``/``progress_ms``). camelCase aliases
(``track``/``isPlaying``/``progressMs``) are accepted too. Parsing never
raises: anything missing or of the wrong type becomes absent or zero.
"""
from dataclasses import dataclass
from typing import Any, Optional


@dataclass(frozen=True)
class Track:
    uri: str
    id: str
    title: str
    artists: tuple[str, ...] = ()
    album_art_url: Optional[str] = None
    duration_ms: int = 0

    @property
    def display_title(self) -> str:
        """'<artists joined by ", "> - <title>'"""
        return f"{', '.join(self.artists)} - {self.title}"


@dataclass(frozen=True)
class StatusSnapshot:
    track: Optional[Track]
    is_playing: bool = False
    progress_ms: int = 0

    @property
    def is_stopped(self) -> bool:
        """No track, or a paused player sitting at zero (freshly stopped)."""
        if self.track is None:
            return True
        return not self.is_playing and self.progress_ms == 0


def _as_int(value: Any) -> int:
    if isinstance(value, bool):
        return 0
    if isinstance(value, (int, float)):
        return max(0, int(value))
    return 0


def _as_str(value: Any) -> str:
    return value if isinstance(value, str) else ""


def _artist_names(raw: Any) -> tuple[str, ...]:
    if not isinstance(raw, list):
        return ()
    names = []
    for artist in raw:
        if isinstance(artist, dict):
            name = artist.get("name")
        else:
            name = artist
        if isinstance(name, str) and name:
            names.append(name)
    return tuple(names)


def _album_art(item: dict) -> Optional[str]:
    url = item.get("albumArtUrl")
    if isinstance(url, str) and url:
        return url
    album = item.get("album")
    if not isinstance(album, dict):
        return None
    images = album.get("images")
    if not isinstance(images, list) or not images:
        return None
    first = images[0]
    if isinstance(first, dict) and isinstance(first.get("url"), str):
        return first["url"]
    return None


def parse_track(item: Any) -> Optional[Track]:
    if not isinstance(item, dict):
        return None
    uri = _as_str(item.get("uri"))
    track_id = _as_str(item.get("id"))
    if not uri and not track_id:
        return None
    return Track(
        uri=uri or track_id,
        id=track_id or uri,
        title=_as_str(item.get("name") or item.get("title")),
        artists=_artist_names(item.get("artists")),
        album_art_url=_album_art(item),
        duration_ms=_as_int(item.get("duration_ms", item.get("durationMs"))),
    )


def parse_snapshot(data: Any) -> StatusSnapshot:
    """Build a StatusSnapshot from an untrusted payload."""
    if not isinstance(data, dict):
        return StatusSnapshot(track=None)
    item = data.get("item", data.get("track"))
    is_playing = data.get("is_playing", data.get("isPlaying", False))
    progress = data.get("progress_ms", data.get("progressMs"))
    return StatusSnapshot(
        track=parse_track(item),
        is_playing=is_playing is True,
        progress_ms=_as_int(progress),
    )


# ── Commands ─────────────────────────────────────────────────────────────────

STOP = "stop"
LOAD = "load"
PLAY = "play"
PAUSE = "pause"


@dataclass(frozen=True)
class Command:
    kind: str
    video_id: Optional[str] = None
    progress_ms: int = 0
    duration_ms: int = 0
    title: Optional[str] = None
    album_art_url: Optional[str] = None
    lyrics: Optional[str] = None

    def to_payload(self) -> dict:
        """Wire form sent to viewers as a syncCommand."""
        if self.kind == STOP:
            return {"command": STOP}
        payload = {
            "command": self.kind,
            "progress": self.progress_ms,
            "duration": self.duration_ms,
            "trackTitle": self.title,
            "albumImgUrl": self.album_art_url,
        }
        if self.video_id:
            payload["videoId"] = self.video_id
        if self.kind == LOAD and self.lyrics:
            payload["lyrics"] = self.lyrics
        return payload


def stop_command() -> Command:
    return Command(kind=STOP)


def load_command(snapshot: StatusSnapshot, video_id: str, lyrics: Optional[str] = None) -> Command:
    track = snapshot.track
    return Command(
        kind=LOAD,
        video_id=video_id,
        progress_ms=snapshot.progress_ms,
        duration_ms=track.duration_ms,
        title=track.display_title,
        album_art_url=track.album_art_url,
        lyrics=lyrics,
    )


def transport_command(snapshot: StatusSnapshot, video_id: Optional[str] = None) -> Command:
    """play/pause for the track that's already loaded."""
    track = snapshot.track
    return Command(
        kind=PLAY if snapshot.is_playing else PAUSE,
        video_id=video_id,
        progress_ms=snapshot.progress_ms,
        duration_ms=track.duration_ms,
        title=track.display_title,
        album_art_url=track.album_art_url,
    )
