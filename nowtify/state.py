"""SessionState — the one shared view of what every viewer has loaded."""
from typing import Optional


class SessionState:
    def __init__(self):
        self.current_track_uri: Optional[str] = None
        self.current_video_id: Optional[str] = None
        self.current_title: Optional[str] = None
        # Sequence number of the snapshot that last committed a load or stop
        self.transition_seq: int = 0

    @property
    def is_loaded(self) -> bool:
        return bool(self.current_track_uri)

    def is_current(self, track_uri: Optional[str]) -> bool:
        """Same-track check. Two empties count as equal."""
        return (track_uri or None) == (self.current_track_uri or None)

    def load(self, track_uri: str, video_id: str, title: str, seq: int):
        self.current_track_uri = track_uri
        self.current_video_id = video_id
        self.current_title = title
        self.transition_seq = max(self.transition_seq, seq)

    def clear(self, seq: int = 0):
        # uri and video are only meaningful together
        self.current_track_uri = None
        self.current_video_id = None
        self.current_title = None
        self.transition_seq = max(self.transition_seq, seq)

    def to_dict(self) -> dict:
        return {
            "track_uri": self.current_track_uri,
            "video_id": self.current_video_id,
            "title": self.current_title,
        }
