"""
Pytest configuration and fixtures for Nowtify tests.

Collaborators (YouTube, cache, lyrics, viewers) are replaced with in-memory
fakes so the engine can be driven deterministically.
"""

import sys
from pathlib import Path

import pytest

# Add project root to Python path
PROJECT_ROOT = Path(__file__).parent.parent
sys.path.insert(0, str(PROJECT_ROOT))


# ==================== PYTEST CONFIGURATION ====================

def pytest_configure(config):
    """Add custom markers for test categorization."""
    config.addinivalue_line("markers", "unit: unit test (fast, no I/O)")
    config.addinivalue_line("markers", "integration: integration test (app + fakes)")


@pytest.fixture(autouse=True)
def isolated_error_log(tmp_path, monkeypatch):
    """Keep log_error() from writing into the project's output/ dir."""
    import nowtify.errors as errors
    monkeypatch.setattr(errors, "OUTPUT_DIR", tmp_path / "output")
    monkeypatch.setattr(errors, "ERRORS_LOG", tmp_path / "output" / "errors.log")
    return tmp_path / "output" / "errors.log"


# ==================== FAKES ====================

class FakeSearch:
    """YouTubeSearch stand-in: query → video id, with optional gates to hold a search open."""

    def __init__(self, results=None):
        self.results = dict(results or {})
        self.calls = []
        self.gates = {}
        self.configured = True

    async def search(self, query):
        self.calls.append(query)
        gate = self.gates.get(query)
        if gate is not None:
            await gate.wait()
        return self.results.get(query)


class FakeCache:
    def __init__(self, entries=None, fail_reads=False, fail_writes=False):
        self.entries = dict(entries or {})
        self.fail_reads = fail_reads
        self.fail_writes = fail_writes
        self.gets = []
        self.puts = []

    async def get(self, track_id):
        self.gets.append(track_id)
        if self.fail_reads:
            raise ConnectionError("cache down")
        return self.entries.get(track_id)

    async def put(self, track_id, title, video_id):
        self.puts.append((track_id, title, video_id))
        if self.fail_writes:
            raise ConnectionError("cache down")
        self.entries[track_id] = video_id
        return True


class RecordingChannel:
    """Broadcast channel that just remembers what was sent, in order."""

    def __init__(self):
        self.sent = []

    async def broadcast(self, event, data):
        self.sent.append((event, data))

    @property
    def commands(self):
        return [data for _, data in self.sent]


class FakeLyrics:
    def __init__(self, text="[00:01.00] la la", delay=0.0, error=None):
        self.text = text
        self.delay = delay
        self.error = error
        self.calls = []

    async def resolve_lyrics(self, display_title, duration_ms=0):
        import asyncio
        self.calls.append((display_title, duration_ms))
        if self.delay:
            await asyncio.sleep(self.delay)
        if self.error:
            raise self.error
        return self.text


@pytest.fixture
def fake_search():
    return FakeSearch({"Y - X": "v1", "B Artist - B Song": "vb", "C Artist - C Song": "vc"})


@pytest.fixture
def fake_cache():
    return FakeCache()


@pytest.fixture
def channel():
    return RecordingChannel()


@pytest.fixture
def make_engine(fake_search, channel):
    """Build a SyncEngine around the fakes. Keyword args override collaborators."""
    from nowtify.engine import SyncEngine
    from nowtify.resolver import VideoResolver
    from nowtify.state import SessionState

    def _make(search=fake_search, cache=None, lyrics=None, lyrics_grace=0.5):
        resolver = VideoResolver(search=search, cache=cache)
        return SyncEngine(SessionState(), resolver, channel, lyrics=lyrics, lyrics_grace=lyrics_grace)

    return _make


@pytest.fixture
def snapshot():
    """Factory for Spotify-shaped currently-playing payloads."""

    def _snapshot(uri="a", track_id="1", name="X", artists=("Y",), duration=200000,
                  playing=True, progress=0, art="https://i.scdn.co/image/abc"):
        item = {
            "uri": uri,
            "id": track_id,
            "name": name,
            "artists": [{"name": a} for a in artists],
            "duration_ms": duration,
            "album": {"images": [{"url": art}] if art else []},
        }
        return {"item": item, "is_playing": playing, "progress_ms": progress}

    return _snapshot
