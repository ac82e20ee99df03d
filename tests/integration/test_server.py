"""
Integration tests for the Starlette app: WebSocket sync, health, OAuth.

The engine runs for real; only YouTube and Spotify are faked.
"""

from urllib.parse import parse_qs, urlparse

import httpx
import pytest
from starlette.testclient import TestClient

import nowtify.web.auth as auth
import nowtify.web.server as server
from nowtify.engine import SyncEngine
from nowtify.resolver import VideoResolver
from nowtify.state import SessionState
from nowtify.web.channel import SyncChannel
from nowtify.web.server import create_app

from conftest import FakeSearch


@pytest.fixture
def app(monkeypatch, tmp_path):
    monkeypatch.setattr(server, "PUBLIC_DIR", tmp_path / "no-frontend")
    resolver = VideoResolver(search=FakeSearch({"Y - X": "v1"}))
    engine = SyncEngine(SessionState(), resolver, SyncChannel())
    return create_app(engine=engine)


@pytest.fixture
def spotify_credentials(monkeypatch):
    monkeypatch.setattr(auth, "SPOTIFY_CLIENT_ID", "client")
    monkeypatch.setattr(auth, "SPOTIFY_CLIENT_SECRET", "secret")
    monkeypatch.setattr(auth, "SPOTIFY_REDIRECT_URI", "http://localhost:8888/callback")


# ==================== WEBSOCKET ====================

@pytest.mark.integration
def test_status_update_is_broadcast_to_all_viewers(app, snapshot):
    with TestClient(app) as client:
        with client.websocket_connect("/ws") as viewer, client.websocket_connect("/ws") as listener:
            listener.send_json({"type": "statusUpdate", "data": snapshot(progress=0)})

            for ws in (viewer, listener):
                message = ws.receive_json()
                assert message["type"] == "syncCommand"
                assert message["data"]["command"] == "load"
                assert message["data"]["videoId"] == "v1"
                assert message["data"]["trackTitle"] == "Y - X"

            listener.send_json({"type": "statusUpdate", "data": snapshot(playing=False, progress=5000)})
            message = viewer.receive_json()
            assert message["data"]["command"] == "pause"
            assert message["data"]["progress"] == 5000


@pytest.mark.integration
def test_empty_status_broadcasts_stop(app):
    with TestClient(app) as client:
        with client.websocket_connect("/ws") as ws:
            ws.send_json({"type": "unknown"})
            ws.send_json({"type": "statusUpdate", "data": None})
            assert ws.receive_json() == {"type": "syncCommand", "data": {"command": "stop"}}


@pytest.mark.integration
def test_health_reports_session(app, snapshot):
    with TestClient(app) as client:
        with client.websocket_connect("/ws") as ws:
            ws.send_json({"type": "statusUpdate", "data": snapshot()})
            ws.receive_json()

            body = client.get("/api/health").json()

    assert body["status"] == "ok"
    assert body["viewers"] == 1
    assert body["collaborators"]["youtube"] is True
    assert body["collaborators"]["cache"] is None
    assert body["session"] == {"track_uri": "a", "video_id": "v1", "title": "Y - X"}


@pytest.mark.integration
def test_missing_frontend(app):
    with TestClient(app) as client:
        assert client.get("/").status_code == 503


@pytest.mark.integration
def test_frontend_served_from_public(monkeypatch, tmp_path):
    public = tmp_path / "public"
    public.mkdir()
    (public / "index.html").write_text("<h1>nowtify</h1>")
    monkeypatch.setattr(server, "PUBLIC_DIR", public)
    app = create_app(engine=SyncEngine(SessionState(), VideoResolver(), SyncChannel()))

    with TestClient(app) as client:
        r = client.get("/")

    assert r.status_code == 200
    assert "nowtify" in r.text


# ==================== OAUTH ====================

@pytest.mark.integration
def test_login_without_credentials(app, monkeypatch):
    monkeypatch.setattr(auth, "SPOTIFY_CLIENT_ID", "")
    with TestClient(app) as client:
        assert client.get("/login", follow_redirects=False).status_code == 500


@pytest.mark.integration
def test_login_redirects_to_spotify(app, spotify_credentials):
    with TestClient(app) as client:
        r = client.get("/login", follow_redirects=False)

    assert r.status_code == 307
    location = urlparse(r.headers["location"])
    query = parse_qs(location.query)
    assert location.netloc == "accounts.spotify.com"
    assert query["response_type"] == ["code"]
    assert query["scope"] == ["user-read-playback-state"]
    assert query["state"] == [r.cookies[auth.STATE_COOKIE]]


@pytest.mark.integration
def test_callback_state_mismatch(app, spotify_credentials):
    with TestClient(app) as client:
        client.cookies.set(auth.STATE_COOKIE, "expected")
        r = client.get("/callback?code=abc&state=other", follow_redirects=False)

    assert r.headers["location"] == "/?error=state_mismatch"


@pytest.mark.integration
def test_callback_exchanges_code(app, spotify_credentials, monkeypatch):
    seen = []

    def handler(request):
        seen.append(request)
        return httpx.Response(200, json={"access_token": "tok", "expires_in": 3600})

    monkeypatch.setattr(auth, "token_transport", httpx.MockTransport(handler))

    with TestClient(app) as client:
        client.cookies.set(auth.STATE_COOKIE, "s1")
        r = client.get("/callback?code=abc&state=s1", follow_redirects=False)

    assert r.headers["location"] == "/#access_token=tok&expires_in=3600"
    form = parse_qs(seen[0].content.decode())
    assert form["code"] == ["abc"]
    assert form["grant_type"] == ["authorization_code"]
    assert seen[0].headers["authorization"].startswith("Basic ")


@pytest.mark.integration
def test_callback_token_failure(app, spotify_credentials, monkeypatch):
    transport = httpx.MockTransport(lambda request: httpx.Response(400, json={"error": "invalid_grant"}))
    monkeypatch.setattr(auth, "token_transport", transport)

    with TestClient(app) as client:
        client.cookies.set(auth.STATE_COOKIE, "s1")
        r = client.get("/callback?code=bad&state=s1", follow_redirects=False)

    assert r.headers["location"] == "/?error=invalid_token"
