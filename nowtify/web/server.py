"""Starlette app — OAuth routes + WebSocket + static file serving."""
import asyncio
import logging
import uuid
from contextlib import asynccontextmanager
from typing import Optional

from starlette.applications import Starlette
from starlette.responses import JSONResponse, Response
from starlette.routing import Route, WebSocketRoute, Mount
from starlette.staticfiles import StaticFiles
from starlette.websockets import WebSocket, WebSocketDisconnect

from ..cache import cache_from_config
from ..config import APP_VERSION, LYRICS_ENABLED, PUBLIC_DIR
from ..engine import SyncEngine
from ..lyrics import LyricsResolver
from ..resolver import VideoResolver
from ..state import SessionState
from ..youtube import YouTubeSearch
from .auth import callback, login
from .channel import SyncChannel

logger = logging.getLogger(__name__)

STATUS_EVENT = "statusUpdate"


def build_engine(channel: SyncChannel) -> SyncEngine:
    """Wire the engine to whichever collaborators .env configures."""
    search = YouTubeSearch()
    resolver = VideoResolver(search=search, cache=cache_from_config())
    lyrics = LyricsResolver() if LYRICS_ENABLED else None
    return SyncEngine(SessionState(), resolver, channel, lyrics=lyrics)


# ── Health ───────────────────────────────────────────────────────────────────

async def health(request):
    engine: SyncEngine = request.app.state.engine
    channel: SyncChannel = request.app.state.channel
    resolver = engine.resolver
    return JSONResponse({
        "status": "ok",
        "version": APP_VERSION,
        "viewers": channel.viewer_count,
        "collaborators": {
            "youtube": bool(resolver.search and resolver.search.configured),
            "cache": type(resolver.cache).__name__ if resolver.cache is not None else None,
            "lyrics": engine.lyrics is not None,
        },
        "session": engine.state.to_dict(),
    })


# ── WebSocket ────────────────────────────────────────────────────────────────

async def websocket_endpoint(websocket: WebSocket):
    engine: SyncEngine = websocket.app.state.engine
    channel: SyncChannel = websocket.app.state.channel

    await websocket.accept()
    client_id = str(uuid.uuid4())
    queue = channel.subscribe(client_id)
    logger.info("WS connected: %s (%d viewers)", client_id, channel.viewer_count)

    # Two tasks: one reads from client, one writes from queue
    async def _reader():
        try:
            while True:
                data = await websocket.receive_json()
                _handle_ws_message(engine, data)
        except WebSocketDisconnect:
            pass
        except Exception as e:
            logger.error("WS reader error: %s", e)

    async def _writer():
        try:
            while True:
                event, data = await queue.get()
                await websocket.send_json({"type": event, "data": data})
        except Exception:
            pass

    reader_task = asyncio.create_task(_reader())
    writer_task = asyncio.create_task(_writer())

    try:
        done, pending = await asyncio.wait(
            [reader_task, writer_task],
            return_when=asyncio.FIRST_COMPLETED,
        )
        for task in pending:
            task.cancel()
    finally:
        channel.unsubscribe(client_id)
        logger.info("WS disconnected: %s", client_id)


def _handle_ws_message(engine: SyncEngine, data):
    """Route incoming WebSocket messages to the engine."""
    if not isinstance(data, dict):
        logger.warning("Ignoring non-object WS message")
        return

    msg_type = data.get("type", "")

    if msg_type == STATUS_EVENT:
        # Background task so a slow lookup doesn't hold up later snapshots
        engine.submit(data.get("data"))

    elif msg_type == "ping":
        pass

    else:
        logger.warning("Unknown WS message type: %s", msg_type)


# ── Static front-end ─────────────────────────────────────────────────────────

async def frontend_missing(request):
    return Response("Front-end not found. Put index.html in public/", status_code=503)


# ── App factory ──────────────────────────────────────────────────────────────

def create_app(engine: Optional[SyncEngine] = None, channel: Optional[SyncChannel] = None) -> Starlette:
    channel = channel or (engine.channel if engine else SyncChannel())
    engine = engine or build_engine(channel)

    routes = [
        Route("/login", login),
        Route("/callback", callback),
        Route("/api/health", health),
        WebSocketRoute("/ws", websocket_endpoint),
    ]

    # Static files last; "/" serves public/index.html
    if PUBLIC_DIR.is_dir():
        routes.append(Mount("/", app=StaticFiles(directory=str(PUBLIC_DIR), html=True), name="public"))
    else:
        routes.append(Route("/", frontend_missing))

    @asynccontextmanager
    async def lifespan(app):
        logger.info("Sync engine ready")
        yield
        # Graceful shutdown
        await engine.stop()
        logger.info("Sync engine stopped")

    app = Starlette(routes=routes, lifespan=lifespan)
    app.state.engine = engine
    app.state.channel = channel
    return app
