"""Spotify authorization-code flow for the listener page.

/login sends the browser to Spotify; /callback swaps the code for an access
token and hands it to the front-end in the URL fragment.
"""
import logging
import secrets
import string
from urllib.parse import urlencode

import httpx
from starlette.responses import PlainTextResponse, RedirectResponse

from ..config import (
    HTTP_TIMEOUT,
    SPOTIFY_AUTHORIZE_URL,
    SPOTIFY_CLIENT_ID,
    SPOTIFY_CLIENT_SECRET,
    SPOTIFY_REDIRECT_URI,
    SPOTIFY_SCOPE,
    SPOTIFY_TOKEN_URL,
)
from ..errors import log_error

logger = logging.getLogger(__name__)

STATE_COOKIE = "spotify_auth_state"
_ALPHABET = string.ascii_letters + string.digits

# Swapped out in tests
token_transport: httpx.AsyncBaseTransport | None = None


def random_state(length: int = 16) -> str:
    return "".join(secrets.choice(_ALPHABET) for _ in range(length))


def _configured() -> bool:
    return bool(SPOTIFY_CLIENT_ID and SPOTIFY_CLIENT_SECRET and SPOTIFY_REDIRECT_URI)


async def login(request):
    if not _configured():
        return PlainTextResponse(
            "Spotify credentials missing — set SPOTIFY_CLIENT_ID, SPOTIFY_CLIENT_SECRET "
            "and SPOTIFY_REDIRECT_URI in .env.local",
            status_code=500,
        )

    state = random_state()
    query = urlencode({
        "response_type": "code",
        "client_id": SPOTIFY_CLIENT_ID,
        "scope": SPOTIFY_SCOPE,
        "redirect_uri": SPOTIFY_REDIRECT_URI,
        "state": state,
    })
    response = RedirectResponse(f"{SPOTIFY_AUTHORIZE_URL}?{query}")
    response.set_cookie(STATE_COOKIE, state)
    return response


async def callback(request):
    code = request.query_params.get("code")
    state = request.query_params.get("state")
    stored_state = request.cookies.get(STATE_COOKIE)

    if state is None or state != stored_state:
        response = RedirectResponse("/?" + urlencode({"error": "state_mismatch"}))
        response.delete_cookie(STATE_COOKIE)
        return response

    token = await exchange_code(code)
    if token is None:
        response = RedirectResponse("/?" + urlencode({"error": "invalid_token"}))
    else:
        response = RedirectResponse("/#" + urlencode({
            "access_token": token["access_token"],
            "expires_in": token.get("expires_in", ""),
        }))
    response.delete_cookie(STATE_COOKIE)
    return response


async def exchange_code(code: str | None) -> dict | None:
    """POST the authorization code to Spotify. Returns the token JSON or None."""
    form = {
        "code": code or "",
        "redirect_uri": SPOTIFY_REDIRECT_URI,
        "grant_type": "authorization_code",
    }
    try:
        async with httpx.AsyncClient(timeout=HTTP_TIMEOUT, transport=token_transport) as client:
            r = await client.post(
                SPOTIFY_TOKEN_URL,
                data=form,
                auth=(SPOTIFY_CLIENT_ID, SPOTIFY_CLIENT_SECRET),
            )
            data = r.json()
    except (httpx.HTTPError, ValueError) as e:
        log_error("token_exchange", raw=str(e))
        return None

    if not isinstance(data, dict) or not data.get("access_token"):
        log_error("token_exchange", raw=f"Spotify returned no token (HTTP {r.status_code}): {data}")
        return None
    logger.info("Spotify access token issued")
    return data
