"""Config & constants — loaded once from .env / .env.local."""
import os
from pathlib import Path

from dotenv import load_dotenv

# Load .env files from project root (one level up from nowtify/)
_ROOT = Path(__file__).parent.parent
load_dotenv(_ROOT / ".env")
load_dotenv(_ROOT / ".env.local")

# ─── Paths ────────────────────────────────────────────────────────────────────
ROOT_DIR = _ROOT
PUBLIC_DIR = ROOT_DIR / "public"
OUTPUT_DIR = ROOT_DIR / os.getenv("OUTPUT_DIR", "output")
ERRORS_LOG = OUTPUT_DIR / "errors.log"

# ─── Spotify (listener authorization) ─────────────────────────────────────────
SPOTIFY_CLIENT_ID = os.getenv("SPOTIFY_CLIENT_ID", "")
SPOTIFY_CLIENT_SECRET = os.getenv("SPOTIFY_CLIENT_SECRET", "")
SPOTIFY_REDIRECT_URI = os.getenv("SPOTIFY_REDIRECT_URI", "")
SPOTIFY_AUTHORIZE_URL = "https://accounts.spotify.com/authorize"
SPOTIFY_TOKEN_URL = "https://accounts.spotify.com/api/token"
SPOTIFY_SCOPE = "user-read-playback-state"

# ─── YouTube search ───────────────────────────────────────────────────────────
YOUTUBE_API_KEY = os.getenv("YOUTUBE_API_KEY", "")
YOUTUBE_SEARCH_URL = "https://www.googleapis.com/youtube/v3/search"
# Appended to every query, e.g. " official audio"
YOUTUBE_QUERY_SUFFIX = os.getenv("YOUTUBE_QUERY_SUFFIX", "")

# ─── Video cache ──────────────────────────────────────────────────────────────
SUPABASE_URL = os.getenv("SUPABASE_URL", "").rstrip("/")
SUPABASE_KEY = os.getenv("SUPABASE_KEY", "")
SUPABASE_TABLE = os.getenv("SUPABASE_TABLE", "video_cache")
# Local fallback when Supabase isn't configured. Empty = no cache.
CACHE_FILE = os.getenv("CACHE_FILE", "")

# ─── Lyrics ───────────────────────────────────────────────────────────────────
LYRICS_ENABLED = os.getenv("LYRICS_ENABLED", "1").strip() in ("1", "true", "yes")
LRCLIB_HOST = os.getenv("LRCLIB_HOST", "https://lrclib.net").rstrip("/")
# Seconds to wait for lyrics after the video is resolved before loading without them
LYRICS_GRACE = float(os.getenv("LYRICS_GRACE", "0.5"))

# ─── HTTP ─────────────────────────────────────────────────────────────────────
HTTP_TIMEOUT = float(os.getenv("HTTP_TIMEOUT", "10"))
USER_AGENT = "nowtify/0.3.0 (+https://github.com/nowtify)"

APP_VERSION = "0.3.0"

# ─── Web server ──────────────────────────────────────────────────────────────
HOST = os.getenv("HOST", "0.0.0.0")
PORT = int(os.getenv("PORT", "8888"))

# ─── Dev mode ─────────────────────────────────────────────────────────────────
DEV_MODE = os.getenv("DEV_MODE", "1").strip() in ("1", "true", "yes")
