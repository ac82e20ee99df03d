"""Startup preflight — which collaborators are configured and reachable."""
import httpx
from rich.console import Console

from .config import (
    APP_VERSION,
    CACHE_FILE,
    HTTP_TIMEOUT,
    LRCLIB_HOST,
    LYRICS_ENABLED,
    PUBLIC_DIR,
    SPOTIFY_CLIENT_ID,
    SPOTIFY_CLIENT_SECRET,
    SPOTIFY_REDIRECT_URI,
    SUPABASE_KEY,
    SUPABASE_URL,
    YOUTUBE_API_KEY,
)

console = Console()


async def run_preflight() -> bool:
    """
    Run all startup checks and print results.

    Only missing Spotify credentials are fatal, everything else degrades.
    """
    console.print(f"\n  [bold]♪  Nowtify v{APP_VERSION}[/bold] — preflight check\n")

    checks = [
        ("Spotify login", _check_spotify, True),
        ("YouTube search", _check_youtube, False),
        ("Video cache", _check_cache, False),
        ("Lyrics (LRCLIB)", _check_lyrics, False),
        ("Front-end", _check_frontend, False),
    ]

    results = []
    for i, (label, fn, required) in enumerate(checks, 1):
        ok, msg, fix = await fn()
        results.append((ok, required, label, fix))
        if ok:
            icon, status = "[green]✓[/green]", f"[green]{msg}[/green]"
        elif required:
            icon, status = "[red]✗[/red]", f"[red]{msg}[/red]"
        else:
            icon, status = "[yellow]![/yellow]", f"[yellow]{msg}[/yellow]"
        dots = "." * max(30 - len(label), 3)
        console.print(f"  [{i}/{len(checks)}] {label} {dots} {icon} {status}")

    # Print fix instructions for anything not ok
    fixes = [(label, fix) for ok, _, label, fix in results if not ok and fix]
    if fixes:
        console.print("")
        for label, fix in fixes:
            console.print(f"  [yellow]Fix for {label}:[/yellow]")
            for line in fix.strip().splitlines():
                console.print(f"    {line}")
            console.print("")

    if any(required and not ok for ok, required, _, _ in results):
        console.print("  Then re-run: [bold]python server.py[/bold]\n")
        return False

    console.print("")
    return True


async def _check_spotify() -> tuple[bool, str, str]:
    missing = [
        name for name, value in (
            ("SPOTIFY_CLIENT_ID", SPOTIFY_CLIENT_ID),
            ("SPOTIFY_CLIENT_SECRET", SPOTIFY_CLIENT_SECRET),
            ("SPOTIFY_REDIRECT_URI", SPOTIFY_REDIRECT_URI),
        ) if not value
    ]
    if missing:
        return False, f"missing: {', '.join(missing)}", (
            "Create an app at https://developer.spotify.com/dashboard\n"
            "and add its credentials to .env.local"
        )
    return True, SPOTIFY_REDIRECT_URI, ""


async def _check_youtube() -> tuple[bool, str, str]:
    if not YOUTUBE_API_KEY:
        return False, "no API key — tracks won't resolve", "Set YOUTUBE_API_KEY in .env.local"
    return True, "API key set", ""


async def _check_cache() -> tuple[bool, str, str]:
    if SUPABASE_URL and SUPABASE_KEY:
        return True, f"supabase at {SUPABASE_URL.replace('https://', '')}", ""
    if CACHE_FILE:
        return True, f"file {CACHE_FILE}", ""
    return False, "disabled — every track hits YouTube", (
        "Set SUPABASE_URL + SUPABASE_KEY, or CACHE_FILE for a local cache"
    )


async def _check_lyrics() -> tuple[bool, str, str]:
    if not LYRICS_ENABLED:
        return True, "disabled", ""
    try:
        async with httpx.AsyncClient(timeout=min(HTTP_TIMEOUT, 5)) as client:
            r = await client.get(LRCLIB_HOST)
            if r.status_code < 500:
                return True, f"reachable at {LRCLIB_HOST.replace('https://', '')}", ""
    except httpx.HTTPError:
        pass
    return False, "not responding — loads will skip lyrics", ""


async def _check_frontend() -> tuple[bool, str, str]:
    if (PUBLIC_DIR / "index.html").exists():
        return True, str(PUBLIC_DIR), ""
    return False, "public/index.html missing", "Copy the viewer page into public/"
