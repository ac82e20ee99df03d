"""Nowtify — entry point."""
import asyncio
import logging
import sys

import uvicorn
from rich import print as rprint
from rich.logging import RichHandler

from nowtify.config import DEV_MODE, HOST, PORT
from nowtify.preflight import run_preflight
from nowtify.web.server import create_app


def main():
    logging.basicConfig(
        level=logging.DEBUG if DEV_MODE else logging.INFO,
        format="%(message)s",
        datefmt="[%X]",
        handlers=[RichHandler(rich_tracebacks=True)],
    )
    # httpx logs every request at INFO
    logging.getLogger("httpx").setLevel(logging.WARNING)

    if not asyncio.run(run_preflight()):
        sys.exit(1)

    rprint(f"  [bold cyan]♪[/bold cyan]  Nowtify running at http://localhost:{PORT}\n")
    uvicorn.run(create_app(), host=HOST, port=PORT, log_config=None)


if __name__ == "__main__":
    try:
        main()
    except KeyboardInterrupt:
        rprint("\n  Goodbye.\n")
        sys.exit(0)
