"""``reelcritic serve``: run the API under uvicorn.

Usage:
    reelcritic serve
    reelcritic serve --port 8080 --reload
"""

from __future__ import annotations

import typer
from rich.console import Console

from reelcritic.config import settings


def serve(
    host: str = typer.Option(settings.host, "--host", help="Interface to bind"),
    port: int = typer.Option(settings.port, "--port", "-p", help="Port to listen on"),
    reload: bool = typer.Option(False, "--reload", help="Restart when code changes"),
    workers: int = typer.Option(
        1,
        "--workers",
        "-w",
        help="Worker processes; each keeps its own caches and rate limits",
    ),
    log_level: str = typer.Option(settings.log_level, "--log-level", "-l"),
) -> None:
    """Run the ReelCritic API server."""
    import uvicorn

    console = Console()
    console.print(f"[bold]ReelCritic[/bold] ({settings.env}) on http://{host}:{port}")
    if reload and workers > 1:
        console.print("[yellow]--reload runs a single worker[/yellow]")
        workers = 1
    if not settings.tmdb_api_key:
        console.print("[yellow]TMDB_API_KEY is not set, movie data endpoints answer 503[/yellow]")
    console.print(f"API docs at http://{host}:{port}/docs")

    uvicorn.run(
        "reelcritic.api.app:create_app",
        factory=True,
        host=host,
        port=port,
        reload=reload,
        workers=workers,
        log_level=log_level.lower(),
    )
