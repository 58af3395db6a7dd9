"""CLI entrypoints for TweetSearch."""

from __future__ import annotations

import asyncio
import json
from typing import Any

import typer

from tweetsearch.config import load_settings
from tweetsearch.errors import TweetSearchError
from tweetsearch.logging import configure_logging, get_logger
from tweetsearch.service import create_service

app = typer.Typer(add_completion=False, help="Engagement-ranked search over the live search job API")
logger = get_logger(__name__)


async def _run_search(
    query: str,
    max_results: int,
    enhance: bool,
    top_k: int | None,
    instruction: str | None,
) -> list[dict[str, Any]]:
    settings = load_settings()
    configure_logging(settings.effective_log_level)
    service = create_service(settings)
    try:
        if enhance:
            items = await service.search_and_enhance(query, max_results, top_k=top_k, instruction=instruction)
        else:
            items = await service.search(query, max_results)
    finally:
        await service.aclose()
    return [it.model_dump(mode="json") for it in items]


@app.command()
def search(
    query: str = typer.Argument(..., help="Search query, e.g. '#AI trending'."),
    max_results: int = typer.Option(10, "--max-results", "-n", min=1, max=100, help="Maximum results"),
    enhance: bool = typer.Option(False, "--enhance/--no-enhance", help="Extract search terms for the top results"),
    top_k: int | None = typer.Option(None, "--top-k", min=0, help="How many top results to enhance"),
    instruction: str | None = typer.Option(None, "--instruction", help="Custom instruction for enhancement"),
) -> None:
    """Run one search job and print the ranked results as JSON."""

    logger.info("CLI search requested")
    try:
        results = asyncio.run(_run_search(query, max_results, enhance, top_k, instruction))
    except TweetSearchError as e:
        typer.echo(f"Error: {e}", err=True)
        raise typer.Exit(code=1) from e
    typer.echo(json.dumps({"results": results}, ensure_ascii=False, indent=2))


@app.command()
def health() -> None:
    """Show which mode the service would run in."""

    settings = load_settings()
    mode = "mock" if settings.mock_mode else "api"
    typer.echo(json.dumps({"status": "ok", "mode": mode, "base_url": settings.api_base_url}))


if __name__ == "__main__":
    app()
