"""Command-line entry points for the trip playlist generator."""

import asyncio
import json
from datetime import date
from pathlib import Path
from typing import List, Optional

import typer
from rich import print as rprint

from .config import configure_logging, get_settings
from .errors import TriplyError
from .lookup import PlaceLookupClient
from .models import ACTIVITIES, GENRES, PlaylistResult, TripRequest
from .openai_client import build_client
from .session import build_session
from .state import Complete, GenerationState, ImageFailed, TextFailed, to_plain

app = typer.Typer(help="Generate a travel playlist and cover art for a trip.")


def _parse_date(value: str, option: str) -> date:
    try:
        return date.fromisoformat(value)
    except ValueError as exc:
        raise typer.BadParameter(f"{option} must be YYYY-MM-DD.") from exc


def _print_playlist(playlist: PlaylistResult) -> None:
    rprint(f"[bold magenta]{playlist.title}[/bold magenta]")
    rprint(playlist.description)
    for index, song in enumerate(playlist.songs, start=1):
        rprint(f"[bold]{index:02d}. {song.title}[/bold] - {song.artist}")
        rprint(f'    [italic]"{song.reason}"[/italic]')


def _write_output(out_path: Path, state: GenerationState) -> None:
    out_path.write_text(
        json.dumps(to_plain(state), ensure_ascii=False, indent=2),
        encoding="utf-8",
    )


@app.command("suggest")
def suggest_command(
    query: str = typer.Argument(..., help="Partial destination name."),
    limit: Optional[int] = typer.Option(None, "--limit", "-n", help="Maximum results."),
):
    """Look up destination suggestions for a partial place name."""
    settings = get_settings()
    configure_logging(settings.log_level)

    async def _search() -> List[str]:
        async with PlaceLookupClient(settings) as client:
            return await client.search(query, limit=limit)

    try:
        names = asyncio.run(_search())
    except TriplyError as exc:
        rprint(f"[red]Lookup failed: {exc}[/red]")
        raise typer.Exit(code=1)
    if not names:
        rprint("[yellow]No matching places.[/yellow]")
    for name in names:
        rprint(name)


@app.command("generate")
def generate_command(
    destination: str = typer.Option(..., "--destination", "-d", help="Where you are going."),
    start: str = typer.Option(..., "--start", help="First day of the trip (YYYY-MM-DD)."),
    end: str = typer.Option(..., "--end", help="Last day of the trip (YYYY-MM-DD)."),
    activity: List[str] = typer.Option(
        [],
        "--activity",
        "-a",
        help=f"Activity id, repeatable. One of: {', '.join(ACTIVITIES)}.",
    ),
    genre: List[str] = typer.Option(
        [],
        "--genre",
        "-g",
        help=f"Preferred genre id, repeatable. One of: {', '.join(GENRES)}.",
    ),
    cover_out: Optional[Path] = typer.Option(
        None, "--cover-out", help="Write the generated cover image to this path."
    ),
    out: Optional[Path] = typer.Option(
        None, "--out", "-o", help="Optional path to write the final state as JSON."
    ),
):
    """Generate a playlist for the trip, then its cover image."""
    settings = get_settings()
    configure_logging(settings.log_level)
    trip = TripRequest(
        destination=destination,
        start_date=_parse_date(start, "--start"),
        end_date=_parse_date(end, "--end"),
        activities=tuple(activity),
        genres=tuple(genre),
    )

    async def _generate() -> GenerationState:
        async with build_client(settings) as client:
            session = build_session(settings, client=client)
            session.subscribe(lambda state: rprint(f"[cyan]{state.kind}[/cyan]"))
            return await session.submit(trip)

    try:
        state = asyncio.run(_generate())
    except RuntimeError as exc:
        rprint(f"[red]{exc}[/red]")
        raise typer.Exit(code=1)

    if out:
        _write_output(out, state)
        rprint(f"[cyan]Wrote output to {out}[/cyan]")

    if isinstance(state, TextFailed):
        rprint(f"[red]{state.reason}[/red]")
        raise typer.Exit(code=1)

    _print_playlist(state.playlist)
    if isinstance(state, ImageFailed):
        rprint(f"[yellow]{state.reason}; the playlist has no cover.[/yellow]")
    elif isinstance(state, Complete) and state.cover is not None and cover_out:
        cover_out.write_bytes(state.cover.data)
        rprint(f"[green]Cover saved to {cover_out}[/green]")


def main():
    app()


if __name__ == "__main__":
    main()
