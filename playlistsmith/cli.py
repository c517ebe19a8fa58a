import logging
from pathlib import Path
from typing import Iterable, Optional

import typer
from rich.markup import escape
from rich.progress import Progress

from .config import CONFIG_FILE, config, console
from .library import LibraryEntry, LibraryIndex, iter_library
from .matching import MatchReport, match_queries, suggest_matches
from .metadata import build_resolver
from .paths import PathMode
from .playlist import MANIFEST_SUFFIX, PlaylistFormat, write_playlist
from .queries import read_queries
from .scoring import similarity

app = typer.Typer(help="Match a song list against a local library and write a playlist.")
config_app = typer.Typer(help="Show configuration")

logger = logging.getLogger(__name__)


def _setup_logging(verbose: bool) -> None:
    logging.basicConfig(
        level=logging.DEBUG if verbose else logging.WARNING,
        format="%(levelname)s: %(message)s",
        force=True,
    )


def _fail(message: str) -> None:
    console.print(f"[bold red]{message}[/bold red]")
    raise typer.Exit(1)


def _print_report(report: MatchReport, candidates: Optional[Iterable[LibraryEntry]], suggest: bool) -> None:
    console.print("\n[bold green]Matches:[/bold green]")
    for match in report.matches:
        console.print(
            f"  [green]✓[/green] '{escape(str(match.query))}' → '{escape(match.path)}' "
            f"(artist {match.artist_score:g}, title {match.song_score:g})"
        )
    if report.not_found:
        console.print("\n[bold red]Not found:[/bold red]")
        for query in report.not_found:
            console.print(f"  [red]✗[/red] '{escape(str(query))}'")
            if suggest and candidates is not None:
                for audio, metadata, score in suggest_matches(query, candidates):
                    console.print(f"      [dim]closest [{score}] {escape(metadata.display)} ({escape(audio.path)})[/dim]")
    console.print(
        f"\n[bold green]{len(report.matches)} matched[/bold green], "
        f"[bold red]{len(report.not_found)} not found[/bold red]"
    )


@app.command()
def build(
    queries_csv: Path = typer.Argument(..., help="Header-less CSV of Song,Artist rows"),
    source: Optional[Path] = typer.Option(None, "--source", "-s", help="Library root (default: SOURCE_ROOT)"),
    dest: Optional[Path] = typer.Option(None, "--dest", "-d", help="Output directory (default: DEST_ROOT)"),
    name: Optional[str] = typer.Option(None, "--name", "-n", help="Playlist name (default: CSV file name)"),
    fmt: str = typer.Option(config["PLAYLIST_FORMAT"], "--format", "-f", help="m3u, pls or wpl"),
    path_mode: str = typer.Option(config["PATH_MODE"], "--path-mode", help="relative or absolute"),
    artist_threshold: int = typer.Option(
        config["ARTIST_THRESHOLD"], "--artist-threshold", min=0, max=100, help="Minimum artist score"
    ),
    song_threshold: int = typer.Option(
        config["SONG_THRESHOLD"], "--song-threshold", min=0, max=100, help="Minimum title score"
    ),
    backend: str = typer.Option(config["METADATA_BACKEND"], "--backend", help="ffprobe, mutagen or path"),
    workers: int = typer.Option(config["WORKERS"], "--workers", min=1, help="Threads for metadata probing"),
    no_cache: bool = typer.Option(
        not config["CACHE_METADATA"], "--no-cache", help="Rescan the library for every query"
    ),
    dry_run: bool = typer.Option(False, "--dry-run", help="Report matches without writing files"),
    suggest: bool = typer.Option(True, "--suggest/--no-suggest", help="Show closest entries for misses"),
    verbose: bool = typer.Option(False, "--verbose", "-v", help="Debug logging"),
):
    """
    Match every query in QUERIES_CSV against the library and write the playlist.

    The playlist goes to DEST/NAME.<ext>; NAME-FullPaths.txt next to it lists the
    absolute path of every matched file for copying.
    """
    _setup_logging(verbose)

    source_root = source or config["SOURCE_ROOT"]
    if source_root is None:
        _fail("No library root given. Use --source or set SOURCE_ROOT.")
    source_root = Path(source_root).absolute()
    if not Path(source_root).is_dir():
        _fail(f"Library directory does not exist: {source_root}")
    try:
        fmt_enum = PlaylistFormat.parse(fmt)
        mode = PathMode.parse(path_mode)
        resolver = build_resolver(backend, timeout=config["PROBE_TIMEOUT"])
    except ValueError as e:
        _fail(str(e))

    try:
        queries = read_queries(queries_csv)
    except (OSError, ValueError) as e:
        _fail(f"Could not read queries: {e}")
    if not queries:
        _fail("No usable queries in input.")
    console.print(f"[green]Loaded {len(queries)} queries from {queries_csv.name}[/green]")

    index = None
    try:
        with Progress(console=console) as progress:
            if not no_cache:
                scan_task = progress.add_task("[cyan]Reading library metadata...", total=None)
                index = LibraryIndex.build(
                    source_root,
                    resolver,
                    workers=workers,
                    on_resolved=lambda _: progress.advance(scan_task),
                )
                progress.update(scan_task, total=len(index), completed=len(index))
            task = progress.add_task("[green]Finding matches...", total=len(queries))
            report = match_queries(
                queries,
                source_root,
                artist_threshold,
                song_threshold,
                resolver=resolver,
                index=index,
                on_result=lambda *_: progress.advance(task),
            )
    except OSError as e:
        _fail(f"Library scan failed: {e}")

    candidates = index
    if suggest and report.not_found and candidates is None:
        try:
            candidates = list(iter_library(source_root, resolver))
        except OSError as e:
            logger.warning("Could not rescan library for suggestions: %s", e)
    _print_report(report, candidates, suggest)

    if dry_run:
        console.print("[yellow]Dry run: no playlist written.[/yellow]")
        return
    if not report.matches:
        console.print("[yellow]Nothing matched; no playlist written.[/yellow]")
        return

    playlist_name = name or queries_csv.stem
    output_dir = dest or config["DEST_ROOT"]
    try:
        written = write_playlist(report.matches, output_dir, fmt_enum, playlist_name, source_root, mode)
    except OSError as e:
        _fail(f"Could not write playlist: {e}")
    console.print(f"[bold green]✓ Wrote {fmt_enum.value.upper()}:[/bold green] {escape(str(written))}")
    console.print(f"[bold green]✓ Wrote manifest:[/bold green] {escape(str(written.parent / (playlist_name + MANIFEST_SUFFIX)))}")


@app.command()
def scan(
    source: Path = typer.Argument(..., help="Library root"),
    backend: str = typer.Option(config["METADATA_BACKEND"], "--backend", help="ffprobe, mutagen or path"),
    verbose: bool = typer.Option(False, "--verbose", "-v", help="Debug logging"),
):
    """List every audio file under SOURCE with the metadata used for matching."""
    _setup_logging(verbose)
    try:
        resolver = build_resolver(backend, timeout=config["PROBE_TIMEOUT"])
    except ValueError as e:
        _fail(str(e))
    count = 0
    try:
        for audio, metadata in iter_library(source, resolver):
            console.print(f"{escape(metadata.display)} [dim]({escape(metadata.album or '-')})[/dim] → {escape(audio.path)}")
            count += 1
    except OSError as e:
        _fail(str(e))
    console.print(f"[green]{count} audio file(s)[/green]")


@app.command()
def score(
    library_value: str = typer.Argument(..., help="Value as found in the library"),
    query_value: str = typer.Argument(..., help="Value as written in the query"),
):
    """Print the similarity score used by the threshold gates."""
    console.print(f"{similarity(library_value, query_value):g}")


@config_app.command(name="show")
def config_show():
    """Show current configuration values."""
    console.print(f"[dim]Config file: {CONFIG_FILE}[/dim]")
    for k, v in config.items():
        console.print(f"[cyan]{k}[/cyan]=[white]{v}[/white]")


app.add_typer(config_app, name="config")


if __name__ == "__main__":
    app()
