"""Command module for ipfs-sync sync operations."""

import asyncio
from pathlib import Path
from typing import Optional, Sequence

import typer
from loguru import logger
from rich.console import Console
from rich.table import Table

from ipfs_sync.cli.app import app
from ipfs_sync.config import SyncConfig
from ipfs_sync.sync import FileRecord, SyncEngine, SyncState

console = Console()


def format_size(size: int) -> str:
    """Format a byte count for display."""
    if size < 1024:
        return f"{size} B"
    value = size / 1024
    for unit in ("KB", "MB"):
        if value < 1024:
            return f"{value:.1f} {unit}"
        value /= 1024
    return f"{value:.1f} GB"


def display_state_line(console: Console, state: SyncState) -> None:
    """Display a one-line summary of the sync state."""
    if not state.connected:
        status = "[red]disconnected[/red]"
    elif state.synced:
        status = "[green]synced[/green]"
    else:
        status = "[yellow]syncing[/yellow]"
    daemon = f" via {state.daemon.api_address}" if state.daemon is not None else ""
    console.print(f"{state.folder}: {status}{daemon} ({len(state.files)} files)")


def display_files(console: Console, files: Sequence[FileRecord], verbose: bool = False) -> None:
    """Display synced files with their CIDs."""
    if not files:
        console.print("[yellow]No files in folder[/yellow]")
        return

    table = Table(title="Synced Files")
    table.add_column("File", style="cyan")
    table.add_column("CID", style="green")
    table.add_column("Size", justify="right")
    if verbose:
        table.add_column("Modified")

    for record in files:
        row = [record.relative_path, record.cid, format_size(record.stats.size)]
        if verbose:
            row.append(record.stats.mtime.isoformat(timespec="seconds"))
        table.add_row(*row)

    console.print(table)


def build_config(folder: Optional[Path]) -> SyncConfig:
    """Config for CLI runs; the commands start the engine themselves."""
    overrides = {"auto_start": False}
    if folder is not None:
        overrides["folder"] = folder
    return SyncConfig(**overrides)


async def run_sync(folder: Optional[Path], verbose: bool = False) -> SyncState:
    """Connect, sync the folder once and disconnect."""
    async with SyncEngine(build_config(folder)) as engine:
        state = engine.state
        if not state.connected:
            console.print("[red]Could not connect to an IPFS daemon[/red]")
            raise typer.Exit(1)
        if not state.synced:
            console.print(f"[red]Failed to sync {state.folder}[/red]")
            raise typer.Exit(1)
        display_files(console, state.files, verbose)
        return state


async def run_watch(folder: Optional[Path], verbose: bool = False) -> None:
    """Sync the folder and keep watching it until interrupted."""
    engine = SyncEngine(build_config(folder))

    def on_state_changed(state: SyncState) -> None:
        if verbose or state.synced or not state.connected:
            display_state_line(console, state)

    engine.on_state_changed(on_state_changed)
    engine.on_files_added(lambda: console.print("[green]New files added to IPFS[/green]"))

    try:
        state = await engine.start()
        if not state.connected:
            console.print("[red]Could not connect to an IPFS daemon[/red]")
            raise typer.Exit(1)
        console.print(f"\n[cyan]Watching {state.folder} for changes...[/cyan]")
        await asyncio.Event().wait()
    finally:
        await engine.stop()


@app.command()
def sync(
    folder: Optional[Path] = typer.Option(
        None,
        "--folder",
        "-f",
        help="Folder to sync (defaults to ~/IPFS).",
    ),
    verbose: bool = typer.Option(
        False,
        "--verbose",
        "-v",
        help="Show detailed file information.",
    ),
) -> None:
    """Add every file in the folder to IPFS once."""
    try:
        asyncio.run(run_sync(folder, verbose))

    except Exception as e:
        if not isinstance(e, typer.Exit):
            logger.exception("Sync failed")
            typer.echo(f"Error during sync: {e}", err=True)
            raise typer.Exit(1)
        raise


@app.command()
def run(
    folder: Optional[Path] = typer.Option(
        None,
        "--folder",
        "-f",
        help="Folder to sync (defaults to ~/IPFS).",
    ),
    verbose: bool = typer.Option(
        False,
        "--verbose",
        "-v",
        help="Show every state change.",
    ),
) -> None:
    """Keep the folder in sync with IPFS until interrupted."""
    try:
        asyncio.run(run_watch(folder, verbose))

    except KeyboardInterrupt:
        console.print("\n[cyan]Stopped[/cyan]")
    except Exception as e:
        if not isinstance(e, typer.Exit):
            logger.exception("Watch failed")
            typer.echo(f"Error while watching: {e}", err=True)
            raise typer.Exit(1)
        raise
