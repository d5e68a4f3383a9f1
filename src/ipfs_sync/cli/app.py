from typing import Optional

import typer

from ipfs_sync.config import SyncConfig
from ipfs_sync.utils import setup_logging


def version_callback(value: bool) -> None:
    """Show version and exit."""
    if value:  # pragma: no cover
        import ipfs_sync

        config = SyncConfig()
        typer.echo(f"ipfs-sync version: {ipfs_sync.__version__}")
        typer.echo(f"Synced folder: {config.folder}")
        typer.echo(f"Repository: {config.repo_path}")
        raise typer.Exit()


app = typer.Typer(name="ipfs-sync")


@app.callback()
def app_callback(
    ctx: typer.Context,
    debug: bool = typer.Option(
        False,
        "--debug",
        help="Log debug output.",
        envvar="IPFS_SYNC_DEBUG",
    ),
    version: Optional[bool] = typer.Option(
        None,
        "--version",
        "-V",
        help="Show version and exit.",
        callback=version_callback,
        is_eager=True,
    ),
) -> None:
    """ipfs-sync - keep a folder in sync with IPFS."""
    if ctx.invoked_subcommand is not None:  # pragma: no cover
        config = SyncConfig()
        setup_logging(log_level="DEBUG" if debug else config.log_level, log_file=config.log_file)
