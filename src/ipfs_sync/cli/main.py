"""Main CLI entry point for ipfs-sync."""  # pragma: no cover

from ipfs_sync.cli.app import app  # pragma: no cover

# Register commands
from ipfs_sync.cli.commands import sync  # pragma: no cover

__all__ = ["app", "sync"]  # pragma: no cover

if __name__ == "__main__":  # pragma: no cover
    app()
