"""Access to the IPFS node (control) and daemon API (data)."""

import shutil
from pathlib import Path
from typing import Optional

from ipfs_sync.exceptions import NodeUnavailableError
from ipfs_sync.store.client import AddEntry, AddResult, DaemonHandle
from ipfs_sync.store.multiaddr import multiaddr_to_url
from ipfs_sync.store.node import LocalNode


class StoreClient:
    """Entry point for getting a local node or connecting to a running daemon."""

    def __init__(self, binary: str = "ipfs", timeout: Optional[float] = None):
        self.binary = binary
        self.timeout = timeout

    async def get_local_node(self, repo_path: Path) -> LocalNode:
        """Get a node bound to repo_path, failing if ipfs is not installed."""
        if shutil.which(self.binary) is None:
            raise NodeUnavailableError(f"ipfs executable not found: {self.binary}")
        return LocalNode(repo_path, binary=self.binary, timeout=self.timeout)

    async def connect(self, api_address: str) -> DaemonHandle:
        """Connect to a daemon that is already running."""
        return DaemonHandle(api_address, timeout=self.timeout)


__all__ = [
    "StoreClient",
    "LocalNode",
    "DaemonHandle",
    "AddEntry",
    "AddResult",
    "multiaddr_to_url",
]
