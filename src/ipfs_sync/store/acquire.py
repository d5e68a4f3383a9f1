"""Acquire a daemon: start our own, or attach to one that is already running."""

import json
from enum import Enum
from pathlib import Path
from typing import Any, Dict

from loguru import logger

from ipfs_sync.exceptions import ConfigParseError
from ipfs_sync.store import StoreClient
from ipfs_sync.store.client import DaemonHandle
from ipfs_sync.store.node import LocalNode


class AcquisitionState(str, Enum):
    UNINITIALIZED = "uninitialized"
    INITIALIZED = "initialized"
    DAEMON_STARTED = "daemon_started"
    ATTACHED_TO_EXISTING = "attached_to_existing"
    FAILED = "failed"


class DaemonAcquirer:
    """
    Walks a local node from an unknown state to a usable daemon handle.

    uninitialized -> initialized -> daemon_started
                                 -> attached_to_existing (start failed, config readable)
    Any step may end in failed.
    """

    def __init__(self, store: StoreClient, repo_path: Path):
        self.store = store
        self.repo_path = repo_path
        self.state = AcquisitionState.UNINITIALIZED

    async def acquire(self) -> DaemonHandle:
        """Run every step and return the daemon handle.

        Raises:
            StoreError: If any step fails, including the attach fallback
        """
        try:
            node = await self.get_node()
            node = await self.init_node(node)
            return await self.start_daemon(node)
        except Exception:
            self.state = AcquisitionState.FAILED
            raise

    async def get_node(self) -> LocalNode:
        try:
            return await self.store.get_local_node(self.repo_path)
        except Exception as e:
            logger.error(f"Failed to get local node: {e}")
            raise

    async def init_node(self, node: LocalNode) -> LocalNode:
        """Initialize the repository unless it already is."""
        if not node.initialized:
            try:
                node = await node.init()
            except Exception as e:
                logger.error(f"Failed to initialize node: {e}")
                raise
        self.state = AcquisitionState.INITIALIZED
        return node

    async def get_config(self, node: LocalNode) -> Dict[str, Any]:
        """Read and parse the config of an existing repository."""
        try:
            config_string = await node.get_config("show")
        except Exception as e:
            logger.error(f"Failed to read node config: {e}")
            raise

        try:
            config = json.loads(config_string)
        except json.JSONDecodeError as e:
            raise ConfigParseError(f"Node config is not valid JSON: {e}") from e
        if not isinstance(config, dict):
            raise ConfigParseError("Node config is not a JSON object")
        return config

    async def connect_to_existing_daemon(self, node: LocalNode) -> DaemonHandle:
        config = await self.get_config(node)
        try:
            api_address = config["Addresses"]["API"]
        except (KeyError, TypeError) as e:
            raise ConfigParseError("Node config has no Addresses.API") from e
        # Kubo allows a list of API addresses, the first one is enough
        if isinstance(api_address, list):
            if not api_address:
                raise ConfigParseError("Node config has an empty Addresses.API")
            api_address = api_address[0]

        daemon = await self.store.connect(api_address)
        logger.info(f"Attached to running daemon at {api_address}")
        self.state = AcquisitionState.ATTACHED_TO_EXISTING
        return daemon

    async def start_daemon(self, node: LocalNode) -> DaemonHandle:
        """Start a daemon, attaching to a running one if that fails."""
        try:
            daemon = await node.start_daemon()
        except Exception as e:
            # usually means another daemon already holds the repo lock or port
            logger.warning(f"Failed to start daemon, trying to attach to a running one: {e}")
            return await self.connect_to_existing_daemon(node)

        self.state = AcquisitionState.DAEMON_STARTED
        return daemon
