"""Engine that keeps a folder in sync with an IPFS repository."""

import asyncio
from pathlib import Path
from typing import Awaitable, Callable, List, Optional, Sequence

import aiofiles
import logfire
from loguru import logger

from ipfs_sync.config import SyncConfig
from ipfs_sync.exceptions import FileError, NotConnectedError
from ipfs_sync.file_utils import EnumeratedFile, ensure_directory, file_stats, list_files
from ipfs_sync.store import StoreClient
from ipfs_sync.store.acquire import DaemonAcquirer
from ipfs_sync.store.client import AddEntry, AddResult
from ipfs_sync.sync.events import EventHub, Listener, Subscription, SyncEvent
from ipfs_sync.sync.state import FileRecord, SyncState
from ipfs_sync.sync.watcher import Changes, FolderWatcher

FileLister = Callable[[Path], Awaitable[Sequence[EnumeratedFile]]]


class SyncEngine:
    """
    Keep a folder in sync with an IPFS repository. Any file added to the
    folder is automatically added to IPFS.

    Startup gets a local node, initializes its repository, then starts a
    daemon or attaches to one that is already running. Every change in the
    folder triggers a full resync pass: list, add, stat, commit.

    Listeners are notified through `files-added` (the number of synced files
    grew) and `state-changed` (every state update, with the new snapshot).
    """

    def __init__(
        self,
        config: Optional[SyncConfig] = None,
        store: Optional[StoreClient] = None,
        list_files: FileLister = list_files,
    ):
        self.config = config or SyncConfig()
        self.store = store or StoreClient(
            binary=self.config.ipfs_binary, timeout=self.config.api_timeout
        )
        self.list_files = list_files
        self.events = EventHub()
        self.watcher: Optional[FolderWatcher] = None
        self.acquirer: Optional[DaemonAcquirer] = None
        self.started = False
        self.start_task: Optional[asyncio.Task] = None

        self._start_lock = asyncio.Lock()
        self._state = SyncState(folder=self.config.folder)
        self._resync_task: Optional[asyncio.Task] = None
        self._resync_pending = False

        if self.config.auto_start:
            try:
                loop = asyncio.get_running_loop()
            except RuntimeError:
                logger.warning("No running event loop, call start() to begin syncing")
            else:
                self.start_task = loop.create_task(self.start())

    async def __aenter__(self) -> "SyncEngine":
        if self.start_task is not None:
            await self.start_task
        elif not self.started:
            await self.start()
        return self

    async def __aexit__(self, exc_type, exc, tb) -> None:
        await self.stop()

    @property
    def state(self) -> SyncState:
        return self._state

    def subscribe(self, event: SyncEvent, callback: Listener) -> Subscription:
        return self.events.subscribe(event, callback)

    def on_files_added(self, callback: Callable[[], None]) -> Subscription:
        return self.events.subscribe(SyncEvent.FILES_ADDED, callback)

    def on_state_changed(self, callback: Callable[[SyncState], None]) -> Subscription:
        return self.events.subscribe(SyncEvent.STATE_CHANGED, callback)

    def set_state(self, **partial) -> SyncState:
        """Update the state of the sync and notify listeners.

        Returns:
            The new snapshot
        """
        logger.debug(f"set_state: {', '.join(sorted(partial))}")
        previous = self._state
        state = previous.merge(**partial)

        if "files" in partial and len(state.files) > len(previous.files):
            self.events.emit(SyncEvent.FILES_ADDED)

        self._state = state
        self.events.emit(SyncEvent.STATE_CHANGED, state)
        return state

    async def start(self) -> SyncState:
        """Start watching, connect to a daemon and run the first resync.

        Failures are logged, not raised; check state.connected and state.synced.
        """
        async with self._start_lock:
            if self.state.connected:
                logger.debug(f"Already connected to {self.state.daemon}")
                return self.state

            logger.info(f"Starting sync of {self.state.folder}")
            self.started = True
            await self.watch()

            self.acquirer = DaemonAcquirer(self.store, self.config.repo_path)
            try:
                daemon = await self.acquirer.acquire()
            except Exception as e:
                logger.error(f"Failed to connect to IPFS: {e}")
                return self.state

            self.set_state(daemon=daemon, connected=True)

        await self.resync()
        return self.state

    async def watch(self) -> bool:
        """
        Create the folder if needed and watch it for changes.
        Called automatically by start().

        Returns:
            True if the folder is being watched
        """
        if self.watcher is not None and self.watcher.running:
            return True

        folder = self.state.folder
        try:
            await ensure_directory(folder)
        except FileError as e:
            logger.error(f"Not watching {folder}: {e}")
            return False

        self.watcher = FolderWatcher(
            folder,
            self._on_changes,
            debounce=self.config.sync_delay,
            force_polling=self.config.force_polling,
        )
        self.watcher.start()
        return True

    def _on_changes(self, changes: Changes) -> None:
        self.request_resync()

    def request_resync(self) -> asyncio.Task:
        """Schedule a resync pass.

        Only one pass runs at a time. Requests made while a pass is running
        are folded into a single follow-up pass.
        """
        if self._resync_task is not None and not self._resync_task.done():
            self._resync_pending = True
            return self._resync_task

        self._resync_task = asyncio.create_task(self._run_resyncs())
        return self._resync_task

    async def resync(self) -> bool:
        """Resync the folder now, or wait for the pass in progress and its follow-up.

        Returns:
            True if the last pass committed its files
        """
        # a pass is never cancelled, even when the caller is
        return await asyncio.shield(self.request_resync())

    async def _run_resyncs(self) -> bool:
        while True:
            self._resync_pending = False
            committed = await self._resync_pass()
            if not self._resync_pending:
                return committed

    async def _resync_pass(self) -> bool:
        """List the folder, add everything to IPFS and commit the new file list."""
        folder = self.state.folder
        self.set_state(synced=False)

        with logfire.span("resync", folder=str(folder)):
            try:
                found = await self.list_files(folder)
                results = await self._add_files(found)
                files = await self._map_file_data(results)
            except Exception as e:
                logger.error(f"Failed to sync {folder}: {e}")
                return False

        self.set_state(files=files, synced=True)
        logger.info(f"Synced {len(files)} files in {folder}")
        return True

    async def _add_files(self, found: Sequence[EnumeratedFile]) -> List[AddResult]:
        daemon = self.state.daemon
        if daemon is None:
            raise NotConnectedError("No IPFS daemon connected")

        folder = self.state.folder
        entries = []
        for f in found:
            async with aiofiles.open(f.path, "rb") as content:
                entries.append(
                    AddEntry(
                        relative_path=f.path.relative_to(folder).as_posix(),
                        content=await content.read(),
                    )
                )
        return await daemon.add_files(entries)

    async def _map_file_data(self, results: Sequence[AddResult]) -> List[FileRecord]:
        """Stat each added file and build its record."""
        folder = self.state.folder
        records = []
        for result in results:
            path = folder / result.name
            stats = await file_stats(path)
            records.append(
                FileRecord(path=path, relative_path=result.name, stats=stats, store_result=result)
            )
        return records

    async def stop(self) -> SyncState:
        """Stop watching and release the daemon.

        A daemon started by this engine is stopped; an attached one keeps running.
        """
        logger.info(f"Stopping sync of {self.state.folder}")
        if self.start_task is not None and not self.start_task.done():
            self.start_task.cancel()
            try:
                await self.start_task
            except asyncio.CancelledError:
                logger.debug("Cancelled startup")

        if self.watcher is not None:
            await self.watcher.stop()
            self.watcher = None

        if self._resync_task is not None:
            self._resync_pending = False
            await self._resync_task
            self._resync_task = None

        daemon = self.state.daemon
        if daemon is not None:
            try:
                await daemon.close()
            except Exception as e:
                logger.error(f"Failed to close daemon connection: {e}")
            self.set_state(daemon=None, connected=False)

        self.started = False
        return self.state
