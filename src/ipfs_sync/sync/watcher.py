"""Watch a folder for changes."""

import asyncio
from pathlib import Path
from typing import Callable, Optional, Set, Tuple

from loguru import logger
from watchfiles import Change, awatch

from ipfs_sync.file_utils import is_ignored

Changes = Set[Tuple[Change, str]]


class FolderWatcher:
    """Calls back once per batch of filesystem changes in a folder.

    Batching comes from the watchfiles debounce; nothing else is coalesced.
    """

    def __init__(
        self,
        folder: Path,
        callback: Callable[[Changes], None],
        debounce: int = 1000,
        force_polling: bool = False,
    ):
        # watchfiles reports resolved paths
        self.folder = folder.resolve()
        self.callback = callback
        self.debounce = debounce
        self.force_polling = force_polling
        self._stop_event = asyncio.Event()
        self._task: Optional[asyncio.Task] = None

    @property
    def running(self) -> bool:
        return self._task is not None and not self._task.done()

    def filter_changes(self, change: Change, path: str) -> bool:
        """Ignore hidden and transient files, and anything under a hidden directory."""
        changed = Path(path)
        if changed.is_relative_to(self.folder):
            changed = changed.relative_to(self.folder)
        return not any(is_ignored(part) for part in changed.parts)

    def start(self) -> None:
        if self.running:
            return
        self._stop_event.clear()
        self._task = asyncio.create_task(self.run(), name=f"watch:{self.folder}")

    async def run(self) -> None:
        """Watch until stop() is called."""
        logger.info(f"Watching for changes in {self.folder}")
        try:
            async for changes in awatch(
                self.folder,
                watch_filter=self.filter_changes,
                debounce=self.debounce,
                recursive=True,
                force_polling=self.force_polling,
                stop_event=self._stop_event,
            ):
                logger.debug(f"{len(changes)} changes in {self.folder}")
                self.callback(changes)
        except Exception as e:
            logger.error(f"Watching {self.folder} failed: {e}")
            raise
        finally:
            logger.info(f"Stopped watching {self.folder}")

    async def stop(self) -> None:
        if self._task is None:
            return
        self._stop_event.set()
        task, self._task = self._task, None
        try:
            await task
        except Exception as e:
            logger.debug(f"Watcher for {self.folder} ended with error: {e}")
