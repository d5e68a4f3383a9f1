"""Observable state of a folder sync."""

from pathlib import Path
from typing import Any, Optional, Tuple

from pydantic import BaseModel, ConfigDict

from ipfs_sync.file_utils import FileStats
from ipfs_sync.store.client import AddResult, DaemonHandle


class FileRecord(BaseModel):
    """A file in the folder and what IPFS returned when it was added."""

    model_config = ConfigDict(frozen=True)

    path: Path
    relative_path: str
    stats: FileStats
    store_result: AddResult

    @property
    def cid(self) -> str:
        return self.store_result.hash


class SyncState(BaseModel):
    """Snapshot of the sync. Snapshots are replaced, never changed in place."""

    model_config = ConfigDict(frozen=True, arbitrary_types_allowed=True)

    folder: Path
    connected: bool = False
    synced: bool = False
    daemon: Optional[DaemonHandle] = None
    files: Tuple[FileRecord, ...] = ()

    def merge(self, **partial: Any) -> "SyncState":
        """
        Return a new snapshot with the given fields replaced.

        Fields not given keep their current value.

        Raises:
            ValueError: For unknown fields, a changed folder, or a daemon
                without connected (and the reverse)
        """
        unknown = set(partial) - set(type(self).model_fields)
        if unknown:
            raise ValueError(f"Unknown state fields: {', '.join(sorted(unknown))}")
        if "folder" in partial and Path(partial["folder"]) != self.folder:
            raise ValueError("The synced folder cannot change")
        if "files" in partial:
            partial["files"] = tuple(partial["files"])

        state = self.model_copy(update=partial)
        if (state.daemon is not None) != state.connected:
            raise ValueError("connected must be set together with daemon")
        return state
