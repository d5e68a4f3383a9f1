"""Utilities for listing and inspecting files in the synced folder."""

import stat as stat_module
from dataclasses import dataclass
from datetime import datetime
from os import stat_result
from pathlib import Path
from typing import List

import aiofiles.os
from loguru import logger
from pydantic import BaseModel, ConfigDict

from ipfs_sync.exceptions import EnumerationError, FileError

# Files written by editors while saving, never worth adding
TRANSIENT_SUFFIXES = (".tmp", ".swp", ".swx", ".part", ".crdownload", "~")


@dataclass(frozen=True)
class EnumeratedFile:
    """A file found in the folder."""

    path: Path


class FileStats(BaseModel):
    """Filesystem metadata captured after a file is added."""

    model_config = ConfigDict(frozen=True)

    size: int
    mtime: datetime
    ctime: datetime
    mode: int

    @classmethod
    def from_stat_result(cls, st: stat_result) -> "FileStats":
        return cls(
            size=st.st_size,
            mtime=datetime.fromtimestamp(st.st_mtime),
            ctime=datetime.fromtimestamp(st.st_ctime),
            mode=stat_module.S_IMODE(st.st_mode),
        )


def is_ignored(name: str) -> bool:
    """Hidden and transient files are not synced."""
    return name.startswith(".") or name.endswith(TRANSIENT_SUFFIXES)


async def list_files(folder: Path) -> List[EnumeratedFile]:
    """
    List the files currently in a folder, recursively.

    Args:
        folder: Directory to list

    Returns:
        Files ordered by their path relative to folder

    Raises:
        EnumerationError: If the folder is missing or cannot be read
    """
    logger.debug(f"Listing files in: {folder}")
    if not folder.is_dir():
        raise EnumerationError(f"Not a directory: {folder}")

    files = []

    def on_error(e: OSError) -> None:
        raise EnumerationError(f"Failed to list {e.filename}: {e}") from e

    for root, dirs, names in folder.walk(on_error=on_error):
        # prune hidden directories in place so walk skips them
        dirs[:] = [d for d in dirs if not is_ignored(d)]
        for name in names:
            path = root / name
            if is_ignored(name) or not path.is_file():
                continue
            files.append(EnumeratedFile(path=path))

    files.sort(key=lambda f: f.path.relative_to(folder).as_posix())
    logger.debug(f"Found {len(files)} files")
    return files


async def file_stats(path: Path) -> FileStats:
    """Stat a file without blocking the event loop."""
    st = await aiofiles.os.stat(path)
    return FileStats.from_stat_result(st)


async def ensure_directory(path: Path) -> None:
    """
    Ensure directory exists, creating if necessary.

    Args:
        path: Directory path to ensure

    Raises:
        FileError: If directory creation fails
    """
    try:
        path.mkdir(parents=True, exist_ok=True)
    except Exception as e:
        logger.error(f"Failed to create directory: {path}: {e}")
        raise FileError(f"Failed to create directory {path}: {e}") from e
