"""Configuration management for ipfs-sync."""

from pathlib import Path
from typing import Literal, Optional

from pydantic import Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

DATA_DIR_NAME = ".ipfs-sync"
REPO_DIR_NAME = "repo"
FOLDER_NAME = "IPFS"


class SyncConfig(BaseSettings):
    """Configuration for a folder synced with an IPFS repository."""

    folder: Path = Field(
        default_factory=lambda: Path.home() / FOLDER_NAME,
        description="Directory to watch and add to IPFS",
    )
    auto_start: bool = Field(
        default=True,
        description="Start syncing as soon as the engine is created",
    )
    repo_path: Path = Field(
        default_factory=lambda: Path.home() / DATA_DIR_NAME / REPO_DIR_NAME,
        description="IPFS repository used by the local node",
    )
    ipfs_binary: str = Field(
        default="ipfs",
        description="Name or path of the ipfs executable",
    )

    sync_delay: int = Field(
        default=1000,
        description="Milliseconds to wait after changes before syncing",
        gt=0,
    )
    force_polling: bool = Field(
        default=False,
        description="Poll the folder instead of using native notifications",
    )
    api_timeout: Optional[float] = Field(
        default=None,
        description="Timeout in seconds for daemon API calls, None waits forever",
    )

    log_level: Literal["TRACE", "DEBUG", "INFO", "WARNING", "ERROR"] = "INFO"
    log_file: Optional[str] = Field(
        default=None,
        description="Log file path relative to the home directory",
    )

    model_config = SettingsConfigDict(
        env_prefix="IPFS_SYNC_",
        extra="ignore",
        env_file=".env",
        env_file_encoding="utf-8",
    )

    @field_validator("folder", "repo_path")
    @classmethod
    def expand_path(cls, v: Path) -> Path:
        """Expand ~ and make the path absolute."""
        return Path(v).expanduser().absolute()
