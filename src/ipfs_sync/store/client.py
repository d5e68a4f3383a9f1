"""Client for the IPFS daemon HTTP API."""

import asyncio
import json
from dataclasses import dataclass
from typing import List, Optional, Sequence
from urllib.parse import quote

import httpx
from loguru import logger
from pydantic import BaseModel, ConfigDict

from ipfs_sync.exceptions import IngestError, StoreError
from ipfs_sync.store.multiaddr import multiaddr_to_url


@dataclass(frozen=True)
class AddEntry:
    """A file to add, named by its path relative to the synced folder."""

    relative_path: str
    content: bytes


class AddResult(BaseModel):
    """Result returned by the daemon for one added file."""

    model_config = ConfigDict(frozen=True)

    name: str
    hash: str
    size: int = 0


class DaemonHandle:
    """Connection to a running IPFS daemon.

    The handle either owns the daemon process (it was spawned by
    LocalNode.start_daemon) or is attached to a daemon started elsewhere.
    """

    def __init__(
        self,
        api_address: str,
        process: Optional[asyncio.subprocess.Process] = None,
        output_task: Optional[asyncio.Task] = None,
        timeout: Optional[float] = None,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ):
        self.api_address = api_address
        self.base_url = multiaddr_to_url(api_address)
        self.process = process
        self.output_task = output_task
        self._client = httpx.AsyncClient(
            base_url=self.base_url, timeout=timeout, transport=transport
        )

    def __repr__(self) -> str:
        kind = "spawned" if self.owns_process else "attached"
        return f"DaemonHandle({self.api_address!r}, {kind})"

    @property
    def owns_process(self) -> bool:
        return self.process is not None

    @property
    def closed(self) -> bool:
        return self._client.is_closed

    async def add_files(self, entries: Sequence[AddEntry]) -> List[AddResult]:
        """
        Add a batch of files in a single API call.

        Args:
            entries: Files to add

        Returns:
            One result per entry, in the same order as entries

        Raises:
            IngestError: If the request fails or a file is missing from the response
        """
        if not entries:
            return []

        logger.debug(f"Adding {len(entries)} files to {self.base_url}")
        files = [
            (
                "file",
                (quote(entry.relative_path, safe=""), entry.content, "application/octet-stream"),
            )
            for entry in entries
        ]
        try:
            response = await self._client.post(
                "/api/v0/add", params={"pin": "true", "progress": "false"}, files=files
            )
            response.raise_for_status()
        except httpx.HTTPError as e:
            raise IngestError(f"Failed to add files: {e}") from e

        # the response is one JSON object per line, including entries for
        # intermediate directories of nested paths
        results = {}
        for line in response.text.splitlines():
            if not line.strip():
                continue
            try:
                data = json.loads(line)
            except json.JSONDecodeError as e:
                raise IngestError(f"Invalid add response: {line!r}") from e
            if data.get("Type") == "error":
                raise IngestError(f"Daemon rejected add: {data.get('Message')}")
            if "Name" in data and "Hash" in data:
                results[data["Name"]] = AddResult(
                    name=data["Name"], hash=data["Hash"], size=int(data.get("Size") or 0)
                )

        missing = [e.relative_path for e in entries if e.relative_path not in results]
        if missing:
            raise IngestError(f"No add result for: {', '.join(missing)}")
        return [results[e.relative_path] for e in entries]

    async def version(self) -> dict:
        """Get the daemon version info."""
        try:
            response = await self._client.post("/api/v0/version")
            response.raise_for_status()
        except httpx.HTTPError as e:
            raise StoreError(f"Failed to get daemon version: {e}") from e
        return response.json()

    async def close(self, terminate: bool = True) -> None:
        """
        Close the API connection.

        Args:
            terminate: Also stop the daemon process if this handle spawned it
        """
        await self._client.aclose()

        if self.process is not None and terminate and self.process.returncode is None:
            logger.info(f"Stopping ipfs daemon (pid {self.process.pid})")
            self.process.terminate()
            await self.process.wait()

        if self.output_task is not None and not self.output_task.done():
            self.output_task.cancel()
            try:
                await self.output_task
            except asyncio.CancelledError:
                pass
