"""Control of a local IPFS node through the ipfs command line."""

import asyncio
import os
import re
from collections import deque
from contextlib import suppress
from pathlib import Path
from typing import Dict, Optional

from loguru import logger

from ipfs_sync.exceptions import DaemonStartError, NodeCommandError, NodeUnavailableError
from ipfs_sync.store.client import DaemonHandle

READY_LINE = "Daemon is ready"
API_LINE = re.compile(r"API server listening on (\S+)")


class LocalNode:
    """A local IPFS node bound to one repository path."""

    def __init__(self, repo_path: Path, binary: str = "ipfs", timeout: Optional[float] = None):
        self.repo_path = repo_path
        self.binary = binary
        self.timeout = timeout

    def __repr__(self) -> str:
        return f"LocalNode({str(self.repo_path)!r})"

    @property
    def env(self) -> Dict[str, str]:
        env = dict(os.environ)
        env["IPFS_PATH"] = str(self.repo_path)
        return env

    @property
    def initialized(self) -> bool:
        """The repository has been created with `ipfs init`."""
        return (self.repo_path / "config").is_file()

    async def _spawn(self, *args: str, **kwargs) -> asyncio.subprocess.Process:
        command = [self.binary, *args]
        logger.debug(f"Running: {' '.join(command)}")
        try:
            return await asyncio.create_subprocess_exec(*command, env=self.env, **kwargs)
        except OSError as e:
            raise NodeUnavailableError(f"Failed to run {self.binary}: {e}") from e

    async def run(self, *args: str) -> str:
        """Run an ipfs command against the repository and return its stdout."""
        process = await self._spawn(
            *args, stdout=asyncio.subprocess.PIPE, stderr=asyncio.subprocess.PIPE
        )
        stdout, stderr = await process.communicate()
        if process.returncode != 0:
            raise NodeCommandError(
                [self.binary, *args], process.returncode, stderr.decode(errors="replace")
            )
        return stdout.decode(errors="replace")

    async def init(self) -> "LocalNode":
        """Create the repository."""
        logger.info(f"Initializing IPFS repository at {self.repo_path}")
        self.repo_path.mkdir(parents=True, exist_ok=True)
        await self.run("init")
        return self

    async def get_config(self, key: str = "show") -> str:
        """Read the node config. With the default key the whole config is returned as JSON."""
        return await self.run("config", key)

    async def start_daemon(self) -> DaemonHandle:
        """
        Spawn `ipfs daemon` and wait until it is ready.

        Returns:
            A handle bound to the API address the daemon announced

        Raises:
            DaemonStartError: If the daemon exits before it is ready
        """
        process = await self._spawn(
            "daemon", stdout=asyncio.subprocess.PIPE, stderr=asyncio.subprocess.STDOUT
        )
        logger.info(f"Started ipfs daemon (pid {process.pid})")

        api_address = None
        ready = False
        tail = deque(maxlen=10)
        try:
            while not ready:
                line = await process.stdout.readline()
                if not line:
                    break
                text = line.decode(errors="replace").rstrip()
                tail.append(text)
                logger.debug(f"ipfs daemon: {text}")
                match = API_LINE.search(text)
                if match:
                    api_address = match.group(1)
                ready = READY_LINE in text
        except BaseException:
            # startup was interrupted, the daemon must not outlive it
            await self._terminate(process)
            raise

        if not ready:
            returncode = await process.wait()
            raise DaemonStartError(
                f"ipfs daemon exited with {returncode} before it was ready: "
                + " | ".join(tail)
            )

        if api_address is None:
            await self._terminate(process)
            raise DaemonStartError("ipfs daemon did not announce an API address")

        output_task = asyncio.create_task(self._drain_output(process))
        return DaemonHandle(
            api_address, process=process, output_task=output_task, timeout=self.timeout
        )

    async def _terminate(self, process: asyncio.subprocess.Process) -> None:
        if process.returncode is None:
            logger.info(f"Stopping ipfs daemon (pid {process.pid})")
            with suppress(ProcessLookupError):
                process.terminate()
        await process.wait()

    async def _drain_output(self, process: asyncio.subprocess.Process) -> None:
        """Keep reading daemon output so the pipe never fills up."""
        while line := await process.stdout.readline():
            logger.debug(f"ipfs daemon: {line.decode(errors='replace').rstrip()}")
