"""Common test fixtures."""

import hashlib
import json
import re
from pathlib import Path
from typing import AsyncGenerator, Callable, Dict, List, Optional
from urllib.parse import unquote

import httpx
import pytest
import pytest_asyncio

from ipfs_sync.config import SyncConfig
from ipfs_sync.store.client import DaemonHandle
from ipfs_sync.sync import SyncEngine

API_ADDRESS = "/ip4/127.0.0.1/tcp/5001"

FILENAME_RE = re.compile(r'filename="([^"]*)"')


def fake_cid(name: str) -> str:
    return "Qm" + hashlib.sha256(name.encode()).hexdigest()[:44]


class FakeKuboAPI:
    """Answers the daemon HTTP API calls the sync makes."""

    def __init__(self):
        self.cids: Dict[str, str] = {}
        self.added: List[List[str]] = []
        self.fail = False
        self.on_add: Optional[Callable[[List[str]], None]] = None

    def handler(self, request: httpx.Request) -> httpx.Response:
        if request.url.path == "/api/v0/version":
            return httpx.Response(200, json={"Version": "0.30.0", "Commit": "abc"})

        if request.url.path == "/api/v0/add":
            if self.fail:
                return httpx.Response(500, json={"Message": "add failed", "Type": "error"})
            body = request.content.decode("utf-8", errors="replace")
            names = [unquote(n) for n in FILENAME_RE.findall(body)]
            self.added.append(names)
            if self.on_add is not None:
                self.on_add(names)
            lines = [
                json.dumps({"Name": n, "Hash": self.cids.get(n, fake_cid(n)), "Size": "12"})
                for n in names
            ]
            return httpx.Response(200, text="\n".join(lines) + "\n")

        return httpx.Response(404, text="404 page not found")

    def transport(self) -> httpx.MockTransport:
        return httpx.MockTransport(self.handler)

    def handle(self, api_address: str = API_ADDRESS) -> DaemonHandle:
        return DaemonHandle(api_address, transport=self.transport())


class FakeNode:
    """Stands in for LocalNode without running ipfs."""

    def __init__(
        self,
        repo_path: Path,
        api: FakeKuboAPI,
        initialized: bool = True,
        config: Optional[str] = None,
    ):
        self.repo_path = repo_path
        self.api = api
        self.initialized = initialized
        self.config = config if config is not None else json.dumps(
            {"Addresses": {"API": API_ADDRESS}}
        )
        self.init_error: Optional[Exception] = None
        self.start_error: Optional[Exception] = None
        self.config_error: Optional[Exception] = None
        self.init_calls = 0
        self.start_calls = 0
        self.config_calls: List[str] = []

    async def init(self) -> "FakeNode":
        self.init_calls += 1
        if self.init_error is not None:
            raise self.init_error
        self.initialized = True
        return self

    async def start_daemon(self) -> DaemonHandle:
        self.start_calls += 1
        if self.start_error is not None:
            raise self.start_error
        return self.api.handle()

    async def get_config(self, key: str = "show") -> str:
        self.config_calls.append(key)
        if self.config_error is not None:
            raise self.config_error
        return self.config


class FakeStoreClient:
    def __init__(self, node: FakeNode, api: FakeKuboAPI):
        self.node = node
        self.api = api
        self.node_error: Optional[Exception] = None
        self.repo_paths: List[Path] = []
        self.connected_to: List[str] = []

    async def get_local_node(self, repo_path: Path) -> FakeNode:
        self.repo_paths.append(repo_path)
        if self.node_error is not None:
            raise self.node_error
        return self.node

    async def connect(self, api_address: str) -> DaemonHandle:
        self.connected_to.append(api_address)
        return self.api.handle(api_address)


@pytest.fixture
def folder(tmp_path: Path) -> Path:
    path = tmp_path / "IPFS"
    path.mkdir()
    return path


@pytest.fixture
def sync_config(tmp_path: Path, folder: Path) -> SyncConfig:
    return SyncConfig(
        folder=folder,
        repo_path=tmp_path / "repo",
        auto_start=False,
        sync_delay=50,
    )


@pytest.fixture
def kubo_api() -> FakeKuboAPI:
    return FakeKuboAPI()


@pytest.fixture
def fake_node(sync_config: SyncConfig, kubo_api: FakeKuboAPI) -> FakeNode:
    return FakeNode(sync_config.repo_path, kubo_api)


@pytest.fixture
def fake_store(fake_node: FakeNode, kubo_api: FakeKuboAPI) -> FakeStoreClient:
    return FakeStoreClient(fake_node, kubo_api)


@pytest_asyncio.fixture
async def engine(sync_config, fake_store) -> AsyncGenerator[SyncEngine, None]:
    engine = SyncEngine(sync_config, store=fake_store)
    yield engine
    await engine.stop()
