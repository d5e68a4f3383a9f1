"""Test sync command functionality."""

from datetime import datetime
from io import StringIO
from pathlib import Path

import pytest
from rich.console import Console
from typer.testing import CliRunner

from ipfs_sync.cli.commands import sync as sync_command
from ipfs_sync.cli.commands.sync import (
    build_config,
    display_files,
    display_state_line,
    format_size,
)
from ipfs_sync.cli.main import app
from ipfs_sync.file_utils import FileStats
from ipfs_sync.store.client import AddResult
from ipfs_sync.sync import FileRecord, SyncEngine, SyncState


@pytest.fixture
def console():
    """Create test console that captures output."""
    output = StringIO()
    return Console(file=output, width=200), output


@pytest.fixture
def patched_engine(monkeypatch, fake_store, tmp_path):
    """Make the CLI build engines that talk to the fake store."""
    monkeypatch.setenv("HOME", str(tmp_path))
    monkeypatch.setattr(
        sync_command, "SyncEngine", lambda config: SyncEngine(config, store=fake_store)
    )
    return fake_store


def make_record(folder: Path, name: str, size: int) -> FileRecord:
    return FileRecord(
        path=folder / name,
        relative_path=name,
        stats=FileStats(
            size=size, mtime=datetime(2024, 5, 1, 12, 0), ctime=datetime(2024, 5, 1), mode=0o644
        ),
        store_result=AddResult(name=name, hash="QmNote", size=size + 8),
    )


@pytest.mark.parametrize(
    "size,expected",
    [
        (0, "0 B"),
        (1023, "1023 B"),
        (1536, "1.5 KB"),
        (5 * 1024**2, "5.0 MB"),
        (3 * 1024**3, "3.0 GB"),
    ],
)
def test_format_size(size, expected):
    assert format_size(size) == expected


def test_display_disconnected(console, tmp_path):
    test_console, output = console
    display_state_line(test_console, SyncState(folder=tmp_path))
    assert "disconnected" in output.getvalue()
    assert "(0 files)" in output.getvalue()


def test_display_synced(console, tmp_path, kubo_api):
    test_console, output = console
    state = SyncState(folder=tmp_path).merge(
        daemon=kubo_api.handle(), connected=True, synced=True
    )
    display_state_line(test_console, state)
    assert "synced via /ip4/127.0.0.1/tcp/5001" in output.getvalue()


def test_display_no_files(console):
    test_console, output = console
    display_files(test_console, [])
    assert "No files in folder" in output.getvalue()


def test_display_files(console, tmp_path):
    test_console, output = console
    display_files(test_console, [make_record(tmp_path, "note.txt", 2048)])
    text = output.getvalue()
    assert "note.txt" in text
    assert "QmNote" in text
    assert "2.0 KB" in text
    assert "2024-05-01" not in text


def test_display_files_verbose(console, tmp_path):
    test_console, output = console
    display_files(test_console, [make_record(tmp_path, "note.txt", 10)], verbose=True)
    assert "2024-05-01T12:00:00" in output.getvalue()


def test_build_config(monkeypatch, tmp_path):
    monkeypatch.setenv("HOME", str(tmp_path))
    assert build_config(None).folder == tmp_path / "IPFS"
    assert build_config(tmp_path / "docs").folder == tmp_path / "docs"
    assert build_config(None).auto_start is False


def test_sync_command(patched_engine, tmp_path):
    folder = tmp_path / "shared"
    folder.mkdir()
    (folder / "note.txt").write_text("hello")

    result = CliRunner().invoke(app, ["sync", "--folder", str(folder)])

    assert result.exit_code == 0, result.output
    assert "note.txt" in result.output


def test_sync_command_not_connected(patched_engine, tmp_path):
    patched_engine.node_error = RuntimeError("ipfs executable not found")

    result = CliRunner().invoke(app, ["sync", "--folder", str(tmp_path / "shared")])

    assert result.exit_code == 1
    assert "Could not connect" in result.output


def test_sync_command_sync_failure(patched_engine, tmp_path, kubo_api):
    kubo_api.fail = True
    folder = tmp_path / "shared"
    folder.mkdir()
    (folder / "note.txt").write_text("hello")

    result = CliRunner().invoke(app, ["sync", "--folder", str(folder)])

    assert result.exit_code == 1
    assert "Failed to sync" in result.output
