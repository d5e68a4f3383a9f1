"""Tests for logging setup."""

import sys

import pytest
from loguru import logger

from ipfs_sync.utils import setup_logging


@pytest.fixture(autouse=True)
def restore_logger():
    yield
    logger.remove()
    logger.add(sys.stderr)


def test_setup_logging_writes_log_file(monkeypatch, tmp_path):
    monkeypatch.setenv("HOME", str(tmp_path))

    setup_logging(log_level="DEBUG", log_file=".ipfs-sync/ipfs-sync.log")
    logger.debug("hello from the test")
    logger.complete()

    log_file = tmp_path / ".ipfs-sync" / "ipfs-sync.log"
    assert log_file.exists()
    assert "hello from the test" in log_file.read_text()


def test_setup_logging_level(capsys):
    setup_logging(log_level="WARNING")
    logger.info("quiet")
    logger.warning("loud")

    err = capsys.readouterr().err
    assert "loud" in err
    assert "quiet" not in err
