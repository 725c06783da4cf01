"""Pytest configuration and shared fixtures for sepia-bids testing."""

import pytest
import tempfile
from pathlib import Path

from sepia_bids.scripts.logger import STREAM_ROLES, get_handler, make_logger
from sepia_bids.tests.fixtures.synthetic_data import make_multiecho_dataset


@pytest.fixture
def temp_dir():
    """Temporary directory for test files."""
    with tempfile.TemporaryDirectory() as tmp:
        yield Path(tmp)


@pytest.fixture
def bids_dir(temp_dir):
    """Input directory inside the temporary directory."""
    path = temp_dir / "anat"
    path.mkdir()
    return path


@pytest.fixture
def multiecho_dataset(bids_dir):
    """Two-echo 3D GRE acquisition; yields (directory, data written per part and echo)."""
    written = make_multiecho_dataset(str(bids_dir), num_echoes=2)
    return bids_dir, written


@pytest.fixture
def output_prefix(temp_dir):
    return str(temp_dir / "out" / "sub-01_")


@pytest.fixture
def logger():
    """The package logger with its in-memory records cleared."""
    log = make_logger()
    for role in STREAM_ROLES:
        get_handler(log, role).stream.items.clear()
    return log
