"""
Pytest configuration and fixtures for fsfault tests.
"""

import os

import pytest
from pathlib import Path
import sys

# Add parent directory to path for imports
sys.path.insert(0, str(Path(__file__).parent.parent))

from core.fault_provider import FaultProvider
from core.fault_table import FaultTable
from core.fsio import RealProvider
from core.session import Session
from core.structured_events import EventEmitter, TRACE_DUMP


@pytest.fixture
def events():
    """Emitter that buffers every trace level, without console output."""
    return EventEmitter(trace_level=TRACE_DUMP, enable_console=False)


@pytest.fixture
def fault_table():
    return FaultTable()


@pytest.fixture
def provider(fault_table, events):
    """FaultProvider over the real filesystem."""
    return FaultProvider(delegate=RealProvider(), fault_table=fault_table, events=events)


@pytest.fixture
def session():
    return Session()


@pytest.fixture
def sample_file(tmp_path):
    path = tmp_path / "sample.txt"
    path.write_bytes(b"hello world")
    return path


@pytest.fixture
def open_fds():
    """Track descriptors opened by a test and close whatever is left."""
    fds = []
    yield fds
    for fd in fds:
        try:
            os.close(fd)
        except OSError:
            pass
