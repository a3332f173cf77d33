"""
Shared test fixtures for vmclone tests.

This module provides common fixtures used across all test types:
- In-memory cloud client with a clonable VM
- Progress display writing to a buffer
- Fixed clock for deterministic resource names
"""

import io
from datetime import UTC, datetime

import pytest

from tests.mocks.azure_mock import create_clone_environment
from vmclone.modules.progress import ProgressDisplay

FIXED_TIME = datetime(2026, 3, 14, 9, 26, 53, tzinfo=UTC)


@pytest.fixture
def fixed_clock():
    """Clock returning FIXED_TIME (snapshot suffix 20260314-092653)."""
    return lambda: FIXED_TIME


@pytest.fixture
def progress_output():
    return io.StringIO()


@pytest.fixture
def progress(progress_output):
    """ProgressDisplay writing plain ASCII to a buffer."""
    return ProgressDisplay(use_unicode=False, output_file=progress_output, color=False)


@pytest.fixture
def fake_client():
    """FakeCloudClient holding Linux VM web01 in rg1 with a NIC-level NSG."""
    return create_clone_environment()
