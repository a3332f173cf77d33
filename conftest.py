"""Pytest configuration and fixtures for vmclone tests.

CRITICAL: Protects production configuration from test modifications.
"""

import os
import shutil
from pathlib import Path

import pytest


@pytest.fixture(scope="session", autouse=True)
def protect_production_config():
    """Protect ~/.vmclone/config.toml from being modified by tests.

    Backs up the real config.toml before any tests run and restores it
    after all tests complete.
    """
    config_path = Path.home() / ".vmclone" / "config.toml"
    backup_path = Path.home() / ".vmclone" / ".config.toml.pytest-backup"

    config_existed = config_path.exists()
    if config_existed:
        shutil.copy2(config_path, backup_path)

    yield

    if config_existed and backup_path.exists():
        shutil.copy2(backup_path, config_path)
        backup_path.unlink()
    elif backup_path.exists():
        backup_path.unlink()


@pytest.fixture(scope="session", autouse=True)
def prevent_real_azure_operations():
    """Mark test mode so nothing is mistaken for a real clone run."""
    os.environ["VMCLONE_TEST_MODE"] = "true"

    yield

    if "VMCLONE_TEST_MODE" in os.environ:
        del os.environ["VMCLONE_TEST_MODE"]


@pytest.fixture
def isolated_config(tmp_path):
    """Provide an isolated config directory for tests.

    Example:
        def test_something(isolated_config):
            config_path = isolated_config / "config.toml"
    """
    config_dir = tmp_path / ".vmclone"
    config_dir.mkdir(parents=True)
    return config_dir


@pytest.fixture
def mock_config_path(isolated_config, monkeypatch):
    """Point ConfigManager at the isolated config instead of ~/.vmclone."""
    config_file = isolated_config / "config.toml"

    from vmclone.config_manager import ConfigManager

    def mock_get_path(custom_path=None):
        if custom_path:
            return Path(custom_path)
        return config_file

    monkeypatch.setattr(ConfigManager, "get_config_path", mock_get_path)

    return config_file
