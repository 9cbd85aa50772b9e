"""Pytest configuration and fixtures for remsh tests.

CRITICAL: Tests must never touch the real ~/.remsh directory.
"""

import pytest


@pytest.fixture(autouse=True)
def isolated_remsh_home(tmp_path, monkeypatch):
    """Point config and history storage at a temporary ~/.remsh.

    Every test gets its own directory, so saved config and connection
    history never leak between tests or into the user's home.
    """
    from remsh.config_manager import ConfigManager
    from remsh.connection_tracker import ConnectionTracker

    remsh_dir = tmp_path / ".remsh"

    monkeypatch.setattr(ConfigManager, "DEFAULT_CONFIG_DIR", remsh_dir)
    monkeypatch.setattr(ConfigManager, "DEFAULT_CONFIG_FILE", remsh_dir / "config.toml")
    monkeypatch.setattr(ConnectionTracker, "DEFAULT_HISTORY_DIR", remsh_dir)
    monkeypatch.setattr(ConnectionTracker, "DEFAULT_HISTORY_FILE", remsh_dir / "history.toml")

    return remsh_dir
