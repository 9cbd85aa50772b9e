"""Connection history for remsh.

Tracks the last connection and recently used target nodes in
~/.remsh/history.toml, so a new remsh process can reconnect and offer
familiar nodes as candidates.
"""

import logging
import os
import tomllib
from datetime import UTC, datetime
from pathlib import Path
from typing import Any

import tomli_w

from remsh import RemshError

logger = logging.getLogger(__name__)


class ConnectionTrackerError(RemshError):
    """Raised when connection history cannot be saved."""

    pass


class ConnectionTracker:
    """Track remsh connections in ~/.remsh/history.toml."""

    DEFAULT_HISTORY_DIR = Path.home() / ".remsh"
    DEFAULT_HISTORY_FILE = DEFAULT_HISTORY_DIR / "history.toml"
    DEFAULT_HISTORY_SIZE = 20

    @classmethod
    def ensure_history_dir(cls) -> Path:
        """Ensure history directory exists with secure permissions (0700)."""
        try:
            cls.DEFAULT_HISTORY_DIR.mkdir(parents=True, exist_ok=True)
            os.chmod(cls.DEFAULT_HISTORY_DIR, 0o700)
            return cls.DEFAULT_HISTORY_DIR
        except Exception as e:
            raise ConnectionTrackerError(f"Failed to create history directory: {e}") from e

    @classmethod
    def load_history(cls) -> dict[str, Any]:
        """Load history data from file, returns empty dict if not found."""
        history_path = cls.DEFAULT_HISTORY_FILE

        if not history_path.exists():
            return {}

        try:
            with open(history_path, "rb") as f:
                return tomllib.load(f)
        except Exception as e:
            logger.warning(f"Failed to load history file: {e}")
            return {}

    @classmethod
    def save_history(cls, history: dict[str, Any]) -> None:
        """Save history data to file atomically with secure permissions."""
        temp_path: Path | None = None
        try:
            cls.ensure_history_dir()
            history_path = cls.DEFAULT_HISTORY_FILE
            temp_path = history_path.with_suffix(".tmp")

            with open(temp_path, "wb") as f:
                tomli_w.dump(history, f)

            os.chmod(temp_path, 0o600)
            temp_path.replace(history_path)

        except Exception as e:
            if temp_path and temp_path.exists():
                temp_path.unlink()
            raise ConnectionTrackerError(f"Failed to save history: {e}") from e

    @classmethod
    def record_connection(
        cls,
        target: str,
        options: list[str],
        session_id: str | None = None,
        history_size: int = DEFAULT_HISTORY_SIZE,
        timestamp: datetime | None = None,
    ) -> None:
        """Record a connection as the last one and bump target to the front."""
        if timestamp is None:
            timestamp = datetime.now(UTC)

        history = cls.load_history()
        last: dict[str, Any] = {
            "target": target,
            "options": list(options),
            "connected_at": timestamp.isoformat(),
        }
        if session_id:
            last["session_id"] = session_id
        history["last"] = last

        targets = [t for t in history.get("targets", []) if t != target]
        history["targets"] = [target, *targets][: max(history_size, 1)]

        cls.save_history(history)

    @classmethod
    def get_last_connection(cls) -> dict[str, Any] | None:
        """Return the last connection record, or None if there is none."""
        last = cls.load_history().get("last")
        if not last or not last.get("target"):
            return None
        return {
            "target": last["target"],
            "options": list(last.get("options", [])),
            "session_id": last.get("session_id"),
            "connected_at": last.get("connected_at"),
        }

    @classmethod
    def recent_targets(cls) -> list[str]:
        """Recently used targets, most recent first."""
        return list(cls.load_history().get("targets", []))

    @classmethod
    def clear(cls) -> bool:
        """Delete the history file, returns True if one was removed."""
        history_path = cls.DEFAULT_HISTORY_FILE
        if not history_path.exists():
            return False
        try:
            history_path.unlink()
            return True
        except Exception as e:
            raise ConnectionTrackerError(f"Failed to clear history: {e}") from e


__all__ = ["ConnectionTracker", "ConnectionTrackerError"]
