#!/usr/bin/env python3
"""
Saved Claude.ai session state (cookies + localStorage).

The snapshot is Playwright's storage_state JSON document. It is written
wholesale on every save and read back verbatim; nothing is merged.
"""

import json
import logging
import time
from pathlib import Path
from typing import Any, Callable, Dict, Optional

from session_errors import NoSavedSession

# Module-level logger
logger = logging.getLogger(__name__)


class SessionStateStore:
    """Read and write the session snapshot file."""

    def __init__(self, path: Path, clock: Callable[[], float] = time.time):
        """
        Args:
            path: Location of the snapshot JSON file
            clock: Returns the current epoch time in seconds (for age checks)
        """
        self.path = Path(path)
        self.clock = clock

    def exists(self) -> bool:
        return self.path.is_file()

    def age_hours(self) -> Optional[float]:
        """Hours since the snapshot was last written, or None if missing."""
        if not self.exists():
            return None
        return (self.clock() - self.path.stat().st_mtime) / 3600.0

    def is_stale(self, max_age_hours: float) -> bool:
        age = self.age_hours()
        return age is not None and age > max_age_hours

    def require(self) -> Path:
        """Return the snapshot path, raising NoSavedSession if absent."""
        if not self.exists():
            raise NoSavedSession(f"No auth state found at {self.path}")
        return self.path

    def load(self) -> Dict[str, Any]:
        """Load the snapshot as a storage_state dictionary.

        A truncated or hand-edited file (e.g. from two runs writing at once)
        is reported as NoSavedSession rather than a JSON traceback.
        """
        self.require()
        try:
            with open(self.path, 'r') as f:
                state = json.load(f)
        except ValueError as e:
            raise NoSavedSession(
                f"Auth state at {self.path} is not valid JSON: {e}",
                hint="The file is corrupt. Re-run save_auth.py to capture a fresh session.",
            ) from e
        if not isinstance(state, dict):
            raise NoSavedSession(
                f"Auth state at {self.path} is not a storage state object",
                hint="Re-run save_auth.py to capture a fresh session.",
            )
        return state

    def save(self, state: Dict[str, Any]) -> Path:
        """Overwrite the snapshot with a storage_state dictionary."""
        self.path.parent.mkdir(parents=True, exist_ok=True)
        with open(self.path, 'w') as f:
            json.dump(state, f, indent=2)

        cookies = len(state.get("cookies", []))
        origins = len(state.get("origins", []))
        logger.info(f"Auth state saved to: {self.path} ({cookies} cookies, {origins} origins)")
        return self.path

    def capture(self, context) -> Path:
        """Snapshot a live browser context to the file."""
        return self.save(context.storage_state())
