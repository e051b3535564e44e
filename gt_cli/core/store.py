"""Durable on-device key/value store.

Each key is one JSON file holding a complete snapshot, replaced atomically.
"""

from __future__ import annotations

import json
import logging
import os
import tempfile
from datetime import datetime, timezone
from pathlib import Path
from typing import Any, Dict, Optional

from gt_cli.core.models import (
    Phase,
    RecordLog,
    default_routines,
    notes_from_payload,
    phases_from_payload,
    routines_from_payload,
    routines_to_payload,
    workouts_from_payload,
    workouts_to_payload,
)

logger = logging.getLogger(__name__)

WORKOUTS_KEY = "workouts"
NOTES_KEY = "notes"
ROUTINES_KEY = "routines"
PHASES_KEY = "phases"
LAST_SYNC_KEY = "last_sync"
CREDENTIALS_KEY = "credentials"

STORE_KEYS = (WORKOUTS_KEY, NOTES_KEY, ROUTINES_KEY, PHASES_KEY, LAST_SYNC_KEY, CREDENTIALS_KEY)


class LocalStoreError(RuntimeError):
    """Raised when a snapshot cannot be written to disk."""


class LocalStore:
    """JSON snapshot per key inside a data directory."""

    def __init__(self, directory: Path) -> None:
        self.directory = directory

    def path_for(self, key: str) -> Path:
        if key not in STORE_KEYS:
            raise KeyError(f"Unknown store key: {key}")
        return self.directory / f"{key}.json"

    def read(self, key: str, default: Any = None) -> Any:
        """Return the stored snapshot, or `default` when missing or corrupt."""
        path = self.path_for(key)
        if not path.exists():
            return default
        try:
            return json.loads(path.read_text(encoding="utf-8"))
        except (OSError, ValueError) as exc:
            logger.warning("Ignoring unreadable store file %s: %s", path, exc)
            return default

    def write(self, key: str, value: Any) -> Path:
        path = self.path_for(key)
        try:
            self.directory.mkdir(parents=True, exist_ok=True)
            fd, temp_name = tempfile.mkstemp(prefix=f".{key}-", suffix=".json", dir=self.directory)
            tmp_path = Path(temp_name)
            try:
                with os.fdopen(fd, "w", encoding="utf-8") as handle:
                    json.dump(value, handle, indent=2)
                    handle.write("\n")
                os.replace(tmp_path, path)
            finally:
                tmp_path.unlink(missing_ok=True)
        except (OSError, TypeError, ValueError) as exc:
            raise LocalStoreError(f"Failed to write {path}: {exc}") from exc
        return path

    def load_record_log(self) -> RecordLog:
        """Assemble the Record Log; corrupt or missing pieces load as empty."""
        routines = routines_from_payload(self.read(ROUTINES_KEY))
        return RecordLog(
            workouts=workouts_from_payload(self.read(WORKOUTS_KEY)),
            notes=notes_from_payload(self.read(NOTES_KEY)),
            routines=routines or default_routines(),
            phases=phases_from_payload(self.read(PHASES_KEY)),
        )

    def save_workouts(self, log: RecordLog) -> None:
        self.write(WORKOUTS_KEY, workouts_to_payload(log.workouts))
        self.write(NOTES_KEY, dict(sorted(log.notes.items())))

    def save_routines(self, log: RecordLog) -> None:
        self.write(ROUTINES_KEY, routines_to_payload(log.routines))

    def save_phases(self, phases: list[Phase]) -> None:
        self.write(PHASES_KEY, [phase.to_dict() for phase in phases])

    def save_record_log(self, log: RecordLog) -> None:
        self.save_workouts(log)
        self.save_routines(log)

    def last_sync(self) -> Dict[str, Any]:
        raw = self.read(LAST_SYNC_KEY, {})
        if not isinstance(raw, dict):
            raw = {}
        return {
            "timestamp": raw.get("timestamp"),
            "pending": bool(raw.get("pending", False)),
            "routines_pending": bool(raw.get("routines_pending", False)),
        }

    def set_pending(self, pending: bool) -> None:
        state = self.last_sync()
        state["pending"] = pending
        self.write(LAST_SYNC_KEY, state)

    def set_routines_pending(self, pending: bool) -> None:
        state = self.last_sync()
        state["routines_pending"] = pending
        self.write(LAST_SYNC_KEY, state)

    def record_sync(self, when: Optional[datetime] = None) -> None:
        stamp = (when or datetime.now(timezone.utc)).isoformat()
        state = self.last_sync()
        state.update(timestamp=stamp, pending=False)
        self.write(LAST_SYNC_KEY, state)

    def credentials(self) -> Dict[str, Dict[str, Any]]:
        raw = self.read(CREDENTIALS_KEY, {})
        if not isinstance(raw, dict):
            return {}
        return {key: value for key, value in raw.items() if isinstance(value, dict)}

    def save_credentials(self, name: str, token: str, owner: str, repo: str) -> None:
        creds = self.credentials()
        creds[name] = {"token": token, "owner": owner, "repo": repo}
        self.write(CREDENTIALS_KEY, creds)

    def clear_credentials(self, name: str) -> bool:
        creds = self.credentials()
        if name not in creds:
            return False
        del creds[name]
        self.write(CREDENTIALS_KEY, creds)
        return True
