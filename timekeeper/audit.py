"""
Design (audit.py)
- Purpose: Append one line per check attempt to a daily log file:
      <ISO8601 timestamp>,<server>,<offset with 6 decimals or empty>,<status>
- Inputs: timestamp, server, offset_seconds (or None), status text.
- Outputs: None; raises AuditLogError on I/O failure.
- Side effects: Creates the logs directory and appends to timechecks-YYYYMMDD.log
  (YYYYMMDD = UTC date of the timestamp). No size bound.
- Thread-safety: Writes are serialized per destination file, so concurrent appends
  never interleave partial lines.
"""

import threading
from datetime import datetime, timezone
from pathlib import Path
from typing import Dict

from .config import LOG_FILE_EXTENSION, LOG_FILE_PREFIX
from .errors import AuditLogError, CheckCancelled

_locks_guard = threading.Lock()
_file_locks: Dict[Path, threading.Lock] = {}


def _lock_for(path: Path) -> threading.Lock:
    with _locks_guard:
        lock = _file_locks.get(path)
        if lock is None:
            lock = _file_locks[path] = threading.Lock()
        return lock


def format_line(timestamp: datetime, server: str, offset_seconds: float | None, status: str) -> str:
    offset_text = f"{offset_seconds:.6f}" if offset_seconds is not None else ""
    return f"{timestamp.isoformat()},{server},{offset_text},{status}\n"


class AuditLogger:
    def __init__(self, directory: Path) -> None:
        self.directory = Path(directory)

    def path_for(self, timestamp: datetime) -> Path:
        """Daily file name derived from the UTC calendar date of timestamp."""
        day = timestamp.astimezone(timezone.utc).strftime("%Y%m%d")
        return self.directory / f"{LOG_FILE_PREFIX}{day}{LOG_FILE_EXTENSION}"

    def append(
        self,
        timestamp: datetime,
        server: str,
        offset_seconds: float | None,
        status: str,
        cancel: threading.Event | None = None,
    ) -> None:
        if cancel is not None and cancel.is_set():
            raise CheckCancelled("Audit append cancelled.")
        path = self.path_for(timestamp)
        line = format_line(timestamp, server, offset_seconds, status)
        try:
            with _lock_for(path):
                path.parent.mkdir(parents=True, exist_ok=True)
                with open(path, "a", encoding="utf-8", newline="") as f:
                    f.write(line)
        except OSError as exc:
            raise AuditLogError(f"Could not write {path}: {exc}") from exc
