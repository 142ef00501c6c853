"""
Design (repository.py)
- Purpose: Encapsulate the visible per-server status collection behind a tiny API (and a lock),
           so the scheduler thread and the UI don't share mutable lists directly.
- Inputs: ServerSlot lists (configuration changes) and ServerStatus updates (check results).
- Outputs: Snapshots (copies) of the current statuses, ordered by slot index; change flags.
- Side effects: Updates the internal dictionary.
- Thread-safety: All methods take the internal lock; snapshot returns copies.
"""

import threading
from typing import Dict, Iterable, List

from .models import NOT_CHECKED, ServerSlot, ServerStatus


class StatusRepo:
    """
    Design (StatusRepo)
    - State:
        _statuses: {slot_index -> ServerStatus}, one entry per non-blank slot
        _lock: threading.Lock to protect all mutating/reading operations
    """

    def __init__(self) -> None:
        self._lock = threading.Lock()
        self._statuses: Dict[int, ServerStatus] = {}

    # -------- Configuration changes --------

    def sync_slots(self, slots: Iterable[ServerSlot]) -> bool:
        """
        Purpose: Rebuild the collection from the slot hostnames.
        - Blank slot: its entry is removed.
        - Newly non-blank slot: gains a fresh 'Not checked' entry.
        - Renamed slot (case-insensitive): entry kept but its results are reset.
        - Letter-case-only rename: results kept, server spelling updated.
        - Unchanged slot: entry kept as-is.
        Outputs: True if anything visible changed.
        Thread-safety: Protected by _lock.
        """
        with self._lock:
            changed = False
            updated: Dict[int, ServerStatus] = {}
            for slot in sorted(slots, key=lambda s: s.index):
                if slot.is_blank:
                    continue
                status = self._statuses.get(slot.index)
                if status is None:
                    status = ServerStatus(slot_index=slot.index, server=slot.hostname)
                    changed = True
                elif status.server.lower() != slot.hostname.lower():
                    status.server = slot.hostname
                    status.last_checked = None
                    status.offset_seconds = None
                    status.status_message = NOT_CHECKED
                    status.has_error = False
                    changed = True
                elif status.server != slot.hostname:
                    # Same server, new spelling: keep results, show what is queried
                    status.server = slot.hostname
                    changed = True
                updated[slot.index] = status
            if set(updated) != set(self._statuses):
                changed = True
            self._statuses = updated
            return changed

    # -------- Status handling --------

    def apply_update(self, update: ServerStatus) -> bool:
        """
        Purpose: Copy a check result onto the entry for update.slot_index.
        Outputs: True if a visible field changed; False if nothing changed, the slot is
                 no longer visible, or the slot now holds a different server (stale result).
        Thread-safety: Protected by _lock.
        """
        with self._lock:
            status = self._statuses.get(update.slot_index)
            if status is None or status.server.lower() != update.server.lower():
                return False
            changed = False
            for name in ("last_checked", "offset_seconds", "status_message", "has_error"):
                value = getattr(update, name)
                if getattr(status, name) != value:
                    setattr(status, name, value)
                    changed = True
            return changed

    def get(self, slot_index: int) -> ServerStatus | None:
        with self._lock:
            status = self._statuses.get(slot_index)
            return status.copy() if status is not None else None

    # -------- Snapshots for safe reading --------

    def snapshot(self) -> List[ServerStatus]:
        """
        Purpose: Return copies of all statuses ordered by slot index.
        Thread-safety: Protected by _lock; returns copies to avoid mutation races.
        """
        with self._lock:
            return [self._statuses[i].copy() for i in sorted(self._statuses)]
