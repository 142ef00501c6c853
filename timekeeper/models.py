"""
Design (models.py)
- Purpose: Define simple, typed data structures for domain entities
           (server slots, configuration, per-server status, cycle outcomes).
- Inputs: Field values.
- Outputs: Dataclass instances.
- Side effects: None.
- Thread-safety: Dataclasses are plain containers; StatusRepo protects concurrent access.
"""

from dataclasses import dataclass, field, replace
from datetime import datetime
from enum import Enum
from typing import List

from .config import (
    DEFAULT_DRIFT_ALLOWANCE_MS,
    DEFAULT_INTERVAL_SEC,
    DEFAULT_SERVERS,
    SLOT_COUNT,
)

NOT_CHECKED = "Not checked"
CHECKING = "Checking..."
SUCCESS = "Success"


@dataclass
class ServerSlot:
    """
    Design (ServerSlot)
    - Purpose: One fixed configuration position holding zero or one hostname.
    - Fields:
        index: position in the slot array (0 = primary, never reordered).
        hostname: trimmed hostname ('' when the slot is unused).
        error: validation message, or None when the slot is valid.
    """
    index: int
    hostname: str = ""
    error: str | None = None

    @property
    def is_blank(self) -> bool:
        return not self.hostname.strip()


def default_slots(count: int = SLOT_COUNT) -> List[ServerSlot]:
    servers = list(DEFAULT_SERVERS[:count]) + [""] * max(0, count - len(DEFAULT_SERVERS))
    return [ServerSlot(index=i, hostname=h) for i, h in enumerate(servers)]


@dataclass
class MonitorConfig:
    """
    Design (MonitorConfig)
    - Purpose: Everything the user can configure; loaded once, saved after each valid edit.
    - Fields:
        interval_seconds: seconds between cycles (>= MIN_INTERVAL_SEC).
        slots: ordered ServerSlot list.
        drift_allowance_ms: drift tolerated before the clock is adjusted.
        adjust_clock: when False the monitor only measures.
        stop_at_first_success: legacy first-responder cycle (off by default).
        notifications_enabled: toggles OS notifications.
        adjustment_notifications_enabled: "System time adjusted." notices (only while
            notifications_enabled is on).
    """
    interval_seconds: int = DEFAULT_INTERVAL_SEC
    slots: List[ServerSlot] = field(default_factory=default_slots)
    drift_allowance_ms: int = DEFAULT_DRIFT_ALLOWANCE_MS
    adjust_clock: bool = False
    stop_at_first_success: bool = False
    notifications_enabled: bool = True
    adjustment_notifications_enabled: bool = True

    @property
    def servers(self) -> List[str]:
        return [s.hostname for s in self.slots]


@dataclass
class ServerStatus:
    """
    Design (ServerStatus)
    - Purpose: Visible result of the latest check of one non-blank slot.
    - Fields:
        slot_index: owning slot.
        server: hostname checked.
        last_checked: local time of the last completed check.
        offset_seconds: server minus local UTC, rounded to 6 decimals.
        status_message: 'Not checked', 'Checking...', 'Success' or 'Error: ...'.
        has_error: True when the last check failed.
    """
    slot_index: int
    server: str
    last_checked: datetime | None = None
    offset_seconds: float | None = None
    status_message: str = NOT_CHECKED
    has_error: bool = False

    def copy(self) -> "ServerStatus":
        return replace(self)


@dataclass(frozen=True)
class NtpReply:
    server_time_utc: datetime


class OutcomeKind(Enum):
    COMPLETED = "completed"
    NO_SERVERS = "no_servers"
    CANCELLED = "cancelled"
    FAILED = "failed"


@dataclass(frozen=True)
class SyncOutcome:
    """
    Design (SyncOutcome)
    - Purpose: Aggregate result of one cycle; drives the global status messages.
    - Fields:
        kind: OutcomeKind.
        any_server_answered / all_failed: per-cycle aggregate (COMPLETED only).
        completed_at: local time the cycle finished.
        adjusted: True if the system clock was corrected this cycle.
        clock_warning: message when a correction was attempted and failed.
        log_warning: message when the audit log could not be written.
        error: message of an unexpected internal error (FAILED only).
    """
    kind: OutcomeKind
    any_server_answered: bool = False
    all_failed: bool = False
    completed_at: datetime | None = None
    adjusted: bool = False
    clock_warning: str | None = None
    log_warning: str | None = None
    error: str | None = None
