"""
Design (state.py)
- Purpose: The piece the UI observes. Holds the server slots and check interval, validates
           user input, keeps the visible per-server status collection in sync with the slots,
           and turns scheduler results into global status/warning messages.
- Inputs: User edits (set_interval, set_slot_hostname, update_options), start/stop/check requests,
          per-check callbacks from SyncScheduler.
- Outputs: statuses(), messages, can_start; observer callbacks.
- Side effects: Persists configuration through the SettingsStore after each valid edit.
- Thread-safety: Scheduler callbacks are marshalled through `dispatch` (e.g. Tk.after) so all
  state changes run on one thread. Observer callbacks are fire-and-forget.
"""

import logging
import threading
from datetime import datetime
from typing import Callable, List, Optional

from .audit import AuditLogger
from .clock import ClockAdjuster, SystemClock
from .config import DEFAULT_DRIFT_ALLOWANCE_MS, DEFAULT_INTERVAL_SEC, MIN_INTERVAL_SEC, SLOT_COUNT
from .models import MonitorConfig, OutcomeKind, ServerSlot, ServerStatus, SyncOutcome
from .monitor import SyncScheduler
from .ntp import NtpClient
from .repository import StatusRepo
from .storage import SettingsStore
from .utils import format_timestamp, is_valid_hostname

log = logging.getLogger(__name__)

INTERVAL_ERROR = "Interval must be 1 second or greater."
PRIMARY_REQUIRED = "Primary time server required."
INVALID_HOSTNAME = "Invalid hostname. Use letters, numbers, dots, and hyphens only."
PRIMARY_REQUIRED_TO_START = "Primary time server required before monitoring can start."
CANNOT_START = "Cannot start checks until validation errors are resolved."
MONITORING_STARTED = "Monitoring started."
MONITORING_STOPPED = "Monitoring stopped."
NO_SERVERS = "No servers configured."
CHECKS_SKIPPED = "Checks skipped."
ALL_FAILED = "All servers failed during the last cycle."
CLOCK_ADJUSTED = "System time adjusted."


def validate_slot(slot: ServerSlot) -> str | None:
    """Return the validation message for one slot, or None when it is valid."""
    if slot.is_blank:
        return PRIMARY_REQUIRED if slot.index == 0 else None
    if not is_valid_hostname(slot.hostname):
        return INVALID_HOSTNAME
    return None


class MonitorState:
    """
    Design (MonitorState)
    - Public attributes:
        slots: fixed list of ServerSlot (index 0 = primary)
        interval_error / status_message / warning_message / clock_warning / log_warning
        last_check_time: local time of the last completed cycle
        adjust_clock / drift_allowance_ms / stop_at_first_success / notifications_enabled /
        adjustment_notifications_enabled
    - Observer callbacks (all optional):
        on_statuses_changed(list[ServerStatus]), on_outcome(SyncOutcome), on_any_change()
    """

    def __init__(
        self,
        settings_store: SettingsStore,
        ntp_client: NtpClient,
        audit_logger: AuditLogger,
        clock: SystemClock,
        adjuster: ClockAdjuster | None = None,
        dispatch: Optional[Callable[[Callable[[], None]], None]] = None,
        on_statuses_changed: Optional[Callable[[List[ServerStatus]], None]] = None,
        on_outcome: Optional[Callable[[SyncOutcome], None]] = None,
        on_any_change: Optional[Callable[[], None]] = None,
        slot_count: int = SLOT_COUNT,
    ):
        if slot_count < 1:
            raise ValueError("slot_count must be at least 1")
        self.settings_store = settings_store
        self.dispatch = dispatch or (lambda fn: fn())
        self.on_statuses_changed = on_statuses_changed
        self.on_outcome = on_outcome
        self.on_any_change = on_any_change

        self.slots: List[ServerSlot] = [ServerSlot(index=i) for i in range(slot_count)]
        self.repo = StatusRepo()
        self.scheduler = SyncScheduler(
            self.active_servers,
            ntp_client,
            audit_logger,
            clock,
            adjuster,
            on_status=self._on_status,
            on_outcome=self._on_outcome,
            status_lookup=self.repo.get,
        )

        self._interval_seconds = DEFAULT_INTERVAL_SEC
        self.interval_error: str | None = None
        self.status_message: str | None = None
        self.warning_message: str | None = None
        self.clock_warning: str | None = None
        self.log_warning: str | None = None
        self.last_check_time: datetime | None = None

        self.adjust_clock = False
        self.drift_allowance_ms = DEFAULT_DRIFT_ALLOWANCE_MS
        self.stop_at_first_success = False
        self.notifications_enabled = True
        self.adjustment_notifications_enabled = True
        self._initializing = False

    # ---------- configuration ----------

    def initialize(self) -> None:
        """Load settings once at startup; nothing is persisted while loading."""
        self._initializing = True
        try:
            config = self.settings_store.load()
            hostnames = [s.hostname for s in sorted(config.slots, key=lambda s: s.index)]
            for slot in self.slots:
                slot.hostname = hostnames[slot.index].strip() if slot.index < len(hostnames) else ""
                slot.error = validate_slot(slot)
            self._interval_seconds = max(config.interval_seconds, MIN_INTERVAL_SEC)
            self.interval_error = None
            self.adjust_clock = config.adjust_clock
            self.drift_allowance_ms = config.drift_allowance_ms
            self.stop_at_first_success = config.stop_at_first_success
            self.notifications_enabled = config.notifications_enabled
            self.adjustment_notifications_enabled = config.adjustment_notifications_enabled
            self._apply_options()
            self.repo.sync_slots(self.slots)
        finally:
            self._initializing = False
        self._notify_statuses()
        self._notify_change()

    @property
    def interval_seconds(self) -> int:
        """Last valid interval; this is what the scheduler uses."""
        return self._interval_seconds

    @property
    def config(self) -> MonitorConfig:
        return MonitorConfig(
            interval_seconds=self._interval_seconds,
            slots=[ServerSlot(index=s.index, hostname=s.hostname) for s in self.slots],
            drift_allowance_ms=self.drift_allowance_ms,
            adjust_clock=self.adjust_clock,
            stop_at_first_success=self.stop_at_first_success,
            notifications_enabled=self.notifications_enabled,
            adjustment_notifications_enabled=self.adjustment_notifications_enabled,
        )

    @property
    def has_validation_errors(self) -> bool:
        return any(s.error for s in self.slots) or bool(self.interval_error)

    @property
    def can_start(self) -> bool:
        return not self.has_validation_errors

    @property
    def is_running(self) -> bool:
        return self.scheduler.is_running

    def set_interval(self, seconds) -> bool:
        """
        Purpose: Validate and apply a new check interval.
        Outputs: True if accepted. An invalid value sets interval_error and leaves the
                 persisted and scheduled interval untouched.
        """
        try:
            value = int(seconds)
        except (TypeError, ValueError):
            value = 0
        if value < MIN_INTERVAL_SEC:
            self.interval_error = INTERVAL_ERROR
            self._notify_change()
            return False

        self.interval_error = None
        changed = value != self._interval_seconds
        self._interval_seconds = value
        self._persist()
        if changed and self.is_running:
            self.scheduler.update_interval(value)
        self._notify_change()
        return True

    def set_slot_hostname(self, index: int, value: str | None) -> None:
        """
        Purpose: Apply a hostname edit to one slot.
        Side effects: Re-validates the slot, rebuilds the visible statuses, persists, and stops
                      monitoring if the primary slot became invalid while running.
        """
        slot = self.slots[index]
        hostname = (value or "").strip()
        if hostname == slot.hostname:
            return
        slot.hostname = hostname
        slot.error = validate_slot(slot)
        if self.repo.sync_slots(self.slots):
            self._notify_statuses()
        self._persist()
        if slot.index == 0 and slot.error and self.is_running:
            self.stop()
            self.status_message = PRIMARY_REQUIRED_TO_START
        self._notify_change()

    def update_options(
        self,
        adjust_clock: bool | None = None,
        drift_allowance_ms: int | None = None,
        notifications_enabled: bool | None = None,
        adjustment_notifications_enabled: bool | None = None,
    ) -> None:
        if adjust_clock is not None:
            self.adjust_clock = bool(adjust_clock)
        if drift_allowance_ms is not None:
            self.drift_allowance_ms = max(0, int(drift_allowance_ms))
        if notifications_enabled is not None:
            self.notifications_enabled = bool(notifications_enabled)
        if adjustment_notifications_enabled is not None:
            self.adjustment_notifications_enabled = bool(adjustment_notifications_enabled)
        self._apply_options()
        self._persist()
        self._notify_change()

    def notification_for(self, outcome: SyncOutcome) -> str | None:
        """Text of the OS notification for a finished cycle, or None when nothing is shown."""
        if not self.notifications_enabled or outcome.kind is not OutcomeKind.COMPLETED:
            return None
        if outcome.all_failed:
            return ALL_FAILED
        if outcome.clock_warning:
            return outcome.clock_warning
        if outcome.adjusted and self.adjustment_notifications_enabled:
            return CLOCK_ADJUSTED
        return None

    def active_servers(self) -> List[ServerSlot]:
        """Copies of the non-blank slots in slot order (read by the scheduler thread)."""
        return [ServerSlot(index=s.index, hostname=s.hostname) for s in list(self.slots) if not s.is_blank]

    def statuses(self) -> List[ServerStatus]:
        return self.repo.snapshot()

    # ---------- start / stop / manual checks ----------

    def start(self) -> bool:
        if self.has_validation_errors:
            self.status_message = CANNOT_START
            self._notify_change()
            return False
        if self.is_running:
            return False
        self._apply_options()
        self.status_message = MONITORING_STARTED
        self._notify_change()
        return self.scheduler.start(self._interval_seconds)

    def stop(self, timeout: float | None = None) -> None:
        was_running = self.is_running
        self.scheduler.stop(timeout)
        if was_running:
            self.status_message = MONITORING_STOPPED
        self._notify_change()

    def check_now(self) -> SyncOutcome | None:
        """Run one cycle on the calling thread; None if a cycle was already in flight."""
        self._apply_options()
        return self.scheduler.run_cycle()

    def sync_now(self) -> None:
        """Run one cycle in the background (manual trigger from the UI)."""
        threading.Thread(target=self.check_now, name="sync-now", daemon=True).start()

    # ---------- scheduler callbacks (worker thread) ----------

    def _on_status(self, status: ServerStatus) -> None:
        self.dispatch(lambda: self._apply_status(status))

    def _on_outcome(self, outcome: SyncOutcome) -> None:
        self.dispatch(lambda: self._apply_outcome(outcome))

    def _apply_status(self, status: ServerStatus) -> None:
        if self.repo.apply_update(status):
            self._notify_statuses()

    def _apply_outcome(self, outcome: SyncOutcome) -> None:
        if outcome.kind is OutcomeKind.NO_SERVERS:
            self.warning_message = NO_SERVERS
            self.status_message = CHECKS_SKIPPED
        elif outcome.kind is OutcomeKind.COMPLETED:
            self.last_check_time = outcome.completed_at
            self.status_message = f"Last check completed at {format_timestamp(outcome.completed_at)}."
            self.warning_message = ALL_FAILED if outcome.all_failed else None
            self.clock_warning = outcome.clock_warning
            self.log_warning = outcome.log_warning
        elif outcome.kind is OutcomeKind.FAILED:
            self.status_message = f"Check failed: {outcome.error}"
        self._fire(self.on_outcome, outcome)
        self._notify_change()

    # ---------- helpers ----------

    def _apply_options(self) -> None:
        self.scheduler.adjust_clock = self.adjust_clock
        self.scheduler.drift_allowance_ms = self.drift_allowance_ms
        self.scheduler.stop_at_first_success = self.stop_at_first_success

    def _persist(self) -> None:
        if self._initializing or self.has_validation_errors:
            return
        self.settings_store.save(self.config)

    def _notify_statuses(self) -> None:
        self._fire(self.on_statuses_changed, self.repo.snapshot())

    def _notify_change(self) -> None:
        if self.on_any_change is not None:
            self._fire(lambda _: self.on_any_change(), None)

    @staticmethod
    def _fire(callback, value) -> None:
        if callback is None:
            return
        try:
            callback(value)
        except Exception:
            log.exception("Observer callback failed")
