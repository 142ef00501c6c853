"""
Background check scheduler.

Design:
- Runs in its own daemon thread so the UI stays responsive.
- Every cycle:
    1) Snapshot the list of active servers (non-blank slots, slot order).
    2) Query each server once, sequentially, and compute its offset.
    3) Emit a per-server status ("Checking...", then "Success" or "Error: ...").
    4) Append one audit line per check.
    5) Optionally correct the system clock once per cycle.
    6) Emit the aggregate SyncOutcome.
- Methods:
    start(interval): begin a run (fresh cancel Event and thread per run)
    stop(): cancel the run and wake the thread
    update_interval(): rearm the timer without an extra cycle
    run_cycle(): one pass; also the entry point for manual "sync now"
- Thread-safety: At most one cycle is in flight (non-blocking cycle lock), so manual and
  scheduled triggers never overlap and audit lines stay ordered. The first cycle of a new
  run waits for a cycle left over from the previous run instead of being skipped.
- Cancellation: a check cancelled mid-query restores the slot's previous status.
"""

import logging
import threading
import time
from dataclasses import dataclass, field
from typing import Callable, List, Optional

from .audit import AuditLogger
from .clock import ClockAdjuster, SystemClock
from .config import DEFAULT_DRIFT_ALLOWANCE_MS, MIN_INTERVAL_SEC, QUERY_TIMEOUT_MS
from .errors import AuditLogError, CheckCancelled, NtpError
from .models import CHECKING, SUCCESS, OutcomeKind, ServerSlot, ServerStatus, SyncOutcome
from .ntp import NtpClient

log = logging.getLogger(__name__)


@dataclass
class _Run:
    """State owned by one start()..stop() run; never reused."""
    interval: float
    deadline: float
    cancel: threading.Event = field(default_factory=threading.Event)
    thread: Optional[threading.Thread] = None


class SyncScheduler:
    def __init__(
        self,
        servers_provider: Callable[[], List[ServerSlot]],
        ntp_client: NtpClient,
        audit_logger: AuditLogger,
        clock: SystemClock,
        adjuster: ClockAdjuster | None = None,
        on_status: Optional[Callable[[ServerStatus], None]] = None,
        on_outcome: Optional[Callable[[SyncOutcome], None]] = None,
        timeout_ms: int = QUERY_TIMEOUT_MS,
        status_lookup: Optional[Callable[[int], Optional[ServerStatus]]] = None,
    ):
        self.servers_provider = servers_provider
        self.ntp_client = ntp_client
        self.audit_logger = audit_logger
        self.clock = clock
        self.adjuster = adjuster
        self.on_status = on_status
        self.on_outcome = on_outcome
        self.timeout_ms = timeout_ms
        # Current visible status of a slot, restored when a check is cancelled mid-flight
        self.status_lookup = status_lookup

        # Cycle options, refreshed by the owner when configuration changes
        self.adjust_clock = False
        self.drift_allowance_ms = DEFAULT_DRIFT_ALLOWANCE_MS
        self.stop_at_first_success = False

        self._cond = threading.Condition()
        self._cycle_lock = threading.Lock()
        self._run: Optional[_Run] = None

    # ---------- lifecycle ----------

    @property
    def is_running(self) -> bool:
        with self._cond:
            return self._run is not None

    @property
    def cycle_in_progress(self) -> bool:
        return self._cycle_lock.locked()

    def start(self, interval_seconds: float) -> bool:
        """Arm the periodic trigger and run one cycle immediately. No-op while running."""
        interval = max(float(interval_seconds), MIN_INTERVAL_SEC)
        with self._cond:
            if self._run is not None:
                return False
            run = _Run(interval=interval, deadline=time.monotonic() + interval)
            run.thread = threading.Thread(target=self._loop, args=(run,), name="sync-scheduler", daemon=True)
            self._run = run
        log.info("Scheduler started (interval %ss)", interval)
        run.thread.start()
        return True

    def stop(self, timeout: float | None = None) -> None:
        """
        Disarm the trigger and cancel any in-flight cycle. Never raises.
        A cycle blocked in a network receive finishes within the query timeout.
        If timeout is given, wait up to that long for the worker thread to exit.
        """
        with self._cond:
            run, self._run = self._run, None
            if run is None:
                return
            run.cancel.set()
            self._cond.notify_all()
        log.info("Scheduler stopped")
        if timeout is not None and run.thread is not None and run.thread is not threading.current_thread():
            run.thread.join(timeout)

    def update_interval(self, interval_seconds: float) -> None:
        """Rearm the trigger at the new cadence; no extra cycle is run."""
        with self._cond:
            run = self._run
            if run is None:
                return
            run.interval = max(float(interval_seconds), MIN_INTERVAL_SEC)
            run.deadline = time.monotonic() + run.interval
            self._cond.notify_all()
        log.info("Scheduler interval changed to %ss", run.interval)

    def _loop(self, run: _Run) -> None:
        # A cycle from the previous run may still be finishing its last query
        self.run_cycle(run.cancel, wait=True)
        while True:
            with self._cond:
                while not run.cancel.is_set():
                    remaining = run.deadline - time.monotonic()
                    if remaining <= 0:
                        break
                    self._cond.wait(remaining)
                if run.cancel.is_set():
                    return
                run.deadline = time.monotonic() + run.interval
            self.run_cycle(run.cancel)

    # ---------- one cycle ----------

    def run_cycle(self, cancel: threading.Event | None = None, wait: bool = False) -> SyncOutcome | None:
        """
        Purpose: Check every active server once.
        Outputs: the SyncOutcome (also emitted via on_outcome), or None if another
                 cycle was already in progress (nothing is queued).
        Thread-safety: Safe to call from any thread; overlapping calls are skipped unless
                       wait is set, in which case the call blocks until the running cycle
                       ends or cancel is set.
        """
        if not self._acquire_cycle(cancel, wait):
            log.debug("Cycle already in progress; skipping trigger")
            return None
        try:
            if cancel is None:
                with self._cond:
                    cancel = self._run.cancel if self._run is not None else threading.Event()
            try:
                outcome = self._check_all(cancel)
            except CheckCancelled:
                outcome = SyncOutcome(kind=OutcomeKind.CANCELLED, completed_at=self.clock.now_local())
            except Exception as exc:
                log.exception("Check cycle aborted by unexpected error")
                outcome = SyncOutcome(
                    kind=OutcomeKind.FAILED,
                    completed_at=self.clock.now_local(),
                    error=str(exc) or exc.__class__.__name__,
                )
            self._emit(self.on_outcome, outcome)
            return outcome
        finally:
            self._cycle_lock.release()

    def _acquire_cycle(self, cancel: threading.Event | None, wait: bool) -> bool:
        if not wait:
            return self._cycle_lock.acquire(blocking=False)
        while cancel is None or not cancel.is_set():
            if self._cycle_lock.acquire(timeout=0.05):
                return True
        return False

    def _check_all(self, cancel: threading.Event) -> SyncOutcome:
        active = sorted((s for s in self.servers_provider() if not s.is_blank), key=lambda s: s.index)
        if not active:
            log.info("No servers configured; skipping checks")
            return SyncOutcome(kind=OutcomeKind.NO_SERVERS, completed_at=self.clock.now_local())

        answered = False
        adjusted = False
        clock_warning = None
        log_warning = None

        for slot in active:
            if cancel.is_set():
                raise CheckCancelled("Cycle cancelled.")
            host = slot.hostname.strip()
            previous = self._previous_status(slot.index, host)
            self._emit(self.on_status, ServerStatus(slot_index=slot.index, server=host, status_message=CHECKING))

            try:
                reply = self.ntp_client.query(host, self.timeout_ms, cancel)
            except CheckCancelled:
                self._emit(self.on_status, previous)
                raise
            except NtpError as exc:
                now = self.clock.now_local()
                message = f"Error: {exc}"
                log.warning("Check of %s failed: %s", host, exc)
                self._emit(self.on_status, ServerStatus(
                    slot_index=slot.index, server=host, last_checked=now,
                    status_message=message, has_error=True,
                ))
                log_warning = self._audit(now, host, None, message, cancel) or log_warning
                continue

            offset = round((reply.server_time_utc - self.clock.now_utc()).total_seconds(), 6)
            now = self.clock.now_local()
            log.info("Check of %s succeeded: offset %+.6fs", host, offset)
            self._emit(self.on_status, ServerStatus(
                slot_index=slot.index, server=host, last_checked=now,
                offset_seconds=offset, status_message=SUCCESS,
            ))
            log_warning = self._audit(now, host, offset, SUCCESS, cancel) or log_warning

            if not answered and self.adjust_clock and abs(offset) * 1000 > max(0, self.drift_allowance_ms):
                adjusted, clock_warning = self._adjust(reply.server_time_utc)
            answered = True

            if self.stop_at_first_success:
                break

        if cancel.is_set():
            raise CheckCancelled("Cycle cancelled.")
        return SyncOutcome(
            kind=OutcomeKind.COMPLETED,
            any_server_answered=answered,
            all_failed=not answered,
            completed_at=self.clock.now_local(),
            adjusted=adjusted,
            clock_warning=clock_warning,
            log_warning=log_warning,
        )

    def _previous_status(self, slot_index: int, host: str) -> ServerStatus:
        status = self.status_lookup(slot_index) if self.status_lookup is not None else None
        if status is None or status.server.lower() != host.lower() or status.status_message == CHECKING:
            return ServerStatus(slot_index=slot_index, server=host)
        return status

    def _adjust(self, server_time_utc) -> tuple[bool, str | None]:
        if self.adjuster is None:
            return False, None
        ok, message = self.adjuster.apply(server_time_utc)
        if ok:
            return True, None
        return False, f"Failed to adjust system time: {message}"

    def _audit(self, now, host: str, offset: float | None, status: str, cancel: threading.Event) -> str | None:
        """Append one audit line; returns a warning message instead of raising on I/O failure."""
        try:
            self.audit_logger.append(now, host, offset, status, cancel)
        except AuditLogError as exc:
            log.warning("Audit log unavailable: %s", exc)
            return f"Audit log unavailable: {exc}"
        return None

    @staticmethod
    def _emit(callback, value) -> None:
        if callback is None:
            return
        try:
            callback(value)
        except Exception:
            log.exception("Status callback failed")
