"""
Design (clock.py)
- Purpose: Read the local clock (SystemClock) and write it (ClockAdjuster).
- Inputs: UTC datetime for apply().
- Outputs: now_local()/now_utc() datetimes; (ok, error_message) from apply().
- Side effects: apply() changes the system wall clock (requires administrator/root).
- Thread-safety: Stateless; safe to call from any thread.
"""

import ctypes
import ctypes.util
import logging
import os
import sys
from datetime import datetime, timezone

log = logging.getLogger(__name__)

CLOCK_REALTIME = 0


class SystemClock:
    """Wall clock source; replaced by a fixed clock in tests."""

    def now_local(self) -> datetime:
        return datetime.now().astimezone()

    def now_utc(self) -> datetime:
        return datetime.now(timezone.utc)


class _SystemTime(ctypes.Structure):
    _fields_ = [
        ("wYear", ctypes.c_ushort),
        ("wMonth", ctypes.c_ushort),
        ("wDayOfWeek", ctypes.c_ushort),
        ("wDay", ctypes.c_ushort),
        ("wHour", ctypes.c_ushort),
        ("wMinute", ctypes.c_ushort),
        ("wSecond", ctypes.c_ushort),
        ("wMilliseconds", ctypes.c_ushort),
    ]


class _Timespec(ctypes.Structure):
    _fields_ = [("tv_sec", ctypes.c_long), ("tv_nsec", ctypes.c_long)]


class ClockAdjuster:
    """
    Design (ClockAdjuster)
    - Purpose: Apply a UTC instant to the system clock.
    - Expected failures (no privilege, missing API) are returned, never raised.
    """

    def apply(self, utc_instant: datetime) -> tuple[bool, str | None]:
        if utc_instant.tzinfo is None:
            utc_instant = utc_instant.replace(tzinfo=timezone.utc)
        utc_instant = utc_instant.astimezone(timezone.utc)
        try:
            if sys.platform == "win32":
                ok, message = self._apply_windows(utc_instant)
            else:
                ok, message = self._apply_posix(utc_instant)
        except (OSError, AttributeError, ValueError) as exc:
            ok, message = False, str(exc) or exc.__class__.__name__
        if ok:
            log.info("System clock set to %s", utc_instant.isoformat())
        else:
            log.warning("Failed to set system clock: %s", message)
        return ok, message

    @staticmethod
    def _apply_windows(utc_instant: datetime) -> tuple[bool, str | None]:
        st = _SystemTime(
            wYear=utc_instant.year,
            wMonth=utc_instant.month,
            wDayOfWeek=(utc_instant.weekday() + 1) % 7,  # 0 = Sunday
            wDay=utc_instant.day,
            wHour=utc_instant.hour,
            wMinute=utc_instant.minute,
            wSecond=utc_instant.second,
            wMilliseconds=utc_instant.microsecond // 1000,
        )
        kernel32 = ctypes.WinDLL("kernel32", use_last_error=True)  # type: ignore[attr-defined]
        if not kernel32.SetSystemTime(ctypes.byref(st)):
            err = ctypes.get_last_error()  # type: ignore[attr-defined]
            return False, ctypes.FormatError(err).strip()  # type: ignore[attr-defined]
        return True, None

    @staticmethod
    def _apply_posix(utc_instant: datetime) -> tuple[bool, str | None]:
        libc_name = ctypes.util.find_library("c")
        if not libc_name:
            return False, "C library not found; cannot set the system clock."
        libc = ctypes.CDLL(libc_name, use_errno=True)
        seconds = utc_instant.timestamp()
        ts = _Timespec()
        ts.tv_sec = int(seconds)
        ts.tv_nsec = utc_instant.microsecond * 1000
        if libc.clock_settime(CLOCK_REALTIME, ctypes.byref(ts)) != 0:
            errno = ctypes.get_errno()
            return False, os.strerror(errno)
        return True, None
