"""
Design (utils.py)
- Purpose: Reusable helpers: hostname validation, display formatting for offsets and
           timestamps, and the OS notification wrapper.
- Inputs: Various helper parameters (hostnames, datetimes, messages).
- Outputs: Helper results (bools, strings).
- Side effects: notify_os shows a desktop notification (plyer).
- Thread-safety: Stateless; safe to call from any thread.
"""

import logging
import re
from datetime import datetime

from plyer import notification

from .config import APP_NAME

log = logging.getLogger(__name__)

HOSTNAME_PATTERN = re.compile(r"[A-Za-z0-9.-]+")


def is_valid_hostname(value: str) -> bool:
    """
    Purpose: Check a (trimmed) hostname against the allowed character set.
    Inputs: value (str)
    Outputs: True if non-empty and only letters, digits, dots and hyphens.
    """
    return bool(value) and HOSTNAME_PATTERN.fullmatch(value) is not None


def format_offset(offset_seconds: float | None) -> str:
    """Signed offset with 6 decimals ('' when unknown)."""
    if offset_seconds is None:
        return ""
    return f"{offset_seconds:+.6f} s"


def format_timestamp(value: datetime | None) -> str:
    if value is None:
        return ""
    return value.strftime("%Y-%m-%d %H:%M:%S")


def notify_os(message: str, title: str = APP_NAME) -> None:
    """
    Purpose: Show a desktop notification.
    Side Effects: Calls plyer; failures (no notification backend) are logged, not raised.
    Thread-safety: Safe.
    """
    try:
        notification.notify(title=title, message=message, timeout=5)
    except Exception as exc:
        log.warning("Desktop notification failed: %s", exc)
