"""
Design (storage.py)
- Purpose: Load and save the monitor configuration to/from disk (JSON), and resolve
           where settings and audit logs live.
- Inputs: Path (from get_settings_path()), MonitorConfig for save.
- Outputs: MonitorConfig on load; None on save.
- Side effects: Reads/writes file. On load failure returns defaults; on save failure logs and ignores.
- Thread-safety: Call from the UI thread only (e.g. after configuration edits).
"""

import json
import logging
import os
import sys
from pathlib import Path

from .config import (
    DEFAULT_DRIFT_ALLOWANCE_MS,
    DEFAULT_INTERVAL_SEC,
    LOGS_DIRNAME,
    SETTINGS_DIRNAME,
    SETTINGS_FILENAME,
    SLOT_COUNT,
)
from .models import MonitorConfig, ServerSlot, default_slots

log = logging.getLogger(__name__)


def get_settings_dir() -> Path:
    """
    Resolve the settings directory. Prefer the per-user app data dir so it survives
    reinstalls; XDG config dir on non-Windows systems.
    """
    if sys.platform == "win32":
        appdata = os.environ.get("APPDATA")
        if appdata:
            return Path(appdata) / SETTINGS_DIRNAME
    xdg = os.environ.get("XDG_CONFIG_HOME")
    base = Path(xdg) if xdg else Path.home() / ".config"
    return base / SETTINGS_DIRNAME.lower()


def get_settings_path() -> Path:
    return get_settings_dir() / SETTINGS_FILENAME


def get_logs_dir() -> Path:
    return get_settings_dir() / LOGS_DIRNAME


def _as_int(value, default: int) -> int:
    try:
        return int(value)
    except (TypeError, ValueError):
        return default


class SettingsStore:
    """
    Design (SettingsStore)
    - load(): never fails; missing or corrupt file yields MonitorConfig() defaults
      (primary server pre-populated, 60-second interval).
    - save(): writes indented JSON; OSError (e.g. read-only location) is logged and ignored.
    """

    def __init__(self, path: Path | None = None, slot_count: int = SLOT_COUNT) -> None:
        self.path = Path(path) if path is not None else get_settings_path()
        self.slot_count = slot_count

    def load(self) -> MonitorConfig:
        defaults = MonitorConfig(slots=default_slots(self.slot_count))
        if not self.path.exists():
            return defaults
        try:
            with open(self.path, "r", encoding="utf-8") as f:
                data = json.load(f)
        except (OSError, UnicodeDecodeError, json.JSONDecodeError) as exc:
            log.warning("Ignoring unreadable settings file %s: %s", self.path, exc)
            return defaults
        if not isinstance(data, dict):
            return defaults

        servers = data.get("servers")
        if not isinstance(servers, list):
            servers = defaults.servers
        hostnames = [str(s).strip() if s is not None else "" for s in servers][: self.slot_count]
        hostnames += [""] * (self.slot_count - len(hostnames))

        return MonitorConfig(
            interval_seconds=_as_int(data.get("interval_seconds"), DEFAULT_INTERVAL_SEC),
            slots=[ServerSlot(index=i, hostname=h) for i, h in enumerate(hostnames)],
            drift_allowance_ms=_as_int(data.get("drift_allowance_ms"), DEFAULT_DRIFT_ALLOWANCE_MS),
            adjust_clock=bool(data.get("adjust_clock", False)),
            stop_at_first_success=bool(data.get("stop_at_first_success", False)),
            notifications_enabled=bool(data.get("notifications_enabled", True)),
            adjustment_notifications_enabled=bool(data.get("adjustment_notifications_enabled", True)),
        )

    def save(self, config: MonitorConfig) -> None:
        data = {
            "interval_seconds": config.interval_seconds,
            "servers": config.servers[: self.slot_count],
            "drift_allowance_ms": config.drift_allowance_ms,
            "adjust_clock": config.adjust_clock,
            "stop_at_first_success": config.stop_at_first_success,
            "notifications_enabled": config.notifications_enabled,
            "adjustment_notifications_enabled": config.adjustment_notifications_enabled,
        }
        try:
            self.path.parent.mkdir(parents=True, exist_ok=True)
            with open(self.path, "w", encoding="utf-8") as f:
                json.dump(data, f, indent=2)
        except OSError as exc:
            log.warning("Could not save settings to %s: %s", self.path, exc)
