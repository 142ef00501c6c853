"""Settings persistence tests."""

from __future__ import annotations

import json
from pathlib import Path

import pytest

from timekeeper import storage
from timekeeper.models import MonitorConfig, ServerSlot
from timekeeper.storage import SettingsStore


def test_missing_file_yields_defaults(tmp_path: Path) -> None:
    config = SettingsStore(tmp_path / "settings.json").load()

    assert config.interval_seconds == 60
    assert config.servers == ["time.windows.com", "pool.ntp.org", "", "", ""]
    assert [s.index for s in config.slots] == [0, 1, 2, 3, 4]
    assert config.adjust_clock is False
    assert config.adjustment_notifications_enabled is True


@pytest.mark.parametrize("content", ["{not json", "[1, 2, 3]", "\xff\xfe"])
def test_corrupt_file_yields_defaults(tmp_path: Path, content: str) -> None:
    path = tmp_path / "settings.json"
    path.write_text(content, encoding="latin-1")

    config = SettingsStore(path).load()

    assert config.interval_seconds == 60
    assert config.servers[0] == "time.windows.com"


def test_short_server_list_is_padded_and_trimmed(tmp_path: Path) -> None:
    path = tmp_path / "settings.json"
    path.write_text(json.dumps({"interval_seconds": "15", "servers": [" a.test ", None]}), encoding="utf-8")

    config = SettingsStore(path).load()

    assert config.interval_seconds == 15
    assert config.servers == ["a.test", "", "", "", ""]


def test_save_then_load_keeps_options(tmp_path: Path) -> None:
    path = tmp_path / "nested" / "settings.json"
    store = SettingsStore(path)
    config = MonitorConfig(
        interval_seconds=30,
        slots=[ServerSlot(index=i, hostname=h) for i, h in enumerate(["a.test", "", "c.test", "", ""])],
        drift_allowance_ms=250,
        adjust_clock=True,
        notifications_enabled=False,
        adjustment_notifications_enabled=False,
    )

    store.save(config)
    loaded = store.load()

    assert json.loads(path.read_text(encoding="utf-8"))["servers"] == ["a.test", "", "c.test", "", ""]
    assert loaded.interval_seconds == 30
    assert loaded.servers == config.servers
    assert loaded.drift_allowance_ms == 250
    assert loaded.adjust_clock is True
    assert loaded.notifications_enabled is False
    assert loaded.adjustment_notifications_enabled is False


def test_save_failure_is_ignored(tmp_path: Path) -> None:
    blocker = tmp_path / "blocker"
    blocker.write_text("", encoding="utf-8")

    SettingsStore(blocker / "settings.json").save(MonitorConfig())


def test_settings_dir_follows_xdg(monkeypatch: pytest.MonkeyPatch, tmp_path: Path) -> None:
    monkeypatch.setattr(storage.sys, "platform", "linux")
    monkeypatch.setenv("XDG_CONFIG_HOME", str(tmp_path))

    assert storage.get_settings_path() == tmp_path / "timekeeper" / "settings.json"
    assert storage.get_logs_dir() == tmp_path / "timekeeper" / "logs"


def test_settings_dir_uses_appdata_on_windows(monkeypatch: pytest.MonkeyPatch, tmp_path: Path) -> None:
    monkeypatch.setattr(storage.sys, "platform", "win32")
    monkeypatch.setenv("APPDATA", str(tmp_path))

    assert storage.get_settings_dir() == tmp_path / "TimeKeeper"
