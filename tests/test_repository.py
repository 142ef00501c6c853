"""StatusRepo tests: rebuilding the visible collection and applying check results."""

from __future__ import annotations

from datetime import datetime

from timekeeper.models import NOT_CHECKED, SUCCESS, ServerSlot, ServerStatus
from timekeeper.repository import StatusRepo


def slots(*hostnames: str) -> list[ServerSlot]:
    return [ServerSlot(index=i, hostname=h) for i, h in enumerate(hostnames)]


def test_blank_slots_are_skipped_and_order_kept() -> None:
    repo = StatusRepo()

    assert repo.sync_slots(slots("primary.test", "", "secondary.test", "", ""))

    snapshot = repo.snapshot()
    assert [(s.slot_index, s.server, s.status_message) for s in snapshot] == [
        (0, "primary.test", NOT_CHECKED),
        (2, "secondary.test", NOT_CHECKED),
    ]


def test_unchanged_slot_keeps_results_and_rename_resets() -> None:
    repo = StatusRepo()
    repo.sync_slots(slots("a.test", "b.test"))
    checked = datetime(2024, 1, 1, 8, 0)
    repo.apply_update(ServerStatus(0, "a.test", checked, 0.25, SUCCESS))
    repo.apply_update(ServerStatus(1, "b.test", checked, 0.5, SUCCESS))

    assert not repo.sync_slots(slots("a.test", "b.test"))
    assert repo.sync_slots(slots("a.test", "c.test"))

    first, second = repo.snapshot()
    assert first.offset_seconds == 0.25
    assert (second.server, second.offset_seconds, second.last_checked, second.status_message) == (
        "c.test", None, None, NOT_CHECKED,
    )


def test_blanking_slot_removes_entry() -> None:
    repo = StatusRepo()
    repo.sync_slots(slots("a.test", "b.test"))

    assert repo.sync_slots(slots("a.test", ""))
    assert [s.slot_index for s in repo.snapshot()] == [0]
    assert repo.get(1) is None


def test_apply_update_reports_changes() -> None:
    repo = StatusRepo()
    repo.sync_slots(slots("a.test"))
    update = ServerStatus(0, "a.test", datetime(2024, 1, 1), 1.5, SUCCESS)

    assert repo.apply_update(update) is True
    assert repo.apply_update(update) is False
    assert repo.get(0).offset_seconds == 1.5


def test_apply_update_ignores_stale_or_hidden_slots() -> None:
    repo = StatusRepo()
    repo.sync_slots(slots("a.test", ""))

    assert repo.apply_update(ServerStatus(0, "old.test", status_message=SUCCESS)) is False
    assert repo.apply_update(ServerStatus(1, "b.test", status_message=SUCCESS)) is False
    assert repo.get(0).status_message == NOT_CHECKED


def test_snapshot_returns_copies() -> None:
    repo = StatusRepo()
    repo.sync_slots(slots("a.test"))

    repo.snapshot()[0].status_message = "tampered"

    assert repo.get(0).status_message == NOT_CHECKED


def test_case_only_rename_keeps_results_with_new_spelling() -> None:
    repo = StatusRepo()
    repo.sync_slots(slots("pool.ntp.org"))
    repo.apply_update(ServerStatus(0, "pool.ntp.org", datetime(2024, 1, 1), 0.25, SUCCESS))

    assert repo.sync_slots(slots("Pool.NTP.org")) is True

    status = repo.get(0)
    assert (status.server, status.offset_seconds, status.status_message) == ("Pool.NTP.org", 0.25, SUCCESS)
    assert repo.sync_slots(slots("Pool.NTP.org")) is False
