"""Shared pytest configuration and fixtures for timekeeper."""

from __future__ import annotations

from typing import Callable, List, Optional

import pytest

from tests.helpers import (
    FakeAdjuster,
    FakeClock,
    FakeNtpClient,
    MemorySettingsStore,
    RecordingAuditLogger,
)
from timekeeper.models import MonitorConfig, ServerSlot
from timekeeper.state import MonitorState


def make_config(servers: List[str], interval: int = 5, **options) -> MonitorConfig:
    slots = [ServerSlot(index=i, hostname=h) for i, h in enumerate(servers)]
    return MonitorConfig(interval_seconds=interval, slots=slots, **options)


@pytest.fixture
def fake_clock() -> FakeClock:
    return FakeClock()


@pytest.fixture
def audit_logger() -> RecordingAuditLogger:
    return RecordingAuditLogger()


@pytest.fixture
def adjuster() -> FakeAdjuster:
    return FakeAdjuster()


@pytest.fixture
def make_state(fake_clock: FakeClock, audit_logger: RecordingAuditLogger, adjuster: FakeAdjuster):
    """Build an initialized MonitorState around in-memory collaborators."""
    created: List[MonitorState] = []

    def _make(
        servers: List[str],
        interval: int = 5,
        client: Optional[FakeNtpClient] = None,
        store: Optional[MemorySettingsStore] = None,
        **kwargs,
    ) -> MonitorState:
        store = store or MemorySettingsStore(make_config(servers, interval))
        state = MonitorState(
            store,
            client or FakeNtpClient(),
            audit_logger,
            fake_clock,
            adjuster,
            **kwargs,
        )
        state.initialize()
        created.append(state)
        return state

    yield _make
    for state in created:
        state.stop(timeout=5)
