"""Shared helper utilities for the timekeeper test-suite."""

from .mocks import (
    FakeAdjuster,
    FakeClock,
    FakeNtpClient,
    MemorySettingsStore,
    RecordingAuditLogger,
)
from .ntp_packets import encode_ntp_timestamp, build_reply

__all__ = [
    "FakeAdjuster",
    "FakeClock",
    "FakeNtpClient",
    "MemorySettingsStore",
    "RecordingAuditLogger",
    "encode_ntp_timestamp",
    "build_reply",
]
