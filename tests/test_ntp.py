"""NTP wire client tests: request layout, timestamp decoding and the UDP exchange."""

from __future__ import annotations

import socket
import threading
from datetime import datetime, timezone

import pytest

from tests.helpers import build_reply, encode_ntp_timestamp
from timekeeper import ntp
from timekeeper.errors import (
    CheckCancelled,
    InvalidInputError,
    MalformedResponseError,
    ResolutionFailedError,
    TransportError,
)
from timekeeper.ntp import NtpClient, build_request, extract_timestamp


class UdpResponder:
    """One-shot local NTP responder on 127.0.0.1."""

    def __init__(self, reply: bytes | None) -> None:
        self.sock = socket.socket(socket.AF_INET, socket.SOCK_DGRAM)
        self.sock.bind(("127.0.0.1", 0))
        self.sock.settimeout(5)
        self.port = self.sock.getsockname()[1]
        self.reply = reply
        self.request: bytes | None = None
        self.thread = threading.Thread(target=self._serve, daemon=True)
        self.thread.start()

    def _serve(self) -> None:
        try:
            data, addr = self.sock.recvfrom(1024)
        except OSError:
            return
        self.request = data
        if self.reply is not None:
            self.sock.sendto(self.reply, addr)

    def close(self) -> None:
        self.thread.join(5)
        self.sock.close()


def test_build_request_layout() -> None:
    packet = build_request()

    assert len(packet) == 48
    assert packet[0] == 0x1B
    assert packet[1:] == bytes(47)


def test_extract_timestamp_inverts_reference_encoder() -> None:
    expected = datetime(2024, 1, 15, 12, 34, 56, 789000, tzinfo=timezone.utc)
    data = bytearray(48)
    data[40:48] = encode_ntp_timestamp(expected)

    assert extract_timestamp(bytes(data)) == expected


@pytest.mark.parametrize(
    "instant",
    [
        datetime(1999, 12, 31, 23, 59, 59, 999000, tzinfo=timezone.utc),
        datetime(2036, 2, 7, 6, 28, 15, tzinfo=timezone.utc),
        datetime(2024, 2, 29, 0, 0, 0, 1000, tzinfo=timezone.utc),
    ],
)
def test_extract_timestamp_millisecond_edges(instant: datetime) -> None:
    assert extract_timestamp(build_reply(instant)) == instant


def test_extract_timestamp_truncates_below_millisecond() -> None:
    data = bytearray(48)
    # seconds = 0, fraction just under 1 ms
    data[44:48] = (4294967).to_bytes(4, "big")

    assert extract_timestamp(bytes(data)) == ntp.NTP_EPOCH


def test_extract_timestamp_rejects_short_reply() -> None:
    with pytest.raises(MalformedResponseError):
        extract_timestamp(bytes(47))


def test_query_rejects_blank_host_before_any_io(monkeypatch: pytest.MonkeyPatch) -> None:
    def no_dns(*_args, **_kwargs):
        raise AssertionError("resolution must not happen")

    monkeypatch.setattr(ntp.socket, "getaddrinfo", no_dns)

    for host in ("", "   ", None):
        with pytest.raises(InvalidInputError):
            NtpClient().query(host)  # type: ignore[arg-type]


def test_query_against_local_responder() -> None:
    expected = datetime(2024, 6, 1, 10, 20, 30, 450000, tzinfo=timezone.utc)
    responder = UdpResponder(build_reply(expected))
    try:
        reply = NtpClient(port=responder.port).query("127.0.0.1", timeout_ms=2000)
    finally:
        responder.close()

    assert reply.server_time_utc == expected
    assert responder.request == build_request()


def test_query_short_reply_is_malformed() -> None:
    responder = UdpResponder(bytes(20))
    try:
        with pytest.raises(MalformedResponseError):
            NtpClient(port=responder.port).query("127.0.0.1", timeout_ms=2000)
    finally:
        responder.close()


def test_query_timeout_is_transport_error() -> None:
    responder = UdpResponder(None)
    try:
        with pytest.raises(TransportError):
            NtpClient(port=responder.port).query("127.0.0.1", timeout_ms=200)
    finally:
        responder.close()


def test_query_cancelled_before_send() -> None:
    cancel = threading.Event()
    cancel.set()

    with pytest.raises(CheckCancelled):
        NtpClient(port=9).query("127.0.0.1", cancel=cancel)


def test_resolution_errors(monkeypatch: pytest.MonkeyPatch) -> None:
    def fail(*_args, **_kwargs):
        raise socket.gaierror(-2, "Name or service not known")

    monkeypatch.setattr(ntp.socket, "getaddrinfo", fail)
    with pytest.raises(ResolutionFailedError):
        NtpClient().query("nowhere.invalid")

    monkeypatch.setattr(ntp.socket, "getaddrinfo", lambda *_a, **_k: [])
    with pytest.raises(ResolutionFailedError):
        NtpClient().query("nowhere.invalid")


def test_resolution_prefers_ipv4(monkeypatch: pytest.MonkeyPatch) -> None:
    infos = [
        (socket.AF_INET6, socket.SOCK_DGRAM, 17, "", ("::1", 123, 0, 0)),
        (socket.AF_INET, socket.SOCK_DGRAM, 17, "", ("192.0.2.1", 123)),
    ]
    monkeypatch.setattr(ntp.socket, "getaddrinfo", lambda *_a, **_k: infos)

    assert ntp._resolve("dual.test") == (socket.AF_INET, ("192.0.2.1", 123))

    monkeypatch.setattr(ntp.socket, "getaddrinfo", lambda *_a, **_k: infos[:1])
    assert ntp._resolve("v6only.test") == (socket.AF_INET6, ("::1", 123, 0, 0))
