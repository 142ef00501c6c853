"""
Design (ntp.py)
- Purpose: Minimal NTP (client mode) query: build a 48-byte request, send it over UDP,
           parse the reply's transmit timestamp into a UTC datetime.
- Inputs: host (str), timeout in milliseconds, optional cancel Event.
- Outputs: NtpReply, or one of the errors in errors.py.
- Side effects: DNS resolution and one UDP exchange with port 123.
- Thread-safety: Stateless; safe to call from any thread.
- Cancellation: the cancel Event is checked before sending. A call already blocked in
  recv() is not interrupted; it returns within timeout_ms at the latest.
"""

import logging
import socket
import struct
import threading
from datetime import datetime, timedelta, timezone

from .config import NTP_PACKET_SIZE, NTP_PORT, QUERY_TIMEOUT_MS
from .errors import (
    CheckCancelled,
    InvalidInputError,
    MalformedResponseError,
    ResolutionFailedError,
    TransportError,
)
from .models import NtpReply

log = logging.getLogger(__name__)

NTP_EPOCH = datetime(1900, 1, 1, tzinfo=timezone.utc)

# LI = 0, VN = 3, Mode = 3 (client)
CLIENT_REQUEST_HEADER = 0x1B

TRANSMIT_TIMESTAMP_OFFSET = 40


def build_request() -> bytes:
    """Return the 48-byte client request (first byte 0x1B, rest zero)."""
    packet = bytearray(NTP_PACKET_SIZE)
    packet[0] = CLIENT_REQUEST_HEADER
    return bytes(packet)


def extract_timestamp(data: bytes) -> datetime:
    """
    Purpose: Decode the transmit timestamp (bytes 40..47) of an NTP reply.
    Inputs: data (raw reply, at least 48 bytes)
    Outputs: aware UTC datetime, millisecond precision.
    Raises: MalformedResponseError if the reply is shorter than 48 bytes.
    """
    if len(data) < NTP_PACKET_SIZE:
        raise MalformedResponseError(
            f"Reply too short ({len(data)} bytes, expected {NTP_PACKET_SIZE})."
        )
    seconds, fraction = struct.unpack_from("!II", data, TRANSMIT_TIMESTAMP_OFFSET)
    milliseconds = seconds * 1000 + (fraction * 1000 >> 32)
    return NTP_EPOCH + timedelta(milliseconds=milliseconds)


def _resolve(host: str) -> tuple:
    """Return (family, sockaddr) for host, preferring IPv4."""
    try:
        infos = socket.getaddrinfo(host, NTP_PORT, type=socket.SOCK_DGRAM)
    except (socket.gaierror, UnicodeError) as exc:
        raise ResolutionFailedError(f"Could not resolve {host}: {exc}") from exc
    if not infos:
        raise ResolutionFailedError(f"Could not resolve {host}.")
    for family, _, _, _, sockaddr in infos:
        if family == socket.AF_INET:
            return family, sockaddr
    family, _, _, _, sockaddr = infos[0]
    return family, sockaddr


class NtpClient:
    """
    Design (NtpClient)
    - Purpose: Query one server per call. No retries: the scheduler decides what to do next.
    - port is configurable so tests can point the client at a local responder.
    """

    def __init__(self, port: int = NTP_PORT) -> None:
        self.port = port

    def query(
        self,
        host: str,
        timeout_ms: int = QUERY_TIMEOUT_MS,
        cancel: threading.Event | None = None,
    ) -> NtpReply:
        if not host or not host.strip():
            raise InvalidInputError("Host name is required.")
        host = host.strip()

        family, sockaddr = _resolve(host)
        sockaddr = (sockaddr[0], self.port) + tuple(sockaddr[2:])

        if cancel is not None and cancel.is_set():
            raise CheckCancelled(f"Check of {host} cancelled.")

        with socket.socket(family, socket.SOCK_DGRAM) as sock:
            sock.settimeout(max(timeout_ms, 1) / 1000.0)
            try:
                sock.connect(sockaddr)
                sock.send(build_request())
                data = sock.recv(1024)
            except TimeoutError as exc:
                raise TransportError(f"Timed out waiting for {host}.") from exc
            except OSError as exc:
                raise TransportError(f"Network error contacting {host}: {exc}") from exc

        log.debug("Received %d bytes from %s (%s)", len(data), host, sockaddr[0])
        return NtpReply(server_time_utc=extract_timestamp(data))
