"""
Design (errors.py)
- Purpose: Exception taxonomy for a single time check.
- Per-server errors (InvalidInputError, ResolutionFailedError, TransportError,
  MalformedResponseError) are recorded in that server's status; the cycle continues.
- AuditLogError never aborts a cycle; CheckCancelled ends it quietly.
"""


class TimeKeeperError(Exception):
    """Base class for all errors raised by this package."""


class NtpError(TimeKeeperError):
    """A single NTP query failed."""


class InvalidInputError(NtpError):
    """The host string is blank or unusable; raised before any I/O."""


class ResolutionFailedError(NtpError):
    pass


class TransportError(NtpError):
    """Send/receive failed or timed out. Not retried by the client."""


class MalformedResponseError(NtpError):
    pass


class AuditLogError(TimeKeeperError):
    """Appending to the audit log failed."""


class CheckCancelled(TimeKeeperError):
    """The cancel signal was set while a check was in progress."""
