"""
Design (config.py)
- Purpose: Centralize constants and configuration.
- Inputs: None.
- Outputs: Constants (slot layout, defaults, timeouts, file names).
- Side effects: None.
- Thread-safety: N/A (read-only constants).
"""

APP_NAME = "Time Keeper"

# Number of configurable server slots; slot 0 is the primary server
SLOT_COUNT = 5

DEFAULT_SERVERS = ["time.windows.com", "pool.ntp.org", "", "", ""]

# Check cadence
DEFAULT_INTERVAL_SEC = 60
MIN_INTERVAL_SEC = 1

## NTP query behavior
NTP_PORT = 123
NTP_PACKET_SIZE = 48
QUERY_TIMEOUT_MS = 3000   # per-server timeout for both send and receive

# Clock correction: only adjust when |drift| exceeds this allowance
DEFAULT_DRIFT_ALLOWANCE_MS = 1000

# Maximum number of log lines kept in the Logs panel (oldest trimmed)
LOG_MAX_LINES = 1000

# Persistence: settings file and audit log location (paths resolved in storage module)
SETTINGS_FILENAME = "settings.json"
SETTINGS_DIRNAME = "TimeKeeper"
LOGS_DIRNAME = "logs"
LOG_FILE_PREFIX = "timechecks-"
LOG_FILE_EXTENSION = ".log"
