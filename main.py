"""
Entry point: wire settings, audit log, NTP client and MonitorState to the Tk window.

    python main.py                 # open the monitor window
    python main.py --once          # run one check cycle headless and exit
"""

import argparse
import logging
import sys
from pathlib import Path

from timekeeper.audit import AuditLogger
from timekeeper.clock import ClockAdjuster, SystemClock
from timekeeper.models import OutcomeKind
from timekeeper.ntp import NtpClient
from timekeeper.state import MonitorState
from timekeeper.storage import SettingsStore, get_logs_dir
from timekeeper.utils import format_offset


def parse_args(argv=None) -> argparse.Namespace:
    parser = argparse.ArgumentParser(description="Monitor and correct the system clock against NTP servers.")
    parser.add_argument("--settings", type=Path, help="settings JSON file (default: per-user config dir)")
    parser.add_argument("--log-dir", type=Path, help="directory for daily audit logs")
    parser.add_argument("--once", action="store_true", help="run one check cycle without the UI and exit")
    parser.add_argument("-v", "--verbose", action="store_true", help="debug logging")
    return parser.parse_args(argv)


def build_state(args: argparse.Namespace, **callbacks) -> MonitorState:
    return MonitorState(
        SettingsStore(args.settings),
        NtpClient(),
        AuditLogger(args.log_dir or get_logs_dir()),
        SystemClock(),
        ClockAdjuster(),
        **callbacks,
    )


def run_once(args: argparse.Namespace) -> int:
    state = build_state(args)
    state.initialize()
    outcome = state.check_now()
    for status in state.statuses():
        print(f"{status.server}: {status.status_message} {format_offset(status.offset_seconds)}".rstrip())
    for message in (state.warning_message, state.clock_warning, state.log_warning):
        if message:
            print(message, file=sys.stderr)
    if outcome is None or outcome.kind is not OutcomeKind.COMPLETED:
        return 2
    return 1 if outcome.all_failed else 0


def main(argv=None) -> int:
    args = parse_args(argv)
    logging.basicConfig(
        level=logging.DEBUG if args.verbose else logging.INFO,
        format="%(asctime)s %(levelname)s %(name)s %(message)s",
    )
    if args.once:
        return run_once(args)

    import tkinter as tk

    from timekeeper.ui import AppUI

    root = tk.Tk()
    state = build_state(args, dispatch=lambda fn: root.after(0, fn))
    state.initialize()
    ui = AppUI(root, state)
    state.on_statuses_changed = ui.on_statuses_changed
    state.on_outcome = ui.on_outcome
    state.on_any_change = ui.on_any_change

    def on_close():
        state.stop()
        root.destroy()

    root.protocol("WM_DELETE_WINDOW", on_close)
    if state.can_start:
        state.start()
    root.mainloop()
    return 0


if __name__ == "__main__":
    sys.exit(main())
