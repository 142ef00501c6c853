"""
Design (ui.py)
- Purpose: Build and manage the Tkinter UI (server slot fields, interval, status Treeview, Logs panel).
- Inputs: MonitorState (shared state).
- Outputs: None (renders UI, forwards user edits to MonitorState).
- Side effects: Creates windows; shows OS notifications.
- Thread-safety: UI code runs on main thread; MonitorState marshals scheduler events here through
  the dispatch main.py hands it (Tk.after), so every callback below runs on the main thread.
"""

import tkinter as tk
from tkinter import ttk
from datetime import datetime
from typing import Dict, List

from .config import APP_NAME, LOG_MAX_LINES
from .models import CHECKING, ServerStatus, SyncOutcome
from .state import MonitorState
from .utils import format_offset, format_timestamp, notify_os

BG = "#1e1e1e"
FIELD_BG = "#2b2b2b"


class AppUI:
    """
    Design (AppUI)
    - Purpose: Encapsulate all UI creation and behavior.
    - Public attributes:
        enable_notifications (tk.BooleanVar): toggles system notifications
        adjustment_notifications (tk.BooleanVar): toggles "System time adjusted." notices
        adjust_clock (tk.BooleanVar): toggles correcting the system clock
        show_logs (tk.BooleanVar): toggles visibility of the logs panel (check events)
    - Public methods (observer callbacks for MonitorState):
        on_statuses_changed(), on_outcome(), on_any_change()
    """

    def __init__(self, root: tk.Tk, state: MonitorState):
        self.root = root
        self.state = state

        self.enable_notifications = tk.BooleanVar(value=state.notifications_enabled)
        self.adjustment_notifications = tk.BooleanVar(value=state.adjustment_notifications_enabled)
        self.adjust_clock = tk.BooleanVar(value=state.adjust_clock)
        self.show_logs = tk.BooleanVar(value=False)
        self.slot_vars: List[tk.StringVar] = []
        self.slot_errors: List[tk.Label] = []
        self.interval_var = tk.StringVar(value=str(state.interval_seconds))
        self.status_var = tk.StringVar()
        self.warning_var = tk.StringVar()

        # Last logged check per slot: {slot_index -> (server, last_checked)}
        self._logged: Dict[int, tuple] = {}

        # Window
        self.root.title(APP_NAME)
        self.root.rowconfigure(1, weight=1)
        self.root.columnconfigure(0, weight=1)
        self.root.configure(bg=BG)

        style = ttk.Style(self.root)
        style.theme_use("default")
        style.configure(
            "Treeview",
            background=FIELD_BG,
            foreground="#f0f0f0",
            fieldbackground=FIELD_BG,
            rowheight=24,
            font=("Segoe UI", 10),
        )
        style.configure(
            "Treeview.Heading",
            background=BG,
            foreground="#ffffff",
            font=("Segoe UI", 10, "bold"),
        )
        style.map("Treeview", background=[('selected', '#444')], foreground=[])

        # Configuration fields
        form = tk.Frame(self.root, bg=BG)
        form.grid(row=0, column=0, sticky="ew", padx=10, pady=(10, 5))
        for slot in state.slots:
            label = "Server 1 (primary)" if slot.index == 0 else f"Server {slot.index + 1}"
            tk.Label(form, text=label, fg="white", bg=BG).grid(row=slot.index, column=0, sticky="e", padx=5, pady=2)
            var = tk.StringVar(value=slot.hostname)
            entry = tk.Entry(form, textvariable=var, width=32)
            entry.grid(row=slot.index, column=1, sticky="w", padx=5, pady=2)
            entry.bind("<FocusOut>", lambda _e, i=slot.index: self._commit_slot(i))
            entry.bind("<Return>", lambda _e, i=slot.index: self._commit_slot(i))
            err = tk.Label(form, text="", fg="#FF6A6A", bg=BG)
            err.grid(row=slot.index, column=2, sticky="w", padx=5)
            self.slot_vars.append(var)
            self.slot_errors.append(err)

        row = len(state.slots)
        tk.Label(form, text="Interval (seconds)", fg="white", bg=BG).grid(row=row, column=0, sticky="e", padx=5, pady=2)
        e_interval = tk.Entry(form, textvariable=self.interval_var, width=8)
        e_interval.grid(row=row, column=1, sticky="w", padx=5, pady=2)
        e_interval.bind("<FocusOut>", lambda _e: self._commit_interval())
        e_interval.bind("<Return>", lambda _e: self._commit_interval())
        self.interval_error = tk.Label(form, text="", fg="#FF6A6A", bg=BG)
        self.interval_error.grid(row=row, column=2, sticky="w", padx=5)

        # Treeview
        self.columns = ("slot", "server", "last_checked", "offset", "status")
        self.tree = ttk.Treeview(self.root, columns=self.columns, show="headings")
        self.tree.grid(row=1, column=0, sticky="nsew", padx=10, pady=5)
        self.tree.tag_configure("green", foreground="#7CFC00")
        self.tree.tag_configure("red", foreground="#FF6A6A")
        self.tree.tag_configure("orange", foreground="#FFA500")  # check in progress
        headers = {
            "slot": "#",
            "server": "Server",
            "last_checked": "Last Checked",
            "offset": "Offset",
            "status": "Status",
        }
        for col in self.columns:
            self.tree.heading(col, text=headers[col])
        self.tree.column("slot", width=40, stretch=False)

        # Status lines
        tk.Label(self.root, textvariable=self.status_var, fg="white", bg=BG, anchor="w").grid(
            row=2, column=0, sticky="ew", padx=10)
        tk.Label(self.root, textvariable=self.warning_var, fg="#FFA500", bg=BG, anchor="w").grid(
            row=3, column=0, sticky="ew", padx=10)

        # Buttons & toggles
        button_frame = tk.Frame(self.root, bg=BG)
        button_frame.grid(row=4, column=0, sticky="ew", padx=10, pady=(5, 10))
        self.start_button = ttk.Button(button_frame, text="Start", command=self.state.start)
        self.start_button.pack(side=tk.LEFT, padx=5)
        ttk.Button(button_frame, text="Stop", command=self.state.stop).pack(side=tk.LEFT, padx=5)
        ttk.Button(button_frame, text="Sync Now", command=self.state.sync_now).pack(side=tk.LEFT, padx=5)

        for text, var, command in (
            ("Enable Notifications", self.enable_notifications, self._commit_options),
            ("Adjustment Notifications", self.adjustment_notifications, self._commit_options),
            ("Adjust Clock", self.adjust_clock, self._commit_options),
            ("Show Logs", self.show_logs, self.toggle_logs),
        ):
            tk.Checkbutton(
                button_frame,
                text=text,
                variable=var,
                fg="white",
                bg=BG,
                selectcolor=FIELD_BG,
                activebackground=BG,
                activeforeground="white",
                command=command,
            ).pack(side=tk.LEFT, padx=5)

        # Logs panel (hidden by default)
        self.logs_box = tk.Text(self.root, height=8, bg="#1b1b1b", fg="#dddddd", wrap="none")
        self.logs_box.configure(state="disabled")

        self.on_statuses_changed(self.state.statuses())
        self.on_any_change()

    # ---------- Public API for MonitorState ----------

    def on_statuses_changed(self, statuses: List[ServerStatus]) -> None:
        self.tree.delete(*self.tree.get_children())
        for status in statuses:
            if status.status_message == CHECKING:
                color = "orange"
            elif status.has_error:
                color = "red"
            else:
                color = "green"
            self.tree.insert("", "end", values=(
                status.slot_index + 1,
                status.server,
                format_timestamp(status.last_checked),
                format_offset(status.offset_seconds),
                status.status_message,
            ), tags=(color,))
            self._log_status(status)

    def on_outcome(self, outcome: SyncOutcome) -> None:
        message = self.state.notification_for(outcome)
        if message:
            notify_os(message)

    def on_any_change(self) -> None:
        for slot, err in zip(self.state.slots, self.slot_errors):
            err.configure(text=slot.error or "")
        self.interval_error.configure(text=self.state.interval_error or "")
        self.start_button.configure(state="normal" if self.state.can_start and not self.state.is_running else "disabled")
        self.status_var.set(self.state.status_message or "")
        warnings = [w for w in (self.state.warning_message, self.state.clock_warning, self.state.log_warning) if w]
        self.warning_var.set("  ".join(warnings))

    # ---------- UI callbacks & utilities ----------

    def toggle_logs(self) -> None:
        if self.show_logs.get():
            self.logs_box.grid(row=5, column=0, sticky="nsew", padx=10, pady=(0, 10))
        else:
            self.logs_box.grid_remove()

    def _commit_slot(self, index: int) -> None:
        self.state.set_slot_hostname(index, self.slot_vars[index].get())
        self.slot_vars[index].set(self.state.slots[index].hostname)

    def _commit_interval(self) -> None:
        self.state.set_interval((self.interval_var.get() or "").strip())

    def _commit_options(self) -> None:
        self.state.update_options(
            adjust_clock=self.adjust_clock.get(),
            notifications_enabled=self.enable_notifications.get(),
            adjustment_notifications_enabled=self.adjustment_notifications.get(),
        )

    def _log_status(self, status: ServerStatus) -> None:
        """Append one line per completed check (skips 'Checking...' and repeats)."""
        if status.last_checked is None:
            return
        key = (status.server, status.last_checked)
        if self._logged.get(status.slot_index) == key:
            return
        self._logged[status.slot_index] = key
        stamp = datetime.now().strftime("%Y-%m-%d %H:%M:%S")
        offset = format_offset(status.offset_seconds) or "-"
        self._append_log(f"[{stamp}] {status.server} -> {status.status_message} ({offset})\n")

    def _append_log(self, text: str) -> None:
        """
        Purpose: Append one line to the Logs panel and trim to LOG_MAX_LINES.
        Thread-safety: Main thread only.
        """
        self.logs_box.configure(state="normal")
        self.logs_box.insert("end", text)
        self.logs_box.see("end")
        total_lines = int(self.logs_box.index("end-1c").split(".")[0])
        if total_lines > LOG_MAX_LINES:
            remove = total_lines - LOG_MAX_LINES
            self.logs_box.delete("1.0", f"{remove + 1}.0")
        self.logs_box.configure(state="disabled")
