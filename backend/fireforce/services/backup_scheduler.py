# Overview: Backup reminders and automatic-backup timing over persisted local keys.

"""
Backup Scheduler

One background thread wakes every `check_interval` seconds and runs
`check()`:

- Backup due:   no backup recorded yet, or now - last backup >= 24h.
- Reminder due: backup due, not dismissed today, and no reminder yet or
                now - last reminder >= 8h.

A due reminder is broadcast on the `backup_reminder_due` signal. A due
backup (with auto backup enabled) is handed to `backup_runner`; without a
runner the scheduler only logs that nothing can produce the snapshot.

All state lives in the local key/value store and this class is its only
writer.
"""

from __future__ import annotations

import logging
import threading
from datetime import datetime, timedelta
from typing import Any, Callable

from blinker import Namespace

from fireforce.time_utils import parse_iso_datetime, to_utc_z, utcnow


logger = logging.getLogger(__name__)

_signals = Namespace()

#: Sent with lastBackup (ISO string or None) and message keyword arguments.
backup_reminder_due = _signals.signal("backup-reminder-due")

AUTO_BACKUP_KEY = "auto_backup_enabled"
LAST_BACKUP_KEY = "last_backup_date"
LAST_REMINDER_KEY = "last_reminder_date"
REMINDER_DISMISSED_KEY = "reminder_dismissed_date"
HISTORY_KEY = "backup_history"

BACKUP_INTERVAL = timedelta(hours=24)
REMINDER_INTERVAL = timedelta(hours=8)
HISTORY_LIMIT = 10
REMINDER_MESSAGE = "Please download a backup of your system data"


class BackupScheduler:
    def __init__(
        self,
        state,
        *,
        clock: Callable[[], datetime] = utcnow,
        check_interval: float = 3600,
        backup_runner: Callable[[], Any] | None = None,
    ):
        self.state = state
        self.clock = clock
        self.check_interval = check_interval
        self.backup_runner = backup_runner
        self._stop = threading.Event()
        self._thread: threading.Thread | None = None

    # ------------------------------------------------------------------
    # persisted state
    # ------------------------------------------------------------------

    def _get_time(self, key: str) -> datetime | None:
        raw = self.state.get_item(key)
        if not raw:
            return None
        try:
            return parse_iso_datetime(raw)
        except ValueError:
            logger.warning("Ignoring unparsable %s value %r", key, raw)
            return None

    def _set_time(self, key: str, value: datetime | str) -> None:
        if isinstance(value, datetime):
            value = to_utc_z(value)
        self.state.set_item(key, value)

    def is_enabled(self) -> bool:
        return bool(self.state.get_item(AUTO_BACKUP_KEY))

    def set_enabled(self, enabled: bool) -> None:
        self.state.set_item(AUTO_BACKUP_KEY, bool(enabled))
        logger.info("Automatic backup %s", "enabled" if enabled else "disabled")

    def last_backup(self) -> datetime | None:
        return self._get_time(LAST_BACKUP_KEY)

    def last_reminder(self) -> datetime | None:
        return self._get_time(LAST_REMINDER_KEY)

    def reminder_dismissed(self) -> datetime | None:
        return self._get_time(REMINDER_DISMISSED_KEY)

    def history(self) -> list[dict]:
        history = self.state.get_item(HISTORY_KEY)
        return history if isinstance(history, list) else []

    def record_backup(self, timestamp: datetime | str, entry: dict | None = None) -> None:
        """Record a completed backup; `entry` goes to the front of the history."""
        self._set_time(LAST_BACKUP_KEY, timestamp)
        if entry is not None:
            history = [entry] + self.history()
            self.state.set_item(HISTORY_KEY, history[:HISTORY_LIMIT])

    def dismiss_reminder(self) -> datetime:
        now = self.clock()
        self._set_time(REMINDER_DISMISSED_KEY, now)
        return now

    # ------------------------------------------------------------------
    # due conditions
    # ------------------------------------------------------------------

    def is_backup_due(self) -> bool:
        last = self.last_backup()
        if last is None:
            return True
        return self.clock() - last >= BACKUP_INTERVAL

    def is_reminder_due(self) -> bool:
        if not self.is_backup_due():
            return False

        now = self.clock()
        dismissed = self.reminder_dismissed()
        if dismissed is not None and dismissed.date() == now.date():
            return False

        last_reminder = self.last_reminder()
        if last_reminder is None:
            return True
        return now - last_reminder >= REMINDER_INTERVAL

    def next_backup_time(self) -> datetime:
        last = self.last_backup()
        if last is None:
            return self.clock()
        return last + BACKUP_INTERVAL

    def get_backup_stats(self, record_counts: dict | None = None) -> dict:
        stats = {
            "totalBackups": len(self.history()),
            "lastBackup": to_utc_z(self.last_backup()),
            "autoBackupEnabled": self.is_enabled(),
            "nextBackupDue": to_utc_z(self.next_backup_time()),
            "lastReminder": to_utc_z(self.last_reminder()),
            "reminderDismissed": to_utc_z(self.reminder_dismissed()),
            "backupDue": self.is_backup_due(),
        }
        if record_counts is not None:
            stats["recordCounts"] = dict(record_counts)
            # office info counts as one record
            stats["totalRecords"] = sum(record_counts.values()) + 1
        return stats

    # ------------------------------------------------------------------
    # ticks
    # ------------------------------------------------------------------

    def send_reminder(self) -> dict:
        self._set_time(LAST_REMINDER_KEY, self.clock())
        payload = {"lastBackup": to_utc_z(self.last_backup()), "message": REMINDER_MESSAGE}
        logger.info("Backup reminder due (last backup: %s)", payload["lastBackup"] or "never")
        backup_reminder_due.send(self, **payload)
        return payload

    def check(self) -> dict:
        """Run one scheduler tick. Returns what happened."""
        result = {"reminderSent": False, "backupRan": False}
        logger.debug("Backup scheduler tick")

        if self.is_reminder_due():
            self.send_reminder()
            result["reminderSent"] = True

        if self.is_enabled() and self.is_backup_due():
            if self.backup_runner is None:
                logger.warning("Automatic backup is due but no backup runner is configured")
            else:
                logger.info("Performing automatic backup")
                self.backup_runner()
                result["backupRan"] = True
        return result

    def _run(self) -> None:
        while not self._stop.wait(self.check_interval):
            try:
                self.check()
            except Exception:
                logger.exception("Backup scheduler tick failed")

    def start(self) -> None:
        if self._thread is not None and self._thread.is_alive():
            return
        self._stop.clear()
        self._thread = threading.Thread(target=self._run, name="backup-scheduler", daemon=True)
        self._thread.start()
        logger.info("Backup scheduler started (every %ss)", self.check_interval)

    def stop(self, timeout: float | None = 5) -> None:
        self._stop.set()
        if self._thread is not None:
            self._thread.join(timeout)
            self._thread = None
        logger.info("Backup scheduler stopped")

    @property
    def running(self) -> bool:
        return self._thread is not None and self._thread.is_alive()
