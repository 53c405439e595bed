from __future__ import annotations

import datetime as dt
import os
import sqlite3
from typing import Any, List, Optional, Sequence

from .base import DuplicateShortCodeError, ReminderState, ReminderStore


_COLUMNS = (
    "id",
    "short_code",
    "message",
    "schedule_type",
    "next_fire_at",
    "recurrence",
    "time_of_day",
    "anchor_date",
    "fuzzy_minutes",
    "window_start",
    "window_end",
    "nag_enabled",
    "nag_interval",
    "nag_count",
    "status",
    "created_at",
    "updated_at",
    "last_fired_at",
)
_SELECT = f"SELECT {', '.join(_COLUMNS)} FROM reminders"


def _utc_now_iso() -> str:
    return dt.datetime.now(dt.timezone.utc).replace(microsecond=0).isoformat()


def _normalize_code(code: str) -> str:
    return code.strip().lower()


class SQLiteReminderStore(ReminderStore):
    def __init__(self, db_path: str, default_timezone: str = "UTC") -> None:
        self._db_path = db_path
        self._default_timezone = default_timezone
        directory = os.path.dirname(db_path)
        if directory:
            os.makedirs(directory, exist_ok=True)
        self._init_db()

    def _connect(self) -> sqlite3.Connection:
        return sqlite3.connect(self._db_path)

    def _init_db(self) -> None:
        with self._connect() as conn:
            conn.execute(
                """
                CREATE TABLE IF NOT EXISTS settings (
                    key TEXT PRIMARY KEY,
                    value TEXT NOT NULL
                )
                """
            )
            conn.execute(
                """
                CREATE TABLE IF NOT EXISTS reminders (
                    id TEXT PRIMARY KEY,
                    short_code TEXT NOT NULL,
                    short_code_norm TEXT NOT NULL,
                    message TEXT NOT NULL,
                    schedule_type TEXT NOT NULL,
                    next_fire_at TEXT NOT NULL,
                    recurrence TEXT,
                    time_of_day TEXT,
                    anchor_date TEXT,
                    fuzzy_minutes INTEGER NOT NULL DEFAULT 0,
                    window_start TEXT,
                    window_end TEXT,
                    nag_enabled INTEGER NOT NULL DEFAULT 0,
                    nag_interval INTEGER NOT NULL DEFAULT 2,
                    nag_count INTEGER NOT NULL DEFAULT 0,
                    status TEXT NOT NULL DEFAULT 'active',
                    created_at TEXT NOT NULL,
                    updated_at TEXT NOT NULL,
                    last_fired_at TEXT
                )
                """
            )
            conn.execute(
                """
                CREATE UNIQUE INDEX IF NOT EXISTS reminders_short_code_norm_idx
                ON reminders (short_code_norm)
                """
            )
            conn.execute(
                """
                CREATE INDEX IF NOT EXISTS reminders_status_next_fire_idx
                ON reminders (status, next_fire_at)
                """
            )
            conn.execute(
                "INSERT OR IGNORE INTO settings (key, value) VALUES (?, ?)",
                ("timezone", self._default_timezone),
            )

    def _row_to_reminder(self, row: Sequence[Any]) -> ReminderState:
        return ReminderState(
            id=row[0],
            short_code=row[1],
            message=row[2],
            schedule_type=row[3],
            next_fire_at=row[4],
            recurrence=row[5],
            time_of_day=row[6],
            anchor_date=row[7],
            fuzzy_minutes=int(row[8] or 0),
            window_start=row[9],
            window_end=row[10],
            nag_enabled=bool(row[11]),
            nag_interval=int(row[12]),
            nag_count=int(row[13]),
            status=row[14],
            created_at=row[15],
            updated_at=row[16],
            last_fired_at=row[17],
        )

    def _query(self, sql: str, params: Sequence[Any] = ()) -> List[ReminderState]:
        with self._connect() as conn:
            rows = conn.execute(sql, params).fetchall()
            return [self._row_to_reminder(row) for row in rows]

    def create(self, reminder: ReminderState) -> None:
        with self._connect() as conn:
            try:
                conn.execute(
                    """
                    INSERT INTO reminders (
                        id, short_code, short_code_norm, message, schedule_type,
                        next_fire_at, recurrence, time_of_day, anchor_date,
                        fuzzy_minutes, window_start, window_end, nag_enabled,
                        nag_interval, nag_count, status, created_at, updated_at,
                        last_fired_at
                    )
                    VALUES (?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?)
                    """,
                    (
                        reminder.id,
                        reminder.short_code,
                        _normalize_code(reminder.short_code),
                        reminder.message,
                        reminder.schedule_type,
                        reminder.next_fire_at,
                        reminder.recurrence,
                        reminder.time_of_day,
                        reminder.anchor_date,
                        reminder.fuzzy_minutes,
                        reminder.window_start,
                        reminder.window_end,
                        1 if reminder.nag_enabled else 0,
                        reminder.nag_interval,
                        reminder.nag_count,
                        reminder.status,
                        reminder.created_at,
                        reminder.updated_at,
                        reminder.last_fired_at,
                    ),
                )
            except sqlite3.IntegrityError as exc:
                if "short_code" in str(exc):
                    raise DuplicateShortCodeError(reminder.short_code) from exc
                raise

    def get(self, reminder_id: str) -> Optional[ReminderState]:
        rows = self._query(f"{_SELECT} WHERE id = ?", (reminder_id,))
        return rows[0] if rows else None

    def get_by_short_code(self, code: str) -> Optional[ReminderState]:
        rows = self._query(
            f"{_SELECT} WHERE short_code_norm = ? LIMIT 1", (_normalize_code(code),)
        )
        return rows[0] if rows else None

    def get_due(self, now_iso: str) -> List[ReminderState]:
        return self._query(
            f"""
            {_SELECT}
            WHERE status = 'active'
              AND next_fire_at <= ?
              AND (last_fired_at IS NULL OR last_fired_at < next_fire_at)
            ORDER BY next_fire_at ASC, id ASC
            """,
            (now_iso,),
        )

    def get_nag_candidates(self, max_attempts: Optional[int] = None) -> List[ReminderState]:
        sql = f"""
            {_SELECT}
            WHERE nag_enabled = 1
              AND nag_count > 0
              AND status = 'active'
              AND last_fired_at IS NOT NULL
        """
        params: List[Any] = []
        if max_attempts is not None:
            sql += " AND nag_count < ?"
            params.append(max_attempts)
        sql += " ORDER BY last_fired_at ASC, id ASC"
        return self._query(sql, params)

    def mark_fired(
        self, reminder_id: str, now_iso: str, next_fire_at: Optional[str] = None
    ) -> None:
        with self._connect() as conn:
            if next_fire_at is not None:
                conn.execute(
                    """
                    UPDATE reminders
                    SET last_fired_at = ?, next_fire_at = ?, nag_count = 0, updated_at = ?
                    WHERE id = ?
                    """,
                    (now_iso, next_fire_at, _utc_now_iso(), reminder_id),
                )
                return
            conn.execute(
                """
                UPDATE reminders
                SET last_fired_at = ?, nag_count = nag_count + 1, updated_at = ?
                WHERE id = ?
                """,
                (now_iso, _utc_now_iso(), reminder_id),
            )

    def set_next_fire(self, reminder_id: str, next_fire_at: str) -> None:
        with self._connect() as conn:
            conn.execute(
                """
                UPDATE reminders
                SET next_fire_at = ?, nag_count = 0, updated_at = ?
                WHERE id = ?
                """,
                (next_fire_at, _utc_now_iso(), reminder_id),
            )

    def reset_nag_count(self, reminder_id: str) -> None:
        with self._connect() as conn:
            conn.execute(
                "UPDATE reminders SET nag_count = 0, updated_at = ? WHERE id = ?",
                (_utc_now_iso(), reminder_id),
            )

    def set_status(self, reminder_id: str, status: str) -> None:
        with self._connect() as conn:
            conn.execute(
                "UPDATE reminders SET status = ?, updated_at = ? WHERE id = ?",
                (status, _utc_now_iso(), reminder_id),
            )

    def list_active(self) -> List[ReminderState]:
        return self._query(
            f"{_SELECT} WHERE status = 'active' ORDER BY next_fire_at ASC, id ASC"
        )

    def list_recurring_active(self) -> List[ReminderState]:
        return self._query(
            f"""
            {_SELECT}
            WHERE status = 'active' AND schedule_type = 'recurring'
            ORDER BY next_fire_at ASC, id ASC
            """
        )

    def get_timezone(self) -> str:
        with self._connect() as conn:
            row = conn.execute(
                "SELECT value FROM settings WHERE key = ?", ("timezone",)
            ).fetchone()
            return row[0] if row else self._default_timezone

    def set_timezone(self, timezone: str) -> None:
        with self._connect() as conn:
            conn.execute(
                """
                INSERT INTO settings (key, value) VALUES (?, ?)
                ON CONFLICT(key) DO UPDATE SET value = excluded.value
                """,
                ("timezone", timezone),
            )
