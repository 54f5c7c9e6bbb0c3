# repositories/activity_log_repository.py
from __future__ import annotations
import json
from typing import Optional

from enums.activity_type import ActivityType
from models.activity_log import ActivityLogEntry
from repositories.sqlite_base import SqliteRepository


class ActivityLogRepository(SqliteRepository):
    """
    Wallet activity audit trail. Rows are appended and never updated or
    deleted; ``details`` is stored as JSON text.
    """

    def _ensure_table(self) -> None:
        with self._conn() as c:
            c.execute("""
                CREATE TABLE IF NOT EXISTS wallet_activity_logs (
                    id                     INTEGER PRIMARY KEY AUTOINCREMENT,
                    session_id             INTEGER NOT NULL,
                    activity_type          TEXT NOT NULL,
                    details                TEXT NOT NULL DEFAULT '{}',
                    confidence             REAL,
                    is_manual_intervention INTEGER NOT NULL DEFAULT 0,
                    created_at             INTEGER NOT NULL
                )
            """)
            c.execute("CREATE INDEX IF NOT EXISTS idx_activity_session ON wallet_activity_logs(session_id)")

    def append(self, entry: ActivityLogEntry) -> ActivityLogEntry:
        with self._conn() as c:
            cur = c.execute("""
                INSERT INTO wallet_activity_logs (
                    session_id, activity_type, details, confidence, is_manual_intervention, created_at
                ) VALUES (?, ?, ?, ?, ?, ?)
            """, (
                entry.session_id, entry.activity_type.value,
                json.dumps(entry.details, default=str),
                entry.confidence, 1 if entry.is_manual_intervention else 0, entry.created_at
            ))
            return entry.model_copy(update={"id": int(cur.lastrowid)})

    def list_by_session(self, session_id: int, activity_type: Optional[ActivityType] = None, limit: int = 200) -> list[ActivityLogEntry]:
        q = "SELECT * FROM wallet_activity_logs WHERE session_id = ?"
        p: list = [int(session_id)]
        if activity_type:
            q += " AND activity_type = ?"
            p.append(ActivityType(activity_type).value)
        q += " ORDER BY id ASC LIMIT ?"
        p.append(limit)
        with self._conn() as c:
            rows = c.execute(q, tuple(p)).fetchall()
            return [
                ActivityLogEntry(
                    id=r["id"],
                    session_id=r["session_id"],
                    activity_type=r["activity_type"],
                    details=json.loads(r["details"] or "{}"),
                    confidence=r["confidence"],
                    is_manual_intervention=bool(r["is_manual_intervention"]),
                    created_at=r["created_at"],
                )
                for r in rows
            ]
