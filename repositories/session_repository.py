# repositories/session_repository.py
from __future__ import annotations
import time
from decimal import Decimal
from typing import Optional

from models.trading_session import TradingSession
from repositories.sqlite_base import SqliteRepository
from utils.log_config import log_function
from utils.web3_utils import format_plain_decimal, to_decimal


class SessionRepository(SqliteRepository):
    """
    Trading sessions. Rows are never deleted: stopping a session only clears
    ``is_active``; ``allocated_amount`` is stored as text to keep it exact.
    """

    def _ensure_table(self) -> None:
        with self._conn() as c:
            c.execute("""
                CREATE TABLE IF NOT EXISTS trading_sessions (
                    id               INTEGER PRIMARY KEY AUTOINCREMENT,
                    user_address     TEXT NOT NULL,
                    wallet_address   TEXT NOT NULL,
                    allocated_amount TEXT NOT NULL,
                    strategy_id      INTEGER NOT NULL,
                    is_active        INTEGER NOT NULL DEFAULT 1,
                    created_at       INTEGER,
                    updated_at       INTEGER
                )
            """)

    @log_function
    def create(self, user_address: str, wallet_address: str, allocated_amount: Decimal, strategy_id: int) -> TradingSession:
        if to_decimal(allocated_amount) < 0:
            raise ValueError("allocated_amount must be non-negative")
        now = int(time.time())
        with self._conn() as c:
            cur = c.execute("""
                INSERT INTO trading_sessions (
                    user_address, wallet_address, allocated_amount, strategy_id, is_active, created_at, updated_at
                ) VALUES (?, ?, ?, ?, 1, ?, ?)
            """, (user_address, wallet_address, format_plain_decimal(to_decimal(allocated_amount)), int(strategy_id), now, now))
            session_id = int(cur.lastrowid)
        return self.get_by_id(session_id)

    def get_by_id(self, session_id: int) -> Optional[TradingSession]:
        with self._conn() as c:
            row = c.execute("SELECT * FROM trading_sessions WHERE id = ?", (int(session_id),)).fetchone()
            return TradingSession.from_row(dict(row)) if row else None

    def list_active(self) -> list[TradingSession]:
        with self._conn() as c:
            rows = c.execute("SELECT * FROM trading_sessions WHERE is_active = 1 ORDER BY id").fetchall()
            return [TradingSession.from_row(dict(r)) for r in rows]

    def count_for_user(self, user_address: str) -> int:
        with self._conn() as c:
            row = c.execute(
                "SELECT COUNT(*) FROM trading_sessions WHERE LOWER(user_address) = LOWER(?)",
                (user_address,)
            ).fetchone()
            return int(row[0])

    @log_function
    def set_active(self, session_id: int, is_active: bool) -> None:
        with self._conn() as c:
            c.execute(
                "UPDATE trading_sessions SET is_active = ?, updated_at = ? WHERE id = ?",
                (1 if is_active else 0, int(time.time()), int(session_id))
            )
