# repositories/trade_repository.py
from __future__ import annotations
from typing import Any, Optional

from models.trade_record import TradeRecord
from repositories.sqlite_base import SqliteRepository
from utils.log_config import log_function


class TradeRepository(SqliteRepository):
    """
    Append-only trade log: one row per trade that reached confirmation.
    """

    def _ensure_table(self) -> None:
        with self._conn() as c:
            c.execute("""
                CREATE TABLE IF NOT EXISTS trades (
                    id               INTEGER PRIMARY KEY AUTOINCREMENT,
                    session_id       INTEGER NOT NULL,
                    wallet_address   TEXT NOT NULL,
                    type             TEXT NOT NULL,
                    amount           TEXT NOT NULL,
                    pair             TEXT NOT NULL,
                    status           TEXT NOT NULL,
                    transaction_hash TEXT,
                    is_ai            INTEGER NOT NULL DEFAULT 1,
                    timestamp        INTEGER NOT NULL
                )
            """)

    @log_function
    def create(self, record: TradeRecord) -> TradeRecord:
        with self._conn() as c:
            cur = c.execute("""
                INSERT INTO trades (
                    session_id, wallet_address, type, amount, pair, status, transaction_hash, is_ai, timestamp
                ) VALUES (?, ?, ?, ?, ?, ?, ?, ?, ?)
            """, (
                record.session_id, record.wallet_address, record.action.value, record.amount,
                record.pair, record.status.value, record.transaction_hash,
                1 if record.is_ai else 0, record.timestamp
            ))
            return record.model_copy(update={"id": int(cur.lastrowid)})

    def list_by_session(self, session_id: int, limit: int = 200) -> list[TradeRecord]:
        with self._conn() as c:
            rows = c.execute(
                "SELECT * FROM trades WHERE session_id = ? ORDER BY id DESC LIMIT ?",
                (int(session_id), limit)
            ).fetchall()
            return [self._to_record(dict(r)) for r in rows]

    def count_by_session(self, session_id: int) -> int:
        with self._conn() as c:
            row = c.execute("SELECT COUNT(*) FROM trades WHERE session_id = ?", (int(session_id),)).fetchone()
            return int(row[0])

    @staticmethod
    def _to_record(row: dict[str, Any]) -> TradeRecord:
        return TradeRecord(
            id=row["id"],
            session_id=row["session_id"],
            wallet_address=row["wallet_address"],
            action=row["type"],
            amount=row["amount"],
            pair=row["pair"],
            status=row["status"],
            transaction_hash=row.get("transaction_hash"),
            is_ai=bool(row["is_ai"]),
            timestamp=row["timestamp"],
        )

    def get_by_id(self, trade_id: int) -> Optional[TradeRecord]:
        with self._conn() as c:
            row = c.execute("SELECT * FROM trades WHERE id = ?", (int(trade_id),)).fetchone()
            return self._to_record(dict(row)) if row else None
