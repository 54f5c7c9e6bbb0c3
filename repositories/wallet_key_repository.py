# repositories/wallet_key_repository.py
from __future__ import annotations
from typing import Optional

from repositories.sqlite_base import SqliteRepository


class WalletKeyRepository(SqliteRepository):
    """
    Key material of the delegated wallets, one row per session.

    Callers fetch the key for the duration of a single trade and must not keep
    it around; nothing in here caches.
    """

    def _ensure_table(self) -> None:
        with self._conn() as c:
            c.execute("""
                CREATE TABLE IF NOT EXISTS session_keys (
                    session_id   INTEGER PRIMARY KEY,
                    private_key  TEXT NOT NULL
                )
            """)

    def save(self, session_id: int, private_key: str) -> None:
        with self._conn() as c:
            c.execute(
                "INSERT OR REPLACE INTO session_keys (session_id, private_key) VALUES (?, ?)",
                (int(session_id), private_key)
            )

    def get_private_key(self, session_id: int) -> Optional[str]:
        with self._conn() as c:
            row = c.execute("SELECT private_key FROM session_keys WHERE session_id = ?", (int(session_id),)).fetchone()
            return row[0] if row and row[0] else None
