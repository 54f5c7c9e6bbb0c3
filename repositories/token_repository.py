"""
TokenRepository (SQLite).
Symbol → contract address registry used to resolve both legs of a pair.
"""

from __future__ import annotations
from typing import Optional

from repositories.sqlite_base import SqliteRepository
from utils.log_config import log_function


class TokenRepository(SqliteRepository):
    def _ensure_table(self) -> None:
        with self._conn() as c:
            c.execute('''CREATE TABLE IF NOT EXISTS tokens (
                symbol      TEXT PRIMARY KEY,
                address     TEXT NOT NULL,
                updated_at  DATETIME DEFAULT CURRENT_TIMESTAMP
            )''')

    @log_function
    def upsert(self, symbol: str, address: str) -> None:
        with self._conn() as c:
            c.execute("""
                INSERT INTO tokens (symbol, address, updated_at)
                VALUES (?, ?, CURRENT_TIMESTAMP)
                ON CONFLICT(symbol) DO UPDATE SET
                    address=excluded.address,
                    updated_at=CURRENT_TIMESTAMP
            """, (symbol.upper(), address))

    def seed(self, registry: dict[str, str]) -> int:
        for symbol, address in registry.items():
            self.upsert(symbol, address)
        return len(registry)

    def get_address(self, symbol: str) -> Optional[str]:
        with self._conn() as c:
            row = c.execute("SELECT address FROM tokens WHERE symbol = ?", (symbol.upper(),)).fetchone()
            return row[0] if row else None

    def list_all(self) -> dict[str, str]:
        with self._conn() as c:
            return {r["symbol"]: r["address"] for r in c.execute("SELECT symbol, address FROM tokens ORDER BY symbol")}
