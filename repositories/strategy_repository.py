# repositories/strategy_repository.py
from __future__ import annotations
import json
from typing import Any, Optional

from enums.strategy_type import RiskLevel, StrategyType
from models.strategy import Strategy
from repositories.sqlite_base import SqliteRepository


class StrategyRepository(SqliteRepository):
    """
    Strategy definitions. The engine only reads them; ``save`` exists for the
    configuration surface and for seeding.
    """

    def _ensure_table(self) -> None:
        with self._conn() as c:
            c.execute("""
                CREATE TABLE IF NOT EXISTS strategies (
                    id          INTEGER PRIMARY KEY AUTOINCREMENT,
                    name        TEXT NOT NULL,
                    type        TEXT NOT NULL,
                    risk_level  TEXT NOT NULL DEFAULT 'MEDIUM',
                    is_enabled  INTEGER NOT NULL DEFAULT 0,
                    config      TEXT NOT NULL DEFAULT '{}'
                )
            """)

    def save(
        self,
        name: str,
        type: StrategyType,
        risk_level: RiskLevel = RiskLevel.MEDIUM,
        is_enabled: bool = True,
        config: Optional[dict[str, Any]] = None,
    ) -> Strategy:
        with self._conn() as c:
            cur = c.execute("""
                INSERT INTO strategies (name, type, risk_level, is_enabled, config)
                VALUES (?, ?, ?, ?, ?)
            """, (name, StrategyType(type).value, RiskLevel(risk_level).value, 1 if is_enabled else 0, json.dumps(config or {})))
            strategy_id = int(cur.lastrowid)
        return self.get_by_id(strategy_id)

    def get_by_id(self, strategy_id: int) -> Optional[Strategy]:
        with self._conn() as c:
            row = c.execute("SELECT * FROM strategies WHERE id = ?", (int(strategy_id),)).fetchone()
            return Strategy.from_row(dict(row)) if row else None

    def list_all(self) -> list[Strategy]:
        with self._conn() as c:
            rows = c.execute("SELECT * FROM strategies ORDER BY id").fetchall()
            return [Strategy.from_row(dict(r)) for r in rows]
