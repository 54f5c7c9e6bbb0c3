# repositories/sqlite_base.py
from __future__ import annotations
import os
import sqlite3
from contextlib import contextmanager
from pathlib import Path
from typing import Iterator


def resolve_db_path() -> str:
    env_path = os.getenv("DB_PATH")
    if env_path:
        return str(Path(env_path).expanduser().resolve())
    root = Path(__file__).resolve().parents[1]
    default = root / "data" / "trading.db"
    default.parent.mkdir(parents=True, exist_ok=True)
    return str(default)


class SqliteRepository:
    """
    Base for the sqlite-backed stores. Each repository owns one table and
    creates it on construction; connections are opened per operation.
    """

    def __init__(self, db_path: str | None = None) -> None:
        self.db_path = str(Path(db_path).expanduser().resolve()) if db_path else resolve_db_path()
        self._ensure_table()

    @contextmanager
    def _conn(self) -> Iterator[sqlite3.Connection]:
        conn = sqlite3.connect(self.db_path)
        conn.row_factory = sqlite3.Row
        try:
            yield conn
            conn.commit()
        except Exception:
            conn.rollback()
            raise
        finally:
            conn.close()

    def _ensure_table(self) -> None:
        raise NotImplementedError
