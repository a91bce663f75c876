"""
SQLite Database Repository - Prospect Persistence
==================================================

Durable ProspectStore. AUTOINCREMENT keeps ids from ever being reused
after a delete; a UNIQUE column enforces one record per external key.
"""

import sqlite3
import logging
from contextlib import contextmanager
from typing import List, Optional

from ...domain import DuplicateKeyError, NotFoundError, Prospect, ProspectStatus, render_message
from .store import ProspectStore, Templater, new_external_key, _now

logger = logging.getLogger(__name__)

DATABASE_FILE = "outreach_desk.db"


class SqliteProspectStore(ProspectStore):
    """
    SQLite-backed prospect store.

    Usage:
        store = SqliteProspectStore("outreach_desk.db")
        store.init()

        store.create(name="Ann", category="Acne", phone_number="111")
        pending = store.get_pending()
    """

    def __init__(self, db_path: str = DATABASE_FILE, templater: Templater = render_message):
        super().__init__(templater)
        self.db_path = str(db_path)

    @contextmanager
    def _get_connection(self):
        """Get database connection with context manager."""
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

    def init(self):
        """Initialize database tables."""
        with self._get_connection() as conn:
            conn.execute("""
                CREATE TABLE IF NOT EXISTS prospects (
                    id INTEGER PRIMARY KEY AUTOINCREMENT,
                    external_key TEXT NOT NULL UNIQUE,
                    name TEXT NOT NULL,
                    category TEXT NOT NULL DEFAULT '',
                    phone_number TEXT NOT NULL,
                    message TEXT NOT NULL,
                    status TEXT NOT NULL DEFAULT 'pending'
                        CHECK (status IN ('pending', 'sent', 'failed')),
                    created_at TEXT DEFAULT ''
                )
            """)
            conn.execute(
                "CREATE INDEX IF NOT EXISTS idx_prospects_phone ON prospects (phone_number)"
            )

        logger.info(f"Database initialized: {self.db_path}")
        return self

    # ── Reads ──────────────────────────────────────────────────────

    def get_all(self) -> List[Prospect]:
        with self._get_connection() as conn:
            rows = conn.execute("SELECT * FROM prospects ORDER BY id").fetchall()
            return [self._row_to_prospect(row) for row in rows]

    def get(self, prospect_id: int) -> Optional[Prospect]:
        with self._get_connection() as conn:
            row = conn.execute(
                "SELECT * FROM prospects WHERE id = ?", (prospect_id,)
            ).fetchone()
            return self._row_to_prospect(row) if row else None

    def get_by_external_key(self, external_key: str) -> Optional[Prospect]:
        with self._get_connection() as conn:
            row = conn.execute(
                "SELECT * FROM prospects WHERE external_key = ?", (external_key,)
            ).fetchone()
            return self._row_to_prospect(row) if row else None

    def get_by_phone_number(self, phone_number: str) -> Optional[Prospect]:
        with self._get_connection() as conn:
            row = conn.execute(
                "SELECT * FROM prospects WHERE phone_number = ? ORDER BY id LIMIT 1",
                ((phone_number or "").strip(),)
            ).fetchone()
            return self._row_to_prospect(row) if row else None

    def get_pending(self) -> List[Prospect]:
        with self._get_connection() as conn:
            rows = conn.execute(
                "SELECT * FROM prospects WHERE status = ? ORDER BY id",
                (ProspectStatus.PENDING.value,)
            ).fetchall()
            return [self._row_to_prospect(row) for row in rows]

    # ── Writes ─────────────────────────────────────────────────────

    def create(self, name, category, phone_number, external_key=None) -> Prospect:
        self._validate_content(name, phone_number)
        category = category or ""
        key = external_key or new_external_key()

        try:
            with self._get_connection() as conn:
                cursor = conn.execute(
                    """INSERT INTO prospects
                       (external_key, name, category, phone_number, message, status, created_at)
                       VALUES (?, ?, ?, ?, ?, ?, ?)""",
                    (key, name, category, phone_number,
                     self._templater(name, category), ProspectStatus.PENDING.value, _now())
                )
                prospect_id = cursor.lastrowid
        except sqlite3.IntegrityError:
            raise DuplicateKeyError(key)

        return self.get(prospect_id)

    def update_content(self, prospect_id, name, category, phone_number) -> Prospect:
        self._require(prospect_id)
        self._validate_content(name, phone_number)
        category = category or ""

        with self._get_connection() as conn:
            cursor = conn.execute(
                """UPDATE prospects
                   SET name = ?, category = ?, phone_number = ?, message = ?
                   WHERE id = ?""",
                (name, category, phone_number, self._templater(name, category), prospect_id)
            )
            if cursor.rowcount == 0:
                raise NotFoundError(f"Prospect {prospect_id} not found")

        return self.get(prospect_id)

    def update_status(self, prospect_id, status) -> Prospect:
        self._require(prospect_id)
        status = self._validate_status(status)

        with self._get_connection() as conn:
            cursor = conn.execute(
                "UPDATE prospects SET status = ? WHERE id = ?", (status, prospect_id)
            )
            if cursor.rowcount == 0:
                raise NotFoundError(f"Prospect {prospect_id} not found")

        return self.get(prospect_id)

    def delete(self, prospect_id) -> bool:
        with self._get_connection() as conn:
            cursor = conn.execute("DELETE FROM prospects WHERE id = ?", (prospect_id,))
            return cursor.rowcount > 0

    def clear(self) -> None:
        with self._get_connection() as conn:
            conn.execute("DELETE FROM prospects")
            conn.execute("DELETE FROM sqlite_sequence WHERE name = 'prospects'")
        logger.info("All prospects cleared")

    def _require(self, prospect_id) -> None:
        if self.get(prospect_id) is None:
            raise NotFoundError(f"Prospect {prospect_id} not found")

    def _row_to_prospect(self, row: sqlite3.Row) -> Prospect:
        """Convert database row to Prospect object."""
        return Prospect(
            id=row["id"],
            external_key=row["external_key"],
            name=row["name"],
            category=row["category"] or "",
            phone_number=row["phone_number"],
            message=row["message"],
            status=row["status"],
            created_at=row["created_at"] or "",
        )
