"""SQLite-backed worklist of items per source, with per-item durable merges."""

import json
import logging
import sqlite3
from contextlib import contextmanager
from typing import Dict, Generator, Iterable, List, Optional

from .errors import StorageError
from .merge import merge
from .models import Item, ItemStatus, Outcome

logger = logging.getLogger("film_scraper")

SCHEMA = """
    CREATE TABLE IF NOT EXISTS items (
        id INTEGER PRIMARY KEY AUTOINCREMENT,
        source TEXT NOT NULL,
        identity TEXT NOT NULL,
        locator TEXT NOT NULL,
        fields TEXT DEFAULT '{}',
        status TEXT DEFAULT 'pending',
        error TEXT,
        created_at TIMESTAMP DEFAULT CURRENT_TIMESTAMP,
        updated_at TIMESTAMP DEFAULT CURRENT_TIMESTAMP,
        UNIQUE(source, identity)
    );

    CREATE INDEX IF NOT EXISTS idx_items_source_status ON items(source, status);
"""


class WorklistStore:
    """Items of one source, kept in insertion order and keyed by identity.

    Every ``mark`` runs in its own transaction, so an interrupted run loses at
    most the item that was in flight (which simply stays pending).
    """

    def __init__(self, db_path: str, source: str):
        self.db_path = db_path
        self.source = source
        self._connection: Optional[sqlite3.Connection] = None

    @classmethod
    def load(cls, db_path: str, source: str) -> "WorklistStore":
        store = cls(db_path, source)
        try:
            store._init_db()
            # Decode every row once so a corrupt store fails before any fetch.
            for _ in store.items():
                pass
        except StorageError:
            store.close()
            raise
        except sqlite3.Error as e:
            store.close()
            raise StorageError(f"Cannot open worklist {db_path}: {e}") from e
        return store

    @property
    def _conn(self) -> sqlite3.Connection:
        if self._connection is None:
            try:
                self._connection = sqlite3.connect(self.db_path)
            except sqlite3.Error as e:
                raise StorageError(f"Cannot open worklist {self.db_path}: {e}") from e
            self._connection.row_factory = sqlite3.Row
        return self._connection

    def _init_db(self):
        conn = self._conn
        conn.execute("PRAGMA journal_mode=WAL")
        conn.executescript(SCHEMA)
        conn.commit()

    @contextmanager
    def _storage_errors(self, action: str):
        try:
            yield
        except sqlite3.Error as e:
            raise StorageError(f"Failed to {action} in {self.db_path}: {e}") from e

    def _row_to_item(self, row: sqlite3.Row) -> Item:
        try:
            fields = json.loads(row["fields"] or "{}")
            status = ItemStatus(row["status"])
        except ValueError as e:
            raise StorageError(f"Corrupt record for {row['identity']!r}: {e}") from e
        if not isinstance(fields, dict):
            raise StorageError(f"Corrupt record for {row['identity']!r}: fields is not a mapping")
        return Item(
            identity=row["identity"],
            locator=row["locator"],
            fields=fields,
            status=status,
            error=row["error"],
        )

    # -- reads ---------------------------------------------------------------

    def get(self, identity: str) -> Optional[Item]:
        with self._storage_errors("read item"):
            row = self._conn.execute(
                "SELECT * FROM items WHERE source = ? AND identity = ?",
                (self.source, identity),
            ).fetchone()
        return self._row_to_item(row) if row else None

    def items(self) -> List[Item]:
        with self._storage_errors("read items"):
            rows = self._conn.execute(
                "SELECT * FROM items WHERE source = ? ORDER BY id", (self.source,)
            ).fetchall()
        return [self._row_to_item(r) for r in rows]

    def pending_items(self, batch_size: int = 100) -> Generator[Item, None, None]:
        """Lazily yield pending items in insertion order.

        Pages by row id, so items marked while iterating are never yielded twice
        and a fresh call starts over from the first pending item.
        """
        last_id = 0
        while True:
            with self._storage_errors("read pending items"):
                rows = self._conn.execute(
                    """SELECT * FROM items WHERE source = ? AND status = ? AND id > ?
                       ORDER BY id LIMIT ?""",
                    (self.source, ItemStatus.PENDING.value, last_id, batch_size),
                ).fetchall()
            if not rows:
                return
            for row in rows:
                last_id = row["id"]
                yield self._row_to_item(row)

    def count(self, status: Optional[ItemStatus] = None) -> int:
        with self._storage_errors("count items"):
            if status is None:
                row = self._conn.execute(
                    "SELECT COUNT(*) FROM items WHERE source = ?", (self.source,)
                ).fetchone()
            else:
                row = self._conn.execute(
                    "SELECT COUNT(*) FROM items WHERE source = ? AND status = ?",
                    (self.source, ItemStatus(status).value),
                ).fetchone()
        return row[0]

    def status_counts(self) -> Dict[str, int]:
        counts = {status.value: 0 for status in ItemStatus}
        with self._storage_errors("count items"):
            rows = self._conn.execute(
                "SELECT status, COUNT(*) FROM items WHERE source = ? GROUP BY status",
                (self.source,),
            ).fetchall()
        for status, cnt in rows:
            counts[status] = cnt
        return counts

    # -- writes --------------------------------------------------------------

    def add_item(self, identity: str, locator: str) -> bool:
        """Seed an item. Returns False if the identity is already tracked."""
        with self._storage_errors("add item"), self._conn:
            cur = self._conn.execute(
                "INSERT OR IGNORE INTO items (source, identity, locator) VALUES (?, ?, ?)",
                (self.source, identity, locator),
            )
        return cur.rowcount == 1

    def _write(self, item: Item):
        self._conn.execute(
            """UPDATE items SET locator = ?, fields = ?, status = ?, error = ?,
               updated_at = CURRENT_TIMESTAMP
               WHERE source = ? AND identity = ?""",
            (item.locator, json.dumps(item.fields, ensure_ascii=False),
             item.status.value, item.error, self.source, item.identity),
        )

    def mark(self, identity: str, outcome: Outcome, anchor_fields: Iterable[str] = ()) -> Item:
        """Merge ``outcome`` into the stored item and persist it atomically."""
        with self._storage_errors("update item"), self._conn:
            item = self.get(identity)
            if item is None:
                raise KeyError(f"Unknown item {identity!r} for source {self.source}")
            updated = merge(item, outcome, anchor_fields)
            self._write(updated)
        return updated

    def reset(self, status: ItemStatus) -> int:
        """Put every item with ``status`` back to pending. Fields are kept."""
        with self._storage_errors("reset items"), self._conn:
            cur = self._conn.execute(
                """UPDATE items SET status = ?, error = NULL, updated_at = CURRENT_TIMESTAMP
                   WHERE source = ? AND status = ?""",
                (ItemStatus.PENDING.value, self.source, ItemStatus(status).value),
            )
        logger.info(f"[{self.source}] Reset {cur.rowcount} {ItemStatus(status).value} item(s) to pending")
        return cur.rowcount

    def save(self):
        if self._connection is None:
            return
        with self._storage_errors("save worklist"):
            self._connection.commit()

    def close(self):
        if self._connection is None:
            return
        try:
            self.save()
        finally:
            self._connection.close()
            self._connection = None

    def __enter__(self) -> "WorklistStore":
        return self

    def __exit__(self, exc_type, exc, tb):
        self.close()
        return False
