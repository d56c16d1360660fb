"""
Quote request persistence (SQLite)

Every processed request is stored with its parsed shipment and the quotes
returned, for follow-up by sales. Storage is optional: without
QUOTE_DB_PATH saves are skipped. A failed save is logged and never changes
the response the caller already has.
"""

from __future__ import annotations

import asyncio
import json
import logging
import sqlite3
import threading
from contextlib import closing
from datetime import datetime, timezone
from pathlib import Path
from typing import Any, Dict, List, Optional

from ..exceptions import PersistenceError
from ..models import ParsedRequest, Quote

logger = logging.getLogger(__name__)

SCHEMA = """
CREATE TABLE IF NOT EXISTS quote_requests (
    id INTEGER PRIMARY KEY AUTOINCREMENT,
    raw_request TEXT NOT NULL,
    origin VARCHAR(255),
    destination VARCHAR(255),
    parcels TEXT,
    is_international BOOLEAN DEFAULT 0,
    is_pallet BOOLEAN DEFAULT 0,
    email VARCHAR(255),
    phone VARCHAR(50),
    quotes TEXT,
    created_at TEXT NOT NULL
);
CREATE INDEX IF NOT EXISTS idx_quote_requests_email ON quote_requests(email);
CREATE INDEX IF NOT EXISTS idx_quote_requests_created_at ON quote_requests(created_at);
"""


class QuoteStore:
    """SQLite store for quote requests."""

    def __init__(self, db_path: Optional[str | Path] = None):
        self.db_path = Path(db_path) if db_path else None
        self._write_lock = threading.Lock()
        self._schema_ready = False

    @property
    def enabled(self) -> bool:
        return self.db_path is not None

    def _connect(self) -> sqlite3.Connection:
        if self.db_path is None:
            raise PersistenceError("QUOTE_DB_PATH not configured", code="DatabaseNotConfigured")
        self.db_path.parent.mkdir(parents=True, exist_ok=True)
        conn = sqlite3.connect(str(self.db_path), check_same_thread=False)
        conn.row_factory = sqlite3.Row
        return conn

    def init_schema(self) -> None:
        """Create the quote_requests table and its indexes.

        Raises:
            PersistenceError: If no database is configured or the DDL fails
        """
        try:
            with self._write_lock, closing(self._connect()) as conn:
                conn.executescript(SCHEMA)
                conn.commit()
        except sqlite3.Error as e:
            raise PersistenceError(
                "Failed to initialize database", details={"reason": str(e)}
            ) from e
        self._schema_ready = True
        logger.info(f"Quote store schema ready at {self.db_path}")

    def save(
        self,
        raw_request: str,
        parsed: ParsedRequest,
        email: Optional[str] = None,
        phone: Optional[str] = None,
        quotes: Optional[Dict[str, List[Quote]]] = None,
    ) -> Optional[int]:
        """Insert one request; returns the new row id, or None when disabled."""
        if not self.enabled:
            logger.info("Database not configured, skipping save")
            return None
        if not self._schema_ready:
            self.init_schema()

        quotes_json = json.dumps(
            {name: [q.model_dump() for q in items] for name, items in (quotes or {}).items()}
        )
        parcels_json = json.dumps([p.model_dump() for p in parsed.parcels])
        try:
            with self._write_lock, closing(self._connect()) as conn:
                cursor = conn.execute(
                    """
                    INSERT INTO quote_requests (
                        raw_request, origin, destination, parcels,
                        is_international, is_pallet, email, phone, quotes, created_at
                    ) VALUES (?, ?, ?, ?, ?, ?, ?, ?, ?, ?)
                    """,
                    (
                        raw_request,
                        parsed.origin,
                        parsed.destination,
                        parcels_json,
                        parsed.isInternational,
                        parsed.isPallet,
                        email or None,
                        phone or None,
                        quotes_json,
                        datetime.now(timezone.utc).isoformat(),
                    ),
                )
                conn.commit()
                return cursor.lastrowid
        except sqlite3.Error as e:
            raise PersistenceError("Failed to save quote request", details={"reason": str(e)}) from e

    async def save_async(self, *args: Any, **kwargs: Any) -> Optional[int]:
        """``save`` on a worker thread; errors are logged, not raised."""
        try:
            return await asyncio.to_thread(self.save, *args, **kwargs)
        except PersistenceError as e:
            logger.error(f"Database error: {e.message} {e.details}")
            return None

    def recent(self, limit: int = 20) -> List[Dict[str, Any]]:
        """Most recent requests first, JSON columns decoded."""
        if not self.enabled:
            return []
        try:
            with closing(self._connect()) as conn:
                rows = conn.execute(
                    "SELECT * FROM quote_requests ORDER BY id DESC LIMIT ?", (limit,)
                ).fetchall()
        except sqlite3.Error as e:
            raise PersistenceError("Failed to read quote requests", details={"reason": str(e)}) from e

        records = []
        for row in rows:
            record = dict(row)
            record["parcels"] = json.loads(record["parcels"] or "[]")
            record["quotes"] = json.loads(record["quotes"] or "{}")
            record["is_international"] = bool(record["is_international"])
            record["is_pallet"] = bool(record["is_pallet"])
            records.append(record)
        return records
